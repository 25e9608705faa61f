"""Per-entity solvency calculator.

For one entity: aggregate holdings and inbound obligations, flatten outbound
obligations into per-asset lines, net each asset type directly, cover what
is left with surplus of other asset types at current prices, and report the
residual shortfall.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from ..errors import MissingPriceError
from ..models import AssetBalance, AssetType, Entity, EntitySolvencyRecord, Obligation

logger = logging.getLogger(__name__)

ZERO = Decimal(0)


@dataclass(frozen=True)
class LiabilityLine:
    """One per-asset component of an outbound obligation."""

    creditor: str
    asset_type: str
    amount: Decimal
    usd_value: Decimal


@dataclass(frozen=True)
class Settlement:
    """Outcome of netting and cross-asset coverage for one balance sheet."""

    shortfall_usd: Decimal
    swap_used_usd: Decimal
    swapped_repayments: tuple[AssetBalance, ...]
    shortfalls_by_asset: dict[str, Decimal]


def get_price(prices: Mapping[str, Decimal], asset_type: str) -> Decimal:
    """Look up a USD price, failing loudly when it is absent or not positive."""
    price = prices.get(asset_type)
    if price is None or price <= 0:
        raise MissingPriceError(asset_type)
    return price


def _add(totals: dict[str, Decimal], asset_type: AssetType, raw: int) -> None:
    key = asset_type.type_name
    totals[key] = totals.get(key, ZERO) + asset_type.to_decimal(raw)


def inbound_obligations(entity_id: str, entities: Iterable[Entity]) -> list[Obligation]:
    """All obligations owed *to* ``entity_id`` by any entity in the set."""
    return [
        ob
        for other in entities
        for ob in other.obligations
        if ob.creditor == entity_id
    ]


def aggregate_assets(entity: Entity, inbound: Iterable[Obligation]) -> dict[str, Decimal]:
    """Sum holdings and inbound obligations (at face value) by asset type."""
    totals: dict[str, Decimal] = {}
    for holding in entity.holdings:
        for asset_type, raw in holding.lines():
            _add(totals, asset_type, raw)
    for ob in inbound:
        for asset_type, raw in ob.asset.lines():
            _add(totals, asset_type, raw)
    return totals


def flatten_liabilities(
    obligations: Iterable[Obligation], prices: Mapping[str, Decimal]
) -> list[LiabilityLine]:
    """Expand obligations into per-asset lines valued in USD.

    A paired-liquidity obligation yields one line per constituent asset.
    """
    lines: list[LiabilityLine] = []
    for ob in obligations:
        for asset_type, raw in ob.asset.lines():
            price = get_price(prices, asset_type.type_name)
            amount = asset_type.to_decimal(raw)
            lines.append(
                LiabilityLine(
                    creditor=ob.creditor,
                    asset_type=asset_type.type_name,
                    amount=amount,
                    usd_value=amount * price,
                )
            )
    return lines


def group_liabilities(lines: Iterable[LiabilityLine]) -> dict[str, Decimal]:
    """Total owed per asset type, in first-seen order."""
    totals: dict[str, Decimal] = {}
    for line in lines:
        totals[line.asset_type] = totals.get(line.asset_type, ZERO) + line.amount
    return totals


def value_usd(balances: Mapping[str, Decimal], prices: Mapping[str, Decimal]) -> Decimal:
    return sum(
        (amount * get_price(prices, asset_type) for asset_type, amount in balances.items()),
        ZERO,
    )


def settle(
    assets: Mapping[str, Decimal],
    liabilities: Mapping[str, Decimal],
    prices: Mapping[str, Decimal],
) -> Settlement:
    """Net liabilities against assets, then cover deficits with swaps.

    Each asset type is netted independently. Surplus left over in any asset
    type is then notionally swapped, at current prices, to cover the USD
    deficit, bounded by the lesser of total surplus and total deficit. The
    residual shortfall is spread over the deficit asset types pro-rata to
    their share of the deficit USD value.
    """
    remaining = dict(assets)
    deficits_usd: dict[str, Decimal] = {}

    for asset_type, owed in liabilities.items():
        available = remaining.get(asset_type, ZERO)
        if available >= owed:
            remaining[asset_type] = available - owed
            continue
        price = get_price(prices, asset_type)
        deficits_usd[asset_type] = (owed - available) * price
        remaining[asset_type] = ZERO

    total_deficit_usd = sum(deficits_usd.values(), ZERO)
    swap_used_usd = ZERO
    swapped: list[AssetBalance] = []

    if total_deficit_usd > 0:
        surplus_usd = value_usd(
            {k: v for k, v in remaining.items() if v > 0}, prices
        )
        swap_used_usd = min(surplus_usd, total_deficit_usd)
        if swap_used_usd > 0:
            for asset_type, deficit_usd in deficits_usd.items():
                allocated_usd = swap_used_usd * deficit_usd / total_deficit_usd
                swapped.append(
                    AssetBalance(
                        asset_type=asset_type,
                        amount=allocated_usd / get_price(prices, asset_type),
                    )
                )

    shortfall_usd = max(total_deficit_usd - swap_used_usd, ZERO)

    by_asset: dict[str, Decimal] = {}
    if shortfall_usd > 0:
        for asset_type, deficit_usd in deficits_usd.items():
            residual_usd = shortfall_usd * deficit_usd / total_deficit_usd
            amount = residual_usd / get_price(prices, asset_type)
            if amount > 0:
                by_asset[asset_type] = amount

    return Settlement(
        shortfall_usd=shortfall_usd,
        swap_used_usd=swap_used_usd,
        swapped_repayments=tuple(swapped),
        shortfalls_by_asset=by_asset,
    )


def _balances(totals: Mapping[str, Decimal]) -> tuple[AssetBalance, ...]:
    return tuple(AssetBalance(asset_type=k, amount=v) for k, v in totals.items())


def compute_entity_solvency(
    entity: Entity,
    entities: Iterable[Entity],
    prices: Mapping[str, Decimal],
    inbound: Iterable[Obligation] | None = None,
) -> EntitySolvencyRecord:
    """First-pass solvency record for a single entity.

    Args:
        entity: The entity to evaluate.
        entities: Full entity set, scanned for obligations owed to ``entity``.
        prices: USD price per asset type name.
        inbound: Pre-computed inbound obligations. When given, ``entities``
            is not scanned.

    Raises:
        MissingPriceError: An asset type held, received or owed has no price.
    """
    if inbound is None:
        inbound = inbound_obligations(entity.id, entities)

    assets = aggregate_assets(entity, inbound)
    lines = flatten_liabilities(entity.obligations, prices)
    liabilities = group_liabilities(lines)

    total_assets_usd = value_usd(assets, prices)
    total_liabilities_usd = sum((line.usd_value for line in lines), ZERO)

    settlement = settle(assets, liabilities, prices)
    if settlement.shortfall_usd > 0:
        logger.debug(
            "Entity %s short $%s after swapping $%s",
            entity.id,
            settlement.shortfall_usd,
            settlement.swap_used_usd,
        )

    return EntitySolvencyRecord(
        entity_id=entity.id,
        entity_type=entity.type,
        entity_name=entity.name,
        total_assets=_balances(assets),
        total_liabilities=_balances(liabilities),
        total_assets_usd=total_assets_usd,
        total_liabilities_usd=total_liabilities_usd,
        shortfall_usd=settlement.shortfall_usd,
        swap_used_usd=settlement.swap_used_usd,
        swapped_repayments=settlement.swapped_repayments,
        shortfalls_by_asset=settlement.shortfalls_by_asset,
        effective_shortfall_usd=settlement.shortfall_usd,
        is_insolvent=settlement.shortfall_usd > 0,
    )
