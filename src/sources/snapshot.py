"""Entity-graph snapshot loader — YAML or JSON file → entities.

A snapshot declares the asset registry, optional prices, generic entities
and Kai protocol state (vaults, strategies, supply pools, positions). Raw
amounts are integers in the asset's smallest unit; large values may be
given as strings.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from ..errors import MissingReferenceError
from ..models import Asset, AssetType, CoinAsset, Entity, EntityType, LPAsset, Obligation
from ..protocols.kai import (
    build_position_entity,
    build_strategy_entity,
    build_supply_pool_entity,
    build_vault_entities,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Materialized inputs for one analysis run."""

    asset_types: dict[str, AssetType] = field(default_factory=dict)
    prices: dict[str, Decimal] = field(default_factory=dict)
    entities: dict[str, Entity] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def _int(value: Any) -> int:
    return int(str(value))


def parse_asset_types(raw: dict[str, Any]) -> dict[str, AssetType]:
    registry: dict[str, AssetType] = {}
    for type_name, info in raw.items():
        info = info or {}
        if "decimals" not in info:
            raise ValueError(f"Asset type '{type_name}' has no decimals")
        registry[type_name] = AssetType(
            type_name=type_name,
            decimals=int(info["decimals"]),
            symbol=info.get("symbol", type_name.split("::")[-1]),
        )
    return registry


def parse_prices(raw: dict[str, Any]) -> dict[str, Decimal]:
    return {k: Decimal(str(v)) for k, v in raw.items()}


def _resolve_asset(registry: dict[str, AssetType], type_name: str, context: str) -> AssetType:
    asset = registry.get(type_name)
    if asset is None:
        raise MissingReferenceError("asset type", type_name, context)
    return asset


def parse_asset(raw: dict[str, Any], registry: dict[str, AssetType], context: str) -> Asset:
    """Parse ``{asset, amount}`` or ``{lp: [a, b], amounts: [x, y]}``."""
    if "lp" in raw:
        type_a, type_b = raw["lp"]
        amount_a, amount_b = raw.get("amounts", [0, 0])
        return LPAsset(
            asset_a=_resolve_asset(registry, type_a, context),
            asset_b=_resolve_asset(registry, type_b, context),
            amount_a=_int(amount_a),
            amount_b=_int(amount_b),
        )
    return CoinAsset(
        asset_type=_resolve_asset(registry, raw["asset"], context),
        amount=_int(raw.get("amount", 0)),
    )


def parse_entity(raw: dict[str, Any], registry: dict[str, AssetType]) -> Entity:
    entity_id = str(raw["id"])
    context = f"entity '{entity_id}'"
    holdings = tuple(parse_asset(h, registry, context) for h in raw.get("holdings", []))
    obligations = tuple(
        Obligation(
            debtor=entity_id,
            creditor=str(ob["to"]),
            asset=parse_asset(ob, registry, context),
        )
        for ob in raw.get("obligations", [])
    )
    return Entity(
        id=entity_id,
        type=EntityType(raw.get("type", EntityType.LP_USER.value)),
        name=raw.get("name", entity_id),
        holdings=holdings,
        obligations=obligations,
    )


# ---------------------------------------------------------------------------
# Protocol state → entities
# ---------------------------------------------------------------------------


def _protocol_entities(
    raw: dict[str, Any], registry: dict[str, AssetType]
) -> list[Entity]:
    entities: list[Entity] = []

    vault_tables: dict[str, dict[str, int]] = {}
    for v in raw.get("vaults", []):
        vault_id = str(v["id"])
        table = {str(k): _int(b) for k, b in (v.get("strategies") or {}).items()}
        vault_tables[vault_id] = table
        entities.extend(
            build_vault_entities(
                vault_id=vault_id,
                name=v.get("name", vault_id),
                asset=_resolve_asset(registry, v["asset"], f"vault '{vault_id}'"),
                free_balance=_int(v.get("free_balance", 0)),
                strategy_borrowed=table.values(),
            )
        )

    strategy_shares: dict[str, int] = {}
    for s in raw.get("strategies", []):
        strategy_id = str(s["id"])
        context = f"strategy '{strategy_id}'"
        vault_id = str(s["vault"])
        table = vault_tables.get(vault_id)
        if table is None:
            raise MissingReferenceError("vault", vault_id, context)
        if strategy_id not in table:
            raise MissingReferenceError("vault strategy state", strategy_id, f"vault '{vault_id}'")
        strategy_shares[strategy_id] = _int(s.get("shares", 0))
        entities.append(
            build_strategy_entity(
                strategy_id=strategy_id,
                name=s.get("name", strategy_id),
                asset=_resolve_asset(registry, s["asset"], context),
                collected_profit=_int(s.get("collected_profit", 0)),
                vault_id=vault_id,
                borrowed=table[strategy_id],
            )
        )

    pool_ids: set[str] = set()
    for p in raw.get("supply_pools", []):
        pool_id = str(p["id"])
        context = f"supply pool '{pool_id}'"
        strategy_id = str(p["strategy"])
        if strategy_id not in strategy_shares:
            raise MissingReferenceError("supply pool strategy", strategy_id, context)
        pool_ids.add(pool_id)
        entities.append(
            build_supply_pool_entity(
                pool_id=pool_id,
                name=p.get("name", pool_id),
                asset=_resolve_asset(registry, p["asset"], context),
                available_balance=_int(p.get("available_balance", 0)),
                strategy_id=strategy_id,
                strategy_shares=strategy_shares[strategy_id],
                underlying_value_x64=_int(p.get("underlying_value_x64", 0)),
                supply_x64=_int(p.get("supply_x64", 0)),
            )
        )

    for pos in raw.get("positions", []):
        position_id = str(pos["id"])
        context = f"position '{position_id}'"
        for key in ("supply_pool_x", "supply_pool_y"):
            if str(pos[key]) not in pool_ids:
                raise MissingReferenceError("supply pool", str(pos[key]), context)
        entities.append(
            build_position_entity(
                position_id=position_id,
                name=pos.get("name", position_id),
                asset_x=_resolve_asset(registry, pos["asset_x"], context),
                asset_y=_resolve_asset(registry, pos["asset_y"], context),
                lp_x=_int(pos.get("lp_x", 0)),
                lp_y=_int(pos.get("lp_y", 0)),
                collateral_x=_int(pos.get("collateral_x", 0)),
                collateral_y=_int(pos.get("collateral_y", 0)),
                debt_x=_int(pos.get("debt_x", 0)),
                debt_y=_int(pos.get("debt_y", 0)),
                supply_pool_x_id=str(pos["supply_pool_x"]),
                supply_pool_y_id=str(pos["supply_pool_y"]),
            )
        )

    return entities


def index_entities(entities: Iterable[Entity]) -> dict[str, Entity]:
    """Key entities by id, rejecting duplicates."""
    indexed: dict[str, Entity] = {}
    for entity in entities:
        if entity.id in indexed:
            raise ValueError(f"Entity {entity.id} already in entities")
        indexed[entity.id] = entity
    return indexed


def parse_snapshot(raw: dict[str, Any]) -> Snapshot:
    """Build a Snapshot from already-decoded YAML/JSON data."""
    registry = parse_asset_types(raw.get("assets", {}))
    generic = [parse_entity(e, registry) for e in raw.get("entities", [])]
    protocol = _protocol_entities(raw, registry)
    return Snapshot(
        asset_types=registry,
        prices=parse_prices(raw.get("prices", {})),
        entities=index_entities([*protocol, *generic]),
    )


def collect_asset_types(entities: Iterable[Entity]) -> list[str]:
    """Every asset type named in any holding or obligation, first-seen order."""
    seen: dict[str, None] = {}
    for entity in entities:
        for holding in entity.holdings:
            for asset_type, _ in holding.lines():
                seen.setdefault(asset_type.type_name, None)
        for ob in entity.obligations:
            for asset_type, _ in ob.asset.lines():
                seen.setdefault(asset_type.type_name, None)
    return list(seen)


# ---------------------------------------------------------------------------
# File source
# ---------------------------------------------------------------------------


class SnapshotSource:
    """Entity source backed by a snapshot file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> Snapshot:
        if not self.path.exists():
            raise FileNotFoundError(f"Snapshot file not found: {self.path}")

        with open(self.path) as f:
            if self.path.suffix == ".json":
                raw = json.load(f)
            else:
                raw = yaml.safe_load(f)

        snapshot = parse_snapshot(raw or {})
        logger.info(
            "Loaded %d entities and %d asset types from %s",
            len(snapshot.entities),
            len(snapshot.asset_types),
            self.path,
        )
        return snapshot

    def load_entities(self) -> dict[str, Entity]:
        return self.load().entities
