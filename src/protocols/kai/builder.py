"""Pure entity builders for Kai protocol state — no I/O.

Each builder turns already-fetched on-chain state for one protocol object
into the entities and obligations the solvency engine consumes.
"""
from __future__ import annotations

from collections.abc import Iterable

from ...models import AssetType, CoinAsset, Entity, EntityType, LPAsset, Obligation

Q64 = 1 << 64


def depositors_id(vault_id: str) -> str:
    """Entity id of the depositor group behind a vault."""
    return f"sav-users-{vault_id}"


def _coin_obligation(debtor: str, creditor: str, asset: AssetType, amount: int) -> Obligation:
    return Obligation(
        debtor=debtor, creditor=creditor, asset=CoinAsset(asset_type=asset, amount=amount)
    )


def build_vault_entities(
    vault_id: str,
    name: str,
    asset: AssetType,
    free_balance: int,
    strategy_borrowed: Iterable[int],
) -> tuple[Entity, Entity]:
    """Build a vault and its depositor group.

    The vault holds its free balance and owes depositors everything they put
    in: the free balance plus what it lent out to strategies.
    """
    depositors = Entity(
        id=depositors_id(vault_id),
        type=EntityType.SAV_DEPOSITORS,
        name=f"{name} SAV depositors",
    )
    lent = sum(strategy_borrowed)
    vault = Entity(
        id=vault_id,
        type=EntityType.SAV,
        name=f"{name} SAV",
        holdings=(CoinAsset(asset_type=asset, amount=free_balance),),
        obligations=(
            _coin_obligation(vault_id, depositors.id, asset, free_balance + lent),
        ),
    )
    return depositors, vault


def build_strategy_entity(
    strategy_id: str,
    name: str,
    asset: AssetType,
    collected_profit: int,
    vault_id: str,
    borrowed: int,
) -> Entity:
    """A lending strategy holds collected profit and owes its vault what it borrowed."""
    return Entity(
        id=strategy_id,
        type=EntityType.SUPPLY_POOL_STRATEGY,
        name=f"{name} supply pool strategy",
        holdings=(CoinAsset(asset_type=asset, amount=collected_profit),),
        obligations=(_coin_obligation(strategy_id, vault_id, asset, borrowed),),
    )


def share_value(shares: int, underlying_value_x64: int, supply_x64: int) -> int:
    """Underlying value of ``shares`` in a Q64.64 share registry, floored."""
    if supply_x64 <= 0:
        return 0
    value_x64 = underlying_value_x64 * (shares * Q64) // supply_x64
    return value_x64 // Q64


def build_supply_pool_entity(
    pool_id: str,
    name: str,
    asset: AssetType,
    available_balance: int,
    strategy_id: str,
    strategy_shares: int,
    underlying_value_x64: int,
    supply_x64: int,
) -> Entity:
    """A supply pool holds its idle balance and owes the strategy its share value."""
    owed = share_value(strategy_shares, underlying_value_x64, supply_x64)
    return Entity(
        id=pool_id,
        type=EntityType.SUPPLY_POOL,
        name=f"{name} supply pool",
        holdings=(CoinAsset(asset_type=asset, amount=available_balance),),
        obligations=(_coin_obligation(pool_id, strategy_id, asset, owed),),
    )


def build_position_entity(
    position_id: str,
    name: str,
    asset_x: AssetType,
    asset_y: AssetType,
    lp_x: int,
    lp_y: int,
    collateral_x: int,
    collateral_y: int,
    debt_x: int,
    debt_y: int,
    supply_pool_x_id: str,
    supply_pool_y_id: str,
) -> Entity:
    """A leveraged LP position owes each side's debt to that side's supply pool."""
    return Entity(
        id=position_id,
        type=EntityType.POSITION,
        name=f"Position {name}",
        holdings=(
            LPAsset(asset_a=asset_x, asset_b=asset_y, amount_a=lp_x, amount_b=lp_y),
            CoinAsset(asset_type=asset_x, amount=collateral_x),
            CoinAsset(asset_type=asset_y, amount=collateral_y),
        ),
        obligations=(
            _coin_obligation(position_id, supply_pool_x_id, asset_x, debt_x),
            _coin_obligation(position_id, supply_pool_y_id, asset_y, debt_y),
        ),
    )
