"""Kai protocol entity builders."""
from .builder import (
    build_position_entity,
    build_strategy_entity,
    build_supply_pool_entity,
    build_vault_entities,
    depositors_id,
    share_value,
)

__all__ = [
    "build_position_entity",
    "build_strategy_entity",
    "build_supply_pool_entity",
    "build_vault_entities",
    "depositors_id",
    "share_value",
]
