"""Data models — all frozen (immutable)."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Union


class EntityType(str, Enum):
    """Roles an entity can play in the obligation graph."""

    SAV_DEPOSITORS = "sav-depositors"
    SAV = "sav"
    SUPPLY_POOL_STRATEGY = "supply-pool-strategy"
    SUPPLY_POOL = "supply-pool"
    POSITION = "position"
    LP_USER = "lp-user"


@dataclass(frozen=True)
class AssetType:
    """A fungible asset type, e.g. ``0x2::sui::SUI`` with 9 decimals."""

    type_name: str
    decimals: int
    symbol: str = ""

    def to_decimal(self, raw: int) -> Decimal:
        """Convert a raw integer amount into human units."""
        return Decimal(raw).scaleb(-self.decimals)


@dataclass(frozen=True)
class CoinAsset:
    """Single fungible quantity of one asset type."""

    asset_type: AssetType
    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(
                f"Negative amount for {self.asset_type.type_name}: {self.amount}"
            )

    def lines(self) -> tuple[tuple[AssetType, int], ...]:
        return ((self.asset_type, self.amount),)


@dataclass(frozen=True)
class LPAsset:
    """Paired liquidity position holding two asset types."""

    asset_a: AssetType
    asset_b: AssetType
    amount_a: int
    amount_b: int

    def __post_init__(self) -> None:
        if self.amount_a < 0 or self.amount_b < 0:
            raise ValueError(
                f"Negative LP amount for {self.asset_a.type_name}/"
                f"{self.asset_b.type_name}"
            )

    def lines(self) -> tuple[tuple[AssetType, int], ...]:
        return ((self.asset_a, self.amount_a), (self.asset_b, self.amount_b))


Asset = Union[CoinAsset, LPAsset]


@dataclass(frozen=True)
class Obligation:
    """Directed debt: ``debtor`` owes ``asset`` to ``creditor``."""

    debtor: str
    creditor: str
    asset: Asset

    def __post_init__(self) -> None:
        if self.debtor == self.creditor:
            raise ValueError(f"Entity '{self.debtor}' cannot owe itself")


@dataclass(frozen=True)
class Entity:
    """Modeled financial participant. Immutable input to the analysis."""

    id: str
    type: EntityType
    name: str
    holdings: tuple[Asset, ...] = ()
    obligations: tuple[Obligation, ...] = ()


@dataclass(frozen=True)
class AssetBalance:
    """Amount of one asset type in human units."""

    asset_type: str
    amount: Decimal


@dataclass(frozen=True)
class ShortfallDetail:
    """Shortfall in one asset type, attributed to the entity that caused it."""

    asset_type: str
    amount: Decimal
    usd_value: Decimal
    caused_by: str


@dataclass(frozen=True)
class EntityShortfall:
    """All shortfalls between an entity and one counterparty."""

    counterparty: str
    shortfalls: tuple[ShortfallDetail, ...]
    total_usd_value: Decimal


@dataclass(frozen=True)
class EntitySolvencyRecord:
    """Derived solvency state of one entity.

    ``shortfall_usd`` is the direct shortfall from the entity's own
    netting and swaps. ``shortfalls_by_asset`` and ``effective_shortfall_usd``
    reflect the position after shortfalls received from debtors have been
    applied.
    """

    entity_id: str
    entity_type: EntityType
    entity_name: str
    total_assets: tuple[AssetBalance, ...]
    total_liabilities: tuple[AssetBalance, ...]
    total_assets_usd: Decimal
    total_liabilities_usd: Decimal
    shortfall_usd: Decimal
    swap_used_usd: Decimal
    swapped_repayments: tuple[AssetBalance, ...] = ()
    shortfalls_by_asset: Mapping[str, Decimal] = field(default_factory=dict)
    effective_shortfall_usd: Decimal = Decimal(0)
    shortfalls_received: tuple[EntityShortfall, ...] = ()
    shortfalls_caused: tuple[EntityShortfall, ...] = ()
    is_insolvent: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "shortfalls_by_asset", MappingProxyType(dict(self.shortfalls_by_asset))
        )

    @property
    def has_obligations(self) -> bool:
        return len(self.total_liabilities) > 0

    @property
    def total_caused_usd(self) -> Decimal:
        return sum((s.total_usd_value for s in self.shortfalls_caused), Decimal(0))

    @property
    def total_received_usd(self) -> Decimal:
        return sum((s.total_usd_value for s in self.shortfalls_received), Decimal(0))


@dataclass(frozen=True)
class SolvencyReport:
    """Result of a full solvency analysis run."""

    is_solvent: bool
    insolvent_entities: tuple[str, ...]
    details: tuple[EntitySolvencyRecord, ...]

    def get(self, entity_id: str) -> EntitySolvencyRecord:
        for record in self.details:
            if record.entity_id == entity_id:
                return record
        raise KeyError(entity_id)
