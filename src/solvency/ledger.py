"""Shortfall ledger — counterparty → asset type → accumulated shortfall."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from ..models import EntityShortfall, ShortfallDetail


@dataclass
class _Entry:
    amount: Decimal
    usd_value: Decimal
    caused_by: str


class ShortfallLedger:
    """Ordered two-level accumulation of shortfalls for one entity.

    Entries are keyed first by counterparty, then by asset type. Recording
    the same (counterparty, asset type) twice merges into one entry, so the
    result does not depend on how the amounts were split across calls.
    """

    def __init__(self) -> None:
        self._entries: dict[str, dict[str, _Entry]] = {}

    def record(
        self,
        counterparty: str,
        asset_type: str,
        amount: Decimal,
        usd_value: Decimal,
        caused_by: str,
    ) -> None:
        """Merge a shortfall into the entry for ``counterparty``/``asset_type``."""
        by_asset = self._entries.setdefault(counterparty, {})
        entry = by_asset.get(asset_type)
        if entry is None:
            by_asset[asset_type] = _Entry(amount, usd_value, caused_by)
        else:
            entry.amount += amount
            entry.usd_value += usd_value

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def totals_by_asset(self) -> dict[str, Decimal]:
        """Sum of amounts per asset type across all counterparties."""
        totals: dict[str, Decimal] = {}
        for by_asset in self._entries.values():
            for asset_type, entry in by_asset.items():
                totals[asset_type] = totals.get(asset_type, Decimal(0)) + entry.amount
        return totals

    def to_shortfalls(self) -> tuple[EntityShortfall, ...]:
        """Materialize the ledger as immutable report entries."""
        result: list[EntityShortfall] = []
        for counterparty, by_asset in self._entries.items():
            details = tuple(
                ShortfallDetail(
                    asset_type=asset_type,
                    amount=entry.amount,
                    usd_value=entry.usd_value,
                    caused_by=entry.caused_by,
                )
                for asset_type, entry in by_asset.items()
            )
            result.append(
                EntityShortfall(
                    counterparty=counterparty,
                    shortfalls=details,
                    total_usd_value=sum((d.usd_value for d in details), Decimal(0)),
                )
            )
        return tuple(result)
