"""JSON-compatible rendering of solvency reports."""
from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Any

from ..models import AssetBalance, EntityShortfall, EntitySolvencyRecord, SolvencyReport


def _num(value: Decimal, precision: int | None) -> float:
    if precision is not None:
        value = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_EVEN)
    return float(value)


def _balances(balances: tuple[AssetBalance, ...], precision: int | None) -> list[dict[str, Any]]:
    return [
        {"asset_type": b.asset_type, "amount": _num(b.amount, precision)}
        for b in balances
    ]


def _shortfalls(
    shortfalls: tuple[EntityShortfall, ...], precision: int | None
) -> list[dict[str, Any]]:
    return [
        {
            "counterparty": s.counterparty,
            "total_usd_value": _num(s.total_usd_value, precision),
            "shortfalls": [
                {
                    "asset_type": d.asset_type,
                    "amount": _num(d.amount, precision),
                    "usd_value": _num(d.usd_value, precision),
                    "caused_by": d.caused_by,
                }
                for d in s.shortfalls
            ],
        }
        for s in shortfalls
    ]


def record_to_dict(
    record: EntitySolvencyRecord, precision: int | None = None
) -> dict[str, Any]:
    """Plain-dict view of one record; decimals become floats."""
    return {
        "entity_id": record.entity_id,
        "entity_type": record.entity_type.value,
        "entity_name": record.entity_name,
        "is_insolvent": record.is_insolvent,
        "total_assets": _balances(record.total_assets, precision),
        "total_liabilities": _balances(record.total_liabilities, precision),
        "total_assets_usd": _num(record.total_assets_usd, precision),
        "total_liabilities_usd": _num(record.total_liabilities_usd, precision),
        "shortfall_usd": _num(record.shortfall_usd, precision),
        "effective_shortfall_usd": _num(record.effective_shortfall_usd, precision),
        "swap_used_usd": _num(record.swap_used_usd, precision),
        "swapped_repayments": _balances(record.swapped_repayments, precision),
        "shortfalls_by_asset": {
            k: _num(v, precision) for k, v in record.shortfalls_by_asset.items()
        },
        "shortfalls_received": _shortfalls(record.shortfalls_received, precision),
        "shortfalls_caused": _shortfalls(record.shortfalls_caused, precision),
    }


def report_to_dict(report: SolvencyReport, precision: int | None = None) -> dict[str, Any]:
    """Plain-dict view of a report, ready for ``json.dumps``.

    Args:
        report: The analysis result.
        precision: Decimal places to round to for display. ``None`` keeps
            full precision.
    """
    return {
        "is_solvent": report.is_solvent,
        "insolvent_entities": list(report.insolvent_entities),
        "details": [record_to_dict(r, precision) for r in report.details],
    }
