"""Solvency analysis orchestration — snapshot → prices → engine → summary."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable

from ..config import AppConfig
from ..errors import MissingPriceError
from ..interfaces import EntitySource, PriceOracle
from ..models import EntitySolvencyRecord, EntityType, SolvencyReport
from ..oracles import AggregatorOracle, PythOracle, StaticOracle
from ..solvency import check_entity_solvency, report_to_dict
from ..sources import Snapshot, SnapshotSource, collect_asset_types

logger = logging.getLogger(__name__)

# Registry of price oracle factories keyed by provider name.
_ORACLE_FACTORIES: dict[str, Callable[[AppConfig, Snapshot], PriceOracle]] = {
    "aggregator": lambda cfg, snap: AggregatorOracle(cfg.price_oracle.aggregator),
    "pyth": lambda cfg, snap: PythOracle(cfg.price_oracle.pyth),
    "static": lambda cfg, snap: StaticOracle(
        {**snap.prices, **cfg.price_oracle.static.prices}
    ),
}


@dataclass(frozen=True)
class EntityShortfallLine:
    entity_id: str
    entity_name: str
    caused_usd: Decimal


@dataclass(frozen=True)
class ShortfallSummary:
    """Headline figures of one analysis run."""

    vaults: tuple[EntityShortfallLine, ...]
    positions: tuple[EntityShortfallLine, ...]
    insolvent_count: int
    total_system_shortfall: Decimal
    min_system_shortfall: Decimal

    @property
    def is_system_solvent(self) -> bool:
        return self.total_system_shortfall < self.min_system_shortfall


@dataclass(frozen=True)
class AnalysisResult:
    snapshot: Snapshot
    prices: dict[str, Decimal]
    report: SolvencyReport


class Analyzer:
    """Runs a solvency analysis over one entity-graph snapshot."""

    def __init__(
        self,
        config: AppConfig,
        source: EntitySource | None = None,
        oracle: PriceOracle | None = None,
    ) -> None:
        self._config = config
        self._source = source or SnapshotSource(config.snapshot.path)
        self._oracle = oracle

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def _resolve_oracle(self, snapshot: Snapshot) -> PriceOracle:
        if self._oracle is not None:
            return self._oracle
        provider = self._config.price_oracle.provider
        factory = _ORACLE_FACTORIES.get(provider)
        if factory is None:
            raise ValueError(f"No oracle factory for provider '{provider}'")
        return factory(self._config, snapshot)

    async def fetch_prices(
        self, oracle: PriceOracle, asset_types: list[str]
    ) -> dict[str, Decimal]:
        """Fetch prices and fail on the first asset type left unpriced."""
        prices = await oracle.fetch_prices(asset_types)
        for asset_type in asset_types:
            price = prices.get(asset_type)
            if price is None or price <= 0:
                logger.error("No usable price for %s", asset_type)
                raise MissingPriceError(asset_type)
        return prices

    # ------------------------------------------------------------------
    # Core workflows
    # ------------------------------------------------------------------

    async def analyze(self) -> AnalysisResult:
        """Load the snapshot, price every asset type and run the engine."""
        snapshot = self._source.load()
        asset_types = collect_asset_types(snapshot.entities.values())
        logger.info("Pricing %d asset types", len(asset_types))

        prices = await self.fetch_prices(self._resolve_oracle(snapshot), asset_types)

        logger.info("Checking solvency...")
        report = check_entity_solvency(snapshot.entities, prices)
        return AnalysisResult(snapshot=snapshot, prices=prices, report=report)

    def summarize(self, report: SolvencyReport) -> ShortfallSummary:
        """Vaults and positions in shortfall above the entity threshold."""
        min_entity = Decimal(str(self._config.analysis.min_entity_shortfall))

        def lines(entity_type: EntityType) -> tuple[EntityShortfallLine, ...]:
            return tuple(
                EntityShortfallLine(r.entity_id, r.entity_name, r.total_caused_usd)
                for r in report.details
                if r.entity_type == entity_type
                and r.shortfalls_caused
                and r.total_caused_usd >= min_entity
            )

        total = sum((r.shortfall_usd for r in report.details), Decimal(0))
        return ShortfallSummary(
            vaults=lines(EntityType.SAV),
            positions=lines(EntityType.POSITION),
            insolvent_count=len(report.insolvent_entities),
            total_system_shortfall=total,
            min_system_shortfall=Decimal(str(self._config.analysis.min_system_shortfall)),
        )

    async def check(self) -> ShortfallSummary:
        """Run an analysis and log its headline figures."""
        result = await self.analyze()
        summary = self.summarize(result.report)

        for record in result.report.details:
            if record.is_insolvent:
                self._log_insolvent(record)

        logger.info(
            "System shortfall $%.2f (threshold $%.2f): %s",
            summary.total_system_shortfall,
            summary.min_system_shortfall,
            "solvent" if summary.is_system_solvent else "INSOLVENT",
        )
        return summary

    async def export(self, output: str | Path | None = None) -> dict[str, Any]:
        """Run an analysis and return (optionally write) the full JSON report."""
        result = await self.analyze()
        data = report_to_dict(result.report, self._config.analysis.display_precision)
        data["generated_at"] = self._now_str()
        if output is not None:
            Path(output).write_text(json.dumps(data, indent=2))
            logger.info("Report written to %s", output)
        return data

    # ------------------------------------------------------------------
    # Formatting helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _now_str() -> str:
        return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

    @staticmethod
    def _log_insolvent(record: EntitySolvencyRecord) -> None:
        logger.info(
            "Insolvent: %s (%s) direct $%.2f, effective $%.2f, received $%.2f",
            record.entity_name,
            record.entity_id,
            record.shortfall_usd,
            record.effective_shortfall_usd,
            record.total_received_usd,
        )

    @staticmethod
    def _format_lines(
        title: str, label: str, lines: tuple[EntityShortfallLine, ...], empty: str
    ) -> str:
        if not lines:
            return f"--- {title} ---\n{empty}"
        body = "\n\n".join(
            f"{label}: {line.entity_name} ({line.entity_id})\n"
            f"    Total shortfall USD: ${line.caused_usd:,.2f}"
            for line in lines
        )
        return f"--- {title} ---\n{body}"

    def format_summary(self, summary: ShortfallSummary) -> str:
        """Human-readable shortfall analysis report."""
        vaults = self._format_lines(
            "SAVs in Shortfall", "SAV", summary.vaults, "No SAVs in shortfall above threshold"
        )
        positions = self._format_lines(
            "Positions in Shortfall",
            "Position",
            summary.positions,
            "No Positions in shortfall above threshold",
        )
        return (
            f"=== SHORTFALL ANALYSIS ===\n"
            f"\n"
            f"{vaults}\n"
            f"\n"
            f"{positions}\n"
            f"\n"
            f"--- Summary ---\n"
            f"Total entities in shortfall: {summary.insolvent_count}\n"
            f"SAVs in shortfall above threshold: {len(summary.vaults)}\n"
            f"Positions in shortfall above threshold: {len(summary.positions)}\n"
            f"Total system shortfall USD: ${summary.total_system_shortfall:,.2f}\n"
            f"Solvency threshold USD: ${summary.min_system_shortfall:,.2f}\n"
            f"\n"
            f"Overall system solvent: {'YES' if summary.is_system_solvent else 'NO'}\n"
            f"\n"
            f"{self._now_str()} UTC"
        )
