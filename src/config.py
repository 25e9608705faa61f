"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

USDC_TYPE = (
    "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"
)

PRICE_PROVIDERS = ("aggregator", "pyth", "static")

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AnalysisConfig:
    min_system_shortfall: float = 1000.0
    min_entity_shortfall: float = 0.0
    display_precision: int = 2


@dataclass(frozen=True)
class SnapshotConfig:
    path: str = "snapshot.yaml"


@dataclass(frozen=True)
class AggregatorConfig:
    base_url: str = "https://prices.7k.ag"
    quote_asset: str = USDC_TYPE
    timeout: int = 30


@dataclass(frozen=True)
class PythConfig:
    hermes_url: str = "https://hermes.pyth.network/v2/updates/price/latest"
    feeds: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StaticPricesConfig:
    prices: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class PriceOracleConfig:
    provider: str = "aggregator"
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    pyth: PythConfig = field(default_factory=PythConfig)
    static: StaticPricesConfig = field(default_factory=StaticPricesConfig)


@dataclass(frozen=True)
class AppConfig:
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    price_oracle: PriceOracleConfig = field(default_factory=PriceOracleConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_analysis(raw: dict[str, Any]) -> AnalysisConfig:
    return AnalysisConfig(
        min_system_shortfall=float(raw.get("min_system_shortfall", 1000.0)),
        min_entity_shortfall=float(raw.get("min_entity_shortfall", 0.0)),
        display_precision=int(raw.get("display_precision", 2)),
    )


def _build_snapshot(raw: dict[str, Any]) -> SnapshotConfig:
    return SnapshotConfig(path=str(raw.get("path", SnapshotConfig.path)))


def _build_price_oracle(raw: dict[str, Any]) -> PriceOracleConfig:
    agg_raw = raw.get("aggregator", {})
    pyth_raw = raw.get("pyth", {})
    static_raw = raw.get("static", {})
    return PriceOracleConfig(
        provider=raw.get("provider", "aggregator"),
        aggregator=AggregatorConfig(
            base_url=agg_raw.get("base_url", AggregatorConfig.base_url),
            quote_asset=agg_raw.get("quote_asset", AggregatorConfig.quote_asset),
            timeout=int(agg_raw.get("timeout", AggregatorConfig.timeout)),
        ),
        pyth=PythConfig(
            hermes_url=pyth_raw.get("hermes_url", PythConfig.hermes_url),
            feeds=dict(pyth_raw.get("feeds", {})),
        ),
        static=StaticPricesConfig(
            prices={k: Decimal(str(v)) for k, v in static_raw.get("prices", {}).items()},
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        analysis=_build_analysis(raw.get("analysis", {})),
        snapshot=_build_snapshot(raw.get("snapshot", {})),
        price_oracle=_build_price_oracle(raw.get("price_oracle", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    if cfg.analysis.min_system_shortfall < 0:
        raise ValueError("min_system_shortfall must be non-negative")
    if cfg.analysis.min_entity_shortfall < 0:
        raise ValueError("min_entity_shortfall must be non-negative")
    if cfg.analysis.display_precision < 0:
        raise ValueError("display_precision must be non-negative")

    if not cfg.snapshot.path:
        raise ValueError("A snapshot path must be configured")

    provider = cfg.price_oracle.provider
    if provider not in PRICE_PROVIDERS:
        raise ValueError(
            f"Unknown price provider '{provider}' "
            f"(expected one of: {', '.join(PRICE_PROVIDERS)})"
        )
    for asset_type, price in cfg.price_oracle.static.prices.items():
        if price <= 0:
            raise ValueError(f"Static price for '{asset_type}' must be positive")
