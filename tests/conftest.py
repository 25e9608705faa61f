"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from decimal import Decimal
from pathlib import Path

import pytest

from src.config import (
    AggregatorConfig,
    AnalysisConfig,
    AppConfig,
    PriceOracleConfig,
    PythConfig,
    SnapshotConfig,
    StaticPricesConfig,
)
from src.models import AssetType, CoinAsset, Entity, EntityType, LPAsset, Obligation

# ---------------------------------------------------------------------------
# Asset types and helpers
# ---------------------------------------------------------------------------

USDC = AssetType(
    type_name="0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC",
    decimals=6,
    symbol="USDC",
)
SUI = AssetType(type_name="0x2::sui::SUI", decimals=9, symbol="SUI")
DEEP = AssetType(
    type_name="0xdeeb7a4662eec9f2f3def03fb937a663dddaa2e215b8078a284d026b7946c270::deep::DEEP",
    decimals=6,
    symbol="DEEP",
)


def raw(asset: AssetType, amount: float | int | str) -> int:
    """Human amount → raw integer units."""
    return int(Decimal(str(amount)).scaleb(asset.decimals))


def coin(asset: AssetType, amount: float | int | str) -> CoinAsset:
    return CoinAsset(asset_type=asset, amount=raw(asset, amount))


def lp(
    asset_a: AssetType, amount_a: float | int, asset_b: AssetType, amount_b: float | int
) -> LPAsset:
    return LPAsset(
        asset_a=asset_a,
        asset_b=asset_b,
        amount_a=raw(asset_a, amount_a),
        amount_b=raw(asset_b, amount_b),
    )


def owes(debtor: str, creditor: str, asset) -> Obligation:
    return Obligation(debtor=debtor, creditor=creditor, asset=asset)


def make_entity(
    entity_id: str,
    holdings: tuple = (),
    obligations: tuple = (),
    entity_type: EntityType = EntityType.SAV,
) -> Entity:
    return Entity(
        id=entity_id,
        type=entity_type,
        name=f"Entity {entity_id}",
        holdings=tuple(holdings),
        obligations=tuple(obligations),
    )


def index(*entities: Entity) -> dict[str, Entity]:
    return {e.id: e for e in entities}


# ---------------------------------------------------------------------------
# Price fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def prices() -> dict[str, Decimal]:
    return {
        USDC.type_name: Decimal(1),
        SUI.type_name: Decimal(2000),
        DEEP.type_name: Decimal(50000),
    }


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        analysis=AnalysisConfig(
            min_system_shortfall=1000.0, min_entity_shortfall=0.0, display_precision=2
        ),
        snapshot=SnapshotConfig(path=str(tmp_path / "snapshot.yaml")),
        price_oracle=PriceOracleConfig(
            provider="static",
            aggregator=AggregatorConfig(base_url="https://prices.example.com"),
            pyth=PythConfig(hermes_url="https://hermes.example.com", feeds={}),
            static=StaticPricesConfig(prices={}),
        ),
    )


SAMPLE_YAML = textwrap.dedent("""\
    analysis:
      min_system_shortfall: 500
      min_entity_shortfall: 10
      display_precision: 4
    snapshot:
      path: "snapshots/latest.yaml"
    price_oracle:
      provider: pyth
      aggregator:
        base_url: "https://prices.example.com"
        timeout: 5
      pyth:
        hermes_url: "https://hermes.example.com"
        feeds: {"0x2::sui::SUI": "aaa"}
      static:
        prices: {"0x2::sui::SUI": 3.5}
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file


# ---------------------------------------------------------------------------
# Snapshot fixtures
# ---------------------------------------------------------------------------

SAMPLE_SNAPSHOT = textwrap.dedent(f"""\
    assets:
      "{USDC.type_name}": {{symbol: USDC, decimals: 6}}
      "{SUI.type_name}": {{symbol: SUI, decimals: 9}}
    prices:
      "{USDC.type_name}": 1
      "{SUI.type_name}": 2
    vaults:
      - id: vault-usdc
        name: USDC
        asset: "{USDC.type_name}"
        free_balance: 100000000
        strategies: {{strategy-usdc: 900000000}}
    strategies:
      - id: strategy-usdc
        name: USDC
        asset: "{USDC.type_name}"
        vault: vault-usdc
        collected_profit: 0
        shares: 1000
    supply_pools:
      - id: pool-usdc
        name: USDC
        asset: "{USDC.type_name}"
        available_balance: 100000000
        strategy: strategy-usdc
        underlying_value_x64: "{900000000 * (1 << 64)}"
        supply_x64: "{1000 * (1 << 64)}"
      - id: pool-sui
        name: SUI
        asset: "{SUI.type_name}"
        available_balance: 0
        strategy: strategy-usdc
        underlying_value_x64: 0
        supply_x64: 0
    positions:
      - id: position-1
        name: SUI/USDC
        asset_x: "{SUI.type_name}"
        asset_y: "{USDC.type_name}"
        lp_x: 0
        lp_y: 500000000
        collateral_x: 0
        collateral_y: 0
        debt_x: 0
        debt_y: 800000000
        supply_pool_x: pool-sui
        supply_pool_y: pool-usdc
""")


@pytest.fixture()
def sample_snapshot_path(tmp_path: Path) -> Path:
    path = tmp_path / "snapshot.yaml"
    path.write_text(SAMPLE_SNAPSHOT)
    return path
