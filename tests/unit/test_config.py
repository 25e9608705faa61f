"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from src.config import (
    USDC_TYPE,
    AppConfig,
    _interpolate_env,
    load_config,
)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested_structures(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SNAP", "/data/snap.yaml")
        result = _interpolate_env({"snapshot": {"path": "${SNAP}"}, "list": ["${SNAP}", 1]})
        assert result == {"snapshot": {"path": "/data/snap.yaml"}, "list": ["/data/snap.yaml", 1]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(None) is None


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.analysis.min_system_shortfall == 500.0
        assert cfg.analysis.min_entity_shortfall == 10.0
        assert cfg.analysis.display_precision == 4
        assert cfg.snapshot.path == "snapshots/latest.yaml"
        assert cfg.price_oracle.provider == "pyth"
        assert cfg.price_oracle.aggregator.timeout == 5
        assert cfg.price_oracle.pyth.feeds == {"0x2::sui::SUI": "aaa"}
        assert cfg.price_oracle.static.prices == {"0x2::sui::SUI": Decimal("3.5")}

    def test_defaults_for_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        cfg = load_config(path)
        assert cfg.analysis.min_system_shortfall == 1000.0
        assert cfg.price_oracle.provider == "aggregator"
        assert cfg.price_oracle.aggregator.quote_asset == USDC_TYPE

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_env_interpolation_in_yaml(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_SNAPSHOT", "/tmp/graph.json")
        path = tmp_path / "config.yaml"
        path.write_text('snapshot:\n  path: "${TEST_SNAPSHOT}"\n')
        assert load_config(path).snapshot.path == "/tmp/graph.json"


class TestValidation:
    @pytest.mark.parametrize(
        "body, message",
        [
            ("analysis:\n  min_system_shortfall: -1\n", "min_system_shortfall"),
            ("analysis:\n  min_entity_shortfall: -1\n", "min_entity_shortfall"),
            ("analysis:\n  display_precision: -2\n", "display_precision"),
            ('snapshot:\n  path: ""\n', "snapshot path"),
            ("price_oracle:\n  provider: coingecko\n", "Unknown price provider 'coingecko'"),
            (
                "price_oracle:\n  static:\n    prices: {\"0x2::sui::SUI\": 0}\n",
                "must be positive",
            ),
        ],
    )
    def test_invalid_values_rejected(self, tmp_path: Path, body: str, message: str) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(body)
        with pytest.raises(ValueError, match=message):
            load_config(path)
