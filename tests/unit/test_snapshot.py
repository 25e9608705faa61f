"""Unit tests for snapshot parsing and the file-backed entity source."""
from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from conftest import SUI, USDC
from src.errors import MissingReferenceError
from src.models import EntityType, LPAsset
from src.sources import SnapshotSource
from src.sources.snapshot import collect_asset_types, index_entities, parse_snapshot

ASSETS = {
    USDC.type_name: {"symbol": "USDC", "decimals": 6},
    SUI.type_name: {"decimals": 9},
}


class TestParseSnapshot:
    def test_generic_entities(self) -> None:
        snapshot = parse_snapshot(
            {
                "assets": ASSETS,
                "prices": {USDC.type_name: 1, SUI.type_name: "2.5"},
                "entities": [
                    {
                        "id": "user",
                        "type": "lp-user",
                        "holdings": [
                            {"lp": [SUI.type_name, USDC.type_name], "amounts": [1, "2"]}
                        ],
                        "obligations": [
                            {"to": "pool", "asset": USDC.type_name, "amount": "5000000"}
                        ],
                    },
                    {"id": "pool", "type": "supply-pool", "name": "Pool"},
                ],
            }
        )
        assert snapshot.prices[SUI.type_name] == Decimal("2.5")
        assert snapshot.asset_types[SUI.type_name].symbol == "SUI"

        user = snapshot.entities["user"]
        assert user.type is EntityType.LP_USER
        assert user.name == "user"
        assert user.holdings[0] == LPAsset(asset_a=SUI, asset_b=USDC, amount_a=1, amount_b=2)
        (ob,) = user.obligations
        assert (ob.debtor, ob.creditor, ob.asset.amount) == ("user", "pool", 5_000_000)
        assert snapshot.entities["pool"].name == "Pool"

    def test_protocol_entities_from_sample(self, sample_snapshot_path: Path) -> None:
        snapshot = SnapshotSource(sample_snapshot_path).load()
        assert list(snapshot.entities) == [
            "sav-users-vault-usdc",
            "vault-usdc",
            "strategy-usdc",
            "pool-usdc",
            "pool-sui",
            "position-1",
        ]
        assert snapshot.entities["vault-usdc"].obligations[0].asset.amount == 1_000_000_000
        assert snapshot.entities["pool-usdc"].obligations[0].asset.amount == 900_000_000
        assert snapshot.entities["pool-sui"].obligations[0].asset.amount == 0

    def test_asset_without_decimals_rejected(self) -> None:
        with pytest.raises(ValueError, match="decimals"):
            parse_snapshot({"assets": {"0x2::sui::SUI": {"symbol": "SUI"}}})

    def test_unknown_asset_type(self) -> None:
        with pytest.raises(MissingReferenceError, match="asset type '0x9::x::X'"):
            parse_snapshot(
                {"assets": ASSETS, "entities": [{"id": "a", "holdings": [{"asset": "0x9::x::X"}]}]}
            )

    def test_strategy_with_unknown_vault(self) -> None:
        with pytest.raises(MissingReferenceError, match="vault 'v9'"):
            parse_snapshot(
                {
                    "assets": ASSETS,
                    "strategies": [{"id": "s1", "asset": USDC.type_name, "vault": "v9"}],
                }
            )

    def test_strategy_missing_from_vault_table(self) -> None:
        with pytest.raises(MissingReferenceError, match="vault strategy state 's1'"):
            parse_snapshot(
                {
                    "assets": ASSETS,
                    "vaults": [{"id": "v1", "asset": USDC.type_name, "strategies": {}}],
                    "strategies": [{"id": "s1", "asset": USDC.type_name, "vault": "v1"}],
                }
            )

    def test_position_with_unknown_pool(self) -> None:
        with pytest.raises(MissingReferenceError, match="supply pool 'p9'"):
            parse_snapshot(
                {
                    "assets": ASSETS,
                    "positions": [
                        {
                            "id": "pos",
                            "asset_x": SUI.type_name,
                            "asset_y": USDC.type_name,
                            "supply_pool_x": "p9",
                            "supply_pool_y": "p9",
                        }
                    ],
                }
            )

    def test_duplicate_ids_rejected(self) -> None:
        with pytest.raises(ValueError, match="already in entities"):
            parse_snapshot({"assets": ASSETS, "entities": [{"id": "a"}, {"id": "a"}]})


class TestHelpers:
    def test_collect_asset_types_first_seen(self, sample_snapshot_path: Path) -> None:
        entities = SnapshotSource(sample_snapshot_path).load_entities()
        assert collect_asset_types(entities.values()) == [USDC.type_name, SUI.type_name]

    def test_index_entities(self) -> None:
        snapshot = parse_snapshot({"entities": [{"id": "a"}, {"id": "b"}]})
        assert list(index_entities(snapshot.entities.values())) == ["a", "b"]


class TestSnapshotSource:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            SnapshotSource(tmp_path / "missing.yaml").load()

    def test_loads_json(self, tmp_path: Path) -> None:
        path = tmp_path / "snapshot.json"
        path.write_text(json.dumps({"entities": [{"id": "a", "type": "sav"}]}))
        entities = SnapshotSource(path).load_entities()
        assert entities["a"].type is EntityType.SAV
