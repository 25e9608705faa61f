"""Entity graph sources."""
from .snapshot import Snapshot, SnapshotSource, collect_asset_types, parse_snapshot

__all__ = ["Snapshot", "SnapshotSource", "collect_asset_types", "parse_snapshot"]
