"""Market data layer -- indicator source fetching and snapshot refresh."""

from tactical.market_data.snapshot_service import SnapshotService, merge_snapshot
from tactical.market_data.source_client import IndicatorSourceClient

__all__ = ["IndicatorSourceClient", "SnapshotService", "merge_snapshot"]
