"""Data layer for the dashboard.

Wraps a DataSource and the ChangeBridge that coalesces its events for use by
the Textual app. The source polls in its own thread; the app's watch worker
blocks on the bridge.
"""

from __future__ import annotations

from typing import Optional

from ..sources import DataSource
from ..store import Snapshot
from ..watch import ChangeBridge


class DataManager:
    """Owns the data source and its change bridge."""

    def __init__(self, source: DataSource) -> None:
        self.source = source
        self.bridge = ChangeBridge().attach(source)

    def start(self) -> None:
        """Run the first listing and start background polling.

        Raises:
            SourceError: If the source cannot list the cluster.
        """
        self.source.start()

    def snapshot(self) -> Snapshot:
        return self.source.store.snapshot()

    def refresh(self) -> None:
        self.source.refresh()

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        return self.source.wait_for_sync(timeout)

    def stop(self) -> None:
        """Close the bridge first so a blocked watcher returns right away."""
        self.bridge.close()
        self.source.stop()
