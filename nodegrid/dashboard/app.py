"""nodegrid dashboard: Textual TUI app.

Launch with: python -m nodegrid.dashboard
"""

from __future__ import annotations

import logging

from textual import events, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import Static
from textual.worker import get_current_worker

from ..config import KEY_BINDINGS, DashboardConfig
from ..watch import Signal
from .data import DataManager
from .state import (
    ClusterChanged,
    Dashboard,
    Event,
    KeyPressed,
    Resized,
    ShutdownRequested,
)

logger = logging.getLogger(__name__)

# How long the watch worker blocks before checking for cancellation
WATCH_POLL_SECONDS = 0.5


class ClusterUpdated(Message):
    """Posted from the watch worker thread when the cluster changed."""


def _bindings() -> list[Binding]:
    return [
        Binding(
            ",".join(keys),
            f"key_input('{name}')",
            name.replace("_", " "),
            show=False,
            priority=True,
        )
        for name, keys in KEY_BINDINGS.items()
    ]


class NodeGridApp(App):
    """Grid of cluster nodes with their pods, refreshed on every change."""

    TITLE = "nodegrid"

    CSS = """
    Screen {
        overflow: hidden;
    }
    #canvas {
        width: 100%;
        height: 100%;
    }
    """

    BINDINGS = _bindings()

    def __init__(self, data: DataManager, config: DashboardConfig | None = None,
                 **kwargs: object) -> None:
        super().__init__(**kwargs)
        self._data = data
        self.dashboard = Dashboard(data.snapshot, config=config, refresh=data.refresh)

    def compose(self) -> ComposeResult:
        yield Static(id="canvas")

    def on_mount(self) -> None:
        self._dispatch(Resized(self.size.width, self.size.height))
        self._watch_cluster()

    def on_resize(self, event: events.Resize) -> None:
        self._dispatch(Resized(event.size.width, event.size.height))

    def on_cluster_updated(self, message: ClusterUpdated) -> None:
        self._dispatch(ClusterChanged())

    def action_key_input(self, key: str) -> None:
        self._dispatch(KeyPressed(key))

    def on_unmount(self) -> None:
        self._data.stop()

    def _dispatch(self, event: Event) -> None:
        if not self.dashboard.dispatch(event):
            self._quit_dashboard()
            return
        self._paint()

    def _paint(self) -> None:
        size = self.size
        if (size.width, size.height) != (self.dashboard.state.width, self.dashboard.state.height):
            self.dashboard.dispatch(Resized(size.width, size.height))
        self.query_one("#canvas", Static).update(self.dashboard.view())

    def _quit_dashboard(self) -> None:
        if self.dashboard.state.running:
            self.dashboard.dispatch(ShutdownRequested())
        self._data.stop()
        self.exit(return_code=0)

    @work(thread=True, exclusive=True, group="watch")
    def _watch_cluster(self) -> None:
        """Wait for the first sync, then forward coalesced changes to the UI."""
        worker = get_current_worker()
        if not self._data.wait_for_sync():
            return
        self.post_message(ClusterUpdated())
        while not worker.is_cancelled:
            signal = self._data.bridge.next_change(timeout=WATCH_POLL_SECONDS)
            if signal is Signal.CLOSED:
                logger.debug("Change bridge closed, watch worker exiting")
                return
            if signal is Signal.CHANGED:
                self.post_message(ClusterUpdated())
