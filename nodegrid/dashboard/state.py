"""Dashboard state and the single dispatch function that drives it.

The Textual app turns key presses, resizes, cluster changes and shutdown into
the event dataclasses below and hands them to :meth:`Dashboard.dispatch`.
Nothing else mutates dashboard state, which keeps it testable without a
terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from rich.text import Text

from ..config import DashboardConfig
from ..layout import GridGeometry
from ..navigation import DIRECTIONS, CursorState
from ..render import detail_lines, max_scroll, render_frame, render_help
from ..store import Snapshot


@dataclass(frozen=True)
class KeyPressed:
    key: str  # logical key name, see config.KEY_BINDINGS


@dataclass(frozen=True)
class ClusterChanged:
    pass


@dataclass(frozen=True)
class Resized:
    width: int
    height: int


@dataclass(frozen=True)
class ShutdownRequested:
    pass


Event = Union[KeyPressed, ClusterChanged, Resized, ShutdownRequested]


@dataclass
class DashboardState:
    """Mutable dashboard UI state."""
    cursor: CursorState = field(default_factory=CursorState)
    snapshot: Snapshot = ()
    width: int = 80
    height: int = 24
    show_full_help: bool = False
    synced: bool = False
    running: bool = True


class Dashboard:
    def __init__(
        self,
        snapshot: Callable[[], Snapshot],
        config: Optional[DashboardConfig] = None,
        refresh: Optional[Callable[[], None]] = None,
    ) -> None:
        self.state = DashboardState()
        self.config = config or DashboardConfig()
        self._snapshot = snapshot
        self._refresh = refresh

    # -- derived values -------------------------------------------------------

    @property
    def per_row(self) -> int:
        return GridGeometry.for_width(self.state.width).nodes_per_row

    @property
    def total(self) -> int:
        return len(self.state.snapshot)

    @property
    def body_height(self) -> int:
        return max(1, self.state.height - len(render_help(self.state.show_full_help)))

    def _detail_scroll_limit(self) -> int:
        if not self.state.snapshot:
            return 0
        node = self.state.snapshot[self.state.cursor.clamp(self.total)][0]
        return max_scroll(len(detail_lines(node)), self.body_height)

    # -- dispatch -------------------------------------------------------------

    def dispatch(self, event: Event) -> bool:
        """Apply one event. Returns False when the dashboard should quit."""
        if isinstance(event, KeyPressed):
            return self.handle_key(event.key)
        if isinstance(event, ClusterChanged):
            self.state.snapshot = self._snapshot()
            self.state.synced = True
            self.state.cursor.clamp(self.total)
            if not self.total and self.state.cursor.details:
                # nothing left to show details for
                self.state.cursor.toggle_details()
            return True
        if isinstance(event, Resized):
            self.state.width = max(0, event.width)
            self.state.height = max(0, event.height)
            return True
        if isinstance(event, ShutdownRequested):
            self.state.running = False
            return False
        raise TypeError(f"Unhandled dashboard event: {event!r}")

    def handle_key(self, key: str) -> bool:
        """Handle a logical key. Returns False to quit."""
        cursor = self.state.cursor

        if key == "quit":
            self.state.running = False
            return False

        if key == "back":
            if cursor.details:
                cursor.toggle_details()
                return True
            self.state.running = False
            return False

        if key == "help":
            self.state.show_full_help = not self.state.show_full_help
        elif key == "refresh":
            if self._refresh is not None:
                self._refresh()
        elif key == "details":
            if cursor.details or self.total:
                cursor.toggle_details()
        elif cursor.details:
            self._scroll_details(key)
        elif key in DIRECTIONS:
            cursor.move(key, self.total, self.per_row)
        return True

    def _scroll_details(self, key: str) -> None:
        """Up/down and paging scroll the payload; left/right do nothing."""
        step = {
            "up": -1,
            "down": 1,
            "page_up": -self.body_height,
            "page_down": self.body_height,
        }.get(key)
        if step is not None:
            self.state.cursor.scroll_by(step, self._detail_scroll_limit())

    # -- view -----------------------------------------------------------------

    def view(self) -> Text:
        """Render the current frame; the cursor is clamped on every pass."""
        self.state.cursor.clamp(self.total)
        return render_frame(
            self.state.snapshot,
            self.state.cursor,
            self.state.width,
            self.state.height,
            theme=self.config.theme,
            fleet_kinds=self.config.fleet_owner_kinds,
            full_help=self.state.show_full_help,
            synced=self.state.synced,
        )
