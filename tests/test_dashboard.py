"""Tests for the nodegrid dashboard.

Tests cover: dashboard state transitions driven through Dashboard.dispatch,
key bindings, the DataManager wrapper and helper functions.

Textual rendering is not exercised end-to-end; the dashboard's state machine
and its rendered frame are tested directly instead.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from nodegrid.config import KEY_BINDINGS, DashboardConfig, Theme
from nodegrid.dashboard.app import _bindings
from nodegrid.dashboard.data import DataManager
from nodegrid.dashboard.state import (
    ClusterChanged,
    Dashboard,
    KeyPressed,
    Resized,
    ShutdownRequested,
)
from nodegrid.sources import DemoSource
from nodegrid.utils import format_age, plural
from nodegrid.watch import Signal
from tests.helpers import make_snapshot


# Three node boxes fit in a row at this width
THREE_PER_ROW = 114


def _dashboard(count=7, width=THREE_PER_ROW, height=40, refresh=None):
    holder = {"snapshot": make_snapshot(count)}
    dash = Dashboard(lambda: holder["snapshot"], refresh=refresh)
    dash.dispatch(Resized(width, height))
    dash.dispatch(ClusterChanged())
    return dash, holder


# ---------------------------------------------------------------------------
# Helper function tests
# ---------------------------------------------------------------------------


class TestFormatAge:
    """Tests for format_age()."""

    NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_none_returns_empty(self):
        assert format_age(None) == ""

    def test_seconds(self):
        assert format_age(self.NOW - timedelta(seconds=30), self.NOW) == "30s"

    def test_minutes(self):
        assert format_age(self.NOW - timedelta(minutes=5), self.NOW) == "5m"

    def test_hours(self):
        assert format_age(self.NOW - timedelta(hours=3), self.NOW) == "3h"

    def test_days(self):
        assert format_age(self.NOW - timedelta(days=2), self.NOW) == "2d"

    def test_future_returns_now(self):
        assert format_age(self.NOW + timedelta(hours=1), self.NOW) == "now"

    def test_naive_treated_as_utc(self):
        naive = datetime(2024, 3, 1, 11, 0)
        assert format_age(naive, self.NOW) == "1h"


class TestPlural:
    def test_singular(self):
        assert plural(1, "pod") == "1 pod"

    def test_plural(self):
        assert plural(0, "pod") == "0 pods"
        assert plural(3, "pod") == "3 pods"


# ---------------------------------------------------------------------------
# State transitions
# ---------------------------------------------------------------------------


class TestInitialState:
    """A fresh dashboard before the first sync."""

    def test_defaults(self):
        dash = Dashboard(lambda: ())
        assert dash.state.cursor.index == 0
        assert not dash.state.cursor.details
        assert not dash.state.synced
        assert dash.state.running

    def test_waiting_message_before_sync(self):
        dash = Dashboard(lambda: make_snapshot(3))
        dash.dispatch(Resized(80, 24))
        assert "Waiting for cluster data" in dash.view().plain

    def test_cluster_changed_marks_synced(self):
        dash, _ = _dashboard(count=0)
        assert dash.state.synced
        assert "Waiting" not in dash.view().plain


class TestNavigation:
    """Arrow and vim keys move the cursor through the grid."""

    def test_per_row_follows_width(self):
        dash, _ = _dashboard()
        assert dash.per_row == 3
        dash.dispatch(Resized(80, 40))
        assert dash.per_row == 2

    def test_up_from_top_left_wraps(self):
        dash, _ = _dashboard()
        assert dash.dispatch(KeyPressed("up"))
        assert dash.state.cursor.index == 6

    def test_sequence(self):
        dash, _ = _dashboard()
        for key in ("right", "right", "down"):
            dash.dispatch(KeyPressed(key))
        assert dash.state.cursor.index == 5
        dash.dispatch(KeyPressed("down"))
        assert dash.state.cursor.index == 2

    def test_moves_on_empty_grid_stay_at_zero(self):
        dash, _ = _dashboard(count=0)
        for key in ("up", "down", "left", "right"):
            dash.dispatch(KeyPressed(key))
        assert dash.state.cursor.index == 0

    def test_unknown_key_is_ignored(self):
        dash, _ = _dashboard()
        assert dash.dispatch(KeyPressed("nonsense"))
        assert dash.state.cursor.index == 0


class TestClusterChanges:
    """Snapshots are re-read and the cursor clamped on every change."""

    def test_shrink_clamps_cursor(self):
        dash, holder = _dashboard(count=5)
        dash.state.cursor.index = 4
        holder["snapshot"] = make_snapshot(2)
        dash.dispatch(ClusterChanged())
        assert dash.state.cursor.index == 1

    def test_all_nodes_removed(self):
        dash, holder = _dashboard(count=5)
        dash.state.cursor.index = 3
        holder["snapshot"] = ()
        dash.dispatch(ClusterChanged())
        assert dash.state.cursor.index == 0

    def test_view_reflects_new_snapshot(self):
        dash, holder = _dashboard(count=1)
        assert "node-01" not in dash.view().plain
        holder["snapshot"] = make_snapshot(2)
        dash.dispatch(ClusterChanged())
        assert "node-01" in dash.view().plain


class TestDetails:
    """Enter toggles the detail view for the selected node."""

    def test_enter_opens_and_closes(self):
        dash, _ = _dashboard()
        dash.state.cursor.index = 4
        dash.dispatch(KeyPressed("details"))
        assert dash.state.cursor.details
        assert "name: node-04" in dash.view().plain
        dash.dispatch(KeyPressed("details"))
        assert not dash.state.cursor.details
        assert dash.state.cursor.index == 4

    def test_enter_ignored_without_nodes(self):
        dash, _ = _dashboard(count=0)
        dash.dispatch(KeyPressed("details"))
        assert not dash.state.cursor.details

    def test_escape_closes_details_without_quitting(self):
        dash, _ = _dashboard()
        dash.dispatch(KeyPressed("details"))
        assert dash.dispatch(KeyPressed("back")) is True
        assert not dash.state.cursor.details
        assert dash.state.running

    def test_arrows_scroll_instead_of_moving(self):
        dash, _ = _dashboard(height=5)
        dash.dispatch(KeyPressed("details"))
        dash.dispatch(KeyPressed("down"))
        assert dash.state.cursor.scroll == 1
        assert dash.state.cursor.index == 0
        dash.dispatch(KeyPressed("up"))
        assert dash.state.cursor.scroll == 0

    def test_left_right_ignored_in_details(self):
        dash, _ = _dashboard(height=5)
        dash.dispatch(KeyPressed("details"))
        dash.dispatch(KeyPressed("right"))
        dash.dispatch(KeyPressed("left"))
        assert dash.state.cursor.index == 0
        assert dash.state.cursor.scroll == 0

    def test_paging_clamps_to_payload(self):
        dash, _ = _dashboard(height=5)
        dash.dispatch(KeyPressed("details"))
        limit = dash._detail_scroll_limit()
        assert limit > 0
        for _ in range(10):
            dash.dispatch(KeyPressed("page_down"))
        assert dash.state.cursor.scroll == limit
        dash.dispatch(KeyPressed("page_up"))
        assert dash.state.cursor.scroll == max(0, limit - dash.body_height)

    def test_details_survive_cluster_change(self):
        dash, holder = _dashboard(count=3)
        dash.state.cursor.index = 2
        dash.dispatch(KeyPressed("details"))
        holder["snapshot"] = make_snapshot(2)
        dash.dispatch(ClusterChanged())
        assert dash.state.cursor.index == 1
        assert "name: node-01" in dash.view().plain

    def test_details_close_when_all_nodes_vanish(self):
        dash, holder = _dashboard(count=3)
        dash.dispatch(KeyPressed("details"))
        dash.dispatch(KeyPressed("down"))
        holder["snapshot"] = ()
        dash.dispatch(ClusterChanged())
        assert not dash.state.cursor.details
        assert dash.state.cursor.scroll == 0
        holder["snapshot"] = make_snapshot(2)
        dash.dispatch(ClusterChanged())
        assert not dash.state.cursor.details
        assert "kind: Node" not in dash.view().plain

    def test_arrows_move_again_after_nodes_return(self):
        dash, holder = _dashboard(count=3)
        dash.dispatch(KeyPressed("details"))
        holder["snapshot"] = ()
        dash.dispatch(ClusterChanged())
        holder["snapshot"] = make_snapshot(3)
        dash.dispatch(ClusterChanged())
        dash.dispatch(KeyPressed("right"))
        assert dash.state.cursor.index == 1

    def test_enter_always_closes_open_details(self):
        dash, _ = _dashboard(count=2)
        dash.dispatch(KeyPressed("details"))
        dash.state.snapshot = ()
        dash.dispatch(KeyPressed("details"))
        assert not dash.state.cursor.details


class TestOtherKeys:
    """Help, refresh, and quitting."""

    def test_help_toggle_changes_body_height(self):
        dash, _ = _dashboard()
        before = dash.body_height
        dash.dispatch(KeyPressed("help"))
        assert dash.state.show_full_help
        assert dash.body_height < before
        assert "toggle details" in dash.view().plain
        dash.dispatch(KeyPressed("help"))
        assert dash.body_height == before

    def test_refresh_calls_callback(self):
        refresh = MagicMock()
        dash, _ = _dashboard(refresh=refresh)
        assert dash.dispatch(KeyPressed("refresh"))
        refresh.assert_called_once()

    def test_refresh_without_callback(self):
        dash, _ = _dashboard()
        assert dash.dispatch(KeyPressed("refresh"))

    def test_quit(self):
        dash, _ = _dashboard()
        assert dash.dispatch(KeyPressed("quit")) is False
        assert not dash.state.running

    def test_escape_in_grid_quits(self):
        dash, _ = _dashboard()
        assert dash.dispatch(KeyPressed("back")) is False

    def test_shutdown_requested(self):
        dash, _ = _dashboard()
        assert dash.dispatch(ShutdownRequested()) is False
        assert not dash.state.running

    def test_unknown_event_type(self):
        dash, _ = _dashboard()
        with pytest.raises(TypeError):
            dash.dispatch(object())


class TestView:
    """The rendered frame always fits the terminal."""

    @pytest.mark.parametrize("width,height", [(80, 24), (200, 60), (20, 5), (1, 1)])
    def test_frame_size(self, width, height):
        dash, _ = _dashboard(width=width, height=height)
        lines = dash.view().plain.split("\n")
        assert len(lines) <= max(height, 1)
        assert all(len(line) <= width for line in lines)

    def test_theme_from_config(self):
        theme = Theme(selected_node_border="#123456")
        dash = Dashboard(lambda: make_snapshot(1), config=DashboardConfig(theme=theme))
        dash.dispatch(Resized(80, 24))
        dash.dispatch(ClusterChanged())
        styles = [str(span.style) for span in dash.view().spans]
        assert any("#123456" in style for style in styles)


# ---------------------------------------------------------------------------
# App wiring
# ---------------------------------------------------------------------------


class TestBindings:
    """Every logical key has a priority binding."""

    def test_one_binding_per_logical_key(self):
        bindings = _bindings()
        assert len(bindings) == len(KEY_BINDINGS)
        actions = {b.action for b in bindings}
        for name in KEY_BINDINGS:
            assert f"key_input('{name}')" in actions

    def test_keys_and_priority(self):
        by_action = {b.action: b for b in _bindings()}
        quit_binding = by_action["key_input('quit')"]
        assert quit_binding.key == "q,ctrl+c"
        assert all(b.priority for b in by_action.values())


class TestDataManager:
    """DataManager wires a source to the change bridge."""

    def test_start_snapshot_stop(self):
        data = DataManager(DemoSource(nodes=3, seed=5, poll_interval=60))
        data.start()
        try:
            assert data.wait_for_sync(timeout=1)
            assert len(data.snapshot()) == 3
            assert data.bridge.next_change(timeout=0) is Signal.CHANGED
        finally:
            data.stop()
        assert data.bridge.closed
        assert data.bridge.next_change(timeout=0) is Signal.CLOSED

    def test_refresh_wakes_source(self):
        source = MagicMock()
        data = DataManager(source)
        data.refresh()
        source.refresh.assert_called_once()
        source.add_handler.assert_called_once_with(data.bridge.notify)
