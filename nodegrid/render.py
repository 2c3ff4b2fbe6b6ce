"""Render pipeline: snapshot + cursor + terminal size -> one rich Text canvas.

Everything here is pure. Blocks are lists of single-line ``Text`` objects so
they can be joined side by side (top- or bottom-aligned) and stacked.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Literal, Optional, Sequence

import yaml
from rich.text import Text

from .config import DEFAULT_FLEET_OWNER_KINDS, Theme
from .layout import BoxStyle, GridGeometry, pack, pod_color
from .models import Node, Pod
from .navigation import CursorState, clamp
from .store import Snapshot
from .utils import format_age, plural

logger = logging.getLogger(__name__)

Block = list[Text]
Align = Literal["top", "bottom"]

TOP: Align = "top"
BOTTOM: Align = "bottom"

SHORT_HELP = [
    ("↑/↓/←/→", "move"), ("enter", "details"), ("esc", "back"), ("q", "quit"), ("?", "more"),
]
FULL_HELP = [
    [("↑/↓/←/→", "move"), ("h/j/k/l", "move")],
    [("enter", "toggle details"), ("esc", "close details"), ("pgup/pgdn", "scroll details")],
    [("r", "refresh"), ("?", "toggle help"), ("q", "quit")],
]


# ---------------------------------------------------------------------------
# Block helpers
# ---------------------------------------------------------------------------


def block_width(block: Sequence[Text]) -> int:
    return max((line.cell_len for line in block), default=0)


def pad_line(line: Text, width: int) -> Text:
    """Copy of ``line`` right-padded with spaces to ``width`` cells."""
    padded = line.copy()
    gap = width - padded.cell_len
    if gap > 0:
        padded.append(" " * gap)
    return padded


def join_horizontal(blocks: Sequence[Block], align: Align = TOP) -> Block:
    """Place blocks side by side, padding shorter ones at the bottom (TOP)
    or at the top (BOTTOM)."""
    if not blocks:
        return []
    height = max(len(block) for block in blocks)
    lines = [Text() for _ in range(height)]
    for block in blocks:
        width = block_width(block)
        filler = [Text(" " * width) for _ in range(height - len(block))]
        rows = list(block) + filler if align == TOP else filler + list(block)
        for line, part in zip(lines, rows):
            line.append_text(pad_line(part, width))
    return lines


def join_vertical(blocks: Iterable[Block]) -> Block:
    return [line for block in blocks for line in block]


def _bordered(content: Block, style: BoxStyle, border_style: str, base_style: str = "") -> Block:
    """Wrap content lines in padding, a background-colored border and margin."""
    inner_w = style.inner_width
    rows = [pad_line(line, inner_w) for line in content]
    rows += [Text(" " * inner_w) for _ in range(style.inner_height - len(rows))]

    pad = " " * style.padding
    blank_inner = Text(" " * style.width, style=base_style)
    body: Block = [blank_inner.copy() for _ in range(style.padding)]
    for row in rows:
        line = Text(style=base_style)
        line.append(pad)
        line.append_text(row)
        line.append(pad)
        body.append(line)
    body += [blank_inner.copy() for _ in range(style.padding)]

    edge = " " * style.border
    full_edge = " " * (style.width + 2 * style.border)
    margin = " " * style.margin
    boxed: Block = []
    for line in [None] * style.border + body + [None] * style.border:
        out = Text(margin)
        if line is None:
            out.append(full_edge, style=border_style)
        else:
            out.append(edge, style=border_style)
            out.append_text(line)
            out.append(edge, style=border_style)
        out.append(margin)
        boxed.append(out)

    outer = style.outer_width
    margins = [Text(" " * outer) for _ in range(style.margin)]
    return margins + boxed + [m.copy() for m in margins]


# ---------------------------------------------------------------------------
# Boxes
# ---------------------------------------------------------------------------


def render_pod(color: str, style: BoxStyle) -> Block:
    """An unlabeled rounded box; only its border color carries meaning."""
    w = style.width
    top = Text("╭" + "─" * w + "╮", style=color)
    middle = [Text("│" + " " * w + "│", style=color) for _ in range(max(1, style.height))]
    bottom = Text("╰" + "─" * w + "╯", style=color)
    return [top, *middle, bottom]


def render_pods(
    pods: Sequence[Pod],
    geometry: GridGeometry,
    theme: Theme,
    fleet_kinds: Iterable[str] = DEFAULT_FLEET_OWNER_KINDS,
) -> Block:
    """Pod boxes packed into rows; each row is bottom-aligned."""
    kinds = tuple(fleet_kinds)
    boxes = [render_pod(pod_color(pod, theme, kinds), geometry.pod_style) for pod in pods]
    rows = pack(boxes, geometry.pods_per_row)
    return join_vertical(join_horizontal(row, BOTTOM) for row in rows)


def render_node(
    node: Node,
    pods: Sequence[Pod],
    geometry: GridGeometry,
    theme: Theme,
    selected: bool = False,
    fleet_kinds: Iterable[str] = DEFAULT_FLEET_OWNER_KINDS,
    now: Optional[datetime] = None,
) -> Block:
    style = geometry.node_style
    name = Text(node.name, style="bold")
    name.truncate(style.inner_width, overflow="ellipsis")
    summary = plural(len(pods), "pod")
    age = format_age(node.created, now)
    if age:
        summary += f" · {age}"
    info = Text(summary, style="dim")
    info.truncate(style.inner_width, overflow="ellipsis")

    content = [name, info, *render_pods(pods, geometry, theme, fleet_kinds)]
    border = theme.selected_node_border if selected else theme.node_border
    return _bordered(
        content,
        style,
        border_style=f"on {border}",
        base_style=f"{theme.foreground} on {theme.background}",
    )


# ---------------------------------------------------------------------------
# Grid mode
# ---------------------------------------------------------------------------


def _crop(lines: Block, width: int) -> Block:
    out = []
    for line in lines:
        line = line.copy()
        line.truncate(max(0, width))
        out.append(line)
    return out


def _window(row_heights: Sequence[int], selected_row: int, available: int) -> int:
    """First body line to show so the selected row stays on screen."""
    start = sum(row_heights[:selected_row])
    end = start + (row_heights[selected_row] if row_heights else 0)
    if end <= available:
        return 0
    return min(start, end - available)


def render_grid(
    snapshot: Snapshot,
    selected: int,
    width: int,
    height: int,
    theme: Theme = Theme(),
    fleet_kinds: Iterable[str] = DEFAULT_FLEET_OWNER_KINDS,
    geometry: Optional[GridGeometry] = None,
    now: Optional[datetime] = None,
) -> Block:
    """The node grid, padded to exactly ``height`` lines of at most ``width`` cells."""
    geometry = geometry or GridGeometry.for_width(width)
    top, right, bottom, left = geometry.padding
    kinds = tuple(fleet_kinds)
    selected = clamp(selected, len(snapshot))

    boxes = [
        render_node(node, pods, geometry, theme, selected=(i == selected),
                    fleet_kinds=kinds, now=now)
        for i, (node, pods) in enumerate(snapshot)
    ]
    rows = [join_horizontal(row, TOP) for row in pack(boxes, geometry.nodes_per_row)]
    body = join_vertical(rows)

    available = max(0, height - top - bottom)
    if len(body) > available and rows:
        offset = _window([len(r) for r in rows], selected // geometry.nodes_per_row, available)
        body = body[offset:offset + available]

    indent = " " * left
    lines = [Text() for _ in range(top)]
    for line in body:
        padded = Text(indent)
        padded.append_text(line)
        lines.append(padded)
    lines += [Text() for _ in range(max(0, height - len(lines)))]
    return _crop(lines[:max(0, height)], width)


# ---------------------------------------------------------------------------
# Detail mode
# ---------------------------------------------------------------------------


def dump_payload(payload: Any) -> str:
    """YAML dump of a manifest; a placeholder if it cannot be serialized."""
    try:
        return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False, allow_unicode=True)
    except yaml.YAMLError as e:
        logger.warning("Could not serialize payload for detail view: %s", e)
        return f"(could not render details: {e})\n"


def detail_lines(node: Node) -> list[str]:
    return dump_payload(node.payload).splitlines() or [""]


def max_scroll(line_count: int, viewport_height: int) -> int:
    return max(0, line_count - max(1, viewport_height))


def render_details(node: Node, width: int, height: int, scroll: int = 0) -> Block:
    """Scrollable YAML view; the viewport is sized from this frame's width/height."""
    lines = detail_lines(node)
    viewport = max(1, height)
    offset = max(0, min(scroll, max_scroll(len(lines), viewport)))
    visible = [Text(line) for line in lines[offset:offset + viewport]]
    visible += [Text() for _ in range(viewport - len(visible))]
    return _crop(visible[:max(0, height)], width)


# ---------------------------------------------------------------------------
# Help and full frame
# ---------------------------------------------------------------------------


def _help_items(items: Sequence[tuple[str, str]]) -> Text:
    line = Text()
    for i, (key, desc) in enumerate(items):
        if i:
            line.append(" • ", style="#4A4A4A")
        line.append(key, style="#909090")
        line.append(f" {desc}", style="#626262")
    return line


def render_help(full: bool = False) -> Block:
    if not full:
        return [_help_items(SHORT_HELP)]
    return [_help_items(column) for column in FULL_HELP]


def render_frame(
    snapshot: Snapshot,
    cursor: CursorState,
    width: int,
    height: int,
    theme: Theme = Theme(),
    fleet_kinds: Iterable[str] = DEFAULT_FLEET_OWNER_KINDS,
    full_help: bool = False,
    synced: bool = True,
    now: Optional[datetime] = None,
) -> Text:
    """The whole screen for the current mode."""
    help_lines = render_help(full_help)
    body_height = max(0, height - len(help_lines))

    if not synced:
        body = [Text("  Waiting for cluster data…", style="dim")]
        body += [Text() for _ in range(body_height - 1)]
    elif cursor.details and snapshot:
        node = snapshot[clamp(cursor.index, len(snapshot))][0]
        body = render_details(node, width, body_height, cursor.scroll)
    else:
        body = render_grid(snapshot, cursor.index, width, body_height, theme, fleet_kinds, now=now)

    canvas = Text("\n", no_wrap=True, overflow="crop")
    return canvas.join(_crop(body[:body_height], width) + _crop(help_lines, width))
