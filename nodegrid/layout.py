"""Grid layout: how many boxes fit in a row, and packing items into rows.

The same two functions lay out node boxes on the canvas and pod boxes inside
each node box, with different geometry.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, TypeVar

from .config import Theme
from .models import Pod

T = TypeVar("T")


def mod(a: int, b: int) -> int:
    """Modulus whose result is always in [0, b) for b > 0."""
    return (a % b + b) % b


def boxes_per_row(
    container_width: int,
    container_padding: int,
    box_width: int,
    box_margin: int,
    box_border_width: int,
) -> int:
    """Number of boxes that fit side by side, never less than one."""
    box_size = box_width + box_margin + box_border_width
    available = container_width - container_padding
    if box_size <= 0 or available <= 0:
        return 1
    return max(1, available // box_size)


def pack(items: Sequence[T], per_row: int) -> list[list[T]]:
    """Split items into rows of ``per_row``; the last row may be short."""
    per_row = max(1, per_row)
    return [list(items[i:i + per_row]) for i in range(0, len(items), per_row)]


@dataclass(frozen=True)
class BoxStyle:
    """Box geometry. ``width`` and ``height`` include padding, not border or margin.

    ``margin`` and ``padding`` apply on every side.
    """

    width: int
    height: int
    margin: int = 0
    padding: int = 0
    border: int = 1

    @property
    def horizontal_margins(self) -> int:
        return 2 * self.margin

    @property
    def horizontal_padding(self) -> int:
        return 2 * self.padding

    @property
    def horizontal_border(self) -> int:
        return 2 * self.border

    @property
    def inner_width(self) -> int:
        return max(0, self.width - self.horizontal_padding)

    @property
    def inner_height(self) -> int:
        return max(0, self.height - 2 * self.padding)

    @property
    def outer_width(self) -> int:
        return self.width + self.horizontal_margins + self.horizontal_border

    def per_row(self, container_width: int, container_padding: int) -> int:
        return boxes_per_row(
            container_width,
            container_padding,
            self.width,
            self.horizontal_margins,
            self.horizontal_border,
        )


# Canvas padding (top, right, bottom, left)
CANVAS_PADDING = (1, 2, 1, 2)

NODE_STYLE = BoxStyle(width=30, height=10, margin=1, padding=1, border=1)
POD_STYLE = BoxStyle(width=1, height=1, margin=0, padding=0, border=1)


@dataclass(frozen=True)
class GridGeometry:
    """Per-frame layout derived from the terminal width."""

    width: int
    nodes_per_row: int
    pods_per_row: int
    node_style: BoxStyle = NODE_STYLE
    pod_style: BoxStyle = POD_STYLE
    padding: tuple[int, int, int, int] = CANVAS_PADDING

    @classmethod
    def for_width(
        cls,
        width: int,
        padding: tuple[int, int, int, int] = CANVAS_PADDING,
        node_style: BoxStyle = NODE_STYLE,
        pod_style: BoxStyle = POD_STYLE,
    ) -> GridGeometry:
        _, right, _, left = padding
        return cls(
            width=max(0, width),
            nodes_per_row=node_style.per_row(width, left + right),
            pods_per_row=pod_style.per_row(node_style.width, node_style.horizontal_padding),
            node_style=node_style,
            pod_style=pod_style,
            padding=padding,
        )


def pod_color(pod: Pod, theme: Theme, fleet_kinds: Iterable[str]) -> str:
    """Border color for a pod: fleet-controller pods stand out."""
    if pod.is_owned_by(fleet_kinds):
        return theme.fleet_pod_border
    return theme.pod_border
