"""Cursor movement over the flattened node grid.

Nodes are laid out row-major, ``per_row`` to a row, and the last row may be
short. Horizontal moves wrap within the current row; vertical moves wrap
between the top and bottom rows in the same column.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .layout import mod

Direction = Literal["up", "down", "left", "right"]

DIRECTIONS: tuple[Direction, ...] = ("up", "down", "left", "right")


def move_right(index: int, total: int, per_row: int) -> int:
    row = index // per_row
    nxt = index + 1
    if nxt >= total:
        # past the last node: start of the same row
        return row * per_row
    return row * per_row + nxt % per_row


def move_left(index: int, total: int, per_row: int) -> int:
    row = index // per_row
    candidate = row * per_row + mod(index - 1, per_row)
    if candidate >= total:
        return total - 1
    return candidate


def move_up(index: int, total: int, per_row: int) -> int:
    candidate = index - per_row
    if candidate >= 0:
        return candidate
    bottom_row = total // per_row
    wrapped = bottom_row * per_row + mod(candidate, per_row)
    if wrapped >= total:
        # bottom row is short (or empty when total divides evenly)
        return wrapped - per_row
    return wrapped


def move_down(index: int, total: int, per_row: int) -> int:
    candidate = index + per_row
    if candidate >= total:
        return index % per_row
    return candidate


_MOVES = {
    "up": move_up,
    "down": move_down,
    "left": move_left,
    "right": move_right,
}


def clamp(index: int, total: int) -> int:
    """Pull an index back inside [0, total); 0 when there is nothing."""
    if total <= 0:
        return 0
    return max(0, min(index, total - 1))


def move(index: int, direction: Direction, total: int, per_row: int) -> int:
    """Next selected index after a directional key.

    Raises:
        ValueError: If ``direction`` is not one of DIRECTIONS.
    """
    if direction not in _MOVES:
        raise ValueError(f"unknown direction: {direction!r}")
    if total <= 0:
        return 0
    per_row = max(1, per_row)
    return clamp(_MOVES[direction](clamp(index, total), total, per_row), total)


@dataclass
class CursorState:
    """Selected node plus detail-view flags."""

    index: int = 0
    details: bool = False
    scroll: int = 0

    def move(self, direction: Direction, total: int, per_row: int) -> int:
        self.index = move(self.index, direction, total, per_row)
        return self.index

    def clamp(self, total: int) -> int:
        self.index = clamp(self.index, total)
        return self.index

    def toggle_details(self) -> bool:
        self.details = not self.details
        self.scroll = 0
        return self.details

    def scroll_by(self, delta: int, limit: int) -> int:
        """Scroll the detail view, staying within [0, limit]."""
        self.scroll = max(0, min(self.scroll + delta, max(0, limit)))
        return self.scroll
