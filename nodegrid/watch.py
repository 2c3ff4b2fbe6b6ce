"""Coalescing bridge between data-source callbacks and the UI event loop.

Producers call :meth:`ChangeBridge.notify` from any thread and never block.
Any number of notifications that arrive before the consumer wakes up collapse
into a single pending change. The consumer blocks in
:meth:`ChangeBridge.next_change` until something changed or the bridge was
closed.
"""

from __future__ import annotations

import enum
import threading
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .sources import DataSource
    from .store import StoreEvent


class Signal(enum.Enum):
    CHANGED = "changed"
    CLOSED = "closed"


class ChangeBridge:
    """Single pending-change flag guarded by a condition variable."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = False
        self._closed = False
        self.notifications = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        return self._pending

    def notify(self, event: Optional[StoreEvent] = None) -> None:
        """Record that something changed. No-op once closed."""
        with self._cond:
            if self._closed:
                return
            self.notifications += 1
            self._pending = True
            self._cond.notify_all()

    def next_change(self, timeout: Optional[float] = None) -> Optional[Signal]:
        """Wait for the next coalesced change.

        Returns:
            Signal.CLOSED once the bridge is closed (even with a change
            pending), Signal.CHANGED when a change is pending, or None if
            ``timeout`` elapsed first.
        """
        with self._cond:
            self._cond.wait_for(lambda: self._pending or self._closed, timeout)
            if self._closed:
                return Signal.CLOSED
            if self._pending:
                self._pending = False
                return Signal.CHANGED
            return None

    def close(self) -> None:
        """Release every waiter; later calls to next_change return CLOSED."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def attach(self, source: DataSource) -> ChangeBridge:
        """Notify this bridge on every add/update/delete the source reports."""
        source.add_handler(self.notify)
        return self
