"""Thread-safe cache of nodes and pods with deterministic ordering.

Data sources write into the store from their poll thread; the UI thread only
reads ordered copies, so repeated reads with no change in between return
identical sequences.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterable, Literal, Union

from .models import Node, Pod, sort_key

EventType = Literal["added", "updated", "deleted"]

Snapshot = tuple[tuple[Node, tuple[Pod, ...]], ...]


@dataclass(frozen=True)
class StoreEvent:
    type: EventType
    obj: Union[Node, Pod]


class EntityStore:
    """Cache keyed by uid, one table per entity kind."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._nodes: dict[str, Node] = {}
        self._pods: dict[str, Pod] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._nodes)

    # -- reads --------------------------------------------------------------

    def list_nodes(self) -> list[Node]:
        with self._lock:
            nodes = list(self._nodes.values())
        return sorted(nodes, key=sort_key)

    def list_pods(self) -> list[Pod]:
        with self._lock:
            pods = list(self._pods.values())
        return sorted(pods, key=sort_key)

    def pods_on(self, node: Node) -> list[Pod]:
        """Pods scheduled on the given node, in creation order."""
        return [pod for pod in self.list_pods() if pod.node_name == node.name]

    # Names used by the layout/render code
    list_parents = list_nodes
    list_children_of = pods_on

    def snapshot(self) -> Snapshot:
        """Ordered (node, pods) pairs taken under a single lock."""
        with self._lock:
            nodes = sorted(self._nodes.values(), key=sort_key)
            pods = sorted(self._pods.values(), key=sort_key)
        by_node: dict[str, list[Pod]] = {}
        for pod in pods:
            by_node.setdefault(pod.node_name, []).append(pod)
        return tuple((node, tuple(by_node.get(node.name, ()))) for node in nodes)

    # -- writes -------------------------------------------------------------

    def apply(self, event: StoreEvent) -> None:
        """Apply a single add/update/delete."""
        table = self._nodes if isinstance(event.obj, Node) else self._pods
        with self._lock:
            if event.type == "deleted":
                table.pop(event.obj.uid, None)
            else:
                table[event.obj.uid] = event.obj

    def replace(self, nodes: Iterable[Node], pods: Iterable[Pod]) -> list[StoreEvent]:
        """Swap in a freshly listed cluster state.

        Returns:
            The events the swap implies, deletions first. An object counts as
            updated when its manifest differs from the cached one.
        """
        new_nodes = {n.uid: n for n in nodes}
        new_pods = {p.uid: p for p in pods}
        with self._lock:
            events = _diff(self._nodes, new_nodes) + _diff(self._pods, new_pods)
            self._nodes = new_nodes
            self._pods = new_pods
        events.sort(key=lambda e: e.type != "deleted")
        return events


def _diff(old: dict, new: dict) -> list[StoreEvent]:
    events = [StoreEvent("deleted", obj) for uid, obj in old.items() if uid not in new]
    for uid, obj in new.items():
        previous = old.get(uid)
        if previous is None:
            events.append(StoreEvent("added", obj))
        elif previous.payload != obj.payload:
            events.append(StoreEvent("updated", obj))
    return events
