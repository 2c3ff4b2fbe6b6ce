"""Node and pod records built from Kubernetes-style manifests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Parse a creationTimestamp into an aware datetime.

    Missing or malformed values sort first, so they map to the epoch.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return EPOCH
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return EPOCH
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _mapping(value: Any, what: str) -> dict[str, Any]:
    """Return value as a mapping; None counts as empty.

    Raises:
        ValueError: If value is present but not a mapping.
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{what} must be a mapping, got {type(value).__name__}")
    return value


@dataclass
class Node:
    name: str
    uid: str
    created: datetime = EPOCH
    payload: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Node:
        """Raises ValueError if the manifest is not shaped like a Node."""
        meta = _mapping(manifest.get("metadata"), "Node metadata")
        name = str(meta.get("name") or "")
        return cls(
            name=name,
            uid=str(meta.get("uid") or name),
            created=parse_timestamp(meta.get("creationTimestamp")),
            payload=manifest,
        )


@dataclass
class Pod:
    name: str
    uid: str
    namespace: str = "default"
    created: datetime = EPOCH
    node_name: str = ""
    owner_kinds: tuple[str, ...] = ()
    payload: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_manifest(cls, manifest: dict[str, Any]) -> Pod:
        """Raises ValueError if the manifest is not shaped like a Pod."""
        meta = _mapping(manifest.get("metadata"), "Pod metadata")
        spec = _mapping(manifest.get("spec"), "Pod spec")
        name = str(meta.get("name") or "")
        namespace = str(meta.get("namespace") or "default")
        owners = meta.get("ownerReferences") or []
        if not isinstance(owners, list):
            raise ValueError("Pod ownerReferences must be a list")
        owners = [_mapping(o, "Pod ownerReference") for o in owners]
        return cls(
            name=name,
            uid=str(meta.get("uid") or f"{namespace}/{name}"),
            namespace=namespace,
            created=parse_timestamp(meta.get("creationTimestamp")),
            node_name=str(spec.get("nodeName") or ""),
            owner_kinds=tuple(str(o.get("kind")) for o in owners if o.get("kind")),
            payload=manifest,
        )

    def is_owned_by(self, kinds: Iterable[str]) -> bool:
        """True if any owner reference has one of the given kinds."""
        wanted = set(kinds)
        return any(kind in wanted for kind in self.owner_kinds)


Entity = Union[Node, Pod]


def sort_key(entity: Entity) -> tuple[datetime, str]:
    """Creation time first, uid breaks ties."""
    return (entity.created, entity.uid)


def split_manifests(documents: Iterable[Any]) -> tuple[list[Node], list[Pod]]:
    """Turn parsed YAML documents into nodes and pods.

    Accepts bare objects as well as ``kind: List`` wrappers (the shape of
    ``kubectl get ... -o yaml``). Objects of other kinds are skipped.

    Raises:
        ValueError: If a Node or Pod, or a list wrapper, is malformed.
    """
    nodes: list[Node] = []
    pods: list[Pod] = []
    pending = list(documents)
    while pending:
        doc = pending.pop(0)
        if not isinstance(doc, dict):
            continue
        kind = doc.get("kind")
        if isinstance(kind, str) and kind.endswith("List"):
            # NodeList/PodList items come without their own kind
            item_kind = kind[: -len("List")]
            items = doc.get("items") or []
            if not isinstance(items, list):
                raise ValueError(f"{kind} items must be a list")
            for item in items:
                if isinstance(item, dict) and item_kind and "kind" not in item:
                    item = {**item, "kind": item_kind}
                pending.append(item)
        elif kind == "Node":
            nodes.append(Node.from_manifest(doc))
        elif kind == "Pod":
            pods.append(Pod.from_manifest(doc))
    return nodes, pods
