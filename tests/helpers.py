"""Manifest and entity builders shared by the tests."""

from datetime import datetime, timedelta, timezone

from nodegrid.models import Node, Pod

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _stamp(minutes):
    return (BASE_TIME + timedelta(minutes=minutes)).strftime("%Y-%m-%dT%H:%M:%SZ")


def node_manifest(name, uid=None, minutes=0, **extra):
    manifest = {
        "apiVersion": "v1",
        "kind": "Node",
        "metadata": {
            "name": name,
            "uid": uid or f"uid-{name}",
            "creationTimestamp": _stamp(minutes),
        },
        "spec": {"podCIDR": "10.244.0.0/24"},
    }
    manifest.update(extra)
    return manifest


def pod_manifest(name, node_name, uid=None, minutes=0, owner_kind=None, namespace="default"):
    meta = {
        "name": name,
        "namespace": namespace,
        "uid": uid or f"uid-{name}",
        "creationTimestamp": _stamp(minutes),
    }
    if owner_kind:
        meta["ownerReferences"] = [{"kind": owner_kind, "name": f"{name}-owner"}]
    return {"apiVersion": "v1", "kind": "Pod", "metadata": meta, "spec": {"nodeName": node_name}}


def make_node(name, uid=None, minutes=0):
    return Node.from_manifest(node_manifest(name, uid=uid, minutes=minutes))


def make_pod(name, node_name, uid=None, minutes=0, owner_kind=None):
    return Pod.from_manifest(
        pod_manifest(name, node_name, uid=uid, minutes=minutes, owner_kind=owner_kind)
    )


def make_snapshot(count, pods_per_node=0):
    """Snapshot of ``count`` nodes named node-00.. in creation order."""
    snapshot = []
    for i in range(count):
        node = make_node(f"node-{i:02d}", minutes=i)
        pods = tuple(make_pod(f"pod-{i:02d}-{j}", node.name, minutes=i) for j in range(pods_per_node))
        snapshot.append((node, pods))
    return tuple(snapshot)
