"""Shared test fixtures for nodegrid tests."""

import pytest

from nodegrid.store import EntityStore
from tests.helpers import make_node, make_pod


@pytest.fixture
def nodegrid_dir(tmp_path, monkeypatch):
    """Point NODEGRID_DIR at a temporary directory."""
    d = tmp_path / ".nodegrid"
    d.mkdir()
    monkeypatch.setenv("NODEGRID_DIR", str(d))
    return d


@pytest.fixture
def store():
    """Store with three nodes and a handful of pods."""
    s = EntityStore()
    nodes = [
        make_node("node-c", minutes=10),
        make_node("node-a", minutes=0),
        make_node("node-b", minutes=5),
    ]
    pods = [
        make_pod("web-1", "node-a", minutes=2, owner_kind="ReplicaSet"),
        make_pod("proxy-a", "node-a", minutes=1, owner_kind="DaemonSet"),
        make_pod("web-2", "node-b", minutes=3, owner_kind="ReplicaSet"),
        make_pod("pending", "", minutes=4),
    ]
    s.replace(nodes, pods)
    return s
