"""Data sources that keep an EntityStore in sync with a cluster.

Each source lists nodes and pods on a background poll thread, swaps the
result into its store and reports every add/update/delete to its handlers.
The first listing happens synchronously in :meth:`DataSource.start` so a
source that cannot reach its cluster fails before the UI starts.
"""

from __future__ import annotations

import logging
import random
import subprocess
import threading
import time
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Optional

import yaml

from .config import (
    DEFAULT_KUBECTL_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DashboardConfig,
    NodegridError,
)
from .models import Node, Pod, split_manifests
from .store import EntityStore, StoreEvent

logger = logging.getLogger(__name__)

Handler = Callable[[Optional[StoreEvent]], None]


class SourceError(NodegridError):
    """Raised when a source cannot list the cluster."""


class DataSource:
    """Base class: poll loop, handler fan-out and the initial-sync event."""

    name = "source"

    def __init__(self, store: Optional[EntityStore] = None,
                 poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self.store = store if store is not None else EntityStore()
        self.poll_interval = poll_interval
        self._handlers: list[Handler] = []
        self._synced = threading.Event()
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def fetch(self) -> tuple[list[Node], list[Pod]]:
        """List every node and pod. Override in subclasses.

        Raises:
            SourceError: If the cluster cannot be listed.
        """
        raise NotImplementedError

    @property
    def synced(self) -> bool:
        return self._synced.is_set()

    def add_handler(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def poll(self) -> list[StoreEvent]:
        """Fetch once, update the store and notify handlers."""
        nodes, pods = self.fetch()
        events = self.store.replace(nodes, pods)
        first_sync = not self._synced.is_set()
        self._synced.set()
        if events:
            logger.debug("%s: %d change(s)", self.name, len(events))
        for event in events:
            self._dispatch(event)
        if first_sync and not events:
            # an empty cluster still has to produce a first render
            self._dispatch(None)
        return events

    def _dispatch(self, event: Optional[StoreEvent]) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("%s: event handler failed", self.name)

    def start(self) -> None:
        """Run the first listing, then keep polling in the background.

        Raises:
            SourceError: If the first listing fails. This is not retried.
        """
        self.poll()
        self._thread = threading.Thread(
            target=self._poll_loop, name=f"nodegrid-{self.name}", daemon=True
        )
        self._thread.start()

    def _poll_loop(self) -> None:
        while not self._stop.is_set():
            self._wake.wait(timeout=self.poll_interval)
            self._wake.clear()
            if self._stop.is_set():
                break
            try:
                self.poll()
            except SourceError as e:
                logger.warning("%s: poll failed, keeping last state: %s", self.name, e)
            except Exception:
                logger.exception("%s: unexpected poll failure, keeping last state", self.name)

    def refresh(self) -> None:
        """Poll now instead of waiting for the next tick."""
        self._wake.set()

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        """Block until the first listing landed in the store or the source stopped."""
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._synced.wait(timeout=0.1):
            if self._stop.is_set():
                return False
            if deadline is not None and time.monotonic() >= deadline:
                return False
        return True

    def stop(self) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)


# ---------------------------------------------------------------------------
# Manifest file
# ---------------------------------------------------------------------------


class ManifestFileSource(DataSource):
    """Watches a YAML file such as the output of
    ``kubectl get nodes,pods -A -o yaml > cluster.yaml``."""

    name = "file"

    def __init__(self, path: Path, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.path = Path(path)
        self._stamp: Optional[tuple[int, int]] = None
        self._cached: tuple[list[Node], list[Pod]] = ([], [])

    def fetch(self) -> tuple[list[Node], list[Pod]]:
        try:
            stat = self.path.stat()
        except OSError as e:
            raise SourceError(f"Cannot read manifest file {self.path}: {e}") from e

        stamp = (stat.st_mtime_ns, stat.st_size)
        if stamp == self._stamp:
            return self._cached

        try:
            with open(self.path, encoding="utf-8") as f:
                documents = list(yaml.safe_load_all(f))
            cached = split_manifests(documents)
        except (OSError, ValueError, yaml.YAMLError) as e:
            # ValueError covers undecodable bytes and malformed manifests
            raise SourceError(f"Failed to parse {self.path}: {e}") from e

        self._cached = cached
        self._stamp = stamp
        return self._cached


# ---------------------------------------------------------------------------
# kubectl
# ---------------------------------------------------------------------------


class KubectlSource(DataSource):
    """Lists the cluster by shelling out to kubectl; honors $KUBECONFIG."""

    name = "kubectl"

    def __init__(
        self,
        context: Optional[str] = None,
        kubeconfig: Optional[str] = None,
        timeout: float = DEFAULT_KUBECTL_TIMEOUT,
        kubectl: str = "kubectl",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.context = context
        self.kubeconfig = kubeconfig
        self.timeout = timeout
        self.kubectl = kubectl

    def command(self) -> list[str]:
        cmd = [self.kubectl, "get", "nodes,pods", "--all-namespaces", "-o", "yaml"]
        if self.context:
            cmd += ["--context", self.context]
        if self.kubeconfig:
            cmd += ["--kubeconfig", self.kubeconfig]
        return cmd

    def fetch(self) -> tuple[list[Node], list[Pod]]:
        try:
            result = subprocess.run(
                self.command(),
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise SourceError(f"{self.kubectl} not found on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise SourceError(f"kubectl timed out after {self.timeout:g}s") from e
        except UnicodeDecodeError as e:
            raise SourceError(f"kubectl output is not valid text: {e}") from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit code {result.returncode}"
            raise SourceError(f"kubectl failed: {detail}")

        try:
            return split_manifests([yaml.safe_load(result.stdout)])
        except (ValueError, yaml.YAMLError) as e:
            raise SourceError(f"Could not parse kubectl output: {e}") from e


# ---------------------------------------------------------------------------
# Demo cluster
# ---------------------------------------------------------------------------

DEMO_APPS = ["api", "web", "worker", "cache", "ingest", "billing", "search", "auth"]
DEMO_DAEMONS = ["kube-proxy", "node-exporter"]


def _iso(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


class DemoSource(DataSource):
    """Synthetic cluster with random pod churn, for trying the dashboard."""

    name = "demo"

    def __init__(self, nodes: int = 6, max_nodes: int = 12, seed: Optional[int] = None,
                 **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.rng = random.Random(seed)
        self.max_nodes = max_nodes
        self.now = datetime.now(timezone.utc).replace(microsecond=0)
        self._nodes: list[dict[str, Any]] = []
        self._pods: list[dict[str, Any]] = []
        self._tick = 0
        for i in range(nodes):
            self._add_node(created=self.now - timedelta(days=nodes - i, hours=self.rng.randint(0, 23)))

    # -- manifest builders ----------------------------------------------------

    def _uid(self) -> str:
        return str(uuid.UUID(int=self.rng.getrandbits(128)))

    def _suffix(self) -> str:
        return "".join(self.rng.choice("bcdfghjklmnpqrstvwxz2456789") for _ in range(5))

    def _add_node(self, created: Optional[datetime] = None) -> dict[str, Any]:
        created = created or self.now
        name = f"demo-node-{len(self._nodes) + self._tick:02d}-{self._suffix()}"
        node = {
            "apiVersion": "v1",
            "kind": "Node",
            "metadata": {
                "name": name,
                "uid": self._uid(),
                "creationTimestamp": _iso(created),
                "labels": {
                    "kubernetes.io/hostname": name,
                    "node.kubernetes.io/instance-type": self.rng.choice(["m5.large", "m5.xlarge", "c6i.2xlarge"]),
                },
            },
            "spec": {"podCIDR": f"10.244.{len(self._nodes)}.0/24"},
            "status": {
                "capacity": {"cpu": "4", "memory": "16Gi", "pods": "110"},
                "nodeInfo": {"kubeletVersion": "v1.29.2", "osImage": "Ubuntu 22.04.4 LTS"},
            },
        }
        self._nodes.append(node)
        for daemon in DEMO_DAEMONS:
            self._add_pod(name, daemon, "DaemonSet", created)
        for _ in range(self.rng.randint(1, 10)):
            self._add_pod(name, self.rng.choice(DEMO_APPS), "ReplicaSet", created)
        return node

    def _add_pod(self, node_name: str, app: str, owner_kind: str,
                 created: Optional[datetime] = None) -> dict[str, Any]:
        created = created or self.now
        pod = {
            "apiVersion": "v1",
            "kind": "Pod",
            "metadata": {
                "name": f"{app}-{self._suffix()}",
                "namespace": "kube-system" if owner_kind == "DaemonSet" else "default",
                "uid": self._uid(),
                "creationTimestamp": _iso(created),
                "ownerReferences": [{"kind": owner_kind, "name": app}],
            },
            "spec": {"nodeName": node_name},
        }
        self._pods.append(pod)
        return pod

    # -- churn ----------------------------------------------------------------

    def _churn(self) -> None:
        self._tick += 1
        self.now += timedelta(seconds=self.poll_interval)
        node_names = [n["metadata"]["name"] for n in self._nodes]
        if node_names:
            for _ in range(self.rng.randint(0, 3)):
                self._add_pod(self.rng.choice(node_names), self.rng.choice(DEMO_APPS), "ReplicaSet")
        workloads = [p for p in self._pods if p["metadata"]["ownerReferences"][0]["kind"] != "DaemonSet"]
        for pod in self.rng.sample(workloads, k=min(len(workloads), self.rng.randint(0, 2))):
            self._pods.remove(pod)

        roll = self.rng.random()
        if roll < 0.08 and len(self._nodes) < self.max_nodes:
            self._add_node()
        elif roll > 0.96 and len(self._nodes) > 1:
            gone = self._nodes.pop(self.rng.randrange(len(self._nodes)))
            gone_name = gone["metadata"]["name"]
            self._pods = [p for p in self._pods if p["spec"]["nodeName"] != gone_name]

    def fetch(self) -> tuple[list[Node], list[Pod]]:
        if self.synced:
            self._churn()
        return split_manifests(self._nodes + self._pods)


def build_source(config: DashboardConfig, store: Optional[EntityStore] = None) -> DataSource:
    """Create the source named by ``config.source.kind``.

    Raises:
        SourceError: If the chosen source is missing required settings.
    """
    source = config.source
    common: dict[str, Any] = {"store": store, "poll_interval": source.poll_interval}
    if source.kind == "demo":
        return DemoSource(**common)
    if source.kind == "file":
        if source.path is None:
            raise SourceError("source.path is required when source.kind is 'file'")
        return ManifestFileSource(source.path, **common)
    return KubectlSource(
        context=source.context,
        kubeconfig=source.kubeconfig,
        timeout=source.timeout,
        **common,
    )
