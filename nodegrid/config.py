"""Configuration loading and constants for the dashboard."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

import yaml
from rich.color import Color, ColorParseError


class NodegridError(Exception):
    """Base class for errors the dashboard reports to the user."""


class ConfigError(NodegridError):
    """Raised when .nodegrid/config.yaml cannot be used."""


# ---------------------------------------------------------------------------
# Sources and defaults
# ---------------------------------------------------------------------------

SourceKind = Literal["kubectl", "file", "demo"]

SOURCE_KINDS: tuple[SourceKind, ...] = ("kubectl", "file", "demo")

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_KUBECTL_TIMEOUT = 10.0

# Pods owned by one of these controller kinds run on every node
DEFAULT_FLEET_OWNER_KINDS = ("DaemonSet",)

# Logical key -> Textual key names
KEY_BINDINGS: dict[str, tuple[str, ...]] = {
    "quit": ("q", "ctrl+c"),
    "back": ("escape",),
    "up": ("up", "k"),
    "down": ("down", "j"),
    "left": ("left", "h"),
    "right": ("right", "l"),
    "details": ("enter",),
    "help": ("question_mark",),
    "page_up": ("pageup",),
    "page_down": ("pagedown",),
    "refresh": ("r",),
}


@dataclass(frozen=True)
class Theme:
    """Border colors, as hex strings understood by rich."""

    node_border: str = "#6C7D89"
    selected_node_border: str = "#F87575"
    pod_border: str = "#27CEBD"
    fleet_pod_border: str = "#F5D76E"
    foreground: str = "#FFFFFF"
    background: str = "#000000"


@dataclass(frozen=True)
class SourceConfig:
    kind: SourceKind = "kubectl"
    path: Path | None = None
    context: str | None = None
    kubeconfig: str | None = None
    poll_interval: float = DEFAULT_POLL_INTERVAL
    timeout: float = DEFAULT_KUBECTL_TIMEOUT


@dataclass(frozen=True)
class DashboardConfig:
    source: SourceConfig = field(default_factory=SourceConfig)
    theme: Theme = field(default_factory=Theme)
    fleet_owner_kinds: tuple[str, ...] = DEFAULT_FLEET_OWNER_KINDS

    def with_source(self, **changes: Any) -> DashboardConfig:
        """Return a copy with the given source fields replaced."""
        return replace(self, source=replace(self.source, **changes))


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def get_nodegrid_dir() -> Path:
    """Get the .nodegrid directory for the current project.

    Can be overridden via NODEGRID_DIR environment variable (used by tests).
    """
    env_override = os.environ.get("NODEGRID_DIR")
    if env_override:
        return Path(env_override)
    return Path.cwd() / ".nodegrid"


def get_config_path() -> Path:
    """Get path to config.yaml."""
    return get_nodegrid_dir() / "config.yaml"


def get_logs_dir() -> Path:
    """Get the logs directory."""
    return get_nodegrid_dir() / "logs"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _number(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"source.{key} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"source.{key} must be positive, got {value!r}")
    return float(value)


def _color(section: dict[str, Any], key: str, default: str) -> str:
    value = str(section.get(key, default))
    try:
        Color.parse(value)
    except ColorParseError as e:
        raise ConfigError(f"theme.{key} is not a color: {value!r}") from e
    return value


def parse_config(raw: dict[str, Any] | None) -> DashboardConfig:
    """Build a DashboardConfig from the parsed YAML mapping.

    Unknown keys are ignored so newer config files keep working.

    Raises:
        ConfigError: If a known key has the wrong type or value.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("config.yaml must contain a mapping at the top level")

    source = _section(raw, "source")
    kind = source.get("kind", "kubectl")
    if kind not in SOURCE_KINDS:
        raise ConfigError(
            f"source.kind must be one of {', '.join(SOURCE_KINDS)}, got {kind!r}"
        )
    path = source.get("path")
    source_config = SourceConfig(
        kind=kind,
        path=Path(path).expanduser() if path else None,
        context=source.get("context"),
        kubeconfig=source.get("kubeconfig"),
        poll_interval=_number(source, "poll_interval", DEFAULT_POLL_INTERVAL),
        timeout=_number(source, "timeout", DEFAULT_KUBECTL_TIMEOUT),
    )

    theme_raw = _section(raw, "theme")
    defaults = Theme()
    theme = Theme(**{
        name: _color(theme_raw, name, getattr(defaults, name))
        for name in defaults.__dataclass_fields__
    })

    kinds = raw.get("fleet_owner_kinds", list(DEFAULT_FLEET_OWNER_KINDS))
    if isinstance(kinds, str):
        kinds = [kinds]
    if not isinstance(kinds, list):
        raise ConfigError("fleet_owner_kinds must be a list of controller kinds")

    return DashboardConfig(
        source=source_config,
        theme=theme,
        fleet_owner_kinds=tuple(str(k) for k in kinds),
    )


def load_config(path: Path | None = None) -> DashboardConfig:
    """Load dashboard configuration from config.yaml.

    A missing file is not an error: defaults are returned.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        if path is not None:
            raise ConfigError(f"Config file not found: {config_path}")
        return DashboardConfig()

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_path}: {e}") from e

    return parse_config(raw)
