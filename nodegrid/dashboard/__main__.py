"""Entry point: python -m nodegrid.dashboard"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from ..config import ConfigError, DashboardConfig, get_logs_dir, load_config
from ..sources import SourceError, build_source
from .app import NodeGridApp
from .data import DataManager

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nodegrid",
        description="Live grid of cluster nodes and the pods running on them",
    )
    parser.add_argument("--config", type=Path,
                        help="Path to config.yaml (default: .nodegrid/config.yaml)")
    parser.add_argument("--demo", action="store_true",
                        help="Run with a synthetic cluster (no kubectl needed)")
    parser.add_argument("--file", type=Path,
                        help="Watch a YAML manifest file instead of a live cluster")
    parser.add_argument("--context", type=str, help="kubectl context to use")
    parser.add_argument("--kubeconfig", type=str, help="kubeconfig file for kubectl")
    parser.add_argument("--refresh", type=float,
                        help="Poll interval in seconds")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Log level for .nodegrid/logs/dashboard.log")
    return parser.parse_args(argv)


def apply_args(config: DashboardConfig, args: argparse.Namespace) -> DashboardConfig:
    """Overlay command-line flags on the loaded config.

    Raises:
        ConfigError: If a flag value is invalid.
    """
    changes: dict[str, object] = {}
    if args.demo:
        changes["kind"] = "demo"
    elif args.file is not None:
        changes["kind"] = "file"
        changes["path"] = args.file
    elif args.context or args.kubeconfig:
        changes["kind"] = "kubectl"
    if args.context:
        changes["context"] = args.context
    if args.kubeconfig:
        changes["kubeconfig"] = args.kubeconfig
    if args.refresh is not None:
        if args.refresh <= 0:
            raise ConfigError(f"--refresh must be positive, got {args.refresh:g}")
        changes["poll_interval"] = args.refresh
    return config.with_source(**changes) if changes else config


def setup_logging(level: str = "WARNING") -> Path:
    """Log to a file; the terminal belongs to the UI."""
    log_path = get_logs_dir() / "dashboard.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_path),
        level=getattr(logging, level),
        format=LOG_FORMAT,
    )
    return log_path


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        config = apply_args(load_config(args.config), args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(args.log_level)
    logger = logging.getLogger("nodegrid")

    try:
        data = DataManager(build_source(config))
        data.start()
    except SourceError as e:
        logger.error("Could not initialize %s source: %s", config.source.kind, e)
        print(f"Error: could not initialize {config.source.kind} source: {e}", file=sys.stderr)
        if config.source.kind == "kubectl":
            print("Use --demo for a synthetic cluster or --file to watch a manifest.",
                  file=sys.stderr)
        return 1

    try:
        app = NodeGridApp(data, config)
        app.run()
    except Exception:
        logger.exception("Dashboard crashed")
        raise
    finally:
        data.stop()
    return app.return_code or 0


if __name__ == "__main__":
    sys.exit(main())
