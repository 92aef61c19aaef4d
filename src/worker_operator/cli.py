"""CLI entrypoint for the worker operator."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]
import yaml
from pydantic import ValidationError

from worker_operator.app import Application
from worker_operator.config import ConfigError, load_config, resolve_control_plane
from worker_operator.controller import build_deployment
from worker_operator.logging_setup import configure_logging
from worker_operator.models.config import ControlPlaneConfig
from worker_operator.models.workercluster import WorkerCluster


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for CLI."""
    configure_logging(log_level=level)


class WorkerOperator:
    """Worker operator CLI - reconciles WorkerClusters into Deployments."""

    def run(self, config: str, log_level: str = "INFO") -> None:
        """Run the operator.

        Args:
            config: Path to YAML config file
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level)

        app = Application(Path(config))

        try:
            asyncio.run(app.run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except KeyboardInterrupt:
            pass  # Handled by signal handlers

    def validate(self, config: str) -> None:
        """Validate config file without running.

        Args:
            config: Path to YAML config file
        """
        config_path = Path(config)

        try:
            cfg = load_config(config_path)
            resolve_control_plane(cfg.control_plane)
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"✓ Config valid: {config_path}")
        print(f"  Resource: {cfg.store.resource.api_version}/{cfg.store.resource.plural}")
        print(f"  Namespace: {cfg.store.kubernetes.namespace or '(all)'}")
        print(f"  Workers: {cfg.controller.workers}")
        print(f"  Drift policy: {cfg.controller.drift_policy}")
        print(f"  Resync interval: {cfg.controller.resync_interval_s:g}s")
        print(f"  Control plane addr: {cfg.control_plane.addr}")
        print(f"  Health: {cfg.health.host}:{cfg.health.port} (enabled={cfg.health.enabled})")

    def render(self, cluster: str, config: str | None = None) -> None:
        """Print the Deployment that would be created for a WorkerCluster manifest.

        Args:
            cluster: Path to a WorkerCluster YAML manifest
            config: Optional config file supplying control-plane settings
        """
        control_plane = ControlPlaneConfig()
        try:
            if config is not None:
                control_plane = resolve_control_plane(load_config(Path(config)).control_plane)
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        try:
            with Path(cluster).open() as f:
                manifest = yaml.safe_load(f)
            worker_cluster = WorkerCluster.model_validate(manifest)
            deployment = build_deployment(worker_cluster, control_plane)
        except (OSError, yaml.YAMLError, ValidationError, IndexError) as e:
            print(f"✗ Cannot render {cluster}: {e}", file=sys.stderr)
            sys.exit(1)

        print(yaml.safe_dump(deployment.to_manifest(), sort_keys=False), end="")


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(WorkerOperator)


if __name__ == "__main__":
    main()
