"""Entry point for the cni install agent."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path
from threading import Event

from cni_install import InstallOrchestrator

from .config import load_config

LOG = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def main(argv: list[str] | None = None, stop_event: Event | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Install CNI plugin binaries and network config on this node"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("/etc/cni-install/install.yaml"),
        help="Path to the install layout file",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    _setup_logging(args.verbose)

    layout = load_config(args.config)
    orchestrator = InstallOrchestrator(layout, environ=lambda: os.environ)

    if stop_event is None:
        stop_event = Event()

        def _shutdown(signum, frame):  # pragma: no cover - signal handler
            LOG.info("received signal %s, shutting down", signum)
            stop_event.set()

        signal.signal(signal.SIGINT, _shutdown)
        signal.signal(signal.SIGTERM, _shutdown)

    code = orchestrator.run(stop_event)
    if code == 0:
        LOG.info("cni install agent finished")
    return code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
