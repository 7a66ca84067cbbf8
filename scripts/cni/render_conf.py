#!/usr/bin/env python3
"""Render a CNI network config template without touching the host."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

REPO_ROOT = Path(__file__).resolve().parents[2]
SRC_PATH = REPO_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from cni_install.errors import InstallError  # noqa: E402
from cni_install.params import InstallLayout  # noqa: E402
from cni_install.resolver import resolve  # noqa: E402
from cni_install.template import TemplateRenderer, load_template  # noqa: E402

LOG = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--template",
        type=Path,
        default=InstallLayout().template_path,
        help="Network config template, used unless CNI_NETWORK_CONFIG is set",
    )
    parser.add_argument(
        "--env",
        type=Path,
        required=True,
        help="JSON object of environment variables to resolve against",
    )
    parser.add_argument(
        "--show-token",
        action="store_true",
        help="Print the service account token instead of masking it",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args()


def load_env(path: Path) -> Dict[str, str]:
    with path.open() as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError("environment file must contain a JSON object")
    return {str(key): str(value) for key, value in data.items()}


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    env = load_env(args.env)
    layout = InstallLayout(template_path=args.template)
    renderer = TemplateRenderer()
    try:
        parameters = resolve(env, layout)
        template = load_template(parameters)
        if args.show_token:
            rendered = renderer.render(template, parameters)
        else:
            rendered = renderer.redacted(template, parameters)
    except (InstallError, OSError) as exc:
        LOG.error("%s", exc)
        return 1

    sys.stdout.write(rendered.decode("utf-8"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
