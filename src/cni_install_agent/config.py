"""YAML configuration loader for the cni install agent."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import yaml

from cni_install.params import InstallLayout

LOG = logging.getLogger(__name__)

_PATH_KEYS = (
    "source_bin_dir",
    "target_net_dir",
    "host_net_dir",
    "template_path",
    "token_file",
    "ca_file",
)
_STR_KEYS = ("default_conf_name", "kubeconfig_filename")


def _parse_bin_dirs(value: Any) -> List[Path]:
    if isinstance(value, str):
        return [Path(value)]
    if not isinstance(value, list) or not value:
        raise ValueError("'target_bin_dirs' must be a non-empty list of paths")
    return [Path(str(entry)) for entry in value]


def _parse_install(section: Dict[str, Any]) -> InstallLayout:
    unknown = set(section) - set(InstallLayout.__dataclass_fields__)
    if unknown:
        raise ValueError(f"unknown install option(s): {', '.join(sorted(unknown))}")

    kwargs: Dict[str, Any] = {}
    for key in _PATH_KEYS:
        if key in section:
            kwargs[key] = Path(str(section[key]))
    for key in _STR_KEYS:
        if key in section:
            kwargs[key] = str(section[key])
    if "target_bin_dirs" in section:
        kwargs["target_bin_dirs"] = tuple(_parse_bin_dirs(section["target_bin_dirs"]))
    if "write_kubeconfig" in section:
        kwargs["write_kubeconfig"] = bool(section["write_kubeconfig"])
    if "sleep_interval" in section:
        interval = float(section["sleep_interval"])
        if interval <= 0:
            raise ValueError("'sleep_interval' must be positive")
        kwargs["sleep_interval"] = interval

    return InstallLayout(**kwargs)


def load_config(path: Path) -> InstallLayout:
    """Load the install layout from ``path``; a missing file means defaults."""
    if not path.exists():
        LOG.debug("config file %s not found, using built-in layout", path)
        return InstallLayout()

    data = yaml.safe_load(path.read_text())
    if data is None:
        return InstallLayout()
    if not isinstance(data, dict):
        raise ValueError("Agent configuration must be a mapping")

    section = data.get("install", {})
    if not isinstance(section, dict):
        raise ValueError("'install' section must be a mapping")
    return _parse_install(section)
