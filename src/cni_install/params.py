"""Data structures shared by the install pipeline.

:class:`InstallLayout` describes where things live on the node and is loaded
once at start-up.  :class:`InstallParameters` is rebuilt from the environment
on every pass so that a rotated token or changed override is picked up in
watch mode.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Mapping, Optional, Sequence

DEFAULT_CONF_NAME = "10-calico.conf"
DEFAULT_KUBECONFIG_NAME = "calico-kubeconfig"
SERVICE_ACCOUNT_DIR = Path("/var/run/secrets/kubernetes.io/serviceaccount")


@dataclass(frozen=True)
class InstallLayout:
    """Filesystem layout and defaults for the installer.

    Attributes
    ----------
    source_bin_dir:
        Directory inside the installer image holding the plugin binaries.
    target_bin_dirs:
        Host CNI binary directories, as mounted into the installer.  Each one
        is optional: a missing or read-only directory is skipped.
    target_net_dir:
        Host CNI config directory, as mounted into the installer.  Required.
    host_net_dir:
        The same config directory as seen from the host; rendered into
        ``__KUBECONFIG_FILEPATH__`` so the plugin can find its kubeconfig.
    template_path:
        Default network config template.
    sleep_interval:
        Seconds between passes in watch mode.
    """

    source_bin_dir: Path = Path("/opt/cni/bin")
    target_bin_dirs: Sequence[Path] = (Path("/host/opt/cni/bin"),)
    target_net_dir: Path = Path("/host/etc/cni/net.d")
    host_net_dir: Path = Path("/etc/cni/net.d")
    template_path: Path = Path("/calico.conf.tmp")
    default_conf_name: str = DEFAULT_CONF_NAME
    kubeconfig_filename: str = DEFAULT_KUBECONFIG_NAME
    write_kubeconfig: bool = True
    token_file: Path = SERVICE_ACCOUNT_DIR / "token"
    ca_file: Path = SERVICE_ACCOUNT_DIR / "ca.crt"
    sleep_interval: float = 10.0


@dataclass(frozen=True)
class InstallPaths:
    """Source to target path pairs for a single pass."""

    source_bin_dir: Path
    target_bin_dirs: Sequence[Path]
    template_path: Path
    target_net_dir: Path


@dataclass(frozen=True)
class KubeconfigSettings:
    filename: str
    ca_file: Path
    skip_tls_verify: bool = False
    mode: int = 0o600


@dataclass(frozen=True)
class InstallParameters:
    """Everything one install pass needs, resolved up front."""

    token: str = field(repr=False)
    api_host: str
    api_port: int
    node_name: str
    conf_name: str
    paths: InstallPaths
    kubeconfig: KubeconfigSettings
    template_variables: Mapping[str, str] = field(default_factory=dict, repr=False)
    allow_empty: FrozenSet[str] = frozenset()
    api_protocol: str = "https"
    old_conf_name: str = DEFAULT_CONF_NAME
    watch: bool = True
    network_config: Optional[str] = None
    skip_binaries: FrozenSet[str] = frozenset()
    update_binaries: bool = True

    @property
    def server_url(self) -> str:
        return f"{self.api_protocol}://[{self.api_host}]:{self.api_port}"
