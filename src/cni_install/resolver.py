"""Resolve install parameters from environment variables."""

from __future__ import annotations

import logging
import socket
from pathlib import Path
from typing import Dict, FrozenSet, Mapping, Optional

from .errors import ConfigError
from .params import InstallLayout, InstallParameters, InstallPaths, KubeconfigSettings

LOG = logging.getLogger(__name__)

TEMPLATE_VAR_PREFIX = "CNI_TEMPLATE_VAR_"

# Template variables that may legitimately render as an empty string.
OPTIONAL_BINDINGS: FrozenSet[str] = frozenset(
    {
        "ETCD_ENDPOINTS",
        "ETCD_CERT_FILE",
        "ETCD_KEY_FILE",
        "ETCD_CA_CERT_FILE",
    }
)

_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _require(env: Mapping[str, str], name: str) -> str:
    value = _get(env, name)
    if value is None:
        raise ConfigError(f"missing required variable {name}")
    return value


def _parse_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = _get(env, name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"{name} must be 'true' or 'false', got '{value}'")


def _parse_port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise ConfigError(f"KUBERNETES_SERVICE_PORT must be an integer, got '{value}'")
    if not 0 < port < 65536:
        raise ConfigError(f"KUBERNETES_SERVICE_PORT out of range: {port}")
    return port


def _parse_mode(env: Mapping[str, str]) -> int:
    value = _get(env, "KUBECONFIG_MODE")
    if value is None:
        return 0o600
    try:
        return int(value, 8)
    except ValueError:
        raise ConfigError(f"KUBECONFIG_MODE must be an octal mode, got '{value}'")


def _read_token(env: Mapping[str, str], layout: InstallLayout) -> str:
    inline = _get(env, "SERVICEACCOUNT_TOKEN")
    if inline is not None:
        return inline

    token_file = Path(_get(env, "SERVICEACCOUNT_TOKEN_FILE") or layout.token_file)
    if not token_file.exists():
        raise ConfigError("missing required variable SERVICEACCOUNT_TOKEN")
    try:
        token = token_file.read_text().strip()
    except OSError as exc:
        raise ConfigError(
            f"cannot read service account token file {token_file}: {exc}"
        )
    if not token:
        raise ConfigError(f"service account token file {token_file} is empty")
    LOG.debug("read service account token from %s", token_file)
    return token


def _split_names(value: Optional[str]) -> FrozenSet[str]:
    if not value:
        return frozenset()
    return frozenset(name.strip() for name in value.split(",") if name.strip())


def resolve(env: Mapping[str, str], layout: InstallLayout) -> InstallParameters:
    """Build :class:`InstallParameters` from ``env`` and ``layout``.

    ``env`` is read, never modified; unrecognised variables are ignored.
    Raises :class:`ConfigError` when a required variable is missing or a
    value cannot be parsed.
    """
    token = _read_token(env, layout)
    api_host = _require(env, "KUBERNETES_SERVICE_HOST")
    api_port = _parse_port(_require(env, "KUBERNETES_SERVICE_PORT"))
    api_protocol = _get(env, "KUBERNETES_SERVICE_PROTOCOL") or "https"
    node_name = _get(env, "KUBERNETES_NODE_NAME") or socket.gethostname()

    conf_name = _get(env, "CNI_CONF_NAME") or layout.default_conf_name
    old_conf_name = _get(env, "CNI_OLD_CONF_NAME") or layout.default_conf_name

    template_file = _get(env, "CNI_NETWORK_CONFIG_FILE")
    network_config = env.get("CNI_NETWORK_CONFIG") or None
    if template_file and network_config:
        LOG.debug("CNI_NETWORK_CONFIG set; ignoring CNI_NETWORK_CONFIG_FILE")

    paths = InstallPaths(
        source_bin_dir=layout.source_bin_dir,
        target_bin_dirs=tuple(layout.target_bin_dirs),
        template_path=Path(template_file) if template_file else layout.template_path,
        target_net_dir=layout.target_net_dir,
    )

    kubeconfig = KubeconfigSettings(
        filename=layout.kubeconfig_filename,
        ca_file=Path(_get(env, "KUBE_CA_FILE") or layout.ca_file),
        skip_tls_verify=_parse_bool(env, "SKIP_TLS_VERIFY", False),
        mode=_parse_mode(env),
    )

    variables: Dict[str, str] = {
        "KUBERNETES_SERVICE_HOST": api_host,
        "KUBERNETES_SERVICE_PORT": str(api_port),
        "KUBERNETES_SERVICE_PROTOCOL": api_protocol,
        "KUBERNETES_NODE_NAME": node_name,
        "SERVICEACCOUNT_TOKEN": token,
        "KUBECONFIG_FILENAME": layout.kubeconfig_filename,
        "KUBECONFIG_FILEPATH": str(layout.host_net_dir / layout.kubeconfig_filename),
        "CNI_MTU": _get(env, "CNI_MTU") or "1500",
        "LOG_LEVEL": _get(env, "LOG_LEVEL") or "warn",
        "ETCD_ENDPOINTS": _get(env, "ETCD_ENDPOINTS") or "",
        "ETCD_CERT_FILE": _get(env, "CNI_CONF_ETCD_CERT") or "",
        "ETCD_KEY_FILE": _get(env, "CNI_CONF_ETCD_KEY") or "",
        "ETCD_CA_CERT_FILE": _get(env, "CNI_CONF_ETCD_CA") or "",
    }
    for key, value in env.items():
        if key.startswith(TEMPLATE_VAR_PREFIX) and len(key) > len(TEMPLATE_VAR_PREFIX):
            variables[key[len(TEMPLATE_VAR_PREFIX):]] = value

    return InstallParameters(
        token=token,
        api_host=api_host,
        api_port=api_port,
        api_protocol=api_protocol,
        node_name=node_name,
        conf_name=conf_name,
        old_conf_name=old_conf_name,
        paths=paths,
        kubeconfig=kubeconfig,
        template_variables=variables,
        allow_empty=OPTIONAL_BINDINGS,
        watch=_parse_bool(env, "SLEEP", True),
        network_config=network_config,
        skip_binaries=_split_names(env.get("SKIP_CNI_BINARIES")),
        update_binaries=_parse_bool(env, "UPDATE_CNI_BINARIES", True),
    )
