"""Kubeconfig rendering for the CNI plugin."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict

import yaml

from .params import InstallParameters

LOG = logging.getLogger(__name__)

HEADER = "# Kubeconfig file for Calico CNI plugin.\n"


def _cluster_entry(parameters: InstallParameters) -> Dict[str, Any]:
    cluster: Dict[str, Any] = {"server": parameters.server_url}
    settings = parameters.kubeconfig
    if settings.skip_tls_verify:
        cluster["insecure-skip-tls-verify"] = True
    elif settings.ca_file.is_file():
        cluster["certificate-authority-data"] = base64.b64encode(
            settings.ca_file.read_bytes()
        ).decode("ascii")
    else:
        LOG.debug("no CA bundle at %s; kubeconfig will use system roots", settings.ca_file)
    return cluster


def build_kubeconfig(parameters: InstallParameters) -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": "local", "cluster": _cluster_entry(parameters)}],
        "users": [{"name": "calico", "user": {"token": parameters.token}}],
        "contexts": [
            {
                "name": "calico-context",
                "context": {"cluster": "local", "user": "calico"},
            }
        ],
        "current-context": "calico-context",
    }


def render_kubeconfig(parameters: InstallParameters) -> bytes:
    body = yaml.safe_dump(build_kubeconfig(parameters), sort_keys=False)
    return (HEADER + body).encode("utf-8")
