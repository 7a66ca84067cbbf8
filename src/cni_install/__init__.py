"""Node-side installer for the Calico CNI plugin.

This package holds the install pipeline that runs inside the node DaemonSet
before (and, in watch mode, alongside) the CNI plugin itself.  It is split into
small pieces so each can be exercised against a temporary directory in unit
tests:

* :mod:`cni_install.resolver` turns the process environment into an immutable
  :class:`~cni_install.params.InstallParameters` value;
* :mod:`cni_install.stager` copies plugin binaries onto the host;
* :mod:`cni_install.template` substitutes ``__NAME__`` markers in the network
  config template;
* :mod:`cni_install.writer` atomically places rendered files on the host; and
* :mod:`cni_install.orchestrator` sequences a pass and optionally repeats it.

Nothing in here reads ``os.environ`` or installs signal handlers; the runtime
in :mod:`cni_install_agent` owns the process.
"""

from .orchestrator import InstallOrchestrator  # noqa: F401
from .params import InstallLayout, InstallParameters  # noqa: F401

__all__ = ["InstallLayout", "InstallOrchestrator", "InstallParameters"]
