"""Exception types raised by the install pipeline."""

from __future__ import annotations


class InstallError(Exception):
    """Base class for failures that abort an install pass."""


class ConfigError(InstallError, ValueError):
    """Required input is missing or malformed."""


class TemplateError(InstallError):
    """The network config template could not be rendered."""


class FatalError(InstallError):
    """A required host target cannot be written."""
