"""Marker substitution for the CNI network config template."""

from __future__ import annotations

import logging
import re
from typing import AbstractSet, Iterable, List, Mapping

from .errors import FatalError, TemplateError
from .params import InstallParameters

LOG = logging.getLogger(__name__)

MARKER_RE = re.compile(r"__([A-Z][A-Z0-9]*(?:_[A-Z0-9]+)*)__")
REDACTED = "<redacted>"


def load_template(parameters: InstallParameters) -> bytes:
    """Return the template bytes, preferring inline ``CNI_NETWORK_CONFIG``."""
    if parameters.network_config:
        LOG.debug("using network config from CNI_NETWORK_CONFIG")
        return parameters.network_config.encode("utf-8")
    path = parameters.paths.template_path
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FatalError(f"cannot read CNI config template {path}: {exc}")


def markers(text: str) -> List[str]:
    """Return the distinct marker names in ``text`` in order of appearance."""
    return list(dict.fromkeys(m.group(1) for m in MARKER_RE.finditer(text)))


class TemplateRenderer:
    """Replace ``__NAME__`` markers with bound values.

    Rendering is all-or-nothing: a marker without a binding, or bound to an
    empty string when the name is not in ``allow_empty``, fails the render
    instead of leaking marker syntax into the config the plugin reads.
    """

    def render(self, template: bytes, parameters: InstallParameters) -> bytes:
        return self.render_with(
            template, parameters.template_variables, parameters.allow_empty
        )

    def render_with(
        self,
        template: bytes,
        variables: Mapping[str, str],
        allow_empty: AbstractSet[str] = frozenset(),
    ) -> bytes:
        try:
            text = template.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TemplateError(f"template is not valid UTF-8: {exc}")

        self._check(markers(text), variables, allow_empty)
        rendered = MARKER_RE.sub(lambda m: variables[m.group(1)], text)
        return rendered.encode("utf-8")

    def redacted(self, template: bytes, parameters: InstallParameters) -> bytes:
        """Render with the service account token masked, for logging."""
        variables = dict(parameters.template_variables)
        if "SERVICEACCOUNT_TOKEN" in variables:
            variables["SERVICEACCOUNT_TOKEN"] = REDACTED
        return self.render_with(template, variables, parameters.allow_empty)

    @staticmethod
    def _check(
        names: Iterable[str],
        variables: Mapping[str, str],
        allow_empty: AbstractSet[str],
    ) -> None:
        for name in names:
            if name not in variables:
                raise TemplateError(f"unresolved variable {name}")
            if variables[name] == "" and name not in allow_empty:
                raise TemplateError(f"empty variable {name}")
