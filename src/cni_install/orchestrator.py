"""Install pass sequencing and the watch-mode loop.

A pass walks ``RESOLVING -> STAGING -> RENDERING -> WRITING`` and ends in
``DONE`` or ``FAILED``.  In watch mode the orchestrator waits on a stop event
between passes and re-enters ``RESOLVING``, so the environment (and any token
file behind it) is read afresh every time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Event
from typing import Callable, List, Mapping, Optional, Union

from .errors import FatalError, InstallError
from .kubeconfig import render_kubeconfig
from .outcomes import Fatal, RunOutcome, SkippedWritable
from .params import InstallLayout, InstallParameters
from .resolver import resolve
from .stager import BinaryStager
from .template import TemplateRenderer, load_template
from .writer import AtomicConfigWriter

LOG = logging.getLogger(__name__)


class InstallState(Enum):
    INIT = "init"
    RESOLVING = "resolving"
    STAGING = "staging"
    RENDERING = "rendering"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PassResult:
    """Outcome of a single install pass."""

    state: InstallState = InstallState.INIT
    outcomes: List[RunOutcome] = field(default_factory=list)
    parameters: Optional[InstallParameters] = None
    error: Optional[Union[InstallError, OSError]] = None

    @property
    def ok(self) -> bool:
        return self.state is InstallState.DONE


class InstallOrchestrator:
    """Drive the install pipeline for one node."""

    def __init__(
        self,
        layout: InstallLayout,
        environ: Callable[[], Mapping[str, str]],
        *,
        renderer: Optional[TemplateRenderer] = None,
        writer: Optional[AtomicConfigWriter] = None,
    ) -> None:
        self._layout = layout
        self._environ = environ
        self._renderer = renderer or TemplateRenderer()
        self._writer = writer or AtomicConfigWriter()
        self._state = InstallState.INIT

    @property
    def state(self) -> InstallState:
        return self._state

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------
    def run_once(self) -> PassResult:
        result = PassResult()
        self._state = InstallState.INIT
        try:
            self._enter(result, InstallState.RESOLVING)
            parameters = resolve(self._environ(), self._layout)
            result.parameters = parameters

            self._enter(result, InstallState.STAGING)
            self._stage(parameters, result)

            self._enter(result, InstallState.RENDERING)
            rendered = self._render(parameters)

            self._enter(result, InstallState.WRITING)
            self._write(parameters, rendered, result)
        except (InstallError, OSError) as exc:
            LOG.error("CNI install failed while %s: %s", result.state.value, exc)
            error = exc if isinstance(exc, InstallError) else FatalError(str(exc))
            result.outcomes.append(Fatal(result.state.value, error))
            result.error = exc
            self._enter(result, InstallState.FAILED)
            return result

        self._enter(result, InstallState.DONE)
        return result

    def _enter(self, result: PassResult, state: InstallState) -> None:
        LOG.debug("install state %s -> %s", result.state.value, state.value)
        result.state = state
        self._state = state

    def _stage(self, parameters: InstallParameters, result: PassResult) -> None:
        stager = BinaryStager(
            skip=parameters.skip_binaries,
            update_existing=parameters.update_binaries,
        )
        for target_dir in parameters.paths.target_bin_dirs:
            outcome = stager.stage(parameters.paths.source_bin_dir, target_dir)
            if isinstance(outcome, SkippedWritable):
                LOG.warning("%s", outcome.reason)
            result.outcomes.append(outcome)

    def _render(self, parameters: InstallParameters) -> bytes:
        template = load_template(parameters)
        rendered = self._renderer.render(template, parameters)
        if LOG.isEnabledFor(logging.DEBUG):
            LOG.debug(
                "CNI config: %s",
                self._renderer.redacted(template, parameters).decode("utf-8"),
            )
        return rendered

    def _write(
        self, parameters: InstallParameters, rendered: bytes, result: PassResult
    ) -> None:
        net_dir = parameters.paths.target_net_dir

        if self._layout.write_kubeconfig:
            outcome = self._writer.write(
                render_kubeconfig(parameters),
                net_dir,
                parameters.kubeconfig.filename,
                mode=parameters.kubeconfig.mode,
            )
            if isinstance(outcome, Fatal):
                raise outcome.error
            result.outcomes.append(outcome)

        outcome = self._writer.write(rendered, net_dir, parameters.conf_name)
        if isinstance(outcome, Fatal):
            raise outcome.error
        result.outcomes.append(outcome)

        if parameters.conf_name != parameters.old_conf_name:
            self._remove_old_conf(net_dir / parameters.old_conf_name)

    @staticmethod
    def _remove_old_conf(path: Path) -> None:
        if path.exists():
            path.unlink()
            LOG.info("Removed old CNI config %s", path)

    # ------------------------------------------------------------------
    # Watch mode
    # ------------------------------------------------------------------
    def run(self, stop_event: Event) -> int:
        """Run passes until one fails, watch mode is off, or ``stop_event`` is set.

        Returns the process exit code.
        """
        announced = False
        while True:
            result = self.run_once()
            if not result.ok or result.parameters is None:
                return 1

            if not result.parameters.watch:
                LOG.info("Done configuring CNI. Sleep=false")
                return 0
            if not announced:
                LOG.info(
                    "Done configuring CNI. Sleep=true, re-applying every %ss",
                    self._layout.sleep_interval,
                )
                announced = True

            if stop_event.wait(self._layout.sleep_interval):
                LOG.info("stop requested, leaving watch loop")
                return 0
