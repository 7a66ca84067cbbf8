"""Tagged results reported by each install step."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence, Union

from .errors import InstallError


@dataclass(frozen=True)
class Success:
    """The step finished and did everything it attempted."""

    step: str
    detail: str = ""
    items: Sequence[str] = field(default_factory=tuple)


@dataclass(frozen=True)
class SkippedWritable:
    """An optional target was missing or read-only; the pass carries on."""

    step: str
    reason: str


@dataclass(frozen=True)
class Fatal:
    """The step failed and the pass must stop."""

    step: str
    error: InstallError

    @property
    def reason(self) -> str:
        return str(self.error)


RunOutcome = Union[Success, SkippedWritable, Fatal]
