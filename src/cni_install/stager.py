"""Copy CNI plugin binaries onto the host."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, List

from .outcomes import RunOutcome, SkippedWritable, Success

LOG = logging.getLogger(__name__)

STEP = "stage-binaries"


def is_writable_dir(path: Path) -> bool:
    return path.is_dir() and os.access(path, os.W_OK | os.X_OK)


class BinaryStager:
    """Stage every regular file of a source directory into a host directory.

    Binaries are optional on the host (a previous install may have left them
    there), so an unusable target directory is reported as
    :class:`SkippedWritable` rather than an error.  Each file is copied to a
    temporary name first and renamed over the destination, which also lets us
    replace a binary that is currently executing.
    """

    def __init__(
        self,
        *,
        skip: Iterable[str] = (),
        update_existing: bool = True,
    ) -> None:
        self._skip = frozenset(skip)
        self._update_existing = update_existing

    def stage(self, source_dir: Path, target_dir: Path) -> RunOutcome:
        source_dir = Path(source_dir)
        target_dir = Path(target_dir)

        if not is_writable_dir(target_dir):
            return SkippedWritable(STEP, f"{target_dir} is non-writeable, skipping")

        staged: List[str] = []
        for path in sorted(source_dir.iterdir()):
            if not path.is_file():
                continue
            name = path.name
            if name in self._skip:
                LOG.info("%s is in SKIP_CNI_BINARIES, skipping", name)
                continue
            destination = target_dir / name
            if not self._update_existing and destination.exists():
                LOG.info(
                    "%s is already here and UPDATE_CNI_BINARIES isn't true, skipping",
                    destination,
                )
                continue
            self._copy(path, destination)
            staged.append(name)

        LOG.info("Wrote CNI binaries to %s: %s", target_dir, ", ".join(staged) or "none")
        return Success(STEP, detail=str(target_dir), items=tuple(staged))

    def _copy(self, source: Path, destination: Path) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=str(destination.parent), prefix=f".{destination.name}."
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as dst, source.open("rb") as src:
                shutil.copyfileobj(src, dst)
                dst.flush()
                os.fsync(dst.fileno())
            shutil.copymode(source, tmp_path)
            os.replace(tmp_path, destination)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
        LOG.debug("copied %s to %s", source, destination)
