"""Atomic placement of rendered files in the host CNI config directory."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from .errors import FatalError
from .outcomes import Fatal, RunOutcome, Success
from .stager import is_writable_dir

LOG = logging.getLogger(__name__)

STEP = "write-config"


class AtomicConfigWriter:
    """Write bytes to ``target_dir/filename`` via temp file and rename.

    Readers of the final path (the container runtime scanning its net.d
    directory) see either the previous file or the complete new one.  The
    target directory is mandatory: without it the runtime cannot discover
    the plugin, so an unusable directory is :class:`Fatal`.
    """

    def write(
        self,
        rendered: bytes,
        target_dir: Path,
        filename: str,
        mode: int = 0o644,
    ) -> RunOutcome:
        target_dir = Path(target_dir)
        if not is_writable_dir(target_dir):
            return Fatal(
                STEP,
                FatalError(f"cannot write CNI config: {target_dir} is non-writeable"),
            )

        destination = target_dir / filename
        if self._unchanged(destination, rendered):
            try:
                if destination.stat().st_mode & 0o777 != mode:
                    os.chmod(destination, mode)
                    LOG.info("Set mode %o on %s", mode, destination)
            except OSError as exc:
                return Fatal(
                    STEP, FatalError(f"cannot set mode on {destination}: {exc}")
                )
            LOG.debug("%s is up to date", destination)
            return Success(STEP, detail="unchanged", items=(filename,))

        fd, tmp_name = tempfile.mkstemp(dir=str(target_dir), prefix=f".{filename}.")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(rendered)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_path, mode)
            os.replace(tmp_path, destination)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            return Fatal(
                STEP, FatalError(f"cannot write CNI config {destination}: {exc}")
            )

        LOG.info("Created %s", destination)
        return Success(STEP, detail="written", items=(filename,))

    @staticmethod
    def _unchanged(destination: Path, rendered: bytes) -> bool:
        try:
            return destination.is_file() and destination.read_bytes() == rendered
        except OSError:
            return False
