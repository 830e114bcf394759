"""Atomic G-code file sink.

``GCodeFileSink`` is a context manager that receives operations one at a
time (it is a valid ``sink`` for ``JogSequenceGenerator.generate_program``)
and streams the rendered lines into ``<name>.tmp`` beside the target.
On a clean exit the temporary file is flushed, fsynced and renamed onto
the target; on any exception it is closed and removed, so a failed run
never leaves a truncated program behind.

Usage::

    with GCodeFileSink(path, GCodeGenerator(precision=4)) as sink:
        generator.generate_program(64, sink=sink)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from types import TracebackType
from typing import TextIO

from axis_tester.errors import SinkWriteFailure
from axis_tester.gcode.generator import GCodeGenerator
from axis_tester.job_ir.operations import Operation
from src.utils.fs import ensure_dir, safe_remove, tmp_path_for

logger = logging.getLogger(__name__)


class GCodeFileSink:
    """Write a program to *path* atomically.

    Parameters
    ----------
    path : str | Path
        Final program path.  Parent directories are created.
    renderer : GCodeGenerator
        Turns each operation into a line.
    """

    def __init__(self, path: str | Path, renderer: GCodeGenerator) -> None:
        self.path = Path(path)
        self.tmp_path = tmp_path_for(self.path)
        self._renderer = renderer
        self._fh: TextIO | None = None
        self.lines_written = 0

    def __enter__(self) -> GCodeFileSink:
        try:
            ensure_dir(self.path.parent)
            self._fh = open(self.tmp_path, "w", encoding="ascii", newline="\n")
        except OSError as exc:
            raise SinkWriteFailure(self.path, str(exc)) from exc
        self.lines_written = 0
        return self

    def __call__(self, op: Operation) -> None:
        if self._fh is None:
            raise SinkWriteFailure(self.path, "sink is not open")
        line = self._renderer.format_op(op)
        try:
            self._fh.write(line + "\n")
        except (OSError, UnicodeEncodeError) as exc:
            raise SinkWriteFailure(self.path, str(exc)) from exc
        self.lines_written += 1

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        fh, self._fh = self._fh, None
        if fh is None:
            return
        if exc_type is not None:
            try:
                fh.close()
            except OSError as err:
                logger.warning("Closing %s failed: %s", self.tmp_path, err)
            safe_remove(self.tmp_path)
            logger.debug("Discarded partial program %s", self.tmp_path)
            return

        try:
            fh.flush()
            os.fsync(fh.fileno())
            fh.close()
            self.tmp_path.replace(self.path)
        except OSError as err:
            fh.close()
            safe_remove(self.tmp_path)
            raise SinkWriteFailure(self.path, str(err)) from err
