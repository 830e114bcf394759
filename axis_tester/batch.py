"""Batch driver -- one test program per jog count.

Every program gets its own ``JogSequenceGenerator`` and its own random
stream, spawned from a single ``numpy.random.SeedSequence``.  Programs
share nothing mutable, so they may be generated on a thread pool.

A failure in one program (``DegenerateRange``, ``SinkWriteFailure``,
...) is logged with its label and recorded; the remaining jog counts
still run.  Configuration errors are raised before anything is written.

The batch writes ``manifest.yaml`` next to the programs, listing each
file with its status and spawn key.  Any single program can be
regenerated exactly with
``SeedSequence(entropy=<seed_entropy>, spawn_key=<spawn_key>)``.
"""

from __future__ import annotations

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

import numpy as np

from axis_tester.configs.loader import AxisTesterConfig
from axis_tester.errors import AxisTesterError, InvalidConfiguration, SinkWriteFailure
from axis_tester.gcode.generator import GCodeGenerator
from axis_tester.gcode.sink import GCodeFileSink
from axis_tester.jog.generator import JogSequenceGenerator
from axis_tester.kinematics.step_geometry import MachineGeometry, geometry_from_config
from src.utils import fs
from src.utils.logging_config import pop_context, push_context

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.yaml"


@dataclass(frozen=True)
class ProgramResult:
    """Outcome of generating one program file."""

    jogs: int
    path: Path
    spawn_key: tuple[int, ...]
    lines: int = 0
    error_label: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_label is None


@dataclass(frozen=True)
class BatchReport:
    """All program results of one batch run."""

    seed_entropy: int
    results: tuple[ProgramResult, ...]
    manifest_path: Path | None = None

    @property
    def failures(self) -> tuple[ProgramResult, ...]:
        return tuple(r for r in self.results if not r.ok)

    @property
    def ok(self) -> bool:
        return not self.failures


def generate_program_file(
    config: AxisTesterConfig,
    jogs: int,
    path: str | Path,
    seed: int | np.random.SeedSequence | None = None,
    geometry: MachineGeometry | None = None,
) -> int:
    """Generate one program and write it atomically to *path*.

    Returns
    -------
    int
        Number of lines written.

    Raises
    ------
    AxisTesterError
        Any generation or write failure; *path* is left untouched.
    """
    generator = JogSequenceGenerator(config, geometry=geometry, seed=seed)
    renderer = GCodeGenerator(config.output.precision)
    with GCodeFileSink(path, renderer) as sink:
        generator.generate_program(jogs, sink=sink)
    return sink.lines_written


def _run_one(
    config: AxisTesterConfig,
    geometry: MachineGeometry,
    jogs: int,
    seed: np.random.SeedSequence,
) -> ProgramResult:
    path = config.program_path(jogs)
    push_context(jogs=jogs)
    try:
        lines = generate_program_file(config, jogs, path, seed=seed, geometry=geometry)
    except AxisTesterError as exc:
        logger.error("Program %s failed [%s]: %s", path, exc.label, exc)
        return ProgramResult(
            jogs=jogs,
            path=path,
            spawn_key=tuple(seed.spawn_key),
            error_label=exc.label,
            error=str(exc),
        )
    finally:
        pop_context(keys=["jogs"])

    logger.info("Wrote %s (%d lines)", path, lines)
    return ProgramResult(
        jogs=jogs, path=path, spawn_key=tuple(seed.spawn_key), lines=lines,
    )


def _manifest(
    config: AxisTesterConfig,
    geometry: MachineGeometry,
    entropy: int,
    results: Iterable[ProgramResult],
) -> dict:
    return {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "seed_entropy": str(entropy),
        "units": config.drivetrain.units,
        "axis": config.output.axis,
        "geometry": {
            "full_step_distance": str(geometry.full_step_distance),
            "micro_step_distance": str(geometry.micro_step_distance),
            "max_velocity_distance": str(geometry.max_velocity_distance),
        },
        "envelope": {
            "min_playground": str(config.envelope.min_playground),
            "max_playground": str(config.envelope.max_playground),
            "end_point": str(config.envelope.end_point),
        },
        "programs": [
            {
                "jogs": r.jogs,
                "file": r.path.name,
                "spawn_key": list(r.spawn_key),
                "status": "ok" if r.ok else r.error_label,
                "lines": r.lines,
                **({"error": r.error} if r.error else {}),
            }
            for r in results
        ],
    }


def run_batch(
    config: AxisTesterConfig,
    jog_counts: Iterable[int] | None = None,
    *,
    seed: int | None = None,
    workers: int | None = None,
    write_manifest: bool = True,
) -> BatchReport:
    """Generate one program per jog count.

    Parameters
    ----------
    config : AxisTesterConfig
        Validated configuration; output directory and file names come
        from ``config.output``.
    jog_counts : iterable of int, optional
        Defaults to ``config.batch.jog_counts`` (``2**3 .. 2**10``).
        Duplicates are generated once.
    seed : int, optional
        Root seed; defaults to ``config.batch.seed`` (``None`` draws OS
        entropy).
    workers : int, optional
        Thread-pool size; defaults to ``config.batch.workers``.
    write_manifest : bool
        Write ``manifest.yaml`` into the output directory.

    Returns
    -------
    BatchReport
        Per-program results, in jog-count order as given.

    Raises
    ------
    InvalidConfiguration
        If the geometry cannot be derived or two jog counts would share
        a file (nothing is written).
    SinkWriteFailure
        If the manifest cannot be written.
    ValueError
        If a jog count is negative.
    """
    geometry = geometry_from_config(config)

    counts = list(dict.fromkeys(
        config.batch.jog_counts if jog_counts is None else jog_counts
    ))
    for jogs in counts:
        if jogs < 0:
            raise ValueError(f"jog counts must be >= 0, got {jogs}")

    paths = [config.program_path(jogs) for jogs in counts]
    if len(set(paths)) != len(paths):
        raise InvalidConfiguration(
            f"output.filename_template {config.output.filename_template!r} "
            f"maps several jog counts to the same file"
        )

    root = np.random.SeedSequence(config.batch.seed if seed is None else seed)
    children = root.spawn(len(counts))
    workers = config.batch.workers if workers is None else workers
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    logger.info(
        "Generating %d program(s) into %s (seed entropy %s, %d worker(s))",
        len(counts),
        config.output.directory,
        root.entropy,
        workers,
    )

    if workers == 1 or len(counts) <= 1:
        results = [
            _run_one(config, geometry, jogs, child)
            for jogs, child in zip(counts, children)
        ]
    else:
        # Each task runs in a copy of the caller's logging context
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(
                    contextvars.copy_context().run,
                    _run_one, config, geometry, jogs, child,
                )
                for jogs, child in zip(counts, children)
            ]
            results = [f.result() for f in futures]

    manifest_path = None
    if write_manifest:
        manifest_path = Path(config.output.directory) / MANIFEST_NAME
        try:
            fs.atomic_yaml_dump(
                _manifest(config, geometry, root.entropy, results), manifest_path
            )
        except OSError as exc:
            raise SinkWriteFailure(manifest_path, str(exc)) from exc
        logger.info("Wrote %s", manifest_path)

    report = BatchReport(
        seed_entropy=root.entropy,
        results=tuple(results),
        manifest_path=manifest_path,
    )
    if report.failures:
        logger.error(
            "%d of %d program(s) failed", len(report.failures), len(results)
        )
    return report
