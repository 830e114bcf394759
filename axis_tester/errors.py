"""Exception taxonomy for test-program generation.

Every failure the batch driver can report derives from
``AxisTesterError`` and carries a short ``label`` used in logs and the
batch manifest.  None of these are recovered locally.
"""

from __future__ import annotations

from pathlib import Path


class AxisTesterError(Exception):
    """Base class for all axis-tester failures."""

    label = "axis-tester-error"


class InvalidConfiguration(AxisTesterError):
    """A machine, envelope or output setting is missing or invalid.

    Raised eagerly while loading the config or computing the machine
    geometry, before any program file is opened.
    """

    label = "invalid-configuration"


class DegenerateRange(AxisTesterError):
    """A random integer draw was asked for an empty or inverted range.

    Parameters
    ----------
    what : str
        Name of the quantity being drawn (``"full steps"``, ``"microsteps"``).
    low, high : int
        Inclusive bounds that were requested.
    """

    label = "degenerate-range"

    def __init__(self, what: str, low: int, high: int) -> None:
        super().__init__(
            f"Cannot draw {what}: range [{low}, {high}] is empty"
        )
        self.what = what
        self.low = low
        self.high = high


class SinkWriteFailure(AxisTesterError):
    """The output sink could not accept a write."""

    label = "sink-write-failure"

    def __init__(self, path: str | Path, reason: str) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = Path(path)
