"""G-code generator -- Job IR operations to G-code text.

Dialect (LinuxCNC style, one block per line):

    RapidMove  -> ``G0 X1.2345``
    FeedMove   -> ``G1 X9.0000 F50.0``
    Comment    -> ``( text )``
    RawLine    -> emitted verbatim
    ProgramEnd -> ``M2``

Positions are rendered with exactly ``precision`` decimals (rounded
half-to-even, the same rounding the jog generator applies to its state),
feed rates with one decimal.  Feed rates are already units/min in the
Job IR, so no conversion happens here.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from io import StringIO
from typing import Iterable, TextIO

from axis_tester.errors import AxisTesterError
from axis_tester.jog.generator import quantize
from axis_tester.job_ir.operations import (
    Comment,
    FeedMove,
    Operation,
    ProgramEnd,
    RapidMove,
    RawLine,
)

logger = logging.getLogger(__name__)

G_RAPID = "G0"
G_FEED = "G1"
FEED_WORD = "F"
M_PROGRAM_END = "M2"


class GCodeError(AxisTesterError):
    """Raised when an operation cannot be rendered."""

    label = "gcode-error"


class GCodeGenerator:
    """Convert Job IR operations to G-code lines.

    Parameters
    ----------
    precision : int
        Decimal places for every position word.
    """

    def __init__(self, precision: int) -> None:
        if precision < 0:
            raise ValueError(f"precision must be >= 0, got {precision}")
        self._precision = precision

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, operations: Iterable[Operation]) -> str:
        """Render a whole program to a string (one line per operation)."""
        buf = StringIO()
        self.write(operations, buf)
        return buf.getvalue()

    def write(self, operations: Iterable[Operation], stream: TextIO) -> int:
        """Render *operations* onto *stream*.  Returns the line count."""
        count = 0
        for op in operations:
            stream.write(self.format_op(op))
            stream.write("\n")
            count += 1
        return count

    def format_op(self, op: Operation) -> str:
        """Render a single operation as one G-code line.

        Raises
        ------
        GCodeError
            For an operation type this dialect does not know.
        """
        if isinstance(op, RapidMove):
            return self._movement(G_RAPID, op.axis, op.position)
        if isinstance(op, FeedMove):
            return (
                f"{self._movement(G_FEED, op.axis, op.position)} "
                f"{FEED_WORD}{op.feed_rate:.1f}"
            )
        if isinstance(op, Comment):
            return f"( {op.text} )"
        if isinstance(op, RawLine):
            return op.text
        if isinstance(op, ProgramEnd):
            return M_PROGRAM_END
        raise GCodeError(f"Unsupported operation: {type(op).__name__}")

    def format_position(self, position: Decimal) -> str:
        """Fixed-point rendering with ``precision`` decimals; never ``-0``."""
        value = quantize(Decimal(position), self._precision)
        if value == 0:
            value = abs(value)
        return f"{value:.{self._precision}f}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _movement(self, word: str, axis: str, position: Decimal) -> str:
        return f"{word} {axis}{self.format_position(position)}"
