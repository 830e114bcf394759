"""Job IR operations -- what the jog generator asks the sink to emit.

Every request is an immutable, slotted dataclass.  Operations carry
**numeric** values (``Decimal`` positions in config units); choosing
mnemonics, number formatting and line layout is the job of the G-code
generator, not of the jog logic.

Vocabulary
----------
``Comment`` / ``RawLine``
    Fixed preamble text, opaque to the jog logic.
``RapidMove``
    Rapid positioning of one axis to an absolute position.
``FeedMove``
    Controlled-speed move of one axis at a feed rate (units/min).
``ProgramEnd``
    End-of-program marker.
"""

from __future__ import annotations

import string
from abc import ABC
from dataclasses import dataclass
from decimal import Decimal

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

Program = list["Operation"]
"""A complete test program, in emission order."""


def _check_axis(axis: str) -> None:
    if len(axis) != 1 or axis not in string.ascii_uppercase:
        raise ValueError(f"axis must be a single letter A-Z, got {axis!r}")


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Operation(ABC):
    """Base class for all program operations."""

    pass


# ---------------------------------------------------------------------------
# Text operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Comment(Operation):
    """Parenthesised comment line.

    Parameters
    ----------
    text : str
        Comment body, without the parentheses.  Must not contain ``)``.
    """

    text: str

    def __post_init__(self) -> None:
        if ")" in self.text or "\n" in self.text:
            raise ValueError(f"comment text cannot contain ')' or newlines: {self.text!r}")


@dataclass(frozen=True, slots=True)
class RawLine(Operation):
    """A literal modal-state line such as ``M5 M9``, emitted verbatim."""

    text: str

    def __post_init__(self) -> None:
        if "\n" in self.text:
            raise ValueError(f"raw line cannot contain newlines: {self.text!r}")


# ---------------------------------------------------------------------------
# Motion operations  (absolute positions, config units)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RapidMove(Operation):
    """Rapid positioning to an absolute position.

    Parameters
    ----------
    axis : str
        Single axis letter, e.g. ``"X"``.
    position : Decimal
        Target position.
    """

    axis: str
    position: Decimal

    def __post_init__(self) -> None:
        _check_axis(self.axis)


@dataclass(frozen=True, slots=True)
class FeedMove(Operation):
    """Linear move at a controlled feed rate.

    Parameters
    ----------
    axis : str
        Single axis letter.
    position : Decimal
        Target position.
    feed_rate : Decimal
        Feed rate in units/min, > 0.
    """

    axis: str
    position: Decimal
    feed_rate: Decimal

    def __post_init__(self) -> None:
        _check_axis(self.axis)
        if self.feed_rate <= 0:
            raise ValueError(f"feed_rate must be > 0, got {self.feed_rate}")


@dataclass(frozen=True, slots=True)
class ProgramEnd(Operation):
    """End of program (rewind and reset modal state)."""

    pass
