"""Motion requests exchanged between the jog generator and output sinks."""

from axis_tester.job_ir.operations import (
    Comment,
    FeedMove,
    Operation,
    Program,
    ProgramEnd,
    RapidMove,
    RawLine,
)

__all__ = [
    "Comment",
    "FeedMove",
    "Operation",
    "Program",
    "ProgramEnd",
    "RapidMove",
    "RawLine",
]
