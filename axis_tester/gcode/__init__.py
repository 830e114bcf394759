"""
G-code generation module.

Renders Job IR operations as motion-control text and writes complete
programs atomically.
"""

from axis_tester.gcode.generator import GCodeError, GCodeGenerator
from axis_tester.gcode.sink import GCodeFileSink

__all__ = ["GCodeError", "GCodeFileSink", "GCodeGenerator"]
