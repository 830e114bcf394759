"""Shared infrastructure for the axis tester.

Layering (strict one-way dependency):
    axis_tester/scripts → axis_tester/{batch,jog,gcode,...} → src/utils/

Nothing in src/ imports from axis_tester.
"""
