"""
Axis Tester Package.

Generates open-loop CNC test programs that probe stepper "missed
microstep" behaviour on one axis: alternating jogs to sub-full-step
positions inside a travel envelope, then a slow return to a dial
indicator for measurement.

Subpackages:
    configs: Axis configuration loading and validation
    kinematics: Full-step, microstep and accel/decel distances
    job_ir: Motion requests exchanged between generator and output sink
    jog: Jog sequence generation (direction / distance selection)
    gcode: G-code rendering and atomic program files
    scripts: Command-line entrypoints
"""

__version__ = "1.0.0"

__all__ = ["configs", "kinematics", "job_ir", "jog", "gcode", "scripts"]
