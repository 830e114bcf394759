"""Step geometry and accel/decel distance of the axis under test."""

from axis_tester.kinematics.step_geometry import (
    MachineGeometry,
    compute_geometry,
    geometry_from_config,
    max_velocity_distance,
)

__all__ = [
    "MachineGeometry",
    "compute_geometry",
    "geometry_from_config",
    "max_velocity_distance",
]
