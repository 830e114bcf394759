"""Step geometry -- linear distances derived from the drivetrain.

Three constants drive the jog generator:

    full_step_distance = 1 / (steps_per_revolution * gear_reduction
                              / pinion_circumference)
    micro_step_distance = full_step_distance / microsteps_per_full_step
    max_velocity_distance = max_velocity ** 2 / max_acceleration

``max_velocity_distance`` is the travel consumed by a triangular
profile: ``v**2 / (2a)`` to reach top speed, the same again to stop.

All arithmetic is ``Decimal``; the values are computed once per run and
are immutable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from axis_tester.errors import InvalidConfiguration

if TYPE_CHECKING:
    from axis_tester.configs.loader import AxisTesterConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MachineGeometry:
    """Linear distances of one motor step, one microstep and one
    accelerate-then-decelerate cycle.

    Invariant: all three are positive and
    ``micro_step_distance < full_step_distance``.
    """

    full_step_distance: Decimal
    micro_step_distance: Decimal
    max_velocity_distance: Decimal
    microsteps_per_full_step: int

    def full_steps_within(self, distance: Decimal) -> int:
        """Whole full steps that fit in *distance* (floor)."""
        return int(distance // self.full_step_distance)


def _require_positive(name: str, value: Decimal | int) -> Decimal:
    value = Decimal(value)
    if not value.is_finite() or value <= 0:
        raise InvalidConfiguration(f"{name} must be positive and finite, got {value}")
    return value


def max_velocity_distance(max_velocity: Decimal, max_acceleration: Decimal) -> Decimal:
    """Distance needed to accelerate to *max_velocity* and decelerate to 0."""
    max_velocity = _require_positive("max_velocity", max_velocity)
    max_acceleration = _require_positive("max_acceleration", max_acceleration)
    return max_velocity * max_velocity / max_acceleration


def compute_geometry(
    steps_per_revolution: Decimal | int,
    gear_reduction: Decimal | int,
    pinion_circumference: Decimal | int,
    microsteps_per_full_step: int,
    max_velocity: Decimal | int,
    max_acceleration: Decimal | int,
) -> MachineGeometry:
    """Derive the step geometry from mechanical constants.

    Pure function: identical inputs give identical outputs.

    Raises
    ------
    InvalidConfiguration
        If any input is non-positive or non-finite, or if fewer than two
        microsteps per full step are configured.
    """
    steps = _require_positive("steps_per_revolution", steps_per_revolution)
    reduction = _require_positive("gear_reduction", gear_reduction)
    circumference = _require_positive("pinion_circumference", pinion_circumference)
    if isinstance(microsteps_per_full_step, bool) or not isinstance(
        microsteps_per_full_step, int
    ):
        raise InvalidConfiguration(
            f"microsteps_per_full_step must be an integer, got {microsteps_per_full_step!r}"
        )
    if microsteps_per_full_step < 2:
        raise InvalidConfiguration(
            f"microsteps_per_full_step must be >= 2, got {microsteps_per_full_step}"
        )

    full_step = 1 / (steps * reduction / circumference)
    micro_step = full_step / microsteps_per_full_step

    return MachineGeometry(
        full_step_distance=full_step,
        micro_step_distance=micro_step,
        max_velocity_distance=max_velocity_distance(max_velocity, max_acceleration),
        microsteps_per_full_step=int(microsteps_per_full_step),
    )


def geometry_from_config(config: AxisTesterConfig) -> MachineGeometry:
    """Compute the geometry for a loaded configuration."""
    d = config.drivetrain
    m = config.motion
    geometry = compute_geometry(
        steps_per_revolution=d.steps_per_revolution,
        gear_reduction=d.gear_reduction,
        pinion_circumference=d.pinion_circumference,
        microsteps_per_full_step=d.microsteps_per_full_step,
        max_velocity=m.max_velocity,
        max_acceleration=m.max_acceleration,
    )
    logger.debug(
        "Geometry: full step %s, microstep %s, accel/decel distance %s %s",
        geometry.full_step_distance,
        geometry.micro_step_distance,
        geometry.max_velocity_distance,
        d.units,
    )
    return geometry
