"""Jog sequence generator -- the missed-microstep test pattern.

Each jog alternates direction and travels a random whole number of full
steps (at least two) **plus** one to ``microsteps_per_full_step - 1``
microsteps, so every target sits between full-step detents.  A driver
that cannot hold a microstep position slides to a detent, and the error
accumulates until the dial indicator reads it at the end point.

Distance bound:
    The farthest a jog may go is the room left to the envelope edge it
    is heading for, but never less than ``max_velocity_distance``.  Near
    an edge the generator prefers giving the motor a full
    accelerate/decelerate cycle over staying inside the envelope, so a
    target *can* land beyond ``[min_playground, max_playground]``.  This
    is logged at WARNING and otherwise left alone.

Rounding:
    Each target is rounded (half-to-even) to ``precision`` places before
    it is emitted and before it becomes the new current position, so
    the tracked state and the written program never disagree.

State:
    ``GeneratorState`` is an immutable value; ``choose_jog`` maps
    ``(state, random source) -> (new state, JogCommand)``.
    ``JogSequenceGenerator`` owns one state and one random source per
    instance, so independent instances can run in parallel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Callable, Protocol

import numpy as np

from axis_tester.configs.loader import AxisTesterConfig, EnvelopeConfig
from axis_tester.errors import DegenerateRange
from axis_tester.job_ir.operations import (
    Comment,
    FeedMove,
    Operation,
    Program,
    ProgramEnd,
    RapidMove,
    RawLine,
)
from axis_tester.kinematics.step_geometry import MachineGeometry, geometry_from_config

logger = logging.getLogger(__name__)

MIN_FULL_STEPS = 2
MIN_MICRO_STEPS = 1

Sink = Callable[[Operation], None]


class IntegerSource(Protocol):
    """The slice of ``numpy.random.Generator`` the jog logic uses."""

    def integers(self, low: int, high: int, *, endpoint: bool = ...) -> int: ...


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratorState:
    """Position and heading carried from one jog to the next.

    Parameters
    ----------
    current_position : Decimal
        Last commanded position, already rounded to ``precision``.
        Starts at 0 (logical origin), independent of the end point.
    last_direction : int
        Sign of the previous jog; the next jog goes the other way.
    precision : int
        Decimal places of every emitted position.
    """

    current_position: Decimal
    last_direction: int
    precision: int

    @classmethod
    def initial(cls, envelope: EnvelopeConfig, precision: int) -> GeneratorState:
        """Fresh state heading from the end point into the envelope.

        ``last_direction`` is the sign of ``max_playground - end_point``
        so the first jog goes the opposite way.  A zero difference is
        treated as +1 (first jog heads down from the upper edge).
        """
        heading = sign(envelope.max_playground - envelope.end_point) or 1
        return cls(
            current_position=Decimal(0),
            last_direction=heading,
            precision=precision,
        )


@dataclass(frozen=True)
class JogCommand:
    """One generated jog.

    ``distance`` is the signed movement before rounding; ``target`` is
    the rounded absolute position that was emitted.
    """

    direction: int
    full_steps: int
    micro_steps: int
    distance: Decimal
    target: Decimal


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def sign(value: Decimal) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def quantize(value: Decimal, precision: int) -> Decimal:
    """Round *value* half-to-even to *precision* decimal places."""
    return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_EVEN)


def draw_integer(rng: IntegerSource, low: int, high: int, what: str) -> int:
    """Uniform integer in ``[low, high]`` inclusive.

    Raises
    ------
    DegenerateRange
        If ``high < low``.
    """
    if high < low:
        raise DegenerateRange(what, low, high)
    return int(rng.integers(low, high, endpoint=True))


def choose_direction(state: GeneratorState) -> tuple[GeneratorState, int]:
    """Flip the heading.  Returns the new state and the new direction."""
    direction = -state.last_direction
    return replace(state, last_direction=direction), direction


def max_jog_distance(
    position: Decimal,
    direction: int,
    envelope: EnvelopeConfig,
    geometry: MachineGeometry,
) -> Decimal:
    """Upper bound on the next jog's length.

    Room to the envelope edge in *direction*, raised to at least
    ``max_velocity_distance``.
    """
    edge = envelope.min_playground if direction < 0 else envelope.max_playground
    return max(abs(edge - position), geometry.max_velocity_distance)


def draw_jog_steps(
    position: Decimal,
    direction: int,
    envelope: EnvelopeConfig,
    geometry: MachineGeometry,
    rng: IntegerSource,
) -> tuple[int, int]:
    """Draw ``(full_steps, micro_steps)`` for a jog from *position*."""
    limit = max_jog_distance(position, direction, envelope, geometry)
    max_full_steps = geometry.full_steps_within(limit)
    full_steps = draw_integer(rng, MIN_FULL_STEPS, max_full_steps, "full steps")
    micro_steps = draw_integer(
        rng,
        MIN_MICRO_STEPS,
        geometry.microsteps_per_full_step - 1,
        "microsteps",
    )
    return full_steps, micro_steps


def jog_distance(
    direction: int,
    full_steps: int,
    micro_steps: int,
    geometry: MachineGeometry,
) -> Decimal:
    """Movement for the drawn steps.

    The microstep offset is always added in the positive sense; only the
    full-step part follows *direction*.
    """
    return (
        direction * full_steps * geometry.full_step_distance
        + micro_steps * geometry.micro_step_distance
    )


@dataclass(frozen=True)
class JogDistance:
    """Drawn steps of one jog and the movement they add up to."""

    full_steps: int
    micro_steps: int
    distance: Decimal


def choose_distance(
    state: GeneratorState,
    direction: int,
    envelope: EnvelopeConfig,
    geometry: MachineGeometry,
    rng: IntegerSource,
) -> JogDistance:
    """Random step-quantised movement for a jog in *direction*."""
    full_steps, micro_steps = draw_jog_steps(
        state.current_position, direction, envelope, geometry, rng
    )
    return JogDistance(
        full_steps=full_steps,
        micro_steps=micro_steps,
        distance=jog_distance(direction, full_steps, micro_steps, geometry),
    )


def choose_jog(
    state: GeneratorState,
    envelope: EnvelopeConfig,
    geometry: MachineGeometry,
    rng: IntegerSource,
) -> tuple[GeneratorState, JogCommand]:
    """One full state transition: direction, distance, rounded target."""
    state, direction = choose_direction(state)
    move = choose_distance(state, direction, envelope, geometry, rng)
    target = quantize(state.current_position + move.distance, state.precision)
    command = JogCommand(
        direction=direction,
        full_steps=move.full_steps,
        micro_steps=move.micro_steps,
        distance=move.distance,
        target=target,
    )
    return replace(state, current_position=target), command


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------


class JogSequenceGenerator:
    """Build one missed-microstep test program at a time.

    Parameters
    ----------
    config : AxisTesterConfig
        Validated configuration.
    geometry : MachineGeometry | None
        Precomputed step geometry; derived from *config* when ``None``.
    rng : numpy.random.Generator | None
        Random source owned by this instance.  When ``None`` a fresh
        ``numpy.random.default_rng(seed)`` is created.
    seed : int | numpy.random.SeedSequence | None
        Seed for the default random source; ignored when *rng* is given.
    """

    def __init__(
        self,
        config: AxisTesterConfig,
        geometry: MachineGeometry | None = None,
        rng: IntegerSource | None = None,
        seed: int | np.random.SeedSequence | None = None,
    ) -> None:
        self._cfg = config
        self._geometry = geometry if geometry is not None else geometry_from_config(config)
        self._rng = rng if rng is not None else np.random.default_rng(seed)
        self.state = GeneratorState.initial(config.envelope, config.output.precision)

    @property
    def geometry(self) -> MachineGeometry:
        return self._geometry

    # ------------------------------------------------------------------
    # Single-step operations
    # ------------------------------------------------------------------

    def choose_direction(self) -> int:
        """Flip and return the heading (strictly alternates)."""
        self.state, direction = choose_direction(self.state)
        return direction

    def choose_distance(self, direction: int) -> Decimal:
        """Random movement for a jog in *direction* from the current position."""
        return choose_distance(
            self.state, direction, self._cfg.envelope, self._geometry, self._rng
        ).distance

    def jog_once(self, sink: Sink | None = None) -> JogCommand:
        """Generate one jog, emit its rapid move and commit the new position."""
        self.state, command = choose_jog(
            self.state, self._cfg.envelope, self._geometry, self._rng
        )
        logger.debug(
            "Jog dir=%+d full=%d micro=%d -> %s",
            command.direction,
            command.full_steps,
            command.micro_steps,
            command.target,
        )
        if not self._cfg.envelope.contains(command.target):
            logger.warning(
                "Jog target %s outside envelope [%s, %s]",
                command.target,
                self._cfg.envelope.min_playground,
                self._cfg.envelope.max_playground,
            )
        if sink is not None:
            sink(RapidMove(axis=self._cfg.output.axis, position=command.target))
        return command

    # ------------------------------------------------------------------
    # Whole program
    # ------------------------------------------------------------------

    def preamble(self) -> list[Operation]:
        """Modal-state setup: plane, units, offsets, absolute, feed/min; spindle and coolant off."""
        units = self._cfg.drivetrain.units
        units_word = self._cfg.drivetrain.units_gcode
        return [
            Comment("sane defaults"),
            Comment(
                f"XY plane, {units} mode, cancel diameter compensation, "
                "cancel length offset, coordinate system 1, Cancel Canned Cycle, "
                "Absolute distance mode, feed/minute mode"
            ),
            RawLine(f"G17 {units_word} G40 G49 G54 G80 G90 G94"),
            Comment("spindle stop, coolant off"),
            RawLine("M5 M9"),
        ]

    def generate_program(self, jog_count: int, sink: Sink | None = None) -> Program:
        """Generate a complete test program.

        Parameters
        ----------
        jog_count : int
            Number of random jogs (>= 0).
        sink : callable, optional
            Receives every operation as soon as it is produced.

        Returns
        -------
        Program
            All operations in emission order: preamble, *jog_count*
            rapid moves, rapid to ``max_playground``, feed move to
            ``end_point`` at the measurement feed rate, program end.

        Raises
        ------
        ValueError
            If *jog_count* is negative.
        DegenerateRange
            If a jog's step draw has an empty range.
        """
        if jog_count < 0:
            raise ValueError(f"jog_count must be >= 0, got {jog_count}")

        self.state = GeneratorState.initial(
            self._cfg.envelope, self._cfg.output.precision
        )
        program: Program = []

        def emit(op: Operation) -> None:
            program.append(op)
            if sink is not None:
                sink(op)

        for op in self.preamble():
            emit(op)

        for _ in range(jog_count):
            self.jog_once(emit)

        axis = self._cfg.output.axis
        envelope = self._cfg.envelope
        emit(RapidMove(axis=axis, position=envelope.max_playground))
        emit(
            FeedMove(
                axis=axis,
                position=envelope.end_point,
                feed_rate=self._cfg.output.measurement_feed_rate,
            )
        )
        emit(ProgramEnd())

        logger.debug("Generated program with %d jogs", jog_count)
        return program
