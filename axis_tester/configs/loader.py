"""Configuration loader for the axis tester.

Loads and validates ``axis.yaml`` into typed, frozen dataclasses.  All
mechanical constants, the travel envelope and output settings come from
the config -- nothing is hardcoded in the generator.

Every length, velocity and feed value is stored as ``decimal.Decimal``
(parsed from its string form) so positions accumulated over a thousand
jogs carry no binary rounding drift.

Usage::

    from axis_tester.configs.loader import load_config
    cfg = load_config()                    # default path
    cfg = load_config("/custom/axis.yaml") # explicit path
"""

from __future__ import annotations

import logging
import string
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from axis_tester.errors import InvalidConfiguration
from src.utils.fs import load_yaml

logger = logging.getLogger(__name__)

PI = Decimal("3.141592653589793238462643383")

MAX_PRECISION = 12

UNITS_GCODE = {"inch": "G20", "mm": "G21"}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


# ---------------------------------------------------------------------------
# Dataclasses -- mirror the YAML structure
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DrivetrainConfig:
    """Motor, gear train and pinion that move the axis.

    Parameters
    ----------
    units : str
        ``"inch"`` or ``"mm"``; every linear value in the file uses it.
    steps_per_revolution : Decimal
        Motor full steps per revolution (200 for a 1.8 degree motor).
    gear_reduction : Decimal
        Motor revolutions per pinion revolution.
    pinion_circumference : Decimal
        Linear travel per pinion revolution.
    microsteps_per_full_step : int
        Driver microstep divisor (>= 2).
    """

    units: str
    steps_per_revolution: Decimal
    gear_reduction: Decimal
    pinion_circumference: Decimal
    microsteps_per_full_step: int

    @property
    def units_gcode(self) -> str:
        """Modal units word (``G20`` inch / ``G21`` mm)."""
        return UNITS_GCODE[self.units]


@dataclass(frozen=True)
class MotionConfig:
    """Motion-planner limits of the axis under test."""

    max_velocity: Decimal
    max_acceleration: Decimal


@dataclass(frozen=True)
class EnvelopeConfig:
    """Travel envelope the jogs wander in, plus the measurement point.

    ``end_point`` is where the dial indicator sits; it may lie outside
    ``[min_playground, max_playground]``.
    """

    min_playground: Decimal
    max_playground: Decimal
    end_point: Decimal

    def contains(self, position: Decimal) -> bool:
        return self.min_playground <= position <= self.max_playground


@dataclass(frozen=True)
class OutputConfig:
    """How programs are rendered and where they are written."""

    axis: str
    precision: int
    measurement_feed_rate: Decimal
    directory: str
    filename_template: str

    def filename_for(self, jogs: int) -> str:
        """Program file name for a run of *jogs* jogs."""
        return self.filename_template.format(axis=self.axis.lower(), jogs=jogs)


@dataclass(frozen=True)
class BatchConfig:
    """Which jog counts a batch run produces and how."""

    min_exponent: int
    max_exponent: int
    seed: int | None
    workers: int

    @property
    def jog_counts(self) -> tuple[int, ...]:
        """``2**i`` for every exponent in the inclusive range."""
        return tuple(
            1 << i for i in range(self.min_exponent, self.max_exponent + 1)
        )


@dataclass(frozen=True)
class LoggingConfig:
    """Arguments forwarded to ``setup_logging``."""

    log_level: str = "INFO"
    log_file: str | None = None
    json: bool = False


@dataclass(frozen=True)
class AxisTesterConfig:
    """Complete configuration loaded from ``axis.yaml``."""

    drivetrain: DrivetrainConfig
    motion: MotionConfig
    envelope: EnvelopeConfig
    output: OutputConfig
    batch: BatchConfig
    logging: LoggingConfig

    def program_path(self, jogs: int) -> Path:
        """Absolute-or-relative path of the program for *jogs* jogs."""
        return Path(self.output.directory) / self.output.filename_for(jogs)


# ---------------------------------------------------------------------------
# Internal parsing helpers
# ---------------------------------------------------------------------------


def _decimal(section: str, key: str, value: Any) -> Decimal:
    """Convert a YAML scalar to ``Decimal`` via its string form."""
    if isinstance(value, bool) or value is None:
        raise InvalidConfiguration(
            f"{section}.{key} must be a number, got {value!r}"
        )
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidConfiguration(
            f"{section}.{key} must be a number, got {value!r}"
        ) from exc
    if not result.is_finite():
        raise InvalidConfiguration(
            f"{section}.{key} must be finite, got {value!r}"
        )
    return result


def _positive(section: str, key: str, value: Any) -> Decimal:
    result = _decimal(section, key, value)
    if result <= 0:
        raise InvalidConfiguration(
            f"{section}.{key} must be > 0, got {value!r}"
        )
    return result


def _integer(section: str, key: str, value: Any) -> int:
    """Accept ints (and integral decimals such as ``10.0``), reject bools."""
    if isinstance(value, bool):
        raise InvalidConfiguration(
            f"{section}.{key} must be an integer, got {value!r}"
        )
    number = _decimal(section, key, value)
    if number != number.to_integral_value():
        raise InvalidConfiguration(
            f"{section}.{key} must be an integer, got {value!r}"
        )
    return int(number)


def _parse_drivetrain(data: dict[str, Any]) -> DrivetrainConfig:
    """Parse the ``machine`` section."""
    units = str(data.get("units", "inch")).lower()

    if "pinion_circumference" in data:
        circumference = _positive(
            "machine", "pinion_circumference", data["pinion_circumference"]
        )
    elif "pinion_diameter" in data:
        circumference = PI * _positive(
            "machine", "pinion_diameter", data["pinion_diameter"]
        )
    else:
        raise InvalidConfiguration(
            "machine needs either pinion_circumference or pinion_diameter"
        )

    return DrivetrainConfig(
        units=units,
        steps_per_revolution=_positive(
            "machine", "steps_per_revolution", data["steps_per_revolution"]
        ),
        gear_reduction=_positive(
            "machine", "gear_reduction", data["gear_reduction"]
        ),
        pinion_circumference=circumference,
        microsteps_per_full_step=_integer(
            "machine",
            "microsteps_per_full_step",
            data["microsteps_per_full_step"],
        ),
    )


def _parse_envelope(data: dict[str, Any]) -> EnvelopeConfig:
    return EnvelopeConfig(
        min_playground=_decimal(
            "envelope", "min_playground", data["min_playground"]
        ),
        max_playground=_decimal(
            "envelope", "max_playground", data["max_playground"]
        ),
        end_point=_decimal("envelope", "end_point", data["end_point"]),
    )


def _parse_output(data: dict[str, Any]) -> OutputConfig:
    return OutputConfig(
        axis=str(data.get("axis", "X")).upper(),
        precision=_integer("output", "precision", data.get("precision", 4)),
        measurement_feed_rate=_positive(
            "output",
            "measurement_feed_rate",
            data.get("measurement_feed_rate", 50),
        ),
        directory=str(data.get("directory", ".")),
        filename_template=str(
            data.get("filename_template", "{axis}test{jogs:04d}.ngc")
        ),
    )


def _parse_batch(data: dict[str, Any]) -> BatchConfig:
    seed = data.get("seed")
    return BatchConfig(
        min_exponent=_integer("batch", "min_exponent", data.get("min_exponent", 3)),
        max_exponent=_integer("batch", "max_exponent", data.get("max_exponent", 10)),
        seed=None if seed is None else _integer("batch", "seed", seed),
        workers=_integer("batch", "workers", data.get("workers", 1)),
    )


def _parse_logging(data: dict[str, Any]) -> LoggingConfig:
    log_file = data.get("log_file")
    return LoggingConfig(
        log_level=str(data.get("log_level", "INFO")).upper(),
        log_file=None if log_file is None else str(log_file),
        json=bool(data.get("json", False)),
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(cfg: AxisTesterConfig) -> None:
    """Validate cross-field consistency.

    Called by ``load_config`` and again by the CLI after applying
    command-line overrides.

    Raises
    ------
    InvalidConfiguration
        On any invalid combination.
    """
    d = cfg.drivetrain
    if d.units not in UNITS_GCODE:
        raise InvalidConfiguration(
            f"machine.units must be one of {sorted(UNITS_GCODE)}, "
            f"got {d.units!r}"
        )
    if d.microsteps_per_full_step < 2:
        raise InvalidConfiguration(
            f"machine.microsteps_per_full_step must be >= 2, "
            f"got {d.microsteps_per_full_step}"
        )

    # -- Envelope ordering ---------------------------------------------------
    e = cfg.envelope
    if e.min_playground >= e.max_playground:
        raise InvalidConfiguration(
            f"envelope.min_playground ({e.min_playground}) must be below "
            f"max_playground ({e.max_playground})"
        )

    # -- Output ----------------------------------------------------------------
    o = cfg.output
    if len(o.axis) != 1 or o.axis not in string.ascii_uppercase:
        raise InvalidConfiguration(
            f"output.axis must be a single letter, got {o.axis!r}"
        )
    if not 0 <= o.precision <= MAX_PRECISION:
        raise InvalidConfiguration(
            f"output.precision must be in [0, {MAX_PRECISION}], "
            f"got {o.precision}"
        )
    try:
        distinct = o.filename_for(8) != o.filename_for(16)
    except (KeyError, IndexError, ValueError) as exc:
        raise InvalidConfiguration(
            f"output.filename_template {o.filename_template!r} is invalid; "
            f"it may use {{axis}} and {{jogs}} only ({exc})"
        ) from exc
    if not distinct:
        raise InvalidConfiguration(
            f"output.filename_template {o.filename_template!r} must contain "
            f"{{jogs}} so every program gets its own file"
        )

    # -- Batch -----------------------------------------------------------------
    b = cfg.batch
    if b.min_exponent < 0 or b.min_exponent > b.max_exponent:
        raise InvalidConfiguration(
            f"batch exponents must satisfy 0 <= min_exponent <= max_exponent, "
            f"got [{b.min_exponent}, {b.max_exponent}]"
        )
    if b.seed is not None and b.seed < 0:
        raise InvalidConfiguration(f"batch.seed must be >= 0, got {b.seed}")
    if b.workers < 1:
        raise InvalidConfiguration(f"batch.workers must be >= 1, got {b.workers}")

    if cfg.logging.log_level not in LOG_LEVELS:
        raise InvalidConfiguration(
            f"logging.log_level must be one of {list(LOG_LEVELS)}, "
            f"got {cfg.logging.log_level!r}"
        )

    # -- Measurement point outside the envelope is normal; note it ------------
    if not e.contains(e.end_point):
        logger.debug(
            "End point %s lies outside envelope [%s, %s]",
            e.end_point,
            e.min_playground,
            e.max_playground,
        )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_config(data: dict[str, Any]) -> AxisTesterConfig:
    """Build and validate a config from an already-parsed mapping.

    Raises
    ------
    InvalidConfiguration
        If any field is missing or fails validation.
    """
    if not isinstance(data, dict):
        raise InvalidConfiguration(
            f"Configuration must be a mapping, got {type(data).__name__}"
        )
    try:
        config = AxisTesterConfig(
            drivetrain=_parse_drivetrain(data["machine"]),
            motion=MotionConfig(
                max_velocity=_positive(
                    "motion", "max_velocity", data["motion"]["max_velocity"]
                ),
                max_acceleration=_positive(
                    "motion",
                    "max_acceleration",
                    data["motion"]["max_acceleration"],
                ),
            ),
            envelope=_parse_envelope(data["envelope"]),
            output=_parse_output(data.get("output") or {}),
            batch=_parse_batch(data.get("batch") or {}),
            logging=_parse_logging(data.get("logging") or {}),
        )
    except KeyError as exc:
        raise InvalidConfiguration(
            f"Missing required configuration key: {exc}"
        ) from exc
    except (TypeError, AttributeError) as exc:
        raise InvalidConfiguration(
            f"Invalid configuration value: {exc}"
        ) from exc

    validate_config(config)
    return config


def load_config(path: str | Path | None = None) -> AxisTesterConfig:
    """Load and validate the axis tester configuration from YAML.

    Parameters
    ----------
    path : str | Path | None
        Path to ``axis.yaml``.  ``None`` loads the default shipped
        alongside this module.

    Returns
    -------
    AxisTesterConfig
        Fully validated, frozen configuration object.

    Raises
    ------
    InvalidConfiguration
        If the file is empty, unreadable or not valid YAML, or any field
        is missing or fails validation.
    FileNotFoundError
        If *path* does not exist.
    """
    if path is None:
        path = Path(__file__).parent / "axis.yaml"
    else:
        path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info("Loading configuration from %s", path)

    try:
        data = load_yaml(path)
    except yaml.YAMLError as exc:
        raise InvalidConfiguration(f"Malformed configuration file: {exc}") from exc
    except OSError as exc:
        raise InvalidConfiguration(
            f"Cannot read configuration file {path}: {exc}"
        ) from exc
    if data is None:
        raise InvalidConfiguration(f"Empty configuration file: {path}")

    config = parse_config(data)
    logger.info("Configuration loaded successfully")
    return config
