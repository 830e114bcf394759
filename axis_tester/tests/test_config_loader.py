"""Tests for the axis configuration loader.

Validates that:
    - axis.yaml loads with the documented defaults
    - Numeric values arrive as Decimal, parsed from their string form
    - Every invariant violation raises InvalidConfiguration
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path

import pytest

from axis_tester.configs.loader import (
    PI,
    AxisTesterConfig,
    load_config,
    parse_config,
)
from axis_tester.errors import InvalidConfiguration


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_drivetrain(self, config: AxisTesterConfig) -> None:
        d = config.drivetrain
        assert d.units == "inch"
        assert d.units_gcode == "G20"
        assert d.steps_per_revolution == 200
        assert d.gear_reduction == 3
        assert d.pinion_circumference == PI
        assert d.microsteps_per_full_step == 10

    def test_values_are_exact_decimals(self, config: AxisTesterConfig) -> None:
        assert config.motion.max_velocity == Decimal("6.67")
        assert isinstance(config.motion.max_acceleration, Decimal)
        assert config.output.measurement_feed_rate == Decimal("50.0")

    def test_envelope(self, config: AxisTesterConfig) -> None:
        e = config.envelope
        assert (e.min_playground, e.max_playground, e.end_point) == (0, 8, 9)
        assert not e.contains(e.end_point)
        assert e.contains(Decimal("8"))

    def test_output(self, config: AxisTesterConfig) -> None:
        assert config.output.axis == "X"
        assert config.output.precision == 4
        assert config.output.filename_for(8) == "xtest0008.ngc"
        assert config.program_path(1024) == Path(".") / "xtest1024.ngc"

    def test_batch_jog_counts(self, config: AxisTesterConfig) -> None:
        assert config.batch.jog_counts == (8, 16, 32, 64, 128, 256, 512, 1024)
        assert config.batch.seed is None
        assert config.batch.workers == 1

    def test_logging(self, config: AxisTesterConfig) -> None:
        assert config.logging.log_level == "INFO"
        assert config.logging.log_file is None
        assert config.logging.json is False


# ---------------------------------------------------------------------------
# Alternative inputs
# ---------------------------------------------------------------------------


class TestAlternatives:
    def test_pinion_circumference_wins_over_diameter(self, make_config) -> None:
        cfg = make_config(machine={"pinion_circumference": 2.5})
        assert cfg.drivetrain.pinion_circumference == Decimal("2.5")

    def test_pinion_diameter_scales_pi(self, make_config) -> None:
        cfg = make_config(machine={"pinion_diameter": 2})
        assert cfg.drivetrain.pinion_circumference == 2 * PI

    def test_mm_units(self, make_config) -> None:
        cfg = make_config(machine={"units": "MM"})
        assert cfg.drivetrain.units_gcode == "G21"

    def test_lowercase_axis_normalised(self, make_config) -> None:
        cfg = make_config(output={"axis": "y"})
        assert cfg.output.axis == "Y"
        assert cfg.output.filename_for(8) == "ytest0008.ngc"

    def test_end_point_inside_envelope_allowed(self, make_config) -> None:
        cfg = make_config(envelope={"end_point": 4})
        assert cfg.envelope.contains(cfg.envelope.end_point)

    def test_seed_and_workers(self, make_config) -> None:
        cfg = make_config(batch={"seed": 42, "workers": 4})
        assert cfg.batch.seed == 42
        assert cfg.batch.workers == 4


# ---------------------------------------------------------------------------
# Rejection
# ---------------------------------------------------------------------------


class TestInvalid:
    @pytest.mark.parametrize(
        "section, values, match",
        [
            ("envelope", {"min_playground": 8}, "min_playground"),
            ("envelope", {"min_playground": 9}, "min_playground"),
            ("machine", {"steps_per_revolution": 0}, "steps_per_revolution"),
            ("machine", {"gear_reduction": -3}, "gear_reduction"),
            ("machine", {"microsteps_per_full_step": 1}, "microsteps_per_full_step"),
            ("machine", {"microsteps_per_full_step": 2.5}, "integer"),
            ("machine", {"units": "furlong"}, "units"),
            ("motion", {"max_velocity": "nan"}, "finite"),
            ("motion", {"max_acceleration": "fast"}, "number"),
            ("motion", {"max_velocity": True}, "number"),
            ("output", {"axis": "XY"}, "single letter"),
            ("output", {"axis": "1"}, "single letter"),
            ("output", {"precision": -1}, "precision"),
            ("output", {"precision": 13}, "precision"),
            ("output", {"measurement_feed_rate": 0}, "measurement_feed_rate"),
            ("output", {"filename_template": "{foo}.ngc"}, "filename_template"),
            ("output", {"filename_template": "xtest.ngc"}, r"\{jogs\}"),
            ("output", {"filename_template": "{axis}test.ngc"}, r"\{jogs\}"),
            ("batch", {"min_exponent": 5, "max_exponent": 4}, "exponent"),
            ("batch", {"workers": 0}, "workers"),
            ("batch", {"seed": -1}, "seed"),
            ("logging", {"log_level": "VERBOSE"}, "log_level"),
        ],
    )
    def test_rejects(self, make_config, section, values, match) -> None:
        with pytest.raises(InvalidConfiguration, match=match):
            make_config(**{section: values})

    def test_missing_section(self, raw_config) -> None:
        del raw_config["motion"]
        with pytest.raises(InvalidConfiguration, match="Missing required"):
            parse_config(raw_config)

    def test_missing_pinion(self, raw_config) -> None:
        del raw_config["machine"]["pinion_diameter"]
        with pytest.raises(InvalidConfiguration, match="pinion"):
            parse_config(raw_config)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(InvalidConfiguration, match="mapping"):
            parse_config(["machine"])

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(InvalidConfiguration, match="Empty"):
            load_config(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("machine: [unclosed\n")
        with pytest.raises(InvalidConfiguration, match="Malformed"):
            load_config(path)

    def test_unreadable_path(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidConfiguration, match="Cannot read"):
            load_config(tmp_path)

    def test_lowercase_log_level_accepted(self, make_config) -> None:
        assert make_config(logging={"log_level": "debug"}).logging.log_level == "DEBUG"
