"""Axis configuration loading and validation."""

from axis_tester.configs.loader import (
    AxisTesterConfig,
    BatchConfig,
    DrivetrainConfig,
    EnvelopeConfig,
    LoggingConfig,
    MotionConfig,
    OutputConfig,
    load_config,
    parse_config,
    validate_config,
)

__all__ = [
    "AxisTesterConfig",
    "BatchConfig",
    "DrivetrainConfig",
    "EnvelopeConfig",
    "LoggingConfig",
    "MotionConfig",
    "OutputConfig",
    "load_config",
    "parse_config",
    "validate_config",
]
