"""Jog sequence generation."""

from axis_tester.jog.generator import (
    GeneratorState,
    JogCommand,
    JogDistance,
    JogSequenceGenerator,
    choose_direction,
    choose_distance,
    choose_jog,
)

__all__ = [
    "GeneratorState",
    "JogCommand",
    "JogDistance",
    "JogSequenceGenerator",
    "choose_direction",
    "choose_distance",
    "choose_jog",
]
