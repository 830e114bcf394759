"""Shared fixtures: default config, config factory, scripted random source."""

from __future__ import annotations

import copy
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import pytest

from axis_tester.configs.loader import AxisTesterConfig, load_config, parse_config
from src.utils.fs import load_yaml

DEFAULT_YAML = Path(__file__).resolve().parents[1] / "configs" / "axis.yaml"


class ScriptedRng:
    """Stand-in for ``numpy.random.Generator`` returning queued integers.

    Records every ``(low, high, endpoint)`` request in ``calls``.
    """

    def __init__(self, values: list[int]) -> None:
        self.values = list(values)
        self.calls: list[tuple[int, int, bool]] = []

    def integers(self, low: int, high: int, *, endpoint: bool = False) -> int:
        self.calls.append((low, high, endpoint))
        return self.values.pop(0)


@pytest.fixture()
def config() -> AxisTesterConfig:
    """Load the default axis.yaml shipped with the package."""
    return load_config()


@pytest.fixture()
def raw_config() -> dict[str, Any]:
    """Deep copy of the shipped YAML as a plain mapping."""
    return copy.deepcopy(load_yaml(DEFAULT_YAML))


@pytest.fixture()
def make_config(raw_config: dict[str, Any]) -> Callable[..., AxisTesterConfig]:
    """Build a config from the defaults with ``section={key: value}`` overrides."""

    def _make(**sections: dict[str, Any]) -> AxisTesterConfig:
        data = copy.deepcopy(raw_config)
        for section, values in sections.items():
            data.setdefault(section, {}).update(values)
        return parse_config(data)

    return _make


@pytest.fixture()
def out_config(config: AxisTesterConfig, tmp_path: Path) -> AxisTesterConfig:
    """Default config writing into a temporary directory."""
    return replace(config, output=replace(config.output, directory=str(tmp_path)))


@pytest.fixture()
def scripted_rng() -> Callable[[list[int]], ScriptedRng]:
    """Factory: ``scripted_rng([100, 5])`` draws 100 then 5."""
    return ScriptedRng
