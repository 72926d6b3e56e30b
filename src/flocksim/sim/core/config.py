from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from ..utils.color import parse_hex
from ..utils.math2d import _clamp_value

logger = logging.getLogger(__name__)

MIN_SCALE = 0.01
SPEED_SLIDER_MIN = 1
SPEED_SLIDER_MAX = 30

# Changing any of these discards the population and seeds a new one.
RESEED_KEYS = frozenset({"num_boids", "constant_speed"})
COLOR_KEYS = ("boid_color", "trail_color")


@dataclass(frozen=True)
class SimulationSettings:
    # Population
    num_boids: int = 100
    scale: float = 1.0

    # Appearance
    boid_color: str = "#558cf4"
    trail_color: str = "#558cf4"
    draw_trail: bool = False

    # Movement
    speed_limit: float = 15.0
    min_speed_limit: float = 5.0
    constant_speed: bool = False
    constant_speed_value: float = 10.0
    wraparound_mode: bool = False

    # Flocking
    visual_range: float = 75.0
    centering_factor: float = 0.005
    min_distance: float = 20.0
    avoid_factor: float = 0.05
    matching_factor: float = 0.05

    # Boundary (ignored in wraparound mode)
    margin_fraction: float = 0.1
    turn_factor: float = 1.0

    # False reads neighbors from a pre-tick copy instead of the live population
    sequential_update: bool = True


@dataclass
class AppConfig:
    settings: SimulationSettings = field(default_factory=SimulationSettings)
    width: int = 960
    height: int = 640
    seed: int = 42
    target_fps: float = 60.0
    background_color: str = "#0b0f19"

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


_SETTING_DEFAULTS = {f.name: f.default for f in fields(SimulationSettings)}


def _setting_names() -> set[str]:
    return {f.name for f in fields(SimulationSettings)}


def _valid_color(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        parse_hex(value)
    except ValueError:
        return False
    return True


def _check_colors(raw: dict[str, Any]) -> None:
    for key in COLOR_KEYS:
        if key in raw and not _valid_color(raw[key]):
            raise ValueError(f"Invalid hex color for {key}: {raw[key]!r}")


def load_settings(raw: dict[str, Any]) -> SimulationSettings:
    unknown = set(raw) - _setting_names()
    if unknown:
        raise ValueError(f"Unknown simulation settings: {', '.join(sorted(unknown))}")
    _check_colors(raw)
    return sanitize_settings(SimulationSettings(**raw))


def load_config(raw: dict[str, Any]) -> AppConfig:
    app_names = {f.name for f in fields(AppConfig)}
    unknown = set(raw) - app_names
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    settings = load_settings(raw.get("settings") or {})
    app_values = {k: v for k, v in raw.items() if k != "settings"}
    if "background_color" in app_values:
        parse_hex(app_values["background_color"])
    return AppConfig(settings=settings, **app_values)


def sanitize_settings(settings: SimulationSettings) -> SimulationSettings:
    """
    Clamp values the simulation cannot run with, logging each adjustment.

    Keeps the minimum speed below the maximum and swaps unparseable colors back to
    their defaults, so any snapshot that reaches the world can be stepped and drawn.
    """
    changes: dict[str, Any] = {}

    if settings.scale < MIN_SCALE:
        changes["scale"] = MIN_SCALE
    if settings.num_boids < 0:
        changes["num_boids"] = 0
    margin = _clamp_value(settings.margin_fraction, 0.0, 0.5)
    if margin != settings.margin_fraction:
        changes["margin_fraction"] = margin
    for name in (
        "speed_limit",
        "min_speed_limit",
        "constant_speed_value",
        "visual_range",
        "centering_factor",
        "min_distance",
        "avoid_factor",
        "matching_factor",
        "turn_factor",
    ):
        if getattr(settings, name) < 0:
            changes[name] = 0.0

    speed_limit = changes.get("speed_limit", settings.speed_limit)
    min_speed_limit = changes.get("min_speed_limit", settings.min_speed_limit)
    if speed_limit > 0 and min_speed_limit >= speed_limit:
        changes["min_speed_limit"] = max(0.0, speed_limit - 1)

    for name in COLOR_KEYS:
        if not _valid_color(getattr(settings, name)):
            changes[name] = _SETTING_DEFAULTS[name]

    if not changes:
        return settings
    for name, value in changes.items():
        logger.warning("Clamping setting %s from %r to %r", name, getattr(settings, name), value)
    return replace(settings, **changes)


def update_setting(settings: SimulationSettings, key: str, value: Any) -> SimulationSettings:
    """Return a new snapshot with one field patched, keeping min speed below max speed."""
    if key not in _setting_names():
        raise ValueError(f"Unknown simulation setting: {key}")
    _check_colors({key: value})
    updated = replace(settings, **{key: value})
    if key == "min_speed_limit" and updated.min_speed_limit >= updated.speed_limit:
        updated = replace(updated, min_speed_limit=max(SPEED_SLIDER_MIN, updated.speed_limit - 1))
    elif key == "speed_limit" and updated.speed_limit <= updated.min_speed_limit:
        updated = replace(updated, speed_limit=min(SPEED_SLIDER_MAX, updated.min_speed_limit + 1))
    return sanitize_settings(updated)


def requires_reseed(previous: SimulationSettings, current: SimulationSettings) -> bool:
    return any(getattr(previous, key) != getattr(current, key) for key in RESEED_KEYS)
