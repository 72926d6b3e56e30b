from __future__ import annotations

import math
from typing import TYPE_CHECKING

from pygame.math import Vector2

if TYPE_CHECKING:
    from ..core.agent import Boid
    from ..core.config import SimulationSettings

BOID_LENGTH = 15.0
BOID_HALF_WIDTH = 5.0


def wrapped_delta(delta: float, extent: float) -> float:
    if abs(delta) > extent / 2:
        return delta - extent if delta > 0 else delta + extent
    return delta


def distance_xy(
    ax: float,
    ay: float,
    bx: float,
    by: float,
    wraparound: bool,
    width: float,
    height: float,
) -> float:
    dx = ax - bx
    dy = ay - by
    if wraparound:
        dx = wrapped_delta(dx, width)
        dy = wrapped_delta(dy, height)
    return math.sqrt(dx * dx + dy * dy)


def distance(first: Boid, second: Boid, settings: SimulationSettings, width: float, height: float) -> float:
    """Distance between two boids, measured across the torus in wraparound mode."""
    a = first.position
    b = second.position
    return distance_xy(a.x, a.y, b.x, b.y, settings.wraparound_mode, width, height)


def heading_from_velocity(vector: Vector2) -> float:
    return math.atan2(vector.y, vector.x)


def rotate_xy(x: float, y: float, angle: float) -> tuple[float, float]:
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return x * cos_a - y * sin_a, x * sin_a + y * cos_a


def boid_triangle(x: float, y: float, heading: float, scale: float) -> list[tuple[float, float]]:
    """Nose at (x, y), base `BOID_LENGTH * scale` behind it along the heading."""
    length = BOID_LENGTH * scale
    half_width = BOID_HALF_WIDTH * scale
    left_x, left_y = rotate_xy(-length, half_width, heading)
    right_x, right_y = rotate_xy(-length, -half_width, heading)
    return [(x, y), (x + left_x, y + left_y), (x + right_x, y + right_y)]


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
