from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import Boid
from ..types.metrics import TickMetrics


def speed_stats(boids: Sequence[Boid]) -> tuple[int, float, float, float]:
    population = len(boids)
    if population == 0:
        return 0, 0.0, 0.0, 0.0
    total = 0.0
    lowest = math.inf
    highest = 0.0
    for boid in boids:
        vel = boid.velocity
        speed = math.hypot(vel.x, vel.y)
        total += speed
        if speed < lowest:
            lowest = speed
        if speed > highest:
            highest = speed
    return population, total / population, lowest, highest


def create_metrics(tick: int, neighbor_checks: int, duration_ms: float, boids: Sequence[Boid]) -> TickMetrics:
    population, avg_speed, min_speed, max_speed = speed_stats(boids)
    return TickMetrics(
        tick=tick,
        population=population,
        average_speed=avg_speed,
        min_speed=min_speed,
        max_speed=max_speed,
        neighbor_checks=neighbor_checks,
        tick_duration_ms=duration_ms,
    )
