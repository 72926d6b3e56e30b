from __future__ import annotations

import math
from typing import Sequence

from ..core.agent import Boid
from ..core.config import SimulationSettings
from ..utils.math2d import distance


def cohesion(boid: Boid, boids: Sequence[Boid], settings: SimulationSettings, width: float, height: float) -> None:
    # The boid counts itself as a neighbor, which pulls the centroid toward it.
    scaled_range = settings.visual_range * settings.scale
    center_x = 0.0
    center_y = 0.0
    count = 0
    for other in boids:
        if distance(boid, other, settings, width, height) < scaled_range:
            center_x += other.position.x
            center_y += other.position.y
            count += 1
    if count:
        center_x /= count
        center_y /= count
        boid.velocity.x += (center_x - boid.position.x) * settings.centering_factor
        boid.velocity.y += (center_y - boid.position.y) * settings.centering_factor


def separation(boid: Boid, boids: Sequence[Boid], settings: SimulationSettings, width: float, height: float) -> None:
    scaled_min_distance = settings.min_distance * settings.scale
    move_x = 0.0
    move_y = 0.0
    for other in boids:
        if other is boid:
            continue
        if distance(boid, other, settings, width, height) < scaled_min_distance:
            move_x += boid.position.x - other.position.x
            move_y += boid.position.y - other.position.y
    boid.velocity.x += move_x * settings.avoid_factor
    boid.velocity.y += move_y * settings.avoid_factor


def alignment(boid: Boid, boids: Sequence[Boid], settings: SimulationSettings, width: float, height: float) -> None:
    scaled_range = settings.visual_range * settings.scale
    avg_dx = 0.0
    avg_dy = 0.0
    count = 0
    for other in boids:
        if distance(boid, other, settings, width, height) < scaled_range:
            avg_dx += other.velocity.x
            avg_dy += other.velocity.y
            count += 1
    if count:
        avg_dx /= count
        avg_dy /= count
        boid.velocity.x += (avg_dx - boid.velocity.x) * settings.matching_factor
        boid.velocity.y += (avg_dy - boid.velocity.y) * settings.matching_factor


def apply_flocking(
    boid: Boid,
    boids: Sequence[Boid],
    settings: SimulationSettings,
    width: float,
    height: float,
) -> int:
    """
    Apply cohesion, separation and alignment in that order using a single neighbor pass.

    Produces the same velocity as calling the three rules one after another: positions
    do not change while the rules run, and the only velocity the rules themselves
    modify is the boid's own, which alignment reads last.
    Returns the number of pairwise distance checks performed.
    """

    scaled_range = settings.visual_range * settings.scale
    scaled_min_distance = settings.min_distance * settings.scale
    wrap = settings.wraparound_mode
    half_width = width / 2
    half_height = height / 2
    pos = boid.position
    vel = boid.velocity
    px = pos.x
    py = pos.y

    sum_x = 0.0
    sum_y = 0.0
    sum_dx = 0.0
    sum_dy = 0.0
    move_x = 0.0
    move_y = 0.0
    count = 0
    checks = 0

    for other in boids:
        if other is boid or other.id == boid.id:
            continue
        other_pos = other.position
        ox = other_pos.x
        oy = other_pos.y
        dx = px - ox
        dy = py - oy
        if wrap:
            if abs(dx) > half_width:
                dx = dx - width if dx > 0 else dx + width
            if abs(dy) > half_height:
                dy = dy - height if dy > 0 else dy + height
        dist = math.sqrt(dx * dx + dy * dy)
        checks += 1
        if dist < scaled_range:
            sum_x += ox
            sum_y += oy
            other_vel = other.velocity
            sum_dx += other_vel.x
            sum_dy += other_vel.y
            count += 1
        if dist < scaled_min_distance:
            move_x += px - ox
            move_y += py - oy

    self_in_range = scaled_range > 0.0
    if self_in_range:
        sum_x += px
        sum_y += py
        count += 1

    if count:
        vel.x += (sum_x / count - px) * settings.centering_factor
        vel.y += (sum_y / count - py) * settings.centering_factor

    vel.x += move_x * settings.avoid_factor
    vel.y += move_y * settings.avoid_factor

    if count:
        if self_in_range:
            sum_dx += vel.x
            sum_dy += vel.y
        vel.x += (sum_dx / count - vel.x) * settings.matching_factor
        vel.y += (sum_dy / count - vel.y) * settings.matching_factor

    return checks


def limit_speed(boid: Boid, settings: SimulationSettings) -> None:
    """
    Clamp the boid's speed into the configured range.

    Thresholds grow with the square root of the scale. A boid with zero velocity is
    left untouched in both modes, since it has no heading to preserve.
    """

    vel = boid.velocity
    speed = math.sqrt(vel.x * vel.x + vel.y * vel.y)
    if speed == 0.0:
        return
    root_scale = math.sqrt(settings.scale)

    if settings.constant_speed:
        target = settings.constant_speed_value * root_scale
    else:
        max_speed = settings.speed_limit * root_scale
        min_speed = settings.min_speed_limit * root_scale
        if speed > max_speed:
            target = max_speed
        elif speed < min_speed:
            target = min_speed
        else:
            return
    vel.x = vel.x / speed * target
    vel.y = vel.y / speed * target


def keep_within_bounds(boid: Boid, settings: SimulationSettings, width: float, height: float) -> None:
    pos = boid.position
    if settings.wraparound_mode:
        if pos.x < 0:
            pos.x = width
        if pos.x > width:
            pos.x = 0.0
        if pos.y < 0:
            pos.y = height
        if pos.y > height:
            pos.y = 0.0
        return

    margin_x = width * settings.margin_fraction
    margin_y = height * settings.margin_fraction
    turn = settings.turn_factor / settings.scale
    vel = boid.velocity
    if pos.x < margin_x:
        vel.x += turn
    if pos.x > width - margin_x:
        vel.x -= turn
    if pos.y < margin_y:
        vel.y += turn
    if pos.y > height - margin_y:
        vel.y -= turn
