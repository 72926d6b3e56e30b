from __future__ import annotations

import math
import random
from dataclasses import replace

from pygame.math import Vector2
from pytest import approx

from flocksim.sim.core.agent import Boid
from flocksim.sim.core.config import SimulationSettings
from flocksim.sim.systems import steering


def _boid(boid_id: int, x: float, y: float, dx: float = 0.0, dy: float = 0.0) -> Boid:
    return Boid(id=boid_id, position=Vector2(x, y), velocity=Vector2(dx, dy))


def test_cohesion_includes_self_in_centroid(quiet_settings):
    settings = replace(quiet_settings, centering_factor=0.1, visual_range=100.0)
    a = _boid(1, 0.0, 0.0)
    b = _boid(2, 30.0, 0.0)
    far = _boid(3, 150.0, 0.0)

    steering.cohesion(a, [a, b, far], settings, 400, 400)

    # Centroid of a and b only: (15, 0).
    assert a.velocity.x == approx(1.5)
    assert a.velocity.y == approx(0.0)


def test_cohesion_without_neighbors_is_noop(quiet_settings):
    settings = replace(quiet_settings, centering_factor=0.1, visual_range=0.0)
    a = _boid(1, 10.0, 10.0, 1.0, 2.0)
    steering.cohesion(a, [a], settings, 100, 100)
    assert a.velocity == Vector2(1.0, 2.0)


def test_separation_sums_unnormalized_offsets(quiet_settings):
    settings = replace(quiet_settings, avoid_factor=0.5, min_distance=20.0)
    a = _boid(1, 50.0, 50.0)
    near = _boid(2, 45.0, 50.0)
    nearer = _boid(3, 50.0, 52.0)
    outside = _boid(4, 80.0, 50.0)

    steering.separation(a, [a, near, nearer, outside], settings, 200, 200)

    assert a.velocity.x == approx(2.5)
    assert a.velocity.y == approx(-1.0)


def test_separation_threshold_is_strict(quiet_settings):
    settings = replace(quiet_settings, avoid_factor=1.0, min_distance=10.0)
    a = _boid(1, 0.0, 0.0)
    edge = _boid(2, 10.0, 0.0)
    steering.separation(a, [a, edge], settings, 200, 200)
    assert a.velocity == Vector2()


def test_separation_uses_scaled_distance(quiet_settings):
    settings = replace(quiet_settings, avoid_factor=1.0, min_distance=10.0, scale=2.0)
    a = _boid(1, 0.0, 0.0)
    other = _boid(2, 15.0, 0.0)
    steering.separation(a, [a, other], settings, 200, 200)
    assert a.velocity.x == approx(-15.0)


def test_alignment_moves_toward_average_velocity(quiet_settings):
    settings = replace(quiet_settings, matching_factor=0.5, visual_range=100.0)
    a = _boid(1, 0.0, 0.0, 2.0, 0.0)
    b = _boid(2, 10.0, 0.0, 0.0, 4.0)

    steering.alignment(a, [a, b], settings, 400, 400)

    # Average of (2, 0) and (0, 4) is (1, 2); half of the way from (2, 0).
    assert a.velocity.x == approx(1.5)
    assert a.velocity.y == approx(1.0)


def test_fused_flocking_matches_individual_rules():
    rng = random.Random(11)
    for wrap in (False, True):
        settings = SimulationSettings(
            num_boids=0,
            visual_range=60.0,
            min_distance=25.0,
            centering_factor=0.01,
            avoid_factor=0.07,
            matching_factor=0.2,
            scale=1.3,
            wraparound_mode=wrap,
        )
        boids = [
            _boid(i + 1, rng.uniform(0, 150), rng.uniform(0, 100), rng.uniform(-5, 5), rng.uniform(-5, 5))
            for i in range(12)
        ]
        mirror = [b.frozen_copy() for b in boids]

        for boid, twin in zip(boids, mirror):
            steering.cohesion(boid, boids, settings, 150, 100)
            steering.separation(boid, boids, settings, 150, 100)
            steering.alignment(boid, boids, settings, 150, 100)
            checks = steering.apply_flocking(twin, mirror, settings, 150, 100)
            assert checks == len(boids) - 1
            assert twin.velocity.x == approx(boid.velocity.x, abs=1e-9)
            assert twin.velocity.y == approx(boid.velocity.y, abs=1e-9)


def test_limit_speed_caps_and_raises_in_variable_mode():
    settings = SimulationSettings(speed_limit=10.0, min_speed_limit=4.0, scale=4.0)
    fast = _boid(1, 0, 0, 30.0, 40.0)
    slow = _boid(2, 0, 0, 0.3, 0.4)
    ok = _boid(3, 0, 0, 9.0, 0.0)

    for boid in (fast, slow, ok):
        steering.limit_speed(boid, settings)

    # Thresholds scale with sqrt(scale) == 2.
    assert fast.speed == approx(20.0)
    assert fast.velocity.x == approx(12.0)
    assert slow.speed == approx(8.0)
    assert ok.velocity == Vector2(9.0, 0.0)


def test_limit_speed_constant_mode_renormalizes():
    settings = SimulationSettings(constant_speed=True, constant_speed_value=10.0, scale=0.25)
    boid = _boid(1, 0, 0, -3.0, 4.0)
    steering.limit_speed(boid, settings)
    assert boid.speed == approx(5.0)
    assert boid.heading == approx(math.atan2(4.0, -3.0))


def test_limit_speed_leaves_stationary_boid_alone():
    for constant in (False, True):
        settings = SimulationSettings(constant_speed=constant)
        boid = _boid(1, 0, 0)
        steering.limit_speed(boid, settings)
        assert boid.velocity == Vector2()
        assert not math.isnan(boid.velocity.x)


def test_wraparound_teleports_to_opposite_edge():
    settings = SimulationSettings(wraparound_mode=True)
    left = _boid(1, -3.0, 50.0, -1.0, 0.0)
    right = _boid(2, 205.0, 50.0)
    top = _boid(3, 50.0, -0.5)
    bottom = _boid(4, 50.0, 101.0)

    for boid in (left, right, top, bottom):
        steering.keep_within_bounds(boid, settings, 200, 100)

    assert left.position.x == 200.0
    assert right.position.x == 0.0
    assert top.position.y == 100.0
    assert bottom.position.y == 0.0
    assert left.velocity == Vector2(-1.0, 0.0)


def test_bounded_mode_nudges_velocity_only():
    settings = SimulationSettings(margin_fraction=0.1, turn_factor=1.0, scale=2.0)
    corner = _boid(1, 5.0, 195.0, 0.0, 0.0)
    steering.keep_within_bounds(corner, settings, 200, 200)

    assert corner.velocity.x == approx(0.5)
    assert corner.velocity.y == approx(-0.5)
    assert corner.position == Vector2(5.0, 195.0)

    middle = _boid(2, 100.0, 100.0, 1.0, 1.0)
    steering.keep_within_bounds(middle, settings, 200, 200)
    assert middle.velocity == Vector2(1.0, 1.0)
