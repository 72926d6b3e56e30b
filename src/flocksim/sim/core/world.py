from __future__ import annotations

import logging
import math
from time import perf_counter
from typing import Dict, List, Optional

from pygame.math import Vector2

from .agent import Boid
from .config import SimulationSettings, requires_reseed, sanitize_settings
from .rng import DeterministicRng
from ..systems import metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotViewport

logger = logging.getLogger(__name__)


class World:
    """
    The simulation context: one population, one settings snapshot, one viewport.

    Boids are updated sequentially and in place, so a boid processed later in a tick
    sees the already-advanced state of the boids before it. Emergent behavior depends
    on this ordering; `SimulationSettings.sequential_update=False` switches neighbor
    reads to a pre-tick copy instead.
    """

    def __init__(self, settings: SimulationSettings, width: float, height: float, seed: int = 42):
        self._settings = sanitize_settings(settings)
        self._width = float(width)
        self._height = float(height)
        self._rng = DeterministicRng(seed)
        self._agents: List[Boid] = []
        self._generation = 0
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()

    @property
    def agents(self) -> List[Boid]:
        return self._agents

    @property
    def settings(self) -> SimulationSettings:
        return self._settings

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def find(self, boid_id: int) -> Optional[Boid]:
        for boid in self._agents:
            if boid.id == boid_id:
                return boid
        return None

    def apply_settings(self, settings: SimulationSettings) -> bool:
        """
        Swap in a new settings snapshot.

        Returns True when the change calls for a fresh population. The caller is
        expected to schedule `reseed()` outside the current tick.
        """

        previous = self._settings
        self._settings = sanitize_settings(settings)
        return requires_reseed(previous, self._settings)

    def resize(self, width: float, height: float) -> None:
        self._width = float(width)
        self._height = float(height)
        logger.info("Viewport resized to %.0fx%.0f", self._width, self._height)
        self.reseed()

    def reseed(self) -> None:
        self._generation += 1
        self._bootstrap_population()
        logger.info(
            "Seeded %d boids (generation %d, %.0fx%.0f)",
            len(self._agents),
            self._generation,
            self._width,
            self._height,
        )

    def reset(self) -> None:
        self._rng.reset()
        self._tick = 0
        self._metrics = None
        self.reseed()

    def step(self) -> TickMetrics:
        start = perf_counter()
        settings = self._settings
        width = self._width
        height = self._height
        agents = self._agents
        neighbors = agents if settings.sequential_update else [boid.frozen_copy() for boid in agents]
        neighbor_checks = 0

        for boid in agents:
            neighbor_checks += steering.apply_flocking(boid, neighbors, settings, width, height)
            steering.limit_speed(boid, settings)
            steering.keep_within_bounds(boid, settings, width, height)
            boid.position.x += boid.velocity.x
            boid.position.y += boid.velocity.y
            boid.record_trail()

        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(self._tick, neighbor_checks, duration_ms, agents)
        self._tick += 1
        return self._metrics

    def snapshot(self) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(self._tick, 0, 0.0, self._agents)
        settings = self._settings
        return Snapshot(
            tick=self._tick,
            generation=self._generation,
            metrics=metrics,
            agents=[self._agent_snapshot(boid) for boid in self._agents],
            viewport=SnapshotViewport(width=self._width, height=self._height),
            metadata=SnapshotMetadata(
                seed=self._rng.seed,
                scale=settings.scale,
                wraparound_mode=settings.wraparound_mode,
                constant_speed=settings.constant_speed,
                sequential_update=settings.sequential_update,
            ),
        )

    def _agent_snapshot(self, boid: Boid) -> Dict[str, float]:
        vel = boid.velocity
        return {
            "id": boid.id,
            "x": boid.position.x,
            "y": boid.position.y,
            "vx": vel.x,
            "vy": vel.y,
            "speed": math.hypot(vel.x, vel.y),
            "heading": boid.heading,
            "trail_length": len(boid.trail),
        }

    def _bootstrap_population(self) -> None:
        # Initial speeds use the unscaled limits; limit_speed rescales on the first tick.
        settings = self._settings
        agents: List[Boid] = []
        for index in range(settings.num_boids):
            if settings.constant_speed:
                speed = settings.constant_speed_value
            else:
                speed = self._rng.next_range(settings.min_speed_limit, settings.speed_limit)
            velocity = self._rng.next_unit_circle() * speed
            position = Vector2(
                self._rng.next_range(0.0, self._width),
                self._rng.next_range(0.0, self._height),
            )
            agents.append(Boid(id=index + 1, position=position, velocity=velocity))
        self._agents = agents
