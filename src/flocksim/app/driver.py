from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Deque, Optional

import pygame

from ..render.renderer import OverlayFlags, Renderer
from ..sim.core.config import AppConfig, SimulationSettings, update_setting
from ..sim.core.world import World
from ..sim.systems.selection import Selection, describe_boid, pick_boid
from ..sim.types.metrics import TickMetrics
from ..sim.types.snapshot import BoidInfo

logger = logging.getLogger(__name__)

FrameHook = Callable[["FrameDriver"], None]


class ManualTicker:
    """Runs frames only when asked to, for headless runs and tests."""

    def __init__(self, driver: FrameDriver):
        self._driver = driver
        self.frames = 0

    def advance(self, count: int = 1) -> None:
        for _ in range(count):
            self._driver.frame()
            self.frames += 1


class AsyncioTicker:
    """Display-rate cadence: one frame per `1 / fps` seconds until stopped."""

    def __init__(self, driver: FrameDriver, fps: float = 60.0):
        self._driver = driver
        self.fps = max(1.0, fps)
        self.frames = 0
        self._stopped = False

    async def run(self) -> None:
        self._stopped = False
        while not self._stopped:
            await asyncio.sleep(1.0 / self.fps)
            if self._stopped:
                break
            self._driver.frame()
            self.frames += 1

    def stop(self) -> None:
        self._stopped = True


class FrameDriver:
    """
    Owns the simulation context and turns ticks into frames.

    Every frame first runs deferred work (re-seeds requested by settings changes or a
    resize), then steps and renders unless paused, then calls the frame hook.
    """

    def __init__(
        self,
        config: AppConfig,
        surface: Optional[pygame.Surface] = None,
        renderer: Optional[Renderer] = None,
        on_frame: Optional[FrameHook] = None,
    ):
        self.config = config
        self.world = World(config.settings, config.width, config.height, seed=config.seed)
        self.surface = surface
        self.renderer = renderer or Renderer(config.background_color)
        self.overlays = OverlayFlags()
        self.selection = Selection()
        self.on_frame = on_frame
        self.paused = False
        self.last_metrics: TickMetrics | None = None
        self._deferred: Deque[Callable[[], Any]] = deque()

    @property
    def settings(self) -> SimulationSettings:
        return self.world.settings

    def call_soon(self, callback: Callable[[], Any]) -> None:
        self._deferred.append(callback)

    def frame(self) -> None:
        self._run_deferred()
        if not self.paused:
            self.last_metrics = self.world.step()
            if self.surface is not None:
                self.renderer.render(self.surface, self.world, self.overlays)
        if self.on_frame is not None:
            self.on_frame(self)

    def toggle_pause(self) -> bool:
        self.paused = not self.paused
        logger.info("Simulation %s", "paused" if self.paused else "resumed")
        return self.paused

    def update_setting(self, key: str, value: Any) -> SimulationSettings:
        return self.apply_settings(update_setting(self.world.settings, key, value))

    def apply_settings(self, settings: SimulationSettings) -> SimulationSettings:
        if self.world.apply_settings(settings):
            self.call_soon(self.world.reseed)
        return self.world.settings

    def resize(self, width: int, height: int, surface: Optional[pygame.Surface] = None) -> None:
        if surface is not None:
            self.surface = surface
        self.call_soon(lambda: self.world.resize(width, height))

    def reset(self) -> None:
        self.call_soon(self.world.reset)

    def click(self, x: float, y: float) -> Optional[BoidInfo]:
        boid = pick_boid(x, y, self.world.agents, self.world.settings.scale)
        self.selection.select(boid, self.world.generation)
        return describe_boid(boid) if boid is not None else None

    def selected_info(self) -> Optional[BoidInfo]:
        boid = self.selection.resolve(self.world)
        return describe_boid(boid) if boid is not None else None

    def _run_deferred(self) -> None:
        while self._deferred:
            callback = self._deferred.popleft()
            callback()
