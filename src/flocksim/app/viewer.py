from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

import pygame

from .driver import AsyncioTicker, FrameDriver
from ..sim.core.config import AppConfig
from ..sim.types.snapshot import BoidInfo

logger = logging.getLogger(__name__)

POPULATION_STEP = 10
MAX_POPULATION = 500

# Holding one of these stands in for dragging the matching settings slider.
_OVERLAY_KEYS = {
    pygame.K_v: "perception_range",
    pygame.K_s: "separation_distance",
    pygame.K_m: "margins",
}

# While an overlay is shown, +/- step the setting it visualizes.
_OVERLAY_SETTINGS = {
    "perception_range": ("visual_range", 5.0),
    "separation_distance": ("min_distance", 2.0),
    "margins": ("margin_fraction", 0.01),
}
_INCREASE_KEYS = {pygame.K_EQUALS, pygame.K_PLUS, pygame.K_KP_PLUS}
_DECREASE_KEYS = {pygame.K_MINUS, pygame.K_KP_MINUS}


def nudge_overlay_settings(driver: FrameDriver, direction: int) -> list[str]:
    """Step every setting whose overlay is currently shown; returns the keys changed."""
    changed = []
    for flag, (key, step) in _OVERLAY_SETTINGS.items():
        if not getattr(driver.overlays, flag):
            continue
        value = max(0.0, round(getattr(driver.settings, key) + direction * step, 4))
        driver.update_setting(key, value)
        changed.append(key)
    return changed


class Viewer:
    def __init__(self, config: AppConfig):
        pygame.init()
        pygame.display.set_caption("flocksim")
        screen = pygame.display.set_mode((config.width, config.height), pygame.RESIZABLE)
        self.driver = FrameDriver(config, surface=screen, on_frame=self._on_frame)
        self.ticker = AsyncioTicker(self.driver, fps=config.target_fps)
        self._font: Optional[pygame.font.Font] = None
        try:
            self._font = pygame.font.SysFont(None, 20)
        except pygame.error:
            logger.warning("Font module unavailable; selection panel disabled")

    def run(self) -> None:
        try:
            asyncio.run(self.ticker.run())
        finally:
            pygame.quit()

    def _on_frame(self, driver: FrameDriver) -> None:
        for event in pygame.event.get():
            self._handle_event(event)
        info = driver.selected_info()
        if info is not None and driver.surface is not None:
            self._draw_info(driver.surface, info)
        pygame.display.flip()

    def _handle_event(self, event: pygame.event.Event) -> None:
        driver = self.driver
        if event.type == pygame.QUIT:
            self.ticker.stop()
        elif event.type == pygame.VIDEORESIZE:
            surface = pygame.display.set_mode((event.w, event.h), pygame.RESIZABLE)
            driver.resize(event.w, event.h, surface)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            info = driver.click(*event.pos)
            logger.debug("Selected %s", f"boid #{info.id}" if info else "nothing")
        elif event.type == pygame.KEYDOWN:
            self._handle_key(event.key)
        elif event.type == pygame.KEYUP and event.key in _OVERLAY_KEYS:
            setattr(driver.overlays, _OVERLAY_KEYS[event.key], False)

    def _handle_key(self, key: int) -> None:
        driver = self.driver
        settings = driver.settings
        if key == pygame.K_ESCAPE:
            self.ticker.stop()
        elif key == pygame.K_SPACE:
            driver.toggle_pause()
        elif key == pygame.K_r:
            driver.reset()
        elif key == pygame.K_t:
            driver.update_setting("draw_trail", not settings.draw_trail)
        elif key == pygame.K_w:
            driver.update_setting("wraparound_mode", not settings.wraparound_mode)
        elif key == pygame.K_c:
            driver.update_setting("constant_speed", not settings.constant_speed)
        elif key == pygame.K_UP:
            driver.update_setting("num_boids", min(MAX_POPULATION, settings.num_boids + POPULATION_STEP))
        elif key == pygame.K_DOWN:
            driver.update_setting("num_boids", max(1, settings.num_boids - POPULATION_STEP))
        elif key in _OVERLAY_KEYS:
            setattr(driver.overlays, _OVERLAY_KEYS[key], True)
        elif key in _INCREASE_KEYS:
            nudge_overlay_settings(driver, 1)
        elif key in _DECREASE_KEYS:
            nudge_overlay_settings(driver, -1)

    def _draw_info(self, surface: pygame.Surface, info: BoidInfo) -> None:
        if self._font is None:
            return
        lines = [
            f"Boid #{info.id}",
            f"Position: ({round(info.x)}, {round(info.y)})",
            f"Velocity: ({info.dx:.2f}, {info.dy:.2f})",
            f"Speed: {info.speed:.2f}",
            f"Direction: {round(info.direction_degrees)}\N{DEGREE SIGN}",
            f"Trail Length: {info.trail_length}",
        ]
        color = (230, 230, 230)
        y = 16
        for line in lines:
            surface.blit(self._font.render(line, True, color), (16, y))
            y += 20


def main() -> None:
    parser = argparse.ArgumentParser(description="Interactive boids viewer")
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    config = AppConfig.from_yaml(args.config) if args.config else AppConfig()
    if args.seed is not None:
        config.seed = args.seed
    Viewer(config).run()


if __name__ == "__main__":
    main()
