from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import pygame

from ..sim.core.agent import Boid
from ..sim.core.config import SimulationSettings
from ..sim.core.world import World
from ..sim.utils.color import hex_to_rgba, parse_hex
from ..sim.utils.math2d import boid_triangle

GHOST_EDGE_THRESHOLD = 30.0
GHOST_ALPHA = 0.3
TRAIL_ALPHA = 0.4
PERCEPTION_ALPHA = 0.1
SEPARATION_ALPHA = 0.2
MARGIN_FILL_ALPHA = 0.1
MARGIN_STROKE_ALPHA = 0.3
GRID_ALPHA = 0.1
BORDER_ALPHA = 0.5
DASH_LENGTH = 5.0

Point = Tuple[float, float]


@dataclass
class OverlayFlags:
    """Debug overlays, each shown only while its control is being adjusted."""

    perception_range: bool = False
    separation_distance: bool = False
    margins: bool = False


class Renderer:
    def __init__(self, background_color: str = "#0b0f19"):
        self._background = pygame.Color(*parse_hex(background_color))
        self._layer: pygame.Surface | None = None

    def render(self, surface: pygame.Surface, world: World, overlays: OverlayFlags | None = None) -> None:
        overlays = overlays or OverlayFlags()
        settings = world.settings
        width = world.width
        height = world.height

        surface.fill(self._background)
        layer = self._translucent_layer(surface.get_size())

        boid_color = pygame.Color(*parse_hex(settings.boid_color))
        ghost_color = hex_to_rgba(settings.boid_color, GHOST_ALPHA)
        trail_color = hex_to_rgba(settings.trail_color, TRAIL_ALPHA)
        perception_color = hex_to_rgba(settings.boid_color, PERCEPTION_ALPHA)
        separation_color = hex_to_rgba(settings.boid_color, SEPARATION_ALPHA)
        perception_radius = settings.visual_range * settings.scale
        separation_radius = settings.min_distance * settings.scale

        for boid in world.agents:
            self.draw_boid_shape(surface, boid.position.x, boid.position.y, boid.heading, boid_color, settings.scale)
            if settings.wraparound_mode:
                for gx, gy in ghost_positions(boid, width, height):
                    self.draw_boid_shape(layer, gx, gy, boid.heading, ghost_color, settings.scale)
            if settings.draw_trail:
                self._draw_trail(layer, boid, trail_color, settings.wraparound_mode, width, height)
            if overlays.perception_range and perception_radius > 0:
                pygame.draw.circle(layer, perception_color, (boid.position.x, boid.position.y), perception_radius)
            if overlays.separation_distance and separation_radius > 0:
                pygame.draw.circle(layer, separation_color, (boid.position.x, boid.position.y), separation_radius)

        if overlays.margins and not settings.wraparound_mode:
            self._draw_margins(layer, settings, width, height)
        if settings.wraparound_mode:
            self._draw_wraparound_grid(layer, settings, width, height)

        surface.blit(layer, (0, 0))

    @staticmethod
    def draw_boid_shape(
        surface: pygame.Surface,
        x: float,
        y: float,
        heading: float,
        color: pygame.Color,
        scale: float,
    ) -> None:
        pygame.draw.polygon(surface, color, boid_triangle(x, y, heading, scale))

    def _translucent_layer(self, size: Tuple[int, int]) -> pygame.Surface:
        if self._layer is None or self._layer.get_size() != size:
            self._layer = pygame.Surface(size, pygame.SRCALPHA, 32)
        self._layer.fill((0, 0, 0, 0))
        return self._layer

    def _draw_trail(
        self,
        layer: pygame.Surface,
        boid: Boid,
        color: pygame.Color,
        wraparound: bool,
        width: float,
        height: float,
    ) -> None:
        for run in trail_runs(boid.trail, wraparound, width, height):
            if len(run) >= 2:
                pygame.draw.lines(layer, color, False, run, 1)

    def _draw_margins(self, layer: pygame.Surface, settings: SimulationSettings, width: float, height: float) -> None:
        margin_x = width * settings.margin_fraction
        margin_y = height * settings.margin_fraction
        fill = hex_to_rgba(settings.boid_color, MARGIN_FILL_ALPHA)
        stroke = hex_to_rgba(settings.boid_color, MARGIN_STROKE_ALPHA)
        bands = [
            pygame.Rect(0, 0, round(margin_x), round(height)),
            pygame.Rect(round(width - margin_x), 0, round(margin_x), round(height)),
            pygame.Rect(0, 0, round(width), round(margin_y)),
            pygame.Rect(0, round(height - margin_y), round(width), round(margin_y)),
        ]
        for band in bands:
            pygame.draw.rect(layer, fill, band)
        for band in bands:
            pygame.draw.rect(layer, stroke, band, 1)

    def _draw_wraparound_grid(self, layer: pygame.Surface, settings: SimulationSettings, width: float, height: float) -> None:
        grid_color = hex_to_rgba(settings.boid_color, GRID_ALPHA)
        draw_dashed_line(layer, grid_color, (width / 2, 0.0), (width / 2, height))
        draw_dashed_line(layer, grid_color, (0.0, height / 2), (width, height / 2))
        border_color = hex_to_rgba(settings.boid_color, BORDER_ALPHA)
        right = width - 1
        bottom = height - 1
        for start, end in (
            ((0.0, 0.0), (right, 0.0)),
            ((right, 0.0), (right, bottom)),
            ((right, bottom), (0.0, bottom)),
            ((0.0, bottom), (0.0, 0.0)),
        ):
            draw_dashed_line(layer, border_color, start, end)


def ghost_positions(boid: Boid, width: float, height: float) -> List[Point]:
    """Positions of the wraparound duplicates for a boid near an edge, at most one per axis."""
    x = boid.position.x
    y = boid.position.y
    ghosts: List[Point] = []
    if x < GHOST_EDGE_THRESHOLD:
        ghosts.append((x + width, y))
    elif x > width - GHOST_EDGE_THRESHOLD:
        ghosts.append((x - width, y))
    if y < GHOST_EDGE_THRESHOLD:
        ghosts.append((x, y + height))
    elif y > height - GHOST_EDGE_THRESHOLD:
        ghosts.append((x, y - height))
    return ghosts


def trail_runs(trail: Iterable[Point], wraparound: bool, width: float, height: float) -> List[List[Point]]:
    """Split a trail into polylines, breaking wherever a wraparound teleport happened."""
    runs: List[List[Point]] = []
    current: List[Point] = []
    previous: Point | None = None
    for point in trail:
        if (
            wraparound
            and previous is not None
            and (abs(point[0] - previous[0]) > width / 2 or abs(point[1] - previous[1]) > height / 2)
        ):
            runs.append(current)
            current = []
        current.append(point)
        previous = point
    if current:
        runs.append(current)
    return runs


def draw_dashed_line(
    surface: pygame.Surface,
    color: pygame.Color,
    start: Sequence[float],
    end: Sequence[float],
    dash: float = DASH_LENGTH,
    gap: float = DASH_LENGTH,
) -> None:
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length <= 0:
        return
    ux = dx / length
    uy = dy / length
    offset = 0.0
    while offset < length:
        stop = min(offset + dash, length)
        pygame.draw.line(
            surface,
            color,
            (start[0] + ux * offset, start[1] + uy * offset),
            (start[0] + ux * stop, start[1] + uy * stop),
        )
        offset += dash + gap
