from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Tuple

from pygame.math import Vector2

from ..utils.math2d import heading_from_velocity

TRAIL_LENGTH = 50


def _new_trail() -> Deque[Tuple[float, float]]:
    return deque(maxlen=TRAIL_LENGTH)


@dataclass(slots=True)
class Boid:
    id: int
    position: Vector2
    velocity: Vector2
    trail: Deque[Tuple[float, float]] = field(default_factory=_new_trail)

    @property
    def speed(self) -> float:
        return self.velocity.length()

    @property
    def heading(self) -> float:
        return heading_from_velocity(self.velocity)

    def record_trail(self) -> None:
        self.trail.append((self.position.x, self.position.y))

    def frozen_copy(self) -> "Boid":
        return Boid(id=self.id, position=Vector2(self.position), velocity=Vector2(self.velocity))
