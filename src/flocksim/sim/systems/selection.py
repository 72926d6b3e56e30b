from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from ..core.agent import Boid
from ..types.snapshot import BoidInfo
from ..utils.math2d import BOID_HALF_WIDTH, BOID_LENGTH, rotate_xy

if TYPE_CHECKING:
    from ..core.world import World


def point_in_boid(x: float, y: float, boid: Boid, scale: float) -> bool:
    """Test a point against the boid's rendered triangle in its heading-aligned frame."""
    length = BOID_LENGTH * scale
    half_width = BOID_HALF_WIDTH * scale
    local_x, local_y = rotate_xy(x - boid.position.x, y - boid.position.y, -boid.heading)
    if local_x < -length or local_x > 0.0:
        return False
    # The triangle narrows from the base (local_x == -length) to the nose (local_x == 0).
    return abs(local_y) <= half_width * (-local_x / length) + 1e-9


def pick_boid(x: float, y: float, boids: Sequence[Boid], scale: float) -> Optional[Boid]:
    for boid in boids:
        if point_in_boid(x, y, boid, scale):
            return boid
    return None


def describe_boid(boid: Boid) -> BoidInfo:
    vel = boid.velocity
    return BoidInfo(
        id=boid.id,
        x=boid.position.x,
        y=boid.position.y,
        dx=vel.x,
        dy=vel.y,
        speed=math.hypot(vel.x, vel.y),
        direction_degrees=math.degrees(math.atan2(vel.y, vel.x)),
        trail_length=len(boid.trail),
    )


@dataclass
class Selection:
    boid_id: Optional[int] = None
    generation: int = -1

    def select(self, boid: Optional[Boid], generation: int) -> None:
        if boid is None:
            self.clear()
            return
        self.boid_id = boid.id
        self.generation = generation

    def clear(self) -> None:
        self.boid_id = None
        self.generation = -1

    def resolve(self, world: World) -> Optional[Boid]:
        if self.boid_id is None:
            return None
        if self.generation != world.generation:
            self.clear()
            return None
        boid = world.find(self.boid_id)
        if boid is None:
            self.clear()
        return boid
