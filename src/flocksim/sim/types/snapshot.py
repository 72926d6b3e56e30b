from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    generation: int
    metrics: TickMetrics
    agents: List[Dict[str, Any]]
    viewport: "SnapshotViewport"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotViewport:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    seed: int
    scale: float
    wraparound_mode: bool
    constant_speed: bool
    sequential_update: bool


@dataclass(frozen=True, slots=True)
class BoidInfo:
    id: int
    x: float
    y: float
    dx: float
    dy: float
    speed: float
    direction_degrees: float
    trail_length: int
