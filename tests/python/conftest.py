import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")
os.environ.setdefault("SDL_VIDEODRIVER", "dummy")

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


@pytest.fixture
def quiet_settings():
    """Settings where no rule changes a velocity unless a test turns it on."""
    from flocksim.sim.core.config import SimulationSettings

    return SimulationSettings(
        num_boids=0,
        centering_factor=0.0,
        avoid_factor=0.0,
        matching_factor=0.0,
        margin_fraction=0.0,
        turn_factor=0.0,
        min_speed_limit=0.0,
        speed_limit=1000.0,
    )
