from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import pygame

from .driver import FrameDriver, ManualTicker
from ..sim.core.config import AppConfig
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "avg_speed",
    "neighbor_checks",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "avg_speed",
    "min_speed",
    "max_speed",
    "neighbor_checks",
    "tick_ms",
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
    "centroid_x",
    "centroid_y",
    "polarization",
    "avg_trail_length",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        f"{metrics.average_speed:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(driver: FrameDriver, metrics: TickMetrics, tick_ms: float) -> list[object]:
    world = driver.world
    population = metrics.population
    if population <= 0:
        neighbor_checks_per_agent = 0.0
        tick_ms_per_agent = 0.0
        centroid_x = 0.0
        centroid_y = 0.0
        polarization = 0.0
        avg_trail_length = 0.0
    else:
        neighbor_checks_per_agent = metrics.neighbor_checks / population
        tick_ms_per_agent = tick_ms / population

        sum_x = 0.0
        sum_y = 0.0
        heading_x = 0.0
        heading_y = 0.0
        trail_total = 0
        for boid in world.agents:
            sum_x += boid.position.x
            sum_y += boid.position.y
            vel = boid.velocity
            speed = math.hypot(vel.x, vel.y)
            if speed > 0.0:
                heading_x += vel.x / speed
                heading_y += vel.y / speed
            trail_total += len(boid.trail)

        centroid_x = sum_x / population
        centroid_y = sum_y / population
        # 1.0 when every boid flies the same way, near 0.0 for random headings.
        polarization = math.hypot(heading_x, heading_y) / population
        avg_trail_length = trail_total / population

    return [
        metrics.tick,
        population,
        f"{metrics.average_speed:.4f}",
        f"{metrics.min_speed:.4f}",
        f"{metrics.max_speed:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
        f"{neighbor_checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{polarization:.4f}",
        f"{avg_trail_length:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config_path: Optional[Path] = None,
    frames_dir: Optional[Path] = None,
    frame_every: int = 10,
    snapshot_path: Optional[Path] = None,
) -> None:
    config = AppConfig.from_yaml(config_path) if config_path else AppConfig()
    if seed is not None:
        config.seed = seed

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    surface = None
    if frames_dir:
        frames_dir = Path(frames_dir)
        frames_dir.mkdir(parents=True, exist_ok=True)
        surface = pygame.Surface((config.width, config.height))
    frame_every = max(1, int(frame_every))

    driver = FrameDriver(config, surface=surface)
    ticker = ManualTicker(driver)
    logger.info(
        "Running %d ticks with %d boids (seed %d, %dx%d)",
        steps,
        len(driver.world.agents),
        config.seed,
        config.width,
        config.height,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    neighbor_checks_series: list[float] = []
    frames_written = 0

    try:
        for _ in range(steps):
            ticker.advance()
            metrics = driver.last_metrics
            if metrics is None:
                continue
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                speed_series.append(metrics.average_speed)
                neighbor_checks_series.append(float(metrics.neighbor_checks))

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(driver, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))

            if surface is not None and metrics.tick % frame_every == 0:
                pygame.image.save(surface, str(frames_dir / f"frame_{metrics.tick:06d}.png"))
                frames_written += 1
    finally:
        if csv_file:
            csv_file.close()

    if frames_written:
        logger.info("Wrote %d frames to %s", frames_written, frames_dir)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": len(driver.world.agents),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "neighbor_checks": _summary_stats(neighbor_checks_series),
            "over_threshold": {
                "tick_ms_gt_16": sum(1 for value in tick_ms_series if value > 16.7),
                "tick_ms_gt_33": sum(1 for value in tick_ms_series if value > 33.3),
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "average_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))

    if snapshot_path:
        # Final world state: per-boid payload plus the metadata needed to replay it.
        Path(snapshot_path).write_text(json.dumps(asdict(driver.world.snapshot()), indent=2))
        logger.info("Wrote final snapshot to %s", snapshot_path)


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=500,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--frames", type=Path, default=None, help="Directory to write PNG frames to")
    parser.add_argument("--frame-every", type=int, default=10, help="Write one frame every N ticks")
    parser.add_argument("--snapshot", type=Path, default=None, help="JSON file to write the final world state to")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
        frames_dir=args.frames,
        frame_every=args.frame_every,
        snapshot_path=args.snapshot,
    )


if __name__ == "__main__":
    main()
