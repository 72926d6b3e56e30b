import csv
import json

import pytest

from flocksim.app.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def _small_config(tmp_path, num_boids=12):
    path = tmp_path / "small.yaml"
    path.write_text(
        "width: 240\n"
        "height: 160\n"
        "settings:\n"
        f"  num_boids: {num_boids}\n"
        "  draw_trail: true\n"
    )
    return path


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == ["tick", "population", "avg_speed", "neighbor_checks", "tick_ms"]
    assert [row[0] for row in rows[1:]] == ["0", "1"]
    assert all(row[1] == "100" for row in rows[1:])


def test_headless_detailed_log_header_and_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(
        steps=3,
        seed=2,
        log_path=log_path,
        deterministic_log=True,
        log_format="detailed",
        config_path=_small_config(tmp_path),
    )
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    assert header == [
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

    idx = {name: i for i, name in enumerate(header)}
    last_row = rows[-1]
    population = int(last_row[idx["population"]])
    assert population == 12
    # Every boid looks at every other boid once per tick.
    assert int(last_row[idx["neighbor_checks"]]) == 12 * 11
    assert float(last_row[idx["neighbor_checks_per_agent"]]) == pytest.approx(11.0, abs=1e-4)
    assert float(last_row[idx["tick_ms"]]) == 0.0
    assert float(last_row[idx["tick_ms_per_agent"]]) == 0.0
    assert float(last_row[idx["avg_trail_length"]]) == pytest.approx(3.0)
    assert 0.0 <= float(last_row[idx["polarization"]]) <= 1.0 + 1e-6
    assert float(last_row[idx["min_speed"]]) <= float(last_row[idx["avg_speed"]]) <= float(last_row[idx["max_speed"]])


def test_headless_deterministic_logs_match(tmp_path):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    config_path = _small_config(tmp_path)
    for path in (first, second):
        run_headless(steps=5, seed=9, log_path=path, deterministic_log=True, config_path=config_path)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    log_path = tmp_path / "summary.csv"
    summary_path = tmp_path / "summary.json"
    run_headless(
        steps=4,
        seed=3,
        log_path=log_path,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=2,
        config_path=_small_config(tmp_path),
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["population"] == 12
    assert payload["log_format"] == "basic"
    assert payload["tick_ms"]["max"] == 0.0
    assert payload["neighbor_checks"]["avg"] == pytest.approx(12 * 11)
    assert payload["average_speed"]["min"] <= payload["average_speed"]["max"]
    assert payload["tail_window"]["window"] == 2


def test_headless_writes_frames(tmp_path):
    frames_dir = tmp_path / "frames"
    run_headless(
        steps=5,
        seed=4,
        log_path=None,
        config_path=_small_config(tmp_path),
        frames_dir=frames_dir,
        frame_every=2,
    )
    names = sorted(path.name for path in frames_dir.iterdir())
    assert names == ["frame_000000.png", "frame_000002.png", "frame_000004.png"]


def test_headless_rejects_unknown_log_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose")


def test_headless_writes_final_snapshot(tmp_path):
    snapshot_path = tmp_path / "snapshot.json"
    run_headless(
        steps=3,
        seed=6,
        log_path=None,
        config_path=_small_config(tmp_path, num_boids=4),
        snapshot_path=snapshot_path,
    )
    payload = json.loads(snapshot_path.read_text())
    assert payload["tick"] == 3
    assert payload["viewport"] == {"width": 240.0, "height": 160.0}
    assert payload["metadata"]["seed"] == 6
    assert payload["metrics"]["population"] == 4
    assert [agent["id"] for agent in payload["agents"]] == [1, 2, 3, 4]
    assert all(agent["trail_length"] == 3 for agent in payload["agents"])
