import json
from pathlib import Path

from navigation.guidance.models import DestinationReached, RerouteFailed
from navigation.guidance.nav_config import TripConfig
from navigation.guidance.nav_logger import EventLogSink, NavLogger
from navigation.guidance.solvers import StraightLineSolver
from navigation.guidance.trip import Trip

from conftest import fix, straight_route


def test_save_and_load_route(tmp_path: Path) -> None:
    config = TripConfig(log_dir=str(tmp_path))
    nav_logger = NavLogger(config)
    route = straight_route()

    assert nav_logger.save_route(route)
    loaded = nav_logger.load_route()

    assert loaded == route
    data = json.loads((tmp_path / "active_route.json").read_text(encoding="utf-8"))
    assert data["stop_count"] == 3


def test_load_missing_route_returns_none(tmp_path: Path) -> None:
    nav_logger = NavLogger(TripConfig(log_dir=str(tmp_path)))

    assert nav_logger.load_route(str(tmp_path / "nope.json")) is None


def test_load_corrupt_route_returns_none(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text('{"route": {"path": []}}', encoding="utf-8")

    assert NavLogger(TripConfig(log_dir=str(tmp_path))).load_route(str(path)) is None


def test_event_log_sink_writes_json_lines(tmp_path: Path) -> None:
    config = TripConfig(log_dir=str(tmp_path))
    sink = EventLogSink(config)

    sink.on_event(DestinationReached(1))
    sink.on_event(RerouteFailed("timeout"))

    lines = (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()
    entries = [json.loads(line) for line in lines]
    assert [e["event"] for e in entries] == ["destination_reached", "reroute_failed"]
    assert entries[1]["reason"] == "timeout"
    assert "timestamp" in entries[0]


def test_event_log_sink_records_trip_progress(tmp_path: Path) -> None:
    config = TripConfig(log_dir=str(tmp_path))
    trip = Trip(straight_route(), StraightLineSolver(), config, sinks=[EventLogSink(config)])

    trip.process_fix(fix(4000))

    lines = (tmp_path / "nav_session.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event"] for line in lines]
    assert events == ["destination_reached", "maneuver_announced", "progress"]
