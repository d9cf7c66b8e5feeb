import pytest

from navigation.guidance.errors import TripInvariantError
from navigation.guidance.progress import ProgressTracker, estimate_speed


def test_measure_to_destination_and_route_end() -> None:
    tracker = ProgressTracker(9000.0, {0: 0.0, 1: 5000.0, 2: 9000.0}, speed_ms=10.0)

    progress = tracker.measure(4000.0, 1)

    assert progress.distance_remaining == pytest.approx(1000.0)
    assert progress.time_remaining == pytest.approx(100.0)
    assert progress.route_distance_remaining == pytest.approx(5000.0)
    assert progress.route_time_remaining == pytest.approx(500.0)


def test_measure_clamps_past_destination() -> None:
    tracker = ProgressTracker(9000.0, {0: 0.0, 1: 5000.0}, speed_ms=10.0)

    progress = tracker.measure(5010.0, 1)

    assert progress.distance_remaining == 0.0
    assert progress.time_remaining == 0.0


def test_unknown_destination_is_invariant_error() -> None:
    tracker = ProgressTracker(100.0, {0: 0.0}, speed_ms=1.0)

    with pytest.raises(TripInvariantError):
        tracker.measure(0.0, 3)


def test_estimate_speed_prefers_solver_time() -> None:
    assert estimate_speed(1000.0, 100.0, fallback_ms=5.0) == pytest.approx(10.0)
    assert estimate_speed(1000.0, None, fallback_ms=5.0) == pytest.approx(5.0)
    assert estimate_speed(1000.0, 0.0, fallback_ms=5.0) == pytest.approx(5.0)
