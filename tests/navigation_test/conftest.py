import math
import threading
import time

import pytest

from navigation.guidance.errors import RouteSolverError
from navigation.guidance.geo_utils import EARTH_RADIUS_M
from navigation.guidance.models import Coord, Maneuver, PositionFix, Route, Stop
from navigation.guidance.rerouting import RouteSolver
from navigation.guidance.solvers import StraightLineSolver


def at(north_m: float, east_m: float = 0.0) -> Coord:
    """Coordinate north_m / east_m metres from (0, 0)."""
    return Coord(math.degrees(north_m / EARTH_RADIUS_M), math.degrees(east_m / EARTH_RADIUS_M))


def fix(north_m: float, east_m: float = 0.0, timestamp: float = 0.0) -> PositionFix:
    return PositionFix(coordinate=at(north_m, east_m), timestamp=timestamp, accuracy=5.0)


def straight_route(stop_offsets=(0.0, 5000.0, 9000.0)) -> Route:
    """Route due north along the meridian, one stop per offset."""
    path = tuple(at(m) for m in stop_offsets)
    stops = tuple(Stop(at(m), i) for i, m in enumerate(stop_offsets))
    directions = [Maneuver("Head north.", 0.0, stop_offsets[1], "start")]
    for a, b in zip(stop_offsets[1:], stop_offsets[2:]):
        directions.append(Maneuver(f"Continue past {a:.0f} m.", a, b - a))
    directions.append(Maneuver("You have reached your destination.", stop_offsets[-1], 0.0, "finish"))
    return Route(path=path, stops=stops, directions=tuple(directions))


class GatedSolver(RouteSolver):
    """Straight-line solver that blocks until `release` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.release = threading.Event()
        self.started = threading.Event()
        self.finished = threading.Event()
        self.fail = fail
        self.calls = []

    def solve(self, origin, stops, options):
        self.calls.append((origin, list(stops), options))
        self.started.set()
        try:
            self.release.wait(5)
            if self.fail:
                raise RouteSolverError("service down")
            return StraightLineSolver().solve(origin, stops, options)
        finally:
            self.finished.set()


def wait_until(predicate, timeout: float = 2.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def route() -> Route:
    return straight_route()


@pytest.fixture
def gated_solver():
    solver = GatedSolver()
    yield solver
    solver.release.set()
