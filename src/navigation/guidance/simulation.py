# simulation.py
# Position-fix sources for demos and tests.
# SimulatedFixSource drives along a path at constant speed; replay_fixes wraps recorded coordinates.

import logging
import math
import time
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from .geo_utils import calculate_bearing
from .models import Coord, PositionFix, Stop
from .nav_config import TripConfig, config_from_mapping, read_yaml
from .projector import PathGeometry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Simulated drive
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Detour:
    """Leave the path sideways for a few fixes, starting at a given offset.

    Fixes keep advancing at driving speed, `lateral_m` to the right of the path.
    """
    start_m: float
    lateral_m: float = 80.0
    fix_count: int = 4


class SimulatedFixSource:
    """
    Finite stream of fixes moving along a path.

    Args:
        path:        Coordinates to drive along.
        speed_mps:   Constant travel speed.
        interval_s:  Time between fixes.
        accuracy_m:  Accuracy reported on every fix.
        start_time:  Timestamp of the first fix; now if omitted.
        detour:      Optional off-path excursion to exercise rerouting.
    """

    def __init__(
        self,
        path: Sequence[Coord],
        speed_mps: float = 35.0,
        interval_s: float = 1.0,
        accuracy_m: float = 5.0,
        start_time: Optional[float] = None,
        detour: Optional[Detour] = None,
    ) -> None:
        if speed_mps <= 0 or interval_s <= 0:
            raise ValueError("speed_mps and interval_s must be positive")
        self.geometry = PathGeometry(path)
        self.speed_mps = speed_mps
        self.interval_s = interval_s
        self.accuracy_m = accuracy_m
        self.start_time = time.time() if start_time is None else start_time
        self.detour = detour

    def __iter__(self) -> Iterator[PositionFix]:
        step = self.speed_mps * self.interval_s
        length = self.geometry.length
        timestamp = self.start_time
        offset = 0.0
        detour_pending = self.detour is not None

        while True:
            if detour_pending and offset >= self.detour.start_m:
                detour_pending = False
                for fix in self._detour_fixes(offset, step, timestamp):
                    timestamp = fix.timestamp + self.interval_s
                    yield fix
                offset = min(offset + step * self.detour.fix_count, length)

            yield self._fix_at(offset, timestamp)
            if offset >= length:
                return
            offset = min(offset + step, length)
            timestamp += self.interval_s

    def _fix_at(self, offset: float, timestamp: float) -> PositionFix:
        here = self.geometry.point_at(offset)
        if offset + 1.0 <= self.geometry.length:
            start, end = here, self.geometry.point_at(offset + 1.0)
        else:
            start, end = self.geometry.point_at(offset - 1.0), here
        return PositionFix(
            coordinate=here,
            timestamp=timestamp,
            accuracy=self.accuracy_m,
            heading=calculate_bearing(start.lat, start.lon, end.lat, end.lon),
        )

    def _right_normal(self, offset: float) -> Tuple[float, float]:
        """Unit vector (east, north) pointing right of the direction of travel at `offset`."""
        frame = self.geometry.frame
        a = self.geometry.point_at(offset - 1.0)
        b = self.geometry.point_at(offset + 1.0)
        ax, ay = frame.point_to_xy(a.lat, a.lon)
        bx, by = frame.point_to_xy(b.lat, b.lon)
        dx, dy = bx - ax, by - ay
        norm = math.hypot(dx, dy)
        return dy / norm, -dx / norm

    def _detour_fixes(self, offset: float, step: float, timestamp: float) -> List[PositionFix]:
        fixes = []
        for i in range(self.detour.fix_count):
            along = min(offset + i * step, self.geometry.length)
            base = self.geometry.point_at(along)
            east, north = self._right_normal(along)
            lat, lon = self.geometry.frame.offset(
                base.lat, base.lon, east * self.detour.lateral_m, north * self.detour.lateral_m,
            )
            fixes.append(PositionFix(
                coordinate=Coord(lat, lon),
                timestamp=timestamp + i * self.interval_s,
                accuracy=self.accuracy_m,
            ))
        logger.debug(f"Simulated detour of {self.detour.lateral_m:.0f} m at {offset:.0f} m.")
        return fixes


def replay_fixes(
    coords: Sequence[Coord],
    interval_s: float = 1.0,
    start_time: Optional[float] = None,
    accuracy_m: float = 0.0,
) -> Iterator[PositionFix]:
    """Wrap recorded coordinates as position fixes spaced `interval_s` apart."""
    timestamp = time.time() if start_time is None else start_time
    for coord in coords:
        yield PositionFix(coordinate=coord, timestamp=timestamp, accuracy=accuracy_m)
        timestamp += interval_s


# ---------------------------------------------------------------------------
# Scenario files
# ---------------------------------------------------------------------------

@dataclass
class Scenario:
    stops: List[Stop]
    config: TripConfig
    speed_mps: float = 35.0
    interval_s: float = 1.0
    detour: Optional[Detour] = None


def load_scenario(path: str) -> Scenario:
    """
    Read a simulation scenario from YAML.

    Expected layout:
        trip:        optional TripConfig fields
        stops:       list of {lat, lon, name?}, at least one
        simulation:  optional {speed_mps, interval_s, detour: {start_m, lateral_m, fix_count}}
    """
    data = read_yaml(path)

    raw_stops = data.get("stops")
    if not isinstance(raw_stops, list) or not raw_stops:
        raise ValueError("Scenario must list at least one stop under 'stops'")
    try:
        stops = [
            Stop(Coord(float(s["lat"]), float(s["lon"])), i, s.get("name"))
            for i, s in enumerate(raw_stops)
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid stop entry in scenario: {exc}") from exc

    sim = data.get("simulation") or {}
    if not isinstance(sim, dict):
        raise ValueError("'simulation' config must be a mapping")
    detour = None
    if sim.get("detour"):
        detour = Detour(**sim["detour"])

    return Scenario(
        stops=stops,
        config=config_from_mapping(data.get("trip") or {}),
        speed_mps=float(sim.get("speed_mps", 35.0)),
        interval_s=float(sim.get("interval_s", 1.0)),
        detour=detour,
    )
