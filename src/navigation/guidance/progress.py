# progress.py
# Distance / time remaining to the current destination and to the route end.

from dataclasses import dataclass
from typing import Dict, Optional

from .errors import TripInvariantError
from .projector import EPSILON_M


@dataclass(frozen=True)
class Progress:
    distance_remaining: float          # metres to the current destination
    time_remaining: float              # seconds to the current destination
    route_distance_remaining: float    # metres to the end of the path
    route_time_remaining: float        # seconds to the end of the path


def estimate_speed(path_length_m: float, total_time_s: Optional[float], fallback_ms: float) -> float:
    """
    Speed model for a route: the solver's own travel time if it gave one,
    otherwise the configured travel speed. Metres per second.
    """
    if total_time_s and total_time_s > 0 and path_length_m > 0:
        return path_length_m / total_time_s
    return fallback_ms


def _remaining(target: float, along: float) -> float:
    left = target - along
    return 0.0 if left <= EPSILON_M else left


class ProgressTracker:
    """
    Remaining distance/time along one route.

    Args:
        path_length_m:  Total path length, metres.
        stop_offsets:   Path offset of each stop on this route, keyed by sequence index.
        speed_ms:       Speed model in metres per second.
    """

    def __init__(self, path_length_m: float, stop_offsets: Dict[int, float], speed_ms: float) -> None:
        self.path_length_m = path_length_m
        self.stop_offsets = dict(stop_offsets)
        self.speed_ms = speed_ms

    def destination_offset(self, destination_index: int) -> float:
        try:
            return self.stop_offsets[destination_index]
        except KeyError:
            raise TripInvariantError(
                f"Destination {destination_index} is not on the active route "
                f"(stops {sorted(self.stop_offsets)})."
            ) from None

    def measure(self, distance_along_path: float, destination_index: int) -> Progress:
        dist = _remaining(self.destination_offset(destination_index), distance_along_path)
        route_dist = _remaining(self.path_length_m, distance_along_path)
        return Progress(
            distance_remaining=dist,
            time_remaining=dist / self.speed_ms,
            route_distance_remaining=route_dist,
            route_time_remaining=route_dist / self.speed_ms,
        )
