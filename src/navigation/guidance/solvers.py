# solvers.py
# A route-solving collaborator for simulations: chains the origin and stops
# with straight segments. Real deployments plug in a network routing service.

import time
from typing import List, Optional, Sequence

from .errors import RouteSolverError
from .geo_utils import calculate_bearing, get_turn_instruction, haversine_distance
from .models import Coord, Maneuver, Route, Stop
from .projector import PathGeometry
from .rerouting import RouteSolver, SolveOptions

# Stops closer than this to the previous path point are merged into it.
MIN_LEG_M = 1.0


def _build_directions(path: Sequence[Coord], vertex_offsets: Sequence[float]) -> List[Maneuver]:
    """One maneuver per leg, naming the turn at its end, plus a final arrival."""
    directions: List[Maneuver] = []
    legs = len(path) - 1

    for i in range(legs):
        a, b = path[i], path[i + 1]
        leg_len = vertex_offsets[i + 1] - vertex_offsets[i]

        if i + 1 < legs:
            c = path[i + 2]
            b1 = calculate_bearing(a.lat, a.lon, b.lat, b.lon)
            b2 = calculate_bearing(b.lat, b.lon, c.lat, c.lon)
            turn_text = get_turn_instruction(b2 - b1)
        else:
            turn_text = "Arrive at your destination"

        if i == 0:
            action = "start"
        elif "right" in directions[-1].instruction_text.lower():
            action = "turn_right"
        elif "left" in directions[-1].instruction_text.lower():
            action = "turn_left"
        else:
            action = "continue"

        prefix = "Navigation starting. " if i == 0 else ""
        directions.append(Maneuver(
            instruction_text=f"{prefix}In {int(round(leg_len))} m, {turn_text.lower()}.",
            geometry_offset_along_path=vertex_offsets[i],
            length=leg_len,
            action=action,
        ))

    directions.append(Maneuver(
        instruction_text="You have reached your destination.",
        geometry_offset_along_path=vertex_offsets[-1],
        length=0.0,
        action="finish",
    ))
    return directions


class StraightLineSolver(RouteSolver):
    """
    Straight-line route solver.

    Args:
        speed_kmh:  If given, routes carry total_time_s at this speed.
        delay_s:    Artificial solve latency.
        fail:       Always raise RouteSolverError (for exercising failure paths).
    """

    def __init__(self, speed_kmh: Optional[float] = None, delay_s: float = 0.0, fail: bool = False) -> None:
        self.speed_kmh = speed_kmh
        self.delay_s = delay_s
        self.fail = fail
        self.calls = 0

    def solve(self, origin: Coord, stops: Sequence[Stop], options: Optional[SolveOptions] = None) -> Route:
        self.calls += 1
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.fail:
            raise RouteSolverError("Routing service unavailable.")
        if not stops:
            raise RouteSolverError("No stops to route to.")

        path: List[Coord] = [origin]
        for stop in stops:
            last = path[-1]
            if haversine_distance(last.lat, last.lon, stop.coordinate.lat, stop.coordinate.lon) > MIN_LEG_M:
                path.append(stop.coordinate)
        if len(path) < 2:
            raise RouteSolverError("Origin already at the only stop.")

        geometry = PathGeometry(path)
        total_time = None
        if self.speed_kmh:
            total_time = geometry.length / (self.speed_kmh * 1000 / 3600)

        return Route(
            path=tuple(path),
            stops=tuple(stops),
            directions=tuple(_build_directions(path, geometry.vertex_offsets)),
            total_time_s=total_time,
        )
