# models.py
# Shared data structures, enums and events used across the guidance package.

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Coord:
    """Immutable geographic coordinate (WGS84, decimal degrees)."""
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @staticmethod
    def from_dict(d: dict) -> "Coord":
        return Coord(float(d["lat"]), float(d["lon"]))


# ---------------------------------------------------------------------------
# Route building blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Stop:
    """An ordered waypoint of a multi-leg trip."""
    coordinate: Coord
    sequence_index: int
    name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "coordinate": self.coordinate.to_dict(),
            "sequence_index": self.sequence_index,
            "name": self.name,
        }

    @staticmethod
    def from_dict(d: dict) -> "Stop":
        return Stop(
            coordinate=Coord.from_dict(d["coordinate"]),
            sequence_index=int(d["sequence_index"]),
            name=d.get("name"),
        )


@dataclass(frozen=True)
class Maneuver:
    """A single turn-by-turn instruction tied to a position along the path."""
    instruction_text: str
    geometry_offset_along_path: float   # metres from path start
    length: float                       # metres covered by this maneuver
    action: str = "continue"            # "start" | "turn_right" | "turn_left" | "continue" | "finish"

    def shifted(self, delta_m: float) -> "Maneuver":
        return Maneuver(
            instruction_text=self.instruction_text,
            geometry_offset_along_path=self.geometry_offset_along_path + delta_m,
            length=self.length,
            action=self.action,
        )

    def to_dict(self) -> dict:
        return {
            "instruction_text": self.instruction_text,
            "geometry_offset_along_path": self.geometry_offset_along_path,
            "length": self.length,
            "action": self.action,
        }

    @staticmethod
    def from_dict(d: dict) -> "Maneuver":
        return Maneuver(
            instruction_text=d["instruction_text"],
            geometry_offset_along_path=float(d["geometry_offset_along_path"]),
            length=float(d["length"]),
            action=d.get("action", "continue"),
        )


@dataclass(frozen=True)
class Route:
    """
    Output of the route-solving service.

    A Route is never mutated; a reroute produces a new Route object.
    """
    path: Tuple[Coord, ...]
    stops: Tuple[Stop, ...]
    directions: Tuple[Maneuver, ...] = ()
    total_time_s: Optional[float] = None   # solver-provided travel time, if any

    def __post_init__(self) -> None:
        # Accept lists from callers but store tuples so the Route stays immutable.
        object.__setattr__(self, "path", tuple(self.path))
        object.__setattr__(self, "stops", tuple(self.stops))
        object.__setattr__(self, "directions", tuple(self.directions))

    def to_dict(self) -> dict:
        return {
            "path": [c.to_dict() for c in self.path],
            "stops": [s.to_dict() for s in self.stops],
            "directions": [m.to_dict() for m in self.directions],
            "total_time_s": self.total_time_s,
        }

    @staticmethod
    def from_dict(d: dict) -> "Route":
        return Route(
            path=tuple(Coord.from_dict(c) for c in d["path"]),
            stops=tuple(Stop.from_dict(s) for s in d["stops"]),
            directions=tuple(Maneuver.from_dict(m) for m in d.get("directions", [])),
            total_time_s=d.get("total_time_s"),
        )


@dataclass(frozen=True)
class PositionFix:
    """A raw position fix. Consumed once per tracking cycle."""
    coordinate: Coord
    timestamp: float
    accuracy: float = 0.0               # metres
    heading: Optional[float] = None     # degrees [0, 360)


# ---------------------------------------------------------------------------
# Tracking status
# ---------------------------------------------------------------------------

class DestinationStatus(Enum):
    NOT_REACHED = "not_reached"
    APPROACHING = "approaching"
    REACHED     = "reached"


class ReroutingStrategy(Enum):
    TO_NEXT_STOP     = "to_next_stop"
    TO_NEXT_WAYPOINT = "to_next_waypoint"


@dataclass(frozen=True)
class TrackingStatus:
    """Returned by Trip.process_fix() every position fix. Derived, never mutated."""
    traversed_geometry: Tuple[Coord, ...]
    remaining_geometry: Tuple[Coord, ...]
    current_destination_index: int
    distance_remaining_to_destination: float    # metres
    time_remaining_to_destination: float        # seconds
    destination_status: DestinationStatus
    is_on_route: bool
    distance_along_path: float = 0.0
    distance_from_path: float = 0.0
    route_distance_remaining: float = 0.0
    route_time_remaining: float = 0.0
    remaining_destination_count: int = 0

    def to_dict(self) -> dict:
        return {
            "current_destination_index": self.current_destination_index,
            "distance_remaining_to_destination": self.distance_remaining_to_destination,
            "time_remaining_to_destination": self.time_remaining_to_destination,
            "destination_status": self.destination_status.value,
            "is_on_route": self.is_on_route,
            "distance_along_path": self.distance_along_path,
            "distance_from_path": self.distance_from_path,
            "route_distance_remaining": self.route_distance_remaining,
            "route_time_remaining": self.route_time_remaining,
            "remaining_destination_count": self.remaining_destination_count,
        }


# ---------------------------------------------------------------------------
# Events delivered to presentation sinks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DestinationReached:
    index: int

    def to_dict(self) -> dict:
        return {"event": "destination_reached", "index": self.index}


@dataclass(frozen=True)
class TripCompleted:
    index: int

    def to_dict(self) -> dict:
        return {"event": "trip_completed", "index": self.index}


@dataclass(frozen=True)
class Rerouted:
    route: Route = field(repr=False)

    def to_dict(self) -> dict:
        return {
            "event": "rerouted",
            "path_points": len(self.route.path),
            "stops": [s.sequence_index for s in self.route.stops],
        }


@dataclass(frozen=True)
class RerouteFailed:
    reason: str

    def to_dict(self) -> dict:
        return {"event": "reroute_failed", "reason": self.reason}


@dataclass(frozen=True)
class ManeuverAnnounced:
    maneuver: Maneuver

    @property
    def text(self) -> str:
        return self.maneuver.instruction_text

    def to_dict(self) -> dict:
        return {"event": "maneuver_announced", "text": self.maneuver.instruction_text}
