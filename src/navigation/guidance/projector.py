# projector.py
# Projects position fixes onto a route path and splits the path into
# traversed / remaining parts.

import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
from shapely.geometry import LineString
from shapely.ops import substring

from .errors import InvalidRouteError
from .geo_utils import LocalFrame
from .models import Coord, Route, Stop

logger = logging.getLogger(__name__)

# Distances closer than this are treated as ties / as zero.
EPSILON_M = 1e-6


@dataclass(frozen=True)
class Projection:
    """Nearest point on the path to a coordinate."""
    offset: float           # metres along the path
    distance: float         # perpendicular distance from the path, metres
    segment_index: int


@dataclass(frozen=True)
class ProjectedFix:
    """Result of projecting one position fix. Consumed by a single tracking cycle."""
    traversed_geometry: Tuple[Coord, ...]
    remaining_geometry: Tuple[Coord, ...]
    distance_along_path: float
    distance_from_path: float
    within_tolerance: bool


# ---------------------------------------------------------------------------
# Path geometry
# ---------------------------------------------------------------------------

class PathGeometry:
    """
    Immutable metric view of a route path.

    Vertices are mapped into a LocalFrame anchored at the first vertex; segment
    geometry is kept in numpy arrays for vectorised nearest-point queries and as
    a shapely LineString for splitting.

    Args:
        path: Ordered coordinates of the route path (at least two, positive length).
    """

    def __init__(self, path: Sequence[Coord]) -> None:
        if len(path) < 2:
            raise InvalidRouteError("Route path needs at least two coordinates.")

        self.frame = LocalFrame(path[0].lat, path[0].lon)
        self._xy = self.frame.to_xy([c.lat for c in path], [c.lon for c in path])

        self._seg_start = self._xy[:-1]
        self._seg_vec = self._xy[1:] - self._xy[:-1]
        self._seg_len = np.hypot(self._seg_vec[:, 0], self._seg_vec[:, 1])
        self._cum = np.concatenate(([0.0], np.cumsum(self._seg_len)))

        if self._cum[-1] <= EPSILON_M:
            raise InvalidRouteError("Route path has zero length.")

        self.line = LineString(self._xy)

    @property
    def length(self) -> float:
        return float(self._cum[-1])

    @property
    def vertex_offsets(self) -> Tuple[float, ...]:
        """Path offset of every vertex, starting at 0."""
        return tuple(float(v) for v in self._cum)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def nearest(self, coord: Coord, min_offset: float = 0.0) -> Projection:
        """
        Find the closest point on the path at or after `min_offset`.

        Ties in perpendicular distance go to the earliest point along the path,
        so a self-intersecting route never jumps back to a later pass.

        Args:
            coord:      Coordinate to project.
            min_offset: Lower bound (metres along the path) for the result.

        Returns:
            Projection with offset, perpendicular distance and segment index.
        """
        px, py = self.frame.point_to_xy(coord.lat, coord.lon)
        rel = np.array([px, py]) - self._seg_start

        safe_len = np.where(self._seg_len > 0, self._seg_len, 1.0)
        t = np.einsum("ij,ij->i", rel, self._seg_vec) / (safe_len ** 2)
        t = np.where(self._seg_len > 0, t, 0.0)

        usable = np.ones(len(self._seg_len), dtype=bool)
        if min_offset > 0:
            t_min = np.clip((min_offset - self._cum[:-1]) / safe_len, 0.0, 1.0)
            t = np.maximum(t, t_min)
            usable = self._cum[1:] >= min_offset - EPSILON_M
            if not usable.any():
                usable[-1] = True
        t = np.clip(t, 0.0, 1.0)

        closest = self._seg_start + t[:, None] * self._seg_vec
        dists = np.hypot(closest[:, 0] - px, closest[:, 1] - py)
        dists = np.where(usable, dists, np.inf)

        best = dists.min()
        # np.flatnonzero is ordered, so [0] is the earliest tying segment.
        index = int(np.flatnonzero(dists <= best + EPSILON_M)[0])
        offset = float(self._cum[index] + t[index] * self._seg_len[index])
        return Projection(offset=max(offset, min_offset), distance=float(dists[index]), segment_index=index)

    def locate_stops(self, stops: Sequence[Stop]) -> Dict[int, float]:
        """Path offset of each stop, keyed by sequence index. Searches forward stop by stop."""
        offsets: Dict[int, float] = {}
        floor = 0.0
        for stop in stops:
            floor = self.nearest(stop.coordinate, min_offset=floor).offset
            offsets[stop.sequence_index] = floor
        return offsets

    def point_at(self, offset: float) -> Coord:
        point = self.line.interpolate(self._clamp(offset))
        lat, lon = self.frame.to_latlon(point.x, point.y)
        return Coord(lat, lon)

    def split(self, offset: float) -> Tuple[Tuple[Coord, ...], Tuple[Coord, ...]]:
        """Split the path at `offset` into (traversed, remaining) coordinate tuples."""
        offset = self._clamp(offset)
        return self.section(0.0, offset), self.section(offset, self.length)

    def section(self, start: float, end: float) -> Tuple[Coord, ...]:
        """Coordinates of the path between two offsets. Degenerate sections yield one point."""
        part = substring(self.line, self._clamp(start), self._clamp(end))
        return tuple(Coord(*self.frame.to_latlon(x, y)) for x, y in part.coords)

    def _clamp(self, offset: float) -> float:
        return min(max(offset, 0.0), self.length)


def validate_route(route: Route, first_sequence_index: Optional[int] = 0) -> PathGeometry:
    """
    Check a Route before any tracking starts and build its geometry.

    Args:
        route:                 Route to validate.
        first_sequence_index:  Expected sequence index of the first stop, or None
                               to accept any starting index.

    Returns:
        PathGeometry for the route path.

    Raises:
        InvalidRouteError: empty path, no stops, unordered stops or maneuvers.
    """
    if not route.path:
        raise InvalidRouteError("Route path is empty.")
    if not route.stops:
        raise InvalidRouteError("Route has no stops.")

    indices = [s.sequence_index for s in route.stops]
    start = indices[0] if first_sequence_index is None else first_sequence_index
    if indices != list(range(start, start + len(indices))):
        raise InvalidRouteError(f"Stop sequence indices must be consecutive from {start}, got {indices}.")

    offsets = [m.geometry_offset_along_path for m in route.directions]
    if any(b < a for a, b in zip(offsets, offsets[1:])):
        raise InvalidRouteError("Maneuver offsets must be non-decreasing.")

    return PathGeometry(route.path)


# ---------------------------------------------------------------------------
# Projector
# ---------------------------------------------------------------------------

class GeometryProjector:
    """
    Per-route projector that keeps progress monotonic.

    The furthest on-route offset is remembered as a floor; later fixes are only
    matched against the path from the floor onward. A new projector (floor 0)
    is created whenever a Route is installed.

    Args:
        geometry:     PathGeometry of the active route.
        tolerance_m:  Fixes further than this from the path do not move the floor.
    """

    def __init__(self, geometry: PathGeometry, tolerance_m: float) -> None:
        self.geometry = geometry
        self.tolerance_m = tolerance_m
        self._floor = 0.0

    @property
    def floor(self) -> float:
        return self._floor

    def project(self, coord: Coord) -> ProjectedFix:
        match = self.geometry.nearest(coord, min_offset=self._floor)

        if self._floor > 0:
            unbounded = self.geometry.nearest(coord)
            if unbounded.offset < self._floor - EPSILON_M and unbounded.distance < match.distance:
                logger.debug(
                    f"Backward drift ignored: fix matches {unbounded.offset:.1f} m, "
                    f"holding at {self._floor:.1f} m."
                )

        within = match.distance <= self.tolerance_m
        if within:
            self._floor = max(self._floor, match.offset)

        traversed, remaining = self.geometry.split(match.offset)
        return ProjectedFix(
            traversed_geometry=traversed,
            remaining_geometry=remaining,
            distance_along_path=match.offset,
            distance_from_path=match.distance,
            within_tolerance=within,
        )
