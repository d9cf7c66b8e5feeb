# geo_utils.py
# Pure mathematical / geographic helper functions.
# No side effects, no imports from other project modules.

import math
from typing import Sequence, Tuple

import numpy as np


EARTH_RADIUS_M = 6_371_000.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two points in metres.

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Distance in metres.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def calculate_bearing(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Forward azimuth (bearing) from point 1 to point 2 in degrees [0, 360).

    Args:
        lat1, lon1: Origin in decimal degrees.
        lat2, lon2: Destination in decimal degrees.

    Returns:
        Bearing in degrees.
    """
    rlat1, rlon1 = math.radians(lat1), math.radians(lon1)
    rlat2, rlon2 = math.radians(lat2), math.radians(lon2)
    d_lon = rlon2 - rlon1
    y = math.sin(d_lon) * math.cos(rlat2)
    x = math.cos(rlat1) * math.sin(rlat2) - math.sin(rlat1) * math.cos(rlat2) * math.cos(d_lon)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def get_turn_instruction(bearing_diff: float) -> str:
    """
    Human-readable turn instruction derived from the change in bearing.

    Args:
        bearing_diff: Difference between consecutive bearings in degrees.

    Returns:
        Turn instruction string.
    """
    diff = (bearing_diff + 180) % 360 - 180
    if diff > 45:
        return "Turn sharp right"
    elif diff > 10:
        return "Turn right"
    elif diff < -45:
        return "Turn sharp left"
    elif diff < -10:
        return "Turn left"
    return "Go straight"


def format_elapsed_time(seconds: float) -> str:
    """Render a duration as MM:SS, or H:MM:SS from one hour up."""
    total = int(round(max(0.0, seconds)))
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


# ---------------------------------------------------------------------------
# Local planar frame
# ---------------------------------------------------------------------------

class LocalFrame:
    """
    Equirectangular projection around a reference point.

    Maps (lat, lon) in degrees to (x, y) in metres, x pointing east and y north.
    Accurate to well under a metre over the span of a city route.

    Args:
        ref_lat, ref_lon: Origin of the frame in decimal degrees.
    """

    def __init__(self, ref_lat: float, ref_lon: float) -> None:
        self.ref_lat = ref_lat
        self.ref_lon = ref_lon
        self._kx = EARTH_RADIUS_M * math.cos(math.radians(ref_lat))
        self._ky = EARTH_RADIUS_M

    def to_xy(self, lats: Sequence[float], lons: Sequence[float]) -> np.ndarray:
        """Project arrays of latitudes/longitudes into an (N, 2) array of metres."""
        lat = np.asarray(lats, dtype=float)
        lon = np.asarray(lons, dtype=float)
        x = np.radians(lon - self.ref_lon) * self._kx
        y = np.radians(lat - self.ref_lat) * self._ky
        return np.column_stack((x, y))

    def point_to_xy(self, lat: float, lon: float) -> Tuple[float, float]:
        x = math.radians(lon - self.ref_lon) * self._kx
        y = math.radians(lat - self.ref_lat) * self._ky
        return x, y

    def to_latlon(self, x: float, y: float) -> Tuple[float, float]:
        lat = self.ref_lat + math.degrees(y / self._ky)
        lon = self.ref_lon + (math.degrees(x / self._kx) if self._kx else 0.0)
        return lat, lon

    def offset(self, lat: float, lon: float, east_m: float, north_m: float) -> Tuple[float, float]:
        """Move a point by east/north metres, staying in this frame."""
        x, y = self.point_to_xy(lat, lon)
        return self.to_latlon(x + east_m, y + north_m)
