# nav_config.py
# All tuneable constants in one place.
# Pass a TripConfig instance to every module that needs settings.

import os
from dataclasses import dataclass, fields
from typing import Any, Dict

import yaml

from .models import ReroutingStrategy


DEFAULT_TRAVEL_SPEED_KMH: float = 40.0  # km/h, used when the solver gives no travel time


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TripConfig:
    # Deviation detection
    deviation_tolerance_m: float = 30.0    # perpendicular distance from path → off-route
    debounce_fix_count: int = 3            # consecutive off-route fixes before deviation

    # Destination tracking
    approach_threshold_m: float = 100.0    # remaining distance → APPROACHING

    # Rerouting
    rerouting_strategy: ReroutingStrategy = ReroutingStrategy.TO_NEXT_STOP
    solve_timeout_s: float = 30.0

    # Progress
    travel_speed_kmh: float = DEFAULT_TRAVEL_SPEED_KMH

    # Logging
    log_dir: str = "."                     # directory for saved JSON files
    route_filename: str = "active_route.json"
    event_filename: str = "nav_session.jsonl"

    def __post_init__(self) -> None:
        if self.deviation_tolerance_m <= 0:
            raise ValueError("deviation_tolerance_m must be positive")
        if self.debounce_fix_count < 1:
            raise ValueError("debounce_fix_count must be at least 1")
        if self.approach_threshold_m < 0:
            raise ValueError("approach_threshold_m must not be negative")
        if self.solve_timeout_s <= 0:
            raise ValueError("solve_timeout_s must be positive")
        if self.travel_speed_kmh <= 0:
            raise ValueError("travel_speed_kmh must be positive")
        if not isinstance(self.rerouting_strategy, ReroutingStrategy):
            raise ValueError(f"Unknown rerouting strategy: {self.rerouting_strategy!r}")

    @property
    def travel_speed_ms(self) -> float:
        return self.travel_speed_kmh * 1000 / 3600

    @property
    def route_filepath(self) -> str:
        return os.path.join(self.log_dir, self.route_filename)

    @property
    def event_filepath(self) -> str:
        return os.path.join(self.log_dir, self.event_filename)


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

def read_yaml(path: str) -> Dict[str, Any]:
    """Read a YAML file that must hold a mapping at the top level."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ValueError(f"Config file not found: {path}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the top level")
    return data


def config_from_mapping(section: Dict[str, Any]) -> TripConfig:
    """
    Build a TripConfig from a plain mapping (e.g. the `trip:` section of a YAML file).

    Unknown keys are rejected so typos do not silently fall back to defaults.
    """
    if not isinstance(section, dict):
        raise ValueError("'trip' config must be a mapping")

    known = {f.name for f in fields(TripConfig)}
    unknown = sorted(set(section) - known)
    if unknown:
        raise ValueError(f"Unknown trip config keys: {', '.join(unknown)}")

    values = dict(section)
    if "rerouting_strategy" in values:
        raw = str(values["rerouting_strategy"]).lower()
        try:
            values["rerouting_strategy"] = ReroutingStrategy(raw)
        except ValueError as exc:
            raise ValueError(f"Unknown rerouting strategy: {raw}") from exc
    return TripConfig(**values)


def load_config(path: str) -> TripConfig:
    """Load a TripConfig from the `trip:` section of a YAML file."""
    data = read_yaml(path)
    return config_from_mapping(data.get("trip") or {})
