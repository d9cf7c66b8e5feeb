import textwrap
from pathlib import Path

import pytest

from navigation.guidance.models import ReroutingStrategy
from navigation.guidance.nav_config import TripConfig, load_config


def _write(tmp_path: Path, text: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return str(path)


def test_defaults() -> None:
    config = TripConfig()

    assert config.deviation_tolerance_m == 30.0
    assert config.debounce_fix_count == 3
    assert config.approach_threshold_m == 100.0
    assert config.rerouting_strategy is ReroutingStrategy.TO_NEXT_STOP
    assert config.travel_speed_ms == pytest.approx(40.0 / 3.6)


def test_load_config_reads_trip_section(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
        trip:
          deviation_tolerance_m: 25
          debounce_fix_count: 4
          rerouting_strategy: TO_NEXT_WAYPOINT
          solve_timeout_s: 5
          log_dir: logs
        """,
    )

    config = load_config(path)

    assert config.deviation_tolerance_m == 25
    assert config.debounce_fix_count == 4
    assert config.rerouting_strategy is ReroutingStrategy.TO_NEXT_WAYPOINT
    assert config.solve_timeout_s == 5
    assert config.route_filepath.endswith("logs/active_route.json")


def test_load_config_without_trip_section_uses_defaults(tmp_path: Path) -> None:
    assert load_config(_write(tmp_path, "other: 1\n")) == TripConfig()


def test_load_config_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_config(str(tmp_path / "missing.yaml"))


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="mapping"):
        load_config(_write(tmp_path, "- a\n- b\n"))


def test_load_config_rejects_unknown_key(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="tolerance"):
        load_config(_write(tmp_path, "trip:\n  tolerance: 10\n"))


def test_load_config_rejects_unknown_strategy(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="strategy"):
        load_config(_write(tmp_path, "trip:\n  rerouting_strategy: sideways\n"))


@pytest.mark.parametrize(
    "field, value",
    [
        ("deviation_tolerance_m", 0),
        ("debounce_fix_count", 0),
        ("approach_threshold_m", -1),
        ("solve_timeout_s", 0),
        ("travel_speed_kmh", 0),
    ],
)
def test_invalid_values_rejected(field: str, value) -> None:
    with pytest.raises(ValueError):
        TripConfig(**{field: value})
