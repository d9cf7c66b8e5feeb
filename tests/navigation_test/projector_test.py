import pytest

from navigation.guidance.errors import InvalidRouteError
from navigation.guidance.models import Maneuver, Route, Stop
from navigation.guidance.projector import GeometryProjector, PathGeometry, validate_route

from conftest import at, straight_route


def test_nearest_on_straight_path() -> None:
    geometry = PathGeometry([at(0), at(5000), at(9000)])

    match = geometry.nearest(at(1200, 20))

    assert match.offset == pytest.approx(1200, abs=1e-3)
    assert match.distance == pytest.approx(20, abs=1e-3)
    assert match.segment_index == 0
    assert geometry.length == pytest.approx(9000, abs=1e-3)


def test_nearest_prefers_earliest_pass_on_self_intersecting_path() -> None:
    # North, east, south, then west back across the first leg at (0, 0).
    geometry = PathGeometry([at(-100), at(100), at(100, 100), at(0, 100), at(0, -100)])

    first = geometry.nearest(at(0, 0))
    later = geometry.nearest(at(0, 0), min_offset=300)

    assert first.offset == pytest.approx(100, abs=1e-3)
    assert first.distance == pytest.approx(0, abs=1e-3)
    assert later.offset == pytest.approx(500, abs=1e-3)
    assert later.segment_index == 3


def test_split_partitions_path() -> None:
    geometry = PathGeometry([at(0), at(5000), at(9000)])

    traversed, remaining = geometry.split(6000)

    assert traversed[0].lat == pytest.approx(at(0).lat, abs=1e-9)
    assert traversed[-1].lat == pytest.approx(at(6000).lat, abs=1e-9)
    assert len(traversed) == 3
    assert remaining[0].lat == pytest.approx(traversed[-1].lat, abs=1e-9)
    assert remaining[-1].lat == pytest.approx(at(9000).lat, abs=1e-9)


def test_split_at_start_gives_single_point_traversed() -> None:
    geometry = PathGeometry([at(0), at(1000)])

    traversed, remaining = geometry.split(0)

    assert len(traversed) == 1
    assert len(remaining) == 2


def test_locate_stops_follows_path_order() -> None:
    geometry = PathGeometry([at(0), at(5000), at(9000)])
    stops = [Stop(at(0), 0), Stop(at(5000), 1), Stop(at(9000), 2)]

    offsets = geometry.locate_stops(stops)

    assert offsets[0] == pytest.approx(0)
    assert offsets[1] == pytest.approx(5000, abs=1e-3)
    assert offsets[2] == pytest.approx(9000, abs=1e-3)


@pytest.mark.parametrize("path", [[], [at(0)], [at(10), at(10)]])
def test_degenerate_paths_rejected(path) -> None:
    with pytest.raises(InvalidRouteError):
        PathGeometry(path)


def test_validate_route_rejects_missing_stops() -> None:
    with pytest.raises(InvalidRouteError, match="no stops"):
        validate_route(Route(path=(at(0), at(100)), stops=()))


def test_validate_route_rejects_empty_path() -> None:
    with pytest.raises(InvalidRouteError, match="empty"):
        validate_route(Route(path=(), stops=(Stop(at(0), 0),)))


def test_validate_route_rejects_unordered_stops() -> None:
    route = Route(path=(at(0), at(100)), stops=(Stop(at(0), 1), Stop(at(100), 0)))

    with pytest.raises(InvalidRouteError, match="consecutive"):
        validate_route(route)


def test_validate_route_rejects_decreasing_maneuvers() -> None:
    route = Route(
        path=(at(0), at(100)),
        stops=(Stop(at(0), 0),),
        directions=(Maneuver("b", 50, 50), Maneuver("a", 10, 40)),
    )

    with pytest.raises(InvalidRouteError, match="non-decreasing"):
        validate_route(route)


def test_validate_route_accepts_any_start_when_asked() -> None:
    route = Route(path=(at(0), at(100)), stops=(Stop(at(0), 2), Stop(at(100), 3)))

    geometry = validate_route(route, first_sequence_index=None)

    assert geometry.length == pytest.approx(100, abs=1e-3)


def test_projector_does_not_move_backward() -> None:
    projector = GeometryProjector(PathGeometry(straight_route().path), tolerance_m=30)

    ahead = projector.project(at(1000))
    behind = projector.project(at(990))

    assert ahead.distance_along_path == pytest.approx(1000, abs=1e-3)
    assert behind.distance_along_path == pytest.approx(1000, abs=1e-3)
    assert behind.distance_from_path == pytest.approx(10, abs=1e-3)
    assert behind.within_tolerance


def test_projector_off_route_fix_keeps_floor() -> None:
    projector = GeometryProjector(PathGeometry(straight_route().path), tolerance_m=30)

    projector.project(at(1000))
    off = projector.project(at(3000, 200))

    assert not off.within_tolerance
    assert off.distance_along_path == pytest.approx(3000, abs=1e-3)
    assert projector.floor == pytest.approx(1000, abs=1e-3)
