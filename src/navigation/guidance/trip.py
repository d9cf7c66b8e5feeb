# trip.py
# Aggregate root for one guided trip.
# Create a Trip once a Route is solved, then call process_fix() on every position fix.

import logging
import threading
from typing import Iterable, List, Optional, Tuple

from .destination import DestinationStateMachine
from .deviation import DeviationDetector
from .errors import InvalidRouteError
from .models import (
    DestinationStatus, PositionFix, RerouteFailed, Rerouted, Route, Stop, TrackingStatus,
)
from .nav_config import TripConfig
from .progress import ProgressTracker, estimate_speed
from .projector import GeometryProjector, PathGeometry, validate_route
from .rerouting import RerouteCoordinator, RouteSolver
from .sinks import PresentationSink, publish
from .voice import VoiceGuidanceEmitter

logger = logging.getLogger(__name__)


class Trip:
    """
    Tracks progress along a multi-stop route and reroutes on deviation.

    Every fix runs the full pipeline (projection, deviation, progress,
    destination, voice) while holding the trip lock. A reroute solves in the
    background and only takes the lock to swap the route in, so a fix is never
    evaluated against a half-installed route.

    Usage:
        trip = Trip(route, solver, config, sinks=[my_sink])

        # Inside the position loop:
        status = trip.process_fix(fix)

    Args:
        route:   Initial solved Route. Stops must be numbered 0..n-1.
        solver:  Route-solving collaborator used for reroutes.
        config:  Optional TripConfig; defaults to TripConfig().
        sinks:   Presentation sinks that receive progress and events.

    Raises:
        InvalidRouteError: the route has an empty path or no stops.
    """

    def __init__(
        self,
        route: Route,
        solver: RouteSolver,
        config: Optional[TripConfig] = None,
        sinks: Iterable[PresentationSink] = (),
    ) -> None:
        self.config = config or TripConfig()
        geometry = validate_route(route)

        self._initial_route = route
        self._stops: Tuple[Stop, ...] = route.stops
        self._sinks: List[PresentationSink] = list(sinks)
        self._lock = threading.Lock()

        self._detector = DeviationDetector(self.config.deviation_tolerance_m, self.config.debounce_fix_count)
        self._destinations = DestinationStateMachine(len(self._stops), self.config.approach_threshold_m)
        self._voice = VoiceGuidanceEmitter()
        self._rerouter = RerouteCoordinator(
            solver, self.config, install=self._install_reroute, fail=self._reroute_failed,
        )

        self._cancelled = False
        # Bumped on restart; reroute outcomes from an older generation are dropped.
        self._generation = 0
        self._last_status: Optional[TrackingStatus] = None
        self._use_route(route, geometry)

        logger.info(
            f"Trip created: {len(self._stops)} stops, {geometry.length:.0f} m, "
            f"strategy {self.config.rerouting_strategy.value}."
        )

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def route(self) -> Route:
        return self._route

    @property
    def stops(self) -> Tuple[Stop, ...]:
        return self._stops

    @property
    def current_destination_index(self) -> int:
        return self._destinations.index

    @property
    def destination_status(self) -> DestinationStatus:
        return self._destinations.status

    @property
    def is_rerouting(self) -> bool:
        return self._rerouter.in_progress

    @property
    def reroute_request_count(self) -> int:
        return self._rerouter.request_count

    @property
    def is_completed(self) -> bool:
        return self._destinations.is_terminal

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    @property
    def is_active(self) -> bool:
        return not (self._cancelled or self._destinations.is_terminal)

    @property
    def last_status(self) -> Optional[TrackingStatus]:
        return self._last_status

    def add_sink(self, sink: PresentationSink) -> None:
        self._sinks.append(sink)

    # ------------------------------------------------------------------
    # Core method: call on every position fix
    # ------------------------------------------------------------------

    def process_fix(self, fix: PositionFix) -> Optional[TrackingStatus]:
        """
        Run one tracking cycle for a position fix.

        Args:
            fix: Latest position fix.

        Returns:
            TrackingStatus for this fix, or None once the trip is completed or cancelled.
        """
        with self._lock:
            if not self.is_active:
                return None

            projected = self._projector.project(fix.coordinate)
            is_on_route = self._detector.update(projected.distance_from_path)

            if self._detector.is_deviated and not self._rerouter.in_progress:
                self._request_reroute(fix)

            events: list = []
            progress = self._progress.measure(projected.distance_along_path, self._destinations.index)

            # Off-route fixes never complete a stop or trigger guidance.
            if projected.within_tolerance:
                while not self._destinations.is_terminal:
                    reached = self._destinations.update(progress.distance_remaining)
                    events.extend(reached)
                    if not reached or self._destinations.is_terminal:
                        break
                    progress = self._progress.measure(projected.distance_along_path, self._destinations.index)
                events.extend(self._voice.update(projected.distance_along_path))

            status = TrackingStatus(
                traversed_geometry=projected.traversed_geometry,
                remaining_geometry=projected.remaining_geometry,
                current_destination_index=self._destinations.index,
                distance_remaining_to_destination=progress.distance_remaining,
                time_remaining_to_destination=progress.time_remaining,
                destination_status=self._destinations.status,
                is_on_route=is_on_route,
                distance_along_path=projected.distance_along_path,
                distance_from_path=projected.distance_from_path,
                route_distance_remaining=progress.route_distance_remaining,
                route_time_remaining=progress.route_time_remaining,
                remaining_destination_count=self._destinations.remaining_count,
            )
            self._last_status = status

        publish(self._sinks, status, events)
        return status

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Stop tracking and abandon any in-flight reroute. Idempotent, never blocks on the solver."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self._rerouter.cancel()
        logger.info("Trip cancelled.")

    def restart(self, route: Optional[Route] = None) -> None:
        """
        Start the trip over from the first stop.

        Args:
            route: Optional replacement Route over the same stops.
        """
        route = route or self._initial_route
        geometry = validate_route(route)
        if len(route.stops) != len(self._stops):
            raise InvalidRouteError("Restart route must cover the same stops.")

        with self._lock:
            if self._cancelled:
                raise RuntimeError("A cancelled trip cannot be restarted.")
            self._rerouter.abandon()
            self._generation += 1
            self._stops = route.stops
            self._initial_route = route
            self._destinations.reset()
            self._detector.reset()
            self._use_route(route, geometry)
            self._last_status = None
        logger.info("Trip restarted.")

    def wait_for_reroute(self, timeout: Optional[float] = None) -> bool:
        """Block until no reroute is in flight. Returns False on timeout."""
        return self._rerouter.wait(timeout)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _use_route(self, route: Route, geometry: PathGeometry) -> None:
        """Swap in a route. Caller holds the lock (or is the constructor)."""
        offsets = geometry.locate_stops(route.stops)
        speed = estimate_speed(geometry.length, route.total_time_s, self.config.travel_speed_ms)

        self._route = route
        self._geometry = geometry
        self._offsets = offsets
        self._projector = GeometryProjector(geometry, self.config.deviation_tolerance_m)
        self._progress = ProgressTracker(geometry.length, offsets, speed)
        self._voice.reset(route.directions)

    def _request_reroute(self, fix: PositionFix) -> None:
        remaining = [s for s in self._stops if s.sequence_index >= self._destinations.index]
        self._rerouter.request(
            origin=fix.coordinate,
            remaining_stops=remaining,
            old_route=self._route,
            old_geometry=self._geometry,
            old_offsets=self._offsets,
            generation=self._generation,
        )

    def _install_reroute(self, route: Route, generation: int) -> bool:
        """Reroute success callback. Runs on the solver thread. Returns False if the route was dropped."""
        geometry = validate_route(route, first_sequence_index=None)

        with self._lock:
            if not self.is_active or generation != self._generation:
                return False
            first = route.stops[0].sequence_index
            last = route.stops[-1].sequence_index
            if first > self._destinations.index or last != len(self._stops) - 1:
                raise InvalidRouteError(
                    f"Rerouted path covers stops {first}..{last}, "
                    f"expected {self._destinations.index}..{len(self._stops) - 1}."
                )
            self._use_route(route, geometry)
            self._detector.reset()

        publish(self._sinks, None, [Rerouted(route)])
        return True

    def _reroute_failed(self, reason: str, generation: int) -> None:
        """Reroute failure callback. Tracking continues on the current route."""
        with self._lock:
            if not self.is_active or generation != self._generation:
                logger.debug(f"Reroute failure for a replaced route ignored: {reason}")
                return
            self._detector.reset()

        publish(self._sinks, None, [RerouteFailed(reason)])
