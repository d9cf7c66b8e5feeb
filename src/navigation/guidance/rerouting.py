# rerouting.py
# Single-flight reroute requests against an external route-solving service.
#
# The solve call runs on a background thread and is bounded by a timer. Exactly
# one of (result, error, timeout, cancel) settles a request; anything arriving
# later is discarded.

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence

from .errors import InvalidRouteError, RouteSolverError, TripInvariantError
from .models import Coord, Route, ReroutingStrategy, Stop
from .nav_config import TripConfig
from .projector import EPSILON_M, PathGeometry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Solver contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SolveOptions:
    strategy: ReroutingStrategy
    timeout_s: float


class RouteSolver:
    """
    Route-solving collaborator.

    Implementations may block on network or disk I/O. They should raise
    RouteSolverError (or an OSError) when no route can be produced.
    """

    def solve(self, origin: Coord, stops: Sequence[Stop], options: SolveOptions) -> Route:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Re-chaining for TO_NEXT_WAYPOINT
# ---------------------------------------------------------------------------

def rechain(leg: Route, old_route: Route, old_geometry: PathGeometry,
            old_offsets: Dict[int, float], remaining_stops: Sequence[Stop]) -> Route:
    """
    Join a freshly solved leg (fix → next stop) with the old route beyond that stop.

    Args:
        leg:             Route from the current position to remaining_stops[0].
        old_route:       Route that was active when the reroute was requested.
        old_geometry:    PathGeometry of old_route.
        old_offsets:     Stop offsets on old_route, keyed by sequence index.
        remaining_stops: Unvisited stops, next stop first.

    Returns:
        Route covering every remaining stop.
    """
    if len(remaining_stops) == 1:
        return leg

    next_stop = remaining_stops[0]
    split_at = old_offsets[next_stop.sequence_index]
    leg_length = PathGeometry(leg.path).length
    shift = leg_length - split_at

    tail_path = old_geometry.section(split_at, old_geometry.length)
    path = tuple(leg.path) + tail_path[1:]

    directions = [m for m in leg.directions if m.action != "finish"]
    directions += [
        m.shifted(shift)
        for m in old_route.directions
        if m.geometry_offset_along_path >= split_at - EPSILON_M
    ]

    total_time = None
    if leg.total_time_s and old_route.total_time_s:
        tail_share = (old_geometry.length - split_at) / old_geometry.length
        total_time = leg.total_time_s + old_route.total_time_s * tail_share

    return Route(
        path=path,
        stops=tuple(remaining_stops),
        directions=tuple(directions),
        total_time_s=total_time,
    )


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class _PendingReroute:
    request_id: int
    origin: Coord
    stops: tuple
    generation: int = 0
    settled: bool = False
    timer: Optional[threading.Timer] = field(default=None, repr=False)


class RerouteCoordinator:
    """
    Runs at most one reroute request at a time for a trip.

    Args:
        solver:   RouteSolver used for every request.
        config:   TripConfig providing strategy and timeout.
        install:  Called with the new Route and the request generation on
                  success. Returns False if the route was not applied; may
                  raise InvalidRouteError to reject it.
        fail:     Called with a reason string and the request generation on
                  failure or timeout.
    """

    def __init__(
        self,
        solver: RouteSolver,
        config: TripConfig,
        install: Callable[[Route, int], bool],
        fail: Callable[[str, int], None],
    ) -> None:
        self.solver = solver
        self.config = config
        self._install = install
        self._fail = fail

        self._lock = threading.Lock()
        self._idle = threading.Event()
        self._idle.set()
        self._pending: Optional[_PendingReroute] = None
        self._request_count = 0
        self._cancelled = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def in_progress(self) -> bool:
        with self._lock:
            return self._pending is not None

    @property
    def request_count(self) -> int:
        return self._request_count

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def request(
        self,
        origin: Coord,
        remaining_stops: Sequence[Stop],
        old_route: Route,
        old_geometry: PathGeometry,
        old_offsets: Dict[int, float],
        generation: int = 0,
    ) -> bool:
        """
        Start a reroute unless one is already in flight.

        `generation` is handed back to the install and fail callbacks so the
        caller can discard outcomes that belong to a route it has since replaced.

        Returns:
            True if a new solve request was started.

        Raises:
            TripInvariantError: no remaining stops to route to.
        """
        if not remaining_stops:
            raise TripInvariantError("Reroute requested with no remaining stops.")

        with self._lock:
            if self._cancelled:
                return False
            if self._pending is not None:
                logger.debug("Reroute already in flight; deviation signal ignored.")
                return False
            self._request_count += 1
            pending = _PendingReroute(
                request_id=self._request_count,
                origin=origin,
                stops=tuple(remaining_stops),
                generation=generation,
            )
            self._pending = pending
            self._idle.clear()

        strategy = self.config.rerouting_strategy
        options = SolveOptions(strategy=strategy, timeout_s=self.config.solve_timeout_s)
        to_solve = pending.stops if strategy is ReroutingStrategy.TO_NEXT_STOP else pending.stops[:1]
        logger.info(
            f"Reroute #{pending.request_id} requested from {origin} "
            f"via stops {[s.sequence_index for s in to_solve]} ({strategy.value})."
        )

        pending.timer = threading.Timer(self.config.solve_timeout_s, self._on_timeout, args=(pending,))
        pending.timer.daemon = True
        pending.timer.start()

        worker = threading.Thread(
            target=self._run,
            args=(pending, to_solve, options, old_route, old_geometry, dict(old_offsets)),
            name=f"reroute-{pending.request_id}",
            daemon=True,
        )
        worker.start()
        return True

    def abandon(self) -> None:
        """Forget the in-flight request, if any, without blocking."""
        with self._lock:
            pending = self._pending
            self._pending = None
            if pending is not None:
                pending.settled = True
                if pending.timer:
                    pending.timer.cancel()
                logger.info(f"Reroute #{pending.request_id} abandoned.")
            self._idle.set()

    def cancel(self) -> None:
        """Abandon any in-flight request and refuse new ones. Idempotent."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
        self.abandon()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until no request is in flight. Returns False on timeout."""
        return self._idle.wait(timeout)

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run(self, pending, to_solve, options, old_route, old_geometry, old_offsets) -> None:
        try:
            route = self.solver.solve(pending.origin, to_solve, options)
            if options.strategy is ReroutingStrategy.TO_NEXT_WAYPOINT:
                route = rechain(route, old_route, old_geometry, old_offsets, pending.stops)
        except (RouteSolverError, InvalidRouteError, OSError) as e:
            self._settle(pending, None, f"Route solver failed: {e}")
            return
        except Exception as e:
            logger.exception(f"Unexpected error in route solver for reroute #{pending.request_id}")
            self._settle(pending, None, f"Route solver crashed: {e!r}")
            return
        self._settle(pending, route, None)

    def _on_timeout(self, pending: _PendingReroute) -> None:
        self._settle(pending, None, f"Route solver timed out after {self.config.solve_timeout_s:g} s")

    def _settle(self, pending: _PendingReroute, route: Optional[Route], reason: Optional[str]) -> None:
        with self._lock:
            if pending.settled or self._pending is not pending:
                if route is not None:
                    logger.warning(f"Late result for reroute #{pending.request_id} discarded.")
                return
            pending.settled = True
            if pending.timer:
                pending.timer.cancel()

        # The request stays in flight until the outcome is applied, so no second
        # request can start against the route being replaced.
        try:
            if route is not None:
                try:
                    if self._install(route, pending.generation):
                        logger.info(f"Reroute #{pending.request_id} installed ({len(route.path)} path points).")
                    else:
                        logger.info(f"Reroute #{pending.request_id} discarded; trip ended or restarted.")
                except InvalidRouteError as e:
                    reason = f"Solver returned an invalid route: {e}"
                    route = None
            if route is None:
                logger.warning(f"Reroute #{pending.request_id} failed: {reason}")
                self._fail(reason, pending.generation)
        finally:
            with self._lock:
                if self._pending is pending:
                    self._pending = None
                    self._idle.set()
