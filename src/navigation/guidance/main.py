# main.py
# Entry point: simulates a drive feeding position fixes into a Trip.
# In production, replace SimulatedFixSource with your real position source
# and StraightLineSolver with a network routing service.

import argparse
import dataclasses
import logging
from typing import List, Optional

from .errors import GuidanceError
from .geo_utils import format_elapsed_time
from .models import Coord, ManeuverAnnounced, Stop, TrackingStatus
from .nav_config import TripConfig
from .nav_logger import EventLogSink, NavLogger
from .simulation import Detour, Scenario, SimulatedFixSource, load_scenario
from .sinks import PresentationSink
from .solvers import StraightLineSolver
from .trip import Trip

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Default scenario (three stops, Columbia SC)
# ------------------------------------------------------------------
DEFAULT_STOPS = [
    Stop(Coord(33.979253, -81.257815), 0, "Start"),
    Stop(Coord(33.978554, -81.252928), 1, "Second stop"),
    Stop(Coord(33.978477, -81.244195), 2, "Final stop"),
]


class ConsoleSink(PresentationSink):
    """Prints progress and events, one line each."""

    def __init__(self, every: int = 1) -> None:
        self.every = max(1, every)
        self._count = 0

    def on_progress(self, status: TrackingStatus) -> None:
        self._count += 1
        if self._count % self.every:
            return
        flag = "" if status.is_on_route else "  (off route)"
        print(
            f"  [{status.destination_status.name}] stop {status.current_destination_index}: "
            f"{status.distance_remaining_to_destination:7.0f} m, "
            f"{format_elapsed_time(status.time_remaining_to_destination)} left{flag}"
        )

    def on_event(self, event) -> None:
        if isinstance(event, ManeuverAnnounced):
            print(f"  >> {event.text}")
        else:
            print(f"  ** {type(event).__name__}: {event.to_dict()}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay a simulated drive through the route tracker.")
    parser.add_argument("--config", help="YAML scenario file (trip, stops, simulation sections)")
    parser.add_argument("--log-dir", help="Directory for the saved route and session log")
    parser.add_argument("--speak", action="store_true", help="Speak maneuvers with pyttsx3")
    parser.add_argument("--detour-at", type=float, help="Leave the route at this offset (metres)")
    parser.add_argument("--every", type=int, default=1, help="Print every Nth progress update")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _scenario(args: argparse.Namespace) -> Scenario:
    if args.config:
        scenario = load_scenario(args.config)
    else:
        scenario = Scenario(stops=list(DEFAULT_STOPS), config=TripConfig(log_dir="logs"))
    if args.log_dir:
        scenario.config = dataclasses.replace(scenario.config, log_dir=args.log_dir)
    if args.detour_at is not None:
        scenario.detour = Detour(start_m=args.detour_at)
    return scenario


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # ------------------------------------------------------------------
    # Logging setup: configure once here, all modules inherit
    # ------------------------------------------------------------------
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        scenario = _scenario(args)
    except ValueError as e:
        print(f"[Main] Invalid scenario: {e}")
        return 2

    config = scenario.config
    solver = StraightLineSolver(speed_kmh=config.travel_speed_kmh)

    # 1. Solve the initial route from the first stop through the rest
    try:
        route = solver.solve(scenario.stops[0].coordinate, scenario.stops)
    except GuidanceError as e:
        print(f"[Main] Could not solve route: {e}")
        return 1
    NavLogger(config).save_route(route)

    # 2. Wire up sinks
    sinks: List[PresentationSink] = [ConsoleSink(args.every), EventLogSink(config)]
    speech = None
    if args.speak:
        from tts_stt.tts import SpeechSink
        speech = SpeechSink()
        sinks.append(speech)

    trip = Trip(route, solver, config, sinks=sinks)
    source = SimulatedFixSource(
        route.path,
        speed_mps=scenario.speed_mps,
        interval_s=scenario.interval_s,
        detour=scenario.detour,
    )

    print("\n--- Simulated drive ---")

    # 3. Fix loop; replace with a live position feed in production
    for fix in source:
        if trip.process_fix(fix) is None:
            break
        if trip.is_rerouting:
            trip.wait_for_reroute(config.solve_timeout_s)

    if trip.is_active:
        # The simulated drive follows the first solved path; after a reroute it may
        # end before the rerouted path does.
        trip.cancel()

    print("\n--- Session complete ---")
    print(f"    Completed: {trip.is_completed}, reroutes: {trip.reroute_request_count}")
    print(f"    Log files written to: {config.log_dir}/")
    if speech:
        speech.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
