# nav_logger.py
# Handles all file I/O for the guidance system.
# Saves routes and navigation events as JSON.

import json
import os
import logging
from datetime import datetime
from typing import Optional

from .models import Route, TrackingStatus
from .nav_config import TripConfig
from .sinks import PresentationSink

# Standard Python logger; configure at app entry point if needed
logger = logging.getLogger(__name__)


class NavLogger:
    """
    Persists routes to JSON files.

    Args:
        config: TripConfig instance for file paths and directories.
    """

    def __init__(self, config: Optional[TripConfig] = None) -> None:
        self.config = config or TripConfig()
        os.makedirs(self.config.log_dir, exist_ok=True)

    # ------------------------------------------------------------------
    # Route persistence
    # ------------------------------------------------------------------

    def save_route(self, route: Route, filepath: Optional[str] = None) -> bool:
        """
        Serialize a route to JSON.

        Args:
            route:    Route to save.
            filepath: Path override; uses config default if omitted.

        Returns:
            True on success, False on failure.
        """
        path = filepath or self.config.route_filepath
        try:
            data = {
                "saved_at": datetime.now().isoformat(),
                "stop_count": len(route.stops),
                "route": route.to_dict(),
            }
            with open(path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            logger.info(f"Route saved to {path} ({len(route.path)} points, {len(route.stops)} stops).")
            return True
        except OSError as e:
            logger.error(f"Failed to save route to {path}: {e}")
            return False

    def load_route(self, filepath: Optional[str] = None) -> Optional[Route]:
        """
        Load a previously saved route from JSON.

        Args:
            filepath: Path override; uses config default if omitted.

        Returns:
            Route, or None if loading failed.
        """
        path = filepath or self.config.route_filepath
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            route = Route.from_dict(data["route"])
            logger.info(f"Route loaded from {path} ({len(route.stops)} stops).")
            return route
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Failed to load route from {path}: {e}")
            return None


class EventLogSink(PresentationSink):
    """
    Appends every trip event (and optionally every progress update) to a JSON-lines file.

    Args:
        config:         TripConfig for the log directory and file name.
        log_progress:   Also write one line per tracking cycle.
    """

    def __init__(self, config: Optional[TripConfig] = None, log_progress: bool = True) -> None:
        self.config = config or TripConfig()
        self.log_progress = log_progress
        os.makedirs(self.config.log_dir, exist_ok=True)

    def on_event(self, event) -> None:
        self._append(event.to_dict())

    def on_progress(self, status: TrackingStatus) -> None:
        if self.log_progress:
            entry = {"event": "progress"}
            entry.update(status.to_dict())
            self._append(entry)

    def _append(self, entry: dict) -> None:
        entry = dict(entry, timestamp=datetime.now().isoformat())
        try:
            with open(self.config.event_filepath, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.error(f"Failed to write event log: {e}")
