# destination.py
# State machine for the active destination: NOT_REACHED → APPROACHING → REACHED.

import logging
from typing import List, Union

from .errors import TripInvariantError
from .models import DestinationReached, DestinationStatus, TripCompleted

logger = logging.getLogger(__name__)

DestinationEvent = Union[DestinationReached, TripCompleted]


class DestinationStateMachine:
    """
    Tracks which stop is the current destination and whether it was reached.

    Reaching an intermediate stop advances the index and emits
    DestinationReached; reaching the last stop emits TripCompleted and makes
    the machine terminal. Every stop is reached at most once.

    Args:
        stop_count:           Number of stops in the trip.
        approach_threshold_m: Remaining distance under which the status is APPROACHING.
    """

    def __init__(self, stop_count: int, approach_threshold_m: float = 100.0) -> None:
        if stop_count < 1:
            raise TripInvariantError("A trip needs at least one stop.")
        self.stop_count = stop_count
        self.approach_threshold_m = approach_threshold_m
        self._index = 0
        self._status = DestinationStatus.NOT_REACHED
        self._terminal = False

    # ------------------------------------------------------------------
    # Read-only properties
    # ------------------------------------------------------------------

    @property
    def index(self) -> int:
        return self._index

    @property
    def status(self) -> DestinationStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._terminal

    @property
    def is_last(self) -> bool:
        return self._index == self.stop_count - 1

    @property
    def remaining_count(self) -> int:
        if self._terminal:
            return 0
        return self.stop_count - self._index

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def update(self, distance_remaining: float) -> List[DestinationEvent]:
        """
        Apply the remaining distance to the current destination.

        Returns:
            Events produced by this update (empty for no-op updates).
        """
        self._check_index()
        if self._terminal:
            return []

        if self._status is DestinationStatus.NOT_REACHED and distance_remaining < self.approach_threshold_m:
            self._status = DestinationStatus.APPROACHING
            logger.debug(f"Approaching destination {self._index} ({distance_remaining:.1f} m left).")

        if distance_remaining > 0:
            return []

        self._status = DestinationStatus.REACHED
        if self.is_last:
            self._terminal = True
            logger.info(f"Final destination {self._index} reached.")
            return [TripCompleted(self._index)]

        reached = self._index
        self._index += 1
        self._status = DestinationStatus.NOT_REACHED
        logger.info(f"Destination {reached} reached, heading to {self._index}.")
        return [DestinationReached(reached)]

    def reset(self) -> None:
        self._index = 0
        self._status = DestinationStatus.NOT_REACHED
        self._terminal = False

    def _check_index(self) -> None:
        if not 0 <= self._index < self.stop_count:
            raise TripInvariantError(
                f"Destination index {self._index} out of bounds for {self.stop_count} stops."
            )
