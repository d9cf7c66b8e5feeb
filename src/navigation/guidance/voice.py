# voice.py
# Announces each maneuver once, when progress along the path passes its offset.

import logging
from typing import List, Sequence

from .models import Maneuver, ManeuverAnnounced
from .projector import EPSILON_M

logger = logging.getLogger(__name__)


class VoiceGuidanceEmitter:
    """
    Keeps a pointer to the last announced maneuver of the active route.

    The pointer restarts at the beginning of the maneuver list whenever a
    Route is installed.
    """

    def __init__(self, maneuvers: Sequence[Maneuver] = ()) -> None:
        self._maneuvers: List[Maneuver] = list(maneuvers)
        self._next = 0

    @property
    def last_announced_index(self) -> int:
        """Index of the last announced maneuver, -1 if none yet."""
        return self._next - 1

    @property
    def pending(self) -> int:
        return len(self._maneuvers) - self._next

    def reset(self, maneuvers: Sequence[Maneuver]) -> None:
        self._maneuvers = list(maneuvers)
        self._next = 0

    def update(self, distance_along_path: float) -> List[ManeuverAnnounced]:
        """Announce every maneuver whose offset has been reached, in order."""
        announced: List[ManeuverAnnounced] = []
        while self._next < len(self._maneuvers):
            maneuver = self._maneuvers[self._next]
            if distance_along_path + EPSILON_M < maneuver.geometry_offset_along_path:
                break
            announced.append(ManeuverAnnounced(maneuver))
            self._next += 1
            logger.debug(f"Maneuver {self._next - 1}: {maneuver.instruction_text}")
        return announced
