# deviation.py
# Debounced on-route / off-route decision for each tracking cycle.

import logging

logger = logging.getLogger(__name__)


class DeviationDetector:
    """
    Declares a deviation only after `debounce_count` consecutive off-route fixes.

    A single on-route fix resets the counter.

    Args:
        tolerance_m:     Maximum perpendicular distance from the path, metres.
        debounce_count:  Consecutive off-route fixes needed to declare deviation.
    """

    def __init__(self, tolerance_m: float = 30.0, debounce_count: int = 3) -> None:
        self.tolerance_m = tolerance_m
        self.debounce_count = debounce_count
        self._off_route_count = 0

    @property
    def off_route_count(self) -> int:
        return self._off_route_count

    @property
    def is_deviated(self) -> bool:
        return self._off_route_count >= self.debounce_count

    def update(self, distance_from_path: float) -> bool:
        """
        Feed the perpendicular distance of the latest fix.

        Returns:
            True while the traveler counts as on route.
        """
        if distance_from_path <= self.tolerance_m:
            if self._off_route_count:
                logger.debug(f"Back on route after {self._off_route_count} off-route fix(es).")
            self._off_route_count = 0
            return True

        self._off_route_count += 1
        if self._off_route_count == self.debounce_count:
            logger.info(
                f"Deviation declared: {distance_from_path:.1f} m from path "
                f"for {self._off_route_count} consecutive fixes."
            )
        return not self.is_deviated

    def reset(self) -> None:
        self._off_route_count = 0
