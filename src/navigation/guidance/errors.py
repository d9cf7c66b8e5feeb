# errors.py
# Exception hierarchy for the guidance package.
#
# Recoverable failures (solver errors) are turned into events by the Trip and
# never cross the core boundary. Invariant violations are programming errors
# and are raised as-is.


class GuidanceError(Exception):
    """Base class for all guidance errors."""


class InvalidRouteError(GuidanceError, ValueError):
    """A Route failed validation at Trip creation (empty path, no stops, ...)."""


class RouteSolverError(GuidanceError):
    """The route-solving collaborator could not produce a Route."""


class TripInvariantError(GuidanceError, AssertionError):
    """Internal invariant broken. Never caught by the core."""
