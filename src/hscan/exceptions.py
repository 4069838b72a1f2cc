"""Progression engine error taxonomy.

Every error raised by the engine derives from ``ProgressionError`` so the HTTP
layer can map it to a status code in one place.
"""


class ProgressionError(Exception):
    """Base class for progression engine failures."""

    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class StoreUnavailable(ProgressionError):
    """The persistence layer failed or could not be reached."""

    status_code = 503


class NotFound(ProgressionError):
    """Stats are missing on a path that requires prior initialization."""

    status_code = 404


class InvalidInput(ProgressionError):
    """Rejected argument: negative points, unknown action, bad limit."""

    status_code = 422


class ConcurrentUpdate(ProgressionError):
    """Optimistic version check failed (and retries ran out, when raised to callers)."""

    status_code = 409
