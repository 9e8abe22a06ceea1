"""
Error types shared by the exercise log, the store adapters and the API layer.

Every error is scoped to a single submission. The API layer maps each kind to
an HTTP status and an error code (see gymrack.app).
"""


class GymRackError(Exception):
    """Base class for errors raised by the gymrack backend."""

    code = "server_error"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class InvalidInputError(GymRackError):
    """Malformed weight/reps/date or empty exercise name. Raised before any store access."""

    code = "invalid_input"


class StoreError(GymRackError):
    """Persistence failed and retrying will not help."""

    code = "server_error"


class StoreUnavailableError(StoreError):
    """Store unreachable or timed out. The whole submission may be retried."""

    code = "upstream_unavailable"
    retryable = True


class RecordConflictError(StoreError):
    """Another writer changed the current-record flag between read and commit."""

    code = "record_conflict"
    retryable = True


class UpstreamError(GymRackError):
    """A third-party API (exercise catalog) answered with an error."""

    code = "upstream_error"

    def __init__(self, message: str = "", status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code
