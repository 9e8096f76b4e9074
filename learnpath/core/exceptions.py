"""Error taxonomy for the progression core.

Errors are raised internally and converted to ``Outcome`` failures at every
public boundary, so nothing here is expected to reach a crash handler.
"""


class ProgressionError(Exception):
    """Base progression error."""

    def __init__(self, message: str, code: str = "progression_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidTransitionError(ProgressionError):
    """Requested state change violates ordering or watch prerequisites."""

    def __init__(self, message: str = "Invalid progress transition"):
        super().__init__(message, "invalid_transition")


class AttemptLimitExceededError(ProgressionError):
    """Quiz attempt ceiling reached for the day."""

    def __init__(self, message: str = "No quiz attempts remaining for this day"):
        super().__init__(message, "attempt_limit_exceeded")


class SyncConflictError(ProgressionError):
    """Backend rejected a submission or push as stale or duplicate."""

    def __init__(self, message: str = "Backend reported a conflicting record"):
        super().__init__(message, "sync_conflict")


class NetworkFailureError(ProgressionError):
    """Transient I/O failure talking to the backend."""

    def __init__(self, message: str = "Could not reach the backend"):
        super().__init__(message, "network_failure")


class BackendError(ProgressionError):
    """Backend answered with an error that is not a conflict."""

    def __init__(self, message: str = "Backend error", status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message, "backend_error")


class NotAuthenticatedError(ProgressionError):
    """No bearer credential available; the operation is a no-op."""

    def __init__(self, message: str = "Not signed in"):
        super().__init__(message, "not_authenticated")


class CacheUnavailableError(ProgressionError):
    """The local progress cache could not be written."""

    def __init__(self, message: str = "Progress could not be saved locally"):
        super().__init__(message, "cache_unavailable")
