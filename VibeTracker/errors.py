"""
Error taxonomy for the activity session core.
Each error carries the HTTP status the API layer maps it to.
"""


class VibeTrackerError(Exception):
    """Base class for errors raised by the core"""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(VibeTrackerError, ValueError):
    """Malformed input. Always raised before any mutation."""

    status_code = 400
    code = "validation_error"


class InvalidStateError(VibeTrackerError):
    """The requested transition is not legal from the session's current state."""

    status_code = 409
    code = "invalid_state"


class ConcurrentSessionError(VibeTrackerError):
    """The user already has a live (active or paused) session."""

    status_code = 409
    code = "concurrent_session"


class NotFoundError(VibeTrackerError):
    """Unknown session or user."""

    status_code = 404
    code = "not_found"


class EnrichmentFailure(VibeTrackerError):
    """
    A best-effort enrichment (streak, badges, level title) failed during completion.
    Logged and reported as an empty field, never raised to the caller.
    """

    code = "enrichment_failed"

    def __init__(self, source: str, cause: Exception):
        super().__init__(f"{source} enrichment failed: {cause}")
        self.source = source
        self.cause = cause
