"""Domain errors raised by the match, registration and feedback services.

They subclass ValueError so callers can keep treating them as validation
failures; the API layer renders them through a single exception handler.
"""

from __future__ import annotations


class PadelError(ValueError):
    """Base class for domain validation failures."""

    status_code: int = 400
    code: str = "padel_error"


class NotFoundError(PadelError):
    status_code = 404
    code = "not_found"


class AlreadyRegisteredError(PadelError):
    status_code = 409
    code = "already_registered"


class MatchFullError(PadelError):
    status_code = 409
    code = "match_full"


class NotRegisteredError(PadelError):
    status_code = 400
    code = "not_registered"


class AlreadyLeftError(PadelError):
    status_code = 400
    code = "already_left"


class InvalidTransitionError(PadelError):
    status_code = 409
    code = "invalid_transition"


class DuplicateFeedbackError(PadelError):
    status_code = 409
    code = "duplicate_feedback"
