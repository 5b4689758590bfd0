"""Error taxonomy for the JournalQ core.

Analysis and prompt paths convert upstream failures into default values and
never raise these; persistence, context transport failures and CRUD
passthroughs raise them and the API maps each one to a status code.
"""

from __future__ import annotations


class JournalQError(Exception):
    """Base class for all JournalQ errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(JournalQError):
    """Bad or missing input. Raised before any network call."""

    status_code = 400


class AuthRequired(JournalQError):
    """Missing or invalid bearer credential."""

    status_code = 401


class RateLimited(JournalQError):
    """Admission denied for the caller's endpoint class."""

    status_code = 429

    def __init__(self, message: str, retry_after: float) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamUnavailable(JournalQError):
    """Analysis engine, domain store or identity provider failed."""

    status_code = 500

    def __init__(self, message: str, upstream: str = "unknown") -> None:
        super().__init__(message)
        self.upstream = upstream


class IdentityUnavailable(UpstreamUnavailable):
    """Identity provider could not verify the credential."""

    status_code = 503

    def __init__(self, message: str = "Authentication service unavailable") -> None:
        super().__init__(message, upstream="identity")
