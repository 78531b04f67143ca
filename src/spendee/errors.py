"""Application error taxonomy.

Every error carries the HTTP status it maps to at the API boundary, where it is
rendered as ``{"error": message}``.
"""


class SpendeeError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SpendeeError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(SpendeeError):
    """A referenced user, token or record does not exist (or is not yours)."""

    status_code = 404
    default_message = "Not found"


class ExpiredError(SpendeeError):
    """A time-bounded credential is past its expiry."""

    status_code = 400
    default_message = "Expired"


class ConflictError(SpendeeError):
    """The record already exists."""

    # The register endpoint has always answered duplicates with 400
    status_code = 400
    default_message = "Already exists"
