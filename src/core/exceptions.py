"""Error taxonomy shared by the services and the HTTP boundary.

Every condition a caller can recover from has its own class. The HTTP layer maps
classes to status codes through a single table (see src/api/errors.py), so nothing
downstream inspects message text.
"""


class AnalyticsServiceError(Exception):
    """Base exception for service-level errors."""

    default_message = "Service error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AnalyticsServiceError):
    """Raised when input is malformed."""

    def __init__(self, field: str, message: str, errors: list[dict[str, str]] | None = None):
        self.field = field
        self.errors = errors or [{"field": field, "message": message}]
        super().__init__(f"{field}: {message}")


class DuplicateRegistration(AnalyticsServiceError):
    """An application with this URL is already registered for the owner."""

    default_message = "App with this URL already registered for this user"


class NotFoundOrUnauthorized(AnalyticsServiceError):
    """The tenant does not exist, or it is not owned by the requester.

    The two cases are deliberately indistinguishable.
    """

    default_message = "App not found or unauthorized"


class NotFoundOrAlreadyInactive(AnalyticsServiceError):
    """No active API key matches; covers both unknown and already revoked keys."""

    default_message = "API key not found or already revoked"


class NoActiveCredential(AnalyticsServiceError):
    """The tenant has no active API key."""

    default_message = "No active API key found for this app"


class PersistenceFailure(AnalyticsServiceError):
    """Storage layer fault. The message is safe to show; the cause is chained."""

    default_message = "Storage operation failed"


class AggregationFailure(AnalyticsServiceError):
    """A summary recomputation failed. Never surfaced to API callers."""

    default_message = "Summary recomputation failed"
