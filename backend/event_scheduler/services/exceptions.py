"""
Service-level error taxonomy.

Each error carries a stable ``code`` that the session layer forwards in
``rejected`` responses and the REST layer maps onto an HTTP status.
"""

from typing import Iterable


class ServiceError(Exception):
    code = "service_error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.code
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    """A draft or patch broke a field rule. The list is left untouched."""

    code = "validation_failed"

    def __init__(self, fields: Iterable[str], message: str | None = None) -> None:
        self.fields = list(dict.fromkeys(fields))
        super().__init__(message or f"Invalid field(s): {', '.join(self.fields)}")


class NotFound(ServiceError):
    code = "not_found"

    def __init__(self, event_id: str) -> None:
        self.event_id = event_id
        super().__init__(f"Event {event_id} not found")


class Forbidden(ServiceError):
    code = "forbidden"


class ConcurrencyConflict(ServiceError):
    """Optimistic write kept losing against concurrent writers."""

    code = "conflict"


class Unavailable(ServiceError):
    """An identity or backend call failed or timed out."""

    code = "unavailable"


class ProtocolError(ServiceError):
    """Malformed envelope or unknown request tag."""

    code = "protocol_error"


class UnreadableDocument(Unavailable):
    """A stored event list no longer matches the document schema."""
