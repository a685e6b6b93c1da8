"""
Exception types for the session relay core.
"""


class RelayError(Exception):
    """Base class for relay errors."""
    pass


class InvalidTokenError(RelayError):
    """Raised when a session token is empty or not a string."""
    pass


class MalformedPayloadError(RelayError):
    """Raised when an inbound message cannot be parsed as an event record."""
    pass


class SendFailureError(RelayError):
    """Raised when delivery to a single endpoint fails."""

    def __init__(self, endpoint_id: str, cause: Exception) -> None:
        super().__init__(f"delivery to endpoint {endpoint_id} failed: {cause}")
        self.endpoint_id = endpoint_id
        self.cause = cause


class SessionEvictedError(RelayError):
    """Raised when joining a session that the registry has already evicted."""
    pass


class NotJoinedError(RelayError):
    """Raised when an endpoint that is not in a session's endpoint set tries to append."""
    pass
