"""
Core relay primitives.

- EventRecord: Immutable log entry
- Endpoint: Channel interface implemented by transports
- decode_payload: Inbound message validation
- Clocks: Monotonic and manual time sources
- Tokens: Unguessable session identifiers
"""

from .events import EventRecord
from .endpoint import Endpoint
from .codec import decode_payload
from .clock import MonotonicClock, ManualClock
from .ids import new_session_token, short_token
from .errors import (
    RelayError,
    InvalidTokenError,
    MalformedPayloadError,
    SendFailureError,
    SessionEvictedError,
    NotJoinedError,
)

__all__ = [
    "EventRecord",
    "Endpoint",
    "decode_payload",
    "MonotonicClock",
    "ManualClock",
    "new_session_token",
    "short_token",
    "RelayError",
    "InvalidTokenError",
    "MalformedPayloadError",
    "SendFailureError",
    "SessionEvictedError",
    "NotJoinedError",
]
