"""
Relay observation hooks.

The engine reports what happened through a hooks object so transports can
attach metrics without the core importing them.
"""

from ..core.errors import MalformedPayloadError, SendFailureError
from ..core.events import EventRecord


class RelayHooks:
    """No-op hooks. Subclass and override what you need."""

    def on_join(self, token: str, endpoint_id: str, replayed: int) -> None:
        pass

    def on_leave(self, token: str, endpoint_id: str) -> None:
        pass

    def on_event(self, token: str, record: EventRecord, delivered: int) -> None:
        pass

    def on_malformed(self, token: str, error: MalformedPayloadError) -> None:
        pass

    def on_send_failure(self, token: str, error: SendFailureError) -> None:
        pass
