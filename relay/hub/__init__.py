"""
Relay engine.

- RelayEngine: connect / receive / disconnect against a SessionRegistry
- RelayConnection: Per-endpoint handle (CONNECTING -> JOINED -> CLOSED)
- RelayHooks: Observation callbacks for metrics
"""

from .engine import RelayEngine, RelayConnection, ConnectionState
from .hooks import RelayHooks

__all__ = [
    "RelayEngine",
    "RelayConnection",
    "ConnectionState",
    "RelayHooks",
]
