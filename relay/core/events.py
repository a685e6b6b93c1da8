"""
Event record model.

Records are immutable once appended to a session log.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EventRecord:
    """
    Immutable event record.

    Fields:
        seq: Position in the owning session's log (assigned on append)
        payload: Serialized record exactly as received
        ts: Relay clock reading at append time
    """
    seq: int
    payload: str
    ts: float = 0.0
