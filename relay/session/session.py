"""
Session: ordered event log plus the set of connected endpoints for one token.

Every mutation happens under the session's single lock. Appending a record and
handing it to the other endpoints is one critical section, and so is replaying
the log to a joining endpoint and registering it. A joiner therefore receives
each record exactly once, either through replay or through fan-out.
"""

import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.endpoint import Endpoint
from ..core.errors import NotJoinedError, RelayError, SendFailureError, SessionEvictedError
from ..core.events import EventRecord


@dataclass(frozen=True)
class SessionSummary:
    """
    Point-in-time view of a session.

    Fields:
        token: Session token
        events: Number of records in the log
        endpoints: Number of connected endpoints
        created_at: Clock reading at creation
        idle_since: Clock reading when the endpoint set last became empty
            (None while endpoints are connected)
    """
    token: str
    events: int
    endpoints: int
    created_at: float
    idle_since: Optional[float]


@dataclass(frozen=True)
class AppendResult:
    """
    Result of an append.

    Fields:
        record: Stored record (seq assigned)
        delivered: Number of endpoints the record was handed to
        failures: Endpoints dropped because delivery failed
    """
    record: EventRecord
    delivered: int
    failures: Tuple[SendFailureError, ...] = ()


class Session:
    """
    One relay session.

    Guarantees:
    - The log is append-only (never shrinks or reorders)
    - An endpoint appears at most once in the endpoint set
    - Each endpoint observes records in log order
    """

    def __init__(self, token: str, created_at: float = 0.0) -> None:
        self.token = token
        self.created_at = created_at
        self._lock = threading.Lock()
        self._log: List[EventRecord] = []
        self._endpoints: Dict[str, Endpoint] = {}
        self._idle_since: Optional[float] = created_at
        self._evicted = False

    @property
    def evicted(self) -> bool:
        return self._evicted

    def join(self, endpoint: Endpoint) -> int:
        """
        Replay the log to endpoint, then register it.

        Args:
            endpoint: Newly connected endpoint

        Returns:
            Number of records replayed

        Raises:
            SessionEvictedError: If the registry dropped this session
            SendFailureError: If replay delivery failed (endpoint not registered)
        """
        with self._lock:
            if self._evicted:
                raise SessionEvictedError(f"session {self.token[:8]} was evicted")
            if endpoint.endpoint_id in self._endpoints:
                raise RelayError(f"endpoint {endpoint.endpoint_id} already joined")

            for record in self._log:
                try:
                    endpoint.deliver(record.payload)
                except Exception as ex:
                    raise SendFailureError(endpoint.endpoint_id, ex) from ex

            self._endpoints[endpoint.endpoint_id] = endpoint
            self._idle_since = None
            return len(self._log)

    def append(self, payload: str, sender: Endpoint, now: float = 0.0) -> AppendResult:
        """
        Append a record and fan it out to every endpoint except sender.

        Endpoints whose delivery fails are removed from the set before the
        lock is released; the failures are returned for reporting.

        Args:
            payload: Validated payload text
            sender: Endpoint that produced the record (must be joined)
            now: Clock reading stored on the record

        Returns:
            AppendResult with the stored record and delivery outcome

        Raises:
            NotJoinedError: If sender is not in the endpoint set
        """
        with self._lock:
            if self._endpoints.get(sender.endpoint_id) is not sender:
                raise NotJoinedError(f"endpoint {sender.endpoint_id} is not joined")

            record = EventRecord(seq=len(self._log), payload=payload, ts=now)
            self._log.append(record)

            delivered = 0
            failures: List[SendFailureError] = []
            for endpoint_id, endpoint in list(self._endpoints.items()):
                if endpoint is sender:
                    continue
                try:
                    endpoint.deliver(payload)
                except Exception as ex:
                    del self._endpoints[endpoint_id]
                    failures.append(SendFailureError(endpoint_id, ex))
                else:
                    delivered += 1

            return AppendResult(record=record, delivered=delivered, failures=tuple(failures))

    def leave(self, endpoint: Endpoint, now: float = 0.0) -> bool:
        """
        Remove endpoint from the set.

        Returns:
            True if the endpoint was removed, False if it was not a member
        """
        with self._lock:
            current = self._endpoints.get(endpoint.endpoint_id)
            if current is not endpoint:
                return False
            del self._endpoints[endpoint.endpoint_id]
            if not self._endpoints:
                self._idle_since = now
            return True

    def try_evict(self, policy, now: float) -> bool:
        """
        Mark the session evicted if it has no endpoints and policy agrees.

        Called by the registry while it holds its own lock.
        """
        with self._lock:
            if self._evicted:
                return True
            if self._endpoints:
                return False
            if not policy.should_evict(self._summary(), now):
                return False
            self._evicted = True
            return True

    def events(self) -> Tuple[EventRecord, ...]:
        """Snapshot of the log."""
        with self._lock:
            return tuple(self._log)

    def endpoint_ids(self) -> Tuple[str, ...]:
        with self._lock:
            return tuple(self._endpoints)

    def summary(self) -> SessionSummary:
        with self._lock:
            return self._summary()

    def _summary(self) -> SessionSummary:
        return SessionSummary(
            token=self.token,
            events=len(self._log),
            endpoints=len(self._endpoints),
            created_at=self.created_at,
            idle_since=self._idle_since,
        )

    def __repr__(self) -> str:
        return f"Session({self.token[:8]}..., events={len(self._log)}, endpoints={len(self._endpoints)})"
