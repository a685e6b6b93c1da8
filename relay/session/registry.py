"""
Session registry: token -> Session.

One registry per process, constructed by the caller and passed to the relay
engine and transport. Lookups and creation are serialized by the registry
lock; the registry lock may be held while taking a session lock, never the
other way round.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.clock import MonotonicClock
from ..core.errors import InvalidTokenError
from ..core.ids import short_token
from .eviction import EvictionPolicy, RetainForever
from .session import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryStats:
    """Totals across all live sessions."""
    sessions: int
    endpoints: int
    events: int


class SessionRegistry:
    """
    In-memory session registry.

    Sessions are created lazily by resolve_or_create() and only removed by
    sweep() under the configured eviction policy.
    """

    def __init__(self, policy: Optional[EvictionPolicy] = None, clock=None) -> None:
        self.policy = policy or RetainForever()
        self.clock = clock or MonotonicClock()
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}

    def resolve_or_create(self, token: str) -> Session:
        """
        Return the session for token, creating an empty one if needed.

        Raises:
            InvalidTokenError: If token is empty or not a string
        """
        _check_token(token)
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                session = Session(token, created_at=self.clock.now())
                self._sessions[token] = session
                logger.info("Created new session %s", short_token(token))
            return session

    def get(self, token: str) -> Optional[Session]:
        """Look up a session without creating it."""
        if not isinstance(token, str) or not token:
            return None
        with self._lock:
            return self._sessions.get(token)

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Apply the eviction policy to every session.

        Args:
            now: Clock reading to evaluate against (default: registry clock)

        Returns:
            Tokens of evicted sessions
        """
        if now is None:
            now = self.clock.now()
        evicted: List[str] = []
        with self._lock:
            for token, session in list(self._sessions.items()):
                if session.try_evict(self.policy, now):
                    del self._sessions[token]
                    evicted.append(token)
        for token in evicted:
            logger.info("Evicted idle session %s (policy=%s)", short_token(token), self.policy.name)
        return evicted

    def stats(self) -> RegistryStats:
        with self._lock:
            sessions = list(self._sessions.values())
        endpoints = 0
        events = 0
        for session in sessions:
            summary = session.summary()
            endpoints += summary.endpoints
            events += summary.events
        return RegistryStats(sessions=len(sessions), endpoints=endpoints, events=events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, token: object) -> bool:
        with self._lock:
            return token in self._sessions


def _check_token(token: str) -> None:
    if not isinstance(token, str) or not token:
        raise InvalidTokenError("session token must be a non-empty string")
