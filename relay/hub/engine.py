"""
Relay engine: per-endpoint connection lifecycle.

    CONNECTING -> JOINED -> CLOSED

connect() resolves the session, replays its log and registers the endpoint.
on_message() validates, appends and fans out. close() removes the endpoint
and is safe to call any number of times.
"""

import logging
import threading
from enum import Enum
from typing import Optional, Union

from ..core.endpoint import Endpoint
from ..core.errors import (
    MalformedPayloadError,
    NotJoinedError,
    SendFailureError,
    SessionEvictedError,
)
from ..core.events import EventRecord
from ..core.codec import decode_payload
from ..core.ids import short_token
from ..session.registry import SessionRegistry
from ..session.session import Session
from .hooks import RelayHooks

logger = logging.getLogger(__name__)

# Joins retried when the resolved session was evicted before the join ran.
MAX_JOIN_ATTEMPTS = 3


class ConnectionState(Enum):
    CONNECTING = "connecting"
    JOINED = "joined"
    CLOSED = "closed"


class RelayConnection:
    """
    Handle for one endpoint's membership in one session.

    Returned by RelayEngine.connect(). Transports forward inbound messages to
    on_message() and report disconnects through close().
    """

    def __init__(self, engine: "RelayEngine", token: str, endpoint: Endpoint) -> None:
        self.token = token
        self.endpoint = endpoint
        self.session: Optional[Session] = None
        self._engine = engine
        self._state = ConnectionState.CONNECTING
        self._lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def joined(self) -> bool:
        return self._state is ConnectionState.JOINED

    def on_message(self, raw: Union[str, bytes]) -> Optional[EventRecord]:
        """Relay one inbound message. Returns the stored record, or None if dropped."""
        return self._engine.receive(self, raw)

    def close(self) -> bool:
        """Leave the session. Returns False if already closed."""
        return self._engine.disconnect(self)

    def fail(self, cause: Exception) -> bool:
        """Report that delivery to this endpoint failed (implicit disconnect)."""
        return self._engine.fail(self, cause)

    def _mark_closed(self) -> bool:
        with self._lock:
            if self._state is ConnectionState.CLOSED:
                return False
            self._state = ConnectionState.CLOSED
            return True

    def __repr__(self) -> str:
        return f"RelayConnection({short_token(self.token)}, {self.endpoint.endpoint_id}, {self._state.value})"


class RelayEngine:
    """
    Binds endpoints to sessions.

    Args:
        registry: Session registry (shared by all connections)
        hooks: Observation hooks (default: no-op)
    """

    def __init__(self, registry: SessionRegistry, hooks: Optional[RelayHooks] = None) -> None:
        self.registry = registry
        self.hooks = hooks or RelayHooks()

    def connect(self, token: str, endpoint: Endpoint) -> RelayConnection:
        """
        Join endpoint to the session for token.

        The log is replayed to the endpoint before it is registered for live
        fan-out. If replay delivery fails the connection is returned CLOSED.

        Raises:
            InvalidTokenError: If token is empty
            SessionEvictedError: If the session kept being evicted during join
        """
        conn = RelayConnection(self, token, endpoint)
        for _ in range(MAX_JOIN_ATTEMPTS):
            session = self.registry.resolve_or_create(token)
            try:
                replayed = session.join(endpoint)
            except SessionEvictedError:
                logger.debug("Session %s evicted during join, resolving again", short_token(token))
                continue
            except SendFailureError as ex:
                conn._mark_closed()
                logger.warning("Replay to %s failed on session %s: %s", endpoint.endpoint_id, short_token(token), ex.cause)
                self.hooks.on_send_failure(token, ex)
                return conn

            conn.session = session
            conn._state = ConnectionState.JOINED
            logger.info(
                "Endpoint %s joined session %s (replayed %d events)",
                endpoint.endpoint_id,
                short_token(token),
                replayed,
            )
            self.hooks.on_join(token, endpoint.endpoint_id, replayed)
            return conn

        raise SessionEvictedError(f"session {short_token(token)} evicted during join")

    def receive(self, conn: RelayConnection, raw: Union[str, bytes]) -> Optional[EventRecord]:
        """
        Append an inbound message to the session log and fan it out.

        Malformed messages are dropped and the connection stays open.
        """
        if not conn.joined or conn.session is None:
            logger.debug("Dropping message on %s: connection is %s", conn.endpoint.endpoint_id, conn.state.value)
            return None

        try:
            payload = decode_payload(raw)
        except MalformedPayloadError as ex:
            logger.warning("Dropping malformed payload on session %s: %s", short_token(conn.token), ex)
            self.hooks.on_malformed(conn.token, ex)
            return None

        session = conn.session
        try:
            result = session.append(payload, conn.endpoint, now=self.registry.clock.now())
        except NotJoinedError:
            # Dropped from the set after a send failure; the transport is going away.
            conn._mark_closed()
            logger.debug("Endpoint %s no longer joined to session %s", conn.endpoint.endpoint_id, short_token(conn.token))
            return None

        for failure in result.failures:
            logger.warning("Send failure on session %s: %s", short_token(conn.token), failure)
            self.hooks.on_send_failure(conn.token, failure)

        self.hooks.on_event(conn.token, result.record, result.delivered)
        return result.record

    def fail(self, conn: RelayConnection, cause: Exception) -> bool:
        """
        Handle a delivery failure reported asynchronously by the transport.

        The failing endpoint is disconnected; nothing else in the session is
        affected. Returns False if the connection was already closed.
        """
        if not self.disconnect(conn):
            return False
        error = SendFailureError(conn.endpoint.endpoint_id, cause)
        logger.warning("Send failure on session %s: %s", short_token(conn.token), error)
        self.hooks.on_send_failure(conn.token, error)
        return True

    def disconnect(self, conn: RelayConnection) -> bool:
        """
        Remove the connection's endpoint from its session.

        Idempotent: a second call returns False and touches nothing.
        """
        if not conn._mark_closed():
            return False
        if conn.session is None:
            return True

        removed = conn.session.leave(conn.endpoint, now=self.registry.clock.now())
        if removed:
            logger.info("Endpoint %s left session %s", conn.endpoint.endpoint_id, short_token(conn.token))
            self.hooks.on_leave(conn.token, conn.endpoint.endpoint_id)
        return True
