"""
Session Relay: WebSocket server
===============================

Every endpoint on /{token}/websocket is a peer: it is replayed the session's
log on connect and receives every record any other peer sends afterwards.

Endpoints:
- WS   /{token}/websocket        -> Relay channel
- GET  /health                   -> Liveness
- POST /api/v1/sessions          -> Mint a new session token
- GET  /api/v1/sessions/{token}  -> Session summary (404 if unknown)
- GET  /api/v1/stats             -> Registry totals

Usage:
    uvicorn relay_server.main:app
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request, WebSocket

from relay import __version__
from relay.core.ids import new_session_token, short_token
from relay.hub import RelayConnection, RelayEngine
from relay.session import SessionRegistry

from .config import RelayConfig
from .logging_config import get_logger, setup_logging
from .metrics import MetricsHooks, bind_registry, start_metrics_server, track_evicted
from .schemas import Health, RegistryTotals, SessionCreated, SessionInfo
from .transport import WebSocketEndpoint

logger = logging.getLogger(__name__)


async def sweep_loop(registry: SessionRegistry, interval: float) -> None:
    """Run eviction sweeps until cancelled."""
    while True:
        await asyncio.sleep(interval)
        evicted = registry.sweep()
        track_evicted(len(evicted))


def create_app(
    config: Optional[RelayConfig] = None,
    registry: Optional[SessionRegistry] = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Server configuration (default: from environment)
        registry: Session registry to serve (default: new one using the
            configured eviction policy)
        configure_logging: Install structured logging on startup
    """
    config = config or RelayConfig.from_env()
    if registry is None:
        registry = SessionRegistry(policy=config.eviction_policy())
    engine = RelayEngine(registry, hooks=MetricsHooks())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging()
        start_metrics_server(enabled=config.metrics_enabled, port=config.metrics_port)
        bind_registry(registry)

        sweeper = None
        if config.sweeps_enabled():
            sweeper = asyncio.create_task(sweep_loop(registry, config.sweep_interval_seconds))
            logger.info(
                "Eviction sweeps every %ds (policy=%s)",
                config.sweep_interval_seconds,
                registry.policy.name,
            )
        logger.info("Relay ready (sessions retained by policy=%s)", registry.policy.name)

        yield

        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        logger.info("Relay shutting down with %d sessions", len(registry))

    app = FastAPI(
        title="Session Relay",
        version=__version__,
        description="Replay-and-fan-out relay for timestamped event streams",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.registry = registry
    app.state.engine = engine

    app.add_api_route("/health", health, methods=["GET"], response_model=Health)
    app.add_api_route(
        "/api/v1/sessions",
        create_session,
        methods=["POST"],
        response_model=SessionCreated,
        status_code=201,
    )
    app.add_api_route("/api/v1/sessions/{token}", get_session, methods=["GET"], response_model=SessionInfo)
    app.add_api_route("/api/v1/stats", get_stats, methods=["GET"], response_model=RegistryTotals)
    app.add_api_websocket_route("/{token}/websocket", relay_socket)
    return app


# =============================================================================
# HTTP
# =============================================================================

async def health(request: Request) -> Health:
    """System status."""
    return Health(status="online", sessions=len(request.app.state.registry))


async def create_session() -> SessionCreated:
    """
    Mint a token for a new broadcast.

    The session itself is created when the first endpoint connects.
    """
    token = new_session_token()
    return SessionCreated(token=token, websocket_path=f"/{token}/websocket")


async def get_session(token: str, request: Request) -> SessionInfo:
    """Summary of an existing session."""
    registry: SessionRegistry = request.app.state.registry
    session = registry.get(token)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")

    summary = session.summary()
    now = registry.clock.now()
    return SessionInfo(
        token=summary.token,
        events=summary.events,
        endpoints=summary.endpoints,
        age_seconds=max(0.0, now - summary.created_at),
        idle_seconds=None if summary.idle_since is None else max(0.0, now - summary.idle_since),
    )


async def get_stats(request: Request) -> RegistryTotals:
    registry: SessionRegistry = request.app.state.registry
    stats = registry.stats()
    return RegistryTotals(
        sessions=stats.sessions,
        endpoints=stats.endpoints,
        events=stats.events,
        eviction=registry.policy.name,
    )


# =============================================================================
# WEBSOCKET
# =============================================================================

async def send_loop(websocket: WebSocket, endpoint: WebSocketEndpoint, conn: RelayConnection) -> None:
    """Drain the endpoint onto the socket; close the socket if a send fails."""
    if await endpoint.pump(conn.fail):
        return
    with contextlib.suppress(RuntimeError, OSError):
        await websocket.close(code=1011)


async def relay_socket(websocket: WebSocket, token: str) -> None:
    """
    Relay channel. No difference between broadcaster and watcher.
    """
    engine: RelayEngine = websocket.app.state.engine
    log = get_logger(__name__, trace_id=short_token(token))

    # Join before accept so the session exists once the handshake completes.
    endpoint = WebSocketEndpoint(websocket)
    conn = engine.connect(token, endpoint)
    if not conn.joined:
        endpoint.shutdown()
        await websocket.close(code=1011)
        return

    log.info("Socket %s connected", endpoint.endpoint_id)
    sender = None
    try:
        await websocket.accept()
        sender = asyncio.create_task(send_loop(websocket, endpoint, conn))
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            if not conn.joined:
                # Dropped after a send failure.
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            if raw is None:
                continue
            conn.on_message(raw)
    finally:
        conn.close()
        endpoint.shutdown()
        if sender is not None:
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
        log.info("Socket %s disconnected", endpoint.endpoint_id)


app = create_app()
