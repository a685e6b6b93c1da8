"""
End-to-end tests for the FastAPI relay server.

Uses FastAPI's TestClient; every WebSocket in a test shares the client's
event loop.
"""

import asyncio
import contextlib
import re
import time

from fastapi.testclient import TestClient

from relay.core.clock import ManualClock
from relay.session.eviction import IdleTimeout
from relay.session.registry import SessionRegistry
from relay_server.config import RelayConfig
from relay_server.main import create_app, relay_socket, sweep_loop
from relay.tests.fakes import RecordingEndpoint, record


def _app(registry=None, **config):
    cfg = RelayConfig(**config)
    if registry is None:
        registry = SessionRegistry(policy=cfg.eviction_policy())
    app = create_app(cfg, registry=registry, configure_logging=False)
    return app, registry


def _wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def _events(registry, token):
    session = registry.get(token)
    return session.summary().events if session else -1


def _endpoints(registry, token):
    session = registry.get(token)
    return session.summary().endpoints if session else -1


def test_health():
    app, _ = _app()
    with TestClient(app) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "online", "sessions": 0}


def test_create_session_mints_unguessable_token():
    app, registry = _app()
    with TestClient(app) as client:
        first = client.post("/api/v1/sessions")
        second = client.post("/api/v1/sessions")

    assert first.status_code == 201
    body = first.json()
    assert re.fullmatch(r"[0-9a-f]{32}", body["token"])
    assert body["websocket_path"] == f"/{body['token']}/websocket"
    assert body["token"] != second.json()["token"]
    # Sessions only come into being when an endpoint connects.
    assert len(registry) == 0


def test_unknown_session_is_not_found():
    app, _ = _app()
    with TestClient(app) as client:
        resp = client.get("/api/v1/sessions/nope")
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Session not found"}


def test_broadcast_and_late_join_over_websocket():
    app, registry = _app()
    e1, e2 = record(1), record(2)

    with TestClient(app) as client:
        with client.websocket_connect("/abc/websocket") as x:
            x.send_text(e1)
            assert _wait_for(lambda: _events(registry, "abc") == 1)

            with client.websocket_connect("/abc/websocket") as y:
                assert y.receive_text() == e1
                assert _endpoints(registry, "abc") == 2

                x.send_text(e2)
                assert y.receive_text() == e2

            assert _wait_for(lambda: _endpoints(registry, "abc") == 1)

            info = client.get("/api/v1/sessions/abc").json()
            assert set(info) == {"token", "events", "endpoints", "age_seconds", "idle_seconds"}
            assert info["token"] == "abc"
            assert info["events"] == 2
            assert info["endpoints"] == 1
            assert info["idle_seconds"] is None

        assert _wait_for(lambda: _endpoints(registry, "abc") == 0)
        info = client.get("/api/v1/sessions/abc").json()
        assert info["events"] == 2
        assert info["idle_seconds"] is not None

        # Rejoining after everyone left still replays the whole history.
        with client.websocket_connect("/abc/websocket") as z:
            assert z.receive_text() == e1
            assert z.receive_text() == e2


def test_watcher_can_send_too():
    app, _ = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/peer/websocket") as a:
            with client.websocket_connect("/peer/websocket") as b:
                b.send_text(record(1))
                assert a.receive_text() == record(1)
                a.send_text(record(2))
                assert b.receive_text() == record(2)


def test_binary_frames_are_relayed_as_text():
    app, _ = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/bin/websocket") as a:
            with client.websocket_connect("/bin/websocket") as b:
                a.send_bytes(record(7).encode("utf-8"))
                assert b.receive_text() == record(7)


def test_malformed_message_is_dropped():
    app, registry = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/bad/websocket") as x:
            x.send_text("<not a record>")
            x.send_text(record(1))
            assert _wait_for(lambda: _events(registry, "bad") == 1)

            with client.websocket_connect("/bad/websocket") as y:
                assert y.receive_text() == record(1)


def test_deeply_nested_message_does_not_break_the_socket():
    app, registry = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/deep/websocket") as x:
            with client.websocket_connect("/deep/websocket") as y:
                x.send_text('{"a":' * 100000)
                x.send_text(record(1))
                assert y.receive_text() == record(1)
                assert _events(registry, "deep") == 1
                assert _endpoints(registry, "deep") == 2


def test_sessions_do_not_leak_into_each_other():
    app, registry = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/one/websocket") as a:
            with client.websocket_connect("/two/websocket") as b:
                a.send_text(record(1))
                b.send_text(record(2))
                assert _wait_for(lambda: _events(registry, "one") == 1 and _events(registry, "two") == 1)

            with client.websocket_connect("/one/websocket") as late:
                assert late.receive_text() == record(1)


def test_stats_endpoint():
    app, registry = _app()
    with TestClient(app) as client:
        with client.websocket_connect("/s1/websocket") as a:
            with client.websocket_connect("/s2/websocket"):
                a.send_text(record(1))
                assert _wait_for(lambda: _events(registry, "s1") == 1)
                stats = client.get("/api/v1/stats").json()

    assert stats == {"sessions": 2, "endpoints": 2, "events": 1, "eviction": "retain"}


def test_sweep_loop_evicts_idle_sessions():
    clock = ManualClock()
    registry = SessionRegistry(policy=IdleTimeout(1), clock=clock)
    registry.resolve_or_create("old")
    clock.advance(5)

    async def run():
        task = asyncio.create_task(sweep_loop(registry, 0.01))
        for _ in range(200):
            await asyncio.sleep(0.01)
            if "old" not in registry:
                break
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert "old" not in registry


def test_idle_eviction_configured_from_app():
    app, registry = _app(eviction="idle", idle_grace_seconds=30, sweep_interval_seconds=60)
    assert isinstance(registry.policy, IdleTimeout)
    assert registry.policy.grace_seconds == 30
    with TestClient(app) as client:
        assert client.get("/api/v1/stats").json()["eviction"] == "idle"


class _DeadPeerSocket:
    """Socket whose peer is gone: every send fails, close ends the receive loop."""

    def __init__(self, app):
        self.app = app
        self.close_code = None
        self._inbox = asyncio.Queue()

    async def accept(self):
        pass

    async def send_text(self, data):
        raise RuntimeError("Unexpected ASGI message 'websocket.send'")

    async def receive(self):
        return await self._inbox.get()

    async def close(self, code=1000):
        self.close_code = code
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": code})


def test_send_failure_closes_the_socket_and_leaves_the_session():
    app, registry = _app()
    peer = RecordingEndpoint()
    conn = app.state.engine.connect("dead", peer)
    conn.on_message(record(1))
    sock = _DeadPeerSocket(app)

    async def run():
        await asyncio.wait_for(relay_socket(sock, "dead"), timeout=2)

    asyncio.run(run())
    assert sock.close_code == 1011
    assert registry.get("dead").endpoint_ids() == (peer.endpoint_id,)

    # The surviving peer keeps relaying.
    assert conn.on_message(record(2)).seq == 1
