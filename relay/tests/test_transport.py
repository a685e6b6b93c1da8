"""
Tests for the WebSocket endpoint adapter (queue + sender task).
"""

import asyncio

import pytest

from relay_server.transport import EndpointClosedError, WebSocketEndpoint


class _FakeSocket:
    def __init__(self, fail_on=None):
        self.sent = []
        self.fail_on = fail_on

    async def send_text(self, data):
        if data == self.fail_on:
            raise RuntimeError("Cannot call send once a close message has been sent")
        await asyncio.sleep(0)
        self.sent.append(data)


def test_pump_sends_in_delivery_order():
    sock = _FakeSocket()

    async def run():
        endpoint = WebSocketEndpoint(sock)
        task = asyncio.create_task(endpoint.pump(lambda ex: None))
        for i in range(20):
            endpoint.deliver(str(i))
        endpoint.shutdown()
        assert await asyncio.wait_for(task, timeout=2) is True

    asyncio.run(run())
    assert sock.sent == [str(i) for i in range(20)]


def test_deliver_after_shutdown_raises():
    async def run():
        endpoint = WebSocketEndpoint(_FakeSocket())
        endpoint.shutdown()
        endpoint.shutdown()
        with pytest.raises(EndpointClosedError):
            endpoint.deliver("x")

    asyncio.run(run())


def test_send_error_reported_once_and_endpoint_closes():
    sock = _FakeSocket(fail_on="b")
    failures = []

    async def run():
        endpoint = WebSocketEndpoint(sock)
        task = asyncio.create_task(endpoint.pump(failures.append))
        endpoint.deliver("a")
        endpoint.deliver("b")
        endpoint.deliver("c")
        assert await asyncio.wait_for(task, timeout=2) is False
        with pytest.raises(EndpointClosedError):
            endpoint.deliver("d")

    asyncio.run(run())
    assert sock.sent == ["a"]
    assert len(failures) == 1
    assert isinstance(failures[0], RuntimeError)


def test_slow_peer_does_not_hold_up_fast_peer():
    release = None

    class _StalledSocket(_FakeSocket):
        async def send_text(self, data):
            await release.wait()
            self.sent.append(data)

    fast, slow = _FakeSocket(), _StalledSocket()

    async def run():
        nonlocal release
        release = asyncio.Event()
        fast_ep, slow_ep = WebSocketEndpoint(fast), WebSocketEndpoint(slow)
        tasks = [
            asyncio.create_task(fast_ep.pump(lambda ex: None)),
            asyncio.create_task(slow_ep.pump(lambda ex: None)),
        ]
        for ep in (fast_ep, slow_ep):
            ep.deliver("1")
            ep.deliver("2")
        for _ in range(10):
            await asyncio.sleep(0)
        assert fast.sent == ["1", "2"]
        assert slow.sent == []
        assert slow_ep.pending >= 1

        release.set()
        fast_ep.shutdown()
        slow_ep.shutdown()
        await asyncio.wait_for(asyncio.gather(*tasks), timeout=2)

    asyncio.run(run())
    assert slow.sent == ["1", "2"]
