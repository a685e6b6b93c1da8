"""
WebSocket endpoint adapter.

deliver() only enqueues; a per-endpoint sender task drains the queue onto the
socket. A slow or stalled peer therefore backs up its own queue and nobody
else's.
"""

import asyncio
from typing import Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect

from relay.core.endpoint import Endpoint


class EndpointClosedError(ConnectionError):
    """Raised by deliver() once the endpoint has shut down."""
    pass


class WebSocketEndpoint(Endpoint):
    """
    Relay endpoint backed by a FastAPI WebSocket.

    Must be created and used on the event loop that serves the socket.
    """

    def __init__(self, websocket: WebSocket, endpoint_id: Optional[str] = None) -> None:
        super().__init__(endpoint_id)
        self._websocket = websocket
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._closed = False

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def deliver(self, payload: str) -> None:
        if self._closed:
            raise EndpointClosedError(f"endpoint {self.endpoint_id} is closed")
        self._queue.put_nowait(payload)

    def shutdown(self) -> None:
        """Stop accepting payloads and let the sender task finish."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(None)

    async def pump(self, on_failure: Callable[[Exception], object]) -> bool:
        """
        Send queued payloads in order until shutdown() or a send error.

        Args:
            on_failure: Called once with the exception if a send fails

        Returns:
            True after a clean shutdown, False if a send failed
        """
        while True:
            payload = await self._queue.get()
            if payload is None:
                return True
            try:
                await self._websocket.send_text(payload)
            except (WebSocketDisconnect, RuntimeError, OSError) as ex:
                self._closed = True
                on_failure(ex)
                return False
