"""
Source Stream Client

Connection to the Misskey streaming API: dial, subscribe, then read frames.
"""

import asyncio
from typing import AsyncIterator

import structlog
import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, WebSocketException

from notebridge.exceptions import StreamConnectionError, SubscribeError
from notebridge.protocol import SubscribeRequest

logger = structlog.get_logger()

# No frame size limit and no keepalive pings; an idle or silent peer is not an error
CONNECT_OPTIONS = {"max_size": None, "ping_interval": None}


def redact_url(url: str) -> str:
    """Replace the `i=` token in a streaming URL for logging."""
    base, sep, query = url.partition("?")
    if not sep:
        return url
    params = []
    for param in query.split("&"):
        key, _, _ = param.partition("=")
        params.append(f"{key}=***" if key == "i" else param)
    return f"{base}?{'&'.join(params)}"


class SourceStreamClient:
    """
    Owns the streaming WebSocket.

    `close()` may be called from another task while `frames()` is waiting for the
    next frame; the pending read then ends and the iterator stops.
    """

    def __init__(self, url: str) -> None:
        self.url = url
        self._websocket = None
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return self._websocket is not None and not self._closed

    async def connect(self) -> None:
        """Open the streaming connection."""
        try:
            self._websocket = await websockets.connect(self.url, **CONNECT_OPTIONS)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise StreamConnectionError(
                f"Could not connect to streaming API at {redact_url(self.url)}: {e}"
            ) from e

        logger.info("Connected to streaming API", url=redact_url(self.url))

    async def subscribe(self, channel: str) -> None:
        """Send the channel subscription handshake."""
        if not self.is_connected:
            raise SubscribeError("Streaming connection is not open")

        request = SubscribeRequest.for_channel(channel)
        try:
            await self._websocket.send(request.to_json())
        except (OSError, WebSocketException) as e:
            raise SubscribeError(f"Could not subscribe to channel {channel}: {e}") from e

        logger.info("Subscribed to channel", channel=channel)

    async def frames(self) -> AsyncIterator[str | bytes]:
        """Yield raw frames until the connection closes or fails."""
        if not self.is_connected:
            return

        while True:
            try:
                frame = await self._websocket.recv()
            except ConnectionClosedOK:
                logger.info("Streaming connection closed")
                return
            except ConnectionClosed as e:
                logger.error("Streaming read error", error=str(e))
                return
            yield frame

    async def close(self) -> None:
        """Close the connection; safe to call more than once."""
        if self._websocket is None or self._closed:
            return
        self._closed = True
        try:
            await self._websocket.close()
        except (OSError, WebSocketException) as e:
            logger.warning("Error closing streaming connection", error=str(e))
        logger.info("Streaming connection closed by bridge")


__all__ = ["CONNECT_OPTIONS", "SourceStreamClient", "redact_url"]
