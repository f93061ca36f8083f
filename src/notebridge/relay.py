"""
Relay Client

Connection to the Bouyomi-chan TalkAPI WebSocket. Commands are written
fire-and-forget; the relay sends no acknowledgement.
"""

import asyncio
from dataclasses import dataclass

import structlog
import websockets
from websockets.exceptions import WebSocketException

from notebridge.exceptions import RelaySendError, StreamConnectionError
from notebridge.protocol import SynthesisCommand
from notebridge.source import CONNECT_OPTIONS

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReconnectPolicy:
    """What to do when a submit fails. Disabled means log and move on."""

    enabled: bool = False
    attempts: int = 3
    delay_seconds: float = 1.0
    max_delay_seconds: float = 30.0

    def delays(self) -> list[float]:
        """Backoff delays, doubling from the initial delay up to the cap."""
        result = []
        delay = self.delay_seconds
        for _ in range(self.attempts):
            result.append(min(delay, self.max_delay_seconds))
            delay *= 2
        return result


class RelayClient:
    """Owns the relay WebSocket and submits synthesis commands."""

    def __init__(self, url: str, reconnect: ReconnectPolicy | None = None) -> None:
        self.url = url
        self.reconnect = reconnect or ReconnectPolicy()
        self._websocket = None

    async def connect(self) -> None:
        """Open the relay connection. No handshake is sent."""
        try:
            self._websocket = await websockets.connect(self.url, **CONNECT_OPTIONS)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            raise StreamConnectionError(f"Could not connect to relay at {self.url}: {e}") from e

        logger.info("Connected to relay", url=self.url)

    async def send(self, command: SynthesisCommand) -> None:
        """Write one command frame, raising RelaySendError on failure."""
        if self._websocket is None:
            raise RelaySendError("Relay connection is not open")
        try:
            await self._websocket.send(command.to_json())
        except (OSError, WebSocketException) as e:
            raise RelaySendError(str(e)) from e

    async def submit(self, command: SynthesisCommand) -> bool:
        """
        Submit a command to the relay.

        Errors are logged, never raised, so a relay outage does not stop the
        source stream from being read.

        Returns:
            True if the command was written
        """
        try:
            await self.send(command)
            return True
        except RelaySendError as e:
            logger.error("Failed to send command to relay", error=str(e))

        if not self.reconnect.enabled:
            return False

        if not await self._reconnect():
            return False

        try:
            await self.send(command)
            return True
        except RelaySendError as e:
            logger.error("Resend after relay reconnect failed", error=str(e))
            return False

    async def _reconnect(self) -> bool:
        await self._close_quietly()

        delays = self.reconnect.delays()
        for attempt, delay in enumerate(delays, start=1):
            await asyncio.sleep(delay)
            try:
                await self.connect()
                logger.info("Reconnected to relay", attempt=attempt)
                return True
            except StreamConnectionError as e:
                logger.warning(
                    "Relay reconnect failed",
                    attempt=attempt,
                    max_attempts=len(delays),
                    error=str(e),
                )
        return False

    async def _close_quietly(self) -> None:
        websocket, self._websocket = self._websocket, None
        if websocket is None:
            return
        try:
            await websocket.close()
        except (OSError, WebSocketException) as e:
            logger.debug("Error closing relay connection", error=str(e))

    async def close(self) -> None:
        """Close the relay connection."""
        if self._websocket is None:
            return
        await self._close_quietly()
        logger.info("Relay connection closed")


__all__ = ["RelayClient", "ReconnectPolicy"]
