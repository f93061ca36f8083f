"""
Bridge Lifecycle

Wires the source stream, router and relay together and owns shutdown.

States: INIT -> CONNECTING -> SUBSCRIBED -> STREAMING -> SHUTTING_DOWN -> TERMINATED.
A shutdown event passed in at construction replaces a process-wide signal flag;
setting it closes the source connection, which ends the read loop.
"""

import asyncio
import signal
from enum import Enum

import structlog

from notebridge import __version__
from notebridge.config import Settings
from notebridge.relay import ReconnectPolicy, RelayClient
from notebridge.router import MessageRouter, RouterStats
from notebridge.source import SourceStreamClient

logger = structlog.get_logger()


class BridgeState(str, Enum):
    """Lifecycle states."""

    INIT = "init"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    STREAMING = "streaming"
    SHUTTING_DOWN = "shutting_down"
    TERMINATED = "terminated"


class Bridge:
    """
    Lifecycle controller for one source channel and one relay.

    The bridge is the only owner of both connections and the only closer.
    """

    def __init__(
        self,
        settings: Settings,
        shutdown: asyncio.Event | None = None,
        source: SourceStreamClient | None = None,
        relay: RelayClient | None = None,
    ) -> None:
        self.settings = settings
        self.shutdown = shutdown or asyncio.Event()
        self.source = source or SourceStreamClient(settings.streaming_url)
        self.relay = relay or RelayClient(
            settings.relay_url,
            reconnect=ReconnectPolicy(
                enabled=settings.relay_reconnect,
                attempts=settings.relay_reconnect_attempts,
                delay_seconds=settings.relay_reconnect_delay_seconds,
                max_delay_seconds=settings.relay_reconnect_max_delay_seconds,
            ),
        )
        self.router = MessageRouter(self.relay, settings.misskey_channel_id)
        self.state = BridgeState.INIT

    def _transition(self, state: BridgeState) -> None:
        logger.debug("Bridge state change", previous=self.state.value, state=state.value)
        self.state = state

    async def start(self) -> None:
        """Validate settings, open both connections and subscribe.

        Raises:
            ConfigError: a required setting is empty
            StreamConnectionError: either endpoint could not be reached
            SubscribeError: the subscription handshake could not be sent
        """
        self.settings.validate_required()

        self._transition(BridgeState.CONNECTING)
        await self.source.connect()
        await self.relay.connect()

        await self.source.subscribe(self.settings.misskey_channel_name)
        self._transition(BridgeState.SUBSCRIBED)

    async def _watch_shutdown(self) -> None:
        await self.shutdown.wait()
        if self.state is BridgeState.STREAMING:
            self._transition(BridgeState.SHUTTING_DOWN)
            logger.info("Shutdown requested, closing streaming connection")
        await self.source.close()

    async def stream(self) -> RouterStats:
        """Run the read loop until the source ends or shutdown is requested."""
        self._transition(BridgeState.STREAMING)

        watcher = asyncio.create_task(self._watch_shutdown())
        try:
            return await self.router.run(self.source.frames(), self.shutdown)
        finally:
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        """Close both connections and mark the bridge terminated."""
        if self.state is BridgeState.TERMINATED:
            return
        await self.source.close()
        await self.relay.close()
        self._transition(BridgeState.TERMINATED)

    async def run(self) -> RouterStats:
        """Start, stream, then close whichever way streaming ends."""
        logger.info(
            "Starting notebridge",
            version=__version__,
            channel=self.settings.misskey_channel_name,
            relay=self.settings.relay_url,
        )
        try:
            await self.start()
            return await self.stream()
        finally:
            await self.close()
            logger.info("Notebridge stopped")


async def run_bridge(settings: Settings) -> RouterStats:
    """Run a bridge with SIGINT/SIGTERM wired to its shutdown event."""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        return await Bridge(settings, shutdown=shutdown).run()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


__all__ = ["Bridge", "BridgeState", "run_bridge"]
