"""
Message Router

Decodes streaming frames and forwards note text to the relay.

Dispatch is three nested stages (envelope type, channel message type, note
body). Each stage narrows one level of the decoded dict and drops the frame
with a log line when the shape is not what it expects. Nothing raised by a
single frame leaves `handle_frame`, so unrelated or malformed traffic never
stops the read loop.
"""

import asyncio
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterable

import orjson
import structlog

from notebridge.protocol import ChannelMessageType, EnvelopeType, Note, SynthesisCommand
from notebridge.relay import RelayClient

logger = structlog.get_logger()


@dataclass
class RouterStats:
    """Frame counters for one router run."""

    received: int = 0
    dropped: int = 0
    forwarded: int = 0
    failed: int = 0


def parse_frame(raw: str | bytes) -> dict[str, Any] | None:
    """Decode a raw frame into a dict, or None if it is not a JSON object."""
    try:
        message = orjson.loads(raw)
    except orjson.JSONDecodeError as e:
        logger.warning("Failed to parse message JSON", error=str(e))
        return None

    if not isinstance(message, dict):
        logger.warning("Message is not a JSON object", kind=type(message).__name__)
        return None
    return message


def extract_note(message: dict[str, Any], target_channel: str) -> Note | None:
    """Narrow a decoded envelope down to a note on the target channel."""
    msg_type = message.get("type")
    if not isinstance(msg_type, str):
        logger.warning("Unknown message type")
        return None

    if msg_type != EnvelopeType.CHANNEL.value:
        logger.info("Unknown message type", type=msg_type)
        return None

    return _extract_channel_note(message, target_channel)


def _extract_channel_note(message: dict[str, Any], target_channel: str) -> Note | None:
    body = message.get("body")
    if not isinstance(body, dict):
        logger.warning("Channel message body is missing")
        return None

    channel_id = body.get("id")
    if not isinstance(channel_id, str):
        logger.warning("Channel id is missing")
        return None

    if channel_id != target_channel:
        logger.info("Not the target channel", channel_id=channel_id)
        return None

    channel_type = body.get("type")
    if not isinstance(channel_type, str):
        logger.warning("Channel message type is missing", channel_id=channel_id)
        return None

    if channel_type != ChannelMessageType.NOTE.value:
        logger.info("Unknown channel message type", type=channel_type)
        return None

    note_body = body.get("body")
    if not isinstance(note_body, dict):
        logger.warning("Note body is missing", channel_id=channel_id)
        return None

    text = note_body.get("text")
    if not isinstance(text, str):
        # Renotes and file-only notes carry a null text
        logger.info("Note has no text", channel_id=channel_id)
        return None

    return Note(channel_id=channel_id, text=text)


class MessageRouter:
    """Routes note text from one target channel to the relay."""

    def __init__(self, relay: RelayClient, target_channel: str) -> None:
        self.relay = relay
        self.target_channel = target_channel
        self.stats = RouterStats()

    async def handle_frame(self, raw: str | bytes) -> bool:
        """
        Process one raw frame.

        Returns:
            True if a synthesis command was written to the relay
        """
        self.stats.received += 1

        message = parse_frame(raw)
        if message is None:
            self.stats.dropped += 1
            return False

        note = extract_note(message, self.target_channel)
        if note is None:
            self.stats.dropped += 1
            return False

        logger.info("New note", text=note.text)

        if await self.relay.submit(SynthesisCommand.talk(note.text)):
            self.stats.forwarded += 1
            return True

        self.stats.failed += 1
        return False

    async def run(
        self,
        frames: AsyncIterable[str | bytes],
        shutdown: asyncio.Event | None = None,
    ) -> RouterStats:
        """Consume frames until the source ends or shutdown is requested."""
        async for raw in frames:
            if shutdown is not None and shutdown.is_set():
                break
            await self.handle_frame(raw)

        logger.info("Message router stopped", **asdict(self.stats))
        return self.stats


__all__ = ["MessageRouter", "RouterStats", "extract_note", "parse_frame"]
