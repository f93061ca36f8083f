"""
Bridge Wire Protocol

Frames exchanged with the Misskey streaming API and the Bouyomi-chan relay.
Inbound frames are decoded into plain dicts and narrowed in the router; only the
outbound frames and the accepted note are modelled here.
"""

from enum import Enum
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field


class EnvelopeType(str, Enum):
    """Top-level `type` values of streaming frames."""

    # Client -> Server
    CONNECT = "connect"

    # Server -> Client
    CHANNEL = "channel"


class ChannelMessageType(str, Enum):
    """`body.type` values of channel frames."""

    NOTE = "note"


class SubscribeBody(BaseModel):
    channel: str


class SubscribeRequest(BaseModel):
    """Channel subscription handshake sent once after connecting."""

    type: EnvelopeType = EnvelopeType.CONNECT
    body: SubscribeBody

    model_config = ConfigDict(use_enum_values=True)

    @classmethod
    def for_channel(cls, channel: str) -> "SubscribeRequest":
        return cls(body=SubscribeBody(channel=channel))

    def to_json(self) -> str:
        return orjson.dumps(self.model_dump()).decode()


class Note(BaseModel):
    """A note accepted from the target channel."""

    channel_id: str
    text: str


class SynthesisCommand(BaseModel):
    """Talk command for the relay.

    Tunable voice fields use -1 for "relay default"; voice type and encoding use 0.
    """

    command: str = Field(default="Talk", alias="Command")
    text: str = Field(alias="Text")
    voice_type: int = Field(default=0, alias="VoiceType")
    volume: int = Field(default=-1, alias="Volume")
    speed: int = Field(default=-1, alias="Speed")
    tone: int = Field(default=-1, alias="Tone")
    encoding: int = Field(default=0, alias="Encoding")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def talk(cls, text: str) -> "SynthesisCommand":
        return cls(text=text)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return orjson.dumps(self.to_wire()).decode()


__all__ = [
    "EnvelopeType",
    "ChannelMessageType",
    "SubscribeRequest",
    "Note",
    "SynthesisCommand",
]
