"""
Pytest Configuration and Fixtures

Shared fixtures for unit tests.
"""

from typing import Generator
from unittest.mock import AsyncMock

import orjson
import pytest
import structlog

from notebridge.config import Settings, get_settings


# ══════════════════════════════════════════════════════════════
# Settings Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def test_settings() -> Settings:
    """Complete settings that do not read the environment or a .env file."""
    return Settings(
        _env_file=None,
        misskey_host="misskey.test",
        misskey_api_key="secret-token",
        misskey_channel_name="localTimeline",
        misskey_channel_id="example",
        bouyomi_chan_host="127.0.0.1:50002",
    )


@pytest.fixture(autouse=True)
def reset_state() -> Generator[None, None, None]:
    """Clear cached settings and logging configuration between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


# ══════════════════════════════════════════════════════════════
# Frame Fixtures
# ══════════════════════════════════════════════════════════════


def make_note_frame(text="hi", channel_id="example", channel_type="note") -> str:
    """Build a channel frame as the streaming API sends it."""
    return orjson.dumps(
        {
            "type": "channel",
            "body": {
                "id": channel_id,
                "type": channel_type,
                "body": {"id": "9abc", "text": text, "userId": "u1"},
            },
        }
    ).decode()


@pytest.fixture
def note_frame():
    """Factory for channel note frames."""
    return make_note_frame


# ══════════════════════════════════════════════════════════════
# Mock Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def mock_websocket() -> AsyncMock:
    """A WebSocket connection with async send/recv/close."""
    ws = AsyncMock()
    ws.send = AsyncMock()
    ws.recv = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.fixture
def mock_relay() -> AsyncMock:
    """A relay client whose submissions succeed."""
    relay = AsyncMock()
    relay.submit = AsyncMock(return_value=True)
    relay.connect = AsyncMock()
    relay.close = AsyncMock()
    return relay
