"""
Notebridge Configuration Management

Settings are read once at startup from environment variables or a `.env` file.
"""

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from notebridge.exceptions import ConfigError


class Settings(BaseSettings):
    """Bridge settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ══════════════════════════════════════════════════════════════
    # Source stream (Misskey)
    # ══════════════════════════════════════════════════════════════
    misskey_host: str = ""
    misskey_api_key: str = ""
    misskey_channel_name: str = ""
    misskey_channel_id: str = "example"

    # ══════════════════════════════════════════════════════════════
    # Relay (Bouyomi-chan)
    # ══════════════════════════════════════════════════════════════
    bouyomi_chan_host: str = ""

    # Reconnect on send failure; off reproduces fire-and-forget delivery
    relay_reconnect: bool = False
    relay_reconnect_attempts: int = Field(default=3, ge=1)
    relay_reconnect_delay_seconds: float = Field(default=1.0, gt=0)
    relay_reconnect_max_delay_seconds: float = Field(default=30.0, gt=0)

    # ══════════════════════════════════════════════════════════════
    # Logging
    # ══════════════════════════════════════════════════════════════
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def streaming_url(self) -> str:
        """Source streaming endpoint, with the API key as a query parameter."""
        return f"wss://{self.misskey_host}/streaming?i={self.misskey_api_key}"

    @property
    def relay_url(self) -> str:
        return f"ws://{self.bouyomi_chan_host}/TalkAPI/"

    def validate_required(self) -> None:
        """Raise ConfigError naming every required value that is empty."""
        required = {
            "MISSKEY_HOST": self.misskey_host,
            "MISSKEY_API_KEY": self.misskey_api_key,
            "MISSKEY_CHANNEL_NAME": self.misskey_channel_name,
            "MISSKEY_CHANNEL_ID": self.misskey_channel_id,
            "BOUYOMI_CHAN_HOST": self.bouyomi_chan_host,
        }
        missing = [name for name, value in required.items() if not value.strip()]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def mask_secret(value: str) -> str:
    """Hide a secret for display, keeping a short prefix."""
    if not value:
        return "Not set"
    if len(value) <= 4:
        return "***"
    return f"{value[:4]}***"
