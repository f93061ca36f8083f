"""
Notebridge CLI

Command-line interface for running and checking the bridge.
"""

import asyncio
import logging
import sys
from typing import Optional

import click
import structlog

from notebridge import __version__
from notebridge.config import get_settings, mask_secret
from notebridge.exceptions import BridgeError, ConfigError

logger = structlog.get_logger()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Configure structlog rendering and level filtering."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
    )


def _fail(message: str, error: Exception) -> None:
    logger.error(message, error=str(error))
    sys.exit(1)


# ══════════════════════════════════════════════════════════════
# CLI Group
# ══════════════════════════════════════════════════════════════


@click.group()
@click.version_option(version=__version__, prog_name="notebridge")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (defaults to LOG_LEVEL)",
)
@click.option("--json-logs/--console-logs", default=None, help="Render logs as JSON")
def cli(log_level: Optional[str], json_logs: Optional[bool]) -> None:
    """Notebridge - read Misskey channel notes aloud through Bouyomi-chan."""
    try:
        settings = get_settings()
    except ConfigError:
        # Reported by the command that needs the settings
        configure_logging(log_level or "INFO", bool(json_logs))
        return

    configure_logging(
        log_level or settings.log_level,
        settings.log_json if json_logs is None else json_logs,
    )


# ══════════════════════════════════════════════════════════════
# Bridge Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
def run() -> None:
    """Relay notes from the configured channel until interrupted."""
    from notebridge.bridge import run_bridge

    try:
        settings = get_settings()
        asyncio.run(run_bridge(settings))
    except BridgeError as e:
        _fail("Bridge stopped with an error", e)


@cli.command()
@click.argument("text")
def say(text: str) -> None:
    """Send TEXT to the relay once, to check the relay connection."""
    from notebridge.protocol import SynthesisCommand
    from notebridge.relay import RelayClient

    async def send_once() -> None:
        settings = get_settings()
        if not settings.bouyomi_chan_host.strip():
            raise ConfigError("Missing required configuration: BOUYOMI_CHAN_HOST")

        relay = RelayClient(settings.relay_url)
        await relay.connect()
        try:
            await relay.send(SynthesisCommand.talk(text))
        finally:
            await relay.close()

    try:
        asyncio.run(send_once())
    except BridgeError as e:
        _fail("Failed to send text to relay", e)

    click.echo(f"Sent: {text}")


# ══════════════════════════════════════════════════════════════
# Config Commands
# ══════════════════════════════════════════════════════════════


@cli.command()
def config() -> None:
    """Show current configuration."""
    try:
        settings = get_settings()
    except ConfigError as e:
        _fail("Invalid configuration", e)

    click.echo("Notebridge Configuration\n")

    config_items = [
        ("Misskey Host", settings.misskey_host or "Not set"),
        ("Misskey API Key", mask_secret(settings.misskey_api_key)),
        ("Channel Name", settings.misskey_channel_name or "Not set"),
        ("Channel ID", settings.misskey_channel_id),
        ("Relay Host", settings.bouyomi_chan_host or "Not set"),
        ("Relay Reconnect", str(settings.relay_reconnect)),
        ("Log Level", settings.log_level),
    ]

    for key, value in config_items:
        click.echo(f"  {key:20} {value}")


# ══════════════════════════════════════════════════════════════
# Entry Point
# ══════════════════════════════════════════════════════════════


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
