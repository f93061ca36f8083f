"""
Unit tests for CLI commands.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from notebridge.cli import cli, configure_logging, main
from notebridge.exceptions import ConfigError, RelaySendError, StreamConnectionError
from notebridge.router import RouterStats


# ══════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════


@pytest.fixture
def runner():
    """Create a CLI runner."""
    return CliRunner()


@pytest.fixture
def patched_settings(test_settings):
    """Serve test settings to every command."""
    with patch("notebridge.cli.get_settings", return_value=test_settings):
        yield test_settings


# ══════════════════════════════════════════════════════════════
# Main CLI Tests
# ══════════════════════════════════════════════════════════════


class TestMainCLI:
    """Test main CLI group."""

    def test_cli_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_cli_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "Notebridge" in result.output
        assert "run" in result.output
        assert "say" in result.output

    def test_cli_log_options(self, runner, patched_settings):
        result = runner.invoke(cli, ["--log-level", "debug", "--json-logs", "config"])
        assert result.exit_code == 0

    def test_cli_invalid_log_level(self, runner):
        result = runner.invoke(cli, ["--log-level", "verbose", "config"])
        assert result.exit_code != 0

    def test_main_function(self):
        with patch("notebridge.cli.cli") as mock_cli:
            main()
            mock_cli.assert_called_once()

    def test_configure_logging_json(self):
        configure_logging("WARNING", json_logs=True)


# ══════════════════════════════════════════════════════════════
# Run Command Tests
# ══════════════════════════════════════════════════════════════


class TestRunCommand:
    """Test run command."""

    def test_run_exits_cleanly(self, runner, patched_settings):
        with patch("notebridge.bridge.run_bridge", AsyncMock(return_value=RouterStats())) as mock_run:
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 0
        mock_run.assert_awaited_once_with(patched_settings)

    def test_run_connection_failure_exits_nonzero(self, runner, patched_settings):
        with patch(
            "notebridge.bridge.run_bridge",
            AsyncMock(side_effect=StreamConnectionError("refused")),
        ):
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1

    def test_run_missing_config_exits_nonzero(self, runner, patched_settings):
        with patch(
            "notebridge.bridge.run_bridge",
            AsyncMock(side_effect=ConfigError("Missing required configuration: MISSKEY_HOST")),
        ):
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1

    def test_run_invalid_settings_exits_nonzero(self, runner):
        with patch("notebridge.cli.get_settings", side_effect=ConfigError("bad")):
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1


# ══════════════════════════════════════════════════════════════
# Say Command Tests
# ══════════════════════════════════════════════════════════════


class TestSayCommand:
    """Test say command."""

    @pytest.fixture
    def relay(self):
        instance = MagicMock()
        instance.connect = AsyncMock()
        instance.send = AsyncMock()
        instance.close = AsyncMock()
        return instance

    def test_say_sends_command(self, runner, patched_settings, relay):
        with patch("notebridge.relay.RelayClient", return_value=relay) as mock_cls:
            result = runner.invoke(cli, ["say", "テスト"])

        assert result.exit_code == 0
        assert "Sent: テスト" in result.output
        mock_cls.assert_called_once_with(patched_settings.relay_url)
        command = relay.send.call_args[0][0]
        assert command.text == "テスト"
        relay.close.assert_awaited_once()

    def test_say_connection_failure(self, runner, patched_settings, relay):
        relay.connect.side_effect = StreamConnectionError("refused")

        with patch("notebridge.relay.RelayClient", return_value=relay):
            result = runner.invoke(cli, ["say", "hello"])

        assert result.exit_code == 1
        relay.send.assert_not_awaited()

    def test_say_send_failure_closes(self, runner, patched_settings, relay):
        relay.send.side_effect = RelaySendError("broken")

        with patch("notebridge.relay.RelayClient", return_value=relay):
            result = runner.invoke(cli, ["say", "hello"])

        assert result.exit_code == 1
        relay.close.assert_awaited_once()

    def test_say_without_relay_host(self, runner, test_settings):
        settings = test_settings.model_copy(update={"bouyomi_chan_host": ""})

        with patch("notebridge.cli.get_settings", return_value=settings):
            result = runner.invoke(cli, ["say", "hello"])

        assert result.exit_code == 1


# ══════════════════════════════════════════════════════════════
# Config Command Tests
# ══════════════════════════════════════════════════════════════


class TestConfigCommand:
    """Test config command."""

    def test_config_masks_api_key(self, runner, patched_settings):
        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "misskey.test" in result.output
        assert "localTimeline" in result.output
        assert "secret-token" not in result.output
        assert "secr***" in result.output

    def test_config_invalid(self, runner):
        with patch("notebridge.cli.get_settings", side_effect=ConfigError("bad")):
            result = runner.invoke(cli, ["config"])

        assert result.exit_code == 1
