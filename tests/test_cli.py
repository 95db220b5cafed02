"""Test cases for pycecctl.cli module."""

import argparse
from unittest.mock import patch

import pytest

from pycecctl.cli import (
    async_main,
    build_parser,
    config_from_args,
    main,
    non_negative_int,
    positive_float,
)
from pycecctl.controller import CecController

from conftest import audio_output, failed, ok


class TestArgumentTypes:
    """Test cases for the argparse type helpers."""

    def test_positive_float_valid(self):
        assert positive_float("2.5") == 2.5

    @pytest.mark.parametrize("value", ["0", "-1.5", "not_a_number", ""])
    def test_positive_float_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            positive_float(value)

    def test_non_negative_int(self):
        assert non_negative_int("0") == 0
        assert non_negative_int("50") == 50

    @pytest.mark.parametrize("value", ["-1", "1.5", "abc"])
    def test_non_negative_int_invalid(self, value):
        with pytest.raises(argparse.ArgumentTypeError):
            non_negative_int(value)


class TestBuildParser:
    """Test cases for build_parser function."""

    @pytest.fixture
    def parser(self):
        """Create a parser instance."""
        return build_parser()

    def test_parser_creation(self, parser):
        assert isinstance(parser, argparse.ArgumentParser)
        assert parser.prog == "pycecctl"

    def test_defaults(self, parser):
        args = parser.parse_args(["audio-status", "5"])
        config = config_from_args(args)

        assert args.command == "audio-status"
        assert args.device == "5"
        assert config.executable == "cec-ctl"
        assert config.baseline_flags == "-s --cec-version-1.4"
        assert config.volume_step == 0.5
        assert config.command_delay_ms == 50

    def test_global_options(self, parser):
        args = parser.parse_args([
            "--cec-ctl", "/opt/cec-ctl", "--cec-ctl-params=-s", "--volume-step", "1",
            "--command-delay", "0", "--require-registration", "volume", "5", "40",
        ])
        config = config_from_args(args)

        assert config.executable == "/opt/cec-ctl"
        assert config.baseline_flags == "-s"
        assert config.volume_step == 1.0
        assert config.command_delay_ms == 0
        assert config.require_registration is True
        assert args.level == 40

    def test_volume_step_commands(self, parser):
        args = parser.parse_args(["volume-up", "5", "--steps", "3"])
        assert args.command == "volume-up"
        assert args.steps == 3

        args = parser.parse_args(["volume-down", "5"])
        assert args.steps == 1

    def test_mute_choices(self, parser):
        assert parser.parse_args(["mute", "5", "on"]).state == "on"
        with pytest.raises(SystemExit):
            parser.parse_args(["mute", "5", "toggle"])

    def test_serve(self, parser):
        args = parser.parse_args(["serve", "--host", "127.0.0.1", "--port", "8080"])
        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 8080

    def test_invalid_volume_step(self, parser):
        with pytest.raises(SystemExit):
            parser.parse_args(["--volume-step", "0", "audio-status", "5"])


@pytest.fixture
def patched_controller(gateway):
    """Make the CLI build its controller on the scripted gateway."""
    with patch("pycecctl.cli.CecController",
               side_effect=lambda config: CecController(config, gateway=gateway)):
        yield


class TestAsyncMain:
    """Test cases for running one-shot commands."""

    @pytest.mark.asyncio
    async def test_audio_status(self, gateway, patched_controller, capsys):
        gateway.on("--give-audio-status", ok(audio_output(28)))

        assert await async_main(["audio-status", "5"]) == 0

        out = capsys.readouterr().out
        assert "Mute: off" in out
        assert "Volume: 28" in out
        assert "Failed" not in out
        assert gateway.calls == ["--clear", "--playback", "--give-audio-status -t 5", "--clear"]

    @pytest.mark.asyncio
    async def test_volume(self, gateway, patched_controller):
        gateway.on("--give-audio-status", ok(audio_output(28)), ok(audio_output(30)))

        assert await async_main(["--command-delay", "0", "volume", "5", "30"]) == 0
        assert len(gateway.presses) == 4

    @pytest.mark.asyncio
    async def test_wake(self, gateway, patched_controller):
        assert await async_main(["wake", "0"]) == 0
        assert "--image-view-on -t 0" in gateway.calls

    @pytest.mark.asyncio
    async def test_command_failure(self, gateway, patched_controller, capsys):
        gateway.on("--standby", failed("Command failed: no reply"))

        assert await async_main(["standby", "0"]) == 1
        assert "no reply" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_registration_failure(self, gateway, patched_controller, capsys):
        gateway.on("--playback", failed("busy"))

        assert await async_main(["standby", "0"]) == 1
        assert "Error:" in capsys.readouterr().out
        assert gateway.calls_starting_with("--standby") == []

    @pytest.mark.asyncio
    async def test_no_command(self, capsys):
        assert await async_main([]) == 1
        assert "No command specified" in capsys.readouterr().out


class TestMain:
    """Test cases for the synchronous entry point."""

    def test_serve(self):
        with patch("pycecctl.server.serve") as mock_serve:
            assert main(["serve", "--port", "8123"]) == 0

        mock_serve.assert_called_once()
        assert mock_serve.call_args.kwargs == {"host": "0.0.0.0", "port": 8123}
        assert isinstance(mock_serve.call_args.args[0], CecController)
