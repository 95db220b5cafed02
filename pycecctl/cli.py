"""
Command-line interface for the pycecctl package.

This module provides a command-line interface for controlling CEC devices and
for running the REST/WebSocket server.
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from .cec_types import CecConfig, CecResult, PowerState, VolumeDirection
from .constants import (
    CEC_CTL_COMMAND,
    CEC_CTL_PARAMS,
    DEFAULT_COMMAND_DELAY_MS,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_HTTP_HOST,
    DEFAULT_HTTP_PORT,
    DEFAULT_TEARDOWN_TIMEOUT,
    DEFAULT_VOLUME_STEP,
)
from .controller import CecController
from .exceptions import CecError

_LOGGER = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def positive_float(value: str) -> float:
    """argparse type for values that must be greater than zero."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} must be a number")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be greater than 0")
    return number


def non_negative_int(value: str) -> int:
    """argparse type for values that must be zero or more."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} must be an integer")
    if number < 0:
        raise argparse.ArgumentTypeError(f"{value!r} must not be negative")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line parser."""
    parser = argparse.ArgumentParser(
        prog="pycecctl",
        description="Control HDMI-CEC devices through cec-ctl"
    )

    parser.add_argument(
        "--cec-ctl",
        dest="executable",
        default=CEC_CTL_COMMAND,
        help="cec-ctl executable (default: %(default)s)"
    )
    parser.add_argument(
        "--cec-ctl-params",
        dest="baseline_flags",
        default=CEC_CTL_PARAMS,
        help="Flags passed to every cec-ctl call (default: %(default)s)"
    )
    parser.add_argument(
        "--volume-step",
        type=positive_float,
        default=DEFAULT_VOLUME_STEP,
        help="Volume change per up/down pulse (default: %(default)s)"
    )
    parser.add_argument(
        "--command-delay",
        type=non_negative_int,
        default=DEFAULT_COMMAND_DELAY_MS,
        help="Milliseconds between volume pulses, 0 disables (default: %(default)s)"
    )
    parser.add_argument(
        "--timeout",
        type=positive_float,
        default=DEFAULT_COMMAND_TIMEOUT,
        help="Seconds before a cec-ctl call is killed (default: %(default)s)"
    )
    parser.add_argument(
        "--teardown-timeout",
        type=positive_float,
        default=DEFAULT_TEARDOWN_TIMEOUT,
        help="Seconds allowed for unregistering at shutdown (default: %(default)s)"
    )
    parser.add_argument(
        "--require-registration",
        action="store_true",
        help="Reject commands while the adapter is not registered on the bus"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Server
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the REST and WebSocket server"
    )
    serve_parser.add_argument(
        "--host",
        default=DEFAULT_HTTP_HOST,
        help="Address to listen on (default: %(default)s)"
    )
    serve_parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", DEFAULT_HTTP_PORT)),
        help="Port to listen on (default: $PORT or %d)" % DEFAULT_HTTP_PORT
    )

    # Queries
    version_parser = subparsers.add_parser("version", help="Get the CEC version of a device")
    version_parser.add_argument("device", help="Logical address of the device")

    status_parser = subparsers.add_parser("audio-status", help="Get mute and volume of an audio system")
    status_parser.add_argument("device", help="Logical address of the audio system")

    # Volume
    volume_parser = subparsers.add_parser("volume", help="Set an absolute volume level")
    volume_parser.add_argument("device", help="Logical address of the audio system")
    volume_parser.add_argument("level", type=int, help="Volume level (0-100)")

    for name, direction in (("volume-up", "up"), ("volume-down", "down")):
        step_parser = subparsers.add_parser(name, help=f"Turn the volume {direction}")
        step_parser.add_argument("device", help="Logical address of the audio system")
        step_parser.add_argument(
            "--steps",
            type=int,
            default=1,
            help="Number of pulses to send (default: %(default)s)"
        )

    # Mute
    mute_parser = subparsers.add_parser("mute", help="Mute or unmute an audio system")
    mute_parser.add_argument("device", help="Logical address of the audio system")
    mute_parser.add_argument("state", choices=["on", "off"], help="Mute state to set")

    # Source and power
    source_parser = subparsers.add_parser("active-source", help="Announce the active source")
    source_parser.add_argument("address", help="Physical address, e.g. 1.0.0.0")

    standby_parser = subparsers.add_parser("standby", help="Put a device into standby")
    standby_parser.add_argument("device", help="Logical address of the device")

    wake_parser = subparsers.add_parser("wake", help="Wake a display (image view on)")
    wake_parser.add_argument("device", help="Logical address of the device")

    # Raw key press
    control_parser = subparsers.add_parser("user-control", help="Press and release a remote key")
    control_parser.add_argument("device", help="Logical address of the device")
    control_parser.add_argument("control", help="cec-ctl ui-cmd name, e.g. volume-up")

    return parser


def config_from_args(args: argparse.Namespace) -> CecConfig:
    return CecConfig(
        executable=args.executable,
        baseline_flags=args.baseline_flags,
        volume_step=args.volume_step,
        command_delay_ms=args.command_delay,
        command_timeout=args.timeout,
        teardown_timeout=args.teardown_timeout,
        require_registration=args.require_registration
    )


async def run_command(controller: CecController, args: argparse.Namespace) -> CecResult:
    """Run a one-shot command on an initialized controller."""
    if args.command == "version":
        return await controller.get_cec_version(args.device)
    elif args.command == "audio-status":
        return await controller.get_audio_status(args.device)
    elif args.command == "volume":
        return await controller.set_volume_absolute(args.device, args.level)
    elif args.command in ("volume-up", "volume-down"):
        direction = VolumeDirection.UP if args.command == "volume-up" else VolumeDirection.DOWN
        return await controller.adjust_volume_relative(args.device, direction, steps=args.steps)
    elif args.command == "mute":
        return await controller.set_mute(args.device, args.state == "on")
    elif args.command == "active-source":
        return await controller.set_active_source(args.address)
    elif args.command == "standby":
        return await controller.set_power_state(args.device, PowerState.STANDBY)
    elif args.command == "wake":
        return await controller.set_power_state(args.device, PowerState.WAKE)
    elif args.command == "user-control":
        return await controller.send_user_control(args.device, args.control)
    raise ValueError(f"Unknown command: {args.command}")


def print_result(result: CecResult) -> None:
    """Print a command result to the console."""
    if result.protocol_version is not None:
        print(f"CEC version: {result.protocol_version.version_tag or 'unknown'}")
    if result.audio_status is not None:
        level = result.audio_status.volume_level
        print(f"Mute: {'on' if result.audio_status.muted else 'off'}")
        print(f"Volume: {level if level is not None else 'unknown'}")
    if result.message:
        print(result.message)
    if not result.succeeded and result.output:
        print(result.output)


async def async_main(argv: Optional[List[str]] = None) -> int:
    """Async main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    if not args.command or args.command == "serve":
        print("No command specified. Use --help for usage information.")
        return 1

    try:
        controller = CecController(config_from_args(args))
        async with controller.session():
            result = await run_command(controller, args)
        print_result(result)
        return 0 if result.succeeded else 1

    except CecError as e:
        print(f"Error: {e}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    args = build_parser().parse_args(argv)
    if args.command == "serve":
        from .server import serve

        setup_logging(args.verbose)
        try:
            controller = CecController(config_from_args(args))
        except CecError as e:
            print(f"Error: {e}")
            return 1
        serve(controller, host=args.host, port=args.port)
        return 0
    return asyncio.run(async_main(argv))


if __name__ == "__main__":
    sys.exit(main())
