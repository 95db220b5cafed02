"""Pytest configuration and common fixtures for pycecctl tests."""

from typing import List, Tuple

import pytest

from pycecctl.cec_types import BusCommandResult, CecConfig
from pycecctl.controller import CecController
from pycecctl.gateway import TransceiverGateway


# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


VERSION_OUTPUT = """Transmit from Playback Device 2 to Audio System (8 to 5):
GET_CEC_VERSION (0x9f)
    Received from Audio System (5):
    CEC_VERSION (0x9e):
        cec-version: version-1-4 (0x05)
        Sequence: 979 Tx Timestamp: 76018.612s Rx Timestamp: 76018.705s
        Approximate response time: 21 ms
"""


def audio_output(volume: int, muted: bool = False) -> str:
    """cec-ctl output of --give-audio-status for the given state."""
    return (
        "Transmit from Playback Device 2 to Audio System (8 to 5):\n"
        "GIVE_AUDIO_STATUS (0x71)\n"
        "    Received from Audio System (5):\n"
        "    REPORT_AUDIO_STATUS (0x7a):\n"
        f"        aud-mute-status: {'on' if muted else 'off'} (0x0{1 if muted else 0})\n"
        f"        aud-vol-status: {volume} (0x{volume:02x})\n"
    )


def ok(text: str = "") -> BusCommandResult:
    return BusCommandResult(True, text)


def failed(text: str = "Command failed") -> BusCommandResult:
    return BusCommandResult(False, text)


class ScriptedGateway(TransceiverGateway):
    """
    Gateway stub that answers from a script instead of running cec-ctl.

    ``on(prefix, *results)`` queues results for argument strings starting with
    ``prefix``; the last queued result keeps being returned once the others
    are used up. Unmatched calls get ``default``.
    """

    def __init__(self, default: BusCommandResult = BusCommandResult(True, "")) -> None:
        self.default = default
        self.calls: List[str] = []
        self.verified = False
        self._rules: List[Tuple[str, List[BusCommandResult]]] = []

    def on(self, prefix: str, *results: BusCommandResult) -> "ScriptedGateway":
        self._rules.append((prefix, list(results)))
        return self

    async def verify(self) -> None:
        self.verified = True

    async def invoke(self, arguments: str) -> BusCommandResult:
        self.calls.append(arguments)
        for prefix, results in self._rules:
            if arguments.startswith(prefix) and results:
                return results.pop(0) if len(results) > 1 else results[0]
        return self.default

    def calls_starting_with(self, prefix: str) -> List[str]:
        return [call for call in self.calls if call.startswith(prefix)]

    @property
    def presses(self) -> List[str]:
        return self.calls_starting_with("--user-control-pressed")


@pytest.fixture
def gateway():
    """Create a scripted gateway."""
    return ScriptedGateway()


@pytest.fixture
def config():
    """Configuration without pacing so tests run fast."""
    return CecConfig(command_delay_ms=0)


@pytest.fixture
def controller(config, gateway):
    """Create a controller on the scripted gateway."""
    return CecController(config, gateway=gateway)
