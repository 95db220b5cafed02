"""
Type definitions for the CEC control service.

This module defines the configuration object and the data structures that flow
between the gateway, the telemetry parser, the lifecycle manager and the
controller.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .constants import (
    CEC_CTL_COMMAND,
    CEC_CTL_PARAMS,
    DEFAULT_COMMAND_DELAY_MS,
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_TEARDOWN_TIMEOUT,
    DEFAULT_VOLUME_STEP,
    UI_CMD_VOLUME_DOWN,
    UI_CMD_VOLUME_UP,
)
from .exceptions import ConfigurationError


class CecConfig:
    """Configuration class for the CEC transceiver and the volume algorithm."""

    def __init__(
        self,
        executable: str = CEC_CTL_COMMAND,
        baseline_flags: str = CEC_CTL_PARAMS,
        volume_step: float = DEFAULT_VOLUME_STEP,
        command_delay_ms: int = DEFAULT_COMMAND_DELAY_MS,
        command_timeout: float = DEFAULT_COMMAND_TIMEOUT,
        teardown_timeout: float = DEFAULT_TEARDOWN_TIMEOUT,
        require_registration: bool = False
    ) -> None:
        """
        Initialize CEC configuration.

        Args:
            executable (str): Name or path of the cec-ctl executable
            baseline_flags (str): Flags placed ahead of every command's arguments
            volume_step (float): Volume change produced by one up/down pulse
            command_delay_ms (int): Pause between pulses in milliseconds, 0 disables it
            command_timeout (float): Watchdog for a single cec-ctl invocation in seconds
            teardown_timeout (float): Upper bound for unregistering at shutdown in seconds
            require_registration (bool): Reject bus operations while unregistered

        Raises:
            ConfigurationError: If any value is out of range
        """
        if not executable:
            raise ConfigurationError("executable must not be empty")
        if volume_step <= 0:
            raise ConfigurationError(f"volume_step must be greater than 0, got {volume_step}")
        if command_delay_ms < 0:
            raise ConfigurationError(f"command_delay_ms must not be negative, got {command_delay_ms}")
        if command_timeout <= 0:
            raise ConfigurationError(f"command_timeout must be greater than 0, got {command_timeout}")
        if teardown_timeout <= 0:
            raise ConfigurationError(f"teardown_timeout must be greater than 0, got {teardown_timeout}")

        self.executable = executable
        self.baseline_flags = baseline_flags
        self.volume_step = volume_step
        self.command_delay_ms = command_delay_ms
        self.command_timeout = command_timeout
        self.teardown_timeout = teardown_timeout
        self.require_registration = require_registration

    @property
    def command_delay(self) -> float:
        """Pause between pulses in seconds."""
        return self.command_delay_ms / 1000.0

    def __repr__(self) -> str:
        return (
            f"CecConfig(executable={self.executable!r}, baseline_flags={self.baseline_flags!r}, "
            f"volume_step={self.volume_step}, command_delay_ms={self.command_delay_ms})"
        )


class LifecycleState(Enum):
    """Registration state of the local adapter on the CEC bus."""
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"


class VolumeDirection(str, Enum):
    """Direction of a relative volume pulse."""
    UP = "up"
    DOWN = "down"

    @property
    def ui_command(self) -> str:
        """The user control code that moves the volume in this direction."""
        return UI_CMD_VOLUME_UP if self is VolumeDirection.UP else UI_CMD_VOLUME_DOWN

    @classmethod
    def from_offset(cls, offset: float) -> "VolumeDirection":
        """Positive offsets go up, everything else goes down."""
        return cls.UP if offset > 0 else cls.DOWN


class PowerState(str, Enum):
    """Power transitions that can be requested from a device."""
    STANDBY = "standby"
    WAKE = "wake"


class FailureKind(str, Enum):
    """Why an operation did not succeed."""
    EXTERNAL_TOOL_FAILURE = "external_tool_failure"
    UNREADABLE_TELEMETRY = "unreadable_telemetry"
    LIFECYCLE_VIOLATION = "lifecycle_violation"
    CONVERGENCE_ABORTED = "convergence_aborted"
    INVALID_ARGUMENT = "invalid_argument"


@dataclass(frozen=True)
class BusCommandResult:
    """Outcome of a single cec-ctl invocation."""
    succeeded: bool
    raw_output: str


@dataclass(frozen=True)
class AudioStatus:
    """Mute flag and volume level reported by an audio system.

    ``volume_level`` is None when the report did not contain a readable level,
    which is not the same as a level of 0.
    """
    muted: bool = False
    volume_level: Optional[int] = None


@dataclass(frozen=True)
class ProtocolVersion:
    """CEC version reported by a device, None when unreadable."""
    version_tag: Optional[str] = None


@dataclass(frozen=True)
class VolumeAdjustmentPlan:
    """Pulse plan for a single absolute volume request."""
    start_level: int
    target_level: int
    step_size: float
    step_count: int

    @classmethod
    def compute(cls, start_level: int, target_level: int, step_size: float) -> "VolumeAdjustmentPlan":
        """
        Work out how many pulses are needed to cover the gap.

        The step size need not divide the gap, so the count is rounded up.

        Args:
            start_level: Volume level read from the device
            target_level: Requested volume level
            step_size: Volume change produced by one pulse

        Returns:
            VolumeAdjustmentPlan: The plan
        """
        gap = abs(target_level - start_level)
        # round() absorbs float noise such as 3 / 0.1 == 30.000000000000004
        step_count = math.ceil(round(gap / step_size, 9))
        return cls(start_level, target_level, step_size, step_count)

    @property
    def direction(self) -> VolumeDirection:
        return VolumeDirection.from_offset(self.target_level - self.start_level)


@dataclass
class CecResult:
    """
    Result of a controller operation.

    Attributes:
        succeeded: Whether the operation achieved what was asked
        output: Raw cec-ctl text of the last relevant invocation
        message: Short human readable summary
        failure: Failure category, None on success
        protocol_version: Parsed version for version queries
        audio_status: Parsed audio status for audio queries and volume changes
        steps_completed: Pulses issued successfully by a multi-step operation
        failed_step: 1-based index of the pulse that failed
        no_op: True when the device was already in the requested state
    """
    succeeded: bool
    output: str = ""
    message: str = ""
    failure: Optional[FailureKind] = None
    protocol_version: Optional[ProtocolVersion] = None
    audio_status: Optional[AudioStatus] = None
    steps_completed: Optional[int] = None
    failed_step: Optional[int] = None
    no_op: bool = False

    @classmethod
    def from_bus(
        cls,
        result: BusCommandResult,
        failure_message: str = "",
        success_message: str = ""
    ) -> "CecResult":
        """Wrap a gateway result, tagging failures as external tool failures."""
        if result.succeeded:
            return cls(succeeded=True, output=result.raw_output, message=success_message)
        return cls(
            succeeded=False,
            output=result.raw_output,
            message=failure_message or "cec-ctl command failed",
            failure=FailureKind.EXTERNAL_TOOL_FAILURE,
        )

    @classmethod
    def failed(cls, failure: FailureKind, message: str, output: str = "", **kwargs: Any) -> "CecResult":
        return cls(succeeded=False, output=output, message=message, failure=failure, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the result into the JSON envelope used by the transports.

        Returns:
            Dict[str, Any]: Envelope with ``error``, ``message`` and ``output``
            plus the fields relevant to the operation
        """
        data: Dict[str, Any] = {
            "error": not self.succeeded,
            "message": self.message,
            "output": self.output,
        }
        if self.failure is not None:
            data["failure"] = self.failure.value
        if self.protocol_version is not None:
            data["version"] = self.protocol_version.version_tag
        if self.audio_status is not None:
            data["mute"] = 1 if self.audio_status.muted else 0
            data["volume"] = self.audio_status.volume_level
        if self.steps_completed is not None:
            data["steps_completed"] = self.steps_completed
        if self.failed_step is not None:
            data["failed_step"] = self.failed_step
        if self.no_op:
            data["no_op"] = True
        return data
