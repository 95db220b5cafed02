"""
CEC Controller Module

This module provides the main controller interface for driving a CEC bus. It
turns intents such as "set the volume to 40" or "wake the display" into
sequences of cec-ctl commands, parses what comes back and serializes all bus
access behind a single lock.
"""

import asyncio
import functools
import logging
import shlex
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

from .cec_types import (
    CecConfig,
    CecResult,
    FailureKind,
    LifecycleState,
    PowerState,
    VolumeAdjustmentPlan,
    VolumeDirection,
)
from .constants import (
    ARG_ACTIVE_SOURCE,
    ARG_GET_CEC_VERSION,
    ARG_GIVE_AUDIO_STATUS,
    ARG_IMAGE_VIEW_ON,
    ARG_STANDBY,
    ARG_TARGET,
    ARG_USER_CONTROL_PRESSED,
    ARG_USER_CONTROL_RELEASED,
    FALSY_VALUES,
    TRUTHY_VALUES,
    UI_CMD_MUTE,
)
from .exceptions import InitializationError, LifecycleViolationError
from .gateway import CecCtlGateway, TransceiverGateway
from .lifecycle import DeviceLifecycleManager
from .parser import TelemetryParser

_LOGGER = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 100

F = TypeVar("F", bound=Callable[..., Awaitable[CecResult]])


def _bus_operation(method: F) -> F:
    """Run a controller operation while holding the bus lock."""

    @functools.wraps(method)
    async def wrapper(self: "CecController", *args: Any, **kwargs: Any) -> CecResult:
        async with self._lock:
            rejected = self._check_registration()
            if rejected is not None:
                return rejected
            return await method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def _invalid(message: str) -> CecResult:
    return CecResult.failed(FailureKind.INVALID_ARGUMENT, message)


def _missing(device_id: Any) -> bool:
    return device_id is None or not str(device_id).strip()


class CecController:
    """
    Main controller class for a CEC bus.

    Every operation reads fresh telemetry from the bus instead of caching
    device state, since the user can change volume or mute on the device at
    any time. Operations never raise for bus failures; they return a
    ``CecResult`` describing what went wrong.

    Attributes:
        config (CecConfig): Configuration settings
        gateway (TransceiverGateway): Access to the cec-ctl transceiver
        lifecycle (DeviceLifecycleManager): Registration state of the local adapter
    """

    def __init__(
        self,
        config: Optional[CecConfig] = None,
        gateway: Optional[TransceiverGateway] = None
    ) -> None:
        """
        Initialize the CEC controller.

        Args:
            config: Configuration object, defaults are used when omitted
            gateway: Transceiver gateway, a ``CecCtlGateway`` is created when omitted
        """
        self.config = config or CecConfig()
        self.gateway = gateway or CecCtlGateway(self.config)
        self.lifecycle = DeviceLifecycleManager(self.gateway)
        self._lock = asyncio.Lock()
        self._session_active = False

        _LOGGER.debug("Initialized CecController with %r", self.config)

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    # Lifecycle

    async def initialize(self) -> bool:
        """
        Register the local adapter on the bus as a playback device.

        Returns:
            bool: True if the adapter is registered
        """
        async with self._lock:
            return await self.lifecycle.initialize()

    async def teardown(self) -> bool:
        """
        Unregister the local adapter from the bus.

        Returns:
            bool: True if the adapter was cleared
        """
        async with self._lock:
            return await self.lifecycle.teardown()

    @asynccontextmanager
    async def session(self) -> AsyncIterator["CecController"]:
        """
        Keep the adapter registered for the duration of a ``with`` block.

        Registration happens on entry. Teardown happens on exit, runs to
        completion even if the surrounding task is cancelled, and is bounded
        by ``config.teardown_timeout``.

        Raises:
            TransceiverNotFoundError: If cec-ctl cannot be found
            InitializationError: If the adapter could not be registered
            LifecycleViolationError: If a session is already active
        """
        if self._session_active:
            raise LifecycleViolationError("A CEC session is already active on this controller")

        self._session_active = True
        try:
            await self.gateway.verify()
            if not await self.initialize():
                raise InitializationError("Unable to register the CEC adapter on the bus")
            try:
                yield self
            finally:
                await self._shutdown()
        finally:
            self._session_active = False

    async def _shutdown(self) -> None:
        task = asyncio.ensure_future(self.teardown())
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.config.teardown_timeout)
        except asyncio.TimeoutError:
            _LOGGER.error(
                "Unregistering the CEC adapter did not finish within %.1fs",
                self.config.teardown_timeout
            )
            await self._abandon_teardown(task)
        except asyncio.CancelledError:
            done, _ = await asyncio.wait({task}, timeout=self.config.teardown_timeout)
            if not done:
                await self._abandon_teardown(task)
            raise

    async def _abandon_teardown(self, task: "asyncio.Future[bool]") -> None:
        task.cancel()
        await asyncio.wait({task})
        # The teardown may have been cancelled before it got the bus lock
        self.lifecycle.mark_unregistered()

    def _check_registration(self) -> Optional[CecResult]:
        if self.config.require_registration and not self.lifecycle.is_registered:
            return CecResult.failed(
                FailureKind.LIFECYCLE_VIOLATION,
                "The CEC adapter is not registered on the bus"
            )
        return None

    # Queries

    @_bus_operation
    async def get_cec_version(self, device_id: Union[str, int]) -> CecResult:
        """
        Get the CEC version implemented by a device.

        Args:
            device_id: Logical address of the device

        Returns:
            CecResult: Result with ``protocol_version`` on success
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")

        result = CecResult.from_bus(
            await self.gateway.invoke(f"{ARG_GET_CEC_VERSION} {self._target(device_id)}"),
            "Failed to get CEC version.",
            "CEC version received."
        )
        if result.succeeded:
            result.protocol_version = TelemetryParser.parse_version(result.output)
        return result

    @_bus_operation
    async def get_audio_status(self, device_id: Union[str, int]) -> CecResult:
        """
        Get the mute flag and volume level of an audio system.

        Args:
            device_id: Logical address of the audio system

        Returns:
            CecResult: Result with ``audio_status`` on success
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        return await self._read_audio_status(device_id)

    # User control

    @_bus_operation
    async def send_user_control(self, device_id: Union[str, int], control: str) -> CecResult:
        """
        Press and release a remote control key on a device.

        Args:
            device_id: Logical address of the device
            control: cec-ctl ui-cmd name, e.g. "volume-up"

        Returns:
            CecResult: Combined result of the press and the release
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        if not control:
            return _invalid("A user control code is required.")
        return await self._pulse(device_id, control)

    # Volume

    @_bus_operation
    async def adjust_volume_relative(
        self,
        device_id: Union[str, int],
        direction: Union[VolumeDirection, str],
        steps: int = 1
    ) -> CecResult:
        """
        Move the volume up or down by a number of pulses.

        Args:
            device_id: Logical address of the audio system
            direction: "up" or "down"
            steps: Number of pulses to send

        Returns:
            CecResult: Result of the last pulse, or the failure that stopped the run
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        try:
            direction = VolumeDirection(direction)
        except ValueError:
            return _invalid(f"Invalid volume direction: {direction}")
        if steps < 1:
            return _invalid(f"The number of volume steps must be at least 1, got {steps}")

        if steps == 1:
            return await self._pulse(device_id, direction.ui_command)
        return await self._run_pulses(device_id, direction, steps, FailureKind.EXTERNAL_TOOL_FAILURE)

    async def volume_up(self, device_id: Union[str, int]) -> CecResult:
        """Increase volume by one pulse."""
        return await self.adjust_volume_relative(device_id, VolumeDirection.UP)

    async def volume_down(self, device_id: Union[str, int]) -> CecResult:
        """Decrease volume by one pulse."""
        return await self.adjust_volume_relative(device_id, VolumeDirection.DOWN)

    @_bus_operation
    async def set_volume_absolute(self, device_id: Union[str, int], volume: int) -> CecResult:
        """
        Bring the volume to an absolute level using up/down pulses.

        The current level is read, the number of pulses needed is derived
        from ``config.volume_step`` and the pulses are sent with
        ``config.command_delay_ms`` between them. The level is read once more
        at the end and returned as observed. If the device moves by a
        different amount per pulse than configured, the final level will
        miss the target; no correction is attempted.

        Args:
            device_id: Logical address of the audio system
            volume: Target level, 0-100

        Returns:
            CecResult: Final audio status, or the reason the run stopped
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        if isinstance(volume, bool) or not isinstance(volume, int):
            return _invalid(f"Volume must be an integer, got {volume!r}")
        if not MIN_VOLUME <= volume <= MAX_VOLUME:
            return _invalid(f"Volume must be between {MIN_VOLUME} and {MAX_VOLUME}, got {volume}")

        status = await self._read_audio_status(device_id)
        if not status.succeeded:
            return status

        current = status.audio_status.volume_level if status.audio_status else None
        if current is None:
            return CecResult.failed(
                FailureKind.UNREADABLE_TELEMETRY,
                "The current volume level is not available to compare against. Aborting.",
                output=status.output,
                audio_status=status.audio_status
            )

        if current == volume:
            status.message = "Volume is already set to the desired value."
            status.no_op = True
            status.steps_completed = 0
            return status

        plan = VolumeAdjustmentPlan.compute(current, volume, self.config.volume_step)
        _LOGGER.debug(
            "Adjusting volume from %d to %d: %d %s pulses of %s",
            plan.start_level, plan.target_level, plan.step_count,
            plan.direction.value, plan.step_size
        )

        run = await self._run_pulses(
            device_id, plan.direction, plan.step_count, FailureKind.CONVERGENCE_ABORTED
        )
        if not run.succeeded:
            return run

        final = await self._read_audio_status(device_id)
        final.steps_completed = plan.step_count
        if final.succeeded:
            final.message = (
                f"Sent {plan.step_count} volume-{plan.direction.value} pulses "
                f"to move from {current} towards {volume}."
            )
            _LOGGER.info(
                "Volume of %s adjusted from %d towards %d, now reads %s",
                device_id, current, volume,
                final.audio_status.volume_level if final.audio_status else None
            )
        return final

    # Mute

    @_bus_operation
    async def set_mute(self, device_id: Union[str, int], muted: bool) -> CecResult:
        """
        Set the mute state of an audio system.

        CEC only offers a mute toggle, so the current state is read first and
        the toggle is only sent if it differs from the requested one.

        Args:
            device_id: Logical address of the audio system
            muted: Requested mute state

        Returns:
            CecResult: Result of the toggle, or a no-op success
        """
        if _missing(device_id):
            return _invalid("Logical device ID is required.")

        status = await self._read_audio_status(device_id)
        if not status.succeeded:
            return status

        if status.audio_status is not None and status.audio_status.muted == bool(muted):
            status.message = "Mute status is already set to the desired value."
            status.no_op = True
            return status

        result = await self._pulse(device_id, UI_CMD_MUTE)
        if result.succeeded:
            result.message = "Muted." if muted else "Unmuted."
        return result

    # Source and power

    @_bus_operation
    async def set_active_source(self, physical_address: str) -> CecResult:
        """
        Announce a physical address as the active source.

        Args:
            physical_address: Physical address, e.g. "1.0.0.0"

        Returns:
            CecResult: Command result
        """
        if not physical_address:
            return _invalid("A physical address is required.")
        return CecResult.from_bus(
            await self.gateway.invoke(
                f"{ARG_ACTIVE_SOURCE} phys-addr={shlex.quote(str(physical_address))}"
            ),
            "Failed to set the active source.",
            f"Active source set to {physical_address}."
        )

    @_bus_operation
    async def set_standby(self, device_id: Union[str, int]) -> CecResult:
        """Put a device into standby."""
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        return CecResult.from_bus(
            await self.gateway.invoke(f"{ARG_STANDBY} {self._target(device_id)}"),
            "Failed to put the device into standby.",
            "Device put into standby."
        )

    @_bus_operation
    async def set_image_view_on(self, device_id: Union[str, int]) -> CecResult:
        """Wake a display device."""
        if _missing(device_id):
            return _invalid("Logical device ID is required.")
        return CecResult.from_bus(
            await self.gateway.invoke(f"{ARG_IMAGE_VIEW_ON} {self._target(device_id)}"),
            "Failed to wake the device.",
            "Device woken up."
        )

    async def set_power_state(
        self,
        device_id: Union[str, int],
        state: Union[PowerState, str]
    ) -> CecResult:
        """
        Put a device into standby or wake it up.

        Args:
            device_id: Logical address of the device
            state: "standby" or "wake"

        Returns:
            CecResult: Command result
        """
        try:
            state = PowerState(state)
        except ValueError:
            return _invalid(f"Invalid power state: {state}")

        if state is PowerState.STANDBY:
            return await self.set_standby(device_id)
        return await self.set_image_view_on(device_id)

    # Helpers, called with the bus lock held

    @staticmethod
    def _target(device_id: Union[str, int]) -> str:
        return f"{ARG_TARGET} {shlex.quote(str(device_id))}"

    async def _read_audio_status(self, device_id: Union[str, int]) -> CecResult:
        result = CecResult.from_bus(
            await self.gateway.invoke(f"{ARG_GIVE_AUDIO_STATUS} {self._target(device_id)}"),
            "Failed to get audio status.",
            "Audio status received."
        )
        if result.succeeded:
            result.audio_status = TelemetryParser.parse_audio_status(result.output)
        return result

    async def _pulse(self, device_id: Union[str, int], control: str) -> CecResult:
        # A press that reached the bus must be followed by its release, so the
        # pair runs in its own task that outlives a cancelled caller.
        pair = asyncio.ensure_future(self._press_and_release(device_id, control))
        try:
            return await asyncio.shield(pair)
        except asyncio.CancelledError:
            _LOGGER.debug("Cancelled during %s pulse, waiting for the release", control)
            await asyncio.wait({pair})
            raise

    async def _press_and_release(self, device_id: Union[str, int], control: str) -> CecResult:
        target = self._target(device_id)
        pressed = await self.gateway.invoke(
            f"{ARG_USER_CONTROL_PRESSED} ui-cmd={shlex.quote(control)} {target}"
        )
        if not pressed.succeeded:
            return CecResult.from_bus(pressed, f"Failed to press {control}.")

        released = await self.gateway.invoke(f"{ARG_USER_CONTROL_RELEASED} {target}")
        output = "\n".join([pressed.raw_output, released.raw_output])
        if not released.succeeded:
            return CecResult.failed(
                FailureKind.EXTERNAL_TOOL_FAILURE,
                f"Failed to release {control}.",
                output=output
            )
        return CecResult(succeeded=True, output=output, message=f"Sent {control}.")

    async def _run_pulses(
        self,
        device_id: Union[str, int],
        direction: VolumeDirection,
        count: int,
        failure: FailureKind
    ) -> CecResult:
        result = CecResult(succeeded=True, steps_completed=0)
        for step in range(1, count + 1):
            if step > 1 and self.config.command_delay_ms > 0:
                await asyncio.sleep(self.config.command_delay)

            _LOGGER.debug("Volume %s pulse %d/%d", direction.value, step, count)
            result = await self._pulse(device_id, direction.ui_command)
            if not result.succeeded:
                _LOGGER.error(
                    "Volume %s pulse %d of %d failed, stopping: %s",
                    direction.value, step, count, result.output
                )
                return CecResult.failed(
                    failure,
                    f"Volume step {step} of {count} failed.",
                    output=result.output,
                    steps_completed=step - 1,
                    failed_step=step
                )

        result.steps_completed = count
        return result


def parse_mute_value(value: Union[str, int, bool]) -> Optional[bool]:
    """
    Interpret a mute request coming from a transport.

    Args:
        value: 1/0, true/false, on/off or yes/no

    Returns:
        Optional[bool]: Requested mute state, None if the value is not recognized
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY_VALUES:
        return True
    if text in FALSY_VALUES:
        return False
    return None

