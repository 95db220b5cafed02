"""
Device lifecycle management.

The local adapter has to present itself on the bus as a playback device before
it can talk to anything, and has to drop that identity again before the
process exits, otherwise the next start runs into a logical address conflict.
"""

import logging

from .cec_types import LifecycleState
from .constants import ARG_CLEAR, ARG_PLAYBACK
from .gateway import TransceiverGateway

_LOGGER = logging.getLogger(__name__)


class DeviceLifecycleManager:
    """
    Owns the registration state of the local adapter.

    The state only changes through ``initialize`` and ``teardown``; it is never
    inferred from the outcome of other commands.
    """

    def __init__(self, gateway: TransceiverGateway) -> None:
        self.gateway = gateway
        self._state = LifecycleState.UNREGISTERED
        self._torn_down = False

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_registered(self) -> bool:
        return self._state is LifecycleState.REGISTERED

    async def initialize(self) -> bool:
        """
        Clear the adapter and register it as a playback device.

        Returns:
            bool: True if both commands succeeded and the adapter is registered
        """
        _LOGGER.info("Initializing CEC adapter")

        result = await self.gateway.invoke(ARG_CLEAR)
        if not result.succeeded:
            _LOGGER.error("Failed to clear CEC adapter: %s", result.raw_output)
            return False

        result = await self.gateway.invoke(ARG_PLAYBACK)
        if not result.succeeded:
            _LOGGER.error("Failed to register as a playback device: %s", result.raw_output)
            return False

        self._state = LifecycleState.REGISTERED
        self._torn_down = False
        _LOGGER.info("CEC adapter registered as a playback device")
        return True

    async def teardown(self) -> bool:
        """
        Clear the adapter so it no longer holds a logical address.

        The manager ends up unregistered whatever the outcome of the command,
        including when the call is cancelled while the clear is in flight.
        A second teardown without an intervening initialize does nothing.

        Returns:
            bool: True if the adapter was cleared
        """
        if self._torn_down:
            _LOGGER.warning("CEC adapter already unregistered, ignoring repeated teardown")
            return False

        _LOGGER.info("Unregistering CEC adapter")
        try:
            result = await self.gateway.invoke(ARG_CLEAR)
        finally:
            self.mark_unregistered()

        if not result.succeeded:
            _LOGGER.error("Failed to unregister CEC adapter: %s", result.raw_output)
            return False

        _LOGGER.info("CEC adapter unregistered")
        return True

    def mark_unregistered(self) -> None:
        """Record that the adapter no longer holds its address, without touching the bus."""
        self._state = LifecycleState.UNREGISTERED
        self._torn_down = True
