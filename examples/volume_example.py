#!/usr/bin/env python
"""
Volume Control Example

This example registers the local CEC adapter, reads the audio status of the
audio system (logical address 5), moves the volume to a target level with
up/down pulses and toggles mute back and forth. The adapter is unregistered
again when the session ends, also on Ctrl+C.
"""

import asyncio
import logging
import sys

from pycecctl import CecConfig, CecController, CecError

AUDIO_SYSTEM = 5
TARGET_VOLUME = 30

# Set up logging
logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
_LOGGER = logging.getLogger(__name__)


async def main() -> int:
    config = CecConfig(volume_step=0.5, command_delay_ms=50)
    controller = CecController(config)

    try:
        async with controller.session():
            status = await controller.get_audio_status(AUDIO_SYSTEM)
            if not status.succeeded:
                _LOGGER.error("Cannot read audio status: %s", status.output)
                return 1
            _LOGGER.info("Current audio status: %s", status.audio_status)

            result = await controller.set_volume_absolute(AUDIO_SYSTEM, TARGET_VOLUME)
            _LOGGER.info("%s (now %s)", result.message,
                         result.audio_status.volume_level if result.audio_status else "unknown")

            # Mute is a toggle on the wire, set_mute only sends it when needed
            await controller.set_mute(AUDIO_SYSTEM, True)
            await asyncio.sleep(2)
            await controller.set_mute(AUDIO_SYSTEM, False)

    except CecError as e:
        _LOGGER.error("Error: %s", e)
        return 1

    finally:
        _LOGGER.info("Example completed")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
