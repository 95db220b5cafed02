"""
Transceiver gateway for the CEC control service.

This module runs the external cec-ctl executable and reports its outcome as a
``BusCommandResult``. It does not parse output and never retries.
"""

import asyncio
import logging
import shlex
import shutil
from abc import ABC, abstractmethod
from typing import List

from .cec_types import BusCommandResult, CecConfig
from .exceptions import TransceiverNotFoundError

_LOGGER = logging.getLogger(__name__)


class TransceiverGateway(ABC):
    """
    Boundary to the CEC transceiver.

    Implementations take a cec-ctl argument string and return the outcome.
    Failed commands are reported as ``succeeded=False``, never raised.
    """

    @abstractmethod
    async def invoke(self, arguments: str) -> BusCommandResult:
        """
        Run one transceiver command.

        Args:
            arguments: cec-ctl arguments, appended after the baseline flags

        Returns:
            BusCommandResult: Success flag and captured text
        """

    async def verify(self) -> None:
        """
        Check that the transceiver can be used at all.

        Raises:
            TransceiverNotFoundError: If the transceiver is unavailable
        """


class CecCtlGateway(TransceiverGateway):
    """Gateway that spawns cec-ctl as a child process for every command."""

    def __init__(self, config: CecConfig) -> None:
        """
        Initialize the gateway.

        Args:
            config: Configuration with the executable, baseline flags and watchdog timeout
        """
        self.config = config
        self._baseline = shlex.split(config.baseline_flags)

    def build_command(self, arguments: str) -> List[str]:
        """Build the argument vector for one invocation."""
        return [self.config.executable, *self._baseline, *shlex.split(arguments)]

    async def verify(self) -> None:
        if shutil.which(self.config.executable) is None:
            raise TransceiverNotFoundError(
                f"Cannot find the '{self.config.executable}' executable, is v4l-utils installed?"
            )
        _LOGGER.debug("Using transceiver executable %s", shutil.which(self.config.executable))

    async def invoke(self, arguments: str) -> BusCommandResult:
        command = self.build_command(arguments)
        command_line = " ".join(command)
        _LOGGER.debug("Running %s", command_line)

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            _LOGGER.error("Unable to start %s: %s", self.config.executable, e)
            return BusCommandResult(False, f"Unable to start {command_line}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.config.command_timeout,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            _LOGGER.error("%s timed out after %.1fs", command_line, self.config.command_timeout)
            return BusCommandResult(
                False,
                f"Command timed out after {self.config.command_timeout}s: {command_line}",
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        out = stdout.decode(errors="replace")
        err = stderr.decode(errors="replace")

        if process.returncode != 0:
            _LOGGER.debug("%s exited with status %s", command_line, process.returncode)
            text = f"Command failed: {command_line} (exit status {process.returncode})"
            details = "\n".join(part.strip() for part in (err, out) if part.strip())
            if details:
                text = f"{text}\n{details}"
            return BusCommandResult(False, text)

        if err.strip():
            out = f"{out}\n{err}" if out else err
        return BusCommandResult(True, out)

    @staticmethod
    async def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
