"""Test cases for pycecctl.lifecycle module."""

import asyncio

import pytest

from pycecctl.cec_types import LifecycleState
from pycecctl.lifecycle import DeviceLifecycleManager

from conftest import failed, ok


@pytest.fixture
def manager(gateway):
    """Create a lifecycle manager on the scripted gateway."""
    return DeviceLifecycleManager(gateway)


class TestInitialize:
    """Test cases for DeviceLifecycleManager.initialize."""

    def test_starts_unregistered(self, manager):
        assert manager.state is LifecycleState.UNREGISTERED
        assert not manager.is_registered

    @pytest.mark.asyncio
    async def test_success(self, manager, gateway):
        """Test that clear then playback registers the adapter."""
        assert await manager.initialize() is True
        assert manager.state is LifecycleState.REGISTERED
        assert gateway.calls == ["--clear", "--playback"]

    @pytest.mark.asyncio
    async def test_clear_fails(self, manager, gateway):
        """Test that registration is not attempted when the clear fails."""
        gateway.on("--clear", failed("cannot open /dev/cec0"))

        assert await manager.initialize() is False
        assert manager.state is LifecycleState.UNREGISTERED
        assert gateway.calls == ["--clear"]

    @pytest.mark.asyncio
    async def test_registration_fails(self, manager, gateway):
        """Test that a failed registration leaves the state unregistered."""
        gateway.on("--playback", failed("logical address allocation failed"))

        assert await manager.initialize() is False
        assert manager.state is LifecycleState.UNREGISTERED
        assert gateway.calls == ["--clear", "--playback"]

    @pytest.mark.asyncio
    async def test_state_not_inferred_from_commands(self, manager, gateway):
        """Test that other command failures do not change the state."""
        await manager.initialize()
        await gateway.invoke("--standby -t 0")
        gateway.default = failed()
        await gateway.invoke("--standby -t 0")

        assert manager.is_registered


class TestTeardown:
    """Test cases for DeviceLifecycleManager.teardown."""

    @pytest.mark.asyncio
    async def test_success(self, manager, gateway):
        await manager.initialize()

        assert await manager.teardown() is True
        assert manager.state is LifecycleState.UNREGISTERED
        assert gateway.calls[-1] == "--clear"

    @pytest.mark.asyncio
    async def test_failure_still_unregisters(self, manager, gateway):
        """Test that the state drops to unregistered even if the clear fails."""
        gateway.on("--clear", ok(), failed("device busy"))
        await manager.initialize()

        assert await manager.teardown() is False
        assert manager.state is LifecycleState.UNREGISTERED

    @pytest.mark.asyncio
    async def test_second_teardown_is_ignored(self, manager, gateway):
        """Test that a repeated teardown does not touch the bus."""
        await manager.initialize()
        await manager.teardown()
        calls = list(gateway.calls)

        assert await manager.teardown() is False
        assert gateway.calls == calls

    @pytest.mark.asyncio
    async def test_initialize_after_teardown(self, manager, gateway):
        await manager.initialize()
        await manager.teardown()
        await manager.initialize()

        assert manager.is_registered
        assert await manager.teardown() is True

    @pytest.mark.asyncio
    async def test_cancelled_teardown_still_unregisters(self, manager, gateway):
        """Test that cancelling teardown while the clear is running drops the state."""
        await manager.initialize()
        clearing = asyncio.Event()

        async def hang(arguments):
            clearing.set()
            await asyncio.sleep(10)

        gateway.invoke = hang
        task = asyncio.create_task(manager.teardown())
        await clearing.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert manager.state is LifecycleState.UNREGISTERED
        assert await manager.teardown() is False

    @pytest.mark.asyncio
    async def test_mark_unregistered(self, manager, gateway):
        """Test that a manager marked unregistered skips the clear on teardown."""
        await manager.initialize()
        manager.mark_unregistered()

        assert manager.state is LifecycleState.UNREGISTERED
        assert await manager.teardown() is False
        assert gateway.calls == ["--clear", "--playback"]
