"""
Tests for IPFS daemon detection, start and shutdown.
"""

import asyncio
import signal
import sys
from unittest.mock import AsyncMock, Mock

import pytest

from aragon_desktop.backends.daemon_process import DaemonProcess
from aragon_desktop.core.daemon_lifecycle import DaemonHandle, DaemonLifecycleManager
from aragon_desktop.errors import DaemonCommandError, DaemonStartFailure


def make_client(*probe_results):
    client = Mock()
    client.probe_version = AsyncMock(side_effect=list(probe_results))
    client.stop = AsyncMock()
    client.close = Mock()
    return client


def write_fake_ipfs(path, body):
    """Shell script standing in for the ipfs binary."""
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755)
    return path


async def wait_for_file(path):
    while not path.exists():
        await asyncio.sleep(0.01)


def make_process(running=True):
    process = Mock()
    process.start = AsyncMock()
    process.wait = AsyncMock(return_value=True)
    process.terminate = AsyncMock()
    process.is_running = running
    process.proc = Mock(returncode=None if running else 1)
    return process


class TestEnsureRunning:
    """Detect-or-start."""

    @pytest.mark.asyncio
    async def test_detects_running_daemon(self):
        client = make_client("0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process)

        handle = await manager.ensure_running()

        assert handle == DaemonHandle(is_running=True, owned_by_self=False, version="0.20.0")
        process.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_starts_own_daemon_when_none_detected(self):
        client = make_client(None, None, "0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process, start_retry_interval=0)

        handle = await manager.ensure_running()

        assert handle.is_running is True
        assert handle.owned_by_self is True
        process.start.assert_awaited_once()
        assert client.probe_version.await_count == 3

    @pytest.mark.asyncio
    async def test_never_ready_fails(self):
        client = make_client(*[None] * 4)
        process = make_process()
        manager = DaemonLifecycleManager(client, process, start_retries=3, start_retry_interval=0)

        with pytest.raises(DaemonStartFailure):
            await manager.ensure_running()

        process.terminate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_daemon_exiting_during_startup_fails(self):
        client = make_client(None)
        process = make_process(running=False)
        manager = DaemonLifecycleManager(client, process, start_retry_interval=0)

        with pytest.raises(DaemonStartFailure):
            await manager.ensure_running()

    @pytest.mark.asyncio
    async def test_handle_is_reused(self):
        client = make_client("0.20.0")
        manager = DaemonLifecycleManager(client, make_process())

        first = await manager.ensure_running()
        second = await manager.ensure_running()

        assert first is second
        assert client.probe_version.await_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_callers_start_once(self):
        client = make_client(None, "0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process, start_retry_interval=0)

        handles = await asyncio.gather(manager.ensure_running(), manager.ensure_running())

        assert handles[0] is handles[1]
        process.start.assert_awaited_once()


class TestShutdown:
    """Stop only what we started."""

    @pytest.mark.asyncio
    async def test_not_owned_is_left_running(self):
        client = make_client("0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process)
        handle = await manager.ensure_running()

        await manager.shutdown(handle)

        client.stop.assert_not_awaited()
        process.terminate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owned_is_stopped(self):
        client = make_client(None, "0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process, start_retry_interval=0)
        handle = await manager.ensure_running()

        await manager.shutdown(handle)

        client.stop.assert_awaited_once()
        process.wait.assert_awaited_once()
        process.terminate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_shutdown_twice_stops_once(self):
        client = make_client(None, "0.20.0")
        manager = DaemonLifecycleManager(client, make_process(), start_retry_interval=0)
        handle = await manager.ensure_running()

        await asyncio.gather(manager.shutdown(handle), manager.shutdown(handle))
        await manager.shutdown(handle)

        client.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_restarted_daemon_is_stopped_again(self):
        client = make_client(None, "0.20.0", None, "0.20.0")
        process = make_process()
        manager = DaemonLifecycleManager(client, process, start_retry_interval=0)

        first = await manager.ensure_running()
        await manager.shutdown(first)
        second = await manager.ensure_running()
        await manager.shutdown(second)

        assert second.owned_by_self is True
        assert process.start.await_count == 2
        assert client.stop.await_count == 2

    @pytest.mark.asyncio
    async def test_already_exited_daemon(self):
        client = make_client()
        client.stop = AsyncMock(side_effect=DaemonCommandError("connection refused"))
        process = make_process()
        manager = DaemonLifecycleManager(client, process)

        await manager.shutdown(DaemonHandle(is_running=True, owned_by_self=True))

        process.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_hung_daemon_is_terminated(self):
        client = make_client()
        process = make_process()
        process.wait = AsyncMock(return_value=False)
        manager = DaemonLifecycleManager(client, process, stop_timeout=0.01)

        await manager.shutdown(DaemonHandle(is_running=True, owned_by_self=True))

        process.terminate.assert_awaited_once()


class TestDaemonProcess:
    """The daemon process we start ourselves."""

    @pytest.mark.asyncio
    async def test_missing_binary_fails(self, tmp_path):
        process = DaemonProcess(tmp_path / "go-ipfs" / "ipfs", tmp_path / "ipfs-init")

        with pytest.raises(DaemonStartFailure):
            await process.start()

        assert process.is_running is False

    @pytest.mark.asyncio
    async def test_existing_repo_is_not_reinitialized(self, tmp_path):
        data_dir = tmp_path / "ipfs-init"
        data_dir.mkdir()
        (data_dir / "config").write_text("{}")
        process = DaemonProcess(tmp_path / "missing-ipfs", data_dir)

        await process.init_repo()

    def test_isolated_repo_env(self, tmp_path):
        process = DaemonProcess(tmp_path / "ipfs", tmp_path / "ipfs-init")

        assert process.env["IPFS_PATH"] == str(tmp_path / "ipfs-init")

    @pytest.mark.asyncio
    async def test_wait_without_process(self, tmp_path):
        process = DaemonProcess(tmp_path / "ipfs", tmp_path / "ipfs-init")

        assert await process.wait(0.1) is True
        await process.terminate()

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    async def test_failed_init_reports_stderr(self, tmp_path):
        bin_path = write_fake_ipfs(tmp_path / "ipfs", 'echo "repo lock held" >&2\nexit 3')
        process = DaemonProcess(bin_path, tmp_path / "ipfs-init")

        with pytest.raises(DaemonStartFailure) as exc_info:
            await process.init_repo()

        assert "exited with 3" in str(exc_info.value)
        assert "repo lock held" in str(exc_info.value)
        assert not (tmp_path / "ipfs-init" / "config").exists()

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell")
    async def test_daemon_ignoring_terminate_is_killed(self, tmp_path):
        data_dir = tmp_path / "ipfs-init"
        data_dir.mkdir()
        (data_dir / "config").write_text("{}")
        bin_path = write_fake_ipfs(
            tmp_path / "ipfs",
            "trap '' TERM\ntouch \"$IPFS_PATH/ready\"\nwhile true; do sleep 1; done",
        )
        process = DaemonProcess(bin_path, data_dir)

        await process.start()
        await asyncio.wait_for(wait_for_file(data_dir / "ready"), 5)
        await process.terminate(timeout=0.2)

        assert process.is_running is False
        assert process.proc.returncode == -signal.SIGKILL
