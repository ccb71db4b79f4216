"""
Tests for the IPFS daemon client.

The underlying ipfshttpclient client is replaced with a mock; no daemon is
needed.
"""

from pathlib import Path
from unittest.mock import AsyncMock, Mock, patch

import pytest
from ipfshttpclient.exceptions import Error as IPFSClientError

from aragon_desktop.backends.ipfs_daemon import IPFSDaemonClient
from aragon_desktop.errors import DaemonCommandError


class TestIPFSDaemonClient:

    def setup_method(self):
        self.daemon = IPFSDaemonClient(retry_attempts=2, retry_backoff=0.1)
        self.daemon._client = Mock()

    @pytest.mark.asyncio
    async def test_probe_version(self):
        self.daemon._client.version.return_value = {"Version": "0.20.0"}

        assert await self.daemon.probe_version(timeout=1) == "0.20.0"
        self.daemon._client.version.assert_called_once_with(timeout=1)

    @pytest.mark.asyncio
    async def test_no_daemon_answers(self):
        self.daemon._client.version.side_effect = IPFSClientError("connection refused")

        assert await self.daemon.probe_version() is None

    @pytest.mark.asyncio
    async def test_add_recursive_returns_root(self):
        self.daemon._client.add.return_value = [
            {"Name": "Qbundled/index.html", "Hash": "QmIndex"},
            {"Name": "Qbundled", "Hash": "Qbundled"},
        ]

        content_hash = await self.daemon.add_recursive(Path("/assets/aragon-client/main/Qbundled"))

        assert content_hash == "Qbundled"
        self.daemon._client.add.assert_called_once_with(
            str(Path("/assets/aragon-client/main/Qbundled")), recursive=True
        )

    @pytest.mark.asyncio
    async def test_list_pinned(self):
        self.daemon._client.pin.ls.return_value = {"Keys": {"Qa": {"Type": "recursive"}, "Qb": {"Type": "recursive"}}}

        assert await self.daemon.list_pinned() == {"Qa", "Qb"}
        self.daemon._client.pin.ls.assert_called_once_with(type="recursive")

    @pytest.mark.asyncio
    async def test_pin_and_unpin(self):
        await self.daemon.pin("Qa")
        await self.daemon.unpin("Qa")

        self.daemon._client.pin.add.assert_called_once_with("Qa")
        self.daemon._client.pin.rm.assert_called_once_with("Qa")

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self):
        self.daemon._client.pin.add.side_effect = [IPFSClientError("busy"), None]

        await self.daemon.pin("Qa")

        assert self.daemon._client.pin.add.call_count == 2

    @pytest.mark.asyncio
    async def test_backoff_doubles_between_attempts(self):
        self.daemon.retry_attempts = 3
        self.daemon._client.pin.add.side_effect = [IPFSClientError("busy"), IPFSClientError("busy"), None]

        with patch("aragon_desktop.backends.ipfs_daemon.asyncio.sleep", new=AsyncMock()) as sleep:
            await self.daemon.pin("Qa")

        assert [c.args[0] for c in sleep.await_args_list] == [0.1, 0.2]

    @pytest.mark.asyncio
    async def test_persistent_failure_raises(self):
        self.daemon._client.pin.add.side_effect = IPFSClientError("repo locked")

        with pytest.raises(DaemonCommandError):
            await self.daemon.pin("Qa")

        assert self.daemon._client.pin.add.call_count == 2

    @pytest.mark.asyncio
    async def test_stop(self):
        await self.daemon.stop()

        self.daemon._client.stop.assert_called_once_with()

    def test_close(self):
        client = self.daemon._client

        self.daemon.close()

        client.close.assert_called_once()
        assert self.daemon._client is None
