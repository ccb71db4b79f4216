"""
Shared fixtures for Aragon desktop tests.
"""

from pathlib import Path

import pytest

from aragon_desktop.errors import DaemonCommandError


class FakeDaemon:
    """In-memory stand-in for IPFSDaemonClient recording every command."""

    def __init__(self, pinned=()):
        self.pinned = set(pinned)
        self.calls = []
        self.fail_pins = set()
        self.fail_unpins = set()
        self.fail_add = False

    async def pin(self, content_hash):
        self.calls.append(("pin", content_hash))
        if content_hash in self.fail_pins:
            raise DaemonCommandError(f"pin refused for {content_hash}")
        self.pinned.add(content_hash)

    async def unpin(self, content_hash):
        self.calls.append(("unpin", content_hash))
        if content_hash in self.fail_unpins:
            raise DaemonCommandError(f"unpin refused for {content_hash}")
        self.pinned.discard(content_hash)

    async def list_pinned(self):
        self.calls.append(("ls",))
        return set(self.pinned)

    async def add_recursive(self, path):
        self.calls.append(("add", str(path)))
        if self.fail_add:
            raise DaemonCommandError("add failed")
        return Path(path).name


@pytest.fixture
def daemon():
    return FakeDaemon()


@pytest.fixture
def snapshot_dir(tmp_path):
    """Bundled snapshot holding a single client root, Qbundled."""
    root = tmp_path / "assets" / "aragon-client" / "main"
    client = root / "Qbundled"
    client.mkdir(parents=True)
    (client / "index.html").write_text("<html></html>")
    return root
