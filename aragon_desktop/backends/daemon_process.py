"""
IPFS daemon process we own.

Runs the IPFS binary from the application's own data directory with its own
``IPFS_PATH``, so it never collides with a daemon the user installed and runs
independently.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from aragon_desktop.errors import DaemonStartFailure

logger = logging.getLogger(__name__)


class DaemonProcess:
    """An ``ipfs daemon`` child process with an isolated repo."""

    proc: Optional[asyncio.subprocess.Process]

    def __init__(self, bin_path: Path, data_dir: Path):
        self.bin_path = Path(bin_path)
        self.data_dir = Path(data_dir)
        self.proc = None

    def __repr__(self) -> str:
        pid = self.proc.pid if self.proc else None
        return f"<DaemonProcess {self.bin_path} pid={pid}>"

    @property
    def env(self):
        env = dict(os.environ)
        env["IPFS_PATH"] = str(self.data_dir)
        return env

    @property
    def is_running(self) -> bool:
        return self.proc is not None and self.proc.returncode is None

    async def init_repo(self):
        """Run ``ipfs init`` if the isolated repo does not exist yet."""
        if (self.data_dir / "config").exists():
            return

        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initializing IPFS repo at {self.data_dir}")
        init = await self._exec("init", capture_stderr=True)
        _, stderr = await init.communicate()
        if init.returncode != 0:
            raise DaemonStartFailure(
                f"ipfs init exited with {init.returncode}: {stderr.decode(errors='replace').strip()}"
            )

    async def start(self):
        if self.is_running:
            return
        await self.init_repo()
        self.proc = await self._exec("daemon", "--migrate")
        logger.info(f"Started IPFS daemon (pid {self.proc.pid}) from {self.bin_path}")

    async def wait(self, timeout: float) -> bool:
        """Wait for the process to exit. Returns False on timeout."""
        if self.proc is None or self.proc.returncode is not None:
            return True
        try:
            await asyncio.wait_for(self.proc.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def terminate(self, timeout: float = 5.0):
        """Terminate, then kill, a daemon that will not exit on its own."""
        if not self.is_running:
            return
        logger.warning(f"Terminating IPFS daemon (pid {self.proc.pid})")
        try:
            self.proc.terminate()
            if await self.wait(timeout):
                return
            self.proc.kill()
        except ProcessLookupError:
            return
        await self.proc.wait()

    async def _exec(self, *args, capture_stderr: bool = False) -> asyncio.subprocess.Process:
        if not self.bin_path.exists():
            raise DaemonStartFailure(f"IPFS binary not found at {self.bin_path}")
        try:
            return await asyncio.create_subprocess_exec(
                str(self.bin_path),
                *args,
                env=self.env,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE if capture_stderr else asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise DaemonStartFailure(f"Could not run {self.bin_path}: {e}") from e
