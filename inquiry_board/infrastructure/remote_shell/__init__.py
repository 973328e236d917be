"""
Remote Shell Infrastructure
===========================

Runs single commands on managed servers over SSH with password auth.

This is diagnostic tooling aimed at hosts that may never have been seen
before, so host-key verification is disabled and known-hosts files are not
written. Probe failures are reported through the returned output and exit
code; the transport itself never raises for them.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import List, Tuple

from inquiry_board.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Exit codes reported for failures that happen before the remote command runs
EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127


class IRemoteShell(ABC):
    """Interface for running one command on a remote host."""

    @abstractmethod
    async def run(
        self,
        host: str,
        user: str,
        password: str,
        command: str,
        timeout: float
    ) -> Tuple[str, int]:
        """Return (stdout and stderr merged, exit code)."""


class SSHPassRemoteShell(IRemoteShell):
    """
    ``sshpass`` + OpenSSH client driven through asyncio subprocesses.

    The option prefix is built once and reused for every probe.
    """

    def __init__(self, connect_timeout: int = 10, sshpass_binary: str = "sshpass", ssh_binary: str = "ssh"):
        self._sshpass = sshpass_binary
        self._ssh = ssh_binary
        self._ssh_options: List[str] = [
            "-o", "StrictHostKeyChecking=no",
            "-o", f"ConnectTimeout={connect_timeout}",
            "-o", "UserKnownHostsFile=/dev/null",
            "-o", "LogLevel=ERROR",
        ]

    def build_argv(self, host: str, user: str, password: str, command: str) -> List[str]:
        """Full argument vector for one remote command."""
        return [
            self._sshpass, "-p", password,
            self._ssh, *self._ssh_options,
            f"{user}@{host}",
            command,
        ]

    async def run(
        self,
        host: str,
        user: str,
        password: str,
        command: str,
        timeout: float
    ) -> Tuple[str, int]:
        argv = self.build_argv(host, user, password, command)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            return f"원격 접속 도구를 찾을 수 없습니다: {e.filename}", EXIT_NOT_FOUND
        except OSError as e:
            return f"원격 접속 실행 실패: {e}", EXIT_NOT_FOUND

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("Remote probe timed out", extra={"host": host, "timeout": timeout})
            return f"시간 초과 ({timeout:g}초)", EXIT_TIMEOUT

        output = stdout.decode("utf-8", errors="replace").rstrip("\n")
        return output, process.returncode
