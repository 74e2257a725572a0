"""Remote command channel.

Opens a key-authenticated SSH session to an instance's public address and
runs one command per :meth:`SSHAgent.execute` call. The session can be
reused for any number of sequential commands. Nothing here retries:
connection, handshake and authentication failures surface immediately.

Usage::

    with SSHAgent.connect(instance, "~/.ssh/minecraft.pem") as agent:
        result = agent.execute("uptime")
        print(result.stdout, result.exit_status)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any

import paramiko

from vmctl.base.async_support import AsyncMixin
from vmctl.base.config import SSHConfig
from vmctl.base.exceptions import (
    NoPublicAddressError,
    SSHAuthenticationError,
    SSHConnectionError,
    SSHError,
)
from vmctl.base.logger import vm_logger
from vmctl.base.vm import VMNetwork


@dataclass(frozen=True)
class CommandResult:
    """Captured output and exit status of one remote command."""

    command: str
    stdout: str
    stderr: str
    exit_status: int

    @property
    def success(self) -> bool:
        return self.exit_status == 0

    def as_text(self) -> str:
        """Standard output immediately followed by the exit status."""
        return f"{self.stdout}{self.exit_status}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SSHAgent(AsyncMixin):
    """Authenticated SSH session to one host.

    Attributes:
        host: Address the session is connected to.
        username: Login account.
    """

    def __init__(self, client: paramiko.SSHClient, host: str, username: str) -> None:
        self._client = client
        self.host = host
        self.username = username

    def __repr__(self) -> str:
        state = "connected" if self._client is not None else "closed"
        return f"SSHAgent({self.username}@{self.host}, {state})"

    @classmethod
    def connect(
        cls,
        vm: VMNetwork,
        key_path: str | Path,
        config: SSHConfig | None = None,
    ) -> SSHAgent:
        """Open a session to *vm*'s public address.

        Args:
            vm: Anything exposing :meth:`VMNetwork.get_public_ip`.
            key_path: Private key file.
            config: Port, username and timeout. Defaults to ``SSHConfig()``.

        Raises:
            NoPublicAddressError: *vm* has no public address.
            SSHAuthenticationError: The key was rejected.
            SSHConnectionError: TCP connect or handshake failed.
        """
        host = vm.get_public_ip()
        if not host:
            raise NoPublicAddressError("Tried to get public ip but got none, is the vm on?")
        return cls.connect_host(host, key_path, config)

    @classmethod
    def connect_host(
        cls,
        host: str,
        key_path: str | Path,
        config: SSHConfig | None = None,
    ) -> SSHAgent:
        """Open a session to an explicit *host*. See :meth:`connect`."""
        config = config or SSHConfig()
        key_filename = os.path.expanduser(str(key_path))
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(
                hostname=host,
                port=config.port,
                username=config.username,
                key_filename=key_filename,
                timeout=config.timeout,
                allow_agent=False,
                look_for_keys=False,
            )
        except paramiko.AuthenticationException as e:
            client.close()
            raise SSHAuthenticationError(
                f"SSH auth failed for {config.username}@{host}"
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise SSHConnectionError(
                f"SSH connection to {host}:{config.port} failed: {e}"
            ) from e
        vm_logger.info(f"SSH connected to {config.username}@{host}:{config.port}")
        return cls(client, host, config.username)

    @property
    def connected(self) -> bool:
        return self._client is not None

    def execute(self, command: str) -> CommandResult:
        """Run *command* and wait for it to finish.

        Raises:
            SSHError: The session is closed or the channel broke.
        """
        if self._client is None:
            raise SSHError(f"Session to {self.host} is closed")
        try:
            _, stdout, stderr = self._client.exec_command(command)
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except paramiko.SSHException as e:
            raise SSHError(f"Failed to execute {command!r} on {self.host}") from e
        vm_logger.info(f"[{self.host}] {command} -> exit {exit_status}")
        return CommandResult(command=command, stdout=out, stderr=err, exit_status=exit_status)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> SSHAgent:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
