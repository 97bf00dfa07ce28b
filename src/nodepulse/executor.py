"""SSH execution engine for nodepulse."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

import asyncssh

from .hosts import ConnectionParameters

logger = logging.getLogger("nodepulse")


class Stage(Enum):
    """Step of an execution attempt that can fail."""

    CONNECT = "connect"
    HANDSHAKE = "handshake"
    AUTHENTICATE = "authenticate"
    OPEN_CHANNEL = "open-channel"
    RUN = "run"
    READ_OUTPUT = "read-output"
    READ_OUTPUT_TIMEOUT = "read-output-timeout"

    @property
    def description(self) -> str:
        return _STAGE_DESCRIPTIONS[self]


_STAGE_DESCRIPTIONS = {
    Stage.CONNECT: "connect",
    Stage.HANDSHAKE: "perform SSH handshake",
    Stage.AUTHENTICATE: "authenticate",
    Stage.OPEN_CHANNEL: "open channel",
    Stage.RUN: "execute command",
    Stage.READ_OUTPUT: "read output",
    Stage.READ_OUTPUT_TIMEOUT: "read output in time",
}


@dataclass(frozen=True)
class Output:
    """Captured stdout of a command that ran to end-of-stream."""

    text: str


@dataclass(frozen=True)
class Failure:
    """An attempt that stopped at ``stage``."""

    stage: Stage
    cause: str

    @property
    def message(self) -> str:
        return f"Failed to {self.stage.description}: {self.cause}"


ExecutionAttempt = Union[Output, Failure]


def describe_error(exc: BaseException) -> str:
    """Human readable cause for an exception, never empty."""
    return str(exc).strip() or exc.__class__.__name__


class _ProgressClient(asyncssh.SSHClient):
    """Remembers whether the TCP connection came up, to classify failures."""

    def __init__(self) -> None:
        self.transport_up = False

    def connection_made(self, conn: asyncssh.SSHClientConnection) -> None:
        self.transport_up = True


class RemoteExecutor:
    """Runs one command on one node per call; keeps no connection between calls.

    ``host_key_policy`` is either ``"ignore"`` (no host key verification) or
    ``"known_hosts"`` (verify against ``known_hosts`` or ~/.ssh/known_hosts).
    """

    def __init__(self, host_key_policy: str = "ignore", known_hosts: Path | None = None):
        self.host_key_policy = host_key_policy
        self.known_hosts = known_hosts

    def _known_hosts_option(self):
        if self.host_key_policy == "ignore":
            return None
        if self.known_hosts is not None:
            return str(self.known_hosts)
        return ()  # asyncssh default: ~/.ssh/known_hosts

    async def attempt(
        self, command: str, params: ConnectionParameters, timeout: float
    ) -> ExecutionAttempt:
        """Connect, authenticate, run ``command`` and capture its stdout."""
        try:
            key = asyncssh.read_private_key(str(params.identity_file))
        except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError, OSError) as e:
            return Failure(
                Stage.AUTHENTICATE, f"cannot load {params.identity_file}: {describe_error(e)}"
            )

        client = _ProgressClient()
        try:
            conn = await asyncio.wait_for(
                asyncssh.connect(
                    params.host,
                    port=params.port,
                    username=params.user,
                    client_keys=[key],
                    known_hosts=self._known_hosts_option(),
                    config=None,
                    agent_path=None,
                    preferred_auth="publickey",
                    client_factory=lambda: client,
                ),
                timeout,
            )
        except asyncssh.PermissionDenied as e:
            return Failure(Stage.AUTHENTICATE, describe_error(e))
        except asyncio.TimeoutError:
            stage = Stage.HANDSHAKE if client.transport_up else Stage.CONNECT
            return Failure(stage, f"timed out after {timeout:g}s")
        except (asyncssh.Error, OSError) as e:
            stage = Stage.HANDSHAKE if client.transport_up else Stage.CONNECT
            return Failure(stage, describe_error(e))

        logger.debug("Connected to %s", params)
        proc = None
        try:
            try:
                proc = await asyncio.wait_for(
                    conn.create_process(
                        command,
                        encoding="utf-8",
                        errors="replace",
                        stderr=asyncssh.DEVNULL,
                    ),
                    timeout,
                )
            except asyncssh.ChannelOpenError as e:
                return Failure(Stage.OPEN_CHANNEL, describe_error(e))
            except asyncio.TimeoutError:
                return Failure(Stage.OPEN_CHANNEL, f"timed out after {timeout:g}s")
            except (asyncssh.Error, OSError) as e:
                return Failure(Stage.RUN, describe_error(e))

            try:
                text = await asyncio.wait_for(proc.stdout.read(), timeout)
            except asyncio.TimeoutError:
                return Failure(
                    Stage.READ_OUTPUT_TIMEOUT,
                    f"output not closed after {timeout:g}s",
                )
            except (asyncssh.Error, OSError) as e:
                return Failure(Stage.READ_OUTPUT, describe_error(e))

            return Output(text)
        finally:
            await self._shutdown(conn, proc, timeout)

    async def _shutdown(self, conn, proc, timeout: float) -> None:
        """Close the channel and the connection, ignoring any errors."""
        if proc is not None:
            try:
                proc.stdin.write_eof()
                proc.close()
                await asyncio.wait_for(proc.wait_closed(), timeout)
            except (asyncssh.Error, OSError, asyncio.TimeoutError) as e:
                logger.debug("Ignoring error while closing channel: %s", describe_error(e))

        try:
            conn.close()
            await asyncio.wait_for(conn.wait_closed(), timeout)
        except (asyncssh.Error, OSError, asyncio.TimeoutError) as e:
            logger.debug("Ignoring error while disconnecting: %s", describe_error(e))
