"""Resolve node names to SSH connection parameters from an OpenSSH config file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import paramiko

from .exceptions import ConfigError
from .targets import Target

logger = logging.getLogger("nodepulse")

DEFAULT_PORT = 22
DEFAULT_USER = "root"


@dataclass(frozen=True)
class ConnectionParameters:
    """Everything needed to reach one node."""

    host: str
    identity_file: Path
    port: int = DEFAULT_PORT
    user: str = DEFAULT_USER

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"


def default_ssh_config_path() -> Path:
    """Return ~/.ssh/config, failing loudly if there is no home directory."""
    try:
        home = Path.home()
    except RuntimeError as e:
        raise ConfigError(f"Failed to determine home directory: {e}") from e
    return home / ".ssh" / "config"


class HostResolver:
    """Looks up ``Host`` blocks in an OpenSSH client config."""

    def __init__(self, ssh_config_path: str | Path | None = None):
        path = Path(ssh_config_path).expanduser() if ssh_config_path else default_ssh_config_path()
        try:
            self._config = paramiko.SSHConfig.from_path(str(path))
        except OSError as e:
            raise ConfigError(f"Failed to read SSH config {path}: {e}") from e
        except paramiko.ssh_exception.ConfigParseError as e:
            raise ConfigError(f"Failed to parse SSH config {path}: {e}") from e
        self.path = path

    def resolve(self, target: Target) -> ConnectionParameters:
        """Return connection parameters for ``target``.

        Raises ConfigError if no Host block matches, or if the match has no
        IdentityFile, or the identity file does not exist.
        """
        options = self._config.lookup(target.name)

        # paramiko fills in "hostname" with the alias when nothing matched
        if set(options) <= {"hostname"} and options.get("hostname") == target.name:
            raise ConfigError(f"No Host entry for node '{target}' in {self.path}")

        host = options.get("hostname")
        if not host:
            raise ConfigError(f"Node '{target}' has no HostName in {self.path}")

        identity_files = options.get("identityfile") or []
        if not identity_files:
            raise ConfigError(f"Node '{target}' has no IdentityFile in {self.path}")
        identity_file = Path(identity_files[0]).expanduser()
        if not identity_file.exists():
            raise ConfigError(f"SSH key not found for node '{target}': {identity_file}")

        port_raw = options.get("port", DEFAULT_PORT)
        try:
            port = int(port_raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Node '{target}' has an invalid Port: {port_raw!r}") from e
        if not 0 < port < 65536:
            raise ConfigError(f"Node '{target}' has an invalid Port: {port}")

        params = ConnectionParameters(
            host=host,
            identity_file=identity_file,
            port=port,
            user=options.get("user") or DEFAULT_USER,
        )
        logger.debug("Resolved %s to %s (key %s)", target, params, identity_file)
        return params
