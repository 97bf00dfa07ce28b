"""Settings loader for nodepulse."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError
from .targets import DEFAULT_ROSTER

HOST_KEY_POLICIES = ("ignore", "known_hosts")


@dataclass
class Settings:
    """Polling settings. CLI flags override the settings file, which overrides these."""

    command: str | None = None
    nodes: list[str] | None = None  # None selects every node in the roster
    roster: list[str] = field(default_factory=lambda: list(DEFAULT_ROSTER))
    interval: float = 10.0
    timeout: float = 10.0
    ssh_config: Path | None = None  # None means ~/.ssh/config
    host_key_policy: str = "ignore"
    known_hosts: Path | None = None
    utc: bool = False
    log_file: Path | None = None
    source_path: Path | None = None  # Path to the settings file, if any

    def validate(self) -> None:
        """Check values that cannot be caught by parsing alone."""
        if not self.command or not self.command.strip():
            raise ConfigError("No command given")
        if self.interval <= 0:
            raise ConfigError(f"Interval must be positive, got {self.interval}")
        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.host_key_policy not in HOST_KEY_POLICIES:
            raise ConfigError(
                f"Unknown host_key_policy {self.host_key_policy!r} "
                f"(expected one of: {', '.join(HOST_KEY_POLICIES)})"
            )

    def merged(self, **overrides: Any) -> Settings:
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_settings(settings_path: str | Path) -> Settings:
    """Load settings from a YAML file."""
    settings_path = Path(settings_path).expanduser().resolve()

    if not settings_path.exists():
        raise ConfigError(f"Settings file not found: {settings_path}")

    try:
        with open(settings_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse settings file {settings_path}: {e}") from e

    settings = _parse_settings(raw or {})
    settings.source_path = settings_path
    return settings


def _parse_settings(raw: Any) -> Settings:
    """Parse raw YAML data into a Settings object."""
    if not isinstance(raw, dict):
        raise ConfigError("Settings file must contain a mapping at the top level")

    known = {f.name for f in fields(Settings)} - {"source_path"}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigError(f"Unknown settings: {', '.join(unknown)}")

    settings = Settings()
    if "command" in raw:
        settings.command = str(raw["command"])
    if "nodes" in raw:
        settings.nodes = _parse_list(raw["nodes"], "nodes")
    if "roster" in raw:
        settings.roster = _parse_list(raw["roster"], "roster")
    if "interval" in raw:
        settings.interval = _parse_seconds(raw["interval"], "interval")
    if "timeout" in raw:
        settings.timeout = _parse_seconds(raw["timeout"], "timeout")
    if raw.get("ssh_config"):
        settings.ssh_config = Path(raw["ssh_config"]).expanduser()
    if "host_key_policy" in raw:
        settings.host_key_policy = str(raw["host_key_policy"])
    if raw.get("known_hosts"):
        settings.known_hosts = Path(raw["known_hosts"]).expanduser()
    if "utc" in raw:
        settings.utc = bool(raw["utc"])
    if raw.get("log_file"):
        settings.log_file = Path(raw["log_file"]).expanduser()
    return settings


def _parse_list(value: Any, key: str) -> list[str]:
    """Accept either a YAML list or a comma separated string."""
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item) for item in value]
    raise ConfigError(f"'{key}' must be a list or a comma separated string")


def _parse_seconds(value: Any, key: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a number of seconds")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{key}' must be a number of seconds, got {value!r}") from e
