"""Shared pytest fixtures for nodepulse tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from nodepulse.hosts import ConnectionParameters
from nodepulse.targets import Roster

TICK_TIME = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def roster() -> Roster:
    return Roster()


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    """A placeholder private key; tests never parse it."""
    path = tmp_path / "id_test"
    path.write_text("not a real key\n")
    return path


@pytest.fixture
def params(key_file: Path) -> ConnectionParameters:
    return ConnectionParameters(host="10.0.0.1", identity_file=key_file)


@pytest.fixture
def fixed_clock():
    """A clock frozen at 2024-01-01T10:00:00Z."""
    return lambda: TICK_TIME


@pytest.fixture
def ssh_config_file(tmp_path: Path, key_file: Path) -> Path:
    """An OpenSSH config with node1/node2 complete and node3/node4 broken."""
    path = tmp_path / "ssh_config"
    path.write_text(
        f"""\
Host node1
    HostName 10.0.0.1
    IdentityFile {key_file}

Host node2
    HostName 10.0.0.2
    Port 2222
    User admin
    IdentityFile {key_file}

Host node3
    HostName 10.0.0.3

Host node4
    HostName 10.0.0.4
    IdentityFile {key_file.parent / "missing_key"}
"""
    )
    return path
