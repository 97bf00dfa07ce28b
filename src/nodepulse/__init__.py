"""nodepulse: Periodically run a command on SSH nodes and show the latest output."""

from .config import Settings, load_settings
from .exceptions import ConfigError
from .executor import ExecutionAttempt, Failure, Output, RemoteExecutor, Stage
from .hosts import ConnectionParameters, HostResolver
from .orchestrator import Orchestrator
from .poller import Poller
from .status import NodeSnapshot, StatusBoard, StatusLine
from .targets import Roster, Target

__all__ = [
    "Settings",
    "load_settings",
    "ConfigError",
    "ExecutionAttempt",
    "Failure",
    "Output",
    "RemoteExecutor",
    "Stage",
    "ConnectionParameters",
    "HostResolver",
    "Orchestrator",
    "Poller",
    "NodeSnapshot",
    "StatusBoard",
    "StatusLine",
    "Roster",
    "Target",
]
