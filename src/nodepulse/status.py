"""Status lines and the per-node status board read by the renderers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Iterable

from .executor import ExecutionAttempt, Failure
from .targets import Target


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 with whole seconds, using ``Z`` for UTC."""
    text = moment.isoformat(timespec="seconds")
    if text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def split_output(text: str) -> list[str]:
    """Split command output into lines.

    Lines end at ``\\n`` with an optional trailing ``\\r``; a final newline
    does not produce an extra empty line.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


@dataclass(frozen=True)
class StatusLine:
    """Formatted result of one attempt, every line stamped with the same time."""

    timestamp: str
    lines: tuple[str, ...] = ()
    failed: bool = False

    @classmethod
    def from_attempt(cls, timestamp: str, attempt: ExecutionAttempt) -> StatusLine:
        if isinstance(attempt, Failure):
            return cls(timestamp, (attempt.message,), failed=True)
        return cls(timestamp, tuple(split_output(attempt.text)))

    @property
    def text(self) -> str:
        return "\n".join(f"{self.timestamp} - {line}" for line in self.lines)


@dataclass(frozen=True)
class NodeSnapshot:
    """What a renderer needs to draw one node."""

    name: str
    endpoint: str = ""
    text: str = ""
    timestamp: str = ""  # stamp of the latest attempt
    ticks: int = 0
    failed: bool = False
    error: str | None = None  # configuration error; the node is not polled

    def display_lines(self) -> list[str]:
        """Lines to show for the latest attempt; empty output keeps its stamp."""
        if self.text:
            return self.text.split("\n")
        if self.timestamp:
            return [f"{self.timestamp} -"]
        return []


# Type alias for update callback
UpdateCallback = Callable[[NodeSnapshot], None]


class StatusBoard:
    """Holds the latest status of every node.

    Each poller writes only its own slot; renderers may read from any thread.
    Writes overwrite the previous value.
    """

    def __init__(self, targets: Iterable[Target]):
        self._lock = threading.Lock()
        self._slots: dict[str, NodeSnapshot] = {t.name: NodeSnapshot(t.name) for t in targets}
        self._listeners: list[UpdateCallback] = []

    def subscribe(self, callback: UpdateCallback) -> None:
        """Call ``callback`` with the new snapshot after every write."""
        self._listeners.append(callback)

    def _update(
        self, target: Target, change: Callable[[NodeSnapshot], NodeSnapshot]
    ) -> NodeSnapshot:
        with self._lock:
            if target.name not in self._slots:
                raise KeyError(f"Unknown node: {target}")
            snapshot = change(self._slots[target.name])
            self._slots[target.name] = snapshot
        for callback in self._listeners:
            callback(snapshot)
        return snapshot

    def set_endpoint(self, target: Target, endpoint: str) -> NodeSnapshot:
        return self._update(target, lambda s: replace(s, endpoint=endpoint))

    def publish(self, target: Target, line: StatusLine) -> NodeSnapshot:
        """Replace the node's status text and bump its tick count."""
        return self._update(
            target,
            lambda s: replace(
                s,
                text=line.text,
                timestamp=line.timestamp,
                failed=line.failed,
                ticks=s.ticks + 1,
            ),
        )

    def mark_error(self, target: Target, message: str) -> NodeSnapshot:
        return self._update(
            target, lambda s: replace(s, error=message, failed=True, text=message)
        )

    def get(self, target: Target) -> NodeSnapshot:
        with self._lock:
            return self._slots[target.name]

    def snapshot(self) -> list[NodeSnapshot]:
        """All nodes, in roster selection order."""
        with self._lock:
            return list(self._slots.values())

    @property
    def total_ticks(self) -> int:
        with self._lock:
            return sum(s.ticks for s in self._slots.values())
