"""Node roster and node selector parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator, Sequence

from .exceptions import ConfigError

DEFAULT_ROSTER: tuple[str, ...] = ("node1", "node2", "node3", "node4")


@dataclass(frozen=True)
class Target:
    """A configured node, identified by its canonical name."""

    name: str
    index: int = field(default=0, compare=False)  # 1-based position in the roster

    def __str__(self) -> str:
        return self.name


class Roster:
    """Ordered list of canonical node names.

    Nodes can be selected by name ("node1") or by 1-based position ("1").
    """

    def __init__(self, names: Iterable[str] = DEFAULT_ROSTER):
        self._names: list[str] = []
        for raw in names:
            name = str(raw).strip()
            if not name:
                raise ConfigError("Roster contains an empty node name")
            if name.isascii() and name.isdigit():
                raise ConfigError(f"Node name must not be purely numeric: {name!r}")
            if name in self._names:
                raise ConfigError(f"Duplicate node name in roster: {name!r}")
            self._names.append(name)
        if not self._names:
            raise ConfigError("Roster must contain at least one node")

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[Target]:
        for i, name in enumerate(self._names, start=1):
            yield Target(name, i)

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def all(self) -> list[Target]:
        """Every node in roster order."""
        return list(self)

    def resolve(self, selector: str) -> Target:
        """Resolve a single selector to a Target."""
        value = selector.strip()
        if value.isascii() and value.isdigit():
            position = int(value)
            if not 1 <= position <= len(self._names):
                raise ConfigError(
                    f"Invalid node value: {value} (expected 1-{len(self._names)})"
                )
            return Target(self._names[position - 1], position)
        if value in self._names:
            return Target(value, self._names.index(value) + 1)
        raise ConfigError(f"Invalid node value: {value!r}")

    def select(self, selectors: str | Sequence[str]) -> list[Target]:
        """Resolve a comma separated string (or list) of selectors.

        Duplicates are dropped, keeping the first occurrence.
        """
        if isinstance(selectors, str):
            items = selectors.split(",")
        else:
            items = [str(s) for s in selectors]

        targets: list[Target] = []
        for item in items:
            if not item.strip():
                continue
            target = self.resolve(item)
            if target not in targets:
                targets.append(target)

        if not targets:
            raise ConfigError("No nodes selected")
        return targets
