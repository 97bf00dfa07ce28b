"""Fan-out of one poller per node."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from .exceptions import ConfigError
from .executor import RemoteExecutor
from .hosts import ConnectionParameters
from .poller import Clock, Poller, local_now
from .status import StatusBoard
from .targets import Target

logger = logging.getLogger("nodepulse")

# Type alias for host lookup
Resolver = Callable[[Target], ConnectionParameters]


class Orchestrator:
    """Starts a poller for every node that can be configured and keeps them running."""

    def __init__(
        self,
        command: str,
        targets: Sequence[Target],
        resolver: Resolver,
        board: StatusBoard,
        executor: RemoteExecutor | None = None,
        interval: float = 10.0,
        timeout: float = 10.0,
        clock: Clock = local_now,
    ):
        self.command = command
        self.targets = list(targets)
        self.resolver = resolver
        self.board = board
        self.executor = executor or RemoteExecutor()
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.pollers: list[Poller] = []
        self.errors: dict[str, str] = {}

    def prepare(self) -> list[Poller]:
        """Resolve every node before any polling starts.

        A node that cannot be resolved is reported once on the board and
        skipped. Raises ConfigError only if no node is left to poll.
        """
        self.pollers = []
        self.errors = {}
        for target in self.targets:
            try:
                params = self.resolver(target)
            except ConfigError as e:
                logger.error("Skipping node %s: %s", target, e)
                self.errors[target.name] = str(e)
                self.board.mark_error(target, f"Configuration error: {e}")
                continue

            self.board.set_endpoint(target, str(params))
            self.pollers.append(
                Poller(
                    target,
                    params,
                    self.command,
                    self.board,
                    self.executor,
                    interval=self.interval,
                    timeout=self.timeout,
                    clock=self.clock,
                )
            )

        if not self.pollers:
            details = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
            raise ConfigError(f"No node could be configured ({details})")
        return self.pollers

    async def run(self, max_ticks: int | None = None) -> None:
        """Run all pollers concurrently.

        Never returns unless ``max_ticks`` is set; cancelling this coroutine
        cancels every poller.
        """
        pollers = self.pollers or self.prepare()
        logger.info(
            "Polling %d node(s) every %gs: %s",
            len(pollers),
            self.interval,
            ", ".join(str(p.target) for p in pollers),
        )

        tasks = [
            asyncio.create_task(p.run(max_ticks), name=f"poll-{p.target}") for p in pollers
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
