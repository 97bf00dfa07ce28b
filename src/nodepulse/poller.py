"""Per-node polling loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable

from .executor import Failure, RemoteExecutor, Stage, describe_error
from .hosts import ConnectionParameters
from .status import StatusBoard, StatusLine, format_timestamp
from .targets import Target

logger = logging.getLogger("nodepulse")

# Type alias for a wall clock returning an aware datetime
Clock = Callable[[], datetime]


def local_now() -> datetime:
    return datetime.now().astimezone()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Poller:
    """Runs the command on one node every ``interval`` seconds.

    Ticks are sequential: a slow attempt delays the following ticks but
    none is skipped. Attempt failures are published like any other output
    and never stop the loop.
    """

    def __init__(
        self,
        target: Target,
        params: ConnectionParameters,
        command: str,
        board: StatusBoard,
        executor: RemoteExecutor,
        interval: float = 10.0,
        timeout: float = 10.0,
        clock: Clock = local_now,
    ):
        self.target = target
        self.params = params
        self.command = command
        self.board = board
        self.executor = executor
        self.interval = interval
        self.timeout = timeout
        self.clock = clock
        self.ticks = 0

    async def tick(self) -> StatusLine:
        """Run one attempt and publish its status line."""
        # Taken before the attempt so the run time does not shift the stamp
        timestamp = format_timestamp(self.clock())
        try:
            attempt = await self.executor.attempt(self.command, self.params, self.timeout)
        except Exception as e:
            logger.exception("Unexpected error polling %s", self.target)
            attempt = Failure(Stage.RUN, describe_error(e))

        line = StatusLine.from_attempt(timestamp, attempt)
        if line.failed:
            logger.info("%s: %s", self.target, line.text)
        else:
            logger.debug("%s: %d line(s) of output", self.target, len(line.lines))

        self.board.publish(self.target, line)
        self.ticks += 1
        return line

    async def run(self, max_ticks: int | None = None) -> None:
        """Poll until cancelled, or until ``max_ticks`` ticks have run."""
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while max_ticks is None or self.ticks < max_ticks:
            delay = deadline - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            await self.tick()
            deadline += self.interval
