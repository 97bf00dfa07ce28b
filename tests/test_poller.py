"""Tests for nodepulse/poller.py - the per-node polling loop."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fake_ssh import FakeExecutor
from nodepulse.executor import Failure, Output, Stage
from nodepulse.poller import Poller
from nodepulse.status import StatusBoard
from nodepulse.targets import Target

NODE1 = Target("node1", 1)


def make_poller(executor, params, clock, **kwargs):
    board = StatusBoard([NODE1])
    poller = Poller(NODE1, params, "uptime", board, executor, clock=clock, **kwargs)
    return poller, board


class TestTick:
    @pytest.mark.asyncio
    async def test_uptime_scenario(self, params, fixed_clock):
        executor = FakeExecutor([Output(" 10:00:01 up 3 days\n")])
        poller, board = make_poller(executor, params, fixed_clock)

        line = await poller.tick()

        assert line.text == "2024-01-01T10:00:00Z -  10:00:01 up 3 days"
        assert board.get(NODE1).text == line.text
        assert board.get(NODE1).ticks == 1
        assert executor.calls == [("uptime", params, 10.0)]

    @pytest.mark.asyncio
    async def test_unreachable_scenario(self, params, fixed_clock):
        executor = FakeExecutor([Failure(Stage.CONNECT, "Connection refused")])
        poller, board = make_poller(executor, params, fixed_clock)

        await poller.tick()

        snapshot = board.get(NODE1)
        assert snapshot.text == "2024-01-01T10:00:00Z - Failed to connect: Connection refused"
        assert snapshot.failed

    @pytest.mark.asyncio
    async def test_timestamp_taken_before_attempt(self, params):
        start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        times = iter([start, start + timedelta(seconds=30)])
        executor = FakeExecutor([Output("a\nb\n")], delay=0.01)
        poller, _ = make_poller(executor, params, lambda: next(times))

        line = await poller.tick()

        assert line.text == "2024-01-01T10:00:00Z - a\n2024-01-01T10:00:00Z - b"

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_failure(self, params, fixed_clock):
        executor = FakeExecutor([RuntimeError("kaboom")])
        poller, board = make_poller(executor, params, fixed_clock)

        line = await poller.tick()

        assert line.failed
        assert line.text == "2024-01-01T10:00:00Z - Failed to execute command: kaboom"
        assert board.get(NODE1).ticks == 1

    @pytest.mark.asyncio
    async def test_empty_output_is_a_valid_tick(self, params, fixed_clock):
        poller, board = make_poller(FakeExecutor([Output("")]), params, fixed_clock)

        line = await poller.tick()

        assert line.text == ""
        assert not board.get(NODE1).failed
        assert board.get(NODE1).ticks == 1


class TestRun:
    @pytest.mark.asyncio
    async def test_one_status_line_per_tick(self, params, fixed_clock):
        executor = FakeExecutor(
            [Output("ok\n"), Failure(Stage.HANDSHAKE, "reset"), Output("ok again\n")]
        )
        poller, board = make_poller(executor, params, fixed_clock, interval=0.01)
        seen = []
        board.subscribe(lambda s: seen.append(s.text))

        await poller.run(max_ticks=3)

        assert len(executor.calls) == 3
        assert seen == [
            "2024-01-01T10:00:00Z - ok",
            "2024-01-01T10:00:00Z - Failed to perform SSH handshake: reset",
            "2024-01-01T10:00:00Z - ok again",
        ]
        assert board.get(NODE1).ticks == 3

    @pytest.mark.asyncio
    async def test_failures_never_stop_the_loop(self, params, fixed_clock):
        executor = FakeExecutor(default=Failure(Stage.CONNECT, "No route to host"))
        poller, board = make_poller(executor, params, fixed_clock, interval=0.001)

        await poller.run(max_ticks=5)

        assert board.get(NODE1).ticks == 5

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate_then_waits_interval(self, params, fixed_clock):
        executor = FakeExecutor()
        poller, _ = make_poller(executor, params, fixed_clock, interval=0.2)
        loop = asyncio.get_running_loop()

        started = loop.time()
        await poller.run(max_ticks=2)
        elapsed = loop.time() - started

        assert 0.15 <= elapsed < 1.0

    @pytest.mark.asyncio
    async def test_slow_attempt_delays_but_does_not_skip(self, params, fixed_clock):
        executor = FakeExecutor(delay=0.05)
        poller, board = make_poller(executor, params, fixed_clock, interval=0.01)

        await poller.run(max_ticks=3)

        assert len(executor.calls) == 3
        assert board.get(NODE1).ticks == 3

    @pytest.mark.asyncio
    async def test_cancel_stops_unbounded_loop(self, params, fixed_clock):
        poller, board = make_poller(FakeExecutor(), params, fixed_clock, interval=0.01)

        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert board.get(NODE1).ticks >= 1
