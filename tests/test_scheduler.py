"""
Scheduler Tests
===============
"""

import asyncio

import pytest

from mavlink_reader.control.scheduler import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    """Virtual clock."""

    def test_call_every_fires_per_interval(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_every(1.0, lambda: calls.append(scheduler.now))

        fired = scheduler.advance(3.0)

        assert fired == 3
        assert calls == [1.0, 2.0, 3.0]

    def test_call_later_fires_once(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2.0, lambda: calls.append("once"))

        scheduler.advance(1.5)
        assert calls == []

        scheduler.advance(5.0)
        assert calls == ["once"]

    def test_deadline_order(self):
        scheduler = ManualScheduler()
        order = []
        scheduler.call_later(2.0, lambda: order.append("late"))
        scheduler.call_later(1.0, lambda: order.append("early"))

        scheduler.advance(2.0)

        assert order == ["early", "late"]

    def test_cancel(self):
        scheduler = ManualScheduler()
        calls = []
        handle = scheduler.call_every(1.0, lambda: calls.append(1))
        scheduler.advance(1.0)

        handle.cancel()
        handle.cancel()
        scheduler.advance(5.0)

        assert calls == [1]
        assert scheduler.active_timers == 0

    def test_timer_scheduled_from_callback(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(1.0, lambda: scheduler.call_later(1.0, lambda: calls.append(scheduler.now)))

        scheduler.advance(3.0)

        assert calls == [2.0]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            ManualScheduler().call_every(0, lambda: None)


class TestAsyncioScheduler:
    """Real event loop timers (short intervals)."""

    def test_call_every_and_cancel(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            calls = []
            handle = scheduler.call_every(0.01, lambda: calls.append(1))
            await asyncio.sleep(0.055)
            handle.cancel()
            count = len(calls)
            await asyncio.sleep(0.03)
            return count, len(calls)

        count, final = asyncio.run(scenario())

        assert count >= 3
        assert final == count

    def test_call_later(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            calls = []
            scheduler.call_later(0.01, lambda: calls.append("fired"))
            cancelled = scheduler.call_later(0.01, lambda: calls.append("cancelled"))
            cancelled.cancel()
            await asyncio.sleep(0.05)
            return calls

        assert asyncio.run(scenario()) == ["fired"]

    def test_failing_callback_keeps_timer_alive(self):
        async def scenario():
            scheduler = AsyncioScheduler()
            calls = []

            def flaky():
                calls.append(1)
                raise RuntimeError("boom")

            handle = scheduler.call_every(0.01, flaky)
            await asyncio.sleep(0.055)
            handle.cancel()
            return len(calls)

        assert asyncio.run(scenario()) >= 2
