"""Unit tests for the auto-expiring notification queue."""

import asyncio

from serialmon.enums import Severity
from serialmon.notifications import NotificationQueue


class TestWithoutLoop:
    def test_push_keeps_order(self):
        q = NotificationQueue()
        q.push(Severity.INFO, "one")
        q.push(Severity.ERROR, "two")
        assert [n.message for n in q.items()] == ["one", "two"]
        assert q.items()[1].severity is Severity.ERROR

    def test_tick_removes_oldest(self):
        q = NotificationQueue()
        q.push(Severity.INFO, "one")
        q.push(Severity.SUCCESS, "two")
        q.tick()
        assert [n.message for n in q.items()] == ["two"]

    def test_tick_on_empty_queue(self):
        q = NotificationQueue()
        q.tick()
        assert len(q) == 0

    def test_duplicates_are_kept(self):
        q = NotificationQueue()
        q.push(Severity.INFO, "same")
        q.push(Severity.INFO, "same")
        assert len(q) == 2


class TestExpiry:
    def test_three_messages_expire_fifo(self):
        async def scenario():
            q = NotificationQueue(lifetime=0.05)
            for msg in ("a", "b", "c"):
                q.push(Severity.INFO, msg)
            seen = [n.message for n in q.items()]
            await asyncio.sleep(0.2)
            return seen, len(q)

        seen, left = asyncio.run(scenario())
        assert seen == ["a", "b", "c"]
        assert left == 0

    def test_timer_removes_oldest_not_its_own(self):
        async def scenario():
            q = NotificationQueue(lifetime=0.2)
            q.push(Severity.INFO, "first")
            await asyncio.sleep(0.12)
            q.push(Severity.INFO, "second")
            await asyncio.sleep(0.12)   # only the first timer has fired
            after_first = [n.message for n in q.items()]
            q.tick()                    # out of band: drops "second"
            q.push(Severity.INFO, "third")
            await asyncio.sleep(0.12)   # second timer fires, drops "third"
            return after_first, [n.message for n in q.items()]

        after_first, after_second = asyncio.run(scenario())
        assert after_first == ["second"]
        assert after_second == []

    def test_clear_cancels_timers(self):
        async def scenario():
            q = NotificationQueue(lifetime=0.02)
            q.push(Severity.INFO, "old")
            q.clear()
            q.lifetime = 60.0
            q.push(Severity.INFO, "new")
            await asyncio.sleep(0.05)
            return [n.message for n in q.items()]

        assert asyncio.run(scenario()) == ["new"]
