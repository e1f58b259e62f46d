"""
Test suite for the run EventBus.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from prompt_lab.core.event_bus import EventBus, RunEvent


class TestSubscriptions:

    def test_priority_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe("task_started", lambda e: calls.append("low"), priority=9)
        bus.subscribe("task_started", lambda e: calls.append("high"), priority=1)
        asyncio.run(bus.publish(RunEvent("task_started")))
        assert calls == ["high", "low"]

    def test_wildcard_and_typed(self):
        bus = EventBus()
        seen = []
        bus.subscribe("*", lambda e: seen.append(("any", e.event_type)))
        bus.subscribe("run_finished", lambda e: seen.append(("typed", e.event_type)))
        asyncio.run(bus.publish(RunEvent("run_finished")))
        asyncio.run(bus.publish(RunEvent("run_started")))
        assert seen == [("typed", "run_finished"), ("any", "run_finished"), ("any", "run_started")]

    def test_unknown_event_type_rejected(self):
        bus = EventBus()
        with pytest.raises(ValueError, match="Unknown event type 'task_done'"):
            bus.subscribe("task_done", print)

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        sub_id = bus.subscribe("run_started", lambda e: calls.append(e))
        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False
        asyncio.run(bus.publish(RunEvent("run_started")))
        assert calls == []


class TestPublishing:

    def test_async_handler_awaited(self):
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe("task_completed", handler)
        event = RunEvent("task_completed", task_id="t1")
        asyncio.run(bus.publish(event))
        handler.assert_awaited_once_with(event)
        assert bus.get_statistics()["handlers_executed"] == 1

    def test_failing_handler_goes_to_dead_letter_queue(self):
        bus = EventBus()

        def broken(event):
            raise RuntimeError("nope")

        bus.subscribe("task_failed", broken, subscriber_name="broken")
        asyncio.run(bus.publish(RunEvent("task_failed")))
        assert bus.dead_letter_queue[0][1] == "nope"
        assert bus.get_statistics()["handlers_failed"] == 1
        bus.clear_dead_letter_queue()
        assert bus.dead_letter_queue == []

    def test_publish_nowait_sync_handler(self):
        bus = EventBus()
        calls = []
        bus.subscribe("run_reset", calls.append)
        bus.publish_nowait(RunEvent("run_reset"))
        assert len(calls) == 1

    def test_publish_nowait_without_loop_drops_async_handler(self):
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe("run_reset", handler)
        bus.publish_nowait(RunEvent("run_reset"))
        handler.assert_not_awaited()
        assert len(bus.get_event_history()) == 1

    def test_publish_nowait_inside_loop_schedules_handler(self):
        bus = EventBus()
        handler = AsyncMock()
        bus.subscribe("run_reset", handler)

        async def go():
            bus.publish_nowait(RunEvent("run_reset"))
            await asyncio.sleep(0)
            await asyncio.sleep(0)

        asyncio.run(go())
        handler.assert_awaited_once()

    def test_publish_nowait_keeps_task_until_done(self):
        bus = EventBus()
        bus.subscribe("run_reset", AsyncMock())

        async def go():
            bus.publish_nowait(RunEvent("run_reset"))
            held = len(bus._pending)
            await asyncio.sleep(0)
            await asyncio.sleep(0)
            return held

        assert asyncio.run(go()) == 1
        assert not bus._pending


class TestHistory:

    def test_history_bounded_and_filtered(self):
        bus = EventBus(history_max_size=3)
        for event_type in ("run_started", "task_started", "task_completed", "run_finished"):
            asyncio.run(bus.publish(RunEvent(event_type)))
        assert [e.event_type for e in bus.get_event_history()] == [
            "task_started", "task_completed", "run_finished"
        ]
        assert len(bus.get_event_history("run_finished")) == 1

    def test_history_disabled(self):
        bus = EventBus(enable_history=False)
        asyncio.run(bus.publish(RunEvent("run_started")))
        assert bus.get_event_history() == []
