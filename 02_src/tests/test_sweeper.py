"""Tests for RetentionSweeper."""

import asyncio
from datetime import datetime, timedelta, timezone

from chatroom.admission import MessagePipeline, RetentionSweeper

from conftest import minutes_ago


class TestRetentionSweeper:
    async def test_sweep_removes_expired(self, pipeline, tracker, storage, make_message):
        await storage.insert_message(make_message("old", datetime.now(timezone.utc) - timedelta(days=4)))
        await storage.insert_message(make_message("new", minutes_ago(1)))
        sweeper = RetentionSweeper(pipeline, tracker, interval=0)

        assert await sweeper.sweep() == 1
        assert [m.id for m in await storage.get_messages()] == ["new"]

        events = await storage.get_trace_events(event_types=["retention_swept"])
        assert events[0].data == {"deleted": 1}

    async def test_zero_interval_disabled(self, pipeline, tracker):
        sweeper = RetentionSweeper(pipeline, tracker, interval=0)

        await sweeper.start()

        assert not sweeper.running
        await sweeper.stop()

    async def test_background_loop(self, storage, tracker, make_message):
        small = MessagePipeline(storage, tracker, max_messages=1)
        for i in range(3):
            await storage.insert_message(make_message(f"m{i}", minutes_ago(10 - i)))
        sweeper = RetentionSweeper(small, tracker, interval=0.01)

        await sweeper.start()
        assert sweeper.running
        for _ in range(100):
            if await storage.count_messages() == 1:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert not sweeper.running
        assert [m.id for m in await storage.get_messages()] == ["m2"]

    async def test_loop_survives_errors(self, pipeline, tracker, monkeypatch):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return 0

        monkeypatch.setattr(pipeline, "trim", flaky)
        sweeper = RetentionSweeper(pipeline, tracker, interval=0.01)

        await sweeper.start()
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.stop()

        assert len(calls) >= 2
