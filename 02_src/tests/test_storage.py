"""Tests for Storage."""

from datetime import datetime, timedelta, timezone

import pytest

from chat_core.models import ChangeEvent, Topic, TraceEvent
from chat_core.storage import Storage


def _trace(event_id: str, event_type: str, actor: str, ts: datetime) -> TraceEvent:
    return TraceEvent(id=event_id, event_type=event_type, actor=actor, data={}, timestamp=ts)


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "change_events" in tables
            assert "trace_events" in tables

    async def test_requires_init(self):
        """Test that using storage before init raises."""
        st = Storage(":memory:")
        with pytest.raises(RuntimeError):
            await st.get_trace_events()


class TestStorageChangeEvents:
    """Tests for ChangeEvent journal."""

    async def test_save_and_get(self, storage):
        """Test round trip of a change event."""
        ts = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        event = ChangeEvent(
            id="evt1",
            topic=Topic.MESSAGES,
            payload={"change": "status", "message": {"status": "sent"}},
            source="message_store",
            timestamp=ts,
        )
        await storage.save_change_event(event)

        events = await storage.get_change_events()
        assert len(events) == 1
        assert events[0].topic is Topic.MESSAGES
        assert events[0].payload["message"]["status"] == "sent"
        assert events[0].timestamp == ts

    async def test_filter_by_topic_newest_first(self, storage):
        """Test topic filter and ordering."""
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        for i, topic in enumerate([Topic.CALLS, Topic.MESSAGES, Topic.CALLS]):
            await storage.save_change_event(
                ChangeEvent(
                    id=f"evt{i}",
                    topic=topic,
                    payload={},
                    source="test",
                    timestamp=ts + timedelta(seconds=i),
                )
            )

        events = await storage.get_change_events(topic=Topic.CALLS)
        assert [e.id for e in events] == ["evt2", "evt0"]

        limited = await storage.get_change_events(limit=1)
        assert [e.id for e in limited] == ["evt2"]


class TestStorageTraceEvents:
    """Tests for TraceEvent storage."""

    async def test_filters(self, storage):
        """Test after, event_types and actor filters."""
        ts = datetime(2024, 1, 1, tzinfo=timezone.utc)
        await storage.save_trace_event(_trace("t1", "message_sent", "conversation_service", ts))
        await storage.save_trace_event(
            _trace("t2", "message_failed", "conversation_service", ts + timedelta(seconds=1))
        )
        await storage.save_trace_event(
            _trace("t3", "calls_changed", "call_manager", ts + timedelta(seconds=2))
        )

        after = await storage.get_trace_events(after=ts)
        assert [e.id for e in after] == ["t3", "t2"]

        by_type = await storage.get_trace_events(
            event_types=["message_sent", "message_failed"]
        )
        assert {e.id for e in by_type} == {"t1", "t2"}

        by_actor = await storage.get_trace_events(actor="call_manager")
        assert [e.id for e in by_actor] == ["t3"]

    async def test_clear(self, storage):
        """Test that clear() empties both journals."""
        ts = datetime.now(timezone.utc)
        await storage.save_trace_event(_trace("t1", "x", "y", ts))
        await storage.save_change_event(
            ChangeEvent(id="e1", topic=Topic.TYPING, payload={}, source="s", timestamp=ts)
        )

        await storage.clear()

        assert await storage.get_trace_events() == []
        assert await storage.get_change_events() == []
