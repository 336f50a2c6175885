"""Tests for local snapshot and audit storage."""

import asyncio
import json
from uuid import uuid4

from payback.audit import AuditLogger
from payback.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from payback.models.ledger import AppData, Group, Member
from payback.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    JsonFilePersistenceStore,
)


class TestJsonFilePersistenceStore:
    """Tests for the JSON snapshot file."""

    def test_save_then_load(self, tmp_path, make_expense):
        store = JsonFilePersistenceStore(tmp_path / "nested" / "ledger.json")
        sam = Member(name="Sam")
        group = Group(name="Trip", members=[sam])
        data = AppData(
            groups=[group],
            expenses=[make_expense(group.id, sam.id, {sam.id: "12.50"})],
        )

        async def scenario():
            await store.save(data)
            return await store.load()

        loaded = asyncio.run(scenario())

        assert loaded == data
        assert not (tmp_path / "nested" / "ledger.json.tmp").exists()

    def test_missing_file_loads_empty(self, tmp_path):
        store = JsonFilePersistenceStore(tmp_path / "absent.json")
        assert asyncio.run(store.load()) == AppData()

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonFilePersistenceStore(path)
        assert asyncio.run(store.load()) == AppData()

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / "ledger.json"
        store = JsonFilePersistenceStore(path)

        async def scenario():
            await store.save(AppData(groups=[Group(name="Trip")]))
            await store.clear()
            await store.clear()

        asyncio.run(scenario())

        assert not path.exists()

    def test_stored_is_settled_is_ignored(self, tmp_path, make_expense):
        """Test that the settled flag is recomputed from splits on load."""
        sam = Member(name="Sam")
        expense = make_expense(uuid4(), sam.id, {sam.id: 5})
        payload = AppData(expenses=[expense]).model_dump(mode="json")
        payload["expenses"][0]["is_settled"] = True
        path = tmp_path / "ledger.json"
        path.write_text(json.dumps(payload), encoding="utf-8")

        loaded = asyncio.run(JsonFilePersistenceStore(path).load())

        assert loaded.expenses[0].is_settled is False


class TestAuditStorage:
    """Tests for audit event storage and the logger."""

    def test_events_by_correlation_id(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()

        async def scenario():
            await storage.append_event(AuditEventBuilder.sync_started("reload", correlation_id))
            await storage.append_event(AuditEventBuilder.sync_skipped("no session"))
            return await storage.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())

        assert [e.event_type for e in events] == [AuditEventType.SYNC_STARTED]

    def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()

        async def scenario():
            for trigger in ("a", "b", "c"):
                await storage.append_event(AuditEventBuilder.sync_started(trigger, uuid4()))
            return await storage.get_recent_events(limit=2)

        events = asyncio.run(scenario())

        assert len(events) == 2
        assert events[0].timestamp >= events[1].timestamp

    def test_logger_survives_storage_failure(self):
        class BrokenStorage(AuditStorageInterface):
            async def append_event(self, event: AuditEvent) -> bool:
                raise RuntimeError("audit store offline")

            async def get_events_by_correlation_id(self, correlation_id):
                return []

            async def get_recent_events(self, limit=100):
                return []

        logger = AuditLogger(BrokenStorage())

        assert asyncio.run(logger.log(AuditEventBuilder.sync_skipped("no session"))) is False

    def test_logger_without_storage(self):
        logger = AuditLogger()
        assert asyncio.run(logger.log(AuditEventBuilder.sync_skipped("no session"))) is True
