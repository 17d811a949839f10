"""Tests for local filesystem storage."""

import json

import pytest

from taskforce.errors import StorageConflictError
from taskforce.storage import TicketStorage
from taskforce.storage.local import SUMMARY_FILE, WATERMARK_FILE
from taskforce.types import TicketStatus

from conftest import ticket_document


def test_local_storage_satisfies_protocol(local_storage):
    assert isinstance(local_storage, TicketStorage)


class TestLocalLayout:
    """Directory layout and summary file."""

    @pytest.mark.asyncio
    async def test_prepare_creates_directories(self, local_storage):
        await local_storage.prepare()

        for name in ("todo", "in_progress", "done", "logs"):
            assert (local_storage.root / name).is_dir()

    @pytest.mark.asyncio
    async def test_ticket_files_follow_status(self, local_store, local_storage):
        await local_store.create_ticket({"title": "Build endpoint"})
        todo_file = local_storage.root / "todo" / "ticket-001.json"
        assert json.loads(todo_file.read_text())["title"] == "Build endpoint"

        await local_store.update_ticket("ticket-001", {"status": "done"})

        assert not todo_file.exists()
        assert (local_storage.root / "done" / "ticket-001.json").exists()
        assert (local_storage.root / "logs" / "activity-ticket-001.md").exists()
        assert (local_storage.root / WATERMARK_FILE).read_text() == "1\n"

    @pytest.mark.asyncio
    async def test_summary_lists_columns(self, local_store, local_storage):
        await local_store.create_ticket({"title": "Build endpoint", "priority": "high"})
        await local_store.create_ticket({"title": "Write docs"})
        await local_store.update_ticket("ticket-002", {"status": "in_progress", "assignee": "docs-agent"})

        summary = (local_storage.root / SUMMARY_FILE).read_text()

        assert summary.startswith("# TaskForce Kanban Dashboard")
        assert "Total: 2 | Todo: 1 | In Progress: 1 | Done: 0" in summary
        assert "## To Do (1)\n- **ticket-001**: Build endpoint [high]" in summary
        assert "- **ticket-002**: Write docs [medium] → docs-agent" in summary
        assert "## Done (0)\n_No tickets_" in summary


class TestLocalReads:
    """Listing and point reads."""

    @pytest.mark.asyncio
    async def test_malformed_files_are_skipped(self, local_storage):
        await local_storage.prepare()
        todo = local_storage.root / "todo"
        (todo / "ticket-001.json").write_text(ticket_document("ticket-001"))
        (todo / "ticket-002.json").write_text("{broken")
        (todo / "notes.txt").write_text("ignore me")

        stored = await local_storage.read_partition(TicketStatus.TODO)

        assert [s.ticket.id for s in stored] == ["ticket-001"]

    @pytest.mark.asyncio
    async def test_newest_copy_wins(self, local_storage):
        await local_storage.prepare()
        old = json.loads(ticket_document("ticket-001"))
        new = {**old, "title": "Moved", "updated_at": "2025-01-16T00:00:00.000Z"}
        (local_storage.root / "todo" / "ticket-001.json").write_text(json.dumps(old))
        (local_storage.root / "done" / "ticket-001.json").write_text(json.dumps(new))

        stored = await local_storage.read_record("ticket-001")

        assert stored.ticket.title == "Moved"
        assert stored.ticket.status is TicketStatus.DONE

    @pytest.mark.asyncio
    async def test_exclusive_write_conflicts(self, local_storage):
        await local_storage.prepare()
        (local_storage.root / "todo" / "ticket-001.json").write_text(ticket_document("ticket-001"))
        stored = await local_storage.read_record("ticket-001")

        with pytest.raises(StorageConflictError):
            await local_storage.write_record(stored.ticket, exclusive=True)

    @pytest.mark.asyncio
    async def test_log_append_is_incremental(self, local_storage):
        await local_storage.append_log_text("ticket-001", "first\n")
        await local_storage.append_log_text("ticket-001", "second\n")

        assert await local_storage.read_log_text("ticket-001") == "first\nsecond\n"

    @pytest.mark.asyncio
    async def test_missing_log_is_empty(self, local_storage):
        assert await local_storage.read_log_text("ticket-404") == ""
