"""
Local filesystem storage.

Layout under the root directory:
    todo/{id}.json, in_progress/{id}.json, done/{id}.json
    logs/activity-{id}.md
    taskforce_dashboard.md     human-readable summary, rewritten after
                               every ticket mutation
    .last-ticket-number        id allocation watermark

Directories are created on first use. File I/O is blocking, so every
operation runs in the default executor to keep the event loop free.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from pydantic import ValidationError

from taskforce.errors import StorageConflictError, StorageError
from taskforce.types import (
    STATUSES,
    StoredTicket,
    Ticket,
    TicketStatus,
    activity_log_name,
    utc_now,
)

logger = logging.getLogger(__name__)

SUMMARY_FILE = "taskforce_dashboard.md"
WATERMARK_FILE = ".last-ticket-number"

T = TypeVar("T")


@dataclass
class LocalStorage:
    """
    Ticket storage in a local directory tree.

    Attributes:
        root: Directory holding the status folders, logs and summary

    Example:
        storage = LocalStorage(root=Path("taskforce_kanban"))
        await storage.prepare()
        stored = await storage.read_record("ticket-001")
    """

    root: Path
    name: str = "local"

    @property
    def logs_dir(self) -> Path:
        return self.root / "logs"

    def partition_dir(self, status: TicketStatus) -> Path:
        return self.root / status.value

    def ticket_path(self, status: TicketStatus, ticket_id: str) -> Path:
        return self.partition_dir(status) / f"{ticket_id}.json"

    def log_path(self, ticket_id: str) -> Path:
        return self.logs_dir / activity_log_name(ticket_id)

    async def _run(self, func: Callable[[], T], what: str) -> T:
        """Run blocking file I/O in the executor, wrapping OSError."""
        loop = asyncio.get_running_loop()

        def _blocking() -> T:
            try:
                return func()
            except FileExistsError:
                raise
            except OSError as e:
                raise StorageError(self.name, f"{what} failed: {e}") from e

        return await loop.run_in_executor(None, _blocking)

    # ------------------------------------------------------------------
    # Blocking helpers (run inside the executor)
    # ------------------------------------------------------------------

    def _mkdirs(self) -> None:
        for directory in [self.root, self.logs_dir, *(self.partition_dir(s) for s in STATUSES)]:
            directory.mkdir(parents=True, exist_ok=True)

    def _load(self, path: Path, status: TicketStatus) -> Ticket | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            data["status"] = status.value
            return Ticket.model_validate(data)
        except FileNotFoundError:
            # Moved or deleted between listing and reading
            return None
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed ticket document {path}: {e}")
            return None

    def _list_partition(self, status: TicketStatus) -> list[Ticket]:
        self._mkdirs()
        tickets = []
        for path in sorted(self.partition_dir(status).glob("*.json")):
            ticket = self._load(path, status)
            if ticket is not None:
                tickets.append(ticket)
        return tickets

    def _dump(self, ticket: Ticket) -> str:
        return json.dumps(ticket.to_dict(), indent=2, ensure_ascii=False)

    def _write(self, ticket: Ticket, exclusive: bool) -> None:
        self._mkdirs()
        path = self.ticket_path(ticket.status, ticket.id)
        with path.open("x" if exclusive else "w", encoding="utf-8") as f:
            f.write(self._dump(ticket))

    def _refresh_summary(self) -> None:
        """Rewrite the Markdown summary of the whole board."""
        columns = {status: self._list_partition(status) for status in STATUSES}
        total = sum(len(tickets) for tickets in columns.values())

        def fmt(t: Ticket) -> str:
            owner = f" → {t.assignee}" if t.assignee else ""
            return f"- **{t.id}**: {t.title} [{t.priority.value}]{owner}"

        def section(heading: str, tickets: list[Ticket]) -> list[str]:
            body = "\n".join(fmt(t) for t in tickets) if tickets else "_No tickets_"
            return ["", f"## {heading} ({len(tickets)})", body]

        todo = columns[TicketStatus.TODO]
        in_progress = columns[TicketStatus.IN_PROGRESS]
        done = columns[TicketStatus.DONE]
        lines = [
            "# TaskForce Kanban Dashboard",
            f"Last updated: {utc_now()}",
            f"Total: {total} | Todo: {len(todo)} | In Progress: {len(in_progress)} | Done: {len(done)}",
            *section("To Do", todo),
            *section("In Progress", in_progress),
            *section("Done", done),
        ]
        (self.root / SUMMARY_FILE).write_text("\n".join(lines), encoding="utf-8")

    # ------------------------------------------------------------------
    # TicketStorage
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        await self._run(self._mkdirs, "create directories")

    async def read_partition(self, status: TicketStatus) -> list[StoredTicket]:
        tickets = await self._run(lambda: self._list_partition(status), f"list {status.value}")
        return [StoredTicket(ticket=t) for t in tickets]

    async def read_all(self) -> list[StoredTicket]:
        def _list_all() -> list[Ticket]:
            return [t for status in STATUSES for t in self._list_partition(status)]

        tickets = await self._run(_list_all, "list all")
        return [StoredTicket(ticket=t) for t in tickets]

    async def read_record(self, ticket_id: str) -> StoredTicket | None:
        def _find() -> Ticket | None:
            self._mkdirs()
            found = []
            for status in STATUSES:
                path = self.ticket_path(status, ticket_id)
                if not path.exists():
                    continue
                ticket = self._load(path, status)
                if ticket is not None:
                    found.append(ticket)
            # An interrupted move can leave two copies; the newer one is live
            return max(found, key=lambda t: t.updated_at) if found else None

        ticket = await self._run(_find, f"read {ticket_id}")
        return StoredTicket(ticket=ticket) if ticket is not None else None

    async def write_record(
        self,
        ticket: Ticket,
        version: str | None = None,
        exclusive: bool = False,
    ) -> None:
        def _write_and_refresh() -> None:
            self._write(ticket, exclusive)
            self._refresh_summary()

        try:
            await self._run(_write_and_refresh, f"write {ticket.id}")
        except FileExistsError as e:
            raise StorageConflictError(
                self.name, str(self.ticket_path(ticket.status, ticket.id))
            ) from e

    async def move_record(
        self,
        ticket: Ticket,
        from_status: TicketStatus,
        version: str | None = None,
    ) -> None:
        def _move() -> None:
            self._write(ticket, exclusive=False)
            self.ticket_path(from_status, ticket.id).unlink(missing_ok=True)
            self._refresh_summary()

        await self._run(_move, f"move {ticket.id}")

    async def delete_record(
        self,
        status: TicketStatus,
        ticket_id: str,
        version: str | None = None,
    ) -> None:
        def _delete() -> None:
            self.ticket_path(status, ticket_id).unlink(missing_ok=True)
            self._refresh_summary()

        await self._run(_delete, f"delete {ticket_id}")

    async def read_log_text(self, ticket_id: str) -> str:
        path = self.log_path(ticket_id)

        def _read() -> str:
            return path.read_text(encoding="utf-8") if path.exists() else ""

        return await self._run(_read, f"read log {ticket_id}")

    async def append_log_text(self, ticket_id: str, block: str) -> None:
        def _append() -> None:
            self._mkdirs()
            with self.log_path(ticket_id).open("a", encoding="utf-8") as f:
                f.write(block)

        await self._run(_append, f"append log {ticket_id}")

    async def delete_log(self, ticket_id: str) -> None:
        await self._run(
            lambda: self.log_path(ticket_id).unlink(missing_ok=True), f"delete log {ticket_id}"
        )

    async def read_id_watermark(self) -> int:
        path = self.root / WATERMARK_FILE

        def _read() -> int:
            if not path.exists():
                return 0
            raw = path.read_text(encoding="utf-8").strip()
            try:
                return int(raw)
            except ValueError:
                logger.warning(f"Ignoring malformed {path}: {raw!r}")
                return 0

        return await self._run(_read, "read watermark")

    async def write_id_watermark(self, number: int) -> None:
        def _write() -> None:
            self._mkdirs()
            (self.root / WATERMARK_FILE).write_text(f"{number}\n", encoding="utf-8")

        await self._run(_write, "write watermark")

    async def aclose(self) -> None:
        return None
