"""
Ticket lifecycle shared by every backend.

TicketLifecycle implements the ticket rules once on top of the
TicketStorage primitives:
- id allocation (max existing number or watermark, plus one)
- exclusive create with reallocation when a concurrent create wins
- partial updates with a record move when the status changes
- automatic claimed/completed log entries on status transitions
- deletion of a ticket together with its whole log

Backends only move bytes; nothing here knows about sha tokens, Redis
sets or directories.
"""

import logging

from taskforce.activity_log import build_log_entry
from taskforce.errors import StorageConflictError, StorageError, TicketNotFoundError
from taskforce.ids import next_ticket_id, parse_ticket_number
from taskforce.storage.protocol import TicketStorage
from taskforce.types import (
    STATUSES,
    LogRequest,
    LogType,
    StoredTicket,
    Ticket,
    TicketCreate,
    TicketStatus,
    TicketUpdate,
    UpdateLog,
    activity_log_name,
    utc_now,
)

logger = logging.getLogger(__name__)

MAX_CREATE_ATTEMPTS = 3
CREATOR_AGENT = "Lead"
FALLBACK_AGENT = "system"

# Entries written automatically when an update moves a ticket
TRANSITION_ENTRIES: dict[TicketStatus, tuple[LogType, str]] = {
    TicketStatus.IN_PROGRESS: (LogType.CLAIMED, "Ticket claimed and work started."),
    TicketStatus.DONE: (LogType.COMPLETED, "Ticket marked as done."),
}


class TicketLifecycle:
    """
    Ticket operations over a single storage backend.

    Example:
        lifecycle = TicketLifecycle(LocalStorage(root=Path("taskforce_kanban")))
        ticket = await lifecycle.create(TicketCreate(title="Build endpoint"))
        await lifecycle.update(ticket.id, TicketUpdate(status=TicketStatus.IN_PROGRESS))
    """

    def __init__(self, storage: TicketStorage) -> None:
        self.storage = storage
        self._prepared = False

    @property
    def backend_name(self) -> str:
        return self.storage.name

    async def _prepare(self) -> None:
        if not self._prepared:
            await self.storage.prepare()
            self._prepared = True

    async def list_all(self) -> list[Ticket]:
        """
        Every ticket in the store, sorted by id.

        If an interrupted move left a ticket in two partitions, only the
        most recently updated copy is returned.
        """
        await self._prepare()
        latest: dict[str, Ticket] = {}
        for stored in await self.storage.read_all():
            ticket = stored.ticket
            seen = latest.get(ticket.id)
            if seen is None or ticket.updated_at > seen.updated_at:
                latest[ticket.id] = ticket

        return sorted(latest.values(), key=lambda t: (parse_ticket_number(t.id), t.id))

    async def get_by_id(self, ticket_id: str) -> StoredTicket | None:
        """Ticket plus its version token, or None."""
        await self._prepare()
        return await self.storage.read_record(ticket_id)

    async def create(self, fields: TicketCreate) -> Ticket:
        """
        Create a ticket in the todo column and log its creation.

        Raises:
            StorageConflictError: Every allocation attempt lost a race
            StorageError: Backend failure
        """
        await self._prepare()
        for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
            existing = await self.list_all()
            watermark = await self.storage.read_id_watermark()
            ticket_id = next_ticket_id((t.id for t in existing), watermark)
            now = utc_now()
            ticket = Ticket(
                id=ticket_id,
                title=fields.title,
                description=fields.description,
                status=TicketStatus.TODO,
                priority=fields.priority,
                assignee=fields.assignee,
                labels=list(fields.labels),
                dependencies=list(fields.dependencies),
                created_at=now,
                updated_at=now,
                activity_log_file=activity_log_name(ticket_id),
            )
            try:
                await self.storage.write_record(ticket, exclusive=True)
            except StorageConflictError:
                logger.warning(
                    f"{ticket_id} was taken concurrently (attempt {attempt}/{MAX_CREATE_ATTEMPTS})"
                )
                continue
            break
        else:
            raise StorageConflictError(self.backend_name, "ticket id allocation")

        await self._append(
            ticket_id,
            LogRequest(
                agent=CREATOR_AGENT,
                type=LogType.CREATED,
                message=f"Ticket registered: {ticket.title}",
            ),
        )
        # The ticket exists at this point; the live max still guards reuse
        try:
            await self.storage.write_id_watermark(parse_ticket_number(ticket_id))
        except StorageError as e:
            logger.warning(f"Could not record id watermark for {ticket_id}: {e}")
        logger.info(f"Created {ticket_id} on {self.backend_name}: {ticket.title}")
        return ticket

    async def update(
        self,
        ticket_id: str,
        changes: TicketUpdate,
        log: UpdateLog | None = None,
    ) -> Ticket:
        """
        Merge changes into a ticket and persist it.

        A status change moves the record into the new partition and may
        append a claimed/completed entry. An explicit log message in `log`
        is appended after that.

        Raises:
            TicketNotFoundError: No ticket with this id
            StorageError: Backend failure
        """
        stored = await self.get_by_id(ticket_id)
        if stored is None:
            raise TicketNotFoundError(ticket_id)
        current = stored.ticket

        fields = changes.changes()
        fields.pop("id", None)
        updated = Ticket.model_validate(
            {**current.to_dict(), **fields, "id": current.id, "updated_at": utc_now()}
        )

        status_changed = updated.status != current.status
        if status_changed:
            await self.storage.move_record(updated, current.status, stored.version)
            logger.info(
                f"Moved {ticket_id} {current.status.value} -> {updated.status.value}"
            )
        else:
            await self.storage.write_record(updated, version=stored.version)
            logger.info(f"Updated {ticket_id}: {', '.join(sorted(fields)) or 'no fields'}")

        log = log or UpdateLog()
        agent = log.agent or updated.assignee or FALLBACK_AGENT
        transition = TRANSITION_ENTRIES.get(updated.status) if status_changed else None
        if transition is not None:
            log_type, message = transition
            await self._append(
                ticket_id,
                LogRequest(agent=agent, type=log_type, message=message, details=log.details),
            )
        if log.message:
            await self._append(
                ticket_id,
                LogRequest(agent=agent, type=log.type, message=log.message, details=log.details),
            )
        return updated

    async def delete(self, ticket_id: str) -> bool:
        """
        Delete a ticket, every partition copy of it, and its whole log.

        Raises:
            TicketNotFoundError: No ticket with this id
        """
        stored = await self.get_by_id(ticket_id)
        if stored is None:
            raise TicketNotFoundError(ticket_id)
        await self.storage.delete_record(stored.ticket.status, ticket_id, stored.version)
        # Stale copies left behind by an interrupted move
        for status in STATUSES:
            if status != stored.ticket.status:
                await self.storage.delete_record(status, ticket_id)
        await self.storage.delete_log(ticket_id)
        logger.info(f"Deleted {ticket_id} from {self.backend_name}")
        return True

    async def get_log(self, ticket_id: str) -> str:
        """Full log text; empty for unknown tickets."""
        await self._prepare()
        return await self.storage.read_log_text(ticket_id)

    async def append_log(self, ticket_id: str, entry: LogRequest) -> None:
        """
        Append an entry to an existing ticket's log.

        Raises:
            TicketNotFoundError: No ticket with this id
        """
        if await self.get_by_id(ticket_id) is None:
            raise TicketNotFoundError(ticket_id)
        await self._append(ticket_id, entry)

    async def _append(self, ticket_id: str, entry: LogRequest) -> None:
        block = build_log_entry(entry.type, entry.agent, entry.message, entry.details)
        await self.storage.append_log_text(ticket_id, block)
        logger.debug(f"Logged {entry.type.value} on {ticket_id} by {entry.agent}")

    async def aclose(self) -> None:
        await self.storage.aclose()
