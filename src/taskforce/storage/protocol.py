"""
Storage primitive protocol.

TicketStorage is the narrow capability surface each backend implements.
It knows how to read and write ticket documents and log text on one
physical medium; it knows nothing about id allocation, status transition
side effects or log formatting. Those live once in TicketLifecycle.

Partitions are keyed by TicketStatus. A backend may segregate them
physically (directories, repository paths) or conceptually (a status
field on a flat record).
"""

from typing import Protocol, runtime_checkable

from taskforce.types import StoredTicket, Ticket, TicketStatus


@runtime_checkable
class TicketStorage(Protocol):
    """
    Protocol for ticket storage backends.

    Implementations: GitHubStorage, RedisStorage, LocalStorage.

    Every returned ticket must carry the status of the partition it was
    read from, whatever the stored document says.
    """

    name: str

    async def prepare(self) -> None:
        """Lazily create whatever the medium needs (branch, directories)."""
        ...

    async def read_partition(self, status: TicketStatus) -> list[StoredTicket]:
        """
        List every ticket stored under one status.

        Malformed documents are skipped, not raised.
        """
        ...

    async def read_all(self) -> list[StoredTicket]:
        """
        List every ticket in every partition in one pass.

        A ticket left in two partitions by an interrupted move appears
        once per copy; callers de-duplicate.
        """
        ...

    async def read_record(self, ticket_id: str) -> StoredTicket | None:
        """Load one ticket from whichever partition holds it."""
        ...

    async def write_record(
        self,
        ticket: Ticket,
        version: str | None = None,
        exclusive: bool = False,
    ) -> None:
        """
        Persist a ticket into the partition named by ticket.status.

        Args:
            ticket: Document to write
            version: Version token of the document being replaced, if any
            exclusive: Fail with StorageConflictError if the record exists

        Raises:
            StorageConflictError: Exclusive write found an existing record,
                or the version token is stale
            StorageError: Any other backend failure
        """
        ...

    async def move_record(
        self,
        ticket: Ticket,
        from_status: TicketStatus,
        version: str | None = None,
    ) -> None:
        """Relocate a ticket from from_status into ticket.status."""
        ...

    async def delete_record(
        self,
        status: TicketStatus,
        ticket_id: str,
        version: str | None = None,
    ) -> None:
        """
        Remove a ticket document from one partition.

        A document already absent from that partition is not an error.
        Without a version token the current one is looked up first.
        """
        ...

    async def read_log_text(self, ticket_id: str) -> str:
        """Full log document, empty string if none exists."""
        ...

    async def append_log_text(self, ticket_id: str, block: str) -> None:
        """Append a rendered entry block to the end of the log."""
        ...

    async def delete_log(self, ticket_id: str) -> None:
        """Remove the whole log document. Missing logs are not an error."""
        ...

    async def read_id_watermark(self) -> int:
        """Highest ticket number ever allocated, 0 if none recorded."""
        ...

    async def write_id_watermark(self, number: int) -> None:
        """Record the highest ticket number allocated so far."""
        ...

    async def aclose(self) -> None:
        """Release network clients."""
        ...
