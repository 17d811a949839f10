"""
Exception classes for ticket store operations.

- TicketNotFoundError: ticket id absent from every partition
- TicketValidationError: caller input rejected before any backend call
- StorageError: backend I/O failure (network, disk, API error)
- StorageConflictError: conditional write rejected by the backend

Callers map these to presentation: not-found to 404, validation to 400,
storage failures to a generic server error.
"""


class KanbanError(Exception):
    """Base class for all ticket store errors."""


class TicketNotFoundError(KanbanError):
    """
    Raised when a ticket id is not present in the store.

    Attributes:
        ticket_id: The id that was looked up
    """

    def __init__(self, ticket_id: str) -> None:
        self.ticket_id = ticket_id
        super().__init__(f"Ticket {ticket_id} not found")


class TicketValidationError(KanbanError):
    """
    Raised when caller input is missing or malformed.

    Attributes:
        message: What was wrong with the input
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StorageError(KanbanError):
    """
    Raised when the active backend fails.

    Attributes:
        backend: Backend name ("github", "redis", "local")
        reason: Description of the failure
    """

    def __init__(self, backend: str, reason: str) -> None:
        self.backend = backend
        self.reason = reason
        super().__init__(f"{backend} storage error: {reason}")


class StorageConflictError(StorageError):
    """
    Raised when a conditional write loses a race.

    Either an exclusive create found the record already present, or an
    update carried a stale version token.

    Attributes:
        path: Record locator that conflicted
    """

    def __init__(self, backend: str, path: str) -> None:
        self.path = path
        super().__init__(backend, f"conflicting write to {path}")
