"""
TaskForce Kanban

Shared ticket board that agents and operators use to coordinate work.
This package provides:

- Ticket Store: one contract over GitHub, Redis or local-file storage
- Ticket Lifecycle: id allocation, status moves and activity logging
- Activity Log Codec: Markdown-like append-only log entries
- HTTP API, tool gateway and Typer CLI adapters
"""

__version__ = "0.1.0"

from taskforce.config import BackendKind, Settings
from taskforce.errors import (
    KanbanError,
    StorageConflictError,
    StorageError,
    TicketNotFoundError,
    TicketValidationError,
)
from taskforce.factory import create_storage, create_ticket_store
from taskforce.lifecycle import TicketLifecycle
from taskforce.store import TicketStore
from taskforce.types import (
    DashboardStats,
    LogType,
    Ticket,
    TicketPriority,
    TicketStatus,
)

__all__ = [
    "__version__",
    # Store
    "TicketStore",
    "TicketLifecycle",
    "create_ticket_store",
    "create_storage",
    # Config
    "Settings",
    "BackendKind",
    # Types
    "Ticket",
    "TicketStatus",
    "TicketPriority",
    "LogType",
    "DashboardStats",
    # Errors
    "KanbanError",
    "TicketNotFoundError",
    "TicketValidationError",
    "StorageError",
    "StorageConflictError",
]
