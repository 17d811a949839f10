"""
Ticket types for the Kanban board.

This module defines the core data structures shared by every backend:
- TicketStatus / TicketPriority / LogType: str enums for JSON-friendly values
- Ticket: the persisted ticket document
- TicketCreate / TicketUpdate / LogRequest: validated caller input
- StoredTicket: a loaded ticket plus the backend version token
- DashboardStats: board summary counts

Tickets are persisted as JSON, so they are pydantic models and round-trip
through model_dump(mode="json") / model_validate().
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TicketStatus(str, Enum):
    """Workflow column. Also the storage partition key."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


STATUSES: tuple[TicketStatus, ...] = (
    TicketStatus.TODO,
    TicketStatus.IN_PROGRESS,
    TicketStatus.DONE,
)


class TicketPriority(str, Enum):
    """Ticket priority values."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LogType(str, Enum):
    """Activity log entry types."""

    CREATED = "created"
    CLAIMED = "claimed"
    UPDATE = "update"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    NOTE = "note"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string (millisecond precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def activity_log_name(ticket_id: str) -> str:
    """Log document name for a ticket id."""
    return f"activity-{ticket_id}.md"


class Ticket(BaseModel):
    """
    A unit of trackable work on the board.

    Attributes:
        id: Sequential identifier, e.g. "ticket-001"
        title: Short summary, never empty
        description: Free text
        status: Workflow column; always matches the partition it was read from
        priority: low / medium / high
        assignee: Agent or operator that claimed the ticket, None if unclaimed
        labels: Ordered free-text tags
        dependencies: Ids of other tickets (advisory only)
        created_at: ISO-8601 creation timestamp
        updated_at: ISO-8601 timestamp of the last update
        activity_log_file: Name of the ticket's log document
    """

    id: str
    title: str
    description: str = ""
    status: TicketStatus = TicketStatus.TODO
    priority: TicketPriority = TicketPriority.MEDIUM
    assignee: str | None = None
    labels: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
    activity_log_file: str

    def to_dict(self) -> dict:
        """Convert to a JSON-ready dict."""
        return self.model_dump(mode="json")


class TicketCreate(BaseModel):
    """Fields accepted when creating a ticket."""

    title: str
    description: str = ""
    priority: TicketPriority = TicketPriority.MEDIUM
    assignee: str | None = None
    labels: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("title is required")
        return value


class TicketUpdate(BaseModel):
    """
    Partial update. Only fields explicitly set by the caller are applied,
    so `assignee=None` unassigns while an omitted assignee is left alone.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee: str | None = None
    labels: list[str] | None = None
    dependencies: list[str] | None = None

    @field_validator("title")
    @classmethod
    def _title_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("title cannot be empty")
        return value

    def changes(self) -> dict:
        """
        Explicitly-set fields as a JSON-ready dict.

        An explicit None only survives for assignee; for every other field
        it means "leave unchanged".
        """
        return {
            key: value
            for key, value in self.model_dump(mode="json", exclude_unset=True).items()
            if value is not None or key == "assignee"
        }


class LogRequest(BaseModel):
    """An activity log entry to append."""

    agent: str
    message: str
    type: LogType = LogType.UPDATE
    details: str | None = None

    @field_validator("agent", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("agent and message are required")
        return value


class UpdateLog(BaseModel):
    """
    Log options that travel with an update.

    Attributes:
        agent: Actor for both automatic and explicit entries; falls back to
            the assignee, then "system"
        message: Explicit entry appended after any automatic one
        type: Type of the explicit entry
        details: Details attached to every entry the update writes
    """

    agent: str | None = None
    message: str | None = None
    type: LogType = LogType.UPDATE
    details: str | None = None


@dataclass
class StoredTicket:
    """
    A ticket as loaded from a backend.

    Attributes:
        ticket: The ticket document (status set from its partition)
        version: Backend version token needed for a conditional write
            (GitHub blob sha), None where the backend has none
    """

    ticket: Ticket
    version: str | None = None


class DashboardStats(BaseModel):
    """Board summary derived from a full listing."""

    model_config = ConfigDict(populate_by_name=True)

    total: int
    todo: int
    in_progress: int
    done: int
    last_updated: str = Field(alias="lastUpdated")
    agents: list[str] = Field(default_factory=list)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
