"""
Ticket store facade.

TicketStore is the public contract consumed by the HTTP routes, the tool
gateway and the CLI. It validates caller input, dispatches to the
lifecycle of the backend chosen at startup, and derives dashboard
statistics. It holds no cache and no ticket rules of its own.
"""

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from taskforce.errors import TicketValidationError
from taskforce.lifecycle import TicketLifecycle
from taskforce.types import (
    DashboardStats,
    LogRequest,
    LogType,
    Ticket,
    TicketCreate,
    TicketStatus,
    TicketUpdate,
    UpdateLog,
    utc_now,
)

M = TypeVar("M", bound=BaseModel)


def validate_input(model: type[M], data: M | Mapping[str, Any]) -> M:
    """
    Coerce caller input into a model.

    Raises:
        TicketValidationError: Input is missing required fields or has
            values outside the allowed enums
    """
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = first["msg"].removeprefix("Value error, ")
        raise TicketValidationError(f"{location}: {message}" if location else message) from e


class TicketStore:
    """
    Public ticket operations.

    Example:
        store = create_ticket_store(Settings())
        ticket = await store.create_ticket({"title": "Build endpoint"})
        await store.update_ticket(ticket.id, {"status": "in_progress", "assignee": "backend-agent"})
        stats = await store.get_dashboard_stats()
    """

    def __init__(self, lifecycle: TicketLifecycle) -> None:
        self.lifecycle = lifecycle

    @property
    def backend_name(self) -> str:
        return self.lifecycle.backend_name

    async def get_all_tickets(self) -> list[Ticket]:
        return await self.lifecycle.list_all()

    async def get_ticket_by_id(self, ticket_id: str) -> Ticket | None:
        stored = await self.lifecycle.get_by_id(ticket_id)
        return stored.ticket if stored is not None else None

    async def create_ticket(self, data: TicketCreate | Mapping[str, Any]) -> Ticket:
        return await self.lifecycle.create(validate_input(TicketCreate, data))

    async def update_ticket(
        self,
        ticket_id: str,
        changes: TicketUpdate | Mapping[str, Any],
        log: UpdateLog | Mapping[str, Any] | None = None,
    ) -> Ticket:
        """
        Apply a partial update.

        Raises:
            TicketNotFoundError: No ticket with this id
            TicketValidationError: Unknown status/priority or empty title
        """
        update = validate_input(TicketUpdate, changes)
        update_log = validate_input(UpdateLog, log) if log is not None else None
        return await self.lifecycle.update(ticket_id, update, update_log)

    async def delete_ticket(self, ticket_id: str) -> bool:
        return await self.lifecycle.delete(ticket_id)

    async def get_activity_log(self, ticket_id: str) -> str:
        return await self.lifecycle.get_log(ticket_id)

    async def append_activity_log(
        self,
        ticket_id: str,
        agent: str,
        log_type: LogType | str,
        message: str,
        details: str | None = None,
    ) -> None:
        """
        Append an entry to a ticket's log.

        Raises:
            TicketValidationError: Missing agent or message, unknown type
            TicketNotFoundError: No ticket with this id
        """
        entry = validate_input(
            LogRequest,
            {"agent": agent, "type": log_type, "message": message, "details": details},
        )
        await self.lifecycle.append_log(ticket_id, entry)

    async def get_dashboard_stats(self) -> DashboardStats:
        tickets = await self.get_all_tickets()
        return dashboard_stats(tickets)

    async def aclose(self) -> None:
        await self.lifecycle.aclose()


def dashboard_stats(tickets: list[Ticket]) -> DashboardStats:
    """Column counts and distinct assignees (first-seen order)."""
    counts = {status: 0 for status in TicketStatus}
    agents: list[str] = []
    for ticket in tickets:
        counts[ticket.status] += 1
        if ticket.assignee and ticket.assignee not in agents:
            agents.append(ticket.assignee)

    return DashboardStats(
        total=len(tickets),
        todo=counts[TicketStatus.TODO],
        in_progress=counts[TicketStatus.IN_PROGRESS],
        done=counts[TicketStatus.DONE],
        last_updated=utc_now(),
        agents=agents,
    )
