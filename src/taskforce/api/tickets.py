"""Ticket and activity log endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request

from taskforce.errors import TicketNotFoundError
from taskforce.store import TicketStore

tickets_router = APIRouter(prefix="/api/tickets", tags=["tickets"])

# PUT body keys that describe a log entry rather than ticket fields
LOG_FIELDS = {
    "logAgent": "agent",
    "logMessage": "message",
    "logType": "type",
    "logDetails": "details",
}


def get_store(request: Request) -> TicketStore:
    """Dependency returning the store built at startup."""
    return request.app.state.store


@tickets_router.get("")
async def list_tickets(store: TicketStore = Depends(get_store)) -> dict[str, Any]:
    tickets = await store.get_all_tickets()
    return {"tickets": [t.to_dict() for t in tickets]}


@tickets_router.post("", status_code=201)
async def create_ticket(
    body: dict[str, Any] = Body(...),
    store: TicketStore = Depends(get_store),
) -> dict[str, Any]:
    """Create a ticket in the todo column. Title is required."""
    ticket = await store.create_ticket(body)
    return {"ticket": ticket.to_dict()}


@tickets_router.get("/{ticket_id}")
async def get_ticket(ticket_id: str, store: TicketStore = Depends(get_store)) -> dict[str, Any]:
    ticket = await store.get_ticket_by_id(ticket_id)
    if ticket is None:
        raise TicketNotFoundError(ticket_id)
    return {"ticket": ticket.to_dict()}


@tickets_router.put("/{ticket_id}")
async def update_ticket(
    ticket_id: str,
    body: dict[str, Any] = Body(...),
    store: TicketStore = Depends(get_store),
) -> dict[str, Any]:
    """
    Partially update a ticket.

    Optional logAgent / logMessage / logType / logDetails keys append an
    explicit log entry after any automatic status-change entry.
    """
    changes = {k: v for k, v in body.items() if k not in LOG_FIELDS}
    log = {LOG_FIELDS[k]: v for k, v in body.items() if k in LOG_FIELDS and v is not None}
    ticket = await store.update_ticket(ticket_id, changes, log or None)
    return {"ticket": ticket.to_dict()}


@tickets_router.delete("/{ticket_id}")
async def delete_ticket(ticket_id: str, store: TicketStore = Depends(get_store)) -> dict[str, Any]:
    await store.delete_ticket(ticket_id)
    return {"success": True}


@tickets_router.get("/{ticket_id}/log")
async def get_activity_log(
    ticket_id: str, store: TicketStore = Depends(get_store)
) -> dict[str, Any]:
    return {"log": await store.get_activity_log(ticket_id)}


@tickets_router.post("/{ticket_id}/log")
async def append_activity_log(
    ticket_id: str,
    body: dict[str, Any] = Body(...),
    store: TicketStore = Depends(get_store),
) -> dict[str, Any]:
    """Append an entry. Agent and message are required; type defaults to update."""
    await store.append_activity_log(
        ticket_id,
        agent=body.get("agent"),
        log_type=body.get("type") or "update",
        message=body.get("message"),
        details=body.get("details"),
    )
    return {"success": True}
