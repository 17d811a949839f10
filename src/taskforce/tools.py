"""
Tool gateway for programmatic agents.

Exposes the ticket store as discrete named tools, each with a declared
input shape, so an agent runtime can list them and call them by name:

    definitions = get_tool_definitions()
    payload = await execute_tool(store, "claim_ticket", {"id": "ticket-001", "agent": "backend-agent"})

execute_tool never raises. Results come back as indented JSON text and
every failure (unknown tool, missing argument, missing ticket, backend
error) comes back as an "Error: ..." string.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from taskforce.errors import KanbanError, TicketNotFoundError
from taskforce.store import TicketStore
from taskforce.types import LogType, TicketPriority, TicketStatus

logger = logging.getLogger(__name__)

STATUS_VALUES = [s.value for s in TicketStatus]
PRIORITY_VALUES = [p.value for p in TicketPriority]
PROGRESS_LOG_VALUES = [
    LogType.UPDATE.value,
    LogType.BLOCKED.value,
    LogType.NOTE.value,
    LogType.COMPLETED.value,
]


class ParamDef(BaseModel):
    """
    Parameter definition for a tool argument.

    Attributes:
        type: JSON type name ("string", "array")
        description: What this parameter represents
        required: Whether the parameter must be provided
        enum: Allowed values, if restricted
        default: Value used when omitted
    """

    type: str = Field(..., description="JSON type name (string, array)")
    description: str = Field(default="", description="What this parameter represents")
    required: bool = Field(default=False, description="Whether parameter must be provided")
    enum: list[str] | None = Field(default=None, description="Allowed values")
    default: Any = Field(default=None, description="Default value if not required")


class ToolDefinition(BaseModel):
    """
    A named tool and its input shape.

    Attributes:
        name: Tool name used in execute_tool
        description: Human-readable description for prompts
        parameters: Parameter definitions keyed by parameter name
    """

    name: str
    description: str
    parameters: dict[str, ParamDef] = Field(default_factory=dict)

    def input_schema(self) -> dict[str, Any]:
        """JSON-schema object describing the tool input."""
        properties: dict[str, Any] = {}
        for name, param in self.parameters.items():
            prop: dict[str, Any] = {"type": param.type}
            if param.description:
                prop["description"] = param.description
            if param.enum:
                prop["enum"] = param.enum
            if param.default is not None:
                prop["default"] = param.default
            if param.type == "array":
                prop["items"] = {"type": "string"}
            properties[name] = prop
        return {
            "type": "object",
            "properties": properties,
            "required": [n for n, p in self.parameters.items() if p.required],
        }


def _id_param(description: str = "Ticket ID e.g. ticket-001") -> ParamDef:
    return ParamDef(type="string", description=description, required=True)


TOOL_DEFINITIONS: list[ToolDefinition] = [
    ToolDefinition(
        name="get_dashboard",
        description="Get the current Kanban dashboard: stats and all tickets.",
    ),
    ToolDefinition(
        name="list_tickets",
        description="List all tickets. Optionally filter by status or label.",
        parameters={
            "status": ParamDef(type="string", description="Filter by status", enum=STATUS_VALUES),
            "label": ParamDef(type="string", description='Filter by label (e.g. "backend")'),
        },
    ),
    ToolDefinition(
        name="create_ticket",
        description="Create a new ticket in the To Do column.",
        parameters={
            "title": ParamDef(type="string", description="Short task title", required=True),
            "description": ParamDef(type="string", description="Detailed description"),
            "priority": ParamDef(type="string", enum=PRIORITY_VALUES, default="medium"),
            "labels": ParamDef(type="array", description='e.g. ["backend","api"]'),
            "assignee": ParamDef(type="string", description="Agent name to pre-assign"),
            "dependencies": ParamDef(type="array", description="Ticket IDs this depends on"),
        },
    ),
    ToolDefinition(
        name="get_ticket",
        description="Get a specific ticket by ID.",
        parameters={"id": _id_param()},
    ),
    ToolDefinition(
        name="claim_ticket",
        description="Claim a ticket: assign yourself and move it to In Progress.",
        parameters={
            "id": _id_param("Ticket ID"),
            "agent": ParamDef(
                type="string", description="Your agent name e.g. backend-agent", required=True
            ),
        },
    ),
    ToolDefinition(
        name="log_progress",
        description="Append a progress/activity log entry to a ticket.",
        parameters={
            "id": _id_param("Ticket ID"),
            "agent": ParamDef(type="string", description="Your agent name", required=True),
            "message": ParamDef(type="string", description="Progress update message", required=True),
            "type": ParamDef(type="string", enum=PROGRESS_LOG_VALUES, default="update"),
            "details": ParamDef(type="string", description="Optional extra details or code snippet"),
        },
    ),
    ToolDefinition(
        name="complete_ticket",
        description="Mark a ticket as Done and log completion.",
        parameters={
            "id": _id_param("Ticket ID"),
            "agent": ParamDef(type="string", description="Your agent name", required=True),
            "summary": ParamDef(type="string", description="What was accomplished"),
        },
    ),
    ToolDefinition(
        name="update_ticket",
        description="Update any ticket fields (status, assignee, priority, labels).",
        parameters={
            "id": _id_param("Ticket ID"),
            "status": ParamDef(type="string", enum=STATUS_VALUES),
            "assignee": ParamDef(type="string"),
            "priority": ParamDef(type="string", enum=PRIORITY_VALUES),
            "labels": ParamDef(type="array"),
            "logAgent": ParamDef(type="string", description="Agent recorded in the log"),
            "logMessage": ParamDef(type="string", description="Extra log entry to append"),
        },
    ),
    ToolDefinition(
        name="get_activity_log",
        description="Read the full activity log for a ticket.",
        parameters={"id": _id_param("Ticket ID")},
    ),
    ToolDefinition(
        name="delete_ticket",
        description="Delete a ticket and its activity log.",
        parameters={"id": _id_param("Ticket ID")},
    ),
]


def get_tool_definitions() -> list[ToolDefinition]:
    """All tools the gateway can execute."""
    return list(TOOL_DEFINITIONS)


def _missing_arguments(definition: ToolDefinition, arguments: dict[str, Any]) -> list[str]:
    return [
        name
        for name, param in definition.parameters.items()
        if param.required and arguments.get(name) in (None, "")
    ]


async def _get_dashboard(store: TicketStore, a: dict[str, Any]) -> Any:
    stats = await store.get_dashboard_stats()
    tickets = await store.get_all_tickets()
    return {"stats": stats.to_dict(), "tickets": [t.to_dict() for t in tickets]}


async def _list_tickets(store: TicketStore, a: dict[str, Any]) -> Any:
    tickets = await store.get_all_tickets()
    if a.get("status"):
        tickets = [t for t in tickets if t.status.value == a["status"]]
    if a.get("label"):
        tickets = [t for t in tickets if a["label"] in t.labels]
    return {"tickets": [t.to_dict() for t in tickets], "count": len(tickets)}


async def _create_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    fields = {
        k: a[k]
        for k in ("title", "description", "priority", "labels", "assignee", "dependencies")
        if a.get(k) is not None
    }
    ticket = await store.create_ticket(fields)
    return {"ticket": ticket.to_dict()}


async def _get_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    ticket = await store.get_ticket_by_id(a["id"])
    if ticket is None:
        raise TicketNotFoundError(a["id"])
    return {"ticket": ticket.to_dict()}


async def _claim_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    ticket = await store.update_ticket(
        a["id"],
        {"status": TicketStatus.IN_PROGRESS.value, "assignee": a["agent"]},
        {"agent": a["agent"]},
    )
    return {"ticket": ticket.to_dict()}


async def _log_progress(store: TicketStore, a: dict[str, Any]) -> Any:
    await store.append_activity_log(
        a["id"], a["agent"], a.get("type") or LogType.UPDATE.value, a["message"], a.get("details")
    )
    return {"success": True}


async def _complete_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    ticket = await store.update_ticket(
        a["id"],
        {"status": TicketStatus.DONE.value},
        {
            "agent": a["agent"],
            "message": a.get("summary") or "Task completed.",
            "type": LogType.COMPLETED.value,
        },
    )
    return {"ticket": ticket.to_dict()}


async def _update_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    changes = {
        k: a[k] for k in ("status", "assignee", "priority", "labels") if k in a
    }
    log = {"agent": a.get("logAgent"), "message": a.get("logMessage")}
    ticket = await store.update_ticket(a["id"], changes, log)
    return {"ticket": ticket.to_dict()}


async def _get_activity_log(store: TicketStore, a: dict[str, Any]) -> Any:
    return {"log": await store.get_activity_log(a["id"])}


async def _delete_ticket(store: TicketStore, a: dict[str, Any]) -> Any:
    await store.delete_ticket(a["id"])
    return {"success": True}


ToolHandler = Callable[[TicketStore, dict[str, Any]], Awaitable[Any]]

TOOL_HANDLERS: dict[str, ToolHandler] = {
    "get_dashboard": _get_dashboard,
    "list_tickets": _list_tickets,
    "create_ticket": _create_ticket,
    "get_ticket": _get_ticket,
    "claim_ticket": _claim_ticket,
    "log_progress": _log_progress,
    "complete_ticket": _complete_ticket,
    "update_ticket": _update_ticket,
    "get_activity_log": _get_activity_log,
    "delete_ticket": _delete_ticket,
}


async def execute_tool(
    store: TicketStore,
    name: str,
    arguments: dict[str, Any] | None = None,
) -> str:
    """
    Run a tool and return its textual payload.

    Args:
        store: Ticket store to operate on
        name: Tool name from get_tool_definitions()
        arguments: Tool input

    Returns:
        Indented JSON of the result, or "Error: ..." on any failure
    """
    arguments = arguments or {}
    definition = next((d for d in TOOL_DEFINITIONS if d.name == name), None)
    if definition is None:
        return f"Error: Unknown tool: {name}"

    missing = _missing_arguments(definition, arguments)
    if missing:
        return f"Error: missing required arguments: {', '.join(missing)}"

    try:
        result = await TOOL_HANDLERS[name](store, arguments)
    except KanbanError as e:
        return f"Error: {e}"
    except Exception as e:
        logger.exception(f"Tool {name} failed unexpectedly")
        return f"Error: {e}"
    return json.dumps(result, indent=2, ensure_ascii=False)
