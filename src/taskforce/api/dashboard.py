"""Dashboard endpoint polled by the board UI."""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends

from taskforce.api.tickets import get_store
from taskforce.errors import StorageError
from taskforce.store import TicketStore, dashboard_stats

logger = logging.getLogger(__name__)

dashboard_router = APIRouter(prefix="/api", tags=["dashboard"])


@dashboard_router.get("/dashboard")
async def get_dashboard(store: TicketStore = Depends(get_store)) -> dict[str, Any]:
    """
    Stats plus every ticket.

    An unreachable or unconfigured backend yields an empty board with a
    _storageError field instead of an error response.
    """
    try:
        stats, tickets = await asyncio.gather(
            store.get_dashboard_stats(), store.get_all_tickets()
        )
    except StorageError as e:
        logger.warning(f"Dashboard degraded to empty board: {e}")
        return {
            "stats": dashboard_stats([]).to_dict(),
            "tickets": [],
            "_storageError": str(e),
        }
    return {"stats": stats.to_dict(), "tickets": [t.to_dict() for t in tickets]}
