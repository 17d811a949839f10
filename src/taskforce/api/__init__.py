"""API routers for the ticket board."""

from taskforce.api.dashboard import dashboard_router
from taskforce.api.tickets import get_store, tickets_router

__all__ = ["dashboard_router", "get_store", "tickets_router"]
