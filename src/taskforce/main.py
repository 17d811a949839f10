"""FastAPI application for the ticket board."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from taskforce import __version__
from taskforce.api import dashboard_router, tickets_router
from taskforce.config import Settings
from taskforce.errors import StorageError, TicketNotFoundError, TicketValidationError
from taskforce.factory import create_ticket_store
from taskforce.logging_config import configure_logging
from taskforce.store import TicketStore

logger = logging.getLogger(__name__)


def create_app(store: TicketStore | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the HTTP app around a ticket store.

    Args:
        store: Store to serve; built from settings when omitted
        settings: Configuration; read from the environment when omitted
    """
    settings = settings or Settings()
    store = store or create_ticket_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown."""
        yield
        await store.aclose()

    app = FastAPI(
        title="TaskForce Kanban",
        description="Shared ticket board for agents and operators",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.store = store

    app.include_router(tickets_router)
    app.include_router(dashboard_router)

    @app.exception_handler(TicketNotFoundError)
    async def not_found_handler(request: Request, exc: TicketNotFoundError) -> JSONResponse:
        return JSONResponse({"error": str(exc)}, status_code=404)

    @app.exception_handler(TicketValidationError)
    async def validation_handler(request: Request, exc: TicketValidationError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=400)

    @app.exception_handler(StorageError)
    async def storage_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse({"error": str(exc)}, status_code=500)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "backend": store.backend_name}

    return app


def run(host: str = "127.0.0.1", port: int = 3000) -> None:
    """Serve the app with uvicorn using environment settings."""
    import uvicorn

    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings=settings), host=host, port=port)


# Entry point for uvicorn
if __name__ == "__main__":
    run()
