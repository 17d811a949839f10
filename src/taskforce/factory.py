"""
Factory functions for building the ticket store.

Backend selection happens once, from Settings, when the store is built.
The resulting TicketStore is passed explicitly to the HTTP app, the tool
gateway and the CLI; nothing re-reads the environment per call.
"""

import logging

import httpx
import redis.asyncio as redis

from taskforce.cache import TTLCache
from taskforce.config import BackendKind, Settings
from taskforce.lifecycle import TicketLifecycle
from taskforce.storage import GitHubStorage, LocalStorage, RedisStorage, TicketStorage
from taskforce.storage.github import github_headers
from taskforce.store import TicketStore

logger = logging.getLogger(__name__)


def create_storage(
    settings: Settings,
    http: httpx.AsyncClient | None = None,
    redis_client: redis.Redis | None = None,
) -> TicketStorage:
    """
    Create the storage backend selected by settings.

    Args:
        settings: Resolved configuration
        http: Optional pre-configured httpx client for the GitHub API.
            If None, one is created with the token header and the
            configured timeout.
        redis_client: Optional pre-configured redis.asyncio.Redis client.
            If None, one is created from kv_url with decode_responses=True.

    Returns:
        GitHubStorage, RedisStorage or LocalStorage
    """
    backend = settings.backend
    if backend is BackendKind.GITHUB:
        if http is None:
            http = httpx.AsyncClient(
                base_url=settings.github_api_url,
                headers=github_headers(settings.github_token or ""),
                timeout=settings.http_timeout_seconds,
            )
        return GitHubStorage(
            http=http,
            owner=settings.github_owner,
            repo=settings.github_repo,
            branch=settings.github_branch,
            cache=TTLCache(default_ttl=settings.cache_ttl_seconds),
        )

    if backend is BackendKind.REDIS:
        if redis_client is None:
            redis_client = redis.Redis.from_url(settings.kv_url, decode_responses=True)
        return RedisStorage(redis=redis_client)

    return LocalStorage(root=settings.data_dir)


def create_ticket_store(
    settings: Settings | None = None,
    storage: TicketStorage | None = None,
) -> TicketStore:
    """
    Build the ticket store facade.

    Args:
        settings: Configuration; read from the environment when omitted
        storage: Backend to use instead of the one settings select

    Example:
        store = create_ticket_store(Settings(data_dir=Path("/tmp/board")))
        tickets = await store.get_all_tickets()
    """
    if storage is None:
        settings = settings or Settings()
        storage = create_storage(settings)
    logger.info(f"Ticket store using {storage.name} backend")
    return TicketStore(TicketLifecycle(storage))
