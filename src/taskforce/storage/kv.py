"""
Redis key-value storage.

Layout:
    ticket:{id}   JSON ticket document
    ticket-ids    set of every live ticket id
    log:{id}      full activity log text
    ticket-id-watermark   highest ticket number ever allocated

Redis has no "list by prefix with values" primitive, so the ticket-ids
set is the index for listings. Partitions are conceptual: the status is a
field of the document, and moving a ticket is a plain overwrite.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from taskforce.errors import StorageConflictError, StorageError
from taskforce.types import StoredTicket, Ticket, TicketStatus

logger = logging.getLogger(__name__)

INDEX_KEY = "ticket-ids"
WATERMARK_KEY = "ticket-id-watermark"


def ticket_key(ticket_id: str) -> str:
    return f"ticket:{ticket_id}"


def log_key(ticket_id: str) -> str:
    return f"log:{ticket_id}"


@dataclass
class RedisStorage:
    """
    Ticket storage backed by Redis.

    Attributes:
        redis: Pre-configured redis.asyncio.Redis client (decode_responses=True)

    Example:
        async with redis.Redis.from_url("redis://localhost:6379", decode_responses=True) as r:
            storage = RedisStorage(redis=r)
            ticket = await storage.read_record("ticket-001")
    """

    redis: redis.Redis
    name: str = "redis"

    async def _call(self, operation: Callable[[], Awaitable[Any]], what: str) -> Any:
        """Run a Redis command, wrapping client errors as StorageError."""
        try:
            return await operation()
        except RedisError as e:
            raise StorageError(self.name, f"{what} failed: {e}") from e

    def _parse_ticket(self, raw: str | None, source: str) -> Ticket | None:
        if raw is None:
            return None
        try:
            return Ticket.model_validate(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed ticket record {source}: {e}")
            return None

    async def prepare(self) -> None:
        # Keys are created on write
        return None

    async def _read_all(self) -> list[Ticket]:
        ids = sorted(await self._call(lambda: self.redis.smembers(INDEX_KEY), "SMEMBERS"))
        if not ids:
            return []
        keys = [ticket_key(i) for i in ids]
        raws = await self._call(lambda: self.redis.mget(keys), "MGET")
        tickets = []
        for key, raw in zip(keys, raws):
            ticket = self._parse_ticket(raw, key)
            if ticket is not None:
                tickets.append(ticket)
        return tickets

    async def read_partition(self, status: TicketStatus) -> list[StoredTicket]:
        return [
            StoredTicket(ticket=t) for t in await self._read_all() if t.status == status
        ]

    async def read_all(self) -> list[StoredTicket]:
        return [StoredTicket(ticket=t) for t in await self._read_all()]

    async def read_record(self, ticket_id: str) -> StoredTicket | None:
        key = ticket_key(ticket_id)
        raw = await self._call(lambda: self.redis.get(key), f"GET {key}")
        ticket = self._parse_ticket(raw, key)
        return StoredTicket(ticket=ticket) if ticket is not None else None

    async def write_record(
        self,
        ticket: Ticket,
        version: str | None = None,
        exclusive: bool = False,
    ) -> None:
        key = ticket_key(ticket.id)
        document = json.dumps(ticket.to_dict())
        written = await self._call(
            lambda: self.redis.set(key, document, nx=exclusive), f"SET {key}"
        )
        if exclusive and not written:
            raise StorageConflictError(self.name, key)
        await self._call(lambda: self.redis.sadd(INDEX_KEY, ticket.id), "SADD")

    async def move_record(
        self,
        ticket: Ticket,
        from_status: TicketStatus,
        version: str | None = None,
    ) -> None:
        await self.write_record(ticket, version)

    async def delete_record(
        self,
        status: TicketStatus,
        ticket_id: str,
        version: str | None = None,
    ) -> None:
        key = ticket_key(ticket_id)
        await self._call(lambda: self.redis.delete(key), f"DEL {key}")
        await self._call(lambda: self.redis.srem(INDEX_KEY, ticket_id), "SREM")

    async def read_log_text(self, ticket_id: str) -> str:
        key = log_key(ticket_id)
        return await self._call(lambda: self.redis.get(key), f"GET {key}") or ""

    async def append_log_text(self, ticket_id: str, block: str) -> None:
        # Read-modify-write keeps the value a plain string rewritten wholesale
        existing = await self.read_log_text(ticket_id)
        key = log_key(ticket_id)
        await self._call(lambda: self.redis.set(key, existing + block), f"SET {key}")

    async def delete_log(self, ticket_id: str) -> None:
        key = log_key(ticket_id)
        await self._call(lambda: self.redis.delete(key), f"DEL {key}")

    async def read_id_watermark(self) -> int:
        raw = await self._call(lambda: self.redis.get(WATERMARK_KEY), f"GET {WATERMARK_KEY}")
        try:
            return int(raw) if raw else 0
        except ValueError:
            logger.warning(f"Ignoring malformed {WATERMARK_KEY} value {raw!r}")
            return 0

    async def write_id_watermark(self, number: int) -> None:
        await self._call(lambda: self.redis.set(WATERMARK_KEY, str(number)), f"SET {WATERMARK_KEY}")

    async def aclose(self) -> None:
        await self.redis.aclose()
