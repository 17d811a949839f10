"""
GitHub contents API storage.

Tickets are JSON files under tickets/{status}/{id}.json and logs are
Markdown files under logs/activity-{id}.md, all on a dedicated data branch
of a hosted repository. The branch is created from the repository's
default branch on first use.

GitHubStorage receives an injected httpx.AsyncClient with base_url set to
the GitHub API and the Authorization header already configured.

Writes go through the "create or update file contents" endpoint, which
requires the current blob sha when replacing a file. That sha is the
version token carried by StoredTicket. A missing or stale sha is rejected
by GitHub (409/422) and surfaces as StorageConflictError.

Listings are cached in a TTLCache because every partition listing costs
one directory request plus one request per document.
"""

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import ValidationError

from taskforce.cache import TTLCache
from taskforce.errors import StorageConflictError, StorageError
from taskforce.types import STATUSES, StoredTicket, Ticket, TicketStatus, activity_log_name

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"
LOG_CACHE_TTL_SECONDS = 5.0
CONFLICT_STATUS_CODES = (409, 422)
MISSING_OK_METHODS = ("GET", "DELETE")
WATERMARK_PATH = "meta/last-ticket-number.txt"


def github_headers(token: str) -> dict[str, str]:
    """Request headers for an authenticated GitHub REST client."""
    return {
        "Authorization": f"Bearer {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }


def _encode(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def _decode(content: str) -> str:
    # GitHub wraps base64 payloads at 60 columns
    return base64.b64decode(content).decode("utf-8")


@dataclass
class GitHubStorage:
    """
    Ticket storage backed by a GitHub repository branch.

    Attributes:
        http: httpx.AsyncClient with base_url set to the GitHub API
        owner: Repository owner
        repo: Repository name
        branch: Data branch holding tickets and logs
        cache: Listing/document cache

    Example:
        async with httpx.AsyncClient(
            base_url="https://api.github.com", headers=github_headers(token)
        ) as http:
            storage = GitHubStorage(http=http, owner="acme", repo="board")
            await storage.prepare()
            todo = await storage.read_partition(TicketStatus.TODO)
    """

    http: httpx.AsyncClient
    owner: str
    repo: str
    branch: str = "data"
    cache: TTLCache = field(default_factory=TTLCache)
    name: str = "github"
    _branch_ready: bool = field(default=False, init=False, repr=False)

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        conflict_path: str | None = None,
        **kwargs: Any,
    ) -> Any | None:
        """
        Send a request and return the decoded JSON body.

        Returns None for empty bodies and for a 404 on GET (absent) or
        DELETE (already gone). A 404 on any other write means the branch or
        repository is unreachable and raises. Conflict statuses on a write
        raise StorageConflictError when conflict_path is given.

        Raises:
            StorageConflictError: 409/422 on a conditional write
            StorageError: Network failure or any other HTTP error
        """
        try:
            response = await self.http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StorageError(self.name, f"{method} {path} failed: {e}") from e

        if response.status_code == 404 and method in MISSING_OK_METHODS:
            return None
        if conflict_path is not None and response.status_code in CONFLICT_STATUS_CODES:
            raise StorageConflictError(self.name, conflict_path)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StorageError(
                self.name, f"{method} {path} returned {response.status_code}"
            ) from e

        if not response.content:
            return None
        return response.json()

    async def _get_file(self, path: str) -> tuple[str, str] | None:
        """Fetch a file as (text, sha), or None if absent."""
        data = await self._request(
            "GET", f"{self._repo_path}/contents/{path}", params={"ref": self.branch}
        )
        if not isinstance(data, dict) or data.get("type") != "file":
            return None
        return _decode(data["content"]), data["sha"]

    async def _put_file(
        self, path: str, text: str, message: str, sha: str | None = None
    ) -> None:
        body: dict[str, Any] = {
            "message": message,
            "content": _encode(text),
            "branch": self.branch,
        }
        if sha:
            body["sha"] = sha
        await self._request(
            "PUT", f"{self._repo_path}/contents/{path}", conflict_path=path, json=body
        )

    async def _delete_file(self, path: str, message: str, sha: str) -> None:
        await self._request(
            "DELETE",
            f"{self._repo_path}/contents/{path}",
            conflict_path=path,
            json={"message": message, "branch": self.branch, "sha": sha},
        )

    async def _list_dir(self, path: str) -> list[dict[str, Any]]:
        data = await self._request(
            "GET", f"{self._repo_path}/contents/{path}", params={"ref": self.branch}
        )
        if not isinstance(data, list):
            return []
        return [entry for entry in data if entry.get("type") == "file"]

    async def _fetch_blob(self, sha: str) -> str:
        """Fetch a blob by sha. Blobs are immutable, so they cache safely."""
        key = f"gh:blob:{sha}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        data = await self._request("GET", f"{self._repo_path}/git/blobs/{sha}")
        if not isinstance(data, dict) or "content" not in data:
            raise StorageError(self.name, f"blob {sha} not found")
        return self.cache.set(key, _decode(data["content"]))

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @staticmethod
    def ticket_path(status: TicketStatus, ticket_id: str) -> str:
        return f"tickets/{status.value}/{ticket_id}.json"

    @staticmethod
    def log_path(ticket_id: str) -> str:
        return f"logs/{activity_log_name(ticket_id)}"

    def _invalidate_partition(self, status: TicketStatus) -> None:
        self.cache.invalidate_prefix(f"gh:col:{status.value}")

    # ------------------------------------------------------------------
    # TicketStorage
    # ------------------------------------------------------------------

    async def prepare(self) -> None:
        """Create the data branch from the default branch if it is missing."""
        if self._branch_ready:
            return
        branch = await self._request("GET", f"{self._repo_path}/branches/{self.branch}")
        if branch is None:
            repo = await self._request("GET", self._repo_path)
            if repo is None:
                raise StorageError(self.name, f"repository {self.owner}/{self.repo} not found")
            base = await self._request(
                "GET", f"{self._repo_path}/branches/{repo['default_branch']}"
            )
            if base is None:
                raise StorageError(self.name, f"default branch {repo['default_branch']} not found")
            logger.info(f"Creating data branch {self.branch} from {repo['default_branch']}")
            try:
                await self._request(
                    "POST",
                    f"{self._repo_path}/git/refs",
                    conflict_path=f"refs/heads/{self.branch}",
                    json={"ref": f"refs/heads/{self.branch}", "sha": base["commit"]["sha"]},
                )
            except StorageConflictError:
                # Another process created it first
                logger.debug(f"Data branch {self.branch} already exists")
        self._branch_ready = True

    async def read_partition(self, status: TicketStatus) -> list[StoredTicket]:
        key = f"gh:col:{status.value}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"cache hit: {key}")
            return list(cached)

        entries = [
            e for e in await self._list_dir(f"tickets/{status.value}")
            if e["name"].endswith(".json")
        ]
        results = await asyncio.gather(
            *(self._fetch_blob(e["sha"]) for e in entries), return_exceptions=True
        )

        stored: list[StoredTicket] = []
        for entry, result in zip(entries, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping {status.value}/{entry['name']} from listing: {result}")
                continue
            ticket = self._parse_ticket(result, status, entry["name"])
            if ticket is not None:
                stored.append(StoredTicket(ticket=ticket, version=entry["sha"]))

        return list(self.cache.set(key, stored))

    async def read_all(self) -> list[StoredTicket]:
        partitions = await asyncio.gather(*(self.read_partition(s) for s in STATUSES))
        return [stored for partition in partitions for stored in partition]

    def _parse_ticket(self, text: str, status: TicketStatus, source: str) -> Ticket | None:
        try:
            data = json.loads(text)
            data["status"] = status.value
            return Ticket.model_validate(data)
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning(f"Skipping malformed ticket document {source}: {e}")
            return None

    async def read_record(self, ticket_id: str) -> StoredTicket | None:
        paths = [self.ticket_path(status, ticket_id) for status in STATUSES]
        files = await asyncio.gather(*(self._get_file(p) for p in paths))

        found: list[StoredTicket] = []
        for status, path, file in zip(STATUSES, paths, files):
            if file is None:
                continue
            text, sha = file
            ticket = self._parse_ticket(text, status, path)
            if ticket is not None:
                found.append(StoredTicket(ticket=ticket, version=sha))
        if not found:
            return None
        # An interrupted move can leave two copies; the newer one is live
        return max(found, key=lambda s: s.ticket.updated_at)

    async def write_record(
        self,
        ticket: Ticket,
        version: str | None = None,
        exclusive: bool = False,
    ) -> None:
        path = self.ticket_path(ticket.status, ticket.id)
        verb = "create" if exclusive else "update"
        try:
            await self._put_file(
                path, json.dumps(ticket.to_dict(), indent=2), f"{verb} {ticket.id}", version
            )
        finally:
            # A conflict means the cached listing is stale too
            self._invalidate_partition(ticket.status)

    async def move_record(
        self,
        ticket: Ticket,
        from_status: TicketStatus,
        version: str | None = None,
    ) -> None:
        # Write the new copy first: a failure in between leaves a duplicate
        # that read_record resolves, never a missing ticket.
        new_path = self.ticket_path(ticket.status, ticket.id)
        text = json.dumps(ticket.to_dict(), indent=2)
        message = f"move {ticket.id} {from_status.value}->{ticket.status.value}"
        try:
            await self._put_file(new_path, text, message)
        except StorageConflictError:
            leftover = await self._get_file(new_path)
            if leftover is None:
                raise
            await self._put_file(new_path, text, message, leftover[1])
        self._invalidate_partition(ticket.status)

        await self.delete_record(from_status, ticket.id, version)

    async def delete_record(
        self,
        status: TicketStatus,
        ticket_id: str,
        version: str | None = None,
    ) -> None:
        path = self.ticket_path(status, ticket_id)
        if version is None:
            current = await self._get_file(path)
            if current is None:
                return
            version = current[1]
        await self._delete_file(path, f"delete {ticket_id}", version)
        self._invalidate_partition(status)

    async def read_log_text(self, ticket_id: str) -> str:
        key = f"gh:log:{ticket_id}"
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        file = await self._get_file(self.log_path(ticket_id))
        text = file[0] if file else ""
        return self.cache.set(key, text, ttl=LOG_CACHE_TTL_SECONDS)

    async def append_log_text(self, ticket_id: str, block: str) -> None:
        path = self.log_path(ticket_id)
        existing = await self._get_file(path)
        text, sha = existing if existing else ("", None)
        await self._put_file(path, text + block, f"log {ticket_id}", sha)
        self.cache.delete(f"gh:log:{ticket_id}")

    async def delete_log(self, ticket_id: str) -> None:
        path = self.log_path(ticket_id)
        existing = await self._get_file(path)
        if existing is not None:
            await self._delete_file(path, f"delete log {ticket_id}", existing[1])
        self.cache.delete(f"gh:log:{ticket_id}")

    async def read_id_watermark(self) -> int:
        file = await self._get_file(WATERMARK_PATH)
        if file is None:
            return 0
        try:
            return int(file[0].strip())
        except ValueError:
            logger.warning(f"Ignoring malformed {WATERMARK_PATH}: {file[0]!r}")
            return 0

    async def write_id_watermark(self, number: int) -> None:
        current = await self._get_file(WATERMARK_PATH)
        sha = current[1] if current else None
        await self._put_file(WATERMARK_PATH, f"{number}\n", f"allocate ticket {number}", sha)

    async def aclose(self) -> None:
        await self.http.aclose()
