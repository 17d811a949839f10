"""
Shared fixtures and in-memory backend fakes.

FakeGitHub is an httpx transport that implements the slice of the GitHub
REST API the storage uses (branches, refs, contents, blobs). FakeRedis
implements the handful of redis.asyncio commands the Redis storage uses.
Both can inject races and failures so conflict handling is testable
without network access.
"""

import base64
import hashlib
import json
from pathlib import Path

import httpx
import pytest
from httpx import Request, Response
from redis.exceptions import ConnectionError as RedisConnectionError

from taskforce.cache import TTLCache
from taskforce.factory import create_ticket_store
from taskforce.storage import GitHubStorage, LocalStorage, RedisStorage

OWNER = "acme"
REPO = "board"
REPO_PATH = f"/repos/{OWNER}/{REPO}"


def ticket_document(ticket_id: str, title: str = "Competing ticket", status: str = "todo") -> str:
    """A valid ticket JSON document as another writer would store it."""
    return json.dumps(
        {
            "id": ticket_id,
            "title": title,
            "description": "",
            "status": status,
            "priority": "medium",
            "assignee": None,
            "labels": [],
            "dependencies": [],
            "created_at": "2025-01-15T10:00:00.000Z",
            "updated_at": "2025-01-15T10:00:00.000Z",
            "activity_log_file": f"activity-{ticket_id}.md",
        }
    )


class FakeGitHub(httpx.AsyncBaseTransport):
    """In-memory GitHub contents API."""

    def __init__(self, branches: set[str] | None = None):
        self.branches = branches if branches is not None else {"main", "data"}
        self.files: dict[str, str] = {}
        self.blobs: dict[str, str] = {}
        self.requests: list[tuple[str, str]] = []
        # Paths where a competing writer creates the file just before our PUT
        self.race_paths: set[str] = set()
        # Blob shas that fail with a server error
        self.failing_blobs: set[str] = set()
        # Contents writes answer 404, as when the token lost access to the repo
        self.reject_writes = False

    @staticmethod
    def sha(text: str) -> str:
        return hashlib.sha1(text.encode("utf-8")).hexdigest()

    def put(self, path: str, text: str) -> str:
        """Store a file directly, as if committed by someone else."""
        sha = self.sha(text)
        self.files[path] = text
        self.blobs[sha] = text
        return sha

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p in self.requests if m == method and p == path)

    async def handle_async_request(self, request: Request) -> Response:
        method = request.method
        path = request.url.path
        self.requests.append((method, path))
        body = json.loads(await request.aread() or b"null")

        if path == REPO_PATH and method == "GET":
            return Response(200, json={"default_branch": "main"}, request=request)

        if path.startswith(f"{REPO_PATH}/branches/"):
            name = path.removeprefix(f"{REPO_PATH}/branches/")
            if name not in self.branches:
                return Response(404, request=request)
            return Response(200, json={"name": name, "commit": {"sha": "c0ffee"}}, request=request)

        if path == f"{REPO_PATH}/git/refs" and method == "POST":
            name = body["ref"].removeprefix("refs/heads/")
            if name in self.branches:
                return Response(422, json={"message": "Reference already exists"}, request=request)
            self.branches.add(name)
            return Response(201, json={"ref": body["ref"]}, request=request)

        if path.startswith(f"{REPO_PATH}/git/blobs/"):
            sha = path.rsplit("/", 1)[-1]
            if sha in self.failing_blobs:
                return Response(500, request=request)
            if sha not in self.blobs:
                return Response(404, request=request)
            content = base64.b64encode(self.blobs[sha].encode("utf-8")).decode("ascii")
            return Response(200, json={"sha": sha, "content": content, "encoding": "base64"}, request=request)

        if path.startswith(f"{REPO_PATH}/contents/"):
            file_path = path.removeprefix(f"{REPO_PATH}/contents/")
            return self._contents(request, method, file_path, body)

        return Response(404, request=request)

    def _contents(self, request: Request, method: str, path: str, body) -> Response:
        if method == "GET":
            if path in self.files:
                text = self.files[path]
                content = base64.encodebytes(text.encode("utf-8")).decode("ascii")
                return Response(
                    200,
                    json={"type": "file", "path": path, "sha": self.sha(text), "content": content},
                    request=request,
                )
            prefix = path.rstrip("/") + "/"
            listing = [
                {"type": "file", "name": p.removeprefix(prefix), "path": p, "sha": self.sha(t)}
                for p, t in sorted(self.files.items())
                if p.startswith(prefix) and "/" not in p.removeprefix(prefix)
            ]
            if not listing:
                return Response(404, request=request)
            return Response(200, json=listing, request=request)

        if method == "PUT":
            if self.reject_writes:
                return Response(404, json={"message": "Not Found"}, request=request)
            if path in self.race_paths:
                self.race_paths.discard(path)
                if path.endswith(".json"):
                    self.put(path, ticket_document(path.rsplit("/", 1)[-1].removesuffix(".json")))
                else:
                    self.put(path, "99\n")
            current = self.files.get(path)
            if current is not None and body.get("sha") != self.sha(current):
                return Response(422 if "sha" not in body else 409, request=request)
            text = base64.b64decode(body["content"]).decode("utf-8")
            sha = self.put(path, text)
            return Response(201, json={"content": {"path": path, "sha": sha}}, request=request)

        if method == "DELETE":
            current = self.files.get(path)
            if current is None:
                return Response(404, request=request)
            if body.get("sha") != self.sha(current):
                return Response(409, request=request)
            del self.files[path]
            return Response(200, json={"commit": {}}, request=request)

        return Response(405, request=request)


class FakeRedis:
    """In-memory subset of redis.asyncio.Redis (decode_responses=True)."""

    def __init__(self):
        self.values: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        # Keys a competing writer claims just before our SET NX
        self.race_keys: set[str] = set()
        self.fail = False
        self.closed = False
        self.smembers_calls = 0

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("Connection refused")

    async def get(self, key):
        self._check()
        return self.values.get(key)

    async def set(self, key, value, nx=False):
        self._check()
        if key in self.race_keys:
            self.race_keys.discard(key)
            ticket_id = key.removeprefix("ticket:")
            self.values[key] = ticket_document(ticket_id)
            self.sets.setdefault("ticket-ids", set()).add(ticket_id)
        if nx and key in self.values:
            return None
        self.values[key] = value
        return True

    async def delete(self, *keys):
        self._check()
        return sum(1 for k in keys if self.values.pop(k, None) is not None)

    async def sadd(self, key, *members):
        self._check()
        self.sets.setdefault(key, set()).update(members)
        return len(members)

    async def srem(self, key, *members):
        self._check()
        self.sets.setdefault(key, set()).difference_update(members)
        return len(members)

    async def smembers(self, key):
        self._check()
        self.smembers_calls += 1
        return set(self.sets.get(key, set()))

    async def mget(self, keys):
        self._check()
        return [self.values.get(k) for k in keys]

    async def aclose(self):
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_github():
    return FakeGitHub()


@pytest.fixture
def github_storage(fake_github, clock):
    """GitHubStorage wired to the in-memory API."""
    http = httpx.AsyncClient(base_url="https://api.github.com", transport=fake_github)
    return GitHubStorage(
        http=http,
        owner=OWNER,
        repo=REPO,
        branch="data",
        cache=TTLCache(default_ttl=8.0, clock=clock),
    )


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def redis_storage(fake_redis):
    return RedisStorage(redis=fake_redis)


@pytest.fixture
def local_storage(tmp_path: Path):
    return LocalStorage(root=tmp_path / "kanban")


@pytest.fixture(params=["local", "redis", "github"])
def any_storage(request):
    """Each backend in turn, for behavior every backend must share."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def store(any_storage):
    return create_ticket_store(storage=any_storage)


@pytest.fixture
def local_store(local_storage):
    return create_ticket_store(storage=local_storage)
