"""Environment-based configuration and backend selection."""

from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings


class BackendKind(str, Enum):
    """Storage backends, in selection precedence order."""

    GITHUB = "github"
    REDIS = "redis"
    LOCAL = "local"


class Settings(BaseSettings):
    """
    Ticket store configuration.

    All settings can be overridden via environment variables with the
    TASKFORCE_ prefix. For example:
        TASKFORCE_GITHUB_TOKEN=ghp_xxx        (selects the GitHub backend)
        TASKFORCE_KV_URL=redis://kv:6379      (selects the Redis backend)
        TASKFORCE_DATA_DIR=/srv/kanban        (local backend root)
    """

    # GitHub backend
    github_token: str | None = None
    github_owner: str = "henrynkoh"
    github_repo: str = "ai-claude-teamc"
    github_branch: str = "data"
    github_api_url: str = "https://api.github.com"

    # Redis backend
    kv_url: str | None = None

    # Local backend
    data_dir: Path = Path("taskforce_kanban")

    # Shared
    cache_ttl_seconds: float = 8.0
    http_timeout_seconds: float = 10.0
    log_level: str = "INFO"

    model_config = {"env_prefix": "TASKFORCE_"}

    @property
    def backend(self) -> BackendKind:
        """
        Backend chosen by configuration precedence.

        GitHub when a token is configured, else Redis when a KV URL is
        configured, else the local filesystem.
        """
        if self.github_token:
            return BackendKind.GITHUB
        if self.kv_url:
            return BackendKind.REDIS
        return BackendKind.LOCAL
