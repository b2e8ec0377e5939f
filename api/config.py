"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DATA_DIR = Path.home() / ".gistnotes"


def _optional(name: str) -> str | None:
    """Read an env var, treating empty strings as unset."""
    value = os.getenv(name, "").strip()
    return value or None


@dataclass
class Settings:
    """Service settings.

    Remote document ids and the write credential are supplied out-of-band.
    A document id without a credential yields read-only sync.
    """

    data_dir: Path = DEFAULT_DATA_DIR
    gist_id: str | None = None
    github_token: str | None = None
    share_tokens_gist_id: str | None = None
    gist_api_url: str = "https://api.github.com"
    remote_timeout_seconds: float = 10.0
    sync_debounce_seconds: float = 1.2
    cache_ttl_seconds: float = 300.0
    share_base_url: str = "http://localhost:8000"

    def __post_init__(self):
        # Share tokens live next to the notes unless a separate gist is named
        if self.share_tokens_gist_id is None:
            self.share_tokens_gist_id = self.gist_id

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables."""
        return cls(
            data_dir=Path(os.getenv("GISTNOTES_DATA_DIR", str(DEFAULT_DATA_DIR))).expanduser(),
            gist_id=_optional("GIST_ID"),
            github_token=_optional("GITHUB_TOKEN"),
            share_tokens_gist_id=_optional("SHARE_TOKENS_GIST_ID"),
            gist_api_url=os.getenv("GIST_API_URL", "https://api.github.com"),
            remote_timeout_seconds=float(os.getenv("REMOTE_TIMEOUT_SECONDS", "10")),
            sync_debounce_seconds=float(os.getenv("SYNC_DEBOUNCE_SECONDS", "1.2")),
            cache_ttl_seconds=float(os.getenv("SYNC_CACHE_TTL_SECONDS", "300")),
            share_base_url=os.getenv("SHARE_BASE_URL", "http://localhost:8000").rstrip("/"),
        )
