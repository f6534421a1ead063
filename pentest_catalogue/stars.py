"""
Live GitHub star counts for the detail view, cached locally for 24 hours.

Cache layout mirrors browser local storage: two string entries per tool,
``github_stars_<id>`` and ``github_stars_timestamp_<id>`` (epoch ms).
"""

import json
import logging
import os
import time
from typing import Callable, Dict, Optional, Tuple

from .config import STARS_CACHE_TTL_MS, STORAGE_FILE
from .github import GitHubClient, split_repo
from .models import Tool

logger = logging.getLogger(__name__)

STARS_KEY = "github_stars_{}"
TIMESTAMP_KEY = "github_stars_timestamp_{}"


def now_ms() -> int:
    return int(time.time() * 1000)


def is_fresh(written_ms: int, at_ms: int, ttl_ms: int = STARS_CACHE_TTL_MS) -> bool:
    return at_ms - written_ms < ttl_ms


# ─── Key/value storage ─────────────────────────────────────────────────────────


class MemoryStorage:
    """In-process key/value store."""

    def __init__(self, items: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value


class JsonFileStorage(MemoryStorage):
    """Key/value store persisted as a single JSON object on disk."""

    def __init__(self, path: str = STORAGE_FILE):
        self.path = path
        super().__init__(self._read())

    def _read(self) -> Dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable storage file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def set_item(self, key: str, value: str) -> None:
        super().set_item(key, value)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._items, f, indent=2, ensure_ascii=False)


class StarCache:
    def __init__(self, storage=None):
        self.storage = storage if storage is not None else MemoryStorage()

    def get(self, tool_id: str) -> Optional[Tuple[int, int]]:
        """Return ``(stars, timestamp_ms)`` or None when missing or corrupt."""
        stars = self.storage.get_item(STARS_KEY.format(tool_id))
        timestamp = self.storage.get_item(TIMESTAMP_KEY.format(tool_id))
        if not stars or not timestamp:
            return None
        try:
            return int(stars), int(timestamp)
        except ValueError:
            return None

    def put(self, tool_id: str, stars: int, timestamp_ms: int) -> None:
        self.storage.set_item(STARS_KEY.format(tool_id), str(stars))
        self.storage.set_item(TIMESTAMP_KEY.format(tool_id), str(timestamp_ms))


# ─── Enrichment client ─────────────────────────────────────────────────────────


class StarsClient:
    def __init__(self, client: Optional[GitHubClient] = None, cache: Optional[StarCache] = None,
                 clock: Callable[[], int] = now_ms, ttl_ms: int = STARS_CACHE_TTL_MS):
        self.client = client or GitHubClient()
        self.cache = cache or StarCache(JsonFileStorage())
        self.clock = clock
        self.ttl_ms = ttl_ms

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        await self.client.close()

    async def stars_for(self, tool: Tool) -> Optional[int]:
        """Live star count for ``tool``; falls back to the stored value."""
        if not tool.github_repo:
            return tool.stars

        cached = self.cache.get(tool.id)
        if cached and is_fresh(cached[1], self.clock(), self.ttl_ms):
            return cached[0]

        parsed = split_repo(tool.github_repo)
        if parsed is None:
            logger.error("Invalid GitHub repo format for %s: %s", tool.id, tool.github_repo)
            return tool.stars

        data, error = await self.client.get_repo(*parsed, retries=1)
        stars = data.get("stargazers_count") if isinstance(data, dict) else None
        if not isinstance(stars, int) or isinstance(stars, bool):
            logger.error("Error fetching GitHub stars for %s: %s",
                         tool.github_repo, error or "no stargazers_count in response")
            return tool.stars

        self.cache.put(tool.id, stars, self.clock())
        return stars
