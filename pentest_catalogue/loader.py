"""
Dataset loader for the JSON files produced by the build step.

Each file is fetched at most once per loader; every caller of ``load()`` /
``load_categories()`` shares the same task and gets the replayed result.
"""

import asyncio
import json
import logging
import os
from typing import Any, List, Optional

import aiohttp

from .config import CATEGORIES_FILE, DATA_SOURCE, REQUEST_TIMEOUT, TOOLS_FILE
from .models import Category, Tool

logger = logging.getLogger(__name__)


class DatasetLoader:
    def __init__(self, source: str = DATA_SOURCE, session: Optional[aiohttp.ClientSession] = None):
        self.source = source
        self._session = session
        self._tools_task: Optional[asyncio.Task] = None
        self._categories_task: Optional[asyncio.Task] = None
        self._loaded = asyncio.Event()

    @property
    def loaded(self) -> bool:
        return self._loaded.is_set()

    async def wait_loaded(self) -> None:
        await self._loaded.wait()

    async def load(self) -> List[Tool]:
        if self._tools_task is None:
            self._tools_task = asyncio.ensure_future(self._load_tools())
        return list(await asyncio.shield(self._tools_task))

    async def load_categories(self) -> List[Category]:
        if self._categories_task is None:
            self._categories_task = asyncio.ensure_future(self._load_categories())
        return list(await asyncio.shield(self._categories_task))

    async def _load_tools(self) -> List[Tool]:
        try:
            data = await self._fetch_json(TOOLS_FILE)
            tools = [Tool.from_dict(item) for item in data]
        except Exception as e:
            logger.error("Error loading tools data: %s", e)
            tools = []
        # Set on failure too, so first-load waiters never hang
        self._loaded.set()
        return tools

    async def _load_categories(self) -> List[Category]:
        try:
            data = await self._fetch_json(CATEGORIES_FILE)
            categories = [Category.from_dict(item) for item in (data or {}).get("categories") or []]
        except Exception as e:
            logger.error("Error loading categories data: %s", e)
            return []
        # Stable, so equal orders keep file order
        categories.sort(key=lambda c: c.order)
        return categories

    async def _fetch_json(self, name: str) -> Any:
        if self.source.startswith(("http://", "https://")):
            return await self._fetch_remote(f"{self.source.rstrip('/')}/{name}")
        with open(os.path.join(self.source, name), "r", encoding="utf-8") as f:
            return json.load(f)

    async def _fetch_remote(self, url: str) -> Any:
        if self._session is not None:
            async with self._session.get(url) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)

        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)
