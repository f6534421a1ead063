"""
Async GitHub API client used at browse time (live star counts).
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional, Tuple

import aiohttp

from .config import (
    GITHUB_API_BASE,
    MAX_CONCURRENT_REQUESTS,
    MAX_RETRIES,
    REQUEST_TIMEOUT,
    github_headers,
)

logger = logging.getLogger(__name__)


def split_repo(reference: Optional[str]) -> Optional[Tuple[str, str]]:
    """Split ``owner/repo``; anything but two non-empty parts is invalid."""
    if not reference:
        return None
    parts = reference.strip().split("/")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


class GitHubClient:
    """Async GitHub API client with rate-limit awareness and retry."""

    def __init__(self, token: Optional[str] = None, api_base: str = GITHUB_API_BASE,
                 max_retries: int = MAX_RETRIES):
        self.api_base = api_base.rstrip("/")
        self.max_retries = max_retries
        self._headers = github_headers(token) if token else github_headers()
        self._sem = asyncio.Semaphore(MAX_CONCURRENT_REQUESTS)
        self._session: Optional[aiohttp.ClientSession] = None
        self._request_count = 0
        self._rate_remaining: Optional[int] = None
        self._rate_reset: Optional[float] = None

    async def __aenter__(self):
        timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)
        self._session = aiohttp.ClientSession(headers=self._headers, timeout=timeout)
        return self

    async def __aexit__(self, *exc):
        await self.close()

    async def close(self):
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def request_count(self) -> int:
        return self._request_count

    def _rate_limit_wait(self) -> float:
        """Seconds until the quota resets when we're close to the limit, else 0."""
        if self._rate_remaining is not None and self._rate_remaining < 5 and self._rate_reset:
            return max(self._rate_reset - time.time() + 2, 0)
        return 0

    async def _wait_for_rate_limit(self):
        """Pause if we're close to hitting the rate limit."""
        wait = self._rate_limit_wait()
        if wait > 0:
            logger.warning("GitHub rate limit low (%s), waiting %.0fs", self._rate_remaining, wait)
            await asyncio.sleep(wait)

    def _update_rate_info(self, headers):
        remaining = headers.get("X-RateLimit-Remaining")
        reset = headers.get("X-RateLimit-Reset")
        if remaining is not None:
            self._rate_remaining = int(remaining)
        if reset is not None:
            self._rate_reset = float(reset)

    async def get(self, url: str, params: Optional[Dict] = None,
                  retries: Optional[int] = None) -> Tuple[Optional[Any], Optional[str]]:
        """
        GET with retry and concurrency control.

        Returns ``(data, error)``. A 404 is ``(None, None)``: the resource
        simply has no data.
        """
        if self._session is None:
            await self.__aenter__()
        attempts = self.max_retries if retries is None else retries

        async with self._sem:
            if attempts > 1:
                await self._wait_for_rate_limit()
            elif self._rate_limit_wait() > 0:
                # Single lookups fail fast instead of waiting for the reset
                return None, "Rate limited"
            for attempt in range(attempts):
                try:
                    async with self._session.get(url, params=params) as resp:
                        self._request_count += 1
                        self._update_rate_info(resp.headers)

                        if resp.status == 200:
                            return await resp.json(), None

                        if resp.status == 404:
                            return None, None

                        if resp.status in (403, 429):
                            retry_after = resp.headers.get("Retry-After")
                            wait = int(retry_after) if retry_after and retry_after.isdigit() else (2 ** (attempt + 1))
                            if attempt < attempts - 1:
                                await asyncio.sleep(wait)
                                continue
                            return None, "Rate limited"

                        if 500 <= resp.status < 600 and attempt < attempts - 1:
                            await asyncio.sleep(2 ** attempt)
                            continue

                        return None, f"HTTP {resp.status}"

                except asyncio.TimeoutError:
                    if attempt < attempts - 1:
                        await asyncio.sleep(2 ** attempt)
                        continue
                    return None, "Timeout"
                except (aiohttp.ClientError, ValueError) as e:
                    if attempt < attempts - 1:
                        await asyncio.sleep(2 ** attempt)
                        continue
                    return None, str(e)

            return None, "Max retries exceeded"

    async def get_repo(self, owner: str, repo: str,
                       retries: Optional[int] = None) -> Tuple[Optional[Dict], Optional[str]]:
        return await self.get(f"{self.api_base}/repos/{owner}/{repo}", retries=retries)
