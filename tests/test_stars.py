"""
Tests for live star lookups and the local star cache.
"""
import asyncio
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_tool
from pentest_catalogue.github import GitHubClient
from pentest_catalogue.stars import (
    JsonFileStorage,
    MemoryStorage,
    StarCache,
    StarsClient,
    is_fresh,
)

HOUR_MS = 60 * 60 * 1000
T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def make_client(response=(None, "HTTP 500"), clock=None, storage=None):
    github = MagicMock()
    github.get_repo = AsyncMock(return_value=response)
    cache = StarCache(storage if storage is not None else MemoryStorage())
    return StarsClient(github, cache, clock=clock or FakeClock(T0)), github, cache


def test_is_fresh():
    assert is_fresh(T0, T0 + 23 * HOUR_MS)
    assert not is_fresh(T0, T0 + 25 * HOUR_MS)
    assert not is_fresh(T0, T0 + 24 * HOUR_MS)


@pytest.mark.asyncio
async def test_no_repo_returns_static_value_without_io():
    client, github, _ = make_client()
    assert await client.stars_for(make_tool("burp", stars=5)) == 5
    assert await client.stars_for(make_tool("manual")) is None
    github.get_repo.assert_not_called()


@pytest.mark.asyncio
async def test_success_is_cached_with_timestamp():
    client, github, cache = make_client(({"stargazers_count": 1234}, None))
    tool = make_tool("nmap", github_repo="nmap/nmap", stars=10)

    assert await client.stars_for(tool) == 1234
    github.get_repo.assert_awaited_once_with("nmap", "nmap", retries=1)
    assert cache.get("nmap") == (1234, T0)
    assert cache.storage.get_item("github_stars_nmap") == "1234"
    assert cache.storage.get_item("github_stars_timestamp_nmap") == str(T0)


@pytest.mark.asyncio
async def test_cache_reused_within_ttl_and_bypassed_after():
    clock = FakeClock(T0 + 23 * HOUR_MS)
    client, github, cache = make_client(({"stargazers_count": 99}, None), clock=clock)
    cache.put("nmap", 50, T0)
    tool = make_tool("nmap", github_repo="nmap/nmap")

    assert await client.stars_for(tool) == 50
    github.get_repo.assert_not_called()

    clock.now = T0 + 25 * HOUR_MS
    assert await client.stars_for(tool) == 99
    github.get_repo.assert_awaited_once()
    assert cache.get("nmap") == (99, T0 + 25 * HOUR_MS)


@pytest.mark.asyncio
async def test_failure_falls_back_and_leaves_cache_alone():
    client, _, cache = make_client((None, "HTTP 500"))
    cache.put("nmap", 7, T0 - 48 * HOUR_MS)

    assert await client.stars_for(make_tool("nmap", github_repo="nmap/nmap", stars=42)) == 42
    assert cache.get("nmap") == (7, T0 - 48 * HOUR_MS)


@pytest.mark.asyncio
async def test_unparseable_response_falls_back():
    client, _, cache = make_client(({"message": "weird"}, None))
    assert await client.stars_for(make_tool("nmap", github_repo="nmap/nmap", stars=42)) == 42
    assert cache.get("nmap") is None


@pytest.mark.asyncio
async def test_malformed_reference_falls_back_without_lookup():
    client, github, _ = make_client()
    assert await client.stars_for(make_tool("x", github_repo="just-a-name", stars=3)) == 3
    github.get_repo.assert_not_called()


def test_corrupt_cache_entry_reads_as_missing():
    cache = StarCache(MemoryStorage({"github_stars_a": "lots", "github_stars_timestamp_a": "1"}))
    assert cache.get("a") is None


def test_json_file_storage_persists(tmp_path):
    path = tmp_path / "cache" / "storage.json"
    StarCache(JsonFileStorage(str(path))).put("nmap", 10, T0)

    reopened = StarCache(JsonFileStorage(str(path)))
    assert reopened.get("nmap") == (10, T0)


def test_json_file_storage_ignores_garbage(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("[1, 2", encoding="utf-8")
    assert JsonFileStorage(str(path)).get_item("anything") is None


@pytest.mark.asyncio
async def test_context_manager_closes_github_session():
    github = GitHubClient()
    async with StarsClient(github, StarCache(MemoryStorage())):
        await github.__aenter__()
        session = github._session
    assert session.closed
    assert github._session is None


@pytest.mark.asyncio
async def test_low_quota_falls_back_without_waiting():
    github = GitHubClient()
    github._session = MagicMock()
    github._rate_remaining = 1
    github._rate_reset = time.time() + 3600
    client = StarsClient(github, StarCache(MemoryStorage()), clock=FakeClock(T0))

    stars = await asyncio.wait_for(
        client.stars_for(make_tool("nmap", github_repo="nmap/nmap", stars=42)), timeout=1
    )

    assert stars == 42
    github._session.get.assert_not_called()
    assert client.cache.get("nmap") is None
