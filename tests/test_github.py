"""
Tests for the async GitHub client.
"""
import time
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from pentest_catalogue.github import GitHubClient, split_repo


def test_split_repo():
    assert split_repo("nmap/nmap") == ("nmap", "nmap")
    assert split_repo(" owner/repo ") == ("owner", "repo")
    for bad in (None, "", "nmap", "nmap/", "/nmap", "a/b/c"):
        assert split_repo(bad) is None


def make_session(*responses):
    session = MagicMock()
    contexts = []
    for resp in responses:
        ctx = MagicMock()
        if isinstance(resp, Exception):
            ctx.__aenter__.side_effect = resp
        else:
            ctx.__aenter__.return_value = resp
        contexts.append(ctx)
    session.get.side_effect = contexts
    return session


def make_resp(status, payload=None, headers=None):
    resp = MagicMock()
    resp.status = status
    resp.headers = headers or {}
    resp.json = AsyncMock(return_value=payload)
    return resp


@pytest.mark.asyncio
async def test_get_repo_success():
    client = GitHubClient(token="t", api_base="https://api.example")
    client._session = make_session(make_resp(200, {"stargazers_count": 7},
                                             {"X-RateLimit-Remaining": "59", "X-RateLimit-Reset": "0"}))

    data, error = await client.get_repo("o", "r")

    assert data == {"stargazers_count": 7}
    assert error is None
    assert client.request_count == 1
    assert client._session.get.call_args[0][0] == "https://api.example/repos/o/r"


@pytest.mark.asyncio
async def test_404_is_no_data_without_error():
    client = GitHubClient()
    client._session = make_session(make_resp(404, {"message": "Not Found"}))
    assert await client.get_repo("o", "missing") == (None, None)


@pytest.mark.asyncio
async def test_single_attempt_reports_server_error():
    client = GitHubClient()
    client._session = make_session(make_resp(502))
    assert await client.get_repo("o", "r", retries=1) == (None, "HTTP 502")


@pytest.mark.asyncio
async def test_retries_after_transient_failure():
    client = GitHubClient(max_retries=2)
    client._session = make_session(aiohttp.ClientConnectionError("reset"), make_resp(200, {"ok": True}))

    with patch("pentest_catalogue.github.asyncio.sleep", new=AsyncMock()) as sleep:
        data, error = await client.get("https://api.example/x")

    assert data == {"ok": True}
    assert error is None
    sleep.assert_awaited_once()


@pytest.mark.asyncio
async def test_zero_retries_makes_no_request():
    client = GitHubClient(max_retries=3)
    client._session = make_session(make_resp(200, {"ok": True}))
    assert await client.get("https://api.example/x", retries=0) == (None, "Max retries exceeded")
    client._session.get.assert_not_called()


@pytest.mark.asyncio
async def test_retrying_calls_still_wait_for_low_quota():
    client = GitHubClient(max_retries=2)
    client._session = make_session(make_resp(200, {"ok": True}))
    client._rate_remaining = 0
    client._rate_reset = time.time() + 30

    with patch("pentest_catalogue.github.asyncio.sleep", new=AsyncMock()) as sleep:
        assert await client.get("https://api.example/x") == ({"ok": True}, None)

    sleep.assert_awaited_once()
    assert sleep.await_args[0][0] > 0
