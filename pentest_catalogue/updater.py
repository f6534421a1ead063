"""
Refresh tool YAML files from the GitHub API.

Walks the tools directory one record at a time, fetches repository metadata
and top contributors, fills in missing fields and rewrites the file only when
something changed. Requests are paced with a fixed delay between records.
"""

import os
import sys
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests
import yaml

from .config import (
    GITHUB_API_BASE,
    GITHUB_TOKEN,
    INITIAL_BACKOFF,
    MAX_RETRIES,
    RATE_LIMIT_DELAY,
    REQUEST_TIMEOUT,
    TOOLS_DIR,
    TOP_CONTRIBUTORS,
    github_headers,
)
from .github import split_repo

UPDATED = "updated"
UNCHANGED = "unchanged"
SKIPPED = "skipped"
ERROR = "error"

# GitHub's spdx_id for licenses it cannot identify
UNRECOGNIZED_LICENSES = {"", "NOASSERTION"}


@dataclass
class UpdateSummary:
    updated: int = 0
    unchanged: int = 0
    skipped: int = 0
    errors: int = 0

    def record(self, outcome: str) -> None:
        if outcome == UPDATED:
            self.updated += 1
        elif outcome == UNCHANGED:
            self.unchanged += 1
        elif outcome == SKIPPED:
            self.skipped += 1
        else:
            self.errors += 1


# ─── HTTP layer ────────────────────────────────────────────────────────────────


def backoff_delay(attempt: int, retry_after: Optional[int] = None) -> float:
    """Retry-After when GitHub sends one, otherwise capped exponential backoff."""
    if retry_after:
        return retry_after
    return min(INITIAL_BACKOFF * (2 ** attempt), 60)


class GitHubFetcher:
    """Blocking GitHub client with a per-run response cache keyed by URL."""

    def __init__(self, token: Optional[str] = GITHUB_TOKEN, api_base: str = GITHUB_API_BASE,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.sleep = sleep
        self.session.headers.update(github_headers(token))
        self.cache: Dict[str, Any] = {}

    def _backoff(self, attempt: int, retry_after: Optional[int] = None) -> None:
        delay = backoff_delay(attempt, retry_after)
        print(f"Backoff attempt {attempt + 1} - sleeping for {delay}s")
        self.sleep(delay)

    def make_request_with_retry(self, url: str, params: Optional[Dict] = None) -> Tuple[Optional[requests.Response], Optional[str]]:
        """Make HTTP request with retry logic for rate limits and server errors"""
        for attempt in range(MAX_RETRIES):
            try:
                response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)

                if response.status_code in (200, 404):
                    return response, None

                if response.status_code in (403, 429):
                    retry_after = response.headers.get("Retry-After")
                    retry_after_int = int(retry_after) if retry_after and retry_after.isdigit() else None

                    try:
                        is_rate_limit = "rate limit" in response.json().get("message", "").lower()
                    except (ValueError, AttributeError):
                        is_rate_limit = response.status_code == 429

                    if not is_rate_limit:
                        return None, f"Access forbidden ({response.status_code})"
                    if attempt < MAX_RETRIES - 1:
                        self._backoff(attempt, retry_after_int)
                        continue
                    return None, f"Rate limit exceeded after {MAX_RETRIES} retries"

                if 500 <= response.status_code < 600 and attempt < MAX_RETRIES - 1:
                    self._backoff(attempt)
                    continue

                return None, f"GitHub API error: {response.status_code} {response.reason}"

            except requests.RequestException as e:
                if attempt < MAX_RETRIES - 1:
                    self._backoff(attempt)
                    continue
                return None, str(e)

        return None, "Max retries exceeded"

    def fetch_with_cache(self, url: str, params: Optional[Dict] = None) -> Optional[Any]:
        """JSON body for ``url``, or None for 404s and failed requests."""
        key = url if not params else f"{url}?{'&'.join(f'{k}={v}' for k, v in sorted(params.items()))}"
        if key in self.cache:
            return self.cache[key]

        response, error = self.make_request_with_retry(url, params=params)
        if response is None:
            print(f"Error fetching {key}: {error}", file=sys.stderr)
            return None
        if response.status_code == 404:
            return None

        try:
            data = response.json()
        except ValueError as e:
            print(f"Error parsing {key}: {e}", file=sys.stderr)
            return None
        self.cache[key] = data
        return data

    def repo(self, owner: str, repo: str) -> Optional[Dict]:
        return self.fetch_with_cache(f"{self.api_base}/repos/{owner}/{repo}")

    def top_contributors(self, owner: str, repo: str, limit: int = TOP_CONTRIBUTORS) -> List[str]:
        data = self.fetch_with_cache(
            f"{self.api_base}/repos/{owner}/{repo}/contributors", params={"per_page": 5}
        )
        if not isinstance(data, list):
            return []
        return [c["login"] for c in data[:limit] if isinstance(c, dict) and c.get("login")]


# ─── Merge ─────────────────────────────────────────────────────────────────────


def merge_repo_metadata(tool: Dict[str, Any], repo_data: Dict[str, Any],
                        contributors: List[str]) -> List[str]:
    """
    Merge GitHub data into ``tool`` in place and describe each change.

    Stars are live data and are refreshed whenever they differ. Every other
    field is only filled when missing, since maintainers own it once set.
    """
    updates = []

    new_stars = repo_data.get("stargazers_count")
    if new_stars is not None and tool.get("stars") != new_stars:
        old_stars = tool.get("stars")
        tool["stars"] = new_stars
        updates.append(f"⭐ Stars: {old_stars if old_stars is not None else 'N/A'} → {new_stars}")

    if not tool.get("description") and repo_data.get("description"):
        tool["description"] = repo_data["description"]
        updates.append("📝 Added description from GitHub")

    if not tool.get("website") and repo_data.get("homepage"):
        tool["website"] = repo_data["homepage"]
        updates.append(f"🌐 Added website: {repo_data['homepage']}")

    owner_login = (repo_data.get("owner") or {}).get("login")
    if not tool.get("maintainers") and owner_login:
        tool["maintainers"] = [owner_login]
        updates.append(f"👤 Added maintainer: {owner_login}")

    if contributors:
        existing = list(tool.get("authors") or [])
        new_authors = []
        for login in contributors:
            if login not in existing and login not in new_authors:
                new_authors.append(login)
        if new_authors:
            tool["authors"] = existing + new_authors
            updates.append(f"✍️  Added authors: {', '.join(new_authors)}")

    spdx_id = ((repo_data.get("license") or {}).get("spdx_id") or "").strip()
    if not tool.get("license") and spdx_id not in UNRECOGNIZED_LICENSES:
        tool["license"] = spdx_id
        updates.append(f"📄 Updated license: {spdx_id}")

    return updates


def dump_tool(tool: Dict[str, Any]) -> str:
    return yaml.safe_dump(
        tool,
        indent=2,
        width=float("inf"),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )


# ─── Per-record update ─────────────────────────────────────────────────────────


def update_tool_file(file_path: str, fetcher: GitHubFetcher) -> str:
    """Update one YAML record; returns one of the outcome constants."""
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            tool = yaml.safe_load(f)

        if not isinstance(tool, dict) or not tool.get("id"):
            print(f"⚠️  Skipping {os.path.basename(file_path)} - no valid 'id' field")
            return SKIPPED

        name = tool.get("name") or tool["id"]
        github_repo = tool.get("github_repo")
        if not github_repo:
            print(f"⏭️  Skipping {name} - no GitHub repo")
            return SKIPPED

        parsed = split_repo(str(github_repo))
        if parsed is None:
            print(f"⚠️  Invalid GitHub repo format: {github_repo}")
            return SKIPPED

        print(f"\n📦 Updating {name} ({github_repo})...")
        owner, repo = parsed

        repo_data = fetcher.repo(owner, repo)
        if not isinstance(repo_data, dict):
            print(f"⚠️  Could not fetch data for {github_repo}")
            return ERROR

        contributors = fetcher.top_contributors(owner, repo)
        updates = merge_repo_metadata(tool, repo_data, contributors)

        if not updates:
            print(f"✓ No updates needed for {name}")
            return UNCHANGED

        with open(file_path, "w", encoding="utf-8") as f:
            f.write(dump_tool(tool))
        print(f"✅ Updated {name}:")
        for update in updates:
            print(f"   {update}")
        return UPDATED

    except Exception as e:
        print(f"❌ Error updating {file_path}: {e}", file=sys.stderr)
        return ERROR


def list_tool_files(tools_dir: str) -> List[str]:
    """YAML files in ``tools_dir``; raises OSError if it cannot be read."""
    return sorted(
        os.path.join(tools_dir, name)
        for name in os.listdir(tools_dir)
        if name.endswith((".yml", ".yaml"))
    )


def update_all_tools(tools_dir: str = TOOLS_DIR, fetcher: Optional[GitHubFetcher] = None,
                     delay: float = RATE_LIMIT_DELAY,
                     sleep: Callable[[float], None] = time.sleep) -> UpdateSummary:
    files = list_tool_files(tools_dir)
    fetcher = fetcher or GitHubFetcher()
    summary = UpdateSummary()

    print(f"\n🚀 Starting update for {len(files)} tools...\n")
    print(f"⏳ Rate limiting: {delay:g}s between records\n")

    for i, file_path in enumerate(files):
        summary.record(update_tool_file(file_path, fetcher))

        if i < len(files) - 1:
            sleep(delay)

    print("\n📊 Summary:")
    print(f"   ✅ Updated: {summary.updated}")
    print(f"   ✓ Unchanged: {summary.unchanged}")
    print(f"   ⏭️  Skipped: {summary.skipped}")
    print(f"   ❌ Errors: {summary.errors}")
    print("\n✨ Done!\n")
    return summary


def main(tools_dir: str = TOOLS_DIR) -> int:
    """Entry point; non-zero only when the run cannot start."""
    try:
        update_all_tools(tools_dir)
    except OSError as e:
        print(f"Fatal error: cannot read tools directory {tools_dir}: {e}", file=sys.stderr)
        return 1
    return 0
