import os
from typing import Dict, Optional

# ─── Configuration ────────────────────────────────────────────────────────────

GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN")  # optional, raises the rate limit
GITHUB_API_BASE = os.environ.get("GITHUB_API_BASE", "https://api.github.com")
USER_AGENT = "Pentest-Tools-Catalogue-Updater"

# Where the build step writes tools.json / categories.json (directory or URL)
DATA_SOURCE = os.environ.get("CATALOGUE_DATA_SOURCE", os.path.join("src", "assets", "data"))
TOOLS_FILE = "tools.json"
CATEGORIES_FILE = "categories.json"

# One YAML document per tool, rewritten in place by the updater
TOOLS_DIR = os.environ.get("CATALOGUE_TOOLS_DIR", os.path.join("data", "tools"))

STORAGE_FILE = os.environ.get(
    "CATALOGUE_STORAGE_FILE",
    os.path.join(os.path.expanduser("~"), ".cache", "pentest-catalogue", "storage.json"),
)

REQUEST_TIMEOUT = 20                # seconds
MAX_RETRIES = 3
INITIAL_BACKOFF = 2
RATE_LIMIT_DELAY = 1.0              # seconds between records in the updater
MAX_CONCURRENT_REQUESTS = 10
STARS_CACHE_TTL_MS = 24 * 60 * 60 * 1000
TOP_CONTRIBUTORS = 3
DEFAULT_CATEGORY_ORDER = 999


def github_headers(token: Optional[str] = GITHUB_TOKEN) -> Dict[str, str]:
    """Headers for GitHub REST calls; unauthenticated when no token is set."""
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": USER_AGENT,
    }
    if token:
        headers["Authorization"] = f"token {token}"
    return headers
