#!/usr/bin/env python3
"""
Update tool YAML files with metadata from GitHub.

Usage:
    GITHUB_TOKEN=... python scripts/update_tools_from_github.py

The token is optional; without it requests run unauthenticated at GitHub's
lower rate limit. Set CATALOGUE_TOOLS_DIR to point at another tools directory.
"""

import sys

from pentest_catalogue.updater import main

if __name__ == "__main__":
    sys.exit(main())
