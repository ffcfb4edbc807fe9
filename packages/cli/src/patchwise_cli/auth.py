"""GitHub token resolution with gh CLI fallback.

Resolution order (stops at first success):
  1. PATCHWISE_GITHUB_TOKEN, then GITHUB_TOKEN environment variables
  2. `gh auth token` (GitHub CLI session, works after `gh auth login`)
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

# A dedicated variable lets CI give patchwise a token other than the workflow's GITHUB_TOKEN.
TOKEN_ENV_VARS = ("PATCHWISE_GITHUB_TOKEN", "GITHUB_TOKEN")


def _token_from_gh_cli() -> str | None:
    try:
        result = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        logger.debug("gh CLI unavailable; no token from a CLI session.")
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token or None if no valid source is available.

    Never raises; callers should check for None and emit a UsageError.
    """
    for env_var in TOKEN_ENV_VARS:
        token = os.environ.get(env_var)
        if token:
            return token

    token = _token_from_gh_cli()
    if token:
        logger.debug("Resolved GitHub token via gh CLI session.")
    return token
