from __future__ import annotations

import logging

from github import Github, GithubException

from patchwise_core.models import PatchFile

logger = logging.getLogger(__name__)

# GitHub file statuses whose base version exists at the PR's base commit.
_HAS_PREVIOUS_VERSION = ("modified", "renamed", "changed")


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


def get_diff(pr):
    return pr.get_files()


def get_file_contents(repo, path: str, ref: str) -> str | None:
    """Return a file's decoded text at ref, or None if GitHub cannot serve it."""
    try:
        return repo.get_contents(path, ref=ref).decoded_content.decode("utf-8", errors="replace")
    except GithubException as e:
        logger.debug("Could not fetch %s at %s: %s", path, ref[:7], e)
        return None


def fetch_patch_files(repo, pr) -> list[PatchFile]:
    """Build a PatchFile for every changed file that has a textual patch.

    Previous contents are read at the PR's base commit. Added files, and files
    whose base version cannot be fetched, get old_contents=None.
    """
    base_sha = pr.base.sha
    files: list[PatchFile] = []
    for f in sorted(get_diff(pr), key=lambda f: f.filename):
        if f.status == "removed" or not f.patch:
            # Removed files have nothing to review; binary and very large files come without a patch.
            continue
        old_contents = None
        if f.status in _HAS_PREVIOUS_VERSION:
            old_path = getattr(f, "previous_filename", None) or f.filename
            old_contents = get_file_contents(repo, old_path, base_sha)
        files.append(PatchFile(filename=f.filename, patch=f.patch, old_contents=old_contents, status=f.status))
    return files
