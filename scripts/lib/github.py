"""GitHub API access through the gh CLI.

Fetches the pull request being reviewed and its discussion comments. The
comment list is handed out one page at a time so callers can render it as it
arrives.
"""
from __future__ import annotations

import json
import re
import subprocess
from collections.abc import Iterator

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class CommentPermissionError(Exception):
    """Token lacks the permissions needed for the request."""


class TransientGitHubError(Exception):
    """GitHub API returned a transient error (5xx)."""


def _is_transient_error(stderr: str) -> bool:
    """Check if error is a transient GitHub API error (5xx)."""
    transient_codes = ("502", "503", "504")
    lower_stderr = stderr.lower()
    # Handle both gh CLI format "(http 503)" and raw "HTTP 503" formats
    return any(
        f"(http {code})" in lower_stderr or f"http {code}" in lower_stderr
        for code in transient_codes
    )


def _run_gh(args: list[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
    """Run a gh CLI command.

    Raises:
        CommentPermissionError: Token lacks access to the repository or PR
        TransientGitHubError: GitHub API returned 5xx
        subprocess.CalledProcessError: Other gh CLI failures
    """
    result = subprocess.run(["gh", *args], capture_output=True, text=True, check=False)
    if result.returncode == 0:
        return result

    stderr = (result.stderr or "").lower()
    if any(s in stderr for s in ("403", "resource not accessible", "insufficient")):
        raise CommentPermissionError(
            "GitHub rejected the request: token lacks pull request permissions.\n"
            "Run `gh auth login` (or set GH_TOKEN) with a token that has the repo scope."
        )

    if _is_transient_error(result.stderr or ""):
        raise TransientGitHubError(f"GitHub API returned a transient error: {result.stderr}")

    if check:
        raise subprocess.CalledProcessError(
            result.returncode, result.args, result.stdout, result.stderr
        )
    return result


def parse_repo(value: str) -> tuple[str, str]:
    """Split `owner/repo` into its parts."""
    text = (value or "").strip()
    if not _REPO_RE.match(text):
        raise ValueError(f"invalid repository {value!r}: must be owner/repo, like golang/go")
    owner, name = text.split("/")
    return owner, name


def fetch_pull_request(repo: str, pr_number: int) -> dict:
    """Fetch PR metadata (`GET repos/{repo}/pulls/{n}`)."""
    result = _run_gh(["api", f"repos/{repo}/pulls/{pr_number}"])
    data = json.loads(result.stdout or "{}")
    return data if isinstance(data, dict) else {}


def iter_comment_pages(
    repo: str,
    pr_number: int,
    *,
    per_page: int = 100,
    max_pages: int = 20,
) -> Iterator[list[dict]]:
    """Yield the PR's issue comments one page at a time.

    Stops after an empty, short, or unparsable page, or after max_pages.
    """
    for page in range(1, max_pages + 1):
        endpoint = f"repos/{repo}/issues/{pr_number}/comments?per_page={per_page}&page={page}"
        result = _run_gh(["api", endpoint])
        try:
            payload = json.loads(result.stdout or "[]")
        except json.JSONDecodeError:
            return
        if not isinstance(payload, list) or not payload:
            return
        yield [c for c in payload if isinstance(c, dict)]
        if len(payload) < per_page:
            return
