"""git collaborator: fetch PR refs and render the commits under review."""

from __future__ import annotations

import subprocess
import sys

# One `commit <sha>` header per commit, message indented like `git log`,
# followed by that commit's patch.
SHOW_PRETTY = "--pretty=tformat:commit %H%nAuthor: %an <%ae>%nDate:   %ad%n%n%w(0,4,4)%B"


class GitError(RuntimeError):
    """A git invocation failed."""


def decode_output(data: bytes | None) -> str:
    """Decode git output as UTF-8 without newline translation.

    Bytes that are not UTF-8 (e.g. Latin-1 sources) become U+FFFD; a lone
    `\\r` inside a diff line is kept as is.
    """
    return (data or b"").decode("utf-8", errors="replace")


def _run_git(args: list[str], *, capture: bool = True) -> subprocess.CompletedProcess[bytes]:
    try:
        result = subprocess.run(
            ["git", *args],
            stdout=subprocess.PIPE if capture else sys.stderr,
            stderr=subprocess.PIPE if capture else sys.stderr,
            check=False,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc
    if result.returncode != 0:
        detail = decode_output(result.stderr).strip() if capture else ""
        message = f"git {args[0]} failed with exit code {result.returncode}"
        raise GitError(f"{message}: {detail}" if detail else message)
    return result


def pull_ref(pr_number: int, ref_prefix: str = "reviews/pr") -> str:
    return f"{ref_prefix.rstrip('/')}/{pr_number}"


def fetch_pull_ref(remote_url: str, pr_number: int, ref_prefix: str = "reviews/pr") -> str:
    """Fetch the PR head into a local ref; return the local ref name.

    git's progress output goes to stderr.
    """
    local = pull_ref(pr_number, ref_prefix)
    _run_git(["fetch", remote_url, f"refs/pull/{pr_number}/head:{local}"], capture=False)
    return local


def generate_diff(base: str, head: str) -> str:
    """`git show` every commit in base..head, oldest first."""
    if not base or not head:
        raise GitError("generate_diff requires both base and head revisions")
    result = _run_git(["show", "--reverse", SHOW_PRETTY, f"{base}..{head}"])
    return decode_output(result.stdout)
