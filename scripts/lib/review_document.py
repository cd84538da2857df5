"""Render a pull request into an editable review document.

The document starts with a fake `commit` header so editors pick git commit
syntax highlighting, then the PR metadata and discussion, then the marker
lines reviewers type top-level comments between. The caller appends the
`git show` diff for the PR's commits.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Any, TextIO

from lib.review_parser import TOP_LEVEL_END_MARKER, TOP_LEVEL_START_MARKER

WRAP_WIDTH = 70
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
ZERO_TIME = "0001-01-01 00:00:00"
NULL_COMMIT = "0" * 40

INSTRUCTIONS = f"""
# Add top-level review comments by typing between the marker lines below.
# Don't modify the markers!
# Approve this PR by typing "APPROVE" on a line by itself.
# Request changes on this PR by typing "DENY" on a line by itself.

{TOP_LEVEL_START_MARKER}
{TOP_LEVEL_END_MARKER}

# Add ordinary review comments by typing on a new line below the line of the
# diff you'd like to comment on. Comments may not begin with the special
# characters <space>, +, -, @, or *.
#
# Pre-existing comments are prefixed with *.

"""


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a GitHub ISO-8601 timestamp (`2024-01-02T03:04:05Z`)."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def format_time(value: datetime | None) -> str:
    if value is None:
        return ZERO_TIME
    return value.strftime(TIME_FORMAT)


def _login(user: Any) -> str:
    if isinstance(user, dict):
        login = user.get("login")
        if isinstance(login, str):
            return login
    return ""


def _optional_text(value: Any) -> str | None:
    return value if isinstance(value, str) else None


@dataclass(frozen=True)
class PullRequest:
    number: int
    title: str = ""
    state: str = ""
    body: str | None = None
    author: str = ""
    created_at: datetime | None = None
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    base_sha: str = ""
    head_sha: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "PullRequest":
        """Build from a `GET repos/{repo}/pulls/{n}` response."""
        number = raw.get("number")
        base = raw.get("base") if isinstance(raw.get("base"), dict) else {}
        head = raw.get("head") if isinstance(raw.get("head"), dict) else {}
        return cls(
            number=number if isinstance(number, int) and not isinstance(number, bool) else 0,
            title=_optional_text(raw.get("title")) or "",
            state=_optional_text(raw.get("state")) or "",
            body=_optional_text(raw.get("body")),
            author=_login(raw.get("user")),
            created_at=parse_timestamp(raw.get("created_at")),
            merged_at=parse_timestamp(raw.get("merged_at")),
            closed_at=parse_timestamp(raw.get("closed_at")),
            base_sha=_optional_text(base.get("sha")) or "",
            head_sha=_optional_text(head.get("sha")) or "",
        )


@dataclass(frozen=True)
class IssueComment:
    author: str = ""
    created_at: datetime | None = None
    body: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "IssueComment":
        return cls(
            author=_login(raw.get("user")),
            created_at=parse_timestamp(raw.get("created_at")),
            body=_optional_text(raw.get("body")),
        )


def wrap(text: str, prefix: str, width: int = WRAP_WIDTH) -> str:
    """Hard-wrap text at `width` columns, prefixing continuation lines.

    Lines break after the last space within the first `width` characters.
    A run of `width` characters without a space is broken at `width`.
    """
    out: list[str] = []
    text = text.replace("\r\n", "\n")
    for i, line in enumerate(text.split("\n")):
        if i > 0:
            out.append("\n" + prefix)
        s = line
        while len(s) > width:
            cut = s.rfind(" ", 0, width)
            if cut < 0:
                cut = width - 1
            cut += 1
            out.append(s[:cut] + "\n" + prefix)
            s = s[cut:]
        out.append(s)
    return "".join(out)


def _write_body(out: TextIO, body: str | None, width: int) -> None:
    if body is None:
        return
    text = body.strip()
    if text:
        out.write("\n\t" + wrap(text, "\t", width) + "\n")


def render_pull_request(
    out: TextIO,
    repo: str,
    pr: PullRequest,
    comment_pages: Iterable[Iterable[IssueComment]] = (),
    *,
    width: int = WRAP_WIDTH,
) -> None:
    """Write the review document header for pr to out.

    comment_pages is consumed one page at a time in the order given.
    """
    out.write(f"commit {NULL_COMMIT}\n")
    out.write(f"Author: {pr.author}\n")
    out.write(f"Date:   {format_time(pr.created_at)}\n")
    out.write(f"Title:  {pr.title}\n")
    out.write(f"State:  {pr.state}\n")
    if pr.merged_at is not None:
        out.write(f"Merged: {format_time(pr.merged_at)}\n")
    if pr.closed_at is not None:
        out.write(f"Closed: {format_time(pr.closed_at)}\n")
    out.write(f"URL:    https://github.com/{repo}/pulls/{pr.number}\n")

    out.write(f"\nCreated by {pr.author} ({format_time(pr.created_at)})\n")
    _write_body(out, pr.body, width)

    for page in comment_pages:
        for comment in page:
            out.write(f"\nComment by {comment.author} ({format_time(comment.created_at)})\n")
            _write_body(out, comment.body, width)

    out.write("\n")
    out.write(INSTRUCTIONS)


def render_document(
    repo: str,
    pr: PullRequest,
    comment_pages: Iterable[Iterable[IssueComment]] = (),
    diff: str = "",
    *,
    width: int = WRAP_WIDTH,
) -> str:
    """Full review document: rendered header followed by diff."""
    buf = StringIO()
    render_pull_request(buf, repo, pr, comment_pages, width=width)
    buf.write(diff)
    return buf.getvalue()
