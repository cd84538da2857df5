"""Recover a PR review draft from an edited review document.

The document is the rendered pull request discussion followed by the
`git show` output for its commits. Reviewers type top-level comments between
the two marker lines and inline comments on new lines directly below the diff
line they refer to. Inline comment lines are anything that does not start
with one of the reserved diff characters (space, `+`, `-`, `@`, `*`).

Parsing is a single forward pass and never fails: malformed input yields
whatever could be recovered.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field

TOP_LEVEL_START_MARKER = "# ------ BEGIN  TOP-LEVEL REVIEW COMMENTS ----- #"
TOP_LEVEL_END_MARKER = "# ------ END OF TOP-LEVEL REVIEW COMMENTS ----- #"

_COMMIT_RE = re.compile(r"^commit (.*)$")
_FILE_RE = re.compile(r"^\+\+\+ b/(.*)$")
_DIFF_START = "diff --git "
_HUNK_START = "@@"

_DIFF_CHARS = frozenset("+- @")
_EXISTING_COMMENT_CHAR = "*"


@dataclass
class DraftComment:
    path: str
    position: int
    body: str


@dataclass
class ReviewDraft:
    body: str | None = None
    commit_id: str | None = None
    comments: list[DraftComment] = field(default_factory=list)
    # Set when the document ends inside the top-level region; body stays None.
    unterminated_body: bool = False

    def to_payload(self) -> dict[str, object]:
        """GitHub `pulls/{pr}/reviews` request fields (unset ones omitted)."""
        payload: dict[str, object] = {}
        if self.commit_id is not None:
            payload["commit_id"] = self.commit_id
        if self.body is not None:
            payload["body"] = self.body
        payload["comments"] = [
            {"path": c.path, "position": c.position, "body": c.body} for c in self.comments
        ]
        return payload


def _strip_eol(line: str) -> str:
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def iter_lines(text: str) -> Iterator[tuple[str, int, int]]:
    """Yield (line, start, end) for each `\\n`-terminated line of text.

    `line` has its terminator (`\\n` or `\\r\\n`) removed; `start`/`end` are
    offsets into text that include it.
    """
    start = 0
    size = len(text)
    while start < size:
        nl = text.find("\n", start)
        end = size if nl < 0 else nl + 1
        yield _strip_eol(text[start:end]), start, end
        start = end


class _Scanner:
    """Per-document parser state."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.draft = ReviewDraft()
        self.path = ""
        self.position = 0
        self.in_hunk = False
        self.region_start: int | None = None
        self.comment_start: int | None = None

    def feed(self, line: str, start: int, end: int) -> None:
        # Any line that is not comment text closes the open comment.
        open_comment = self.comment_start
        self.comment_start = None
        if not self._classify(line, start, end):
            return

        if open_comment is None:
            open_comment = start
            self.draft.comments.append(DraftComment(self.path, self.position, ""))
        self.draft.comments[-1].body = self.text[open_comment:end]
        self.comment_start = open_comment

    def _classify(self, line: str, start: int, end: int) -> bool:
        """Update state for one line; return True if it is inline comment text."""
        if line == TOP_LEVEL_START_MARKER:
            # A repeated start marker restarts the region.
            self.region_start = end
            return False
        if line == TOP_LEVEL_END_MARKER:
            if self.region_start is not None:
                body = self.text[self.region_start:start]
                self.draft.body = _strip_eol(body) if body.endswith("\n") else body
                self.region_start = None
            return False
        if self.region_start is not None:
            return False

        m = _COMMIT_RE.match(line)
        if m:
            self.in_hunk = False
            self.draft.commit_id = m.group(1)
            return False

        if line.startswith(_DIFF_START):
            self.in_hunk = False
            return False

        m = _FILE_RE.match(line)
        if m:
            self.path = m.group(1)
            return False

        if line.startswith(_HUNK_START):
            self.in_hunk = True
            self.position = 0
            return False

        if not self.in_hunk:
            return False

        first = line[:1]
        if first in _DIFF_CHARS:
            self.position += 1
            return False
        if first == _EXISTING_COMMENT_CHAR:
            return False
        return True


def parse_review_document(text: str) -> ReviewDraft:
    """Parse an edited review document into a ReviewDraft.

    Edge cases:
    - no marker pair: body is None
    - a start marker that is never closed: body is None, unterminated_body is True
    - start marker directly followed by end marker: body is ""
    - inline comment text before the first hunk header is dropped
    - several `commit` headers: the last one provides commit_id
    """
    scanner = _Scanner(text)
    for line, start, end in iter_lines(text):
        scanner.feed(line, start, end)
    scanner.draft.unterminated_body = scanner.region_start is not None
    return scanner.draft
