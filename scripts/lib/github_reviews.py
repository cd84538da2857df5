"""GitHub PR review submission.

This module is intentionally small: decide whether a parsed draft is worth
posting, pick the review event, and create a single PR review with inline
comments.
"""

from __future__ import annotations

import json
import os
import tempfile

from lib import github as gh
from lib.review_parser import DraftComment, ReviewDraft

APPROVE_DIRECTIVE = "APPROVE"
DENY_DIRECTIVE = "DENY"


def review_event(body: str | None) -> str:
    """Review event for a top-level body.

    A line reading exactly APPROVE approves, DENY requests changes.
    """
    for line in (body or "").splitlines():
        word = line.strip()
        if word == APPROVE_DIRECTIVE:
            return "APPROVE"
        if word == DENY_DIRECTIVE:
            return "REQUEST_CHANGES"
    return "COMMENT"


def should_submit(draft: ReviewDraft) -> bool:
    if draft.comments:
        return True
    return bool(draft.body and draft.body.strip())


def create_pr_review(
    *,
    repo: str,
    pr_number: int,
    commit_id: str | None,
    body: str | None,
    comments: list[DraftComment],
    event: str = "COMMENT",
) -> dict:
    payload: dict[str, object] = {"event": event}
    if commit_id:
        payload["commit_id"] = commit_id
    if body is not None:
        payload["body"] = body
    if comments:
        payload["comments"] = [
            {"path": c.path, "position": c.position, "body": c.body} for c in comments
        ]

    with tempfile.NamedTemporaryFile("w", encoding="utf-8", suffix=".json", delete=False) as handle:
        json.dump(payload, handle)
        handle.flush()
        tmp_path = handle.name

    try:
        result = gh._run_gh(
            [
                "api",
                "-X",
                "POST",
                f"repos/{repo}/pulls/{pr_number}/reviews",
                "--input",
                tmp_path,
            ]
        )
    finally:
        os.unlink(tmp_path)
    data = json.loads(result.stdout or "{}")
    return data if isinstance(data, dict) else {}


def submit_review(repo: str, pr_number: int, draft: ReviewDraft) -> dict | None:
    """Post draft as one review; None when there is nothing to post."""
    if not should_submit(draft):
        return None
    return create_pr_review(
        repo=repo,
        pr_number=pr_number,
        commit_id=draft.commit_id,
        body=draft.body,
        comments=draft.comments,
        event=review_event(draft.body),
    )
