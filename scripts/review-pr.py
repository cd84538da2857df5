#!/usr/bin/env python3
"""Review a GitHub pull request from your editor.

Fetches the PR head, renders the PR discussion plus the `git show` output of
its commits into a temporary file, opens $VISUAL/$EDITOR on it, then parses
what you typed and posts it as a single PR review:

- text typed between the two marker lines becomes the review body
- text typed on its own line below a diff line becomes an inline comment
  anchored to that line

usage: review-pr.py [-p owner/repo] [--config PATH] [--dry-run] PR
"""

from __future__ import annotations

import argparse
import json
import subprocess
import sys
from pathlib import Path

from lib.editor import EditorError, edit_text, read_document
from lib.git import GitError, fetch_pull_ref, generate_diff
from lib.github import (
    CommentPermissionError,
    TransientGitHubError,
    fetch_pull_request,
    iter_comment_pages,
)
from lib.github_reviews import review_event, should_submit, submit_review
from lib.review_config import ConfigError, ReviewConfig, default_config_path, load_review_config
from lib.review_document import IssueComment, PullRequest, render_document
from lib.review_parser import ReviewDraft, parse_review_document

PROG = "review-pr"


def fail(message: str, code: int = 1) -> None:
    """Fail."""
    print(f"{PROG}: {message}", file=sys.stderr)
    sys.exit(code)


def warn(message: str) -> None:
    """Warn."""
    print(f"{PROG}: warning: {message}", file=sys.stderr)


def notice(message: str) -> None:
    """Notice."""
    print(f"{PROG}: {message}", file=sys.stderr)


def build_document(cfg: ReviewConfig, pr_number: int) -> str:
    """Fetch the PR and render the document to edit."""
    notice(f"Fetching refs for PR {pr_number}")
    fetch_pull_ref(cfg.fetch_url(), pr_number, cfg.ref_prefix)

    notice(f"Fetching details for PR {pr_number}")
    pr = PullRequest.from_api(fetch_pull_request(cfg.repo, pr_number))
    pages = (
        [IssueComment.from_api(c) for c in page]
        for page in iter_comment_pages(
            cfg.repo,
            pr_number,
            per_page=cfg.comments_per_page,
            max_pages=cfg.max_comment_pages,
        )
    )
    header = render_document(cfg.repo, pr, pages, width=cfg.wrap_width)
    return header + generate_diff(pr.base_sha, pr.head_sha)


def review_payload(draft: ReviewDraft) -> dict[str, object]:
    payload = draft.to_payload()
    payload["event"] = review_event(draft.body)
    return payload


def main(argv: list[str]) -> int:
    """Main."""
    p = argparse.ArgumentParser(prog="review-pr.py", description="Review a GitHub PR in your editor.")
    p.add_argument("-p", "--project", default="", help="GitHub owner/repo name (overrides config)")
    p.add_argument("--config", default="", help="Path to config YAML.")
    p.add_argument("--dry-run", action="store_true", help="Print the review instead of posting it.")
    p.add_argument(
        "--document",
        default="",
        help="Parse an already-edited review document instead of fetching and editing.",
    )
    p.add_argument("pr", type=int, help="Pull request number")
    args = p.parse_args(argv)

    if args.pr <= 0:
        fail(f"invalid PR number: {args.pr}", code=2)
    config_path = Path(args.config).expanduser() if args.config else default_config_path()
    try:
        cfg = load_review_config(config_path).with_repo(args.project)
    except ConfigError as exc:
        fail(f"config error: {exc}", code=2)

    operation = "reading review document"
    try:
        if args.document:
            text = read_document(Path(args.document))
        else:
            operation = "fetching PR"
            document = build_document(cfg, args.pr)
            operation = "editing review document"
            text = edit_text(document, cfg.editor)

        draft = parse_review_document(text)
        if draft.unterminated_body:
            warn("top-level comment start marker has no end marker; top-level comments ignored")

        if args.dry_run:
            print(json.dumps(review_payload(draft), indent=2))
            return 0

        if not should_submit(draft):
            notice(f"Nothing to submit for PR {args.pr}.")
            return 0

        operation = "submitting review"
        notice(f"Submitting {len(draft.comments)} comments...")
        result = submit_review(cfg.repo, args.pr, draft) or {}
        url = result.get("html_url")
        notice(f"Posted review on PR {args.pr}" + (f": {url}" if isinstance(url, str) else "."))
    except (CommentPermissionError, TransientGitHubError) as exc:
        fail(f"PR {args.pr}: {operation}: {exc}")
    except subprocess.CalledProcessError as exc:
        fail(f"PR {args.pr}: {operation}: gh command failed: {(exc.stderr or '').strip() or exc}")
    except (GitError, EditorError, OSError, ValueError) as exc:
        fail(f"PR {args.pr}: {operation}: {exc}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
