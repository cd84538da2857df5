#!/usr/bin/env python3
"""Parse an edited review document and print the review draft as JSON.

Reads PATH, or stdin when PATH is `-` or omitted. Output:

  {"commit_id": ..., "body": ..., "comments": [{"path", "position", "body"}],
   "event": "COMMENT" | "APPROVE" | "REQUEST_CHANGES", "submit": bool}

Keys whose value is unset (`commit_id`, `body`) are omitted.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from lib.editor import decode_document, read_document
from lib.github_reviews import review_event, should_submit
from lib.review_parser import parse_review_document


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(prog="parse-review-document.py")
    parser.add_argument("path", nargs="?", default="-", help="Document path (default: stdin)")
    args = parser.parse_args(argv)

    if args.path == "-":
        text = decode_document(sys.stdin.buffer.read())
    else:
        try:
            text = read_document(Path(args.path))
        except OSError as e:
            print(f"parse-review-document: unable to read {args.path}: {e}", file=sys.stderr)
            return 2

    draft = parse_review_document(text)
    if draft.unterminated_body:
        print(
            "parse-review-document: warning: unterminated top-level comment region ignored",
            file=sys.stderr,
        )

    payload = draft.to_payload()
    payload["event"] = review_event(draft.body)
    payload["submit"] = should_submit(draft)
    print(json.dumps(payload, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
