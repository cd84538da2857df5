"""Run the user's editor on a block of text."""

from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path

DEFAULT_EDITOR = "ed"

# Same list git uses (run-command.c) to decide an editor needs a shell,
# e.g. EDITOR="emacs -nw".
SHELL_METACHARS = "|&;<>()$`\\\"' \t\n*?[#~=%"


class EditorError(RuntimeError):
    """The editor could not be run or exited with an error."""


def resolve_editor(configured: str | None = None) -> str:
    for candidate in (configured, os.environ.get("VISUAL"), os.environ.get("EDITOR")):
        if candidate and candidate.strip():
            return candidate
    return DEFAULT_EDITOR


def editor_command(editor: str, filename: str) -> list[str]:
    if any(ch in SHELL_METACHARS for ch in editor):
        return ["sh", "-c", f'{editor} "$@"', "$EDITOR", filename]
    return [editor, filename]


def run_editor(filename: str, editor: str | None = None) -> None:
    """Run the editor on filename with the terminal attached."""
    cmd = editor_command(resolve_editor(editor), filename)
    try:
        result = subprocess.run(cmd, check=False)
    except OSError as exc:
        raise EditorError(f"invoking editor: {exc}") from exc
    if result.returncode != 0:
        raise EditorError(f"invoking editor: {cmd[0]} exited with status {result.returncode}")


def decode_document(data: bytes) -> str:
    """Decode a saved document; only `\\n` ends a line (no newline translation)."""
    return data.decode("utf-8", errors="replace")


def read_document(path: Path) -> str:
    return decode_document(path.read_bytes())


def edit_text(original: str, editor: str | None = None) -> str:
    """Let the user edit original; return the saved text."""
    with tempfile.NamedTemporaryFile(
        "w", encoding="utf-8", newline="", prefix="re-edit-", delete=False
    ) as handle:
        handle.write(original)
        path = Path(handle.name)

    try:
        run_editor(str(path), editor)
        return read_document(path)
    finally:
        path.unlink(missing_ok=True)
