"""Typed loader for the review-edit YAML config.

Example (`~/.config/review-edit/config.yml`):

    repo: cockroachdb/cockroach
    remote_url: https://github.com/{repo}
    ref_prefix: reviews/pr
    editor: vim
    comments_per_page: 100
    max_comment_pages: 20
    wrap_width: 70

Every key is optional.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

from lib.github import parse_repo

CONFIG_ENV = "REVIEW_EDIT_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/review-edit/config.yml")

DEFAULT_REPO = "cockroachdb/cockroach"
DEFAULT_REMOTE_URL = "https://github.com/{repo}"


class ConfigError(RuntimeError):
    """Invalid or unreadable config."""


@dataclass(frozen=True)
class ReviewConfig:
    repo: str = DEFAULT_REPO
    remote_url: str = DEFAULT_REMOTE_URL
    ref_prefix: str = "reviews/pr"
    editor: str | None = None
    comments_per_page: int = 100
    max_comment_pages: int = 20
    wrap_width: int = 70

    def with_repo(self, repo: str | None) -> "ReviewConfig":
        """Copy with repo replaced (command line `-p` wins over the file)."""
        if not repo:
            return self
        return replace(self, repo=_require_repo(repo, "-p"))

    def fetch_url(self) -> str:
        return self.remote_url.replace("{repo}", self.repo)


def _require_mapping(value: Any, ctx: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ConfigError(f"{ctx}: expected mapping")
    return value


def _require_str(value: Any, ctx: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    s = value.strip()
    if not s:
        raise ConfigError(f"{ctx}: must be non-empty")
    return s


def _optional_str(value: Any, ctx: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{ctx}: expected string")
    s = value.strip()
    return s or None


def _require_int_range(value: Any, ctx: str, *, low: int, high: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{ctx}: expected integer")
    if value < low:
        raise ConfigError(f"{ctx}: must be >= {low}")
    if high is not None and value > high:
        raise ConfigError(f"{ctx}: must be <= {high}")
    return value


def _require_repo(value: Any, ctx: str) -> str:
    repo = _require_str(value, ctx)
    try:
        parse_repo(repo)
    except ValueError as e:
        raise ConfigError(f"{ctx}: {e}") from None
    return repo


def _load_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text())
    except FileNotFoundError:
        raise ConfigError(f"missing config file: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e


def default_config_path() -> Path | None:
    """Config path from $REVIEW_EDIT_CONFIG, else the per-user file if present."""
    env_path = os.environ.get(CONFIG_ENV, "").strip()
    if env_path:
        return Path(env_path).expanduser()
    candidate = DEFAULT_CONFIG_PATH.expanduser()
    return candidate if candidate.is_file() else None


def load_review_config(path: Path | None) -> ReviewConfig:
    """Load config from path; defaults when path is None."""
    if path is None:
        return ReviewConfig()

    raw = _load_yaml(path)
    # An empty file is a valid, all-defaults config.
    if raw is None:
        return ReviewConfig()
    cfg = _require_mapping(raw, "config")

    defaults = ReviewConfig()
    repo = defaults.repo
    if cfg.get("repo") is not None:
        repo = _require_repo(cfg.get("repo"), "config.repo")

    remote_url = defaults.remote_url
    if cfg.get("remote_url") is not None:
        remote_url = _require_str(cfg.get("remote_url"), "config.remote_url")

    ref_prefix = defaults.ref_prefix
    if cfg.get("ref_prefix") is not None:
        ref_prefix = _require_str(cfg.get("ref_prefix"), "config.ref_prefix").strip("/")
        if not ref_prefix:
            raise ConfigError("config.ref_prefix: must be non-empty")

    editor = _optional_str(cfg.get("editor"), "config.editor")

    comments_per_page = defaults.comments_per_page
    if "comments_per_page" in cfg:
        comments_per_page = _require_int_range(
            cfg.get("comments_per_page"), "config.comments_per_page", low=1, high=100
        )

    max_comment_pages = defaults.max_comment_pages
    if "max_comment_pages" in cfg:
        max_comment_pages = _require_int_range(
            cfg.get("max_comment_pages"), "config.max_comment_pages", low=1
        )

    wrap_width = defaults.wrap_width
    if "wrap_width" in cfg:
        wrap_width = _require_int_range(cfg.get("wrap_width"), "config.wrap_width", low=10)

    return ReviewConfig(
        repo=repo,
        remote_url=remote_url,
        ref_prefix=ref_prefix,
        editor=editor,
        comments_per_page=comments_per_page,
        max_comment_pages=max_comment_pages,
        wrap_width=wrap_width,
    )
