"""Tests for lib.github gh CLI access."""
from __future__ import annotations

import json
import subprocess

import pytest

from lib.github import (
    CommentPermissionError,
    TransientGitHubError,
    _is_transient_error,
    _run_gh,
    fetch_pull_request,
    iter_comment_pages,
    parse_repo,
)


def _completed(args, stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(
        args=args, returncode=returncode, stdout=stdout, stderr=stderr
    )


class TestParseRepo:
    def test_owner_and_name(self):
        assert parse_repo("cockroachdb/cockroach") == ("cockroachdb", "cockroach")

    def test_strips_whitespace(self):
        assert parse_repo("  golang/go ") == ("golang", "go")

    @pytest.mark.parametrize("value", ["", "golang", "a/b/c", "/go", "golang/", "a b/c"])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError, match="owner/repo"):
            parse_repo(value)


class TestRunGh:
    def test_success_returns_result(self, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return _completed(cmd, stdout="{}")

        monkeypatch.setattr(subprocess, "run", fake_run)
        result = _run_gh(["api", "user"])
        assert result.stdout == "{}"
        assert calls == [["gh", "api", "user"]]

    def test_permission_error(self, monkeypatch):
        monkeypatch.setattr(
            subprocess,
            "run",
            lambda cmd, **kw: _completed(cmd, returncode=1, stderr="HTTP 403: Resource not accessible"),
        )
        with pytest.raises(CommentPermissionError):
            _run_gh(["api", "x"])

    def test_transient_error_is_not_retried(self, monkeypatch):
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return _completed(cmd, returncode=1, stderr="gh: Bad Gateway (HTTP 502)")

        monkeypatch.setattr(subprocess, "run", fake_run)
        with pytest.raises(TransientGitHubError):
            _run_gh(["api", "x"])
        assert len(calls) == 1

    def test_other_failure_raises_called_process_error(self, monkeypatch):
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: _completed(cmd, returncode=1, stderr="Not Found (HTTP 404)")
        )
        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            _run_gh(["api", "x"])
        assert "404" in exc_info.value.stderr

    def test_check_false_returns_failed_result(self, monkeypatch):
        monkeypatch.setattr(
            subprocess, "run", lambda cmd, **kw: _completed(cmd, returncode=1, stderr="nope")
        )
        result = _run_gh(["api", "x"], check=False)
        assert result.returncode == 1

    def test_transient_detection(self):
        assert _is_transient_error("HTTP 503 Service Unavailable")
        assert _is_transient_error("gh: error (http 504)")
        assert not _is_transient_error("HTTP 500")


class TestFetchPullRequest:
    def test_fetches_pull_endpoint(self, monkeypatch):
        calls: list[list[str]] = []

        def mock_run_gh(args, *, check=True):
            calls.append(args)
            return _completed(args, stdout=json.dumps({"number": 5, "title": "t"}))

        import lib.github as gh

        monkeypatch.setattr(gh, "_run_gh", mock_run_gh)
        data = fetch_pull_request("owner/repo", 5)
        assert calls == [["api", "repos/owner/repo/pulls/5"]]
        assert data["title"] == "t"

    def test_non_object_response_is_empty(self, monkeypatch):
        import lib.github as gh

        monkeypatch.setattr(gh, "_run_gh", lambda args, check=True: _completed(args, stdout="[]"))
        assert fetch_pull_request("owner/repo", 5) == {}


class TestIterCommentPages:
    def test_yields_each_page_until_short_page(self, monkeypatch):
        pages = {
            1: [{"id": 1}, {"id": 2}],
            2: [{"id": 3}],
        }
        calls: list[str] = []

        def mock_run_gh(args, *, check=True):
            endpoint = args[1]
            calls.append(endpoint)
            page = int(endpoint.rsplit("page=", 1)[1])
            return _completed(args, stdout=json.dumps(pages.get(page, [])))

        import lib.github as gh

        monkeypatch.setattr(gh, "_run_gh", mock_run_gh)
        result = list(iter_comment_pages("owner/repo", 9, per_page=2))
        assert result == [[{"id": 1}, {"id": 2}], [{"id": 3}]]
        assert calls == [
            "repos/owner/repo/issues/9/comments?per_page=2&page=1",
            "repos/owner/repo/issues/9/comments?per_page=2&page=2",
        ]

    def test_stops_on_empty_page(self, monkeypatch):
        import lib.github as gh

        responses = iter([json.dumps([{"id": 1}]), "[]"])
        monkeypatch.setattr(gh, "_run_gh", lambda args, check=True: _completed(args, stdout=next(responses)))
        assert list(iter_comment_pages("o/r", 1, per_page=1)) == [[{"id": 1}]]

    def test_stops_on_invalid_json(self, monkeypatch):
        import lib.github as gh

        monkeypatch.setattr(gh, "_run_gh", lambda args, check=True: _completed(args, stdout="not json"))
        assert list(iter_comment_pages("o/r", 1)) == []

    def test_respects_max_pages(self, monkeypatch):
        import lib.github as gh

        monkeypatch.setattr(
            gh, "_run_gh", lambda args, check=True: _completed(args, stdout=json.dumps([{"id": 1}]))
        )
        assert len(list(iter_comment_pages("o/r", 1, per_page=1, max_pages=3))) == 3

    def test_filters_non_dict_entries(self, monkeypatch):
        import lib.github as gh

        monkeypatch.setattr(
            gh, "_run_gh", lambda args, check=True: _completed(args, stdout=json.dumps([{"id": 1}, "x"]))
        )
        assert list(iter_comment_pages("o/r", 1)) == [[{"id": 1}]]
