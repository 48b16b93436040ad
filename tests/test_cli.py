"""Tests for the taskdeck command line."""

import json
import shutil

import httpx
import pytest
from rich.console import Console
from typer.testing import CliRunner

from taskdeck import __version__
from taskdeck.main import app
from taskdeck.services.api_client import ConsoleApiClient

from helpers import detail_payload, json_response, task_payload

runner = CliRunner()

TWO_FILES = """diff --git a/src/a.py b/src/a.py
--- a/src/a.py
+++ b/src/a.py
@@ -1 +1 @@
-old
+new
diff --git a/gone.txt b/gone.txt
--- a/gone.txt
+++ /dev/null
@@ -1 +0,0 @@
-bye
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in [
        "TASKDECK_API_URL",
        "TASKDECK_POLL_INTERVAL",
        "TASKDECK_RECONNECT_REFRESH",
        "TASKDECK_PUSH",
        "TASKDECK_HTTP_TIMEOUT",
    ]:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def service(monkeypatch):
    """Route the CLI's HTTP calls to an in-memory handler."""
    responses = {}

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.get(request.url.path) or httpx.Response(404, text="Not found")

    def client(settings):
        return ConsoleApiClient(settings.api_url, transport=httpx.MockTransport(handler))

    monkeypatch.setattr("taskdeck.main._client", client)
    return responses


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_verbose_and_quiet_conflict(self):
        result = runner.invoke(app, ["-v", "-q", "version"])

        assert result.exit_code == 1

    def test_invalid_setting_fails_cleanly(self, monkeypatch, service):
        monkeypatch.setenv("TASKDECK_POLL_INTERVAL", "often")

        result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 1
        assert "TASKDECK_POLL_INTERVAL" in result.stdout


class TestEnv:
    @pytest.fixture(autouse=True)
    def wide_console(self, monkeypatch):
        monkeypatch.setattr("taskdeck.main.console", Console(width=200))

    def test_lists_variables(self, monkeypatch):
        monkeypatch.setenv("TASKDECK_PUSH", "off")

        result = runner.invoke(app, ["env"])

        assert result.exit_code == 0
        assert "TASKDECK_POLL_INTERVAL" in result.stdout
        assert "TASKDECK_PUSH" in result.stdout
        assert "unset" in result.stdout

    def test_invalid_value_fails(self, monkeypatch):
        monkeypatch.setenv("TASKDECK_HTTP_TIMEOUT", "-5")

        result = runner.invoke(app, ["env"])

        assert result.exit_code == 1
        assert "-5 (invalid)" in result.stdout


class TestSnapshot:
    def _fill(self, service):
        service["/api/envs"] = json_response([{"envId": "env-1", "repoUrl": "git@host:org/repo.git"}])
        service["/api/tasks"] = json_response([task_payload("task-1")])
        service["/api/accounts"] = json_response({"accounts": [{"id": "acct-1"}], "activeAccountId": "acct-1"})

    def test_tables(self, service):
        self._fill(service)

        result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 0
        assert "env-1" in result.stdout
        assert "task-1" in result.stdout
        assert "acct-1" in result.stdout

    def test_json(self, service):
        self._fill(service)

        result = runner.invoke(app, ["snapshot", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["tasks"][0]["taskId"] == "task-1"
        assert data["accounts"]["activeAccountId"] == "acct-1"

    def test_service_error(self, service):
        service["/api/envs"] = httpx.Response(500, text="boom")

        result = runner.invoke(app, ["snapshot"])

        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestWatch:
    def test_finished_task_prints_entries_and_exits(self, service):
        service["/api/tasks/task-1"] = json_response(
            detail_payload("task-1", "completed", entries={"run-1": ["first line", "second line"]})
        )

        result = runner.invoke(app, ["watch", "task-1"])

        assert result.exit_code == 0
        assert "first line" in result.stdout
        assert "second line" in result.stdout
        assert "completed" in result.stdout

    def test_missing_task(self, service):
        result = runner.invoke(app, ["watch", "ghost"])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestDiff:
    def test_renders_file(self, tmp_path):
        patch = tmp_path / "change.diff"
        patch.write_text(TWO_FILES)

        result = runner.invoke(app, ["diff", str(patch)])

        assert result.exit_code == 0
        assert "src/a.py" in result.stdout
        assert "gone.txt" in result.stdout
        assert "2 files changed, +1 -2" in result.stdout

    def test_stdin(self):
        result = runner.invoke(app, ["diff"], input=TWO_FILES)

        assert result.exit_code == 0
        assert "+new" in result.stdout

    def test_large_files_withheld(self, tmp_path):
        patch = tmp_path / "change.diff"
        patch.write_text(TWO_FILES)

        result = runner.invoke(app, ["diff", str(patch), "--max-lines", "3"])

        assert result.exit_code == 0
        assert "+new" not in result.stdout
        assert "2 withheld" in result.stdout

    def test_reveal_one_file(self, tmp_path):
        patch = tmp_path / "change.diff"
        patch.write_text(TWO_FILES)

        result = runner.invoke(app, ["diff", str(patch), "--max-lines", "3", "--reveal", "src/a.py"])

        assert "+new" in result.stdout
        assert "-bye" not in result.stdout
        assert "1 withheld" in result.stdout

    def test_reveal_all(self, tmp_path):
        patch = tmp_path / "change.diff"
        patch.write_text(TWO_FILES)

        result = runner.invoke(app, ["diff", str(patch), "--max-lines", "3", "--all"])

        assert "-bye" in result.stdout
        assert "withheld" not in result.stdout

    def test_plain_unified_diff_without_git_header(self, tmp_path):
        patch = tmp_path / "plain.diff"
        patch.write_text("--- a\n+++ b\n@@ -1 +1 @@\n-x\n+y\n")

        result = runner.invoke(app, ["diff", str(patch)])

        assert "plain.diff" in result.stdout
        assert "1 files changed, +1 -1" in result.stdout

    def test_empty_input(self):
        result = runner.invoke(app, ["diff"], input="")

        assert result.exit_code == 0
        assert "No changes" in result.stdout

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_worktree(self, tmp_path):
        import git

        repo = git.Repo.init(tmp_path)
        target = tmp_path / "notes.txt"
        target.write_text("one\n")
        repo.index.add(["notes.txt"])
        actor = git.Actor("Test", "test@example.com")
        repo.index.commit("init", author=actor, committer=actor)
        target.write_text("one\ntwo\n")

        result = runner.invoke(app, ["diff", "--repo", str(tmp_path)])

        assert result.exit_code == 0
        assert "notes.txt" in result.stdout
        assert "+two" in result.stdout

    def test_not_a_repository(self, tmp_path):
        result = runner.invoke(app, ["diff", "--repo", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "Not a git repository" in result.stdout
