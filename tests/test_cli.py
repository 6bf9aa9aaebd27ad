"""Integration tests for CLI commands."""

import json
from pathlib import Path

from typer.testing import CliRunner

from bumpbot import __version__
from bumpbot.cli import app
from bumpbot.errors import CommandError, ManifestError
from bumpbot.models import PullRequest, RunOutcome, RunResult

runner = CliRunner()


class StubOrchestrator:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.extra_args = None
        self.settings = None

    def run(self, extra_args=()):
        self.extra_args = list(extra_args)
        if self.error:
            raise self.error
        return self.result


def _patch_orchestrator(monkeypatch, stub):
    def build(settings):
        stub.settings = settings
        return stub

    monkeypatch.setattr("bumpbot.cli._build_orchestrator", build)


class TestRunCommand:
    """Tests for 'bumpbot run'."""

    def test_found_existing(self, monkeypatch, workspace: Path):
        stub = StubOrchestrator(RunResult(RunOutcome.FOUND_EXISTING, branch="origin/deps/1/abc"))
        _patch_orchestrator(monkeypatch, stub)

        result = runner.invoke(app, ["run", "--workspace", str(workspace)])

        assert result.exit_code == 0
        assert "Found existing branch" in result.stdout
        assert "origin/deps/1/abc" in result.stdout

    def test_no_changes(self, monkeypatch, workspace: Path):
        _patch_orchestrator(monkeypatch, StubOrchestrator(RunResult(RunOutcome.NO_CHANGES, branch="b")))

        result = runner.invoke(app, ["run", "-w", str(workspace)])

        assert result.exit_code == 0
        assert "Did not find outdated dependencies" in result.stdout

    def test_dry_run_prints_report(self, monkeypatch, workspace: Path):
        stub = StubOrchestrator(RunResult(RunOutcome.DRY_RUN, branch="b", report="left-pad 1.0.0 1.1.0"))
        _patch_orchestrator(monkeypatch, stub)

        result = runner.invoke(app, ["run", "-w", str(workspace), "--dry-run"])

        assert result.exit_code == 0
        assert "left-pad 1.0.0 1.1.0" in result.stdout
        assert "Dry run" in result.stdout
        assert stub.settings.execute is False

    def test_pull_request_created(self, monkeypatch, workspace: Path):
        pr = PullRequest(5, "https://github.com/acme/demo/pull/5")
        stub = StubOrchestrator(RunResult(RunOutcome.PULL_REQUEST_CREATED, branch="b", pull_request=pr))
        _patch_orchestrator(monkeypatch, stub)

        result = runner.invoke(app, ["run", "-w", str(workspace), "--execute", "--keep", "--shadows"])

        assert result.exit_code == 0
        assert "#5" in result.stdout
        assert stub.settings.execute is True
        assert stub.settings.keep_branch is True
        assert stub.settings.include_transitive is True

    def test_extra_args_forwarded(self, monkeypatch, workspace: Path):
        stub = StubOrchestrator(RunResult(RunOutcome.NO_CHANGES, branch="b"))
        _patch_orchestrator(monkeypatch, stub)

        result = runner.invoke(app, ["run", "-w", str(workspace), "--target", "minor"])

        assert result.exit_code == 0
        assert stub.extra_args == ["--target", "minor"]

    def test_env_execute(self, monkeypatch, workspace: Path):
        stub = StubOrchestrator(RunResult(RunOutcome.NO_CHANGES, branch="b"))
        _patch_orchestrator(monkeypatch, stub)
        monkeypatch.setenv("EXECUTE", "true")
        monkeypatch.setenv("GIT_BRANCH_PREFIX", "deps/")

        runner.invoke(app, ["run", "-w", str(workspace)])

        assert stub.settings.execute is True
        assert stub.settings.branch_prefix == "deps/"

    def test_fatal_error_exits_nonzero(self, monkeypatch, workspace: Path):
        error = CommandError("ncu", ["-u"], 1, "registry unreachable")
        _patch_orchestrator(monkeypatch, StubOrchestrator(error=error))

        result = runner.invoke(app, ["run", "-w", str(workspace)])

        assert result.exit_code == 1
        assert "registry unreachable" in result.stdout

    def test_manifest_error_exits_nonzero(self, monkeypatch, temp_dir: Path):
        _patch_orchestrator(monkeypatch, StubOrchestrator(error=ManifestError("package.json not found")))

        result = runner.invoke(app, ["run", "-w", str(temp_dir)])

        assert result.exit_code == 1
        assert "package.json not found" in result.stdout


class TestSnapshotCommand:
    """Tests for 'bumpbot snapshot'."""

    def test_json(self, workspace: Path):
        result = runner.invoke(app, ["snapshot", "-w", str(workspace), "--json"])

        assert result.exit_code == 0
        assert json.loads(result.stdout) == {"left-pad": "1.0.0", "typescript": "5.0.0"}

    def test_json_with_shadows(self, workspace: Path):
        result = runner.invoke(app, ["snapshot", "-w", str(workspace), "--json", "--shadows"])

        assert "is-number" in json.loads(result.stdout)

    def test_table(self, workspace: Path):
        result = runner.invoke(app, ["snapshot", "-w", str(workspace)])

        assert result.exit_code == 0
        assert "left-pad" in result.stdout

    def test_missing_manifest(self, temp_dir: Path):
        result = runner.invoke(app, ["snapshot", "-w", str(temp_dir)])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestDiffCommand:
    """Tests for 'bumpbot diff'."""

    def test_markdown(self, temp_dir: Path, workspace: Path):
        old = temp_dir / "old.json"
        new = temp_dir / "new.json"
        old.write_text(json.dumps({"left-pad": "1.0.0", "typescript": "5.0.0"}))
        new.write_text(json.dumps({"left-pad": "1.1.0", "typescript": "5.0.0"}))

        result = runner.invoke(
            app, ["diff", str(old), str(new), "--manifest", str(workspace / "package.json"), "--markdown"]
        )

        assert result.exit_code == 0
        assert "## demo-app@1.0.0" in result.stdout
        assert "| 1.0.0 | 1.1.0 |" in result.stdout
        assert "typescript" not in result.stdout

    def test_table_accepts_package_objects(self, temp_dir: Path):
        old = temp_dir / "old.json"
        new = temp_dir / "new.json"
        old.write_text(json.dumps({"alpha": {"version": "1.0.0"}}))
        new.write_text(json.dumps({"alpha": {"version": "2.0.0"}}))

        result = runner.invoke(app, ["diff", str(old), str(new)])

        assert result.exit_code == 0
        assert "alpha" in result.stdout
        assert "2.0.0" in result.stdout

    def test_invalid_snapshot_file(self, temp_dir: Path):
        old = temp_dir / "old.json"
        old.write_text("[1, 2]")

        result = runner.invoke(app, ["diff", str(old), str(old)])

        assert result.exit_code != 0


class TestConfigCommands:
    """Tests for 'bumpbot config'."""

    def test_set_then_show(self):
        result = runner.invoke(app, ["config", "set", "prefix", "deps/"])
        assert result.exit_code == 0
        assert "Saved prefix" in result.stdout

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "deps/" in result.stdout
        assert "(not set)" in result.stdout

    def test_set_unknown_key(self):
        result = runner.invoke(app, ["config", "set", "colour", "blue"])

        assert result.exit_code == 1
        assert "Unknown setting" in result.stdout


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout
