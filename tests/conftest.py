"""Pytest configuration and fixtures for bumpbot tests."""

import json
import logging
import shutil
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Generator, List, Optional

import pytest

from bumpbot.config_manager import ENV_KEYS, Settings
from bumpbot.models import CommandResult, PullRequest

ROOT_MANIFEST = {
    "name": "demo-app",
    "version": "1.0.0",
    "dependencies": {"left-pad": "^1.0.0"},
    "devDependencies": {"typescript": "^5.0.0"},
}


def write_package(workspace: Path, name: str, version: str, **extra) -> Path:
    """Write ``node_modules/<name>/package.json`` (scoped names included)."""
    package_dir = workspace / "node_modules" / name
    package_dir.mkdir(parents=True, exist_ok=True)
    path = package_dir / "package.json"
    path.write_text(json.dumps({"name": name, "version": version, **extra}))
    return path


def make_workspace(root: Path, manifest: Dict, installed: Dict[str, str]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "package.json").write_text(json.dumps(manifest, indent=2))
    for name, version in installed.items():
        write_package(root, name, version)
    return root


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    """Keep user config files and environment variables out of the tests."""
    for name in ENV_KEYS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("bumpbot.config.CONFIG_FILE", tmp_path / "home" / "config.toml")
    yield
    logger = logging.getLogger("bumpbot")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmp = Path(tempfile.mkdtemp())
    yield tmp
    shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    """A workspace with a root manifest and two installed packages."""
    return make_workspace(
        temp_dir / "project",
        ROOT_MANIFEST,
        {"left-pad": "1.0.0", "typescript": "5.0.0", "is-number": "7.0.0"},
    )


@pytest.fixture
def settings(workspace: Path) -> Settings:
    return Settings(
        workspace=workspace,
        branch_prefix="deps/",
        update_command="ncu",
        update_args=["-u"],
    )


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    return lambda: datetime(2024, 1, 1, 0, 0)


class FakeGit:
    """In-memory git collaborator recording every call."""

    def __init__(self, branches: Optional[List[str]] = None, current: str = "main"):
        self.branches = list(branches or [])
        self.current = current
        self.changed: List[str] = []
        self.calls: List[tuple] = []

    def fetch(self, remote):
        self.calls.append(("fetch", remote))

    def list_branches(self):
        self.calls.append(("list_branches",))
        return list(self.branches)

    def current_branch(self):
        return self.current

    def checkout(self, ref):
        self.calls.append(("checkout", ref))
        self.current = ref

    def checkout_new(self, branch):
        self.calls.append(("checkout_new", branch))
        self.branches.append(branch)
        self.current = branch

    def status(self):
        self.calls.append(("status",))
        return list(self.changed)

    def add_all(self):
        self.calls.append(("add_all",))

    def configure_identity(self, name, email):
        self.calls.append(("configure_identity", name, email))

    def commit(self, message):
        self.calls.append(("commit", message))

    def push(self, remote, branch):
        self.calls.append(("push", remote, branch))

    def delete_branch(self, branch):
        self.calls.append(("delete_branch", branch))
        self.branches.remove(branch)

    def remote_url(self, remote):
        return "git@github.com:acme/demo-app.git"

    def names(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeRunner:
    """Stands in for CommandRunner; ``on_upgrade`` mutates the workspace."""

    def __init__(self, on_upgrade: Optional[Callable[[], None]] = None, upgrade_exit: int = 0):
        self.on_upgrade = on_upgrade
        self.upgrade_exit = upgrade_exit
        self.calls: List[tuple] = []

    def install(self):
        self.calls.append(("install",))
        return CommandResult("npm", ["install"], "", "", 0)

    def run(self, command, args=None, stream=None):
        args = list(args or [])
        self.calls.append((command, *args))
        if self.upgrade_exit:
            return CommandResult(command, args, "", "ncu: registry unreachable", self.upgrade_exit)
        if self.on_upgrade:
            self.on_upgrade()
        return CommandResult(command, args, "", "", 0)


class FakeHosting:
    def __init__(self, default_branch: str = "main", number: int = 7):
        self.default_branch = default_branch
        self.number = number
        self.pull_requests: List[dict] = []
        self.labels: List[tuple] = []

    def get_default_branch(self, owner, repo):
        return self.default_branch

    def create_pull_request(self, owner, repo, base, head, title, body):
        self.pull_requests.append(
            {"owner": owner, "repo": repo, "base": base, "head": head, "title": title, "body": body}
        )
        return PullRequest(self.number, f"https://github.com/{owner}/{repo}/pull/{self.number}")

    def add_labels(self, owner, repo, number, labels):
        self.labels.append((owner, repo, number, list(labels)))


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()


@pytest.fixture
def fake_hosting() -> FakeHosting:
    return FakeHosting()
