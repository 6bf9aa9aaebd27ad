"""Thin git wrapper used by the orchestrator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Protocol

from .errors import GitError
from .runner import CommandRunner

logger = logging.getLogger(__name__)


class GitClient(Protocol):
    """Operations the orchestrator needs from source control."""

    def fetch(self, remote: str) -> None: ...
    def list_branches(self) -> List[str]: ...
    def current_branch(self) -> str: ...  # branch name or detached SHA
    def checkout(self, ref: str) -> None: ...
    def checkout_new(self, branch: str) -> None: ...
    def status(self) -> List[str]: ...
    def add_all(self) -> None: ...
    def configure_identity(self, name: str, email: str) -> None: ...
    def commit(self, message: str) -> None: ...
    def push(self, remote: str, branch: str) -> None: ...
    def delete_branch(self, branch: str) -> None: ...
    def remote_url(self, remote: str) -> str: ...


def parse_porcelain(output: str) -> List[str]:
    """Extract changed paths from ``git status --porcelain`` output."""
    paths = []
    for line in output.splitlines():
        if len(line) < 4:
            continue
        path = line[3:]
        if " -> " in path:
            path = path.split(" -> ", 1)[1]
        paths.append(path.strip('"'))
    return paths


class Git:
    """Runs git subcommands in the workspace; any failure raises GitError."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @classmethod
    def for_workspace(cls, workspace: Path) -> "Git":
        return cls(CommandRunner(workspace))

    def _git(self, *args: str) -> str:
        result = self.runner.run("git", list(args), stream=False)
        if not result.ok:
            raise GitError("git", result.args, result.exit_code, result.stderr)
        return result.stdout

    def fetch(self, remote: str) -> None:
        self._git("fetch", remote)

    def list_branches(self) -> List[str]:
        out = self._git("branch", "--all", "--format=%(refname:short)")
        branches = [line.strip() for line in out.splitlines() if line.strip()]
        logger.debug("branches: %s", branches)
        return branches

    def current_branch(self) -> str:
        """Name of the checked-out branch, or the commit SHA on a detached HEAD."""
        name = self._git("rev-parse", "--abbrev-ref", "HEAD").strip()
        if name == "HEAD":
            name = self._git("rev-parse", "HEAD").strip()
            logger.debug("detached HEAD at %s", name)
        return name

    def checkout(self, ref: str) -> None:
        self._git("checkout", ref)

    def checkout_new(self, branch: str) -> None:
        self._git("checkout", "-b", branch)

    def status(self) -> List[str]:
        return parse_porcelain(self._git("status", "--porcelain"))

    def add_all(self) -> None:
        self._git("add", "--all")

    def configure_identity(self, name: str, email: str) -> None:
        self._git("config", "user.name", name)
        self._git("config", "user.email", email)

    def commit(self, message: str) -> None:
        self._git("commit", "-m", message)

    def push(self, remote: str, branch: str) -> None:
        self._git("push", remote, branch)

    def delete_branch(self, branch: str) -> None:
        self._git("branch", "-D", branch)

    def remote_url(self, remote: str) -> str:
        return self._git("remote", "get-url", remote).strip()
