"""Exceptions raised by bumpbot components."""

from __future__ import annotations

from typing import Optional, Sequence


class BumpbotError(Exception):
    """Base class for fatal errors that abort a run."""


class ConfigError(BumpbotError):
    """Raised for invalid configuration values."""


class ManifestError(BumpbotError):
    """Raised when the root package.json is missing or malformed."""


class CommandError(BumpbotError):
    """Raised when an external command cannot run or exits non-zero."""

    def __init__(
        self,
        command: str,
        args: Sequence[str] = (),
        exit_code: Optional[int] = None,
        stderr: str = "",
    ):
        self.command = command
        self.args_list = list(args)
        self.exit_code = exit_code
        self.stderr = stderr
        cmdline = " ".join([command, *self.args_list])
        detail = stderr.strip() or "no error output"
        if exit_code is None:
            message = f"{cmdline}: {detail}"
        else:
            message = f"{cmdline} exited with {exit_code}: {detail}"
        super().__init__(message)


class GitError(CommandError):
    """Raised when a git invocation fails."""


class HostingError(BumpbotError):
    """Raised when the hosting API rejects a request or is unreachable."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message if status is None else f"{message} (HTTP {status})")
