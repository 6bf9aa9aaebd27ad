"""Run external commands (npm, yarn, the upgrade tool) inside the workspace."""

from __future__ import annotations

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import IO, List, Optional, Sequence, Union

from .errors import CommandError
from .models import CommandResult

logger = logging.getLogger(__name__)

YARN_LOCK = "yarn.lock"


def detect_package_manager(workspace: Path) -> str:
    """Return ``"yarn"`` when the workspace has a yarn.lock, otherwise ``"npm"``."""
    if (Path(workspace) / YARN_LOCK).is_file():
        return "yarn"
    return "npm"


def _tee(source: IO[str], sink: IO[str], captured: List[str]) -> None:
    for line in iter(source.readline, ""):
        captured.append(line)
        sink.write(line)
        sink.flush()
    source.close()


class CommandRunner:
    """Spawns processes rooted at the workspace directory.

    With ``stream_output`` enabled the child's stdout/stderr are forwarded
    live to our own streams while still being captured.
    """

    def __init__(self, workspace: Path, stream_output: bool = False):
        self.workspace = Path(workspace)
        self.stream_output = stream_output

    def run(
        self,
        command: str,
        args: Union[Sequence[str], str, None] = None,
        stream: Optional[bool] = None,
    ) -> CommandResult:
        """Run ``command`` with ``args`` and capture its output.

        A non-zero exit code is returned to the caller, not raised.

        Raises:
            CommandError: If the executable cannot be started at all.
        """
        argv = [args] if isinstance(args, str) else list(args or [])
        stream = self.stream_output if stream is None else stream
        logger.debug("run %s %s (cwd=%s)", command, argv, self.workspace)
        try:
            if stream:
                return self._run_streaming(command, argv)
            proc = subprocess.run(
                [command, *argv],
                cwd=self.workspace,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise CommandError(command, argv, stderr=str(exc)) from exc
        result = CommandResult(command, argv, proc.stdout, proc.stderr, proc.returncode)
        logger.debug("%s exited with %d", result, result.exit_code)
        return result

    def run_checked(
        self,
        command: str,
        args: Union[Sequence[str], str, None] = None,
        stream: Optional[bool] = None,
    ) -> CommandResult:
        """Like :meth:`run` but raise CommandError on a non-zero exit."""
        result = self.run(command, args, stream=stream)
        if not result.ok:
            raise CommandError(command, result.args, result.exit_code, result.stderr)
        return result

    def install(self) -> CommandResult:
        """Install dependencies with the detected package manager."""
        manager = detect_package_manager(self.workspace)
        logger.debug("use %s", manager)
        return self.run_checked(manager, ["install"])

    def _run_streaming(self, command: str, argv: List[str]) -> CommandResult:
        proc = subprocess.Popen(
            [command, *argv],
            cwd=self.workspace,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
        out: List[str] = []
        err: List[str] = []
        readers = [
            threading.Thread(target=_tee, args=(proc.stdout, sys.stdout, out), daemon=True),
            threading.Thread(target=_tee, args=(proc.stderr, sys.stderr, err), daemon=True),
        ]
        for reader in readers:
            reader.start()
        exit_code = proc.wait()
        for reader in readers:
            reader.join()
        return CommandResult(command, argv, "".join(out), "".join(err), exit_code)
