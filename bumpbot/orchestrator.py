"""Upgrade orchestrator: branch dedup, snapshot-diff-commit, conditional publish."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Sequence, Tuple

from .branching import find_existing_branch, format_branch, format_timestamp, manifest_digest
from .config_manager import Settings
from .diff_engine import DiffEngine
from .errors import CommandError, ManifestError
from .git import GitClient
from .hosting import GitHubClient, HostingClient, parse_remote_url
from .models import PullRequest, RemoteRepo, RunOutcome, RunResult, Snapshot
from .runner import CommandRunner
from .snapshot import SnapshotCollector, read_manifest

logger = logging.getLogger(__name__)

HostingFactory = Callable[[RemoteRepo, Settings], HostingClient]


def github_factory(remote: RemoteRepo, settings: Settings) -> HostingClient:
    return GitHubClient.for_remote(remote, settings.token, timeout=settings.http_timeout)


@dataclass(frozen=True)
class BranchContext:
    """The branch a run started on and the working branch it commits to."""
    base: str
    working: str
    timestamp: str


class UpgradeOrchestrator:
    """Sequences install, snapshot, upgrade, commit and publish for one workspace."""

    def __init__(
        self,
        settings: Settings,
        git: GitClient,
        runner: CommandRunner,
        collector: Optional[SnapshotCollector] = None,
        diff_engine: Optional[DiffEngine] = None,
        hosting_factory: HostingFactory = github_factory,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.settings = settings
        self.git = git
        self.runner = runner
        self.collector = collector or SnapshotCollector()
        self.diff_engine = diff_engine or DiffEngine()
        self.hosting_factory = hosting_factory
        self.clock = clock

    def run(self, extra_args: Sequence[str] = ()) -> RunResult:
        """Run the whole workflow once.

        Args:
            extra_args: Arguments forwarded to the upgrade command

        Returns:
            RunResult describing which terminal state was reached

        Raises:
            BumpbotError: On any fatal error; the working branch is left as is.
        """
        now = format_timestamp(self.clock())
        logger.info("Start process.")

        manifest_bytes = self._read_manifest_bytes()
        found, ctx = self._make_branch(manifest_bytes, now)
        if found:
            logger.info("Found existing branch %s", found)
            return RunResult(RunOutcome.FOUND_EXISTING, branch=found)

        old, new = self._upgrade(extra_args)
        changed = self._commit()
        self.git.checkout(ctx.base)

        if not changed:
            logger.info("Did not find outdated dependencies.")
            result = RunResult(RunOutcome.NO_CHANGES, branch=ctx.working)
        else:
            result = self._publish(ctx, old, new)

        self._cleanup(ctx)
        logger.debug("finished: %s", result)
        return result

    def _read_manifest_bytes(self) -> bytes:
        path = self.settings.manifest_path
        logger.debug("read %s", path)
        try:
            return path.read_bytes()
        except OSError as e:
            raise ManifestError(f"{path} not found") from e

    def _make_branch(self, manifest_bytes: bytes, now: str) -> Tuple[Optional[str], BranchContext]:
        logger.debug("START makeBranch")
        digest = manifest_digest(manifest_bytes)
        working = format_branch(self.settings.branch_prefix, now, digest)

        self.git.fetch(self.settings.remote)
        found = find_existing_branch(self.git.list_branches(), digest)
        logger.debug("found branch is %s", found)

        base = self.git.current_branch()
        if not found:
            self.git.checkout_new(working)
        logger.debug("END   makeBranch")
        return found, BranchContext(base=base, working=working, timestamp=now)

    def _collect(self) -> Snapshot:
        manifest = read_manifest(self.settings.manifest_path)
        return self.collector.collect(
            self.settings.workspace,
            manifest,
            include_transitive=self.settings.include_transitive,
        )

    def _upgrade(self, extra_args: Sequence[str]) -> Tuple[Snapshot, Snapshot]:
        logger.debug("START upgrade")
        self.runner.install()
        old = self._collect()

        command = self.settings.update_command
        args = [*self.settings.update_args, *extra_args]
        result = self.runner.run(command, args)
        if not result.ok:
            logger.debug("FAILED upgrade")
            raise CommandError(command, args, result.exit_code, result.stderr)

        self.runner.install()
        new = self._collect()
        logger.debug("END   upgrade")
        return old, new

    def _commit(self) -> bool:
        logger.debug("START commit")
        changed = self.git.status()
        if changed:
            logger.debug("changed files are %s", changed)
            self.git.add_all()
            self.git.configure_identity(self.settings.user_name, self.settings.user_email)
            self.git.commit(self.settings.commit_message)
        logger.debug("END   commit")
        return bool(changed)

    def _publish(self, ctx: BranchContext, old: Snapshot, new: Snapshot) -> RunResult:
        # Reports are built from the base branch's manifest
        manifest = read_manifest(self.settings.manifest_path)
        if not self.settings.execute:
            report = self.diff_engine.render_table(manifest, old, new)
            logger.info("git push is skipped because execute is disabled")
            logger.info("\n%s", report)
            return RunResult(RunOutcome.DRY_RUN, branch=ctx.working, report=report)

        body = self.diff_engine.render_markdown(manifest, old, new)
        pr = self._pull_request(ctx, body)
        return RunResult(
            RunOutcome.PULL_REQUEST_CREATED,
            branch=ctx.working,
            report=body,
            pull_request=pr,
        )

    def _pull_request(self, ctx: BranchContext, body: str) -> PullRequest:
        logger.debug("START pullRequest")
        remote_name = self.settings.remote
        self.git.push(remote_name, ctx.working)

        remote = parse_remote_url(self.git.remote_url(remote_name))
        client = self.hosting_factory(remote, self.settings)
        base = client.get_default_branch(remote.owner, remote.name)

        logger.debug("Pull Request create %s <- %s", base, ctx.working)
        pr = client.create_pull_request(
            remote.owner,
            remote.name,
            base=base,
            head=ctx.working,
            title=f"update dependencies at {ctx.timestamp}",
            body=body,
        )
        client.add_labels(remote.owner, remote.name, pr.number, [self.settings.label])
        logger.info("Opened pull request #%d on %s", pr.number, remote.full_name)
        logger.debug("END   pullRequest")
        return pr

    def _cleanup(self, ctx: BranchContext) -> None:
        if self.settings.keep_branch:
            logger.info("Keeping working branch %s", ctx.working)
            return
        logger.info("Delete working branch because keep is disabled")
        self.git.delete_branch(ctx.working)
