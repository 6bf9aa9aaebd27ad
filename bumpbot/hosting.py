"""GitHub (and GitHub Enterprise) REST client for opening pull requests."""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Iterable, Optional, Protocol

from . import __version__
from .errors import HostingError
from .models import PullRequest, RemoteRepo

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
GITHUB_API = "https://api.github.com"
USER_AGENT = f"bumpbot/{__version__}"

_SCP_REMOTE = re.compile(r"^(?:[\w.-]+@)?(?P<host>[\w.-]+):(?P<path>[^/].*)$")


class HostingClient(Protocol):
    """Operations the orchestrator needs from the hosting service."""

    def get_default_branch(self, owner: str, repo: str) -> str: ...

    def create_pull_request(
        self, owner: str, repo: str, base: str, head: str, title: str, body: str
    ) -> PullRequest: ...

    def add_labels(self, owner: str, repo: str, number: int, labels: Iterable[str]) -> None: ...


def parse_remote_url(url: str) -> RemoteRepo:
    """Parse a git remote URL into host, owner and repository name.

    Supports ``https://host/owner/repo.git``, ``ssh://git@host/owner/repo``
    and scp-style ``git@host:owner/repo.git`` remotes.

    Raises:
        HostingError: If the URL has no owner/repository path.
    """
    url = url.strip()
    if "://" in url:
        parsed = urllib.parse.urlparse(url)
        host = parsed.hostname or ""
        path = parsed.path
    else:
        match = _SCP_REMOTE.match(url)
        if not match:
            raise HostingError(f"Unrecognised remote URL: {url}")
        host = match.group("host")
        path = match.group("path")

    parts = [p for p in path.strip("/").split("/") if p]
    if not host or len(parts) < 2:
        raise HostingError(f"Remote URL has no owner/repository: {url}")
    name = parts[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return RemoteRepo(host=host, owner=parts[-2], name=name)


def api_base_for(host: str) -> str:
    """API root for ``host``; Enterprise installs serve it under ``/api/v3``."""
    if host == GITHUB_HOST:
        return GITHUB_API
    return f"https://{host}/api/v3"


class GitHubClient:
    """Minimal REST client covering repository lookup, PR creation and labels."""

    def __init__(
        self,
        token: str,
        base_url: str = GITHUB_API,
        user_agent: str = USER_AGENT,
        timeout: float = 30.0,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout

    @classmethod
    def for_remote(cls, remote: RemoteRepo, token: str, timeout: float = 30.0) -> "GitHubClient":
        return cls(token=token, base_url=api_base_for(remote.host), timeout=timeout)

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        if data is not None:
            headers["Content-Type"] = "application/json"

        req = urllib.request.Request(url, data=data, headers=headers, method=method)
        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            detail = e.read().decode("utf-8", errors="replace") if e.fp else ""
            raise HostingError(f"{method} {path} failed: {detail or e.reason}", status=e.code) from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise HostingError(f"{method} {path} failed: {e}") from e

        if not body:
            return None
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise HostingError(f"{method} {path} returned invalid JSON") from e

    def get_default_branch(self, owner: str, repo: str) -> str:
        data = self._request("GET", f"/repos/{owner}/{repo}")
        try:
            return data["default_branch"]
        except (KeyError, TypeError) as e:
            raise HostingError(f"Repository {owner}/{repo} has no default branch") from e

    def create_pull_request(
        self, owner: str, repo: str, base: str, head: str, title: str, body: str
    ) -> PullRequest:
        data = self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            {"base": base, "head": head, "title": title, "body": body},
        )
        try:
            return PullRequest(number=int(data["number"]), url=data.get("html_url", ""))
        except (KeyError, TypeError, ValueError) as e:
            raise HostingError("Pull request response has no number") from e

    def add_labels(self, owner: str, repo: str, number: int, labels: Iterable[str]) -> None:
        self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{number}/labels",
            {"labels": list(labels)},
        )
