"""Core data models shared by the collector, renderer, and orchestrator."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Optional

DEPENDENCY_TYPES = ("dependencies", "devDependencies", "optionalDependencies")


@dataclass(frozen=True)
class Manifest:
    """The root project descriptor (``package.json``)."""
    name: str
    version: str
    dependencies: Dict[str, str] = field(default_factory=dict)
    dev_dependencies: Dict[str, str] = field(default_factory=dict)
    optional_dependencies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        return cls(
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            dependencies=dict(data.get("dependencies") or {}),
            dev_dependencies=dict(data.get("devDependencies") or {}),
            optional_dependencies=dict(data.get("optionalDependencies") or {}),
        )

    def dependency_type(self, name: str) -> Optional[str]:
        """Return which mapping declares ``name``, or None for transitive packages."""
        if name in self.dependencies:
            return "dependencies"
        if name in self.dev_dependencies:
            return "devDependencies"
        if name in self.optional_dependencies:
            return "optionalDependencies"
        return None

    def declares(self, name: str) -> bool:
        return self.dependency_type(name) is not None

    @property
    def title(self) -> str:
        if self.version:
            return f"{self.name}@{self.version}"
        return self.name


@dataclass(frozen=True)
class PackageRecord:
    """Resolved metadata for one installed package."""
    name: str
    version: str
    fields: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageRecord":
        extra = {k: v for k, v in data.items() if k not in ("name", "version")}
        return cls(name=data["name"], version=data["version"], fields=extra)


class Snapshot(Mapping):
    """Immutable name -> PackageRecord mapping of everything installed at one instant."""

    def __init__(self, records: Iterable[PackageRecord] = ()):
        by_name: Dict[str, PackageRecord] = {}
        for record in sorted(records, key=lambda r: r.name):
            by_name[record.name] = record
        self._records = MappingProxyType(by_name)

    @classmethod
    def from_versions(cls, versions: Dict[str, str]) -> "Snapshot":
        return cls(PackageRecord(name=n, version=v) for n, v in versions.items())

    def __getitem__(self, name: str) -> PackageRecord:
        return self._records[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"Snapshot({self.versions()!r})"

    def version_of(self, name: str) -> Optional[str]:
        record = self._records.get(name)
        return record.version if record else None

    def versions(self) -> Dict[str, str]:
        return {name: record.version for name, record in self._records.items()}


@dataclass(frozen=True)
class DiffRow:
    """One package whose version differs between two snapshots."""
    name: str
    old_version: Optional[str]
    new_version: Optional[str]
    dependency_type: Optional[str] = None

    @property
    def added(self) -> bool:
        return self.old_version is None and self.new_version is not None

    @property
    def removed(self) -> bool:
        return self.old_version is not None and self.new_version is None

    @property
    def changed(self) -> bool:
        return not (self.added or self.removed)


@dataclass
class CommandResult:
    """Captured outcome of an external process."""
    command: str
    args: List[str]
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def __str__(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass(frozen=True)
class RemoteRepo:
    """Hosting coordinates parsed from a git remote URL."""
    host: str
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class PullRequest:
    number: int
    url: str = ""


class RunOutcome(str, Enum):
    """Terminal states of an orchestrator run."""

    FOUND_EXISTING = "found-existing"
    NO_CHANGES = "no-changes"
    DRY_RUN = "dry-run"
    PULL_REQUEST_CREATED = "pull-request-created"


@dataclass(frozen=True)
class RunResult:
    """Terminal output of the orchestrator."""
    outcome: RunOutcome
    branch: str
    report: str = ""
    pull_request: Optional[PullRequest] = None

    def __post_init__(self):
        if self.outcome is RunOutcome.PULL_REQUEST_CREATED and self.pull_request is None:
            raise ValueError("pull-request-created results must carry the pull request")

    def __str__(self) -> str:
        if self.outcome is RunOutcome.FOUND_EXISTING:
            return f"Found existing branch {self.branch}"
        if self.outcome is RunOutcome.NO_CHANGES:
            return "Did not find outdated dependencies."
        if self.outcome is RunOutcome.DRY_RUN:
            return f"Dry run finished for {self.branch}; nothing was pushed."
        return f"Opened pull request #{self.pull_request.number} from {self.branch}"
