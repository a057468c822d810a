"""
Data models for the submodule audit tool.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional


NO_RELEASE = "None"

DEFAULT_SUBMODULE_PATH = "src/tools/rls"
DEFAULT_UPSTREAM_REF = "upstream/master"
DEFAULT_QUERY_TIMEOUT = 120.0


def is_null_commit_id(commit_id: str) -> bool:
    """Return True for the all-zero id git prints when a pointer has no prior state."""
    return bool(commit_id) and set(commit_id) == {"0"}


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp as printed by git (``%cI``, ``iso-strict``)."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


class BumpAnnotation(Enum):
    """Trailing annotation of a ``Submodule <path> <range>`` status line."""

    RANGE = "range"
    NEW_SUBMODULE = "new submodule"
    COMMITS_NOT_PRESENT = "commits not present"
    PLAIN = "plain"


class CommitSide(Enum):
    """Which endpoint of a symmetric range a commit is reachable from."""

    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class CommitRange:
    """Old and new submodule pointer of a single bump."""

    start_id: str
    end_id: str

    @property
    def has_start(self) -> bool:
        """False when the old pointer is the null id (freshly added submodule)."""
        return not is_null_commit_id(self.start_id)

    def __str__(self) -> str:
        return f"{self.start_id}...{self.end_id}"


@dataclass(frozen=True)
class SubmoduleBump:
    """A host commit that moved the recorded submodule pointer."""

    host_commit_id: str
    dependent_range: CommitRange
    annotation: BumpAnnotation = BumpAnnotation.PLAIN


@dataclass(frozen=True)
class Release:
    """A tagged release of the host project."""

    tag_name: str
    created_at: datetime


@dataclass(frozen=True)
class CommitDetails:
    """Timestamp, id and subject of a commit."""

    commit_id: str
    committed_at: datetime
    subject: str = ""


# Host commits are described with the same record as dependent lookups.
HostCommitDetails = CommitDetails


@dataclass(frozen=True)
class DependentCommit:
    """A dependent-repository commit inside a bump's range."""

    commit_id: str
    committed_at: datetime
    subject: str
    is_ancestor_of_upstream: bool
    side: CommitSide = CommitSide.RIGHT

    @classmethod
    def from_details(
        cls, details: CommitDetails, is_ancestor: bool, side: CommitSide = CommitSide.RIGHT
    ) -> DependentCommit:
        return cls(
            commit_id=details.commit_id,
            committed_at=details.committed_at,
            subject=details.subject,
            is_ancestor_of_upstream=is_ancestor,
            side=side,
        )

    @property
    def is_orphan(self) -> bool:
        return not self.is_ancestor_of_upstream


@dataclass
class ReportEntry:
    """One host bump together with the dependent commits it shipped."""

    release: str
    host_commit: CommitDetails
    children: List[DependentCommit] = field(default_factory=list)

    @property
    def has_orphans(self) -> bool:
        return any(child.is_orphan for child in self.children)


@dataclass
class ReportSummary:
    """Aggregate counts over a report, used for the closing summary."""

    releases: int = 0
    bumps: int = 0
    dependent_commits: int = 0
    orphan_commits: int = 0
    releases_with_orphans: List[str] = field(default_factory=list)


@dataclass
class AuditConfig:
    """Run configuration, built once at startup."""

    host_repo: Path = field(default_factory=Path.cwd)
    dependent_repo: Optional[Path] = None
    submodule_path: str = DEFAULT_SUBMODULE_PATH
    upstream_ref: str = DEFAULT_UPSTREAM_REF
    skip_missing: bool = False
    query_timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT

    def __post_init__(self) -> None:
        """Ensure paths are absolute; default the dependent repo to the submodule checkout."""
        self.host_repo = Path(self.host_repo).resolve()
        if self.dependent_repo is None:
            self.dependent_repo = self.host_repo / self.submodule_path
        self.dependent_repo = Path(self.dependent_repo).resolve()

    def as_dict(self) -> Dict[str, str]:
        return {
            "host_repo": str(self.host_repo),
            "dependent_repo": str(self.dependent_repo),
            "submodule_path": self.submodule_path,
            "upstream_ref": self.upstream_ref,
            "skip_missing": str(self.skip_missing),
            "query_timeout": str(self.query_timeout),
        }


class AuditError(Exception):
    """Base exception for audit operations."""

    pass


class ParseError(AuditError, ValueError):
    """Exception raised for malformed bump records or tag lines."""

    pass


class CommitLookupError(AuditError, LookupError):
    """Exception raised when a commit or ref does not exist in a repository."""

    def __init__(self, commit_id: str, repo_path: Optional[Path] = None, message: Optional[str] = None) -> None:
        self.commit_id = commit_id
        self.repo_path = repo_path
        where = f" in {repo_path}" if repo_path else ""
        super().__init__(message or f"Commit {commit_id} not found{where}")


class ExternalQueryError(AuditError):
    """Exception raised when a git query fails or returns unusable output."""

    pass
