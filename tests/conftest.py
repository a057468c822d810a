"""
Shared fixtures: an in-memory VcsQuery with canned repository answers.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Set, Tuple, Union

import pytest

from submodule_audit.models import CommitDetails, CommitLookupError, CommitSide, Release
from submodule_audit.query_interface import VcsQuery


BASE_TIME = datetime(2019, 1, 1, tzinfo=timezone.utc)


def ts(day: int, hour: int = 0) -> datetime:
    """Timestamp ``day`` days (and ``hour`` hours) after 2019-01-01 UTC."""
    return BASE_TIME + timedelta(days=day, hours=hour)


RangeMember = Union[str, Tuple[str, CommitSide]]


class FakeVcsQuery(VcsQuery):
    """VcsQuery returning canned data and recording every call."""

    def __init__(
        self,
        log_lines: Optional[Iterable[str]] = None,
        tags: Optional[List[Release]] = None,
        host_commits: Optional[Dict[str, CommitDetails]] = None,
        dependent_commits: Optional[Dict[str, CommitDetails]] = None,
        ranges: Optional[Dict[Tuple[Optional[str], str], List[RangeMember]]] = None,
        ancestors: Optional[Set[str]] = None,
        refs: Optional[Set[str]] = None,
    ) -> None:
        self.log_lines = list(log_lines or [])
        self.tags = list(tags or [])
        self.host_commits = dict(host_commits or {})
        self.dependent_commits = dict(dependent_commits or {})
        self.ranges = dict(ranges or {})
        self.ancestors = set(ancestors or set())
        self.refs = set(refs if refs is not None else {"upstream/master"})
        self.calls: List[Tuple] = []

    def host_log_lines(self, submodule_path: str):
        self.calls.append(("host_log_lines", submodule_path))
        return iter(self.log_lines)

    def host_tags(self) -> List[Release]:
        self.calls.append(("host_tags",))
        return list(self.tags)

    def host_commit(self, commit_id: str) -> CommitDetails:
        self.calls.append(("host_commit", commit_id))
        if commit_id not in self.host_commits:
            raise CommitLookupError(commit_id)
        return self.host_commits[commit_id]

    def dependent_commit_exists(self, commitish: str) -> bool:
        self.calls.append(("dependent_commit_exists", commitish))
        return commitish in self.dependent_commits or commitish in self.refs

    def dependent_range(self, start_id, end_id):
        self.calls.append(("dependent_range", start_id, end_id))
        members = []
        for member in self.ranges.get((start_id, end_id), []):
            if isinstance(member, tuple):
                members.append(member)
            else:
                members.append((member, CommitSide.RIGHT))
        return members

    def dependent_commit(self, commit_id: str) -> CommitDetails:
        self.calls.append(("dependent_commit", commit_id))
        return self.dependent_commits[commit_id]

    def is_ancestor(self, commit_id: str, ref: str) -> bool:
        self.calls.append(("is_ancestor", commit_id, ref))
        return commit_id in self.ancestors


def dependent(commit_id: str, day: int, subject: str = "") -> CommitDetails:
    return CommitDetails(commit_id=commit_id, committed_at=ts(day), subject=subject or f"Commit {commit_id}")


@pytest.fixture()
def scenario_vcs() -> FakeVcsQuery:
    """Host bump c0ffee moves src/tools/dep from aaaa111 to bbbb222; d2 was dropped upstream."""
    return FakeVcsQuery(
        log_lines=[
            "c0ffee\n",
            "Submodule src/tools/dep aaaa111...bbbb222:\n",
        ],
        tags=[
            Release("v1", ts(0)),
            Release("v2", ts(10)),
            Release("v3", ts(20)),
        ],
        host_commits={"c0ffee": CommitDetails("c0ffee", ts(12), "Update dep")},
        dependent_commits={
            "aaaa111": dependent("aaaa111", 1),
            "bbbb222": dependent("bbbb222", 9),
            "d1": dependent("d1", 5, "Fix completion"),
            "d2": dependent("d2", 8, "Experimental hack"),
        },
        ranges={("aaaa111", "bbbb222"): ["d1", "d2"]},
        ancestors={"d1"},
    )
