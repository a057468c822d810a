"""
GitPython-backed implementation of the repository query interface.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from .bump_parser import select_record_lines
from .git_manager import GitManager
from .models import AuditConfig, CommitDetails, CommitLookupError, CommitSide, Release
from .query_interface import VcsQuery
from .releases import parse_tag_lines


logger = logging.getLogger(__name__)


class GitVcsQuery(VcsQuery):
    """Answers pipeline queries by running git in the host and dependent repositories."""

    def __init__(
        self,
        host_repo: Path,
        dependent_repo: Path,
        timeout: Optional[float] = None,
    ) -> None:
        self.host = GitManager(host_repo, timeout=timeout)
        self.dependent = GitManager(dependent_repo, timeout=timeout)
        logger.debug(f"Host repository {self.host.repo_path}, dependent repository {self.dependent.repo_path}")

    @classmethod
    def from_config(cls, config: AuditConfig) -> GitVcsQuery:
        return cls(config.host_repo, config.dependent_repo, timeout=config.query_timeout)

    def host_log_lines(self, submodule_path: str) -> Iterator[str]:
        return select_record_lines(self.host.submodule_log_lines(submodule_path))

    def host_tags(self) -> List[Release]:
        return parse_tag_lines(self.host.tag_lines())

    def host_commit(self, commit_id: str) -> CommitDetails:
        if self.host.resolve_commit(commit_id) is None:
            raise CommitLookupError(commit_id, self.host.repo_path)
        return self.host.commit_details(commit_id)

    def dependent_commit_exists(self, commitish: str) -> bool:
        return self.dependent.resolve_commit(commitish) is not None

    def dependent_range(self, start_id: Optional[str], end_id: str) -> List[Tuple[str, CommitSide]]:
        return self.dependent.range_members(start_id, end_id)

    def dependent_commit(self, commit_id: str) -> CommitDetails:
        return self.dependent.commit_details(commit_id)

    def is_ancestor(self, commit_id: str, ref: str) -> bool:
        return self.dependent.is_ancestor(commit_id, ref)
