"""
Expansion of submodule bumps into dependent commits and ancestry classification.
"""

from __future__ import annotations

import logging
from typing import List

from .models import CommitLookupError, CommitRange, DependentCommit
from .query_interface import VcsQuery


logger = logging.getLogger(__name__)


class RangeExpander:
    """Turns a dependent commit range into classified ``DependentCommit`` records."""

    def __init__(self, vcs: VcsQuery, upstream_ref: str) -> None:
        self.vcs = vcs
        self.upstream_ref = upstream_ref

    def check_upstream(self) -> None:
        """Fail early when the reference branch is missing from the dependent repository."""
        if not self.vcs.dependent_commit_exists(self.upstream_ref):
            raise CommitLookupError(
                self.upstream_ref,
                message=f"Reference branch {self.upstream_ref} not found in the dependent repository",
            )

    def _require(self, commit_id: str) -> None:
        if not self.vcs.dependent_commit_exists(commit_id):
            raise CommitLookupError(
                commit_id,
                message=f"Commit {commit_id} not found in the dependent repository (incomplete local mirror?)",
            )

    def expand(self, commit_range: CommitRange) -> List[DependentCommit]:
        """
        List and classify the commits of a bump's range.

        A range starting at the null id covers all history reachable from the
        new pointer. Otherwise the symmetric difference ``start...end`` is used.

        Raises:
            CommitLookupError: if an endpoint does not exist in the dependent repository
        """
        start_id = commit_range.start_id if commit_range.has_start else None
        if start_id is not None:
            self._require(start_id)
        self._require(commit_range.end_id)

        members = self.vcs.dependent_range(start_id, commit_range.end_id)
        children: List[DependentCommit] = []
        for commit_id, side in members:
            details = self.vcs.dependent_commit(commit_id)
            is_ancestor = self.vcs.is_ancestor(commit_id, self.upstream_ref)
            if not is_ancestor:
                logger.info(f"Commit {commit_id[:8]} in {commit_range} is not in {self.upstream_ref}")
            children.append(DependentCommit.from_details(details, is_ancestor, side))

        logger.debug(
            f"Expanded {commit_range} into {len(children)} commits "
            f"({sum(1 for c in children if c.is_orphan)} orphaned)"
        )
        return children
