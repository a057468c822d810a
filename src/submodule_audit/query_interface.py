"""
Repository query interface used by the audit pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional, Tuple

from .models import CommitDetails, CommitSide, Release


class VcsQuery(ABC):
    """Abstract read-only access to the host and dependent repositories."""

    @abstractmethod
    def host_log_lines(self, submodule_path: str) -> Iterator[str]:
        """
        Stream the host log records for commits touching the submodule path.

        Args:
            submodule_path: Path of the submodule inside the host repository

        Returns:
            Iterator over hash lines and ``Submodule <path> ...`` lines
        """
        pass

    @abstractmethod
    def host_tags(self) -> List[Release]:
        """Return the host releases sorted ascending by creation date."""
        pass

    @abstractmethod
    def host_commit(self, commit_id: str) -> CommitDetails:
        """Return details for a host commit."""
        pass

    @abstractmethod
    def dependent_commit_exists(self, commitish: str) -> bool:
        """Return True if the commit or ref resolves in the dependent repository."""
        pass

    @abstractmethod
    def dependent_range(self, start_id: Optional[str], end_id: str) -> List[Tuple[str, CommitSide]]:
        """
        List the dependent commits of a range in log order.

        Args:
            start_id: Old pointer, or None to take all history reachable from end_id
            end_id: New pointer

        Returns:
            (commit id, side) pairs for the symmetric difference start...end
        """
        pass

    @abstractmethod
    def dependent_commit(self, commit_id: str) -> CommitDetails:
        """Return details for a dependent commit."""
        pass

    @abstractmethod
    def is_ancestor(self, commit_id: str, ref: str) -> bool:
        """Return True if ``commit_id`` is reachable from ``ref`` in the dependent repository."""
        pass
