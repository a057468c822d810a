"""
Single-pass audit of submodule bumps against host releases and dependent upstream history.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from .bump_parser import extract_bumps
from .models import AuditConfig, CommitLookupError, ReportEntry, SubmoduleBump
from .query_interface import VcsQuery
from .range_expander import RangeExpander
from .releases import ReleaseTable
from .report import Report


logger = logging.getLogger(__name__)


class SubmoduleAuditor:
    """Correlates host submodule bumps with releases and orphaned dependent commits."""

    def __init__(self, vcs: VcsQuery, config: Optional[AuditConfig] = None) -> None:
        """Initialize the auditor with a query backend and run configuration."""
        self.vcs = vcs
        self.config = config or AuditConfig()
        self.expander = RangeExpander(vcs, self.config.upstream_ref)
        self.skipped: List[SubmoduleBump] = []

    def bumps(self, lines: Optional[Iterable[str]] = None) -> Iterator[SubmoduleBump]:
        """Iterate bumps from ``lines`` or, when omitted, from the host repository log."""
        if lines is None:
            lines = self.vcs.host_log_lines(self.config.submodule_path)
        return extract_bumps(lines, self.config.submodule_path)

    def load_releases(self) -> ReleaseTable:
        return ReleaseTable(self.vcs.host_tags())

    def run(self, lines: Optional[Iterable[str]] = None) -> Report:
        """
        Run the audit pass and return the accumulated report.

        Args:
            lines: Host log records; read from the host repository when None

        Returns:
            Report grouped by the release each bump first shipped in

        Raises:
            ParseError: on a malformed bump record
            CommitLookupError: when a referenced commit is missing (unless skip_missing)
            ExternalQueryError: when a git query fails
        """
        releases = self.load_releases()
        self.expander.check_upstream()
        report = Report(releases.names)
        self.skipped = []

        count = 0
        for bump in self.bumps(lines):
            count += 1
            host_commit = self.vcs.host_commit(bump.host_commit_id)
            release = releases.resolve(host_commit.committed_at)
            try:
                children = self.expander.expand(bump.dependent_range)
            except CommitLookupError as e:
                if not self.config.skip_missing:
                    raise
                logger.warning(f"Skipping bump {bump.host_commit_id[:8]} ({bump.dependent_range}): {e}")
                self.skipped.append(bump)
                continue

            logger.debug(f"Bump {host_commit.commit_id[:8]} belongs to release {release}")
            report.add(ReportEntry(release=release, host_commit=host_commit, children=children))

        logger.info(
            f"Audited {count} bumps across {len(report)} releases ({len(self.skipped)} skipped)"
        )
        return report
