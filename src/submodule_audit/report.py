"""
Aggregation of audit results by release and plain-text rendering.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .models import NO_RELEASE, DependentCommit, ReportEntry, ReportSummary


logger = logging.getLogger(__name__)

ANCESTOR_MARK = "✓"
ORPHAN_MARK = "❌"
REDUCED_MARKER = ">>> Reduced"


def ancestor_mark(is_ancestor: bool) -> str:
    return ANCESTOR_MARK if is_ancestor else ORPHAN_MARK


class Report:
    """Report entries grouped by release, iterated in release chronology."""

    def __init__(self, release_order: Optional[Iterable[str]] = None) -> None:
        self._rank: Dict[str, int] = {NO_RELEASE: -1}
        for name in release_order or []:
            self._rank.setdefault(name, len(self._rank))
        self._groups: Dict[str, List[ReportEntry]] = {}

    def add(self, entry: ReportEntry) -> None:
        self._groups.setdefault(entry.release, []).append(entry)

    def _sort_key(self, item: Tuple[int, str]) -> Tuple[int, int]:
        position, name = item
        # Names missing from the ordering go last, in first-seen order
        return (self._rank.get(name, len(self._rank)), position)

    def releases(self) -> Iterator[Tuple[str, List[ReportEntry]]]:
        """Yield ``(release, entries)`` in ascending release order."""
        ordered = sorted(enumerate(self._groups), key=self._sort_key)
        for _, name in ordered:
            yield name, self._groups[name]

    def entries(self) -> Iterator[ReportEntry]:
        for _, entries in self.releases():
            yield from entries

    def reduced(self) -> Report:
        """Return a report with only the releases that shipped orphaned commits."""
        reduced = Report()
        reduced._rank = dict(self._rank)
        for name, entries in self.releases():
            if any(entry.has_orphans for entry in entries):
                reduced._groups[name] = list(entries)
        return reduced

    def __len__(self) -> int:
        return len(self._groups)

    def __bool__(self) -> bool:
        return bool(self._groups)


def _format_child(child: DependentCommit) -> str:
    return (
        f"  ({ancestor_mark(child.is_ancestor_of_upstream)}) "
        f"{child.committed_at.isoformat()}\t{child.commit_id}\t{child.subject}"
    )


def format_report(report: Report) -> str:
    """Render one line per host bump followed by an indented line per dependent commit."""
    lines: List[str] = []
    for release, entries in report.releases():
        for entry in entries:
            host = entry.host_commit
            lines.append(f"({release}) {host.committed_at.isoformat()}\t{host.commit_id}")
            lines.extend(_format_child(child) for child in entry.children)
    return "".join(f"{line}\n" for line in lines)


def format_audit_output(report: Report, reduced_only: bool = False) -> str:
    """Render the full report, the ``>>> Reduced`` marker and the reduced report."""
    reduced = format_report(report.reduced())
    if reduced_only:
        return reduced
    return f"{format_report(report)}\n{REDUCED_MARKER}\n{reduced}\n"


def summarize(report: Report) -> ReportSummary:
    summary = ReportSummary(releases=len(report))
    for release, entries in report.releases():
        summary.bumps += len(entries)
        has_orphans = False
        for entry in entries:
            summary.dependent_commits += len(entry.children)
            orphans = sum(1 for child in entry.children if child.is_orphan)
            summary.orphan_commits += orphans
            has_orphans = has_orphans or orphans > 0
        if has_orphans:
            summary.releases_with_orphans.append(release)
    logger.debug(f"Report summary: {summary}")
    return summary
