"""
Release table for the host repository and commit-to-release resolution.
"""

from __future__ import annotations

import bisect
import logging
from datetime import datetime
from typing import Iterable, List

from .models import NO_RELEASE, ParseError, Release, parse_timestamp


logger = logging.getLogger(__name__)

TAG_FORMAT = "%(creatordate:iso-strict)|%(refname:short)"


def parse_tag_line(line: str) -> Release:
    """Parse ``<ISO-8601 timestamp>|<tag name>``, splitting at the first pipe."""
    text = line.strip()
    date, sep, name = text.partition("|")
    if not sep:
        raise ParseError(f"Tag line without '|' separator: {text!r}")
    if not name:
        raise ParseError(f"Tag line without a tag name: {text!r}")
    try:
        created_at = parse_timestamp(date)
    except ValueError as e:
        raise ParseError(f"Invalid tag timestamp {date!r} for {name}: {e}") from e
    return Release(tag_name=name, created_at=created_at)


def parse_tag_lines(lines: Iterable[str]) -> List[Release]:
    return [parse_tag_line(line) for line in lines if line.strip()]


class ReleaseTable:
    """Releases in ascending creation order, searchable by timestamp."""

    def __init__(self, releases: Iterable[Release]) -> None:
        # sorted() is stable, so equal timestamps keep their source order
        self.releases: List[Release] = sorted(releases, key=lambda r: r.created_at)
        self._keys: List[datetime] = [r.created_at for r in self.releases]
        logger.info(f"Loaded {len(self.releases)} releases")

    def __len__(self) -> int:
        return len(self.releases)

    @property
    def names(self) -> List[str]:
        return [r.tag_name for r in self.releases]

    def resolve(self, timestamp: datetime) -> str:
        """Return the latest release before ``timestamp``, or ``"None"``.

        The insertion index ``i`` of the timestamp, whether an exact match or
        the nearest greater entry, resolves to ``releases[i - 1]``. A commit
        that carries exactly a tag's timestamp therefore belongs to the
        previous release. With several releases at the same timestamp the
        result is whichever one the search lands on.
        """
        index = bisect.bisect_left(self._keys, timestamp)
        if index == 0:
            return NO_RELEASE
        return self.releases[index - 1].tag_name
