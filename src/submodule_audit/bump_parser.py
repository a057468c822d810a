"""
Extraction of submodule pointer bumps from host repository log output.

The host log is produced by ``git log --pretty=%H -p --submodule -- <path>``
and reduced to lines starting with a word character, which leaves pairs of::

    <host commit hash>
    Submodule <path> <old>...<new>[annotation]
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Iterator, Optional, Tuple

from .models import BumpAnnotation, CommitRange, ParseError, SubmoduleBump


logger = logging.getLogger(__name__)

RANGE_SEPARATOR = "..."

_SUFFIXES = (
    (" (new submodule)", BumpAnnotation.NEW_SUBMODULE),
    (" (commits not present)", BumpAnnotation.COMMITS_NOT_PRESENT),
)

_RECORD_LINE = re.compile(r"^\w")


def status_prefix(submodule_path: str) -> str:
    return f"Submodule {submodule_path} "


def select_record_lines(lines: Iterable[str]) -> Iterator[str]:
    """Keep only hash lines and ``Submodule`` lines from raw ``git log -p`` output."""
    for line in lines:
        if _RECORD_LINE.match(line):
            yield line


def split_range(expression: str) -> CommitRange:
    """Split ``<old>...<new>`` at the span between the first and the last dot.

    Commit ids never contain dots, so the span must be exactly the three-dot
    separator. Anything else (including a two-dot range) is malformed.
    """
    first = expression.find(".")
    if first < 0:
        raise ParseError(f"No range separator in {expression!r}")
    last = expression.rfind(".")
    separator = expression[first:last + 1]
    if separator != RANGE_SEPARATOR:
        raise ParseError(
            f"Expected '{RANGE_SEPARATOR}' range separator in {expression!r}, found {separator!r}"
        )

    start_id = expression[:first].strip()
    end_id = expression[last + 1:].strip()
    if not start_id or not end_id:
        raise ParseError(f"Empty commit id in range {expression!r}")
    return CommitRange(start_id=start_id, end_id=end_id)


def parse_status_line(line: str, submodule_path: str) -> Tuple[CommitRange, BumpAnnotation]:
    """Parse a ``Submodule <path> ...`` line into a range and its annotation."""
    text = line.strip()
    prefix = status_prefix(submodule_path)
    if not text.startswith(prefix):
        raise ParseError(f"Expected line starting with {prefix!r}, got {text!r}")

    remainder = text[len(prefix):]
    annotation = BumpAnnotation.PLAIN
    if remainder.endswith(":"):
        remainder = remainder[: -len(":")]
        annotation = BumpAnnotation.RANGE
    else:
        for suffix, kind in _SUFFIXES:
            if remainder.endswith(suffix):
                remainder = remainder[: -len(suffix)]
                annotation = kind
                break

    return split_range(remainder), annotation


def parse_record(hash_line: str, status_line: str, submodule_path: str) -> SubmoduleBump:
    """Build a bump from a hash line and the status line that follows it."""
    host_commit_id = hash_line.strip()
    if not host_commit_id:
        raise ParseError("Empty host commit line")
    commit_range, annotation = parse_status_line(status_line, submodule_path)
    return SubmoduleBump(
        host_commit_id=host_commit_id, dependent_range=commit_range, annotation=annotation
    )


def _next_line(lines: Iterator[str]) -> Optional[str]:
    for line in lines:
        if line.strip():
            return line
    return None


def extract_bumps(lines: Iterable[str], submodule_path: str) -> Iterator[SubmoduleBump]:
    """Lazily yield one bump per two non-empty input lines.

    A trailing record with only its hash line ends iteration without a bump.
    """
    it = iter(lines)
    while True:
        hash_line = _next_line(it)
        if hash_line is None:
            return
        status_line = _next_line(it)
        if status_line is None:
            logger.debug(f"Input ended after host line {hash_line.strip()!r}; dropping incomplete record")
            return

        bump = parse_record(hash_line, status_line, submodule_path)
        logger.debug(f"Parsed bump {bump.host_commit_id} -> {bump.dependent_range}")
        yield bump
