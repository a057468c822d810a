"""
Git repository access for the audit pipeline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, Optional, Tuple
from git import Repo, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandError, GitCommandNotFound

from .models import CommitDetails, CommitSide, ExternalQueryError, parse_timestamp
from .releases import TAG_FORMAT


logger = logging.getLogger(__name__)


COMMIT_DETAILS_FORMAT = "%cI%x09%H%x09%s"
RANGE_MEMBER_FORMAT = "%m%x09%H"


class GitManager:
    """Runs read-only git queries against a single repository."""

    def __init__(self, repo_path: Optional[Path] = None, timeout: Optional[float] = None) -> None:
        """Initialize Git manager with optional repository path and per-query timeout."""
        self.repo_path = (repo_path or Path.cwd()).resolve()
        self.timeout = timeout
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the Git repository instance."""
        if self._repo is None:
            self._repo = self._open_repository()
        return self._repo

    def _open_repository(self) -> Repo:
        """Open the repository at exactly ``repo_path``.

        Parent directories are not searched: an uninitialized submodule
        directory must not silently resolve to the enclosing host repository.
        """
        logger.debug(f"Opening repository at: {self.repo_path}")
        try:
            repo = Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise ExternalQueryError(f"No Git repository found at {self.repo_path}") from e
        logger.info(f"Found Git repository at: {self.repo_path}")
        return repo

    def _query(self, command: str, *args: str, context: str = "") -> str:
        """Run ``git <command> <args>`` and return its decoded output."""
        what = context or f"git {command}"
        logger.debug(f"Running 'git {command} {' '.join(args)}' in {self.repo_path}")
        try:
            output = getattr(self.repo.git, command)(
                *args, kill_after_timeout=self.timeout, stdout_as_string=False
            )
        except GitCommandNotFound as e:
            raise ExternalQueryError(f"Could not start git for {what} in {self.repo_path}: {e}") from e
        try:
            return output.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ExternalQueryError(f"Undecodable output from {what} in {self.repo_path}: {e}") from e

    def _fail(self, what: str, error: Exception) -> ExternalQueryError:
        logger.error(f"Error during {what} in {self.repo_path}: {error}")
        return ExternalQueryError(f"Failed {what} in {self.repo_path}: {error}")

    def stream_log_lines(self, *args: str) -> Iterator[str]:
        """Lazily yield the lines of ``git log <args>`` as the process produces them."""
        logger.debug(f"Streaming 'git log {' '.join(args)}' in {self.repo_path}")
        try:
            process = self.repo.git.log(*args, as_process=True)
        except GitCommandNotFound as e:
            raise ExternalQueryError(f"Could not start git log in {self.repo_path}: {e}") from e

        count = 0
        try:
            for raw in process.stdout:
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise ExternalQueryError(
                        f"Undecodable git log output in {self.repo_path} after {count} lines: {e}"
                    ) from e
                count += 1
                yield line.rstrip("\r\n")
            process.wait()
        except GitCommandError as e:
            raise self._fail("git log", e) from e
        logger.info(f"Read {count} log lines from {self.repo_path}")

    def submodule_log_lines(self, submodule_path: str) -> Iterator[str]:
        """Stream ``git log --pretty=%H -p --submodule`` restricted to a submodule path."""
        return self.stream_log_lines("--pretty=%H", "-p", "--submodule", "--", submodule_path)

    def tag_lines(self) -> List[str]:
        """List tags as ``<creator date>|<name>`` lines, oldest first."""
        try:
            output = self._query(
                "tag", "-l", "--sort=creatordate", f"--format={TAG_FORMAT}", context="tag listing"
            )
        except GitCommandError as e:
            raise self._fail("tag listing", e) from e
        return [line for line in output.splitlines() if line.strip()]

    def resolve_commit(self, commitish: str) -> Optional[str]:
        """Return the full hash a commit-ish resolves to, or None if it does not exist."""
        try:
            value = self._query(
                "rev_parse", "--verify", "--quiet", f"{commitish}^{{commit}}",
                context=f"lookup of {commitish}",
            )
        except GitCommandError as e:
            if e.status == 1:
                logger.debug(f"{commitish} does not resolve in {self.repo_path}")
                return None
            raise self._fail(f"lookup of {commitish}", e) from e
        value = value.strip()
        return value if value else None

    def commit_details(self, commit_id: str) -> CommitDetails:
        """Return committer date, full hash and subject of a commit."""
        what = f"details query for {commit_id}"
        try:
            output = self._query("log", "-n", "1", f"--pretty={COMMIT_DETAILS_FORMAT}", commit_id, context=what)
        except GitCommandError as e:
            raise self._fail(what, e) from e

        parts = output.strip().split("\t", 2)
        if len(parts) < 2 or not parts[1]:
            raise ExternalQueryError(f"Unexpected output from {what} in {self.repo_path}: {output!r}")
        try:
            committed_at = parse_timestamp(parts[0])
        except ValueError as e:
            raise ExternalQueryError(f"Invalid commit date {parts[0]!r} from {what}") from e
        subject = parts[2] if len(parts) == 3 else ""
        return CommitDetails(commit_id=parts[1], committed_at=committed_at, subject=subject)

    def range_members(self, start_id: Optional[str], end_id: str) -> List[Tuple[str, CommitSide]]:
        """List commits of ``start...end`` (or of ``end`` alone) with their side marks."""
        if start_id:
            revision = f"{start_id}...{end_id}"
            args = [f"--pretty={RANGE_MEMBER_FORMAT}", "--left-right", revision]
        else:
            revision = end_id
            args = [f"--pretty={RANGE_MEMBER_FORMAT}", revision]
        what = f"range query {revision}"
        try:
            output = self._query("log", *args, context=what)
        except GitCommandError as e:
            raise self._fail(what, e) from e

        members: List[Tuple[str, CommitSide]] = []
        for line in output.splitlines():
            if not line.strip():
                continue
            mark, _, commit_id = line.partition("\t")
            if not commit_id:
                # No mark column; the whole line is the hash
                mark, commit_id = "", mark
            side = CommitSide.LEFT if mark.strip() == "<" else CommitSide.RIGHT
            members.append((commit_id.strip(), side))
        logger.debug(f"Range {revision} has {len(members)} commits")
        return members

    def is_ancestor(self, commit_id: str, ref: str) -> bool:
        """Return True if ``commit_id`` is an ancestor of ``ref`` (``merge-base --is-ancestor``)."""
        what = f"ancestry check {commit_id} -> {ref}"
        try:
            self._query("merge_base", "--is-ancestor", commit_id, ref, context=what)
            return True
        except GitCommandError as e:
            if e.status == 1:
                return False
            raise self._fail(what, e) from e
