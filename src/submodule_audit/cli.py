"""
Command-line interface for the submodule audit tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .auditor import SubmoduleAuditor
from .bump_parser import select_record_lines
from .git_query import GitVcsQuery
from .models import (
    DEFAULT_QUERY_TIMEOUT,
    DEFAULT_SUBMODULE_PATH,
    DEFAULT_UPSTREAM_REF,
    AuditConfig,
    AuditError,
)
from .report import format_audit_output, summarize
from . import __version__ as PACKAGE_VERSION


# Report text goes to stdout; everything else goes to stderr
console = Console(stderr=True)
logger = logging.getLogger(__name__)


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"submodule-audit {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path (~/.submodule-audit/submodule-audit.log)."""
    env_path = os.environ.get("SUBMODULE_AUDIT_LOG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".submodule-audit" / "submodule-audit.log"


class SafeConsoleFilter(logging.Filter):
    """Replace characters the console encoding cannot represent.

    Log lines carry the ✓/❌ ancestry markers, which legacy Windows code pages
    cannot encode. File handlers keep full UTF-8 output.
    """

    def __init__(self, encoding: Optional[str] = None):
        super().__init__()
        self.encoding = encoding or getattr(sys.stderr, "encoding", None) or "utf-8"

    def filter(self, record: logging.LogRecord) -> bool:  # always keep the record
        try:
            message = record.getMessage()
        except Exception:
            return True
        try:
            message.encode(self.encoding, errors="strict")
        except UnicodeEncodeError:
            record.msg = message.encode(self.encoding, errors="replace").decode(self.encoding, errors="replace")
            record.args = ()
        return True


def setup_logging(verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """Setup file logging (always on) and optional rich console logging.

    Returns the log file path for this run.
    """
    log_path = Path(log_file).expanduser() if log_file else _default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(
        str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    # GitPython logs every command at debug level
    logging.getLogger("git").setLevel(logging.INFO)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        ch_level = level_map.get((console_level or "info").lower(), logging.INFO)
        console_handler = RichHandler(console=console, rich_tracebacks=True)
        console_handler.setLevel(ch_level)
        enc = getattr(console.file, "encoding", None) or "utf-8"
        console_handler.addFilter(SafeConsoleFilter(encoding=enc))
        root.addHandler(console_handler)

    return log_path


def _maybe_print_log_notice(verbose: bool, console_level: Optional[str], log_path: Path) -> None:
    """Inform user about logging destination and how to enable console logs."""
    if verbose or console_level:
        return
    console.print(f"[dim]Logs are written to {log_path}. Console logs are disabled by default. Use -v or --log-level to enable.[/dim]")


def _build_config(
    host_repo: Optional[Path],
    dependent_repo: Optional[Path],
    submodule_path: str,
    upstream_ref: str,
    skip_missing: bool = False,
    timeout: Optional[float] = DEFAULT_QUERY_TIMEOUT,
) -> AuditConfig:
    config = AuditConfig(
        host_repo=host_repo or Path.cwd(),
        dependent_repo=dependent_repo,
        submodule_path=submodule_path,
        upstream_ref=upstream_ref,
        skip_missing=skip_missing,
        query_timeout=timeout if timeout and timeout > 0 else None,
    )
    logger.debug(f"Configuration: {config.as_dict()}")
    return config


def _read_stdin_lines():
    """Yield the record lines of a host submodule log piped on standard input."""
    with click.open_file("-") as stream:
        yield from select_record_lines(stream)


def repo_options(func):
    """Options shared by commands that query the repositories."""
    func = click.option(
        "--submodule-path",
        envvar="SUBMODULE_AUDIT_SUBMODULE_PATH",
        default=DEFAULT_SUBMODULE_PATH,
        show_default=True,
        help="Path of the submodule inside the host repository.",
    )(func)
    func = click.option(
        "--dependent-repo",
        envvar="SUBMODULE_AUDIT_DEPENDENT_REPO",
        type=click.Path(file_okay=False, path_type=Path),
        help="Dependent project repository (defaults to the submodule checkout in the host).",
    )(func)
    func = click.option(
        "--host-repo",
        envvar="SUBMODULE_AUDIT_HOST_REPO",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        help="Host repository (defaults to current directory).",
    )(func)
    return func


@click.group()
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file path (defaults to ~/.submodule-audit/submodule-audit.log).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_level: Optional[str], log_file: Optional[Path]) -> None:
    """Submodule Audit - Find dependent-project commits shipped in host releases but orphaned upstream."""
    log_path = setup_logging(verbose, console_level=log_level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["console_level"] = log_level
    ctx.obj["log_path"] = log_path
    logger.debug(f"CLI init: cwd={Path.cwd()} log_path={log_path}")


@cli.command()
@repo_options
@click.option(
    "--upstream-ref",
    envvar="SUBMODULE_AUDIT_UPSTREAM_REF",
    default=DEFAULT_UPSTREAM_REF,
    show_default=True,
    help="Dependent-repository ref that defines the upstream mainline.",
)
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the host submodule log from standard input.")
@click.option("--reduced-only", is_flag=True, help="Print only releases that shipped orphaned commits.")
@click.option(
    "--skip-missing",
    is_flag=True,
    help="Skip bumps whose commits are missing from the dependent repository instead of failing.",
)
@click.option(
    "--timeout",
    type=float,
    default=DEFAULT_QUERY_TIMEOUT,
    show_default=True,
    help="Per-query git timeout in seconds (0 disables).",
)
@click.pass_context
def audit(
    ctx: click.Context,
    host_repo: Optional[Path],
    dependent_repo: Optional[Path],
    submodule_path: str,
    upstream_ref: str,
    from_stdin: bool,
    reduced_only: bool,
    skip_missing: bool,
    timeout: float,
) -> None:
    """
    Report dependent commits per host release and flag those missing from upstream.

    Example: submodule-audit audit --host-repo ~/src/rust --dependent-repo ~/src/rls
    """
    try:
        _maybe_print_log_notice(ctx.obj.get("verbose"), ctx.obj.get("console_level"), ctx.obj.get("log_path"))
        config = _build_config(host_repo, dependent_repo, submodule_path, upstream_ref, skip_missing, timeout)
        auditor = SubmoduleAuditor(GitVcsQuery.from_config(config), config)

        lines = _read_stdin_lines() if from_stdin else None
        report = auditor.run(lines)

        # Nothing is printed until the whole pass succeeded
        click.echo(format_audit_output(report, reduced_only=reduced_only), nl=False)
        _display_summary(report, len(auditor.skipped))

    except AuditError as e:
        console.print(f"\n❌ **Audit Error:** {e}", style="bold red")
        logger.debug("Error in audit command", exc_info=True)
        sys.exit(1)


@cli.command()
@repo_options
@click.option("--stdin", "from_stdin", is_flag=True, help="Read the host submodule log from standard input.")
@click.pass_context
def bumps(
    ctx: click.Context,
    host_repo: Optional[Path],
    dependent_repo: Optional[Path],
    submodule_path: str,
    from_stdin: bool,
) -> None:
    """List the submodule pointer bumps recorded in the host history."""
    try:
        _maybe_print_log_notice(ctx.obj.get("verbose"), ctx.obj.get("console_level"), ctx.obj.get("log_path"))
        config = _build_config(host_repo, dependent_repo, submodule_path, DEFAULT_UPSTREAM_REF)
        auditor = SubmoduleAuditor(GitVcsQuery.from_config(config), config)

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Host Commit", style="cyan")
        table.add_column("Old Pointer", style="red")
        table.add_column("New Pointer", style="green")
        table.add_column("Annotation", style="yellow")

        lines = _read_stdin_lines() if from_stdin else None
        count = 0
        for bump in auditor.bumps(lines):
            count += 1
            table.add_row(
                bump.host_commit_id,
                bump.dependent_range.start_id,
                bump.dependent_range.end_id,
                bump.annotation.value,
            )

        console.print(f"\n📦 **Submodule Bumps** ({config.submodule_path})")
        console.print(table)
        console.print(f"{count} bumps")

    except AuditError as e:
        console.print(f"\n❌ **Error listing bumps:** {e}", style="bold red")
        logger.debug("Error in bumps command", exc_info=True)
        sys.exit(1)


@cli.command()
@click.option(
    "--host-repo",
    envvar="SUBMODULE_AUDIT_HOST_REPO",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Host repository (defaults to current directory).",
)
@click.pass_context
def releases(ctx: click.Context, host_repo: Optional[Path]) -> None:
    """Display the host release table used to resolve bumps."""
    try:
        _maybe_print_log_notice(ctx.obj.get("verbose"), ctx.obj.get("console_level"), ctx.obj.get("log_path"))
        config = _build_config(host_repo, None, DEFAULT_SUBMODULE_PATH, DEFAULT_UPSTREAM_REF)
        auditor = SubmoduleAuditor(GitVcsQuery.from_config(config), config)
        release_table = auditor.load_releases()

        console.print("\n🏷️  **Host Releases**")
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("#", justify="right")
        table.add_column("Release", style="cyan")
        table.add_column("Created", style="dim")
        for i, release in enumerate(release_table.releases, 1):
            table.add_row(str(i), release.tag_name, release.created_at.isoformat())
        console.print(table)

    except AuditError as e:
        console.print(f"\n❌ **Error listing releases:** {e}", style="bold red")
        logger.debug("Error in releases command", exc_info=True)
        sys.exit(1)


@cli.command()
def version() -> None:
    """Print the current submodule-audit version."""
    console.print(f"submodule-audit {PACKAGE_VERSION}")


def _display_summary(report, skipped: int = 0) -> None:
    """Display counts for the finished audit."""
    summary = summarize(report)

    table = Table(show_header=True, header_style="bold magenta", title="Audit Summary")
    table.add_column("Releases", justify="center")
    table.add_column("Bumps", justify="center")
    table.add_column("Dependent Commits", justify="center")
    table.add_column("Orphaned", justify="center", style="red")
    table.add_column("Skipped", justify="center", style="yellow")
    table.add_row(
        str(summary.releases),
        str(summary.bumps),
        str(summary.dependent_commits),
        str(summary.orphan_commits),
        str(skipped),
    )
    console.print(table)

    if summary.releases_with_orphans:
        console.print(
            f"⚠️  Releases with orphaned commits: {', '.join(summary.releases_with_orphans)}",
            style="bold yellow",
        )
    else:
        console.print("✅ No orphaned commits found", style="bold green")


def main() -> None:
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n\n🚫 **Operation cancelled by user**", style="bold yellow")
        logger.debug("Top-level cancellation (KeyboardInterrupt)", exc_info=True)
        sys.exit(130)
    except Exception as e:
        console.print(f"\n💥 **Unexpected error:** {e}", style="bold red")
        logger.debug("Unexpected error in main()", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
