"""
Submodule Audit - Correlate submodule pointer bumps with host releases.

This package reads the submodule bumps recorded in a host repository, resolves
each one to the host release that first shipped it, and checks every bundled
commit of the dependent project against that project's upstream mainline.
"""

__version__ = "0.1.0"

from .auditor import SubmoduleAuditor
from .models import (
    AuditConfig,
    CommitDetails,
    CommitRange,
    DependentCommit,
    Release,
    ReportEntry,
    SubmoduleBump,
)
from .bump_parser import extract_bumps
from .releases import ReleaseTable
from .range_expander import RangeExpander
from .report import Report, format_audit_output, format_report
from .query_interface import VcsQuery
from .git_query import GitVcsQuery
from .git_manager import GitManager

__all__ = [
    "SubmoduleAuditor",
    "AuditConfig",
    "CommitDetails",
    "CommitRange",
    "DependentCommit",
    "Release",
    "ReportEntry",
    "SubmoduleBump",
    "extract_bumps",
    "ReleaseTable",
    "RangeExpander",
    "Report",
    "format_audit_output",
    "format_report",
    "VcsQuery",
    "GitVcsQuery",
    "GitManager",
]
