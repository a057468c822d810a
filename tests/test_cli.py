"""
Tests for the CLI interface.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from submodule_audit.cli import cli
from submodule_audit.models import ExternalQueryError


class TestCLI:
    """Test CLI commands."""

    @pytest.fixture(autouse=True)
    def _setup(self, tmp_path, scenario_vcs):
        self.runner = CliRunner()
        self.tmp_path = tmp_path
        self.vcs = scenario_vcs
        self.base_args = ["--log-file", str(tmp_path / "logs" / "audit.log")]

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(cli, [*self.base_args, *args], **kwargs)

    def repo_args(self):
        return ["--host-repo", str(self.tmp_path), "--submodule-path", "src/tools/dep"]

    def test_cli_help(self):
        result = self.invoke("--help")
        assert result.exit_code == 0
        assert "Submodule Audit" in result.output

    def test_version_option(self):
        result = self.invoke("--version")
        assert result.exit_code == 0
        assert "submodule-audit" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_command(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("audit", *self.repo_args())
        assert result.exit_code == 0, result.output
        assert "(v2) " in result.output
        assert ">>> Reduced" in result.output
        assert "❌" in result.output
        assert "Audit Summary" in result.output
        assert (self.tmp_path / "logs" / "audit.log").exists()

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_config_from_options(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs
        dep = self.tmp_path / "dep"

        result = self.invoke(
            "audit", *self.repo_args(), "--dependent-repo", str(dep), "--upstream-ref", "upstream/master",
            "--timeout", "0",
        )
        assert result.exit_code == 0, result.output

        (config,), _ = mock_query_class.from_config.call_args
        assert config.host_repo == self.tmp_path.resolve()
        assert config.dependent_repo == dep.resolve()
        assert config.submodule_path == "src/tools/dep"
        assert config.query_timeout is None

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_paths_from_environment(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs
        dep = self.tmp_path / "env-dep"

        result = self.invoke(
            "audit",
            env={
                "SUBMODULE_AUDIT_HOST_REPO": str(self.tmp_path),
                "SUBMODULE_AUDIT_DEPENDENT_REPO": str(dep),
                "SUBMODULE_AUDIT_SUBMODULE_PATH": "src/tools/dep",
            },
        )
        assert result.exit_code == 0, result.output
        (config,), _ = mock_query_class.from_config.call_args
        assert config.dependent_repo == dep.resolve()

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_reads_stdin(self, mock_query_class):
        lines = "".join(self.vcs.log_lines)
        self.vcs.log_lines = []
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("audit", *self.repo_args(), "--stdin", input=lines)
        assert result.exit_code == 0, result.output
        assert "c0ffee" in result.output

    @pytest.mark.filterwarnings("error:.*deprecated:DeprecationWarning")
    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_reads_raw_git_log_from_stdin(self, mock_query_class):
        self.vcs.log_lines = []
        mock_query_class.from_config.return_value = self.vcs
        raw_log = (
            "c0ffee\n"
            "\n"
            "Submodule src/tools/dep aaaa111...bbbb222:\n"
            "  > Commit d2\n"
            "  > Commit d1\n"
            "\n"
        )

        result = self.invoke("audit", *self.repo_args(), "--stdin", input=raw_log)
        assert result.exit_code == 0, result.output
        assert "Audit Error" not in result.output
        assert "(v2) " in result.output
        assert "❌" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_bumps_reads_raw_git_log_from_stdin(self, mock_query_class):
        self.vcs.log_lines = []
        mock_query_class.from_config.return_value = self.vcs
        raw_log = "c0ffee\n\nSubmodule src/tools/dep aaaa111...bbbb222:\n  > Commit d2\n"

        result = self.invoke("bumps", *self.repo_args(), "--stdin", input=raw_log)
        assert result.exit_code == 0, result.output
        assert "bbbb222" in result.output
        assert "1 bumps" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_reduced_only(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("audit", *self.repo_args(), "--reduced-only")
        assert result.exit_code == 0, result.output
        assert ">>> Reduced" not in result.output
        assert "(v2) " in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_parse_error(self, mock_query_class):
        self.vcs.log_lines = ["c0ffee\n", "Submodule src/tools/dep aaaa111..bbbb222:\n"]
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("audit", *self.repo_args())
        assert result.exit_code == 1
        assert "Audit Error" in result.output
        assert ">>> Reduced" not in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_missing_commit(self, mock_query_class):
        del self.vcs.dependent_commits["bbbb222"]
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("audit", *self.repo_args())
        assert result.exit_code == 1
        assert "bbbb222" in result.output

        result = self.invoke("audit", *self.repo_args(), "--skip-missing")
        assert result.exit_code == 0, result.output
        assert "No orphaned commits found" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_audit_query_error(self, mock_query_class):
        mock_query_class.from_config.side_effect = ExternalQueryError("git exploded")

        result = self.invoke("audit", *self.repo_args())
        assert result.exit_code == 1
        assert "git exploded" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_bumps_command(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("bumps", *self.repo_args())
        assert result.exit_code == 0, result.output
        assert "Submodule Bumps" in result.output
        assert "aaaa111" in result.output
        assert "1 bumps" in result.output

    @patch("submodule_audit.cli.GitVcsQuery")
    def test_releases_command(self, mock_query_class):
        mock_query_class.from_config.return_value = self.vcs

        result = self.invoke("releases", "--host-repo", str(self.tmp_path))
        assert result.exit_code == 0, result.output
        assert "Host Releases" in result.output
        assert "v3" in result.output

    def test_version_command(self):
        result = self.invoke("version")
        assert result.exit_code == 0
        assert "submodule-audit" in result.output

    def test_invalid_command(self):
        result = self.invoke("invalid-command")
        assert result.exit_code != 0
