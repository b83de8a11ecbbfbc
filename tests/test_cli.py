"""
Tests for the CLI interface.

This module tests the command-line interface functionality including
argument parsing, version handling, filtering and error reporting.
"""

import subprocess
import sys
import warnings

import pytest
from click.testing import CliRunner

from b64filter import __version__
from b64filter.cli import main


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestCliVersion:
    """Test CLI version option functionality."""

    def test_version_matches_pyproject(self):
        """Test that __version__ matches pyproject.toml version."""
        import tomllib
        from pathlib import Path

        pyproject_path = Path(__file__).resolve().parent.parent / "pyproject.toml"
        with open(pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)

        assert __version__ == pyproject["project"]["version"]

    def test_version_option_standalone(self, runner):
        """Test that --version works without a filter command."""
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert result.output.strip() == f"b64filter version {__version__}"

    def test_help_shows_contract(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "FILTER [ARGS]..." in result.output
        assert "exactly one line of output" in " ".join(result.output.split())
        assert "--ledger-capacity" in result.output


class TestCliFiltering:
    """Run real filters through the command line."""

    def test_requires_filter_command(self, runner):
        result = runner.invoke(main, [])

        assert result.exit_code != 0
        assert "Missing argument" in result.output

    def test_cat_round_trip(self, runner, lorem_input):
        result = runner.invoke(main, ["-q", "cat"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == lorem_input

    def test_round_trip_without_deprecation_warnings(self, runner, lorem_input):
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            result = runner.invoke(main, ["-q", "cat"], input=lorem_input)

        assert result.exit_code == 0, result.exception
        assert result.stdout_bytes == lorem_input

    def test_filter_arguments_passed_through(self, runner, python_filter, lorem_input):
        """Options after the filter name belong to the filter, not to b64filter."""
        command = python_filter(
            "import sys\n"
            "assert sys.argv[1:] == ['-p', '--debug'], sys.argv\n"
            "for line in sys.stdin:\n"
            "    sys.stdout.write(line)\n"
            "    sys.stdout.flush()\n"
        )
        result = runner.invoke(main, ["-q", *command, "-p", "--debug"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == lorem_input

    def test_options_before_filter(self, runner, lorem_input):
        result = runner.invoke(
            main,
            ["-q", "-p", "1", "--ledger-capacity", "1", "--channel-size", "1", "cat"],
            input=lorem_input,
        )

        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == lorem_input

    def test_malformed_input_exit_code(self, runner):
        result = runner.invoke(main, ["-q", "cat"], input=b"not*base64\n")

        assert result.exit_code == 1
        assert "Error: error decoding input line 1" in result.stderr

    def test_missing_filter_program(self, runner, lorem_input):
        result = runner.invoke(main, ["-q", "/nonexistent/filter-program"], input=lorem_input)

        assert result.exit_code == 1
        assert "error starting filter" in result.stderr

    def test_invalid_env_configuration(self, runner, lorem_input, monkeypatch):
        monkeypatch.setenv("B64FILTER_LEDGER_CAPACITY", "lots")

        result = runner.invoke(main, ["-q", "cat"], input=lorem_input)

        assert result.exit_code == 1
        assert "B64FILTER_LEDGER_CAPACITY must be an integer" in result.stderr

    def test_log_level_from_environment(self, runner, lorem_input, monkeypatch):
        monkeypatch.setenv("B64FILTER_LOG_LEVEL", "ERROR")

        result = runner.invoke(main, ["cat"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert result.stdout_bytes == lorem_input
        assert "processed 2 documents" not in result.stderr

    def test_log_level_option_overrides_environment(self, runner, lorem_input, monkeypatch):
        monkeypatch.setenv("B64FILTER_LOG_LEVEL", "ERROR")

        result = runner.invoke(main, ["--log-level", "INFO", "cat"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert "processed 2 documents" in result.stderr

    def test_log_format_from_environment(self, runner, lorem_input, monkeypatch):
        monkeypatch.setenv("B64FILTER_LOG_FORMAT", "json")

        result = runner.invoke(main, ["cat"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert '"message": "processed 2 documents"' in result.stderr

    def test_log_file_from_environment(self, runner, lorem_input, monkeypatch, tmp_path):
        log_file = tmp_path / "b64filter.log"
        monkeypatch.setenv("B64FILTER_LOG_HANDLERS", "file")
        monkeypatch.setenv("B64FILTER_LOG_FILE", str(log_file))

        result = runner.invoke(main, ["cat"], input=lorem_input)

        assert result.exit_code == 0, result.output
        assert "processed 2 documents" not in result.stderr
        assert "processed 2 documents" in log_file.read_text()

    def test_invalid_log_handler_environment(self, runner, lorem_input, monkeypatch):
        monkeypatch.setenv("B64FILTER_LOG_HANDLERS", "carrier-pigeon")

        result = runner.invoke(main, ["cat"], input=lorem_input)

        assert result.exit_code == 1
        assert "Unknown log handler" in result.stderr

    def test_rejects_negative_progress(self, runner):
        result = runner.invoke(main, ["-p", "-1", "cat"])
        assert result.exit_code == 2


class TestCliProcess:
    """Run the installed module as a real process."""

    def test_summary_and_exit_code(self, lorem_input):
        result = subprocess.run(
            [sys.executable, "-m", "b64filter.cli", "cat"],
            input=lorem_input,
            capture_output=True,
        )

        assert result.returncode == 0
        assert result.stdout == lorem_input
        assert b"processed 2 documents" in result.stderr

    def test_filter_failure_exit_code(self, lorem_input):
        result = subprocess.run(
            [sys.executable, "-m", "b64filter.cli", "sh", "-c", "cat; exit 3"],
            input=lorem_input,
            capture_output=True,
        )

        assert result.returncode == 1
        assert result.stdout == lorem_input
        assert b"exit status 3" in result.stderr
