"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from paperlingo.cli.main import app
from paperlingo.config import get_settings

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

# Project root
PROJECT_ROOT = Path(__file__).parent.parent.parent

runner = CliRunner()


def run_cli_command(command: str, env: dict, timeout: int = 30) -> tuple[int, str, str]:
    """
    Run a CLI command and return exit code, stdout, stderr.

    Args:
        command: The command to run (after 'python -m paperlingo')
        env: Extra environment variables
        timeout: Maximum time to wait

    Returns:
        Tuple of (exit_code, stdout, stderr)
    """
    full_command = f"{sys.executable} -m paperlingo {command}"

    result = subprocess.run(
        full_command,
        shell=True,
        cwd=PROJECT_ROOT,
        capture_output=True,
        text=True,
        timeout=timeout,
        env={**os.environ, **env},
    )

    return result.returncode, result.stdout, result.stderr


@pytest.fixture
def cli_env(tmp_path):
    return {"DATABASE_URL": f"sqlite:///{tmp_path / 'cli.db'}", "REMOTE_BASE_URL": ""}


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self, cli_env):
        """Main help should display without errors."""
        code, stdout, stderr = run_cli_command("--help", cli_env)

        assert code == 0, f"Help failed: {stderr}"
        assert "paperlingo" in stdout.lower()
        assert "review" in stdout

    def test_deck_help(self, cli_env):
        code, stdout, stderr = run_cli_command("deck --help", cli_env)

        assert code == 0, f"Help failed: {stderr}"
        assert "create" in stdout

    def test_version(self, cli_env):
        code, stdout, _ = run_cli_command("version", cli_env)

        assert code == 0
        assert "paperlingo" in stdout


class TestCLIFlow:
    """Run commands in-process against a temporary store."""

    def test_add_due_and_stats(self):
        result = runner.invoke(app, ["add", "quixotic", "idealistic", "--phonetic", "kwɪkˈsɒtɪk"])
        assert result.exit_code == 0, result.output
        assert "Saved" in result.output

        result = runner.invoke(app, ["add", "Quixotic", "again"])
        assert result.exit_code == 0
        assert "already saved" in result.output

        result = runner.invoke(app, ["due"])
        assert result.exit_code == 0
        assert "quixotic" in result.output

        result = runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Today" in result.output

    def test_limit(self):
        result = runner.invoke(app, ["limit", "25"])
        assert result.exit_code == 0
        assert "25" in result.output

        result = runner.invoke(app, ["limit"])
        assert "25" in result.output

        result = runner.invoke(app, ["limit", "0"])
        assert result.exit_code == 1

    def test_deck_lifecycle(self):
        result = runner.invoke(app, ["deck", "create", "Geology"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["add", "schist", "rock", "--deck", "geology"])
        assert result.exit_code == 0, result.output

        result = runner.invoke(app, ["deck", "list"])
        assert "Geology" in result.output

        result = runner.invoke(app, ["deck", "delete", "Geology", "--yes"])
        assert result.exit_code == 0
        assert "1 cards" in result.output

    def test_unknown_deck(self):
        result = runner.invoke(app, ["due", "--deck", "nowhere"])
        assert result.exit_code == 1

    def test_import(self, tmp_path):
        path = tmp_path / "words.csv"
        path.write_text("tenacious,persistent\nbroken\n", encoding="utf-8")

        result = runner.invoke(app, ["import", str(path)])

        assert result.exit_code == 0, result.output
        assert "Import Summary" in result.output

    def test_review_quit_immediately(self):
        runner.invoke(app, ["add", "brisk", "quick"])

        result = runner.invoke(app, ["review"], input="q\n")

        assert result.exit_code == 0, result.output
        assert "Cards reviewed: 0" in result.output

    def test_review_one_card(self):
        runner.invoke(app, ["add", "brisk", "quick"])

        result = runner.invoke(app, ["review"], input="\n3\n")

        assert result.exit_code == 0, result.output
        assert "Cards reviewed: 1" in result.output

    def test_login_without_remote_keeps_cards(self):
        runner.invoke(app, ["add", "steadfast", "loyal"])

        result = runner.invoke(app, ["login", "learner-1"])

        assert result.exit_code == 0, result.output
        assert "locally" in result.output

        result = runner.invoke(app, ["due"])
        assert "steadfast" in result.output

    def test_unlinked_identity_works_locally(self, monkeypatch):
        monkeypatch.setenv("REMOTE_BASE_URL", "http://127.0.0.1:9")
        get_settings.cache_clear()

        result = runner.invoke(app, ["add", "candid", "frank", "--identity", "bob"])

        assert result.exit_code == 0, result.output
        assert "paperlingo login bob" in result.output
        assert "Saved" in result.output
