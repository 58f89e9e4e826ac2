"""Integration tests for CLI functionality."""

import json
import pytest
from typer.testing import CliRunner
from mcp_sync import __version__
from mcp_sync.cli import app, mask_value, parse_key_value
from mcp_sync.config import LOCKFILE_NAME
from mcp_sync.lockfile import LockFileManager
from mcp_sync.models import LockEntry
from mcp_sync.vault import PasswordSession
import mcp_sync.vault.session as session_module

PASSWORD = "correct horse battery"


def write_client(path, servers):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"mcpServers": servers}, indent=2))


def read_servers(path):
    return json.loads(path.read_text())["mcpServers"]


def flat(output):
    """Collapse rich line wrapping so phrases match whatever the terminal width."""
    return " ".join(output.split())


class TestCLIIntegration:
    """Test CLI integration and workflows."""

    @pytest.fixture
    def runner(self):
        """Create a CLI test runner."""
        return CliRunner()

    @pytest.fixture
    def installed(self, client_paths):
        """Claude Desktop (with one server) and Cursor installed."""
        write_client(client_paths["claude-desktop"], {"fs": {"command": "npx", "args": ["-y", "@mcp/fs"]}})
        client_paths["cursor"].parent.mkdir(parents=True)
        return client_paths

    @pytest.fixture
    def lockfile(self, tmp_path):
        """Lock file intending fs for Claude Desktop and Cursor."""
        path = tmp_path / LOCKFILE_NAME
        LockFileManager(path).add_entry("fs", LockEntry(
            version="1.0.0",
            command="npx",
            args=["-y", "@mcp/fs"],
            env_vars=["FS_ROOT"],
            clients=["claude-desktop", "cursor"],
        ))
        return path

    @pytest.fixture
    def install_session(self, monkeypatch, scripted_prompt):
        """Replace the process-wide password session with a scripted one."""
        def install(*answers):
            prompt = scripted_prompt(*answers)
            monkeypatch.setattr(session_module, "_default_session", PasswordSession(prompt=prompt))
            return prompt
        return install

    def test_version(self, runner):
        """Test --version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    # sync

    def test_sync_adds_missing_server(self, runner, installed, lockfile):
        """Test sync writes the locked server to clients missing it."""
        result = runner.invoke(app, ["sync", "--yes", "--lockfile", str(lockfile)])

        assert result.exit_code == 0, result.output
        assert "Added 1 server(s)" in flat(result.output)
        assert read_servers(installed["cursor"]) == {
            "fs": {"command": "npx", "args": ["-y", "@mcp/fs"], "env": {"FS_ROOT": ""}}
        }
        # Already in sync, untouched
        assert read_servers(installed["claude-desktop"]) == {"fs": {"command": "npx", "args": ["-y", "@mcp/fs"]}}

    def test_sync_discovers_lockfile(self, runner, installed, lockfile):
        """Test the lock file in the working directory is used by default."""
        result = runner.invoke(app, ["sync", "--yes"])

        assert result.exit_code == 0, result.output
        assert "fs" in read_servers(installed["cursor"])

    def test_sync_dry_run_reports_drift(self, runner, installed, lockfile):
        """Test --dry-run exits 1 on drift and writes nothing."""
        result = runner.invoke(app, ["sync", "--dry-run", "--lockfile", str(lockfile)])

        assert result.exit_code == 1
        assert "Dry run" in flat(result.output)
        assert not installed["cursor"].exists()

    def test_sync_in_sync(self, runner, installed, lockfile):
        """Test nothing to do."""
        write_client(installed["cursor"], {"fs": {"command": "npx"}})

        result = runner.invoke(app, ["sync", "--dry-run", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert "All clients are in sync" in flat(result.output)

    def test_sync_declined(self, runner, installed, lockfile):
        """Test declining the confirmation is a clean cancel."""
        result = runner.invoke(app, ["sync", "--lockfile", str(lockfile)], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.output
        assert not installed["cursor"].exists()

    def test_sync_leaves_extras_by_default(self, runner, installed, lockfile):
        """Test servers unknown to the lock file are kept without --remove."""
        write_client(installed["cursor"], {"fs": {"command": "npx"}, "old": {"command": "x"}})

        result = runner.invoke(app, ["sync", "--yes", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert "Extra servers left untouched" in flat(result.output)
        assert set(read_servers(installed["cursor"])) == {"fs", "old"}

    def test_sync_remove(self, runner, installed, lockfile):
        """Test --remove deletes servers unknown to the lock file."""
        write_client(installed["cursor"], {"fs": {"command": "npx"}, "old": {"command": "x"}})

        result = runner.invoke(app, ["sync", "--remove", "--yes", "--lockfile", str(lockfile)])

        assert result.exit_code == 0, result.output
        assert "Removed 1 server(s)" in flat(result.output)
        assert set(read_servers(installed["cursor"])) == {"fs"}

    def test_sync_remove_keeps_invalid_lock_entries(self, runner, installed, lockfile):
        """Test --remove spares servers whose lock entry could not be read."""
        raw = json.loads(lockfile.read_text())
        raw["servers"]["py"] = {"version": "0.3.0", "source": "pypi", "command": "uvx"}
        lockfile.write_text(json.dumps(raw))
        write_client(installed["cursor"], {"fs": {"command": "npx"}, "py": {"command": "uvx"}})

        result = runner.invoke(app, ["sync", "--remove", "--yes", "--lockfile", str(lockfile)])

        assert result.exit_code == 0, result.output
        assert set(read_servers(installed["cursor"])) == {"fs", "py"}
        assert "py" in json.loads(lockfile.read_text())["servers"]

    def test_sync_from_source_client(self, runner, installed):
        """Test --source copies servers from one client to the others."""
        write_client(installed["cursor"], {"gh": {"command": "docker", "args": ["run", "gh"]}})

        result = runner.invoke(app, ["sync", "--source", "cursor", "--yes"])

        assert result.exit_code == 0, result.output
        servers = read_servers(installed["claude-desktop"])
        assert servers["gh"] == {"command": "docker", "args": ["run", "gh"]}
        assert "fs" in servers

    def test_sync_invalid_source(self, runner, installed):
        """Test an unknown source client is rejected."""
        result = runner.invoke(app, ["sync", "--source", "bogus"])

        assert result.exit_code == 1
        assert "Invalid --source" in flat(result.output)

    def test_sync_source_not_detected(self, runner, installed):
        """Test a valid but uninstalled source client is rejected."""
        result = runner.invoke(app, ["sync", "--source", "windsurf"])

        assert result.exit_code == 1

    def test_sync_no_clients(self, runner, client_paths, lockfile):
        """Test sync with no installed clients."""
        result = runner.invoke(app, ["sync", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert "No AI clients detected" in flat(result.output)

    def test_sync_skips_unreadable_client(self, runner, installed, lockfile):
        """Test a broken client config does not stop the others."""
        installed["cursor"].write_text("{broken")
        installed["vscode"].parent.mkdir(parents=True)

        result = runner.invoke(app, ["sync", "--yes", "--lockfile", str(lockfile)])

        assert result.exit_code == 0, result.output
        assert installed["cursor"].read_text() == "{broken"

    # diff

    def test_diff(self, runner, installed):
        """Test diff between two clients."""
        write_client(installed["cursor"], {
            "fs": {"command": "npx", "args": ["@mcp/fs"]},
            "gh": {"command": "docker"},
        })

        result = runner.invoke(app, ["diff", "claude-desktop", "cursor"])

        assert result.exit_code == 0
        assert "gh" in result.output
        assert "+1 added" in flat(result.output)
        assert "~1 changed" in flat(result.output)

    def test_diff_json(self, runner, installed):
        """Test diff JSON output."""
        write_client(installed["cursor"], {
            "fs": {"command": "npx", "args": ["@mcp/fs"]},
            "gh": {"command": "docker"},
        })

        result = runner.invoke(app, ["diff", "claude-desktop", "cursor", "--json"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["clientA"] == "claude-desktop"
        assert payload["clientB"] == "cursor"
        assert payload["diffs"] == [
            {"server": "gh", "change": "added", "details": []},
            {"server": "fs", "change": "changed", "details": ['args: ["-y", "@mcp/fs"] → ["@mcp/fs"]']},
        ]

    def test_diff_identical(self, runner, installed):
        """Test identical configs."""
        write_client(installed["cursor"], {"fs": {"command": "npx", "args": ["-y", "@mcp/fs"]}})

        result = runner.invoke(app, ["diff", "claude-desktop", "cursor"])

        assert result.exit_code == 0
        assert "No differences" in flat(result.output)

    def test_diff_same_client(self, runner, installed):
        """Test diffing a client with itself is rejected."""
        result = runner.invoke(app, ["diff", "cursor", "cursor"])

        assert result.exit_code == 1

    def test_diff_invalid_client(self, runner, installed):
        """Test an unknown client is rejected."""
        result = runner.invoke(app, ["diff", "cursor", "zed"])

        assert result.exit_code == 1

    def test_diff_unreadable_client(self, runner, installed):
        """Test a broken config fails the diff."""
        installed["cursor"].write_text("{broken")

        result = runner.invoke(app, ["diff", "claude-desktop", "cursor"])

        assert result.exit_code == 1
        assert "Could not read config" in flat(result.output)

    # secrets

    def test_secrets_workflow(self, runner, install_session):
        """Test set, list, get and remove."""
        prompt = install_session(PASSWORD, PASSWORD)

        result = runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=ghp_abc123def"])
        assert result.exit_code == 0, result.output
        assert prompt.calls == 2

        result = runner.invoke(app, ["secrets", "list"])
        assert result.exit_code == 0
        assert "github" in result.output
        assert "GITHUB_TOKEN" in result.output
        assert "ghp_abc123def" not in result.output

        result = runner.invoke(app, ["secrets", "get", "github", "GITHUB_TOKEN"])
        assert result.exit_code == 0
        assert result.output.strip() == "ghp_***def"

        result = runner.invoke(app, ["secrets", "get", "github", "GITHUB_TOKEN", "--reveal"])
        assert result.output.strip() == "ghp_abc123def"

        result = runner.invoke(app, ["secrets", "remove", "github", "GITHUB_TOKEN", "--yes"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["secrets", "list", "github"])
        assert "No secrets stored for github" in flat(result.output)

    def test_secrets_set_value_with_equals(self, runner, install_session):
        """Test only the first '=' separates key and value."""
        install_session(PASSWORD, PASSWORD)

        runner.invoke(app, ["secrets", "set", "db", "DSN=postgres://u:p@h/db?sslmode=require"])
        result = runner.invoke(app, ["secrets", "get", "db", "DSN", "--reveal"])

        assert result.output.strip() == "postgres://u:p@h/db?sslmode=require"

    def test_secrets_set_invalid_format(self, runner, install_session):
        """Test a malformed KEY=VALUE."""
        prompt = install_session()

        result = runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN"])

        assert result.exit_code == 1
        assert "KEY=VALUE" in result.output
        assert prompt.calls == 0

    def test_secrets_set_cancelled(self, runner, install_session):
        """Test aborting the password prompt exits cleanly."""
        install_session(KeyboardInterrupt)

        result = runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=x"])

        assert result.exit_code == 0
        assert "cancelled" in result.output

    def test_secrets_set_mismatch(self, runner, install_session):
        """Test a mismatched confirmation fails."""
        install_session(PASSWORD, "something else entirely")

        result = runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=x"])

        assert result.exit_code == 1
        assert "do not match" in flat(result.output)

    def test_secrets_get_wrong_password(self, runner, install_session):
        """Test a wrong master password is a hard failure."""
        install_session(PASSWORD, PASSWORD)
        runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=ghp_abc123def"])

        install_session("definitely wrong")
        result = runner.invoke(app, ["secrets", "get", "github", "GITHUB_TOKEN"])

        assert result.exit_code == 1
        assert "ghp_abc123def" not in result.output

    def test_secrets_set_wrong_password(self, runner, install_session):
        """Test a wrong master password stores nothing in an existing vault."""
        install_session(PASSWORD, PASSWORD)
        runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=ghp_abc123def"])

        install_session("definitely wrong")
        result = runner.invoke(app, ["secrets", "set", "slack", "SLACK_TOKEN=xoxb"])

        assert result.exit_code == 1
        assert "Wrong master password" in flat(result.output)
        listing = runner.invoke(app, ["secrets", "list"]).output
        assert "slack" not in listing
        assert "GITHUB_TOKEN" in listing

    def test_secrets_get_missing(self, runner, install_session):
        """Test getting a secret for an unknown server does not prompt."""
        prompt = install_session()

        result = runner.invoke(app, ["secrets", "get", "github", "GITHUB_TOKEN"])

        assert result.exit_code == 1
        assert prompt.calls == 0

    def test_secrets_list_empty(self, runner, install_session):
        """Test listing an empty vault does not prompt."""
        prompt = install_session()

        result = runner.invoke(app, ["secrets", "list"])

        assert result.exit_code == 0
        assert "No secrets stored" in flat(result.output)
        assert prompt.calls == 0

    def test_secrets_remove_declined(self, runner, install_session):
        """Test declining removal keeps the secret."""
        install_session(PASSWORD, PASSWORD)
        runner.invoke(app, ["secrets", "set", "github", "GITHUB_TOKEN=x"])

        result = runner.invoke(app, ["secrets", "remove", "github", "GITHUB_TOKEN"], input="n\n")

        assert result.exit_code == 0
        assert "GITHUB_TOKEN" in runner.invoke(app, ["secrets", "list"]).output

    # lock

    def test_lock_list(self, runner, lockfile):
        """Test listing lock file entries."""
        result = runner.invoke(app, ["lock", "list", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert "fs" in result.output
        assert "1.0.0" in result.output

    def test_lock_list_empty(self, runner, tmp_path):
        """Test listing a missing lock file."""
        result = runner.invoke(app, ["lock", "list", "--lockfile", str(tmp_path / "none.lock")])

        assert result.exit_code == 0
        assert "No entries" in flat(result.output)

    def test_lock_remove(self, runner, lockfile):
        """Test removing a lock file entry."""
        result = runner.invoke(app, ["lock", "remove", "fs", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert LockFileManager(lockfile).get_entry("fs") is None

    def test_lock_list_shows_invalid_entries(self, runner, lockfile):
        """Test invalid entries are listed and can be removed."""
        raw = json.loads(lockfile.read_text())
        raw["servers"]["py"] = {"source": "pypi"}
        lockfile.write_text(json.dumps(raw))

        result = runner.invoke(app, ["lock", "list", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert "invalid" in result.output

        result = runner.invoke(app, ["lock", "remove", "py", "--lockfile", str(lockfile)])

        assert result.exit_code == 0
        assert set(json.loads(lockfile.read_text())["servers"]) == {"fs"}

    def test_lock_remove_missing(self, runner, lockfile):
        """Test removing an unknown entry fails."""
        result = runner.invoke(app, ["lock", "remove", "ghost", "--lockfile", str(lockfile)])

        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_lock_init(self, runner, tmp_path):
        """Test creating an empty lock file."""
        project = tmp_path / "project"
        project.mkdir()

        result = runner.invoke(app, ["lock", "init", str(project)])

        assert result.exit_code == 0
        assert json.loads((project / LOCKFILE_NAME).read_text()) == {"lockfileVersion": 1, "servers": {}}

        result = runner.invoke(app, ["lock", "init", str(project)])
        assert "already exists" in flat(result.output)


class TestCLIHelpers:
    """Test small CLI helpers."""

    def test_mask_value(self):
        """Test secret masking."""
        assert mask_value("short") == "***"
        assert mask_value("12345678") == "***"
        assert mask_value("sk-1234567890") == "sk-1***890"

    def test_parse_key_value(self):
        """Test KEY=VALUE parsing."""
        assert parse_key_value("A=b") == ("A", "b")
        assert parse_key_value("A=") == ("A", "")
        assert parse_key_value("A=b=c") == ("A", "b=c")
        assert parse_key_value("=b") is None
        assert parse_key_value("A") is None
