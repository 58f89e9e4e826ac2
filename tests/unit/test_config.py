"""Tests for settings loading."""

from pathlib import Path

import yaml
from mcp_sync.config import (
    CONFIG_FILE_NAME,
    KDF_ITERATIONS,
    LOCKFILE_NAME,
    VAULT_FILE_NAME,
    get_settings,
    load_settings,
)


class TestSettings:
    """Test settings from environment and config.yaml."""

    def test_home_from_environment(self, home_dir):
        """Test MCP_SYNC_HOME sets the data directory."""
        settings = get_settings()

        assert settings.home == home_dir
        assert settings.global_lockfile_path == home_dir / LOCKFILE_NAME
        assert settings.resolved_vault_path == home_dir / VAULT_FILE_NAME

    def test_vault_from_environment(self, monkeypatch, tmp_path):
        """Test MCP_SYNC_VAULT overrides the vault location."""
        monkeypatch.setenv("MCP_SYNC_VAULT", str(tmp_path / "elsewhere.enc"))

        assert get_settings().resolved_vault_path == tmp_path / "elsewhere.enc"

    def test_defaults_without_config_file(self):
        """Test defaults when config.yaml is absent."""
        settings = get_settings()

        assert settings.password_min_length == 8
        assert set(settings.client_paths) == {"claude-desktop", "cursor", "vscode", "windsurf"}

    def test_yaml_overrides(self, home_dir, tmp_path):
        """Test config.yaml overrides individual settings."""
        (home_dir / CONFIG_FILE_NAME).write_text(yaml.safe_dump({
            "password_min_length": 12,
            "vault_path": str(tmp_path / "team.enc"),
            "client_paths": {"cursor": str(tmp_path / "cursor.json")},
        }))

        settings = get_settings()

        assert settings.password_min_length == 12
        assert settings.resolved_vault_path == tmp_path / "team.enc"
        assert settings.client_paths["cursor"] == tmp_path / "cursor.json"
        # Untouched clients keep their platform default
        assert "claude-desktop" in settings.client_paths

    def test_unknown_keys_ignored(self, home_dir):
        """Test unrelated keys in config.yaml are ignored."""
        (home_dir / CONFIG_FILE_NAME).write_text("theme: dark\npassword_min_length: 10\n")

        assert get_settings().password_min_length == 10

    def test_invalid_yaml_falls_back(self, home_dir, caplog):
        """Test a broken config file is ignored with a warning."""
        (home_dir / CONFIG_FILE_NAME).write_text("password_min_length: [unclosed\n")

        settings = get_settings()

        assert settings.password_min_length == 8
        assert "Ignoring" in caplog.text

    def test_non_mapping_falls_back(self, home_dir):
        """Test a YAML list is ignored."""
        (home_dir / CONFIG_FILE_NAME).write_text("- a\n- b\n")

        assert get_settings().password_min_length == 8

    def test_invalid_value_falls_back(self, home_dir):
        """Test values of the wrong type are ignored."""
        (home_dir / CONFIG_FILE_NAME).write_text("password_min_length: lots\n")

        assert get_settings().password_min_length == 8

    def test_explicit_config_file(self, tmp_path):
        """Test loading from an explicit path."""
        config_file = tmp_path / "custom.yaml"
        config_file.write_text("password_min_length: 16\n")

        assert load_settings(config_file).password_min_length == 16

    def test_kdf_iterations(self):
        """Test the vault work factor is fixed."""
        assert KDF_ITERATIONS == 100_000
        assert isinstance(get_settings().home, Path)
