"""Configuration for MCP Sync."""

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

LOCKFILE_NAME = "mcp-sync.lock"
VAULT_FILE_NAME = "vault.enc"
CONFIG_FILE_NAME = "config.yaml"

# PBKDF2 work factor for vault keys. Changing it makes existing vaults unreadable.
KDF_ITERATIONS = 100_000


def _default_home() -> Path:
    env_home = os.getenv("MCP_SYNC_HOME")
    if env_home:
        return Path(env_home).expanduser()
    return Path.home() / ".mcp-sync"


def app_data_dir() -> Path:
    """Platform app data dir: Application Support (mac), %APPDATA% (win), XDG config (linux)."""
    home = Path.home()
    if sys.platform == "darwin":
        return home / "Library" / "Application Support"
    if sys.platform == "win32":
        return Path(os.getenv("APPDATA") or home / "AppData" / "Roaming")
    return Path(os.getenv("XDG_CONFIG_HOME") or home / ".config")


def default_client_paths() -> Dict[str, Path]:
    """Config file location for every supported client on this platform."""
    app_data = app_data_dir()
    if sys.platform in ("darwin", "win32"):
        vscode = app_data / "Code" / "User" / "settings.json"
    else:
        # VS Code keeps user settings under ~/.config even when XDG_CONFIG_HOME moves
        vscode = Path.home() / ".config" / "Code" / "User" / "settings.json"

    return {
        "claude-desktop": app_data / "Claude" / "claude_desktop_config.json",
        "cursor": app_data / "Cursor" / "User" / "globalStorage" / "cursor.mcp" / "mcp.json",
        "vscode": vscode,
        "windsurf": (
            app_data / "Windsurf" / "User" / "globalStorage"
            / "windsurf.mcpConfigJson" / "mcp.json"
        ),
    }


class Settings(BaseModel):
    """Runtime settings."""

    # Data directory holding the global lockfile, the vault and config.yaml
    home: Path = Field(default_factory=_default_home)

    vault_path: Optional[Path] = Field(
        default_factory=lambda: Path(os.environ["MCP_SYNC_VAULT"]).expanduser()
        if os.getenv("MCP_SYNC_VAULT") else None
    )

    client_paths: Dict[str, Path] = Field(default_factory=default_client_paths)

    password_min_length: int = 8

    @property
    def global_lockfile_path(self) -> Path:
        return self.home / LOCKFILE_NAME

    @property
    def resolved_vault_path(self) -> Path:
        return self.vault_path or self.home / VAULT_FILE_NAME

    @property
    def config_file(self) -> Path:
        return self.home / CONFIG_FILE_NAME


def load_settings(config_file: Optional[Path] = None) -> Settings:
    """
    Build settings from defaults, environment and the optional YAML file.

    The YAML file may override ``vault_path``, ``password_min_length`` and
    individual entries of ``client_paths``. An unreadable file is ignored.
    """
    settings = Settings()
    path = config_file or settings.config_file

    if not path.exists():
        return settings

    try:
        with open(path) as f:
            overrides = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        return settings

    if not isinstance(overrides, dict):
        logger.warning(f"Ignoring config file {path}: expected a mapping")
        return settings

    data = settings.model_dump()
    client_overrides = overrides.pop("client_paths", None) or {}
    data.update({k: v for k, v in overrides.items() if k in Settings.model_fields})
    data["client_paths"] = {
        **data["client_paths"],
        **{k: Path(v).expanduser() for k, v in client_overrides.items()},
    }

    try:
        return Settings(**data)
    except ValidationError as e:
        logger.warning(f"Ignoring invalid config file {path}: {e}")
        return settings


def get_settings() -> Settings:
    """Current settings; re-read on each call so environment changes apply."""
    return load_settings()
