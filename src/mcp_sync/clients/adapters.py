"""Bundled adapters for the supported AI clients."""

from pathlib import Path
from typing import Any, Dict, Optional

from mcp_sync.clients.base import JsonClientAdapter
from mcp_sync.config import get_settings
from mcp_sync.models import ClientType


def _configured_path(client_type: ClientType) -> Path:
    return get_settings().client_paths[client_type.value]


class ClaudeDesktopAdapter(JsonClientAdapter):
    """Claude Desktop: ``claude_desktop_config.json`` with top-level ``mcpServers``."""

    client_type = ClientType.CLAUDE_DESKTOP.value

    def __init__(self, config_path: Optional[Path] = None):
        super().__init__(config_path or _configured_path(ClientType.CLAUDE_DESKTOP))


class CursorAdapter(JsonClientAdapter):
    """Cursor: global ``mcp.json`` with top-level ``mcpServers``."""

    client_type = ClientType.CURSOR.value

    def __init__(self, config_path: Optional[Path] = None):
        super().__init__(config_path or _configured_path(ClientType.CURSOR))


class WindsurfAdapter(JsonClientAdapter):
    """Windsurf: ``mcp.json`` with top-level ``mcpServers``."""

    client_type = ClientType.WINDSURF.value

    def __init__(self, config_path: Optional[Path] = None):
        super().__init__(config_path or _configured_path(ClientType.WINDSURF))


class VSCodeAdapter(JsonClientAdapter):
    """
    VS Code keeps MCP servers under ``mcp.servers`` in the user settings.json.

    Format: ``{"mcp": {"servers": {"name": {"command": ...}}}}``. Other keys
    under ``mcp`` and the rest of settings.json are preserved.
    """

    client_type = ClientType.VSCODE.value

    def __init__(self, config_path: Optional[Path] = None):
        super().__init__(config_path or _configured_path(ClientType.VSCODE))

    def servers_from_raw(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        mcp = raw.get("mcp")
        if not isinstance(mcp, dict):
            return {}
        return mcp.get("servers") or {}

    def merge_servers(self, raw: Dict[str, Any], servers: Dict[str, Any]) -> Dict[str, Any]:
        existing = raw.get("mcp") if isinstance(raw.get("mcp"), dict) else {}
        return {**raw, "mcp": {**existing, "servers": servers}}
