"""Client adapter interface and the shared JSON-file implementation."""

import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict

from pydantic import ValidationError

from mcp_sync.models import ClientConfig, ServerEntry, display_name

logger = logging.getLogger(__name__)


class ClientConfigError(Exception):
    """Base error for client config I/O."""

    def __init__(self, config_path: Path, message: str):
        self.config_path = config_path
        super().__init__(message)


class ConfigParseError(ClientConfigError):
    """Raised when a client config file cannot be parsed."""

    def __init__(self, config_path: Path, cause: Exception):
        super().__init__(config_path, f"Failed to parse config: {config_path} ({cause})")


class ConfigWriteError(ClientConfigError):
    """Raised when a client config file cannot be written."""

    def __init__(self, config_path: Path, cause: Exception):
        super().__init__(config_path, f"Failed to write config: {config_path} ({cause})")


def atomic_write(path: Path, content: str, mode: int = 0o600) -> None:
    """Write ``content`` to a temp file next to ``path`` and rename it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


class ClientAdapter(ABC):
    """
    Capability interface for one AI client's server list.

    The diff engine and sync executor only talk to clients through this
    interface; how a client lays out its file on disk is the adapter's
    business.
    """

    client_type: str = ""

    @property
    def display_name(self) -> str:
        return display_name(self.client_type)

    @abstractmethod
    def get_config_path(self) -> Path:
        """Location of the client's config file."""
        pass

    @abstractmethod
    async def is_installed(self) -> bool:
        """Whether the client appears to be installed."""
        pass

    @abstractmethod
    async def read_config(self) -> ClientConfig:
        """Read the client's server list. May raise; callers skip the client."""
        pass

    @abstractmethod
    async def write_config(self, config: ClientConfig) -> None:
        """Replace the client's server list."""
        pass

    async def add_server(self, name: str, entry: ServerEntry) -> None:
        """Add or replace one server."""
        config = await self.read_config()
        config.servers[name] = entry
        await self.write_config(config)

    async def remove_server(self, name: str) -> None:
        """Remove one server; absent servers are ignored."""
        config = await self.read_config()
        if config.servers.pop(name, None) is not None:
            await self.write_config(config)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.get_config_path())!r})"


class JsonClientAdapter(ClientAdapter):
    """
    Adapter for clients that keep ``mcpServers`` at the top level of a JSON file.

    Subclasses with a different layout override ``servers_from_raw`` and
    ``merge_servers``. Top-level keys the adapter does not own are left
    untouched on write.
    """

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)

    def get_config_path(self) -> Path:
        return self.config_path

    async def is_installed(self) -> bool:
        return self.config_path.parent.exists()

    def read_raw(self) -> Dict[str, Any]:
        """Raw JSON document; an absent file reads as an empty document."""
        try:
            raw = json.loads(self.config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise ConfigParseError(self.config_path, e) from e

        if not isinstance(raw, dict):
            raise ConfigParseError(self.config_path, TypeError("top-level value is not an object"))
        return raw

    def write_raw(self, raw: Dict[str, Any]) -> None:
        try:
            atomic_write(self.config_path, json.dumps(raw, indent=2, ensure_ascii=False) + "\n")
        except OSError as e:
            raise ConfigWriteError(self.config_path, e) from e

    def servers_from_raw(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        return raw.get("mcpServers") or {}

    def merge_servers(self, raw: Dict[str, Any], servers: Dict[str, Any]) -> Dict[str, Any]:
        return {**raw, "mcpServers": servers}

    async def read_config(self) -> ClientConfig:
        raw = self.read_raw()
        try:
            return ClientConfig(servers=self.servers_from_raw(raw))
        except ValidationError as e:
            raise ConfigParseError(self.config_path, e) from e

    async def write_config(self, config: ClientConfig) -> None:
        raw = self.read_raw()
        servers = {name: entry.to_dict() for name, entry in config.servers.items()}
        self.write_raw(self.merge_servers(raw, servers))
        logger.debug(f"Wrote {len(servers)} server(s) to {self.display_name} config at {self.config_path}")
