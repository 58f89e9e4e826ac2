"""Lock file manager for installed MCP servers."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from mcp_sync.config import LOCKFILE_NAME, get_settings
from mcp_sync.models import LockEntry, LockfileData

logger = logging.getLogger(__name__)


class ServerNotFoundError(KeyError):
    """Raised when a server is not present in the lock file."""

    def __init__(self, name: str, lockfile_path: Optional[Path] = None):
        self.name = name
        self.lockfile_path = lockfile_path
        super().__init__(name)

    def __str__(self) -> str:
        where = f" ({self.lockfile_path})" if self.lockfile_path else ""
        return f"Server '{self.name}' not found in lock file{where}"


def find_lockfile(start: Optional[Path] = None) -> Optional[Path]:
    """Walk up from ``start`` (default: cwd) looking for a lock file."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        candidate = candidate_dir / LOCKFILE_NAME
        if candidate.exists():
            return candidate
    return None


def get_global_lockfile_path() -> Path:
    """Fallback lock file in the MCP Sync home directory."""
    return get_settings().global_lockfile_path


def resolve_lockfile_path() -> Path:
    """Local lock file if one is found above cwd, else the global one."""
    return find_lockfile() or get_global_lockfile_path()


def serialize(data: LockfileData) -> str:
    """
    Render lock file JSON.

    Server keys are sorted so that the same logical content always produces
    the same bytes, which keeps version-control diffs minimal.
    """
    servers: Dict[str, Any] = dict(data.invalid_servers)
    for name, entry in data.servers.items():
        servers[name] = entry.model_dump(mode="json", by_alias=True)

    document: Dict[str, Any] = {
        "lockfileVersion": data.lockfile_version,
        "servers": {name: servers[name] for name in sorted(servers)},
    }
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


class LockFileManager:
    """Manages mcp-sync.lock files."""

    def __init__(self, lockfile_path: Optional[Path] = None):
        """
        Initialize lock file manager.

        Args:
            lockfile_path: Path to lock file. Defaults to the nearest
                mcp-sync.lock above cwd, or the global one.
        """
        self.lockfile_path = Path(lockfile_path) if lockfile_path else resolve_lockfile_path()

    def read(self) -> LockfileData:
        """
        Load the lock file.

        A missing or corrupt file yields an empty lock file; this never
        raises for those cases so that first run and recovery behave alike.

        Entries are validated one by one. An invalid entry is left out of
        ``servers`` with a warning and kept in ``invalid_servers``, so the
        rest of the file stays usable and a rewrite does not lose it.
        """
        if not self.lockfile_path.exists():
            return LockfileData()

        try:
            raw = json.loads(self.lockfile_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Lock file {self.lockfile_path} is unreadable, treating as empty: {e}")
            return LockfileData()

        if not isinstance(raw, dict) or raw.get("lockfileVersion") != 1 or not isinstance(raw.get("servers"), dict):
            logger.warning(f"Lock file {self.lockfile_path} is unreadable, treating as empty: unsupported layout")
            return LockfileData()

        data = LockfileData()
        for name, raw_entry in raw["servers"].items():
            try:
                data.servers[name] = LockEntry.model_validate(raw_entry)
            except ValidationError as e:
                logger.warning(
                    f"Ignoring invalid lock entry '{name}' in {self.lockfile_path}: {e.errors()[0]['msg']}"
                )
                data.invalid_servers[name] = raw_entry
        return data

    def write(self, data: LockfileData) -> None:
        """Write the lock file atomically (temp file, then rename)."""
        self.lockfile_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.lockfile_path.with_name(self.lockfile_path.name + ".tmp")
        tmp_path.write_text(serialize(data), encoding="utf-8")
        os.replace(tmp_path, self.lockfile_path)
        logger.debug(f"Wrote {len(data.servers)} server(s) to {self.lockfile_path}")

    def add_entry(self, name: str, entry: LockEntry) -> None:
        """Add or replace a server entry."""
        data = self.read()
        data.invalid_servers.pop(name, None)
        data.servers[name] = entry
        self.write(data)

    def remove_entry(self, name: str) -> bool:
        """Remove a server entry. Returns False (and writes nothing) if absent."""
        data = self.read()
        if name not in data.servers and name not in data.invalid_servers:
            return False
        data.servers.pop(name, None)
        data.invalid_servers.pop(name, None)
        self.write(data)
        return True

    def get_entry(self, name: str) -> Optional[LockEntry]:
        """Get a lock entry by server name."""
        return self.read().servers.get(name)

    def require_entry(self, name: str) -> LockEntry:
        """Get a lock entry, raising ServerNotFoundError if absent."""
        entry = self.get_entry(name)
        if entry is None:
            raise ServerNotFoundError(name, self.lockfile_path)
        return entry

    def get_locked_version(self, name: str) -> Optional[str]:
        """Locked version string of a server, if present."""
        entry = self.get_entry(name)
        return entry.version if entry else None

    def create_empty(self) -> None:
        """Write a lock file with no servers."""
        self.write(LockfileData())
