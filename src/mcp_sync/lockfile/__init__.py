"""Lock file management for MCP Sync."""

from .manager import (
    LockFileManager,
    ServerNotFoundError,
    find_lockfile,
    get_global_lockfile_path,
    resolve_lockfile_path,
    serialize,
)

__all__ = [
    "LockFileManager",
    "ServerNotFoundError",
    "find_lockfile",
    "get_global_lockfile_path",
    "resolve_lockfile_path",
    "serialize",
]
