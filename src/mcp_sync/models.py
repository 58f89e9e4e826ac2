"""Data models for MCP Sync."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class SourceKind(str, Enum):
    """Where a locked server was installed from."""
    NPM = "npm"
    SMITHERY = "smithery"
    GITHUB = "github"
    LOCAL = "local"


class Runtime(str, Enum):
    """Runtime used to launch a server."""
    NODE = "node"
    PYTHON = "python"
    DOCKER = "docker"


class ClientType(str, Enum):
    """AI clients with a bundled adapter."""
    CLAUDE_DESKTOP = "claude-desktop"
    CURSOR = "cursor"
    VSCODE = "vscode"
    WINDSURF = "windsurf"

    @property
    def display_name(self) -> str:
        return CLIENT_DISPLAY_NAMES[self.value]


CLIENT_DISPLAY_NAMES: Dict[str, str] = {
    "claude-desktop": "Claude Desktop",
    "cursor": "Cursor",
    "vscode": "VS Code",
    "windsurf": "Windsurf",
}


def client_kind(client: Any) -> str:
    """Plain string kind for a ClientType member or string."""
    return client.value if isinstance(client, Enum) else str(client)


def display_name(client: Any) -> str:
    """Human-readable client name, falling back to the raw kind."""
    kind = client_kind(client)
    return CLIENT_DISPLAY_NAMES.get(kind, kind)


class LockEntry(BaseModel):
    """Installation record of one server in the lockfile.

    ``env_vars`` holds variable *names* only; values live in the vault.
    ``clients`` is the intended set of clients, not what was observed.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str = "unknown"
    source: SourceKind = SourceKind.LOCAL
    resolved: str = ""
    integrity: str = ""
    runtime: Runtime = Runtime.NODE
    command: str = ""
    args: List[str] = Field(default_factory=list)
    env_vars: List[str] = Field(default_factory=list, alias="envVars")
    installed_at: str = Field(default_factory=_utc_now, alias="installedAt")
    clients: List[str] = Field(default_factory=list)


class LockfileData(BaseModel):
    """Top-level lockfile document."""
    model_config = ConfigDict(populate_by_name=True)

    lockfile_version: Literal[1] = Field(default=1, alias="lockfileVersion")
    servers: Dict[str, LockEntry] = Field(default_factory=dict)
    # Stored entries that failed validation, written back unchanged
    invalid_servers: Dict[str, Any] = Field(default_factory=dict, exclude=True)


class ServerEntry(BaseModel):
    """A server as a client stores it.

    Extra keys (``type``, ``url``, ...) are kept so they survive a rewrite.
    """
    model_config = ConfigDict(extra="allow")

    command: Optional[str] = None
    args: Optional[List[str]] = None
    env: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Client-facing dict; absent optional fields are omitted."""
        return self.model_dump(exclude_none=True)


class ClientConfig(BaseModel):
    """A client's own server list."""
    servers: Dict[str, ServerEntry] = Field(default_factory=dict)


class SyncActionType(str, Enum):
    """Relationship between a server's presence in the source and a target."""
    ADD = "add"
    REMOVE = "remove"
    EXTRA = "extra"
    OK = "ok"


class SyncAction(BaseModel):
    """One reconciliation step for a (server, client) pair."""
    server: str
    client: str
    action: SyncActionType
    # Only populated for "add"
    entry: Optional[ServerEntry] = None


class FailureKind(str, Enum):
    """Why a sync action could not be applied."""
    NO_HANDLER = "no_handler"
    MISSING_ENTRY = "missing_entry"
    WRITE_FAILED = "write_failed"


class SyncFailure(BaseModel):
    """A single failed sync action."""
    server: str
    client: str
    kind: FailureKind
    error: str


class ApplyResult(BaseModel):
    """Outcome of applying a batch of sync actions."""
    applied: int = 0
    removed: int = 0
    failed: int = 0
    errors: List[SyncFailure] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failed == 0


class DiffChangeType(str, Enum):
    """Change between two client configs."""
    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"


class DiffResult(BaseModel):
    """Difference for one server between two client configs."""
    server: str
    change: DiffChangeType
    # Field-level descriptions, only for "changed"
    details: List[str] = Field(default_factory=list)


class EncryptedEntry(BaseModel):
    """One encrypted secret: hex-encoded salt, IV, ciphertext and MAC tag."""
    salt: str
    iv: str
    data: str
    mac: Optional[str] = None


class VaultData(BaseModel):
    """Top-level vault document: server -> secret key -> encrypted entry.

    Entries are kept as stored and only validated when decrypted.
    """
    version: Literal[1] = 1
    servers: Dict[str, Dict[str, Any]] = Field(default_factory=dict)


class SecretListing(BaseModel):
    """Secret key names stored for a server (no values)."""
    server: str
    keys: List[str] = Field(default_factory=list)
