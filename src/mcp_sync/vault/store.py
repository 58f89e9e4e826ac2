"""Encrypted secret storage for MCP server credentials."""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

from mcp_sync.config import get_settings
from mcp_sync.models import SecretListing, VaultData
from mcp_sync.vault.crypto import CorruptEntryError, DecryptionError, decrypt, encrypt
from mcp_sync.vault.session import PasswordSession, default_session

logger = logging.getLogger(__name__)

VAULT_FILE_MODE = 0o600


class SecretsVault:
    """
    Manages the vault file: server -> secret key -> encrypted entry.

    Secrets are independent of the lock file: removing a server from the
    lock file leaves its secrets in place until removed explicitly.

    Every operation that needs the master password accepts it explicitly;
    when omitted it is taken from the password session, which prompts at
    most once per process.
    """

    def __init__(
        self,
        vault_path: Optional[Path] = None,
        session: Optional[PasswordSession] = None,
    ):
        """
        Args:
            vault_path: Vault file. Defaults to ``~/.mcp-sync/vault.enc``.
            session: Password session. Defaults to the process-wide one.
        """
        self.vault_path = Path(vault_path) if vault_path else get_settings().resolved_vault_path
        self.session = session or default_session()

    def exists(self) -> bool:
        return self.vault_path.exists()

    def read(self) -> VaultData:
        """
        Load the vault; a missing or unreadable file reads as an empty vault.

        Only the document layout is checked here. Entries are validated when
        decrypted, so one malformed entry neither hides nor drops the others.
        """
        try:
            raw = json.loads(self.vault_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return VaultData()
        except (OSError, ValueError) as e:
            logger.warning(f"Vault {self.vault_path} is unreadable, treating as empty: {e}")
            return VaultData()

        if not isinstance(raw, dict) or raw.get("version") != 1 or not isinstance(raw.get("servers"), dict):
            logger.warning(f"Vault {self.vault_path} is unreadable, treating as empty: unsupported layout")
            return VaultData()

        servers = {}
        for name, entries in raw["servers"].items():
            if isinstance(entries, dict):
                servers[name] = entries
            else:
                logger.warning(f"Ignoring malformed secrets for '{name}' in {self.vault_path}")
        return VaultData(servers=servers)

    def write(self, data: VaultData) -> None:
        """Write the vault atomically with owner-only permissions."""
        self.vault_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.vault_path.with_name(self.vault_path.name + ".tmp")
        content = json.dumps(data.model_dump(mode="json", exclude_none=True), indent=2)

        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, VAULT_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)

        if os.name == "posix":
            # 0600 on both sides of the rename, whatever the umask
            os.chmod(tmp_path, VAULT_FILE_MODE)
        os.replace(tmp_path, self.vault_path)
        if os.name == "posix":
            os.chmod(self.vault_path, VAULT_FILE_MODE)

        logger.debug(f"Wrote vault with {len(data.servers)} server(s) to {self.vault_path}")

    def _password(self, password: Optional[str], confirm: bool = False) -> str:
        return password if password is not None else self.session.get(confirm=confirm)

    def set_secret(self, server: str, key: str, value: str, password: Optional[str] = None) -> None:
        """
        Encrypt and store one secret, replacing any previous value.

        When the vault already holds secrets the password must open one of
        them, so a mistyped password never stores an unreadable secret.

        Raises:
            DecryptionError: the password does not match the stored secrets.
        """
        from_session = password is None
        # A brand-new vault gets its password confirmed
        password = self._password(password, confirm=not self.exists())
        vault = self.read()
        try:
            self._check_password(vault, server, password)
        except DecryptionError:
            if from_session:
                self.session.clear()
            raise

        vault.servers.setdefault(server, {})[key] = encrypt(value, password).model_dump(exclude_none=True)
        self.write(vault)

    def _check_password(self, vault: VaultData, server: str, password: str) -> None:
        """Decrypt one well-formed entry, trying the target server first."""
        own = list(vault.servers.get(server, {}).values())
        others = [entry for name, entries in vault.servers.items() if name != server for entry in entries.values()]
        for entry in own + others:
            try:
                decrypt(entry, password)
            except CorruptEntryError:
                continue
            return

    def get_secret(self, server: str, key: str, password: Optional[str] = None) -> Optional[str]:
        """
        Decrypt one secret; None if it does not exist.

        Raises:
            DecryptionError: wrong master password.
            CorruptEntryError: the stored entry is malformed.
        """
        entry = self.read().servers.get(server, {}).get(key)
        if entry is None:
            return None
        return decrypt(entry, self._password(password))

    def get_secrets_for_server(self, server: str, password: Optional[str] = None) -> Dict[str, str]:
        """
        Decrypt every secret of a server.

        Returns an empty dict without asking for a password when the server
        has no secrets.
        """
        entries = self.read().servers.get(server)
        if not entries:
            return {}
        password = self._password(password)
        return {key: decrypt(entry, password) for key, entry in entries.items()}

    def remove_secret(self, server: str, key: str) -> bool:
        """Delete one secret. Empty server maps are dropped. False if absent."""
        vault = self.read()
        entries = vault.servers.get(server)
        if entries is None or key not in entries:
            return False

        del entries[key]
        if not entries:
            del vault.servers[server]
        self.write(vault)
        return True

    def list_secrets(self, server: Optional[str] = None) -> List[SecretListing]:
        """Server names and secret key names. Nothing is decrypted."""
        servers = self.read().servers
        if server is not None:
            servers = {server: servers[server]} if server in servers else {}
        return [SecretListing(server=name, keys=list(keys)) for name, keys in servers.items()]

    def has_secrets(self, server: str) -> bool:
        listing = self.list_secrets(server)
        return bool(listing and listing[0].keys)
