"""Vault helpers for flows that consume secrets without managing them."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict

from mcp_sync.vault.crypto import CorruptEntryError, DecryptionError
from mcp_sync.vault.session import PromptCancelled
from mcp_sync.vault.store import SecretsVault

logger = logging.getLogger(__name__)


class SecretLoadStatus(str, Enum):
    """How an attempt to load a server's secrets ended."""
    LOADED = "loaded"
    EMPTY = "empty"
    WRONG_PASSWORD = "wrong_password"
    CORRUPT = "corrupt"
    CANCELLED = "cancelled"


@dataclass
class SecretLoadResult:
    """Secrets for a server plus the reason when there are none."""
    status: SecretLoadStatus
    secrets: Dict[str, str] = field(default_factory=dict)

    @property
    def loaded(self) -> bool:
        return self.status == SecretLoadStatus.LOADED


def load_server_secrets(server: str, vault: SecretsVault) -> SecretLoadResult:
    """
    Load a server's secrets for launching it.

    Never prompts when the server has nothing in the vault. A wrong password
    or corrupt entry degrades to "no secrets" with a warning, so the caller
    can carry on without them.
    """
    if not vault.has_secrets(server):
        return SecretLoadResult(SecretLoadStatus.EMPTY)

    try:
        password = vault.session.get()
        return SecretLoadResult(SecretLoadStatus.LOADED, vault.get_secrets_for_server(server, password))
    except PromptCancelled:
        return SecretLoadResult(SecretLoadStatus.CANCELLED)
    except DecryptionError as e:
        logger.warning(f"Could not decrypt secrets for '{server}', continuing without them: {e}")
        return SecretLoadResult(SecretLoadStatus.WRONG_PASSWORD)
    except CorruptEntryError as e:
        logger.warning(f"Vault entry for '{server}' is corrupt, continuing without secrets: {e}")
        return SecretLoadResult(SecretLoadStatus.CORRUPT)


def save_server_secrets(server: str, values: Dict[str, str], vault: SecretsVault) -> int:
    """Encrypt and store several secrets for a server. Returns how many were saved."""
    if not values:
        return 0

    password = vault.session.get(confirm=not vault.exists())
    try:
        for key, value in values.items():
            vault.set_secret(server, key, value, password)
    except DecryptionError:
        vault.session.clear()
        raise
    logger.info(f"Saved {len(values)} secret(s) for '{server}'")
    return len(values)
