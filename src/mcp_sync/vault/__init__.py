"""Encrypted secrets vault."""

from .crypto import CorruptEntryError, DecryptionError, VaultError, decrypt, encrypt
from .helpers import SecretLoadResult, SecretLoadStatus, load_server_secrets, save_server_secrets
from .session import (
    PasswordMismatchError,
    PasswordSession,
    PasswordTooShortError,
    PromptCancelled,
    default_session,
    reset_default_session,
)
from .store import SecretsVault

__all__ = [
    "encrypt",
    "decrypt",
    "VaultError",
    "DecryptionError",
    "CorruptEntryError",
    "PasswordSession",
    "PromptCancelled",
    "PasswordMismatchError",
    "PasswordTooShortError",
    "default_session",
    "reset_default_session",
    "SecretsVault",
    "SecretLoadResult",
    "SecretLoadStatus",
    "load_server_secrets",
    "save_server_secrets",
]
