"""
Password-based encryption of individual vault secrets.

Each secret gets its own random salt and IV. The password is stretched with
PBKDF2-HMAC-SHA256; the first 32 derived bytes are the AES-256-CBC key and
the next 32 key an HMAC-SHA256 tag over ``iv || ciphertext``. The tag makes
a wrong password a hard failure instead of an occasional lucky padding match.

Entries written without a tag still decrypt (padding and UTF-8 checks only):
PBKDF2's first output block does not depend on the requested length, so the
cipher key is the same either way.
"""

import os
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError

from mcp_sync.config import KDF_ITERATIONS
from mcp_sync.models import EncryptedEntry

SALT_BYTES = 16
IV_BYTES = 16
KEY_BYTES = 32
BLOCK_BITS = 128


class VaultError(Exception):
    """Base error for vault operations."""


class DecryptionError(VaultError):
    """Raised when a secret cannot be decrypted with the given password."""


class CorruptEntryError(VaultError):
    """Raised when an encrypted entry is structurally invalid."""


def derive_keys(password: str, salt: bytes):
    """Return (cipher_key, mac_key) for a password and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_BYTES * 2,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    material = kdf.derive(password.encode("utf-8"))
    return material[:KEY_BYTES], material[KEY_BYTES:]


def _tag(mac_key: bytes, iv: bytes, ciphertext: bytes) -> hmac.HMAC:
    h = hmac.HMAC(mac_key, hashes.SHA256())
    h.update(iv + ciphertext)
    return h


def encrypt(plaintext: str, password: str) -> EncryptedEntry:
    """Encrypt one value. Two calls never share a salt, IV or ciphertext."""
    salt = os.urandom(SALT_BYTES)
    iv = os.urandom(IV_BYTES)
    cipher_key, mac_key = derive_keys(password, salt)

    padder = padding.PKCS7(BLOCK_BITS).padder()
    padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

    encryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(padded) + encryptor.finalize()

    return EncryptedEntry(
        salt=salt.hex(),
        iv=iv.hex(),
        data=ciphertext.hex(),
        mac=_tag(mac_key, iv, ciphertext).finalize().hex(),
    )


def load_entry(raw: Any) -> EncryptedEntry:
    """Validate a stored entry, raising CorruptEntryError when it is malformed."""
    if isinstance(raw, EncryptedEntry):
        return raw
    try:
        return EncryptedEntry.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"]) or "entry"
        raise CorruptEntryError(f"Encrypted entry is malformed: {fields}") from None


def _decode(entry: EncryptedEntry):
    try:
        salt = bytes.fromhex(entry.salt)
        iv = bytes.fromhex(entry.iv)
        ciphertext = bytes.fromhex(entry.data)
        tag = bytes.fromhex(entry.mac) if entry.mac else None
    except ValueError as e:
        raise CorruptEntryError(f"Encrypted entry is not valid hex: {e}") from e

    if len(salt) != SALT_BYTES or len(iv) != IV_BYTES:
        raise CorruptEntryError("Encrypted entry has a malformed salt or IV")
    if not ciphertext or len(ciphertext) % (BLOCK_BITS // 8):
        raise CorruptEntryError("Encrypted entry has a malformed ciphertext")
    return salt, iv, ciphertext, tag


def decrypt(entry: Any, password: str) -> str:
    """
    Decrypt one value.

    Raises:
        DecryptionError: wrong password, or the entry was tampered with.
        CorruptEntryError: the entry is not a well-formed encrypted value.
    """
    salt, iv, ciphertext, tag = _decode(load_entry(entry))
    cipher_key, mac_key = derive_keys(password, salt)

    if tag is not None:
        try:
            _tag(mac_key, iv, ciphertext).verify(tag)
        except InvalidSignature:
            raise DecryptionError("Wrong master password or tampered secret") from None

    decryptor = Cipher(algorithms.AES(cipher_key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()

    try:
        unpadder = padding.PKCS7(BLOCK_BITS).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
        return plaintext.decode("utf-8")
    except ValueError:
        raise DecryptionError("Wrong master password or corrupt secret") from None
