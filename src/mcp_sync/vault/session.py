"""Process-lifetime master password cache."""

import atexit
import logging
from typing import Callable, Optional

from rich.console import Console
from rich.prompt import Prompt

from mcp_sync.config import get_settings
from mcp_sync.vault.crypto import VaultError

logger = logging.getLogger(__name__)

MAX_PROMPT_ATTEMPTS = 3


class PromptCancelled(Exception):
    """The user aborted the password prompt (Ctrl-C / EOF)."""


class PasswordMismatchError(VaultError):
    """The confirmation did not match the password."""


class PasswordTooShortError(VaultError):
    """No acceptable password was entered."""


def rich_password_prompt(message: str) -> str:
    """Ask for a password on the terminal without echoing it."""
    return Prompt.ask(message, password=True, console=Console(stderr=True))


class PasswordSession:
    """
    Holds the vault master password for the lifetime of one process.

    The password is asked for at most once and kept only in memory. It is
    dropped by ``clear()``, which the default session registers to run at
    interpreter exit; tests call it directly.
    """

    def __init__(
        self,
        prompt: Optional[Callable[[str], str]] = None,
        min_length: int = 8,
    ):
        self._prompt = prompt or rich_password_prompt
        self._min_length = min_length
        self._password: Optional[str] = None

    @property
    def is_cached(self) -> bool:
        return self._password is not None

    def set(self, password: str) -> None:
        self._password = password

    def clear(self) -> None:
        self._password = None

    def _ask(self, message: str) -> str:
        try:
            return self._prompt(message)
        except (KeyboardInterrupt, EOFError):
            raise PromptCancelled("Vault access cancelled") from None

    def get(self, confirm: bool = False) -> str:
        """
        Return the cached password, prompting once if needed.

        Args:
            confirm: Ask twice (used when a new vault is being created).

        Raises:
            PromptCancelled: the user aborted the prompt.
            PasswordMismatchError: the confirmation did not match.
            PasswordTooShortError: every attempt was shorter than the minimum.
        """
        if self._password is not None:
            return self._password

        for _ in range(MAX_PROMPT_ATTEMPTS):
            password = self._ask("Enter vault master password")
            if len(password) >= self._min_length:
                break
            logger.warning(f"Password must be at least {self._min_length} characters")
        else:
            raise PasswordTooShortError(
                f"Password must be at least {self._min_length} characters"
            )

        if confirm and self._ask("Confirm master password") != password:
            raise PasswordMismatchError("Passwords do not match")

        self._password = password
        return password


_default_session: Optional[PasswordSession] = None


def default_session() -> PasswordSession:
    """The session shared by the CLI; cleared automatically at exit."""
    global _default_session
    if _default_session is None:
        _default_session = PasswordSession(min_length=get_settings().password_min_length)
        atexit.register(_default_session.clear)
    return _default_session


def reset_default_session() -> None:
    """Clear and forget the shared session (test isolation)."""
    global _default_session
    if _default_session is not None:
        _default_session.clear()
    _default_session = None
