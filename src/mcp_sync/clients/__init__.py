"""AI client adapters."""

from .adapters import ClaudeDesktopAdapter, CursorAdapter, VSCodeAdapter, WindsurfAdapter
from .base import (
    ClientAdapter,
    ClientConfigError,
    ConfigParseError,
    ConfigWriteError,
    JsonClientAdapter,
)
from .detector import get_adapter, get_all_client_types, get_installed_adapters

__all__ = [
    "ClientAdapter",
    "JsonClientAdapter",
    "ClientConfigError",
    "ConfigParseError",
    "ConfigWriteError",
    "ClaudeDesktopAdapter",
    "CursorAdapter",
    "VSCodeAdapter",
    "WindsurfAdapter",
    "get_adapter",
    "get_all_client_types",
    "get_installed_adapters",
]
