"""Client detection: which supported clients are installed on this machine."""

import asyncio
import logging
from typing import Dict, List, Type

from mcp_sync.clients.adapters import (
    ClaudeDesktopAdapter,
    CursorAdapter,
    VSCodeAdapter,
    WindsurfAdapter,
)
from mcp_sync.clients.base import ClientAdapter
from mcp_sync.models import ClientType

logger = logging.getLogger(__name__)

ADAPTER_CLASSES: Dict[str, Type[ClientAdapter]] = {
    ClientType.CLAUDE_DESKTOP.value: ClaudeDesktopAdapter,
    ClientType.CURSOR.value: CursorAdapter,
    ClientType.VSCODE.value: VSCodeAdapter,
    ClientType.WINDSURF.value: WindsurfAdapter,
}


def get_all_client_types() -> List[str]:
    """All client kinds with a bundled adapter."""
    return list(ADAPTER_CLASSES)


def get_adapter(client_type: str) -> ClientAdapter:
    """Adapter instance for one client kind."""
    try:
        adapter_class = ADAPTER_CLASSES[ClientType(client_type).value]
    except ValueError:
        raise ValueError(
            f"Unknown client '{client_type}'. Valid: {', '.join(get_all_client_types())}"
        ) from None
    return adapter_class()


async def get_installed_adapters() -> List[ClientAdapter]:
    """Adapters for every supported client that appears to be installed."""
    adapters = [get_adapter(client_type) for client_type in get_all_client_types()]
    installed = await asyncio.gather(*(adapter.is_installed() for adapter in adapters))
    found = [adapter for adapter, ok in zip(adapters, installed) if ok]
    logger.info(f"Detected clients: {', '.join(a.client_type for a in found) or 'none'}")
    return found
