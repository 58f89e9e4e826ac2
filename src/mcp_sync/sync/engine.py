"""
Sync executor: applies diff actions to client configs.

Each client config is an independent file with no cross-file transaction,
so a failure on one action is recorded and the batch carries on. Writes
happen one at a time in diff order; reads may overlap.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from mcp_sync.clients.base import ClientAdapter
from mcp_sync.clients.detector import get_installed_adapters
from mcp_sync.models import (
    ApplyResult,
    ClientConfig,
    FailureKind,
    SyncAction,
    SyncActionType,
    SyncFailure,
    client_kind,
)

logger = logging.getLogger(__name__)

NO_HANDLER_MESSAGE = "No handler available for client"
MISSING_ENTRY_MESSAGE = "No server entry to add"


async def apply_sync_actions(
    actions: Iterable[SyncAction],
    adapters: Mapping,
    include_removals: bool = False,
) -> ApplyResult:
    """
    Apply ``add`` actions (and ``remove`` actions when opted in).

    ``extra`` and ``ok`` actions are never applied. A missing adapter or entry, or an
    exception from the adapter, is recorded in ``errors`` and never stops the
    remaining actions from being attempted.

    Args:
        actions: Actions in the order they should be applied.
        adapters: Client kind -> adapter.
        include_removals: Also apply ``remove`` actions via ``remove_server``.
    """
    handlers: Dict[str, ClientAdapter] = {client_kind(k): v for k, v in adapters.items()}
    wanted = {SyncActionType.ADD}
    if include_removals:
        wanted.add(SyncActionType.REMOVE)

    result = ApplyResult()

    for action in actions:
        if action.action not in wanted:
            continue

        handler = handlers.get(client_kind(action.client))
        if action.action == SyncActionType.ADD and action.entry is None:
            failure = (FailureKind.MISSING_ENTRY, MISSING_ENTRY_MESSAGE)
        elif handler is None:
            failure = (FailureKind.NO_HANDLER, NO_HANDLER_MESSAGE)
        else:
            failure = None

        if failure is not None:
            kind, message = failure
            result.failed += 1
            result.errors.append(SyncFailure(server=action.server, client=action.client, kind=kind, error=message))
            logger.error(f"Cannot sync '{action.server}' to {action.client}: {message}")
            continue

        try:
            if action.action == SyncActionType.ADD:
                await handler.add_server(action.server, action.entry)
                result.applied += 1
                logger.info(f"Added '{action.server}' to {handler.display_name}")
            else:
                await handler.remove_server(action.server)
                result.removed += 1
                logger.info(f"Removed '{action.server}' from {handler.display_name}")
        except Exception as e:
            result.failed += 1
            result.errors.append(SyncFailure(
                server=action.server,
                client=action.client,
                kind=FailureKind.WRITE_FAILED,
                error=str(e),
            ))
            logger.error(f"Failed to sync '{action.server}' to {handler.display_name}: {e}")

    return result


async def get_client_configs(
    adapters: Optional[List[ClientAdapter]] = None,
) -> Tuple[Dict[str, ClientConfig], Dict[str, ClientAdapter]]:
    """
    Read every client's config concurrently.

    Args:
        adapters: Adapters to read. Defaults to all installed clients.

    Returns:
        (configs, adapters) keyed by client kind. Clients whose config cannot
        be read are logged and left out of both maps.
    """
    if adapters is None:
        try:
            adapters = await get_installed_adapters()
        except OSError as e:
            logger.warning(f"Client detection failed: {e}")
            return {}, {}

    results = await asyncio.gather(
        *(adapter.read_config() for adapter in adapters),
        return_exceptions=True,
    )

    configs: Dict[str, ClientConfig] = {}
    readable: Dict[str, ClientAdapter] = {}
    for adapter, outcome in zip(adapters, results):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning(f"Could not read config for {adapter.display_name}: {outcome}")
            continue
        kind = client_kind(adapter.client_type)
        configs[kind] = outcome
        readable[kind] = adapter

    return configs, readable
