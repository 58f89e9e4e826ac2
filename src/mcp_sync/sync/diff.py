"""
Reconciliation diff between the lockfile (intended state) and client configs.

Both algorithms are pure: they take already-read configs and return
SyncActions without touching disk.

- lockfile as source: ``compute_diff``
- one client as source: ``compute_diff_from_client``

A server found in a client but not in the source is reported as ``extra``.
It only becomes ``remove`` when the caller opts in with ``remove=True``.
"""

from typing import Dict, Iterable, List, Mapping

from mcp_sync.models import (
    ClientConfig,
    LockEntry,
    LockfileData,
    ServerEntry,
    SyncAction,
    SyncActionType,
    client_kind,
)

_DISPLAY_RANK = {
    SyncActionType.REMOVE: 0,
    SyncActionType.EXTRA: 0,
    SyncActionType.ADD: 1,
    SyncActionType.OK: 2,
}


def reconstruct_server_entry(lock_entry: LockEntry) -> ServerEntry:
    """
    Build the client-facing entry for a locked server.

    ``args`` is omitted when the locked list is empty. Environment variables
    are written as empty-string placeholders: real values are injected at
    launch time and must never land in a client's config file.
    """
    entry = ServerEntry(command=lock_entry.command)
    if lock_entry.args:
        entry.args = list(lock_entry.args)
    if lock_entry.env_vars:
        entry.env = {name: "" for name in lock_entry.env_vars}
    return entry


def order_for_display(actions: Iterable[SyncAction]) -> List[SyncAction]:
    """Stable order: remove/extra first, then add, then ok."""
    return sorted(actions, key=lambda a: _DISPLAY_RANK[a.action])


def summarize(actions: Iterable[SyncAction]) -> Dict[SyncActionType, int]:
    """Count actions per type."""
    counts = {action_type: 0 for action_type in SyncActionType}
    for action in actions:
        counts[action.action] += 1
    return counts


def _normalize(client_configs: Mapping) -> Dict[str, ClientConfig]:
    return {client_kind(client): config for client, config in client_configs.items()}


def compute_diff(
    lockfile: LockfileData,
    client_configs: Mapping,
    remove: bool = False,
) -> List[SyncAction]:
    """
    Diff client configs against the lockfile.

    Args:
        lockfile: Intended state.
        client_configs: Client kind -> config for every client that was
            detected and read. Clients missing here are skipped entirely.
        remove: Report servers absent from the lockfile as ``remove``
            instead of ``extra``.

    Returns:
        Actions in display order.
    """
    configs = _normalize(client_configs)
    actions: List[SyncAction] = []

    for server, lock_entry in lockfile.servers.items():
        for client in lock_entry.clients:
            config = configs.get(client_kind(client))
            if config is None:
                continue

            if server in config.servers:
                actions.append(SyncAction(server=server, client=client_kind(client), action=SyncActionType.OK))
            else:
                actions.append(SyncAction(
                    server=server,
                    client=client_kind(client),
                    action=SyncActionType.ADD,
                    entry=reconstruct_server_entry(lock_entry),
                ))

    # Servers whose lock entry is invalid are still locked, never extras
    locked = set(lockfile.servers) | set(lockfile.invalid_servers)
    extra_action = SyncActionType.REMOVE if remove else SyncActionType.EXTRA
    for client, config in configs.items():
        for server in config.servers:
            if server not in locked:
                actions.append(SyncAction(server=server, client=client, action=extra_action))

    return order_for_display(actions)


def compute_diff_from_client(
    source_client: str,
    client_configs: Mapping,
    remove: bool = False,
) -> List[SyncAction]:
    """
    Diff every other client against one client's config.

    Returns an empty list when the source client was not read. Entries to add
    carry the source client's entry verbatim.
    """
    configs = _normalize(client_configs)
    source = client_kind(source_client)
    source_config = configs.get(source)
    if source_config is None:
        return []

    extra_action = SyncActionType.REMOVE if remove else SyncActionType.EXTRA
    actions: List[SyncAction] = []

    for client, config in configs.items():
        if client == source:
            continue

        for server, entry in source_config.servers.items():
            if server in config.servers:
                actions.append(SyncAction(server=server, client=client, action=SyncActionType.OK))
            else:
                actions.append(SyncAction(
                    server=server,
                    client=client,
                    action=SyncActionType.ADD,
                    entry=entry.model_copy(deep=True),
                ))

        for server in config.servers:
            if server not in source_config.servers:
                actions.append(SyncAction(server=server, client=client, action=extra_action))

    return order_for_display(actions)
