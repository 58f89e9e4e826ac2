"""Direct comparison of two clients' server configs."""

import json
import logging
from typing import List, Optional

from mcp_sync.clients.detector import get_adapter
from mcp_sync.models import ClientConfig, DiffChangeType, DiffResult, ServerEntry

logger = logging.getLogger(__name__)

_CHANGE_ORDER = {
    DiffChangeType.REMOVED: 0,
    DiffChangeType.ADDED: 1,
    DiffChangeType.CHANGED: 2,
}


def _render(value) -> str:
    return json.dumps(value, ensure_ascii=False)


def entry_diffs(a: ServerEntry, b: ServerEntry) -> List[str]:
    """
    Field-level differences between two entries.

    A missing ``args`` equals an empty list and a missing ``env`` equals an
    empty mapping, so omitting either never shows up as a change.
    """
    diffs = []

    if a.command != b.command:
        diffs.append(f"command: {a.command} → {b.command}")

    a_args, b_args = a.args or [], b.args or []
    if a_args != b_args:
        diffs.append(f"args: {_render(a_args)} → {_render(b_args)}")

    a_env, b_env = a.env or {}, b.env or {}
    if a_env != b_env:
        diffs.append(f"env: {_render(a_env)} → {_render(b_env)}")

    return diffs


def diff_client_configs(config_a: ClientConfig, config_b: ClientConfig) -> List[DiffResult]:
    """
    Compare client A (source) with client B (target).

    - added: in B but not A
    - removed: in A but not B
    - changed: in both with a different command, args or env

    Results are ordered removed, added, changed, then by server name.
    """
    servers_a, servers_b = config_a.servers, config_b.servers
    results: List[DiffResult] = []

    for name in servers_b:
        if name not in servers_a:
            results.append(DiffResult(server=name, change=DiffChangeType.ADDED))

    for name, entry in servers_a.items():
        if name not in servers_b:
            results.append(DiffResult(server=name, change=DiffChangeType.REMOVED))
            continue
        details = entry_diffs(entry, servers_b[name])
        if details:
            results.append(DiffResult(server=name, change=DiffChangeType.CHANGED, details=details))

    results.sort(key=lambda r: (_CHANGE_ORDER[r.change], r.server))
    return results


async def load_client_config(client_type: str) -> Optional[ClientConfig]:
    """Read one client's config, or None if it cannot be read."""
    try:
        return await get_adapter(client_type).read_config()
    except Exception as e:
        logger.warning(f"Could not read config for {client_type}: {e}")
        return None
