"""Config reconciliation: diff engine and sync executor."""

from .diff import (
    compute_diff,
    compute_diff_from_client,
    order_for_display,
    reconstruct_server_entry,
    summarize,
)
from .differ import diff_client_configs, entry_diffs, load_client_config
from .engine import apply_sync_actions, get_client_configs

__all__ = [
    "compute_diff",
    "compute_diff_from_client",
    "order_for_display",
    "reconstruct_server_entry",
    "summarize",
    "diff_client_configs",
    "entry_diffs",
    "load_client_config",
    "apply_sync_actions",
    "get_client_configs",
]
