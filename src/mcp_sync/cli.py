# Copyright (c) 2025 MCP Sync Project
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""CLI interface for MCP Sync."""

import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from mcp_sync import __version__
from mcp_sync.clients import get_all_client_types
from mcp_sync.config import LOCKFILE_NAME
from mcp_sync.lockfile import LockFileManager, ServerNotFoundError, find_lockfile
from mcp_sync.models import ClientConfig, DiffChangeType, SyncAction, SyncActionType, display_name
from mcp_sync.sync import (
    apply_sync_actions,
    compute_diff,
    compute_diff_from_client,
    diff_client_configs,
    get_client_configs,
    load_client_config,
    summarize,
)
from mcp_sync.vault import (
    DecryptionError,
    PasswordMismatchError,
    PasswordTooShortError,
    PromptCancelled,
    SecretsVault,
    VaultError,
)

# Exit codes
EXIT_OK = 0
EXIT_CANCELLED = 0
EXIT_FAILURE = 1

app = typer.Typer(
    name="mcp-sync",
    help="Keep MCP server configs in sync across AI clients",
    rich_markup_mode="markdown"
)
secrets_app = typer.Typer(help="Manage encrypted secrets for MCP servers")
lock_app = typer.Typer(help="Inspect and edit the lock file")
app.add_typer(secrets_app, name="secrets")
app.add_typer(lock_app, name="lock")

console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
    handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)]
)
logger = logging.getLogger(__name__)


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"mcp-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
    debug: bool = typer.Option(False, "--debug", help="Debug output")
) -> None:
    """MCP Sync - one lock file, every AI client."""
    if debug:
        logging.getLogger().setLevel(logging.DEBUG)
    elif verbose:
        logging.getLogger().setLevel(logging.INFO)
    else:
        logging.getLogger().setLevel(logging.WARNING)


def _validate_client(client: str, option: str) -> None:
    valid = get_all_client_types()
    if client not in valid:
        err_console.print(f"[red]Invalid {option} '{client}'. Must be one of: {', '.join(valid)}[/red]")
        raise typer.Exit(EXIT_FAILURE)


def _confirm(message: str, default: bool) -> bool:
    """Ask a yes/no question; Ctrl-C counts as a clean cancel."""
    try:
        return typer.confirm(message, default=default)
    except typer.Abort:
        return False


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------

_ACTION_STYLE = {
    SyncActionType.ADD: ("[green]+[/green]", "[green]missing, will add[/green]"),
    SyncActionType.EXTRA: ("[yellow]?[/yellow]", "[yellow]extra (not in source)[/yellow]"),
    SyncActionType.REMOVE: ("[red]-[/red]", "[red]extra, will remove[/red]"),
    SyncActionType.OK: ("[dim]·[/dim]", "[dim]in sync[/dim]"),
}


def _print_sync_table(actions: List[SyncAction]) -> None:
    if not actions:
        console.print("[dim]No actions to display.[/dim]")
        return

    table = Table(title="Sync Plan")
    table.add_column("Server", style="cyan")
    table.add_column("Client", style="green")
    table.add_column("", justify="center")
    table.add_column("Status")

    for action in actions:
        icon, status = _ACTION_STYLE[action.action]
        table.add_row(action.server, display_name(action.client), icon, status)

    console.print(table)


@app.command()
def sync(
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview changes without applying them"),
    remove: bool = typer.Option(False, "--remove", help="Remove servers that are not in the source"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Use a client as source of truth instead of the lock file"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    lockfile: Optional[Path] = typer.Option(None, "--lockfile", "-l", help="Path to lock file")
) -> None:
    """Sync MCP server configs across all detected AI clients."""
    if source:
        _validate_client(source, "--source")

    with console.status("Detecting clients and reading configs..."):
        configs, adapters = asyncio.run(get_client_configs())

    if not configs:
        console.print("[yellow]No AI clients detected. Install Claude Desktop, Cursor, VS Code, or Windsurf first.[/yellow]")
        raise typer.Exit(EXIT_OK)

    console.print(f"Found {len(configs)} client(s): {', '.join(display_name(c) for c in configs)}")

    if source:
        if source not in configs:
            err_console.print(f"[red]Source client '{source}' is not detected or its config is unreadable.[/red]")
            raise typer.Exit(EXIT_FAILURE)
        console.print(f"Using {display_name(source)} as source of truth")
        actions = compute_diff_from_client(source, configs, remove=remove)
    else:
        manager = LockFileManager(lockfile)
        logger.info(f"Using lock file {manager.lockfile_path}")
        actions = compute_diff(manager.read(), configs, remove=remove)

    _print_sync_table(actions)

    counts = summarize(actions)
    add_count = counts[SyncActionType.ADD]
    remove_count = counts[SyncActionType.REMOVE]
    extra_count = counts[SyncActionType.EXTRA]

    if add_count == 0 and remove_count == 0 and extra_count == 0:
        console.print("[green]All clients are in sync.[/green]")
        raise typer.Exit(EXIT_OK)

    parts = []
    if add_count:
        parts.append(f"[green]{add_count} to add[/green]")
    if remove_count:
        parts.append(f"[red]{remove_count} to remove[/red]")
    if extra_count:
        parts.append(f"[yellow]{extra_count} extra (informational)[/yellow]")
    console.print("  ·  ".join(parts))

    if dry_run:
        console.print("[dim]Dry run, no changes applied.[/dim]")
        raise typer.Exit(EXIT_FAILURE)

    if add_count == 0 and remove_count == 0:
        console.print("[dim]No additions needed. Extra servers left untouched.[/dim]")
        raise typer.Exit(EXIT_OK)

    if not yes:
        planned = []
        if add_count:
            planned.append(f"{add_count} addition(s)")
        if remove_count:
            planned.append(f"{remove_count} removal(s)")
        if not _confirm(f"Apply {' and '.join(planned)} to client configs?", default=True):
            console.print("[dim]Cancelled, no changes applied.[/dim]")
            raise typer.Exit(EXIT_CANCELLED)

    with console.status("Applying sync changes..."):
        result = asyncio.run(apply_sync_actions(actions, adapters, include_removals=remove))

    if result.applied:
        console.print(f"[green]Added {result.applied} server(s) to client configs.[/green]")
    if result.removed:
        console.print(f"[green]Removed {result.removed} server(s) from client configs.[/green]")
    for failure in result.errors:
        err_console.print(
            f"[red]Failed to sync '{failure.server}' on {display_name(failure.client)}: {failure.error}[/red]"
        )

    if result.failed:
        console.print("[yellow]Sync complete with errors.[/yellow]")
        raise typer.Exit(EXIT_FAILURE)
    console.print("[green]Sync complete.[/green]")


# ---------------------------------------------------------------------------
# diff
# ---------------------------------------------------------------------------

async def _load_pair(client_a: str, client_b: str) -> Tuple[Optional[ClientConfig], Optional[ClientConfig]]:
    config_a, config_b = await asyncio.gather(load_client_config(client_a), load_client_config(client_b))
    return config_a, config_b


@app.command()
def diff(
    client_a: str = typer.Argument(..., help="Source client"),
    client_b: str = typer.Argument(..., help="Target client"),
    as_json: bool = typer.Option(False, "--json", help="Output results as JSON")
) -> None:
    """Show the config diff between two AI clients."""
    _validate_client(client_a, "client")
    _validate_client(client_b, "client")
    if client_a == client_b:
        err_console.print("[red]The two clients must be different.[/red]")
        raise typer.Exit(EXIT_FAILURE)

    config_a, config_b = asyncio.run(_load_pair(client_a, client_b))
    for client, config in ((client_a, config_a), (client_b, config_b)):
        if config is None:
            err_console.print(f"[red]Could not read config for {display_name(client)}.[/red]")
            raise typer.Exit(EXIT_FAILURE)

    diffs = diff_client_configs(config_a, config_b)

    if as_json:
        typer.echo(json.dumps({
            "clientA": client_a,
            "clientB": client_b,
            "diffs": [d.model_dump(mode="json") for d in diffs],
        }, indent=2))
        return

    label_a, label_b = display_name(client_a), display_name(client_b)
    console.print(f"\n[bold]mcp-sync diff[/bold]  [cyan]{label_a}[/cyan] → [cyan]{label_b}[/cyan]\n")

    if not diffs:
        console.print("[green]  ✓ No differences, configs are identical.[/green]")
        return

    for d in diffs:
        if d.change == DiffChangeType.ADDED:
            console.print(f"  [green]+[/green] [bold]{d.server}[/bold]  [dim](only in {label_b})[/dim]")
        elif d.change == DiffChangeType.REMOVED:
            console.print(f"  [red]-[/red] [bold]{d.server}[/bold]  [dim](only in {label_a})[/dim]")
        else:
            console.print(f"  [yellow]~[/yellow] [bold]{d.server}[/bold]  [dim](changed)[/dim]")
            for detail in d.details:
                console.print(f"      [dim]{detail}[/dim]", markup=False, highlight=False)

    added = sum(1 for d in diffs if d.change == DiffChangeType.ADDED)
    removed = sum(1 for d in diffs if d.change == DiffChangeType.REMOVED)
    changed = sum(1 for d in diffs if d.change == DiffChangeType.CHANGED)
    console.print(f"\n  [green]+{added} added[/green]  [red]-{removed} removed[/red]  [yellow]~{changed} changed[/yellow]\n")


# ---------------------------------------------------------------------------
# secrets
# ---------------------------------------------------------------------------

def mask_value(value: str) -> str:
    """Mask a secret for display: short values fully, long ones keep their ends."""
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}***{value[-3:]}"


def parse_key_value(raw: str) -> Optional[Tuple[str, str]]:
    """Split KEY=VALUE; None when there is no key."""
    key, sep, value = raw.partition("=")
    if not sep or not key:
        return None
    return key, value


@secrets_app.command("set")
def secrets_set(
    server: str = typer.Argument(..., help="Server name"),
    keyvalue: str = typer.Argument(..., help="KEY=VALUE pair to store")
) -> None:
    """Store an encrypted secret for a server."""
    parsed = parse_key_value(keyvalue)
    if parsed is None:
        err_console.print("[red]Invalid format. Expected KEY=VALUE[/red]")
        raise typer.Exit(EXIT_FAILURE)
    key, value = parsed

    vault = SecretsVault()
    try:
        vault.set_secret(server, key, value)
    except PromptCancelled:
        console.print("[dim]Vault access cancelled.[/dim]")
        raise typer.Exit(EXIT_CANCELLED)
    except DecryptionError:
        err_console.print("[red]✗ Wrong master password, nothing was stored[/red]")
        raise typer.Exit(EXIT_FAILURE)
    except (PasswordMismatchError, PasswordTooShortError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    console.print(f"[green]✓ Stored [bold]{key}[/bold] for [cyan]{server}[/cyan][/green]")


@secrets_app.command("get")
def secrets_get(
    server: str = typer.Argument(..., help="Server name"),
    key: str = typer.Argument(..., help="Secret key"),
    reveal: bool = typer.Option(False, "--reveal", help="Print the full value")
) -> None:
    """Decrypt and show one secret."""
    vault = SecretsVault()
    if not vault.has_secrets(server):
        err_console.print(f"[yellow]No secrets stored for {server}.[/yellow]")
        raise typer.Exit(EXIT_FAILURE)

    try:
        value = vault.get_secret(server, key)
    except PromptCancelled:
        console.print("[dim]Vault access cancelled.[/dim]")
        raise typer.Exit(EXIT_CANCELLED)
    except DecryptionError as e:
        err_console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)
    except VaultError as e:
        err_console.print(f"[red]✗ Vault error: {e}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    if value is None:
        err_console.print(f"[yellow]{key} is not stored for {server}.[/yellow]")
        raise typer.Exit(EXIT_FAILURE)

    typer.echo(value if reveal else mask_value(value))


@secrets_app.command("list")
def secrets_list(
    server: Optional[str] = typer.Argument(None, help="Filter by server name")
) -> None:
    """List secret keys stored in the vault (no password needed)."""
    listings = SecretsVault().list_secrets(server)

    if not listings:
        suffix = f" for {server}" if server else ""
        console.print(f"[dim]No secrets stored{suffix}.[/dim]")
        return

    table = Table(title="Vault Secrets")
    table.add_column("Server", style="cyan")
    table.add_column("Key", style="bold")
    table.add_column("Value", style="dim")

    for listing in listings:
        for key in listing.keys:
            table.add_row(listing.server, key, "••••••••")

    console.print(table)

    total = sum(len(listing.keys) for listing in listings)
    console.print(f"[dim]{total} secret(s) in {len(listings)} server(s)[/dim]")


@secrets_app.command("remove")
def secrets_remove(
    server: str = typer.Argument(..., help="Server name"),
    key: str = typer.Argument(..., help="Secret key to remove"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt")
) -> None:
    """Delete a secret from the vault."""
    if not yes and not _confirm(f"Remove {key} from {server}?", default=False):
        console.print("[dim]Cancelled.[/dim]")
        raise typer.Exit(EXIT_CANCELLED)

    if SecretsVault().remove_secret(server, key):
        console.print(f"[green]✓ Removed [bold]{key}[/bold] from [cyan]{server}[/cyan][/green]")
    else:
        console.print(f"[yellow]{key} is not stored for {server}.[/yellow]")


# ---------------------------------------------------------------------------
# lock
# ---------------------------------------------------------------------------

@lock_app.command("list")
def lock_list(
    lockfile: Optional[Path] = typer.Option(None, "--lockfile", "-l", help="Path to lock file")
) -> None:
    """List servers recorded in the lock file."""
    manager = LockFileManager(lockfile)
    data = manager.read()

    if not data.servers and not data.invalid_servers:
        console.print("[yellow]No entries in lock file[/yellow]")
        return

    table = Table(title=f"Lock File: {manager.lockfile_path}")
    table.add_column("Server", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("Source")
    table.add_column("Runtime")
    table.add_column("Env Vars", justify="right")
    table.add_column("Clients", style="yellow")

    for name in sorted(data.servers):
        entry = data.servers[name]
        table.add_row(
            name,
            entry.version,
            entry.source.value,
            entry.runtime.value,
            str(len(entry.env_vars)),
            ", ".join(display_name(c) for c in entry.clients) or "-"
        )
    for name in sorted(data.invalid_servers):
        table.add_row(name, "[red]invalid[/red]", "-", "-", "-", "-")

    console.print(table)


@lock_app.command("remove")
def lock_remove(
    name: str = typer.Argument(..., help="Server name"),
    lockfile: Optional[Path] = typer.Option(None, "--lockfile", "-l", help="Path to lock file")
) -> None:
    """Remove a server from the lock file (its vault secrets are kept)."""
    manager = LockFileManager(lockfile)
    if not manager.remove_entry(name):
        err_console.print(f"[red]{ServerNotFoundError(name, manager.lockfile_path)}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    console.print(f"[green]Removed {name} from lock file[/green]")


@lock_app.command("init")
def lock_init(
    directory: Path = typer.Argument(Path("."), help="Directory to create the lock file in")
) -> None:
    """Create an empty lock file."""
    target = directory / LOCKFILE_NAME
    if target.exists():
        console.print(f"[yellow]{target} already exists[/yellow]")
        return

    existing = find_lockfile(directory)
    if existing:
        console.print(f"[dim]Note: a parent lock file exists at {existing}[/dim]")

    LockFileManager(target).create_empty()
    console.print(f"[green]Created {target}[/green]")


if __name__ == "__main__":
    app()
