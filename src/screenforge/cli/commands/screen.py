"""Screen snapshot CLI commands for screenforge.

Registered as a subcommand group: `screenforge screen reconcile` runs the
reconciliation engine on three stored snapshots, `screenforge screen show`
prints a stored screen with its provenance flags.
"""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from screenforge.cli.app import app
from screenforge.schema.metadata import UNKNOWN_VERSION, field_id
from screenforge.schema.reconcile import ReconcileResult, reconcile
from screenforge.schemas.screen import FIELD_LIST_ATTRS, ScreenSchema, dump_snapshot
from screenforge.services.snapshot_store import SnapshotStore, write_json

console = Console()
err_console = Console(stderr=True)

screen_app = typer.Typer(help="Screen snapshot commands")
app.add_typer(screen_app, name="screen")


def _load_required(path: Path) -> ScreenSchema:
    screen = SnapshotStore.read_snapshot(path)
    if screen is None:
        raise ValueError(f"Cannot read screen snapshot: {path}")
    return screen


def _load_optional(path: Optional[Path], strict: bool = False) -> Optional[ScreenSchema]:
    if path is None:
        return None
    screen = SnapshotStore.read_snapshot(path, strict=strict)
    if screen is None:
        err_console.print(f"[yellow]Treating {path} as absent (missing or malformed)[/yellow]")
    return screen


# --- Rendering helpers ---


def _render_decisions(result: ReconcileResult) -> None:
    if not result.log:
        console.print("[green]No merge decisions: overlay is up to date.[/green]")
        return

    table = Table(title="Merge decisions")
    table.add_column("Decision", style="cyan")
    table.add_column("Field")
    for entry in result.log:
        code, _, fid = entry.partition(" ")
        table.add_row(code, fid)
    console.print(table)


def _render_screen(screen: ScreenSchema) -> None:
    kind = screen.screen_kind
    kind_label = f"{kind.type}/{kind.mode}" if kind else "-"
    console.print(f"\n[bold]{screen.entity or screen.operation_id}[/bold] ({kind_label})\n")

    table = Table(title="Fields")
    table.add_column("Id", style="cyan")
    table.add_column("Type")
    table.add_column("Required", justify="center")
    table.add_column("Hidden", justify="center")
    table.add_column("Flags")
    table.add_column("Changed by")

    for scope in FIELD_LIST_ATTRS:
        for f in screen.field_list(scope):
            flags = []
            if f.meta and f.meta.auto_added:
                flags.append("auto-added")
            if f.meta and f.meta.user_removed:
                flags.append("user-removed")
            table.add_row(
                field_id(f, scope),
                f.type,
                "yes" if f.required else "",
                "yes" if f.hidden else "",
                ", ".join(flags),
                f.meta.last_changed_by if f.meta else "-",
            )

    console.print(table)


# --- Commands ---


@screen_app.command("reconcile")
def reconcile_command(
    next_path: Annotated[
        Path,
        typer.Argument(help="Freshly generated screen snapshot"),
    ],
    overlay: Annotated[
        Optional[Path],
        typer.Option("--overlay", help="User-edited screen snapshot"),
    ] = None,
    previous: Annotated[
        Optional[Path],
        typer.Option("--previous", help="Previously generated screen snapshot"),
    ] = None,
    version: Annotated[
        Optional[str],
        typer.Option(
            "--api-version", help="API description version (defaults to the next snapshot's)"
        ),
    ] = None,
    write: Annotated[
        Optional[Path],
        typer.Option("--write", help="Write the merged screen to this file"),
    ] = None,
    as_json: bool = typer.Option(False, "--json", help="Print the merged screen as JSON"),
):
    """Reconcile an overlay with a new and a previous generated screen.

    Missing or malformed overlay/previous files are treated as absent. An
    overlay that does not match the screen schema is reported as an error.
    """
    try:
        next_screen = _load_required(next_path)
        openapi_version = version or (
            next_screen.meta.openapi_version if next_screen.meta else UNKNOWN_VERSION
        )

        result = reconcile(
            next_screen,
            _load_optional(overlay, strict=True),
            _load_optional(previous),
            openapi_version,
        )

        if write is not None:
            write_json(write, dump_snapshot(result.merged))

        if as_json:
            typer.echo(json.dumps(dump_snapshot(result.merged), indent=2, ensure_ascii=False))
            return

        _render_decisions(result)
        if write is not None:
            console.print(f"[green]Merged screen written to {write}[/green]")
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during screen reconcile: {e}")
            typer.echo(f"Error during screen reconcile: {e}", err=True)
            raise typer.Exit(1)
        raise


@screen_app.command()
def show(
    path: Annotated[Path, typer.Argument(help="Screen snapshot to display")],
):
    """Show the fields of a stored screen with their provenance."""
    try:
        _render_screen(_load_required(path))
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
