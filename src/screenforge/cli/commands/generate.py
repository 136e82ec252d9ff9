"""Generate command for screenforge CLI."""

from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from screenforge.cli.app import app
from screenforge.config import (
    ConfigManager,
    find_project_config,
    pick_configured_path,
    resolve_optional_path,
    resolve_output_root,
)
from screenforge.openapi.loader import OpenApiLoadError, load_openapi
from screenforge.schema.errors import ScreenGenerationError
from screenforge.services.generation_service import GenerationReport, GenerationService
from screenforge.services.snapshot_store import SnapshotStore

console = Console()


def _render_report(report: GenerationReport, debug: bool) -> None:
    table = Table(title=f"Screens (API version {report.openapi_version})")
    table.add_column("Operation", style="cyan")
    table.add_column("Overlay", justify="center")
    table.add_column("Decisions", justify="right")

    for op in report.operations:
        if op.invalid_overlay:
            status = "[red]invalid[/red]"
        elif op.merged:
            status = "[yellow]merged[/yellow]"
        else:
            status = "[green]written[/green]"
        table.add_row(op.operation_id, status, str(len(op.decisions)))

    console.print(table)

    for op in report.invalid_overlays:
        console.print(f"[red]! {op.operation_id} skipped: {op.invalid_overlay}[/red]")

    if debug:
        for op in report.operations:
            if not op.decisions:
                continue
            console.print(f"[bold]Merge {op.operation_id}[/bold]")
            for line in op.decisions:
                console.print(f"  - {line}")

    for overlay_id in report.removed_overlays:
        console.print(f"[red]- Removed overlay {overlay_id}[/red]")

    console.print(f"\n[green]Routes written to {report.routes_path}[/green]")


@app.command()
def generate(
    openapi: Annotated[
        Optional[Path],
        typer.Argument(help="OpenAPI description (YAML or JSON). Defaults to screenforge.json"),
    ] = None,
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Directory for generated/ and overlays/"),
    ] = None,
    debug: bool = typer.Option(False, "--debug", help="Print merge decisions per screen"),
):
    """Generate screen schemas and reconcile them with your overlays.

    Generated snapshots are always overwritten. Overlays keep your edits:
    fields you removed stay hidden, new optional API fields arrive hidden,
    and fields the API dropped are removed.
    """
    try:
        config = ConfigManager().config
        config_path, project_config = find_project_config(Path.cwd())

        openapi_path = resolve_optional_path(
            openapi, pick_configured_path(project_config, "openapi"), config_path
        )
        if openapi_path is None:
            console.print(
                "[red]Error: no OpenAPI file given and none configured in screenforge.json[/red]"
            )
            raise typer.Exit(1)

        output_root = resolve_output_root(
            openapi_path.parent, output, project_config, config_path, config.output_dir_name
        )
        store = SnapshotStore(output_root, config.generated_dir_name, config.overlays_dir_name)

        api_document = load_openapi(openapi_path)
        report = GenerationService(store, config).generate(api_document)
        _render_report(report, debug or config.debug)
    except (OpenApiLoadError, ScreenGenerationError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            logger.error(f"Error during generate: {e}")
            typer.echo(f"Error during generate: {e}", err=True)
            raise typer.Exit(1)
        raise
