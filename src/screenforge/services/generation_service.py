"""Regeneration of every screen in an API description.

For each operation:

  1. generate the next screen from the API description
  2. read the previously generated screen, then overwrite it with next
  3. read the overlay, reconcile it with next and previous, store the result

An overlay that is valid JSON but does not fit the screen schema is never
replaced: the operation is skipped and both snapshots stay as they are.

Afterwards routes.json and menu.json are rewritten and overlays for
operations that no longer exist are deleted.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from screenforge.config import ScreenforgeConfig
from screenforge.openapi.loader import iter_operations
from screenforge.schema.generator import generate_screen, get_openapi_version
from screenforge.schema.reconcile import reconcile
from screenforge.schemas.navigation import RouteEntry
from screenforge.services.navigation import build_menu, build_route
from screenforge.services.snapshot_store import InvalidSnapshotError, SnapshotStore

ROUTES_FILE_NAME = "routes.json"
MENU_FILE_NAME = "menu.json"


@dataclass
class OperationReport:
    """Outcome of regenerating a single screen."""

    operation_id: str
    merged: bool  # False on first generation or when safe regeneration is off
    decisions: list[str] = field(default_factory=list)
    invalid_overlay: str | None = None  # set when the overlay was left untouched


@dataclass
class GenerationReport:
    openapi_version: str
    operations: list[OperationReport] = field(default_factory=list)
    removed_overlays: list[str] = field(default_factory=list)
    routes_path: Path | None = None
    menu_path: Path | None = None

    @property
    def operation_ids(self) -> list[str]:
        return [op.operation_id for op in self.operations]

    @property
    def decision_count(self) -> int:
        return sum(len(op.decisions) for op in self.operations)

    @property
    def invalid_overlays(self) -> list[OperationReport]:
        return [op for op in self.operations if op.invalid_overlay]


class GenerationService:
    """Runs a full regeneration against a snapshot store."""

    def __init__(self, store: SnapshotStore, config: ScreenforgeConfig):
        self.store = store
        self.config = config

    def generate(self, api_document: dict[str, Any]) -> GenerationReport:
        """Regenerate every screen of api_document.

        Raises:
            ScreenGenerationError: If an operation cannot be turned into a screen.
        """
        openapi_version = get_openapi_version(api_document)
        logger.info(f"Generating screens for API version {openapi_version} into {self.store.root}")
        self.store.ensure_dirs()

        report = GenerationReport(openapi_version=openapi_version)
        routes: list[RouteEntry] = []

        for operation in iter_operations(api_document):
            operation_report, route = self.generate_operation(
                operation, api_document, openapi_version
            )
            report.operations.append(operation_report)
            routes.append(route)

        report.routes_path = self.store.write_artifact(
            ROUTES_FILE_NAME, [route.model_dump(by_alias=True) for route in routes]
        )
        report.menu_path = self.store.write_artifact(
            MENU_FILE_NAME, build_menu(routes).model_dump()
        )

        if self.config.remove_orphan_overlays:
            report.removed_overlays = self.remove_orphan_overlays(set(report.operation_ids))

        logger.info(
            f"Generated {len(report.operations)} screens, "
            f"{report.decision_count} merge decisions, "
            f"{len(report.removed_overlays)} orphan overlays removed"
        )
        return report

    def generate_operation(
        self,
        operation: dict[str, Any],
        api_document: dict[str, Any],
        openapi_version: str,
    ) -> tuple[OperationReport, RouteEntry]:
        next_screen = generate_screen(operation, api_document)
        operation_id = str(operation["operationId"])
        route = build_route(next_screen, operation)

        if not self.config.safe_regeneration:
            self.store.save_generated(next_screen)
            self.store.save_overlay(next_screen)
            logger.debug(f"Overwrote overlay {operation_id} (safe regeneration disabled)")
            return OperationReport(operation_id, merged=False), route

        try:
            overlay = self.store.load_overlay(operation_id, strict=True)
        except InvalidSnapshotError as e:
            # keep both snapshots so the next run still sees the old baseline
            logger.warning(f"Skipping {operation_id}, overlay left untouched: {e}")
            return OperationReport(operation_id, merged=False, invalid_overlay=str(e)), route

        previous = self.store.load_generated(operation_id)
        self.store.save_generated(next_screen)
        result = reconcile(next_screen, overlay, previous, openapi_version)
        self.store.save_overlay(result.merged)

        for decision in result.log:
            logger.debug(f"Merge {operation_id}: {decision}")
        logger.info(f"Generated {operation_id} ({len(result.log)} merge decisions)")

        merged = overlay is not None
        return OperationReport(operation_id, merged=merged, decisions=result.log), route

    def remove_orphan_overlays(self, operation_ids: set[str]) -> list[str]:
        """Delete overlays for operations the API no longer has."""
        removed = []
        for overlay_id in self.store.list_overlay_ids():
            if overlay_id not in operation_ids:
                self.store.remove_overlay(overlay_id)
                logger.info(f"Removed orphan overlay {overlay_id}")
                removed.append(overlay_id)
        return removed
