"""File-backed storage for screen snapshots.

Layout under the output root:

    generated/<operationId>.screen.json   last generated screen (baseline)
    overlays/<operationId>.screen.json    user-editable screen
    routes.json, menu.json                navigation artifacts
"""

import json
from pathlib import Path
from typing import Any, Optional

from loguru import logger
from pydantic import ValidationError

from screenforge.schemas.screen import ScreenSchema, dump_snapshot, load_screen

SCREEN_SUFFIX = ".screen.json"


class InvalidSnapshotError(ValueError):
    """A snapshot is valid JSON but does not match the screen schema."""

    def __init__(self, path: Path, error: ValidationError):
        self.path = path
        self.error_count = error.error_count()
        first = error.errors()[0] if error.error_count() else {}
        where = ".".join(str(part) for part in first.get("loc", ()))
        detail = f"{where}: {first.get('msg')}" if where else str(first.get("msg", ""))
        super().__init__(
            f"Invalid screen snapshot {path} ({self.error_count} errors, first at {detail})"
        )


class SnapshotStore:
    """Reads and writes the generated and overlay snapshots of every screen."""

    def __init__(
        self,
        root: Path,
        generated_dir_name: str = "generated",
        overlays_dir_name: str = "overlays",
    ):
        self.root = Path(root)
        self.generated_dir = self.root / generated_dir_name
        self.overlays_dir = self.root / overlays_dir_name

    def ensure_dirs(self) -> None:
        self.generated_dir.mkdir(parents=True, exist_ok=True)
        self.overlays_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def file_name(operation_id: str) -> str:
        return f"{operation_id}{SCREEN_SUFFIX}"

    def generated_path(self, operation_id: str) -> Path:
        return self.generated_dir / self.file_name(operation_id)

    def overlay_path(self, operation_id: str) -> Path:
        return self.overlays_dir / self.file_name(operation_id)

    # --- Snapshots ---

    def load_generated(self, operation_id: str) -> Optional[ScreenSchema]:
        return self.read_snapshot(self.generated_path(operation_id))

    def load_overlay(self, operation_id: str, strict: bool = False) -> Optional[ScreenSchema]:
        return self.read_snapshot(self.overlay_path(operation_id), strict=strict)

    def save_generated(self, screen: ScreenSchema) -> Path:
        return self._write_screen(self.generated_dir, screen)

    def save_overlay(self, screen: ScreenSchema) -> Path:
        return self._write_screen(self.overlays_dir, screen)

    def list_overlay_ids(self) -> list[str]:
        if not self.overlays_dir.exists():
            return []
        return sorted(
            path.name[: -len(SCREEN_SUFFIX)]
            for path in self.overlays_dir.iterdir()
            if path.is_file() and path.name.endswith(SCREEN_SUFFIX)
        )

    def remove_overlay(self, operation_id: str) -> None:
        self.overlay_path(operation_id).unlink(missing_ok=True)

    @staticmethod
    def read_snapshot(path: Path, strict: bool = False) -> Optional[ScreenSchema]:
        """Load a stored screen, treating a missing or malformed file as absent.

        Args:
            path: Snapshot file.
            strict: Raise InvalidSnapshotError for well-formed JSON that does
                not match the screen schema instead of treating it as absent.
                Overlays are read this way so a single bad value never causes
                the user's file to be replaced.
        """
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            logger.warning(f"Ignoring malformed snapshot {path}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"Ignoring snapshot {path}: expected a JSON object")
            return None
        try:
            return load_screen(data)
        except ValidationError as e:
            if strict:
                raise InvalidSnapshotError(path, e) from e
            logger.warning(f"Ignoring invalid snapshot {path}: {e.error_count()} errors")
            return None

    def _write_screen(self, directory: Path, screen: ScreenSchema) -> Path:
        if screen.operation_id is None:
            raise ValueError("Cannot store a screen without an operation id")
        path = directory / self.file_name(screen.operation_id)
        write_json(path, dump_snapshot(screen))
        return path

    # --- Navigation artifacts ---

    def write_artifact(self, name: str, data: Any) -> Path:
        path = self.root / name
        write_json(path, data)
        return path


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
