"""Services that run screen generation against stored snapshots."""

from screenforge.services.generation_service import GenerationReport, GenerationService
from screenforge.services.snapshot_store import SnapshotStore

__all__ = ["GenerationReport", "GenerationService", "SnapshotStore"]
