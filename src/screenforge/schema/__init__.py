"""Screen schema generation, provenance stamping and reconciliation."""

from screenforge.schema.errors import ScreenGenerationError
from screenforge.schema.generator import generate_screen
from screenforge.schema.metadata import stamp, stamp_screen
from screenforge.schema.reconcile import (
    DecisionCode,
    FieldOutcome,
    ReconcileResult,
    classify_field,
    reconcile,
)

__all__ = [
    "DecisionCode",
    "FieldOutcome",
    "ReconcileResult",
    "ScreenGenerationError",
    "classify_field",
    "generate_screen",
    "reconcile",
    "stamp",
    "stamp_screen",
]
