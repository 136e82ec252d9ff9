"""Provenance stamping for screen schema nodes.

Every screen and every field carries a Meta record. Its ``id`` is derived
from the field's scope and name (``query:email``, ``body:tenantId``) rather
than from its display label, so identity survives presentation edits and can
be used to join the three snapshots of a screen.
"""

from screenforge.schemas.screen import (
    FIELD_LIST_ATTRS,
    FieldDescriptor,
    FieldScope,
    Meta,
    Origin,
    ScreenSchema,
)

UNKNOWN_VERSION = "unknown"


def stamp(id: str, source: Origin, openapi_version: str) -> Meta:
    """Build a fresh provenance record for a node created by ``source``."""
    return Meta(
        id=id,
        source=source,
        introduced_by=source,
        last_changed_by=source,
        openapi_version=openapi_version,
        auto_added=False,
        user_removed=False,
    )


def field_id(field: FieldDescriptor, scope: FieldScope) -> str:
    """Identity of a field: its stamped id, or scope:name when unstamped."""
    if field.meta is not None and field.meta.id:
        return field.meta.id
    return f"{scope}:{field.name}"


def screen_id(operation_id: str | None) -> str:
    return f"screen:{operation_id}" if operation_id else "screen"


def ensure_field_meta(
    field: FieldDescriptor,
    scope: FieldScope,
    source: Origin,
    openapi_version: str,
    force: bool = False,
) -> FieldDescriptor:
    """Attach Meta to a field that lacks it.

    A field that already carries Meta is returned untouched unless ``force``
    is set.
    """
    if field.meta is not None and not force:
        return field
    return field.model_copy(
        update={"meta": stamp(f"{scope}:{field.name}", source, openapi_version)}
    )


def stamp_screen(
    screen: ScreenSchema,
    openapi_version: str,
    source: Origin = "api",
    force: bool = False,
) -> ScreenSchema:
    """Make sure the screen and all its fields carry Meta.

    Hand-edited overlays may contain fields without provenance; those are
    stamped with ``source`` (``user`` for overlays, ``api`` otherwise).
    """
    update: dict = {}

    if screen.meta is None or force:
        update["meta"] = stamp(screen_id(screen.operation_id), source, openapi_version)

    for scope, attr in FIELD_LIST_ATTRS.items():
        fields = screen.field_list(scope)
        stamped = [ensure_field_meta(f, scope, source, openapi_version, force) for f in fields]
        if any(a is not b for a, b in zip(stamped, fields)):
            update[attr] = stamped

    if not update:
        return screen
    return screen.model_copy(update=update)
