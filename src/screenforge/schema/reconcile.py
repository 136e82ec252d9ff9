"""Three-way reconciliation of screen schemas.

Every regeneration produces a new screen (``next``) that has to be merged
with the user's edited copy (``overlay``) using the previously generated
screen (``previous``) as change-detection baseline:

  next      -> authoritative for structure (which fields exist, type, required)
  overlay   -> authoritative for presentation, ordering and provenance
  previous  -> tells apart "user deleted this" from "API just added this"

Fields are joined by ``Meta.id`` (``scope:name``), never by position. The
outcome for each id is decided by ``classify_field``:

  in next | in overlay | in previous | userRemoved | outcome
  --------+------------+-------------+-------------+------------------------
  no      | yes        | any         | any         | REMOVED_BY_API (dropped)
  yes     | yes        | any         | yes         | PRESERVE_USER_REMOVED
  yes     | yes        | any         | no          | MERGE
  yes     | no         | yes         | -           | USER_REMOVED_TOMBSTONE
  yes     | no         | no          | -           | ADDED_BY_API
  no      | no         | any         | -           | ABSENT

The engine is pure: it never raises on mismatched input, never mutates its
arguments and reports every decision in the returned log.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from screenforge.schema.metadata import field_id, stamp_screen
from screenforge.schemas.screen import (
    FIELD_LIST_ATTRS,
    Actions,
    FieldDescriptor,
    FieldScope,
    Meta,
    PrimaryAction,
    ScreenSchema,
    dump_snapshot,
)

PRESENTATION_KEYS = (
    "label",
    "placeholder",
    "hint",
    "info",
    "ui_hint",
    "group",
    "hidden",
)

# Provenance flags taken from the overlay when it sets them.
PROVENANCE_KEYS = ("source", "introduced_by", "last_changed_by")

# Screen attributes where a value in the overlay wins outright.
SCREEN_OVERRIDE_KEYS = ("entity", "screen_kind", "layout")


class DecisionCode(str, Enum):
    """Codes written to the reconciliation log, followed by the field id."""

    REMOVED_BY_API = "REMOVED_BY_API"
    PRESERVE_USER_REMOVED = "PRESERVE_USER_REMOVED"
    USER_REMOVED_TOMBSTONE = "USER_REMOVED_TOMBSTONE"
    ADDED_BY_API = "ADDED_BY_API"
    OPTIONAL_TO_REQUIRED = "OPTIONAL_TO_REQUIRED"
    REQUIRED_TO_OPTIONAL = "REQUIRED_TO_OPTIONAL"
    TYPE_CHANGED = "TYPE_CHANGED"
    ENUM_TO_STRING = "ENUM_TO_STRING"
    STRING_TO_ENUM = "STRING_TO_ENUM"

    def entry(self, fid: str) -> str:
        return f"{self.value} {fid}"


class FieldOutcome(str, Enum):
    """What happens to one field id during a merge."""

    REMOVED_BY_API = "removed_by_api"
    PRESERVE_USER_REMOVED = "preserve_user_removed"
    MERGE = "merge"
    USER_REMOVED_TOMBSTONE = "user_removed_tombstone"
    ADDED_BY_API = "added_by_api"
    ABSENT = "absent"


@dataclass
class ReconcileResult:
    """Merged screen plus the ordered decision log."""

    merged: ScreenSchema
    log: list[str] = field(default_factory=list)


def classify_field(
    in_next: bool,
    in_overlay: bool,
    in_previous: bool,
    user_removed: bool = False,
) -> FieldOutcome:
    """Decide the fate of a field id from where it is present."""
    if in_overlay:
        if not in_next:
            return FieldOutcome.REMOVED_BY_API
        if user_removed:
            return FieldOutcome.PRESERVE_USER_REMOVED
        return FieldOutcome.MERGE

    if not in_next:
        return FieldOutcome.ABSENT
    if in_previous:
        return FieldOutcome.USER_REMOVED_TOMBSTONE
    return FieldOutcome.ADDED_BY_API


def reconcile(
    next_screen: ScreenSchema,
    overlay: Optional[ScreenSchema],
    previous: Optional[ScreenSchema],
    openapi_version: str,
) -> ReconcileResult:
    """Merge a freshly generated screen into the user's overlay.

    Args:
        next_screen: Screen generated from the current API description.
        overlay: The user-editable screen, or None on first generation.
        previous: Screen generated on the previous run, or None.
        openapi_version: Version of the API description behind next_screen.

    Returns:
        ReconcileResult with the merged screen and decision log. Without an
        overlay the merged screen is next_screen with missing Meta stamped.
    """
    normalized_next = stamp_screen(next_screen, openapi_version)
    if overlay is None:
        return ReconcileResult(merged=normalized_next, log=[])

    normalized_overlay = stamp_screen(overlay, openapi_version, source="user")
    normalized_prev = stamp_screen(previous, openapi_version) if previous is not None else None

    log: list[str] = []
    update: dict = {}

    for key in SCREEN_OVERRIDE_KEYS:
        overlay_value = getattr(normalized_overlay, key)
        update[key] = overlay_value if overlay_value is not None else getattr(normalized_next, key)

    update["actions"] = merge_actions(normalized_next.actions, normalized_overlay.actions)

    for scope, attr in FIELD_LIST_ATTRS.items():
        merged_fields, field_log = merge_field_list(
            normalized_next.field_list(scope),
            normalized_overlay.field_list(scope),
            normalized_prev.field_list(scope) if normalized_prev is not None else [],
            scope,
            openapi_version,
        )
        update[attr] = merged_fields
        log.extend(field_log)

    update["meta"] = merge_meta(normalized_next.meta, normalized_overlay.meta, openapi_version)

    return ReconcileResult(merged=normalized_next.model_copy(update=update), log=log)


def merge_actions(
    next_actions: Optional[Actions], overlay_actions: Optional[Actions]
) -> Optional[Actions]:
    """Only the primary action label is user-editable."""
    if overlay_actions is None or overlay_actions.primary is None:
        return next_actions
    label = overlay_actions.primary.label
    if not label:
        return next_actions

    base = next_actions or Actions()
    primary = base.primary or PrimaryAction(type="submit", label=label)
    return base.model_copy(update={"primary": primary.model_copy(update={"label": label})})


def merge_field_list(
    next_fields: list[FieldDescriptor],
    overlay_fields: list[FieldDescriptor],
    prev_fields: list[FieldDescriptor],
    scope: FieldScope,
    openapi_version: str,
) -> tuple[list[FieldDescriptor], list[str]]:
    """Merge one field list (path, query or body) by Meta.id.

    Fields known to the overlay come first, in overlay order; fields new to
    the overlay follow in the order the API produced them.
    """
    next_map = _index_by_id(next_fields, scope)
    overlay_map = _index_by_id(overlay_fields, scope)
    prev_map = _index_by_id(prev_fields, scope)

    from_overlay, overlay_log = _merge_overlay_fields(
        overlay_fields, next_map, prev_map, scope, openapi_version
    )
    remaining, remaining_log = _merge_remaining_fields(
        next_map, overlay_map, prev_map, openapi_version
    )
    return from_overlay + remaining, overlay_log + remaining_log


def _merge_overlay_fields(
    overlay_fields: list[FieldDescriptor],
    next_map: dict[str, FieldDescriptor],
    prev_map: dict[str, FieldDescriptor],
    scope: FieldScope,
    openapi_version: str,
) -> tuple[list[FieldDescriptor], list[str]]:
    """First pass: walk the overlay, which owns display order."""
    result: list[FieldDescriptor] = []
    log: list[str] = []
    seen: set[str] = set()

    for overlay_field in overlay_fields:
        fid = field_id(overlay_field, scope)
        if fid in seen:
            continue
        seen.add(fid)

        next_field = next_map.get(fid)
        user_removed = bool(overlay_field.meta and overlay_field.meta.user_removed)
        outcome = classify_field(
            in_next=next_field is not None,
            in_overlay=True,
            in_previous=fid in prev_map,
            user_removed=user_removed,
        )

        if outcome is FieldOutcome.REMOVED_BY_API:
            log.append(DecisionCode.REMOVED_BY_API.entry(fid))
            continue

        assert next_field is not None
        if outcome is FieldOutcome.PRESERVE_USER_REMOVED:
            preserved = _tombstone(next_field, overlay_field.meta, openapi_version)
            if dump_snapshot(preserved) != dump_snapshot(overlay_field):
                log.append(DecisionCode.PRESERVE_USER_REMOVED.entry(fid))
            result.append(preserved)
            continue

        merged, field_log = merge_field(
            next_field, overlay_field, prev_map.get(fid), openapi_version
        )
        result.append(merged)
        log.extend(field_log)

    return result, log


def _merge_remaining_fields(
    next_map: dict[str, FieldDescriptor],
    overlay_map: dict[str, FieldDescriptor],
    prev_map: dict[str, FieldDescriptor],
    openapi_version: str,
) -> tuple[list[FieldDescriptor], list[str]]:
    """Second pass: fields the API produces that the overlay does not list."""
    result: list[FieldDescriptor] = []
    log: list[str] = []

    for fid, next_field in next_map.items():
        if fid in overlay_map:
            continue
        prev_field = prev_map.get(fid)
        outcome = classify_field(
            in_next=True,
            in_overlay=False,
            in_previous=prev_field is not None,
        )

        if outcome is FieldOutcome.USER_REMOVED_TOMBSTONE:
            assert prev_field is not None
            result.append(_tombstone(next_field, prev_field.meta, openapi_version))
            log.append(DecisionCode.USER_REMOVED_TOMBSTONE.entry(fid))
            continue

        # new optional fields stay hidden until the user opts in
        auto_added = not next_field.required
        meta = merge_meta(next_field.meta, None, openapi_version).model_copy(
            update={"auto_added": auto_added}
        )
        result.append(
            next_field.model_copy(
                update={
                    "hidden": True if auto_added else next_field.hidden,
                    "meta": meta,
                }
            )
        )
        log.append(DecisionCode.ADDED_BY_API.entry(fid))

    return result, log


def _tombstone(
    next_field: FieldDescriptor, other_meta: Optional[Meta], openapi_version: str
) -> FieldDescriptor:
    """Keep the API's content for a field the user removed, hidden."""
    meta = merge_meta(next_field.meta, other_meta, openapi_version).model_copy(
        update={"user_removed": True, "last_changed_by": "user", "auto_added": False}
    )
    return next_field.model_copy(update={"hidden": True, "meta": meta})


def merge_field(
    next_field: FieldDescriptor,
    overlay_field: Optional[FieldDescriptor],
    prev_field: Optional[FieldDescriptor],
    openapi_version: str,
) -> tuple[FieldDescriptor, list[str]]:
    """Merge one matched field.

    Presentation comes from the overlay where it defines a key; structure
    (type, required, options) comes from next. Changes between prev and next
    are detected and logged, and may override the overlay's presentation.
    """
    meta = merge_meta(
        next_field.meta, overlay_field.meta if overlay_field else None, openapi_version
    )
    fid = meta.id
    update: dict = {}
    log: list[str] = []

    if overlay_field is not None:
        for key in PRESENTATION_KEYS:
            if key in overlay_field.model_fields_set:
                update[key] = getattr(overlay_field, key)

    if prev_field is not None:
        if prev_field.required != next_field.required:
            if next_field.required:
                # a required field cannot stay hidden
                update["hidden"] = False
                log.append(DecisionCode.OPTIONAL_TO_REQUIRED.entry(fid))
            else:
                log.append(DecisionCode.REQUIRED_TO_OPTIONAL.entry(fid))

        if prev_field.type != next_field.type:
            update["ui_hint"] = None
            update["options"] = next_field.options
            log.append(DecisionCode.TYPE_CHANGED.entry(fid))

        prev_enum = isinstance(prev_field.options, list)
        next_enum = isinstance(next_field.options, list)
        if prev_enum and not next_enum:
            update["options"] = None
            log.append(DecisionCode.ENUM_TO_STRING.entry(fid))
        if not prev_enum and next_enum:
            update["options"] = next_field.options
            log.append(DecisionCode.STRING_TO_ENUM.entry(fid))

    update["meta"] = meta
    return next_field.model_copy(update=update), log


def merge_meta(
    next_meta: Optional[Meta], overlay_meta: Optional[Meta], openapi_version: str
) -> Meta:
    """Provenance for a merged node.

    Starts from next's Meta and takes the overlay's provenance flags where
    the overlay sets them. userRemoved is sticky once either side sets it and
    clears autoAdded. openapiVersion is always the current one.
    """
    base_meta = next_meta or overlay_meta
    assert base_meta is not None, "merge_meta needs at least one Meta"
    update: dict = {"openapi_version": openapi_version}

    if overlay_meta is not None:
        overlay_set = overlay_meta.model_fields_set
        for key in PROVENANCE_KEYS:
            if key in overlay_set:
                update[key] = getattr(overlay_meta, key)
        if "auto_added" in overlay_set:
            update["auto_added"] = overlay_meta.auto_added
        update["user_removed"] = overlay_meta.user_removed or base_meta.user_removed

    if update.get("user_removed", base_meta.user_removed):
        update["auto_added"] = False

    return base_meta.model_copy(update=update)


def _index_by_id(fields: list[FieldDescriptor], scope: FieldScope) -> dict[str, FieldDescriptor]:
    """Map fields by id; a later duplicate id replaces an earlier one."""
    return {field_id(f, scope): f for f in fields}
