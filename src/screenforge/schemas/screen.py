"""Pydantic models for screen schemas.

A screen schema describes the UI for one API operation. Three snapshots of
the same screen exist at any time (freshly generated, previously generated
and the user's overlay); all of them use these models and are stored as
camelCase JSON.

Presence matters: an overlay key that is missing from the stored JSON is
"not defined" and never overrides the generated value, while an explicit
``null`` is a user decision. The models track this through pydantic's
``model_fields_set`` and snapshots are always dumped with ``exclude_unset``.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Origin = Literal["api", "user"]
FieldScope = Literal["path", "query", "body"]

# Field list attribute for every scope, in merge order.
FIELD_LIST_ATTRS: dict[FieldScope, str] = {
    "path": "path_params",
    "query": "query_params",
    "body": "fields",
}


class SnapshotModel(BaseModel):
    """Base for every node stored in a screen snapshot.

    Unknown keys are kept so hand-written additions survive a round trip.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Meta(SnapshotModel):
    """Provenance record attached to a screen and to each of its fields."""

    id: str = Field(description="Join key across snapshots: scope:name")
    source: Origin = Field(default="api", description="Who produced this node")
    introduced_by: Origin = Field(default="api", description="Fixed at creation")
    last_changed_by: Origin = Field(default="api")
    openapi_version: str = Field(default="unknown")
    auto_added: bool = Field(
        default=False,
        description="Added because the API introduced a new optional field",
    )
    user_removed: bool = Field(
        default=False,
        description="Removed by the user, kept as a hidden tombstone",
    )


class FieldDescriptor(SnapshotModel):
    """One path parameter, query parameter or body property."""

    name: str
    type: str = "string"
    required: bool = False

    # presentation, overridable from the overlay
    label: str | None = None
    placeholder: Any = None
    hint: str | None = None
    info: str | None = None
    ui_hint: str | None = None
    group: str | None = None
    hidden: bool = False

    options: list[Any] | None = None
    default_value: Any = None
    meta: Meta | None = None


class ScreenKind(SnapshotModel):
    type: str
    mode: str


class OperationRef(SnapshotModel):
    """Identity of the API operation behind a screen."""

    operation_id: str
    endpoint_template: str
    http_method: str
    base_url: str | None = None
    submit_wrap: str | None = Field(
        default=None,
        description="Envelope key the body is wrapped in on submit",
    )


class PrimaryAction(SnapshotModel):
    type: str = "submit"
    label: str


class Actions(SnapshotModel):
    primary: PrimaryAction | None = None


class Layout(SnapshotModel):
    type: str = "single"


class TableColumn(SnapshotModel):
    key: str
    label: str
    visible: bool = True


class ResponseHints(SnapshotModel):
    """How the operation's response should be displayed."""

    format: str | None = None
    columns: list[TableColumn] = Field(default_factory=list)


class ScreenSchema(SnapshotModel):
    """Root artifact for one API operation."""

    meta: Meta | None = None
    entity: str | None = None
    screen_kind: ScreenKind | None = None
    description: str | None = None
    operation: OperationRef | None = None
    layout: Layout | None = None
    path_params: list[FieldDescriptor] = Field(default_factory=list)
    query_params: list[FieldDescriptor] = Field(default_factory=list)
    fields: list[FieldDescriptor] = Field(default_factory=list)
    actions: Actions | None = None
    response: ResponseHints | None = None

    def field_list(self, scope: FieldScope) -> list[FieldDescriptor]:
        return getattr(self, FIELD_LIST_ATTRS[scope])

    @property
    def operation_id(self) -> str | None:
        return self.operation.operation_id if self.operation else None


def dump_snapshot(model: SnapshotModel) -> dict[str, Any]:
    """Serialize a snapshot node to its stored JSON shape."""
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True)


def load_screen(data: dict[str, Any]) -> ScreenSchema:
    """Build a ScreenSchema from stored JSON, keeping key presence."""
    return ScreenSchema.model_validate(data)
