"""Screen schema generator.

Maps one API operation to a ScreenSchema. The operation record is a plain
OpenAPI operation object with ``method``, ``path`` and ``operationId`` added
and all ``$ref`` pointers already resolved (see screenforge.openapi.loader).

Inference rules:

  GET  + input    -> form/filter,  primary action "Search"
  GET  + no input -> view/readonly, no primary action
  POST            -> form/create,  "Create"
  PUT / PATCH     -> form/edit,    "Save"
  DELETE          -> view/readonly, "Delete"
  anything else   -> view/readonly, "Execute"

"Input" means at least one path parameter, query parameter or body field.
Every emitted node is stamped with source=api.
"""

import re
from typing import Any, Iterable, Optional

from screenforge.schema.errors import ScreenGenerationError
from screenforge.schema.metadata import UNKNOWN_VERSION, screen_id, stamp
from screenforge.schemas.screen import (
    Actions,
    FieldDescriptor,
    Layout,
    OperationRef,
    PrimaryAction,
    ResponseHints,
    ScreenKind,
    ScreenSchema,
    TableColumn,
)
from screenforge.utils import to_label

PATH_PLACEHOLDER = re.compile(r"{([^}]+)}")
ENTITY_PREFIX = re.compile(r"^(Create|Update|Get)")
COMPONENT_ENTITY_PREFIX = re.compile(r"^(Create|Update|Get|Delete)")

# Envelope keys searched first when looking for the rows of a list response.
COMMON_COLLECTION_KEYS = ("data", "items", "results", "list", "records", "products")

JSON_CONTENT_TYPE = "application/json"


def generate_screen(operation: dict[str, Any], api_document: Optional[dict] = None) -> ScreenSchema:
    """Build the screen schema for a single API operation.

    Args:
        operation: Resolved operation record with method, path and operationId.
        api_document: The whole API description, used for the version string,
            the server base URL and component schema lookups.

    Returns:
        A fully stamped ScreenSchema.

    Raises:
        ScreenGenerationError: If method, path or operationId is missing.
    """
    _require_identity(operation)

    method = str(operation["method"]).lower()
    path = str(operation["path"])
    operation_id = str(operation["operationId"])
    openapi_version = get_openapi_version(api_document)

    fields = extract_body_fields(operation, api_document, openapi_version)
    query_params = extract_query_params(operation, openapi_version)
    path_params = extract_path_params(path, openapi_version)
    has_input = bool(fields or query_params or path_params)

    columns = infer_response_columns(operation) if method == "get" else []

    return ScreenSchema(
        meta=stamp(screen_id(operation_id), "api", openapi_version),
        entity=infer_entity_name(operation),
        screen_kind=infer_screen_kind(method, has_input),
        description=operation.get("description"),
        operation=OperationRef(
            operation_id=operation_id,
            endpoint_template=path,
            http_method=method,
            base_url=get_base_url(api_document),
            submit_wrap=infer_submit_wrap(operation),
        ),
        layout=Layout(type="single"),
        path_params=path_params,
        query_params=query_params,
        fields=fields,
        actions=infer_actions(method, has_input),
        response=ResponseHints(
            format=infer_response_format(operation),
            columns=[TableColumn(key=key, label=to_label(key), visible=True) for key in columns],
        ),
    )


def _require_identity(operation: Any) -> None:
    if not isinstance(operation, dict):
        raise ScreenGenerationError("Operation must be a mapping")

    operation_id = operation.get("operationId")
    path = operation.get("path")
    if not operation.get("method"):
        raise ScreenGenerationError("Operation has no HTTP method", operation_id, path)
    if not path:
        raise ScreenGenerationError("Operation has no path", operation_id, path)
    if not operation_id:
        raise ScreenGenerationError("Operation has no operationId", operation_id, path)


# --- Document helpers ---


def get_openapi_version(api_document: Optional[dict]) -> str:
    """Version of the API description (info.version), or "unknown"."""
    info = (api_document or {}).get("info") or {}
    version = info.get("version")
    return str(version) if version else UNKNOWN_VERSION


def get_base_url(api_document: Optional[dict]) -> str | None:
    servers = (api_document or {}).get("servers") or []
    if servers and isinstance(servers[0], dict):
        return servers[0].get("url")
    return None


def infer_entity_name(operation: dict[str, Any]) -> str:
    """Display name: the summary when given, else the operationId without its verb."""
    summary = operation.get("summary")
    if summary and str(summary).strip():
        return str(summary).strip()
    return ENTITY_PREFIX.sub("", str(operation["operationId"]))


# --- Screen kind and actions ---


def infer_screen_kind(method: str, has_input: bool) -> ScreenKind:
    method = method.lower()
    if method == "get":
        if has_input:
            return ScreenKind(type="form", mode="filter")
        return ScreenKind(type="view", mode="readonly")
    if method == "post":
        return ScreenKind(type="form", mode="create")
    if method in ("put", "patch"):
        return ScreenKind(type="form", mode="edit")
    return ScreenKind(type="view", mode="readonly")


def infer_actions(method: str, has_input: bool) -> Actions:
    method = method.lower()
    if method == "get":
        label = "Search" if has_input else None
    elif method == "post":
        label = "Create"
    elif method in ("put", "patch"):
        label = "Save"
    elif method == "delete":
        label = "Delete"
    else:
        label = "Execute"

    if label is None:
        return Actions(primary=None)
    return Actions(primary=PrimaryAction(type="submit", label=label))


# --- Parameters ---


def extract_path_params(path: str, openapi_version: str) -> list[FieldDescriptor]:
    """One required string field per distinct {placeholder} in the endpoint template."""
    return [
        FieldDescriptor(
            name=name,
            type="string",
            required=True,
            label=to_label(name),
            placeholder=to_label(name),
            hint=None,
            hidden=False,
            options=None,
            default_value=None,
            meta=stamp(f"path:{name}", "api", openapi_version),
        )
        for name in dict.fromkeys(PATH_PLACEHOLDER.findall(path))
    ]


def extract_query_params(operation: dict[str, Any], openapi_version: str) -> list[FieldDescriptor]:
    """Declared parameters with ``in: query``."""
    params: list[FieldDescriptor] = []
    for param in operation.get("parameters") or []:
        if not isinstance(param, dict) or param.get("in") != "query" or not param.get("name"):
            continue
        schema = param.get("schema") or {}
        name = str(param["name"])
        params.append(
            FieldDescriptor(
                name=name,
                type=schema.get("type") or "string",
                required=bool(param.get("required")),
                label=to_label(name),
                placeholder=schema.get("example"),
                hint=param.get("description"),
                hidden=False,
                options=schema.get("enum"),
                default_value=schema.get("default"),
                meta=stamp(f"query:{name}", "api", openapi_version),
            )
        )
    return params


# --- Request body ---


def get_request_schema(operation: dict[str, Any]) -> dict | None:
    request_body = operation.get("requestBody") or {}
    content = request_body.get("content") or {}
    media = content.get(JSON_CONTENT_TYPE) or {}
    schema = media.get("schema")
    return schema if isinstance(schema, dict) else None


def unwrap_schema(schema: dict | None) -> dict | None:
    """Return the inner object when the schema has exactly one object property.

    ``{"user": {"type": "object", ...}}`` is an envelope, not a form field.
    """
    if not schema or not schema.get("properties"):
        return None
    properties = schema["properties"]
    if len(properties) == 1:
        only = next(iter(properties.values()))
        if isinstance(only, dict) and only.get("type") == "object":
            return only
    return None


def infer_submit_wrap(operation: dict[str, Any]) -> str | None:
    """Envelope key the request body must be wrapped in, if any."""
    schema = get_request_schema(operation)
    if unwrap_schema(schema) is None:
        return None
    return next(iter(schema["properties"]))


def merge_schemas(primary: dict, secondary: dict) -> dict:
    """Union of properties and required lists; secondary properties win."""
    required = list(
        dict.fromkeys([*(primary.get("required") or []), *(secondary.get("required") or [])])
    )
    return {
        "type": "object",
        "properties": {
            **(primary.get("properties") or {}),
            **(secondary.get("properties") or {}),
        },
        "required": required,
    }


def extract_body_fields(
    operation: dict[str, Any], api_document: Optional[dict], openapi_version: str
) -> list[FieldDescriptor]:
    """Body fields from the request schema, after envelope unwrapping.

    For POST operations, ``components.schemas.New<Entity>`` (merged with
    ``Update<Entity>`` when both exist) replaces the request schema, so
    creation forms show every property the entity accepts.
    """
    schema = get_request_schema(operation)
    base_schema = unwrap_schema(schema) or schema
    if not base_schema or not base_schema.get("properties"):
        return []

    method = str(operation.get("method", "")).lower()
    entity = COMPONENT_ENTITY_PREFIX.sub("", str(operation.get("operationId") or ""))
    final_schema = base_schema

    if method == "post" and entity:
        components = ((api_document or {}).get("components") or {}).get("schemas") or {}
        new_schema = components.get(f"New{entity}")
        update_schema = components.get(f"Update{entity}")
        new_schema = unwrap_schema(new_schema) or new_schema
        update_schema = unwrap_schema(update_schema) or update_schema

        if new_schema and update_schema:
            final_schema = merge_schemas(new_schema, update_schema)
        elif new_schema:
            final_schema = new_schema

    return map_schema_fields(final_schema, openapi_version)


def map_schema_fields(schema: dict, openapi_version: str) -> list[FieldDescriptor]:
    required_names = set(schema.get("required") or [])
    fields: list[FieldDescriptor] = []
    for name, prop in (schema.get("properties") or {}).items():
        prop = prop if isinstance(prop, dict) else {}
        prop_type = prop.get("type") or "string"
        fields.append(
            FieldDescriptor(
                name=name,
                type=prop_type,
                required=name in required_names,
                label=None,
                placeholder=None,
                ui_hint="tags" if prop_type == "array" else None,
                hidden=False,
                options=prop.get("enum"),
                default_value=prop.get("default"),
                meta=stamp(f"body:{name}", "api", openapi_version),
            )
        )
    return fields


# --- Response hints ---


def get_primary_response_schema(operation: dict[str, Any]) -> dict | None:
    """JSON schema of the 200, 201, default or first declared response."""
    responses = {str(code): value for code, value in (operation.get("responses") or {}).items()}
    candidate = (
        responses.get("200")
        or responses.get("201")
        or responses.get("default")
        or next(iter(responses.values()), None)
    )
    if not isinstance(candidate, dict):
        return None
    media = (candidate.get("content") or {}).get(JSON_CONTENT_TYPE) or {}
    schema = media.get("schema")
    return schema if isinstance(schema, dict) else None


def infer_response_format(operation: dict[str, Any]) -> str | None:
    schema = get_primary_response_schema(operation)
    if schema is None or not has_response_data(schema):
        return None
    return "table"


def infer_response_columns(operation: dict[str, Any]) -> list[str]:
    schema = get_primary_response_schema(operation)
    if schema is None:
        return []
    return infer_columns_from_schema(schema)


def has_response_data(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    for combinator in ("allOf", "anyOf", "oneOf"):
        entries = schema.get(combinator)
        if isinstance(entries, list):
            return any(has_response_data(entry) for entry in entries)
    if schema.get("type") == "array":
        return True
    if schema.get("type") == "object" and (
        schema.get("properties") or schema.get("additionalProperties")
    ):
        return True
    return bool(infer_columns_from_schema(schema))


def infer_columns_from_schema(schema: Any) -> list[str]:
    """Column keys for a tabular view of the response.

    Arrays are unwrapped to their items; for objects, common envelope keys
    are searched before falling back to the object's own properties.
    """
    if not isinstance(schema, dict):
        return []

    all_of = schema.get("allOf")
    if isinstance(all_of, list):
        columns = _first_columns(all_of)
        if columns:
            return columns

    if schema.get("type") == "array":
        return infer_columns_from_schema(schema.get("items"))

    properties = schema.get("properties")
    if schema.get("type") == "object" and properties:
        columns = _first_columns(properties.get(key) for key in COMMON_COLLECTION_KEYS)
        if columns:
            return columns
        return list(properties.keys())

    return []


def _first_columns(schemas: Iterable[Any]) -> list[str]:
    for entry in schemas:
        columns = infer_columns_from_schema(entry)
        if columns:
            return columns
    return []
