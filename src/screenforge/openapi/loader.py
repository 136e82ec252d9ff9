"""OpenAPI loader.

Reads a YAML or JSON API description, inlines local ``$ref`` pointers and
turns every path/method pair into the flat operation record the screen
generator expects:

    {"operationId": ..., "path": "/users/{id}", "method": "get",
     "parameters": [...], "requestBody": {...}, "responses": {...}, ...}
"""

from pathlib import Path
from typing import Any, Iterator

import yaml
from loguru import logger

from screenforge.utils import capitalize

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")

VERB_PREFIXES = {
    "get": "Get",
    "post": "Create",
    "put": "Update",
    "patch": "Patch",
    "delete": "Delete",
}


class OpenApiLoadError(Exception):
    """The API description cannot be read or its references cannot be resolved."""


def load_openapi(path: Path) -> dict[str, Any]:
    """Load an API description and resolve its local references."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise OpenApiLoadError(f"Cannot read API description {path}: {e}") from e

    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise OpenApiLoadError(f"Invalid YAML/JSON in {path}: {e}") from e

    if not isinstance(document, dict):
        raise OpenApiLoadError(f"API description {path} must be a mapping")

    logger.debug(f"Loaded API description {path}")
    return resolve_refs(document)


def resolve_refs(document: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of document with every local ``$ref`` inlined.

    Keys next to a ``$ref`` override the referenced object. Recursive
    references are left as ``$ref`` at the point where they loop back.
    """
    return _resolve(document, document, ())


def _resolve(node: Any, document: dict[str, Any], stack: tuple[str, ...]) -> Any:
    if isinstance(node, list):
        return [_resolve(item, document, stack) for item in node]
    if not isinstance(node, dict):
        return node

    ref = node.get("$ref")
    if isinstance(ref, str):
        siblings = {k: v for k, v in node.items() if k != "$ref"}
        if not ref.startswith("#"):
            logger.warning(f"External reference not supported, left as is: {ref}")
            return dict(node)
        if ref in stack:
            logger.debug(f"Recursive reference left unresolved: {ref}")
            return dict(node)
        target = _resolve(_lookup_pointer(document, ref), document, stack + (ref,))
        if siblings and isinstance(target, dict):
            return {**target, **_resolve(siblings, document, stack)}
        return target

    return {key: _resolve(value, document, stack) for key, value in node.items()}


def _lookup_pointer(document: dict[str, Any], ref: str) -> Any:
    """Follow a JSON pointer such as ``#/components/schemas/User``."""
    current: Any = document
    for raw in ref.lstrip("#").split("/")[1:]:
        token = raw.replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise OpenApiLoadError(f"Unresolvable reference: {ref}")
    return current


def iter_operations(document: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Yield one normalized operation record per path and HTTP method.

    Path-level parameters are merged with operation parameters (first one
    wins per ``in:name``). Operations without an operationId get a generated,
    document-unique one.
    """
    used_operation_ids: set[str] = {
        str(op["operationId"])
        for path_item in (document.get("paths") or {}).values()
        if isinstance(path_item, dict)
        for method, op in path_item.items()
        if method.lower() in HTTP_METHODS and isinstance(op, dict) and op.get("operationId")
    }

    for path_key, path_item in (document.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue
        for method, op in path_item.items():
            if method.lower() not in HTTP_METHODS or not isinstance(op, dict):
                continue

            operation_id = op.get("operationId") or build_operation_id(
                method, path_key, used_operation_ids
            )
            yield {
                **op,
                "operationId": operation_id,
                "path": path_key,
                "method": method.lower(),
                "parameters": merge_parameters(path_item.get("parameters"), op.get("parameters")),
            }


def merge_parameters(path_params: list | None, op_params: list | None) -> list[dict[str, Any]]:
    merged: list[dict[str, Any]] = []
    seen: set[str] = set()
    for param in [*(path_params or []), *(op_params or [])]:
        if not isinstance(param, dict):
            continue
        key = f"{param.get('in', '')}:{param.get('name', '')}"
        if key in seen:
            continue
        seen.add(key)
        merged.append(param)
    return merged


def build_operation_id(method: str, path_key: str, used_operation_ids: set[str]) -> str:
    """Synthesize an operationId such as ``GetUsersById`` and reserve it.

    Collisions get a numeric suffix starting at 2.
    """
    prefix = VERB_PREFIXES.get(method.lower(), "Call")
    parts = []
    for segment in (s for s in path_key.split("/") if s):
        if segment.startswith("{") and segment.endswith("}"):
            parts.append(f"By{capitalize(segment[1:-1])}")
        else:
            parts.append(capitalize(segment))

    base = f"{prefix}{''.join(parts)}" if parts else f"{prefix}Endpoint"
    candidate = base
    index = 2
    while candidate in used_operation_ids:
        candidate = f"{base}{index}"
        index += 1

    used_operation_ids.add(candidate)
    return candidate
