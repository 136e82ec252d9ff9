"""Loading API descriptions into normalized operation records."""

from screenforge.openapi.loader import (
    OpenApiLoadError,
    build_operation_id,
    iter_operations,
    load_openapi,
    resolve_refs,
)

__all__ = [
    "OpenApiLoadError",
    "build_operation_id",
    "iter_operations",
    "load_openapi",
    "resolve_refs",
]
