"""screenforge - editable UI screen schemas generated from OpenAPI descriptions."""

__version__ = "0.1.0"
