"""Common test fixtures."""

import os
from pathlib import Path
from typing import Any

import pytest

from screenforge import config as config_module
from screenforge.config import ScreenforgeConfig
from screenforge.openapi.loader import iter_operations
from screenforge.services.snapshot_store import SnapshotStore


@pytest.fixture(autouse=True)
def config_home(tmp_path, monkeypatch) -> Path:
    """Isolate HOME, the config dir and the config cache for every test."""
    monkeypatch.setenv("HOME", str(tmp_path))
    if os.name == "nt":
        monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv("SCREENFORGE_CONFIG_DIR", str(tmp_path / ".screenforge"))
    for name in list(os.environ):
        if name.startswith("SCREENFORGE_") and name != "SCREENFORGE_CONFIG_DIR":
            monkeypatch.delenv(name, raising=False)

    config_module._CONFIG_CACHE = None
    yield tmp_path
    config_module._CONFIG_CACHE = None


@pytest.fixture
def app_config() -> ScreenforgeConfig:
    return ScreenforgeConfig(env="test")


@pytest.fixture
def store(tmp_path) -> SnapshotStore:
    return SnapshotStore(tmp_path / "generate-ui")


def _json_body(schema: dict[str, Any]) -> dict[str, Any]:
    return {"content": {"application/json": {"schema": schema}}}


@pytest.fixture
def api_document() -> dict[str, Any]:
    """A small, already resolved users API."""
    return {
        "openapi": "3.0.3",
        "info": {"title": "Users", "version": "1.0.0"},
        "servers": [{"url": "https://api.example.com"}],
        "paths": {
            "/users": {
                "get": {
                    "operationId": "ListUsers",
                    "summary": "List users",
                    "tags": ["Users"],
                    "parameters": [
                        {"name": "email", "in": "query", "schema": {"type": "string"}},
                        {
                            "name": "status",
                            "in": "query",
                            "required": True,
                            "description": "Account status",
                            "schema": {
                                "type": "string",
                                "enum": ["active", "blocked"],
                                "default": "active",
                            },
                        },
                    ],
                    "responses": {
                        "200": _json_body(
                            {
                                "type": "object",
                                "properties": {
                                    "items": {
                                        "type": "array",
                                        "items": {
                                            "type": "object",
                                            "properties": {
                                                "id": {"type": "integer"},
                                                "email": {"type": "string"},
                                            },
                                        },
                                    },
                                    "total": {"type": "integer"},
                                },
                            }
                        )
                    },
                },
                "post": {
                    "operationId": "CreateUser",
                    "tags": ["Users"],
                    "requestBody": _json_body(
                        {
                            "type": "object",
                            "properties": {
                                "user": {
                                    "type": "object",
                                    "required": ["email"],
                                    "properties": {
                                        "email": {"type": "string"},
                                        "name": {"type": "string"},
                                        "role": {"type": "string", "enum": ["admin", "member"]},
                                        "tags": {"type": "array", "items": {"type": "string"}},
                                    },
                                }
                            },
                        }
                    ),
                    "responses": {"201": {"description": "Created"}},
                },
            },
            "/users/{userId}": {
                "put": {
                    "operationId": "UpdateUser",
                    "requestBody": _json_body(
                        {
                            "type": "object",
                            "required": ["name"],
                            "properties": {
                                "name": {"type": "string"},
                                "nickname": {"type": "string"},
                            },
                        }
                    ),
                },
                "delete": {"operationId": "DeleteUser"},
            },
        },
    }


@pytest.fixture
def find_operation(api_document):
    """Look up a normalized operation record of the users API by operationId."""

    def _find(operation_id: str, document: dict[str, Any] | None = None) -> dict[str, Any]:
        return next(
            op
            for op in iter_operations(document or api_document)
            if op["operationId"] == operation_id
        )

    return _find
