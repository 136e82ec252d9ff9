"""Tests for screenforge.openapi.loader."""

import json

import pytest

from screenforge.openapi.loader import (
    OpenApiLoadError,
    build_operation_id,
    iter_operations,
    load_openapi,
    merge_parameters,
    resolve_refs,
)

PETSTORE_YAML = """
openapi: 3.0.3
info:
  title: Pets
  version: 2.4.0
paths:
  /pets:
    post:
      operationId: CreatePet
      requestBody:
        content:
          application/json:
            schema:
              $ref: '#/components/schemas/Pet'
components:
  schemas:
    Pet:
      type: object
      required: [name]
      properties:
        name:
          type: string
        kind:
          $ref: '#/components/schemas/Kind'
    Kind:
      type: string
      enum: [cat, dog]
"""


class TestLoadOpenApi:
    def test_yaml_refs_are_inlined(self, tmp_path):
        path = tmp_path / "openapi.yaml"
        path.write_text(PETSTORE_YAML)

        document = load_openapi(path)

        schema = document["paths"]["/pets"]["post"]["requestBody"]["content"][
            "application/json"
        ]["schema"]
        assert schema["required"] == ["name"]
        assert schema["properties"]["kind"] == {"type": "string", "enum": ["cat", "dog"]}
        assert document["info"]["version"] == "2.4.0"

    def test_json_is_accepted(self, tmp_path):
        path = tmp_path / "openapi.json"
        path.write_text(json.dumps({"openapi": "3.0.0", "info": {"version": "1"}, "paths": {}}))

        assert load_openapi(path)["info"]["version"] == "1"

    def test_missing_file(self, tmp_path):
        with pytest.raises(OpenApiLoadError, match="Cannot read"):
            load_openapi(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("paths: [unclosed")

        with pytest.raises(OpenApiLoadError, match="Invalid YAML"):
            load_openapi(path)

    def test_document_must_be_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(OpenApiLoadError, match="must be a mapping"):
            load_openapi(path)


class TestResolveRefs:
    def test_siblings_override_target(self):
        document = {
            "components": {"schemas": {"Name": {"type": "string", "description": "base"}}},
            "field": {"$ref": "#/components/schemas/Name", "description": "local"},
        }
        resolved = resolve_refs(document)
        assert resolved["field"] == {"type": "string", "description": "local"}

    def test_recursive_reference_is_left_in_place(self):
        document = {
            "components": {
                "schemas": {
                    "Node": {
                        "type": "object",
                        "properties": {"child": {"$ref": "#/components/schemas/Node"}},
                    }
                }
            },
            "root": {"$ref": "#/components/schemas/Node"},
        }
        resolved = resolve_refs(document)

        assert resolved["root"]["type"] == "object"
        assert resolved["root"]["properties"]["child"] == {"$ref": "#/components/schemas/Node"}

        node = resolved["components"]["schemas"]["Node"]
        assert node["properties"]["child"]["properties"]["child"] == {
            "$ref": "#/components/schemas/Node"
        }

    def test_escaped_pointer_tokens(self):
        document = {
            "paths": {"/users": {"get": {"summary": "List"}}},
            "alias": {"$ref": "#/paths/~1users/get"},
        }
        assert resolve_refs(document)["alias"] == {"summary": "List"}

    def test_unresolvable_reference_raises(self):
        with pytest.raises(OpenApiLoadError, match="Unresolvable reference"):
            resolve_refs({"field": {"$ref": "#/components/schemas/Missing"}})

    def test_external_reference_is_kept(self):
        document = {"field": {"$ref": "other.yaml#/Pet"}}
        assert resolve_refs(document) == document

    def test_input_is_not_mutated(self):
        document = {"a": {"type": "string"}, "b": {"$ref": "#/a"}}
        resolve_refs(document)
        assert document["b"] == {"$ref": "#/a"}


class TestIterOperations:
    def test_records_carry_identity(self, api_document):
        operations = list(iter_operations(api_document))

        assert [op["operationId"] for op in operations] == [
            "ListUsers",
            "CreateUser",
            "UpdateUser",
            "DeleteUser",
        ]
        assert operations[2]["path"] == "/users/{userId}"
        assert operations[2]["method"] == "put"

    def test_non_method_keys_are_skipped(self):
        document = {
            "paths": {
                "/items": {
                    "summary": "Items",
                    "parameters": [{"name": "tenant", "in": "header"}],
                    "GET": {"operationId": "ListItems"},
                }
            }
        }
        operations = list(iter_operations(document))

        assert len(operations) == 1
        assert operations[0]["method"] == "get"
        assert operations[0]["parameters"] == [{"name": "tenant", "in": "header"}]

    def test_missing_operation_ids_are_synthesized(self):
        document = {
            "paths": {
                "/users/{id}": {"get": {}, "delete": {}},
                "/": {"post": {}},
            }
        }
        ids = [op["operationId"] for op in iter_operations(document)]
        assert ids == ["GetUsersById", "DeleteUsersById", "CreateEndpoint"]

    def test_synthesized_ids_avoid_declared_ones(self):
        document = {
            "paths": {
                "/users": {"get": {}},
                "/people": {"get": {"operationId": "GetUsers"}},
            }
        }
        ids = [op["operationId"] for op in iter_operations(document)]
        assert ids == ["GetUsers2", "GetUsers"]


class TestOperationHelpers:
    def test_merge_parameters_first_wins(self):
        merged = merge_parameters(
            [{"name": "id", "in": "path", "description": "path level"}],
            [
                {"name": "id", "in": "path", "description": "operation level"},
                {"name": "id", "in": "query"},
            ],
        )
        assert [p.get("description") for p in merged] == ["path level", None]

    def test_build_operation_id_collisions(self):
        used = {"GetUsers"}
        assert build_operation_id("get", "/users", used) == "GetUsers2"
        assert build_operation_id("get", "/users", used) == "GetUsers3"
        assert {"GetUsers2", "GetUsers3"} <= used

    def test_build_operation_id_verbs(self):
        assert build_operation_id("patch", "/users/{userId}", set()) == "PatchUsersByUserId"
        assert build_operation_id("head", "/health", set()) == "CallHealth"
