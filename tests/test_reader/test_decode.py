"""Tests for the OpenAPI shape decoders."""

from __future__ import annotations

from typing import Any

import pytest

from specreader.exceptions import FileLoadError, InvalidNodeError, UnresolvedRefError
from specreader.models import (
    HTTPMethod,
    Parameter,
    ParameterLocation,
    RefKey,
    Schema,
    SchemaRef,
    Spec,
)
from specreader.reader.decode import decode_spec, merge_parameters
from specreader.reader.state import ReaderState


A = "/specs/a.yaml"


def _no_loader(file: str) -> bytes:
    raise FileLoadError(file, "not available in this test")


def _decode(doc: dict[str, Any]) -> tuple[ReaderState, Spec]:
    state = ReaderState(loader=_no_loader)
    state.files[A] = doc
    state.enter_document(A)
    return decode_spec(state, doc)


def _param(name: str, location: str = "query", required: bool = False) -> Parameter:
    return Parameter(name=name, location=ParameterLocation(location), required=required)


# ---------------------------------------------------------------------------
# merge_parameters
# ---------------------------------------------------------------------------


class TestMergeParameters:
    def test_operation_overrides_same_name_and_location(self) -> None:
        merged = merge_parameters(
            [_param("limit"), _param("X-Tenant", "header")],
            [_param("limit", required=True)],
        )
        assert [(p.name, p.required) for p in merged] == [("X-Tenant", False), ("limit", True)]

    def test_same_name_different_location_kept(self) -> None:
        merged = merge_parameters([_param("id", "header")], [_param("id", "query")])
        assert [(p.name, p.location.value) for p in merged] == [("id", "header"), ("id", "query")]

    def test_empty_inputs(self) -> None:
        assert merge_parameters([], []) == []


# ---------------------------------------------------------------------------
# Document root
# ---------------------------------------------------------------------------


class TestDecodeSpec:
    def test_info_and_servers(self) -> None:
        _, spec = _decode(
            {
                "openapi": "3.1.0",
                "info": {"title": "Pets", "version": 2, "license": {"name": "MIT"}},
                "servers": [{"url": "https://api.example.com"}],
            }
        )
        assert spec.openapi == "3.1.0"
        assert spec.info.title == "Pets"
        assert spec.info.version == "2"
        assert spec.info.license_name == "MIT"
        assert [s.url for s in spec.servers] == ["https://api.example.com"]

    def test_missing_sections_use_defaults(self) -> None:
        _, spec = _decode({"openapi": "3.0.0"})
        assert spec.info.title == "Untitled API"
        assert spec.paths == {}
        assert spec.components.schemas == {}

    def test_root_must_be_mapping(self) -> None:
        state = ReaderState()
        state.enter_document(A)
        with pytest.raises(InvalidNodeError, match="OpenAPI document"):
            decode_spec(state, ["not", "a", "spec"])

    def test_contact_must_be_mapping(self) -> None:
        with pytest.raises(InvalidNodeError, match="contact object") as exc_info:
            _decode({"openapi": "3.0.3", "info": {"title": "Pets", "version": "1", "contact": "me"}})
        assert exc_info.value.location.base_path == ["info"]

    def test_security_must_be_sequence(self) -> None:
        with pytest.raises(InvalidNodeError, match="'security' to be a sequence, got str"):
            _decode({"openapi": "3.0.3", "security": "none"})


# ---------------------------------------------------------------------------
# Paths, operations and parameters
# ---------------------------------------------------------------------------


PETS_DOC: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Pets", "version": "1"},
    "paths": {
        "/pets/{petId}": {
            "parameters": [
                {"$ref": "#/components/parameters/PetId"},
                {"name": "verbose", "in": "query"},
            ],
            "get": {
                "operationId": "showPet",
                "tags": ["pets"],
                "parameters": [
                    {"name": "verbose", "in": "query", "required": True},
                    {"name": "weird", "in": "body"},
                ],
                "responses": {
                    "200": {"$ref": "#/components/responses/PetResponse"},
                },
            },
            "delete": {"operationId": "deletePet"},
        },
        "/alias": {"$ref": "#/paths/~1pets~1{petId}"},
    },
    "components": {
        "parameters": {
            "PetId": {"name": "petId", "in": "path", "schema": {"type": "string"}},
        },
        "responses": {
            "PetResponse": {"$ref": "#/components/responses/Base"},
            "Base": {
                "description": "A pet",
                "content": {
                    "application/json": {"schema": {"$ref": "#/components/schemas/Pet"}},
                },
            },
        },
        "schemas": {
            "Pet": {"type": "object", "properties": {"name": {"type": "string"}}},
        },
    },
}


class TestOperations:
    def test_operations_in_method_order(self) -> None:
        _, spec = _decode(PETS_DOC)
        item = spec.paths["/pets/{petId}"]
        assert [op.method for op in item.operations] == [HTTPMethod.GET, HTTPMethod.DELETE]
        assert item.operations[0].operation_id == "showPet"
        assert item.operations[0].tags == ["pets"]

    def test_path_parameters_are_merged_into_operations(self) -> None:
        _, spec = _decode(PETS_DOC)
        get, delete = spec.paths["/pets/{petId}"].operations

        assert [(p.name, p.required) for p in get.parameters] == [("petId", True), ("verbose", True)]
        assert [(p.name, p.required) for p in delete.parameters] == [
            ("petId", True),
            ("verbose", False),
        ]

    def test_path_parameters_do_not_leak(self) -> None:
        state, _ = _decode(PETS_DOC)
        assert state.path_parameters == []

    def test_unknown_parameter_location_is_skipped(self, caplog) -> None:
        with caplog.at_level("WARNING", logger="specreader"):
            _, spec = _decode(PETS_DOC)
        get = spec.paths["/pets/{petId}"].operations[0]
        assert "weird" not in [p.name for p in get.parameters]
        assert "unknown location" in caplog.text

    def test_referenced_parameter_schema_key(self) -> None:
        state, spec = _decode(PETS_DOC)
        pet_id = spec.paths["/pets/{petId}"].parameters[0]
        assert isinstance(pet_id.schema_, Schema)
        assert pet_id.schema_.key == RefKey(A, ("components", "parameters", "PetId", "schema"))

    def test_response_ref_chain_is_followed(self) -> None:
        _, spec = _decode(PETS_DOC)
        response = spec.paths["/pets/{petId}"].operations[0].responses["200"]
        assert response.description == "A pet"
        schema = response.content["application/json"].schema_
        assert schema == SchemaRef(target=RefKey(A, ("components", "schemas", "Pet")))

    def test_path_item_ref(self) -> None:
        _, spec = _decode(PETS_DOC)
        alias = spec.paths["/alias"]
        assert alias.path == "/alias"
        assert [op.operation_id for op in alias.operations] == ["showPet", "deletePet"]
        assert alias.operations[0].path == "/alias"

    def test_ref_loop_raises(self) -> None:
        doc = {
            "openapi": "3.0.3",
            "components": {
                "responses": {
                    "A": {"$ref": "#/components/responses/B"},
                    "B": {"$ref": "#/components/responses/A"},
                },
            },
        }
        with pytest.raises(UnresolvedRefError, match="too many chained"):
            _decode(doc)

    def test_wrongly_typed_operation_field(self) -> None:
        doc = {"openapi": "3.0.3", "paths": {"/pets": {"get": {"operationId": 7}}}}
        with pytest.raises(InvalidNodeError, match="operation_id: Input should be a valid string") as exc_info:
            _decode(doc)
        assert exc_info.value.location.base_path == ["paths", "/pets", "get"]

    def test_tags_must_be_sequence(self) -> None:
        doc = {"openapi": "3.0.3", "paths": {"/pets": {"get": {"tags": "pets"}}}}
        with pytest.raises(InvalidNodeError, match="'tags' to be a sequence"):
            _decode(doc)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestSchemas:
    def _schema(self, node: Any) -> tuple[ReaderState, Schema]:
        state, spec = _decode({"openapi": "3.1.0", "components": {"schemas": {"S": node}}})
        return state, spec.components.schemas["S"]

    def test_keywords(self) -> None:
        _, schema = self._schema(
            {
                "type": "string",
                "format": "date-time",
                "enum": ["a", "b"],
                "default": "a",
                "readOnly": True,
                "deprecated": True,
                "x-go-type": "time.Time",
            }
        )
        assert schema.type == "string"
        assert schema.format == "date-time"
        assert schema.enum == ["a", "b"]
        assert schema.default == "a"
        assert schema.read_only is True
        assert schema.deprecated is True
        assert schema.extensions == {"x-go-type": "time.Time"}

    def test_type_list_with_null_is_nullable(self) -> None:
        _, schema = self._schema({"type": ["string", "null"]})
        assert schema.nullable is True
        assert schema.type == ["string", "null"]

    def test_boolean_schema(self) -> None:
        _, schema = self._schema(True)
        assert schema == Schema(key=RefKey(A, ("components", "schemas", "S")))

    def test_nested_schemas_are_keyed_by_location(self) -> None:
        state, schema = self._schema(
            {
                "type": "object",
                "properties": {"tags": {"type": "array", "items": {"type": "string"}}},
                "additionalProperties": False,
                "allOf": [{"$ref": "#/components/schemas/Base"}],
            }
        )
        tags = schema.properties["tags"]
        assert tags.key == RefKey(A, ("components", "schemas", "S", "properties", "tags"))
        assert tags.items.key == RefKey(
            A, ("components", "schemas", "S", "properties", "tags", "items")
        )
        assert schema.additional_properties is False
        assert schema.all_of == [SchemaRef(target=RefKey(A, ("components", "schemas", "Base")))]
        assert state.schema_index.get(RefKey(A, ("components", "schemas", "S", "allOf", "0"))) == (
            schema.all_of[0]
        )

    def test_additional_properties_schema(self) -> None:
        _, schema = self._schema({"additionalProperties": {"type": "integer"}})
        assert isinstance(schema.additional_properties, Schema)
        assert schema.additional_properties.type == "integer"

    def test_invalid_schema_node_raises_with_location(self) -> None:
        with pytest.raises(InvalidNodeError) as exc_info:
            self._schema({"properties": {"bad": "string"}})
        location = exc_info.value.location
        assert location is not None
        assert location.base_path == ["components", "schemas", "S", "properties", "bad"]

    def test_numeric_title_raises_with_location(self) -> None:
        with pytest.raises(InvalidNodeError, match="title: Input should be a valid string") as exc_info:
            self._schema({"type": "object", "title": 2024})
        assert exc_info.value.expected == "a schema object"
        assert exc_info.value.location.base_path == ["components", "schemas", "S"]

    def test_required_must_be_sequence(self) -> None:
        with pytest.raises(InvalidNodeError, match="'required' to be a sequence, got bool") as exc_info:
            self._schema({"type": "object", "required": True})
        assert exc_info.value.location.base_path == ["components", "schemas", "S"]

    def test_parameter_with_wrongly_typed_description(self) -> None:
        doc = {
            "openapi": "3.0.3",
            "components": {"parameters": {"P": {"name": "p", "in": "query", "description": ["x"]}}},
        }
        with pytest.raises(InvalidNodeError, match="description") as exc_info:
            _decode(doc)
        assert exc_info.value.location.base_path == ["components", "parameters", "P"]
