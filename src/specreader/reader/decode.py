"""Decoders for the OpenAPI 3.x document shapes.

Every decoder takes ``(state, node)`` and returns ``(state, value)``; schema
decoders passed to :func:`~specreader.reader.state.with_schema_ref` return
``(state, key, schema)`` instead. Nested fields are always decoded through
:func:`~specreader.reader.state.with_path` so the state knows where it is.

Objects that OpenAPI allows to be replaced by a Reference Object (parameters,
request bodies, responses, path items, security schemes) are dereferenced with
:func:`~specreader.reader.state.with_ref`. Schemas never are: they go through
the schema identity index, which hands back a
:class:`~specreader.models.SchemaRef` for a ``$ref`` and leaves following it to
the consumer.

Parameter merging follows the OpenAPI specification: parameters declared on a
path item apply to each of its operations unless the operation declares one
with the same ``name`` and ``in``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from specreader.exceptions import InvalidNodeError, UnresolvedRefError
from specreader.models import (
    Components,
    HTTPMethod,
    Info,
    MediaType,
    Operation,
    Parameter,
    ParameterLocation,
    PathItem,
    RefKey,
    RequestBody,
    Response,
    Schema,
    SecurityScheme,
    Server,
    Spec,
)
from specreader.reader.index import SchemaEntry
from specreader.reader.refs import is_ref
from specreader.reader.state import (
    Decoder,
    ReaderState,
    T,
    with_path,
    with_ref,
    with_schema_ref,
)

logger = logging.getLogger(__name__)

_MAX_REF_CHAIN = 32

_SCHEMA_LIST_KEYWORDS = (("allOf", "all_of"), ("anyOf", "any_of"), ("oneOf", "one_of"))

M = TypeVar("M", bound=BaseModel)


# ------------------------------------------------------------------ #
# Traversal helpers
# ------------------------------------------------------------------ #


def _mapping(node: Any, expected: str) -> dict[str, Any]:
    if not isinstance(node, dict):
        raise InvalidNodeError(expected, node)
    return node


def _list(node: dict[str, Any], key: str) -> list[Any]:
    """``node[key]`` as a list; absent or null is empty."""
    value = node.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidNodeError(f"'{key}' to be a sequence", value)
    return list(value)


def _build(model: type[M], expected: str, node: Any, **fields: Any) -> M:
    """Construct *model*, reporting wrongly typed fields as an :class:`InvalidNodeError`."""
    try:
        return model(**fields)
    except ValidationError as exc:
        detail = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise InvalidNodeError(expected, node, detail=detail) from None


def _field(
    state: ReaderState, node: dict[str, Any], key: str, decode: Decoder[T], default: Any = None
) -> tuple[ReaderState, Any]:
    """Decode ``node[key]`` if present, otherwise return *default*."""
    if key not in node or node[key] is None:
        return state, default
    return with_path(state, node[key], key, decode)


def _each_value(state: ReaderState, node: Any, decode: Decoder[T]) -> tuple[ReaderState, dict[str, T]]:
    result: dict[str, T] = {}
    for name, value in _mapping(node, "a mapping").items():
        state, result[name] = with_path(state, value, name, decode)
    return state, result


def _each_item(state: ReaderState, node: Any, decode: Decoder[T]) -> tuple[ReaderState, list[T]]:
    if not isinstance(node, list):
        raise InvalidNodeError("a sequence", node)
    result: list[T] = []
    for index, value in enumerate(node):
        state, item = with_path(state, value, index, decode)
        result.append(item)
    return state, result


def follow(state: ReaderState, node: Any, decode: Decoder[T], depth: int = 0) -> tuple[ReaderState, T]:
    """Dereference *node* through any chain of ``$ref`` objects, then decode it."""
    if not is_ref(node):
        return decode(state, node)
    if depth >= _MAX_REF_CHAIN:
        raise UnresolvedRefError(node["$ref"], "", reason="too many chained references")
    return with_ref(state, node, lambda s, n: follow(s, n, decode, depth + 1))


def _followed(decode: Decoder[T]) -> Decoder[T]:
    return lambda state, node: follow(state, node, decode)


# ------------------------------------------------------------------ #
# Schemas
# ------------------------------------------------------------------ #


def schema(state: ReaderState, node: Any) -> tuple[ReaderState, SchemaEntry]:
    """Decode a schema position through the schema identity index."""
    return with_schema_ref(state, node, decode_schema)


def _schema_map(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, SchemaEntry]]:
    return _each_value(state, node, schema)


def _schema_list(state: ReaderState, node: Any) -> tuple[ReaderState, list[SchemaEntry]]:
    return _each_item(state, node, schema)


def _additional_properties(state: ReaderState, node: Any) -> tuple[ReaderState, Any]:
    if isinstance(node, bool):
        return state, node
    return schema(state, node)


def decode_schema(state: ReaderState, node: Any) -> tuple[ReaderState, RefKey, Schema]:
    """Decode a Schema Object defined at the state's last-dereferenced location.

    Boolean schemas (OpenAPI 3.1) decode to an empty schema.
    """
    key = state.schema_key()
    if isinstance(node, bool):
        return state, key, Schema(key=key)
    node = _mapping(node, "a schema object")

    state, properties = _field(state, node, "properties", _schema_map, {})
    state, items = _field(state, node, "items", schema)
    state, additional = _field(state, node, "additionalProperties", _additional_properties)
    compositions: dict[str, list[SchemaEntry]] = {}
    for keyword, attribute in _SCHEMA_LIST_KEYWORDS:
        state, compositions[attribute] = _field(state, node, keyword, _schema_list, [])

    schema_type = node.get("type")
    nullable = bool(node.get("nullable", False))
    if isinstance(schema_type, list) and "null" in schema_type:
        nullable = True

    decoded = _build(
        Schema,
        "a schema object",
        node,
        key=key,
        title=node.get("title"),
        description=node.get("description"),
        type=schema_type,
        format=node.get("format"),
        nullable=nullable,
        enum=node.get("enum"),
        const=node.get("const"),
        default=node.get("default"),
        example=node.get("example"),
        deprecated=bool(node.get("deprecated", False)),
        read_only=bool(node.get("readOnly", False)),
        write_only=bool(node.get("writeOnly", False)),
        required=_list(node, "required"),
        properties=properties,
        additional_properties=additional,
        items=items,
        extensions={k: v for k, v in node.items() if k.startswith("x-")},
        **compositions,
    )
    return state, key, decoded


# ------------------------------------------------------------------ #
# Parameters, bodies, responses
# ------------------------------------------------------------------ #


def decode_parameter(state: ReaderState, node: Any) -> tuple[ReaderState, Optional[Parameter]]:
    """Decode a Parameter Object.

    Parameters with an unrecognised ``in`` are skipped (``None``). Path
    parameters are always required.
    """
    node = _mapping(node, "a parameter object")
    if "name" not in node:
        raise InvalidNodeError("a parameter with a 'name'", node)

    try:
        location = ParameterLocation(node.get("in", "query"))
    except ValueError:
        logger.warning("Skipping parameter %r with unknown location %r", node["name"], node.get("in"))
        return state, None

    state, param_schema = _field(state, node, "schema", schema)
    required = bool(node.get("required", False)) or location == ParameterLocation.PATH
    return state, _build(
        Parameter,
        "a parameter object",
        node,
        name=str(node["name"]),
        location=location,
        required=required,
        description=node.get("description"),
        deprecated=bool(node.get("deprecated", False)),
        schema=param_schema,
    )


def _parameters(state: ReaderState, node: Any) -> tuple[ReaderState, list[Parameter]]:
    state, params = _each_item(state, node, _followed(decode_parameter))
    return state, [param for param in params if param is not None]


def merge_parameters(path_params: list[Parameter], op_params: list[Parameter]) -> list[Parameter]:
    """Path-level parameters overridden by operation-level ones sharing ``(name, in)``."""
    overridden = {(param.name, param.location) for param in op_params}
    merged = [param for param in path_params if (param.name, param.location) not in overridden]
    merged.extend(op_params)
    return merged


def decode_media_type(state: ReaderState, node: Any) -> tuple[ReaderState, MediaType]:
    node = _mapping(node, "a media type object")
    state, media_schema = _field(state, node, "schema", schema)
    return state, _build(
        MediaType, "a media type object", node, schema=media_schema, example=node.get("example")
    )


def _content(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, MediaType]]:
    return _each_value(state, node, decode_media_type)


def decode_request_body(state: ReaderState, node: Any) -> tuple[ReaderState, RequestBody]:
    node = _mapping(node, "a request body object")
    state, content = _field(state, node, "content", _content, {})
    return state, _build(
        RequestBody,
        "a request body object",
        node,
        description=node.get("description"),
        required=bool(node.get("required", False)),
        content=content,
    )


def decode_response(state: ReaderState, node: Any) -> tuple[ReaderState, Response]:
    node = _mapping(node, "a response object")
    state, content = _field(state, node, "content", _content, {})
    return state, _build(
        Response, "a response object", node, description=node.get("description"), content=content
    )


def _responses(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, Response]]:
    return _each_value(state, node, _followed(decode_response))


# ------------------------------------------------------------------ #
# Paths and operations
# ------------------------------------------------------------------ #


def _operation_decoder(path: str, method: HTTPMethod) -> Decoder[Operation]:
    def decode_operation(state: ReaderState, node: Any) -> tuple[ReaderState, Operation]:
        node = _mapping(node, "an operation object")
        state, op_params = _field(state, node, "parameters", _parameters, [])
        state, request_body = _field(state, node, "requestBody", _followed(decode_request_body))
        state, responses = _field(state, node, "responses", _responses, {})

        return state, _build(
            Operation,
            "an operation object",
            node,
            path=path,
            method=method,
            operation_id=node.get("operationId"),
            summary=node.get("summary"),
            description=node.get("description"),
            tags=_list(node, "tags"),
            parameters=merge_parameters(state.path_parameters, op_params),
            request_body=request_body,
            responses=responses,
            security=node.get("security"),
            deprecated=bool(node.get("deprecated", False)),
        )

    return decode_operation


def _path_item_decoder(path: str) -> Decoder[PathItem]:
    def decode_path_item(state: ReaderState, node: Any) -> tuple[ReaderState, PathItem]:
        node = _mapping(node, "a path item object")
        state, path_params = _field(state, node, "parameters", _parameters, [])

        inherited = state.path_parameters
        state.path_parameters = path_params
        operations: list[Operation] = []
        try:
            for method in HTTPMethod:
                if method.value in node:
                    state, operation = with_path(
                        state, node[method.value], method.value, _operation_decoder(path, method)
                    )
                    operations.append(operation)
        finally:
            state.path_parameters = inherited

        return state, _build(
            PathItem,
            "a path item object",
            node,
            path=path,
            summary=node.get("summary"),
            description=node.get("description"),
            parameters=path_params,
            operations=operations,
        )

    return decode_path_item


def _paths(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, PathItem]]:
    result: dict[str, PathItem] = {}
    for path, item in _mapping(node, "a paths object").items():
        state, result[path] = with_path(state, item, path, _followed(_path_item_decoder(path)))
    return state, result


# ------------------------------------------------------------------ #
# Components and document root
# ------------------------------------------------------------------ #


def _security_schemes(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, SecurityScheme]]:
    result: dict[str, SecurityScheme] = {}
    for name, value in _mapping(node, "a mapping").items():

        def decode_scheme(state: ReaderState, data: Any, name: str = name) -> tuple[ReaderState, SecurityScheme]:
            data = _mapping(data, "a security scheme object")
            return state, _build(
                SecurityScheme,
                "a security scheme object",
                data,
                name=name,
                type=str(data.get("type", "")),
                description=data.get("description"),
                param_name=data.get("name"),
                location=data.get("in"),
                scheme=data.get("scheme"),
                bearer_format=data.get("bearerFormat"),
                flows=data.get("flows"),
                openid_connect_url=data.get("openIdConnectUrl"),
            )

        state, result[name] = with_path(state, value, name, _followed(decode_scheme))
    return state, result


def _named_parameters(state: ReaderState, node: Any) -> tuple[ReaderState, dict[str, Parameter]]:
    state, params = _each_value(state, node, _followed(decode_parameter))
    return state, {name: param for name, param in params.items() if param is not None}


def decode_components(state: ReaderState, node: Any) -> tuple[ReaderState, Components]:
    node = _mapping(node, "a components object")
    state, schemas = _field(state, node, "schemas", _schema_map, {})
    state, responses = _field(state, node, "responses", _responses, {})
    state, parameters = _field(state, node, "parameters", _named_parameters, {})
    state, request_bodies = _field(
        state, node, "requestBodies", lambda s, n: _each_value(s, n, _followed(decode_request_body)), {}
    )
    state, security_schemes = _field(state, node, "securitySchemes", _security_schemes, {})
    return state, Components(
        schemas=schemas,
        responses=responses,
        parameters=parameters,
        request_bodies=request_bodies,
        security_schemes=security_schemes,
    )


def decode_info(state: ReaderState, node: Any) -> tuple[ReaderState, Info]:
    node = _mapping(node, "an info object")
    contact = _mapping(node.get("contact") or {}, "a contact object")
    license_info = _mapping(node.get("license") or {}, "a license object")
    return state, _build(
        Info,
        "an info object",
        node,
        title=str(node.get("title", "Untitled API")),
        version=str(node.get("version", "0.0.0")),
        description=node.get("description"),
        terms_of_service=node.get("termsOfService"),
        contact_name=contact.get("name"),
        contact_email=contact.get("email"),
        contact_url=contact.get("url"),
        license_name=license_info.get("name"),
        license_url=license_info.get("url"),
    )


def decode_server(state: ReaderState, node: Any) -> tuple[ReaderState, Server]:
    node = _mapping(node, "a server object")
    return state, _build(
        Server, "a server object", node, url=str(node.get("url", "/")), description=node.get("description")
    )


def decode_spec(state: ReaderState, node: Any) -> tuple[ReaderState, Spec]:
    """Decode the root of an API description document."""
    node = _mapping(node, "an OpenAPI document")
    state, info = _field(state, node, "info", decode_info, Info(title="Untitled API", version="0.0.0"))
    state, servers = _field(state, node, "servers", lambda s, n: _each_item(s, n, decode_server), [])
    state, paths = _field(state, node, "paths", _paths, {})
    state, components = _field(state, node, "components", decode_components, Components())
    return state, _build(
        Spec,
        "an OpenAPI document",
        node,
        openapi=str(node.get("openapi", "")),
        info=info,
        servers=servers,
        paths=paths,
        components=components,
        security=_list(node, "security"),
    )
