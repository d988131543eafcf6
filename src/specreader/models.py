"""Canonical Pydantic models shared across all specreader modules.

The models fall into three groups:

**Configuration** -- :class:`ReaderConfig`, resolved by
:func:`~specreader.config.resolve_config` and consumed by
:func:`~specreader.reader.read`.

**Identity and diagnostics** -- :class:`RefKey`, the canonical
``(file, pointer path)`` identity of anything reachable via ``$ref``, and
:class:`Location`, the snapshot of the reader's location stacks attached to
every :class:`~specreader.exceptions.ReadError`.

**Specification tree** -- produced by the decoders in
:mod:`specreader.reader.decode`:
    :class:`Spec`, :class:`Info`, :class:`Server`, :class:`PathItem`,
    :class:`Operation`, :class:`Parameter`, :class:`RequestBody`,
    :class:`Response`, :class:`MediaType`, :class:`Components`,
    :class:`SecurityScheme`, :class:`Schema` and :class:`SchemaRef`.

Schemas are the only part of the tree with identity semantics. A decoded
:class:`Schema` records the location that defines it in ``key``; a
:class:`SchemaRef` is a lightweight pointer to such a location that the
consumer looks up in the schema index instead of following eagerly. Models
holding schemas keep the instances they are given (pydantic does not
revalidate model instances), so the same :class:`Schema` object is shared by
every place that references it.
"""

from __future__ import annotations

import enum
from typing import Any, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


PathSegment = Union[str, int]


class RefKey(NamedTuple):
    """Canonical identity of a location: absolute file plus pointer path.

    ``path`` is ordered outermost-first and every segment is a string, so a
    key built while walking a document (where sequence indices are integers)
    equals the key built from the equivalent ``$ref`` pointer.
    """

    file: str
    path: tuple[str, ...]

    @classmethod
    def build(cls, file: str, segments: Any) -> RefKey:
        return cls(file, tuple(str(segment) for segment in segments))

    def __str__(self) -> str:
        return render_location(self.file, self.path)


def render_location(file: Optional[str], path: Any) -> str:
    """Render a file and an outermost-first path as ``file#/a/b``."""
    pointer = "/".join(str(segment) for segment in path)
    return f"{file or '<unknown>'}#/{pointer}"


# --- Configuration ---


class ReaderConfig(BaseModel):
    """Which documents a read operation starts from.

    ``file`` is the primary document; ``additional_files`` are decoded after it
    and merged into the result. ``passed_files`` are merely registered with the
    document cache so refs into them are recognised, they are not decoded on
    their own.
    """

    file: Optional[str] = Field(default=None, description="Primary API description document")
    additional_files: list[str] = Field(
        default_factory=list, description="Documents decoded and merged after the primary one"
    )
    passed_files: list[str] = Field(
        default_factory=list, description="Documents registered with the cache but not decoded"
    )


# --- Diagnostics ---


class Location(BaseModel):
    """Snapshot of the reader's three location stacks, outermost-first."""

    base_file: Optional[str] = None
    base_path: list[PathSegment] = Field(default_factory=list)
    current_file: Optional[str] = None
    current_path: list[PathSegment] = Field(default_factory=list)
    last_ref_file: Optional[str] = None
    last_ref_path: list[PathSegment] = Field(default_factory=list)

    def describe(self) -> str:
        text = render_location(self.current_file, self.current_path)
        last_ref = (self.last_ref_file, self.last_ref_path)
        if self.last_ref_file is not None and last_ref != (self.current_file, self.current_path):
            text += f", last $ref {render_location(*last_ref)}"
        return text


# --- Specification tree ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    PUT = "put"
    POST = "post"
    DELETE = "delete"
    OPTIONS = "options"
    HEAD = "head"
    PATCH = "patch"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class SchemaRef(BaseModel):
    """Pending reference to the schema defined at ``target``.

    Returned instead of the schema itself so that cyclic schemas stay finite;
    resolve it through :meth:`~specreader.reader.index.SchemaIndex.resolve`.
    """

    model_config = ConfigDict(frozen=True)

    target: RefKey


class Schema(BaseModel):
    """A decoded JSON Schema object.

    Only the keywords a code generator needs are modelled explicitly;
    vendor extensions (``x-*``) are kept in ``extensions``.
    """

    key: RefKey = Field(description="Location that defines this schema")
    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[Union[str, list[str]]] = None
    format: Optional[str] = None
    nullable: bool = False
    enum: Optional[list[Any]] = None
    const: Any = None
    default: Any = None
    example: Any = None
    deprecated: bool = False
    read_only: bool = False
    write_only: bool = False
    required: list[str] = Field(default_factory=list)
    properties: dict[str, SchemaOrRef] = Field(default_factory=dict)
    additional_properties: Optional[Union[bool, SchemaOrRef]] = None
    items: Optional[SchemaOrRef] = None
    all_of: list[SchemaOrRef] = Field(default_factory=list)
    any_of: list[SchemaOrRef] = Field(default_factory=list)
    one_of: list[SchemaOrRef] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)


SchemaOrRef = Union[Schema, SchemaRef]


class Parameter(BaseModel):
    """An OpenAPI *Parameter Object*."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    schema_: Optional[SchemaOrRef] = Field(default=None, alias="schema")

    model_config = {"populate_by_name": True}


class MediaType(BaseModel):
    """The schema and example declared for one content type."""

    schema_: Optional[SchemaOrRef] = Field(default=None, alias="schema")
    example: Any = None

    model_config = {"populate_by_name": True}


class RequestBody(BaseModel):
    """An OpenAPI *Request Body Object*."""

    description: Optional[str] = None
    required: bool = False
    content: dict[str, MediaType] = Field(default_factory=dict)


class Response(BaseModel):
    """An OpenAPI *Response Object*."""

    description: Optional[str] = None
    content: dict[str, MediaType] = Field(default_factory=dict)


class Operation(BaseModel):
    """A single operation (one URL path + HTTP method pair).

    ``parameters`` already includes the parameters inherited from the path
    item, overridden by operation-level parameters sharing ``(name, in)``.
    """

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = None
    responses: dict[str, Response] = Field(default_factory=dict)
    security: Optional[list[dict[str, list[str]]]] = None
    deprecated: bool = False


class PathItem(BaseModel):
    """An OpenAPI *Path Item Object* with its operations."""

    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    parameters: list[Parameter] = Field(default_factory=list)
    operations: list[Operation] = Field(default_factory=list)


class SecurityScheme(BaseModel):
    """An OpenAPI *Security Scheme Object*."""

    name: str
    type: str  # apiKey, http, oauth2, openIdConnect
    description: Optional[str] = None
    param_name: Optional[str] = None
    location: Optional[str] = None
    scheme: Optional[str] = None
    bearer_format: Optional[str] = None
    flows: Optional[dict[str, Any]] = None
    openid_connect_url: Optional[str] = None


class Components(BaseModel):
    """Reusable objects declared under ``components``."""

    schemas: dict[str, SchemaOrRef] = Field(default_factory=dict)
    responses: dict[str, Response] = Field(default_factory=dict)
    parameters: dict[str, Parameter] = Field(default_factory=dict)
    request_bodies: dict[str, RequestBody] = Field(default_factory=dict)
    security_schemes: dict[str, SecurityScheme] = Field(default_factory=dict)


class Info(BaseModel):
    """API metadata from the *Info Object*."""

    title: str
    version: str
    description: Optional[str] = None
    terms_of_service: Optional[str] = None
    contact_name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_url: Optional[str] = None
    license_name: Optional[str] = None
    license_url: Optional[str] = None


class Server(BaseModel):
    """A server entry from the ``servers`` array."""

    url: str
    description: Optional[str] = None


class Spec(BaseModel):
    """A fully decoded API description.

    See Also:
        :func:`~specreader.reader.read`: Produces this model.
    """

    openapi: str
    info: Info
    servers: list[Server] = Field(default_factory=list)
    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: Components = Field(default_factory=Components)
    security: list[dict[str, list[str]]] = Field(default_factory=list)

    @property
    def operations(self) -> list[Operation]:
        return [op for item in self.paths.values() for op in item.operations]


Schema.model_rebuild()
Parameter.model_rebuild()
MediaType.model_rebuild()
Components.model_rebuild()
