"""State of the read phase and the scoped operations that thread it.

A :class:`ReaderState` is created once per :func:`~specreader.reader.read`
call and passed through every decoder. Decoders have the shape
``(state, node) -> (state, value)``: they receive the state, may mutate it,
and return it alongside what they decoded. Nothing outside the read phase
holds on to it.

The state tracks three locations, each as a file plus a path stack kept
innermost-first:

* ``base_*`` -- the document being read and the path walked inside it.
* ``current_*`` -- the document whose nodes are being decoded; it changes
  when a ``$ref`` crosses into another file.
* ``last_ref_*`` -- the most recently dereferenced target and the path
  walked from it. Schemas are identified by this location.

:func:`with_path`, :func:`with_ref` and :func:`with_schema_ref` each run a
decoder inside a scope. Tracking changed on entry is restored on every exit
path, and a :class:`~specreader.exceptions.ReadError` escaping the innermost
scope gets that scope's :class:`~specreader.models.Location` attached.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, TypeVar

from specreader.exceptions import EmptySchemaArrayError, ReadError
from specreader.models import (
    Location,
    Parameter,
    PathSegment,
    ReaderConfig,
    RefKey,
    Schema,
    SchemaRef,
    Spec,
)
from specreader.reader.documents import ensure_loaded, read_file_bytes
from specreader.reader.index import SchemaEntry, SchemaIndex
from specreader.reader.refs import is_ref, normalize_file, parse_ref, traverse

logger = logging.getLogger(__name__)

T = TypeVar("T")

Decoder = Callable[["ReaderState", Any], tuple["ReaderState", T]]
"""Decode a raw node: ``(state, node) -> (state, value)``."""

SchemaDecoder = Callable[["ReaderState", Any], tuple["ReaderState", RefKey, Schema]]
"""Decode a raw schema node: ``(state, node) -> (state, defining_key, schema)``."""

_TRACKING = (
    "base_file",
    "base_file_path",
    "current_file",
    "current_file_path",
    "last_ref_file",
    "last_ref_path",
)


@dataclass
class ReaderState:
    """Mutable context of a single read operation.

    Attributes:
        files: Document cache, file identifier to parsed tree (``None`` while
            known but not yet loaded).
        refs: Raw-node memo keyed by the absolute ref string
            ``<file>#<pointer>``.
        schema_index: Schema identity index.
        path_parameters: Parameters declared on the path item whose
            operations are being decoded.
        loader: Reads a file identifier into bytes.
    """

    config: ReaderConfig = field(default_factory=ReaderConfig)
    base_file: Optional[str] = None
    base_file_path: tuple[PathSegment, ...] = ()
    current_file: Optional[str] = None
    current_file_path: tuple[PathSegment, ...] = ()
    last_ref_file: Optional[str] = None
    last_ref_path: tuple[PathSegment, ...] = ()
    files: dict[str, Any] = field(default_factory=dict)
    refs: dict[str, Any] = field(default_factory=dict)
    schema_index: SchemaIndex = field(default_factory=SchemaIndex)
    path_parameters: list[Parameter] = field(default_factory=list)
    loader: Callable[[str], bytes] = read_file_bytes
    spec: Optional[Spec] = None

    @classmethod
    def new(
        cls,
        config: ReaderConfig,
        loader: Optional[Callable[[str], bytes]] = None,
    ) -> ReaderState:
        """Create the state for reading *config*, with every file registered but unloaded."""
        names = [*config.passed_files, config.file, *config.additional_files]
        files = {normalize_file(name): None for name in names if name}
        return cls(config=config, files=files, loader=loader or read_file_bytes)

    def enter_document(self, file: str) -> None:
        """Point all three locations at the root of *file*."""
        self.base_file = self.current_file = self.last_ref_file = file
        self.base_file_path = self.current_file_path = self.last_ref_path = ()

    def location(self) -> Location:
        """Snapshot of the three locations, outermost-first."""
        return Location(
            base_file=self.base_file,
            base_path=list(reversed(self.base_file_path)),
            current_file=self.current_file,
            current_path=list(reversed(self.current_file_path)),
            last_ref_file=self.last_ref_file,
            last_ref_path=list(reversed(self.last_ref_path)),
        )

    def schema_key(self) -> RefKey:
        """Identity of a schema defined at the last-dereferenced location."""
        return RefKey.build(self.last_ref_file or "", reversed(self.last_ref_path))


@contextmanager
def _scope(state: ReaderState) -> Iterator[None]:
    saved = tuple(getattr(state, name) for name in _TRACKING)
    try:
        yield
    except ReadError as exc:
        exc.attach_location(state.location())
        raise
    finally:
        for name, value in zip(_TRACKING, saved):
            setattr(state, name, value)


def with_path(
    state: ReaderState, node: Any, segment: PathSegment, decode: Decoder[T]
) -> tuple[ReaderState, T]:
    """Decode *node* found under *segment* of the node being decoded."""
    with _scope(state):
        state.base_file_path = (segment, *state.base_file_path)
        state.current_file_path = (segment, *state.current_file_path)
        state.last_ref_path = (segment, *state.last_ref_path)
        state, result = decode(state, node)
    return state, result


def with_ref(state: ReaderState, node: Any, decode: Decoder[T]) -> tuple[ReaderState, T]:
    """Decode *node*, dereferencing it first if it is a ``$ref`` object.

    The target node is memoized by absolute ref string, so a repeated ref
    neither reloads nor re-traverses its document. The ref is followed one
    level; a target that is itself a ref is handed to *decode* as-is.

    Raises:
        MalformedRefError: If the ref is not ``<file>#<pointer>``.
        FileLoadError: If the target document cannot be loaded.
        UnresolvedRefError: If the pointer does not lead to a node.
    """
    if not is_ref(node):
        return decode(state, node)

    ref = node["$ref"]
    with _scope(state):
        file, pointer, segments = parse_ref(ref, state.current_file or "")
        absolute_ref = f"{file}#{pointer}"

        if absolute_ref in state.refs:
            logger.debug("Ref memo hit for %s", absolute_ref)
            target = state.refs[absolute_ref]
        else:
            state = ensure_loaded(state, file)
            target = traverse(state.files[file], segments, ref)
            state.refs[absolute_ref] = target
            logger.debug("Resolved %s", absolute_ref)

        target_path = tuple(reversed(segments))
        if file != state.current_file:
            state.current_file = file
            state.current_file_path = target_path
        state.last_ref_file = file
        state.last_ref_path = target_path

        state, result = decode(state, target)
    return state, result


def with_schema_ref(
    state: ReaderState, node: Any, decode: SchemaDecoder
) -> tuple[ReaderState, SchemaEntry]:
    """Decode a schema node through the schema identity index.

    * A ``$ref`` node is not followed. A :class:`~specreader.models.SchemaRef`
      to its target is recorded under the location the ref was written at
      and returned.
    * A sequence is treated as its first element.
    * Anything else is decoded by *decode*, unless a schema is already
      recorded for the current location, in which case that one is reused.
      The decoded schema is recorded under the key *decode* returns.

    Raises:
        EmptySchemaArrayError: If the schema is an empty sequence.
    """
    with _scope(state):
        if is_ref(node):
            file, _, segments = parse_ref(node["$ref"], state.current_file or "")
            placeholder = SchemaRef(target=RefKey.build(file, segments))
            state.schema_index.record(state.schema_key(), placeholder)
            return state, placeholder

        if isinstance(node, list):
            if not node:
                raise EmptySchemaArrayError()
            return with_schema_ref(state, node[0], decode)

        existing = state.schema_index.resolved(state.schema_key())
        if existing is not None:
            return state, existing

        state, key, schema = decode(state, node)
        return state, state.schema_index.record(key, schema)
