"""Read API description documents into a :class:`~specreader.models.Spec`.

This sub-package resolves ``$ref`` indirection while decoding a forest of
YAML/JSON documents. Referenced files are loaded on first use and parsed at
most once, every distinct ``(file, pointer)`` resolves to one raw node, and
every schema is identified by the location that defines it so that
structurally equal schemas from different files stay distinct while repeated
references to one schema share a single decoded instance.

Typical usage::

    from specreader.models import ReaderConfig
    from specreader.reader import read

    result = read(ReaderConfig(file="openapi.yaml"))
    for op in result.spec.operations:
        print(op.method.value.upper(), op.path)
    user = result.resolve_schema(op.responses["200"].content["application/json"].schema_)

Sub-modules:

* :mod:`~specreader.reader.documents` -- document cache and parsing.
* :mod:`~specreader.reader.refs` -- ref strings, file identifiers, pointers.
* :mod:`~specreader.reader.state` -- reader state, location stacks, and the
  scoped ``with_path`` / ``with_ref`` / ``with_schema_ref`` operations.
* :mod:`~specreader.reader.index` -- the schema identity index.
* :mod:`~specreader.reader.decode` -- decoders for the OpenAPI shapes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from specreader.exceptions import ConfigError, ReadError, UnresolvedRefError
from specreader.models import Components, ReaderConfig, RefKey, Schema, Spec
from specreader.reader.decode import decode_spec, schema
from specreader.reader.documents import ensure_loaded
from specreader.reader.index import SchemaEntry, SchemaIndex
from specreader.reader.refs import normalize_file
from specreader.reader.state import ReaderState, with_ref

logger = logging.getLogger(__name__)

__all__ = ["ReadResult", "ReaderState", "SchemaIndex", "read"]


@dataclass
class ReadResult:
    """Outcome of a read: the decoded spec plus the schema identity index.

    Attributes:
        spec: The primary document with every additional document merged in.
        schemas: Every schema location seen while reading, keyed by
            :class:`~specreader.models.RefKey`.
        files: Identifiers of the documents that were loaded, in load order.
    """

    spec: Spec
    schemas: SchemaIndex
    files: list[str] = field(default_factory=list)

    def resolve_schema(self, value: Union[SchemaEntry, RefKey]) -> Schema:
        """Return the decoded schema a schema entry or key ultimately points at."""
        return self.schemas.resolve(value)


def read(
    config: ReaderConfig,
    loader: Optional[Callable[[str], bytes]] = None,
) -> ReadResult:
    """Read the documents named by *config*.

    The primary file is decoded first, then each additional file, whose paths
    and components are merged into the primary spec. Finally every schema
    ``$ref`` whose target has not been decoded yet (for instance a schema in a
    file that is only reachable through refs) is dereferenced and decoded.

    Args:
        config: Which documents to read.
        loader: Optional ``file -> bytes`` callable used instead of reading
            from the filesystem.

    Raises:
        ConfigError: If *config* names no primary file.
        ReadError: If any document cannot be loaded, or any reference cannot
            be resolved.
    """
    if not config.file:
        raise ConfigError("No primary document to read")

    state = ReaderState.new(config, loader)
    state, spec = _read_document(state, normalize_file(config.file))
    for name in config.additional_files:
        state, additional = _read_document(state, normalize_file(name))
        spec = merge_specs(spec, additional)

    state.spec = spec
    state = resolve_pending_schemas(state)

    loaded = [file for file, document in state.files.items() if document is not None]
    logger.info("Read %d document(s), %d schema location(s)", len(loaded), len(state.schema_index))
    return ReadResult(spec=spec, schemas=state.schema_index, files=loaded)


def _read_document(state: ReaderState, file: str) -> tuple[ReaderState, Spec]:
    state.enter_document(file)
    try:
        state = ensure_loaded(state, file)
        return decode_spec(state, state.files[file])
    except ReadError as exc:
        exc.attach_location(state.location())
        raise


def resolve_pending_schemas(state: ReaderState) -> ReaderState:
    """Decode the target of every schema ref that has no index entry yet.

    Decoding a target can record further refs, so this repeats until the
    index is closed under ref targets.
    """
    attempted: set[RefKey] = set()
    while True:
        targets = state.schema_index.unresolved_targets()
        if not targets:
            return state
        for target in targets:
            if target in attempted:
                raise UnresolvedRefError(str(target), "", reason="target produced no schema")
            attempted.add(target)
            logger.debug("Decoding pending schema %s", target)
            state.enter_document(target.file)
            state, _ = with_ref(state, {"$ref": _ref_string(target)}, schema)


def _ref_string(key: RefKey) -> str:
    escaped = (segment.replace("~", "~0").replace("/", "~1") for segment in key.path)
    return f"{key.file}#/{'/'.join(escaped)}"


def merge_specs(primary: Spec, additional: Spec) -> Spec:
    """Merge the paths and components of *additional* into *primary*.

    Maps are unioned; where both documents define the same key the
    additional document wins.
    """
    paths = _merge_maps("paths", primary.paths, additional.paths)
    components = Components(
        **{
            name: _merge_maps(
                f"components.{name}",
                getattr(primary.components, name),
                getattr(additional.components, name),
            )
            for name in Components.model_fields
        }
    )
    return primary.model_copy(update={"paths": paths, "components": components})


def _merge_maps(section: str, base: dict, extra: dict) -> dict:
    for key in extra.keys() & base.keys():
        logger.warning("Duplicate %s entry %r, keeping the later definition", section, key)
    return {**base, **extra}
