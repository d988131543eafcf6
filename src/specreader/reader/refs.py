"""Parse ``$ref`` strings and walk JSON pointers.

A reference has the shape ``<relative-file>#<json-pointer>``. An empty file
part means "the document the reference was written in". File identifiers are
absolute POSIX-style paths: relative files are joined against the directory of
the referencing document and ``.``/``..`` segments are collapsed, so
``./b.yaml`` and ``sub/../b.yaml`` name the same document.

Pointer segments are split on ``/`` with empty segments dropped, then
unescaped per RFC 6901 (``~1`` is ``/``, ``~0`` is ``~``). No other character
is special: ``api_key.created`` is one segment.
"""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Any

from specreader.exceptions import MalformedRefError, UnresolvedRefError


def is_ref(node: Any) -> bool:
    """Return True if *node* is a reference object (a mapping with ``$ref``)."""
    return isinstance(node, dict) and "$ref" in node


def normalize_file(file: str) -> str:
    """Turn a user-supplied path into a file identifier."""
    return Path(file).resolve().as_posix()


def split_ref(ref: Any) -> tuple[str, str]:
    """Split a ref string into its file and pointer parts.

    Raises:
        MalformedRefError: If *ref* is not a string or does not contain
            exactly one ``#``.
    """
    if not isinstance(ref, str):
        raise MalformedRefError(ref)
    parts = ref.split("#")
    if len(parts) != 2:
        raise MalformedRefError(ref)
    return parts[0], parts[1]


def resolve_file(current_file: str, relative_file: str) -> str:
    """Resolve *relative_file* against the document *current_file*."""
    if not relative_file:
        return current_file
    if posixpath.isabs(relative_file):
        return posixpath.normpath(relative_file)
    base_dir = posixpath.dirname(current_file)
    return posixpath.normpath(posixpath.join(base_dir, relative_file))


def tokenize_pointer(pointer: str) -> list[str]:
    """Split a JSON pointer into unescaped segments."""
    return [
        segment.replace("~1", "/").replace("~0", "~")
        for segment in pointer.split("/")
        if segment
    ]


def parse_ref(ref: Any, current_file: str) -> tuple[str, str, list[str]]:
    """Resolve *ref* written in *current_file*.

    Returns:
        ``(absolute_file, pointer_string, pointer_segments)``.
    """
    relative_file, pointer = split_ref(ref)
    return resolve_file(current_file, relative_file), pointer, tokenize_pointer(pointer)


def traverse(document: Any, segments: list[str], ref: str) -> Any:
    """Follow *segments* from *document* and return the node they point at.

    Mapping segments are looked up as keys; sequence segments must be
    decimal indices.

    Raises:
        UnresolvedRefError: If a key or index is missing, or a segment is
            applied to a scalar.
    """
    current = document
    for segment in segments:
        if isinstance(current, dict):
            if segment not in current:
                raise UnresolvedRefError(ref, segment)
            current = current[segment]
        elif isinstance(current, list):
            if not segment.isdigit() or int(segment) >= len(current):
                raise UnresolvedRefError(ref, segment)
            current = current[int(segment)]
        else:
            raise UnresolvedRefError(ref, segment)
    return current
