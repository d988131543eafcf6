"""Document cache: load and memoize raw parsed documents by file identifier.

Documents are read through the state's ``loader`` (a ``file -> bytes``
callable, :func:`read_file_bytes` by default) and parsed with
:func:`parse_document`. Each file is parsed at most once per read; the cache
entry goes from ``None`` ("known but unloaded") to the parsed tree and is
never evicted.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from specreader.exceptions import FileLoadError

if TYPE_CHECKING:
    from specreader.reader.state import ReaderState

logger = logging.getLogger(__name__)


def ensure_loaded(state: ReaderState, file: str) -> ReaderState:
    """Load *file* into the state's document cache unless it is already there.

    Raises:
        FileLoadError: If the file cannot be read or parsed.
    """
    if state.files.get(file) is not None:
        logger.debug("Document cache hit for %s", file)
        return state

    logger.info("Loading document %s", file)
    try:
        content = state.loader(file)
    except OSError as exc:
        raise FileLoadError(file, str(exc)) from exc
    state.files[file] = parse_document(content, file)
    return state


def read_file_bytes(file: str) -> bytes:
    """Default loader: read *file* from the local filesystem."""
    path = Path(file)
    if not path.is_file():
        raise FileLoadError(file, "file not found")
    try:
        return path.read_bytes()
    except OSError as exc:
        raise FileLoadError(file, str(exc)) from exc


def parse_document(content: bytes, file: str) -> Any:
    """Parse *content* as JSON or YAML.

    The file extension is used as a hint: ``.json`` is parsed strictly as
    JSON, ``.yaml``/``.yml`` as YAML, anything else is tried as JSON first
    and then as YAML. Mapping keys are converted to strings (YAML turns
    unquoted ``200`` into an integer).

    Raises:
        FileLoadError: If the content is empty, cannot be parsed, or is not
            a mapping or sequence.
    """
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FileLoadError(file, f"not valid UTF-8: {exc}") from exc

    if not text.strip():
        raise FileLoadError(file, "document is empty")

    suffix = Path(file).suffix.lower()
    result: Any = None
    json_error: Exception | None = None

    if suffix not in (".yaml", ".yml"):
        try:
            result = json.loads(text)
        except json.JSONDecodeError as exc:
            if suffix == ".json":
                raise FileLoadError(file, f"invalid JSON: {exc}") from exc
            json_error = exc

    if result is None:
        try:
            result = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            msg = f"invalid YAML: {exc}"
            if json_error is not None:
                msg = f"not JSON ({json_error}) or YAML ({exc})"
            raise FileLoadError(file, msg) from exc

    if not isinstance(result, (dict, list)):
        raise FileLoadError(
            file, f"expected a mapping or sequence at the top level, got {type(result).__name__}"
        )
    return _stringify_keys(result)


def _stringify_keys(node: Any) -> Any:
    if isinstance(node, dict):
        return {str(key): _stringify_keys(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_stringify_keys(item) for item in node]
    return node
