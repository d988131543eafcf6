"""Exception hierarchy for specreader.

All exceptions inherit from :class:`SpecreaderError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specreader.exit_codes`.

Errors raised while reading a document derive from :class:`ReadError`. They
are fatal for the whole read and carry the :class:`~specreader.models.Location`
that was being decoded when they occurred. The location is attached by the
innermost scope of the reader's location stack that sees the error, so the
raising code does not need to know where it is.

Subclass hierarchy::

    SpecreaderError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 1)
    +-- ReadError               (exit 7)
        +-- FileLoadError
        +-- MalformedRefError
        +-- UnresolvedRefError
        +-- EmptySchemaArrayError
        +-- InvalidNodeError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from specreader.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_READ_ERROR,
)

if TYPE_CHECKING:
    from specreader.models import Location


class SpecreaderError(Exception):
    """Base exception for all specreader errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecreaderError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(SpecreaderError):
    """Raised for configuration problems (invalid project config, no primary file)."""

    exit_code = EXIT_GENERIC_FAILURE


class ReadError(SpecreaderError):
    """Base class for fatal errors raised during the read phase.

    Attributes:
        location: Where the reader was when the error surfaced, or ``None``
            if it was raised outside of any tracked scope.
    """

    exit_code = EXIT_READ_ERROR

    def __init__(self, message: str, location: Optional[Location] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def attach_location(self, location: Location) -> None:
        """Record *location* unless a more specific one is already attached."""
        if self.location is None:
            self.location = location

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message} (at {self.location.describe()})"


class FileLoadError(ReadError):
    """A referenced file cannot be located, read, or parsed."""

    def __init__(self, file: str, reason: str, location: Optional[Location] = None):
        super().__init__(f"Failed to load {file}: {reason}", location)
        self.file = file
        self.reason = reason


class MalformedRefError(ReadError):
    """A ``$ref`` value does not have the ``file#pointer`` shape."""

    def __init__(self, ref: object, location: Optional[Location] = None):
        super().__init__(f"Malformed $ref {ref!r}: expected '<file>#<pointer>'", location)
        self.ref = ref


class UnresolvedRefError(ReadError):
    """Pointer traversal failed inside an otherwise loaded document."""

    def __init__(
        self,
        ref: str,
        segment: str,
        location: Optional[Location] = None,
        reason: Optional[str] = None,
    ):
        reason = reason or f"segment '{segment}' not found"
        super().__init__(f"Cannot resolve $ref '{ref}': {reason}", location)
        self.ref = ref
        self.segment = segment


class EmptySchemaArrayError(ReadError):
    """A schema was written as an empty array, leaving nothing to decode."""

    def __init__(self, location: Optional[Location] = None):
        super().__init__("Schema is an empty array; expected an object or a single-element array", location)


class InvalidNodeError(ReadError):
    """A node does not have the shape its position in the document requires.

    *detail* replaces the default "got <type>" suffix, e.g. with the field
    errors reported by pydantic.
    """

    def __init__(
        self,
        expected: str,
        node: object,
        location: Optional[Location] = None,
        *,
        detail: Optional[str] = None,
    ):
        suffix = detail or f"got {type(node).__name__}"
        super().__init__(f"Expected {expected}, {suffix}", location)
        self.expected = expected
