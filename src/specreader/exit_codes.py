"""Numeric process exit codes used by the ``specreader`` command line.

Each constant maps to an error category and is referenced by the matching
:class:`~specreader.exceptions.SpecreaderError` subclass, so shell wrappers can
tell a broken ``$ref`` apart from a bad configuration without parsing stderr.

Example::

    $ specreader inspect schemas openapi.yaml
    $ echo $?
    7   # EXIT_READ_ERROR -- a reference could not be resolved
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred (including configuration problems)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_READ_ERROR = 7
"""A document could not be loaded or one of its references could not be resolved."""

EXIT_INTERRUPTED = 130
"""The command was interrupted with Ctrl-C (128 + SIGINT)."""
