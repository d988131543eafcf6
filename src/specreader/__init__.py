"""specreader -- read multi-file OpenAPI documents with ``$ref`` resolution.

The reader turns a primary API description document, plus any documents it
references, into a :class:`~specreader.models.Spec`. Referenced files are
loaded on demand and parsed once, and every schema keeps a single identity
keyed by the location that defines it, so a code generator downstream never
sees an unresolved pointer or a duplicate schema.

Typical usage::

    from specreader.models import ReaderConfig
    from specreader.reader import read

    result = read(ReaderConfig(file="openapi.yaml"))

Modules:
    reader: Document cache, location stack, ref resolver, schema index.
    models: Pydantic models shared across the entire package.
    config: Project config and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"
