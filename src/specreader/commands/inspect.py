"""Inspect commands -- examine what the reader makes of a document.

Provides the ``specreader inspect`` sub-command group: general API info,
the operations found under ``paths``, and the schema identity index. Every
command reads the configured documents (see
:func:`~specreader.config.resolve_config`) and presents the result in table
or structured output format.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from specreader.models import RefKey, Schema, SchemaRef, render_location
from specreader.output import debug, error, format_response, get_output, info
from specreader.reader import ReadResult


inspect_app = typer.Typer(no_args_is_help=True)


def _read(file: Optional[str], additional: Optional[list[str]]) -> ReadResult:
    """Resolve the config and read it, exiting with the error's code on failure."""
    from specreader.config import resolve_config
    from specreader.exceptions import ReadError, SpecreaderError
    from specreader.reader import read

    try:
        config = resolve_config(cli_file=file, cli_additional=additional)
        debug(f"Reading {config.file}")
        return read(config)
    except ReadError as exc:
        get_output().read_error(exc)
        raise typer.Exit(code=exc.exit_code) from None
    except SpecreaderError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _display_file(file: str) -> str:
    try:
        return Path(file).relative_to(Path.cwd()).as_posix()
    except ValueError:
        return file


def _display_key(key: RefKey) -> str:
    return render_location(_display_file(key.file), key.path)


@inspect_app.command("info")
def inspect_info(
    file: Optional[str] = typer.Argument(None, help="API description document."),
    additional: Optional[list[str]] = typer.Option(
        None, "--additional", "-a", help="Additional document to merge (repeatable)."
    ),
) -> None:
    """Show API info (title, version, servers, counts, loaded documents).

    Example::

        specreader inspect info openapi.yaml
    """
    result = _read(file, additional)
    spec = result.spec

    data: dict = {
        "title": spec.info.title,
        "version": spec.info.version,
        "openapi_version": spec.openapi,
        "description": spec.info.description or "-",
        "servers": [server.url for server in spec.servers],
        "operations": len(spec.operations),
        "schemas": len(spec.components.schemas),
        "schema_locations": len(result.schemas),
        "documents": [_display_file(name) for name in result.files],
    }
    format_response(data)


@inspect_app.command("paths")
def inspect_paths(
    file: Optional[str] = typer.Argument(None, help="API description document."),
    additional: Optional[list[str]] = typer.Option(
        None, "--additional", "-a", help="Additional document to merge (repeatable)."
    ),
) -> None:
    """List every operation with its parameters.

    Example::

        specreader inspect paths openapi.yaml
    """
    result = _read(file, additional)

    headers = ["Method", "Path", "Operation ID", "Parameters"]
    rows: list[list[str]] = []
    for op in sorted(result.spec.operations, key=lambda o: (o.path, o.method.value)):
        rows.append([
            op.method.value.upper(),
            op.path,
            op.operation_id or "-",
            ", ".join(f"{p.name} ({p.location.value})" for p in op.parameters) or "-",
        ])

    get_output().print_table(
        headers, rows, title=f"{result.spec.info.title} -- Paths ({len(rows)})"
    )


@inspect_app.command("schemas")
def inspect_schemas(
    file: Optional[str] = typer.Argument(None, help="API description document."),
    additional: Optional[list[str]] = typer.Option(
        None, "--additional", "-a", help="Additional document to merge (repeatable)."
    ),
) -> None:
    """List every schema location the reader recorded.

    Decoded schemas show their type; ``ref`` entries show the location they
    point at.

    Example::

        specreader inspect schemas openapi.yaml
    """
    result = _read(file, additional)

    if not len(result.schemas):
        info("No schemas found in this document.")
        return

    headers = ["Location", "Kind", "Detail"]
    rows: list[list[str]] = []
    for key, entry in sorted(result.schemas.items(), key=lambda item: str(item[0])):
        if isinstance(entry, SchemaRef):
            rows.append([_display_key(key), "ref", f"-> {_display_key(entry.target)}"])
        elif isinstance(entry, Schema):
            schema_type = entry.type if isinstance(entry.type, str) else "|".join(entry.type or [])
            rows.append([_display_key(key), "schema", schema_type or "-"])

    get_output().print_table(headers, rows, title=f"Schema locations ({len(rows)})")
