"""Typer application and CLI entry point for specreader.

:data:`app` is the root command. Its callback turns the global flags into an
:class:`~specreader.output.OutputManager` and a logging level; the ``inspect``
group is attached by :func:`register_commands`.

:func:`main` is the console script declared in ``pyproject.toml``. A
:class:`~specreader.exceptions.ReadError` that escapes a command is reported
with the location the reader was at; any other
:class:`~specreader.exceptions.SpecreaderError` is reported as a one-line
error. Both exit with the error's code. Anything else is a bug: the traceback
goes to a crash report under :func:`~specreader.config.get_data_dir`.
"""

from __future__ import annotations

import logging
import platform
import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from specreader import __version__
from specreader.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


logger = logging.getLogger(__name__)

app = typer.Typer(
    name="specreader",
    help="Read multi-file OpenAPI documents and resolve their $refs.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"specreader {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Print the specreader version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Write results to stdout as JSON."),
    plain_output: bool = typer.Option(
        False, "--plain", help="Write results as tab-separated text."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Never use colour or Rich markup."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only report warnings and errors."),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log document loads and $ref resolution to stderr."
    ),
) -> None:
    """Configure output and logging for the sub-command about to run."""
    from specreader.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(verbose)


def _configure_logging(verbose: bool) -> None:
    """Send ``specreader`` log records to stderr, at DEBUG when verbose."""
    logging.basicConfig(
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("specreader").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _install_interrupt_handler() -> None:
    """Exit with :data:`~specreader.exit_codes.EXIT_INTERRUPTED` on Ctrl-C."""

    def _on_interrupt(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _on_interrupt)


def _write_crash_report(exc: Exception) -> str:
    """Write the version, arguments and traceback of *exc*; return the report path."""
    from specreader.config import get_data_dir

    reports_dir = get_data_dir() / "crash-reports"
    reports_dir.mkdir(parents=True, exist_ok=True)
    report_path = reports_dir / f"{datetime.now():%Y%m%d-%H%M%S}-{type(exc).__name__}.log"
    header = [
        f"specreader {__version__} on Python {platform.python_version()}",
        f"argv: {' '.join(sys.argv)}",
        "",
    ]
    report_path.write_text("\n".join(header) + traceback.format_exc(), encoding="utf-8")
    return str(report_path)


def register_commands() -> None:
    """Attach the built-in sub-commands to :data:`app`. Safe to call repeatedly."""
    from specreader.commands.inspect import inspect_app

    if any(group.name == "inspect" for group in app.registered_groups):
        return
    app.add_typer(inspect_app, name="inspect", help="Inspect what the reader produces.")


def main() -> None:
    """CLI entry point invoked by the ``specreader`` console script."""
    _install_interrupt_handler()
    try:
        register_commands()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nInterrupted.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from specreader.exceptions import ReadError, SpecreaderError
        from specreader.output import error, get_output

        if isinstance(exc, ReadError):
            get_output().read_error(exc)
            sys.exit(exc.exit_code)
        if isinstance(exc, SpecreaderError):
            error(str(exc))
            sys.exit(exc.exit_code)
        logger.debug("Unhandled exception", exc_info=True)
        report = _write_crash_report(exc)
        error(f"Internal error ({type(exc).__name__}). Crash report: {report}")
        sys.exit(EXIT_GENERIC_FAILURE)
