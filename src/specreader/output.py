"""Terminal output for the specreader CLI.

Command results (info mappings, path and schema tables) are *data* and go to
stdout, so ``specreader --json inspect schemas api.yaml | jq`` always sees
clean JSON. Everything else (progress notes, warnings, errors, the location
report of a failed read) is a *diagnostic* and goes to stderr.

Data is rendered in one of three formats:

* ``rich`` -- tables and highlighted JSON, used on an interactive terminal.
* ``plain`` -- tab-separated lines, used when stdout is piped.
* ``json`` -- indented JSON, requested with ``--json``.

Colour is disabled by ``--no-color``, ``NO_COLOR`` (any value) or
``TERM=dumb``. :func:`~specreader.app.main_callback` installs the
:class:`OutputManager` for the running command with :func:`set_output`; the
module-level helpers delegate to it.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from specreader.models import render_location

if TYPE_CHECKING:
    from specreader.exceptions import ReadError
    from specreader.models import Location


class OutputFormat(str, Enum):
    """How command results are written to stdout.

    ``AUTO`` becomes ``RICH`` on a colour-capable terminal and ``PLAIN``
    otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes command results to stdout and diagnostics to stderr.

    Args:
        format: Requested result format; ``AUTO`` is resolved on creation.
        no_color: Never emit colour or Rich markup.
        quiet: Drop :meth:`info` messages.
        verbose: Show :meth:`debug` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._format = _resolve_format(format, self._no_color)

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # Results (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Write a result mapping or list in the active format.

        In plain mode a mapping becomes one ``key<TAB>value`` line per entry
        and list values are joined with ``", "``.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(data))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        else:
            self._stdout.print(Syntax(_to_json(data), "json", theme="monokai", word_wrap=True))

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*.

        JSON mode writes a list of ``{header: cell}`` objects, plain mode a
        header line followed by one tab-separated line per row; *title* is
        only shown by the Rich table.
        """
        if self._format == OutputFormat.JSON:
            self.print_data(_to_json([dict(zip(headers, row)) for row in rows]))
        elif self._format == OutputFormat.PLAIN:
            for row in [headers, *rows]:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for header in headers:
                table.add_column(header, overflow="fold")
            for row in rows:
                table.add_row(*(escape(cell) for cell in row))
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message, "{}")

    def warning(self, message: str) -> None:
        self._diagnostic(f"Warning: {message}", "[yellow]Warning:[/yellow] {}", message)

    def error(self, message: str) -> None:
        self._diagnostic(f"Error: {message}", "[bold red]Error:[/bold red] {}", message)

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(f"[debug] {message}", "[dim]\\[debug] {}[/dim]", message)

    def read_error(self, exc: ReadError) -> None:
        """Report a failed read: the message, then where the reader was.

        The location lists the document being read, the node being decoded
        and, when it differs, the last ``$ref`` target that was followed.
        """
        self.error(exc.message)
        if exc.location is None:
            return
        rows = location_rows(exc.location)
        if self._no_color:
            width = max(len(label) for label, _ in rows)
            for label, where in rows:
                print(f"  {label.ljust(width)}  {where}", file=sys.stderr, flush=True)
            return
        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="dim")
        grid.add_column()
        for label, where in rows:
            grid.add_row(f"  {label}", escape(where))
        self._stderr.print(grid)

    def _diagnostic(self, plain: str, markup: str, message: Optional[str] = None) -> None:
        if self._no_color:
            print(plain, file=sys.stderr, flush=True)
        else:
            self._stderr.print(markup.format(escape(message if message is not None else plain)))


def location_rows(location: Location) -> list[tuple[str, str]]:
    """``(label, file#/pointer)`` pairs describing *location*."""
    rows = [
        ("reading", render_location(location.base_file, location.base_path)),
        ("decoding", render_location(location.current_file, location.current_path)),
    ]
    last_ref = (location.last_ref_file, location.last_ref_path)
    if location.last_ref_file is not None and last_ref != (location.current_file, location.current_path):
        rows.append(("last $ref", render_location(*last_ref)))
    return rows


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{_plain_value(value)}" for key, value in data.items()]
    if isinstance(data, list):
        return [_plain_value(item) for item in data]
    return [str(data)]


def _plain_value(value: Any) -> str:
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return "\t".join(str(item) for item in value.values())
    return str(value)


def _resolve_format(requested: OutputFormat, no_color: bool) -> OutputFormat:
    if requested != OutputFormat.AUTO:
        return requested
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (to any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Installed manager
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (the test suite does this between tests)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
