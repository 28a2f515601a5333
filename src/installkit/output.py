"""Terminal output for the installkit CLI.

Data (context listings, masked credential keys, JSON) goes to stdout so it
can be piped; status lines, warnings, and errors go to stderr. Rich styling
is used only when stdout is a colour terminal, and ``NO_COLOR``,
``TERM=dumb`` or ``--no-color`` turn it off.

Credential values never reach this module unmasked; callers pass
:meth:`~installkit.models.CredentialSet.redacted` dumps.

:func:`~installkit.app.main_callback` builds one :class:`OutputManager` per
invocation and installs it with :func:`set_output`; commands call the
module-level helpers (:func:`info`, :func:`warning`, ...).
"""

from __future__ import annotations

import json
import logging
import os
import sys
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How stdout data is rendered. ``AUTO`` picks ``RICH`` on a colour TTY."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _dumps(data: Any, indent: Optional[int] = 2) -> str:
    return json.dumps(data, indent=indent, ensure_ascii=False, default=str)


class OutputManager:
    """Render command results to stdout and diagnostics to stderr.

    Args:
        format: Rendering for stdout data.
        no_color: Strip styling from both streams.
        quiet: Drop ``info``, ``success`` and ``suggest`` lines. Warnings
            and errors are always shown.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        if format == OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._mode = format
        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    # --- stdout ---

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def format_response(self, data: Any) -> None:
        """Write a JSON-compatible *data* structure to stdout."""
        if self._mode == OutputFormat.RICH:
            self._stdout.print(Syntax(_dumps(data), "json", theme="monokai", word_wrap=True))
        elif self._mode == OutputFormat.JSON:
            self.print_data(_dumps(data))
        elif isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, (dict, list)):
                    value = _dumps(value, indent=None)
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                self.print_data(str(item))
        else:
            self.print_data(str(data))

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows as a Rich table, a JSON array of objects, or TSV."""
        if self._mode == OutputFormat.JSON:
            self.print_data(_dumps([dict(zip(headers, row)) for row in rows]))
            return
        if self._mode == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return
        table = Table(title=title, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # --- stderr ---

    def _diag(self, text: str, label: str = "", style: str = "", optional: bool = False) -> None:
        if optional and self._quiet:
            return
        if self._no_color:
            print(f"{label}{text}", file=sys.stderr, flush=True)
        elif style and label:
            self._stderr.print(f"[{style}]{label.rstrip()}[/{style}] {text}")
        elif style:
            self._stderr.print(f"[{style}]{text}[/{style}]")
        else:
            self._stderr.print(text)

    def info(self, message: str) -> None:
        self._diag(message, optional=True)

    def success(self, message: str) -> None:
        self._diag(message, style="green", optional=True)

    def suggest(self, message: str) -> None:
        self._diag(f"→ {message}", style="dim", optional=True)

    def warning(self, message: str) -> None:
        self._diag(message, label="Warning: ", style="yellow")

    def error(self, message: str) -> None:
        self._diag(message, label="Error: ", style="bold red")


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


def configure_logging(verbose: bool = False) -> None:
    """Send ``installkit`` log records to stderr through Rich.

    WARNING and above by default; ``--verbose`` shows DEBUG.
    """
    logger = logging.getLogger("installkit")
    logger.handlers.clear()
    logger.addHandler(
        RichHandler(
            console=Console(stderr=True, no_color=_should_disable_color()),
            show_time=False,
            show_path=False,
        )
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def suggest(message: str) -> None:
    get_output().suggest(message)
