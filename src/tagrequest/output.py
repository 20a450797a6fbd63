"""Rendering of response values and of the verbose request log.

Resolved values are written to **stdout**; the request log, warnings and
errors are written to **stderr**, so ``tagrequest request ... | jq`` only
ever sees data.

Three formats are available:

* ``JSON`` -- indented JSON (a text body that is itself JSON is re-indented).
* ``PLAIN`` -- one line per mapping entry or list item, tab-separated.
* ``RICH`` -- syntax-highlighted JSON and header tables.

``AUTO`` picks ``RICH`` for an interactive terminal and ``PLAIN`` when stdout
is piped, ``NO_COLOR`` is set, ``TERM=dumb``, or ``--no-color`` was given.

Library code reaches the active manager through :func:`get_output`; the CLI
installs one built from its flags with :func:`set_output`.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, Iterator, Mapping, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from tagrequest.models import ResponseEnvelope


class OutputFormat(str, Enum):
    """How response values are rendered on stdout."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class OutputManager:
    """Writes response values to stdout and diagnostics to stderr.

    Args:
        format: Rendering format; ``AUTO`` is resolved once, here.
        no_color: Disable colour even on a terminal.
        quiet: Drop :meth:`info` messages. Warnings and errors still print.
        verbose: Print :meth:`debug` messages, including the request log.
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

        self._out = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=self._format == OutputFormat.RICH,
        )
        self._err = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def render(self, value: Any) -> None:
        """Print a resolved response value in the active format.

        Bytes are decoded as UTF-8 (undecodable bytes replaced) first.
        """
        if isinstance(value, (bytes, bytearray)):
            value = bytes(value).decode("utf-8", errors="replace")

        if self._format == OutputFormat.JSON:
            self.print_data(_to_json(value))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(value):
                self.print_data(line)
        else:
            self._render_rich(value)

    def render_envelope(self, envelope: ResponseEnvelope) -> None:
        """Print the status line, headers and body of a non-unwrapped response."""
        if self._format == OutputFormat.JSON:
            self.print_data(
                json.dumps(envelope.model_dump(mode="json"), indent=2, ensure_ascii=False)
            )
            return

        status_line = f"{envelope.status} {envelope.status_text}".rstrip()
        if self._format == OutputFormat.PLAIN:
            self.print_data(status_line)
            for name, value in envelope.headers.items():
                self.print_data(f"{name}: {value}")
            self.print_data("")
            self.render(envelope.body)
            return

        table = Table(title=status_line, show_header=True, header_style="bold cyan")
        table.add_column("Header")
        table.add_column("Value")
        for name, value in envelope.headers.items():
            table.add_row(name, value)
        self._out.print(table)
        self.render(envelope.body)

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def request_log(
        self, method: str, url: str, body: Any, headers: Mapping[str, Any]
    ) -> None:
        """Log an outgoing request: method and URL, body, then one line per header."""
        if not self._verbose:
            return
        self.debug(f"{method} {url}")
        if body is not None:
            self.debug(f"  Body: {body}")
        for name, value in headers.items():
            self.debug(f"  Header: {name}: {value}")

    def info(self, message: str) -> None:
        if not self._quiet:
            self._diagnostic(message)

    def warning(self, message: str) -> None:
        self._diagnostic(message, "Warning:", "yellow")

    def error(self, message: str) -> None:
        self._diagnostic(message, "Error:", "bold red")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._diagnostic(message, "[debug]", "dim", whole_line=True)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _diagnostic(
        self,
        message: str,
        prefix: Optional[str] = None,
        style: Optional[str] = None,
        whole_line: bool = False,
    ) -> None:
        line = f"{prefix} {message}" if prefix else message
        if self._no_color:
            print(line, file=sys.stderr, flush=True)
            return

        if whole_line or prefix is None:
            text = Text(line, style=style or "")
        else:
            text = Text.assemble((prefix, style or ""), " ", message)
        self._err.print(text)

    def _render_rich(self, value: Any) -> None:
        if isinstance(value, (dict, list)):
            source = json.dumps(value, indent=2, ensure_ascii=False, default=str)
            self._out.print(Syntax(source, "json", theme="monokai", word_wrap=True))
        else:
            self._out.print(str(value), markup=False, highlight=False)


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` disable colour."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


def _resolve_format(format: OutputFormat, no_color: bool) -> OutputFormat:
    if format != OutputFormat.AUTO:
        return format
    return OutputFormat.RICH if _is_tty() and not no_color else OutputFormat.PLAIN


def _to_json(value: Any) -> str:
    """Indented JSON for *value*; text that is not JSON passes through unchanged."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return value
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def _plain_lines(value: Any) -> Iterator[str]:
    if isinstance(value, dict):
        for key, item in value.items():
            yield f"{key}\t{item}"
    elif isinstance(value, list):
        for item in value:
            if isinstance(item, dict):
                yield "\t".join(str(v) for v in item.values())
            else:
                yield str(item)
    else:
        yield str(value)


# ------------------------------------------------------------------ #
# Global output instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one lazily."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager; the next :func:`get_output` builds a fresh one."""
    global _output
    _output = None


def render(value: Any) -> None:
    get_output().render(value)


def render_envelope(envelope: ResponseEnvelope) -> None:
    get_output().render_envelope(envelope)


def info(message: str) -> None:
    get_output().info(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
