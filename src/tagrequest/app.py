"""Typer application and CLI entry point for tagrequest.

The ``tagrequest`` console script sends one request through a
:class:`~tagrequest.client.Client` configured by
:func:`~tagrequest.config.resolve_config` and renders the resolved value on
stdout::

    tagrequest request GET https://api.example.com/users -q page=2 -H "Accept: application/json"
    tagrequest --verbose request POST /users --data '{"name": "Ada"}'

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Library errors exit with their ``exit_code`` (see
:mod:`tagrequest.exit_codes`).
"""

from __future__ import annotations

import asyncio
import json
import signal
import sys
from typing import Any, Optional

import typer

from tagrequest import __version__
from tagrequest.client import Client
from tagrequest.config import resolve_config
from tagrequest.exceptions import InvalidUsageError
from tagrequest.exit_codes import EXIT_GENERIC_FAILURE
from tagrequest.models import ClientConfig, ResponseEnvelope
from tagrequest.output import (
    OutputFormat,
    OutputManager,
    get_output,
    render,
    render_envelope,
    set_output,
)


app = typer.Typer(
    name="tagrequest",
    help="Send HTTP requests with tagged response caching.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"tagrequest {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config", "-c", help="Config file (replaces ./tagrequest.json)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every request to stderr."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~tagrequest.output.OutputManager` from the
    output flags and stores the config options in ``ctx.obj``.
    """
    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["verbose"] = verbose


@app.command("request")
def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="HTTP method: GET, POST, PUT, PATCH or DELETE."),
    url: str = typer.Argument(..., help="Absolute URL, or a path relative to base_url."),
    query: list[str] = typer.Option(
        [], "--query", "-q", help="Query parameter as key=value (repeatable)."
    ),
    header: list[str] = typer.Option(
        [], "--header", "-H", help="Request header as 'Name: value' (repeatable)."
    ),
    data: Optional[str] = typer.Option(
        None, "--data", "-d", help="Request body; JSON is sent as application/json."
    ),
    timeout: int = typer.Option(0, "--timeout", "-t", help="Timeout in milliseconds."),
    raw: bool = typer.Option(
        False, "--raw", help="Print status, headers and body instead of the body only."
    ),
    encoding: str = typer.Option("utf-8", "--encoding", help="Response text encoding."),
) -> None:
    """Send one request and print the response."""
    obj = ctx.obj or {}
    overrides: dict[str, Any] = {"verbose": True} if obj.get("verbose") else {}
    config = resolve_config(overrides, obj.get("config_file"))

    value = asyncio.run(
        _send(
            config,
            method,
            url,
            params=_parse_pairs(query),
            headers=_parse_headers(header),
            body=_parse_body(data),
            timeout=timeout,
            raw=raw,
            encoding=encoding,
        )
    )

    if isinstance(value, ResponseEnvelope):
        render_envelope(value)
    else:
        render(value)


async def _send(
    config: ClientConfig,
    method: str,
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    body: Any,
    timeout: int,
    raw: bool,
    encoding: str,
) -> Any:
    async with _build_client(config) as client:
        return await (
            client.request(method, url, body)
            .set(headers)
            .query(params)
            .set_timeout(timeout)
            .set_encoding(encoding)
            .unwrap_body(not raw)
        )


def _build_client(config: ClientConfig) -> Client:
    return Client(config, output=get_output())


def _parse_pairs(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` strings; repeated keys collect into a list."""
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Invalid query parameter '{pair}' (expected key=value)")
        if key in params:
            existing = params[key]
            params[key] = [*existing, value] if isinstance(existing, list) else [existing, value]
        else:
            params[key] = value
    return params


def _parse_headers(lines: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise InvalidUsageError(f"Invalid header '{line}' (expected 'Name: value')")
        headers[name.strip()] = value.strip()
    return headers


def _parse_body(body: str | None) -> Any:  # noqa: ANN401
    """Parse *body* as JSON if possible, returning the raw string on failure."""
    if body is None:
        return None
    try:
        return json.loads(body)
    except (json.JSONDecodeError, TypeError):
        return body


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``tagrequest`` console script.

    Unhandled :class:`~tagrequest.exceptions.TagRequestError` instances
    cause a clean exit with the error's ``exit_code``. All other exceptions
    print an error line and exit with the generic failure code.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from tagrequest.exceptions import TagRequestError
        from tagrequest.output import error

        if isinstance(exc, TagRequestError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            error(f"Unexpected error: {exc}")
            sys.exit(EXIT_GENERIC_FAILURE)
