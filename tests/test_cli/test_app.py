"""Tests for the tagrequest Typer application."""

from __future__ import annotations

import json
import sys

import httpx
import pytest

from tagrequest import __version__
from tagrequest import app as app_module
from tagrequest.app import _parse_body, _parse_headers, _parse_pairs, app, main
from tagrequest.client import Client
from tagrequest.exceptions import InvalidUsageError
from tagrequest.exit_codes import EXIT_CLIENT_ERROR, EXIT_INVALID_USAGE, EXIT_SUCCESS
from tagrequest.models import ClientConfig
from tagrequest.output import get_output
from tagrequest.transports import AsyncHttpxTransport


@pytest.fixture
def served(isolated_config, monkeypatch):
    """Route every CLI request through a mock transport and record it."""
    seen: list[httpx.Request] = []
    state = {"handler": lambda request: httpx.Response(200, json={"ok": True})}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return state["handler"](request)

    def build_client(config: ClientConfig) -> Client:
        transport = AsyncHttpxTransport(
            base_url=config.base_url, transport=httpx.MockTransport(handler)
        )
        return Client(config, transport=transport, output=get_output())

    monkeypatch.setattr(app_module, "_build_client", build_client)
    state["requests"] = seen
    return state


class TestRootOptions:
    def test_version(self, cli_runner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == EXIT_SUCCESS
        assert f"tagrequest {__version__}" in result.output

    def test_no_args_shows_help(self, cli_runner) -> None:
        result = cli_runner.invoke(app, [])
        assert "request" in result.output


class TestRequestCommand:
    def test_prints_json_body(self, cli_runner, served) -> None:
        result = cli_runner.invoke(app, ["--json", "request", "GET", "https://api.example.com/users"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(result.stdout) == {"ok": True}

    def test_query_headers_and_data(self, cli_runner, served) -> None:
        result = cli_runner.invoke(
            app,
            [
                "--json",
                "request",
                "post",
                "https://api.example.com/users",
                "-q",
                "tag=a",
                "-q",
                "tag=b",
                "-H",
                "X-Trace: 1",
                "-d",
                '{"name": "Ada"}',
            ],
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        sent = served["requests"][0]
        assert sent.method == "POST"
        assert sent.url.query == b"tag=a&tag=b"
        assert sent.headers["x-trace"] == "1"
        assert sent.headers["content-type"] == "application/json"
        assert json.loads(sent.content) == {"name": "Ada"}

    def test_relative_path_uses_configured_base_url(self, cli_runner, served, monkeypatch) -> None:
        monkeypatch.setenv("TAGREQUEST_BASE_URL", "https://env.example.com")
        result = cli_runner.invoke(app, ["--json", "request", "GET", "/status"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert str(served["requests"][0].url) == "https://env.example.com/status"

    def test_raw_prints_envelope(self, cli_runner, served) -> None:
        result = cli_runner.invoke(
            app, ["--json", "request", "GET", "https://api.example.com/users", "--raw"]
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        envelope = json.loads(result.stdout)
        assert envelope["status"] == 200
        assert envelope["body"] == {"ok": True}

    def test_plain_text_body(self, cli_runner, served) -> None:
        served["handler"] = lambda request: httpx.Response(200, text="pong")
        result = cli_runner.invoke(app, ["--plain", "request", "GET", "https://api.example.com/ping"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert result.stdout == "pong\n"

    def test_verbose_logs_request_to_stderr(self, cli_runner, served) -> None:
        result = cli_runner.invoke(
            app,
            ["--json", "--no-color", "--verbose", "request", "GET", "https://api.example.com/a b"],
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert "[debug] GET https://api.example.com/a b" in result.output
        assert str(served["requests"][0].url) == "https://api.example.com/a%20b"

    def test_bad_query_pair(self, cli_runner, served) -> None:
        result = cli_runner.invoke(
            app, ["request", "GET", "https://api.example.com/users", "-q", "novalue"]
        )
        assert isinstance(result.exception, InvalidUsageError)
        assert served["requests"] == []

    def test_error_response_raises(self, cli_runner, served) -> None:
        served["handler"] = lambda request: httpx.Response(404, json={"message": "No such user"})
        result = cli_runner.invoke(app, ["request", "GET", "https://api.example.com/users/9"])
        assert result.exception is not None
        assert str(result.exception) == "No such user"


class TestMain:
    @pytest.fixture(autouse=True)
    def _no_signal_handlers(self, monkeypatch) -> None:
        monkeypatch.setattr(app_module, "_setup_signal_handlers", lambda: None)

    def test_library_error_exit_code(self, served, monkeypatch, capfd) -> None:
        served["handler"] = lambda request: httpx.Response(404, json={"message": "No such user"})
        monkeypatch.setattr(
            sys, "argv", ["tagrequest", "--no-color", "request", "GET", "https://api.example.com/u"]
        )
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_CLIENT_ERROR
        assert "Error: No such user" in capfd.readouterr().err

    def test_invalid_usage_exit_code(self, served, monkeypatch) -> None:
        monkeypatch.setattr(
            sys, "argv", ["tagrequest", "request", "GET", "https://api.example.com/u", "-H", "bad"]
        )
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == EXIT_INVALID_USAGE


class TestParsing:
    def test_pairs_collect_repeats(self) -> None:
        assert _parse_pairs(["a=1", "b=2", "a=3", "a=4"]) == {"a": ["1", "3", "4"], "b": "2"}

    def test_pair_value_may_contain_equals(self) -> None:
        assert _parse_pairs(["expr=x=y"]) == {"expr": "x=y"}

    @pytest.mark.parametrize("pair", ["novalue", "=value"])
    def test_invalid_pair(self, pair: str) -> None:
        with pytest.raises(InvalidUsageError):
            _parse_pairs([pair])

    def test_headers(self) -> None:
        assert _parse_headers(["Accept: text/html", "X-Empty:"]) == {
            "Accept": "text/html",
            "X-Empty": "",
        }

    def test_invalid_header(self) -> None:
        with pytest.raises(InvalidUsageError):
            _parse_headers([": value"])

    def test_body_json_or_text(self) -> None:
        assert _parse_body('{"a": 1}') == {"a": 1}
        assert _parse_body("plain") == "plain"
        assert _parse_body(None) is None
