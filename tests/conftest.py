"""Shared test fixtures for tagrequest.

Provides reusable fixtures for fake clocks, mock transports, isolated
config environments, output state, and running CLI commands. These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest
import pytest_asyncio

from tagrequest.client import Client, reset_client
from tagrequest.forms import set_form_data_class
from tagrequest.models import CacheConfig, ClientConfig
from tagrequest.output import OutputFormat, OutputManager, reset_output, set_output
from tagrequest.transports import AsyncHttpxTransport


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Reset the global OutputManager, default client and form class after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()
    reset_client()
    set_form_data_class(None)


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Mock server
# ---------------------------------------------------------------------------


class MockServer:
    """Records requests and answers them with a handler.

    The default handler answers ``200`` with ``{"n": <call number>}``, so
    every transport call yields a distinct value.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response] | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.handler = handler or self._counting_handler

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def _counting_handler(self, request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"n": self.calls})


@pytest.fixture
def server() -> MockServer:
    return MockServer()


@pytest.fixture
def config() -> ClientConfig:
    """Client config with sweeping disabled and a fixed base URL."""
    return ClientConfig(
        base_url="https://api.example.com",
        cache=CacheConfig(flush_interval_ms=None),
    )


@pytest.fixture
def quiet_output() -> OutputManager:
    """Set up a quiet output manager for tests that don't care about output.

    Installs a PLAIN-format, quiet OutputManager as the global output
    and resets it after the test completes.
    """
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest_asyncio.fixture
async def client(config: ClientConfig, server: MockServer, quiet_output: OutputManager):
    """A Client whose async transport answers from the ``server`` fixture."""
    transport = AsyncHttpxTransport(
        base_url=config.base_url, transport=httpx.MockTransport(server)
    )
    c = Client(config, transport=transport)
    yield c
    await c.aclose()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME to a subdirectory of tmp_path so that tests never
    touch real user config. Clears all TAGREQUEST_* environment variables
    and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))

    for var in [
        "TAGREQUEST_VERBOSE",
        "TAGREQUEST_WITH_CREDENTIALS",
        "TAGREQUEST_BASE_URL",
        "TAGREQUEST_TRANSPORT",
        "TAGREQUEST_CACHE_FLUSH_INTERVAL",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
