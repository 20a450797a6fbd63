"""Canonical Pydantic models shared across tagrequest modules.

**Configuration models** -- loaded from JSON files and environment variables
by :mod:`tagrequest.config`:
    :class:`CacheConfig` and :class:`ClientConfig`.

**Wire models** -- produced by the transports and consumed by the request
pipeline:
    :class:`HTTPMethod` and :class:`ResponseEnvelope`.

All models use Pydantic v2. Configuration models reject unknown keys so that
typos in ``tagrequest.json`` surface as :class:`~tagrequest.exceptions.ConfigError`
instead of being silently ignored.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class CacheConfig(BaseModel):
    """Settings of the shared :class:`~tagrequest.cache.TaggedCache`."""

    model_config = ConfigDict(extra="forbid")

    flush_interval_ms: Optional[int] = Field(
        default=60000,
        ge=0,
        description="Period of the background sweep of expired entries; 0 or null disables it",
    )
    default_ttl_ms: int = Field(
        default=15000, ge=0, description="TTL used by Request.use_cache() without an argument"
    )


class ClientConfig(BaseModel):
    """Client-wide settings applied to every request built by a :class:`~tagrequest.client.Client`.

    Resolved by :func:`~tagrequest.config.resolve_config` from (high to low)
    explicit overrides, ``TAGREQUEST_*`` environment variables, the project
    file ``./tagrequest.json``, the user config file, and these defaults.

    Example::

        ClientConfig(verbose=True, transport="threaded", cache=CacheConfig(flush_interval_ms=None))
    """

    model_config = ConfigDict(extra="forbid")

    verbose: bool = Field(default=False, description="Log every dispatched request")
    with_credentials: bool = Field(
        default=False,
        description="Send cookies unless a request overrides it with set_with_credentials()",
    )
    base_url: Optional[str] = Field(
        default=None, description="Prefix resolved against relative request paths"
    )
    transport: Literal["async", "threaded"] = Field(
        default="async", description="Transport implementation: async or threaded"
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Wire models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`~tagrequest.request.Request` can be built with."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


class ResponseEnvelope(BaseModel):
    """A fully buffered HTTP response as returned by a transport.

    ``body`` is raw text (or ``bytes`` when the request disabled decoding)
    straight from the transport; the request pipeline replaces it with the
    JSON-decoded value when the text parses.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: int
    status_text: str = ""
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    @property
    def ok(self) -> bool:
        """Whether the status is in the 200-299 range."""
        return 200 <= self.status < 300
