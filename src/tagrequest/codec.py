"""Path normalisation and query-string serialisation.

Both functions here are pure and are applied by
:class:`~tagrequest.request.Request` before anything touches the wire or the
cache, so the *effective path* they produce doubles as the cache key.

* :func:`ensure_encoding` percent-encodes each path segment exactly once.
  Segments that already contain escape sequences are left alone, which makes
  the function idempotent: ``ensure_encoding(ensure_encoding(p)) ==
  ensure_encoding(p)``.
* :func:`stringify` turns a parameter mapping into ``k=v&k=v`` with
  ``encodeURIComponent``-style escaping; list values repeat the key and
  ``None`` values are dropped.
"""

from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import quote, unquote, urlsplit

# Characters left untouched by JavaScript's encodeURI / encodeURIComponent.
_URI_SAFE = ";,/?:@&=+$-_.!~*'()#"
_COMPONENT_SAFE = "-_.!~*'()"
_QUERY_SAFE = "!$&()*+,;=:@/?%~[]{}|^`"

# Escapes that must survive a segment re-encoding verbatim (@ : / #).
_PRESERVED_ESCAPES = re.compile(r"(%40|%3A|%2F|%23)")

# Escapes of reserved characters, which decoding a URI never expands.
_RESERVED_ESCAPES = re.compile(r"(%(?:23|24|26|2B|2C|2F|3A|3B|3D|3F|40))", re.IGNORECASE)


def stringify(params: Mapping[str, Any]) -> str:
    """Serialise *params* into a URL query string.

    Args:
        params: Mapping of parameter names to scalars or sequences of
            scalars. ``None`` values (and ``None`` items inside sequences)
            are omitted; booleans render as ``true`` / ``false``.

    Returns:
        The query string without a leading ``?``; empty when nothing
        survives filtering.

    Example::

        >>> stringify({"a": "str", "n": 0, "b": True})
        'a=str&n=0&b=true'
        >>> stringify({"a": [1, 2, 3]})
        'a=1&a=2&a=3'
    """
    tokens: list[str] = []
    for key, value in params.items():
        if value is None:
            continue
        for item in _cast_list(value):
            if item is None:
                continue
            tokens.append(f"{_encode_component(key)}={_encode_component(item)}")
    return "&".join(tokens)


def ensure_encoding(path: str) -> str:
    """Percent-encode *path* idempotently.

    When *path* is an absolute URL (scheme and host), the origin is kept,
    the pathname is re-encoded segment by segment, the query string is kept
    and the ``#fragment`` is discarded. Anything else (relative paths,
    host-less strings) is split on ``/`` and each segment is encoded without
    any query or fragment detection.

    Args:
        path: A caller-supplied URL or path.

    Returns:
        The normalised path.
    """
    parts = urlsplit(path)
    if not (parts.scheme and parts.netloc):
        return _encode_path(path)

    origin = f"{parts.scheme}://{parts.netloc}"
    pathname = normalize_trailing_slash(path, parts.path)
    search = f"?{quote(parts.query, safe=_QUERY_SAFE)}" if parts.query else ""
    return origin + _encode_path(pathname) + search


def normalize_trailing_slash(original_path: str, pathname: str) -> str:
    """Keep a trailing slash on *pathname* only if the caller wrote one.

    URL parsers tend to add (``http://host`` -> ``/``) or keep slashes the
    caller never asked for. The decision is taken on *original_path* with
    any query string cut off.
    """
    if "?" in original_path:
        original_path = original_path.split("?", 1)[0]

    keep_trailing_slash = original_path.endswith("/")
    if not keep_trailing_slash and pathname.endswith("/"):
        return pathname[:-1]
    return pathname


def decode_uri(value: str) -> str:
    """Decode escapes in *value* except those of reserved URI characters."""
    pieces = _RESERVED_ESCAPES.split(value)
    # split() with a capturing group puts the separators at odd indexes.
    return "".join(
        piece if index % 2 else unquote(piece) for index, piece in enumerate(pieces)
    )


# --- Private helpers ---


def _cast_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _encode_component(value: Any) -> str:
    if isinstance(value, bool):
        value = "true" if value else "false"
    return quote(str(value), safe=_COMPONENT_SAFE)


def _encode_path(path: str) -> str:
    return "/".join(_ensure_segment_encoding(segment) for segment in path.split("/"))


def _ensure_segment_encoding(segment: str) -> str:
    if segment != decode_uri(segment):
        # Already carries escapes; encoding again would double them.
        return segment
    pieces = _PRESERVED_ESCAPES.split(segment)
    return "".join(
        piece if index % 2 else quote(piece, safe=_URI_SAFE)
        for index, piece in enumerate(pieces)
    )
