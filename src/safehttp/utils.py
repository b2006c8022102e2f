"""Pure helpers for building requests: URL joining, path-parameter
substitution, query serialisation, option merging, and body handling.

Nothing in this module performs I/O or keeps state.
"""

from __future__ import annotations

import dataclasses
import inspect
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union
from urllib.parse import quote, urlencode

from pydantic import BaseModel

# Characters encodeURIComponent-style escaping leaves alone besides ``_.-~``.
_PATH_SAFE = "!*'()"

_PLACEHOLDER_END = r"(?=/|$|\?|#)"


@dataclass
class MultipartForm:
    """A ``multipart/form-data`` request body.

    ``fields`` are plain form values; ``files`` use the same shapes httpx
    accepts for ``files=``. No Content-Type is set for this body: the
    transport generates it together with the boundary.
    """

    fields: dict[str, Any] = field(default_factory=dict)
    files: dict[str, Any] = field(default_factory=dict)


class UrlEncodedForm:
    """An ``application/x-www-form-urlencoded`` request body.

    Accepts a mapping or a sequence of ``(key, value)`` pairs; mapping
    values follow the same rules as query parameters.
    """

    def __init__(self, data: Union[Mapping[str, Any], list[tuple[str, Any]], None] = None) -> None:
        if data is None:
            self.pairs: list[tuple[str, str]] = []
        elif isinstance(data, Mapping):
            self.pairs = build_search_params(data)
        else:
            self.pairs = [(str(k), stringify(v)) for k, v in data]

    def __str__(self) -> str:
        return urlencode(self.pairs)

    def __repr__(self) -> str:
        return f"UrlEncodedForm({self.pairs!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UrlEncodedForm):
            return NotImplemented
        return self.pairs == other.pairs


# --- URL helpers ---


def merge_path(base: str, path: str) -> str:
    """Join *base* and *path* with exactly one ``/`` between them.

    Example::

        >>> merge_path("https://api.example.com/", "/users")
        'https://api.example.com/users'
        >>> merge_path("", "users")
        '/users'
    """
    return base.rstrip("/") + "/" + path.lstrip("/")


def replace_url_params(url: str, params: Any) -> str:
    """Substitute ``:name`` placeholders in *url* with percent-encoded values.

    A placeholder only matches when the name is followed by ``/``, ``?``,
    ``#`` or the end of the string, so ``:id`` never matches inside
    ``:identifier``. ``None`` values and keys without a placeholder are
    skipped. Non-mapping *params* leave *url* unchanged.
    """
    params = jsonable(params)
    if not is_mapping(params):
        return url

    result = url
    for key, value in params.items():
        if value is None:
            continue
        encoded = quote(stringify(value), safe=_PATH_SAFE)
        pattern = re.compile(":" + re.escape(str(key)) + _PLACEHOLDER_END)
        result = pattern.sub(lambda _match: encoded, result)
    return result


def build_search_params(query: Any) -> list[tuple[str, str]]:
    """Flatten a query mapping into ordered ``(key, value)`` pairs.

    ``None`` values are dropped, lists and tuples produce one pair per
    element in order, everything else is stringified.
    """
    query = jsonable(query)
    if not is_mapping(query):
        return []

    pairs: list[tuple[str, str]] = []
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), stringify(item)) for item in value if item is not None)
        else:
            pairs.append((str(key), stringify(value)))
    return pairs


def build_query_string(query: Any) -> str:
    """Serialise *query* to a query string without the leading ``?``.

    A ``str`` is taken as an already encoded query string.
    """
    if isinstance(query, str):
        return query.lstrip("?")
    return urlencode(build_search_params(query))


def append_query(url: str, query_string: str) -> str:
    """Append *query_string* to *url* using ``&`` if it already has a ``?``."""
    if not query_string:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query_string}"


# --- Option merging ---


def is_mapping(value: Any) -> bool:
    """Return ``True`` for dict-like values."""
    return isinstance(value, Mapping)


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* onto *target* and return a new dict.

    Nested mappings merge key by key; any other value from *source*
    replaces the one in *target*. Neither argument is mutated.

    Example::

        >>> deep_merge({"headers": {"B": "2"}}, {"headers": {"A": "1"}})
        {'headers': {'B': '2', 'A': '1'}}
    """
    merged = dict(target)
    for key, value in source.items():
        current = merged.get(key)
        if is_mapping(current) and is_mapping(value):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = value
    return merged


# --- Body handling ---


def get_content_type(body: Any) -> Optional[str]:
    """Infer a Content-Type header value from the shape of *body*.

    Returns ``None`` when no header should be set, which includes
    :class:`MultipartForm` bodies and raw bytes.
    """
    body = jsonable(body)
    if isinstance(body, str):
        try:
            json.loads(body)
        except ValueError:
            return "text/plain"
        return "application/json"
    if isinstance(body, MultipartForm):
        return None
    if isinstance(body, UrlEncodedForm):
        return "application/x-www-form-urlencoded"
    if is_mapping(body) or isinstance(body, (list, tuple)):
        return "application/json"
    return None


def serialize_body(body: Any) -> Any:
    """Convert a validated body into something the transport can send.

    Strings, bytes and form bodies pass through unchanged, mappings and
    sequences become compact JSON, anything else is stringified.
    """
    if body is None:
        return None
    body = jsonable(body)
    if isinstance(body, (str, bytes, bytearray, memoryview, MultipartForm, UrlEncodedForm)):
        return body
    if is_mapping(body) or isinstance(body, (list, tuple)):
        return json.dumps(body, separators=(",", ":"))
    return stringify(body)


# --- Misc ---


def jsonable(value: Any) -> Any:
    """Unwrap pydantic models and dataclass instances into plain data.

    Validators such as pydantic models return rich objects; the request
    builders only deal in mappings and scalars.
    """
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(value) and not isinstance(value, (type, MultipartForm)):
        return dataclasses.asdict(value)
    return value


async def maybe_await(value: Any) -> Any:
    """Await *value* if it is awaitable, otherwise return it as-is."""
    if inspect.isawaitable(value):
        return await value
    return value


def stringify(value: Any) -> str:
    """Render *value* as text, spelling booleans ``true``/``false``."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
