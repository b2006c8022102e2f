"""Pydantic models shared across safehttp.

The models fall into two groups:

**Route models** -- the declarative description of an API, built once by the
caller and read-only afterwards:
    :class:`HTTPMethod`, :class:`ResponseDefinition`,
    :class:`RequestDefinition` and :class:`RouteDefinition`.

**Client models** -- per-instance configuration and the request handed to
the transport:
    :class:`ClientConfig` and :class:`RequestDescriptor`.

Validator slots (``request.params``, ``responses[...].schema`` and so on)
are stored verbatim as ``Any``: safehttp never inspects them beyond the
calling-convention check in :mod:`safehttp.parser`. ``None`` in a validator
slot is the explicit "no validation" marker.
"""

from __future__ import annotations

import enum
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


Validator = Any
"""Any value implementing one of the conventions in :mod:`safehttp.parser`, or ``None``."""

HeaderMap = Mapping[str, str]

HeaderSource = Union[
    HeaderMap,
    Callable[[], Union[HeaderMap, Awaitable[HeaderMap]]],
]
"""Static headers, or a sync/async producer evaluated fresh for every request."""


# --- Route Models ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods a :class:`RouteDefinition` may declare."""

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"


class ResponseDefinition(BaseModel):
    """Contract for one HTTP response status of a route.

    ``schema`` is optional; when present, responses with this status are
    checked against it after they arrive. ``headers`` is documentation only.
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, arbitrary_types_allowed=True
    )

    description: str = ""
    schema_: Validator = Field(default=None, alias="schema")
    headers: Optional[dict[str, dict[str, Any]]] = None


class RequestDefinition(BaseModel):
    """The four validated request slots of a route.

    An omitted slot and a slot set to ``None`` behave the same way: caller
    values for it pass through unvalidated.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    params: Validator = None
    query: Validator = None
    body: Validator = None
    headers: Validator = None


class RouteDefinition(BaseModel):
    """Declarative description of a single HTTP endpoint.

    ``path`` is a URL template with ``:name`` placeholders. ``responses``
    maps status codes to a :class:`ResponseDefinition` or a bare description
    string. ``tags``, ``operation_id``, ``summary``, ``description`` and
    ``middleware`` are carried for documentation and never interpreted.

    Example::

        RouteDefinition(
            path="/users/:id",
            method="get",
            request={"params": UserParams},
            responses={200: {"description": "User found", "schema": User}},
        )
    """

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, arbitrary_types_allowed=True
    )

    path: str
    method: HTTPMethod
    request: RequestDefinition = Field(default_factory=RequestDefinition)
    responses: dict[int, Union[ResponseDefinition, str]] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    operation_id: Optional[str] = Field(default=None, alias="operationId")
    summary: Optional[str] = None
    description: Optional[str] = None
    middleware: list[str] = Field(default_factory=list)

    @field_validator("method", mode="before")
    @classmethod
    def _lowercase_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("request", mode="before")
    @classmethod
    def _default_request(cls, value: Any) -> Any:
        # ``request=None`` means no slot is declared.
        if value is None:
            return RequestDefinition()
        return value

    def response_for(self, status_code: int) -> Optional[ResponseDefinition]:
        """Return the response contract declared for *status_code*, if any.

        Plain description strings carry no schema and yield ``None``.
        """
        definition = self.responses.get(status_code)
        if isinstance(definition, ResponseDefinition):
            return definition
        return None


# --- Client Models ---


class ClientConfig(BaseModel):
    """Per-client configuration accepted by :func:`~safehttp.client.http_client`.

    Any key beyond ``base_url``, ``headers`` and ``fetch`` is a passthrough
    transport option (``timeout``, ``follow_redirects``, ``verify``, ...)
    and is preserved in ``model_extra`` and forwarded verbatim with every
    request.

    Example::

        ClientConfig(
            base_url="https://api.example.com",
            headers={"X-API-Version": "2"},
            timeout=10,
        )
    """

    model_config = ConfigDict(
        extra="allow", populate_by_name=True, arbitrary_types_allowed=True
    )

    base_url: str = Field(default="", alias="baseUrl")
    headers: Optional[Any] = Field(
        default=None, description="Static header map or sync/async producer"
    )
    fetch: Optional[Any] = Field(
        default=None, description="Transport function; defaults to httpx"
    )

    def transport_options(self) -> dict[str, Any]:
        """Return the passthrough transport options."""
        return dict(self.model_extra or {})

    def base_options(self) -> dict[str, Any]:
        """Return the instance-level request options in their merge-ready form."""
        return {
            "headers": self.headers,
            "fetch": self.fetch,
            "init": self.transport_options(),
        }


@dataclass
class RequestDescriptor:
    """Everything the transport needs besides the URL.

    Attributes:
        method: Upper-case HTTP method (e.g. ``"POST"``).
        headers: Final request headers.
        body: Serialised body, or ``None`` for body-less requests.
        options: Passthrough transport options from the merged configuration.
    """

    method: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    body: Any = None
    options: dict[str, Any] = field(default_factory=dict)


TransportFn = Callable[[str, RequestDescriptor], Awaitable[Any]]
"""``(url, request) -> response`` -- the single capability safehttp needs from its environment."""
