"""Route-map driven HTTP client.

:func:`http_client` walks a (possibly nested) route map and returns a
:class:`ClientNode` tree of the same shape whose leaves are
:class:`Endpoint` callables. Calling an endpoint runs one full
request/response cycle through a fresh :class:`RouteRequest`:

1. Merge per-call options onto the client's base options.
2. Validate ``params``, ``query``, ``body`` and ``headers`` with the
   route's validators. A failure aborts before anything is sent.
3. Build the URL, headers and body.
4. Dispatch through the configured transport.
5. Check the response body against the schema declared for its status.
   Mismatches are logged, never raised.

Example::

    api = http_client(
        {"users": {"get": get_user_route, "create": create_user_route}},
        base_url="https://api.example.com",
        headers={"X-API-Version": "2"},
    )
    response = await api.users.get(params={"id": "123"})
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any, Optional, Union

import httpx
from pydantic import ValidationError

from safehttp.exceptions import RouteMapError
from safehttp.models import ClientConfig, HeaderSource, RequestDescriptor, RouteDefinition
from safehttp.parser import create_parse_fn, run_parse
from safehttp.transport import httpx_fetch
from safehttp.utils import (
    append_query,
    build_query_string,
    deep_merge,
    get_content_type,
    is_mapping,
    jsonable,
    maybe_await,
    merge_path,
    replace_url_params,
    serialize_body,
    stringify,
)

logger = logging.getLogger(__name__)

NO_BODY_METHODS = frozenset({"GET", "HEAD"})
"""Methods that never carry a request body."""

REQUEST_SLOTS = ("params", "query", "body", "headers")

RouteMap = Mapping[str, Union[RouteDefinition, Mapping[str, Any]]]


class RouteRequest:
    """Executes a single request for one route.

    A new instance is created for every call, so no state is shared between
    concurrent requests.

    Args:
        base_url: Prefix joined onto the route's path.
        route: The route being called.
        base_options: Client-level options: ``headers`` (map or producer),
            ``fetch`` (transport) and ``init`` (passthrough transport options).
    """

    def __init__(
        self,
        base_url: str,
        route: RouteDefinition,
        base_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self._base_url = base_url
        self._route = route
        self._method = route.method.value.upper()
        self._base_options = base_options or {}

    async def execute(
        self,
        args: Optional[Mapping[str, Any]] = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Validate *args*, send the request and return the transport's response.

        Args:
            args: Caller values for the ``params``, ``query``, ``body`` and
                ``headers`` slots. ``None`` or a missing key means the slot
                was not supplied.
            options: Per-call overrides (``headers``, ``fetch`` and
                passthrough transport options), deep-merged onto the base
                options.

        Returns:
            The response object returned by the transport, unaltered.

        Raises:
            Exception: Whatever a request validator or the transport raises,
                unwrapped.
        """
        merged = deep_merge(self._base_options, _request_options(options or {}))
        processed = await self._validate_request(args or {})

        url = self._build_url(processed)
        headers = await self._build_headers(processed, merged.get("headers"))
        body = self._build_body(processed, headers)

        request = RequestDescriptor(
            method=self._method,
            headers=headers,
            body=body,
            options=dict(merged.get("init") or {}),
        )
        fetch = merged.get("fetch") or httpx_fetch

        logger.debug("Dispatching %s %s", self._method, url)
        response = await fetch(url, request)

        await self._validate_response(response, url)
        return response

    # ------------------------------------------------------------------ #
    # Request building
    # ------------------------------------------------------------------ #

    async def _validate_request(self, args: Mapping[str, Any]) -> dict[str, Any]:
        processed: dict[str, Any] = {}
        for slot in REQUEST_SLOTS:
            value = args.get(slot)
            if value is None:
                continue
            parse = create_parse_fn(getattr(self._route.request, slot))
            processed[slot] = await run_parse(parse, value)
        return processed

    def _build_url(self, processed: dict[str, Any]) -> str:
        path = self._route.path
        if "params" in processed:
            path = replace_url_params(path, processed["params"])
        url = merge_path(self._base_url, path)
        if "query" in processed:
            url = append_query(url, build_query_string(processed["query"]))
        return url

    async def _build_headers(
        self, processed: dict[str, Any], header_source: Optional[HeaderSource]
    ) -> httpx.Headers:
        headers = httpx.Headers()

        request_headers = jsonable(processed.get("headers"))
        if is_mapping(request_headers):
            for key, value in request_headers.items():
                headers[key] = stringify(value)

        # Client-level headers are applied last and win on collisions.
        client_headers = await _resolve_header_source(header_source)
        for key, value in client_headers.items():
            headers[key] = stringify(value)

        return headers

    def _build_body(self, processed: dict[str, Any], headers: httpx.Headers) -> Any:
        if self._method in NO_BODY_METHODS or processed.get("body") is None:
            return None

        raw = processed["body"]
        body = serialize_body(raw)
        if "content-type" not in headers:
            content_type = get_content_type(raw)
            if content_type:
                headers["Content-Type"] = content_type
        return body

    # ------------------------------------------------------------------ #
    # Response checking
    # ------------------------------------------------------------------ #

    async def _validate_response(self, response: Any, url: str) -> None:
        """Check *response* against the schema declared for its status code.

        Never raises: a contract mismatch is logged as a warning and the
        response is still delivered.
        """
        status: Optional[int] = None
        try:
            status = _status_code(response)
            definition = self._route.response_for(status) if status is not None else None
            if definition is None or definition.schema_ is None:
                return

            clone = getattr(response, "clone", None)
            copy = clone() if callable(clone) else response
            data = await maybe_await(copy.json())
            await run_parse(create_parse_fn(definition.schema_), data)
        except Exception as exc:
            logger.warning(
                "Response validation failed for %s %s (HTTP %s): %s",
                self._method,
                url,
                status,
                exc,
            )


class Endpoint:
    """A callable leaf of the client tree, bound to one route.

    Example::

        response = await api.users.get(params={"id": "123"}, options={"timeout": 5})
    """

    def __init__(
        self,
        base_url: str,
        route: RouteDefinition,
        base_options: Optional[dict[str, Any]] = None,
    ) -> None:
        self.route = route
        self._base_url = base_url
        self._base_options = base_options or {}

    async def __call__(
        self,
        *,
        params: Any = None,
        query: Any = None,
        body: Any = None,
        headers: Any = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        request = RouteRequest(self._base_url, self.route, self._base_options)
        return await request.execute(
            {"params": params, "query": query, "body": body, "headers": headers},
            options,
        )

    def __repr__(self) -> str:
        return f"<Endpoint {self.route.method.value.upper()} {self.route.path}>"


class ClientNode:
    """An internal node of the client tree.

    Children are reachable both as attributes and as items, so
    ``api.users.get`` and ``api["users"]["get"]`` are the same endpoint.
    """

    def __init__(self, children: dict[str, Union[Endpoint, ClientNode]]) -> None:
        self._children = children

    def __getattr__(self, name: str) -> Union[Endpoint, ClientNode]:
        children = self.__dict__.get("_children", {})
        try:
            return children[name]
        except KeyError:
            raise AttributeError(f"Client has no route or group named {name!r}") from None

    def __getitem__(self, name: str) -> Union[Endpoint, ClientNode]:
        return self._children[name]

    def __contains__(self, name: object) -> bool:
        return name in self._children

    def __iter__(self) -> Iterator[str]:
        return iter(self._children)

    def __len__(self) -> int:
        return len(self._children)

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._children))

    def __repr__(self) -> str:
        return f"<ClientNode {list(self._children)}>"


# ---------------------------------------------------------------------------
# Tree building
# ---------------------------------------------------------------------------


def is_route_definition(value: Any) -> bool:
    """Return ``True`` if *value* looks like a route definition.

    Mappings qualify when they have a string ``path``, a string ``method``
    and a mapping of ``responses``.
    """
    if isinstance(value, RouteDefinition):
        return True
    return (
        is_mapping(value)
        and isinstance(value.get("path"), str)
        and isinstance(value.get("method"), str)
        and is_mapping(value.get("responses"))
    )


def create_endpoint(
    base_url: str,
    route: RouteDefinition,
    base_options: Optional[dict[str, Any]] = None,
) -> Endpoint:
    """Bind *route* to an :class:`Endpoint`."""
    return Endpoint(base_url, route, base_options)


def create_client_from_route_map(
    route_map: RouteMap,
    base_url: str,
    base_options: Optional[dict[str, Any]] = None,
    _prefix: str = "",
) -> ClientNode:
    """Recursively mirror *route_map* into a :class:`ClientNode` tree.

    Raises:
        RouteMapError: If an entry is neither a route definition nor a
            nested map, or a route definition fails to validate.
    """
    children: dict[str, Union[Endpoint, ClientNode]] = {}
    for key, value in route_map.items():
        location = f"{_prefix}.{key}" if _prefix else str(key)
        if is_route_definition(value):
            children[key] = create_endpoint(base_url, _as_route(location, value), base_options)
        elif is_mapping(value):
            children[key] = create_client_from_route_map(value, base_url, base_options, location)
        else:
            raise RouteMapError(location, value)
    return ClientNode(children)


def http_client(
    route_map: RouteMap,
    config: Union[ClientConfig, Mapping[str, Any], None] = None,
    **config_kwargs: Any,
) -> ClientNode:
    """Build a client tree for *route_map*.

    Configuration may be given as a :class:`~safehttp.models.ClientConfig`,
    a mapping, keyword arguments, or a mix (keywords win).

    Client-level ``headers`` are applied after the per-call ``headers``
    argument, so they take precedence on a key collision. This lets a
    shared client pin headers such as an API version that individual calls
    cannot override.

    Args:
        route_map: Route definitions (models or plain dicts) nested under
            arbitrary names.
        config: ``base_url``, ``headers``, ``fetch`` and passthrough
            transport options.
        **config_kwargs: Same keys as *config*.

    Returns:
        The root :class:`ClientNode`.
    """
    client_config = _client_config(config, config_kwargs)
    return create_client_from_route_map(
        route_map, client_config.base_url, client_config.base_options()
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _as_route(location: str, value: Any) -> RouteDefinition:
    if isinstance(value, RouteDefinition):
        return value
    try:
        return RouteDefinition.model_validate(value)
    except ValidationError as exc:
        raise RouteMapError(
            location, value, f"Invalid route definition at {location!r}: {exc}"
        ) from exc


def _client_config(
    config: Union[ClientConfig, Mapping[str, Any], None],
    overrides: dict[str, Any],
) -> ClientConfig:
    if isinstance(config, ClientConfig):
        if not overrides:
            return config
        settings = {
            "base_url": config.base_url,
            "headers": config.headers,
            "fetch": config.fetch,
            **config.transport_options(),
        }
    else:
        settings = _normalize_base_url(config or {})
    settings.update(_normalize_base_url(overrides))
    return ClientConfig.model_validate(settings)


def _normalize_base_url(settings: Mapping[str, Any]) -> dict[str, Any]:
    """Fold the ``baseUrl`` alias into ``base_url`` so it cannot leak into transport options."""
    normalized = dict(settings)
    if "baseUrl" in normalized:
        alias = normalized.pop("baseUrl")
        normalized.setdefault("base_url", alias)
    return normalized


def _request_options(options: Mapping[str, Any]) -> dict[str, Any]:
    """Reshape flat per-call options into the ``headers``/``fetch``/``init`` form."""
    normalized: dict[str, Any] = {}
    init: dict[str, Any] = {}
    for key, value in options.items():
        if key in ("headers", "fetch"):
            normalized[key] = value
        else:
            init[key] = value
    if init:
        normalized["init"] = init
    return normalized


async def _resolve_header_source(source: Optional[HeaderSource]) -> Mapping[str, Any]:
    if source is None:
        return {}
    if callable(source):
        return await maybe_await(source()) or {}
    return source


def _status_code(response: Any) -> Optional[int]:
    status = getattr(response, "status_code", None)
    if status is None:
        status = getattr(response, "status", None)
    return int(status) if status is not None else None
