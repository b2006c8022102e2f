"""safehttp -- build validated HTTP clients from declarative route maps.

Describe each endpoint once as a route definition (path template, method,
optional request validators, per-status response schemas), nest the
definitions under any names you like, and :func:`http_client` returns a tree
of async callables with the same shape. Validators from most Python
validation libraries (pydantic models and ``TypeAdapter``, marshmallow-style
schemas, plain functions, standard-schema objects, ...) are accepted as-is.

Example::

    from safehttp import http_client

    api = http_client(
        {"users": {"get": {
            "path": "/users/:id",
            "method": "get",
            "request": {"params": UserParams},
            "responses": {200: {"description": "User found", "schema": User}},
        }}},
        base_url="https://api.example.com",
    )
    response = await api.users.get(params={"id": "123"})

Modules:
    client: Request execution and client tree building.
    parser: Validator classification and the uniform parse function.
    models: Pydantic models for routes and client configuration.
    transport: The default httpx-backed transport.
    utils: URL, query, header and body helpers.
    exceptions: Exception hierarchy.
    status_codes: Named HTTP status codes.
"""

from safehttp.client import ClientNode, Endpoint, http_client
from safehttp.exceptions import (
    ConfigurationError,
    RouteMapError,
    SafeHttpError,
    StandardSchemaError,
    ValidatorConfigError,
)
from safehttp.models import (
    ClientConfig,
    HTTPMethod,
    RequestDefinition,
    RequestDescriptor,
    ResponseDefinition,
    RouteDefinition,
)
from safehttp.parser import ValidatorKind, create_parse_fn
from safehttp.status_codes import HTTP_STATUS_CODE
from safehttp.transport import client_transport, httpx_fetch
from safehttp.utils import MultipartForm, UrlEncodedForm

__version__ = "0.1.0"

__all__ = [
    "HTTP_STATUS_CODE",
    "ClientConfig",
    "ClientNode",
    "ConfigurationError",
    "Endpoint",
    "HTTPMethod",
    "MultipartForm",
    "RequestDefinition",
    "RequestDescriptor",
    "ResponseDefinition",
    "RouteDefinition",
    "RouteMapError",
    "SafeHttpError",
    "StandardSchemaError",
    "UrlEncodedForm",
    "ValidatorConfigError",
    "ValidatorKind",
    "client_transport",
    "create_parse_fn",
    "http_client",
    "httpx_fetch",
]
