"""Default transport -- sends a prepared request through :mod:`httpx`.

A transport is any ``async (url, request) -> response`` callable, where
*request* is a :class:`~safehttp.models.RequestDescriptor`. safehttp only
needs the response to expose ``status_code`` (or ``status``) and a
``json()`` accessor, so callers may substitute their own transport for
logging, retries or mocking.

Two httpx-backed transports are provided:

* :func:`httpx_fetch` -- the default; opens a short-lived
  :class:`httpx.AsyncClient` per request.
* :func:`client_transport` -- reuses a caller-owned
  :class:`httpx.AsyncClient` (connection reuse, or
  :class:`httpx.MockTransport` in tests).

Example::

    async with httpx.AsyncClient(timeout=10) as http:
        api = http_client(routes, base_url=URL, fetch=client_transport(http))
        response = await api.users.list()
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from safehttp.models import RequestDescriptor, TransportFn
from safehttp.utils import MultipartForm, UrlEncodedForm

logger = logging.getLogger(__name__)

CLIENT_OPTIONS = frozenset({"verify", "cert", "trust_env", "proxy", "http2", "limits"})
"""Passthrough options that configure the :class:`httpx.AsyncClient` rather than the request."""


async def httpx_fetch(url: str, request: RequestDescriptor) -> httpx.Response:
    """Send *request* to *url* with a fresh :class:`httpx.AsyncClient`.

    Passthrough options named in :data:`CLIENT_OPTIONS` configure the
    client; the rest (``timeout``, ``follow_redirects``, ``cookies``,
    ``auth``, ``extensions``) are passed to the request.

    Returns:
        The fully read :class:`httpx.Response`.
    """
    client_kwargs, request_kwargs = _split_options(request.options)
    async with httpx.AsyncClient(**client_kwargs) as client:
        return await _send(client, url, request, request_kwargs)


def client_transport(client: httpx.AsyncClient) -> TransportFn:
    """Return a transport that sends every request through *client*.

    The caller owns *client* and closes it. Client-level passthrough
    options are ignored since *client* is already configured.
    """

    async def fetch(url: str, request: RequestDescriptor) -> httpx.Response:
        client_kwargs, request_kwargs = _split_options(request.options)
        if client_kwargs:
            logger.debug(
                "Ignoring client options %s for a shared httpx client",
                sorted(client_kwargs),
            )
        return await _send(client, url, request, request_kwargs)

    return fetch


def _split_options(options: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    client_kwargs = {k: v for k, v in options.items() if k in CLIENT_OPTIONS}
    request_kwargs = {k: v for k, v in options.items() if k not in CLIENT_OPTIONS}
    return client_kwargs, request_kwargs


async def _send(
    client: httpx.AsyncClient,
    url: str,
    request: RequestDescriptor,
    request_kwargs: dict[str, Any],
) -> httpx.Response:
    kwargs: dict[str, Any] = {
        "method": request.method,
        "url": url,
        "headers": request.headers,
        **request_kwargs,
    }

    body = request.body
    if isinstance(body, MultipartForm):
        # httpx only switches to multipart when files are present; plain
        # fields are sent as filename-less parts in that case.
        if body.files:
            kwargs["data"] = body.fields
            kwargs["files"] = body.files
        else:
            kwargs["files"] = {
                name: (None, str(value).encode("utf-8")) for name, value in body.fields.items()
            }
    elif isinstance(body, UrlEncodedForm):
        kwargs["content"] = str(body)
    elif isinstance(body, (bytearray, memoryview)):
        kwargs["content"] = bytes(body)
    elif body is not None:
        kwargs["content"] = body

    return await client.request(**kwargs)
