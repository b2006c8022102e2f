"""Named HTTP status codes for use as ``responses`` keys in route definitions.

Example::

    from safehttp.status_codes import HTTP_STATUS_CODE

    responses = {HTTP_STATUS_CODE["CREATED"]: {"description": "User created"}}
"""

from __future__ import annotations

from http import HTTPStatus
from types import MappingProxyType

HTTP_STATUS_CODE = MappingProxyType({status.name: status.value for status in HTTPStatus})
"""Read-only ``NAME -> code`` table (``OK -> 200``, ``NOT_FOUND -> 404``, ...)."""
