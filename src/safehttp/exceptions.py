"""Exception hierarchy for safehttp.

Only errors the library itself originates live here. Errors raised by a
user-supplied validator or by the transport are never wrapped and reach the
caller unchanged.

Subclass hierarchy::

    SafeHttpError
    +-- ConfigurationError
    |   +-- ValidatorConfigError   (validator matches no known convention)
    |   +-- RouteMapError          (route map entry is neither route nor map)
    +-- StandardSchemaError        (standard-schema validation issues)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Optional


class SafeHttpError(Exception):
    """Base exception for all safehttp errors."""


class ConfigurationError(SafeHttpError):
    """Raised for programming errors in a route definition or route map.

    These surface at first use and are never retried.
    """


class ValidatorConfigError(ConfigurationError):
    """Raised when a validator exposes none of the recognised calling conventions.

    Args:
        validator: The offending validator.
        reason: Optional message replacing the default one.
    """

    def __init__(self, validator: Any, reason: Optional[str] = None) -> None:
        super().__init__(
            reason
            or f"No compatible validation method found on {type(validator).__name__!r}"
        )
        self.validator = validator


class RouteMapError(ConfigurationError):
    """Raised when a route map entry is neither a route definition nor a nested map.

    Args:
        path: Dotted location of the offending entry (e.g. ``"users.get"``).
        value: The entry itself.
        reason: Message to use instead of the default one.
    """

    def __init__(self, path: str, value: Any, reason: Optional[str] = None) -> None:
        super().__init__(
            reason
            or f"Route map entry {path!r} is neither a route definition nor a "
            f"nested route map (got {type(value).__name__})"
        )
        self.path = path
        self.value = value


class StandardSchemaError(SafeHttpError):
    """Raised when a standard-schema validator reports one or more issues.

    This is the only validation error safehttp creates itself; every other
    validator's own exception propagates untouched.

    Attributes:
        issues: The issue objects reported by the validator, in order.
    """

    def __init__(self, issues: Iterable[Any]) -> None:
        self.issues = tuple(issues)
        super().__init__("; ".join(_issue_message(issue) for issue in self.issues))


def _issue_message(issue: Any) -> str:
    if isinstance(issue, Mapping):
        message = issue.get("message")
    else:
        message = getattr(issue, "message", None)
    return str(message) if message is not None else repr(issue)
