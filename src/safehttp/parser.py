"""Normalise validators from many libraries into one parse function.

A *validator* is any value safehttp can use to check a request slot or a
response body. Libraries disagree on how validation is invoked, so
:func:`create_parse_fn` classifies the value once into a
:class:`ValidatorKind` and returns a single callable ``parse(value)`` that
either returns the validated (possibly coerced) value or raises. The
callable may return an awaitable; use :func:`run_parse` to get the value
either way.

Recognised conventions, in precedence order:

1. ``None`` -- no validation, the input is returned unchanged.
2. A callable instance that also has an ``assert_``/``assert`` method
   (ArkType-style) -- the assertion method is used.
3. A plain callable: functions, lambdas, callable instances and classes such
   as ``int`` that do not expose any other recognised method.
4. ``parse_async`` -- preferred over ``parse`` when both exist.
5. ``parse``, ``model_validate`` (pydantic models) or ``validate_python``
   (pydantic ``TypeAdapter``).
6. ``validate_sync``.
7. ``create`` or ``load`` (marshmallow-style schemas).
8. ``assert_``/``assert`` alone -- called for its exception, the input is
   returned.
9. The standard-schema ``~standard`` property -- its ``validate`` result is
   unpacked, and reported issues raise :class:`StandardSchemaError`.

Anything else raises :class:`ValidatorConfigError`, as does a class whose
matching method is an instance method rather than a classmethod or
staticmethod.

Exceptions raised by the underlying validator propagate unchanged.
"""

from __future__ import annotations

import enum
import inspect
from collections.abc import Mapping
from typing import Any, Callable, Optional

from safehttp.exceptions import StandardSchemaError, ValidatorConfigError
from safehttp.utils import maybe_await

ParseFn = Callable[[Any], Any]

STANDARD_SCHEMA_ATTR = "~standard"
"""Property name of the cross-library standard-schema protocol."""

ASSERT_METHODS = ("assert_", "assert")
ASYNC_PARSE_METHODS = ("parse_async",)
PARSE_METHODS = ("parse", "model_validate", "validate_python")
VALIDATE_METHODS = ("validate_sync",)
CREATE_METHODS = ("create", "load")

_CLASS_METHODS = ASYNC_PARSE_METHODS + PARSE_METHODS + VALIDATE_METHODS + CREATE_METHODS


class ValidatorKind(str, enum.Enum):
    """The calling convention a validator was classified into."""

    NONE = "none"
    ASSERT_CALLABLE = "assert_callable"
    CALLABLE = "callable"
    ASYNC_PARSE = "async_parse"
    PARSE = "parse"
    VALIDATE = "validate"
    CREATE = "create"
    ASSERT = "assert"
    STANDARD_SCHEMA = "standard_schema"


def classify_validator(validator: Any) -> ValidatorKind:
    """Return the :class:`ValidatorKind` for *validator*.

    Raises:
        ValidatorConfigError: If no convention matches.
    """
    kind, _ = _classify(validator)
    return kind


def create_parse_fn(validator: Any) -> ParseFn:
    """Build the uniform parse function for *validator*.

    Raises:
        ValidatorConfigError: If *validator* matches no known convention.
    """
    kind, method_name = _classify(validator)

    if kind is ValidatorKind.NONE:
        return _identity
    if kind is ValidatorKind.CALLABLE:
        return validator
    if kind is ValidatorKind.ASSERT:
        return _assert_then_return(getattr(validator, method_name))
    if kind is ValidatorKind.STANDARD_SCHEMA:
        return _standard_schema_parser(getattr(validator, STANDARD_SCHEMA_ATTR))
    # Remaining kinds all delegate to a single bound method.
    return getattr(validator, method_name)


async def run_parse(parse_fn: ParseFn, value: Any) -> Any:
    """Run *parse_fn* on *value*, awaiting the result if it is asynchronous."""
    return await maybe_await(parse_fn(value))


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #


def _classify(validator: Any) -> tuple[ValidatorKind, Optional[str]]:
    if validator is None:
        return ValidatorKind.NONE, None

    is_standard = hasattr(validator, STANDARD_SCHEMA_ATTR)
    is_class = isinstance(validator, type)

    assert_method = _find_method(validator, ASSERT_METHODS)
    if callable(validator) and not is_class and assert_method:
        return ValidatorKind.ASSERT_CALLABLE, assert_method

    if callable(validator) and not is_standard:
        # Classes like pydantic models construct rather than validate when
        # called; they are classified by their validation method instead.
        if not (is_class and _find_method(validator, _CLASS_METHODS)):
            return ValidatorKind.CALLABLE, None

    for kind, names in (
        (ValidatorKind.ASYNC_PARSE, ASYNC_PARSE_METHODS),
        (ValidatorKind.PARSE, PARSE_METHODS),
        (ValidatorKind.VALIDATE, VALIDATE_METHODS),
        (ValidatorKind.CREATE, CREATE_METHODS),
    ):
        method_name = _find_method(validator, names)
        if method_name:
            if is_class:
                _require_class_level(validator, method_name)
            return kind, method_name

    if assert_method:
        return ValidatorKind.ASSERT, assert_method

    if is_standard:
        return ValidatorKind.STANDARD_SCHEMA, None

    raise ValidatorConfigError(validator)


def _find_method(validator: Any, names: tuple[str, ...]) -> Optional[str]:
    for name in names:
        if callable(getattr(validator, name, None)):
            return name
    return None


def _require_class_level(cls: type, name: str) -> None:
    """Reject a class whose validation method is an instance method.

    Looked up on the class, an instance method is a plain function that
    would receive the input as ``self``.
    """
    method = getattr(cls, name)
    if inspect.isfunction(method) and not isinstance(
        inspect.getattr_static(cls, name), staticmethod
    ):
        raise ValidatorConfigError(
            cls,
            f"{cls.__name__}.{name} is an instance method; pass an instance "
            "or make it a classmethod or staticmethod",
        )


# ------------------------------------------------------------------ #
# Parse function builders
# ------------------------------------------------------------------ #


def _identity(value: Any) -> Any:
    return value


def _assert_then_return(assert_fn: Callable[[Any], Any]) -> ParseFn:
    def parse(value: Any) -> Any:
        assert_fn(value)
        return value

    return parse


def _standard_schema_parser(standard: Any) -> ParseFn:
    validate = _field(standard, "validate")

    async def parse(value: Any) -> Any:
        result = await maybe_await(validate(value))
        issues = _field(result, "issues")
        if issues:
            raise StandardSchemaError(issues)
        return _field(result, "value")

    return parse


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)
