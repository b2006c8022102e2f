"""Tests for safehttp.parser -- validator classification and parse functions.

Each recognised calling convention gets a small hand-written validator that
accepts positive integers, plus pydantic models and TypeAdapters for the
pydantic-specific method names.

Covers:
- Classification precedence across every calling convention
- Classes exposing validation methods as classmethods or staticmethods
- Rejection of unrecognised values and class-level instance methods
- Parse results, coercion and unwrapped validator errors
- Standard-schema results and issues
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any

import pytest
from pydantic import BaseModel, TypeAdapter, ValidationError

from safehttp.exceptions import StandardSchemaError, ValidatorConfigError
from safehttp.parser import (
    ValidatorKind,
    classify_validator,
    create_parse_fn,
    run_parse,
)


def _check_positive(value: Any) -> int:
    if not isinstance(value, int) or value <= 0:
        raise ValueError("must be a positive integer")
    return value


# ------------------------------------------------------------------ #
# Fake validators, one per convention
# ------------------------------------------------------------------ #


class ArkLike:
    """Callable that also exposes an assertion method returning the value."""

    def __init__(self) -> None:
        self.assert_calls = 0

    def __call__(self, value: Any) -> Any:
        return "called-directly"

    def assert_(self, value: Any) -> int:
        self.assert_calls += 1
        return _check_positive(value)


class AsyncParseLike:
    def parse(self, value: Any) -> Any:
        return "sync-path"

    async def parse_async(self, value: Any) -> int:
        return _check_positive(value) * 10


class ParseLike:
    def __init__(self) -> None:
        self.scale = 2

    def parse(self, value: Any) -> int:
        return _check_positive(value) * self.scale


class ValidateSyncLike:
    def validate_sync(self, value: Any) -> int:
        return _check_positive(value)


class CreateLike:
    def create(self, value: Any) -> int:
        return _check_positive(value)


class LoadLike:
    def load(self, value: Any) -> dict:
        if "name" not in value:
            raise KeyError("name")
        return dict(value)


class AssertOnly:
    def assert_(self, value: Any) -> None:
        _check_positive(value)


def _standard_schema(validate) -> Any:
    return SimpleNamespace(**{"~standard": SimpleNamespace(version=1, vendor="test", validate=validate)})


def _standard_validate(value: Any) -> dict:
    if isinstance(value, int) and value > 0:
        return {"value": value}
    return {"issues": [{"message": "must be a positive integer", "path": []}]}


class User(BaseModel):
    name: str
    age: int


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #


class TestClassify:
    """Test validator classification into calling conventions."""

    @pytest.mark.parametrize(
        "validator, kind",
        [
            (None, ValidatorKind.NONE),
            (ArkLike(), ValidatorKind.ASSERT_CALLABLE),
            (_check_positive, ValidatorKind.CALLABLE),
            (lambda v: v, ValidatorKind.CALLABLE),
            (int, ValidatorKind.CALLABLE),
            (AsyncParseLike(), ValidatorKind.ASYNC_PARSE),
            (ParseLike(), ValidatorKind.PARSE),
            (User, ValidatorKind.PARSE),
            (TypeAdapter(int), ValidatorKind.PARSE),
            (ValidateSyncLike(), ValidatorKind.VALIDATE),
            (CreateLike(), ValidatorKind.CREATE),
            (LoadLike(), ValidatorKind.CREATE),
            (AssertOnly(), ValidatorKind.ASSERT),
            (_standard_schema(_standard_validate), ValidatorKind.STANDARD_SCHEMA),
        ],
    )
    def test_kinds(self, validator: Any, kind: ValidatorKind) -> None:
        assert classify_validator(validator) is kind

    def test_callable_with_standard_marker_uses_protocol(self) -> None:
        class CallableStandard:
            def __call__(self, value: Any) -> Any:
                return "called-directly"

        validator = CallableStandard()
        setattr(validator, "~standard", SimpleNamespace(validate=_standard_validate))
        assert classify_validator(validator) is ValidatorKind.STANDARD_SCHEMA

    def test_unrecognised_value_raises(self) -> None:
        with pytest.raises(ValidatorConfigError, match="No compatible validation method"):
            create_parse_fn(object())

    def test_unrecognised_mapping_raises(self) -> None:
        with pytest.raises(ValidatorConfigError):
            create_parse_fn({"type": "string"})

    @pytest.mark.parametrize("validator", [LoadLike, ParseLike, CreateLike, ValidateSyncLike])
    def test_class_with_instance_method_raises(self, validator: type) -> None:
        with pytest.raises(ValidatorConfigError, match="instance method"):
            create_parse_fn(validator)

    def test_class_level_methods_are_accepted(self) -> None:
        class CreateSchema:
            @classmethod
            def create(cls, value: Any) -> int:
                return _check_positive(value)

        class LoadSchema:
            @staticmethod
            def load(value: Any) -> int:
                return _check_positive(value)

        assert classify_validator(CreateSchema) is ValidatorKind.CREATE
        assert classify_validator(LoadSchema) is ValidatorKind.CREATE


# ------------------------------------------------------------------ #
# Parse behaviour per convention
# ------------------------------------------------------------------ #


class TestParse:
    """Test the parse function built for each convention."""

    @pytest.mark.asyncio
    async def test_none_is_identity(self) -> None:
        parse = create_parse_fn(None)
        for value in ("anything", {"any": "object"}, 123, None):
            assert await run_parse(parse, value) == value

    @pytest.mark.asyncio
    async def test_assert_callable_uses_assert_method(self) -> None:
        validator = ArkLike()
        parse = create_parse_fn(validator)
        assert await run_parse(parse, 3) == 3
        assert validator.assert_calls == 1
        with pytest.raises(ValueError):
            await run_parse(parse, -1)

    @pytest.mark.asyncio
    async def test_plain_function(self) -> None:
        parse = create_parse_fn(_check_positive)
        assert await run_parse(parse, 5) == 5
        with pytest.raises(ValueError, match="positive"):
            await run_parse(parse, 0)

    @pytest.mark.asyncio
    async def test_async_function(self) -> None:
        async def check(value: Any) -> str:
            if not str(value).startswith("user_"):
                raise ValueError("User ID must start with 'user_'")
            return value

        parse = create_parse_fn(check)
        assert await run_parse(parse, "user_1") == "user_1"
        with pytest.raises(ValueError, match="user_"):
            await run_parse(parse, "bad")

    @pytest.mark.asyncio
    async def test_builtin_type_coerces(self) -> None:
        parse = create_parse_fn(int)
        assert await run_parse(parse, "12") == 12
        with pytest.raises(ValueError):
            await run_parse(parse, "abc")

    @pytest.mark.asyncio
    async def test_async_parse_preferred_over_parse(self) -> None:
        parse = create_parse_fn(AsyncParseLike())
        assert await run_parse(parse, 2) == 20
        with pytest.raises(ValueError):
            await run_parse(parse, -2)

    @pytest.mark.asyncio
    async def test_parse_is_bound(self) -> None:
        parse = create_parse_fn(ParseLike())
        assert await run_parse(parse, 4) == 8
        with pytest.raises(ValueError):
            await run_parse(parse, "4")

    @pytest.mark.asyncio
    async def test_pydantic_model(self) -> None:
        parse = create_parse_fn(User)
        user = await run_parse(parse, {"name": "Ann", "age": "30"})
        assert user == User(name="Ann", age=30)
        with pytest.raises(ValidationError):
            await run_parse(parse, {"name": "Ann"})

    @pytest.mark.asyncio
    async def test_pydantic_type_adapter(self) -> None:
        parse = create_parse_fn(TypeAdapter(list[int]))
        assert await run_parse(parse, ["1", 2]) == [1, 2]
        with pytest.raises(ValidationError):
            await run_parse(parse, ["x"])

    @pytest.mark.asyncio
    async def test_validate_sync(self) -> None:
        parse = create_parse_fn(ValidateSyncLike())
        assert await run_parse(parse, 1) == 1
        with pytest.raises(ValueError):
            await run_parse(parse, 0)

    @pytest.mark.asyncio
    async def test_create_and_load(self) -> None:
        assert await run_parse(create_parse_fn(CreateLike()), 9) == 9
        with pytest.raises(ValueError):
            await run_parse(create_parse_fn(CreateLike()), -9)

        assert await run_parse(create_parse_fn(LoadLike()), {"name": "x"}) == {"name": "x"}
        with pytest.raises(KeyError):
            await run_parse(create_parse_fn(LoadLike()), {})

    @pytest.mark.asyncio
    async def test_class_level_create_and_load(self) -> None:
        class CreateSchema:
            @classmethod
            def create(cls, value: Any) -> int:
                return _check_positive(value) + 1

        class LoadSchema:
            @staticmethod
            def load(value: Any) -> int:
                return _check_positive(value) * 3

        assert await run_parse(create_parse_fn(CreateSchema), 1) == 2
        assert await run_parse(create_parse_fn(LoadSchema), 2) == 6
        with pytest.raises(ValueError):
            await run_parse(create_parse_fn(CreateSchema), 0)

    @pytest.mark.asyncio
    async def test_assert_only_returns_input(self) -> None:
        parse = create_parse_fn(AssertOnly())
        assert await run_parse(parse, 6) == 6
        with pytest.raises(ValueError):
            await run_parse(parse, "6")

    @pytest.mark.asyncio
    async def test_standard_schema(self) -> None:
        parse = create_parse_fn(_standard_schema(_standard_validate))
        assert await run_parse(parse, 3) == 3
        with pytest.raises(StandardSchemaError) as exc_info:
            await run_parse(parse, -3)
        assert exc_info.value.issues == ({"message": "must be a positive integer", "path": []},)
        assert "must be a positive integer" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_standard_schema_async_validate_and_object_result(self) -> None:
        async def validate(value: Any) -> Any:
            if value == "ok":
                return SimpleNamespace(value="OK", issues=None)
            return SimpleNamespace(value=None, issues=[SimpleNamespace(message="not ok")])

        parse = create_parse_fn(_standard_schema(validate))
        assert await run_parse(parse, "ok") == "OK"
        with pytest.raises(StandardSchemaError, match="not ok"):
            await run_parse(parse, "nope")

    @pytest.mark.asyncio
    async def test_standard_schema_empty_issues_is_success(self) -> None:
        parse = create_parse_fn(_standard_schema(lambda v: {"value": v, "issues": []}))
        assert await run_parse(parse, "x") == "x"

    @pytest.mark.asyncio
    async def test_validator_errors_are_not_wrapped(self) -> None:
        class CustomError(Exception):
            pass

        def fail(value: Any) -> Any:
            raise CustomError("boom")

        with pytest.raises(CustomError, match="boom"):
            await run_parse(create_parse_fn(fail), 1)
