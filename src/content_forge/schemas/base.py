"""Composable validators that transform raw values and collect located issues."""

from __future__ import annotations

import asyncio
import copy
import inspect
import re
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from content_forge.core.context import BuildContext
from content_forge.core.files import File
from content_forge.models import Issue, IssueCode

T = TypeVar("T")

PathKey = str | int
Effect = Callable[[Any, "FieldContext"], Awaitable[Any]]
Claim = Callable[[Any, "FieldContext"], None]


@dataclass
class FieldContext:
    """Everything a schema sees while validating one value."""

    file: File
    context: BuildContext
    path: tuple[PathKey, ...] = ()
    issues: list[Issue] = field(default_factory=list)

    @property
    def location(self) -> str:
        return f"{self.file.path}:{'.'.join(str(key) for key in self.path)}"

    def add_issue(self, message: str, code: IssueCode = "custom", path: Sequence[PathKey] = ()) -> None:
        self.issues.append(Issue(code=code, message=message, path=(*self.path, *path)))

    def child(self, key: PathKey) -> FieldContext:
        return FieldContext(file=self.file, context=self.context, path=(*self.path, key))


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None
    issues: tuple[Issue, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.issues


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


class Schema(Generic[T]):
    """Base schema.

    ``check`` performs type and syntax checks, reporting every problem it finds.
    Refinements and transforms run afterwards in declaration order and stop at the
    first one that reports an issue.

    ``prepare`` runs the synchronous claims of a schema tree before any of it is
    awaited, so build-wide reservations can be made in a fixed file order.
    """

    def __init__(self) -> None:
        self._effects: list[Effect] = []
        self._claims: list[Claim] = []

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        raise NotImplementedError

    async def run(self, value: Any, ctx: FieldContext) -> Result[T]:
        mark = len(ctx.issues)
        output = await self.check(value, ctx)
        if len(ctx.issues) == mark:
            for effect in self._effects:
                output = await effect(output, ctx)
                if len(ctx.issues) > mark:
                    break
        return Result(output, tuple(ctx.issues[mark:]))

    def _extend(self, effect: Effect) -> Any:
        clone = copy.copy(self)
        clone._effects = [*self._effects, effect]
        return clone

    def claim(self, fn: Claim) -> Any:
        clone = copy.copy(self)
        clone._claims = [*self._claims, fn]
        return clone

    def prepare(self, value: Any, ctx: FieldContext) -> None:
        for claim in self._claims:
            claim(value, ctx)

    def refine(
        self,
        predicate: Callable[[Any], bool | Awaitable[bool]],
        message: str = "Invalid input",
        code: IssueCode = "custom",
    ) -> Any:
        async def _refine(value: Any, ctx: FieldContext) -> Any:
            if not await _resolve(predicate(value)):
                ctx.add_issue(message, code)
            return value

        return self._extend(_refine)

    def super_refine(self, fn: Callable[[Any, FieldContext], None | Awaitable[None]]) -> Any:
        async def _super_refine(value: Any, ctx: FieldContext) -> Any:
            await _resolve(fn(value, ctx))
            return value

        return self._extend(_super_refine)

    def transform(self, fn: Callable[[Any, FieldContext], Any]) -> Any:
        async def _transform(value: Any, ctx: FieldContext) -> Any:
            return await _resolve(fn(value, ctx))

        return self._extend(_transform)

    def optional(self) -> OptionalSchema[T]:
        return OptionalSchema(self)

    def default(self, value: Any) -> OptionalSchema[T]:
        return OptionalSchema(self, default=value, has_default=True)


class OptionalSchema(Schema[T]):
    def __init__(self, inner: Schema[T], default: Any = None, has_default: bool = False) -> None:
        super().__init__()
        self.inner = inner
        self._default = default
        self._has_default = has_default

    def prepare(self, value: Any, ctx: FieldContext) -> None:
        if value is None and self._has_default:
            value = self._default
        if value is not None:
            self.inner.prepare(value, ctx)
        super().prepare(value, ctx)

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            if not self._has_default:
                return None
            value = copy.deepcopy(self._default)
        return (await self.inner.run(value, ctx)).value


class StringSchema(Schema[str]):
    def __init__(self) -> None:
        super().__init__()
        self._checks: list[Callable[[str, FieldContext], None]] = []

    def _with_check(self, check: Callable[[str, FieldContext], None]) -> StringSchema:
        clone = copy.copy(self)
        clone._checks = [*self._checks, check]
        return clone

    def min(self, length: int, message: str | None = None) -> StringSchema:
        text = message or f"String must contain at least {length} character(s)"

        def _min(value: str, ctx: FieldContext) -> None:
            if len(value) < length:
                ctx.add_issue(text, "too_small")

        return self._with_check(_min)

    def max(self, length: int, message: str | None = None) -> StringSchema:
        text = message or f"String must contain at most {length} character(s)"

        def _max(value: str, ctx: FieldContext) -> None:
            if len(value) > length:
                ctx.add_issue(text, "too_big")

        return self._with_check(_max)

    def regex(self, pattern: str | re.Pattern[str], message: str = "Invalid") -> StringSchema:
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern

        def _regex(value: str, ctx: FieldContext) -> None:
            if not compiled.match(value):
                ctx.add_issue(message, "invalid_string")

        return self._with_check(_regex)

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if not isinstance(value, str):
            ctx.add_issue(f"Expected string, received {_type_name(value)}", "invalid_type")
            return None
        for check in self._checks:
            check(value, ctx)
        return value


class NumberSchema(Schema[float]):
    def __init__(self, integer: bool = False, minimum: float | None = None, maximum: float | None = None) -> None:
        super().__init__()
        self.integer = integer
        self.minimum = minimum
        self.maximum = maximum

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            ctx.add_issue(f"Expected number, received {_type_name(value)}", "invalid_type")
            return None
        if self.integer and not float(value).is_integer():
            ctx.add_issue("Expected integer, received float", "invalid_type")
        if self.minimum is not None and value < self.minimum:
            ctx.add_issue(f"Number must be greater than or equal to {self.minimum}", "too_small")
        if self.maximum is not None and value > self.maximum:
            ctx.add_issue(f"Number must be less than or equal to {self.maximum}", "too_big")
        return value


class BooleanSchema(Schema[bool]):
    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if not isinstance(value, bool):
            received = "Required" if value is None else f"Expected boolean, received {_type_name(value)}"
            ctx.add_issue(received, "invalid_type")
            return None
        return value


class CustomSchema(Schema[Any]):
    """Accepts any value, including a missing one."""

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        return value


class ArraySchema(Schema[list[Any]]):
    def __init__(self, item: Schema[Any]) -> None:
        super().__init__()
        self.item = item

    def prepare(self, value: Any, ctx: FieldContext) -> None:
        if isinstance(value, (list, tuple)):
            for index, entry in enumerate(value):
                self.item.prepare(entry, ctx.child(index))
        super().prepare(value, ctx)

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if not isinstance(value, (list, tuple)):
            ctx.add_issue(f"Expected array, received {_type_name(value)}", "invalid_type")
            return None

        results = await asyncio.gather(*(self.item.run(entry, ctx.child(index)) for index, entry in enumerate(value)))
        for result in results:
            ctx.issues.extend(result.issues)
        return [result.value for result in results]


class ObjectSchema(Schema[dict[str, Any]]):
    """Validates every declared field concurrently; unknown keys are dropped."""

    def __init__(self, shape: Mapping[str, Schema[Any]]) -> None:
        super().__init__()
        self.shape = dict(shape)

    def extend(self, **shape: Schema[Any]) -> ObjectSchema:
        return ObjectSchema({**self.shape, **shape})

    def prepare(self, value: Any, ctx: FieldContext) -> None:
        if isinstance(value, Mapping):
            for key, schema in self.shape.items():
                schema.prepare(value.get(key), ctx.child(key))
        super().prepare(value, ctx)

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if not isinstance(value, Mapping):
            ctx.add_issue(f"Expected object, received {_type_name(value)}", "invalid_type")
            return None

        keys = list(self.shape)
        results = await asyncio.gather(*(self.shape[key].run(value.get(key), ctx.child(key)) for key in keys))
        output: dict[str, Any] = {}
        for key, result in zip(keys, results, strict=True):
            ctx.issues.extend(result.issues)
            output[key] = result.value
        return output


def string() -> StringSchema:
    return StringSchema()


def number(*, integer: bool = False, minimum: float | None = None, maximum: float | None = None) -> NumberSchema:
    return NumberSchema(integer=integer, minimum=minimum, maximum=maximum)


def boolean() -> BooleanSchema:
    return BooleanSchema()


def custom() -> CustomSchema:
    return CustomSchema()


def array(item: Schema[Any]) -> ArraySchema:
    return ArraySchema(item)


def object(shape: Mapping[str, Schema[Any]] | None = None, **fields: Schema[Any]) -> ObjectSchema:  # noqa: A001
    return ObjectSchema({**(shape or {}), **fields})
