"""Content-aware schemas: slugs, dates, excerpts and asset references."""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from pydantic import ValidationError

from content_forge.core.assets import is_relative_path, process_file, process_image
from content_forge.models import Image
from content_forge.schemas.base import CustomSchema, FieldContext, Schema, StringSchema, _type_name, string

_SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$", re.IGNORECASE)


def slug(by: str = "global", reserved: Iterable[str] = ()) -> StringSchema:
    """URL-safe identifier, unique within the ``by`` namespace for the whole build.

    The owner of a slug is the field location that claimed it first, so re-validating
    the same file in the same context does not collide with itself.
    """
    namespace = f"schemas:slug:{by}"
    reserved_slugs = frozenset(reserved)

    def _claim(value: Any, ctx: FieldContext) -> None:
        if (
            isinstance(value, str)
            and 3 <= len(value) <= 200
            and _SLUG_PATTERN.match(value)
            and value not in reserved_slugs
        ):
            ctx.context.reserve(namespace, value, ctx.location)

    def _reserve(value: str, ctx: FieldContext) -> None:
        previous = ctx.context.reserve(namespace, value, ctx.location)
        if previous is not None:
            ctx.add_issue(f"duplicate slug '{value}' in '{ctx.location}', already used in '{previous}'", "duplicate")

    return (
        string()
        .min(3)
        .max(200)
        .regex(_SLUG_PATTERN, "Invalid slug")
        .refine(lambda value: value not in reserved_slugs, "Reserved slug", code="reserved")
        .super_refine(_reserve)
        .claim(_claim)
    )


def unique(by: str = "global") -> StringSchema:
    namespace = f"schemas:unique:{by}"

    def _claim(value: Any, ctx: FieldContext) -> None:
        if isinstance(value, str):
            ctx.context.reserve(namespace, value, ctx.location)

    def _reserve(value: str, ctx: FieldContext) -> None:
        previous = ctx.context.reserve(namespace, value, ctx.location)
        if previous is not None:
            ctx.add_issue(f"duplicate value '{value}' in '{ctx.location}', already used in '{previous}'", "duplicate")

    return string().super_refine(_reserve).claim(_claim)


def parse_datetime(value: str | date) -> datetime | None:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time())
    else:
        text = value.strip()
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            try:
                parsed = parsedate_to_datetime(text)
            except (TypeError, ValueError):
                return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        return None


def format_timestamp(value: datetime) -> str:
    value = value.astimezone(timezone.utc)
    return f"{value:%Y-%m-%dT%H:%M:%S}.{value.microsecond // 1000:03d}Z"


class IsoDateSchema(Schema[str]):
    """Any parseable date, normalized to ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if not isinstance(value, (str, date)):
            ctx.add_issue(f"Expected string, received {_type_name(value)}", "invalid_type")
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            ctx.add_issue("Invalid date string", "invalid_date")
            return None
        return format_timestamp(parsed)


def isodate() -> IsoDateSchema:
    return IsoDateSchema()


class ExcerptSchema(Schema[str]):
    def __init__(self, length: int = 260) -> None:
        super().__init__()
        self.length = length

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is None:
            value = ctx.file.plain
        return str(value)[: self.length]


def excerpt(length: int = 260) -> ExcerptSchema:
    if length < 0:
        raise ValueError("Excerpt length must not be negative.")
    return ExcerptSchema(length)


def file(allow_non_relative_path: bool = True) -> StringSchema:
    """A file path relative to the document, copied to the assets directory."""

    async def _process(value: str, ctx: FieldContext) -> str | None:
        if ctx.context.lookup(f"assets:url:{value}") is not None:
            return value
        if allow_non_relative_path and not is_relative_path(value):
            return value
        try:
            return await process_file(value, ctx.file.path, ctx.context)
        except (OSError, ValueError) as exc:
            ctx.add_issue(str(exc), "asset")
            return None

    return string().transform(_process)


def _external_image(src: str) -> Image:
    return Image(src=src, width=0, height=0, blur_data_url="", blur_width=0, blur_height=0)


def _emitted_image(src: str, ctx: FieldContext) -> Image | None:
    digest = ctx.context.lookup(f"assets:url:{src}")
    if digest is None:
        return None
    metadata = ctx.context.lookup(f"images:{digest}")
    if metadata is None:
        return None
    return Image(src=src, **metadata.model_dump())


class ImageSchema(Schema[Image]):
    """An image path relative to the document, with dimensions and a blur placeholder."""

    def __init__(self, allow_non_relative_path: bool = False) -> None:
        super().__init__()
        self.allow_non_relative_path = allow_non_relative_path

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if isinstance(value, Mapping):
            try:
                value = Image.model_validate(value)
            except ValidationError:
                ctx.add_issue("Expected image path or image object", "invalid_type")
                return None
        if isinstance(value, Image):
            # Only records this build emitted, or allowed external ones, are kept as is
            if ctx.context.lookup(f"assets:url:{value.src}") is not None:
                return value
            if self.allow_non_relative_path and not is_relative_path(value.src):
                return value
            value = value.src
        if value is None:
            ctx.add_issue("Required", "invalid_type")
            return None
        if not isinstance(value, str):
            ctx.add_issue(f"Expected string, received {_type_name(value)}", "invalid_type")
            return None

        emitted = _emitted_image(value, ctx)
        if emitted is not None:
            return emitted
        if not is_relative_path(value):
            if self.allow_non_relative_path:
                return _external_image(value)
            ctx.add_issue(f"Image '{value}' must be a relative path to a local file", "asset")
            return None
        try:
            return await process_image(value, ctx.file.path, ctx.context)
        except (OSError, ValueError) as exc:
            ctx.add_issue(str(exc), "asset")
            return None


def image(allow_non_relative_path: bool = False) -> ImageSchema:
    return ImageSchema(allow_non_relative_path)


class PathSchema(Schema[str]):
    """The document path relative to the content root, without extension."""

    def __init__(self, remove_index: bool = True) -> None:
        super().__init__()
        self.remove_index = remove_index

    async def check(self, value: Any, ctx: FieldContext) -> Any:
        if value is not None:
            return str(value)
        try:
            relative = ctx.file.path.relative_to(ctx.context.root)
        except ValueError:
            relative = ctx.file.path.relative_to(ctx.file.path.parent)
        result = relative.with_suffix("").as_posix()
        if self.remove_index:
            if result == "index":
                return ""
            if result.endswith("/index"):
                return result[: -len("/index")]
        return result


def path(remove_index: bool = True) -> PathSchema:
    return PathSchema(remove_index)


def raw() -> CustomSchema:
    """The document body without frontmatter."""
    return CustomSchema().transform(lambda value, ctx: ctx.file.content if value is None else value)


def metadata() -> CustomSchema:
    def _metadata(value: Any, ctx: FieldContext) -> dict[str, int]:
        words = len(ctx.file.plain.split())
        return {"readingTime": math.ceil(words / 300), "wordCount": words}

    return CustomSchema().transform(_metadata)
