from content_forge.schemas.base import (
    ArraySchema,
    BooleanSchema,
    CustomSchema,
    FieldContext,
    NumberSchema,
    ObjectSchema,
    OptionalSchema,
    Result,
    Schema,
    StringSchema,
    array,
    boolean,
    custom,
    number,
    object,
    string,
)
from content_forge.schemas.fields import (
    ExcerptSchema,
    ImageSchema,
    IsoDateSchema,
    PathSchema,
    excerpt,
    file,
    image,
    isodate,
    metadata,
    path,
    raw,
    slug,
    unique,
)

__all__ = [
    "ArraySchema",
    "BooleanSchema",
    "CustomSchema",
    "ExcerptSchema",
    "FieldContext",
    "ImageSchema",
    "IsoDateSchema",
    "NumberSchema",
    "ObjectSchema",
    "OptionalSchema",
    "PathSchema",
    "Result",
    "Schema",
    "StringSchema",
    "array",
    "boolean",
    "custom",
    "excerpt",
    "file",
    "image",
    "isodate",
    "metadata",
    "number",
    "object",
    "path",
    "raw",
    "slug",
    "string",
    "unique",
]
