import asyncio
import logging
from typing import Any

from content_forge.core.context import BuildContext
from content_forge.core.files import File
from content_forge.models import Issue
from content_forge.schemas.base import FieldContext, Result, Schema

logger = logging.getLogger(__name__)


def claim_file(file: File, schema: Schema[Any], context: BuildContext) -> None:
    """Make the file's uniqueness reservations without awaiting anything.

    Called for every file in build order before validation starts, so the first file
    in that order owns a contested value however deeply its schema nests the field.
    """
    if isinstance(file.data, list):
        for index, entry in enumerate(file.data):
            schema.prepare(entry, FieldContext(file=file, context=context, path=(index,)))
    else:
        schema.prepare(file.data, FieldContext(file=file, context=context))


async def validate_file(file: File, schema: Schema[Any], context: BuildContext) -> Result[Any]:
    """Apply ``schema`` to the file's raw data and collect every issue.

    A list at the top level (YAML/JSON collections) is validated entry by entry. The
    returned issues carry the file path and are also appended to ``file.issues``; the
    value is whatever could be computed, even when issues were reported.
    """
    if isinstance(file.data, list):
        results = await asyncio.gather(
            *(
                schema.run(entry, FieldContext(file=file, context=context, path=(index,)))
                for index, entry in enumerate(file.data)
            )
        )
        value: Any = [result.value for result in results]
        issues: list[Issue] = [issue for result in results for issue in result.issues]
    else:
        result = await schema.run(file.data, FieldContext(file=file, context=context))
        value = result.value
        issues = list(result.issues)

    located = file.report(issues)
    if located:
        logger.debug("%s: %d issue(s)", file.path, len(located))
    return Result(value, tuple(located))
