from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from content_forge.models import Issue


@dataclass
class File:
    """One source document for the duration of a build.

    ``data`` is the raw object produced by a loader; ``content`` is the body without
    frontmatter and ``plain`` its plain-text rendering.
    """

    path: Path
    data: Any = None
    content: str = ""
    plain: str = ""
    issues: list[Issue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def report(self, issues: list[Issue]) -> list[Issue]:
        located = [issue.model_copy(update={"file": str(self.path)}) for issue in issues]
        self.issues.extend(located)
        return located
