"""Built-in loaders turning source text into raw data plus body text."""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from pathlib import Path

import frontmatter
import yaml

from content_forge.core.files import File
from content_forge.core.ports.loader import Loader

_HTML_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
_FENCE = re.compile(r"^[ \t]*(```|~~~).*$", re.MULTILINE)
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_HTML_TAG = re.compile(r"<[^>]+>")
_LINE_PREFIX = re.compile(r"^[ \t]{0,3}(?:#{1,6}\s+|>\s?|[-*+]\s+|\d+\.\s+)", re.MULTILINE)
_EMPHASIS = re.compile(r"\*\*|__|~~|[*`]")


def to_plain(markdown: str) -> str:
    """Rough plain-text rendering of a markdown body."""
    text = _HTML_COMMENT.sub("", markdown)
    text = _FENCE.sub("", text)
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _HTML_TAG.sub("", text)
    text = _LINE_PREFIX.sub("", text)
    text = _EMPHASIS.sub("", text)
    lines = (line.strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


class MatterLoader:
    """Markdown or MDX with an optional YAML frontmatter block."""

    pattern = re.compile(r"\.mdx?$")

    def test(self, path: Path) -> bool:
        return bool(self.pattern.search(path.name))

    def load(self, path: Path, text: str) -> File:
        post = frontmatter.loads(text)
        content = post.content.strip()
        return File(path=path, data=dict(post.metadata), content=content, plain=to_plain(content))


class YamlLoader:
    pattern = re.compile(r"\.ya?ml$")

    def test(self, path: Path) -> bool:
        return bool(self.pattern.search(path.name))

    def load(self, path: Path, text: str) -> File:
        return File(path=path, data=yaml.safe_load(text))


class JsonLoader:
    pattern = re.compile(r"\.json$")

    def test(self, path: Path) -> bool:
        return bool(self.pattern.search(path.name))

    def load(self, path: Path, text: str) -> File:
        return File(path=path, data=json.loads(text))


DEFAULT_LOADERS: tuple[Loader, ...] = (MatterLoader(), YamlLoader(), JsonLoader())


def find_loader(path: Path, loaders: Sequence[Loader] = DEFAULT_LOADERS) -> Loader | None:
    for loader in loaders:
        if loader.test(path):
            return loader
    return None


def load_file(path: Path, loaders: Sequence[Loader] = DEFAULT_LOADERS) -> File:
    loader = find_loader(path, loaders)
    if loader is None:
        raise ValueError(f"No loader found for '{path}'")
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {path}") from None
    return loader.load(path, text)
