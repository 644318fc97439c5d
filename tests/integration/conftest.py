"""Fixtures for end-to-end builds against a content tree on disk."""

from collections.abc import Callable
from pathlib import Path

import pytest

from content_forge import schemas as s
from content_forge.core.config import Collection, Config, Output
from tests.conftest import png_bytes, write_bytes

POST_SCHEMA = s.object(
    title=s.string(),
    slug=s.slug("post"),
    date=s.isodate(),
    cover=s.image().optional(),
    attachment=s.file().optional(),
    excerpt=s.excerpt(length=20),
)

SITE_SCHEMA = s.object(title=s.string(), logo=s.image())


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """A small content tree with a shared image and a slug collision."""
    root = tmp_path / "content"
    write_bytes(root / "posts" / "cover.png", png_bytes((40, 20)))
    write_bytes(root / "posts" / "guide.pdf", b"%PDF-1.4 guide")
    write_bytes(root / "site" / "logo.png", png_bytes((16, 16), (0, 0, 255)))

    (root / "posts" / "a.md").write_text(
        "---\ntitle: First\nslug: shared\ndate: 2024-01-01\ncover: ./cover.png\nattachment: guide.pdf\n---\n"
        "The first post body text.\n",
        encoding="utf-8",
    )
    (root / "posts" / "b.md").write_text(
        "---\ntitle: Second\nslug: shared\ndate: 2024-01-02\ncover: ./cover.png?v=2\n---\nSecond body.\n",
        encoding="utf-8",
    )
    (root / "posts" / "c.md").write_text(
        "---\ntitle: Third\nslug: third\ndate: 2024-01-03\ncover: ./cover.png\n---\nThird body.\n",
        encoding="utf-8",
    )
    (root / "site" / "site.yml").write_text("title: My Site\nlogo: ./logo.png\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def site_config(site: Path) -> Callable[..., Config]:
    def _make(**output: object) -> Config:
        return Config(
            root=site / "content",
            output=Output(**output),
            collections={
                "posts": Collection(name="Post", pattern="posts/*.md", schema=POST_SCHEMA),
                "site": Collection(name="Site", pattern="site/*.yml", schema=SITE_SCHEMA, single=True),
            },
            config_path=site / "content.config.py",
        )

    return _make
