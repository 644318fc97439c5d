"""Build configuration: output layout, collections and config-file loading."""

from __future__ import annotations

import importlib.util
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from content_forge.core.ports.loader import Loader
    from content_forge.schemas.base import Schema

DEFAULT_CONFIG_FILE = "content.config.py"

# "/", "/static/", "./static/", "https://cdn.example.com/"
_BASE_PATTERN = re.compile(r"^(/|/\S+/|\.\S*/|[a-zA-Z][a-zA-Z0-9+.-]*:\S*/)$")


class Output(BaseModel):
    model_config = ConfigDict(frozen=True)

    data: str = ".content"
    assets: str = "public/static"
    base: str = "/static/"
    name: str = "[name]-[hash:8].[ext]"
    clean: bool = False

    @field_validator("base")
    @classmethod
    def _check_base(cls, value: str) -> str:
        if not _BASE_PATTERN.match(value):
            raise ValueError(
                f"Invalid output base '{value}'. Expected '/', '/dir/', './dir/' or 'scheme:host/'."
            )
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError(f"Invalid asset name template '{value}'.")
        return value


@dataclass(frozen=True)
class Collection:
    name: str
    pattern: str
    schema: Schema
    single: bool = False


@dataclass(frozen=True)
class Config:
    root: Path
    output: Output = field(default_factory=Output)
    collections: Mapping[str, Collection] = field(default_factory=dict)
    loaders: Sequence[Loader] = ()
    config_path: Path | None = None

    @property
    def data_dir(self) -> Path:
        return self._resolve(self.output.data)

    @property
    def assets_dir(self) -> Path:
        return self._resolve(self.output.assets)

    def _resolve(self, value: str) -> Path:
        path = Path(value)
        if path.is_absolute():
            return path
        base = self.config_path.parent if self.config_path else Path.cwd()
        return base / path


def define_config(
    *,
    collections: Mapping[str, Collection],
    root: str | Path = "content",
    output: Output | Mapping[str, Any] | None = None,
    loaders: Sequence[Loader] = (),
) -> dict[str, Any]:
    """Identity helper for config modules; validated later by ``resolve_config``."""
    return {"collections": collections, "root": root, "output": output, "loaders": loaders}


def resolve_config(user_config: Config | Mapping[str, Any], config_path: Path | None = None) -> Config:
    if isinstance(user_config, Config):
        return user_config

    base_dir = config_path.parent if config_path else Path.cwd()
    raw_output = user_config.get("output")
    if isinstance(raw_output, Output):
        output = raw_output
    else:
        output = Output.model_validate(dict(raw_output or {}))

    root = Path(user_config.get("root") or "content")
    if not root.is_absolute():
        root = base_dir / root

    collections = user_config.get("collections")
    if not collections:
        raise ValueError("Config must declare at least one collection.")

    return Config(
        root=root,
        output=output,
        collections=dict(collections),
        loaders=tuple(user_config.get("loaders") or ()),
        config_path=config_path,
    )


def find_config_file(path: str | Path | None = None) -> Path:
    candidate = Path(path or os.getenv("CONTENT_FORGE_CONFIG", DEFAULT_CONFIG_FILE))
    if not candidate.exists():
        raise FileNotFoundError(f"Config file not found: {candidate}")
    return candidate.resolve()


def load_config(path: str | Path | None = None) -> Config:
    """Import a Python config module and return its resolved ``config`` object."""
    config_path = find_config_file(path)
    spec = importlib.util.spec_from_file_location("content_forge_user_config", config_path)
    if spec is None or spec.loader is None:
        raise ValueError(f"Cannot import config file: {config_path}")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    user_config = getattr(module, "config", None)
    if user_config is None:
        raise ValueError(f"Config file {config_path} does not define 'config'.")
    return resolve_config(user_config, config_path)
