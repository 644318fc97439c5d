from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

IssueCode = Literal[
    "invalid_type",
    "too_small",
    "too_big",
    "invalid_string",
    "invalid_date",
    "reserved",
    "duplicate",
    "asset",
    "custom",
]


class Issue(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: IssueCode
    message: str
    path: tuple[str | int, ...] = ()
    file: str | None = None

    def location(self) -> str:
        field_path = ".".join(str(key) for key in self.path)
        if self.file and field_path:
            return f"{self.file}:{field_path}"
        return self.file or field_path


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    digest: str
    name: str
    url: str


class ImageMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    width: int
    height: int
    blur_data_url: str = Field(alias="blurDataURL")
    blur_width: int = Field(alias="blurWidth")
    blur_height: int = Field(alias="blurHeight")


class Image(ImageMetadata):
    src: str
