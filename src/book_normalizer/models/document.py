"""Data models for the normalized document."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that serializes field names in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ContentBlock(CamelModel):
    """A heading or paragraph of document text."""

    id: str
    type: Literal["heading", "paragraph"]
    text: str
    level: int | None = None  # Headings only
    # Set when the block came from a markup fragment
    chapter_id: str | None = None
    chapter_index: int | None = None

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("block text must not be empty")
        return value

    @model_validator(mode="after")
    def _level_matches_type(self) -> "ContentBlock":
        if self.type == "paragraph":
            self.level = None
        elif self.level is None:
            self.level = 1
        return self

    @property
    def is_heading(self) -> bool:
        return self.type == "heading"

    @classmethod
    def heading(cls, id: str, text: str, level: int, **kwargs) -> "ContentBlock":
        return cls(id=id, type="heading", text=text, level=level, **kwargs)

    @classmethod
    def paragraph(cls, id: str, text: str, **kwargs) -> "ContentBlock":
        return cls(id=id, type="paragraph", text=text, **kwargs)


class TocEntry(CamelModel):
    """Single declared or inferred table of contents line."""

    title: str
    page: int | None = None
    level: int = 1
    id: str | None = None
    order: int | None = None


class Metadata(CamelModel):
    """Document-level metadata.

    Format-specific fields (publisher, description, pages, ...) are kept as
    extra attributes and serialized alongside the common ones.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    title: str = ""
    author: str = ""
    creator: str = ""
    subject: str = ""
    keywords: str = ""
    creation_date: str | None = None
    modification_date: str | None = None
    language: str = "zh-CN"

    @field_validator(
        "title", "author", "creator", "subject", "keywords", mode="before"
    )
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("language", mode="before")
    @classmethod
    def _default_language(cls, value: object) -> object:
        return value or "zh-CN"

    def extra_field(self, name: str, default: object = None) -> object:
        """Look up a format-specific field."""
        return (self.model_extra or {}).get(name, default)


class ImageRef(CamelModel):
    """Image asset discovered in a source document."""

    id: str
    href: str = ""
    media_type: str = "image/unknown"
    size: int | None = None
    saved_path: str | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _saved_or_failed(self) -> "ImageRef":
        if self.saved_path and self.error:
            raise ValueError("image cannot be both saved and failed")
        return self


class DocumentStats(CamelModel):
    """Aggregate counts derived from a document's content."""

    total_paragraphs: int = 0
    total_images: int = 0
    total_toc_items: int = 0
    total_words: int = 0


class DocumentModel(CamelModel):
    """Complete normalized document (unified for TXT/EPUB/PDF)."""

    metadata: Metadata = Field(default_factory=Metadata)
    table_of_contents: list[TocEntry] = Field(default_factory=list)
    content: list[ContentBlock] = Field(default_factory=list)
    images: list[ImageRef] = Field(default_factory=list)
    stats: DocumentStats = Field(default_factory=DocumentStats)

    def to_json(self) -> str:
        """Serialize with camelCase keys and 2-space indentation."""
        return self.model_dump_json(by_alias=True, indent=2)
