"""Data models for intermediate structuring results."""

from typing import NamedTuple

from pydantic import BaseModel, Field

from book_normalizer.models.document import ContentBlock, ImageRef, Metadata, TocEntry


class Classification(NamedTuple):
    """Result of classifying a single line."""

    is_heading: bool
    level: int = 0  # Meaningful only when is_heading


class SegmentResult(BaseModel):
    """Blocks and TOC entries recovered from a text stream."""

    paragraphs: list[ContentBlock] = Field(default_factory=list)
    toc: list[TocEntry] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Everything a source extractor hands to the document builder."""

    metadata: Metadata = Field(default_factory=Metadata)
    content: list[ContentBlock] = Field(default_factory=list)
    images: list[ImageRef] = Field(default_factory=list)
    toc: list[TocEntry] = Field(default_factory=list)
