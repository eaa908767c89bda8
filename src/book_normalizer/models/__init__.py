"""Data models."""

from book_normalizer.models.document import (
    ContentBlock,
    DocumentModel,
    DocumentStats,
    ImageRef,
    Metadata,
    TocEntry,
)
from book_normalizer.models.extraction import (
    Classification,
    ExtractionResult,
    SegmentResult,
)
from book_normalizer.models.output import (
    BookChapter,
    BookInfo,
    ChapterFile,
    ChapterRef,
    ExportResult,
    PageEntry,
)

__all__ = [
    # Document models
    "ContentBlock",
    "TocEntry",
    "Metadata",
    "ImageRef",
    "DocumentStats",
    "DocumentModel",
    # Extraction models
    "Classification",
    "SegmentResult",
    "ExtractionResult",
    # Output models
    "ChapterRef",
    "BookChapter",
    "BookInfo",
    "PageEntry",
    "ChapterFile",
    "ExportResult",
]
