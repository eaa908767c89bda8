"""Assemble extracted parts into the unified document model."""

from collections.abc import Mapping, Sequence

from book_normalizer.models.document import (
    ContentBlock,
    DocumentModel,
    DocumentStats,
    ImageRef,
    Metadata,
    TocEntry,
)
from book_normalizer.models.extraction import ExtractionResult


def count_words(text: str) -> int:
    """Count whitespace-separated tokens."""
    return len(text.split())


def compute_stats(
    content: Sequence[ContentBlock],
    images: Sequence[ImageRef],
    toc: Sequence[TocEntry],
) -> DocumentStats:
    """Derive aggregate counts for a document."""
    return DocumentStats(
        total_paragraphs=len(content),
        total_images=len(images),
        total_toc_items=len(toc),
        total_words=sum(count_words(block.text) for block in content),
    )


def build_document(
    metadata: Metadata | Mapping[str, object] | None = None,
    content: Sequence[ContentBlock] = (),
    images: Sequence[ImageRef] = (),
    toc: Sequence[TocEntry] = (),
) -> DocumentModel:
    """Build a DocumentModel, filling metadata defaults and computing stats."""
    if metadata is None:
        metadata = Metadata()
    elif not isinstance(metadata, Metadata):
        metadata = Metadata.model_validate(dict(metadata))

    content = list(content)
    images = list(images)
    toc = list(toc)

    return DocumentModel.model_construct(
        metadata=metadata,
        table_of_contents=toc,
        content=content,
        images=images,
        stats=compute_stats(content, images, toc),
    )


def build_from_extraction(result: ExtractionResult) -> DocumentModel:
    """Build a DocumentModel from an extractor's output."""
    return build_document(result.metadata, result.content, result.images, result.toc)
