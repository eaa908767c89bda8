"""Select a source extractor based on file format."""

import logging
from pathlib import Path
from typing import Callable, Protocol

from book_normalizer.config import get_settings
from book_normalizer.core.document_builder import build_from_extraction
from book_normalizer.errors import UnsupportedFormatError
from book_normalizer.models.document import DocumentModel
from book_normalizer.models.extraction import ExtractionResult

log = logging.getLogger(__name__)


class SourceExtractor(Protocol):
    """Anything that turns one source file into extracted parts."""

    path: Path

    def extract(self) -> ExtractionResult:
        """Extract metadata, content blocks, images and TOC."""
        ...


def _txt(path: Path, max_workers: int) -> SourceExtractor:
    from book_normalizer.core.txt_parser import TxtParser

    return TxtParser(path)


def _epub(path: Path, max_workers: int) -> SourceExtractor:
    from book_normalizer.core.epub_parser import EpubParser

    return EpubParser(path, max_workers=max_workers)


def _pdf(path: Path, max_workers: int) -> SourceExtractor:
    from book_normalizer.core.pdf_parser import PdfParser

    return PdfParser(path)


class ParserFactory:
    """Factory for creating the appropriate extractor for a file."""

    SUPPORTED_FORMATS: dict[str, tuple[str, Callable[[Path, int], SourceExtractor]]] = {
        ".txt": ("txt", _txt),
        ".epub": ("epub", _epub),
        ".pdf": ("pdf", _pdf),
    }

    @classmethod
    def create(cls, path: Path, max_workers: int | None = None) -> SourceExtractor:
        """Create the extractor for the given file.

        Args:
            path: Path to the source file (TXT, EPUB or PDF)
            max_workers: Thread count for concurrent fragment/image work

        Returns:
            Extractor instance for the file type

        Raises:
            FileNotFoundError: If file does not exist
            UnsupportedFormatError: If file format is not supported
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        suffix = path.suffix.lower()
        if suffix not in cls.SUPPORTED_FORMATS:
            raise UnsupportedFormatError(suffix, list(cls.SUPPORTED_FORMATS))

        if max_workers is None:
            max_workers = get_settings().max_workers

        _, factory = cls.SUPPORTED_FORMATS[suffix]
        return factory(path, max_workers)

    @classmethod
    def detect_format(cls, path: Path) -> str:
        """Detect file format from extension ("txt", "epub", "pdf" or "unknown")."""
        entry = cls.SUPPORTED_FORMATS.get(Path(path).suffix.lower())
        return entry[0] if entry else "unknown"

    @classmethod
    def is_supported(cls, path: Path) -> bool:
        return Path(path).suffix.lower() in cls.SUPPORTED_FORMATS


def parse_file(path: Path, max_workers: int | None = None) -> DocumentModel:
    """Parse a source file into the normalized document model."""
    extractor = ParserFactory.create(Path(path), max_workers=max_workers)
    log.info("Parsing %s as %s", path, ParserFactory.detect_format(Path(path)))
    return build_from_extraction(extractor.extract())
