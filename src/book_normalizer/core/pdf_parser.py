"""PDF parsing: text extraction plus heuristic structuring."""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path

# Suppress warnings about malformed PDF object references from PDF libraries
logging.getLogger("pdfminer").setLevel(logging.ERROR)
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pdfplumber
import pypdf
from pypdf.errors import EmptyFileError, FileNotDecryptedError, PdfReadError

from book_normalizer.config import get_settings
from book_normalizer.core.segmenter import scan_toc, segment_pages
from book_normalizer.errors import ParseError
from book_normalizer.models.document import Metadata, TocEntry
from book_normalizer.models.extraction import ExtractionResult

log = logging.getLogger(__name__)

NON_DIGIT_RE = re.compile(r"[^\d]")
MIN_OUTLINE_ENTRIES = 2


def parse_pdf_date(value: object) -> str | None:
    """Convert a PDF date string (D:YYYYMMDDHHmmSS...) to ISO-8601 UTC.

    Missing fields default to zero; unparseable values give None.
    """
    if not value:
        return None

    digits = NON_DIGIT_RE.sub("", str(value).removeprefix("D:")).ljust(14, "0")
    try:
        parsed = datetime(
            int(digits[0:4]),
            int(digits[4:6]) or 1,
            int(digits[6:8]) or 1,
            int(digits[8:10]),
            int(digits[10:12]),
            int(digits[12:14]),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def extract_text_with_fallback(pdf_path: Path, reader: pypdf.PdfReader) -> str:
    """Extract all page text with pypdf, falling back to pdfplumber."""
    try:
        return "\n".join(page.extract_text() or "" for page in reader.pages)
    except Exception as e:
        log.warning("pypdf text extraction failed (%s), retrying with pdfplumber", e)

    with pdfplumber.open(str(pdf_path)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)


class PdfParser:
    """Parse PDF files into blocks and a TOC (no images)."""

    def __init__(self, pdf_path: Path):
        self.path = pdf_path
        self._reader: pypdf.PdfReader | None = None

    def extract(self) -> ExtractionResult:
        """Read the PDF and structure its text."""
        try:
            self._reader = pypdf.PdfReader(str(self.path))
        except FileNotDecryptedError as e:
            raise ParseError("PDF", "PDF is encrypted. Please decrypt first.") from e
        except EmptyFileError as e:
            raise ParseError("PDF", "PDF file is empty.") from e
        except PdfReadError as e:
            raise ParseError("PDF", f"PDF appears corrupted: {e}") from e

        try:
            text = extract_text_with_fallback(self.path, self._reader)
        except Exception as e:
            raise ParseError("PDF", f"text extraction failed: {e}") from e

        if len(text.strip()) < 100:
            log.warning(
                "PDF appears to have limited text content. "
                "May be scanned or image-based."
            )

        try:
            return ExtractionResult(
                metadata=self.get_metadata(),
                content=segment_pages(text),
                toc=self._outline_toc() or scan_toc(text),
            )
        except ParseError:
            raise
        except Exception as e:
            raise ParseError("PDF", f"structure extraction failed: {e}") from e

    def get_metadata(self) -> Metadata:
        """Extract metadata from the PDF info dictionary."""
        info = self._reader.metadata or {}

        def field(key: str) -> str:
            value = info.get(key)
            return str(value) if value else ""

        header = self._reader.pdf_header or ""
        return Metadata(
            title=field("/Title"),
            author=field("/Author"),
            creator=field("/Creator"),
            subject=field("/Subject"),
            keywords=field("/Keywords"),
            creation_date=parse_pdf_date(info.get("/CreationDate")),
            modification_date=parse_pdf_date(info.get("/ModDate")),
            language=field("/Language") or get_settings().default_language,
            pages=len(self._reader.pages) or None,
            version=header.removeprefix("%PDF-") or None,
        )

    def _outline_toc(self) -> list[TocEntry]:
        """Use PDF bookmarks as the TOC when there are enough of them."""
        try:
            outline = self._reader.outline
        except Exception as e:
            log.debug("Could not read PDF outline: %s", e)
            return []

        entries: list[TocEntry] = []

        def flatten_outline(items: list, level: int = 1) -> None:
            """Recursively flatten nested outline."""
            for item in items:
                if isinstance(item, list):
                    # Nested items
                    flatten_outline(item, level + 1)
                    continue
                try:
                    page_num = self._reader.get_destination_page_number(item)
                except Exception:
                    # Skip malformed destinations
                    continue
                # Bookmarks pointing at a URI or an unresolved name have no page
                entries.append(
                    TocEntry(
                        title=str(item.title),
                        page=page_num + 1 if page_num is not None else None,
                        level=level,
                        order=len(entries),
                    )
                )

        flatten_outline(outline or [])
        return entries if len(entries) >= MIN_OUTLINE_ENTRIES else []
