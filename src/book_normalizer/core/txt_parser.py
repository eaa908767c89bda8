"""Plain text parsing."""

import logging
import re
from pathlib import Path

from book_normalizer.config import get_settings
from book_normalizer.core.segmenter import segment
from book_normalizer.errors import ParseError
from book_normalizer.models.document import Metadata
from book_normalizer.models.extraction import ExtractionResult

log = logging.getLogger(__name__)

ENCODINGS = ("utf-8", "gbk", "gb2312", "latin-1")
CJK_CHAR_RE = re.compile(r"[\u4e00-\u9fa5]")
LATIN_WORD_RE = re.compile(r"[a-zA-Z]+")
LANGUAGE_THRESHOLD = 100
TITLE_SCAN_LINES = 10
MAX_TITLE_LENGTH = 100


def decode_text(data: bytes) -> str:
    """Decode bytes with the first encoding that accepts them."""
    for encoding in ENCODINGS:
        try:
            text = data.decode(encoding)
        except UnicodeDecodeError:
            continue
        log.debug("Decoded text as %s", encoding)
        return text.removeprefix("\ufeff")
    return data.decode("utf-8", errors="replace")


def extract_title(text: str) -> str | None:
    """Use the first short non-empty line near the top as the title."""
    for line in text.split("\n")[:TITLE_SCAN_LINES]:
        line = line.strip()
        if 0 < len(line) < MAX_TITLE_LENGTH:
            return line
    return None


def detect_language(text: str, default: str | None = None) -> str:
    """Guess "zh-CN" or "en" from character counts."""
    if len(CJK_CHAR_RE.findall(text)) > LANGUAGE_THRESHOLD:
        return "zh-CN"
    if len(LATIN_WORD_RE.findall(text)) > LANGUAGE_THRESHOLD:
        return "en"
    return default or get_settings().default_language


class TxtParser:
    """Parse plain text files."""

    def __init__(self, path: Path):
        self.path = path

    def extract(self) -> ExtractionResult:
        try:
            text = decode_text(self.path.read_bytes())
        except OSError as e:
            raise ParseError("TXT", str(e)) from e

        metadata = Metadata(
            title=extract_title(text) or self.path.stem,
            language=detect_language(text),
        )
        result = segment(text)
        log.debug(
            "Segmented %s into %d blocks, %d TOC entries",
            self.path.name,
            len(result.paragraphs),
            len(result.toc),
        )

        return ExtractionResult(
            metadata=metadata,
            content=result.paragraphs,
            toc=result.toc,
        )
