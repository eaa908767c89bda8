"""Split a plain text stream into headings, paragraphs and TOC entries."""

import re

from book_normalizer.core.classifier import (
    SHORT_LINE_LENGTH,
    classify,
    estimate_heading_level,
)
from book_normalizer.models.document import ContentBlock, TocEntry
from book_normalizer.models.extraction import SegmentResult

TOC_MARKER_RE = re.compile(
    r"^(目\s*录|目|录|contents|table\s+of\s+contents)$", re.IGNORECASE
)
# "Title ..... 12"
TOC_DOTTED_RE = re.compile(r"^(.+?)\s*\.{3,}\s*(\d+)$")
# "1. Title" / "1、标题"
TOC_NUMBERED_RE = re.compile(r"^(\d+[.、]\s*.+?)$")
LINE_SPLIT_RE = re.compile(r"\r?\n")


class _BlockBuilder:
    """Accumulates paragraph lines and numbers emitted blocks."""

    def __init__(self) -> None:
        self.blocks: list[ContentBlock] = []
        self._lines: list[str] = []
        self._counter = 0

    @property
    def pending(self) -> bool:
        return bool(self._lines)

    def append(self, line: str) -> None:
        self._lines.append(line)

    def flush(self) -> None:
        text = " ".join(self._lines).strip()
        self._lines = []
        if text:
            self.blocks.append(ContentBlock.paragraph(self._next_id("para"), text))

    def heading(self, text: str, level: int) -> None:
        self.flush()
        self.blocks.append(ContentBlock.heading(self._next_id("heading"), text, level))

    def _next_id(self, kind: str) -> str:
        block_id = f"{kind}_{self._counter}"
        self._counter += 1
        return block_id


def match_toc_line(line: str) -> TocEntry | None:
    """Parse a single TOC listing line, or return None."""
    dotted = TOC_DOTTED_RE.match(line)
    if dotted:
        title = dotted.group(1).strip()
        return TocEntry(
            title=title,
            page=int(dotted.group(2)),
            level=estimate_heading_level(title),
        )

    numbered = TOC_NUMBERED_RE.match(line)
    if numbered:
        title = numbered.group(1).strip()
        return TocEntry(title=title, page=None, level=estimate_heading_level(title))

    return None


def segment(text: str) -> SegmentResult:
    """Segment flowed text into blocks and a table of contents.

    Blank lines end paragraphs; heading-like lines end the pending paragraph
    and are emitted on their own. A bare "目录"/"Contents" line opens a TOC
    region whose listing lines become TOC entries until a blank or long line.
    """
    lines = LINE_SPLIT_RE.split(text)
    builder = _BlockBuilder()
    toc: list[TocEntry] = []
    in_toc_section = False

    for i, raw in enumerate(lines):
        line = raw.strip()

        if TOC_MARKER_RE.match(line):
            in_toc_section = True
            continue

        if in_toc_section:
            entry = match_toc_line(line)
            if entry is not None:
                toc.append(entry)
                continue
            # Prose resumes; the line is handled as body text below
            if not line or len(line) > SHORT_LINE_LENGTH:
                in_toc_section = False

        if not line:
            builder.flush()
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else None
        result = classify(line, next_line, continuation=builder.pending)
        if result.is_heading:
            builder.heading(line, result.level)
        else:
            builder.append(line)

    builder.flush()
    return SegmentResult(paragraphs=builder.blocks, toc=toc)


def segment_pages(text: str) -> list[ContentBlock]:
    """Segment text extracted from fixed-layout pages.

    Page extraction leaves blank lines at arbitrary places, so they are
    skipped instead of ending paragraphs.
    """
    lines = [line.strip() for line in LINE_SPLIT_RE.split(text)]
    builder = _BlockBuilder()

    for i, line in enumerate(lines):
        if not line:
            continue

        next_line = lines[i + 1] if i + 1 < len(lines) else None
        result = classify(line, next_line, continuation=builder.pending)
        if result.is_heading:
            builder.heading(line, result.level)
        else:
            builder.append(line)

    builder.flush()
    return builder.blocks


def scan_toc(text: str) -> list[TocEntry]:
    """Collect TOC candidates from anywhere in a page-extracted text.

    Dotted-leader lines carry a page number; other heading-like lines are
    listed without one.
    """
    toc: list[TocEntry] = []

    for raw in LINE_SPLIT_RE.split(text):
        line = raw.strip()
        if not line:
            continue

        dotted = TOC_DOTTED_RE.match(line)
        if dotted:
            title = dotted.group(1).strip()
            toc.append(
                TocEntry(
                    title=title,
                    page=int(dotted.group(2)),
                    level=estimate_heading_level(title),
                )
            )
            continue

        result = classify(line)
        if result.is_heading:
            toc.append(TocEntry(title=line, page=None, level=result.level))

    return toc
