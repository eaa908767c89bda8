"""Partition a document into chapters and write book/chapter files."""

import logging
import re
import uuid
from collections.abc import Iterable
from pathlib import Path

from book_normalizer.core.id_generator import IdGenerator, generate_unique_id
from book_normalizer.models.document import ContentBlock, DocumentModel, TocEntry
from book_normalizer.models.output import (
    BookChapter,
    BookInfo,
    ChapterFile,
    ChapterRef,
    ExportResult,
    PageEntry,
)

log = logging.getLogger(__name__)

BOOK_INFO_FILE = "bookinfo.json"
MAX_SLUG_LENGTH = 50
MAX_SYNTHESIZED_NAME_LENGTH = 80

# Manifest ids of front/back matter that never count as chapters
EXCLUDED_TOC_IDS = frozenset(
    {
        "cover",
        "cvi",
        "titlepage",
        "tp",
        "copyright",
        "cop",
        "toc",
        "nav",
        "dedication",
        "ded",
    }
)
EXCLUDED_TITLE_KEYWORDS = (
    "cover",
    "title page",
    "copyright",
    "contents",
    "toc",
    "dedication",
    "preview",
    "special preview",
)

CHAPTER_NUMBER_RE = re.compile(r"^chapter\s+(\d+)\b")
NON_SLUG_RE = re.compile(r"[^a-z0-9 ]")
WHITESPACE_RE = re.compile(r"\s+")


def is_valid_chapter(entry: TocEntry) -> bool:
    """Return False for cover, copyright, contents and similar entries."""
    if entry.id:
        entry_id = entry.id.lower()
        if entry_id in EXCLUDED_TOC_IDS or entry_id.split(".")[0] in EXCLUDED_TOC_IDS:
            return False

    title = entry.title.lower()
    return not any(keyword in title for keyword in EXCLUDED_TITLE_KEYWORDS)


def slugify_chapter_name(name: str, index: int) -> str:
    """Derive a file-safe base name from a chapter name.

    "Chapter 3: The Storm" -> "chapter_3"; "The Storm" -> "the_storm".
    Falls back to chapter_<index> when nothing usable remains.
    """
    slug = NON_SLUG_RE.sub("", name.lower())
    slug = WHITESPACE_RE.sub(" ", slug).strip()

    numbered = CHAPTER_NUMBER_RE.match(slug)
    if numbered:
        slug = f"chapter_{numbered.group(1)}"
    else:
        slug = slug.replace(" ", "_")

    slug = slug[:MAX_SLUG_LENGTH].strip("_")
    return slug or f"chapter_{index}"


def unique_slug(slug: str, taken: set[str]) -> str:
    """Append _1, _2, ... until the slug is not in taken."""
    if slug not in taken:
        return slug
    counter = 1
    while f"{slug}_{counter}" in taken:
        counter += 1
    return f"{slug}_{counter}"


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit].rstrip()


class BookExporter:
    """Write bookinfo.json and one JSON file per chapter."""

    def __init__(self, output_dir: Path, id_generator: IdGenerator | None = None):
        """Initialize book exporter.

        Args:
            output_dir: Directory to write output files (created if missing)
            id_generator: Source of page entry ids; defaults to the
                process-wide generator
        """
        self.output_dir = Path(output_dir)
        self._next_id = id_generator.next_id if id_generator else generate_unique_id

    def export(self, model: DocumentModel, source_path: Path) -> ExportResult:
        """Export a parsed document. Filesystem errors propagate unchanged."""
        book_id = uuid.uuid4().hex
        self.output_dir.mkdir(parents=True, exist_ok=True)

        chapters = self.derive_chapters(model)
        book_info_path = self.write_book_info(model, chapters, source_path, book_id)

        buckets = self.group_blocks(model.content, chapters)
        chapter_files = [
            self.write_chapter(chapter, buckets[chapter.index]) for chapter in chapters
        ]

        log.info(
            "Exported %d chapter(s) for %s to %s",
            len(chapter_files),
            source_path,
            self.output_dir,
        )
        return ExportResult(
            book_info_path=book_info_path,
            chapter_files=chapter_files,
            book_id=book_id,
        )

    def derive_chapters(self, model: DocumentModel) -> list[ChapterRef]:
        """Pick chapters from the TOC, the blocks' fragments, or a default."""
        candidates = [
            (entry.title, entry.id)
            for entry in model.table_of_contents
            if is_valid_chapter(entry)
        ]

        if not candidates:
            candidates = self._chapters_from_fragments(model.content)
            if candidates:
                log.debug("No usable TOC entries, using %d fragments", len(candidates))

        if not candidates:
            log.debug("No TOC or fragments, synthesizing a single chapter")
            candidates = [(model.metadata.title or "Chapter 1", None)]

        # bookinfo.json shares the directory with chapter files
        taken = {Path(BOOK_INFO_FILE).stem}
        chapters = []
        for position, (name, toc_id) in enumerate(candidates, start=1):
            slug = unique_slug(slugify_chapter_name(name, position), taken)
            taken.add(slug)
            chapters.append(
                ChapterRef(name=name, file=slug, index=position, toc_id=toc_id)
            )
        return chapters

    def _chapters_from_fragments(
        self, content: Iterable[ContentBlock]
    ) -> list[tuple[str, str | None]]:
        first_blocks: dict[str, ContentBlock] = {}
        for block in content:
            if block.chapter_id and block.chapter_id not in first_blocks:
                first_blocks[block.chapter_id] = block

        return [
            (
                _truncate(block.text, MAX_SYNTHESIZED_NAME_LENGTH)
                or f"Chapter {position}",
                chapter_id,
            )
            for position, (chapter_id, block) in enumerate(
                first_blocks.items(), start=1
            )
        ]

    def group_blocks(
        self, content: Iterable[ContentBlock], chapters: list[ChapterRef]
    ) -> dict[int, list[ContentBlock]]:
        """Bucket blocks by chapter index; unmatched blocks join the first chapter."""
        buckets: dict[int, list[ContentBlock]] = {c.index: [] for c in chapters}
        by_toc_id: dict[str, int] = {}
        for chapter in chapters:
            if chapter.toc_id:
                by_toc_id.setdefault(chapter.toc_id, chapter.index)
        fallback = chapters[0].index

        for block in content:
            buckets[by_toc_id.get(block.chapter_id, fallback)].append(block)
        return buckets

    def build_pages(self, blocks: Iterable[ContentBlock]) -> list[list[PageEntry]]:
        """Lay out a chapter's blocks as a single page."""
        page = [
            PageEntry(en=block.text.strip(), id=self._next_id())
            for block in blocks
            if block.text.strip()
        ]
        return [page]

    def write_book_info(
        self,
        model: DocumentModel,
        chapters: list[ChapterRef],
        source_path: Path,
        book_id: str,
    ) -> Path:
        """Write bookinfo.json."""
        metadata = model.metadata
        book_info = BookInfo(
            name=metadata.title or Path(source_path).stem,
            summary=str(
                metadata.extra_field("description") or metadata.subject or ""
            ),
            chapters=[
                BookChapter(name=c.name, file=c.file, index=c.index, zh=c.zh)
                for c in chapters
            ],
            file_path=str(source_path),
            book_id=book_id,
        )

        filepath = self.output_dir / BOOK_INFO_FILE
        filepath.write_text(
            book_info.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        return filepath

    def write_chapter(self, chapter: ChapterRef, blocks: list[ContentBlock]) -> Path:
        """Write a single chapter to <slug>.json."""
        output = ChapterFile(name=chapter.name, pages=self.build_pages(blocks))

        filepath = self.output_dir / f"{chapter.file}.json"
        filepath.write_text(
            output.model_dump_json(by_alias=True, indent=2), encoding="utf-8"
        )
        return filepath


def export_book(
    model: DocumentModel, output_dir: Path, source_path: Path
) -> ExportResult:
    """Export a document with a fresh exporter."""
    return BookExporter(output_dir).export(model, source_path)
