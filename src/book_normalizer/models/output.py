"""Data models for the exported book and chapter files."""

from pathlib import Path

from pydantic import BaseModel, Field

from book_normalizer.models.document import CamelModel


class ChapterRef(CamelModel):
    """Chapter derived at export time."""

    name: str
    file: str  # Slug, unique within one export
    index: int  # 1-based
    zh: str = ""
    toc_id: str | None = None


class BookChapter(CamelModel):
    """Chapter listing as written to bookinfo.json."""

    name: str
    file: str
    index: int
    zh: str = ""


class BookInfo(CamelModel):
    """Book manifest persisted as bookinfo.json."""

    name: str
    zh: str = ""
    summary: str = ""
    cover: str = ""
    chapters: list[BookChapter] = Field(default_factory=list)
    file_path: str
    book_id: str


class PageEntry(CamelModel):
    """One block of text on a chapter page."""

    en: str
    zh: str = ""
    id: str


class ChapterFile(CamelModel):
    """Per-chapter file persisted as <slug>.json."""

    name: str
    zh: str = ""
    pages: list[list[PageEntry]] = Field(default_factory=list)


class ExportResult(BaseModel):
    """Paths and identifier produced by one export call."""

    book_info_path: Path
    chapter_files: list[Path] = Field(default_factory=list)
    book_id: str
