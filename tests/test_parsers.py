"""
Tests for source extractors and format selection

Covers core/parser_factory.py, core/txt_parser.py, core/epub_parser.py and
core/pdf_parser.py. EPUB and PDF fixtures are generated on the fly.

Run: pytest tests/test_parsers.py -v
"""

import json
import logging

import pypdf
import pytest
from ebooklib import epub

from book_normalizer.core import epub_parser, pdf_parser
from book_normalizer.core.book_exporter import export_book
from book_normalizer.core.parser_factory import ParserFactory, parse_file
from book_normalizer.core.pdf_parser import PdfParser, parse_pdf_date
from book_normalizer.core.txt_parser import TxtParser, decode_text, detect_language
from book_normalizer.errors import ParseError, UnsupportedFormatError

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000100e221bc330000000049454e44ae426082"
)


@pytest.fixture
def sample_epub(tmp_path):
    """Two chapters, one image, NCX and nav."""
    book = epub.EpubBook()
    book.set_identifier("sample-001")
    book.set_title("Sample Book")
    book.set_language("en")
    book.add_author("Jane Doe")
    book.add_metadata("DC", "description", "A tiny test book.")
    book.add_metadata("DC", "publisher", "Test Press")

    chap1 = epub.EpubHtml(title="Chapter 1", file_name="chap1.xhtml", lang="en", uid="chap1")
    chap1.content = (
        "<h1>Chapter 1</h1><p>First paragraph.</p>"
        '<p><img src="images/pic.png" alt=""/></p>'
    )
    chap2 = epub.EpubHtml(title="Chapter 2", file_name="chap2.xhtml", lang="en", uid="chap2")
    chap2.content = "<h1>Chapter 2</h1><p>Second paragraph.</p><p>Another one.</p>"
    image = epub.EpubImage(
        uid="pic", file_name="images/pic.png", media_type="image/png", content=PNG_BYTES
    )

    for item in (chap1, chap2, image):
        book.add_item(item)
    book.toc = (
        epub.Link("chap1.xhtml", "Chapter 1", "chap1"),
        epub.Link("chap2.xhtml", "Chapter 2", "chap2"),
    )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = ["nav", chap1, chap2]

    path = tmp_path / "sample.epub"
    epub.write_epub(str(path), book)
    return path


def write_pdf(path, metadata=None):
    writer = pypdf.PdfWriter()
    writer.add_blank_page(width=200, height=200)
    if metadata:
        writer.add_metadata(metadata)
    with open(path, "wb") as f:
        writer.write(f)
    return path


def write_outlined_pdf(path, bookmarks, pages=2):
    """bookmarks: (title, page index or None, parent title or None)."""
    writer = pypdf.PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    added = {}
    for title, page, parent in bookmarks:
        added[title] = writer.add_outline_item(title, page, parent=added.get(parent))
    with open(path, "wb") as f:
        writer.write(f)
    return path


@pytest.fixture
def epub_log(caplog):
    """Capture EPUB parser records even when propagation is switched off."""
    logger = logging.getLogger("book_normalizer.core.epub_parser")
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


# ═══════════════════════════════════════════════════════════════════════════
# Format selection
# ═══════════════════════════════════════════════════════════════════════════

class TestParserFactory:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="File not found"):
            ParserFactory.create(tmp_path / "nope.txt")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "report.docx"
        path.write_bytes(b"PK")

        with pytest.raises(UnsupportedFormatError) as excinfo:
            ParserFactory.create(path)

        assert isinstance(excinfo.value, ValueError)
        assert isinstance(excinfo.value, ParseError)
        assert str(excinfo.value).startswith("Format detection parse failed")
        assert ".docx" in str(excinfo.value)

    def test_detect_format(self):
        assert ParserFactory.detect_format("a/b/book.EPUB") == "epub"
        assert ParserFactory.detect_format("notes.txt") == "txt"
        assert ParserFactory.detect_format("scan.pdf") == "pdf"
        assert ParserFactory.detect_format("letter.doc") == "unknown"

    def test_is_supported(self):
        assert ParserFactory.is_supported("book.txt")
        assert not ParserFactory.is_supported("book")

    def test_parse_file_builds_document(self, tmp_path):
        path = tmp_path / "short.txt"
        path.write_text("Chapter 1\n\nHello world.\n", encoding="utf-8")

        model = parse_file(path)

        assert [b.text for b in model.content] == ["Chapter 1", "Hello world."]
        assert model.stats.total_paragraphs == 2
        assert model.stats.total_words == 4


# ═══════════════════════════════════════════════════════════════════════════
# TXT
# ═══════════════════════════════════════════════════════════════════════════

class TestTxtParser:
    def test_title_and_blocks(self, tmp_path):
        path = tmp_path / "novel.txt"
        path.write_text(
            "My Novel\n\nChapter 1\n\nIt was a dark night.\n", encoding="utf-8"
        )

        result = TxtParser(path).extract()

        assert result.metadata.title == "My Novel"
        assert [b.text for b in result.content] == [
            "My Novel",
            "Chapter 1",
            "It was a dark night.",
        ]
        assert result.content[1].is_heading
        assert result.images == []

    def test_gbk_file(self, tmp_path):
        path = tmp_path / "book.txt"
        path.write_bytes("第一章 开始\n\n这是正文。\n".encode("gbk"))

        result = TxtParser(path).extract()

        assert result.metadata.title == "第一章 开始"
        assert [(b.type, b.text) for b in result.content] == [
            ("heading", "第一章 开始"),
            ("paragraph", "这是正文。"),
        ]

    def test_byte_order_mark_stripped(self):
        assert decode_text("\ufeffTitle\n".encode("utf-8")) == "Title\n"

    def test_title_falls_back_to_stem(self, tmp_path):
        path = tmp_path / "untitled.txt"
        path.write_text("x" * 150 + "\n", encoding="utf-8")

        assert TxtParser(path).extract().metadata.title == "untitled"

    def test_unreadable_file(self, tmp_path):
        with pytest.raises(ParseError) as excinfo:
            TxtParser(tmp_path / "gone.txt").extract()

        assert excinfo.value.stage == "TXT"
        assert str(excinfo.value).startswith("TXT parse failed:")

    def test_detect_language(self):
        assert detect_language("字" * 101) == "zh-CN"
        assert detect_language("word " * 101) == "en"
        assert detect_language("too short", default="en") == "en"
        assert detect_language("too short") == "zh-CN"


# ═══════════════════════════════════════════════════════════════════════════
# EPUB
# ═══════════════════════════════════════════════════════════════════════════

class TestEpubParser:
    def test_metadata(self, sample_epub):
        model = parse_file(sample_epub)
        metadata = model.metadata

        assert metadata.title == "Sample Book"
        assert metadata.author == "Jane Doe"
        assert metadata.language == "en"
        assert metadata.extra_field("description") == "A tiny test book."
        assert metadata.extra_field("publisher") == "Test Press"

    def test_toc_follows_spine(self, sample_epub):
        model = parse_file(sample_epub)

        assert [(e.title, e.id, e.level, e.order) for e in model.table_of_contents] == [
            ("Chapter 1", "chap1", 1, 0),
            ("Chapter 2", "chap2", 1, 1),
        ]

    def test_content_in_spine_order(self, sample_epub):
        model = parse_file(sample_epub, max_workers=2)

        assert [(b.type, b.text, b.chapter_id, b.chapter_index) for b in model.content] == [
            ("heading", "Chapter 1", "chap1", 0),
            ("paragraph", "First paragraph.", "chap1", 0),
            ("heading", "Chapter 2", "chap2", 1),
            ("paragraph", "Second paragraph.", "chap2", 1),
            ("paragraph", "Another one.", "chap2", 1),
        ]
        assert len({b.id for b in model.content}) == len(model.content)

    def test_images_saved_beside_source(self, sample_epub):
        model = parse_file(sample_epub)

        assert len(model.images) == 1
        image = model.images[0]
        assert image.id == "pic"
        assert image.media_type == "image/png"
        assert image.error is None
        saved = sample_epub.parent / "sample_images" / "pic.png"
        assert image.saved_path == str(saved)
        assert saved.read_bytes() == PNG_BYTES
        assert image.size == len(PNG_BYTES)

    def test_corrupt_epub(self, tmp_path):
        path = tmp_path / "broken.epub"
        path.write_bytes(b"this is not a zip archive")

        with pytest.raises(ParseError) as excinfo:
            parse_file(path)

        assert excinfo.value.stage == "EPUB"

    def test_failing_fragment_is_skipped(self, sample_epub, epub_log, monkeypatch):
        real_extract = epub_parser.extract_from_fragment

        def extract(markup, fragment_id, fragment_index):
            if fragment_id == "chap1":
                raise ValueError("malformed markup")
            return real_extract(markup, fragment_id, fragment_index)

        monkeypatch.setattr(epub_parser, "extract_from_fragment", extract)

        model = parse_file(sample_epub, max_workers=2)

        assert [(b.text, b.chapter_id, b.chapter_index) for b in model.content] == [
            ("Chapter 2", "chap2", 1),
            ("Second paragraph.", "chap2", 1),
            ("Another one.", "chap2", 1),
        ]
        assert len(model.table_of_contents) == 2
        warnings = [r for r in epub_log.records if r.levelno == logging.WARNING]
        assert any("chap1" in r.getMessage() for r in warnings)

    def test_export_end_to_end(self, sample_epub, tmp_path):
        model = parse_file(sample_epub)
        result = export_book(model, tmp_path / "bookInfo", sample_epub)

        info = json.loads(result.book_info_path.read_text(encoding="utf-8"))
        assert info["name"] == "Sample Book"
        assert info["summary"] == "A tiny test book."
        assert [c["file"] for c in info["chapters"]] == ["chapter_1", "chapter_2"]

        chapter_2 = json.loads(result.chapter_files[1].read_text(encoding="utf-8"))
        assert [e["en"] for e in chapter_2["pages"][0]] == [
            "Chapter 2",
            "Second paragraph.",
            "Another one.",
        ]


# ═══════════════════════════════════════════════════════════════════════════
# PDF
# ═══════════════════════════════════════════════════════════════════════════

class TestPdfParser:
    def test_metadata(self, tmp_path):
        path = write_pdf(
            tmp_path / "doc.pdf",
            {
                "/Title": "Test PDF",
                "/Author": "Jane Doe",
                "/CreationDate": "D:20230102030405Z",
            },
        )

        result = PdfParser(path).extract()
        metadata = result.metadata

        assert metadata.title == "Test PDF"
        assert metadata.author == "Jane Doe"
        assert metadata.creation_date == "2023-01-02T03:04:05.000Z"
        assert metadata.extra_field("pages") == 1
        assert metadata.extra_field("version")
        assert result.images == []

    def test_blank_pdf_without_title(self, tmp_path):
        path = write_pdf(tmp_path / "scan.pdf")

        model = parse_file(path)

        assert model.metadata.title == ""
        assert model.content == []
        assert model.table_of_contents == []

        # The manifest name still falls back to the file name
        result = export_book(model, tmp_path / "out", path)
        info = json.loads(result.book_info_path.read_text(encoding="utf-8"))
        assert info["name"] == "scan"

    def test_outline_becomes_toc(self, tmp_path):
        path = write_outlined_pdf(
            tmp_path / "outlined.pdf",
            [
                ("Chapter 1", 0, None),
                ("Section 1.1", 0, "Chapter 1"),
                ("Chapter 2", 1, None),
                ("Website", None, None),
            ],
        )

        model = parse_file(path)

        assert [(e.title, e.page, e.level, e.order) for e in model.table_of_contents] == [
            ("Chapter 1", 1, 1, 0),
            ("Section 1.1", 1, 2, 1),
            ("Chapter 2", 2, 1, 2),
            ("Website", None, 1, 3),
        ]

    def test_single_bookmark_falls_back_to_text_scan(self, tmp_path, monkeypatch):
        path = write_outlined_pdf(tmp_path / "one.pdf", [("Only Bookmark", 0, None)])
        monkeypatch.setattr(
            pdf_parser,
            "extract_text_with_fallback",
            lambda pdf_path, reader: "Introduction ........ 3\nChapter 1\nIt begins here.\n",
        )

        result = PdfParser(path).extract()

        assert [(e.title, e.page) for e in result.toc] == [
            ("Introduction", 3),
            ("Chapter 1", None),
        ]

    def test_structure_errors_carry_stage(self, tmp_path, monkeypatch):
        path = write_pdf(tmp_path / "doc.pdf")

        def broken_outline(self):
            raise RuntimeError("bad outline tree")

        monkeypatch.setattr(PdfParser, "_outline_toc", broken_outline)

        with pytest.raises(ParseError) as excinfo:
            PdfParser(path).extract()

        assert excinfo.value.stage == "PDF"
        assert str(excinfo.value).startswith("PDF parse failed:")
        assert "bad outline tree" in str(excinfo.value)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.pdf"
        path.write_bytes(b"")

        with pytest.raises(ParseError) as excinfo:
            PdfParser(path).extract()

        assert excinfo.value.stage == "PDF"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("D:20230102030405Z", "2023-01-02T03:04:05.000Z"),
            ("D:20230102030405+08'00'", "2023-01-02T03:04:05.000Z"),
            ("D:2023", "2023-01-01T00:00:00.000Z"),
            ("D:20231399", None),
            ("garbage", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_pdf_date(self, value, expected):
        assert parse_pdf_date(value) == expected
