"""EPUB parsing using ebooklib."""

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import ebooklib
from ebooklib import epub

from book_normalizer.config import get_settings
from book_normalizer.core.image_store import ImageAsset, ImageStore, images_dir_for
from book_normalizer.core.markup_extractor import extract_from_fragment
from book_normalizer.errors import ParseError
from book_normalizer.models.document import ContentBlock, ImageRef, Metadata, TocEntry
from book_normalizer.models.extraction import ExtractionResult

log = logging.getLogger(__name__)


class EpubParser:
    """Parse EPUB files into blocks, TOC and images."""

    def __init__(self, epub_path: Path, max_workers: int = 4):
        self.path = epub_path
        self.max_workers = max_workers
        self.book: epub.EpubBook | None = None

    def extract(self) -> ExtractionResult:
        """Read the EPUB and extract every part of the document."""
        try:
            self.book = epub.read_epub(str(self.path))
        except Exception as e:
            raise ParseError("EPUB", f"cannot open {self.path.name}: {e}") from e

        try:
            return ExtractionResult(
                metadata=self._get_metadata(),
                toc=self._get_toc(),
                content=self._get_content(),
                images=self._get_images(),
            )
        except ParseError:
            raise
        except Exception as e:
            raise ParseError("EPUB", f"content extraction failed: {e}") from e

    def _dc(self, name: str) -> list[str]:
        return [str(value) for value, _ in self.book.get_metadata("DC", name) if value]

    def _dc_first(self, name: str) -> str:
        values = self._dc(name)
        return values[0] if values else ""

    def _get_metadata(self) -> Metadata:
        """Extract Dublin Core metadata."""
        creators = ", ".join(self._dc("creator"))
        subjects = ", ".join(self._dc("subject"))
        return Metadata(
            title=self._dc_first("title"),
            author=creators,
            creator=creators,
            subject=subjects,
            keywords=subjects,
            language=self._dc_first("language") or get_settings().default_language,
            publisher=self._dc_first("publisher"),
            description=self._dc_first("description"),
            date=self._dc_first("date") or None,
        )

    def _spine_documents(self) -> list[epub.EpubItem]:
        """Document items in reading order, without the navigation document."""
        documents = []
        for idref, _linear in self.book.spine:
            item = self.book.get_item_with_id(idref)
            if item is None or isinstance(item, epub.EpubNav):
                continue
            if item.get_type() == ebooklib.ITEM_DOCUMENT:
                documents.append(item)
        return documents

    def _get_toc(self) -> list[TocEntry]:
        """One entry per spine document that the navigation gives a title."""
        toc_titles = self._build_toc_title_map()
        entries = []

        for order, item in enumerate(self._spine_documents()):
            found = toc_titles.get(item.get_name())
            if found is None:
                continue
            title, level = found
            entries.append(
                TocEntry(title=title, id=item.get_id(), level=level, order=order)
            )

        return entries

    def _build_toc_title_map(self) -> dict[str, tuple[str, int]]:
        """Build a map of file names to (TOC title, level)."""
        title_map: dict[str, tuple[str, int]] = {}
        self._collect_toc_titles(self.book.toc, title_map, level=1)
        return title_map

    def _collect_toc_titles(
        self, toc_items: list, title_map: dict[str, tuple[str, int]], level: int
    ) -> None:
        """Recursively collect titles from TOC."""
        for item in toc_items:
            if isinstance(item, tuple):
                # Section with children: (Section, [children])
                section, children = item
                self._add_toc_title(section, title_map, level)
                self._collect_toc_titles(children, title_map, level + 1)
            else:
                self._add_toc_title(item, title_map, level)

    @staticmethod
    def _add_toc_title(
        link: object, title_map: dict[str, tuple[str, int]], level: int
    ) -> None:
        href = getattr(link, "href", None)
        title = getattr(link, "title", None)
        if href and title:
            # Extract file name (remove fragment)
            file_ref = href.split("#")[0]
            title_map.setdefault(file_ref, (title, level))

    def _get_content(self) -> list[ContentBlock]:
        """Extract blocks from every spine document concurrently.

        Results are concatenated in spine order; a fragment that fails is
        logged and skipped.
        """
        documents = self._spine_documents()
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            per_fragment = executor.map(
                self._extract_fragment, documents, range(len(documents))
            )
            return [block for blocks in per_fragment for block in blocks]

    def _extract_fragment(self, item: epub.EpubItem, index: int) -> list[ContentBlock]:
        try:
            return extract_from_fragment(item.get_content(), item.get_id(), index)
        except Exception as e:
            log.warning("Fragment %s could not be read: %s", item.get_id(), e)
            return []

    def _get_images(self) -> list[ImageRef]:
        """Save every manifest image beside the EPUB."""
        assets = [
            ImageAsset(
                id=item.get_id(),
                href=item.get_name(),
                media_type=item.media_type or "image/unknown",
                load=item.get_content,
            )
            for item in self.book.get_items()
            if (item.media_type or "").startswith("image/")
        ]
        if not assets:
            return []

        settings = get_settings()
        store = ImageStore(
            images_dir_for(self.path, settings.images_dir_suffix),
            max_workers=self.max_workers,
        )
        return store.save_all(assets)
