"""Extract headings and paragraphs from (X)HTML fragments."""

import re
import warnings

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning

from book_normalizer.models.document import ContentBlock

# Suppress XML parsing warnings - EPUB files often use XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
BLOCK_TAGS = HEADING_TAGS + ["p"]
DROPPED_TAGS = ["script", "style"]

WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including non-breaking spaces)."""
    return WHITESPACE_RE.sub(" ", text).strip()


def _parse(markup: str | bytes) -> BeautifulSoup:
    soup = BeautifulSoup(markup, "lxml")
    for tag in soup(DROPPED_TAGS):
        tag.decompose()
    return soup


def strip_markup(markup: str | bytes) -> str:
    """Remove tags, decode entities and collapse whitespace."""
    return normalize_whitespace(_parse(markup).get_text(" "))


def _block_text(tag: Tag) -> str:
    return normalize_whitespace(tag.get_text(" "))


def extract_from_fragment(
    markup: str | bytes, fragment_id: str, fragment_index: int
) -> list[ContentBlock]:
    """Extract blocks from one markup fragment in source order.

    Headings map their level from the tag name. When the fragment holds no
    heading or paragraph elements, each non-blank text line becomes a
    paragraph instead.

    Args:
        markup: Raw (X)HTML of the fragment
        fragment_id: Identifier of the fragment, stored as chapter_id
        fragment_index: Position of the fragment, stored as chapter_index

    Returns:
        Blocks tagged with the fragment's chapter id and index
    """
    soup = _parse(markup)
    chapter = {"chapter_id": fragment_id, "chapter_index": fragment_index}
    blocks: list[ContentBlock] = []

    for tag in soup.find_all(BLOCK_TAGS):
        # Nested block elements are covered by their outermost ancestor
        if tag.find_parent(BLOCK_TAGS) is not None:
            continue

        text = _block_text(tag)
        if not text:
            continue

        if tag.name in HEADING_TAGS:
            blocks.append(
                ContentBlock.heading(
                    f"{fragment_id}_heading_{len(blocks)}",
                    text,
                    int(tag.name[1]),
                    **chapter,
                )
            )
        else:
            blocks.append(
                ContentBlock.paragraph(
                    f"{fragment_id}_para_{len(blocks)}", text, **chapter
                )
            )

    if blocks:
        return blocks

    # Degraded content: fall back to raw text lines
    for line in soup.get_text("\n").splitlines():
        text = normalize_whitespace(line)
        if text:
            blocks.append(
                ContentBlock.paragraph(
                    f"{fragment_id}_para_{len(blocks)}", text, **chapter
                )
            )

    return blocks
