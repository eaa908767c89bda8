"""Heading detection and level estimation for plain text lines.

Both cascades are best-effort pattern matches: they guess whether a line
reads like a heading and roughly how deep it sits, without any layout
information. Rules are evaluated top to bottom and the first match wins.
"""

import re
from dataclasses import dataclass
from typing import Callable

from book_normalizer.models.extraction import Classification

MAX_HEADING_LENGTH = 100
SHORT_LINE_LENGTH = 50

CJK_NUMERALS = "一二三四五六七八九十百千零〇两"

CJK_CHAPTER_RE = re.compile(rf"^第[{CJK_NUMERALS}\d]+(章|节|部分|篇|卷|部)")
# Roman numerals are upper case only
LATIN_CHAPTER_RE = re.compile(r"^(?i:chapter)\s+(\d+|[IVXLCDM]+)\b")
ALL_CAPS_RE = re.compile(r"^[A-Z\s]+$")
OUTLINE_PREFIX_RE = re.compile(r"^\d+[.、]\s*")
OUTLINE_DEPTH_RE = re.compile(r"^(\d+(?:[.、]\d+)*)([.、])?")
OUTLINE_SEPARATOR_RE = re.compile(r"[.、]")
LATIN_KEYWORD_RE = re.compile(
    r"^(chapter|volume|subsection|section|part)\b", re.IGNORECASE
)

CJK_SENTENCE_MARKS = ("。", "，")
SENTENCE_ENDINGS = (".", "!", "?", ";", ":", ",", "！", "？", "；", "：")
CLOSING_MARKS = "\"'”’)）」』"

CJK_LEVELS = {"章": 1, "卷": 1, "部": 1, "节": 2, "篇": 2, "部分": 3}
LATIN_LEVELS = {
    "chapter": 1,
    "volume": 1,
    "section": 2,
    "subsection": 2,
    "part": 3,
}


@dataclass(frozen=True)
class HeadingRule:
    """One step of the heading cascade."""

    name: str
    test: Callable[[str, str | None, bool], bool]
    verdict: bool


def _has_sentence_punctuation(line: str) -> bool:
    if any(mark in line for mark in CJK_SENTENCE_MARKS):
        return True
    return line.rstrip(CLOSING_MARKS).endswith(SENTENCE_ENDINGS)


def _is_all_caps(line: str) -> bool:
    return bool(ALL_CAPS_RE.match(line)) and 3 < len(line) < SHORT_LINE_LENGTH


def _is_weak_heading(line: str, next_line: str | None, continuation: bool) -> bool:
    # Only a fresh, unpunctuated line may be promoted on shape alone
    if continuation or _has_sentence_punctuation(line):
        return False
    if next_line is not None and not next_line.strip():
        return True
    return len(line) < SHORT_LINE_LENGTH


HEADING_RULES: tuple[HeadingRule, ...] = (
    HeadingRule("too_long", lambda l, n, c: len(l) > MAX_HEADING_LENGTH, False),
    HeadingRule("cjk_chapter", lambda l, n, c: bool(CJK_CHAPTER_RE.match(l)), True),
    HeadingRule(
        "latin_chapter", lambda l, n, c: bool(LATIN_CHAPTER_RE.match(l)), True
    ),
    HeadingRule("all_caps", lambda l, n, c: _is_all_caps(l), True),
    HeadingRule(
        "outline_prefix", lambda l, n, c: bool(OUTLINE_PREFIX_RE.match(l)), True
    ),
    HeadingRule("weak_shape", _is_weak_heading, True),
)


def is_likely_heading(
    line: str, next_line: str | None = None, continuation: bool = False
) -> bool:
    """Decide whether a line reads like a heading.

    Args:
        line: The line to classify (surrounding whitespace is ignored)
        next_line: The following raw line, used as lookahead
        continuation: True while a paragraph is being accumulated; the weak
            shape-only signal is suppressed so prose is never split

    Returns:
        True if the first matching rule says heading
    """
    line = line.strip()
    if not line:
        return False

    for rule in HEADING_RULES:
        if rule.test(line, next_line, continuation):
            return rule.verdict
    return False


def estimate_heading_level(text: str) -> int:
    """Estimate the nesting level of a heading.

    Numeric outline depth wins, then chapter/section/part keywords, then a
    length bucket. Approximate; callers should not rely on exact levels.
    """
    text = text.strip()

    outline = OUTLINE_DEPTH_RE.match(text)
    if outline and (outline.group(2) or OUTLINE_SEPARATOR_RE.search(outline.group(1))):
        # "1.2.3 Title" -> 3
        return len(OUTLINE_SEPARATOR_RE.split(outline.group(1)))

    cjk = CJK_CHAPTER_RE.match(text)
    if cjk:
        return CJK_LEVELS[cjk.group(1)]

    latin = LATIN_KEYWORD_RE.match(text)
    if latin:
        return LATIN_LEVELS[latin.group(1).lower()]

    if len(text) < 20:
        return 1
    if len(text) < 40:
        return 2
    return 3


def classify(
    line: str, next_line: str | None = None, continuation: bool = False
) -> Classification:
    """Classify a line as heading or body text.

    Pure function of its inputs; the level is 0 for non-headings.
    """
    if is_likely_heading(line, next_line, continuation):
        return Classification(True, estimate_heading_level(line))
    return Classification(False, 0)
