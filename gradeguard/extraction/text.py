"""Whitespace and line normalization that keeps page boundaries intact."""

import re
import unicodedata
from collections.abc import Iterator

PAGE_BREAK = "\f"

_INLINE_SPACE_RE = re.compile(r"[ \t]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_TRAILING_PAGE_NUMBER_RE = re.compile(r"\s+(\d{1,3})\s*$")

# Typographic characters PDF text layers emit. Superscripts and math symbols
# are left alone because equation detection depends on them.
_TYPOGRAPHIC_FOLDS = str.maketrans(
    {
        0x00A0: " ",  # no-break space
        0x2002: " ",
        0x2003: " ",
        0x2009: " ",
        0x202F: " ",
        0x00AD: None,  # soft hyphen
        0x200B: None,  # zero width space
        0xFEFF: None,
        0xFB00: "ff",
        0xFB01: "fi",
        0xFB02: "fl",
        0xFB03: "ffi",
        0xFB04: "ffl",
        0x2018: "'",
        0x2019: "'",
        0x201C: '"',
        0x201D: '"',
        0x2022: "-",  # bullet
        0xF0B7: "-",  # symbol-font bullet
    }
)


def normalize_text(text: str) -> str:
    """Normalize raw extracted text.

    Folds typographic characters (ligatures, non-breaking spaces, smart
    quotes, bullets), unifies line endings, collapses in-line whitespace
    (a single space stays single, any wider gap becomes two spaces) and
    long blank runs. The page break character survives so page boundaries
    can be recovered later.
    """
    if not text:
        return ""
    folded = unicodedata.normalize("NFC", text).translate(_TYPOGRAPHIC_FOLDS)
    folded = folded.replace("\r\n", "\n").replace("\r", "\n")
    pages = [_normalize_page(page) for page in folded.split(PAGE_BREAK)]
    return PAGE_BREAK.join(pages).strip(" \n")


def _collapse_gap(match: re.Match[str]) -> str:
    # Wide gaps and tabs separate table columns; keep them visible as two spaces.
    return " " if match.group(0) == " " else "  "


def _normalize_page(page: str) -> str:
    lines = [_INLINE_SPACE_RE.sub(_collapse_gap, line).strip() for line in page.split("\n")]
    joined = "\n".join(lines)
    return _BLANK_RUN_RE.sub("\n\n", joined).strip("\n")


def normalize_whitespace(s: str) -> str:
    return re.sub(r"\s+", " ", s or "").strip()


def has_page_breaks(text: str) -> bool:
    return PAGE_BREAK in (text or "")


def split_pages(text: str) -> list[str]:
    """Split on page breaks; text without breaks is a single page."""
    if not text:
        return []
    parts = text.split(PAGE_BREAK)
    if len(parts) == 1:
        return [text]
    return [part.strip("\n") for part in parts]


def join_pages(pages: list[str]) -> str:
    return PAGE_BREAK.join(pages)


def to_lines(text: str) -> list[str]:
    """Non-empty, whitespace-collapsed lines (page breaks treated as newlines)."""
    cleaned = (text or "").replace("\r", "").replace(PAGE_BREAK, "\n")
    return [line for line in (normalize_whitespace(raw) for raw in cleaned.split("\n")) if line]


def page_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield (page_number, line) pairs, page numbers starting at 1."""
    for idx, page in enumerate(split_pages(text), start=1):
        for line in page.split("\n"):
            yield idx, line


def clean_trailing_page_number(s: str) -> str:
    """Drop a trailing page number flattened onto the end of a line.

    Only applied when what is left is still a meaningful line.
    """
    t = (s or "").strip()
    stripped = _TRAILING_PAGE_NUMBER_RE.sub("", t)
    return stripped if len(stripped) >= 20 else t
