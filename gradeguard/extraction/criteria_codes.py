import re
from collections.abc import Iterable
from dataclasses import dataclass

_CODE_RE = re.compile(r"^([PMD])\s*(\d+)$")
_CODE_IN_TEXT_RE = re.compile(r"\b([PMD])\s*(\d{1,2})\b", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"\[\[[^\]]+\]\]")

BAND_RANK = {"P": 0, "M": 1, "D": 2}
BAND_NAMES = {"P": "PASS", "M": "MERIT", "D": "DISTINCTION"}


@dataclass(frozen=True)
class CriterionCode:
    band: str
    number: int

    def __str__(self) -> str:
        return f"{self.band}{self.number}"

    @property
    def band_name(self) -> str:
        return BAND_NAMES[self.band]


def normalize_criterion_code(raw: object) -> CriterionCode | None:
    """Parse ``raw`` into a canonical criterion code.

    ``"m 03"`` becomes ``M3``. Anything that is not a band letter followed
    by a positive number gives ``None``.
    """
    if raw is None:
        return None
    match = _CODE_RE.match(str(raw).strip().upper())
    if not match:
        return None
    number = int(match.group(2))
    if number < 1:
        return None
    return CriterionCode(band=match.group(1), number=number)


def normalize_code_string(raw: object) -> str | None:
    code = normalize_criterion_code(raw)
    return str(code) if code else None


def code_sort_key(code: str | CriterionCode) -> tuple[int, int, str]:
    text = str(code)
    rank = BAND_RANK.get(text[:1], 9)
    digits = re.search(r"\d+", text)
    return rank, int(digits.group(0)) if digits else 0, text


def sort_codes(codes: Iterable[str]) -> list[str]:
    return sorted(codes, key=code_sort_key)


def unique_sorted_codes(raws: Iterable[object]) -> list[str]:
    seen: set[str] = set()
    for raw in raws or []:
        normalized = normalize_code_string(raw)
        if normalized:
            seen.add(normalized)
    return sort_codes(seen)


def strip_placeholders(text: str) -> str:
    return _PLACEHOLDER_RE.sub(" ", text or "")


def extract_codes_from_text(text: str) -> list[str]:
    """Criterion codes mentioned in free text, deduplicated and sorted.

    Placeholder tokens such as ``[[EQ:p4-eq1]]`` are removed first so their
    ids are never read as codes.
    """
    if not text:
        return []
    scrubbed = strip_placeholders(text)
    return unique_sorted_codes(f"{band}{num}" for band, num in _CODE_IN_TEXT_RE.findall(scrubbed))
