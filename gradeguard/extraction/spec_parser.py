"""Unit specification parsing: unit metadata, learning outcomes and the
P/M/D assessment criteria grouped under each outcome."""

import re

from gradeguard.extraction.criteria_codes import BAND_NAMES, code_sort_key
from gradeguard.extraction.models import (
    AssessmentCriterion,
    LearningOutcome,
    ParsedSpec,
    UnitInfo,
)
from gradeguard.extraction.text import clean_trailing_page_number, normalize_whitespace, to_lines

_DASH_CLASS = "[:" + chr(0x2013) + r"\-]"

_LO_INLINE_RE = re.compile(r"^(LO\s*\d{1,2})\b\s*" + _DASH_CLASS + r"?\s*(.*)$", re.IGNORECASE)
_LO_LONG_RE = re.compile(
    r"^Learning\s*Outcome\s*(\d{1,2})\b\s*" + _DASH_CLASS + r"?\s*(.*)$", re.IGNORECASE
)
_LO_GLUED_RE = re.compile(r"\b(LO\d{1,2})(?=[A-Za-z])", re.IGNORECASE)
_LO_HEADING_RE = re.compile(r"^(?:Learning\s+Outcome\s+)?(LO\s*\d{1,2})\b", re.IGNORECASE)
_HARD_STOP_RES = [
    re.compile(r"^Assessment\s*criteria\b", re.IGNORECASE),
    re.compile(r"^Essential\s*content\b", re.IGNORECASE),
    re.compile(r"^Pass\b", re.IGNORECASE),
    re.compile(r"^Merit\b", re.IGNORECASE),
    re.compile(r"^Distinction\b", re.IGNORECASE),
]
_FOOTER_LINE_RES = [
    re.compile(r"(?:" + chr(0xA9) + r"|\(c\))\s*pearson", re.IGNORECASE),
    re.compile(r"\bpearson\s*education\b", re.IGNORECASE),
    re.compile(r"\beducation\s*limited\b", re.IGNORECASE),
    re.compile(r"\bengineering\s*suite\b", re.IGNORECASE),
    re.compile(r"\blearning\s*outcomes?\s*&?\s*(?:and\s*)?assessment\s*criteria\b", re.IGNORECASE),
    re.compile(r"\bissue\s*\d+\b", re.IGNORECASE),
    re.compile(r"^\d{1,4}$"),
    re.compile(r"^page\s*\d{1,4}$", re.IGNORECASE),
]
_FOOTER_TAIL_RES = [
    re.compile(r"\bengineering\s*suite\b", re.IGNORECASE),
    re.compile(r"\bissue\s*\d+\b", re.IGNORECASE),
    re.compile(chr(0xA9)),
    re.compile(r"\bpearson\b", re.IGNORECASE),
]

_REGION_START_RE = re.compile(r"Learning Outcomes and Assessment Criteria", re.IGNORECASE)
_REGION_END_RE = re.compile(
    r"^(Essential Content|Recommended Resources|Journals|Links|This unit links to)\b", re.IGNORECASE
)
_CRITERION_RE = re.compile(r"^([PMD])\s*(\d{1,2})\b\s*(.*)$", re.IGNORECASE)
_LO_AND_CRITERION_RE = re.compile(r"\b(LO\d{1,2})\b\s+([PMD])\s*(\d{1,2})\b\s*(.*)$", re.IGNORECASE)
_BAND_BANNER_RE = re.compile(r"\b(?:page\s*)?(?:\d{1,4}\s+)?pass\s+merit\s+distinction\b", re.IGNORECASE)

_UNIT_CODE_RE = re.compile(r"\bUnit\s+(\d{4})\b", re.IGNORECASE)
_ISSUE_RE = re.compile(r"\bIssue\s+(\d+)\b", re.IGNORECASE)
_TITLE_STOP_RE = re.compile(
    r"(engineering suite|" + chr(0xA9) + r"|pearson|higher nationals|unit descriptor|learning outcomes"
    r"|assessment criteria|level\b|credits\b|guided learning|summary of unit|essential content)",
    re.IGNORECASE,
)


def _lo_code(raw: str) -> str:
    digits = re.sub(r"\D", "", raw)
    return f"LO{int(digits)}" if digits else raw.upper().replace(" ", "")


def _is_footer_line(line: str) -> bool:
    s = line.strip()
    if not s:
        return True
    if len(s) > 140 and re.search(r"pearson|suite|issue|" + chr(0xA9), s, re.IGNORECASE):
        return True
    return any(p.search(s) for p in _FOOTER_LINE_RES)


def _strip_footer_tail(s: str) -> str:
    t = (s or "").strip()
    cut = -1
    for pattern in _FOOTER_TAIL_RES:
        match = pattern.search(t)
        if match and (cut == -1 or match.start() < cut):
            cut = match.start()
    if cut > 0:
        t = t[:cut].strip()
    return re.sub(r"\s+\d{1,4}\s*$", "", t).strip()


def parse_learning_outcomes(text: str) -> list[LearningOutcome]:
    """Learning outcome codes with their (possibly wrapped) descriptions.

    The first description seen for a code wins; results are ordered by
    outcome number.
    """
    outcomes: list[LearningOutcome] = []
    current: LearningOutcome | None = None

    def flush() -> None:
        nonlocal current
        if current is not None:
            current.description = normalize_whitespace(current.description)
            if current.description and all(o.lo_code != current.lo_code for o in outcomes):
                outcomes.append(current)
        current = None

    for raw in to_lines(text):
        fixed = _LO_GLUED_RE.sub(r"\1 ", raw).strip()
        if current is not None and (
            any(p.search(fixed) for p in _HARD_STOP_RES) or _CRITERION_RE.match(fixed)
        ):
            flush()
            continue

        match = _LO_INLINE_RE.match(fixed) or _LO_LONG_RE.match(fixed)
        if match:
            flush()
            rest = normalize_whitespace(_strip_footer_tail(match.group(2)))
            current = LearningOutcome(lo_code=_lo_code(match.group(1)), description=rest)
            continue

        if current is None or _is_footer_line(fixed):
            continue
        extra = normalize_whitespace(_strip_footer_tail(fixed))
        if extra:
            current.description = f"{current.description} {extra}".strip()

    flush()
    outcomes.sort(key=lambda o: int(re.sub(r"\D", "", o.lo_code) or 0))
    return outcomes


def _criteria_region(lines: list[str]) -> list[str]:
    start = next((i for i, line in enumerate(lines) if _REGION_START_RE.search(line)), None)
    base = lines[start:] if start is not None else lines
    end = next((i for i, line in enumerate(base) if _REGION_END_RE.search(line)), None)
    return base[:end] if end is not None else base


def _clean_criterion_line(line: str) -> str:
    s = normalize_whitespace(line)
    s = _BAND_BANNER_RE.sub(" ", s)
    s = re.sub(r"\s+\d{1,4}\s*$", "", s)
    if len(s) > 80:
        cut = -1
        for pattern in _FOOTER_TAIL_RES:
            match = pattern.search(s)
            if match and match.start() >= 25 and (cut == -1 or match.start() < cut):
                cut = match.start()
        if cut > 0:
            s = s[:cut]
    return normalize_whitespace(clean_trailing_page_number(normalize_whitespace(s)))


def parse_criteria_by_outcome(text: str, lo_codes: list[str]) -> dict[str, list[AssessmentCriterion]]:
    wanted = {code.upper() for code in lo_codes}
    by_lo: dict[str, list[AssessmentCriterion]] = {code: [] for code in wanted}
    current_lo: str | None = None
    current_code: str | None = None
    desc_parts: list[str] = []

    def flush() -> None:
        nonlocal current_code, desc_parts
        if current_lo and current_code:
            description = _clean_criterion_line(" ".join(desc_parts))
            bucket = by_lo.setdefault(current_lo, [])
            if description and all(c.code != current_code for c in bucket):
                bucket.append(
                    AssessmentCriterion(
                        code=current_code,
                        band=BAND_NAMES[current_code[0]],
                        description=description,
                    )
                )
        current_code = None
        desc_parts = []

    for raw in _criteria_region(to_lines(text)):
        line = _clean_criterion_line(_LO_GLUED_RE.sub(r"\1 ", raw))
        if not line or _is_footer_line(line):
            continue

        heading = _LO_HEADING_RE.match(line)
        if heading:
            lo = _lo_code(heading.group(1))
            if lo in wanted:
                flush()
                current_lo = lo

        criterion = _CRITERION_RE.match(line)
        if criterion:
            if current_lo is None:
                continue
            flush()
            current_code = f"{criterion.group(1).upper()}{int(criterion.group(2))}"
            if criterion.group(3).strip():
                desc_parts.append(criterion.group(3).strip())
            continue

        combined = _LO_AND_CRITERION_RE.search(line)
        if combined:
            lo = _lo_code(combined.group(1))
            if lo not in wanted:
                continue
            flush()
            current_lo = lo
            current_code = f"{combined.group(2).upper()}{int(combined.group(3))}"
            if combined.group(4).strip():
                desc_parts.append(combined.group(4).strip())
            continue

        if current_code and not heading:
            desc_parts.append(line)

    flush()
    for bucket in by_lo.values():
        bucket.sort(key=lambda c: code_sort_key(c.code))
    return by_lo


def parse_unit_code(text: str, title_fallback: str = "") -> str:
    match = _UNIT_CODE_RE.search(text or "") or re.search(r"\b(\d{4})\b", title_fallback or "")
    return match.group(1) if match else ""


def parse_unit_title(text: str, title_fallback: str = "") -> str:
    lines = to_lines(text)
    code = parse_unit_code(text, title_fallback)
    code_re = re.compile(rf"\bUnit\s+{code}\b" if code else r"\bUnit\s+\d{4}\b", re.IGNORECASE)
    for i, line in enumerate(lines):
        if not code_re.search(line):
            continue
        first = re.sub(r"^\s*[:\-" + chr(0x2013) + chr(0x2014) + r"]\s*", "", code_re.sub("", line, count=1)).strip()
        parts = [first] if first and not _TITLE_STOP_RE.search(first) else []
        for nxt in lines[i + 1:i + 8]:
            if _TITLE_STOP_RE.search(nxt) or re.match(r"^issue\b", nxt, re.IGNORECASE):
                break
            parts.append(nxt)
        joined = normalize_whitespace(" ".join(parts))
        if joined:
            return joined
    return normalize_whitespace(title_fallback)


def parse_meta_number(text: str, label: str) -> int | None:
    match = re.search(rf"\b{label}\b\s*(?:value)?\s*[:\-]?\s*(\d{{1,3}})\b", text or "", re.IGNORECASE)
    return int(match.group(1)) if match else None


def parse_spec(text: str, title_fallback: str = "") -> ParsedSpec:
    """Parse unit specification text into unit info and learning outcomes."""
    t = text or ""
    warnings: list[str] = []
    issue = _ISSUE_RE.search(t)
    unit = UnitInfo(
        unit_code=parse_unit_code(t, title_fallback),
        unit_title=parse_unit_title(t, title_fallback),
        level=parse_meta_number(t, "Level"),
        credits=parse_meta_number(t, r"Credits?"),
        issue=f"Issue {issue.group(1)}" if issue else None,
    )
    outcomes = parse_learning_outcomes(t)
    by_lo = parse_criteria_by_outcome(t, [o.lo_code for o in outcomes])
    for outcome in outcomes:
        outcome.criteria = by_lo.get(outcome.lo_code, [])

    if not outcomes:
        warnings.append("Learning outcomes not found.")
    elif not any(o.criteria for o in outcomes):
        warnings.append("Assessment criteria not found for any learning outcome.")
    return ParsedSpec(unit=unit, learning_outcomes=outcomes, warnings=warnings)
