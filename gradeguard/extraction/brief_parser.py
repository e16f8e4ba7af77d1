"""Assignment brief structure: header fields, tasks and end matter.

Works on normalized text where pages are separated by the page break
character. Every task keeps the pages it spans, its parts, the tables found
inside its body (replaced by ``[TABLE: t<n>-<k>]`` tokens) and the equations
whose tokens it contains.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from gradeguard.extraction.criteria_codes import extract_codes_from_text
from gradeguard.extraction.equations import equations_in
from gradeguard.extraction.models import (
    BriefHeader,
    DocumentType,
    EndMatter,
    Equation,
    StructuredDocument,
    Task,
)
from gradeguard.extraction.parts import parse_parts
from gradeguard.extraction.tables import replace_table_runs
from gradeguard.extraction.text import has_page_breaks, normalize_whitespace, split_pages

NO_HEADINGS_WARNING = "Task headings not found (expected 'Task 1', 'Task 2', ...)."
NO_PAGE_BREAKS_WARNING = "Page breaks not found: task page attribution is unreliable."
EMPTY_BODY_WARNING = "task body: empty"

_FOOTER_PATTERNS = [
    re.compile(r"(?:\(c\)|" + chr(0xA9) + r")\s*\d{4}.*all rights reserved", re.IGNORECASE),
    re.compile(r"\bissue\s*\d+\s*[-" + chr(0x2013) + r"]?\s*\d{4}\s*/\s*\d{2}\b", re.IGNORECASE),
    re.compile(r"\bpage\s*\d+\s*of\s*\d+\b", re.IGNORECASE),
]

_END_MATTER_HEADINGS = [
    ("sources", re.compile(r"^Sources\s+of\s+information", re.IGNORECASE)),
    ("sources", re.compile(r"^Textbooks?\b", re.IGNORECASE)),
    ("sources", re.compile(r"^Websites?\b", re.IGNORECASE)),
    ("sources", re.compile(r"^Further\s+reading", re.IGNORECASE)),
    ("sources", re.compile(r"^Additional\s+resources?", re.IGNORECASE)),
    ("criteria", re.compile(r"^Relevant\s+Learning\s+Outcomes", re.IGNORECASE)),
    ("criteria", re.compile(r"^Assessment\s+Criteria", re.IGNORECASE)),
    ("criteria", re.compile(r"^Pass\s+Merit\s+Distinction", re.IGNORECASE)),
]

_DASHES = "-" + chr(0x2013) + chr(0x2014)
_HEADING_RE = re.compile(r"^\s*[^A-Za-z0-9]{0,3}Task\s*(\d{1,2})\b", re.IGNORECASE)
_TASK_WORD_RE = re.compile(r"^t\s*a\s*s\s*k$", re.IGNORECASE)
_LEADING_NUMBER_RE = re.compile(r"^\d{1,2}\b")
_AIAS_RE = re.compile(r"\bAIAS\s*(\d)\b", re.IGNORECASE)
_PRE_TASK_RE = re.compile(r"Initial Idea Proposal", re.IGNORECASE)

_UNIT_CODE_RES = [
    re.compile(r"\bUnit\s+number\s+and\s+title\s+(4\d{3})\b", re.IGNORECASE),
    re.compile(r"\bUnit\s+(4\d{3})\b", re.IGNORECASE),
]
_UNIT_NUMBER_TITLE_RE = re.compile(r"\bUnit\s+number\s+and\s+title\s*[:\-]?\s*([^\n]+)", re.IGNORECASE)
_ASSIGNMENT_OF_RE = re.compile(r"\bAssignment\s+(\d+)\s+of\s+(\d+)\b", re.IGNORECASE)
_ASSIGNMENT_TITLE_RE = re.compile(r"\bAssignment\s+title\s*[:\-]?\s*([^\n]+)", re.IGNORECASE)
_AIAS_LEVEL_RE = re.compile(r"\bAIAS\s*[" + _DASHES + r"]\s*LEVEL\s*(\d)\b", re.IGNORECASE)
_ASSIGNMENT_CODE_RE = re.compile(r"\bA\d+\b")
_ACADEMIC_YEAR_RE = re.compile(r"\bAcademic\s+year\s*[:\-]?\s*(\d{4}(?:\s*[/-]\s*\d{2,4})?)", re.IGNORECASE)
_ISSUE_YEAR_RE = re.compile(r"\bIssue\s+\d+\s*[-" + chr(0x2013) + r"]\s*(\d{4})\s*/\s*(\d{2,4})\b", re.IGNORECASE)
_LO_HEADER_RE = re.compile(
    r"\bLO\s*([1-6])\s*[:\-" + chr(0x2013) + r"]?\s*(.+?)(?=\bLO\s*[1-6]\b|$)", re.IGNORECASE
)


@dataclass(frozen=True)
class _Line:
    text: str
    page: int


@dataclass(frozen=True)
class _Heading:
    index: int
    n: int
    title: str | None


def is_footer_line(line: str) -> bool:
    normalized = normalize_whitespace(line).lower()
    return bool(normalized) and any(p.search(normalized) for p in _FOOTER_PATTERNS)


def end_matter_key(line: str) -> str | None:
    trimmed = line.strip()
    if not trimmed:
        return None
    for key, pattern in _END_MATTER_HEADINGS:
        if pattern.search(trimmed):
            return key
    return None


def extract_end_matter(pages: Sequence[str]) -> EndMatter | None:
    blocks: dict[str, list[str]] = {}
    current: str | None = None
    for page in pages:
        for line in page.split("\n"):
            key = end_matter_key(line)
            if key:
                current = key
                blocks.setdefault(key, [])
            if current:
                blocks[current].append(line)
    sources = "\n".join(blocks.get("sources", [])).strip() or None
    criteria = "\n".join(blocks.get("criteria", [])).strip() or None
    if not sources and not criteria:
        return None
    return EndMatter(sources_block=sources, criteria_block=criteria)


def parse_heading(line: str) -> tuple[int, str | None] | None:
    match = _HEADING_RE.match(line or "")
    if not match:
        return None
    n = int(match.group(1))
    if n < 1:
        return None
    remainder = line[match.end():]
    remainder = re.sub(r"^\s*\(.*?\)\s*", "", remainder)
    remainder = re.sub(r"^\s*[" + _DASHES + r":]\s*", "", remainder).strip()
    return n, (normalize_whitespace(remainder) or None)


def _collect_lines(pages: Sequence[str], paged: bool) -> list[_Line]:
    collected: list[_Line] = []
    for idx, page in enumerate(pages, start=1):
        page_no = idx if paged else 1
        lines = [line for line in page.split("\n") if not is_footer_line(line)]
        i = 0
        while i < len(lines):
            line = normalize_whitespace(lines[i])
            if end_matter_key(line):
                return collected
            nxt = normalize_whitespace(lines[i + 1]) if i + 1 < len(lines) else ""
            if _TASK_WORD_RE.match(line) and nxt and _LEADING_NUMBER_RE.match(nxt):
                collected.append(_Line(text=f"Task {nxt}", page=page_no))
                i += 2
                continue
            collected.append(_Line(text=lines[i].strip(), page=page_no))
            i += 1
    return collected


def _ordered_headings(lines: list[_Line]) -> list[_Heading]:
    start = 0
    for i, line in enumerate(lines):
        parsed = parse_heading(line.text)
        if parsed and parsed[0] == 1:
            start = max(0, i - 10)
            break

    ordered: list[_Heading] = []
    seen: set[int] = set()
    last_n = 0
    for i in range(start, len(lines)):
        parsed = parse_heading(lines[i].text)
        if not parsed:
            continue
        n, title = parsed
        if n in seen or n < last_n:
            continue
        seen.add(n)
        ordered.append(_Heading(index=i, n=n, title=title))
        last_n = n
    return ordered


def _clean_body(lines: list[str]) -> str:
    while lines and not lines[0].strip():
        lines = lines[1:]
    while lines and not lines[-1].strip():
        lines = lines[:-1]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).rstrip()


def _unique_pages(lines: list[_Line]) -> list[int]:
    pages: list[int] = []
    for line in lines:
        if line.page not in pages:
            pages.append(line.page)
    return pages


def _build_task(
    n: int,
    title: str | None,
    body: str,
    span: list[_Line],
    preview: list[str],
    equations: Sequence[Equation],
    confidence: str = "CLEAN",
) -> Task:
    warnings: list[str] = []
    if not body.strip():
        body = f"Task {n} - {title}" if title else f"Task {n}"
        warnings.append(EMPTY_BODY_WARNING)
        confidence = "HEURISTIC"

    tokenised, tables = replace_table_runs(body, f"t{n}")
    parts, part_warnings = parse_parts(tokenised)
    warnings.extend(part_warnings)
    aias_match = _AIAS_RE.search(normalize_whitespace(" ".join(preview)))
    return Task(
        n=n,
        label=f"Task {n}",
        text=tokenised,
        title=title,
        aias=f"AIAS {aias_match.group(1)}" if aias_match else None,
        pages=_unique_pages(span),
        parts=parts,
        tables=tables,
        formulas=equations_in(tokenised, equations),
        warnings=warnings,
        confidence=confidence,
    )


def extract_tasks(
    text: str, equations: Sequence[Equation] = ()
) -> tuple[list[Task], list[str], EndMatter | None]:
    warnings: list[str] = []
    paged = has_page_breaks(text)
    pages = split_pages(text) or [text or ""]
    cleaned_pages = [
        "\n".join(line for line in page.split("\n") if not is_footer_line(line)) for page in pages
    ]
    end_matter = extract_end_matter(cleaned_pages)
    lines = _collect_lines(pages, paged)
    headings = _ordered_headings(lines)
    if not headings:
        warnings.append(NO_HEADINGS_WARNING)
        return [], warnings, end_matter

    tasks: list[Task] = []
    first = headings[0]
    if first.index > 0:
        pre = lines[: first.index]
        pre_text = _clean_body([line.text for line in pre])
        if _PRE_TASK_RE.search(pre_text):
            tasks.append(
                _build_task(
                    0, "Initial Idea Proposal", pre_text, pre, [], equations, "HEURISTIC"
                )
            )

    for k, heading in enumerate(headings):
        end = headings[k + 1].index if k + 1 < len(headings) else len(lines)
        span = lines[heading.index:end]
        body = _clean_body([line.text for line in lines[heading.index + 1:end]])
        preview = [line.text for line in lines[heading.index:min(heading.index + 6, len(lines))]]
        tasks.append(_build_task(heading.n, heading.title, body, span, preview, equations))
    return tasks, warnings, end_matter


def _first(patterns: Sequence[re.Pattern[str]], text: str) -> str | None:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _academic_year(text: str) -> str | None:
    match = _ACADEMIC_YEAR_RE.search(text)
    if match:
        return re.sub(r"\s+", "", match.group(1))
    issue = _ISSUE_YEAR_RE.search(text)
    if issue:
        return f"{issue.group(1)}/{issue.group(2)[-2:]}"
    return None


def extract_header(text: str) -> BriefHeader:
    """Pull the cover-page fields of a brief out of its text."""
    t = text or ""
    unit_code = _first(_UNIT_CODE_RES, t)
    unit_title = None
    number_title = _UNIT_NUMBER_TITLE_RE.search(t)
    if number_title:
        parsed = re.match(r"(\d{4})\.?\s*(.+)", number_title.group(1).strip())
        if parsed:
            unit_code = unit_code or parsed.group(1)
            unit_title = normalize_whitespace(parsed.group(2)) or None

    assignment = _ASSIGNMENT_OF_RE.search(t)
    number = int(assignment.group(1)) if assignment else None
    total = int(assignment.group(2)) if assignment else None
    title = _ASSIGNMENT_TITLE_RE.search(t)
    aias = _AIAS_LEVEL_RE.search(t)
    if number:
        code = f"A{number}"
    else:
        code_match = _ASSIGNMENT_CODE_RE.search(t)
        code = code_match.group(0).upper() if code_match else None

    return BriefHeader(
        unit_code=unit_code,
        unit_title=unit_title,
        assignment_title=normalize_whitespace(title.group(1)) if title else None,
        assignment_number=number,
        total_assignments=total,
        assignment_code=code,
        aias_level=int(aias.group(1)) if aias else None,
        academic_year=_academic_year(t),
    )


def extract_lo_headers(text: str) -> list[str]:
    headers: list[str] = []
    for match in _LO_HEADER_RE.finditer(normalize_whitespace(text)):
        description = normalize_whitespace(match.group(2))
        entry = f"LO{match.group(1)}: {description}"
        if description and entry not in headers:
            headers.append(entry)
    return headers


def parse_brief(text: str, equations: Sequence[Equation] = ()) -> StructuredDocument:
    """Parse a normalized brief into tasks, header fields and end matter."""
    tasks, warnings, end_matter = extract_tasks(text, equations)
    if text.strip() and not has_page_breaks(text):
        warnings.append(NO_PAGE_BREAKS_WARNING)
    lo_source = end_matter.criteria_block if end_matter and end_matter.criteria_block else ""
    return StructuredDocument(
        kind=DocumentType.BRIEF,
        tasks=tasks,
        warnings=warnings,
        header=extract_header(text),
        end_matter=end_matter,
        detected_criterion_codes=extract_codes_from_text(text),
        lo_headers=extract_lo_headers(lo_source) if lo_source else [],
    )
