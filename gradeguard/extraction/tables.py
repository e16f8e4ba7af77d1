"""Table recovery from flattened text.

Tables in briefs arrive as runs of lines whose cells are separated by pipes
or wide gaps. Runs that look like real data become StructuredTable blocks;
anything else is kept verbatim as an UnstructuredTable so callers can flag
it instead of trusting a bad grid.
"""

import re
from collections.abc import Sequence
from typing import Any

from gradeguard.extraction.models import StructuredTable, TableBlock, UnstructuredTable

UNSTRUCTURED_WARNING = "TABLE UNSTRUCTURED"
MIN_RUN_LINES = 3

TABLE_TOKEN_RE = re.compile(r"\[TABLE:\s*([^\]\s]+)\s*\]")

_NUMERIC_CELL_RE = re.compile(r"^([<>]=?\s*)?[-+]?\d+(\.\d+)?(%|[a-z]+)?$", re.IGNORECASE)
_GAP_SPLIT_RE = re.compile(r"\s{2,}|\t+")


def split_columns(line: str) -> list[str]:
    clean = line.strip()
    if clean.startswith("|"):
        clean = clean[1:]
    if clean.endswith("|"):
        clean = clean[:-1]
    if "|" in clean:
        return [part.strip() for part in clean.split("|") if part.strip()]
    return [part.strip() for part in _GAP_SPLIT_RE.split(clean) if part.strip()]


def is_numeric_cell(cell: str) -> bool:
    return bool(_NUMERIC_CELL_RE.match(cell.replace(",", "").strip()))


def _mostly_numeric(cells: Sequence[str]) -> bool:
    if not cells:
        return False
    numeric = sum(1 for cell in cells if is_numeric_cell(cell))
    return numeric >= (len(cells) + 1) // 2


def _has_before_after_headers(headers: Sequence[str]) -> bool:
    joined = " ".join(headers).lower()
    return "before" in joined and "after" in joined


def _is_data_row(row: Sequence[str], expected_columns: int) -> bool:
    if len(row) < max(2, expected_columns - 1):
        return False
    tail = row[1:]
    return bool(tail) and all(is_numeric_cell(cell) for cell in tail)


def _from_hint(hint: Sequence[Any]) -> list[TableBlock]:
    blocks: list[TableBlock] = []
    for candidate in hint:
        if not isinstance(candidate, dict):
            continue
        raw_headers = candidate.get("headers")
        raw_rows = candidate.get("rows")
        headers = (
            [str(h).strip() for h in raw_headers if str(h).strip()]
            if isinstance(raw_headers, list)
            else []
        )
        rows: list[list[str]] = []
        if isinstance(raw_rows, list):
            for row in raw_rows:
                if isinstance(row, list) and row:
                    rows.append(["" if v is None else str(v).strip() for v in row])
        if not headers or not rows:
            continue
        table_id = candidate.get("id")
        blocks.append(
            StructuredTable(
                headers=headers,
                rows=rows,
                id=str(table_id) if table_id is not None else None,
            )
        )
    return blocks


def _classify_run(run: list[str], table_id: str | None = None) -> TableBlock:
    matrix = [split_columns(line) for line in run]
    header = matrix[0]
    column_count = len(header)
    rows = matrix[1:]
    # One row outside the header's column slack demotes the whole run.
    consistent = all(abs(len(row) - column_count) <= 1 for row in rows)
    numeric_rows = [
        row for row in rows
        if _mostly_numeric(row[1:]) or _is_data_row(row, column_count)
    ]
    before_after = _has_before_after_headers(header) and len(numeric_rows) >= 2
    structured = column_count >= 2 and len(rows) >= 2 and len(numeric_rows) >= 2
    if consistent and (before_after or structured):
        return StructuredTable(headers=header, rows=rows, id=table_id)
    return UnstructuredTable(text="\n".join(run), warning=UNSTRUCTURED_WARNING, id=table_id)


def _candidate_runs(lines: list[str]) -> list[tuple[int, int]]:
    """Return (start, end) line spans of table candidates, end exclusive."""
    spans: list[tuple[int, int]] = []
    i = 0
    while i < len(lines):
        if len(split_columns(lines[i])) < 2:
            i += 1
            continue
        j = i + 1
        while j < len(lines):
            nxt = lines[j].strip()
            if not nxt or len(split_columns(nxt)) < 2:
                break
            j += 1
        if j - i >= MIN_RUN_LINES:
            spans.append((i, j))
            i = j
        else:
            i += 1
    return spans


def detect_table_blocks(text: str, structured_hint: Sequence[Any] | None = None) -> list[TableBlock]:
    """Detect table blocks in *text*.

    A non-empty *structured_hint* (header/row dicts from a richer extraction
    backend) wins over text heuristics. Never raises.
    """
    if structured_hint:
        hinted = _from_hint(structured_hint)
        if hinted:
            return hinted

    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    if not normalized.strip():
        return []
    lines = normalized.split("\n")
    return [
        _classify_run([line.strip() for line in lines[start:end]])
        for start, end in _candidate_runs(lines)
    ]


def replace_table_runs(text: str, id_prefix: str) -> tuple[str, list[TableBlock]]:
    """Swap each table run in *text* for a ``[TABLE: <id>]`` token.

    Ids are ``<id_prefix>-<k>`` with k starting at 1. Returns the rewritten
    text and the id-tagged blocks in source order.
    """
    if not (text or "").strip():
        return text or "", []
    lines = text.split("\n")
    spans = _candidate_runs(lines)
    if not spans:
        return text, []

    blocks: list[TableBlock] = []
    out: list[str] = []
    cursor = 0
    for k, (start, end) in enumerate(spans, start=1):
        table_id = f"{id_prefix}-{k}"
        out.extend(lines[cursor:start])
        out.append(f"[TABLE: {table_id}]")
        blocks.append(_classify_run([line.strip() for line in lines[start:end]], table_id))
        cursor = end
    out.extend(lines[cursor:])
    return "\n".join(out), blocks


def find_table_tokens(text: str) -> list[str]:
    return TABLE_TOKEN_RE.findall(text or "")
