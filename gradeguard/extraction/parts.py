"""Sub-question parts inside a task.

Part keys (``a``, ``a.ii``, ``3``) are unique within one task only; two tasks may
both have an ``a``. Across a document a part is identified by the task number
and its key, which ``qualified_part_keys`` renders as ``<task>.<key>``.
"""

import re
from collections.abc import Sequence
from typing import Any

from gradeguard.extraction.equations import find_equation_tokens
from gradeguard.extraction.models import Part, Task
from gradeguard.extraction.tables import find_table_tokens

_LETTER_RE = re.compile(r"^([a-z])[.)]\s+(.*)$", re.IGNORECASE)
_ROMAN_RE = re.compile(r"^([ivxlcdm]+)[.)]\s+(.*)$", re.IGNORECASE)
_NUMBERED_RE = re.compile(r"^(\d{1,2})\.\s+(.*)$")
_ROMAN_II_RE = re.compile(r"^ii[.)]\s+", re.IGNORECASE)

ROMAN_LOOKAHEAD = 6


def _sort_key(key: str) -> str:
    return ".".join(chunk.zfill(3) if chunk.isdigit() else chunk for chunk in key.split("."))


def _with_refs(part: Part) -> Part:
    part.text = part.text.strip()
    part.table_refs = find_table_tokens(part.text)
    part.formula_refs = find_equation_tokens(part.text)
    for child in part.children:
        _with_refs(child)
    return part


def normalize_provided_parts(provided: Sequence[Any] | None) -> list[Part]:
    """Nest parts supplied by a richer backend by their dotted keys."""
    if not provided:
        return []
    cleaned: list[tuple[str, str]] = []
    for item in provided:
        if not isinstance(item, dict):
            continue
        key = str(item.get("key") or "").strip().lower()
        text = str(item.get("text") or "").strip()
        if key and text:
            cleaned.append((key, text))
    cleaned.sort(key=lambda kv: _sort_key(kv[0]))

    by_key: dict[str, Part] = {}
    roots: list[Part] = []
    for key, text in cleaned:
        if key in by_key:
            continue
        node = Part(key=key, text=text)
        by_key[key] = node
        parent_key = key.rsplit(".", 1)[0] if "." in key else ""
        if parent_key and parent_key in by_key:
            by_key[parent_key].children.append(node)
        else:
            roots.append(node)
    return [_with_refs(root) for root in roots]


def _has_roman_continuation(lines: list[str], start: int) -> bool:
    seen = 0
    for candidate in lines[start + 1:]:
        candidate = candidate.strip()
        if not candidate:
            continue
        seen += 1
        if seen > ROMAN_LOOKAHEAD:
            return False
        if _ROMAN_II_RE.match(candidate):
            return True
    return False


def _dedupe(parts: list[Part]) -> tuple[list[Part], list[str]]:
    seen: set[str] = set()
    warnings: list[str] = []

    def _walk(nodes: list[Part]) -> list[Part]:
        kept: list[Part] = []
        for node in nodes:
            if node.key in seen:
                warnings.append(f"Duplicate part key dropped: {node.key}")
                continue
            seen.add(node.key)
            node.children = _walk(node.children)
            kept.append(node)
        return kept

    return _walk(parts), warnings


def parse_parts(
    text: str, provided: Sequence[Any] | None = None
) -> tuple[list[Part], list[str]]:
    """Split task text into lettered parts and roman sub-parts.

    Top-level ``a)``/``a.`` letters open parts, ``i.``/``ii)`` under a part
    become ``a.i``/``a.ii``. A lone ``i.`` after a part counts as roman only
    when ``ii`` follows within a few lines. Numbered ``1.`` lists are used
    when there is no lettering. Fewer than two top-level parts means the
    task is not split at all.
    """
    from_provided = normalize_provided_parts(provided)
    if from_provided:
        return _dedupe(from_provided)

    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n").strip()
    if not normalized:
        return [], []

    lines = normalized.split("\n")
    top_level: list[Part] = []
    current: Part | None = None
    child: Part | None = None
    lettered = any(_LETTER_RE.match(line.strip()) for line in lines)

    def flush_child() -> None:
        nonlocal child
        if child is not None and current is not None:
            current.children.append(child)
        child = None

    def flush_current() -> None:
        nonlocal current
        flush_child()
        if current is not None:
            top_level.append(current)
        current = None

    for idx, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            target = child or current
            if target is not None:
                target.text += "\n"
            continue

        top = _LETTER_RE.match(line)
        if top:
            key = top.group(1).lower()
            if key == "i" and current is not None and _has_roman_continuation(lines, idx):
                flush_child()
                child = Part(key=f"{current.key}.i", text=top.group(2).strip())
                continue
            roman_child = (
                current is not None
                and child is not None
                and key in {"v", "x"}
                and _ROMAN_RE.match(line)
            )
            if not roman_child:
                flush_current()
                current = Part(key=key, text=top.group(2).strip())
                continue

        roman = _ROMAN_RE.match(line)
        if roman and current is not None:
            flush_child()
            child = Part(key=f"{current.key}.{roman.group(1).lower()}", text=roman.group(2).strip())
            continue

        numbered = _NUMBERED_RE.match(line)
        if numbered and not lettered:
            flush_current()
            current = Part(key=numbered.group(1), text=numbered.group(2).strip())
            continue

        target = child or current
        if target is not None:
            target.text += f" {line}"

    flush_current()
    if len(top_level) < 2:
        return [], []
    return _dedupe([_with_refs(part) for part in top_level])


def qualified_part_keys(tasks: Sequence[Task]) -> list[str]:
    """Document-wide part ids in reading order, children after their parent."""
    keys: list[str] = []

    def _walk(task_n: int, parts: Sequence[Part]) -> None:
        for part in parts:
            keys.append(f"{task_n}.{part.key}")
            _walk(task_n, part.children)

    for task in tasks:
        _walk(task.n, task.parts)
    return keys
