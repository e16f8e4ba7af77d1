"""Choose which criterion codes a brief maps to.

Briefs mention codes in several places (an explicit list, end-matter
references, codes scraped from the body). This picks the best source, drops
codes that only exist inside placeholder tokens and, given the unit's
criteria grouped by learning outcome, repairs the Merit/Distinction
progression within each outcome.
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from gradeguard.extraction.criteria_codes import extract_codes_from_text, sort_codes
from gradeguard.extraction.models import ParsedSpec

_MARKER_RE = re.compile(r"\[\[[^\]]+\]\]")
_MARKER_CODE_RE = re.compile(r"\b([PMD])\s*(\d+)\b", re.IGNORECASE)


@dataclass(frozen=True)
class BriefCodes:
    criteria_codes: list[str] = field(default_factory=list)
    criteria_refs: list[str] = field(default_factory=list)
    detected_codes: list[str] = field(default_factory=list)
    raw_text: str = ""


@dataclass(frozen=True)
class UnitCriterionRef:
    code: str
    band: str
    lo_code: str


@dataclass(frozen=True)
class MappingSelection:
    base_codes: list[str]
    selected_codes: list[str]


def _clean(code: object) -> str:
    return re.sub(r"\s+", "", str(code or "")).upper()


def _number(code: str) -> int:
    match = re.search(r"\d+", code)
    return int(match.group(0)) if match else 999


def _unique(codes: Iterable[object]) -> list[str]:
    out: list[str] = []
    for code in codes:
        cleaned = _clean(code)
        if cleaned and cleaned not in out:
            out.append(cleaned)
    return out


def unit_criteria_from_spec(spec: ParsedSpec) -> list[UnitCriterionRef]:
    return [
        UnitCriterionRef(code=criterion.code, band=criterion.band, lo_code=outcome.lo_code)
        for outcome in spec.learning_outcomes
        for criterion in outcome.criteria
    ]


def preferred_codes(brief: BriefCodes) -> list[str]:
    if brief.criteria_codes:
        return _unique(brief.criteria_codes)
    if brief.criteria_refs:
        return _unique(brief.criteria_refs)
    return _unique(brief.detected_codes)


def strip_marker_artifacts(codes: Sequence[str], raw_text: str) -> list[str]:
    """Drop codes that appear only inside ``[[...]]`` placeholder tokens."""
    normalized = _unique(codes)
    if not normalized or not (raw_text or "").strip():
        return normalized
    outside = set(extract_codes_from_text(raw_text))
    artifacts: set[str] = set()
    for marker in _MARKER_RE.findall(raw_text):
        for band, num in _MARKER_CODE_RE.findall(marker):
            artifacts.add(f"{band.upper()}{int(num)}")
    return [code for code in normalized if not (code in artifacts and code not in outside)]


def enrich_lo_progression(codes: Sequence[str], unit_criteria: Sequence[UnitCriterionRef]) -> list[str]:
    by_code = {_clean(c.code): c for c in unit_criteria if _clean(c.code)}
    selected = set(_unique(codes))
    rows = [by_code[code] for code in selected if code in by_code]
    outcomes = {row.lo_code for row in rows if row.lo_code}
    active = {row.lo_code for row in rows if row.band in ("PASS", "MERIT") and row.lo_code}

    gap_repaired = False
    for lo in sorted(outcomes):
        bands = {row.band for row in rows if row.lo_code == lo}
        if "MERIT" not in bands or "DISTINCTION" in bands:
            continue
        gap_repaired = True
        candidates = sorted(
            (c for c in unit_criteria if c.lo_code == lo and c.band == "DISTINCTION"),
            key=lambda c: _number(c.code),
        )
        if candidates:
            selected.add(_clean(candidates[0].code))

    # Distinctions whose outcome has no Pass or Merit selected are code noise.
    if gap_repaired and active:
        for code in list(selected):
            row = by_code.get(code)
            if row and row.band == "DISTINCTION" and row.lo_code not in active:
                selected.discard(code)
    return sort_codes(selected)


def select_brief_mapping_codes(
    brief: BriefCodes, unit_criteria: Sequence[UnitCriterionRef] | None = None
) -> MappingSelection:
    base = strip_marker_artifacts(preferred_codes(brief), brief.raw_text)
    selected = enrich_lo_progression(base, unit_criteria) if unit_criteria else sort_codes(base)
    return MappingSelection(base_codes=sort_codes(base), selected_codes=selected)
