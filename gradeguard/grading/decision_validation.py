"""Validates a model-produced grade decision before it can be recorded.

Every failed check contributes its own reason so a rejection can be audited.
Rejections are returned, never raised: they are an expected outcome.
"""

import math
import re
from collections.abc import Iterable
from typing import Any

from gradeguard.extraction.criteria_codes import normalize_code_string
from gradeguard.grading.models import (
    AcceptedDecision,
    CheckDecision,
    CriterionCheck,
    DecisionValidation,
    Evidence,
    GradeDecision,
    GradeWord,
    RejectedDecision,
)

_MAX_FEEDBACK_BULLETS = 24
_GRADE_ALIASES = {
    "FAIL": GradeWord.REFER,
    "PASS_ON_RESUB": GradeWord.PASS_ON_RESUBMISSION,
    "PASS_RESUBMISSION": GradeWord.PASS_ON_RESUBMISSION,
}
_DECISION_ALIASES = {
    "NOTACHIEVED": CheckDecision.NOT_ACHIEVED,
    "NOT-ACHIEVED": CheckDecision.NOT_ACHIEVED,
}


def _get(raw: dict[str, Any], camel: str, snake: str) -> Any:
    return raw[camel] if camel in raw else raw.get(snake)


def _clean_text(raw: Any) -> str:
    text = "" if raw is None else str(raw)
    text = text.replace(chr(0xA0), " ")
    text = re.sub(r"[ \t]+\n", "\n", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def _unit_interval(raw: Any) -> float | None:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return None
    if not math.isfinite(raw) or raw < 0 or raw > 1:
        return None
    return float(raw)


def normalize_grade_word(raw: Any) -> GradeWord | None:
    key = re.sub(r"\s+", "_", str(raw or "").strip().upper())
    if key in _GRADE_ALIASES:
        return _GRADE_ALIASES[key]
    try:
        return GradeWord(key)
    except ValueError:
        return None


def normalize_decision(raw: Any, met_fallback: Any = None) -> CheckDecision | None:
    key = re.sub(r"\s+", "_", str(raw or "").strip().upper())
    if key in _DECISION_ALIASES:
        return _DECISION_ALIASES[key]
    try:
        return CheckDecision(key)
    except ValueError:
        pass
    if isinstance(met_fallback, bool):
        return CheckDecision.ACHIEVED if met_fallback else CheckDecision.NOT_ACHIEVED
    return None


def validate_grade_decision(payload: Any, required_codes: Iterable[str]) -> DecisionValidation:
    """Check a decision payload against the criteria it must cover.

    The codes in the checks must equal *required_codes* exactly. Keys are
    accepted in camelCase or snake_case.
    """
    reasons: list[str] = []
    raw = payload if isinstance(payload, dict) else {}

    grade_raw = _get(raw, "overallGradeWord", "overall_grade_word")
    if grade_raw is None:
        grade_raw = _get(raw, "overallGrade", "overall_grade")
    grade = normalize_grade_word(grade_raw)
    if grade is None:
        reasons.append(
            "overall_grade_word must be one of REFER/PASS/PASS_ON_RESUBMISSION/MERIT/"
            "DISTINCTION (FAIL accepted and normalized to REFER)."
        )

    summary = _clean_text(_get(raw, "feedbackSummary", "feedback_summary"))
    if not summary:
        reasons.append("feedback_summary is required.")
    bullets = _build_bullets(_get(raw, "feedbackBullets", "feedback_bullets"))
    if not bullets:
        reasons.append("feedback_bullets must contain at least one non-empty bullet.")

    resubmission_raw = _get(raw, "resubmissionRequired", "resubmission_required")
    if resubmission_raw is not None and not isinstance(resubmission_raw, bool):
        reasons.append("resubmission_required must be a boolean when provided.")
    resubmission = (
        resubmission_raw if isinstance(resubmission_raw, bool) else grade is GradeWord.REFER
    )

    expected = _expected_codes(required_codes)
    checks = _build_checks(_get(raw, "criterionChecks", "criterion_checks"), expected, reasons)

    confidence = _unit_interval(raw.get("confidence"))
    if confidence is None:
        reasons.append("confidence must be a number between 0 and 1.")

    if reasons or grade is None or confidence is None:
        return RejectedDecision(reasons=reasons)
    return AcceptedDecision(
        data=GradeDecision(
            overall_grade_word=grade,
            resubmission_required=resubmission,
            confidence=confidence,
            criterion_checks=checks,
            feedback_summary=summary,
            feedback_bullets=bullets,
        )
    )


def _build_bullets(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    cleaned = [_clean_text(item) for item in raw]
    return [item for item in cleaned if item][:_MAX_FEEDBACK_BULLETS]


def _expected_codes(required_codes: Iterable[str]) -> list[str]:
    out: list[str] = []
    for raw in required_codes or []:
        code = normalize_code_string(raw) or str(raw or "").strip().upper()
        if code and code not in out:
            out.append(code)
    return out


def _build_checks(raw: Any, expected: list[str], reasons: list[str]) -> list[CriterionCheck]:
    rows = raw if isinstance(raw, list) else []
    if not rows:
        reasons.append("criterion_checks is required.")

    wanted = set(expected)
    seen: set[str] = set()
    checks: list[CriterionCheck] = []
    for row in rows:
        row = row if isinstance(row, dict) else {}
        raw_code = row.get("code")
        code = normalize_code_string(raw_code) or str(raw_code or "").strip().upper()
        if not code:
            reasons.append("criterion_checks[].code is required.")
            continue
        if code not in wanted:
            reasons.append(f"criterion_checks contains unknown code: {code}.")
            continue
        if code in seen:
            reasons.append(f"criterion_checks contains duplicate code: {code}.")
            continue
        seen.add(code)
        check = _build_check(code, row, reasons)
        if check is not None:
            checks.append(check)

    for code in expected:
        if code not in seen:
            reasons.append(f"Missing criterion check for code: {code}.")
    return checks


def _build_check(code: str, row: dict[str, Any], reasons: list[str]) -> CriterionCheck | None:
    prefix = f"criterion_checks[{code}]"
    ok = True

    decision = normalize_decision(row.get("decision"), row.get("met"))
    if decision is None:
        reasons.append(f"{prefix}.decision is required and must be ACHIEVED/NOT_ACHIEVED/UNCLEAR.")
        ok = False

    rationale = _clean_text(row.get("rationale") if "rationale" in row else row.get("comment"))
    if not rationale:
        reasons.append(f"{prefix}.rationale is required.")
        ok = False

    evidence, evidence_ok = _build_evidence(prefix, row.get("evidence"), reasons)
    ok = ok and evidence_ok
    if decision is CheckDecision.ACHIEVED and not evidence:
        reasons.append(f"{prefix} cannot be ACHIEVED without evidence.")
        ok = False

    confidence = _unit_interval(row.get("confidence"))
    if confidence is None:
        reasons.append(f"{prefix}.confidence must be a number between 0 and 1.")
        ok = False

    if not ok or decision is None or confidence is None:
        return None
    return CriterionCheck(
        code=code,
        decision=decision,
        rationale=rationale,
        confidence=confidence,
        evidence=evidence,
    )


def _build_evidence(prefix: str, raw: Any, reasons: list[str]) -> tuple[list[Evidence], bool]:
    if raw is None:
        return [], True
    if not isinstance(raw, list):
        reasons.append(f"{prefix}.evidence must be a list.")
        return [], False

    evidence: list[Evidence] = []
    ok = True
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            reasons.append(f"{prefix}.evidence[{i}] must be an object.")
            ok = False
            continue
        page = item.get("page")
        if isinstance(page, bool) or not isinstance(page, int) or page <= 0:
            reasons.append(f"{prefix}.evidence[{i}].page must be a positive integer.")
            ok = False
            continue
        quote = _clean_text(item.get("quote"))
        visual = _clean_text(_get(item, "visualDescription", "visual_description"))
        if not quote and not visual:
            reasons.append(f"{prefix}.evidence[{i}] needs a quote or a visual description.")
            ok = False
            continue
        evidence.append(Evidence(page=page, quote=quote or None, visual_description=visual or None))
    return evidence, ok
