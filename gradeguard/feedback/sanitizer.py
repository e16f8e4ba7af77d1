from collections.abc import Mapping, Sequence
from typing import Any

from gradeguard.extraction.criteria_codes import normalize_code_string
from gradeguard.feedback.models import FeedbackSourceContext, LintContext, SanitizedFeedback
from gradeguard.feedback.passes import DEFAULT_PASSES, LintPass, is_deterministic_line
from gradeguard.grading.models import CriterionCheck

CheckLike = CriterionCheck | Mapping[str, Any]

_UNACHIEVED = ("NOT_ACHIEVED", "UNCLEAR")


def _check_fields(check: CheckLike) -> tuple[str, str, str, list[tuple[str, str]]]:
    """(code, decision, rationale, [(quote, visual)]) from a typed or raw check."""
    if isinstance(check, CriterionCheck):
        return (
            check.code,
            check.decision.value,
            check.rationale,
            [(e.quote or "", e.visual_description or "") for e in check.evidence],
        )
    evidence = check.get("evidence")
    rows = evidence if isinstance(evidence, list) else []
    return (
        str(check.get("code") or ""),
        str(check.get("decision") or ""),
        str(check.get("rationale") or check.get("comment") or ""),
        [
            (
                str(e.get("quote") or ""),
                str(e.get("visualDescription") or e.get("visual_description") or ""),
            )
            for e in rows
            if isinstance(e, Mapping)
        ],
    )


def build_source_corpus(
    criterion_checks: Sequence[CheckLike], source_context: FeedbackSourceContext | None
) -> str:
    """Lower-cased text the submission itself put on record."""
    bits: list[str] = []
    for check in criterion_checks:
        _, _, rationale, evidence = _check_fields(check)
        bits.append(rationale)
        for quote, visual in evidence:
            bits.extend((quote, visual))
    if source_context is not None:
        bits.extend(
            (
                source_context.assignment_title or "",
                source_context.unit_code or "",
                source_context.assignment_code or "",
            )
        )
    return " ".join(b for b in bits if b).strip().lower()


def unachieved_codes(criterion_checks: Sequence[CheckLike]) -> frozenset[str]:
    codes: set[str] = set()
    for check in criterion_checks:
        code, decision, _, _ = _check_fields(check)
        normalized = normalize_code_string(code)
        if normalized and decision.strip().upper() in _UNACHIEVED:
            codes.add(normalized)
    return frozenset(codes)


def sanitize_feedback(
    text: str,
    criterion_checks: Sequence[CheckLike] = (),
    overall_grade: str | None = None,
    source_context: FeedbackSourceContext | None = None,
    passes: Sequence[LintPass] = DEFAULT_PASSES,
) -> SanitizedFeedback:
    """Run every lint pass over each non-deterministic line of *text*.

    ``changed_lines`` counts lines whose final text differs from the input.
    """
    normalized = (text or "").replace("\r\n", "\n").replace("\r", "\n")
    if not normalized.strip():
        return SanitizedFeedback(text=normalized, changed=False, changed_lines=0)

    checks = list(criterion_checks or [])
    ctx = LintContext(
        overall_grade=(overall_grade or "").strip().upper().replace(" ", "_"),
        source_corpus=build_source_corpus(checks, source_context),
        unachieved_codes=unachieved_codes(checks),
    )

    changed_lines = 0
    out: list[str] = []
    for line in normalized.split("\n"):
        if not line.strip() or is_deterministic_line(line):
            out.append(line)
            continue
        next_line = line
        for lint_pass in passes:
            next_line = lint_pass(next_line, ctx)
        if next_line != line:
            changed_lines += 1
        out.append(next_line)

    return SanitizedFeedback(
        text="\n".join(out), changed=changed_lines > 0, changed_lines=changed_lines
    )
