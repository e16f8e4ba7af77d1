"""Grading confidence from the model's own confidence and supporting signals.

The result is a weighted blend with penalties subtracted, then limited by
hard caps: any single weak signal (a missing modality, criteria without
evidence, an ACHIEVED check with nothing cited) can lower the ceiling no
matter how confident the individual criterion scores are. Extraction
confidence only matters through a fixed bonus at its maximum; below that
it is handled by the readiness gate, not here.
"""

import math
from typing import Any

from gradeguard.config.policy import GradingPolicy
from gradeguard.grading.models import (
    CheckSignal,
    ConfidenceBonus,
    ConfidenceCap,
    ConfidenceResult,
    ConfidenceSignals,
)

LOW_CRITERION_CONFIDENCE = 0.55
CITATIONS_FOR_FULL_SCORE = 1.5
FINAL_FLOOR = 0.2
MAX_EXTRACTION_CONFIDENCE = 1.0
BONUS_NAME = "extraction_high_confidence_bonus"


def _clamp01(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def _round3(value: float) -> float:
    return round(value * 1000) / 1000


def _decision(check: CheckSignal) -> str:
    return (check.decision or "").strip().upper()


def _penalties(
    *,
    unclear_ratio: float,
    low_ratio: float,
    no_evidence_ratio: float,
    achieved_without_evidence: int,
    modality_missing: int,
    readiness_failures: int,
    overlap_ratio: float,
    mismatch_count: int,
    band_capped: bool,
) -> dict[str, float]:
    # Extraction-specific penalties stay at zero; see module docstring.
    return {
        "unclear_ratio": unclear_ratio * 0.18,
        "low_criterion_confidence": low_ratio * 0.12,
        "missing_evidence": no_evidence_ratio * 0.2,
        "achieved_without_evidence": 0.2 if achieved_without_evidence > 0 else 0.0,
        "modality_missing": min(0.25, modality_missing * 0.08),
        "readiness": min(0.2, readiness_failures * 0.05),
        "cover_only": 0.0,
        "criteria_alignment": min(0.12, (1 - overlap_ratio) * 0.18 + mismatch_count * 0.02),
        "extraction_low": 0.0,
        "band_cap": 0.04 if band_capped else 0.0,
    }


class _CapTracker:
    def __init__(self, value: float) -> None:
        self.value = value
        self.applied: list[ConfidenceCap] = []

    def apply(self, name: str, ceiling: float, reason: str) -> None:
        cap = _clamp01(ceiling)
        if self.value > cap:
            self.value = cap
            self.applied.append(ConfidenceCap(name=name, value=_round3(cap), reason=reason))


def compute_grading_confidence(
    signals: ConfidenceSignals, policy: GradingPolicy | None = None
) -> ConfidenceResult:
    policy = (policy or GradingPolicy()).clamped()
    model_confidence = _clamp01(signals.model_confidence)
    extraction_confidence = _clamp01(signals.extraction_confidence)
    extraction_mode = (signals.extraction_mode or "").strip().upper() or "UNKNOWN"

    rows = list(signals.criterion_checks or [])
    summary = signals.evidence_summary
    summary_count = summary.criteria_count if summary and summary.criteria_count else 0
    total_criteria = max(1, summary_count if summary_count > 0 else len(rows))

    if rows:
        criterion_average = _clamp01(sum(_clamp01(r.confidence) for r in rows) / len(rows))
    else:
        criterion_average = model_confidence

    unclear_count = sum(1 for r in rows if _decision(r) == "UNCLEAR")
    low_count = sum(1 for r in rows if _clamp01(r.confidence) < LOW_CRITERION_CONFIDENCE)
    achieved_without_evidence = sum(
        1 for r in rows if _decision(r) == "ACHIEVED" and r.evidence_count <= 0
    )
    if summary is not None and summary.criteria_without_evidence is not None:
        criteria_without_evidence = max(0, summary.criteria_without_evidence)
    else:
        criteria_without_evidence = sum(1 for r in rows if r.evidence_count <= 0)
    if summary is not None and summary.total_citations is not None:
        total_citations = max(0, summary.total_citations)
    else:
        total_citations = sum(max(0, r.evidence_count) for r in rows)

    citations_per_criterion = total_citations / total_criteria
    no_evidence_ratio = _clamp01(criteria_without_evidence / total_criteria)
    unclear_ratio = _clamp01(unclear_count / total_criteria)
    low_ratio = _clamp01(low_count / total_criteria)

    citation_score = _clamp01(citations_per_criterion / CITATIONS_FOR_FULL_SCORE)
    evidence_score = _clamp01(citation_score - no_evidence_ratio * 0.35)

    readiness_failures = [k for k, ok in (signals.readiness_checklist or {}).items() if not ok]
    modality_missing = max(0, int(signals.modality_missing_count or 0))
    overlap = signals.criteria_alignment_overlap_ratio
    overlap_ratio = _clamp01(overlap) if overlap is not None else 1.0
    mismatch_count = max(0, int(signals.criteria_alignment_mismatch_count or 0))

    penalties = _penalties(
        unclear_ratio=unclear_ratio,
        low_ratio=low_ratio,
        no_evidence_ratio=no_evidence_ratio,
        achieved_without_evidence=achieved_without_evidence,
        modality_missing=modality_missing,
        readiness_failures=len(readiness_failures),
        overlap_ratio=overlap_ratio,
        mismatch_count=mismatch_count,
        band_capped=signals.band_cap_was_capped,
    )

    bonuses: list[ConfidenceBonus] = []
    bonus_value = 0.0
    if extraction_confidence >= MAX_EXTRACTION_CONFIDENCE and policy.extraction_bonus_value > 0:
        bonus_value = policy.extraction_bonus_value
        bonuses.append(ConfidenceBonus(name=BONUS_NAME, value=_round3(bonus_value)))

    weighted_base = _clamp01(
        model_confidence * 0.4 + criterion_average * 0.35 + evidence_score * 0.25
    )
    raw = _clamp01(weighted_base + bonus_value - sum(penalties.values()))

    caps = _CapTracker(raw)
    if modality_missing > 0:
        caps.apply(
            "modality_missing_cap",
            policy.modality_missing_cap,
            f"Required modality evidence missing in {modality_missing} section(s).",
        )
    if no_evidence_ratio >= 0.5:
        caps.apply("evidence_gap_cap", 0.72, "Half or more criteria have no cited evidence.")
    elif no_evidence_ratio >= 0.3:
        caps.apply("evidence_gap_cap", 0.8, "Many criteria have no cited evidence.")
    elif no_evidence_ratio >= 0.2:
        caps.apply("evidence_gap_cap", 0.86, "Some criteria have no cited evidence.")
    if readiness_failures:
        caps.apply(
            "readiness_cap",
            max(0.68, 0.9 - min(0.2, len(readiness_failures) * 0.04)),
            f"{len(readiness_failures)} readiness check(s) are not satisfied.",
        )
    if achieved_without_evidence > 0:
        caps.apply(
            "achieved_without_evidence_cap",
            0.4,
            "One or more criteria are marked ACHIEVED without evidence.",
        )

    final = _clamp01(max(FINAL_FLOOR, caps.value))
    return ConfidenceResult(
        final_confidence=_round3(final),
        weighted_base_confidence=_round3(weighted_base),
        raw_confidence_before_caps=_round3(raw),
        criterion_average_confidence=_round3(criterion_average),
        evidence_score=_round3(evidence_score),
        caps_applied=caps.applied,
        bonuses=bonuses,
        penalties={name: _round3(value) for name, value in penalties.items()},
        signals={
            "model_confidence": _round3(model_confidence),
            "extraction_confidence": _round3(extraction_confidence),
            "extraction_mode": extraction_mode,
            "total_criteria": total_criteria,
            "unclear_count": unclear_count,
            "low_criterion_confidence_count": low_count,
            "criteria_without_evidence": criteria_without_evidence,
            "achieved_without_evidence_count": achieved_without_evidence,
            "total_citations": total_citations,
            "citations_per_criterion": _round3(citations_per_criterion),
            "readiness_failures": readiness_failures,
            "criteria_alignment_overlap_ratio": _round3(overlap_ratio),
            "criteria_alignment_mismatch_count": mismatch_count,
            "modality_missing_count": modality_missing,
        },
    )
