"""Tests for the grading confidence scorer (penalties, caps and the extraction bonus)."""

import pytest

from gradeguard.config.policy import GradingPolicy
from gradeguard.grading.confidence import BONUS_NAME, compute_grading_confidence
from gradeguard.grading.models import CheckSignal, ConfidenceSignals, EvidenceSummary

PENALTY_KEYS = {
    "unclear_ratio",
    "low_criterion_confidence",
    "missing_evidence",
    "achieved_without_evidence",
    "modality_missing",
    "readiness",
    "cover_only",
    "criteria_alignment",
    "extraction_low",
    "band_cap",
}


def _strong_checks() -> list[CheckSignal]:
    return [
        CheckSignal(decision="ACHIEVED", confidence=0.9, evidence_count=2),
        CheckSignal(decision="ACHIEVED", confidence=0.88, evidence_count=2),
        CheckSignal(decision="ACHIEVED", confidence=0.86, evidence_count=2),
    ]


def _strong(**overrides) -> ConfidenceSignals:  # type: ignore[no-untyped-def]
    values = {
        "model_confidence": 0.92,
        "extraction_confidence": 0.95,
        "readiness_checklist": {"assignmentLinked": True, "studentLinked": True},
        "criteria_alignment_overlap_ratio": 1.0,
        "criterion_checks": _strong_checks(),
    }
    values.update(overrides)
    return ConfidenceSignals(**values)


def _weak(extraction_confidence: float) -> ConfidenceSignals:
    return ConfidenceSignals(
        model_confidence=0.79,
        extraction_confidence=extraction_confidence,
        readiness_checklist={"assignmentLinked": False},
        criteria_alignment_overlap_ratio=0.9,
        criteria_alignment_mismatch_count=2,
        criterion_checks=[
            CheckSignal(decision="ACHIEVED", confidence=0.72, evidence_count=1),
            CheckSignal(decision="UNCLEAR", confidence=0.5, evidence_count=0),
            CheckSignal(decision="NOT_ACHIEVED", confidence=0.56, evidence_count=1),
            CheckSignal(decision="UNCLEAR", confidence=0.49, evidence_count=0),
        ],
        evidence_summary=EvidenceSummary(
            criteria_count=4, total_citations=2, criteria_without_evidence=2
        ),
    )


class TestComputeGradingConfidence:
    def test_strong_signals_score_high_without_caps(self) -> None:
        result = compute_grading_confidence(_strong())
        assert result.final_confidence > 0.8
        assert result.final_confidence == pytest.approx(0.926)
        assert result.caps_applied == []
        assert not result.was_capped
        assert result.bonuses == []

    def test_penalty_keys_are_always_present(self) -> None:
        result = compute_grading_confidence(_strong())
        assert set(result.penalties) == PENALTY_KEYS
        assert result.penalties["cover_only"] == 0.0
        assert result.penalties["extraction_low"] == 0.0

    def test_missing_modality_is_capped(self) -> None:
        result = compute_grading_confidence(_strong(modality_missing_count=3))
        assert result.final_confidence <= 0.65
        assert [cap.name for cap in result.caps_applied] == ["modality_missing_cap"]

    def test_modality_cap_follows_policy(self) -> None:
        result = compute_grading_confidence(
            _strong(modality_missing_count=1), GradingPolicy(modality_missing_cap=0.5)
        )
        assert result.final_confidence == 0.5

    def test_weak_signals_hit_the_floor(self) -> None:
        result = compute_grading_confidence(_weak(0.61))
        assert result.raw_confidence_before_caps == pytest.approx(0.196, abs=0.001)
        assert result.final_confidence == 0.2

    def test_extraction_below_max_does_not_move_the_score(self) -> None:
        low = compute_grading_confidence(_strong(extraction_confidence=0.5))
        high = compute_grading_confidence(_strong(extraction_confidence=0.95))
        assert low.final_confidence > 0.2
        assert low.final_confidence == high.final_confidence == pytest.approx(0.926)
        assert low.bonuses == high.bonuses == []

    def test_only_max_extraction_raises_the_score(self) -> None:
        high = compute_grading_confidence(_strong(extraction_confidence=0.95))
        top = compute_grading_confidence(_strong(extraction_confidence=1.0))
        assert top.final_confidence > high.final_confidence
        assert top.final_confidence == pytest.approx(0.966)

    def test_max_extraction_confidence_adds_bonus(self) -> None:
        result = compute_grading_confidence(_weak(1.0))
        assert result.final_confidence == pytest.approx(0.236, abs=0.001)
        assert [(b.name, b.value) for b in result.bonuses] == [(BONUS_NAME, 0.04)]

    def test_bonus_disabled_by_policy(self) -> None:
        result = compute_grading_confidence(_weak(1.0), GradingPolicy(extraction_bonus_value=0.0))
        assert result.bonuses == []
        assert result.final_confidence == 0.2

    def test_readiness_failure_caps(self) -> None:
        result = compute_grading_confidence(
            _strong(readiness_checklist={"assignmentLinked": False})
        )
        assert result.final_confidence == 0.86
        assert [cap.name for cap in result.caps_applied] == ["readiness_cap"]
        assert result.signals["readiness_failures"] == ["assignmentLinked"]

    def test_evidence_gap_caps(self) -> None:
        checks = [CheckSignal(decision="ACHIEVED", confidence=1.0, evidence_count=2)] * 4 + [
            CheckSignal(decision="NOT_ACHIEVED", confidence=1.0, evidence_count=0)
        ]
        result = compute_grading_confidence(_strong(model_confidence=1.0, criterion_checks=checks))
        assert result.final_confidence == 0.86
        assert result.caps_applied[0].name == "evidence_gap_cap"

    def test_achieved_without_evidence_is_penalised(self) -> None:
        checks = [CheckSignal(decision="ACHIEVED", confidence=0.95, evidence_count=0)]
        result = compute_grading_confidence(_strong(model_confidence=0.95, criterion_checks=checks))
        assert result.final_confidence <= 0.4
        assert result.penalties["achieved_without_evidence"] == 0.2
        assert result.signals["achieved_without_evidence_count"] == 1

    def test_without_checks_uses_model_confidence(self) -> None:
        result = compute_grading_confidence(_strong(criterion_checks=[]))
        assert result.criterion_average_confidence == 0.92
        assert result.signals["total_criteria"] == 1

    def test_non_finite_values_are_zeroed(self) -> None:
        result = compute_grading_confidence(_strong(model_confidence=float("nan")))
        assert result.signals["model_confidence"] == 0.0

    def test_signals_are_reported(self) -> None:
        result = compute_grading_confidence(_weak(0.61))
        assert result.signals["unclear_count"] == 2
        assert result.signals["low_criterion_confidence_count"] == 2
        assert result.signals["criteria_without_evidence"] == 2
        assert result.signals["extraction_mode"] == "UNKNOWN"

    def test_final_is_rounded_to_three_places(self) -> None:
        result = compute_grading_confidence(_weak(1.0))
        assert result.final_confidence == round(result.final_confidence, 3)
