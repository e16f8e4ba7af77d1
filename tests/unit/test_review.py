"""Tests for the grading review (validate, score, lint)."""

from typing import Any
from unittest.mock import patch

from gradeguard.feedback.models import FeedbackSourceContext
from gradeguard.grading.confidence import compute_grading_confidence
from gradeguard.grading.models import ConfidenceSignals, EvidenceSummary, RejectedDecision
from gradeguard.grading.review import review_grade_decision

REQUIRED = ["P1", "M1"]


def _payload() -> dict[str, Any]:
    return {
        "overallGradeWord": "MERIT",
        "confidence": 0.82,
        "criterionChecks": [
            {
                "code": "P1",
                "decision": "ACHIEVED",
                "rationale": "Clear derivation of the reactions.",
                "confidence": 0.9,
                "evidence": [{"page": 2, "quote": "R_A = 12 kN"}],
            },
            {
                "code": "M1",
                "decision": "NOT_ACHIEVED",
                "rationale": "Bending moments are not evaluated.",
                "confidence": 0.7,
                "evidence": [],
            },
        ],
        "feedbackSummary": "The reactions are derived clearly.",
        "feedbackBullets": ["Evaluate the bending moments at mid-span."],
    }


def _signals() -> ConfidenceSignals:
    return ConfidenceSignals(model_confidence=0.1, extraction_confidence=0.9)


class TestReviewGradeDecision:
    def test_rejected_decision_stops_early(self) -> None:
        review = review_grade_decision({"overallGradeWord": "GOLD"}, REQUIRED, _signals())
        assert not review.accepted
        assert isinstance(review.validation, RejectedDecision)
        assert review.confidence is None
        assert review.feedback is None

    def test_empty_bullets_are_rejected(self) -> None:
        payload = _payload()
        payload["feedbackBullets"] = ["   "]
        review = review_grade_decision(payload, REQUIRED, _signals())
        assert not review.accepted
        assert isinstance(review.validation, RejectedDecision)
        assert any("feedback_bullets" in r for r in review.validation.reasons)
        assert review.confidence is None

    def test_accepted_decision_is_scored_and_linted(self) -> None:
        review = review_grade_decision(_payload(), REQUIRED, _signals())
        assert review.accepted
        assert review.confidence is not None
        assert 0.0 <= review.confidence.final_confidence <= 1.0
        assert review.feedback is not None
        assert review.feedback.text == (
            "The reactions are derived clearly.\nEvaluate the bending moments at mid-span."
        )
        assert not review.feedback.changed

    def test_scorer_sees_the_validated_decision(self) -> None:
        with patch(
            "gradeguard.grading.review.compute_grading_confidence",
            wraps=compute_grading_confidence,
        ) as mock_score:
            review_grade_decision(_payload(), REQUIRED, _signals())
        scored = mock_score.call_args.args[0]
        assert scored.model_confidence == 0.82
        assert scored.extraction_confidence == 0.9
        assert [s.decision for s in scored.criterion_checks] == ["ACHIEVED", "NOT_ACHIEVED"]
        assert scored.evidence_summary == EvidenceSummary(
            criteria_count=2, total_citations=1, criteria_without_evidence=1
        )

    def test_caller_evidence_summary_is_kept(self) -> None:
        summary = EvidenceSummary(criteria_count=5, total_citations=9, criteria_without_evidence=0)
        signals = ConfidenceSignals(
            model_confidence=0.5, extraction_confidence=0.9, evidence_summary=summary
        )
        with patch(
            "gradeguard.grading.review.compute_grading_confidence",
            wraps=compute_grading_confidence,
        ) as mock_score:
            review_grade_decision(_payload(), REQUIRED, signals)
        assert mock_score.call_args.args[0].evidence_summary is summary

    def test_feedback_text_override_is_sanitized(self) -> None:
        review = review_grade_decision(
            _payload(),
            REQUIRED,
            _signals(),
            feedback_text="Your solar model is clear.",
            source_context=FeedbackSourceContext(assignment_title="Beam Reactions"),
        )
        assert review.feedback is not None
        assert review.feedback.text == "Your subject-specific model is clear."
        assert review.feedback.changed
