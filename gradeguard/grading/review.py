"""Runs a model-produced grade decision through every safety check in turn."""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from gradeguard.config.policy import GradingPolicy
from gradeguard.feedback.models import FeedbackSourceContext, SanitizedFeedback
from gradeguard.feedback.sanitizer import sanitize_feedback
from gradeguard.grading.confidence import compute_grading_confidence
from gradeguard.grading.decision_validation import validate_grade_decision
from gradeguard.grading.models import (
    AcceptedDecision,
    ConfidenceResult,
    ConfidenceSignals,
    DecisionValidation,
    EvidenceSummary,
)
from gradeguard.logging.logger import Log


@dataclass(frozen=True)
class GradingReview:
    validation: DecisionValidation
    confidence: ConfidenceResult | None = None
    feedback: SanitizedFeedback | None = None

    @property
    def accepted(self) -> bool:
        return isinstance(self.validation, AcceptedDecision)


def review_grade_decision(
    payload: Any,
    required_codes: Iterable[str],
    signals: ConfidenceSignals,
    feedback_text: str | None = None,
    source_context: FeedbackSourceContext | None = None,
    policy: GradingPolicy | None = None,
) -> GradingReview:
    """Validate, score and lint a decision.

    A rejected decision stops here: it gets no confidence and no feedback.
    Checks and the model confidence on *signals* are taken from the
    validated decision, so the scorer always sees what was accepted.
    """
    validation = validate_grade_decision(payload, required_codes)
    if not isinstance(validation, AcceptedDecision):
        Log.warning("Grade decision rejected", reasons=len(validation.reasons))
        return GradingReview(validation=validation)

    decision = validation.data
    check_signals = [check.to_signal() for check in decision.criterion_checks]
    scored = replace(
        signals,
        model_confidence=decision.confidence,
        criterion_checks=check_signals,
        evidence_summary=signals.evidence_summary
        or EvidenceSummary(
            criteria_count=len(check_signals),
            total_citations=sum(s.evidence_count for s in check_signals),
            criteria_without_evidence=sum(1 for s in check_signals if s.evidence_count == 0),
        ),
    )
    confidence = compute_grading_confidence(scored, policy)

    text = feedback_text if feedback_text is not None else "\n".join(
        [decision.feedback_summary, *decision.feedback_bullets]
    )
    feedback = sanitize_feedback(
        text,
        criterion_checks=decision.criterion_checks,
        overall_grade=decision.overall_grade_word.value,
        source_context=source_context,
    )
    Log.info(
        "Grade decision reviewed",
        grade=decision.overall_grade_word.value,
        confidence=confidence.final_confidence,
        caps=len(confidence.caps_applied),
        feedback_lines_changed=feedback.changed_lines,
    )
    return GradingReview(validation=validation, confidence=confidence, feedback=feedback)
