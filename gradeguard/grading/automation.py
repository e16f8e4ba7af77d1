"""Workflow state for a submission, derived from current facts only.

The function is total: every combination of inputs lands in exactly one
state. Rules are checked in order and the first match wins.
"""

from gradeguard.grading.models import (
    AutomationDecision,
    AutomationState,
    ExtractionQuality,
    RouteHint,
)

_IN_PROGRESS_STATUSES = ("UPLOADED", "EXTRACTING")


def _decision(state: AutomationState, reason: str, code: str, action: str) -> AutomationDecision:
    return AutomationDecision(
        state=state, reason=reason, exception_code=code, recommended_action=action
    )


def derive_automation_state(
    status: str | None,
    student_linked: bool,
    assignment_linked: bool,
    extraction_quality: ExtractionQuality | None,
    prior_grading_exists: bool,
) -> AutomationDecision:
    status = (status or "").strip().upper()
    quality = extraction_quality

    if prior_grading_exists:
        return _decision(
            AutomationState.COMPLETED,
            "Assessment complete with export-ready outputs.",
            "COMPLETED_EXPORT_READY",
            "Ready for export/handoff.",
        )

    if status == "FAILED":
        return _decision(
            AutomationState.BLOCKED,
            "Submission failed and needs operator intervention.",
            "SUBMISSION_FAILED",
            "Open submission and inspect failure details before retry.",
        )
    if status == "NEEDS_OCR":
        return _decision(
            AutomationState.BLOCKED,
            "Extraction quality gate blocked grading (OCR required).",
            "EXTRACT_NEEDS_OCR",
            "Re-run extraction with better source quality or OCR path.",
        )
    if quality is not None and quality.route_hint is RouteHint.BLOCKED:
        return _decision(
            AutomationState.BLOCKED,
            f"Extraction quality score too low ({quality.score}/100).",
            "EXTRACTION_LOW_QUALITY_BLOCKED",
            "Re-run extraction/OCR and review source quality before grading.",
        )
    if quality is not None and quality.blockers:
        return _decision(
            AutomationState.BLOCKED,
            f"Extraction blocked: {quality.blockers[0]}",
            "EXTRACTION_BLOCKER_PRESENT",
            "Resolve the extraction blockers before grading.",
        )

    if not assignment_linked:
        return _decision(
            AutomationState.NEEDS_HUMAN,
            "No assignment linked. Resolve assignment before grading.",
            "MISSING_ASSIGNMENT_LINK",
            "Link the correct assignment/brief before grading.",
        )
    if not student_linked:
        return _decision(
            AutomationState.NEEDS_HUMAN,
            "No student linked. Resolve student identity.",
            "MISSING_STUDENT_LINK",
            "Use Resolve to link the correct student.",
        )
    if status in _IN_PROGRESS_STATUSES:
        return _decision(
            AutomationState.NEEDS_HUMAN,
            "Extraction not complete yet.",
            "EXTRACTION_IN_PROGRESS",
            "Wait for extraction to complete, then refresh queue.",
        )
    if status == "ASSESSING":
        return _decision(
            AutomationState.NEEDS_HUMAN,
            "Grading is currently running.",
            "GRADING_IN_PROGRESS",
            "Wait for grading completion and review result.",
        )
    if quality is None:
        return _decision(
            AutomationState.NEEDS_HUMAN,
            "Extraction quality has not been evaluated.",
            "EXTRACTION_QUALITY_MISSING",
            "Re-run extraction so the quality gate can be evaluated.",
        )
    if quality.route_hint is RouteHint.NEEDS_REVIEW:
        return _decision(
            AutomationState.NEEDS_HUMAN,
            f"Extraction quality needs review ({quality.score}/100).",
            "EXTRACTION_LOW_QUALITY_REVIEW",
            "Review extracted pages and triage warnings before grading.",
        )

    if quality.ready:
        return _decision(
            AutomationState.AUTO_READY,
            "Ready for auto-grading with no blockers detected.",
            "READY_FOR_GRADING",
            "Queue grading now.",
        )

    return _decision(
        AutomationState.NEEDS_HUMAN,
        "Requires manual review before the next action.",
        "MANUAL_REVIEW_REQUIRED",
        "Open submission and validate missing context.",
    )
