"""Tests for the submission automation state machine."""

from gradeguard.grading.automation import derive_automation_state
from gradeguard.grading.models import (
    AutomationState,
    ExtractionQuality,
    QualityBand,
    ReadinessMetrics,
    RouteHint,
)

_METRICS = ReadinessMetrics(
    extracted_chars=1500,
    page_count=5,
    overall_confidence=0.9,
    run_status="DONE",
    cover_metadata_ready=False,
    extraction_mode="UNKNOWN",
)


def _quality(
    route: RouteHint = RouteHint.AUTO_READY,
    score: int = 90,
    blockers: list[str] | None = None,
    ready: bool | None = None,
) -> ExtractionQuality:
    blockers = blockers or []
    return ExtractionQuality(
        score=score,
        band=QualityBand.HIGH,
        route_hint=route,
        ready=(route is RouteHint.AUTO_READY and not blockers) if ready is None else ready,
        blockers=blockers,
        warnings=[],
        metrics=_METRICS,
    )


def _derive(**overrides):  # type: ignore[no-untyped-def]
    values = {
        "status": "EXTRACTED",
        "student_linked": True,
        "assignment_linked": True,
        "extraction_quality": _quality(),
        "prior_grading_exists": False,
    }
    values.update(overrides)
    return derive_automation_state(**values)


class TestDeriveAutomationState:
    def test_ready_for_grading(self) -> None:
        decision = _derive()
        assert decision.state is AutomationState.AUTO_READY
        assert decision.exception_code == "READY_FOR_GRADING"

    def test_prior_grading_wins_over_everything(self) -> None:
        decision = _derive(status="FAILED", student_linked=False, prior_grading_exists=True)
        assert decision.state is AutomationState.COMPLETED
        assert decision.exception_code == "COMPLETED_EXPORT_READY"

    def test_failed_submission(self) -> None:
        decision = _derive(status="failed")
        assert decision.state is AutomationState.BLOCKED
        assert decision.exception_code == "SUBMISSION_FAILED"

    def test_needs_ocr(self) -> None:
        assert _derive(status="NEEDS_OCR").exception_code == "EXTRACT_NEEDS_OCR"

    def test_blocked_quality_outranks_missing_links(self) -> None:
        decision = _derive(
            assignment_linked=False,
            extraction_quality=_quality(route=RouteHint.BLOCKED, score=20),
        )
        assert decision.state is AutomationState.BLOCKED
        assert decision.exception_code == "EXTRACTION_LOW_QUALITY_BLOCKED"
        assert "20/100" in decision.reason

    def test_blocker_present(self) -> None:
        decision = _derive(
            extraction_quality=_quality(
                route=RouteHint.NEEDS_REVIEW, blockers=["Latest extraction run failed."]
            )
        )
        assert decision.exception_code == "EXTRACTION_BLOCKER_PRESENT"
        assert decision.reason.endswith("Latest extraction run failed.")

    def test_missing_assignment_before_missing_student(self) -> None:
        decision = _derive(assignment_linked=False, student_linked=False)
        assert decision.state is AutomationState.NEEDS_HUMAN
        assert decision.exception_code == "MISSING_ASSIGNMENT_LINK"

    def test_missing_student(self) -> None:
        assert _derive(student_linked=False).exception_code == "MISSING_STUDENT_LINK"

    def test_extraction_in_progress(self) -> None:
        assert _derive(status="UPLOADED").exception_code == "EXTRACTION_IN_PROGRESS"
        assert _derive(status="EXTRACTING").exception_code == "EXTRACTION_IN_PROGRESS"

    def test_grading_in_progress(self) -> None:
        assert _derive(status="ASSESSING").exception_code == "GRADING_IN_PROGRESS"

    def test_quality_missing(self) -> None:
        assert _derive(extraction_quality=None).exception_code == "EXTRACTION_QUALITY_MISSING"

    def test_quality_needs_review(self) -> None:
        decision = _derive(extraction_quality=_quality(route=RouteHint.NEEDS_REVIEW, score=60))
        assert decision.exception_code == "EXTRACTION_LOW_QUALITY_REVIEW"

    def test_auto_ready_route_but_not_ready_needs_manual_review(self) -> None:
        decision = _derive(extraction_quality=_quality(ready=False))
        assert decision.state is AutomationState.NEEDS_HUMAN
        assert decision.exception_code == "MANUAL_REVIEW_REQUIRED"

    def test_missing_status_is_tolerated(self) -> None:
        assert _derive(status=None).exception_code == "READY_FOR_GRADING"
