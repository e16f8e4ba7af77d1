"""Readiness gate and quality score for an extraction run.

Blockers stop automated grading; warnings are informational. Metrics are
returned whatever the outcome so callers can always show diagnostics.
"""

from gradeguard.config.policy import GradingPolicy
from gradeguard.extraction.text import has_page_breaks
from gradeguard.grading.models import (
    COVER_ONLY_MODE,
    CoverMetadata,
    ExtractionQuality,
    ExtractionReadiness,
    QualityBand,
    ReadinessInput,
    ReadinessMetrics,
    RouteHint,
    RunStatus,
)
from gradeguard.logging.logger import Log

_KNOWN_STATUSES = frozenset(status.value for status in RunStatus)

CHARS_FOR_FULL_SCORE = 1200
CONFIDENCE_FOR_FULL_SCORE = 0.85
PAGES_FOR_FULL_SCORE = 4


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def is_cover_metadata_ready(cover: CoverMetadata | None) -> bool:
    """At least two identity fields were read with confidence of 0.5 or more."""
    if cover is None:
        return False
    return len(cover.present_fields()) >= 2 and cover.confidence >= 0.5


def evaluate_extraction_readiness(
    data: ReadinessInput, policy: GradingPolicy | None = None
) -> ExtractionReadiness:
    policy = (policy or GradingPolicy()).clamped()
    blockers: list[str] = []
    warnings: list[str] = []

    run = data.latest_run
    text = (data.extracted_text or "").strip()
    text_chars = len(text)
    derived_chars = run.derived_text_chars if run and run.derived_text_chars else 0
    extracted_chars = text_chars or derived_chars
    has_char_signal = extracted_chars > 0
    run_status = run.status.upper() if run else ""
    page_count = run.page_count if run else 0
    confidence = run.overall_confidence if run else 0.0
    mode = run.extraction_mode.upper() if run and run.extraction_mode else ""
    cover_only = mode == COVER_ONLY_MODE
    cover_ready = is_cover_metadata_ready(run.cover_metadata if run else None)

    if run is None:
        blockers.append("No extraction run found.")
    if run_status == RunStatus.NEEDS_OCR:
        if cover_only:
            warnings.append(
                "Extraction flagged as NEEDS_OCR, but cover-only mode is allowed to continue."
            )
        else:
            blockers.append("Extraction flagged as NEEDS_OCR. Run OCR/correction before grading.")
    if run_status == RunStatus.FAILED:
        blockers.append("Latest extraction run failed.")
    if run_status in (RunStatus.RUNNING, RunStatus.PENDING):
        blockers.append("Extraction is still in progress.")
    if run_status and run_status not in _KNOWN_STATUSES:
        warnings.append(f"Unknown extraction status: {run_status}.")
    if cover_only and not cover_ready:
        warnings.append(
            "Cover-only extraction has incomplete cover metadata; complete it in review if needed."
        )

    if extracted_chars < policy.min_extracted_chars:
        if not has_char_signal:
            warnings.append("Extracted text length signal is unavailable for this run.")
        elif cover_only:
            warnings.append(
                f"Cover-only extraction has short body text ({extracted_chars} chars), "
                "which is expected for this mode."
            )
        elif cover_ready:
            warnings.append(
                f"Extracted body text is short ({extracted_chars} chars), "
                "but cover metadata is available."
            )
        else:
            blockers.append(
                f"Extracted text too short ({extracted_chars} chars; "
                f"minimum {policy.min_extracted_chars})."
            )

    if 0 < confidence < policy.min_extraction_confidence:
        blockers.append(
            f"Extraction confidence too low ({confidence:.2f}; "
            f"minimum {policy.min_extraction_confidence:.2f})."
        )
    if page_count <= 0:
        warnings.append("Extraction page count is missing.")
    elif page_count < policy.min_page_count:
        blockers.append(
            f"Extraction page count too low ({page_count}; minimum {policy.min_page_count})."
        )
    if page_count > 1 and text and not has_page_breaks(text):
        warnings.append(
            "Extracted text has no page-break markers; page attribution is unreliable."
        )

    run_warnings = run.warnings if run else []
    warnings.extend(f"Extraction warning: {w}" for w in run_warnings)
    if len(run_warnings) >= policy.max_warnings_before_block:
        blockers.append(
            f"Extraction produced too many warnings ({len(run_warnings)}; "
            f"maximum {policy.max_warnings_before_block - 1})."
        )

    if (data.submission_status or "").strip().upper() == RunStatus.NEEDS_OCR:
        if cover_only:
            warnings.append(
                "Submission status is NEEDS_OCR, but cover-only mode is allowed to continue."
            )
        else:
            blockers.append("Submission status is NEEDS_OCR.")

    metrics = ReadinessMetrics(
        extracted_chars=extracted_chars,
        page_count=max(0, page_count),
        overall_confidence=confidence,
        run_status=run_status,
        cover_metadata_ready=cover_ready,
        extraction_mode=mode or "UNKNOWN",
    )
    if blockers:
        Log.debug("Extraction readiness blocked", blockers=len(blockers), warnings=len(warnings))
    return ExtractionReadiness(
        ok=not blockers, blockers=blockers, warnings=warnings, metrics=metrics
    )


def compute_extraction_quality(
    data: ReadinessInput, policy: GradingPolicy | None = None
) -> ExtractionQuality:
    """Score extraction quality 0..100 and derive a routing hint.

    The score blends text length, confidence, page depth and cover metadata,
    subtracts for warnings and blockers, and is capped by the run status.
    """
    policy = (policy or GradingPolicy()).clamped()
    gate = evaluate_extraction_readiness(data, policy)
    m = gate.metrics

    chars_weight = 25 if m.cover_metadata_ready else 45
    score = (
        _clamp(m.extracted_chars / CHARS_FOR_FULL_SCORE, 0, 1) * chars_weight
        + _clamp(m.overall_confidence / CONFIDENCE_FOR_FULL_SCORE, 0, 1) * 35
        + (10 if m.page_count > 0 else 0)
        + _clamp(m.page_count / PAGES_FOR_FULL_SCORE, 0, 1) * 10
        + (20 if m.cover_metadata_ready else 0)
    )
    score -= len(gate.warnings) * 3
    score -= len(gate.blockers) * 8

    if m.run_status == RunStatus.NEEDS_OCR:
        score = min(score, 25)
    if m.run_status == RunStatus.FAILED:
        score = 0
    if m.run_status in (RunStatus.RUNNING, RunStatus.PENDING):
        score = min(score, 35)

    final = int(round(_clamp(score, 0, 100)))
    if final >= 75:
        band = QualityBand.HIGH
    elif final >= 50:
        band = QualityBand.MEDIUM
    else:
        band = QualityBand.LOW

    if final <= policy.blocked_max_quality_score:
        route = RouteHint.BLOCKED
    elif final >= policy.auto_ready_min_quality_score:
        route = RouteHint.AUTO_READY
    else:
        route = RouteHint.NEEDS_REVIEW

    return ExtractionQuality(
        score=final,
        band=band,
        route_hint=route,
        ready=gate.ok and route is RouteHint.AUTO_READY,
        blockers=gate.blockers,
        warnings=gate.warnings,
        metrics=m,
    )
