from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    DONE = "DONE"
    NEEDS_OCR = "NEEDS_OCR"
    FAILED = "FAILED"


class QualityBand(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class RouteHint(str, Enum):
    AUTO_READY = "AUTO_READY"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    BLOCKED = "BLOCKED"


class AutomationState(str, Enum):
    AUTO_READY = "AUTO_READY"
    NEEDS_HUMAN = "NEEDS_HUMAN"
    BLOCKED = "BLOCKED"
    COMPLETED = "COMPLETED"


COVER_ONLY_MODE = "COVER_ONLY"


def _field_value(raw: Any) -> str | None:
    """Cover fields arrive either as plain strings or as ``{"value": ...}``."""
    if isinstance(raw, dict):
        raw = raw.get("value")
    text = str(raw).strip() if raw is not None else ""
    return text or None


def _number(raw: Any, default: float = 0.0) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return default
    return float(raw)


@dataclass(frozen=True)
class CoverMetadata:
    """Identity fields read from a submission's cover page."""

    student_name: str | None = None
    student_id: str | None = None
    unit_code: str | None = None
    assignment_code: str | None = None
    submission_date: str | None = None
    confidence: float = 0.0

    @classmethod
    def from_payload(cls, raw: Any) -> "CoverMetadata | None":
        if not isinstance(raw, dict):
            return None
        return cls(
            student_name=_field_value(raw.get("studentName", raw.get("student_name"))),
            student_id=_field_value(raw.get("studentId", raw.get("student_id"))),
            unit_code=_field_value(raw.get("unitCode", raw.get("unit_code"))),
            assignment_code=_field_value(raw.get("assignmentCode", raw.get("assignment_code"))),
            submission_date=_field_value(raw.get("submissionDate", raw.get("submission_date"))),
            confidence=_number(raw.get("confidence")),
        )

    def present_fields(self) -> list[str]:
        return [
            value
            for value in (
                self.student_name,
                self.student_id,
                self.unit_code,
                self.assignment_code,
                self.submission_date,
            )
            if value
        ]


@dataclass(frozen=True)
class ExtractionRun:
    """The latest extraction attempt for a document."""

    status: str = ""
    overall_confidence: float = 0.0
    page_count: int = 0
    warnings: list[str] = field(default_factory=list)
    derived_text_chars: int | None = None
    extraction_mode: str = ""
    cover_metadata: CoverMetadata | None = None

    @classmethod
    def from_payload(cls, raw: dict[str, Any]) -> "ExtractionRun":
        """Build a run from a loosely shaped record (camelCase or snake_case)."""
        source_meta = raw.get("sourceMeta", raw.get("source_meta"))
        meta = source_meta if isinstance(source_meta, dict) else {}
        signals = meta.get("qualitySignals") if isinstance(meta.get("qualitySignals"), dict) else {}
        char_candidates = [
            _number(meta.get("derivedTextChars", meta.get("derived_text_chars"))),
            _number(meta.get("extractedChars", meta.get("extracted_chars"))),
            _number(signals.get("derivedTextChars")),
        ]
        positive = [int(n) for n in char_candidates if n > 0]
        return cls(
            status=str(raw.get("status") or "").strip().upper(),
            overall_confidence=_number(raw.get("overallConfidence", raw.get("overall_confidence"))),
            page_count=int(_number(raw.get("pageCount", raw.get("page_count")))),
            warnings=_warning_list(raw.get("warnings")),
            derived_text_chars=max(positive) if positive else None,
            extraction_mode=str(meta.get("extractionMode", meta.get("extraction_mode")) or "")
            .strip()
            .upper(),
            cover_metadata=CoverMetadata.from_payload(
                meta.get("coverMetadata", meta.get("cover_metadata"))
            ),
        )


def _warning_list(raw: Any) -> list[str]:
    if isinstance(raw, dict):
        raw = raw.get("warnings")
    if not isinstance(raw, list):
        return []
    return [str(item).strip() for item in raw if item is not None and str(item).strip()]


@dataclass(frozen=True)
class ReadinessInput:
    submission_status: str | None = None
    extracted_text: str | None = None
    latest_run: ExtractionRun | None = None


@dataclass(frozen=True)
class ReadinessMetrics:
    extracted_chars: int
    page_count: int
    overall_confidence: float
    run_status: str
    cover_metadata_ready: bool
    extraction_mode: str


@dataclass(frozen=True)
class ExtractionReadiness:
    ok: bool
    blockers: list[str]
    warnings: list[str]
    metrics: ReadinessMetrics


@dataclass(frozen=True)
class ExtractionQuality:
    score: int
    band: QualityBand
    route_hint: RouteHint
    ready: bool
    blockers: list[str]
    warnings: list[str]
    metrics: ReadinessMetrics


@dataclass(frozen=True)
class AutomationDecision:
    state: AutomationState
    reason: str
    exception_code: str
    recommended_action: str


@dataclass(frozen=True)
class CheckSignal:
    """One criterion check as seen by the confidence scorer."""

    decision: str = ""
    confidence: float = 0.0
    evidence_count: int = 0


@dataclass(frozen=True)
class EvidenceSummary:
    criteria_count: int | None = None
    total_citations: int | None = None
    criteria_without_evidence: int | None = None


@dataclass(frozen=True)
class ConfidenceSignals:
    model_confidence: float
    extraction_confidence: float
    extraction_mode: str = ""
    modality_missing_count: int = 0
    readiness_checklist: dict[str, bool] = field(default_factory=dict)
    criteria_alignment_overlap_ratio: float | None = None
    criteria_alignment_mismatch_count: int = 0
    criterion_checks: list[CheckSignal] = field(default_factory=list)
    evidence_summary: EvidenceSummary | None = None
    band_cap_was_capped: bool = False


@dataclass(frozen=True)
class ConfidenceCap:
    name: str
    value: float
    reason: str


@dataclass(frozen=True)
class ConfidenceBonus:
    name: str
    value: float


@dataclass(frozen=True)
class ConfidenceResult:
    final_confidence: float
    weighted_base_confidence: float
    raw_confidence_before_caps: float
    criterion_average_confidence: float
    evidence_score: float
    caps_applied: list[ConfidenceCap]
    bonuses: list[ConfidenceBonus]
    penalties: dict[str, float]
    signals: dict[str, Any]

    @property
    def was_capped(self) -> bool:
        return bool(self.caps_applied)


class GradeWord(str, Enum):
    REFER = "REFER"
    PASS = "PASS"
    PASS_ON_RESUBMISSION = "PASS_ON_RESUBMISSION"
    MERIT = "MERIT"
    DISTINCTION = "DISTINCTION"


class CheckDecision(str, Enum):
    ACHIEVED = "ACHIEVED"
    NOT_ACHIEVED = "NOT_ACHIEVED"
    UNCLEAR = "UNCLEAR"


@dataclass(frozen=True)
class Evidence:
    """A citation backing a criterion decision; page numbers are 1-based."""

    page: int
    quote: str | None = None
    visual_description: str | None = None


@dataclass(frozen=True)
class CriterionCheck:
    code: str
    decision: CheckDecision
    rationale: str
    confidence: float
    evidence: list[Evidence] = field(default_factory=list)

    def to_signal(self) -> CheckSignal:
        return CheckSignal(
            decision=self.decision.value,
            confidence=self.confidence,
            evidence_count=len(self.evidence),
        )


@dataclass(frozen=True)
class GradeDecision:
    overall_grade_word: GradeWord
    resubmission_required: bool
    confidence: float
    criterion_checks: list[CriterionCheck]
    feedback_summary: str
    feedback_bullets: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class AcceptedDecision:
    data: GradeDecision
    ok: bool = True


@dataclass(frozen=True)
class RejectedDecision:
    reasons: list[str]
    ok: bool = False


DecisionValidation = AcceptedDecision | RejectedDecision
