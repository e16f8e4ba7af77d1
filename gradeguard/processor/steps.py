from gradeguard.config.policy import GradingPolicy
from gradeguard.equation_recovery.base import BaseEquationRecoverer
from gradeguard.equation_recovery.exceptions import EquationRecoveryError
from gradeguard.extraction.document import parse_document
from gradeguard.extraction.equations import detect_inline_equations
from gradeguard.extraction.text import normalize_text, split_pages
from gradeguard.grading.models import ExtractionRun, ReadinessInput, RunStatus
from gradeguard.grading.readiness import compute_extraction_quality, evaluate_extraction_readiness
from gradeguard.logging.logger import Log
from gradeguard.pdf.base import BasePdfExtractor
from gradeguard.processor.pipeline import PipelineContext, PipelineStep

SCANNED_TEXT_CHARS = 50
MIN_PAGE_TEXT_CHARS = 20
SCANNED_WARNING = "PDF looks scanned/image-only: OCR will be required."


class ExtractTextStep(PipelineStep):
    def __init__(self, pdf_extractor: BasePdfExtractor) -> None:
        self._pdf_extractor = pdf_extractor

    def run(self, context: PipelineContext) -> PipelineContext:
        pdf_text = self._pdf_extractor.extract(context.raw_bytes)
        context.raw_text = pdf_text.text
        context.page_count = pdf_text.page_count
        if len(pdf_text.text.strip()) < SCANNED_TEXT_CHARS:
            context.run_status = RunStatus.NEEDS_OCR.value
            context.warnings.append(SCANNED_WARNING)
        Log.info(
            "Extracted PDF text",
            chars=len(context.raw_text),
            pages=context.page_count,
            status=context.run_status,
        )
        return context


class NormalizeTextStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        context.normalized_text = normalize_text(context.raw_text)
        return context


class DetectEquationsStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        text, equations = detect_inline_equations(context.normalized_text)
        context.normalized_text = text
        context.equations = equations
        if equations:
            Log.info(
                "Detected inline equations",
                count=len(equations),
                needs_review=sum(1 for eq in equations if eq.needs_review),
            )
        return context


class RecoverEquationsStep(PipelineStep):
    """Optional external re-recognition; a failure only adds a warning."""

    def __init__(self, recoverer: BaseEquationRecoverer | None) -> None:
        self._recoverer = recoverer

    def run(self, context: PipelineContext) -> PipelineContext:
        if self._recoverer is None or not context.equations:
            return context
        try:
            result = self._recoverer.recover(
                context.equations, split_pages(context.normalized_text)
            )
        except EquationRecoveryError as exc:
            Log.warning("Equation recovery failed", error=str(exc))
            context.warnings.append(f"Equation recovery failed: {exc}")
            return context
        context.equations = list(result.equations)
        return context


class ParseStructureStep(PipelineStep):
    def run(self, context: PipelineContext) -> PipelineContext:
        context.document = parse_document(
            context.normalized_text, context.doc_type, context.equations
        )
        Log.info(
            "Parsed document structure",
            doc_type=context.doc_type.value,
            tasks=len(context.document.tasks),
            warnings=len(context.document.warnings),
        )
        return context


def estimate_confidence(normalized_text: str, page_count: int, scanned: bool) -> float:
    """Share of pages carrying real text, scaled into [0.6, 0.95]; 0 when scanned."""
    if scanned:
        return 0.0
    pages = split_pages(normalized_text)
    total = max(page_count, len(pages), 1)
    with_text = sum(1 for page in pages if len(page.strip()) >= MIN_PAGE_TEXT_CHARS)
    return round(max(0.6, min(0.95, with_text / total * 0.95)), 3)


class AssessReadinessStep(PipelineStep):
    def __init__(self, policy: GradingPolicy) -> None:
        self._policy = policy

    def run(self, context: PipelineContext) -> PipelineContext:
        scanned = context.run_status == RunStatus.NEEDS_OCR.value
        context.run = ExtractionRun(
            status=context.run_status,
            overall_confidence=estimate_confidence(
                context.normalized_text, context.page_count, scanned
            ),
            page_count=context.page_count,
            warnings=list(context.warnings),
            derived_text_chars=len(context.normalized_text.strip()) or None,
        )
        readiness_input = ReadinessInput(
            extracted_text=context.normalized_text, latest_run=context.run
        )
        context.readiness = evaluate_extraction_readiness(readiness_input, self._policy)
        context.quality = compute_extraction_quality(readiness_input, self._policy)
        Log.info(
            "Evaluated extraction readiness",
            ok=context.readiness.ok,
            blockers=len(context.readiness.blockers),
            quality=context.quality.score,
            route=context.quality.route_hint.value,
        )
        return context
