from collections.abc import Sequence

from gradeguard.config.policy import GradingPolicy, load_policy
from gradeguard.config.settings import Settings
from gradeguard.equation_recovery.base import BaseEquationRecoverer
from gradeguard.equation_recovery.factory import EquationRecovererFactory
from gradeguard.extraction.document import coerce_document_type
from gradeguard.extraction.models import DocumentType, ExtractedText
from gradeguard.logging.logger import Log
from gradeguard.pdf.base import BasePdfExtractor
from gradeguard.pdf.factory import PdfExtractorFactory
from gradeguard.processor.models import ExtractionOutcome
from gradeguard.processor.pipeline import PipelineContext, PipelineStep
from gradeguard.processor.steps import (
    AssessReadinessStep,
    DetectEquationsStep,
    ExtractTextStep,
    NormalizeTextStep,
    ParseStructureStep,
    RecoverEquationsStep,
)


class Processor:
    """Orchestrates document extraction.

    Pipeline: extract -> normalize -> detect equations -> recover equations
    -> parse structure -> readiness and quality.
    """

    def __init__(
        self,
        pdf_extractor: BasePdfExtractor,
        policy: GradingPolicy,
        equation_recoverer: BaseEquationRecoverer | None = None,
    ) -> None:
        self._steps: Sequence[PipelineStep] = (
            ExtractTextStep(pdf_extractor),
            NormalizeTextStep(),
            DetectEquationsStep(),
            RecoverEquationsStep(equation_recoverer),
            ParseStructureStep(),
            AssessReadinessStep(policy),
        )

    def process(self, raw_bytes: bytes, doc_type: str | DocumentType) -> ExtractionOutcome:
        """Run every step over the document bytes.

        Raises:
            PdfExtractionError: if the PDF cannot be read.
            UnknownDocumentTypeError: if *doc_type* is not SPEC, BRIEF or RAW.
        """
        kind = coerce_document_type(doc_type)
        Log.info("Processing document", doc_type=kind.value, size_bytes=len(raw_bytes))

        context = PipelineContext(raw_bytes=raw_bytes, doc_type=kind)
        for step in self._steps:
            context = step.run(context)

        if context.document is None or context.run is None:
            raise ValueError("Pipeline finished without a document and an extraction run")
        if context.readiness is None or context.quality is None:
            raise ValueError("Pipeline finished without readiness results")

        extracted = ExtractedText(
            text=context.normalized_text,
            page_count=context.page_count,
            equations=list(context.equations),
            warnings=list(context.warnings),
        )
        return ExtractionOutcome(
            extracted=extracted,
            document=context.document,
            run=context.run,
            readiness=context.readiness,
            quality=context.quality,
        )


def build_processor(settings: Settings) -> Processor:
    """Build a Processor with all required adapters."""
    policy = load_policy(settings)
    pdf_extractor = PdfExtractorFactory.create(settings)
    recoverer = (
        EquationRecovererFactory.create(settings, policy)
        if policy.equation_fallback_enabled
        else None
    )
    return Processor(pdf_extractor=pdf_extractor, policy=policy, equation_recoverer=recoverer)
