from dataclasses import dataclass

from gradeguard.extraction.models import ExtractedText, StructuredDocument
from gradeguard.grading.models import ExtractionQuality, ExtractionReadiness, ExtractionRun


@dataclass(frozen=True)
class ExtractionOutcome:
    """Everything produced for one document, ready to be serialised."""

    extracted: ExtractedText
    document: StructuredDocument
    run: ExtractionRun
    readiness: ExtractionReadiness
    quality: ExtractionQuality
