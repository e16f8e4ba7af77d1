from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from gradeguard.extraction.models import DocumentType, Equation, StructuredDocument
from gradeguard.grading.models import ExtractionQuality, ExtractionReadiness, ExtractionRun


@dataclass(slots=True)
class PipelineContext:
    raw_bytes: bytes
    doc_type: DocumentType
    raw_text: str = ""
    page_count: int = 0
    normalized_text: str = ""
    equations: list[Equation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    run_status: str = "DONE"
    document: StructuredDocument | None = None
    run: ExtractionRun | None = None
    readiness: ExtractionReadiness | None = None
    quality: ExtractionQuality | None = None


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
