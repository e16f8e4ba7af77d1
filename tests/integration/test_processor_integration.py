"""Integration tests for the extraction pipeline on generated PDFs."""

import pytest

from gradeguard.config.settings import Settings
from gradeguard.extraction.models import DocumentType
from gradeguard.processor.processor import build_processor


@pytest.mark.integration
@pytest.mark.parametrize("engine", ["pdfplumber", "pymupdf"])
class TestProcessorPipeline:
    def test_brief_structure_is_recovered(self, brief_pdf_bytes: bytes, engine: str) -> None:
        processor = build_processor(Settings(pdf_engine=engine))
        outcome = processor.process(brief_pdf_bytes, DocumentType.BRIEF)

        assert outcome.extracted.page_count == 4
        assert outcome.extracted.text.count("\f") == 3
        assert [task.n for task in outcome.document.tasks] == [1, 2]
        assert outcome.document.tasks[0].title == "Static forces"
        assert [part.key for part in outcome.document.tasks[0].parts] == ["a", "b"]
        assert outcome.document.detected_criterion_codes == ["P1", "M1", "D1"]
        assert outcome.document.header is not None
        assert outcome.document.header.unit_code == "4017"

    def test_formula_line_is_lifted(self, brief_pdf_bytes: bytes, engine: str) -> None:
        processor = build_processor(Settings(pdf_engine=engine))
        outcome = processor.process(brief_pdf_bytes, DocumentType.BRIEF)

        equations = outcome.extracted.equations
        assert [eq.page for eq in equations] == [3]
        assert outcome.document.tasks[1].formulas == equations

    def test_short_brief_is_not_ready(self, brief_pdf_bytes: bytes, engine: str) -> None:
        processor = build_processor(Settings(pdf_engine=engine))
        outcome = processor.process(brief_pdf_bytes, DocumentType.BRIEF)

        assert not outcome.readiness.ok
        assert any("too short" in blocker for blocker in outcome.readiness.blockers)
        assert outcome.run.status == "DONE"

    def test_blank_pdf_needs_ocr(self, empty_pdf_bytes: bytes, engine: str) -> None:
        processor = build_processor(Settings(pdf_engine=engine))
        outcome = processor.process(empty_pdf_bytes, DocumentType.RAW)

        assert outcome.run.status == "NEEDS_OCR"
        assert not outcome.readiness.ok
