"""Entry point that routes normalized text to the parser for its type."""

from collections.abc import Sequence

from gradeguard.extraction.brief_parser import parse_brief
from gradeguard.extraction.equations import orphan_equation_tokens
from gradeguard.extraction.exceptions import UnknownDocumentTypeError
from gradeguard.extraction.models import DocumentType, Equation, StructuredDocument
from gradeguard.extraction.spec_parser import parse_spec
from gradeguard.logging.logger import Log


def coerce_document_type(value: str | DocumentType) -> DocumentType:
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(str(value).strip().upper())
    except ValueError as exc:
        raise UnknownDocumentTypeError(
            f"Unknown document type '{value}'. Choose from: {[t.value for t in DocumentType]}"
        ) from exc


def _parse(text: str, kind: DocumentType, equations: Sequence[Equation]) -> StructuredDocument:
    if kind is DocumentType.BRIEF:
        return parse_brief(text, equations)
    if kind is DocumentType.SPEC:
        spec = parse_spec(text)
        return StructuredDocument(kind=kind, warnings=list(spec.warnings), spec=spec)
    return StructuredDocument(kind=kind)


def parse_document(
    normalized_text: str,
    doc_type: str | DocumentType,
    equations: Sequence[Equation] = (),
) -> StructuredDocument:
    """Build the structured view of a document.

    Malformed input never raises: an unknown *doc_type* or an unexpected
    parser failure yields a RAW or empty document carrying a warning.
    """
    text = normalized_text or ""
    try:
        doc_type = coerce_document_type(doc_type)
    except UnknownDocumentTypeError as exc:
        Log.warning("Unknown document type", doc_type=str(doc_type))
        return StructuredDocument(kind=DocumentType.RAW, warnings=[str(exc)])
    try:
        document = _parse(text, doc_type, equations)
    except Exception as exc:  # noqa: BLE001
        Log.error("Structural parse failed", doc_type=doc_type.value, error=str(exc))
        return StructuredDocument(
            kind=doc_type,
            warnings=[f"Structural parse failed: {exc.__class__.__name__}: {exc}"],
        )

    for orphan in orphan_equation_tokens(text, equations):
        document.warnings.append(f"Equation placeholder without a matching equation: {orphan}")
    return document
