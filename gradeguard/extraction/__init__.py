from gradeguard.extraction.document import coerce_document_type, parse_document
from gradeguard.extraction.models import DocumentType, ExtractedText, StructuredDocument

__all__ = [
    "DocumentType",
    "ExtractedText",
    "StructuredDocument",
    "coerce_document_type",
    "parse_document",
]
