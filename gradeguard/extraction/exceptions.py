class ExtractionError(Exception):
    """Raised when a document cannot be put through extraction at all."""


class UnknownDocumentTypeError(ExtractionError):
    """Raised when a document type tag is not SPEC, BRIEF or RAW."""
