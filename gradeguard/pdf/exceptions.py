class PdfExtractionError(Exception):
    """Raised when a PDF cannot be turned into page text."""
