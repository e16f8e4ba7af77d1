from abc import ABC, abstractmethod
from dataclasses import dataclass

PAGE_SEPARATOR = "\f"


@dataclass(frozen=True)
class PdfText:
    """Raw page text joined with the page break character."""

    text: str
    page_count: int

    @classmethod
    def from_pages(cls, pages: list[str]) -> "PdfText":
        return cls(text=PAGE_SEPARATOR.join(pages).strip(" \n"), page_count=len(pages))


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract page text from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfText with one page break between consecutive pages.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
