from abc import ABC, abstractmethod

from labintake.pdf.exceptions import PdfNoTextLayerError


class BasePdfExtractor(ABC):
    """Contract for PDF text extraction adapters.

    Used by extraction providers that accept text but not PDF documents.
    """

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Return the text of every page, in page order.

        Raises:
            PdfExtractionError: if the PDF cannot be opened or parsed.
        """

    def extract(self, pdf_bytes: bytes) -> str:
        """Extract plain text from PDF bytes, one block per non-blank page.

        Raises:
            PdfExtractionError: if extraction fails.
            PdfNoTextLayerError: if no page yields any text.
        """
        pages = [text.strip() for text in self.extract_pages(pdf_bytes)]
        non_blank = [text for text in pages if text]
        if not non_blank:
            raise PdfNoTextLayerError(
                f"PDF has no text layer ({len(pages)} page(s)); it is probably a scan"
            )
        return "\n\n".join(non_blank)
