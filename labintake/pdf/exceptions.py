class PdfExtractionError(Exception):
    """Raised when text cannot be pulled out of a PDF."""


class PdfNoTextLayerError(PdfExtractionError):
    """Raised for image-only (scanned) PDFs that carry no extractable text."""
