"""
Domain exceptions for invoice processing.

An ineligible intake is not an exception: the intake gate reports it as an
EligibilityDecision and the caller acknowledges it as "not processed".
"""


class InvoiceProcessingError(Exception):
    """Base class for all invoice pipeline errors"""


class ExtractionError(InvoiceProcessingError):
    """The language model call failed or returned unusable output"""


class DataIncompleteError(InvoiceProcessingError):
    """Extraction succeeded but required fields are missing or invalid"""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = missing or []


class SyncError(InvoiceProcessingError):
    """The spreadsheet mirror could not be updated after retries"""


class NotFoundError(InvoiceProcessingError):
    """No invoice record exists for the given identifier"""

    def __init__(self, invoice_id: str):
        super().__init__(f"Invoice not found: {invoice_id}")
        self.invoice_id = invoice_id
