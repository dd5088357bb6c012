from .invoice import (
    EligibilityDecision,
    EmailData,
    ExtractedFields,
    InvoiceRecord,
    InvoiceStatus,
    ProcessingStats,
    ProcessResult,
    ReprocessResult,
    SubmitResult,
)

__all__ = [
    "EligibilityDecision",
    "EmailData",
    "ExtractedFields",
    "InvoiceRecord",
    "InvoiceStatus",
    "ProcessingStats",
    "ProcessResult",
    "ReprocessResult",
    "SubmitResult",
]
