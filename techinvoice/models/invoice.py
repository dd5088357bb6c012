from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSED = "PROCESSED"
    FAILED = "FAILED"


class InvoiceRecord(BaseModel):
    """The single persisted entity. amount/invoice_date are placeholders while PENDING."""
    id: str
    source_email_id: str
    sender: str
    invoice_date: date
    amount: float
    status: InvoiceStatus = InvoiceStatus.PENDING
    error_message: str | None = None  # Only set while FAILED
    created_at: datetime
    processed_at: datetime | None = None


class EmailData(BaseModel):
    """Inbound email as delivered by the webhook (read-only for the pipeline)"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    subject: str
    content: str
    sender: str = Field(alias="from")
    received_at: datetime = Field(alias="receivedAt")


class ExtractedFields(BaseModel):
    sender: str | None = None
    invoice_date: str | None = None  # YYYY-MM-DD
    amount: float | None = None


class EligibilityDecision(BaseModel):
    eligible: bool
    reason: str | None = None


class ProcessResult(BaseModel):
    success: bool
    invoice_id: str | None = None
    error: str | None = None


class ReprocessResult(BaseModel):
    success: bool
    error: str | None = None


class SubmitResult(BaseModel):
    """Outcome of a webhook intake: either not processed (with reason) or a pipeline result"""
    processed: bool
    success: bool = False
    invoice_id: str | None = None
    error: str | None = None
    reason: str | None = None


class ProcessingStats(BaseModel):
    total: int
    processed: int
    failed: int
    pending: int
    success_rate: float
