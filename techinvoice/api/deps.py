from datetime import date, datetime

from fastapi import Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.invoice import InvoiceRecord, InvoiceStatus, ProcessingStats
from ..services.invoice_service import InvoiceService, build_invoice_service


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EmailWebhookPayload(BaseModel):
    """Inbound email as posted by the mail provider's webhook"""
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    subject: str | None = None
    content: str | None = None
    sender: str | None = Field(default=None, alias="from")
    received_at: datetime | None = Field(default=None, alias="receivedAt")


class InvoiceResponse(CamelModel):
    id: str
    source_email_id: str
    sender: str
    invoice_date: date
    amount: float
    status: InvoiceStatus
    error_message: str | None = None
    created_at: datetime
    processed_at: datetime | None = None

    @classmethod
    def from_record(cls, record: InvoiceRecord) -> "InvoiceResponse":
        return cls(**record.model_dump())


class Pagination(CamelModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class InvoiceListResponse(CamelModel):
    invoices: list[InvoiceResponse]
    pagination: Pagination


class StatsResponse(CamelModel):
    total: int
    processed: int
    failed: int
    pending: int
    success_rate: float

    @classmethod
    def from_stats(cls, stats: ProcessingStats) -> "StatsResponse":
        return cls(**stats.model_dump())


class ExtractionTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str | None = None
    content: str | None = None
    sender: str | None = Field(default=None, alias="from")


def get_invoice_service(request: Request) -> InvoiceService:
    """Service graph for this app instance, built on first use"""
    service = getattr(request.app.state, "invoice_service", None)
    if service is None:
        service = build_invoice_service()
        request.app.state.invoice_service = service
    return service
