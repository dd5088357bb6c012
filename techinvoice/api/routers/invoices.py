from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import (
    InvoiceListResponse,
    InvoiceResponse,
    Pagination,
    StatsResponse,
    get_invoice_service,
)
from ...services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    service: InvoiceService = Depends(get_invoice_service),
):
    """All invoices with pagination, newest first"""
    records, total = service.list_invoices(limit=limit, offset=offset)
    return InvoiceListResponse(
        invoices=[InvoiceResponse.from_record(r) for r in records],
        pagination=Pagination(limit=limit, offset=offset, total=total, has_more=offset + limit < total),
    )


@router.get("/stats", response_model=StatsResponse)
async def processing_stats(service: InvoiceService = Depends(get_invoice_service)):
    return StatsResponse.from_stats(service.stats())


@router.get("/recent", response_model=list[InvoiceResponse])
async def recent_invoices(
    limit: int = Query(10, ge=1, le=100),
    service: InvoiceService = Depends(get_invoice_service),
):
    return [InvoiceResponse.from_record(r) for r in service.recent(limit)]


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    return InvoiceResponse.from_record(service.get_by_id(invoice_id))


@router.post("/{invoice_id}/process")
async def reprocess_invoice(invoice_id: str, service: InvoiceService = Depends(get_invoice_service)):
    """
    Manually re-run extraction for an existing invoice.

    Works on FAILED and PROCESSED records alike; there is no guard against
    reprocessing the same invoice twice.
    """
    # 404 before touching the record
    service.get_by_id(invoice_id)

    logger.info(f"Manual reprocessing requested for invoice: {invoice_id}")
    result = await service.reprocess(invoice_id)

    if result.success:
        return {"message": "Invoice reprocessed successfully", "invoiceId": invoice_id}

    return JSONResponse(
        status_code=500,
        content={
            "error": "Failed to reprocess invoice",
            "details": result.error,
            "invoiceId": invoice_id,
        },
    )
