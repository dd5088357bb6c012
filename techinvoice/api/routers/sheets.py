from fastapi import APIRouter, Depends

from ..deps import get_invoice_service
from ...services.invoice_service import InvoiceService

router = APIRouter(prefix="/sheets", tags=["sheets"])


@router.get("/health")
async def sheets_health(service: InvoiceService = Depends(get_invoice_service)):
    """Opens the spreadsheet document (or reuses the cached handle)"""
    connected = await service.sync.test_connection()
    return {"connected": connected}
