from datetime import datetime, UTC

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import ExtractionTestRequest, get_invoice_service
from ...core.errors import ExtractionError
from ...models.invoice import EmailData
from ...services.invoice_service import InvoiceService

router = APIRouter(prefix="/extraction", tags=["extraction"])


@router.post("/test")
async def test_extraction(req: ExtractionTestRequest, service: InvoiceService = Depends(get_invoice_service)):
    """Run the extractor on an ad-hoc email without persisting or mirroring anything"""
    if not req.subject or not req.content or not req.sender:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields: subject, content, from"},
        )

    email = EmailData(
        id=f"test-{int(datetime.now(UTC).timestamp() * 1000)}",
        subject=req.subject,
        content=req.content,
        sender=req.sender,
        received_at=datetime.now(UTC),
    )

    try:
        logger.info(f"Testing AI extraction for: {email.subject}")
        extracted = await service.test_extraction(email)
    except ExtractionError as e:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to extract invoice data", "details": str(e)},
        )

    return {
        "success": True,
        "extractedData": {
            "sender": extracted.sender,
            "invoiceDate": extracted.invoice_date,
            "amount": extracted.amount,
        },
        "originalEmail": {
            "subject": email.subject,
            "from": email.sender,
            "content": email.content[:200] + ("..." if len(email.content) > 200 else ""),
        },
    }
