from datetime import datetime, UTC

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger

from ..deps import EmailWebhookPayload, get_invoice_service
from ...models.invoice import EmailData
from ...services.invoice_service import InvoiceService

router = APIRouter(prefix="/webhook", tags=["webhook"])


@router.post("/email")
async def receive_email(payload: EmailWebhookPayload, service: InvoiceService = Depends(get_invoice_service)):
    """
    Entry point for inbound emails.

    Ineligible emails are acknowledged with 200 so the mail provider does not
    redeliver them; pipeline failures return 500 with the invoice id so the
    record can be inspected or reprocessed.
    """
    if not payload.id or not payload.subject or not payload.content or not payload.sender:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields: id, subject, content, from"},
        )

    email = EmailData(
        id=payload.id,
        subject=payload.subject,
        content=payload.content,
        sender=payload.sender,
        received_at=payload.received_at or datetime.now(UTC),
    )

    try:
        logger.info(f"Processing email webhook for: {email.id}")
        result = await service.submit_email(email)
    except Exception as e:
        logger.error(f"Error in email webhook: {e}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "details": str(e)},
        )

    if not result.processed:
        return {"message": "Email not processed", "reason": result.reason}

    if result.success:
        return {"message": "Invoice processed successfully", "invoiceId": result.invoice_id}

    return JSONResponse(
        status_code=500,
        content={
            "error": "Failed to process invoice",
            "details": result.error,
            "invoiceId": result.invoice_id,
        },
    )


@router.get("/email")
async def webhook_health():
    return {
        "message": "Email webhook endpoint is running",
        "timestamp": datetime.now(UTC).isoformat(),
    }
