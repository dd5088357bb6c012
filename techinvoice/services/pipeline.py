"""
Invoice pipeline: inbound email → PENDING record → extraction → PROCESSED or
FAILED → spreadsheet mirror.

Per-invoice state machine:

    NEW ──create──▶ PENDING ──extraction ok──▶ PROCESSED
                       │
                       └──extraction/validation error──▶ FAILED

PROCESSED and FAILED records go back to PENDING only through
reprocess_invoice(), which re-runs extraction against the same record.

A spreadsheet failure after retries makes the call fail but leaves the
record PROCESSED: the extracted data is correct, only the mirror is behind.
"""

import asyncio
import math
from datetime import date, datetime, UTC
from typing import Callable, Protocol

from loguru import logger

from ..core.errors import DataIncompleteError, NotFoundError, SyncError
from ..models.invoice import (
    EmailData,
    ExtractedFields,
    InvoiceStatus,
    ProcessingStats,
    ProcessResult,
    ReprocessResult,
)
from .sheets.sync import SpreadsheetSync
from .storage.invoice_store_base import InvoiceStoreBase

REPROCESS_SUBJECT = "Tech Invoice"


class Extractor(Protocol):
    async def extract(self, email: EmailData) -> ExtractedFields: ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def validate_extraction(fields: ExtractedFields) -> tuple[str, date, float]:
    """
    Check that extraction produced everything a PROCESSED record needs.

    Returns:
        (sender, invoice_date, amount)

    Raises:
        DataIncompleteError: A field is missing, amount is zero/negative/non-finite,
            or invoice_date is not a real calendar date
    """
    missing = []
    if not fields.sender:
        missing.append("sender")
    if not fields.invoice_date:
        missing.append("invoiceDate")
    if not fields.amount:
        missing.append("amount")

    if missing:
        raise DataIncompleteError(
            f"Incomplete extraction, missing {', '.join(missing)}: "
            f"sender={fields.sender}, date={fields.invoice_date}, amount={fields.amount}",
            missing=missing,
        )

    if not math.isfinite(fields.amount) or fields.amount < 0:
        raise DataIncompleteError(f"Invalid amount: {fields.amount}", missing=["amount"])

    try:
        invoice_date = date.fromisoformat(fields.invoice_date)
    except ValueError:
        raise DataIncompleteError(f"Invalid date format: {fields.invoice_date}", missing=["invoiceDate"])

    return fields.sender, invoice_date, fields.amount


class InvoicePipeline:
    """
    Orchestrates store, extractor and spreadsheet sync for one email at a time.

    Collaborators are passed in; nothing here reaches for module-level
    clients. Invocations are independent and may run concurrently; steps
    inside one invocation run strictly in order.
    Store calls run on a worker thread via asyncio.to_thread.
    """

    def __init__(
        self,
        store: InvoiceStoreBase,
        extractor: Extractor,
        sync: SpreadsheetSync,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.extractor = extractor
        self.sync = sync
        self._now = clock

    async def process_email_invoice(self, email: EmailData) -> ProcessResult:
        """
        Run a new email through the pipeline.

        Never raises: every outcome is reported in the returned ProcessResult.
        """
        logger.info("Processing email invoice", email_id=email.id)

        try:
            pending = await asyncio.to_thread(self.store.create, {
                "source_email_id": email.id,
                "sender": email.sender,
                "invoice_date": email.received_at.date(),
                "amount": 0.0,
                "status": InvoiceStatus.PENDING,
            })
        except Exception as e:
            logger.error(f"Could not create pending invoice record: {e}", email_id=email.id)
            return ProcessResult(success=False, error=str(e) or "Unknown error")

        logger.info("Created pending invoice record", invoice_id=pending.id, email_id=email.id)
        return await self._extract_and_finalize(pending.id, email)

    async def _extract_and_finalize(self, invoice_id: str, email: EmailData) -> ProcessResult:
        try:
            extracted = await self.extractor.extract(email)
            sender, invoice_date, amount = validate_extraction(extracted)

            updated = await asyncio.to_thread(self.store.update, invoice_id, {
                "sender": sender,
                "invoice_date": invoice_date,
                "amount": amount,
                "status": InvoiceStatus.PROCESSED,
                "error_message": None,
                "processed_at": self._now(),
            })
            logger.info("Invoice marked PROCESSED", invoice_id=invoice_id, sender=sender, amount=amount)
        except Exception as e:
            message = str(e) or "Unknown error"
            logger.error(f"Error processing invoice {invoice_id}: {message}", invoice_id=invoice_id)
            await self._mark_failed(invoice_id, message)
            return ProcessResult(success=False, invoice_id=invoice_id, error=message)

        try:
            await self.sync.sync_record(updated)
        except SyncError as e:
            # Record stays PROCESSED; only the mirror is missing this row
            logger.error(f"Spreadsheet sync failed for invoice {invoice_id}: {e}", invoice_id=invoice_id)
            return ProcessResult(success=False, invoice_id=invoice_id, error=str(e))

        logger.info("Successfully processed invoice", invoice_id=invoice_id)
        return ProcessResult(success=True, invoice_id=invoice_id)

    async def _mark_failed(self, invoice_id: str, message: str) -> None:
        """Best-effort FAILED transition; errors here are logged, never raised"""
        try:
            await asyncio.to_thread(self.store.update, invoice_id, {
                "status": InvoiceStatus.FAILED,
                "error_message": message,
                "processed_at": self._now(),
            })
        except Exception as update_error:
            logger.error(
                f"Error updating failed invoice record: {update_error}",
                invoice_id=invoice_id,
                original_error=message,
            )

    async def reprocess_invoice(self, invoice_id: str) -> ReprocessResult:
        """
        Reset a record to PENDING and run extraction again on the same record.

        The subject line is not stored, so a marker-bearing default is used;
        the body is rebuilt from the stored sender and amount.

        Raises:
            NotFoundError: If no record exists for invoice_id
        """
        logger.info("Reprocessing invoice", invoice_id=invoice_id)

        record = await asyncio.to_thread(self.store.find_by_id, invoice_id)
        if record is None:
            raise NotFoundError(invoice_id)

        try:
            await asyncio.to_thread(self.store.update, invoice_id, {
                "status": InvoiceStatus.PENDING,
                "error_message": None,
                "processed_at": None,
            })
        except Exception as e:
            logger.error(f"Error reprocessing invoice {invoice_id}: {e}", invoice_id=invoice_id)
            return ReprocessResult(success=False, error=str(e) or "Unknown error")

        email = EmailData(
            id=record.source_email_id,
            subject=REPROCESS_SUBJECT,
            content=f"From: {record.sender}\nAmount: {record.amount}",
            sender=record.sender,
            received_at=record.created_at,
        )

        result = await self._extract_and_finalize(invoice_id, email)
        return ReprocessResult(success=result.success, error=result.error)

    def get_processing_stats(self) -> ProcessingStats:
        total = self.store.count()
        processed = self.store.count_by_status(InvoiceStatus.PROCESSED)
        failed = self.store.count_by_status(InvoiceStatus.FAILED)
        pending = self.store.count_by_status(InvoiceStatus.PENDING)

        success_rate = (processed / total) * 100 if total > 0 else 0.0

        return ProcessingStats(
            total=total,
            processed=processed,
            failed=failed,
            pending=pending,
            success_rate=round(success_rate, 2),
        )
