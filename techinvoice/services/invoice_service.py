"""
Boundary operations used by the web layer, the scripts and the tests.

Wires the intake gate in front of the pipeline and exposes read access to
the record store.
"""

import asyncio
from typing import Optional

from loguru import logger

from ..core.config import settings as default_settings
from ..core.errors import NotFoundError
from ..core.retry import RetryPolicy
from ..models.invoice import (
    EmailData,
    ExtractedFields,
    InvoiceRecord,
    ProcessingStats,
    ReprocessResult,
    SubmitResult,
)
from .eligibility import IntakeValidator, create_intake_validator
from .extraction import InvoiceExtractor
from .pipeline import Extractor, InvoicePipeline
from .sheets import GoogleSheetsBackend, SpreadsheetSync
from .storage import InvoiceStoreBase, create_invoice_store


class InvoiceService:
    def __init__(
        self,
        store: InvoiceStoreBase,
        extractor: Extractor,
        sync: SpreadsheetSync,
        validator: Optional[IntakeValidator] = None,
    ):
        self.store = store
        self.extractor = extractor
        self.sync = sync
        self.validator = validator or IntakeValidator(store)
        self.pipeline = InvoicePipeline(store, extractor, sync)

    async def submit_email(self, email: EmailData) -> SubmitResult:
        """
        Gate an inbound email and, if eligible, run it through the pipeline.

        An ineligible email is acknowledged with processed=False and a reason;
        no record is created for it.
        """
        decision = await asyncio.to_thread(self.validator.is_eligible, email)
        if not decision.eligible:
            logger.info(f"Email {email.id} not valid for processing: {decision.reason}")
            return SubmitResult(processed=False, reason=decision.reason)

        result = await self.pipeline.process_email_invoice(email)
        return SubmitResult(
            processed=True,
            success=result.success,
            invoice_id=result.invoice_id,
            error=result.error,
        )

    async def reprocess(self, invoice_id: str) -> ReprocessResult:
        return await self.pipeline.reprocess_invoice(invoice_id)

    def stats(self) -> ProcessingStats:
        return self.pipeline.get_processing_stats()

    def get_by_id(self, invoice_id: str) -> InvoiceRecord:
        record = self.store.find_by_id(invoice_id)
        if record is None:
            raise NotFoundError(invoice_id)
        return record

    def list_invoices(self, limit: int = 50, offset: int = 0) -> tuple[list[InvoiceRecord], int]:
        """A page of records (newest first) and the total record count"""
        return self.store.find_many(limit=limit, offset=offset), self.store.count()

    def recent(self, limit: int = 10) -> list[InvoiceRecord]:
        return self.store.find_many(limit=limit, offset=0)

    async def test_extraction(self, email: EmailData) -> ExtractedFields:
        """Extraction only, nothing persisted or mirrored"""
        return await self.extractor.extract(email)


def build_invoice_service(settings=None) -> InvoiceService:
    """Construct the production service graph from settings"""
    settings = settings or default_settings

    store = create_invoice_store(settings)
    extractor = InvoiceExtractor()
    sync = SpreadsheetSync(GoogleSheetsBackend(), policy=RetryPolicy.from_settings(settings))
    validator = create_intake_validator(
        store,
        subject_marker=settings.intake_subject_marker,
        duplicate_scan_window=settings.duplicate_scan_window,
        strict_duplicate_check=settings.strict_duplicate_check,
    )

    logger.info(
        "Invoice service initialized",
        store_backend=settings.store_backend,
        sheets_configured=settings.sheets_configured,
        strict_duplicate_check=settings.strict_duplicate_check,
    )
    return InvoiceService(store, extractor, sync, validator)
