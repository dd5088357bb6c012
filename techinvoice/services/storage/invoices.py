"""
In-memory invoice store (for tests and local demos).
Records are lost on restart; use SQLiteInvoiceStore for anything durable.
"""
from datetime import datetime, UTC
from typing import Dict, Optional
import uuid

from .invoice_store_base import InvoiceStoreBase
from ...core.errors import NotFoundError
from ...models.invoice import InvoiceRecord, InvoiceStatus


class InMemoryInvoiceStore(InvoiceStoreBase):
    def __init__(self):
        self._invoices: Dict[str, InvoiceRecord] = {}

    def create(self, fields: dict) -> InvoiceRecord:
        """Create a new invoice record and return it"""
        self._check_fields(fields)
        record = InvoiceRecord(
            id=str(uuid.uuid4()),
            created_at=datetime.now(UTC),
            **{"status": InvoiceStatus.PENDING, **fields},
        )
        self._invoices[record.id] = record
        return record.model_copy()

    def update(self, invoice_id: str, fields: dict) -> InvoiceRecord:
        self._check_fields(fields)
        if invoice_id not in self._invoices:
            raise NotFoundError(invoice_id)

        current = self._invoices[invoice_id]
        updated = InvoiceRecord.model_validate({**current.model_dump(), **fields})
        self._invoices[invoice_id] = updated
        return updated.model_copy()

    def find_by_id(self, invoice_id: str) -> Optional[InvoiceRecord]:
        record = self._invoices.get(invoice_id)
        return record.model_copy() if record else None

    def find_many(self, limit: int = 50, offset: int = 0) -> list[InvoiceRecord]:
        """List records, newest first"""
        # Reversed insertion order first so records sharing a timestamp stay newest-first
        ordered = sorted(reversed(list(self._invoices.values())), key=lambda r: r.created_at, reverse=True)
        return [r.model_copy() for r in ordered[offset:offset + limit]]

    def find_by_source_email_id(self, source_email_id: str) -> list[InvoiceRecord]:
        return [r.model_copy() for r in self._invoices.values() if r.source_email_id == source_email_id]

    def count_by_status(self, status: InvoiceStatus) -> int:
        return sum(1 for r in self._invoices.values() if r.status == status)

    def count(self) -> int:
        return len(self._invoices)
