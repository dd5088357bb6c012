"""
Abstract base class for invoice record storage.

Defines the interface that all record stores must implement, so the
pipeline can be handed SQLite in production and memory in tests.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ...models.invoice import InvoiceRecord, InvoiceStatus

# Columns a caller may set through create()/update(); id and created_at are store-owned
WRITABLE_FIELDS = (
    "source_email_id",
    "sender",
    "invoice_date",
    "amount",
    "status",
    "error_message",
    "processed_at",
)


class InvoiceStoreBase(ABC):
    """
    Abstract base class for invoice persistence.

    Implementations can use:
    - In-memory storage (for testing/demo)
    - SQLite (for single-instance deployments)
    - PostgreSQL (for multi-instance deployments)
    """

    @abstractmethod
    def create(self, fields: dict) -> InvoiceRecord:
        """
        Persist a new invoice record.

        Args:
            fields: Values for WRITABLE_FIELDS (status defaults to PENDING)

        Returns:
            The stored record, with id and created_at assigned
        """
        pass

    @abstractmethod
    def update(self, invoice_id: str, fields: dict) -> InvoiceRecord:
        """
        Apply a partial update. A key mapped to None clears that column.

        Raises:
            NotFoundError: If no record exists for invoice_id
        """
        pass

    @abstractmethod
    def find_by_id(self, invoice_id: str) -> Optional[InvoiceRecord]:
        pass

    @abstractmethod
    def find_many(self, limit: int = 50, offset: int = 0) -> list[InvoiceRecord]:
        """Records ordered by created_at, newest first"""
        pass

    @abstractmethod
    def find_by_source_email_id(self, source_email_id: str) -> list[InvoiceRecord]:
        """All records created from the given inbound message"""
        pass

    @abstractmethod
    def count_by_status(self, status: InvoiceStatus) -> int:
        pass

    @abstractmethod
    def count(self) -> int:
        pass

    @staticmethod
    def _check_fields(fields: dict) -> dict:
        unknown = set(fields) - set(WRITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown invoice fields: {sorted(unknown)}")
        return fields
