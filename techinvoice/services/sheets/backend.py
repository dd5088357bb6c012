"""
Spreadsheet backend contract and the row shape written to it.

A backend knows how to open a document (authenticate, locate the target
sheet, make sure the header row exists) and how to append a row to an
opened document. Retries and caching of the opened handle live in
SpreadsheetSync, not here.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, UTC

from ...models.invoice import InvoiceRecord

HEADER_ROW = ["Sender", "Invoice Date", "Amount", "Processed At", "Status"]


@dataclass
class SheetRow:
    sender: str
    invoice_date_iso: str
    amount: float
    processed_at_iso: str
    status: str

    @classmethod
    def from_record(cls, record: InvoiceRecord) -> "SheetRow":
        processed_at = record.processed_at or datetime.now(UTC)
        return cls(
            sender=record.sender,
            invoice_date_iso=record.invoice_date.isoformat(),
            amount=record.amount,
            processed_at_iso=processed_at.isoformat(),
            status=record.status.value,
        )

    def values(self) -> list:
        """Cell values in HEADER_ROW order"""
        return [self.sender, self.invoice_date_iso, self.amount, self.processed_at_iso, self.status]


@dataclass
class SheetHandle:
    """An opened spreadsheet document, ready for appends"""
    spreadsheet_id: str
    sheet_title: str


class SheetsBackend(ABC):
    @abstractmethod
    async def open(self) -> SheetHandle:
        """
        Authenticate and locate the target sheet, writing HEADER_ROW if the
        sheet is empty.

        Raises:
            Exception: Any failure; the caller treats the document as unopened
        """
        pass

    @abstractmethod
    async def append_row(self, handle: SheetHandle, row: SheetRow) -> None:
        pass
