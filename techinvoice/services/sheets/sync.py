"""
Mirrors finalized invoice records into the external spreadsheet.

Delivery is at-least-once: if an append reached the sheet but the response
was lost, the retry appends the row again. There is no dedup key.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from loguru import logger

from .backend import SheetHandle, SheetRow, SheetsBackend
from ...core.errors import SyncError
from ...core.retry import RetryPolicy, retry_async
from ...models.invoice import InvoiceRecord


class SpreadsheetSync:
    """
    Appends one row per invoice record, retrying transient failures.

    The opened document handle is cached for the lifetime of the instance.
    Opening happens once under a lock, so concurrent first calls do not race
    to write duplicate header rows. A failed open leaves nothing cached.
    """

    def __init__(
        self,
        backend: SheetsBackend,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.backend = backend
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._handle: Optional[SheetHandle] = None
        self._open_lock = asyncio.Lock()

    async def _get_handle(self) -> SheetHandle:
        if self._handle is not None:
            return self._handle

        async with self._open_lock:
            if self._handle is None:
                try:
                    self._handle = await self.backend.open()
                except Exception as e:
                    logger.error(f"Error initializing spreadsheet client: {e}")
                    raise SyncError(f"Failed to initialize spreadsheet client: {e}") from e
        return self._handle

    def reset(self) -> None:
        """Drop the cached handle so the next call reopens the document"""
        self._handle = None

    async def sync_record(self, record: InvoiceRecord) -> None:
        """
        Append the record to the sheet.

        Raises:
            SyncError: If the document cannot be opened, or every append attempt failed
        """
        handle = await self._get_handle()
        row = SheetRow.from_record(record)

        try:
            await retry_async(
                lambda: self.backend.append_row(handle, row),
                self.policy,
                description=f"sheet append for invoice {record.id}",
                sleep=self._sleep,
            )
        except Exception as e:
            logger.error(f"Error adding invoice to spreadsheet: {e}", invoice_id=record.id)
            raise SyncError(f"Failed to add invoice to spreadsheet: {str(e) or 'sync failed after retries'}") from e

        logger.info("Invoice mirrored to spreadsheet", invoice_id=record.id, sheet=handle.sheet_title)

    async def test_connection(self) -> bool:
        try:
            await self._get_handle()
            return True
        except SyncError:
            return False
