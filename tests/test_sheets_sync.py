"""
Tests for SpreadsheetSync: retry behaviour and the cached document handle.
"""

import asyncio
from datetime import date, datetime, UTC

import pytest

from doubles import FakeSheetsBackend, RecordingSleep
from techinvoice.core.errors import SyncError
from techinvoice.core.retry import RetryPolicy
from techinvoice.models.invoice import InvoiceRecord, InvoiceStatus
from techinvoice.services.sheets import HEADER_ROW, SheetRow, SpreadsheetSync


def processed_record(**overrides):
    fields = {
        "id": "inv-1",
        "source_email_id": "msg-1",
        "sender": "CloudHost",
        "invoice_date": date(2024, 1, 30),
        "amount": 100.0,
        "status": InvoiceStatus.PROCESSED,
        "created_at": datetime(2024, 2, 1, 9, 0, tzinfo=UTC),
        "processed_at": datetime(2024, 2, 1, 9, 0, 5, tzinfo=UTC),
    }
    fields.update(overrides)
    return InvoiceRecord(**fields)


def test_sheet_row_from_record():
    row = SheetRow.from_record(processed_record())

    assert row.values() == ["CloudHost", "2024-01-30", 100.0, "2024-02-01T09:00:05+00:00", "PROCESSED"]
    assert len(row.values()) == len(HEADER_ROW)


def test_sheet_row_without_processed_at_uses_now():
    row = SheetRow.from_record(processed_record(processed_at=None))

    assert datetime.fromisoformat(row.processed_at_iso).date() == datetime.now(UTC).date()


def test_sync_appends_one_row():
    backend = FakeSheetsBackend()
    sleep = RecordingSleep()
    sync = SpreadsheetSync(backend, sleep=sleep)

    asyncio.run(sync.sync_record(processed_record()))

    assert len(backend.rows) == 1
    assert backend.rows[0].sender == "CloudHost"
    assert sleep.delays == []


def test_sync_fails_twice_then_succeeds():
    """Three attempts, waits of 1s then 2s, one row in the sheet"""
    backend = FakeSheetsBackend(fail_appends=2)
    sleep = RecordingSleep()
    sync = SpreadsheetSync(backend, policy=RetryPolicy(), sleep=sleep)

    asyncio.run(sync.sync_record(processed_record()))

    assert backend.append_calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert len(backend.rows) == 1


def test_sync_exhaustion_raises_sync_error_with_last_error():
    backend = FakeSheetsBackend(fail_appends=10)
    sleep = RecordingSleep()
    sync = SpreadsheetSync(backend, sleep=sleep)

    with pytest.raises(SyncError, match="attempt 3"):
        asyncio.run(sync.sync_record(processed_record()))

    assert backend.append_calls == 3
    assert sleep.delays == [1.0, 2.0]
    assert backend.rows == []


def test_document_opened_once_across_syncs():
    backend = FakeSheetsBackend()
    sync = SpreadsheetSync(backend, sleep=RecordingSleep())

    async def run():
        await sync.sync_record(processed_record(id="inv-1"))
        await sync.sync_record(processed_record(id="inv-2"))

    asyncio.run(run())

    assert backend.open_calls == 1
    assert len(backend.rows) == 2


def test_concurrent_first_calls_open_document_once():
    backend = FakeSheetsBackend()
    sync = SpreadsheetSync(backend, sleep=RecordingSleep())

    async def run():
        await asyncio.gather(*(sync.sync_record(processed_record(id=f"inv-{i}")) for i in range(5)))

    asyncio.run(run())

    assert backend.open_calls == 1
    assert len(backend.rows) == 5


def test_failed_open_is_not_cached_and_not_retried_in_loop():
    backend = FakeSheetsBackend(open_error=PermissionError("bad credentials"))
    sleep = RecordingSleep()
    sync = SpreadsheetSync(backend, sleep=sleep)

    with pytest.raises(SyncError, match="initialize"):
        asyncio.run(sync.sync_record(processed_record()))

    assert backend.open_calls == 1
    assert backend.append_calls == 0
    assert sleep.delays == []

    # Credentials fixed: the next call opens again and succeeds
    backend.open_error = None
    asyncio.run(sync.sync_record(processed_record()))

    assert backend.open_calls == 2
    assert len(backend.rows) == 1


def test_reset_forces_reopen():
    backend = FakeSheetsBackend()
    sync = SpreadsheetSync(backend, sleep=RecordingSleep())

    asyncio.run(sync.sync_record(processed_record()))
    sync.reset()
    asyncio.run(sync.sync_record(processed_record()))

    assert backend.open_calls == 2


def test_test_connection():
    ok = SpreadsheetSync(FakeSheetsBackend())
    broken = SpreadsheetSync(FakeSheetsBackend(open_error=RuntimeError("no sheet")))

    assert asyncio.run(ok.test_connection()) is True
    assert asyncio.run(broken.test_connection()) is False
