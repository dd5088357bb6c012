"""
SQLite-based invoice storage for production use.

Provides persistent storage of invoice records with status-based counting
for the processing stats.
"""

import sqlite3
import uuid
from datetime import date, datetime, UTC
from typing import Optional

from .invoice_store_base import InvoiceStoreBase
from ...core.errors import NotFoundError
from ...models.invoice import InvoiceRecord, InvoiceStatus

_COLUMNS = (
    "id, source_email_id, sender, invoice_date, amount, status, "
    "error_message, created_at, processed_at"
)


class SQLiteInvoiceStore(InvoiceStoreBase):
    """
    SQLite-backed invoice store with persistent storage.

    Features:
    - Persistent storage across application restarts
    - Index on source_email_id for the strict duplicate check
    - Thread-safe operations (via SQLite's built-in locking)
    """

    def __init__(self, db_path: str = "invoices.db"):
        """
        Initialize store with database path.

        Args:
            db_path: Path to SQLite database file (default: invoices.db)
        """
        self.db_path = db_path
        self._init_database()

    def _init_database(self):
        """Create invoices table if it doesn't exist"""
        conn = sqlite3.connect(self.db_path)
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                id TEXT PRIMARY KEY,
                source_email_id TEXT NOT NULL,
                sender TEXT NOT NULL,
                invoice_date TEXT NOT NULL,
                amount REAL NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'PENDING',
                error_message TEXT,
                created_at TEXT NOT NULL,
                processed_at TEXT,
                CHECK (status IN ('PENDING', 'PROCESSED', 'FAILED'))
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_invoices_status
            ON invoices(status)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_invoices_created_at
            ON invoices(created_at)
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_invoices_source_email_id
            ON invoices(source_email_id)
        """)

        conn.commit()
        conn.close()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _to_db(value):
        if isinstance(value, InvoiceStatus):
            return value.value
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        return value

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> InvoiceRecord:
        return InvoiceRecord(
            id=row["id"],
            source_email_id=row["source_email_id"],
            sender=row["sender"],
            invoice_date=row["invoice_date"],
            amount=row["amount"],
            status=row["status"],
            error_message=row["error_message"],
            created_at=row["created_at"],
            processed_at=row["processed_at"],
        )

    def create(self, fields: dict) -> InvoiceRecord:
        """
        Insert a new invoice record.

        Args:
            fields: source_email_id, sender, invoice_date, amount (+ optional status)

        Returns:
            The stored record
        """
        self._check_fields(fields)
        record = InvoiceRecord(
            id=str(uuid.uuid4()),
            created_at=datetime.now(UTC),
            **{"status": InvoiceStatus.PENDING, **fields},
        )

        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"""
            INSERT INTO invoices ({_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            record.id,
            record.source_email_id,
            record.sender,
            self._to_db(record.invoice_date),
            record.amount,
            self._to_db(record.status),
            record.error_message,
            self._to_db(record.created_at),
            self._to_db(record.processed_at),
        ))

        conn.commit()
        conn.close()

        return record

    def update(self, invoice_id: str, fields: dict) -> InvoiceRecord:
        """
        Apply a partial update and return the updated record.

        Raises:
            NotFoundError: If no record exists for invoice_id
        """
        self._check_fields(fields)
        if not fields:
            record = self.find_by_id(invoice_id)
            if record is None:
                raise NotFoundError(invoice_id)
            return record

        # Column names come from WRITABLE_FIELDS only (checked above)
        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [self._to_db(value) for value in fields.values()]

        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(
            f"UPDATE invoices SET {assignments} WHERE id = ?",
            (*values, invoice_id),
        )

        rows_affected = cursor.rowcount
        conn.commit()
        conn.close()

        if rows_affected == 0:
            raise NotFoundError(invoice_id)

        return self.find_by_id(invoice_id)

    def find_by_id(self, invoice_id: str) -> Optional[InvoiceRecord]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"""
            SELECT {_COLUMNS}
            FROM invoices
            WHERE id = ?
        """, (invoice_id,))

        row = cursor.fetchone()
        conn.close()

        if row is None:
            return None
        return self._row_to_record(row)

    def find_many(self, limit: int = 50, offset: int = 0) -> list[InvoiceRecord]:
        """
        List records (ordered by creation time, newest first).
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"""
            SELECT {_COLUMNS}
            FROM invoices
            ORDER BY created_at DESC, rowid DESC
            LIMIT ? OFFSET ?
        """, (limit, offset))

        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_record(row) for row in rows]

    def find_by_source_email_id(self, source_email_id: str) -> list[InvoiceRecord]:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(f"""
            SELECT {_COLUMNS}
            FROM invoices
            WHERE source_email_id = ?
            ORDER BY created_at DESC, rowid DESC
        """, (source_email_id,))

        rows = cursor.fetchall()
        conn.close()

        return [self._row_to_record(row) for row in rows]

    def count_by_status(self, status: InvoiceStatus) -> int:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute(
            "SELECT COUNT(*) FROM invoices WHERE status = ?",
            (self._to_db(InvoiceStatus(status)),),
        )

        (count,) = cursor.fetchone()
        conn.close()
        return count

    def count(self) -> int:
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT COUNT(*) FROM invoices")

        (count,) = cursor.fetchone()
        conn.close()
        return count
