from .invoice_store_base import InvoiceStoreBase
from .invoices import InMemoryInvoiceStore
from .invoices_sqlite import SQLiteInvoiceStore


def create_invoice_store(settings) -> InvoiceStoreBase:
    """Build the store selected by STORE_BACKEND"""
    if settings.store_backend == "memory":
        return InMemoryInvoiceStore()
    if settings.store_backend == "sqlite":
        return SQLiteInvoiceStore(settings.database_path)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend!r}")


__all__ = ["InvoiceStoreBase", "InMemoryInvoiceStore", "SQLiteInvoiceStore", "create_invoice_store"]
