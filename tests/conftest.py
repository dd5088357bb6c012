"""
Pytest configuration and shared fixtures.

This file registers custom pytest markers and command-line options, and
builds the default service graph from the doubles in doubles.py.
"""

import pytest

from doubles import FakeSheetsBackend, RecordingSleep, StubExtractor
from techinvoice.models.invoice import ExtractedFields
from techinvoice.core.retry import RetryPolicy
from techinvoice.services.eligibility import IntakeValidator
from techinvoice.services.invoice_service import InvoiceService
from techinvoice.services.sheets.sync import SpreadsheetSync
from techinvoice.services.storage import InMemoryInvoiceStore


def pytest_addoption(parser):
    """Add custom command-line options"""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="Run integration tests against real OpenAI / Google Sheets resources"
    )


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test requiring real external services"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --run-integration is specified"""
    if config.getoption("--run-integration"):
        return

    skip_integration = pytest.mark.skip(reason="need --run-integration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture
def store():
    return InMemoryInvoiceStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def sheets_backend():
    return FakeSheetsBackend()


@pytest.fixture
def sync(sheets_backend, sleep):
    return SpreadsheetSync(sheets_backend, policy=RetryPolicy(), sleep=sleep)


@pytest.fixture
def extractor():
    return StubExtractor(ExtractedFields(sender="CloudHost", invoice_date="2024-01-30", amount=100.0))


@pytest.fixture
def service(store, extractor, sync):
    return InvoiceService(store, extractor, sync, IntakeValidator(store))
