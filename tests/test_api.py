"""
Tests for the HTTP layer: webhook intake, invoice queries, reprocessing,
the extraction test endpoint and health checks.
"""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from doubles import FakeSheetsBackend, RecordingSleep, StubExtractor
from techinvoice.api.deps import get_invoice_service
from techinvoice.api.main import app
from techinvoice.core.errors import ExtractionError
from techinvoice.models.invoice import ExtractedFields, InvoiceStatus
from techinvoice.services.eligibility import IntakeValidator
from techinvoice.services.invoice_service import InvoiceService
from techinvoice.services.sheets import SpreadsheetSync
from techinvoice.services.storage import InMemoryInvoiceStore


@pytest.fixture
def api():
    """TestClient wired to an in-memory service graph"""
    store = InMemoryInvoiceStore()
    extractor = StubExtractor(ExtractedFields(sender="CloudHost", invoice_date="2024-01-30", amount=100))
    backend = FakeSheetsBackend()
    sync = SpreadsheetSync(backend, sleep=RecordingSleep())
    service = InvoiceService(store, extractor, sync, IntakeValidator(store))

    app.dependency_overrides[get_invoice_service] = lambda: service
    try:
        yield TestClient(app), service, backend
    finally:
        app.dependency_overrides.clear()


def webhook_payload(**overrides):
    payload = {
        "id": "msg-100",
        "subject": "Tech Invoice - CloudHost",
        "content": "Invoice dated 2024-01-30, amount due $100",
        "from": "billing@cloudhost.example",
        "receivedAt": "2024-02-01T09:30:00Z",
    }
    payload.update(overrides)
    return payload


def test_webhook_processes_invoice(api):
    client, service, backend = api

    r = client.post("/webhook/email", json=webhook_payload())

    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Invoice processed successfully"
    record = service.store.find_by_id(data["invoiceId"])
    assert record.status == InvoiceStatus.PROCESSED
    assert record.source_email_id == "msg-100"
    assert len(backend.rows) == 1


def test_webhook_acknowledges_ineligible_email(api):
    client, service, _ = api

    r = client.post("/webhook/email", json=webhook_payload(subject="Lunch plans"))

    assert r.status_code == 200
    assert r.json() == {"message": "Email not processed", "reason": "subject lacks marker phrase"}
    assert service.store.count() == 0


def test_webhook_missing_fields_returns_400(api):
    client, service, _ = api

    r = client.post("/webhook/email", json={"id": "msg-1", "subject": "Tech Invoice"})

    assert r.status_code == 400
    assert "Missing required fields" in r.json()["error"]
    assert service.store.count() == 0


def test_webhook_received_at_is_optional(api):
    client, _, _ = api
    payload = webhook_payload()
    del payload["receivedAt"]

    r = client.post("/webhook/email", json=payload)

    assert r.status_code == 200


def test_webhook_pipeline_failure_returns_500_with_invoice_id(api):
    client, service, _ = api
    service.extractor.error = ExtractionError("Failed to extract invoice data: model down")

    r = client.post("/webhook/email", json=webhook_payload())

    assert r.status_code == 500
    data = r.json()
    assert data["error"] == "Failed to process invoice"
    assert "model down" in data["details"]
    assert service.store.find_by_id(data["invoiceId"]).status == InvoiceStatus.FAILED


def test_webhook_invalid_received_at_returns_422(api):
    client, _, _ = api

    r = client.post("/webhook/email", json=webhook_payload(receivedAt="not-a-date"))

    assert r.status_code == 422


def test_webhook_get_health(api):
    client, _, _ = api

    r = client.get("/webhook/email")

    assert r.status_code == 200
    assert r.json()["message"] == "Email webhook endpoint is running"


def test_list_invoices_with_pagination(api):
    client, _, _ = api
    for i in range(3):
        client.post("/webhook/email", json=webhook_payload(id=f"msg-{i}"))

    r = client.get("/invoices?limit=2&offset=0")

    assert r.status_code == 200
    data = r.json()
    assert len(data["invoices"]) == 2
    assert data["pagination"] == {"limit": 2, "offset": 0, "total": 3, "hasMore": True}
    invoice = data["invoices"][0]
    assert invoice["sourceEmailId"] == "msg-2"
    assert invoice["invoiceDate"] == "2024-01-30"
    assert invoice["status"] == "PROCESSED"


def test_stats_endpoint(api):
    client, service, _ = api
    client.post("/webhook/email", json=webhook_payload(id="ok-1"))
    service.extractor.result = ExtractedFields(sender="X")
    client.post("/webhook/email", json=webhook_payload(id="bad-1"))

    r = client.get("/invoices/stats")

    assert r.status_code == 200
    assert r.json() == {"total": 2, "processed": 1, "failed": 1, "pending": 0, "successRate": 50.0}


def test_recent_endpoint(api):
    client, _, _ = api
    for i in range(3):
        client.post("/webhook/email", json=webhook_payload(id=f"msg-{i}"))

    r = client.get("/invoices/recent?limit=2")

    assert r.status_code == 200
    assert [inv["sourceEmailId"] for inv in r.json()] == ["msg-2", "msg-1"]


def test_get_invoice_by_id(api):
    client, _, _ = api
    invoice_id = client.post("/webhook/email", json=webhook_payload()).json()["invoiceId"]

    r = client.get(f"/invoices/{invoice_id}")

    assert r.status_code == 200
    assert r.json()["id"] == invoice_id
    assert r.json()["amount"] == 100.0


def test_get_unknown_invoice_returns_404(api):
    client, _, _ = api

    r = client.get("/invoices/does-not-exist")

    assert r.status_code == 404
    assert r.json()["error"] == "Invoice not found"


def test_reprocess_endpoint(api):
    client, service, backend = api
    service.extractor.result = ExtractedFields(sender="X")
    invoice_id = client.post("/webhook/email", json=webhook_payload()).json()["invoiceId"]

    service.extractor.result = ExtractedFields(sender="X", invoice_date="2024-01-30", amount=42)
    r = client.post(f"/invoices/{invoice_id}/process")

    assert r.status_code == 200
    assert r.json() == {"message": "Invoice reprocessed successfully", "invoiceId": invoice_id}
    assert service.store.find_by_id(invoice_id).amount == 42
    assert len(backend.rows) == 1


def test_reprocess_failure_returns_500(api):
    client, service, _ = api
    invoice_id = client.post("/webhook/email", json=webhook_payload()).json()["invoiceId"]
    service.extractor.error = ExtractionError("model down")

    r = client.post(f"/invoices/{invoice_id}/process")

    assert r.status_code == 500
    assert r.json()["details"] == "model down"


def test_reprocess_unknown_invoice_returns_404(api):
    client, _, _ = api

    r = client.post("/invoices/unknown/process")

    assert r.status_code == 404


def test_extraction_test_endpoint(api):
    client, service, _ = api
    long_body = "Amount due $100 " * 30

    r = client.post("/extraction/test", json={
        "subject": "Tech Invoice",
        "content": long_body,
        "from": "billing@cloudhost.example",
    })

    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["extractedData"] == {"sender": "CloudHost", "invoiceDate": "2024-01-30", "amount": 100.0}
    assert data["originalEmail"]["content"] == long_body[:200] + "..."
    assert service.store.count() == 0


def test_extraction_test_endpoint_error(api):
    client, service, _ = api
    service.extractor.error = ExtractionError("Failed to extract invoice data: No response from model")

    r = client.post("/extraction/test", json={"subject": "s", "content": "c", "from": "f"})

    assert r.status_code == 500
    assert r.json()["success"] is False


def test_extraction_test_missing_fields(api):
    client, _, _ = api

    r = client.post("/extraction/test", json={"subject": "s"})

    assert r.status_code == 400


def test_health(api):
    client, _, _ = api

    r = client.get("/health")

    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_sheets_health(api):
    client, service, backend = api

    r = client.get("/sheets/health")

    assert r.status_code == 200
    assert r.json() == {"connected": True}
    assert backend.open_calls == 1

    service.sync.reset()
    backend.open_error = RuntimeError("revoked")
    assert client.get("/sheets/health").json() == {"connected": False}
