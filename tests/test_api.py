"""Tests for the export API endpoints."""

import io
import zipfile

from fastapi.testclient import TestClient

from ledger_export.api.routes.export import get_store
from ledger_export.config import settings
from ledger_export.main import app
from ledger_export.services.store import InMemoryLedgerStore

PAYMENT_BODY = {
    "format": "lb",
    "sender_bankgiro": "5050-1055",
    "sender_name": "Exempel AB",
    "execution_date": "2024-12-20",
    "invoices": [
        {"id": "F1", "supplier_name": "Leverantör Ett", "amount": "1000.00",
         "bankgiro": "123-4566", "ocr": "4711"},
        {"id": "F2", "supplier_name": "Leverantör Två", "amount": "1500.00",
         "bankgiro": "5555-5551", "invoice_number": "INV-2"},
        {"id": "F3", "supplier_name": "Leverantör Tre", "amount": "2000.00",
         "bankgiro": "5050-1055", "invoice_number": "INV-3"},
        {"id": "F4", "supplier_name": "Saknar belopp", "bankgiro": "123-4566"},
    ],
}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "ledger-export-api"}


def test_root_lists_endpoints(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["sie"] == "/api/v1/export/sie"


def test_sie_download(client):
    response = client.get("/api/v1/export/sie", params={"year": 2024})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain; charset=iso-8859-1")
    assert response.headers["content-disposition"] == 'attachment; filename="bokforing_5561839191_2024.se"'
    assert response.content.startswith(b"#FLAGGA 0\r\n")
    assert "#KONTO 1930 \"Företagskonto\"".encode("iso-8859-1") in response.content


def test_sie_without_opening_balances(client):
    response = client.get("/api/v1/export/sie", params={"year": 2024, "includeOpeningBalances": "false"})

    assert response.status_code == 200
    assert b"#IB " not in response.content


def test_sie_requires_year_in_range(client):
    assert client.get("/api/v1/export/sie").status_code == 422
    assert client.get("/api/v1/export/sie", params={"year": 1800}).status_code == 422


def test_unbalanced_ledger_is_rejected_with_details(verification_rows, company_row):
    verification_rows[0]["rows"][0]["debit"] = 12000.0
    app.dependency_overrides[get_store] = lambda: InMemoryLedgerStore(verification_rows, company_row)
    try:
        with TestClient(app) as client:
            response = client.get("/api/v1/export/sie", params={"year": 2024})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "validation_failed"
    assert any(v["verification_id"] == "v1" for v in detail["violations"])


def test_vat_declaration(client):
    response = client.post("/api/v1/export/vat", json={"year": 2024, "period": "Q1 2024"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "moms_5561839191_202401.xml" in response.headers["content-disposition"]
    assert b"<Ruta49>2000</Ruta49>" in response.content


def test_vat_declaration_from_boxes(client):
    body = {"year": 2024, "period": "Q4 2024", "boxes": {"05": 20000, "10": 5000, "48": 1200}}

    response = client.post("/api/v1/export/vat", json=body)

    assert response.status_code == 200
    assert b"<Ruta49>3800</Ruta49>" in response.content


def test_vat_unknown_period(client):
    response = client.post("/api/v1/export/vat", json={"year": 2024, "period": "Q9 2024"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "invalid_request"


def test_sru_zip(client):
    response = client.post("/api/v1/export/sru", json={"year": 2024})

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(response.content)) as archive:
        assert sorted(archive.namelist()) == ["BLANKETTER.SRU", "INFO.SRU"]


def test_lb_payment(client):
    response = client.post("/api/v1/export/payment", json=PAYMENT_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["filename"] == "lb_50501055_20241220.txt"
    assert data["skipped"] == [{"invoice_id": "F4", "field": "amount", "reason": "Belopp saknas"}]
    records = data["content"].split("\r\n")
    assert records[0].startswith("110050501055241220LEVERANTÖRSBETALNINGAR")
    assert records[4][12:31] == "0000003000000450000"


def test_iso20022_payment(client):
    body = dict(PAYMENT_BODY, format="iso20022")

    response = client.post("/api/v1/export/payment", json=body)

    assert response.status_code == 200
    data = response.json()
    assert data["media_type"] == "application/xml"
    assert "<NbOfTxs>3</NbOfTxs>" in data["content"]
    assert "<CtrlSum>4500.00</CtrlSum>" in data["content"]


def test_payment_with_invalid_sender_bankgiro(client):
    body = dict(PAYMENT_BODY, sender_bankgiro="5050-1056")

    response = client.post("/api/v1/export/payment", json=body)

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "sender_bankgiro"


def test_payment_field_overflow(client):
    body = dict(PAYMENT_BODY, invoices=[
        {"id": "F9", "amount": "10", "bankgiro": "123-4566", "ocr": "1" * 26},
    ])

    response = client.post("/api/v1/export/payment", json=body)

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "field_overflow"
    assert response.json()["detail"]["invoice_id"] == "F9"


def test_api_key_required_when_configured(client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "hemlig")

    assert client.get("/api/v1/export/sie", params={"year": 2024}).status_code == 401
    wrong = client.get("/api/v1/export/sie", params={"year": 2024}, headers={"X-API-Key": "fel"})
    assert wrong.status_code == 401
    ok = client.get("/api/v1/export/sie", params={"year": 2024}, headers={"X-API-Key": "hemlig"})
    assert ok.status_code == 200
