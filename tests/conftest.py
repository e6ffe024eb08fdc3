"""Shared pytest fixtures for ledger export tests."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ledger_export.services.export_service import ExportService
from ledger_export.services.store import InMemoryLedgerStore
from ledger_export.svensk_ekonomi.conventions import DEFAULT_CONVENTIONS
from ledger_export.svensk_ekonomi.models import (
    CompanyProfile,
    JournalLine,
    SupplierInvoice,
    Verification,
)

GENERATED_AT = datetime(2025, 1, 15, 10, 30, 0)


def line(account, debit=0, credit=0, description="", name=None):
    return JournalLine(account, Decimal(str(debit)), Decimal(str(credit)), description, name)


def verification(ver_id, day, number, lines, series="A", description="Verifikation", created_at=None):
    return Verification(ver_id, day, series, number, description, tuple(lines), created_at)


@pytest.fixture
def company():
    """Company profile with a valid org number."""
    return CompanyProfile(
        org_number="556183-9191",
        name="Exempel AB",
        address="Storgatan 1",
        zip_code="11122",
        city="Stockholm",
        contact="Anna Andersson",
    )


@pytest.fixture
def sample_verifications():
    """Sale with 25% VAT and a purchase with input VAT, both in Q1 2024."""
    return [
        verification("v1", date(2024, 1, 15), 1, [
            line("1930", debit=12500, name="Företagskonto"),
            line("3001", credit=10000, name="Försäljning 25%"),
            line("2611", credit=2500, name="Utgående moms 25%"),
        ], description="Försäljning"),
        verification("v2", date(2024, 2, 10), 2, [
            line("5420", debit=2000, name="Programvaror"),
            line("2641", debit=500, name="Ingående moms"),
            line("1930", credit=2500),
        ], description="Programvarulicens"),
    ]


@pytest.fixture
def verification_rows():
    """The sample verifications as raw store rows."""
    return [
        {
            "id": "v1", "date": "2024-01-15", "series": "A", "number": 1,
            "description": "Försäljning", "created_at": "2024-01-16T09:00:00",
            "rows": [
                {"account": "1930", "accountName": "Företagskonto", "debit": 12500.0, "credit": 0},
                {"account": "3001", "accountName": "Försäljning 25%", "debit": 0, "credit": 10000.0},
                {"account": "2611", "accountName": "Utgående moms 25%", "debit": 0, "credit": 2500.0},
            ],
        },
        {
            "id": "v2", "date": "2024-02-10", "series": "A", "number": 2,
            "description": "Programvarulicens",
            "rows": [
                {"account": "5420", "accountName": "Programvaror", "debit": 2000.0, "credit": 0},
                {"account": "2641", "accountName": "Ingående moms", "debit": 500.0, "credit": 0},
                {"account": "1930", "debit": 0, "credit": 2500.0},
            ],
        },
    ]


@pytest.fixture
def company_row():
    return {
        "name": "Exempel AB",
        "org_number": "556183-9191",
        "fiscal_year_start": "01-01",
        "fiscal_year_end": "12-31",
        "address": "Storgatan 1",
        "zip_code": "11122",
        "city": "Stockholm",
        "contact_person": "Anna Andersson",
    }


@pytest.fixture
def balance_rows():
    """Closing balances for 2023 in SIE sign."""
    return [
        {"account_number": "1930", "account_name": "Företagskonto", "balance": 50000.0, "year": 2023},
        {"account_number": "2081", "account_name": "Aktiekapital", "balance": -50000.0, "year": 2023},
    ]


@pytest.fixture
def store(verification_rows, company_row, balance_rows):
    """In-memory store holding the sample ledger."""
    return InMemoryLedgerStore(verification_rows, company_row, balance_rows)


@pytest.fixture
def export_service(store):
    """ExportService with default conventions and a fixed clock."""
    return ExportService(store, DEFAULT_CONVENTIONS, clock=lambda: GENERATED_AT)


@pytest.fixture
def invoices():
    """Three payable invoices totalling 4500.00 SEK."""
    return [
        SupplierInvoice("F1", "Leverantör Ett", Decimal("1000.00"), bankgiro="123-4566", ocr="4711"),
        SupplierInvoice("F2", "Leverantör Två", Decimal("1500.00"), bankgiro="5555-5551",
                        invoice_number="INV-2"),
        SupplierInvoice("F3", "Leverantör Tre", Decimal("2000.00"), bankgiro="5050-1055",
                        invoice_number="INV-3"),
    ]


@pytest.fixture
def client(store):
    """TestClient with the ledger store replaced by the sample store."""
    from ledger_export.main import app
    from ledger_export.api.routes.export import get_store

    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
