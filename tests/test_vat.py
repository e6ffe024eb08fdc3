"""Tests for VAT computation and the VAT declaration XML."""

import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal

import pytest

from conftest import line, verification

from ledger_export.svensk_ekonomi.conventions import ExportConventions
from ledger_export.svensk_ekonomi.errors import InvalidRequestError
from ledger_export.svensk_ekonomi.models import CompanyProfile
from ledger_export.svensk_ekonomi.vat import (
    VatReturn,
    encode_vat,
    parse_vat_period,
    vat_filename,
    vat_period_code,
    vat_return_from_verifications,
)


def _boxes(xml_bytes):
    root = ET.fromstring(xml_bytes)
    moms = root.find("Moms")
    return {child.tag: child.text for child in moms}


def test_zero_report_still_has_box_49(company):
    xml_bytes = encode_vat(VatReturn(period="Q4 2024"), company)

    assert b"<Ruta49>0</Ruta49>" in xml_bytes
    assert _boxes(xml_bytes) == {"Period": "202410", "Ruta49": "0"}


def test_document_structure(company):
    report = VatReturn.from_boxes("Q1 2024", {"05": 10000, "10": 2500, "48": 500})

    xml_bytes = encode_vat(report, company)
    root = ET.fromstring(xml_bytes)

    assert xml_bytes.startswith(b"<?xml version='1.0' encoding='iso-8859-1'?>")
    assert root.tag == "eSKDUpload"
    assert root.get("Version") == "6.0"
    assert root.find("OrgNr").text == "556183-9191"
    assert list(_boxes(xml_bytes).items()) == [
        ("Period", "202401"),
        ("Ruta05", "10000"),
        ("Ruta10", "2500"),
        ("Ruta48", "500"),
        ("Ruta49", "2000"),
    ]


def test_amounts_rounded_half_up_at_serialization(company):
    report = VatReturn.from_boxes("2024-03", {"10": "100.50", "48": "0.49"})

    assert report.ruta49 == Decimal("100.01")
    boxes = _boxes(encode_vat(report, company))
    assert boxes["Ruta10"] == "101"
    assert "Ruta48" not in boxes
    assert boxes["Ruta49"] == "101"


def test_box_49_matches_the_rounded_boxes(company):
    report = VatReturn.from_boxes("Q1 2024", {"10": "100.4", "48": "0.6"})

    boxes = _boxes(encode_vat(report, company))

    assert boxes["Ruta10"] == "100"
    assert boxes["Ruta48"] == "1"
    assert boxes["Ruta49"] == "99"
    assert int(boxes["Ruta49"]) == int(boxes["Ruta10"]) - int(boxes["Ruta48"])


def test_refund_is_negative(company):
    report = VatReturn.from_boxes("Q2 2024", {"48": 750})

    assert _boxes(encode_vat(report, company))["Ruta49"] == "-750"


def test_box_49_is_always_recalculated():
    report = VatReturn.from_boxes("Q1 2024", {"10": 100, "49": 99999, "ruta48": 40})

    assert report.ruta48 == Decimal("40")
    assert report.ruta49 == Decimal("60")


@pytest.mark.parametrize("label, code", [
    ("Q1 2024", "202401"),
    ("Q2 2024", "202404"),
    ("Q3 2024", "202407"),
    ("Q4 2024", "202410"),
    ("q4 2024", "202410"),
    ("2024-11", "202411"),
])
def test_period_codes(label, code):
    assert vat_period_code(label) == code


def test_quarter_span():
    period = parse_vat_period("Q4 2024")

    assert period.start == date(2024, 10, 1)
    assert period.end == date(2024, 12, 31)


@pytest.mark.parametrize("label", ["Q5 2024", "2024-13", "sommaren", "", "2024"])
def test_unknown_period_label(label):
    with pytest.raises(InvalidRequestError) as exc_info:
        parse_vat_period(label)
    assert exc_info.value.details["field"] == "period"


def test_report_from_verifications(sample_verifications):
    report = vat_return_from_verifications(sample_verifications, "Q1 2024")

    assert report.ruta10 == Decimal("2500")
    assert report.ruta48 == Decimal("500")
    assert report.ruta05 == Decimal("10000")
    assert report.ruta49 == Decimal("2000")


def test_report_only_counts_the_period(sample_verifications):
    report = vat_return_from_verifications(sample_verifications, "2024-02")

    assert report.ruta10 == Decimal("0")
    assert report.ruta48 == Decimal("500")
    assert report.ruta49 == Decimal("-500")


def test_reduced_rates_use_injected_conventions():
    vers = [verification("v1", date(2024, 5, 2), 1, [
        line("1930", debit=1120 + 530),
        line("3002", credit=1000),
        line("2621", credit=120),
        line("3003", credit=500),
        line("2631", credit=30),
    ])]

    report = vat_return_from_verifications(vers, "Q2 2024", ExportConventions())

    assert report.ruta11 == Decimal("120")
    assert report.ruta06 == Decimal("1000")
    assert report.ruta12 == Decimal("30")
    assert report.ruta07 == Decimal("500")
    assert report.ruta49 == Decimal("150")


def test_filename(company):
    report = VatReturn(period="Q3 2024")

    assert vat_filename(company, report) == "moms_5561839191_202407.xml"
    assert vat_filename(CompanyProfile(), report) == "moms_export_202407.xml"
