"""Tests for LB and pain.001 supplier payment files."""

import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal

import pytest

from conftest import GENERATED_AT

from ledger_export.svensk_ekonomi.errors import FieldOverflowError, InvalidRequestError
from ledger_export.svensk_ekonomi.models import PaymentFormat, PaymentOptions, SupplierInvoice
from ledger_export.svensk_ekonomi.payments import (
    PAIN001_NAMESPACE,
    encode_payment,
    payment_filename,
)

NS = {"p": PAIN001_NAMESPACE}


@pytest.fixture
def options():
    return PaymentOptions(
        format=PaymentFormat.LB,
        sender_bankgiro="5050-1055",
        sender_name="Exempel AB",
        execution_date=date(2024, 12, 20),
    )


def _lb(invoices, options):
    return encode_payment(invoices, PaymentFormat.LB, options)


def _records(payment_file):
    assert payment_file.content.endswith("\r\n")
    return payment_file.content.split("\r\n")[:-1]


def test_closing_record_count_and_total(invoices, options):
    payment_file = _lb(invoices, options)
    closing = _records(payment_file)[-1]

    assert closing[:2] == "29"
    assert closing[2:12] == "0050501055"
    assert closing[12:19] == "0000003"
    assert closing[19:31] == "000000450000"
    assert payment_file.count == 3
    assert payment_file.total == Decimal("4500.00")


def test_every_record_is_80_characters(invoices, options):
    records = _records(_lb(invoices, options))

    assert len(records) == 5
    assert all(len(record) == 80 for record in records)


def test_opening_record(invoices, options):
    opening = _records(_lb(invoices, options))[0]

    assert opening == (
        "11" + "0050501055" + "241220" + "LEVERANTÖRSBETALNINGAR" + " " * 20 + "SEK" + " " * 17
    )


def test_payment_record_with_ocr(invoices, options):
    record = _records(_lb(invoices, options))[1]

    assert record[:2] == "14"
    assert record[2:12] == "0001234566"
    assert record[12:37] == "0000000000000000000004711"
    assert record[37:49] == "000000100000"
    assert record[49:55] == "241220"
    assert record[55:] == " " * 25


def test_payment_record_with_invoice_number(invoices, options):
    record = _records(_lb(invoices, options))[2]

    assert record[12:37] == "INV-2".ljust(25)
    assert record[37:49] == "000000150000"


def test_due_date_is_used_as_payment_date(options):
    invoice = SupplierInvoice("F1", "Lev", Decimal("10"), bankgiro="123-4566",
                              invoice_number="1", due_date=date(2024, 12, 27))

    record = _records(_lb([invoice], options))[1]

    assert record[49:55] == "241227"


def test_ocr_longer_than_field_fails_the_file(options):
    invoice = SupplierInvoice("F9", "Lev", Decimal("10"), bankgiro="123-4566", ocr="1" * 26)

    with pytest.raises(FieldOverflowError) as exc_info:
        _lb([invoice], options)

    assert exc_info.value.field == "ocr"
    assert exc_info.value.width == 25
    assert exc_info.value.invoice_id == "F9"


def test_amount_wider_than_field_fails_the_file(options):
    invoice = SupplierInvoice("F9", "Lev", Decimal("10000000000.00"), bankgiro="123-4566", ocr="1")

    with pytest.raises(FieldOverflowError) as exc_info:
        _lb([invoice], options)

    assert exc_info.value.field == "amount"
    assert exc_info.value.to_dict()["code"] == "field_overflow"


@pytest.mark.parametrize("invoice, field", [
    (SupplierInvoice("X", "Lev", None, bankgiro="123-4566"), "amount"),
    (SupplierInvoice("X", "Lev", Decimal("-5"), bankgiro="123-4566"), "amount"),
    (SupplierInvoice("X", "Lev", Decimal("0"), bankgiro="123-4566"), "amount"),
    (SupplierInvoice("X", "Lev", Decimal("5")), "recipient"),
    (SupplierInvoice("X", "Lev", Decimal("5"), bankgiro="5050-1056"), "bankgiro"),
    (SupplierInvoice("X", "Lev", Decimal("5"), bankgiro="123-4566", ocr="12A"), "ocr"),
    (SupplierInvoice("X", "Lev", Decimal("5"), iban="SE4550000000058398257466"), "recipient"),
])
def test_bad_invoice_is_skipped(invoices, options, invoice, field):
    payment_file = _lb(invoices + [invoice], options)

    assert [s.to_dict()["field"] for s in payment_file.skipped] == [field]
    assert payment_file.skipped[0].invoice_id == "X"
    assert payment_file.count == 3
    assert _records(payment_file)[-1][19:31] == "000000450000"


def test_invalid_sender_bankgiro(invoices, options):
    bad = PaymentOptions(PaymentFormat.LB, "5050-1056", "Exempel AB", date(2024, 12, 20))

    with pytest.raises(InvalidRequestError):
        _lb(invoices, bad)


def _pain(invoices, options):
    payment_file = encode_payment(invoices, PaymentFormat.ISO20022, options, created_at=GENERATED_AT)
    return payment_file, ET.fromstring(payment_file.content.encode("utf-8"))


def test_pain001_header(invoices, options):
    payment_file, root = _pain(invoices, options)

    assert root.tag == f"{{{PAIN001_NAMESPACE}}}Document"
    header = root.find("p:CstmrCdtTrfInitn/p:GrpHdr", NS)
    assert header.find("p:MsgId", NS).text == "LE20250115103000"
    assert header.find("p:CreDtTm", NS).text == "2025-01-15T10:30:00"
    assert header.find("p:NbOfTxs", NS).text == "3"
    assert header.find("p:CtrlSum", NS).text == "4500.00"
    assert header.find("p:InitgPty/p:Nm", NS).text == "Exempel AB"
    assert payment_file.media_type == "application/xml"


def test_pain001_payment_batch(invoices, options):
    _, root = _pain(invoices, options)
    batch = root.find("p:CstmrCdtTrfInitn/p:PmtInf", NS)

    assert batch.find("p:PmtMtd", NS).text == "TRF"
    assert batch.find("p:ReqdExctnDt", NS).text == "2024-12-20"
    assert batch.find("p:PmtTpInf/p:SvcLvl/p:Cd", NS).text == "NURG"
    assert batch.find("p:DbtrAcct/p:Id/p:Othr/p:Id", NS).text == "50501055"
    assert batch.find("p:DbtrAcct/p:Id/p:Othr/p:SchmeNm/p:Prtry", NS).text == "BGNR"
    assert batch.find("p:DbtrAgt/p:FinInstnId/p:Othr/p:Id", NS).text == "NOTPROVIDED"
    assert len(batch.findall("p:CdtTrfTxInf", NS)) == 3


def test_pain001_structured_reference_only_with_ocr(invoices, options):
    _, root = _pain(invoices, options)
    transactions = root.findall("p:CstmrCdtTrfInitn/p:PmtInf/p:CdtTrfTxInf", NS)

    with_ocr, without_ocr = transactions[0], transactions[1]
    reference = with_ocr.find("p:RmtInf/p:Strd/p:CdtrRefInf", NS)
    assert reference.find("p:Tp/p:CdOrPrtry/p:Cd", NS).text == "SCOR"
    assert reference.find("p:Ref", NS).text == "4711"
    assert without_ocr.find("p:RmtInf", NS) is None
    assert without_ocr.find("p:PmtId/p:EndToEndId", NS).text == "INV-2"


def test_pain001_amount_and_default_currency(invoices, options):
    _, root = _pain(invoices, options)
    amount = root.find("p:CstmrCdtTrfInitn/p:PmtInf/p:CdtTrfTxInf/p:Amt/p:InstdAmt", NS)

    assert amount.text == "1000.00"
    assert amount.get("Ccy") == "SEK"


def test_pain001_control_sum_adds_the_rounded_amounts(options):
    invoices = [
        SupplierInvoice("H1", "Lev", Decimal("10.005"), bankgiro="123-4566", invoice_number="H1"),
        SupplierInvoice("H2", "Lev", Decimal("10.005"), bankgiro="123-4566", invoice_number="H2"),
    ]

    payment_file, root = _pain(invoices, options)
    amounts = root.findall("p:CstmrCdtTrfInitn/p:PmtInf/p:CdtTrfTxInf/p:Amt/p:InstdAmt", NS)

    assert [a.text for a in amounts] == ["10.01", "10.01"]
    assert root.find("p:CstmrCdtTrfInitn/p:GrpHdr/p:CtrlSum", NS).text == "20.02"
    assert root.find("p:CstmrCdtTrfInitn/p:PmtInf/p:CtrlSum", NS).text == "20.02"
    assert payment_file.total == Decimal("20.02")


def test_pain001_accepts_iban(options):
    invoice = SupplierInvoice("E1", "Euro GmbH", Decimal("99.9"), currency="EUR",
                              iban="DE89 3704 0044 0532 0130 00", bic="COBADEFFXXX")

    payment_file, root = _pain([invoice], options)
    tx = root.find("p:CstmrCdtTrfInitn/p:PmtInf/p:CdtTrfTxInf", NS)

    assert payment_file.skipped == ()
    assert tx.find("p:CdtrAcct/p:Id/p:IBAN", NS).text == "DE89370400440532013000"
    assert tx.find("p:CdtrAgt/p:FinInstnId/p:BIC", NS).text == "COBADEFFXXX"
    assert tx.find("p:Amt/p:InstdAmt", NS).get("Ccy") == "EUR"
    assert tx.find("p:Amt/p:InstdAmt", NS).text == "99.90"


def test_pain001_overlong_name_skips_only_that_invoice(invoices, options):
    long_name = SupplierInvoice("L1", "N" * 71, Decimal("10"), bankgiro="123-4566")

    payment_file, root = _pain(invoices + [long_name], options)

    assert [s.field for s in payment_file.skipped] == ["supplier_name"]
    assert payment_file.count == 3
    assert root.find("p:CstmrCdtTrfInitn/p:GrpHdr/p:CtrlSum", NS).text == "4500.00"


def test_filenames(options):
    assert payment_filename(PaymentFormat.LB, options) == "lb_50501055_20241220.txt"
    assert payment_filename(PaymentFormat.ISO20022, options) == "pain001_20241220.xml"
