"""
Betalfiler för leverantörsbetalningar.

Två format stöds:
- Bankgirots Leverantörsbetalningar (LB), poster med fast bredd
- ISO 20022 pain.001.001.03 (XML)

En faktura med felaktiga uppgifter hoppas över och rapporteras, resten av
betalningarna skrivs ändå. Ett värde som inte ryms i ett LB-fält stoppar
däremot hela filen, eftersom positionerna är fasta.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence

from .conventions import DEFAULT_CONVENTIONS, ExportConventions
from .errors import FieldOverflowError, InvalidRequestError
from .formatting import (
    CRLF,
    format_amount,
    format_date,
    format_short_date,
    round_cents,
    strip_separators,
    to_minor_units,
)
from .models import ZERO, PaymentFormat, PaymentOptions, SkippedInvoice, SupplierInvoice
from .validation import SwedishValidators

logger = logging.getLogger(__name__)

PAIN001_NAMESPACE = "urn:iso:std:iso:20022:tech:xsd:pain.001.001.03"

# Maxlängder i pain.001.001.03
MAX_NAME = 70
MAX_TEXT_35 = 35


@dataclass(frozen=True)
class PaymentFile:
    content: str
    format: PaymentFormat
    skipped: tuple = ()
    count: int = 0
    total: Decimal = ZERO

    @property
    def encoding(self) -> str:
        return "iso-8859-1" if self.format == PaymentFormat.LB else "utf-8"

    @property
    def media_type(self) -> str:
        if self.format == PaymentFormat.LB:
            return "text/plain; charset=iso-8859-1"
        return "application/xml"


def _skip(invoice: SupplierInvoice, field: str, reason: str) -> SkippedInvoice:
    logger.warning("Faktura %s hoppas över (%s): %s", invoice.id, field, reason)
    return SkippedInvoice(invoice.id, field, reason)


def check_invoice(invoice: SupplierInvoice, payment_format: PaymentFormat) -> Optional[SkippedInvoice]:
    """Kontrollerar en faktura. Returnerar skälet om den inte kan betalas."""
    if invoice.amount is None:
        return _skip(invoice, "amount", "Belopp saknas")
    if invoice.amount <= 0:
        return _skip(invoice, "amount", f"Beloppet måste vara positivt, fick {invoice.amount}")

    if not invoice.bankgiro and not invoice.iban:
        return _skip(invoice, "recipient", "Mottagare saknas (bankgiro eller IBAN)")

    if invoice.bankgiro:
        check = SwedishValidators.validate_bankgiro(invoice.bankgiro)
        if not check.is_valid:
            return _skip(invoice, "bankgiro", check.message)
    elif payment_format == PaymentFormat.LB:
        return _skip(invoice, "recipient", "LB-filer kan bara betala till bankgiro")

    if invoice.ocr and not invoice.ocr.isdigit():
        return _skip(invoice, "ocr", "OCR-nummer får bara innehålla siffror")

    return None


def _sender_bankgiro(options: PaymentOptions) -> str:
    check = SwedishValidators.validate_bankgiro(options.sender_bankgiro)
    if not check.is_valid:
        raise InvalidRequestError(
            f"Avsändarens bankgiro är ogiltigt: {check.message}",
            {"field": "sender_bankgiro", "value": options.sender_bankgiro},
        )
    return strip_separators(options.sender_bankgiro)


# === LEVERANTÖRSBETALNINGAR (LB) ===

def _fit(field: str, value: str, width: int, invoice_id: Optional[str] = None,
         fill: str = " ", right: bool = False) -> str:
    if len(value) > width:
        raise FieldOverflowError(field, value, width, invoice_id)
    return value.rjust(width, fill) if right else value.ljust(width, fill)


class LBEncoder:
    """Bygger en LB-fil, en post per rad"""

    def __init__(self, options: PaymentOptions,
                 conventions: ExportConventions = DEFAULT_CONVENTIONS):
        self.options = options
        self.conventions = conventions
        self.layout = conventions.lb
        self.sender_bankgiro = _sender_bankgiro(options)

    def opening_record(self) -> str:
        lb = self.layout
        return "".join([
            lb.opening_code,
            _fit("sender_bankgiro", self.sender_bankgiro, lb.bankgiro_width, fill="0", right=True),
            format_short_date(self.options.execution_date),
            _fit("product", lb.product, 22),
            " " * 20,
            _fit("currency", self.conventions.currency, 3),
            " " * 17,
        ])

    def payment_record(self, invoice: SupplierInvoice) -> str:
        lb = self.layout
        if invoice.ocr:
            reference = _fit("ocr", invoice.ocr, lb.reference_width, invoice.id, fill="0", right=True)
        else:
            reference = _fit("invoice_number", invoice.invoice_number or "", lb.reference_width, invoice.id)

        payment_date = invoice.due_date or self.options.execution_date
        return "".join([
            lb.payment_code,
            _fit("bankgiro", strip_separators(invoice.bankgiro), lb.bankgiro_width,
                 invoice.id, fill="0", right=True),
            reference,
            _fit("amount", str(to_minor_units(invoice.amount)), lb.amount_width,
                 invoice.id, fill="0", right=True),
            format_short_date(payment_date),
            " " * 5,
            " " * lb.information_width,
        ])

    def closing_record(self, count: int, total_minor: int) -> str:
        lb = self.layout
        return "".join([
            lb.closing_code,
            _fit("sender_bankgiro", self.sender_bankgiro, lb.bankgiro_width, fill="0", right=True),
            _fit("count", str(count), lb.count_width, fill="0", right=True),
            _fit("total", str(total_minor), lb.total_width, fill="0", right=True),
            " ",  # Negativt belopp-markering, används inte
            " " * 48,
        ])

    def encode(self, invoices: Sequence[SupplierInvoice]) -> str:
        records = [self.opening_record()]
        total_minor = 0
        for invoice in invoices:
            records.append(self.payment_record(invoice))
            total_minor += to_minor_units(invoice.amount)
        records.append(self.closing_record(len(invoices), total_minor))
        return CRLF.join(records) + CRLF


# === ISO 20022 pain.001 ===

def _iso_fields(invoice: SupplierInvoice) -> Optional[SkippedInvoice]:
    """Längdkontroller för pain.001. Ett för långt fält stoppar bara den fakturan."""
    name = invoice.supplier_name or invoice.id
    if len(name) > MAX_NAME:
        return _skip(invoice, "supplier_name", f"Namnet är längre än {MAX_NAME} tecken")
    end_to_end = invoice.invoice_number or invoice.id
    if len(end_to_end) > MAX_TEXT_35:
        return _skip(invoice, "invoice_number", f"Referensen är längre än {MAX_TEXT_35} tecken")
    if invoice.ocr and len(invoice.ocr) > MAX_TEXT_35:
        return _skip(invoice, "ocr", f"OCR-numret är längre än {MAX_TEXT_35} tecken")
    return None


def _bankgiro_account(parent: ET.Element, tag: str, bankgiro: str) -> None:
    account = ET.SubElement(parent, tag)
    other = ET.SubElement(ET.SubElement(account, "Id"), "Othr")
    ET.SubElement(other, "Id").text = strip_separators(bankgiro)
    ET.SubElement(ET.SubElement(other, "SchmeNm"), "Prtry").text = "BGNR"


class Pain001Encoder:
    """Bygger ett pain.001.001.03-meddelande med en betalningsomgång"""

    def __init__(self, options: PaymentOptions,
                 conventions: ExportConventions = DEFAULT_CONVENTIONS,
                 created_at: Optional[datetime] = None):
        self.options = options
        self.conventions = conventions
        self.created_at = created_at or datetime.now()
        self.sender_bankgiro = _sender_bankgiro(options)
        if len(options.sender_name or "") > MAX_NAME:
            raise InvalidRequestError(
                f"Avsändarens namn är längre än {MAX_NAME} tecken",
                {"field": "sender_name", "value": options.sender_name},
            )

    @property
    def message_id(self) -> str:
        return f"LE{self.created_at.strftime('%Y%m%d%H%M%S')}"

    def encode(self, invoices: Sequence[SupplierInvoice]) -> str:
        count = str(len(invoices))
        # Kontrollsumman räknas på samma avrundade belopp som InstdAmt
        control_sum = format_amount(sum((round_cents(inv.amount) for inv in invoices), ZERO))

        root = ET.Element("Document", xmlns=PAIN001_NAMESPACE)
        initiation = ET.SubElement(root, "CstmrCdtTrfInitn")

        header = ET.SubElement(initiation, "GrpHdr")
        ET.SubElement(header, "MsgId").text = self.message_id
        ET.SubElement(header, "CreDtTm").text = self.created_at.isoformat(timespec="seconds")
        ET.SubElement(header, "NbOfTxs").text = count
        ET.SubElement(header, "CtrlSum").text = control_sum
        ET.SubElement(ET.SubElement(header, "InitgPty"), "Nm").text = self.options.sender_name

        batch = ET.SubElement(initiation, "PmtInf")
        ET.SubElement(batch, "PmtInfId").text = f"{self.message_id}-1"
        ET.SubElement(batch, "PmtMtd").text = "TRF"
        ET.SubElement(batch, "NbOfTxs").text = count
        ET.SubElement(batch, "CtrlSum").text = control_sum
        service_level = ET.SubElement(ET.SubElement(batch, "PmtTpInf"), "SvcLvl")
        ET.SubElement(service_level, "Cd").text = "NURG"
        ET.SubElement(batch, "ReqdExctnDt").text = self.options.execution_date.isoformat()
        ET.SubElement(ET.SubElement(batch, "Dbtr"), "Nm").text = self.options.sender_name
        _bankgiro_account(batch, "DbtrAcct", self.sender_bankgiro)

        institution = ET.SubElement(ET.SubElement(batch, "DbtrAgt"), "FinInstnId")
        if self.options.sender_bic:
            ET.SubElement(institution, "BIC").text = self.options.sender_bic
        else:
            ET.SubElement(ET.SubElement(institution, "Othr"), "Id").text = "NOTPROVIDED"

        for invoice in invoices:
            self._transaction(batch, invoice)

        ET.indent(root)
        return ET.tostring(root, encoding="UTF-8", xml_declaration=True).decode("utf-8")

    def _transaction(self, batch: ET.Element, invoice: SupplierInvoice) -> None:
        tx = ET.SubElement(batch, "CdtTrfTxInf")
        ET.SubElement(ET.SubElement(tx, "PmtId"), "EndToEndId").text = invoice.invoice_number or invoice.id

        amount = ET.SubElement(ET.SubElement(tx, "Amt"), "InstdAmt",
                               Ccy=invoice.currency or self.conventions.currency)
        amount.text = format_amount(invoice.amount)

        if invoice.iban and invoice.bic and not invoice.bankgiro:
            agent = ET.SubElement(ET.SubElement(tx, "CdtrAgt"), "FinInstnId")
            ET.SubElement(agent, "BIC").text = invoice.bic

        ET.SubElement(ET.SubElement(tx, "Cdtr"), "Nm").text = invoice.supplier_name or invoice.id

        if invoice.bankgiro:
            _bankgiro_account(tx, "CdtrAcct", invoice.bankgiro)
        else:
            account = ET.SubElement(tx, "CdtrAcct")
            ET.SubElement(ET.SubElement(account, "Id"), "IBAN").text = strip_separators(invoice.iban)

        # Strukturerad referens bara när OCR finns, aldrig tomma element
        if invoice.ocr:
            structured = ET.SubElement(ET.SubElement(tx, "RmtInf"), "Strd")
            reference = ET.SubElement(structured, "CdtrRefInf")
            code = ET.SubElement(ET.SubElement(reference, "Tp"), "CdOrPrtry")
            ET.SubElement(code, "Cd").text = "SCOR"
            ET.SubElement(reference, "Ref").text = invoice.ocr


def encode_payment(invoices: Sequence[SupplierInvoice], payment_format: PaymentFormat,
                   options: PaymentOptions,
                   conventions: ExportConventions = DEFAULT_CONVENTIONS,
                   created_at: Optional[datetime] = None) -> PaymentFile:
    """
    Skapar en betalfil för leverantörsfakturor.

    Args:
        invoices: Fakturor att betala
        payment_format: PaymentFormat.LB eller PaymentFormat.ISO20022
        options: Avsändare och betaldag
        created_at: Tidsstämpel för pain.001 (MsgId, CreDtTm)

    Returns:
        PaymentFile med filinnehåll och överhoppade fakturor

    Raises:
        InvalidRequestError: Avsändarens bankgiro eller namn är ogiltigt
        FieldOverflowError: Ett värde ryms inte i ett LB-fält
    """
    payable = []
    skipped = []
    for invoice in invoices:
        problem = check_invoice(invoice, payment_format)
        if problem is None and payment_format == PaymentFormat.ISO20022:
            problem = _iso_fields(invoice)
        if problem is None:
            payable.append(invoice)
        else:
            skipped.append(problem)

    if payment_format == PaymentFormat.LB:
        content = LBEncoder(options, conventions).encode(payable)
    elif payment_format == PaymentFormat.ISO20022:
        content = Pain001Encoder(options, conventions, created_at).encode(payable)
    else:
        raise InvalidRequestError(f"Okänt betalformat: {payment_format}",
                                  {"field": "format", "value": str(payment_format)})

    total = sum((round_cents(inv.amount) for inv in payable), ZERO)
    logger.info("Betalfil %s: %d betalningar, totalt %s, %d överhoppade",
                payment_format.value, len(payable), format_amount(total), len(skipped))

    return PaymentFile(
        content=content,
        format=payment_format,
        skipped=tuple(skipped),
        count=len(payable),
        total=total,
    )


def payment_filename(payment_format: PaymentFormat, options: PaymentOptions) -> str:
    day = format_date(options.execution_date)
    if payment_format == PaymentFormat.LB:
        return f"lb_{strip_separators(options.sender_bankgiro)}_{day}.txt"
    return f"pain001_{day}.xml"
