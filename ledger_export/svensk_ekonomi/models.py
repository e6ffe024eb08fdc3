"""
Domänmodell för verifikationer, saldon och exportresultat.
"""

import calendar
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .accounts import AccountClass, classify


ZERO = Decimal("0")


@dataclass(frozen=True)
class Account:
    number: str
    name: str

    @property
    def account_class(self) -> AccountClass:
        return classify(self.number)


@dataclass(frozen=True)
class JournalLine:
    account: str
    debit: Decimal = ZERO
    credit: Decimal = ZERO
    description: str = ""
    account_name: Optional[str] = None

    @property
    def net(self) -> Decimal:
        """Debet minus kredit (SIE-tecken)"""
        return self.debit - self.credit


@dataclass(frozen=True)
class Verification:
    id: str
    date: date
    series: str
    number: int
    description: str
    lines: tuple = ()
    created_at: Optional[datetime] = None

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.lines), ZERO)

    @property
    def registration_date(self) -> Optional[date]:
        return self.created_at.date() if self.created_at else None


@dataclass(frozen=True)
class PeriodBalance:
    account: str
    year: int
    movement: Decimal
    opening: Optional[Decimal] = None
    closing: Optional[Decimal] = None
    name: Optional[str] = None

    @property
    def account_class(self) -> AccountClass:
        return classify(self.account)


@dataclass(frozen=True)
class AccountBalanceRecord:
    """Saldo från datakällan. Beloppet är i SIE-tecken (debet positivt)."""
    account: str
    balance: Decimal
    name: Optional[str] = None


@dataclass(frozen=True)
class CompanyProfile:
    org_number: str = ""
    name: str = "Mitt Företag"
    fiscal_year_start: str = "01-01"
    fiscal_year_end: str = "12-31"
    address: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None

    def fiscal_year(self, year: int) -> tuple[date, date]:
        """
        Räkenskapsårets första och sista dag.

        Ett brutet räkenskapsår (slut före start i kalendern) slutar året efter.
        Ogiltiga MM-DD ersätts med kalenderår.
        """
        start = _month_day(self.fiscal_year_start, year, (1, 1))
        end = _month_day(self.fiscal_year_end, year, (12, 31))
        if end < start:
            end = _month_day(self.fiscal_year_end, year + 1, (12, 31))
        return start, end


def _month_day(value: Optional[str], year: int, default: tuple) -> date:
    try:
        month, day = (int(part) for part in (value or "").split("-"))
    except ValueError:
        month, day = default
    if not 1 <= month <= 12:
        month, day = default
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, max(1, min(day, last_day)))


@dataclass(frozen=True)
class SupplierInvoice:
    """Leverantörsfaktura att betala"""
    id: str
    supplier_name: str = ""
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    invoice_number: str = ""
    bankgiro: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None
    ocr: Optional[str] = None
    due_date: Optional[date] = None


@dataclass(frozen=True)
class SkippedInvoice:
    invoice_id: str
    field: str
    reason: str

    def to_dict(self) -> dict:
        return {"invoice_id": self.invoice_id, "field": self.field, "reason": self.reason}


class ExportKind(str, Enum):
    SIE = "sie"
    VAT = "vat"
    SRU = "sru"
    PAYMENT = "payment"


class PaymentFormat(str, Enum):
    LB = "lb"
    ISO20022 = "iso20022"


@dataclass(frozen=True)
class SieOptions:
    include_opening: bool = True


@dataclass(frozen=True)
class VatOptions:
    period: str
    boxes: Optional[dict] = None


@dataclass(frozen=True)
class SruOptions:
    tax_period: Optional[str] = None
    include_ink2r: bool = True


@dataclass(frozen=True)
class PaymentOptions:
    format: PaymentFormat
    sender_bankgiro: str
    sender_name: str
    execution_date: date
    invoices: tuple = ()
    sender_bic: Optional[str] = None


@dataclass(frozen=True)
class ExportRequest:
    kind: ExportKind
    year: int
    options: object = None


@dataclass(frozen=True)
class ExportArtifact:
    content: bytes
    filename: str
    media_type: str
    warnings: tuple = ()
    skipped_invoices: tuple = ()

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'
