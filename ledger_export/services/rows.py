"""
Row models for raw store data.

Every row coming from a LedgerStore passes through these pydantic models
before it reaches the svensk_ekonomi core. Shape mismatches surface as
RowShapeError with the offending row index instead of a KeyError deep
inside an encoder.
"""
import datetime as dt
from decimal import Decimal
from typing import Iterable, List, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ledger_export.svensk_ekonomi.errors import RowShapeError
from ledger_export.svensk_ekonomi.models import (
    AccountBalanceRecord,
    CompanyProfile,
    JournalLine,
    Verification,
)

logger = logging.getLogger(__name__)


def _as_decimal(value):
    """Floats go through str() so 0.1 stays 0.1."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def _as_text(value):
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


class JournalRowModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account: str
    account_name: Optional[str] = Field(default=None, alias="accountName")
    debit: Decimal = Decimal("0")
    credit: Decimal = Decimal("0")
    description: Optional[str] = ""

    @field_validator("account", mode="before")
    @classmethod
    def coerce_account(cls, value):
        return _as_text(value)

    @field_validator("debit", "credit", mode="before")
    @classmethod
    def coerce_amount(cls, value):
        return _as_decimal(value)

    def to_domain(self) -> JournalLine:
        return JournalLine(
            account=self.account.strip(),
            debit=self.debit,
            credit=self.credit,
            description=self.description or "",
            account_name=self.account_name or None,
        )


class VerificationRowModel(BaseModel):
    id: str
    date: dt.date
    series: str = "A"
    number: int
    description: Optional[str] = ""
    rows: List[JournalRowModel] = []
    created_at: Optional[dt.datetime] = None

    @field_validator("id", "series", mode="before")
    @classmethod
    def coerce_identifier(cls, value):
        return _as_text(value)

    def to_domain(self) -> Verification:
        return Verification(
            id=self.id,
            date=self.date,
            series=self.series or "A",
            number=self.number,
            description=self.description or "",
            lines=tuple(row.to_domain() for row in self.rows),
            created_at=self.created_at,
        )


class CompanyRowModel(BaseModel):
    name: Optional[str] = None
    org_number: Optional[str] = None
    fiscal_year_start: Optional[str] = None
    fiscal_year_end: Optional[str] = None
    address: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    phone: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None

    @field_validator("org_number", "zip_code", "phone", mode="before")
    @classmethod
    def coerce_numeric_text(cls, value):
        return _as_text(value)

    def to_domain(self) -> CompanyProfile:
        defaults = CompanyProfile()
        return CompanyProfile(
            org_number=self.org_number or defaults.org_number,
            name=self.name or defaults.name,
            fiscal_year_start=self.fiscal_year_start or defaults.fiscal_year_start,
            fiscal_year_end=self.fiscal_year_end or defaults.fiscal_year_end,
            address=self.address,
            zip_code=self.zip_code,
            city=self.city,
            phone=self.phone,
            contact=self.contact_person,
            email=self.email,
        )


class BalanceRowModel(BaseModel):
    account_number: str
    account_name: Optional[str] = None
    balance: Decimal = Decimal("0")
    year: Optional[int] = None

    @field_validator("account_number", mode="before")
    @classmethod
    def coerce_account(cls, value):
        return _as_text(value)

    @field_validator("balance", mode="before")
    @classmethod
    def coerce_amount(cls, value):
        return _as_decimal(value)

    def to_domain(self) -> AccountBalanceRecord:
        return AccountBalanceRecord(
            account=self.account_number.strip(),
            balance=self.balance,
            name=self.account_name or None,
        )


def _parse(model, rows: Iterable[dict], source: str) -> list:
    parsed = []
    for index, row in enumerate(rows or []):
        try:
            parsed.append(model.model_validate(row).to_domain())
        except ValidationError as e:
            logger.error(f"Row {index} from {source} has unexpected shape: {e}")
            raise RowShapeError(
                source,
                f"Rad {index} från {source} kunde inte tolkas",
                {"index": index, "errors": e.errors(include_url=False, include_context=False,
                                                    include_input=False)},
            ) from e
    return parsed


def parse_verifications(rows: Iterable[dict]) -> List[Verification]:
    return _parse(VerificationRowModel, rows, "verifications")


def parse_balances(rows: Iterable[dict]) -> List[AccountBalanceRecord]:
    return _parse(BalanceRowModel, rows, "account_balances")


def parse_company(row: Optional[dict]) -> CompanyProfile:
    """A missing profile is not an error, the encoders fall back to defaults."""
    if not row:
        logger.warning("No company profile in store, using defaults")
        return CompanyProfile()
    return _parse(CompanyRowModel, [row], "company_profile")[0]
