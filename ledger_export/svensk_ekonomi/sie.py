"""
SIE4-export för svenska bokföringsprogram (Fortnox, Visma, revisionsverktyg).
Genererar SIE4-filer enligt standarden på www.sie.se.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .accounts import RESULT_CLASSES, default_account_name, is_balance_sheet, sie_account_type
from .conventions import DEFAULT_CONVENTIONS, ExportConventions
from .formatting import CRLF, clean_org_number, format_amount, format_date
from .ledger import order_verifications, sie_amount
from .models import ZERO, Account, CompanyProfile, PeriodBalance, Verification


SIE_TYPE = "4"
FILE_FORMAT = "PC8"


def quote(value: str) -> str:
    """Citerar en sträng för SIE, interna citattecken dubbleras"""
    escaped = (value or "").replace('"', '""')
    return f'"{escaped}"'


def _token(value: str) -> str:
    """Verifikationsserie m.m.: citeras bara om det behövs"""
    if not value or any(ch.isspace() or ch == '"' for ch in value):
        return quote(value)
    return value


def collect_accounts(balances: Iterable[PeriodBalance],
                     verifications: Iterable[Verification],
                     names: Optional[dict] = None) -> list[Account]:
    """
    Unionen av konton från saldon och verifikationsrader, ett per kontonummer.
    Första namnet som påträffas vinner; extra namn från datakällan fyller luckor.
    """
    seen: dict[str, Optional[str]] = {}

    def remember(number: str, name: Optional[str]):
        if number not in seen or (seen[number] is None and name):
            seen[number] = name or seen.get(number)

    for bal in balances:
        remember(bal.account, bal.name)
    for ver in verifications:
        for line in ver.lines:
            remember(line.account, line.account_name)
    for number, name in (names or {}).items():
        if number in seen:
            remember(number, name)

    return [
        Account(number, seen[number] or default_account_name(number))
        for number in sorted(seen)
    ]


class SIEEncoder:
    """Bygger en SIE4-fil rad för rad"""

    def __init__(self, company: CompanyProfile, year: int,
                 conventions: ExportConventions = DEFAULT_CONVENTIONS,
                 generated_at: Optional[datetime] = None):
        self.company = company
        self.year = year
        self.conventions = conventions
        self.generated_at = generated_at or datetime.now()
        self.lines: list[str] = []

    def encode(self, accounts: Sequence[Account], balances: Sequence[PeriodBalance],
               verifications: Sequence[Verification], include_opening: bool = True) -> str:
        self._header()
        self._company()
        self._accounts(accounts)
        if include_opening:
            self._opening_and_closing(balances)
        self._results(balances)
        self._verifications(verifications)
        return CRLF.join(self.lines) + CRLF

    def _header(self):
        conv = self.conventions
        self.lines.append("#FLAGGA 0")
        self.lines.append(f"#PROGRAM {quote(conv.program_name)} {quote(conv.program_version)}")
        self.lines.append(f"#FORMAT {FILE_FORMAT}")
        self.lines.append(f"#GEN {format_date(self.generated_at)}")
        self.lines.append(f"#SIETYP {SIE_TYPE}")

    def _company(self):
        company = self.company
        org_nr = clean_org_number(company.org_number)
        if org_nr:
            self.lines.append(f"#ORGNR {org_nr}")
        self.lines.append(f"#FNAMN {quote(company.name or 'Mitt Företag')}")

        # SIE-format: kontakt, gatuadress, postadress, telefon
        if company.address or company.contact:
            postal = f"{company.zip_code or ''} {company.city or ''}".strip()
            parts = [company.contact or "", company.address or "", postal, company.phone or ""]
            self.lines.append("#ADRESS " + " ".join(quote(p) for p in parts))

        start, end = company.fiscal_year(self.year)
        prev_start, prev_end = company.fiscal_year(self.year - 1)

        self.lines.append(f"#TAXAR {self.year + 1}")
        self.lines.append(f"#OMFATTN {format_date(start)} {format_date(end)}")
        self.lines.append(f"#VALUTA {self.conventions.currency}")
        self.lines.append(f"#RAR 0 {format_date(start)} {format_date(end)}")
        # Jämförelseåret krävs av revisionsverktyg även utan data
        self.lines.append(f"#RAR -1 {format_date(prev_start)} {format_date(prev_end)}")
        self.lines.append(f"#KPTYP {self.conventions.chart_of_accounts}")

    def _accounts(self, accounts: Sequence[Account]):
        for account in accounts:
            self.lines.append(f"#KONTO {account.number} {quote(account.name)}")
            account_type = sie_account_type(account.account_class)
            if account_type:
                self.lines.append(f"#KTYP {account.number} {account_type}")

    def _opening_and_closing(self, balances: Sequence[PeriodBalance]):
        sheet = [b for b in balances if is_balance_sheet(b.account_class)]
        for bal in sheet:
            opening = bal.opening if bal.opening is not None else ZERO
            self.lines.append(f"#IB 0 {bal.account} {format_amount(sie_amount(opening, bal.account))}")
        for bal in sheet:
            closing = bal.closing if bal.closing is not None else _opening_plus_movement(bal)
            self.lines.append(f"#UB 0 {bal.account} {format_amount(sie_amount(closing, bal.account))}")

    def _results(self, balances: Sequence[PeriodBalance]):
        for bal in balances:
            if bal.account_class in RESULT_CLASSES:
                self.lines.append(f"#RES 0 {bal.account} {format_amount(sie_amount(bal.movement, bal.account))}")

    def _verifications(self, verifications: Sequence[Verification]):
        for ver in order_verifications(verifications):
            ver_date = format_date(ver.date)
            reg = ver.registration_date
            reg_part = f" {format_date(reg)}" if reg else ""
            self.lines.append(
                f"#VER {_token(ver.series)} {ver.number} {ver_date} {quote(ver.description)}{reg_part}"
            )
            self.lines.append("{")
            for line in ver.lines:
                # SIE: debet positivt, kredit negativt
                desc = f" {quote(line.description)}" if line.description else ""
                self.lines.append(
                    f"\t#TRANS {line.account} {{}} {format_amount(line.debit - line.credit)} {ver_date}{desc}"
                )
            self.lines.append("}")


def _opening_plus_movement(balance: PeriodBalance) -> Decimal:
    return (balance.opening or ZERO) + balance.movement


def encode_sie(company: CompanyProfile, accounts: Sequence[Account],
               balances: Sequence[PeriodBalance], verifications: Sequence[Verification],
               year: int, include_opening: bool = True,
               conventions: ExportConventions = DEFAULT_CONVENTIONS,
               generated_at: Optional[datetime] = None) -> str:
    """
    Exporterar till SIE4-format.

    Args:
        company: Företagsuppgifter (saknade fält får standardvärden)
        accounts: Kontoplan, se collect_accounts
        balances: Periodsaldon från aggregate
        verifications: Årets verifikationer
        year: Räkenskapsår
        include_opening: Ta med #IB/#UB för balanskonton

    Returns:
        SIE-filinnehåll som sträng med CRLF-radslut
    """
    encoder = SIEEncoder(company, year, conventions, generated_at)
    return encoder.encode(accounts, balances, verifications, include_opening)


def sie_filename(company: CompanyProfile, year: int) -> str:
    org_nr = clean_org_number(company.org_number) or "export"
    return f"bokforing_{org_nr}_{year}.se"
