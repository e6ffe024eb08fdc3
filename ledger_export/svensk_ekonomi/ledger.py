"""
Summering av verifikationer till periodsaldon per konto.

Teckenkonvention: varje konto redovisas med sitt normala saldo som positivt
belopp. Intäkter, skulder och eget kapital summeras som kredit - debet,
tillgångar och kostnader som debet - kredit. SIE-exporten använder i stället
debet positivt och räknar om beloppen själv.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .accounts import (
    AccountClass,
    BASAccounts,
    classify,
    in_range,
    is_balance_sheet,
    normal_sign,
)
from .models import ZERO, AccountBalanceRecord, JournalLine, PeriodBalance, Verification


def order_verifications(verifications: Iterable[Verification]) -> list[Verification]:
    """Sorterar på serie och nummer, den ordning SIE-läsare förväntar sig."""
    return sorted(verifications, key=lambda v: (v.series, v.number))


def in_year(verification: Verification, year: int) -> bool:
    return date(year, 1, 1) <= verification.date <= date(year, 12, 31)


def normal_amount(line: JournalLine) -> Decimal:
    """Radens belopp i kontots normala tecken."""
    return normal_sign(classify(line.account)) * line.net


def aggregate(verifications: Sequence[Verification], year: int,
              prior: Optional[Sequence[PeriodBalance]] = None) -> list[PeriodBalance]:
    """
    Summerar årets verifikationer till ett PeriodBalance per konto.

    Args:
        verifications: Verifikationer, gärna fler än årets (filtreras här)
        year: Räkenskapsår (kalenderår)
        prior: Föregående års saldon. Balanskonton får sin ingående balans
            härifrån, resultatkonton börjar alltid på noll.

    Returns:
        Saldon sorterade på kontonummer. Konton utan rörelse utelämnas,
        utom balanskonton som förs vidare från prior.
    """
    movements: dict[str, Decimal] = {}
    names: dict[str, str] = {}

    for ver in order_verifications(v for v in verifications if in_year(v, year)):
        for line in ver.lines:
            movements[line.account] = movements.get(line.account, ZERO) + normal_amount(line)
            if line.account_name and line.account not in names:
                names[line.account] = line.account_name

    if prior is None:
        return [
            PeriodBalance(account=acc, year=year, movement=movements[acc], name=names.get(acc))
            for acc in sorted(movements)
        ]

    openings: dict[str, Decimal] = {}
    for bal in prior:
        if not is_balance_sheet(classify(bal.account)):
            continue
        openings[bal.account] = _closing_of(bal)
        if bal.name and bal.account not in names:
            names[bal.account] = bal.name

    result = []
    for acc in sorted(set(movements) | set(openings)):
        movement = movements.get(acc, ZERO)
        opening = openings.get(acc, ZERO)
        result.append(PeriodBalance(
            account=acc,
            year=year,
            movement=movement,
            opening=opening,
            closing=opening + movement,
            name=names.get(acc),
        ))
    return result


def _closing_of(balance: PeriodBalance) -> Decimal:
    if balance.closing is not None:
        return balance.closing
    return (balance.opening or ZERO) + balance.movement


def opening_balances_from_records(records: Iterable[AccountBalanceRecord],
                                  year: int) -> list[PeriodBalance]:
    """
    Gör om föregående års utgående saldon från datakällan (SIE-tecken)
    till PeriodBalance i normaltecken, att använda som prior.
    """
    result = []
    for rec in records:
        cls = classify(rec.account)
        if not is_balance_sheet(cls):
            continue
        closing = normal_sign(cls) * rec.balance
        result.append(PeriodBalance(
            account=rec.account,
            year=year,
            movement=ZERO,
            opening=closing,
            closing=closing,
            name=rec.name,
        ))
    return result


def sie_amount(balance_amount: Decimal, account: str) -> Decimal:
    """Normaltecken -> SIE-tecken (debet positivt)."""
    return normal_sign(classify(account)) * balance_amount


# === RESULTATRÄKNING ===

@dataclass(frozen=True)
class IncomeStatement:
    """Resultaträkning. Intäkter positiva, kostnader positiva."""
    revenue: Decimal
    material: Decimal
    other_external: Decimal
    personnel: Decimal
    depreciation: Decimal
    financial: Decimal
    tax: Decimal

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue - self.material

    @property
    def ebitda(self) -> Decimal:
        return self.gross_profit - self.other_external - self.personnel

    @property
    def ebit(self) -> Decimal:
        return self.ebitda - self.depreciation

    @property
    def result_before_tax(self) -> Decimal:
        return self.ebit - self.financial

    @property
    def net_result(self) -> Decimal:
        return self.result_before_tax - self.tax


def _sum_range(balances: Iterable[PeriodBalance], span: tuple, use_closing: bool = False) -> Decimal:
    start, end = span
    total = ZERO
    for bal in balances:
        if in_range(bal.account, start, end):
            amount = bal.closing if use_closing and bal.closing is not None else bal.movement
            total += amount
    return total


def income_statement(balances: Sequence[PeriodBalance]) -> IncomeStatement:
    """
    Härleder resultaträkningen ur periodsaldon.

    Finansiella poster (8000-8899) är kostnadskonton i normaltecken, så
    finansiella intäkter minskar posten.
    """
    return IncomeStatement(
        revenue=_sum_range(balances, BASAccounts.REVENUE),
        material=_sum_range(balances, BASAccounts.MATERIAL),
        other_external=_sum_range(balances, BASAccounts.OTHER_EXTERNAL),
        personnel=_sum_range(balances, BASAccounts.PERSONNEL),
        depreciation=_sum_range(balances, BASAccounts.DEPRECIATION),
        financial=_sum_range(balances, BASAccounts.FINANCIAL),
        tax=_sum_range(balances, BASAccounts.TAX),
    )


# === BALANSRÄKNING ===

@dataclass(frozen=True)
class BalanceSheet:
    fixed_assets: Decimal
    current_assets: Decimal
    equity: Decimal
    untaxed_reserves: Decimal
    provisions: Decimal
    long_term_liabilities: Decimal
    short_term_liabilities: Decimal

    @property
    def total_assets(self) -> Decimal:
        return self.fixed_assets + self.current_assets

    @property
    def total_equity_and_liabilities(self) -> Decimal:
        return (self.equity + self.untaxed_reserves + self.provisions
                + self.long_term_liabilities + self.short_term_liabilities)


def balance_sheet(balances: Sequence[PeriodBalance]) -> BalanceSheet:
    """Balansräkning på utgående saldo (eller årets rörelse utan ingående balans)."""
    return BalanceSheet(
        fixed_assets=_sum_range(balances, BASAccounts.FIXED_ASSETS, use_closing=True),
        current_assets=_sum_range(balances, BASAccounts.CURRENT_ASSETS, use_closing=True),
        equity=_sum_range(balances, BASAccounts.EQUITY, use_closing=True),
        untaxed_reserves=_sum_range(balances, BASAccounts.UNTAXED_RESERVES, use_closing=True),
        provisions=_sum_range(balances, BASAccounts.PROVISIONS, use_closing=True),
        long_term_liabilities=_sum_range(balances, BASAccounts.LONG_TERM_LIABILITIES, use_closing=True),
        short_term_liabilities=_sum_range(balances, BASAccounts.SHORT_TERM_LIABILITIES, use_closing=True),
    )


def other_class_total(balances: Sequence[PeriodBalance]) -> Decimal:
    return sum((b.movement for b in balances if b.account_class == AccountClass.OTHER), ZERO)
