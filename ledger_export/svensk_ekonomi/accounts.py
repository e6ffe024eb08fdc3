"""
Klassificering av konton enligt BAS-kontoplanen.
"""

from enum import Enum
from typing import Optional


class AccountClass(str, Enum):
    """Kontoklasser i BAS"""
    ASSET = "asset"
    EQUITY = "equity"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    OTHER = "other"


BALANCE_SHEET_CLASSES = frozenset({AccountClass.ASSET, AccountClass.EQUITY, AccountClass.LIABILITY})
RESULT_CLASSES = frozenset({AccountClass.INCOME, AccountClass.EXPENSE})
CREDIT_NORMAL_CLASSES = frozenset({AccountClass.INCOME, AccountClass.EQUITY, AccountClass.LIABILITY})

_SIE_TYPES = {
    AccountClass.ASSET: "T",      # Tillgång
    AccountClass.EQUITY: "S",     # Eget kapital redovisas som skuld i SIE
    AccountClass.LIABILITY: "S",  # Skuld
    AccountClass.INCOME: "I",     # Intäkt
    AccountClass.EXPENSE: "K",    # Kostnad
}


def classify(account_number: str) -> AccountClass:
    """
    Klassificerar ett kontonummer utifrån första siffran (eller två).

    Okända konton ger OTHER i stället för fel, så att egna konton aldrig
    stoppar en export.
    """
    number = (account_number or "").strip()
    if len(number) != 4 or not number.isdigit():
        return AccountClass.OTHER

    first = number[0]
    if first == "1":
        return AccountClass.ASSET
    if first == "2":
        if number[:2] in ("20", "21"):
            return AccountClass.EQUITY
        return AccountClass.LIABILITY
    if first == "3":
        return AccountClass.INCOME
    if first in "45678":
        return AccountClass.EXPENSE
    return AccountClass.OTHER


def is_financial(account_number: str) -> bool:
    """Klass 8: finansiella poster och bokslutsdispositioner."""
    return classify(account_number) == AccountClass.EXPENSE and account_number.strip()[0] == "8"


def is_balance_sheet(account_class: AccountClass) -> bool:
    return account_class in BALANCE_SHEET_CLASSES


def normal_sign(account_class: AccountClass) -> int:
    """+1 för debetkonton, -1 för kreditkonton."""
    return -1 if account_class in CREDIT_NORMAL_CLASSES else 1


def sie_account_type(account_class: AccountClass) -> Optional[str]:
    return _SIE_TYPES.get(account_class)


def in_range(account_number: str, start: int, end: int) -> bool:
    if not account_number.isdigit():
        return False
    return start <= int(account_number) <= end


def default_account_name(account_number: str) -> str:
    return f"Konto {account_number}"


class BASAccounts:
    """BAS-konton som exporterna behöver känna till"""

    # Moms (intervall, båda gränserna inkluderade)
    OUTGOING_VAT_25 = (2610, 2619)  # Utgående moms 25%
    OUTGOING_VAT_12 = (2620, 2629)  # Utgående moms 12%
    OUTGOING_VAT_6 = (2630, 2639)   # Utgående moms 6%
    INCOMING_VAT = (2640, 2649)     # Ingående moms

    # Resultaträkningens grupper
    REVENUE = (3000, 3999)
    MATERIAL = (4000, 4999)
    OTHER_EXTERNAL = (5000, 6999)
    PERSONNEL = (7000, 7699)
    DEPRECIATION = (7700, 7999)
    FINANCIAL = (8000, 8899)
    TAX = (8900, 8999)

    # Balansräkningens grupper
    FIXED_ASSETS = (1000, 1399)
    CURRENT_ASSETS = (1400, 1999)
    EQUITY = (2000, 2099)
    UNTAXED_RESERVES = (2100, 2199)
    PROVISIONS = (2200, 2299)
    LONG_TERM_LIABILITIES = (2300, 2399)
    SHORT_TERM_LIABILITIES = (2400, 2999)
