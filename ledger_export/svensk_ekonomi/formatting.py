"""
Formatering vid serialiseringsgränsen: belopp, datum och identifierare.

Avrundning sker alltid med ROUND_HALF_UP och punkt som decimaltecken, utan
tusentalsavgränsare, oberoende av locale.
"""

import re
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

CRLF = "\r\n"

_CENT = Decimal("0.01")
_WHOLE = Decimal("1")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


def format_amount(amount) -> str:
    """Två decimaler med punkt, t.ex. -1000.00"""
    quantized = to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)
    if quantized == 0:
        quantized = abs(quantized)
    return f"{quantized:f}"


def round_cents(amount) -> Decimal:
    """Avrundar till hela ören"""
    return to_decimal(amount).quantize(_CENT, rounding=ROUND_HALF_UP)


def round_whole(amount) -> int:
    """Avrundar till hela kronor"""
    return int(to_decimal(amount).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def to_minor_units(amount) -> int:
    """Kronor -> öre"""
    return int((to_decimal(amount) * 100).quantize(_WHOLE, rounding=ROUND_HALF_UP))


def format_date(value: date) -> str:
    """YYYYMMDD"""
    return value.strftime("%Y%m%d")


def format_time(value: datetime) -> str:
    """HHMMSS"""
    return value.strftime("%H%M%S")


def format_short_date(value: date) -> str:
    """YYMMDD"""
    return value.strftime("%y%m%d")


def clean_org_number(org_nr: str) -> str:
    """Tar bort bindestreck och mellanslag från org.nummer"""
    return re.sub(r'[^0-9]', '', org_nr or "")


def strip_separators(value: str) -> str:
    return re.sub(r'[\s-]', '', value or "")
