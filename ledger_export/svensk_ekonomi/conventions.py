"""
Konventioner som styr exportformaten: momssatser, fältbredder och programidentitet.

Skickas in per export i stället för att ligga som modulkonstanter, så att
historiska exporter kan återskapas med den tidens regler.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class VATRate(Enum):
    """Svenska momssatser"""
    STANDARD = Decimal("0.25")
    REDUCED_12 = Decimal("0.12")
    REDUCED_6 = Decimal("0.06")
    ZERO = Decimal("0")


# Fast tabell: kvartal -> första månaden i kvartalet
QUARTER_FIRST_MONTH: Mapping[int, str] = MappingProxyType({1: "01", 2: "04", 3: "07", 4: "10"})


@dataclass(frozen=True)
class LBLayout:
    """Postlayout för Bankgirots Leverantörsbetalningar (LB)"""
    record_length: int = 80
    bankgiro_width: int = 10
    reference_width: int = 25
    amount_width: int = 12
    count_width: int = 7
    total_width: int = 12
    information_width: int = 20
    product: str = "LEVERANTÖRSBETALNINGAR"
    opening_code: str = "11"
    payment_code: str = "14"
    closing_code: str = "29"


@dataclass(frozen=True)
class ExportConventions:
    program_name: str = "Ledger Export"
    program_version: str = "1.0"
    currency: str = "SEK"
    chart_of_accounts: str = "BAS2024"
    charset: str = "iso-8859-1"
    balance_tolerance: Decimal = Decimal("0.005")
    vat_rate_standard: Decimal = VATRate.STANDARD.value
    vat_rate_reduced_12: Decimal = VATRate.REDUCED_12.value
    vat_rate_reduced_6: Decimal = VATRate.REDUCED_6.value
    quarter_first_month: Mapping[int, str] = field(default_factory=lambda: QUARTER_FIRST_MONTH)
    lb: LBLayout = field(default_factory=LBLayout)


DEFAULT_CONVENTIONS = ExportConventions()
