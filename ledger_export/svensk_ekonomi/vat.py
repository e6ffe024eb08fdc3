"""
Momsdeklaration: beräkning av rutor ur bokföringen och XML-fil för
filöverföring till Skatteverket.
"""

import calendar
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from .accounts import BASAccounts, in_range
from .conventions import DEFAULT_CONVENTIONS, ExportConventions
from .errors import InvalidRequestError
from .formatting import clean_org_number, round_whole, to_decimal
from .models import ZERO, CompanyProfile, Verification


# Rutor i den ordning de står på blanketten
BOX_ORDER = (
    "05", "06", "07", "08",
    "10", "11", "12",
    "20", "21", "22", "23", "24",
    "30", "31", "32",
    "35", "36", "37", "38", "39", "40", "41", "42",
    "48", "49",
    "50", "60", "61", "62",
)

OUTPUT_VAT_BOXES = ("10", "11", "12", "30", "31", "32", "60", "61", "62")
INPUT_VAT_BOX = "48"
NET_VAT_BOX = "49"

ESKD_VERSION = "6.0"


@dataclass
class VatReturn:
    """Momsdeklarationens rutor för en period"""
    period: str
    ruta05: Decimal = ZERO  # Momspliktig försäljning 25%
    ruta06: Decimal = ZERO  # Momspliktig försäljning 12%
    ruta07: Decimal = ZERO  # Momspliktig försäljning 6%
    ruta08: Decimal = ZERO  # Hyresinkomster vid frivillig skattskyldighet
    ruta10: Decimal = ZERO  # Utgående moms 25%
    ruta11: Decimal = ZERO  # Utgående moms 12%
    ruta12: Decimal = ZERO  # Utgående moms 6%
    ruta20: Decimal = ZERO  # Inköp av varor från annat EU-land
    ruta21: Decimal = ZERO  # Inköp av tjänster från annat EU-land
    ruta22: Decimal = ZERO  # Inköp av tjänster utanför EU
    ruta23: Decimal = ZERO  # Inköp av varor i Sverige
    ruta24: Decimal = ZERO  # Övriga inköp av tjänster
    ruta30: Decimal = ZERO  # Utgående moms 25% (omvänd skattskyldighet)
    ruta31: Decimal = ZERO  # Utgående moms 12% (omvänd skattskyldighet)
    ruta32: Decimal = ZERO  # Utgående moms 6% (omvänd skattskyldighet)
    ruta35: Decimal = ZERO  # Försäljning av varor till annat EU-land
    ruta36: Decimal = ZERO  # Försäljning av varor utanför EU
    ruta37: Decimal = ZERO  # Mellanmans inköp vid trepartshandel
    ruta38: Decimal = ZERO  # Mellanmans försäljning vid trepartshandel
    ruta39: Decimal = ZERO  # Försäljning av tjänster till EU
    ruta40: Decimal = ZERO  # Övrig försäljning av tjänster utanför Sverige
    ruta41: Decimal = ZERO  # Försäljning där köparen är skattskyldig
    ruta42: Decimal = ZERO  # Övrig momsfri försäljning
    ruta48: Decimal = ZERO  # Ingående moms att dra av
    ruta49: Decimal = ZERO  # Moms att betala (+) eller få tillbaka (-)
    ruta50: Decimal = ZERO  # Beskattningsunderlag vid import
    ruta60: Decimal = ZERO  # Utgående moms på import 25%
    ruta61: Decimal = ZERO  # Utgående moms på import 12%
    ruta62: Decimal = ZERO  # Utgående moms på import 6%

    def box(self, code: str) -> Decimal:
        return getattr(self, f"ruta{code}")

    def recalculate(self) -> "VatReturn":
        """Ruta 49 = utgående moms - ingående moms"""
        output_vat = sum((self.box(code) for code in OUTPUT_VAT_BOXES), ZERO)
        self.ruta49 = output_vat - self.ruta48
        return self

    @classmethod
    def from_boxes(cls, period: str, boxes: Mapping) -> "VatReturn":
        """Bygger en deklaration ur {"05": 1000, "10": 250, ...}. Ruta 49 räknas om."""
        known = {f.name for f in fields(cls)}
        report = cls(period=period)
        for key, value in boxes.items():
            code = str(key).removeprefix("ruta").zfill(2)
            name = f"ruta{code}"
            if name not in known or code == NET_VAT_BOX:
                continue
            setattr(report, name, to_decimal(value))
        return report.recalculate()


@dataclass(frozen=True)
class VatPeriod:
    code: str   # YYYYMM, första månaden i perioden
    start: date
    end: date


_QUARTER = re.compile(r"^Q([1-4])\s*(\d{4})$", re.IGNORECASE)
_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def parse_vat_period(label: str,
                     conventions: ExportConventions = DEFAULT_CONVENTIONS) -> VatPeriod:
    """
    Tolkar "Q4 2024" (kvartal) eller "2024-11" (månad).

    Kvartalets periodkod tas ur en fast tabell, inte ur en formel.
    """
    text = (label or "").strip()

    match = _QUARTER.match(text)
    if match:
        quarter, year = int(match.group(1)), int(match.group(2))
        first_month = conventions.quarter_first_month[quarter]
        start_month = int(first_month)
        end_month = start_month + 2
        return VatPeriod(
            code=f"{year}{first_month}",
            start=date(year, start_month, 1),
            end=date(year, end_month, calendar.monthrange(year, end_month)[1]),
        )

    match = _MONTH.match(text)
    if match and 1 <= int(match.group(2)) <= 12:
        year, month = int(match.group(1)), int(match.group(2))
        return VatPeriod(
            code=f"{year}{month:02d}",
            start=date(year, month, 1),
            end=date(year, month, calendar.monthrange(year, month)[1]),
        )

    raise InvalidRequestError(
        f"Okänd momsperiod: {label!r} (förväntat t.ex. 'Q4 2024' eller '2024-11')",
        {"field": "period", "value": label},
    )


def vat_period_code(label: str, conventions: ExportConventions = DEFAULT_CONVENTIONS) -> str:
    return parse_vat_period(label, conventions).code


def vat_return_from_verifications(verifications: Sequence[Verification], period: str,
                                  conventions: ExportConventions = DEFAULT_CONVENTIONS) -> VatReturn:
    """
    Beräknar rutorna ur momskontona i BAS för verifikationer inom perioden.

    2610-2639 (utgående moms) räknas som kredit - debet, 2640-2649
    (ingående moms) som debet - kredit. Försäljningsunderlagen i ruta 05-07
    härleds ur momsen och de injicerade momssatserna.
    """
    span = parse_vat_period(period, conventions)
    report = VatReturn(period=period)

    for ver in verifications:
        if not span.start <= ver.date <= span.end:
            continue
        for line in ver.lines:
            liability_net = line.credit - line.debit
            if in_range(line.account, *BASAccounts.OUTGOING_VAT_25):
                report.ruta10 += liability_net
            elif in_range(line.account, *BASAccounts.OUTGOING_VAT_12):
                report.ruta11 += liability_net
            elif in_range(line.account, *BASAccounts.OUTGOING_VAT_6):
                report.ruta12 += liability_net
            elif in_range(line.account, *BASAccounts.INCOMING_VAT):
                report.ruta48 += line.net

    if report.ruta10 > 0:
        report.ruta05 = report.ruta10 / conventions.vat_rate_standard
    if report.ruta11 > 0:
        report.ruta06 = report.ruta11 / conventions.vat_rate_reduced_12
    if report.ruta12 > 0:
        report.ruta07 = report.ruta12 / conventions.vat_rate_reduced_6

    return report.recalculate()


def _format_org_number(org_nr: str) -> str:
    clean = clean_org_number(org_nr)
    if len(clean) == 10:
        return f"{clean[:6]}-{clean[6:]}"
    return clean


def encode_vat(report: VatReturn, company: CompanyProfile,
               conventions: ExportConventions = DEFAULT_CONVENTIONS) -> bytes:
    """
    Skapar momsdeklarationen som XML.

    Varje ruta skrivs bara om den är skild från noll, utom ruta 49 som alltid
    skrivs. Beloppen avrundas till hela kronor först här.
    """
    period = parse_vat_period(report.period, conventions)

    root = ET.Element("eSKDUpload", Version=ESKD_VERSION)
    ET.SubElement(root, "OrgNr").text = _format_org_number(company.org_number)
    moms = ET.SubElement(root, "Moms")
    ET.SubElement(moms, "Period").text = period.code

    rounded = {code: round_whole(report.box(code)) for code in BOX_ORDER}
    # Ruta 49 ska gå ihop med de avrundade rutorna som faktiskt skrivs
    rounded[NET_VAT_BOX] = (sum(rounded[code] for code in OUTPUT_VAT_BOXES)
                            - rounded[INPUT_VAT_BOX])

    for code in BOX_ORDER:
        value = rounded[code]
        if value == 0 and code != NET_VAT_BOX:
            continue
        ET.SubElement(moms, f"Ruta{code}").text = str(value)

    ET.indent(root)
    return ET.tostring(root, encoding=conventions.charset, xml_declaration=True)


def vat_filename(company: CompanyProfile, report: VatReturn,
                 conventions: ExportConventions = DEFAULT_CONVENTIONS) -> str:
    org_nr = clean_org_number(company.org_number) or "export"
    return f"moms_{org_nr}_{vat_period_code(report.period, conventions)}.xml"


def describe(report: VatReturn) -> Optional[str]:
    """Kort sammanfattning för loggning"""
    if report.ruta49 > 0:
        return f"Moms att betala: {round_whole(report.ruta49)} kr"
    if report.ruta49 < 0:
        return f"Moms att få tillbaka: {round_whole(-report.ruta49)} kr"
    return None
