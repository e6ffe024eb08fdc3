"""
SRU-filer för inkomstdeklaration via Skatteverkets filöverföring.

Ett paket består alltid av två filer, INFO.SRU (avsändare) och
BLANKETTER.SRU (blanketter med uppgifter). Båda skrivs i ISO-8859-1 med
CRLF som radslut.
"""

import io
import zipfile
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Union

from .accounts import AccountClass, in_range
from .conventions import DEFAULT_CONVENTIONS, ExportConventions
from .formatting import CRLF, clean_org_number, format_date, format_time, round_whole
from .ledger import income_statement
from .models import ZERO, CompanyProfile, PeriodBalance

SRU_PRODUCT = "SRU"
INFO_FILENAME = "INFO.SRU"
BLANKETTER_FILENAME = "BLANKETTER.SRU"


class INK2Fields:
    """Fältkoder på INK2 huvudblankett"""
    FISCAL_YEAR_START = 7011
    FISCAL_YEAR_END = 7012
    PROFIT = 7104  # Överskott av näringsverksamhet
    LOSS = 7114    # Underskott av näringsverksamhet


# INK2R balansräkning (2.1-2.50): fältkod -> BAS-intervall, utgående saldo
INK2R_BALANCE_FIELDS = (
    # Anläggningstillgångar
    (7201, ((1000, 1059),)),                # Koncessioner, patent, goodwill m.m.
    (7202, ((1060, 1099),)),                # Förskott immateriella
    (7214, ((1100, 1119), (1130, 1179))),   # Byggnader och mark
    (7215, ((1200, 1279),)),                # Maskiner och inventarier
    (7216, ((1120, 1129),)),                # Förbättringsutgifter på annans fastighet
    (7217, ((1180, 1199), (1280, 1299))),   # Pågående nyanläggningar
    (7230, ((1310, 1319),)),                # Andelar i koncernföretag
    (7231, ((1330, 1339),)),                # Andelar i intresseföretag
    (7232, ((1320, 1329), (1340, 1349))),   # Fordringar hos koncern- och intresseföretag
    (7233, ((1350, 1359),)),                # Andra långfristiga värdepappersinnehav
    (7234, ((1360, 1369),)),                # Lån till delägare eller närstående
    (7235, ((1370, 1399),)),                # Andra långfristiga fordringar
    # Varulager
    (7241, ((1400, 1439),)),                # Råvaror och förnödenheter
    (7242, ((1440, 1449),)),                # Varor under tillverkning
    (7243, ((1450, 1469),)),                # Färdiga varor och handelsvaror
    (7244, ((1490, 1499),)),                # Övriga lagertillgångar
    (7245, ((1470, 1479),)),                # Pågående arbeten för annans räkning
    (7246, ((1480, 1489),)),                # Förskott till leverantörer
    # Kortfristiga fordringar
    (7251, ((1500, 1559),)),                # Kundfordringar
    (7252, ((1560, 1589),)),                # Fordringar hos koncern- och intresseföretag
    (7261, ((1590, 1619), (1630, 1699))),   # Övriga fordringar
    (7262, ((1620, 1629),)),                # Upparbetad men ej fakturerad intäkt
    (7263, ((1700, 1799),)),                # Förutbetalda kostnader och upplupna intäkter
    # Kortfristiga placeringar, kassa och bank
    (7270, ((1860, 1869),)),                # Andelar i koncernföretag
    (7271, ((1800, 1859), (1870, 1899))),   # Övriga kortfristiga placeringar
    (7281, ((1900, 1999),)),                # Kassa och bank
    # Eget kapital och obeskattade reserver
    (7301, ((2080, 2089),)),                # Bundet eget kapital
    (7302, ((2090, 2099),)),                # Fritt eget kapital
    (7321, ((2110, 2149),)),                # Periodiseringsfonder
    (7322, ((2150, 2159),)),                # Ackumulerade överavskrivningar
    (7323, ((2160, 2199),)),                # Övriga obeskattade reserver
    # Avsättningar
    (7331, ((2210, 2219),)),                # Pensioner enligt tryggandelagen
    (7332, ((2220, 2239),)),                # Övriga pensionsavsättningar
    (7333, ((2240, 2299),)),                # Övriga avsättningar
    # Långfristiga skulder
    (7350, ((2300, 2329),)),                # Obligationslån
    (7351, ((2330, 2339),)),                # Checkräkningskredit
    (7352, ((2340, 2359),)),                # Övriga skulder till kreditinstitut
    (7353, ((2360, 2379),)),                # Skulder till koncern- och intresseföretag
    (7354, ((2380, 2399),)),                # Övriga långfristiga skulder
    # Kortfristiga skulder
    (7360, ((2480, 2489),)),                # Checkräkningskredit
    (7361, ((2400, 2419),)),                # Övriga skulder till kreditinstitut
    (7362, ((2420, 2429),)),                # Förskott från kunder
    (7363, ((2430, 2439),)),                # Pågående arbeten för annans räkning
    (7364, ((2450, 2459),)),                # Fakturerad men ej upparbetad intäkt
    (7365, ((2440, 2449),)),                # Leverantörsskulder
    (7366, ((2492, 2492),)),                # Växelskulder
    (7367, ((2460, 2479),)),                # Skulder till koncern- och intresseföretag
    (7369, ((2490, 2491), (2493, 2509), (2520, 2899))),  # Övriga kortfristiga skulder
    (7368, ((2510, 2519),)),                # Skatteskulder
    (7370, ((2900, 2999),)),                # Upplupna kostnader och förutbetalda intäkter
)

# INK2R resultaträkning (3.1-3.25): (plusfält, minusfält, BAS-intervall).
# Fält med bara ett av de två får beloppet med tecken, övriga delas efter
# om posten ökar eller minskar resultatet.
INK2R_INCOME_FIELDS = (
    # Rörelseintäkter
    (7410, None, ((3000, 3799),)),                  # Nettoomsättning
    (7411, 7510, ((4900, 4999),)),                  # Förändring av lager
    (7412, None, ((3800, 3899),)),                  # Aktiverat arbete för egen räkning
    (7413, None, ((3900, 3999),)),                  # Övriga rörelseintäkter
    # Rörelsekostnader
    (None, 7511, ((4000, 4099),)),                  # Råvaror och förnödenheter
    (None, 7512, ((4100, 4899),)),                  # Handelsvaror
    (None, 7513, ((5000, 6999),)),                  # Övriga externa kostnader
    (None, 7514, ((7000, 7699),)),                  # Personalkostnader
    (None, 7515, ((7700, 7719), (7730, 7899))),     # Av- och nedskrivningar
    (None, 7516, ((7720, 7729),)),                  # Nedskrivningar av omsättningstillgångar
    (None, 7517, ((7900, 7999),)),                  # Övriga rörelsekostnader
    # Finansiella poster
    (7414, 7518, ((8000, 8029),)),                  # Resultat från andelar i koncernföretag
    (7415, 7519, ((8030, 8039),)),                  # Resultat från andelar i intresseföretag
    (7423, 7530, ((8040, 8199),)),                  # Resultat från övriga ägarintressen
    (7416, 7520, ((8200, 8269), (8280, 8299))),     # Resultat från finansiella anläggningstillgångar
    (7417, None, ((8300, 8399),)),                  # Övriga ränteintäkter
    (None, 7521, ((8270, 8279),)),                  # Nedskrivningar av finansiella tillgångar
    (None, 7522, ((8400, 8499),)),                  # Räntekostnader
    # Bokslutsdispositioner
    (None, 7524, ((8830, 8839),)),                  # Lämnade koncernbidrag
    (7419, None, ((8820, 8829),)),                  # Mottagna koncernbidrag
    (7420, 7525, ((8810, 8819),)),                  # Periodiseringsfond, återföring/avsättning
    (7421, 7526, ((8850, 8859),)),                  # Förändring av överavskrivningar
    (7422, 7527, ((8840, 8849), (8860, 8899))),     # Övriga bokslutsdispositioner
    # Skatt
    (None, 7528, ((8900, 8989),)),                  # Skatt på årets resultat
)

INK2R_PROFIT = 7450  # Årets resultat, vinst
INK2R_LOSS = 7550    # Årets resultat, förlust


@dataclass(frozen=True)
class SruSender:
    org_number: str
    name: str
    address: Optional[str] = None
    zip_code: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    contact: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    fax: Optional[str] = None

    @classmethod
    def from_company(cls, company: CompanyProfile) -> "SruSender":
        return cls(
            org_number=company.org_number,
            name=company.name,
            address=company.address,
            zip_code=company.zip_code,
            city=company.city,
            contact=company.contact,
            email=company.email,
            phone=company.phone,
        )


@dataclass(frozen=True)
class SruField:
    code: int
    value: Union[str, int, Decimal]

    def render(self) -> str:
        if isinstance(self.value, str):
            return self.value
        return str(round_whole(self.value))


@dataclass(frozen=True)
class SruDeclaration:
    form_type: str      # INK2, INK2R, ...
    period: str         # t.ex. 2025P4
    org_number: str
    name: str
    fields: tuple = ()
    system_info: Optional[str] = None


@dataclass(frozen=True)
class SruPackage:
    sender: SruSender
    declarations: tuple = ()
    generated_at: Optional[datetime] = None


def default_tax_period(year: int) -> str:
    """Beskattningsperiod 4 året efter räkenskapsåret"""
    return f"{year + 1}P4"


def _info_sru(sender: SruSender, generated_at: datetime,
              conventions: ExportConventions) -> str:
    lines = [
        "#DATABESKRIVNING_START",
        f"#PRODUKT {SRU_PRODUCT}",
        f"#SKAPAD {format_date(generated_at)} {format_time(generated_at)}",
        f"#PROGRAM {conventions.program_name} {conventions.program_version}",
        f"#FILNAMN {BLANKETTER_FILENAME}",
        "#DATABESKRIVNING_SLUT",
        "#MEDIELEV_START",
        f"#ORGNR {clean_org_number(sender.org_number)}",
        f"#NAMN {sender.name}",
    ]

    optional = (
        ("#ADRESS", sender.address),
        ("#POSTNR", sender.zip_code),
        ("#POSTORT", sender.city),
        ("#AVDELNING", sender.department),
        ("#KONTAKT", sender.contact),
        ("#EMAIL", sender.email),
        ("#TELEFON", sender.phone),
        ("#FAX", sender.fax),
    )
    for tag, value in optional:
        if value:
            lines.append(f"{tag} {value}")

    lines.append("#MEDIELEV_SLUT")
    return CRLF.join(lines) + CRLF


def _declaration_block(declaration: SruDeclaration, generated_at: datetime) -> list[str]:
    lines = [
        f"#BLANKETT {declaration.form_type}-{declaration.period}",
        f"#IDENTITET {clean_org_number(declaration.org_number)} "
        f"{format_date(generated_at)} {format_time(generated_at)}",
        f"#NAMN {declaration.name}",
    ]
    if declaration.system_info:
        lines.append(f"#SYSTEMINFO {declaration.system_info}")
    for item in declaration.fields:
        lines.append(f"#UPPGIFT {item.code} {item.render()}")
    lines.append("#BLANKETTSLUT")
    return lines


def _blanketter_sru(declarations: Sequence[SruDeclaration], generated_at: datetime) -> str:
    lines = []
    for declaration in declarations:
        lines.extend(_declaration_block(declaration, generated_at))
    lines.append("#FIL_SLUT")
    return CRLF.join(lines) + CRLF


def encode_sru(package: SruPackage, generated_at: Optional[datetime] = None,
               conventions: ExportConventions = DEFAULT_CONVENTIONS) -> tuple[str, str]:
    """
    Skapar INFO.SRU och BLANKETTER.SRU.

    Samma tidsstämpel används i båda filerna.

    Returns:
        (info_sru, blanketter_sru) som strängar med CRLF-radslut
    """
    now = generated_at or package.generated_at or datetime.now()
    return (
        _info_sru(package.sender, now, conventions),
        _blanketter_sru(package.declarations, now),
    )


def create_ink2_declaration(company: CompanyProfile, year: int,
                            balances: Sequence[PeriodBalance],
                            tax_period: Optional[str] = None,
                            conventions: ExportConventions = DEFAULT_CONVENTIONS,
                            generated_at: Optional[datetime] = None) -> SruDeclaration:
    """
    INK2 huvudblankett: räkenskapsårets datum och över- eller underskott.

    Resultatet tas ur årets resultaträkning. Ett nollresultat ger varken
    7104 eller 7114.
    """
    start, end = company.fiscal_year(year)
    fields = [
        SruField(INK2Fields.FISCAL_YEAR_START, format_date(start)),
        SruField(INK2Fields.FISCAL_YEAR_END, format_date(end)),
    ]

    result = income_statement(balances).net_result
    if round_whole(result) > 0:
        fields.append(SruField(INK2Fields.PROFIT, result))
    elif round_whole(result) < 0:
        fields.append(SruField(INK2Fields.LOSS, -result))

    stamp = generated_at or datetime.now()
    return SruDeclaration(
        form_type="INK2",
        period=tax_period or default_tax_period(year),
        org_number=company.org_number,
        name=company.name,
        fields=tuple(fields),
        system_info=f"{conventions.program_name} {format_date(stamp)}",
    )


def _in_ranges(account: str, ranges) -> bool:
    return any(in_range(account, start, end) for start, end in ranges)


def _balance_total(balances: Sequence[PeriodBalance], ranges) -> Decimal:
    total = ZERO
    for bal in balances:
        if _in_ranges(bal.account, ranges):
            total += bal.closing if bal.closing is not None else bal.movement
    return total


def _result_effect(balances: Sequence[PeriodBalance], ranges) -> Decimal:
    """Årets påverkan på resultatet, positiv för intäkter"""
    total = ZERO
    for bal in balances:
        if _in_ranges(bal.account, ranges):
            if bal.account_class == AccountClass.INCOME:
                total += bal.movement
            else:
                total -= bal.movement
    return total


def create_ink2r_declaration(company: CompanyProfile, year: int,
                             balances: Sequence[PeriodBalance],
                             tax_period: Optional[str] = None) -> SruDeclaration:
    """
    INK2R räkenskapsschema.

    Balansposterna tas ur utgående saldon, resultatposterna ur årets
    rörelse. Minusfälten skrivs som positiva belopp. Fält som avrundas
    till noll utelämnas.
    """
    fields = []
    for code, ranges in INK2R_BALANCE_FIELDS:
        total = _balance_total(balances, ranges)
        if round_whole(total) != 0:
            fields.append(SruField(code, total))

    for plus_code, minus_code, ranges in INK2R_INCOME_FIELDS:
        effect = _result_effect(balances, ranges)
        if plus_code and minus_code:
            code, value = (plus_code, effect) if effect > 0 else (minus_code, -effect)
        elif plus_code:
            code, value = plus_code, effect
        else:
            code, value = minus_code, -effect
        if round_whole(value) != 0:
            fields.append(SruField(code, value))

    result = income_statement(balances).net_result
    if round_whole(result) > 0:
        fields.append(SruField(INK2R_PROFIT, result))
    elif round_whole(result) < 0:
        fields.append(SruField(INK2R_LOSS, -result))

    return SruDeclaration(
        form_type="INK2R",
        period=tax_period or default_tax_period(year),
        org_number=company.org_number,
        name=company.name,
        fields=tuple(fields),
    )


def sru_archive(info: str, blanketter: str,
                conventions: ExportConventions = DEFAULT_CONVENTIONS) -> bytes:
    """Packar båda filerna i en zip så att de alltid skickas tillsammans"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(INFO_FILENAME, info.encode(conventions.charset, errors="replace"))
        archive.writestr(BLANKETTER_FILENAME, blanketter.encode(conventions.charset, errors="replace"))
    return buffer.getvalue()


def sru_filename(company: CompanyProfile, year: int) -> str:
    org_nr = clean_org_number(company.org_number) or "export"
    return f"sru_{org_nr}_{year}.zip"
