"""Tests for the SIE4 encoder."""

from datetime import date, datetime
from decimal import Decimal

from conftest import GENERATED_AT, line, verification

from ledger_export.svensk_ekonomi.conventions import ExportConventions
from ledger_export.svensk_ekonomi.ledger import aggregate, opening_balances_from_records
from ledger_export.svensk_ekonomi.models import AccountBalanceRecord, CompanyProfile
from ledger_export.svensk_ekonomi.sie import collect_accounts, encode_sie, quote, sie_filename


def _encode(company, verifications, prior=None, include_opening=True, conventions=None):
    balances = aggregate(verifications, 2024, prior=prior)
    accounts = collect_accounts(balances, verifications)
    kwargs = {"conventions": conventions} if conventions else {}
    return encode_sie(company, accounts, balances, verifications, 2024,
                      include_opening=include_opening, generated_at=GENERATED_AT, **kwargs)


def _prior():
    return opening_balances_from_records([
        AccountBalanceRecord("1930", Decimal("50000")),
        AccountBalanceRecord("2081", Decimal("-50000"), "Aktiekapital"),
    ], 2023)


def test_header_and_company_block(company, sample_verifications):
    lines = _encode(company, sample_verifications).split("\r\n")

    assert lines[:5] == [
        "#FLAGGA 0",
        '#PROGRAM "Ledger Export" "1.0"',
        "#FORMAT PC8",
        "#GEN 20250115",
        "#SIETYP 4",
    ]
    assert lines[5] == "#ORGNR 5561839191"
    assert lines[6] == '#FNAMN "Exempel AB"'
    assert lines[7] == '#ADRESS "Anna Andersson" "Storgatan 1" "11122 Stockholm" ""'
    assert lines[8:14] == [
        "#TAXAR 2025",
        "#OMFATTN 20240101 20241231",
        "#VALUTA SEK",
        "#RAR 0 20240101 20241231",
        "#RAR -1 20230101 20231231",
        "#KPTYP BAS2024",
    ]


def test_crlf_line_endings_and_trailing_newline(company, sample_verifications):
    text = _encode(company, sample_verifications)

    assert text.endswith("\r\n")
    assert "\n" not in text.replace("\r\n", "")


def test_accounts_with_types(company, sample_verifications):
    text = _encode(company, sample_verifications)

    assert '#KONTO 1930 "Företagskonto"' in text
    assert "#KTYP 1930 T" in text
    assert "#KTYP 2611 S" in text
    assert "#KTYP 3001 I" in text
    assert "#KTYP 5420 K" in text


def test_unknown_account_gets_no_type(company):
    vers = [verification("v1", date(2024, 1, 1), 1, [line("9999", debit=10), line("3001", credit=10)])]

    text = _encode(company, vers)

    assert '#KONTO 9999 "Konto 9999"' in text
    assert "#KTYP 9999" not in text


def test_opening_and_closing_in_debit_positive_sign(company, sample_verifications):
    lines = _encode(company, sample_verifications, prior=_prior()).split("\r\n")

    assert "#IB 0 1930 50000.00" in lines
    assert "#IB 0 2081 -50000.00" in lines
    assert "#IB 0 2611 0.00" in lines
    assert "#UB 0 1930 60000.00" in lines
    assert "#UB 0 2081 -50000.00" in lines
    assert "#UB 0 2611 -2500.00" in lines
    assert "#UB 0 2641 500.00" in lines
    assert lines.index("#IB 0 2641 0.00") < lines.index("#UB 0 1930 60000.00")


def test_results_in_debit_positive_sign(company, sample_verifications):
    lines = _encode(company, sample_verifications, prior=_prior()).split("\r\n")

    assert "#RES 0 3001 -10000.00" in lines
    assert "#RES 0 5420 2000.00" in lines
    assert not any(line.startswith("#RES 0 1930") for line in lines)


def test_opening_balances_can_be_left_out(company, sample_verifications):
    text = _encode(company, sample_verifications, prior=_prior(), include_opening=False)

    assert "#IB " not in text
    assert "#UB " not in text
    assert "#RES 0 3001 -10000.00" in text


def test_verification_blocks(company, sample_verifications):
    lines = _encode(company, sample_verifications).split("\r\n")

    start = lines.index('#VER A 1 20240115 "Försäljning"')
    assert lines[start + 1:start + 6] == [
        "{",
        "\t#TRANS 1930 {} 12500.00 20240115",
        "\t#TRANS 3001 {} -10000.00 20240115",
        "\t#TRANS 2611 {} -2500.00 20240115",
        "}",
    ]


def test_registration_date_and_line_text(company):
    vers = [verification(
        "v1", date(2024, 3, 1), 7,
        [line("1930", debit="99.995", description="Inbetalning"), line("3001", credit="99.995")],
        description='Faktura "12"',
        created_at=datetime(2024, 3, 2, 8, 0),
    )]

    text = _encode(company, vers)

    assert '#VER A 7 20240301 "Faktura ""12""" 20240302' in text
    assert '\t#TRANS 1930 {} 100.00 20240301 "Inbetalning"' in text
    assert "\t#TRANS 3001 {} -100.00 20240301\r\n" in text


def test_verifications_ordered_by_series_and_number(company):
    vers = [
        verification("b", date(2024, 1, 1), 1, [line("1930", debit=1), line("3001", credit=1)], series="B"),
        verification("a2", date(2024, 1, 9), 2, [line("1930", debit=1), line("3001", credit=1)]),
        verification("a1", date(2024, 1, 5), 1, [line("1930", debit=1), line("3001", credit=1)]),
    ]

    ver_lines = [l for l in _encode(company, vers).split("\r\n") if l.startswith("#VER")]

    assert [l.split()[1:3] for l in ver_lines] == [["A", "1"], ["A", "2"], ["B", "1"]]


def test_defaults_for_missing_profile(sample_verifications):
    text = _encode(CompanyProfile(), sample_verifications)

    assert "#ORGNR" not in text
    assert '#FNAMN "Mitt Företag"' in text
    assert "#ADRESS" not in text


def test_broken_fiscal_year(sample_verifications):
    company = CompanyProfile(org_number="5561839191", fiscal_year_start="07-01", fiscal_year_end="06-30")

    text = _encode(company, sample_verifications)

    assert "#RAR 0 20240701 20250630" in text
    assert "#RAR -1 20230701 20240630" in text


def test_program_identity_comes_from_conventions(company, sample_verifications):
    conventions = ExportConventions(program_name="Bokslut", program_version="2.3")

    text = _encode(company, sample_verifications, conventions=conventions)

    assert '#PROGRAM "Bokslut" "2.3"' in text


def test_encodes_as_latin1(company, sample_verifications):
    data = _encode(company, sample_verifications).encode("iso-8859-1")

    assert "Företagskonto".encode("iso-8859-1") in data


def test_quote_doubles_inner_quotes():
    assert quote('Säg "hej"') == '"Säg ""hej"""'
    assert quote("") == '""'


def test_filename(company):
    assert sie_filename(company, 2024) == "bokforing_5561839191_2024.se"
    assert sie_filename(CompanyProfile(), 2024) == "bokforing_export_2024.se"
