"""
Validering av verifikationer och svenska identifierare innan export.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

from .errors import ValidationError
from .ledger import balance_sheet, income_statement, other_class_total
from .models import ZERO, PeriodBalance, Verification


DEFAULT_TOLERANCE = Decimal("0.005")


class ViolationKind(str, Enum):
    UNBALANCED_ENTRY = "unbalanced_entry"
    EMPTY_ENTRY = "empty_entry"
    ORPHAN_ACCOUNT = "orphan_account"
    UNBALANCED_PERIOD = "unbalanced_period"
    UNRECONCILED_BALANCE_SHEET = "unreconciled_balance_sheet"


BLOCKING_KINDS = frozenset({
    ViolationKind.UNBALANCED_ENTRY,
    ViolationKind.EMPTY_ENTRY,
    ViolationKind.UNBALANCED_PERIOD,
})


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    verification_id: Optional[str] = None
    account: Optional[str] = None

    @property
    def severity(self) -> str:
        return "error" if self.kind in BLOCKING_KINDS else "warning"

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "severity": self.severity,
            "message": self.message,
            "verification_id": self.verification_id,
            "account": self.account,
        }


@dataclass
class ValidationResult:
    violations: list = field(default_factory=list)

    @property
    def errors(self) -> list:
        return [v for v in self.violations if v.severity == "error"]

    @property
    def warnings(self) -> list:
        return [v for v in self.violations if v.severity == "warning"]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if not self.is_valid:
            raise ValidationError(self.errors)


def validate(verifications: Sequence[Verification],
             tolerance: Decimal = DEFAULT_TOLERANCE) -> ValidationResult:
    """
    Kontrollerar alla verifikationer och samlar samtliga fel i en körning,
    så att källdata kan rättas på en gång.
    """
    violations = []
    period_debit = ZERO
    period_credit = ZERO

    for ver in verifications:
        if not ver.lines:
            violations.append(Violation(
                ViolationKind.EMPTY_ENTRY,
                f"Verifikation {ver.series}{ver.number} saknar rader",
                verification_id=ver.id,
            ))
            continue

        debit = ver.total_debit
        credit = ver.total_credit
        period_debit += debit
        period_credit += credit

        if abs(debit - credit) > tolerance:
            violations.append(Violation(
                ViolationKind.UNBALANCED_ENTRY,
                f"Verifikation {ver.series}{ver.number} balanserar inte: "
                f"debet {debit} ≠ kredit {credit} (diff {debit - credit})",
                verification_id=ver.id,
            ))

        for line in ver.lines:
            if not SwedishValidators.validate_bas_account(line.account).is_valid:
                violations.append(Violation(
                    ViolationKind.ORPHAN_ACCOUNT,
                    f"Konto {line.account} ligger utanför BAS-kontoplanen",
                    verification_id=ver.id,
                    account=line.account,
                ))

    if abs(period_debit - period_credit) > tolerance:
        violations.append(Violation(
            ViolationKind.UNBALANCED_PERIOD,
            f"Perioden balanserar inte: debet {period_debit} ≠ kredit {period_credit}",
        ))

    return ValidationResult(violations)


def check_reconciliation(balances: Sequence[PeriodBalance],
                         tolerance: Decimal = DEFAULT_TOLERANCE) -> Optional[Violation]:
    """
    Balansräkningen ska gå ihop med årets resultat:
    tillgångar - (eget kapital + skulder) = intäkter - kostnader.
    """
    sheet = balance_sheet(balances)
    result = income_statement(balances).net_result
    diff = sheet.total_assets - sheet.total_equity_and_liabilities - result
    if abs(diff) <= tolerance:
        return None
    return Violation(
        ViolationKind.UNRECONCILED_BALANCE_SHEET,
        f"Balansräkningen stämmer inte mot resultatet (diff {diff}, "
        f"varav okända konton {other_class_total(balances)})",
    )


@dataclass
class IdentifierCheck:
    is_valid: bool
    message: str
    field: Optional[str] = None
    value: Optional[str] = None


def _luhn_check_digit(digits: Sequence[int]) -> int:
    """Kontrollsiffra enligt modulus 10, räknat bakifrån."""
    checksum = 0
    for i, d in enumerate(reversed(digits)):
        if i % 2 == 0:
            doubled = d * 2
            checksum += doubled if doubled < 10 else doubled - 9
        else:
            checksum += d
    return (10 - (checksum % 10)) % 10


class SwedishValidators:
    """Samling av svenska validerare"""

    @staticmethod
    def validate_org_number(org_nr: str) -> IdentifierCheck:
        """
        Validerar svenskt organisationsnummer.
        Format: NNNNNN-NNNN eller NNNNNNNNNN
        """
        clean = re.sub(r'[^0-9]', '', org_nr or "")

        if len(clean) != 10:
            return IdentifierCheck(False, "Organisationsnummer måste vara 10 siffror",
                                   "org_number", org_nr)

        if clean[0] == '0':
            return IdentifierCheck(False, "Organisationsnummer kan inte börja med 0",
                                   "org_number", org_nr)

        digits = [int(d) for d in clean]
        expected_check = _luhn_check_digit(digits[:-1])
        if digits[-1] != expected_check:
            return IdentifierCheck(
                False,
                f"Ogiltig kontrollsiffra (förväntat {expected_check}, fick {digits[-1]})",
                "org_number",
                org_nr,
            )

        return IdentifierCheck(True, "Giltigt organisationsnummer", "org_number", org_nr)

    @staticmethod
    def validate_bankgiro(bg_nr: str) -> IdentifierCheck:
        """
        Validerar bankgironummer.
        Format: NNN-NNNN eller NNNN-NNNN (7-8 siffror)
        """
        clean = re.sub(r'[^0-9]', '', bg_nr or "")

        if len(clean) < 7 or len(clean) > 8:
            return IdentifierCheck(False, "Bankgironummer måste vara 7-8 siffror",
                                   "bankgiro", bg_nr)

        digits = [int(d) for d in clean]
        if digits[-1] != _luhn_check_digit(digits[:-1]):
            return IdentifierCheck(False, "Ogiltig kontrollsiffra för bankgiro",
                                   "bankgiro", bg_nr)

        return IdentifierCheck(True, "Giltigt bankgironummer", "bankgiro", bg_nr)

    @staticmethod
    def validate_bas_account(account: str) -> IdentifierCheck:
        """
        Validerar BAS-kontonummer.
        Format: 4 siffror, börjar med 1-8
        """
        if not re.match(r'^[1-8]\d{3}$', account or ""):
            return IdentifierCheck(
                False,
                f"Ogiltigt BAS-konto: {account} (ska vara 4 siffror, börja med 1-8)",
                "bas_account",
                account,
            )
        return IdentifierCheck(True, "Giltigt BAS-konto", "bas_account", account)
