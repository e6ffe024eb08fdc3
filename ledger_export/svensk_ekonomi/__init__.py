"""
Svensk ekonomi - BAS-kontoplan, periodsaldon och lagstadgade exportformat
(SIE4, momsdeklaration, SRU, leverantörsbetalningar).
"""

from .accounts import AccountClass, BASAccounts, classify
from .conventions import DEFAULT_CONVENTIONS, ExportConventions, LBLayout, VATRate
from .errors import (
    ExportError,
    ExportWarning,
    FieldOverflowError,
    InvalidRequestError,
    RowShapeError,
    UnclassifiedAccountWarning,
    UpstreamFetchError,
    ValidationError,
)
from .ledger import aggregate, balance_sheet, income_statement, opening_balances_from_records
from .payments import PaymentFile, encode_payment
from .sie import encode_sie
from .sru import encode_sru
from .validation import SwedishValidators, ValidationResult, validate
from .vat import VatReturn, encode_vat, vat_period_code

__all__ = [
    "AccountClass", "BASAccounts", "classify",
    "DEFAULT_CONVENTIONS", "ExportConventions", "LBLayout", "VATRate",
    "ExportError", "ExportWarning", "FieldOverflowError", "InvalidRequestError", "RowShapeError",
    "UnclassifiedAccountWarning", "UpstreamFetchError", "ValidationError",
    "aggregate", "balance_sheet", "income_statement", "opening_balances_from_records",
    "PaymentFile", "encode_payment",
    "encode_sie",
    "encode_sru",
    "SwedishValidators", "ValidationResult", "validate",
    "VatReturn", "encode_vat", "vat_period_code",
]
