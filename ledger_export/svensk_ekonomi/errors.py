"""
Feltyper för export av bokföringsdata.

Alla fel bär en maskinläsbar kod och strukturerade detaljer så att anroparen
kan rätta källdata utan att tolka felmeddelanden.
"""

from typing import Optional


class ExportError(Exception):
    """Basklass för alla exportfel."""

    code = "export_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, **self.details}


class ValidationError(ExportError):
    """Obalanserade eller tomma verifikationer. Blockerar exporten."""

    code = "validation_failed"

    def __init__(self, violations: list):
        self.violations = list(violations)
        super().__init__(
            f"{len(self.violations)} verifikationsfel blockerar exporten",
            {"violations": [v.to_dict() for v in self.violations]},
        )


class FieldOverflowError(ExportError):
    """Ett värde ryms inte i ett fält med fast bredd."""

    code = "field_overflow"

    def __init__(self, field: str, value: str, width: int,
                 invoice_id: Optional[str] = None):
        self.field = field
        self.value = value
        self.width = width
        self.invoice_id = invoice_id
        where = f" (faktura {invoice_id})" if invoice_id else ""
        super().__init__(
            f"Fältet {field}{where} är {len(value)} tecken men får vara högst {width}",
            {"field": field, "value": value, "width": width, "invoice_id": invoice_id},
        )


class UpstreamFetchError(ExportError):
    """Datakällan kunde inte leverera underlag. Ingen partiell export."""

    code = "upstream_fetch_failed"

    def __init__(self, source: str, message: str, details: Optional[dict] = None):
        self.source = source
        super().__init__(message, {"source": source, **(details or {})})


class RowShapeError(UpstreamFetchError):
    """En rad från datakällan har fel form och kan inte tolkas."""

    code = "row_shape_mismatch"


class InvalidRequestError(ExportError, ValueError):
    """Ogiltiga exportparametrar (period, avsändare, år)."""

    code = "invalid_request"


class ExportWarning(UserWarning):
    """Icke-blockerande problem som följer med exporten."""

    kind = "export_warning"

    def __init__(self, message: str, kind: Optional[str] = None, **details):
        super().__init__(message)
        self.message = message
        if kind:
            self.kind = kind
        self.details = details

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message, **self.details}


class UnclassifiedAccountWarning(ExportWarning):
    """Konto utanför BAS-intervallen. Exporteras ändå med okänd kontotyp."""

    kind = "unclassified_account"

    def __init__(self, account: str, verification_id: Optional[str] = None):
        self.account = account
        self.verification_id = verification_id
        where = f" i verifikation {verification_id}" if verification_id else ""
        super().__init__(f"Konto {account}{where} kunde inte klassificeras",
                         account=account, verification_id=verification_id)
