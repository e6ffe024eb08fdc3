"""
Export Service - Turns an ExportRequest into a finished file.

Pipeline per request:
store (one concurrent fetch) -> row parsing -> validation -> aggregation -> encoder

Encoders are synchronous and run in the threadpool so a large SIE file does
not block the event loop.
"""
from datetime import datetime
from typing import Callable, List, Sequence
import asyncio
import logging

from starlette.concurrency import run_in_threadpool

from ledger_export.services.rows import parse_balances, parse_company, parse_verifications
from ledger_export.services.store import LedgerStore
from ledger_export.svensk_ekonomi.conventions import DEFAULT_CONVENTIONS, ExportConventions
from ledger_export.svensk_ekonomi.errors import (
    ExportError,
    ExportWarning,
    InvalidRequestError,
    UnclassifiedAccountWarning,
    UpstreamFetchError,
)
from ledger_export.svensk_ekonomi.ledger import aggregate, in_year, opening_balances_from_records
from ledger_export.svensk_ekonomi.models import (
    CompanyProfile,
    ExportArtifact,
    ExportKind,
    ExportRequest,
    PaymentOptions,
    SieOptions,
    SruOptions,
    VatOptions,
    Verification,
)
from ledger_export.svensk_ekonomi.payments import encode_payment, payment_filename
from ledger_export.svensk_ekonomi.sie import collect_accounts, encode_sie, sie_filename
from ledger_export.svensk_ekonomi.sru import (
    SruPackage,
    SruSender,
    create_ink2_declaration,
    create_ink2r_declaration,
    encode_sru,
    sru_archive,
    sru_filename,
)
from ledger_export.svensk_ekonomi.validation import (
    SwedishValidators,
    ViolationKind,
    check_reconciliation,
    validate,
)
from ledger_export.svensk_ekonomi.vat import (
    VatReturn,
    describe,
    encode_vat,
    parse_vat_period,
    vat_filename,
    vat_return_from_verifications,
)

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
MAX_YEAR = 2100


class ExportService:
    """Runs exports against a LedgerStore with the given conventions."""

    def __init__(self, store: LedgerStore,
                 conventions: ExportConventions = DEFAULT_CONVENTIONS,
                 clock: Callable[[], datetime] = datetime.now):
        self.store = store
        self.conventions = conventions
        self.clock = clock

    async def export(self, request: ExportRequest) -> ExportArtifact:
        if not MIN_YEAR <= request.year <= MAX_YEAR:
            raise InvalidRequestError(
                f"År {request.year} ligger utanför {MIN_YEAR}-{MAX_YEAR}",
                {"field": "year", "value": request.year},
            )

        logger.info(f"Export request: kind={request.kind.value}, year={request.year}")

        if request.kind == ExportKind.SIE:
            artifact = await self._export_sie(request.year, request.options or SieOptions())
        elif request.kind == ExportKind.VAT:
            artifact = await self._export_vat(request.year, _require(request, VatOptions))
        elif request.kind == ExportKind.SRU:
            artifact = await self._export_sru(request.year, request.options or SruOptions())
        elif request.kind == ExportKind.PAYMENT:
            artifact = await self._export_payment(_require(request, PaymentOptions))
        else:
            raise InvalidRequestError(f"Okänd exporttyp: {request.kind}", {"field": "kind"})

        for warning in artifact.warnings:
            logger.warning(f"Export {artifact.filename}: {warning}")
        logger.info(f"Export ready: {artifact.filename} ({len(artifact.content)} bytes, "
                    f"{len(artifact.warnings)} warnings)")
        return artifact

    async def export_many(self, requests: Sequence[ExportRequest]) -> List[ExportArtifact]:
        """Independent requests run concurrently. The first failure propagates."""
        return list(await asyncio.gather(*(self.export(r) for r in requests)))

    # === Store access ===

    async def _fetch(self, *calls):
        try:
            return await asyncio.gather(*calls)
        except ExportError:
            raise
        except Exception as e:
            logger.error(f"Store fetch failed: {e}")
            raise UpstreamFetchError("store", f"Kunde inte hämta underlag: {e}") from e

    def _checked(self, verifications: Sequence[Verification], company: CompanyProfile,
                 year: int) -> tuple:
        """Validate the year's verifications. Blocking errors raise, the rest become warnings."""
        year_verifications = [v for v in verifications if in_year(v, year)]
        result = validate(year_verifications, self.conventions.balance_tolerance)
        result.raise_for_errors()

        warnings: List[ExportWarning] = [
            UnclassifiedAccountWarning(v.account, v.verification_id)
            for v in result.warnings
            if v.kind == ViolationKind.ORPHAN_ACCOUNT
        ]

        if company.org_number:
            check = SwedishValidators.validate_org_number(company.org_number)
            if not check.is_valid:
                warnings.append(ExportWarning(check.message, kind="invalid_org_number",
                                              org_number=company.org_number))
        return year_verifications, warnings

    def _reconciliation_warnings(self, balances) -> List[ExportWarning]:
        violation = check_reconciliation(balances, self.conventions.balance_tolerance)
        if violation is None:
            return []
        return [ExportWarning(violation.message, kind=violation.kind.value)]

    # === Formats ===

    async def _export_sie(self, year: int, options: SieOptions) -> ExportArtifact:
        company_row, verification_rows, current_rows, prior_rows = await self._fetch(
            self.store.fetch_company_profile(),
            self.store.fetch_verifications(year),
            self.store.fetch_account_balances(year),
            self.store.fetch_account_balances(year - 1),
        )
        company = parse_company(company_row)
        verifications = parse_verifications(verification_rows)
        names = {rec.account: rec.name for rec in parse_balances(current_rows) if rec.name}
        opening = opening_balances_from_records(parse_balances(prior_rows), year - 1)

        year_verifications, warnings = self._checked(verifications, company, year)
        balances = aggregate(year_verifications, year, prior=opening)
        warnings.extend(self._reconciliation_warnings(balances))
        accounts = collect_accounts(balances, year_verifications, names)

        text = await run_in_threadpool(
            encode_sie, company, accounts, balances, year_verifications, year,
            options.include_opening, self.conventions, self.clock(),
        )
        return ExportArtifact(
            content=text.encode(self.conventions.charset, errors="replace"),
            filename=sie_filename(company, year),
            media_type=f"text/plain; charset={self.conventions.charset}",
            warnings=tuple(warnings),
        )

    async def _export_vat(self, year: int, options: VatOptions) -> ExportArtifact:
        period = parse_vat_period(options.period, self.conventions)
        # The period label decides which year of verifications is read
        period_year = period.start.year
        if period_year != year:
            logger.warning(f"VAT period {options.period} is outside year {year}, reading {period_year}")

        if options.boxes:
            (company_row,) = await self._fetch(self.store.fetch_company_profile())
            company = parse_company(company_row)
            report = VatReturn.from_boxes(options.period, options.boxes)
            warnings = []
        else:
            company_row, verification_rows = await self._fetch(
                self.store.fetch_company_profile(),
                self.store.fetch_verifications(period_year),
            )
            company = parse_company(company_row)
            year_verifications, warnings = self._checked(
                parse_verifications(verification_rows), company, period_year)
            report = vat_return_from_verifications(year_verifications, options.period, self.conventions)

        summary = describe(report)
        if summary:
            logger.info(f"VAT {options.period}: {summary}")

        content = await run_in_threadpool(encode_vat, report, company, self.conventions)
        return ExportArtifact(
            content=content,
            filename=vat_filename(company, report, self.conventions),
            media_type="application/xml",
            warnings=tuple(warnings),
        )

    async def _export_sru(self, year: int, options: SruOptions) -> ExportArtifact:
        company_row, verification_rows, prior_rows = await self._fetch(
            self.store.fetch_company_profile(),
            self.store.fetch_verifications(year),
            self.store.fetch_account_balances(year - 1),
        )
        company = parse_company(company_row)
        opening = opening_balances_from_records(parse_balances(prior_rows), year - 1)
        year_verifications, warnings = self._checked(
            parse_verifications(verification_rows), company, year)
        balances = aggregate(year_verifications, year, prior=opening)
        warnings.extend(self._reconciliation_warnings(balances))

        now = self.clock()
        declarations = [create_ink2_declaration(company, year, balances, options.tax_period,
                                                self.conventions, now)]
        if options.include_ink2r:
            declarations.append(create_ink2r_declaration(company, year, balances, options.tax_period))

        package = SruPackage(SruSender.from_company(company), tuple(declarations), now)
        info, blanketter = await run_in_threadpool(encode_sru, package, now, self.conventions)
        return ExportArtifact(
            content=sru_archive(info, blanketter, self.conventions),
            filename=sru_filename(company, year),
            media_type="application/zip",
            warnings=tuple(warnings),
        )

    async def _export_payment(self, options: PaymentOptions) -> ExportArtifact:
        payment_file = await run_in_threadpool(
            encode_payment, options.invoices, options.format, options,
            self.conventions, self.clock(),
        )
        return ExportArtifact(
            content=payment_file.content.encode(payment_file.encoding, errors="replace"),
            filename=payment_filename(options.format, options),
            media_type=payment_file.media_type,
            skipped_invoices=payment_file.skipped,
        )


def _require(request: ExportRequest, options_type):
    if not isinstance(request.options, options_type):
        raise InvalidRequestError(
            f"{request.kind.value}-export kräver {options_type.__name__}",
            {"field": "options"},
        )
    return request.options
