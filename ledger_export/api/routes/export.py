"""
Export Routes - SIE4, VAT declaration, SRU package and supplier payment files.
"""
from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import Dict, List, Literal, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from ledger_export.api.models.response import PaymentExportResponse
from ledger_export.config import settings
from ledger_export.core.security import verify_api_key
from ledger_export.services.export_service import ExportService
from ledger_export.services.store import LedgerStore, build_store
from ledger_export.svensk_ekonomi.errors import (
    ExportError,
    FieldOverflowError,
    InvalidRequestError,
    UpstreamFetchError,
    ValidationError,
)
from ledger_export.svensk_ekonomi.models import (
    ExportArtifact,
    ExportKind,
    ExportRequest,
    PaymentFormat,
    PaymentOptions,
    SieOptions,
    SruOptions,
    SupplierInvoice,
    VatOptions,
)

router = APIRouter()
logger = logging.getLogger(__name__)


class VatExportRequest(BaseModel):
    year: int
    period: str                                   # "Q4 2024" or "2024-11"
    boxes: Optional[Dict[str, Decimal]] = None    # {"05": 1000, "10": 250}


class SruExportRequest(BaseModel):
    year: int
    tax_period: Optional[str] = None              # defaults to <year+1>P4
    include_ink2r: bool = True


class InvoiceModel(BaseModel):
    id: str
    supplier_name: str = ""
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    invoice_number: str = ""
    bankgiro: Optional[str] = None
    iban: Optional[str] = None
    bic: Optional[str] = None
    ocr: Optional[str] = None
    due_date: Optional[date] = None

    def to_domain(self) -> SupplierInvoice:
        return SupplierInvoice(**self.model_dump())


class PaymentExportRequest(BaseModel):
    format: Literal["lb", "iso20022"] = "lb"
    sender_bankgiro: str
    sender_name: str
    sender_bic: Optional[str] = None
    execution_date: date
    invoices: List[InvoiceModel]


@lru_cache
def _configured_store() -> LedgerStore:
    return build_store(settings.STORE_PATH)


def get_store() -> LedgerStore:
    """Overridden in tests with app.dependency_overrides."""
    return _configured_store()


def get_export_service(store: LedgerStore = Depends(get_store)) -> ExportService:
    return ExportService(store, settings.export_conventions())


def _http_error(e: ExportError) -> HTTPException:
    if isinstance(e, (ValidationError, FieldOverflowError)):
        status_code = 422
    elif isinstance(e, InvalidRequestError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(e, UpstreamFetchError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=status_code, detail=e.to_dict())


async def _run(service: ExportService, request: ExportRequest) -> ExportArtifact:
    try:
        return await service.export(request)
    except ExportError as e:
        logger.error(f"{request.kind.value} export failed: {e.code}: {e.message}")
        raise _http_error(e) from e
    except Exception as e:
        logger.exception(f"Unexpected error in {request.kind.value} export")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Internal server error: {str(e)}"
        )


def _file_response(artifact: ExportArtifact) -> Response:
    return Response(
        content=artifact.content,
        media_type=artifact.media_type,
        headers={"Content-Disposition": artifact.content_disposition},
    )


@router.get("/sie")
async def export_sie(
    year: int = Query(..., ge=1900, le=2100),
    include_opening: bool = Query(True, alias="includeOpeningBalances"),
    service: ExportService = Depends(get_export_service),
    api_key: str = Depends(verify_api_key)
):
    """SIE4 file for a fiscal year, ISO-8859-1 with CRLF line endings."""
    logger.info(f"SIE export request: year={year}, include_opening={include_opening}")
    artifact = await _run(service, ExportRequest(ExportKind.SIE, year, SieOptions(include_opening)))
    return _file_response(artifact)


@router.post("/vat")
async def export_vat(
    request: VatExportRequest,
    service: ExportService = Depends(get_export_service),
    api_key: str = Depends(verify_api_key)
):
    """VAT declaration XML for a quarter or month."""
    logger.info(f"VAT export request: year={request.year}, period={request.period}")
    options = VatOptions(period=request.period, boxes=request.boxes)
    artifact = await _run(service, ExportRequest(ExportKind.VAT, request.year, options))
    return _file_response(artifact)


@router.post("/sru")
async def export_sru(
    request: SruExportRequest,
    service: ExportService = Depends(get_export_service),
    api_key: str = Depends(verify_api_key)
):
    """INFO.SRU and BLANKETTER.SRU bundled in a zip."""
    logger.info(f"SRU export request: year={request.year}, ink2r={request.include_ink2r}")
    options = SruOptions(tax_period=request.tax_period, include_ink2r=request.include_ink2r)
    artifact = await _run(service, ExportRequest(ExportKind.SRU, request.year, options))
    return _file_response(artifact)


@router.post("/payment", response_model=PaymentExportResponse)
async def export_payment(
    request: PaymentExportRequest,
    service: ExportService = Depends(get_export_service),
    api_key: str = Depends(verify_api_key)
):
    """
    Supplier payment file (LB or pain.001).

    Invoices that cannot be paid are left out of the file and listed in
    `skipped` with the reason.
    """
    logger.info(f"Payment export request: format={request.format}, {len(request.invoices)} invoices")
    options = PaymentOptions(
        format=PaymentFormat(request.format),
        sender_bankgiro=request.sender_bankgiro,
        sender_name=request.sender_name,
        execution_date=request.execution_date,
        invoices=tuple(inv.to_domain() for inv in request.invoices),
        sender_bic=request.sender_bic,
    )
    artifact = await _run(
        service, ExportRequest(ExportKind.PAYMENT, request.execution_date.year, options))

    encoding = "iso-8859-1" if "iso-8859-1" in artifact.media_type else "utf-8"
    return PaymentExportResponse(
        filename=artifact.filename,
        media_type=artifact.media_type,
        content=artifact.content.decode(encoding),
        skipped=[s.to_dict() for s in artifact.skipped_invoices],
        warnings=[w.to_dict() for w in artifact.warnings],
    )
