"""
Pydantic response models for the export API.
"""
from pydantic import BaseModel
from typing import List, Optional


class SkippedInvoiceModel(BaseModel):
    invoice_id: str
    field: str
    reason: str


class ExportWarningModel(BaseModel):
    kind: str
    message: str
    account: Optional[str] = None
    verification_id: Optional[str] = None


class PaymentExportResponse(BaseModel):
    filename: str
    media_type: str
    content: str
    skipped: List[SkippedInvoiceModel] = []
    warnings: List[ExportWarningModel] = []


class HealthResponse(BaseModel):
    status: str
    service: str
