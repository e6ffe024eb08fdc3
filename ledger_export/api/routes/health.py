"""
Health Check Routes
"""
from fastapi import APIRouter

from ledger_export.api.models.response import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "ledger-export-api"}
