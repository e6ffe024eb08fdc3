"""
Security utilities for API authentication.
"""
import secrets
from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader

from ledger_export.config import settings

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: str = Security(api_key_header)) -> str:
    """
    Verify API key from X-API-Key header.

    Fail-open: if API_KEY is not configured, authentication is bypassed.

    Raises:
        HTTPException: If API key is invalid or missing when required
    """
    expected_key = settings.API_KEY

    if not expected_key:
        return "bypass"

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, expected_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key
