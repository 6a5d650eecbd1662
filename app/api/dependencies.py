"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import secrets

from fastapi import Depends, Header, HTTPException, status

from app.config import DialerIngestionSettings, get_dialer_ingestion_settings


def require_ingest_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    settings: DialerIngestionSettings = Depends(get_dialer_ingestion_settings),
) -> None:
    """
    Reject webhook calls whose ``X-API-Key`` does not match the configured key.

    Runs before any attachment is decoded. With no key configured every
    call is rejected.
    """

    expected = settings.api_key
    if expected is None or x_api_key is None or not secrets.compare_digest(
        x_api_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key.",
        )
