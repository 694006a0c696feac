"""Header-based administrator authentication for the audit screen."""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status


class AdminKeyAuth:
    """Dependency enforcing the administrator key provided via ``X-API-Key`` header."""

    def __init__(self, expected_key: Optional[str]) -> None:
        self._expected = (expected_key or "").strip()

    @property
    def configured(self) -> bool:
        return bool(self._expected)

    def is_admin(self, provided: Optional[str]) -> bool:
        if not self._expected or not provided:
            return False
        return secrets.compare_digest(provided.strip(), self._expected)

    def __call__(self, x_api_key: Optional[str] = Header(None)) -> str:
        if not self._expected:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="API key is not configured.",
            )
        if not self.is_admin(x_api_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing API key.",
            )
        return self._expected
