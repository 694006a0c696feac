"""Pydantic schemas for the options audit API."""
from __future__ import annotations

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health response summarising server readiness."""

    ok: bool = Field(True, description="Indicates the API server is reachable.")
    version: str = Field(..., description="Application version string.")
    time_utc: str = Field(..., description="Current UTC timestamp in ISO8601 format.")
    store_present: bool = Field(..., description="True when the options store file exists.")
    table: str = Field(..., description="Options table the audit reads from.")
