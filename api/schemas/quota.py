"""
Quota-related Pydantic schemas.
"""

from pydantic import BaseModel, Field


class QuotaStatusResponse(BaseModel):
    """Daily quota status."""

    date: str = Field(..., description="Current local date (YYYY-MM-DD)")
    used: int = Field(..., description="Batches generated today")
    limit: int = Field(..., description="Daily batch limit")
    remaining: int = Field(..., description="Batches remaining today (never negative)")
    can_generate: bool = Field(..., description="Whether another batch may run today")
