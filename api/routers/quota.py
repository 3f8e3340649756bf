"""
Quota router.

Endpoints:
- GET /api/quota - Get today's quota status
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_quota
from api.schemas.quota import QuotaStatusResponse
from services.quota_service import QuotaService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/quota", tags=["quota"])


@router.get("", response_model=QuotaStatusResponse)
async def get_quota_status(quota: QuotaService = Depends(get_quota)):
    """
    Get today's quota status.

    Returns usage, the daily limit and whether another batch may run.
    """
    status = await quota.get_status()
    return QuotaStatusResponse(**status.to_dict())
