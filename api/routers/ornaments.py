"""
Ornament generation router.

Endpoints:
- POST /api/ornaments - Generate one image per style for a motif
- GET /api/ornaments/options - Styles, sizes and built-in motifs
"""

import logging

from fastapi import APIRouter, Depends

from api.dependencies import get_ornament_service
from api.schemas.common import ErrorResponse
from api.schemas.ornaments import (
    GenerateOrnamentsRequest,
    GenerateOrnamentsResponse,
    OrnamentImageResponse,
    OrnamentOptionsResponse,
    SizeInfo,
    StyleInfo,
)
from api.schemas.quota import QuotaStatusResponse
from core.config import Settings, get_settings
from services.ornament_service import OrnamentService
from services.prompts import RANDOM_MOTIFS, SIZE_OPTIONS, STYLES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ornaments", tags=["ornaments"])


@router.post(
    "",
    response_model=GenerateOrnamentsResponse,
    responses={
        400: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def generate_ornaments(
    request: GenerateOrnamentsRequest,
    service: OrnamentService = Depends(get_ornament_service),
):
    """
    Generate one ornament image per style.

    All four images succeed or the request fails; the daily quota is only
    charged for complete batches.
    """
    batch = await service.generate_batch(
        motif=request.motif,
        size=request.size.value,
        use_random=request.random,
    )

    return GenerateOrnamentsResponse(
        motif=batch.motif,
        size=batch.size.value,
        width=batch.size.width,
        height=batch.size.height,
        images=[
            OrnamentImageResponse(
                style_id=image.style_id,
                style_name=image.style_name,
                image=image.image,
                filename=image.filename,
            )
            for image in batch.images
        ],
        quota=QuotaStatusResponse(**batch.quota.to_dict()),
    )


@router.get("/options", response_model=OrnamentOptionsResponse)
async def get_ornament_options(settings: Settings = Depends(get_settings)):
    """List the selectable styles, sizes and built-in motifs."""
    return OrnamentOptionsResponse(
        styles=[StyleInfo(id=s.id, name=s.name, prompt=s.prompt) for s in STYLES],
        sizes=[
            SizeInfo(value=s.value, label=s.label, width=s.width, height=s.height)
            for s in SIZE_OPTIONS
        ],
        random_motifs=list(RANDOM_MOTIFS),
        max_generations_per_day=settings.max_generations_per_day,
    )
