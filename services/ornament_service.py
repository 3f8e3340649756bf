"""
Ornament batch generation.

A batch renders one motif in every style concurrently. The batch either
succeeds as a whole or fails as a whole; the daily quota is only charged for
complete batches.
"""

import asyncio
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from core.exceptions import InvalidResponseError, ValidationError

from .generator import ImageGenerator, get_image_generator
from .prompts import (
    DEFAULT_SIZE,
    RANDOM_MOTIFS,
    STYLES,
    SizeOption,
    Style,
    build_download_filename,
    compose_prompt,
    get_size,
)
from .quota_service import QuotaService, QuotaStatus, get_quota_service

logger = logging.getLogger(__name__)


@dataclass
class OrnamentImage:
    """One generated image and its suggested download name."""

    style_id: str
    style_name: str
    image: str  # data:image/...;base64,...
    filename: str


@dataclass
class OrnamentBatch:
    """Result of one batch: one image per style, in style order."""

    motif: str
    size: SizeOption
    quota: QuotaStatus
    images: list[OrnamentImage] = field(default_factory=list)


class OrnamentService:
    """Compose per-style prompts and generate a full batch."""

    def __init__(
        self,
        generator: ImageGenerator,
        quota: QuotaService,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the ornament service.

        Args:
            generator: Image generator shared by all styles
            quota: Daily quota service
            rng: Random source for the "random motif" option
            clock: Returns epoch seconds, used for download filenames
        """
        self._generator = generator
        self._quota = quota
        self._rng = rng or random.Random()
        self._clock = clock

    def choose_motif(self, motif: str | None, use_random: bool = False) -> str:
        """
        Resolve the motif for a batch.

        Raises:
            ValidationError: If no random motif was requested and the motif is blank
        """
        if use_random:
            return self._rng.choice(RANDOM_MOTIFS)
        motif_text = (motif or "").strip()
        if not motif_text:
            raise ValidationError(message="Please enter a motif")
        return motif_text

    async def _generate_style(self, motif: str, style: Style, size: SizeOption) -> str:
        prompt = compose_prompt(motif, style)
        logger.info(f"Generating '{style.id}' ornament: {prompt[:80]}...")
        payload = await self._generator.generate(prompt, size.width, size.height)
        data_url = payload.to_data_url()
        if not data_url.startswith("data:image/"):
            raise InvalidResponseError(
                message=f"Generated payload for style '{style.id}' is not an image",
                details={"style_id": style.id, "mime_type": payload.mime_type},
            )
        return data_url

    async def generate_batch(
        self,
        motif: str | None = None,
        size: str = DEFAULT_SIZE,
        use_random: bool = False,
    ) -> OrnamentBatch:
        """
        Generate one image per style for a motif.

        Args:
            motif: Free-text motif; ignored when use_random is set
            size: Size option value (square, vertical, horizontal)
            use_random: Pick one of the built-in motifs instead

        Returns:
            OrnamentBatch with one image per style and the updated quota

        Raises:
            QuotaExceededError: If no generations remain today
            ValidationError: If the motif is blank or the size unknown
            UpstreamUnavailableError: If any style failed (no partial results)
        """
        await self._quota.ensure_available()
        size_option = get_size(size)
        motif_text = self.choose_motif(motif, use_random)

        logger.info(
            f"Generating batch: motif={motif_text!r} size={size_option.value} "
            f"styles={len(STYLES)}"
        )
        start_time = time.time()

        # Any failure propagates; the quota is only charged below
        data_urls = await asyncio.gather(
            *(self._generate_style(motif_text, style, size_option) for style in STYLES)
        )

        quota = await self._quota.record_batch()
        timestamp_ms = int(self._clock() * 1000)

        images = [
            OrnamentImage(
                style_id=style.id,
                style_name=style.name,
                image=data_url,
                filename=build_download_filename(style.id, motif_text, timestamp_ms),
            )
            for style, data_url in zip(STYLES, data_urls)
        ]

        logger.info(
            f"Batch complete in {time.time() - start_time:.2f}s "
            f"({quota.remaining}/{quota.limit} remaining today)"
        )
        return OrnamentBatch(motif=motif_text, size=size_option, quota=quota, images=images)


def get_ornament_service() -> OrnamentService:
    """Build the ornament service from the shared generator and quota."""
    return OrnamentService(generator=get_image_generator(), quota=get_quota_service())
