"""
Unit tests for ornament batch generation.
"""

import random

import pytest

from core.exceptions import (
    InvalidResponseError,
    QuotaExceededError,
    UpstreamUnavailableError,
    ValidationError,
)
from services.generator import ImageGenerator
from services.ornament_service import OrnamentService
from services.prompts import RANDOM_MOTIFS, STYLES
from services.providers.base import ImagePayload
from services.quota_service import QuotaService


class FailingOnStyleProvider:
    """Succeeds for every prompt except the one containing ``fail_on``."""

    name = "flaky"
    display_name = "Flaky Provider"
    is_available = True

    def __init__(self, fail_on: str):
        self.fail_on = fail_on
        self.prompts: list[str] = []

    async def generate(self, request):
        self.prompts.append(request.prompt)
        if self.fail_on in request.prompt:
            raise UpstreamUnavailableError(message="boom", endpoint="e1", upstream_status=500)
        return ImagePayload(data=b"png")

    async def close(self):
        pass


def make_service(provider, max_per_day=5, fallback=False, **kwargs):
    generator = ImageGenerator(provider=provider, fallback_to_placeholder=fallback)
    quota = QuotaService(max_per_day=max_per_day, today=lambda: "2025-12-24")
    return OrnamentService(generator=generator, quota=quota, clock=lambda: 1734567890.123, **kwargs)


class TestGenerateBatch:
    """Tests for OrnamentService.generate_batch."""

    async def test_one_image_per_style(self, fake_provider):
        service = make_service(fake_provider)

        batch = await service.generate_batch(motif="  star  ", size="vertical")

        assert batch.motif == "star"
        assert [image.style_id for image in batch.images] == [s.id for s in STYLES]
        assert all(image.image.startswith("data:image/") for image in batch.images)
        assert batch.images[0].filename == "noel-atelier-crystal-star-1734567890123.png"
        assert batch.quota.used == 1
        assert batch.quota.remaining == 4

        sizes = {(r.width, r.height) for r in fake_provider.requests}
        assert sizes == {(576, 1024)}
        assert {r.prompt.split(",")[0] for r in fake_provider.requests} == {"star"}

    async def test_builtin_motif_is_translated(self, fake_provider):
        service = make_service(fake_provider)

        batch = await service.generate_batch(motif="トナカイ")

        assert batch.motif == "トナカイ"
        assert all(r.prompt.startswith("reindeer, ") for r in fake_provider.requests)
        assert "トナカイ" in batch.images[0].filename

    async def test_random_motif(self, fake_provider):
        service = make_service(fake_provider, rng=random.Random(7))

        batch = await service.generate_batch(motif="ignored", use_random=True)

        assert batch.motif in RANDOM_MOTIFS

    async def test_blank_motif_rejected(self, fake_provider):
        service = make_service(fake_provider)

        with pytest.raises(ValidationError):
            await service.generate_batch(motif="   ")

        assert fake_provider.requests == []

    async def test_unknown_size_rejected(self, fake_provider):
        service = make_service(fake_provider)

        with pytest.raises(ValidationError):
            await service.generate_batch(motif="star", size="panorama")

    async def test_quota_exhausted(self, fake_provider):
        service = make_service(fake_provider, max_per_day=1)
        await service.generate_batch(motif="star")

        with pytest.raises(QuotaExceededError):
            await service.generate_batch(motif="bell")

        # Only the first batch reached the provider
        assert len(fake_provider.requests) == len(STYLES)

    async def test_single_failure_fails_batch_without_charging_quota(self):
        provider = FailingOnStyleProvider(fail_on="papercraft")
        service = make_service(provider)

        with pytest.raises(UpstreamUnavailableError):
            await service.generate_batch(motif="star")

        status = await service._quota.get_status()
        assert status.used == 0

    async def test_failure_falls_back_to_placeholder(self):
        provider = FailingOnStyleProvider(fail_on="papercraft")
        service = make_service(provider, fallback=True)

        batch = await service.generate_batch(motif="star", size="square")

        assert len(batch.images) == len(STYLES)
        assert batch.images[-1].image.startswith("data:image/png;base64,")

    async def test_non_image_payload_rejected(self, provider_factory):
        provider = provider_factory(payload=ImagePayload(data=b"{}", mime_type="application/json"))
        service = make_service(provider)

        with pytest.raises(InvalidResponseError):
            await service.generate_batch(motif="star")
