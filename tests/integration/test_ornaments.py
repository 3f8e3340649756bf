"""
Integration tests for ornament batch endpoints.
"""

import pytest

from api.dependencies import get_generator
from core.exceptions import ModelLoadingError, UpstreamUnavailableError
from services.generator import ImageGenerator
from services.prompts import RANDOM_MOTIFS, STYLES


@pytest.fixture
def use_provider(app):
    """Route ornament generation through the given provider."""

    def install(provider, fallback=False):
        generator = ImageGenerator(provider=provider, fallback_to_placeholder=fallback)
        app.dependency_overrides[get_generator] = lambda: generator
        return generator

    return install


class TestOrnamentOptions:
    def test_options(self, client):
        response = client.get("/api/ornaments/options")

        assert response.status_code == 200
        data = response.json()
        assert [s["id"] for s in data["styles"]] == [s.id for s in STYLES]
        assert {s["value"] for s in data["sizes"]} == {"square", "vertical", "horizontal"}
        assert data["random_motifs"] == list(RANDOM_MOTIFS)
        assert data["max_generations_per_day"] == 5


class TestGenerateOrnaments:
    def test_generate_batch(self, client, use_provider, fake_provider):
        use_provider(fake_provider)

        response = client.post("/api/ornaments", json={"motif": "star", "size": "horizontal"})

        assert response.status_code == 200
        data = response.json()
        assert data["motif"] == "star"
        assert (data["width"], data["height"]) == (1024, 576)
        assert len(data["images"]) == len(STYLES)
        assert all(i["image"].startswith("data:image/png;base64,") for i in data["images"])
        assert data["images"][0]["filename"].startswith("noel-atelier-crystal-star-")
        assert data["quota"]["used"] == 1
        assert data["quota"]["remaining"] == 4

        quota = client.get("/api/quota").json()
        assert quota["used"] == 1

    def test_placeholder_batch(self, client):
        # API_TYPE=placeholder in the test environment
        response = client.post("/api/ornaments", json={"motif": "snowflake"})

        assert response.status_code == 200
        assert len(response.json()["images"]) == len(STYLES)

    def test_random_motif(self, client, use_provider, fake_provider):
        use_provider(fake_provider)

        response = client.post("/api/ornaments", json={"random": True})

        assert response.status_code == 200
        assert response.json()["motif"] in RANDOM_MOTIFS

    def test_empty_motif(self, client, use_provider, fake_provider):
        use_provider(fake_provider)

        response = client.post("/api/ornaments", json={"motif": "   "})

        assert response.status_code == 400
        assert response.json()["message"] == "Please enter a motif"
        assert fake_provider.requests == []

    def test_invalid_size(self, client):
        response = client.post("/api/ornaments", json={"motif": "star", "size": "panorama"})

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_daily_limit(self, client, use_provider, fake_provider):
        use_provider(fake_provider)

        for _ in range(5):
            assert client.post("/api/ornaments", json={"motif": "bell"}).status_code == 200

        response = client.post("/api/ornaments", json={"motif": "bell"})

        assert response.status_code == 429
        data = response.json()
        assert data["code"] == "quota_exceeded"
        assert data["details"]["remaining"] == 0
        assert len(fake_provider.requests) == 5 * len(STYLES)

    def test_failed_batch_not_charged(self, client, use_provider, provider_factory):
        use_provider(provider_factory(error=UpstreamUnavailableError(message="down")))

        response = client.post("/api/ornaments", json={"motif": "bell"})

        assert response.status_code == 502
        assert response.json()["error"] == "All models failed"
        assert client.get("/api/quota").json()["used"] == 0

    def test_failed_batch_with_placeholder_fallback(self, client, use_provider, provider_factory):
        use_provider(provider_factory(error=UpstreamUnavailableError(message="down")), fallback=True)

        response = client.post("/api/ornaments", json={"motif": "bell"})

        assert response.status_code == 200
        assert response.json()["quota"]["used"] == 1

    def test_upstream_failure_carries_guidance(self, client, use_provider, provider_factory):
        error = ModelLoadingError(
            message="Model: stabilityai/sdxl-turbo\nStatus: 503\nMessage: loading",
            endpoint="stabilityai/sdxl-turbo",
            upstream_status=503,
        )
        use_provider(provider_factory(error=error))

        response = client.post("/api/ornaments", json={"motif": "bell"})

        assert response.status_code == 503
        assert response.headers["retry-after"] == "30"
        assert response.json()["suggestion"].startswith("The model is loading.")
