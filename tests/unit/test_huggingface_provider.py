"""
Unit tests for the Hugging Face provider (upstream calls mocked with httpx.MockTransport).
"""

import json

import httpx
import pytest

from core.exceptions import ModelLoadingError, UpstreamUnavailableError
from services.providers.base import GenerationRequest
from services.providers.huggingface import (
    HUGGINGFACE_MODELS,
    PROMPT_SUFFIX,
    HuggingFaceProvider,
    build_endpoints,
)

PNG = b"\x89PNG\r\n\x1a\nfake"


def make_provider(transport, sleep, api_key="hf_secret"):
    return HuggingFaceProvider(
        api_key=api_key,
        base_url="https://hf.test/models",
        sleep=sleep,
        transport=transport,
    )


class TestEndpoints:
    """Tests for the model endpoint list."""

    def test_priority_order_and_limits(self):
        endpoints = build_endpoints("https://hf.test/models/")

        assert [e.name for e in endpoints] == HUGGINGFACE_MODELS
        assert endpoints[0].url == "https://hf.test/models/stabilityai/sdxl-turbo"
        assert all(e.max_width == 768 and e.max_height == 768 for e in endpoints)

    def test_clamp(self):
        endpoint = build_endpoints()[0]

        assert endpoint.clamp(1024, 576) == (768, 576)
        assert endpoint.clamp(None, 0) == (512, 512)


class TestGenerate:
    """Tests for HuggingFaceProvider.generate."""

    async def test_success_payload(self, scripted_transport, fake_sleep):
        transport = scripted_transport(
            [httpx.Response(200, content=PNG, headers={"content-type": "image/jpeg"})]
        )
        provider = make_provider(transport, fake_sleep)

        result = await provider.generate(GenerationRequest("star", 1024, 1024))
        await provider.close()

        assert result.data == PNG
        assert result.mime_type == "image/jpeg"
        assert result.to_data_url().startswith("data:image/jpeg;base64,")

        request = transport.requests[0]
        body = json.loads(request.content)
        assert body == {
            "inputs": f"star{PROMPT_SUFFIX}",
            "parameters": {"width": 768, "height": 768},
        }
        assert request.headers["authorization"] == "Bearer hf_secret"

    async def test_default_mime_type(self, scripted_transport, fake_sleep):
        transport = scripted_transport([httpx.Response(200, content=PNG)])
        provider = make_provider(transport, fake_sleep)

        result = await provider.generate(GenerationRequest("bell"))

        assert result.mime_type == "image/png"

    async def test_anonymous_without_key(self, scripted_transport, fake_sleep):
        transport = scripted_transport([httpx.Response(200, content=PNG)])
        provider = make_provider(transport, fake_sleep, api_key=None)

        await provider.generate(GenerationRequest("bell"))

        assert "authorization" not in transport.requests[0].headers
        assert provider.is_available is False

    async def test_fallback_chain(self, scripted_transport, fake_sleep):
        transport = scripted_transport(
            [
                httpx.Response(503, json={"error": "Model is currently loading"}),
                httpx.Response(429, json={"error": "Rate limit reached"}),
                httpx.Response(410, json={"error": "gone"}),
                httpx.Response(200, content=PNG, headers={"content-type": "image/png"}),
            ]
        )
        provider = make_provider(transport, fake_sleep)

        result = await provider.generate(GenerationRequest("wreath"))

        assert result.data == PNG
        first, second = HUGGINGFACE_MODELS[0], HUGGINGFACE_MODELS[1]
        assert transport.urls == [
            f"https://hf.test/models/{first}",
            f"https://hf.test/models/{first}",
            f"https://hf.test/models/{first}",
            f"https://hf.test/models/{second}",
        ]
        assert fake_sleep.delays == [10.0, 10.0]

    async def test_empty_body_moves_on(self, scripted_transport, fake_sleep):
        transport = scripted_transport(
            [httpx.Response(200, content=b""), httpx.Response(200, content=PNG)]
        )
        provider = make_provider(transport, fake_sleep)

        result = await provider.generate(GenerationRequest("candle"))

        assert result.data == PNG
        assert len(transport.requests) == 2

    async def test_connection_error_moves_on(self, scripted_transport, fake_sleep):
        transport = scripted_transport(
            [httpx.ConnectError("connection refused"), httpx.Response(200, content=PNG)]
        )
        provider = make_provider(transport, fake_sleep)

        result = await provider.generate(GenerationRequest("candle"))

        assert result.data == PNG

    async def test_all_models_fail(self, scripted_transport, fake_sleep):
        transport = scripted_transport(
            [httpx.Response(500, text="boom") for _ in HUGGINGFACE_MODELS[1:]]
            + [httpx.Response(500, json={"error": "x" * 5000})]
        )
        provider = make_provider(transport, fake_sleep)

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await provider.generate(GenerationRequest("star"))

        error = exc_info.value
        assert error.endpoint == HUGGINGFACE_MODELS[-1]
        assert error.upstream_status == 500
        # Upstream body is truncated before it is reported
        assert len(error.message) < 1200
        assert "hf_secret" not in error.message

    async def test_still_loading_after_retries(self, scripted_transport, fake_sleep):
        def loading():
            return httpx.Response(503, json={"error": "loading"})

        def gone():
            return httpx.Response(404, json={"error": "not found"})

        transport = scripted_transport(
            [loading(), loading(), loading(), gone(), gone(), gone(), gone(), loading()]
        )
        provider = make_provider(transport, fake_sleep)

        with pytest.raises(ModelLoadingError):
            await provider.generate(GenerationRequest("star"))

        assert fake_sleep.delays == [10.0, 20.0, 30.0]


class TestHealthCheck:
    async def test_reports_key_presence(self):
        provider = HuggingFaceProvider(api_key="hf_secret")

        health = await provider.health_check()

        assert health["status"] == "healthy"
        assert health["api_key_configured"] is True
        assert health["models"] == len(HUGGINGFACE_MODELS)
