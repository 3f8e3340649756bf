"""
Unit tests for the ordered endpoint fallback.
"""

import pytest

from core.exceptions import (
    InvalidResponseError,
    ModelLoadingError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from services.providers.base import (
    ERROR_TYPE_INVALID_RESPONSE,
    AttemptFailure,
    ImagePayload,
    ModelEndpoint,
)
from services.providers.fallback import (
    DEFAULT_FALLBACK_POLICY,
    FallbackPolicy,
    StatusAction,
    StatusRule,
    build_fallback_policy,
    exhaustion_error,
    try_in_order,
)

ENDPOINTS = [ModelEndpoint(url=f"https://models.test/e{i}", name=f"e{i}") for i in range(1, 5)]
IMAGE = ImagePayload(data=b"image-bytes")


def scripted_attempt(outcomes: list):
    """Build an attempt function that replays statuses (int) or payloads."""
    calls: list[str] = []
    remaining = list(outcomes)

    async def attempt(endpoint: ModelEndpoint):
        calls.append(endpoint.name)
        outcome = remaining.pop(0)
        if isinstance(outcome, int):
            return AttemptFailure(status=outcome, message=f"status {outcome}", endpoint=endpoint.name)
        return outcome

    return attempt, calls


class TestPolicy:
    """Tests for the status policy table."""

    def test_default_rules(self):
        assert DEFAULT_FALLBACK_POLICY.rule_for(503).action == StatusAction.RETRY
        assert DEFAULT_FALLBACK_POLICY.rule_for(429).action == StatusAction.RETRY
        assert DEFAULT_FALLBACK_POLICY.rule_for(404).action == StatusAction.SKIP
        assert DEFAULT_FALLBACK_POLICY.rule_for(410).action == StatusAction.SKIP
        assert DEFAULT_FALLBACK_POLICY.rule_for(500).action == StatusAction.NEXT
        assert DEFAULT_FALLBACK_POLICY.rule_for(None).action == StatusAction.NEXT

    def test_escalating_delays(self):
        policy = build_fallback_policy(model_loading_delay=10, rate_limit_delay=5)
        assert [policy.rule_for(503).delay_for(n) for n in (1, 2, 3)] == [10, 20, 30]
        assert [policy.rule_for(429).delay_for(n) for n in (1, 2, 3)] == [5, 10, 15]

    def test_flat_delay(self):
        assert StatusRule(StatusAction.NEXT, delay=2).delay_for(3) == 2


class TestTryInOrder:
    """Tests for try_in_order."""

    async def test_first_success_returns_immediately(self, fake_sleep):
        attempt, calls = scripted_attempt([IMAGE])

        result = await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        assert result is IMAGE
        assert calls == ["e1"]
        assert fake_sleep.delays == []

    async def test_503_429_410_then_success(self, fake_sleep):
        attempt, calls = scripted_attempt([503, 429, 410, IMAGE])

        result = await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        assert result is IMAGE
        # Retries stay on e1 until the 410 moves on; e3 and e4 are never contacted
        assert calls == ["e1", "e1", "e1", "e2"]
        assert fake_sleep.delays == [10.0, 10.0]

    async def test_skip_has_no_delay(self, fake_sleep):
        attempt, calls = scripted_attempt([404, 410, IMAGE])

        await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        assert calls == ["e1", "e2", "e3"]
        assert fake_sleep.delays == []

    async def test_other_status_moves_to_next_endpoint(self, fake_sleep):
        attempt, calls = scripted_attempt([500, 400, IMAGE])

        await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        assert calls == ["e1", "e2", "e3"]

    async def test_retry_budget_spans_all_endpoints(self, fake_sleep):
        # Three retries on e1, then 503 falls through to the next endpoint
        attempt, calls = scripted_attempt([503, 503, 503, 503, 503, 503, 503])

        with pytest.raises(ModelLoadingError):
            await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        assert calls == ["e1", "e1", "e1", "e1", "e2", "e3", "e4"]
        assert fake_sleep.delays == [10.0, 20.0, 30.0]

    async def test_exhaustion_names_last_endpoint_and_status(self, fake_sleep):
        attempt, _ = scripted_attempt([500, 500, 500, 502])

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await try_in_order(ENDPOINTS, attempt, sleep=fake_sleep)

        error = exc_info.value
        assert type(error) is UpstreamUnavailableError
        assert error.endpoint == "e4"
        assert error.upstream_status == 502
        assert "Model: e4" in error.message
        assert "Status: 502" in error.message
        assert error.error == "All models failed"

    async def test_rate_limit_exhaustion(self, fake_sleep):
        policy = build_fallback_policy(max_retries=0)
        attempt, _ = scripted_attempt([429])

        with pytest.raises(RateLimitedError) as exc_info:
            await try_in_order(ENDPOINTS[:1], attempt, policy=policy, sleep=fake_sleep)

        assert exc_info.value.status_code == 429

    async def test_invalid_payload_exhaustion(self, fake_sleep):
        async def attempt(endpoint):
            return AttemptFailure(
                status=200,
                message="not an image",
                endpoint=endpoint.name,
                error_type=ERROR_TYPE_INVALID_RESPONSE,
            )

        with pytest.raises(InvalidResponseError):
            await try_in_order(ENDPOINTS[:2], attempt, sleep=fake_sleep)

    async def test_fail_action_stops_immediately(self, fake_sleep):
        policy = FallbackPolicy(rules={401: StatusRule(StatusAction.FAIL)})
        attempt, calls = scripted_attempt([401])

        with pytest.raises(UpstreamUnavailableError):
            await try_in_order(ENDPOINTS, attempt, policy=policy, sleep=fake_sleep)

        assert calls == ["e1"]

    async def test_no_endpoints(self, fake_sleep):
        async def attempt(endpoint):
            raise AssertionError("should not be called")

        with pytest.raises(UpstreamUnavailableError, match="No models available"):
            await try_in_order([], attempt, sleep=fake_sleep)


class TestExhaustionError:
    """Tests for exhaustion_error."""

    def test_model_loading_carries_retry_after(self):
        failure = AttemptFailure(status=503, message="loading", endpoint="e1")

        error = exhaustion_error(failure)

        assert isinstance(error, ModelLoadingError)
        assert error.retry_after == 30
        assert error.details["retry_after"] == 30
        assert error.details["endpoint"] == "e1"

    def test_connection_failure(self):
        failure = AttemptFailure(status=None, message="connection refused", endpoint="e2")

        error = exhaustion_error(failure)

        assert type(error) is UpstreamUnavailableError
        assert error.status_code == 502
