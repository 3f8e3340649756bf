"""
Ordered endpoint fallback with a per-status-code retry policy.

``try_in_order`` walks a priority-ordered list of ModelEndpoint descriptors,
calling an attempt function for each one. Each non-success outcome is looked
up in a FallbackPolicy table that says whether to retry the same endpoint
after a delay, move on to the next endpoint, skip silently or stop. A single
retry budget spans the whole sequence so the walk always terminates.

Default policy
--------------
========  ==========================================
Status    Action
========  ==========================================
503       retry same endpoint, 10s x attempt number
429       retry same endpoint, 5s x attempt number
404/410   skip to next endpoint, no delay
other     record failure, next endpoint
========  ==========================================
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from core.exceptions import (
    InvalidResponseError,
    ModelLoadingError,
    RateLimitedError,
    UpstreamUnavailableError,
)

from .base import (
    ERROR_TYPE_INVALID_RESPONSE,
    AttemptFailure,
    ImagePayload,
    ModelEndpoint,
)

logger = logging.getLogger(__name__)

AttemptFunc = Callable[[ModelEndpoint], Awaitable[ImagePayload | AttemptFailure]]
SleepFunc = Callable[[float], Awaitable[None]]


class StatusAction(StrEnum):
    """What to do after a failed attempt."""

    RETRY = "retry"  # Wait, then call the same endpoint again
    NEXT = "next"  # Record the failure and move to the next endpoint
    SKIP = "skip"  # Move to the next endpoint without delay or error log
    FAIL = "fail"  # Stop immediately


@dataclass(frozen=True)
class StatusRule:
    """Policy entry for one status code."""

    action: StatusAction
    delay: float = 0.0  # seconds
    escalate: bool = False  # multiply delay by the attempt number

    def delay_for(self, attempt: int) -> float:
        return self.delay * attempt if self.escalate else self.delay


@dataclass
class FallbackPolicy:
    """Status-code policy table plus the shared retry budget."""

    rules: dict[int, StatusRule] = field(default_factory=dict)
    default: StatusRule = field(default_factory=lambda: StatusRule(StatusAction.NEXT))
    max_retries: int = 3

    def rule_for(self, status: int | None) -> StatusRule:
        if status is None:
            return self.default
        return self.rules.get(status, self.default)


def build_fallback_policy(
    max_retries: int = 3,
    model_loading_delay: float = 10.0,
    rate_limit_delay: float = 5.0,
) -> FallbackPolicy:
    """Build the policy used for both upstream models and the proxy route."""
    return FallbackPolicy(
        rules={
            503: StatusRule(StatusAction.RETRY, delay=model_loading_delay, escalate=True),
            429: StatusRule(StatusAction.RETRY, delay=rate_limit_delay, escalate=True),
            410: StatusRule(StatusAction.SKIP),
            404: StatusRule(StatusAction.SKIP),
        },
        default=StatusRule(StatusAction.NEXT),
        max_retries=max_retries,
    )


DEFAULT_FALLBACK_POLICY = build_fallback_policy()


def exhaustion_error(
    failure: AttemptFailure | None,
    policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
) -> UpstreamUnavailableError | InvalidResponseError:
    """Build the aggregate error raised once every endpoint has failed."""
    if failure is None:
        return UpstreamUnavailableError(message="No models available")

    kwargs = {
        "message": failure.summary(),
        "endpoint": failure.endpoint,
        "upstream_status": failure.status,
    }
    if failure.error_type == ERROR_TYPE_INVALID_RESPONSE:
        return InvalidResponseError(
            message=failure.summary(),
            details={"endpoint": failure.endpoint, "status": failure.status},
        )
    if failure.status == 503:
        retry_after = int(policy.rule_for(503).delay_for(policy.max_retries)) or 30
        return ModelLoadingError(retry_after=retry_after, **kwargs)
    if failure.status == 429:
        return RateLimitedError(**kwargs)
    return UpstreamUnavailableError(**kwargs)


async def try_in_order(
    endpoints: Sequence[ModelEndpoint],
    attempt: AttemptFunc,
    policy: FallbackPolicy = DEFAULT_FALLBACK_POLICY,
    sleep: SleepFunc = asyncio.sleep,
    provider_name: str = "Provider",
) -> ImagePayload:
    """
    Try each endpoint in order until one returns an image.

    Args:
        endpoints: Candidate endpoints in priority order
        attempt: Async function making one request to one endpoint
        policy: Status-code policy table and retry budget
        sleep: Async delay function (injectable for tests)
        provider_name: Name used in log messages

    Returns:
        The first successful ImagePayload; later endpoints are not contacted

    Raises:
        UpstreamUnavailableError: (or RateLimitedError / ModelLoadingError)
            when every endpoint failed; names the last endpoint and status
        InvalidResponseError: when the last failure was a malformed payload
    """
    last_failure: AttemptFailure | None = None
    retries = 0

    for endpoint in endpoints:
        while True:
            logger.info(f"[{provider_name}] Trying model: {endpoint.label}")
            outcome = await attempt(endpoint)

            if isinstance(outcome, ImagePayload):
                return outcome

            last_failure = outcome
            rule = policy.rule_for(outcome.status)

            if rule.action == StatusAction.SKIP:
                logger.info(
                    f"[{provider_name}] Model {endpoint.label} returned {outcome.status}, skipping"
                )
                break

            logger.error(
                f"[{provider_name}] Model {endpoint.label} returned {outcome.status}: "
                f"{outcome.message[:500]}"
            )

            if rule.action == StatusAction.FAIL:
                raise exhaustion_error(outcome, policy)

            if rule.action == StatusAction.RETRY and retries < policy.max_retries:
                retries += 1
                delay = rule.delay_for(retries)
                logger.warning(
                    f"[{provider_name}] Status {outcome.status}, waiting {delay:g}s "
                    f"(attempt {retries}/{policy.max_retries})"
                )
                await sleep(delay)
                continue

            if rule.action == StatusAction.NEXT and rule.delay:
                await sleep(rule.delay_for(retries + 1))
            break

    error = exhaustion_error(last_failure, policy)
    logger.error(f"[{provider_name}] All models failed: {error.message}")
    raise error
