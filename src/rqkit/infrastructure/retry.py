"""Retry engine and backoff functions using tenacity.

``execute_with_retry`` drives repeated ``execute_once`` attempts through a
``tenacity.Retrying`` loop: the policy's predicate decides whether an outcome
is retried, the wait grows geometrically up to the policy ceiling, and the
sleep between attempts races the execution context's cancellation.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, Optional

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt
from tenacity.wait import wait_base

from rqkit.domain.errors import BodyError, ExecutionCancelled, TransportError
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.response import Response
from rqkit.infrastructure.http_client import execute_once

if TYPE_CHECKING:
    from rqkit.domain.models.request import Request

logger = logging.getLogger(__name__)

# Jitter adds up to this fraction of the current delay
JITTER_FACTOR = 0.3

RetryPredicate = Callable[[Response], bool]
BackoffFunc = Callable[[int], float]


def default_retry_if(resp: Response) -> bool:
    """Retry on transport errors, 5xx and 429"""
    if isinstance(resp.error, TransportError):
        return True
    if resp.status_code is None:
        return False
    return resp.status_code >= 500 or resp.status_code == 429


@dataclass(frozen=True)
class RetryPolicy:
    """Retry behaviour for ``execute_with_retry``

    Attributes:
        max_attempts: Total attempts including the first (values < 1 act as 1)
        delay: Wait before the second attempt, in seconds
        max_delay: Ceiling for any wait, jitter included
        multiplier: Growth factor applied to the wait after each retry (values < 1 act as 1)
        jitter: Add up to 30% random extra wait
        retry_if: Predicate deciding whether an outcome is retried
    """

    max_attempts: int = 3
    delay: float = 0.1
    max_delay: float = 10.0
    multiplier: float = 2.0
    jitter: bool = True
    retry_if: RetryPredicate = default_retry_if

    @classmethod
    def default(cls) -> "RetryPolicy":
        return cls()


class wait_policy(wait_base):
    """Wait strategy following a RetryPolicy

    The n-th wait (0-based) starts from ``policy.delay`` and is multiplied by
    ``policy.multiplier`` after each retry, capped at ``policy.max_delay``.
    """

    def __init__(self, policy: RetryPolicy, rng: Callable[[float, float], float] = random.uniform):
        self.policy = policy
        self.rng = rng

    def base_delay(self, index: int) -> float:
        # multipliers below 1 act as 1
        multiplier = max(1.0, self.policy.multiplier)
        delay = self.policy.delay
        for _ in range(index):
            delay = min(delay * multiplier, self.policy.max_delay)
        return delay

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self.base_delay(retry_state.attempt_number - 1)
        if self.policy.jitter:
            delay += self.rng(0.0, delay * JITTER_FACTOR)
        return max(0.0, min(delay, self.policy.max_delay))


def _describe(resp: Response) -> str:
    if resp.error is not None:
        return str(resp.error)
    return f"status {resp.status_code}"


def execute_with_retry(
    request: "Request",
    ctx: Optional[ExecutionContext] = None,
    policy: Optional[RetryPolicy] = None,
) -> Response:
    """Execute a request, retrying according to ``policy``

    Returns the first outcome the predicate does not retry, or the last
    outcome once attempts are exhausted. Cancellation during a wait stops the
    loop and sets the cancellation error on the last outcome. The returned
    response's ``attempts`` counts attempts that reached the transport.

    Args:
        request: Request descriptor
        ctx: Execution context (default: a fresh, never-cancelled context)
        policy: Retry policy (default: RetryPolicy.default())

    Returns:
        Response envelope; never raises for request errors
    """
    if policy is None:
        policy = RetryPolicy.default()
    if ctx is None:
        ctx = ExecutionContext()

    if request.error is not None:
        return Response.from_error(request.error)

    # every attempt must send the same bytes
    try:
        request.buffer_body()
    except (OSError, ValueError) as e:
        return Response.from_error(BodyError(f"read request body: {e}"))

    max_attempts = max(1, policy.max_attempts)
    state: Dict[str, object] = {"iteration": 0, "attempts": 0, "last": None}

    def _attempt() -> Response:
        state["iteration"] += 1
        logger.debug(f"{request.http_method} {request.target_url} attempt {state['iteration']}/{max_attempts}")
        resp = execute_once(request, ctx)
        # zero when execute_once stopped before the transport
        state["attempts"] += resp.attempts
        state["last"] = resp
        return resp

    def _before_sleep(retry_state: RetryCallState) -> None:
        if retry_state.outcome is None or retry_state.next_action is None:
            return
        resp = retry_state.outcome.result()
        logger.warning(
            f"{request.http_method} {request.target_url} failed "
            f"(attempt {retry_state.attempt_number}/{max_attempts}): {_describe(resp)}. "
            f"Retrying in {retry_state.next_action.sleep:.3f}s..."
        )

    def _exhausted(retry_state: RetryCallState) -> Response:
        resp = retry_state.outcome.result()
        logger.warning(
            f"{request.http_method} {request.target_url} still failing after "
            f"{max_attempts} attempts: {_describe(resp)}"
        )
        return resp

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_policy(policy),
        retry=retry_if_result(policy.retry_if),
        sleep=ctx.sleep,
        before_sleep=_before_sleep,
        retry_error_callback=_exhausted,
    )

    try:
        resp = retrying(_attempt)
    except ExecutionCancelled as e:
        resp = state["last"]
        resp.error = e
        logger.info(f"{request.http_method} {request.target_url} cancelled while waiting to retry: {e}")

    resp.attempts = state["attempts"]
    return resp


def exponential_backoff(base: float, multiplier: float, max_delay: float) -> BackoffFunc:
    """Backoff ``base * multiplier ** attempt`` capped at ``max_delay``"""

    def _backoff(attempt: int) -> float:
        try:
            delay = base * math.pow(multiplier, attempt)
        except OverflowError:
            return max_delay
        return min(delay, max_delay)

    return _backoff


def linear_backoff(base: float, increment: float, max_delay: float) -> BackoffFunc:
    """Backoff ``base + increment * attempt`` capped at ``max_delay``"""

    def _backoff(attempt: int) -> float:
        return min(base + increment * attempt, max_delay)

    return _backoff


def constant_backoff(delay: float) -> BackoffFunc:
    """Backoff that always returns ``delay``"""

    def _backoff(attempt: int) -> float:
        return delay

    return _backoff
