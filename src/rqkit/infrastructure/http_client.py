"""Single-attempt request execution.

We keep the exchange logic centralized: the retry engine, the client and the
CLI all go through ``execute_once``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import requests

from rqkit.domain.errors import BodyError, ConstructionError, RequestError, TransportError
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.response import Response
from rqkit.domain.validators.response_validators import run_validators
from rqkit.infrastructure.transport.base import Transport
from rqkit.infrastructure.transport.requests_transport import RequestsTransport

if TYPE_CHECKING:
    from rqkit.domain.models.request import Request

logger = logging.getLogger(__name__)


def effective_timeout(request: "Request", ctx: ExecutionContext) -> Optional[float]:
    """Request timeout bounded by the context deadline"""
    timeout = request.timeout_seconds
    remaining = ctx.remaining()
    if remaining is None:
        return timeout
    if timeout is None:
        return remaining
    return min(timeout, remaining)


def execute_once(request: "Request", ctx: Optional[ExecutionContext] = None) -> Response:
    """Execute a request exactly once

    Never raises for request errors: every failure is carried on the returned
    response's ``error``. A transport the request created for itself (see
    ``Request.owns_transport``) is closed once the attempt ends.

    Args:
        request: Request descriptor (a streaming body is buffered in place)
        ctx: Execution context (default: a fresh, never-cancelled context)

    Returns:
        Response envelope for this attempt
    """
    if ctx is None:
        ctx = ExecutionContext()

    if request.error is not None:
        return Response.from_error(request.error)

    if ctx.error is not None:
        return Response.from_error(ctx.error)

    try:
        request.buffer_body()
    except (OSError, ValueError) as e:
        return Response.from_error(BodyError(f"read request body: {e}"))

    try:
        prepared = request.prepare()
    except ConstructionError as e:
        return Response.from_error(e)

    if request.transport_override is None:
        owned, transport = True, RequestsTransport()
    else:
        owned, transport = request.owns_transport, request.transport_override
    try:
        return _exchange(request, prepared, transport, ctx)
    finally:
        if owned:
            transport.close()


def _exchange(
    request: "Request",
    prepared: requests.PreparedRequest,
    transport: Transport,
    ctx: ExecutionContext,
) -> Response:
    try:
        resp = transport.send(prepared, ctx, effective_timeout(request, ctx))
    except RequestError as e:
        return Response.from_error(e, attempts=1)
    except (requests.RequestException, OSError) as e:
        if ctx.error is not None:
            return Response.from_error(ctx.error, attempts=1)
        return Response.from_error(TransportError(f"request failed: {e}"), attempts=1)

    try:
        content = resp.content or b""
    except (requests.RequestException, OSError) as e:
        return Response.from_requests(resp, b"", error=BodyError(f"failed to read body: {e}"))
    finally:
        resp.close()

    if ctx.error is not None:
        # cancelled while the exchange was in flight
        return Response.from_requests(resp, content, error=ctx.error)

    envelope = Response.from_requests(resp, content)
    if request.validators:
        envelope.error = run_validators(envelope, request.validators)
    logger.debug(f"HTTP {prepared.method} {prepared.url} -> {envelope.status_code}")
    return envelope
