"""Interceptor transport and diagnostic dumping

Interceptors observe or mutate the wire-level request before it is sent and
the wire-level response after it is received. A hook signals failure by
raising; the exchange is then aborted and the failure surfaces as the
attempt's error.
"""

import logging
from typing import Callable, Optional
from urllib.parse import urlsplit

import requests

from rqkit.domain.errors import InterceptorError, RequestError
from rqkit.domain.models.context import ExecutionContext
from rqkit.infrastructure.transport.base import Transport, TransportFunc
from rqkit.infrastructure.transport.requests_transport import RequestsTransport

logger = logging.getLogger(__name__)

RequestInterceptor = Callable[[ExecutionContext, requests.PreparedRequest], None]
ResponseInterceptor = Callable[[ExecutionContext, requests.Response], None]


class InterceptorTransport(Transport):
    """Transport decorator running request/response hooks around ``base``"""

    def __init__(
        self,
        base: Optional[Transport] = None,
        request_interceptor: Optional[RequestInterceptor] = None,
        response_interceptor: Optional[ResponseInterceptor] = None,
        close_base: Optional[bool] = None,
    ):
        """Initialize interceptor transport

        Args:
            base: Transport to delegate to (default: a private RequestsTransport)
            request_interceptor: Hook called with the outgoing request
            response_interceptor: Hook called with the incoming response
            close_base: Whether close() closes ``base`` (default: only when created here)
        """
        self._owns_base = (base is None) if close_base is None else close_base
        self.base = base if base is not None else RequestsTransport()
        self.request_interceptor = request_interceptor
        self.response_interceptor = response_interceptor

    def send(
        self,
        request: requests.PreparedRequest,
        ctx: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        if self.request_interceptor is not None:
            try:
                self.request_interceptor(ctx, request)
            except RequestError:
                raise
            except Exception as e:
                raise InterceptorError(f"request interceptor: {e}") from e

        # transport failures propagate untouched
        resp = self.base.send(request, ctx, timeout)

        if self.response_interceptor is not None:
            try:
                self.response_interceptor(ctx, resp)
            except RequestError:
                resp.close()
                raise
            except Exception as e:
                resp.close()
                raise InterceptorError(f"response interceptor: {e}") from e

        return resp

    def close(self) -> None:
        if self._owns_base:
            self.base.close()


def _restore_body(request: requests.PreparedRequest) -> Optional[bytes]:
    """Buffer a streaming request body so it can be read more than once"""
    body = request.body
    if body is None:
        return None
    if isinstance(body, str):
        return body.encode("utf-8")
    if isinstance(body, bytes):
        return body
    if hasattr(body, "read"):
        data = body.read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        request.body = data
        return data
    # iterables of chunks
    data = b"".join(chunk.encode("utf-8") if isinstance(chunk, str) else chunk for chunk in body)
    request.body = data
    return data


def format_request(request: requests.PreparedRequest, body: Optional[bytes]) -> str:
    """Render a request in HTTP/1.1 message form"""
    parts = urlsplit(request.url or "")
    target = parts.path or "/"
    if parts.query:
        target = f"{target}?{parts.query}"
    lines = [f"{request.method} {target} HTTP/1.1", f"Host: {parts.netloc}"]
    lines.extend(f"{k}: {v}" for k, v in request.headers.items())
    text = "\r\n".join(lines) + "\r\n\r\n"
    if body:
        text += body.decode("utf-8", errors="replace")
    return text


def format_response(resp: requests.Response) -> str:
    """Render a response in HTTP/1.1 message form (reads the body)"""
    lines = [f"HTTP/1.1 {resp.status_code} {resp.reason or ''}".rstrip()]
    lines.extend(f"{k}: {v}" for k, v in resp.headers.items())
    text = "\r\n".join(lines) + "\r\n\r\n"
    # content is cached on the response, downstream readers still see it
    text += resp.content.decode("utf-8", errors="replace")
    return text


def dump_transport(
    base: Optional[Transport] = None,
    dump_logger: Optional[logging.Logger] = None,
    close_base: Optional[bool] = None,
) -> InterceptorTransport:
    """Create a transport that logs full request and response dumps

    The request is dumped after the exchange (so headers added by ``base`` are
    visible) even when the exchange fails; the response is dumped only when
    one was received.

    Args:
        base: Transport to wrap (default: a private RequestsTransport)
        dump_logger: Logger receiving the dumps (default: this module's logger)
        close_base: Whether closing the dump transport closes ``base`` (default: only when created here)

    Returns:
        Interceptor transport wrapping ``base``
    """
    owns_base = (base is None) if close_base is None else close_base
    if base is None:
        base = RequestsTransport()
    out = dump_logger or logger

    def _dump_send(
        request: requests.PreparedRequest, ctx: ExecutionContext, timeout: Optional[float]
    ) -> requests.Response:
        body = _restore_body(request)
        try:
            return base.send(request, ctx, timeout)
        finally:
            out.info("=== HTTP REQUEST ===\n%s\n=====================", format_request(request, body))

    def _dump_response(ctx: ExecutionContext, resp: requests.Response) -> None:
        try:
            dump = format_response(resp)
        except requests.RequestException as e:
            out.warning(f"Failed to dump response: {e}")
            return
        out.info("=== HTTP RESPONSE ===\n%s\n======================", dump)

    wrapped = _DumpBase(_dump_send, base if owns_base else None)
    return InterceptorTransport(base=wrapped, response_interceptor=_dump_response, close_base=True)


class _DumpBase(TransportFunc):
    """TransportFunc that closes the transport it created"""

    def __init__(self, func, owned: Optional[Transport]):
        super().__init__(func)
        self._owned = owned

    def close(self) -> None:
        if self._owned is not None:
            self._owned.close()
