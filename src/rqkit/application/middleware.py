"""Request middleware

A middleware is a function taking a Request and returning the Request to use
from then on. Middleware compose by sequential application in registration
order, so later middleware see everything earlier ones set.
"""

import logging
from typing import Callable, Mapping, Optional

from rqkit.domain.models.request import Request
from rqkit.infrastructure.transport.interceptors import dump_transport

Middleware = Callable[[Request], Request]


def chain(*middleware: Middleware) -> Middleware:
    """Combine middleware into one that applies them left to right"""

    def _chained(request: Request) -> Request:
        for m in middleware:
            request = m(request)
        return request

    return _chained


def use(*middleware: Middleware) -> Request:
    """New request with ``middleware`` applied"""
    return Request().use(*middleware)


def logging_middleware(logger: Optional[logging.Logger]) -> Middleware:
    """Log "<METHOD> <URL>" at INFO when the request passes through"""

    def _log(request: Request) -> Request:
        if logger is not None:
            logger.info(f"{request.http_method} {request.target_url}")
        return request

    return _log


def user_agent_middleware(user_agent: str) -> Middleware:
    def _user_agent(request: Request) -> Request:
        return request.headers({"User-Agent": user_agent})

    return _user_agent


def timeout_middleware(seconds: float) -> Middleware:
    def _timeout(request: Request) -> Request:
        return request.timeout(seconds)

    return _timeout


def headers_middleware(headers: Mapping[str, str]) -> Middleware:
    def _headers(request: Request) -> Request:
        return request.headers(headers)

    return _headers


def dump_middleware(dump_logger: Optional[logging.Logger] = None) -> Middleware:
    """Wrap the request's transport so every exchange is dumped to the log"""

    def _dump(request: Request) -> Request:
        if request.error is not None:
            return request
        close_base = True if request.owns_transport else None
        return request.transport(
            dump_transport(request.transport_override, dump_logger, close_base=close_base), owned=True
        )

    return _dump
