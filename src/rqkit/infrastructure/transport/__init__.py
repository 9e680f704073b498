"""Transports"""

from rqkit.infrastructure.transport.base import Transport, TransportFunc
from rqkit.infrastructure.transport.interceptors import (
    InterceptorTransport,
    RequestInterceptor,
    ResponseInterceptor,
    dump_transport,
)
from rqkit.infrastructure.transport.requests_transport import RequestsTransport

__all__ = [
    "Transport",
    "TransportFunc",
    "RequestsTransport",
    "InterceptorTransport",
    "RequestInterceptor",
    "ResponseInterceptor",
    "dump_transport",
]
