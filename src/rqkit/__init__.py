"""rqkit - fluent HTTP requests with retries, interceptors and middleware"""

from rqkit.application.client import Client
from rqkit.application.middleware import (
    Middleware,
    chain,
    dump_middleware,
    headers_middleware,
    logging_middleware,
    timeout_middleware,
    use,
    user_agent_middleware,
)
from rqkit.domain.auth import AuthProvider, BasicAuth, BearerAuth, HeaderAuth
from rqkit.domain.errors import (
    BodyError,
    BuilderError,
    ConstructionError,
    DeadlineExceeded,
    DecodeError,
    ExecutionCancelled,
    FatalResponseError,
    InterceptorError,
    RequestError,
    TransportError,
    ValidationError,
)
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.request import Request, delete, get, head, new, patch, post, put
from rqkit.domain.models.response import Response
from rqkit.domain.validators.response_validators import Validate, Validator
from rqkit.infrastructure.http_client import execute_once
from rqkit.infrastructure.proxy import ProxyConfig, ProxyType
from rqkit.infrastructure.retry import (
    RetryPolicy,
    constant_backoff,
    default_retry_if,
    execute_with_retry,
    exponential_backoff,
    linear_backoff,
)
from rqkit.infrastructure.transport import (
    InterceptorTransport,
    RequestsTransport,
    Transport,
    TransportFunc,
    dump_transport,
)

__version__ = "0.1.0"

__all__ = [
    "Client",
    "Request",
    "Response",
    "ExecutionContext",
    "new",
    "get",
    "post",
    "put",
    "delete",
    "patch",
    "head",
    "execute_once",
    "execute_with_retry",
    "RetryPolicy",
    "default_retry_if",
    "constant_backoff",
    "linear_backoff",
    "exponential_backoff",
    "Middleware",
    "chain",
    "use",
    "logging_middleware",
    "user_agent_middleware",
    "timeout_middleware",
    "headers_middleware",
    "dump_middleware",
    "Transport",
    "TransportFunc",
    "RequestsTransport",
    "InterceptorTransport",
    "dump_transport",
    "Validate",
    "Validator",
    "AuthProvider",
    "BasicAuth",
    "BearerAuth",
    "HeaderAuth",
    "ProxyConfig",
    "ProxyType",
    "RequestError",
    "BuilderError",
    "ConstructionError",
    "TransportError",
    "BodyError",
    "DecodeError",
    "ValidationError",
    "InterceptorError",
    "ExecutionCancelled",
    "DeadlineExceeded",
    "FatalResponseError",
]
