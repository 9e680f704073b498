"""HTTP client - explicit owner of request defaults and the transport"""

import logging
from typing import Dict, Iterable, Optional

from rqkit.application.middleware import Middleware
from rqkit.domain.config import AppConfig
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.request import Request
from rqkit.domain.models.response import Response
from rqkit.infrastructure.http_client import execute_once
from rqkit.infrastructure.proxy import ProxyConfig
from rqkit.infrastructure.retry import RetryPolicy, execute_with_retry
from rqkit.infrastructure.transport.base import Transport
from rqkit.infrastructure.transport.interceptors import dump_transport
from rqkit.infrastructure.transport.requests_transport import RequestsTransport

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class Client:
    """Creates requests bound to one transport and a set of defaults

    There is no process-wide default client: construct one, pass it where it
    is needed, and close it (or use it as a context manager) when done. The
    client is safe to share across threads for creating and executing
    requests; the requests themselves are not.
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        user_agent: Optional[str] = None,
        retry_policy: Optional[RetryPolicy] = None,
        middleware: Iterable[Middleware] = (),
    ):
        """Initialize client

        Args:
            transport: Transport for all requests (default: a private RequestsTransport)
            timeout: Default per-attempt timeout in seconds (None = no timeout)
            headers: Headers set on every request
            user_agent: User-Agent header set on every request
            retry_policy: Policy used by execute_with_retry when none is given
            middleware: Middleware applied, in order, to every new request
        """
        self._owns_transport = transport is None
        self.transport = transport if transport is not None else RequestsTransport()
        self.timeout = timeout
        self.headers = dict(headers or {})
        if user_agent:
            self.headers["User-Agent"] = user_agent
        self.retry_policy = retry_policy or RetryPolicy.default()
        self.middleware = list(middleware)

    @classmethod
    def from_config(cls, config: AppConfig, middleware: Iterable[Middleware] = ()) -> "Client":
        """Create a client from validated configuration

        Args:
            config: Application configuration
            middleware: Middleware applied to every new request

        Returns:
            Client instance
        """
        client_config = config.client
        proxies = None
        if client_config.proxy:
            proxy = ProxyConfig.from_url(client_config.proxy)
            proxies = proxy.to_requests_proxies()
            logger.info(f"Using {proxy.type} proxy at {proxy.address}")

        transport: Transport = RequestsTransport(proxies=proxies)
        if client_config.dump:
            transport = dump_transport(transport, close_base=True)

        client = cls(
            transport=transport,
            timeout=client_config.timeout,
            headers=client_config.headers,
            user_agent=client_config.user_agent,
            retry_policy=config.retry.to_policy(),
            middleware=middleware,
        )
        client._owns_transport = True
        return client

    def new(self, method: str = "GET", url: str = "") -> Request:
        """New request carrying the client defaults and middleware"""
        request = Request(method.upper(), url, transport=self.transport).headers(self.headers)
        if self.timeout is not None:
            request.timeout(self.timeout)
        return request.use(*self.middleware)

    def get(self, url: str) -> Request:
        return self.new("GET", url)

    def post(self, url: str) -> Request:
        return self.new("POST", url)

    def put(self, url: str) -> Request:
        return self.new("PUT", url)

    def delete(self, url: str) -> Request:
        return self.new("DELETE", url)

    def patch(self, url: str) -> Request:
        return self.new("PATCH", url)

    def head(self, url: str) -> Request:
        return self.new("HEAD", url)

    def execute(self, request: Request, ctx: Optional[ExecutionContext] = None) -> Response:
        """Execute once"""
        return execute_once(request, ctx)

    def execute_with_retry(
        self,
        request: Request,
        ctx: Optional[ExecutionContext] = None,
        policy: Optional[RetryPolicy] = None,
    ) -> Response:
        """Execute with retries using ``policy`` or the client's policy"""
        return execute_with_retry(request, ctx, policy or self.retry_policy)

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
