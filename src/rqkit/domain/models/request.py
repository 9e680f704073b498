"""Request descriptor - fluent builder state for one HTTP request

Every setter returns the request itself. The first failure while building
(e.g. a body that cannot be encoded) is stored in ``error`` and poisons the
request: later setters become no-ops and executing it returns that error
without contacting the transport.
"""

import base64
import functools
import json
import logging
from typing import IO, Any, Callable, Iterable, List, Mapping, Optional, Tuple, Union
from urllib.parse import urlencode

import requests
from requests.structures import CaseInsensitiveDict

from rqkit.domain.errors import BuilderError, ConstructionError, RequestError
from rqkit.domain.models.context import ExecutionContext
from rqkit.domain.models.response import Response
from rqkit.domain.validators.response_validators import Validator
from rqkit.infrastructure.http_client import execute_once
from rqkit.infrastructure.proxy import ProxyConfig
from rqkit.infrastructure.retry import RetryPolicy, execute_with_retry
from rqkit.infrastructure.transport.base import Transport
from rqkit.infrastructure.transport.requests_transport import RequestsTransport

logger = logging.getLogger(__name__)

BodySource = Union[bytes, IO[bytes], IO[str]]


def _unless_poisoned(method: Callable) -> Callable:
    """Make a fluent setter a no-op once the request holds an error"""

    @functools.wraps(method)
    def wrapper(self: "Request", *args: Any, **kwargs: Any) -> "Request":
        if self.error is not None:
            return self
        return method(self, *args, **kwargs)

    return wrapper


class Request:
    """Mutable request descriptor

    Owned by the caller until execution; not safe for concurrent mutation.
    """

    def __init__(self, http_method: str = "GET", target_url: str = "", transport: Optional[Transport] = None):
        self.http_method = http_method
        self.target_url = target_url
        self.header_items: List[Tuple[str, str]] = []
        self.query_items: List[Tuple[str, str]] = []
        self.body_source: Optional[BodySource] = None
        self.timeout_seconds: Optional[float] = None
        self.transport_override: Optional[Transport] = transport
        # set when the request created transport_override itself
        self.owns_transport = False
        self.validators: List[Validator] = []
        self.error: Optional[RequestError] = None

    def __repr__(self) -> str:
        state = f" error={self.error!r}" if self.error is not None else ""
        return f"<Request {self.http_method} {self.target_url}{state}>"

    def fail(self, error: RequestError) -> "Request":
        """Poison the request with ``error`` unless it already holds one"""
        if self.error is None:
            self.error = error
        return self

    # -- target -----------------------------------------------------------

    @_unless_poisoned
    def method(self, method: str) -> "Request":
        self.http_method = method.upper()
        return self

    @_unless_poisoned
    def url(self, url: str) -> "Request":
        self.target_url = url
        return self

    @_unless_poisoned
    def transport(self, transport: Transport, owned: bool = False) -> "Request":
        """Send through ``transport`` instead of the default

        Args:
            transport: Transport for every attempt
            owned: Close ``transport`` after each execution
        """
        self.transport_override = transport
        self.owns_transport = owned
        return self

    @_unless_poisoned
    def timeout(self, seconds: float) -> "Request":
        """Per-attempt timeout in seconds (values <= 0 clear it)"""
        self.timeout_seconds = seconds if seconds > 0 else None
        return self

    # -- headers and query ------------------------------------------------

    @_unless_poisoned
    def header(self, key: str, value: str) -> "Request":
        """Add a header value, keeping existing values for ``key``"""
        self.header_items.append((key, value))
        return self

    @_unless_poisoned
    def headers(self, headers: Mapping[str, str]) -> "Request":
        """Set headers, replacing existing values for each key"""
        for key, value in headers.items():
            self._set_header(key, value)
        return self

    @_unless_poisoned
    def query_param(self, key: str, value: str) -> "Request":
        """Add a query parameter value"""
        self.query_items.append((key, value))
        return self

    @_unless_poisoned
    def query_params(self, params: Mapping[str, str]) -> "Request":
        """Set query parameters, replacing existing values for each key"""
        for key, value in params.items():
            self.query_items = [(k, v) for k, v in self.query_items if k != key]
            self.query_items.append((key, value))
        return self

    def get_header(self, key: str) -> Optional[str]:
        """Values for ``key`` joined with ", " (None if unset)"""
        values = [v for k, v in self.header_items if k.lower() == key.lower()]
        return ", ".join(values) if values else None

    def _set_header(self, key: str, value: str) -> None:
        self.header_items = [(k, v) for k, v in self.header_items if k.lower() != key.lower()]
        self.header_items.append((key, value))

    # -- body -------------------------------------------------------------

    @_unless_poisoned
    def body(self, reader: Union[IO[bytes], IO[str]]) -> "Request":
        """Body read from a file-like object (buffered before sending)"""
        self.body_source = reader
        return self

    @_unless_poisoned
    def body_string(self, body: str) -> "Request":
        self.body_source = body.encode("utf-8")
        return self

    @_unless_poisoned
    def body_bytes(self, body: bytes) -> "Request":
        self.body_source = bytes(body)
        return self

    @_unless_poisoned
    def body_json(self, value: Any) -> "Request":
        """JSON-encoded body; poisons the request if ``value`` cannot be encoded"""
        try:
            data = json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            return self.fail(BuilderError(f"failed to marshal JSON: {e}"))
        self.body_source = data
        self._set_header("Content-Type", "application/json")
        return self

    @_unless_poisoned
    def body_form(self, data: Union[Mapping[str, Any], Iterable[Tuple[str, str]]]) -> "Request":
        """URL-encoded form body"""
        self.body_source = urlencode(data, doseq=True).encode("utf-8")
        self._set_header("Content-Type", "application/x-www-form-urlencoded")
        return self

    def buffer_body(self) -> Optional[bytes]:
        """Read a streaming body into memory once and keep the bytes

        Raises:
            OSError: If reading the stream fails
            ValueError: If the stream is closed or text cannot be decoded
        """
        source = self.body_source
        if source is None or isinstance(source, bytes):
            return source
        data = source.read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.body_source = data
        return data

    # -- auth -------------------------------------------------------------

    @_unless_poisoned
    def auth(self, auth_type: str, credentials: str) -> "Request":
        """Authorization header of the form "<type> <credentials>" """
        self._set_header("Authorization", f"{auth_type} {credentials}")
        return self

    @_unless_poisoned
    def basic_auth(self, username: str, password: str) -> "Request":
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return self.auth("Basic", token)

    @_unless_poisoned
    def bearer_token(self, token: str) -> "Request":
        return self.auth("Bearer", token)

    @_unless_poisoned
    def with_auth(self, provider: Any) -> "Request":
        """Apply an auth provider (any object with ``apply(request) -> request``)"""
        return provider.apply(self)

    # -- proxy ------------------------------------------------------------

    @_unless_poisoned
    def proxy(self, config: ProxyConfig) -> "Request":
        """Route through ``config``; requires the requests-backed transport"""
        try:
            proxies = config.to_requests_proxies()
        except ValueError as e:
            return self.fail(BuilderError(f"configure proxy: {e}"))

        current = self.transport_override
        if isinstance(current, RequestsTransport):
            return self.transport(current.with_proxies(proxies), owned=True)
        if current is not None:
            logger.warning("Replacing custom transport with a proxied RequestsTransport")
        return self.transport(RequestsTransport(proxies=proxies), owned=True)

    @_unless_poisoned
    def proxy_url(self, proxy_url: str) -> "Request":
        try:
            config = ProxyConfig.from_url(proxy_url)
        except ValueError as e:
            return self.fail(BuilderError(str(e)))
        return self.proxy(config)

    # -- validation, middleware, execution --------------------------------

    @_unless_poisoned
    def validate(self, *validators: Validator) -> "Request":
        """Validators run in order on each received response"""
        self.validators.extend(validators)
        return self

    def use(self, *middleware: Callable[["Request"], "Request"]) -> "Request":
        """Apply middleware in order; each receives the previous result"""
        request = self
        for m in middleware:
            request = m(request)
        return request

    def prepare(self) -> requests.PreparedRequest:
        """Build the wire request from the current (buffered) state

        Raises:
            ConstructionError: If the URL or method cannot form a valid request
        """
        headers: CaseInsensitiveDict = CaseInsensitiveDict()
        for key, value in self.header_items:
            headers[key] = f"{headers[key]}, {value}" if key in headers else value

        body = self.body_source
        if body is not None and not isinstance(body, bytes):
            raise ConstructionError("request body must be buffered before preparing")

        try:
            return requests.Request(
                method=self.http_method,
                url=self.target_url,
                headers=headers,
                params=self.query_items,
                data=body,
            ).prepare()
        except (requests.RequestException, ValueError) as e:
            raise ConstructionError(f"invalid URL: {self.target_url!r}: {e}") from e

    def do(self, ctx: Optional[ExecutionContext] = None) -> Response:
        """Execute once"""
        return execute_once(self, ctx)

    def do_with_retry(self, ctx: Optional[ExecutionContext] = None, policy: Optional[RetryPolicy] = None) -> Response:
        """Execute with retries (default policy when None)"""
        return execute_with_retry(self, ctx, policy)


def new() -> Request:
    return Request()


def get(url: str) -> Request:
    return Request("GET", url)


def post(url: str) -> Request:
    return Request("POST", url)


def put(url: str) -> Request:
    return Request("PUT", url)


def delete(url: str) -> Request:
    return Request("DELETE", url)


def patch(url: str) -> Request:
    return Request("PATCH", url)


def head(url: str) -> Request:
    return Request("HEAD", url)

