"""Error taxonomy for request building, execution and response handling.

Every error produced while building or executing a request is carried as a
value on the response envelope. Only ``FatalResponseError`` is meant to escape,
and only from the ``must_*`` accessors.
"""


class RequestError(Exception):
    """Base class for errors carried on a request or response."""

    pass


class BuilderError(RequestError):
    """Malformed configuration captured while building a request."""

    pass


class ConstructionError(RequestError):
    """The wire request could not be formed (e.g. invalid URL)."""

    pass


class TransportError(RequestError):
    """The exchange failed at the network layer (connection, timeout, TLS)."""

    pass


class BodyError(RequestError):
    """A request or response body could not be fully read."""

    pass


class DecodeError(RequestError):
    """Structured decoding of a response body failed."""

    pass


class ValidationError(RequestError):
    """A response failed a validator."""

    pass


class InterceptorError(RequestError):
    """A request or response interceptor rejected the exchange."""

    pass


class ExecutionCancelled(RequestError):
    """The execution context was cancelled."""

    def __init__(self, message: str = "execution cancelled", cause: object = None):
        super().__init__(message)
        self.cause = cause


class DeadlineExceeded(ExecutionCancelled):
    """The execution context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


class FatalResponseError(RuntimeError):
    """Raised by ``must_*`` accessors for fail-fast call sites.

    Intentionally not a ``RequestError``: handlers written for recoverable
    errors must not absorb it.
    """

    pass
