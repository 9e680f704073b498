"""Base transport interface"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

import requests

from rqkit.domain.models.context import ExecutionContext


class Transport(ABC):
    """Executes one request/response exchange

    Implementations return a ``requests.Response`` whose body may still be
    streaming; the caller reads and closes it. Network failures are raised as
    ``requests.RequestException``.
    """

    @abstractmethod
    def send(
        self,
        request: requests.PreparedRequest,
        ctx: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send a prepared request

        Args:
            request: Fully formed wire request
            ctx: Execution context of the current attempt
            timeout: Timeout in seconds for this exchange (None = transport default)

        Returns:
            Response with headers received

        Raises:
            requests.RequestException: If the exchange fails at the network layer
        """
        pass

    def close(self) -> None:
        """Release resources held by the transport"""
        pass


SendFunc = Callable[[requests.PreparedRequest, ExecutionContext, Optional[float]], requests.Response]


class TransportFunc(Transport):
    """Adapter allowing a plain function to be used as a transport"""

    def __init__(self, func: SendFunc):
        self.func = func

    def send(
        self,
        request: requests.PreparedRequest,
        ctx: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        return self.func(request, ctx, timeout)
