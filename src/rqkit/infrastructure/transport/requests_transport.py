"""Default transport backed by a requests.Session"""

import logging
from typing import Dict, Optional

import requests

from rqkit.domain.models.context import ExecutionContext
from rqkit.infrastructure.transport.base import Transport

logger = logging.getLogger(__name__)


class RequestsTransport(Transport):
    """Transport sending prepared requests through a ``requests.Session``

    The session is created lazily on first use unless one is provided. A
    provided session is not closed by ``close()``; the caller owns it.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        proxies: Optional[Dict[str, str]] = None,
        verify: bool = True,
    ):
        """Initialize transport

        Args:
            session: Session to send through (default: a private session)
            proxies: requests-style proxy mapping ({"http": url, "https": url})
            verify: Whether to verify TLS certificates
        """
        self._session = session
        self._owns_session = session is None
        self.proxies = dict(proxies) if proxies else {}
        self.verify = verify

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def with_proxies(self, proxies: Dict[str, str]) -> "RequestsTransport":
        """Copy of this transport routed through ``proxies``

        The copy shares the session when one was provided explicitly.
        """
        session = None if self._owns_session else self._session
        return RequestsTransport(session=session, proxies=proxies, verify=self.verify)

    def send(
        self,
        request: requests.PreparedRequest,
        ctx: ExecutionContext,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        logger.debug(f"HTTP {request.method} {request.url}")
        kwargs = {"timeout": timeout, "stream": True, "verify": self.verify}
        if self.proxies:
            kwargs["proxies"] = self.proxies
        return self.session.send(request, **kwargs)

    def close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None
