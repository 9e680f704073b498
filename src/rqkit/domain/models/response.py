"""Response envelope - fully buffered outcome of one execution"""

import io
import json
from pathlib import Path
from typing import Any, Optional, Union

import requests
from requests.structures import CaseInsensitiveDict

from rqkit.domain.errors import DecodeError, FatalResponseError, RequestError


class Response:
    """Outcome of executing a request

    Either carries a status code, headers and buffered body, or an error, or
    both (e.g. a body read failure after headers arrived, or a validator
    rejecting a received response). Execution entry points always return a
    Response; callers must check ``error``.
    """

    def __init__(
        self,
        status_code: Optional[int] = None,
        headers: Optional[CaseInsensitiveDict] = None,
        content: bytes = b"",
        url: Optional[str] = None,
        error: Optional[RequestError] = None,
        raw: Optional[requests.Response] = None,
        attempts: int = 0,
    ):
        self.status_code = status_code
        self.headers = headers if headers is not None else CaseInsensitiveDict()
        self.content = content
        self.url = url
        self.error = error
        self.raw = raw
        self.attempts = attempts

    @classmethod
    def from_error(cls, error: RequestError, attempts: int = 0) -> "Response":
        """Create an envelope that carries only an error"""
        return cls(error=error, attempts=attempts)

    @classmethod
    def from_requests(
        cls, resp: requests.Response, content: bytes, error: Optional[RequestError] = None
    ) -> "Response":
        """Wrap a received ``requests.Response`` with its buffered body"""
        return cls(
            status_code=resp.status_code,
            headers=CaseInsensitiveDict(resp.headers),
            content=content,
            url=resp.url,
            error=error,
            raw=resp,
            attempts=1,
        )

    def __repr__(self) -> str:
        if self.error is not None:
            return f"<Response [{self.status_code}] error={self.error!r}>"
        return f"<Response [{self.status_code}]>"

    @property
    def is_ok(self) -> bool:
        """True for a 2xx status without an error"""
        if self.error is not None or self.status_code is None:
            return False
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        """True when an error is set, no status was received, or status >= 400"""
        if self.error is not None or self.status_code is None:
            return True
        return self.status_code >= 400

    def expect_status(self, status: int) -> Optional[RequestError]:
        """Return an error unless the status code equals ``status``"""
        if self.error is not None:
            return self.error
        if self.status_code != status:
            return RequestError(f"expected status {status}, got {self.status_code}")
        return None

    def expect_ok(self) -> Optional[RequestError]:
        """Return an error unless the status code is 2xx"""
        if self.error is not None:
            return self.error
        if not self.is_ok:
            return RequestError(f"expected 2xx status, got {self.status_code}")
        return None

    def bytes(self) -> bytes:
        """Raw body

        Raises:
            RequestError: The error carried by this response
        """
        if self.error is not None:
            raise self.error
        return self.content

    def text(self, encoding: Optional[str] = None) -> str:
        """Body decoded as text (response charset, falling back to UTF-8)"""
        if self.error is not None:
            raise self.error
        if encoding is None and self.raw is not None:
            encoding = self.raw.encoding
        return self.content.decode(encoding or "utf-8", errors="replace")

    def json(self) -> Any:
        """Body decoded as JSON

        Raises:
            RequestError: The error carried by this response
            DecodeError: If the body is not valid JSON
        """
        if self.error is not None:
            raise self.error
        try:
            return json.loads(self.content)
        except ValueError as e:
            raise DecodeError(f"decode JSON: {e}") from e

    def must_json(self) -> Any:
        """Body decoded as JSON, aborting on any failure

        Intended only for fail-fast call sites such as scripts and tests. Use
        ``json()`` for ordinary error handling.

        Raises:
            FatalResponseError: If the response has an error or the body is not JSON
        """
        try:
            return self.json()
        except RequestError as e:
            raise FatalResponseError(str(e)) from e

    def body_reader(self) -> io.BytesIO:
        """Fresh reader over the buffered body"""
        if self.error is not None:
            raise self.error
        return io.BytesIO(self.content)

    def save_to_file(self, filename: Union[str, Path]) -> None:
        """Write the body to ``filename`` (owner read/write only)"""
        if self.error is not None:
            raise self.error
        path = Path(filename)
        path.write_bytes(self.content)
        path.chmod(0o600)
