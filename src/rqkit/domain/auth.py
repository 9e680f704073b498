"""Authentication providers"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from rqkit.domain.models.request import Request


class AuthProvider(ABC):
    """Applies credentials to a request"""

    @abstractmethod
    def apply(self, request: Request) -> Request:
        """Return the request with credentials applied"""
        pass


@dataclass
class BasicAuth(AuthProvider):
    username: str
    password: str

    def apply(self, request: Request) -> Request:
        return request.basic_auth(self.username, self.password)


@dataclass
class BearerAuth(AuthProvider):
    token: str

    def apply(self, request: Request) -> Request:
        return request.bearer_token(self.token)


@dataclass
class HeaderAuth(AuthProvider):
    """API key sent in an arbitrary header (e.g. X-API-Key)"""

    header: str
    value: str

    def apply(self, request: Request) -> Request:
        return request.headers({self.header: self.value})
