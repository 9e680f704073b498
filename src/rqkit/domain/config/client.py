"""Client configuration model."""

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

from rqkit.infrastructure.proxy import ProxyConfig


class ClientConfig(BaseModel):
    """Configuration for the HTTP client.
    
    Attributes:
        timeout: Default per-attempt timeout in seconds
        user_agent: User-Agent header sent with every request
        headers: Extra headers sent with every request
        proxy: Proxy URL (http, https or socks5)
        dump: Log full request/response dumps
    """

    timeout: float = Field(30.0, gt=0.0)
    user_agent: Optional[str] = "rqkit"
    headers: Dict[str, str] = Field(default_factory=dict)
    proxy: Optional[str] = None
    dump: bool = False

    @field_validator("proxy")
    @classmethod
    def _check_proxy(cls, value: Optional[str]) -> Optional[str]:
        if value:
            ProxyConfig.from_url(value).to_requests_proxies()
        return value
