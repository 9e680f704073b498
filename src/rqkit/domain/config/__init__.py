"""Configuration models with Pydantic validation."""

from rqkit.domain.config.app import AppConfig
from rqkit.domain.config.client import ClientConfig
from rqkit.domain.config.retry import RetryConfig

__all__ = [
    "AppConfig",
    "ClientConfig",
    "RetryConfig",
]
