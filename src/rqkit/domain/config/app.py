"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from rqkit.domain.config.client import ClientConfig
from rqkit.domain.config.retry import RetryConfig


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model that aggregates all configuration sections.
    Validation is performed at load time to fail fast on configuration errors.

    Attributes:
        client: HTTP client configuration
        retry: Retry logic configuration
    """

    client: ClientConfig = Field(default_factory=ClientConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)

    model_config = ConfigDict(
        validate_assignment=True,  # Validate on attribute assignment
        extra="forbid",  # Reject unknown fields
        json_schema_extra={
            "example": {
                "client": {
                    "timeout": 30.0,
                    "user_agent": "rqkit",
                    "headers": {"Accept": "application/json"},
                    "proxy": None,
                    "dump": False,
                },
                "retry": {
                    "max_attempts": 3,
                    "delay": 0.1,
                    "max_delay": 10.0,
                    "multiplier": 2.0,
                    "jitter": True,
                },
            }
        },
    )
