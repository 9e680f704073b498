"""Retry configuration model."""

from pydantic import BaseModel, Field

from rqkit.infrastructure.retry import RetryPolicy


class RetryConfig(BaseModel):
    """Configuration for retry logic.
    
    Attributes:
        max_attempts: Total attempts including the first
        delay: Initial delay between attempts in seconds
        max_delay: Ceiling for any delay in seconds
        multiplier: Exponential backoff multiplier
        jitter: Add up to 30% random extra delay
    """

    max_attempts: int = Field(3, gt=0, le=20)
    delay: float = Field(0.1, ge=0.0)  # Allow 0 for tests
    max_delay: float = Field(10.0, ge=0.0)
    multiplier: float = Field(2.0, ge=1.0, le=10.0)
    jitter: bool = True

    def to_policy(self) -> RetryPolicy:
        """Build a retry policy using the default retry predicate"""
        return RetryPolicy(
            max_attempts=self.max_attempts,
            delay=self.delay,
            max_delay=self.max_delay,
            multiplier=self.multiplier,
            jitter=self.jitter,
        )
