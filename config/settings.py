"""Pydantic settings for the firehose playground client."""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # dfuse authentication
    dfuse_api_key: Optional[str] = Field(
        default=None,
        description="dfuse API key exchanged for short-lived bearer tokens"
    )
    dfuse_auth_url: str = Field(
        default="https://auth.dfuse.io/v1/auth/issue",
        description="dfuse token issuing endpoint"
    )
    auth_refresh_margin_seconds: int = Field(
        default=30,
        description="Refresh the API token when it expires within this many seconds"
    )
    auth_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for token issuing requests"
    )

    # Stream retry
    retry_delay_seconds: float = Field(
        default=5.0,
        description="Delay before reconnecting after a stream failure"
    )
    retry_max_attempts: Optional[int] = Field(
        default=None,
        description="Consecutive failed attempts before giving up (unset retries forever)"
    )
    retry_backoff_multiplier: float = Field(
        default=1.0,
        description="Multiplier applied to the retry delay on each consecutive failure (1.0 = fixed delay)"
    )
    retry_max_delay_seconds: float = Field(
        default=60.0,
        description="Upper bound for the retry delay when backoff is enabled"
    )

    # Progress reporting
    status_frequency_seconds: float = Field(
        default=15.0,
        description="Interval between stream progress log lines"
    )

    # gRPC channel
    grpc_max_receive_message_length: int = Field(
        default=64 * 1024 * 1024,
        description="Max inbound gRPC message size (full blocks can be large)"
    )
    grpc_keepalive_time_ms: int = Field(
        default=30000,
        description="gRPC keepalive ping interval"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore"
    }


# Global settings instance
settings = Settings()
