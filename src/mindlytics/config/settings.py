"""
Module: settings.py
Description: SDK configuration using pydantic-settings.

Settings are read from keyword arguments first, then from
MINDLYTICS_* environment variables and a local .env file. Queue options
are nested, so MINDLYTICS_QUEUE__MAX_RETRIES=5 sets queue.max_retries.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://app.mindlytics.ai"


class QueueSettings(BaseModel):
    """Delivery queue options."""

    base_delay_ms: int = Field(
        default=1000,
        ge=0,
        description="Seed for exponential backoff in milliseconds"
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        description="Attempts after which a retryable error becomes terminal"
    )
    max_queue_size: int = Field(
        default=0,
        ge=0,
        description="Maximum items waiting for delivery (0 means unbounded)"
    )
    debug: bool = Field(
        default=False,
        description="Emit structured trace logs for queue state transitions"
    )


class Settings(BaseSettings):
    """SDK settings loaded from arguments and environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MINDLYTICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="Project API key sent as the Authorization header"
    )
    project_id: str = Field(
        ...,
        min_length=1,
        description="Project identifier sent as the x-app-id header"
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the collection service"
    )
    debug: bool = Field(default=False, description="Enable debug logging")
    request_timeout: float = Field(
        default=10,
        ge=1,
        le=60,
        description="HTTP timeout in seconds for each request"
    )
    queue: QueueSettings = Field(default_factory=QueueSettings)

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate base_url is an HTTP(S) URL and strip trailing slashes."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError("base_url must be a valid HTTP/HTTPS URL")
        return v.rstrip('/')

    @model_validator(mode='after')
    def propagate_debug(self) -> 'Settings':
        """Debug on the client turns on queue tracing as well."""
        if self.debug and not self.queue.debug:
            self.queue = self.queue.model_copy(update={"debug": True})
        return self
