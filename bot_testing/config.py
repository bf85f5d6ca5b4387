"""Service configuration."""

from pydantic import BaseModel, Field, SecretStr


class ServiceConfig(BaseModel):
    """Configuration for the HTTP service."""

    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=0, le=65535)
    # Seconds a finished suite's results stay available for polling
    retention_seconds: float = Field(default=600.0, gt=0)
    auth_token: SecretStr | None = None
    executor: str = "directline"
