"""Configuration for the Direct Line executor."""

from pydantic import BaseModel, Field, SecretStr


class DirectLineConfig(BaseModel):
    """Configuration for the Direct Line executor."""

    secret: SecretStr
    api_base_url: str = "https://directline.botframework.com"
    poll_interval: float = Field(default=1.0, gt=0)
    user_id: str = "bot-functional-testing"
