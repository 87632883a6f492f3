from typing import Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # LINE channel
    channel_id: str
    channel_secret: str
    channel_access_token: str
    line_api_base_url: str = "https://api.line.me/v2/bot"

    # Engine
    engine_url: str
    engine_response_shape: Literal["messages", "content", "auto"] = "messages"
    engine_timeout_seconds: float = 30.0
    profile_timeout_seconds: float = 5.0

    # Relay behaviour
    max_reply_messages: int = 5
    wake_word: str = "다빈"
    conversation_key_policy: Literal["channel", "user"] = "channel"
    delivery_error_policy: Literal["isolate", "fail_fast"] = "isolate"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    callback_path: str = "/callback"
    log_level: str = "INFO"

    # Operator alerts (optional)
    alert_bot_token: Optional[str] = None
    alert_chat_id: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("channel_id", "channel_secret", "channel_access_token", "engine_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value.strip()

    @field_validator("engine_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("max_reply_messages")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value


def get_settings() -> Settings:
    """Load settings from the environment; raises ValidationError when required values are missing."""
    return Settings()
