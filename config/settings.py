"""
Configuration management for the Agent Discussion core
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Claude API
    anthropic_api_key: Optional[str] = Field(default=None)
    anthropic_model: str = Field(default="claude-sonnet-4-20250514")
    max_response_tokens: int = Field(default=1024)

    # Prompt window
    max_context_chars: int = Field(default=20000, description="Soft character budget for history")
    default_context_messages: int = Field(default=10, description="Minimum history messages per prompt")

    # Server
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    debug: bool = Field(default=True)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


ROLE_LABELS = {
    "moderator": "Moderator",
    "participant": "Participant",
}

# Author sentinels used in message history
USER_AGENT_ID = "user"
SYSTEM_AGENT_ID = "system"
