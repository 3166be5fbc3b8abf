"""
FastAPI application configuration module
"""

from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# 加载.env文件,覆盖电脑自身环境变量
load_dotenv(override=True)


DEFAULT_UPSTREAM_URL = "https://assets.chooat.com/api/openrouter-notlogin"

DEFAULT_MODELS = [
    "openai/gpt-oss-20b:free",
    "gpt-4o-mini",
    "gpt-3.5-turbo",
]

# API_MASTER_KEY 等于该值时关闭鉴权（调试模式）
OPEN_ACCESS_KEY = "1"


class Settings(BaseSettings):
    """Application settings, read once at startup and never mutated."""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    # Server Configuration
    PORT: int = 3000

    # Auth Configuration
    API_MASTER_KEY: str = OPEN_ACCESS_KEY

    # Upstream Configuration
    UPSTREAM_URL: str = DEFAULT_UPSTREAM_URL
    UPSTREAM_TIMEOUT: float = 120.0
    UPSTREAM_HTTP2: bool = False

    # Model list exposed by /v1/models (JSON list in env)
    MODELS: List[str] = Field(default_factory=lambda: list(DEFAULT_MODELS))

    # Pseudo-stream pacing
    STREAM_CHUNK_SIZE: int = Field(default=5, ge=1)
    STREAM_CHUNK_DELAY_MS: float = Field(default=10, ge=0)

    # Logging Configuration - 支持三个等级：false, info, debug
    LOG_LEVEL: str = "info"

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value):
        level = str(value or "info").strip().lower()
        return level if level in ("false", "info", "debug") else "info"

    @property
    def open_access(self) -> bool:
        return self.API_MASTER_KEY == OPEN_ACCESS_KEY

    @property
    def stream_chunk_delay(self) -> float:
        """Delay between pseudo-stream chunks, in seconds."""
        return self.STREAM_CHUNK_DELAY_MS / 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
