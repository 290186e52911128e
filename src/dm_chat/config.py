from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str = "dm_chat"
    POSTGRES_PASSWORD: str = "dm_chat"
    POSTGRES_DB: str = "dm_chat"
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "dm.fanout"
    FANOUT_BACKEND: Literal["redis", "local"] = "redis"

    JWT_SECRET: str = ""
    JWT_ALGORITHM: str = "HS256"

    CORS_ORIGINS: list[str] = ["*"]

    WS_HEARTBEAT_SECONDS: int = 30

    MESSAGE_MAX_LENGTH: int = 4000

    LOG_LEVEL: str = "INFO"

    # client side
    CHAT_API_URL: str = "http://localhost:8000"
    CHAT_WS_URL: str = "ws://localhost:8000/ws/chat"
    MUTATION_TIMEOUT_SECONDS: float = 10.0
    TYPING_INDICATOR_SECONDS: float = 3.0
    TYPING_THROTTLE_SECONDS: float = 0.0

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
