from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_PATH: str = "pulse_chat.db"
    DB_ECHO: bool = False

    BACKEND_BASE_URL: str = "http://localhost:3000/api/v1"
    BACKEND_ACCESS_TOKEN: str = ""
    BACKEND_TIMEOUT_SECONDS: float = 15.0

    CORS_ORIGINS: list[str] = ["*"]

    MESSAGE_PAGE_SIZE: int = 20

    OUTBOX_MAX_RETRIES: int = 3
    OUTBOX_BATCH_SIZE: int = 50

    SYNC_INTERVAL_SECONDS: float = 300.0
    SYNC_FETCH_LIMIT: int = 50
    SYNC_CONVERSATION_DELAY_SECONDS: float = 0.1
    CONNECTIVITY_CHECK_SECONDS: float = 15.0

    OPTIMISTIC_TTL_SECONDS: int = 3600

    WS_HEARTBEAT_SECONDS: int = 30

    @property
    def database_url(self) -> str:
        if self.DATABASE_PATH == ":memory:":
            return "sqlite+aiosqlite:///:memory:"
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
