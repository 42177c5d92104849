from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ADMIN_KEY: str = "change-me"
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"
    CORS_ORIGIN_REGEX: Optional[str] = None

    HOST: str = "0.0.0.0"
    PORT: int = 8080
    WS_PATH: str = "/ws"
    LOG_LEVEL: str = "INFO"
    CONSOLE_CONTROL: bool = True

    QUESTIONS_PATH: Optional[str] = None
    ANSWER_WINDOW_SECONDS: float = 10.0
    MIN_PARTICIPANTS: int = 1
    RETRY_AFTER_WRONG: bool = False
    SEND_TIMEOUT_SECONDS: float = 5.0
    OUTBOX_LIMIT: int = 100

    WELCOME_MESSAGE: str = "Welcome to the quiz, {name}!"
    WRONG_ANSWER_MESSAGE: str = "Wrong answer."
    TIMEOUT_MESSAGE: str = "Time is up!"
    END_MESSAGE: str = "The quiz is over!"
    FORBIDDEN_MESSAGE: str = "WebSocket connections only."


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
