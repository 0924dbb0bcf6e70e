from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


@dataclass(frozen=True)
class Settings:
    llm_provider: str = os.getenv("LLM_PROVIDER", "openai")
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.8"))
    openai_max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "500"))

    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./mud.db")

    # Stand-in principal until real auth exists.
    default_user_id: str = os.getenv("DEFAULT_USER_ID", "00000000-0000-0000-0000-000000000001")
    default_username: str = os.getenv("DEFAULT_USERNAME", "demo_user")

    history_limit: int = int(os.getenv("DIALOGUE_HISTORY_LIMIT", "100"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))


settings = Settings()
