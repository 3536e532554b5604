from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BLOCKED_DOMAINS = [
    "thekitchn.com",
    "foodnetwork.com",
    "tasty.co",
    "buzzfeed.com",
    "showmetheyummy.com",
    "tastesbetterfromscratch.com",
    "allrecipes.com",
    "food.com",
    "epicurious.com",
    "bonappetit.com",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: Optional[AnyUrl] = None
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = None
    APP_ENV: str = "local"

    GEMINI_API_KEY: Optional[SecretStr] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    LLM_TIMEOUT_SECONDS: float = Field(default=60.0, gt=0)

    SEARCH_BLOCKED_DOMAINS: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_DOMAINS))
    SEARCH_MAX_CANDIDATES: int = Field(default=5, ge=1)

    SCRAPE_MIN_CHARS: int = Field(default=200, ge=1)
    SCRAPE_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    SCRAPE_SITE_HEURISTICS: bool = True

    FORMATTER_MAX_SOURCE_CHARS: int = Field(default=8000, ge=500)
    SUBSTITUTION_RECHECK_POLICY: Literal["warn", "reject"] = "warn"

    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:8081", "http://localhost:19006", "http://localhost:5173"],
    )

    @property
    def supabase_configured(self) -> bool:
        return bool(self.SUPABASE_URL and self.SUPABASE_SERVICE_ROLE_KEY)

    @property
    def llm_configured(self) -> bool:
        return bool(self.GEMINI_API_KEY and self.GEMINI_API_KEY.get_secret_value())


settings = Settings()


def get_settings() -> Settings:
    return settings
