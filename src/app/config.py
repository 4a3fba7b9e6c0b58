from __future__ import annotations

from typing import Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.app.domain.models import ImportPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
    )

    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_VISION_MODEL: str = "gemini-2.5-flash"

    TRANSCRIPT_API_URL: str = "https://api.supadata.ai/v1"
    TRANSCRIPT_API_KEY: Optional[str] = None

    R2_ACCOUNT_ID: Optional[str] = None
    R2_ACCESS_KEY_ID: Optional[str] = None
    R2_SECRET_ACCESS_KEY: Optional[str] = None
    R2_BUCKET_NAME: str = "recipe-imports"
    R2_PUBLIC_URL: Optional[str] = None

    IMPORT_RATE_LIMIT: int = 150
    IMPORT_RATE_WINDOW_HOURS: int = 24
    TOKEN_COST_WEBSITE: int = 1
    TOKEN_COST_VIDEO: int = 2
    TOKEN_COST_MEDIA: int = 3

    def import_policy(self) -> ImportPolicy:
        return ImportPolicy(
            cost_website=self.TOKEN_COST_WEBSITE,
            cost_video=self.TOKEN_COST_VIDEO,
            cost_media=self.TOKEN_COST_MEDIA,
            rate_limit=self.IMPORT_RATE_LIMIT,
            rate_window_hours=self.IMPORT_RATE_WINDOW_HOURS,
        )


settings = Settings()
