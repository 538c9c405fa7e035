"""Configuration management for MathFlow Progress Service."""

from typing import Dict, List
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
import json

class Settings(BaseSettings):
    """Application settings with validation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    # Application
    APP_NAME: str = "MathFlow Progress Service"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production|test)$")
    SERVICE_NAME: str = "mathflow-progress"
    SERVICE_PORT: int = 8004

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./mathflow.db"
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_ECHO: bool = False

    # Content generator
    CONTENT_GENERATOR_URL: str = "http://localhost:3000"
    CONTENT_GENERATOR_TIMEOUT: float = 30.0

    # XP - problem level
    XP_PROBLEM_CORRECT: int = 10
    XP_PROBLEM_FIRST_TRY: int = 3
    XP_PROBLEM_FAST: int = 5
    XP_PROBLEM_FAST_SECONDS: int = 10
    XP_PROBLEM_STREAK: int = 5
    XP_PROBLEM_STREAK_THRESHOLD: int = 3
    XP_PROBLEM_STREAK_CAP: int = 5

    # XP - session level
    XP_SESSION_COMPLETE: int = 20
    XP_SESSION_PERFECT: int = 50
    XP_SESSION_FLOW: int = 30
    XP_FLOW_MIN_ACCURACY_PERCENT: int = 80
    XP_FLOW_MIN_MINUTES: int = 10
    XP_DAILY_FIRST: int = 15
    XP_STREAK_PER_DAY: int = 5
    XP_STREAK_DAY_CAP: int = 30
    # Streak length in days -> one-off bonus on the day it is reached
    XP_STREAK_MILESTONES: Dict[int, int] = {
        3: 30, 7: 100, 14: 50, 30: 500, 50: 200, 100: 1000, 200: 2000, 365: 5000,
    }

    # Levels
    XP_PER_LEVEL: int = 100

    # Logging
    LOG_LEVEL: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    LOG_FORMAT: str = Field(default="json", pattern="^(json|plain)$")

    # CORS
    CORS_ORIGINS: List[str] = Field(default_factory=list)

    @field_validator("CORS_ORIGINS", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    # Monitoring
    ENABLE_METRICS: bool = True

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    def is_sqlite(self) -> bool:
        """Check if the configured database is SQLite."""
        return self.DATABASE_URL.startswith("sqlite")

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

# Global settings instance
settings = get_settings()
