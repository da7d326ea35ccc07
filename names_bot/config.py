"""
Configuration management for the 99 Names bot
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Telegram Bot Configuration
    telegram_bot_token: str = Field(..., env="TELEGRAM_BOT_TOKEN")
    allowed_users: str = Field(default="", env="ALLOWED_USERS")

    # Database Configuration
    database_url: str = Field(default="sqlite:///data/bot.db", env="DATABASE_URL")

    # Name catalog
    names_file: str = Field(default="data/names.json", env="NAMES_FILE")

    # Application Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    polling_interval: float = Field(default=1.0, env="POLLING_INTERVAL")

    # Learning Configuration
    mastery_threshold: int = Field(default=3, env="MASTERY_THRESHOLD")
    default_names_per_day: int = Field(default=1, env="DEFAULT_NAMES_PER_DAY")
    default_quiz_length: int = Field(default=5, env="DEFAULT_QUIZ_LENGTH")

    # Reminder Configuration
    reminder_enabled: bool = Field(default=True, env="REMINDER_ENABLED")
    reminder_interval_hours: int = Field(default=4, env="REMINDER_INTERVAL_HOURS")
    reminder_start_hour: int = Field(default=8, env="REMINDER_START_HOUR")
    reminder_end_hour: int = Field(default=20, env="REMINDER_END_HOUR")
    # Default for new users; each user can pick their own with /timezone
    timezone: str = Field(default="UTC", env="TIMEZONE")

    @property
    def allowed_users_list(self) -> list[int]:
        """Convert allowed_users string to list of integers"""
        if not self.allowed_users.strip():
            return []
        return [
            int(user_id.strip())
            for user_id in self.allowed_users.split(",")
            if user_id.strip()
        ]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


def get_database_path() -> str:
    """Get the database file path from URL"""
    settings = get_settings()
    if settings.database_url.startswith("sqlite:///"):
        return settings.database_url.replace("sqlite:///", "")
    return "data/bot.db"
