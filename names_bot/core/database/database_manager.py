"""
Unified database manager that coordinates all repositories
"""

import logging
from datetime import date

from .connection import DatabaseConnection
from .models import NameProgress, ProgressSummary, User, UserSettings
from .repositories.daily_name_repository import DailyNameRepository
from .repositories.progress_repository import MASTERY_THRESHOLD, ProgressRepository
from .repositories.settings_repository import (
    DEFAULT_NAMES_PER_DAY,
    DEFAULT_QUIZ_LENGTH,
    DEFAULT_REMINDER_END_HOUR,
    DEFAULT_REMINDER_INTERVAL_HOURS,
    DEFAULT_REMINDER_START_HOUR,
    DEFAULT_TIMEZONE,
    SettingsRepository,
)
from .repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Unified database manager that coordinates all repositories"""

    def __init__(
        self,
        db_path: str | None = None,
        mastery_threshold: int = MASTERY_THRESHOLD,
        default_names_per_day: int = DEFAULT_NAMES_PER_DAY,
        default_quiz_length: int = DEFAULT_QUIZ_LENGTH,
        default_reminder_interval_hours: int = DEFAULT_REMINDER_INTERVAL_HOURS,
        default_reminder_start_hour: int = DEFAULT_REMINDER_START_HOUR,
        default_reminder_end_hour: int = DEFAULT_REMINDER_END_HOUR,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self.db_connection = DatabaseConnection(db_path)
        self.user_repo = UserRepository(self.db_connection)
        self.progress_repo = ProgressRepository(self.db_connection, mastery_threshold)
        self.settings_repo = SettingsRepository(
            self.db_connection,
            default_names_per_day=default_names_per_day,
            default_quiz_length=default_quiz_length,
            default_reminder_interval_hours=default_reminder_interval_hours,
            default_reminder_start_hour=default_reminder_start_hour,
            default_reminder_end_hour=default_reminder_end_hour,
            default_timezone=default_timezone,
        )
        self.daily_name_repo = DailyNameRepository(self.db_connection)

    def init_database(self) -> None:
        """Initialize database tables and indexes"""
        self.db_connection.init_database()

    # User methods
    def ensure_user(
        self,
        telegram_id: int,
        first_name: str | None = None,
        last_name: str | None = None,
        username: str | None = None,
        language_code: str | None = None,
    ) -> User:
        """Create or refresh a user record"""
        return self.user_repo.ensure_user(
            telegram_id, first_name, last_name, username, language_code
        )

    def get_user_by_telegram_id(self, telegram_id: int) -> User | None:
        """Get user by Telegram ID"""
        return self.user_repo.get_user_by_telegram_id(telegram_id)

    def get_all_active_users(self) -> list[User]:
        """Get users eligible for reminders"""
        return self.user_repo.get_all_active_users()

    def deactivate_user(self, telegram_id: int) -> bool:
        """Stop sending anything to a user"""
        return self.user_repo.deactivate_user(telegram_id)

    # Progress methods
    def record_answer(
        self, telegram_id: int, name_number: int, was_correct: bool
    ) -> NameProgress:
        """Record a quiz answer"""
        return self.progress_repo.record_answer(telegram_id, name_number, was_correct)

    def mark_learned(self, telegram_id: int, name_number: int) -> NameProgress:
        """Manually mark a name as learned"""
        return self.progress_repo.mark_learned(telegram_id, name_number)

    def mark_viewed(self, telegram_id: int, name_number: int) -> bool:
        """Register first exposure to a name"""
        return self.progress_repo.mark_viewed(telegram_id, name_number)

    def get_progress(self, telegram_id: int, name_number: int) -> NameProgress | None:
        """Get progress for one name"""
        return self.progress_repo.get_progress(telegram_id, name_number)

    def get_progress_by_user(self, telegram_id: int) -> list[NameProgress]:
        """Get all progress rows of a user"""
        return self.progress_repo.get_progress_by_user(telegram_id)

    def get_unlearned_numbers(
        self, telegram_id: int, limit: int, viewed_only: bool = False
    ) -> list[int]:
        """Get names not learned yet"""
        return self.progress_repo.get_unlearned_numbers(telegram_id, limit, viewed_only)

    def get_review_numbers(self, telegram_id: int, limit: int) -> list[int]:
        """Get names due for repetition"""
        return self.progress_repo.get_review_numbers(telegram_id, limit)

    def get_next_unseen_number(self, telegram_id: int) -> int | None:
        """Get the next name the user has not seen"""
        return self.progress_repo.get_next_unseen_number(telegram_id)

    def get_summary(self, telegram_id: int, names_per_day: int | None = None) -> ProgressSummary:
        """Get progress summary; pace defaults to the user's setting"""
        if names_per_day is None:
            names_per_day = self.get_settings(telegram_id)["names_per_day"]
        return self.progress_repo.get_summary(telegram_id, names_per_day)

    def reset_progress(self, telegram_id: int) -> int:
        """Start learning from scratch, keeping settings"""
        return self.progress_repo.reset(telegram_id)

    # Daily name methods
    def get_today_names(self, telegram_id: int, day: date) -> list[int]:
        """Names introduced on the given local day"""
        return self.daily_name_repo.get_names_for_day(telegram_id, day)

    def introduce_name(
        self, telegram_id: int, day: date, name_number: int, daily_limit: int
    ) -> bool:
        """Log a new name for the day if the daily limit allows it"""
        return self.daily_name_repo.add_name(telegram_id, day, name_number, daily_limit)

    # Settings methods
    def get_settings(self, telegram_id: int) -> UserSettings:
        """Get or create user settings"""
        return self.settings_repo.get_or_create(telegram_id)

    def update_settings(self, telegram_id: int, **changes) -> UserSettings:
        """Apply sparse settings changes"""
        return self.settings_repo.update(telegram_id, **changes)

    def get_connection(self):
        """Get database connection for direct SQL access in tests"""
        return self.db_connection.get_connection()


# Global instance
_db_manager = None


def get_db_manager(db_path: str | None = None) -> DatabaseManager:
    """Get global database manager instance"""
    global _db_manager
    if _db_manager is None:
        from ...config import get_settings

        settings = get_settings()
        _db_manager = DatabaseManager(
            db_path,
            mastery_threshold=settings.mastery_threshold,
            default_names_per_day=settings.default_names_per_day,
            default_quiz_length=settings.default_quiz_length,
            default_reminder_interval_hours=settings.reminder_interval_hours,
            default_reminder_start_hour=settings.reminder_start_hour,
            default_reminder_end_hour=settings.reminder_end_hour,
            default_timezone=settings.timezone,
        )
    return _db_manager
