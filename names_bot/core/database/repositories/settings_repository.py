"""
Settings repository for per-user learning configuration
"""

import logging
from datetime import datetime
from typing import Any

from ....utils import parse_timezone
from ...exceptions import InvalidInputError
from ..connection import DatabaseConnection
from ..models import LearningMode, QuizMode, UserSettings

logger = logging.getLogger(__name__)

DEFAULT_NAMES_PER_DAY = 1
DEFAULT_QUIZ_LENGTH = 5
MIN_NAMES_PER_DAY = 1
MAX_NAMES_PER_DAY = 20
MIN_QUIZ_LENGTH = 1
MAX_QUIZ_LENGTH = 20
DEFAULT_REMINDER_INTERVAL_HOURS = 4
DEFAULT_REMINDER_START_HOUR = 8
DEFAULT_REMINDER_END_HOUR = 20
DEFAULT_TIMEZONE = "UTC"
MAX_REMINDER_INTERVAL_HOURS = 12


def _validate_int_range(field: str, value: Any, low: int, high: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise InvalidInputError(f"{field} must be an integer, got {value!r}")
    if value < low or value > high:
        raise InvalidInputError(f"{field} must be between {low} and {high}, got {value}")
    return value


def _validate_enum(field: str, value: Any, enum_cls) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidInputError(f"{field} must be one of: {allowed}; got {value!r}") from None


def _validate_bool(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a boolean, got {value!r}")
    return value


def _validate_timezone(field: str, value: Any) -> str:
    if not isinstance(value, str) or parse_timezone(value) is None:
        raise InvalidInputError(f"{field} must be an IANA zone or a UTC offset, got {value!r}")
    return value.strip()


def validate_reminder_window(start_hour: int, end_hour: int) -> None:
    """Reminders go out from start_hour up to end_hour of the same day"""
    if start_hour >= end_hour:
        raise InvalidInputError(
            f"Reminder window must start before it ends, got {start_hour}-{end_hour}"
        )


# Column name -> validator applied to incoming values
SETTINGS_VALIDATORS = {
    "names_per_day": lambda v: _validate_int_range(
        "names_per_day", v, MIN_NAMES_PER_DAY, MAX_NAMES_PER_DAY
    ),
    "quiz_mode": lambda v: _validate_enum("quiz_mode", v, QuizMode),
    "learning_mode": lambda v: _validate_enum("learning_mode", v, LearningMode),
    "quiz_length": lambda v: _validate_int_range(
        "quiz_length", v, MIN_QUIZ_LENGTH, MAX_QUIZ_LENGTH
    ),
    "reminders_enabled": lambda v: _validate_bool("reminders_enabled", v),
    "reminder_interval_hours": lambda v: _validate_int_range(
        "reminder_interval_hours", v, 1, MAX_REMINDER_INTERVAL_HOURS
    ),
    "reminder_start_hour": lambda v: _validate_int_range("reminder_start_hour", v, 0, 23),
    "reminder_end_hour": lambda v: _validate_int_range("reminder_end_hour", v, 0, 23),
    "timezone": lambda v: _validate_timezone("timezone", v),
}


class SettingsRepository:
    """Repository for user settings with get-or-create semantics"""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        default_names_per_day: int = DEFAULT_NAMES_PER_DAY,
        default_quiz_length: int = DEFAULT_QUIZ_LENGTH,
        default_reminder_interval_hours: int = DEFAULT_REMINDER_INTERVAL_HOURS,
        default_reminder_start_hour: int = DEFAULT_REMINDER_START_HOUR,
        default_reminder_end_hour: int = DEFAULT_REMINDER_END_HOUR,
        default_timezone: str = DEFAULT_TIMEZONE,
    ):
        self.db_connection = db_connection
        self.default_names_per_day = _validate_int_range(
            "default_names_per_day", default_names_per_day, MIN_NAMES_PER_DAY, MAX_NAMES_PER_DAY
        )
        self.default_quiz_length = _validate_int_range(
            "default_quiz_length", default_quiz_length, MIN_QUIZ_LENGTH, MAX_QUIZ_LENGTH
        )
        self.default_reminder_interval_hours = SETTINGS_VALIDATORS["reminder_interval_hours"](
            default_reminder_interval_hours
        )
        self.default_reminder_start_hour = SETTINGS_VALIDATORS["reminder_start_hour"](
            default_reminder_start_hour
        )
        self.default_reminder_end_hour = SETTINGS_VALIDATORS["reminder_end_hour"](
            default_reminder_end_hour
        )
        validate_reminder_window(self.default_reminder_start_hour, self.default_reminder_end_hour)
        self.default_timezone = SETTINGS_VALIDATORS["timezone"](default_timezone)

    def get_or_create(self, telegram_id: int) -> UserSettings:
        """Return the user's settings, inserting defaults on first access.

        The insert is ``ON CONFLICT DO NOTHING`` on the primary key, so
        concurrent first calls still leave exactly one row.
        """
        with self.db_connection.get_connection() as conn:
            settings = self._fetch(conn, telegram_id)
            if settings:
                return settings

            now = datetime.now()
            cursor = conn.execute(
                """
                INSERT INTO user_settings (
                    telegram_id, names_per_day, quiz_mode, learning_mode,
                    quiz_length, reminders_enabled, reminder_interval_hours,
                    reminder_start_hour, reminder_end_hour, timezone,
                    created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 1, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (telegram_id) DO NOTHING
                """,
                (
                    telegram_id,
                    self.default_names_per_day,
                    QuizMode.MIXED.value,
                    LearningMode.GUIDED.value,
                    self.default_quiz_length,
                    self.default_reminder_interval_hours,
                    self.default_reminder_start_hour,
                    self.default_reminder_end_hour,
                    self.default_timezone,
                    now,
                    now,
                ),
            )
            conn.commit()
            if cursor.rowcount > 0:
                logger.info(f"Created default settings for user {telegram_id}")

            return self._fetch(conn, telegram_id)

    def update(self, telegram_id: int, **changes: Any) -> UserSettings:
        """Apply a sparse change set without touching other fields"""
        unknown = set(changes) - set(SETTINGS_VALIDATORS)
        if unknown:
            raise InvalidInputError(f"Unknown settings: {', '.join(sorted(unknown))}")

        validated = {
            field: SETTINGS_VALIDATORS[field](value) for field, value in changes.items()
        }

        current = self.get_or_create(telegram_id)
        if not validated:
            return current

        if "reminder_start_hour" in validated or "reminder_end_hour" in validated:
            validate_reminder_window(
                validated.get("reminder_start_hour", current["reminder_start_hour"]),
                validated.get("reminder_end_hour", current["reminder_end_hour"]),
            )

        assignments = [f"{field} = ?" for field in validated]
        params = list(validated.values())
        assignments.append("updated_at = ?")
        params.append(datetime.now())
        params.append(telegram_id)

        with self.db_connection.get_connection() as conn:
            conn.execute(
                f"UPDATE user_settings SET {', '.join(assignments)} WHERE telegram_id = ?",  # noqa: S608  # Safe: keys checked against SETTINGS_VALIDATORS
                params,
            )
            conn.commit()
            settings = self._fetch(conn, telegram_id)

        logger.info(f"Updated settings for user {telegram_id}: {validated}")
        return settings

    def _fetch(self, conn, telegram_id: int) -> UserSettings | None:
        row = conn.execute(
            "SELECT * FROM user_settings WHERE telegram_id = ?", (telegram_id,)
        ).fetchone()
        if not row:
            return None
        settings = dict(row)
        settings["reminders_enabled"] = bool(settings["reminders_enabled"])
        return settings
