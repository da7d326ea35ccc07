"""
Database models for the 99 Names bot
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TypedDict

TOTAL_NAMES = 99


class QuizMode(str, Enum):
    """Which names a quiz draws its questions from"""
    NEW = "new"
    REVIEW = "review"
    MIXED = "mixed"


class LearningMode(str, Enum):
    """How new names are introduced"""
    GUIDED = "guided"
    FREE = "free"


class User(TypedDict):
    """User model"""
    telegram_id: int
    first_name: str | None
    last_name: str | None
    username: str | None
    language_code: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class NameProgress(TypedDict):
    """Learning state of one name for one user"""
    telegram_id: int
    name_number: int
    is_learned: bool
    correct_count: int
    review_count: int
    last_reviewed_at: datetime | None
    first_seen_at: datetime
    updated_at: datetime


class UserSettings(TypedDict):
    """Per-user learning configuration"""
    telegram_id: int
    names_per_day: int
    quiz_mode: str
    learning_mode: str
    quiz_length: int
    reminders_enabled: bool
    reminder_interval_hours: int
    reminder_start_hour: int
    reminder_end_hour: int
    timezone: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class ProgressSummary:
    """Aggregated view over a user's progress (not stored)"""

    learned: int
    in_progress: int
    not_started: int
    percentage: float
    accuracy: float
    days_to_complete: int
    total_correct: int = 0
    total_attempts: int = 0
    last_activity_at: datetime | None = None
