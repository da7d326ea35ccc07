"""
Progress repository for per-name learning state and derived statistics
"""

import logging
import math
from datetime import datetime

from ...exceptions import InvalidInputError
from ..connection import DatabaseConnection
from ..models import TOTAL_NAMES, NameProgress, ProgressSummary

logger = logging.getLogger(__name__)

# Cumulative correct answers after which a name counts as learned.
MASTERY_THRESHOLD = 3


def validate_name_number(number: int) -> int:
    """Reject name numbers outside 1..99"""
    if not isinstance(number, int) or isinstance(number, bool):
        raise InvalidInputError(f"Name number must be an integer, got {number!r}")
    if number < 1 or number > TOTAL_NAMES:
        raise InvalidInputError(f"Name number must be between 1 and {TOTAL_NAMES}, got {number}")
    return number


def calculate_days_to_complete(learned: int, names_per_day: int) -> int:
    """Days left at the given pace; 0 once everything is learned"""
    if names_per_day <= 0:
        raise InvalidInputError(f"names_per_day must be positive, got {names_per_day}")
    remaining = max(TOTAL_NAMES - learned, 0)
    return math.ceil(remaining / names_per_day)


class ProgressRepository:
    """Repository for name progress operations.

    Every mutation is a single upsert statement so that concurrent answers
    for the same (user, name) never lose an increment. Once ``is_learned``
    is set it is never cleared.
    """

    def __init__(
        self,
        db_connection: DatabaseConnection,
        mastery_threshold: int = MASTERY_THRESHOLD,
    ):
        if mastery_threshold < 1:
            raise InvalidInputError("mastery_threshold must be at least 1")
        self.db_connection = db_connection
        self.mastery_threshold = mastery_threshold

    def record_answer(
        self, telegram_id: int, name_number: int, was_correct: bool
    ) -> NameProgress:
        """Record a quiz answer and promote the name once it is mastered"""
        validate_name_number(name_number)
        now = datetime.now()
        correct_increment = 1 if was_correct else 0
        learned_on_insert = 1 if correct_increment >= self.mastery_threshold else 0

        with self.db_connection.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO name_progress (
                    telegram_id, name_number, is_learned, correct_count, review_count,
                    last_reviewed_at, first_seen_at, updated_at
                )
                VALUES (?, ?, ?, ?, 1, ?, ?, ?)
                ON CONFLICT (telegram_id, name_number) DO UPDATE SET
                    correct_count = name_progress.correct_count + excluded.correct_count,
                    review_count = name_progress.review_count + 1,
                    is_learned = CASE
                        WHEN name_progress.is_learned = 1 THEN 1
                        WHEN name_progress.correct_count + excluded.correct_count >= ? THEN 1
                        ELSE 0
                    END,
                    last_reviewed_at = excluded.last_reviewed_at,
                    updated_at = excluded.updated_at
                """,
                (
                    telegram_id,
                    name_number,
                    learned_on_insert,
                    correct_increment,
                    now,
                    now,
                    now,
                    self.mastery_threshold,
                ),
            )
            progress = self._fetch(conn, telegram_id, name_number)
            conn.commit()

        logger.debug(
            f"Recorded answer for user {telegram_id}, name {name_number}: "
            f"correct={was_correct}, learned={progress['is_learned']}"
        )
        return progress

    def mark_learned(self, telegram_id: int, name_number: int) -> NameProgress:
        """Force a name into the learned state regardless of counters"""
        validate_name_number(name_number)
        now = datetime.now()

        with self.db_connection.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO name_progress (
                    telegram_id, name_number, is_learned, first_seen_at, updated_at
                )
                VALUES (?, ?, 1, ?, ?)
                ON CONFLICT (telegram_id, name_number) DO UPDATE SET
                    is_learned = 1,
                    updated_at = excluded.updated_at
                """,
                (telegram_id, name_number, now, now),
            )
            progress = self._fetch(conn, telegram_id, name_number)
            conn.commit()

        logger.info(f"User {telegram_id} marked name {name_number} as learned")
        return progress

    def mark_viewed(self, telegram_id: int, name_number: int) -> bool:
        """Create the progress row on first exposure; returns True if created"""
        validate_name_number(name_number)
        now = datetime.now()

        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO name_progress (telegram_id, name_number, first_seen_at, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (telegram_id, name_number) DO NOTHING
                """,
                (telegram_id, name_number, now, now),
            )
            conn.commit()
            return cursor.rowcount > 0

    def get_progress(self, telegram_id: int, name_number: int) -> NameProgress | None:
        """Get progress for a specific name, None when never touched"""
        validate_name_number(name_number)
        with self.db_connection.get_connection() as conn:
            return self._fetch(conn, telegram_id, name_number)

    def get_progress_by_user(self, telegram_id: int) -> list[NameProgress]:
        """Get all progress rows of a user ordered by name number"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM name_progress
                WHERE telegram_id = ?
                ORDER BY name_number
                """,
                (telegram_id,),
            )
            return [self._row_to_progress(row) for row in cursor.fetchall()]

    def get_summary(self, telegram_id: int, names_per_day: int) -> ProgressSummary:
        """Aggregate the user's progress over all 99 names.

        Names without a row count as not started with zero attempts.
        """
        if names_per_day <= 0:
            raise InvalidInputError(f"names_per_day must be positive, got {names_per_day}")

        with self.db_connection.get_connection() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total_rows,
                    COALESCE(SUM(CASE WHEN is_learned = 1 THEN 1 ELSE 0 END), 0) AS learned,
                    COALESCE(SUM(correct_count), 0) AS total_correct,
                    COALESCE(SUM(review_count), 0) AS total_attempts,
                    MAX(last_reviewed_at) AS last_activity
                FROM name_progress
                WHERE telegram_id = ?
                """,
                (telegram_id,),
            ).fetchone()

        total_rows = row["total_rows"]
        learned = row["learned"]
        total_correct = row["total_correct"]
        total_attempts = row["total_attempts"]

        accuracy = 0.0
        if total_attempts > 0:
            accuracy = round(total_correct / total_attempts * 100, 1)

        last_activity = row["last_activity"]
        if isinstance(last_activity, str):
            # MAX() drops the declared column type
            last_activity = datetime.fromisoformat(last_activity)

        return ProgressSummary(
            learned=learned,
            in_progress=total_rows - learned,
            not_started=TOTAL_NAMES - total_rows,
            percentage=round(learned / TOTAL_NAMES * 100, 1),
            accuracy=accuracy,
            days_to_complete=calculate_days_to_complete(learned, names_per_day),
            total_correct=total_correct,
            total_attempts=total_attempts,
            last_activity_at=last_activity,
        )

    def get_unlearned_numbers(
        self, telegram_id: int, limit: int, viewed_only: bool = False
    ) -> list[int]:
        """Names that are not learned yet.

        With ``viewed_only`` only names the user has already been introduced
        to are returned, least recently reviewed first.
        """
        if limit <= 0:
            return []

        with self.db_connection.get_connection() as conn:
            if viewed_only:
                cursor = conn.execute(
                    """
                    SELECT name_number FROM name_progress
                    WHERE telegram_id = ? AND is_learned = 0
                    ORDER BY last_reviewed_at IS NOT NULL, last_reviewed_at, name_number
                    LIMIT ?
                    """,
                    (telegram_id, limit),
                )
                return [row["name_number"] for row in cursor.fetchall()]

            cursor = conn.execute(
                "SELECT name_number FROM name_progress WHERE telegram_id = ? AND is_learned = 1",
                (telegram_id,),
            )
            learned = {row["name_number"] for row in cursor.fetchall()}

        return [n for n in range(1, TOTAL_NAMES + 1) if n not in learned][:limit]

    def get_review_numbers(self, telegram_id: int, limit: int) -> list[int]:
        """Names already practised or learned, least recently reviewed first"""
        if limit <= 0:
            return []

        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT name_number FROM name_progress
                WHERE telegram_id = ? AND (review_count > 0 OR is_learned = 1)
                ORDER BY last_reviewed_at IS NOT NULL, last_reviewed_at, name_number
                LIMIT ?
                """,
                (telegram_id, limit),
            )
            return [row["name_number"] for row in cursor.fetchall()]

    def get_next_unseen_number(self, telegram_id: int) -> int | None:
        """Lowest name number the user has never been shown"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                "SELECT name_number FROM name_progress WHERE telegram_id = ?",
                (telegram_id,),
            )
            seen = {row["name_number"] for row in cursor.fetchall()}

        for number in range(1, TOTAL_NAMES + 1):
            if number not in seen:
                return number
        return None

    def reset(self, telegram_id: int) -> int:
        """Delete all progress and daily introductions of a user in one transaction.

        Settings are kept. Returns the number of progress rows removed.
        """
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute("DELETE FROM name_progress WHERE telegram_id = ?", (telegram_id,))
            removed = cursor.rowcount
            conn.execute("DELETE FROM daily_names WHERE telegram_id = ?", (telegram_id,))
            conn.commit()

        logger.info(f"Reset progress for user {telegram_id}: {removed} names cleared")
        return removed

    def _fetch(self, conn, telegram_id: int, name_number: int) -> NameProgress | None:
        row = conn.execute(
            """
            SELECT * FROM name_progress
            WHERE telegram_id = ? AND name_number = ?
            """,
            (telegram_id, name_number),
        ).fetchone()
        return self._row_to_progress(row) if row else None

    @staticmethod
    def _row_to_progress(row) -> NameProgress:
        progress = dict(row)
        progress["is_learned"] = bool(progress["is_learned"])
        return progress
