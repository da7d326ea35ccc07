"""
Daily name repository: which names a user was introduced to on which day
"""

import logging
from datetime import date, datetime

from ..connection import DatabaseConnection
from .progress_repository import validate_name_number

logger = logging.getLogger(__name__)


class DailyNameRepository:
    """Per-day introduction log that backs the names-per-day limit.

    Days are the user's local calendar dates, stored as ISO strings.
    """

    def __init__(self, db_connection: DatabaseConnection):
        self.db_connection = db_connection

    def get_names_for_day(self, telegram_id: int, day: date) -> list[int]:
        """Names introduced on ``day`` in introduction order"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                """
                SELECT name_number FROM daily_names
                WHERE telegram_id = ? AND day = ?
                ORDER BY slot_index
                """,
                (telegram_id, day.isoformat()),
            )
            return [row["name_number"] for row in cursor.fetchall()]

    def add_name(self, telegram_id: int, day: date, name_number: int, daily_limit: int) -> bool:
        """Introduce a name on ``day`` unless the limit is already reached.

        The count check and the insert are one statement, so two concurrent
        calls cannot both take the last free slot. Returns True if the name
        was added.
        """
        validate_name_number(name_number)
        day_key = day.isoformat()

        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO daily_names (
                    telegram_id, day, slot_index, name_number, created_at
                )
                SELECT ?, ?,
                    (SELECT COUNT(*) FROM daily_names WHERE telegram_id = ? AND day = ?),
                    ?, ?
                WHERE (SELECT COUNT(*) FROM daily_names WHERE telegram_id = ? AND day = ?) < ?
                """,
                (
                    telegram_id,
                    day_key,
                    telegram_id,
                    day_key,
                    name_number,
                    datetime.now(),
                    telegram_id,
                    day_key,
                    daily_limit,
                ),
            )
            conn.commit()
            added = cursor.rowcount > 0

        if added:
            logger.info(f"User {telegram_id} introduced to name {name_number} on {day_key}")
        return added

