"""
User repository for database operations
"""

import logging
from datetime import datetime

from ..connection import DatabaseConnection
from ..models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user-related database operations"""

    def __init__(self, db_connection: DatabaseConnection):
        self.db_connection = db_connection

    def ensure_user(
        self,
        telegram_id: int,
        first_name: str | None = None,
        last_name: str | None = None,
        username: str | None = None,
        language_code: str | None = None,
    ) -> User:
        """Create the user or refresh profile fields; idempotent"""
        now = datetime.now()
        with self.db_connection.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO users (
                    telegram_id, first_name, last_name, username, language_code,
                    is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT (telegram_id) DO UPDATE SET
                    first_name = COALESCE(excluded.first_name, users.first_name),
                    last_name = COALESCE(excluded.last_name, users.last_name),
                    username = COALESCE(excluded.username, users.username),
                    language_code = COALESCE(excluded.language_code, users.language_code),
                    is_active = 1,
                    updated_at = excluded.updated_at
                """,
                (telegram_id, first_name, last_name, username, language_code, now, now),
            )
            conn.commit()

            row = conn.execute(
                "SELECT * FROM users WHERE telegram_id = ?", (telegram_id,)
            ).fetchone()
            return dict(row)

    def get_user_by_telegram_id(self, telegram_id: int) -> User | None:
        """Get user by Telegram ID"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                "SELECT * FROM users WHERE telegram_id = ?",
                (telegram_id,)
            )
            row = cursor.fetchone()
            return dict(row) if row else None

    def get_all_active_users(self) -> list[User]:
        """Get all users that still receive reminders"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute("SELECT * FROM users WHERE is_active = 1")
            return [dict(row) for row in cursor.fetchall()]

    def deactivate_user(self, telegram_id: int) -> bool:
        """Deactivate a user (e.g. after the bot was blocked)"""
        with self.db_connection.get_connection() as conn:
            cursor = conn.execute(
                "UPDATE users SET is_active = 0, updated_at = ? WHERE telegram_id = ?",
                (datetime.now(), telegram_id)
            )
            conn.commit()
            if cursor.rowcount > 0:
                logger.info(f"Deactivated user {telegram_id}")
            return cursor.rowcount > 0
