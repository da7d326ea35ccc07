"""
Database connection manager for the 99 Names bot
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path

from ...config import get_database_path
from ..exceptions import StorageError

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 30


def _adapt_datetime(val):
    return val.isoformat()


def _convert_datetime(val):
    try:
        return datetime.fromisoformat(val.decode())
    except ValueError:
        datetime_str = val.decode()
        for fmt in ["%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f", "%Y-%m-%d"]:
            try:
                return datetime.strptime(datetime_str, fmt)
            except ValueError:
                continue
        raise ValueError(f"Invalid datetime format: {datetime_str}") from None


def _convert_boolean(val):
    return val not in (b"0", b"", b"false", b"False")


sqlite3.register_adapter(date, _adapt_datetime)
sqlite3.register_adapter(datetime, _adapt_datetime)
sqlite3.register_converter("timestamp", _convert_datetime)
sqlite3.register_converter("boolean", _convert_boolean)


class DatabaseConnection:
    """Manages SQLite database connections and schema"""

    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or get_database_path()
        self._ensure_database_directory()
        self._init_connection_settings()

    def _ensure_database_directory(self) -> None:
        """Ensure the database directory exists"""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    def _init_connection_settings(self) -> None:
        """Initialize persistent database settings"""
        with self.get_connection() as conn:
            # WAL lets readers proceed while an answer is being written
            conn.execute("PRAGMA journal_mode=WAL")

    @contextmanager
    def get_connection(self):
        """Get database connection with proper cleanup.

        Driver errors are re-raised as StorageError; everything else
        propagates unchanged.
        """
        conn = None
        try:
            conn = sqlite3.connect(
                self.db_path,
                detect_types=sqlite3.PARSE_DECLTYPES,
                timeout=BUSY_TIMEOUT_SECONDS,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys=ON")
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            logger.error(f"Database error: {e}")
            raise StorageError(str(e)) from e
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                conn.close()

    def init_database(self) -> None:
        """Initialize database tables"""
        with self.get_connection() as conn:
            self._create_tables(conn)
            self._run_migrations(conn)
            self._create_indexes(conn)
            conn.commit()

    def _create_tables(self, conn: sqlite3.Connection) -> None:
        """Create database tables"""
        tables = [
            """
            CREATE TABLE IF NOT EXISTS users (
                telegram_id INTEGER PRIMARY KEY,
                first_name TEXT,
                last_name TEXT,
                username TEXT,
                language_code TEXT,
                is_active BOOLEAN DEFAULT 1,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS name_progress (
                telegram_id INTEGER NOT NULL,
                name_number INTEGER NOT NULL CHECK (name_number BETWEEN 1 AND 99),
                is_learned BOOLEAN NOT NULL DEFAULT 0,
                correct_count INTEGER NOT NULL DEFAULT 0,
                review_count INTEGER NOT NULL DEFAULT 0,
                last_reviewed_at TIMESTAMP,
                first_seen_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (telegram_id, name_number),
                FOREIGN KEY (telegram_id) REFERENCES users(telegram_id) ON DELETE CASCADE
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS user_settings (
                telegram_id INTEGER PRIMARY KEY,
                names_per_day INTEGER NOT NULL DEFAULT 1,
                quiz_mode TEXT NOT NULL DEFAULT 'mixed',
                learning_mode TEXT NOT NULL DEFAULT 'guided',
                quiz_length INTEGER NOT NULL DEFAULT 5,
                reminders_enabled BOOLEAN NOT NULL DEFAULT 1,
                reminder_interval_hours INTEGER NOT NULL DEFAULT 4,
                reminder_start_hour INTEGER NOT NULL DEFAULT 8,
                reminder_end_hour INTEGER NOT NULL DEFAULT 20,
                timezone TEXT NOT NULL DEFAULT 'UTC',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (telegram_id) REFERENCES users(telegram_id) ON DELETE CASCADE
            )
            """,
            """
            CREATE TABLE IF NOT EXISTS daily_names (
                telegram_id INTEGER NOT NULL,
                day TEXT NOT NULL,
                slot_index INTEGER NOT NULL,
                name_number INTEGER NOT NULL CHECK (name_number BETWEEN 1 AND 99),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (telegram_id, day, slot_index),
                UNIQUE (telegram_id, day, name_number),
                FOREIGN KEY (telegram_id) REFERENCES users(telegram_id) ON DELETE CASCADE
            )
            """,
        ]

        for table_sql in tables:
            conn.execute(table_sql)

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create database indexes for performance"""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_name_progress_learned "
            "ON name_progress(telegram_id, is_learned)",
            "CREATE INDEX IF NOT EXISTS idx_name_progress_reviewed "
            "ON name_progress(telegram_id, last_reviewed_at)",
            "CREATE INDEX IF NOT EXISTS idx_users_active ON users(is_active)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def _run_migrations(self, conn: sqlite3.Connection) -> None:
        """Add columns introduced after the first schema version"""
        cursor = conn.execute("PRAGMA table_info(user_settings)")
        settings_columns = {row[1] for row in cursor.fetchall()}

        if "quiz_length" not in settings_columns:
            logger.info("Adding missing quiz_length column to user_settings table")
            conn.execute(
                "ALTER TABLE user_settings ADD COLUMN quiz_length INTEGER NOT NULL DEFAULT 5"
            )

        if "reminders_enabled" not in settings_columns:
            logger.info("Adding missing reminders_enabled column to user_settings table")
            conn.execute(
                "ALTER TABLE user_settings ADD COLUMN reminders_enabled "
                "BOOLEAN NOT NULL DEFAULT 1"
            )

        reminder_columns = {
            "reminder_interval_hours": "INTEGER NOT NULL DEFAULT 4",
            "reminder_start_hour": "INTEGER NOT NULL DEFAULT 8",
            "reminder_end_hour": "INTEGER NOT NULL DEFAULT 20",
            "timezone": "TEXT NOT NULL DEFAULT 'UTC'",
        }
        for column, definition in reminder_columns.items():
            if column not in settings_columns:
                logger.info(f"Adding missing {column} column to user_settings table")
                conn.execute(f"ALTER TABLE user_settings ADD COLUMN {column} {definition}")

        cursor = conn.execute("PRAGMA table_info(name_progress)")
        progress_columns = {row[1] for row in cursor.fetchall()}

        if "review_count" not in progress_columns:
            logger.info("Adding missing review_count column to name_progress table")
            conn.execute(
                "ALTER TABLE name_progress ADD COLUMN review_count INTEGER NOT NULL DEFAULT 0"
            )
