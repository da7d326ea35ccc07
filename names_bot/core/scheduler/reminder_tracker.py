"""
Tracks the last reminder message sent to each user
"""

import threading
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ReminderRecord:
    """Where and when the last reminder was posted"""

    chat_id: int
    message_id: int
    sent_at: datetime


class ReminderTracker:
    """One reminder record per user, overwritten on every new reminder.

    ``upsert_and_get_prev`` reads and replaces under the same lock so two
    overlapping deliveries for one user can never both see "no previous
    reminder" and leave a duplicate message in the chat.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._records: dict[int, ReminderRecord] = {}

    def store(self, user_id: int, chat_id: int, message_id: int) -> None:
        """Overwrite the user's record, stamped with the current time"""
        record = ReminderRecord(chat_id=chat_id, message_id=message_id, sent_at=datetime.now())
        with self._lock:
            self._records[user_id] = record

    def get(self, user_id: int) -> tuple[ReminderRecord | None, bool]:
        """Get the user's last reminder"""
        with self._lock:
            record = self._records.get(user_id)
        return record, record is not None

    def upsert_and_get_prev(
        self, user_id: int, chat_id: int, message_id: int
    ) -> tuple[ReminderRecord | None, bool]:
        """Replace the record and return the one it replaced"""
        record = ReminderRecord(chat_id=chat_id, message_id=message_id, sent_at=datetime.now())
        with self._lock:
            previous = self._records.get(user_id)
            self._records[user_id] = record
        return previous, previous is not None

    def delete(self, user_id: int) -> None:
        """Forget the user's reminder"""
        with self._lock:
            self._records.pop(user_id, None)
