"""
In-memory registry of active quiz sessions
"""

import threading

from ...name_catalog import Name


class QuizSessionRegistry:
    """Maps a quiz session to its questions and the message showing them.

    A single lock guards both maps and is held only for the dict
    operation. Absence of a session is a normal state: lookups return an
    empty list or ``(None, False)`` instead of raising.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._questions: dict[int, list[Name]] = {}
        self._message_ids: dict[int, int] = {}

    def store(self, session_id: int, questions: list[Name]) -> None:
        """Replace the question set for a session"""
        with self._lock:
            self._questions[session_id] = list(questions)

    def get(self, session_id: int) -> list[Name]:
        """Get the question set, empty when there is no active quiz"""
        with self._lock:
            return list(self._questions.get(session_id, ()))

    def has_session(self, session_id: int) -> bool:
        """Check whether a quiz is active for the session"""
        with self._lock:
            return session_id in self._questions

    def delete_session(self, session_id: int) -> None:
        """Drop questions and the tracked message of a session"""
        with self._lock:
            self._questions.pop(session_id, None)
            self._message_ids.pop(session_id, None)

    def store_message_id(self, session_id: int, message_id: int) -> None:
        """Remember which message shows the active question"""
        with self._lock:
            self._message_ids[session_id] = message_id

    def get_message_id(self, session_id: int) -> tuple[int | None, bool]:
        """Get the tracked message; ``found`` is False if there is nothing to edit"""
        with self._lock:
            if session_id in self._message_ids:
                return self._message_ids[session_id], True
            return None, False

    def delete_message_id(self, session_id: int) -> None:
        """Forget the tracked message but keep the questions"""
        with self._lock:
            self._message_ids.pop(session_id, None)

    def active_sessions_count(self) -> int:
        """Get number of active quiz sessions"""
        with self._lock:
            return len(self._questions)
