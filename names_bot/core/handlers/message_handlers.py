"""
Message and callback handlers for the 99 Names bot
"""

import logging

from telegram import Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ...name_catalog import NameCatalog
from ...utils import parse_inline_keyboard_data, safe_int
from ..database.database_manager import DatabaseManager
from ..exceptions import InvalidInputError
from ..scheduler.reminder_tracker import ReminderTracker
from ..session.quiz_session_manager import QuizSessionManager
from .views import (
    render_names_page,
    render_progress,
    render_reminder_settings,
    render_settings,
)

logger = logging.getLogger(__name__)

QUIZ_ACTIONS = {"quiz_answer", "quiz_next", "quiz_stop"}

# Callback action -> settings field it changes
SETTINGS_ACTIONS = {
    "set_pace": "names_per_day",
    "set_quiz_mode": "quiz_mode",
    "set_learning_mode": "learning_mode",
    "set_quiz_length": "quiz_length",
}

REMINDER_SETTINGS_ACTIONS = {
    "set_reminder_interval": "reminder_interval_hours",
    "set_timezone": "timezone",
}


def parse_reminder_window(value) -> dict:
    """Turn "8-12" into settings changes for the reminder window"""
    parts = str(value).split("-") if value is not None else []
    hours = [safe_int(part) for part in parts]
    if len(hours) != 2 or None in hours:
        raise InvalidInputError(f"Bad reminder window: {value!r}")
    return {"reminder_start_hour": hours[0], "reminder_end_hour": hours[1]}


class MessageHandlers:
    """Handles text messages and callback queries"""

    def __init__(
        self,
        db_manager: DatabaseManager,
        catalog: NameCatalog,
        session_manager: QuizSessionManager,
        reminder_tracker: ReminderTracker,
        safe_reply_callback,
        safe_edit_callback,
        show_name_callback,
    ):
        self.db_manager = db_manager
        self.catalog = catalog
        self.session_manager = session_manager
        self.reminder_tracker = reminder_tracker
        self._safe_reply = safe_reply_callback
        self._safe_edit = safe_edit_callback
        self._show_name_by_number = show_name_callback

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle plain text: a number opens that name"""
        if not update.message or not update.effective_user:
            return

        number = safe_int((update.message.text or "").strip())
        if number is not None:
            await self._show_name_by_number(update, update.effective_user.id, number)
            return

        await self._safe_reply(
            update,
            "📝 Отправьте номер имени или воспользуйтесь командами:\n"
            "/next - Следующее имя\n"
            "/quiz - Квиз\n"
            "/help - Справка",
        )

    async def handle_callback_query(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ):
        """Handle callback queries from inline keyboards"""
        if not update.callback_query or not update.effective_user:
            return

        query = update.callback_query
        await query.answer()

        data = parse_inline_keyboard_data(query.data)
        action = data.get("action")
        user_id = update.effective_user.id

        if action in QUIZ_ACTIONS:
            await self.session_manager.handle_quiz_callback(query, data)
        elif action == "progress":
            text, markup = render_progress(self.db_manager, user_id)
            await self._safe_edit(query, text, parse_mode="HTML", reply_markup=markup)
        elif action == "settings":
            await self._show_settings(query, user_id)
        elif action in SETTINGS_ACTIONS:
            await self._update_setting(
                query, user_id, {SETTINGS_ACTIONS[action]: data.get("value")}
            )
        elif action == "reminder_settings":
            await self._show_reminder_settings(query, user_id)
        elif action in REMINDER_SETTINGS_ACTIONS:
            await self._update_reminder_setting(
                query, user_id, {REMINDER_SETTINGS_ACTIONS[action]: data.get("value")}
            )
        elif action == "set_reminder_window":
            try:
                changes = parse_reminder_window(data.get("value"))
            except InvalidInputError as e:
                logger.warning(f"Rejected reminder window from user {user_id}: {e}")
                changes = {}
            await self._update_reminder_setting(query, user_id, changes)
        elif action == "toggle_reminders":
            settings = self.db_manager.get_settings(user_id)
            self.db_manager.update_settings(
                user_id, reminders_enabled=not settings["reminders_enabled"]
            )
            await self._show_settings(query, user_id)
        elif action == "all_page":
            text, markup = render_names_page(
                self.db_manager, self.catalog, user_id, safe_int(data.get("value"), 0)
            )
            await self._safe_edit(query, text, parse_mode="HTML", reply_markup=markup)
        elif action == "reminder_dismiss":
            await self._dismiss_reminder(query, user_id)
        elif action == "reminder_quiz":
            self.reminder_tracker.delete(user_id)
            await self.session_manager.start_quiz(query.message, user_id)
        elif action == "reset_confirm":
            await self._reset_progress(query, user_id)
        elif action == "reset_cancel":
            await self._safe_edit(query, "👌 Сброс отменён, прогресс сохранён.")
        else:
            logger.warning(f"Unhandled callback query: {query.data}")

    async def _show_settings(self, query, user_id: int):
        text, markup = render_settings(self.db_manager, user_id)
        await self._safe_edit(query, text, parse_mode="HTML", reply_markup=markup)

    async def _show_reminder_settings(self, query, user_id: int):
        text, markup = render_reminder_settings(self.db_manager, user_id)
        await self._safe_edit(query, text, parse_mode="HTML", reply_markup=markup)

    def _apply_settings(self, user_id: int, changes: dict):
        try:
            self.db_manager.update_settings(user_id, **changes)
        except InvalidInputError as e:
            logger.warning(f"Rejected settings change from user {user_id}: {e}")

    async def _update_setting(self, query, user_id: int, changes: dict):
        self._apply_settings(user_id, changes)
        await self._show_settings(query, user_id)

    async def _update_reminder_setting(self, query, user_id: int, changes: dict):
        self._apply_settings(user_id, changes)
        await self._show_reminder_settings(query, user_id)

    async def _reset_progress(self, query, user_id: int):
        removed = self.db_manager.reset_progress(user_id)
        self.session_manager.cancel_quiz(user_id)
        await self._safe_edit(
            query,
            f"🗑 Прогресс сброшен ({removed} имён). Начните заново с /next.",
        )

    async def _dismiss_reminder(self, query, user_id: int):
        self.reminder_tracker.delete(user_id)
        if query.message:
            try:
                await query.message.delete()
            except TelegramError as e:
                logger.warning(f"Failed to delete reminder for user {user_id}: {e}")
