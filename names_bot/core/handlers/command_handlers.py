"""
Command handlers for the 99 Names bot
"""

import logging
from html import escape

from telegram import Update
from telegram.ext import ContextTypes

from ...name_catalog import Name, NameCatalog
from ...progress_presenter import format_bool, format_name_card, format_today_message
from ...utils import local_date, safe_int
from ..database.database_manager import DatabaseManager
from ..database.models import TOTAL_NAMES
from ..exceptions import InvalidInputError, NotFoundError
from ..session.quiz_session_manager import QuizSessionManager
from .views import (
    render_names_page,
    render_progress,
    render_reminder_settings,
    render_settings,
    reset_keyboard,
)

logger = logging.getLogger(__name__)

HELP_MESSAGE = f"""📖 <b>Справка по командам</b>

📜 <b>Имена:</b>
/name &lt;номер&gt; - Показать имя по номеру (1-{TOTAL_NAMES})
/random - Случайное имя
/next - Следующее новое имя (с учётом лимита в день)
/today - Имена, открытые сегодня
/all - Список всех имён

🧠 <b>Обучение:</b>
/quiz - Начать квиз
/learned &lt;номер&gt; - Отметить имя как выученное

📊 <b>Прогресс и настройки:</b>
/progress - Ваш прогресс
/settings - Темп, длина квиза и режимы
/reminders - Включить или выключить напоминания
/timezone &lt;пояс&gt; - Часовой пояс, например <code>Europe/Moscow</code> или <code>UTC+3</code>
/reset - Сбросить прогресс

💡 Можно просто отправить номер имени, например <code>7</code>."""


class CommandHandlers:
    """Handles all bot commands"""

    def __init__(
        self,
        db_manager: DatabaseManager,
        catalog: NameCatalog,
        session_manager: QuizSessionManager,
        safe_reply_callback,
    ):
        self.db_manager = db_manager
        self.catalog = catalog
        self.session_manager = session_manager
        self._safe_reply = safe_reply_callback

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /start command"""
        if not update.effective_user:
            return

        user = update.effective_user
        self.db_manager.get_settings(user.id)

        welcome_message = f"""🎉 Ас-саляму алейкум, {user.first_name or "друг"}!

Я помогу выучить 99 прекрасных имён.

🔤 <b>Как начать:</b>
1. Откройте первое имя командой /next
2. Закрепляйте имена в квизе /quiz
3. Следите за прогрессом в /progress

Темп и режимы меняются в /settings, полный список команд в /help."""

        await self._safe_reply(update, welcome_message, parse_mode="HTML")

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /help command"""
        if not update.effective_user:
            return
        await self._safe_reply(update, HELP_MESSAGE, parse_mode="HTML")

    async def name_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /name <number> command"""
        if not update.effective_user:
            return

        number = safe_int(context.args[0]) if context.args else None
        if number is None:
            await self._safe_reply(
                update, f"Укажите номер имени: /name 1 … /name {TOTAL_NAMES}"
            )
            return

        await self.show_name_by_number(update, update.effective_user.id, number)

    async def show_name_by_number(self, update: Update, user_id: int, number: int):
        """Show a name card or explain the valid range"""
        try:
            name = self.catalog.by_number(number)
        except NotFoundError:
            await self._safe_reply(
                update, f"❌ Имени с номером {number} нет. Введите число от 1 до {TOTAL_NAMES}."
            )
            return
        await self._show_name(update, user_id, name)

    async def random_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /random command"""
        if not update.effective_user:
            return
        await self._show_name(update, update.effective_user.id, self.catalog.random())

    async def next_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /next command: introduce the next unseen name within the daily limit"""
        if not update.effective_user:
            return

        user_id = update.effective_user.id
        settings = self.db_manager.get_settings(user_id)
        names_per_day = settings["names_per_day"]
        today = local_date(settings["timezone"])

        if len(self.db_manager.get_today_names(user_id, today)) >= names_per_day:
            await self._reply_daily_limit(update, names_per_day)
            return

        number = self.db_manager.get_next_unseen_number(user_id)
        if number is None:
            await self._safe_reply(
                update,
                f"🌟 Вы уже открыли все {TOTAL_NAMES} имён! Повторяйте их в /quiz.",
            )
            return

        if not self.db_manager.introduce_name(user_id, today, number, names_per_day):
            await self._reply_daily_limit(update, names_per_day)
            return

        await self._show_name(update, user_id, self.catalog.by_number(number))

    async def today_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /today command: names introduced today"""
        if not update.effective_user:
            return

        user_id = update.effective_user.id
        settings = self.db_manager.get_settings(user_id)
        numbers = self.db_manager.get_today_names(user_id, local_date(settings["timezone"]))
        names = [self.catalog.by_number(number) for number in numbers]
        await self._safe_reply(
            update,
            format_today_message(names, settings["names_per_day"]),
            parse_mode="HTML",
        )

    async def all_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /all command"""
        if not update.effective_user:
            return

        text, markup = render_names_page(
            self.db_manager, self.catalog, update.effective_user.id, 0
        )
        await self._safe_reply(update, text, parse_mode="HTML", reply_markup=markup)

    async def quiz_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /quiz command"""
        if not update.effective_user:
            return
        await self.session_manager.start_quiz(update, update.effective_user.id)

    async def progress_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /progress command"""
        if not update.effective_user:
            return

        text, markup = render_progress(self.db_manager, update.effective_user.id)
        await self._safe_reply(update, text, parse_mode="HTML", reply_markup=markup)

    async def settings_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /settings command"""
        if not update.effective_user:
            return

        text, markup = render_settings(self.db_manager, update.effective_user.id)
        await self._safe_reply(update, text, parse_mode="HTML", reply_markup=markup)

    async def learned_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /learned <number> command"""
        if not update.effective_user:
            return

        number = safe_int(context.args[0]) if context.args else None
        if number is None or not 1 <= number <= TOTAL_NAMES:
            await self._safe_reply(
                update, f"Укажите номер выученного имени: /learned 1 … /learned {TOTAL_NAMES}"
            )
            return

        user_id = update.effective_user.id
        self.db_manager.mark_learned(user_id, number)
        name = self.catalog.by_number(number)
        summary = self.db_manager.get_summary(user_id)
        await self._safe_reply(
            update,
            f"🎓 Имя <b>{number}. {escape(name.transliteration)}</b> отмечено как выученное.\n"
            f"Выучено: <b>{summary.learned}</b> из {TOTAL_NAMES}",
            parse_mode="HTML",
        )

    async def reminders_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /reminders command: toggle reminders"""
        if not update.effective_user:
            return

        user_id = update.effective_user.id
        settings = self.db_manager.get_settings(user_id)
        settings = self.db_manager.update_settings(
            user_id, reminders_enabled=not settings["reminders_enabled"]
        )
        await self._safe_reply(
            update, f"🔔 Напоминания: {format_bool(settings['reminders_enabled'])}"
        )

    async def timezone_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /timezone [zone] command"""
        if not update.effective_user:
            return

        user_id = update.effective_user.id
        if context.args:
            try:
                self.db_manager.update_settings(user_id, timezone=" ".join(context.args))
            except InvalidInputError:
                await self._safe_reply(
                    update,
                    "❌ Не удалось распознать часовой пояс.\n"
                    "Примеры: <code>/timezone Europe/Moscow</code>, <code>/timezone UTC+3</code>",
                    parse_mode="HTML",
                )
                return

        text, markup = render_reminder_settings(self.db_manager, user_id)
        await self._safe_reply(update, text, parse_mode="HTML", reply_markup=markup)

    async def reset_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /reset command: ask before wiping progress"""
        if not update.effective_user:
            return

        await self._safe_reply(
            update,
            "⚠️ <b>Сбросить весь прогресс?</b>\n\n"
            "Будут удалены выученные имена, статистика ответов и история /today. "
            "Настройки сохранятся.",
            parse_mode="HTML",
            reply_markup=reset_keyboard(),
        )

    async def _reply_daily_limit(self, update: Update, names_per_day: int):
        await self._safe_reply(
            update,
            f"📚 Дневной лимит новых имён ({names_per_day}) исчерпан.\n\n"
            "Закрепите их в /quiz, посмотрите список в /today "
            "или увеличьте лимит в /settings.",
        )

    async def _show_name(self, update: Update, user_id: int, name: Name):
        self.db_manager.mark_viewed(user_id, name.number)
        progress = self.db_manager.get_progress(user_id, name.number)
        await self._safe_reply(update, format_name_card(name, progress), parse_mode="HTML")
