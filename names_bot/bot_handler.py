"""
Telegram bot handler wiring commands, callbacks and reminders together
"""

import logging
from datetime import datetime
from functools import wraps

from telegram import BotCommand, Update
from telegram.error import BadRequest, Forbidden, TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .config import get_settings
from .core.database.database_manager import get_db_manager
from .core.exceptions import NamesBotError
from .core.handlers.command_handlers import CommandHandlers
from .core.handlers.message_handlers import MessageHandlers
from .core.handlers.views import reminder_keyboard
from .core.scheduler.reminder_scheduler import ReminderScheduler, is_reminder_due
from .core.scheduler.reminder_tracker import ReminderTracker
from .core.session.quiz_session_manager import QuizSessionManager
from .core.session.quiz_session_registry import QuizSessionRegistry
from .name_catalog import get_name_catalog
from .progress_presenter import format_reminder_message
from .quiz import QuizBuilder
from .utils import truncate_text

logger = logging.getLogger(__name__)


class BotHandler:
    """Main Telegram bot handler"""

    def __init__(self, settings=None, db_manager=None, catalog=None):
        self.settings = settings or get_settings()
        self.db_manager = db_manager or get_db_manager()
        self.catalog = catalog or get_name_catalog(self.settings.names_file)
        self.quiz_registry = QuizSessionRegistry()
        self.reminder_tracker = ReminderTracker()
        self.reminder_scheduler = ReminderScheduler(self._send_reminders)

        self.application = None

        self.session_manager = QuizSessionManager(
            db_manager=self.db_manager,
            quiz_builder=QuizBuilder(self.db_manager, self.catalog),
            registry=self.quiz_registry,
            safe_reply_callback=self._safe_reply,
            safe_edit_callback=self._safe_edit,
        )

        self.command_handlers = CommandHandlers(
            db_manager=self.db_manager,
            catalog=self.catalog,
            session_manager=self.session_manager,
            safe_reply_callback=self._safe_reply,
        )

        self.message_handlers = MessageHandlers(
            db_manager=self.db_manager,
            catalog=self.catalog,
            session_manager=self.session_manager,
            reminder_tracker=self.reminder_tracker,
            safe_reply_callback=self._safe_reply,
            safe_edit_callback=self._safe_edit,
            show_name_callback=self.command_handlers.show_name_by_number,
        )

    def _is_user_authorized(self, user_id: int) -> bool:
        """Check if user is authorized; an empty allow-list admits everyone"""
        allowed = self.settings.allowed_users_list
        if not allowed:
            return True
        return user_id in allowed

    async def _check_authorization(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> bool:
        """Check if user is authorized and send unauthorized message if not"""
        user_id = update.effective_user.id

        if not self._is_user_authorized(user_id):
            if update.callback_query:
                await update.callback_query.answer("❌ Нет доступа")
            else:
                await self._safe_reply(
                    update,
                    "❌ У вас нет доступа к этому боту. Обратитесь к администратору.",
                )
            logger.warning(f"Unauthorized access attempt from user {user_id}")
            return False

        return True

    def require_authorization(self, func):
        """Decorator: authorize, register the user and report domain errors"""

        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
            if not update.effective_user:
                return
            if not await self._check_authorization(update, context):
                return

            user = update.effective_user
            try:
                self.db_manager.ensure_user(
                    telegram_id=user.id,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    username=user.username,
                    language_code=user.language_code,
                )
                return await func(update, context)
            except NamesBotError as e:
                logger.error(f"Error handling update for user {user.id}: {e}")
                if update.effective_message:
                    await self._safe_reply(
                        update,
                        "⚠️ Что-то пошло не так. Попробуйте ещё раз позже.",
                    )

        return wrapper

    def build_application(self) -> Application:
        """Create the telegram application with all handlers"""
        self.application = (
            Application.builder()
            .token(self.settings.telegram_bot_token)
            .read_timeout(30)
            .write_timeout(30)
            .connect_timeout(30)
            .pool_timeout(30)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )
        self._add_handlers()
        return self.application

    def run(self):
        """Run the bot (blocks until stopped)"""
        logger.info("Starting 99 Names Bot...")

        self.db_manager.init_database()
        self.build_application()

        logger.info("Bot started successfully!")
        self.application.run_polling(
            poll_interval=self.settings.polling_interval,
            timeout=10,
            bootstrap_retries=3,
        )

    def _add_handlers(self):
        """Add command and message handlers"""
        app = self.application
        commands = {
            "start": self.command_handlers.start_command,
            "help": self.command_handlers.help_command,
            "name": self.command_handlers.name_command,
            "random": self.command_handlers.random_command,
            "next": self.command_handlers.next_command,
            "today": self.command_handlers.today_command,
            "all": self.command_handlers.all_command,
            "quiz": self.command_handlers.quiz_command,
            "progress": self.command_handlers.progress_command,
            "settings": self.command_handlers.settings_command,
            "learned": self.command_handlers.learned_command,
            "reminders": self.command_handlers.reminders_command,
            "timezone": self.command_handlers.timezone_command,
            "reset": self.command_handlers.reset_command,
        }
        for command, callback in commands.items():
            app.add_handler(CommandHandler(command, self.require_authorization(callback)))

        app.add_handler(
            MessageHandler(
                filters.TEXT & ~filters.COMMAND,
                self.require_authorization(self.message_handlers.handle_message),
            )
        )
        app.add_handler(
            CallbackQueryHandler(
                self.require_authorization(self.message_handlers.handle_callback_query)
            )
        )

        app.add_error_handler(self.error_handler)

    async def _post_init(self, application):
        await self.setup_bot_menu(application)
        if self.settings.reminder_enabled:
            await self.reminder_scheduler.start()

    async def _post_shutdown(self, application):
        await self.reminder_scheduler.stop()

    async def setup_bot_menu(self, application):
        """Setup bot menu with commands for better UX"""
        commands = [
            BotCommand("next", "🆕 Следующее имя"),
            BotCommand("today", "📚 Имена на сегодня"),
            BotCommand("quiz", "🧠 Квиз"),
            BotCommand("progress", "📊 Прогресс"),
            BotCommand("random", "🎲 Случайное имя"),
            BotCommand("all", "📜 Все имена"),
            BotCommand("settings", "⚙️ Настройки"),
            BotCommand("reminders", "🔔 Напоминания"),
            BotCommand("timezone", "🌍 Часовой пояс"),
            BotCommand("reset", "🗑 Сбросить прогресс"),
            BotCommand("help", "❓ Справка"),
        ]

        try:
            await application.bot.set_my_commands(commands)
            logger.info("Bot menu commands set successfully")
        except TelegramError as e:
            logger.error(f"Failed to set bot menu commands: {e}")

    async def _safe_reply(self, update_or_message, text: str, **kwargs):
        """Safely send a reply message"""
        try:
            logger.debug(f"_safe_reply called with text: {truncate_text(text, 50)}")
            if hasattr(update_or_message, "effective_message"):
                # It's an Update object
                message = await update_or_message.effective_message.reply_text(text, **kwargs)
            else:
                message = await update_or_message.reply_text(text, **kwargs)
            return message
        except TelegramError as e:
            logger.error(f"Error sending reply: {e}")
            logger.error(f"Failed text: {truncate_text(text)}")
            return None

    async def _safe_edit(self, query, text: str, **kwargs):
        """Safely edit the message behind a callback query.

        Editing to the text the message already shows is a no-op.
        """
        message = query.message
        if message is not None and message.text == text and "reply_markup" not in kwargs:
            logger.debug("Message content is identical, skipping edit")
            return message

        try:
            return await query.edit_message_text(text, **kwargs)
        except BadRequest as e:
            if "message is not modified" in str(e).lower():
                logger.debug("Message not modified, skipping edit")
                return message
            logger.error(f"Error editing message: {e}")
            return None
        except TelegramError as e:
            logger.error(f"Error editing message: {e}")
            return None

    def _pick_reminder_name(self, user_id: int):
        numbers = self.db_manager.get_review_numbers(user_id, 1)
        if not numbers:
            numbers = self.db_manager.get_unlearned_numbers(user_id, 1, viewed_only=True)
        if numbers:
            return self.catalog.by_number(numbers[0])
        return self.catalog.random()

    async def _send_reminders(self, now: datetime):
        """Send a reminder to every active user whose schedule has a slot at ``now``.

        The previous reminder of a user is deleted once the new one is out,
        so a chat never holds more than one reminder.
        """
        active_users = self.db_manager.get_all_active_users()
        if not active_users:
            logger.info("No active users found for reminders")
            return

        successful_sends = 0
        failed_sends = 0

        for user in active_users:
            user_id = user["telegram_id"]
            settings = self.db_manager.get_settings(user_id)
            if not settings["reminders_enabled"]:
                continue
            if not is_reminder_due(
                now,
                settings["timezone"],
                settings["reminder_start_hour"],
                settings["reminder_end_hour"],
                settings["reminder_interval_hours"],
            ):
                continue

            if await self._send_reminder(user_id, settings["names_per_day"]):
                successful_sends += 1
            else:
                failed_sends += 1

        logger.info(
            f"Reminders sent: {successful_sends} successful, "
            f"{failed_sends} failed out of {len(active_users)} users"
        )

    async def _send_reminder(self, user_id: int, names_per_day: int) -> bool:
        name = self._pick_reminder_name(user_id)
        summary = self.db_manager.get_summary(user_id, names_per_day)
        bot = self.application.bot

        try:
            message = await bot.send_message(
                chat_id=user_id,
                text=format_reminder_message(name, summary),
                parse_mode="HTML",
                reply_markup=reminder_keyboard(),
            )
        except Forbidden:
            logger.warning(f"User {user_id} blocked the bot, deactivating")
            self.db_manager.deactivate_user(user_id)
            self.reminder_tracker.delete(user_id)
            return False
        except TelegramError as e:
            logger.error(f"Failed to send reminder to user {user_id}: {e}")
            return False

        previous, had_previous = self.reminder_tracker.upsert_and_get_prev(
            user_id, message.chat_id, message.message_id
        )
        if had_previous:
            try:
                await bot.delete_message(chat_id=previous.chat_id, message_id=previous.message_id)
            except TelegramError as e:
                logger.debug(f"Could not delete old reminder {previous.message_id}: {e}")

        logger.debug(f"Reminder sent to user {user_id}")
        return True

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors"""
        logger.error(f"Update {update} caused error {context.error}", exc_info=context.error)
