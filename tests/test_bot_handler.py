"""
Tests for bot wiring: authorization, safe messaging and reminders
"""

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import BadRequest, Forbidden, NetworkError

from names_bot.bot_handler import BotHandler
from names_bot.config import Settings
from names_bot.core.database.database_manager import DatabaseManager
from names_bot.core.exceptions import StorageError
from names_bot.name_catalog import NameCatalog

NAMES_FILE = Path(__file__).resolve().parent.parent / "data" / "names.json"
# 08:00 UTC, the first slot of the default window
MORNING = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def catalog():
    return NameCatalog.from_file(NAMES_FILE)


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(str(tmp_path / "bot.db"))
    manager.init_database()
    return manager


def make_handler(db_manager, catalog, allowed_users=""):
    settings = Settings(telegram_bot_token="test_token", allowed_users=allowed_users)
    return BotHandler(settings, db_manager=db_manager, catalog=catalog)


def make_update(user_id=321):
    update = MagicMock()
    update.effective_user.id = user_id
    update.effective_user.first_name = "Test"
    update.effective_user.last_name = None
    update.effective_user.username = "tester"
    update.effective_user.language_code = "ru"
    update.callback_query = None
    update.effective_message.reply_text = AsyncMock()
    return update


class TestAuthorization:
    """Allow-list handling"""

    def test_empty_list_allows_everyone(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog, allowed_users="")
        assert handler._is_user_authorized(321)
        assert handler._is_user_authorized(123)

    def test_allow_list(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog, allowed_users="321, 123")
        assert handler._is_user_authorized(321)
        assert handler._is_user_authorized(123)
        assert not handler._is_user_authorized(111)

    @pytest.mark.asyncio
    async def test_wrapper_registers_user(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog)
        inner = AsyncMock()
        update = make_update()

        await handler.require_authorization(inner)(update, MagicMock())

        inner.assert_awaited_once()
        user = db_manager.get_user_by_telegram_id(321)
        assert user["username"] == "tester"

    @pytest.mark.asyncio
    async def test_wrapper_blocks_unknown_user(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog, allowed_users="1")
        inner = AsyncMock()
        update = make_update(user_id=2)

        await handler.require_authorization(inner)(update, MagicMock())

        inner.assert_not_awaited()
        assert "нет доступа" in update.effective_message.reply_text.call_args.args[0]
        assert db_manager.get_user_by_telegram_id(2) is None

    @pytest.mark.asyncio
    async def test_wrapper_reports_domain_errors(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog)
        inner = AsyncMock(side_effect=StorageError("disk full"))
        update = make_update()

        await handler.require_authorization(inner)(update, MagicMock())

        assert "Что-то пошло не так" in update.effective_message.reply_text.call_args.args[0]

    @pytest.mark.asyncio
    async def test_wrapper_propagates_other_errors(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog)
        inner = AsyncMock(side_effect=RuntimeError("bug"))

        with pytest.raises(RuntimeError):
            await handler.require_authorization(inner)(make_update(), MagicMock())


class TestSafeMessaging:
    """Reply and edit helpers"""

    @pytest.fixture
    def handler(self, db_manager, catalog):
        return make_handler(db_manager, catalog)

    @pytest.mark.asyncio
    async def test_safe_reply_to_update(self, handler):
        update = make_update()
        sent = MagicMock(message_id=5)
        update.effective_message.reply_text.return_value = sent

        assert await handler._safe_reply(update, "hi", parse_mode="HTML") is sent
        update.effective_message.reply_text.assert_awaited_once_with("hi", parse_mode="HTML")

    @pytest.mark.asyncio
    async def test_safe_reply_to_message(self, handler):
        message = MagicMock(spec=["reply_text"])
        message.reply_text = AsyncMock(return_value="sent")

        assert await handler._safe_reply(message, "hi") == "sent"

    @pytest.mark.asyncio
    async def test_safe_reply_failure_returns_none(self, handler):
        update = make_update()
        update.effective_message.reply_text.side_effect = NetworkError("down")

        assert await handler._safe_reply(update, "hi") is None

    @pytest.mark.asyncio
    async def test_safe_edit_skips_identical_text(self, handler):
        query = MagicMock()
        query.message.text = "same"
        query.edit_message_text = AsyncMock()

        result = await handler._safe_edit(query, "same")

        assert result is query.message
        query.edit_message_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_safe_edit_ignores_not_modified(self, handler):
        query = MagicMock()
        query.message.text = "📊 Ваш прогресс"
        query.edit_message_text = AsyncMock(
            side_effect=BadRequest("Message is not modified: specified new message content")
        )

        result = await handler._safe_edit(query, "<b>📊 Ваш прогресс</b>", parse_mode="HTML")

        assert result is query.message

    @pytest.mark.asyncio
    async def test_safe_edit_other_errors_return_none(self, handler):
        query = MagicMock()
        query.message.text = "old"
        query.edit_message_text = AsyncMock(side_effect=BadRequest("Message to edit not found"))

        assert await handler._safe_edit(query, "new") is None


class TestReminders:
    """Reminder delivery and de-duplication"""

    @pytest.fixture
    def handler(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog)
        handler.application = MagicMock()
        handler.application.bot.send_message = AsyncMock(
            side_effect=lambda chat_id, **kwargs: MagicMock(chat_id=chat_id, message_id=100)
        )
        handler.application.bot.delete_message = AsyncMock()
        return handler

    @pytest.mark.asyncio
    async def test_sends_to_active_users_with_reminders(self, handler, db_manager):
        db_manager.ensure_user(1)
        db_manager.ensure_user(2)
        db_manager.ensure_user(3)
        db_manager.update_settings(2, reminders_enabled=False)
        db_manager.deactivate_user(3)

        await handler._send_reminders(MORNING)

        chat_ids = [
            call.kwargs["chat_id"]
            for call in handler.application.bot.send_message.call_args_list
        ]
        assert chat_ids == [1]
        record, found = handler.reminder_tracker.get(1)
        assert found
        assert record.message_id == 100
        handler.application.bot.delete_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_previous_reminder_is_deleted(self, handler, db_manager):
        db_manager.ensure_user(1)
        handler.reminder_tracker.store(1, chat_id=1, message_id=50)

        await handler._send_reminders(MORNING)

        handler.application.bot.delete_message.assert_awaited_once_with(
            chat_id=1, message_id=50
        )
        assert handler.reminder_tracker.get(1)[0].message_id == 100

    @pytest.mark.asyncio
    async def test_blocked_user_is_deactivated(self, handler, db_manager):
        db_manager.ensure_user(1)
        handler.application.bot.send_message = AsyncMock(side_effect=Forbidden("blocked"))

        await handler._send_reminders(MORNING)

        assert db_manager.get_all_active_users() == []
        assert handler.reminder_tracker.get(1) == (None, False)

    @pytest.mark.asyncio
    async def test_reminder_prefers_names_to_review(self, handler, db_manager, catalog):
        db_manager.ensure_user(1)
        db_manager.record_answer(1, 42, False)

        await handler._send_reminders(MORNING)

        text = handler.application.bot.send_message.call_args.kwargs["text"]
        assert catalog.by_number(42).transliteration in text

    @pytest.mark.asyncio
    async def test_skips_users_outside_their_slot(self, handler, db_manager):
        db_manager.ensure_user(1)
        db_manager.ensure_user(2)
        db_manager.update_settings(2, reminder_interval_hours=3)

        await handler._send_reminders(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

        chat_ids = [
            call.kwargs["chat_id"]
            for call in handler.application.bot.send_message.call_args_list
        ]
        assert chat_ids == [1]

    @pytest.mark.asyncio
    async def test_uses_user_timezone(self, handler, db_manager):
        db_manager.ensure_user(1)
        db_manager.ensure_user(2)
        db_manager.update_settings(2, timezone="UTC+3")

        # 05:00 UTC is 08:00 in UTC+3 and outside the window in UTC
        await handler._send_reminders(datetime(2024, 1, 1, 5, 0, tzinfo=timezone.utc))

        chat_ids = [
            call.kwargs["chat_id"]
            for call in handler.application.bot.send_message.call_args_list
        ]
        assert chat_ids == [2]

    @pytest.mark.asyncio
    async def test_respects_user_window(self, handler, db_manager):
        db_manager.ensure_user(1)
        db_manager.update_settings(1, reminder_start_hour=18, reminder_end_hour=22)

        await handler._send_reminders(MORNING)
        handler.application.bot.send_message.assert_not_awaited()

        await handler._send_reminders(datetime(2024, 1, 1, 18, 0, tzinfo=timezone.utc))
        handler.application.bot.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_users(self, handler):
        await handler._send_reminders(MORNING)
        handler.application.bot.send_message.assert_not_awaited()


class TestApplicationWiring:
    """Handlers are registered on the application"""

    def test_build_application_registers_commands(self, db_manager, catalog):
        handler = make_handler(db_manager, catalog)

        app = handler.build_application()

        commands = {
            command
            for group in app.handlers.values()
            for registered in group
            for command in getattr(registered, "commands", ())
        }
        assert {
            "start", "help", "name", "random", "next", "all",
            "quiz", "progress", "settings", "learned", "reminders",
            "today", "timezone", "reset",
        } <= commands
