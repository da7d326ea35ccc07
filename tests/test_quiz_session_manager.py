"""
Tests for the quiz flow inside one chat message
"""

import random
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from names_bot.core.database.database_manager import DatabaseManager
from names_bot.core.session.quiz_session_manager import QuizSessionManager
from names_bot.core.session.quiz_session_registry import QuizSessionRegistry
from names_bot.name_catalog import NameCatalog
from names_bot.quiz import QuizBuilder
from names_bot.utils import parse_inline_keyboard_data

NAMES_FILE = Path(__file__).resolve().parent.parent / "data" / "names.json"
USER_ID = 4242
QUIZ_MESSAGE_ID = 77


@pytest.fixture(scope="module")
def catalog():
    return NameCatalog.from_file(NAMES_FILE)


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(str(tmp_path / "flow.db"))
    manager.init_database()
    manager.ensure_user(USER_ID)
    manager.update_settings(USER_ID, quiz_length=3)
    for number in (1, 2, 3):
        manager.mark_viewed(USER_ID, number)
    return manager


@pytest.fixture
def registry():
    return QuizSessionRegistry()


@pytest.fixture
def safe_reply():
    return AsyncMock(return_value=MagicMock(message_id=QUIZ_MESSAGE_ID))


@pytest.fixture
def safe_edit():
    return AsyncMock()


@pytest.fixture
def manager(db_manager, catalog, registry, safe_reply, safe_edit):
    return QuizSessionManager(
        db_manager=db_manager,
        quiz_builder=QuizBuilder(db_manager, catalog, rng=random.Random(7)),
        registry=registry,
        safe_reply_callback=safe_reply,
        safe_edit_callback=safe_edit,
    )


def make_query(message_id=QUIZ_MESSAGE_ID):
    query = MagicMock()
    query.from_user.id = USER_ID
    query.message.message_id = message_id
    return query


def buttons(markup):
    return [button for row in markup.inline_keyboard for button in row]


class TestStartQuiz:
    """Quiz creation"""

    @pytest.mark.asyncio
    async def test_start_registers_session(self, manager, registry, safe_reply):
        update = MagicMock()

        await manager.start_quiz(update, USER_ID)

        questions = registry.get(USER_ID)
        assert sorted(name.number for name in questions) == [1, 2, 3]
        assert registry.get_message_id(USER_ID) == (QUIZ_MESSAGE_ID, True)

        text = safe_reply.call_args.args[1]
        markup = safe_reply.call_args.kwargs["reply_markup"]
        assert "Вопрос 1/3" in text
        answer_buttons = [
            parse_inline_keyboard_data(button.callback_data)
            for button in buttons(markup)
        ]
        assert sum(data["action"] == "quiz_answer" for data in answer_buttons) == 4
        assert answer_buttons[-1]["action"] == "quiz_stop"

    @pytest.mark.asyncio
    async def test_nothing_to_ask(self, manager, registry, safe_reply, db_manager):
        db_manager.update_settings(USER_ID, quiz_mode="review")

        await manager.start_quiz(MagicMock(), USER_ID)

        assert not registry.has_session(USER_ID)
        assert "нечего спрашивать" in safe_reply.call_args.args[1]

    @pytest.mark.asyncio
    async def test_restart_replaces_session(self, manager, registry, safe_reply):
        await manager.start_quiz(MagicMock(), USER_ID)
        safe_reply.return_value = MagicMock(message_id=QUIZ_MESSAGE_ID + 1)

        await manager.start_quiz(MagicMock(), USER_ID)

        assert registry.get_message_id(USER_ID) == (QUIZ_MESSAGE_ID + 1, True)
        assert registry.active_sessions_count() == 1


class TestQuizCallbacks:
    """Answering, advancing and stopping"""

    @pytest.mark.asyncio
    async def test_full_quiz(self, manager, registry, db_manager, safe_edit):
        await manager.start_quiz(MagicMock(), USER_ID)
        questions = registry.get(USER_ID)

        # Correct answer to the first question
        await manager.handle_quiz_callback(
            make_query(),
            {
                "action": "quiz_answer",
                "question_index": 0,
                "name_number": questions[0].number,
                "score": 0,
            },
        )
        assert "Верно" in safe_edit.call_args.args[1]
        next_data = parse_inline_keyboard_data(
            buttons(safe_edit.call_args.kwargs["reply_markup"])[0].callback_data
        )
        assert next_data == {"action": "quiz_next", "question_index": 1, "score": 1}
        assert db_manager.get_progress(USER_ID, questions[0].number)["correct_count"] == 1

        await manager.handle_quiz_callback(make_query(), next_data)
        assert "Вопрос 2/3" in safe_edit.call_args.args[1]

        # Wrong answer to the second question
        wrong = next(n for n in range(1, 100) if n != questions[1].number)
        await manager.handle_quiz_callback(
            make_query(),
            {"action": "quiz_answer", "question_index": 1, "name_number": wrong, "score": 1},
        )
        assert "Неверно" in safe_edit.call_args.args[1]
        progress = db_manager.get_progress(USER_ID, questions[1].number)
        assert progress["correct_count"] == 0
        assert progress["review_count"] == 1

        # Last question leads to the result button
        await manager.handle_quiz_callback(
            make_query(),
            {
                "action": "quiz_answer",
                "question_index": 2,
                "name_number": questions[2].number,
                "score": 1,
            },
        )
        result_data = parse_inline_keyboard_data(
            buttons(safe_edit.call_args.kwargs["reply_markup"])[0].callback_data
        )
        assert result_data == {"action": "quiz_stop", "score": 2}

        await manager.handle_quiz_callback(make_query(), result_data)
        assert "Квиз завершён" in safe_edit.call_args.args[1]
        assert "<b>2</b> из 3" in safe_edit.call_args.args[1]
        assert registry.get(USER_ID) == []
        assert registry.get_message_id(USER_ID) == (None, False)

    @pytest.mark.asyncio
    async def test_stale_message_is_ignored(self, manager, db_manager, safe_edit, registry):
        await manager.start_quiz(MagicMock(), USER_ID)
        number = registry.get(USER_ID)[0].number

        await manager.handle_quiz_callback(
            make_query(message_id=1),
            {"action": "quiz_answer", "question_index": 0, "name_number": number, "score": 0},
        )

        assert "уже завершён" in safe_edit.call_args.args[1]
        assert db_manager.get_progress(USER_ID, number)["review_count"] == 0

    @pytest.mark.asyncio
    async def test_old_message_rejected_after_failed_restart(
        self, manager, registry, db_manager, safe_reply, safe_edit
    ):
        await manager.start_quiz(MagicMock(), USER_ID)
        safe_reply.return_value = None

        await manager.start_quiz(MagicMock(), USER_ID)
        assert not registry.has_session(USER_ID)

        await manager.handle_quiz_callback(
            make_query(),
            {"action": "quiz_answer", "question_index": 0, "name_number": 50, "score": 0},
        )

        assert "уже завершён" in safe_edit.call_args.args[1]
        assert all(
            progress["review_count"] == 0
            for progress in db_manager.get_progress_by_user(USER_ID)
        )

    @pytest.mark.asyncio
    async def test_untracked_message_rejected(self, manager, registry, db_manager, safe_edit):
        await manager.start_quiz(MagicMock(), USER_ID)
        number = registry.get(USER_ID)[0].number
        registry.delete_message_id(USER_ID)

        await manager.handle_quiz_callback(
            make_query(),
            {"action": "quiz_answer", "question_index": 0, "name_number": number, "score": 0},
        )

        assert "уже завершён" in safe_edit.call_args.args[1]
        assert db_manager.get_progress(USER_ID, number)["review_count"] == 0

    @pytest.mark.asyncio
    async def test_callback_without_session(self, manager, safe_edit):
        await manager.handle_quiz_callback(
            make_query(), {"action": "quiz_next", "question_index": 1, "score": 0}
        )
        assert "уже завершён" in safe_edit.call_args.args[1]

    @pytest.mark.asyncio
    async def test_bad_index_ignored(self, manager, safe_edit):
        await manager.start_quiz(MagicMock(), USER_ID)

        await manager.handle_quiz_callback(
            make_query(),
            {"action": "quiz_answer", "question_index": 10, "name_number": 1, "score": 0},
        )

        safe_edit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stop_early(self, manager, registry, safe_edit):
        await manager.start_quiz(MagicMock(), USER_ID)

        await manager.handle_quiz_callback(make_query(), {"action": "quiz_stop", "score": 0})

        assert "Квиз завершён" in safe_edit.call_args.args[1]
        assert not registry.has_session(USER_ID)
