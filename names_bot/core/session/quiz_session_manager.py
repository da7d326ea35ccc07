"""
Quiz flow for the 99 Names bot
"""

import logging
from html import escape

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from ...quiz import QuizBuilder
from ...utils import create_inline_keyboard_data
from ..database.database_manager import DatabaseManager
from ..database.models import TOTAL_NAMES
from .quiz_session_registry import QuizSessionRegistry

logger = logging.getLogger(__name__)


class QuizSessionManager:
    """Runs quizzes inside a single chat message.

    The registry holds the question list and the id of the message showing
    the quiz. The current question index and score travel in the callback
    data of the buttons, so every button press is self-describing.
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        quiz_builder: QuizBuilder,
        registry: QuizSessionRegistry,
        safe_reply_callback,
        safe_edit_callback,
    ):
        self.db_manager = db_manager
        self.quiz_builder = quiz_builder
        self.registry = registry
        self._safe_reply = safe_reply_callback
        self._safe_edit = safe_edit_callback

    async def start_quiz(self, reply_target, user_id: int):
        """Start a new quiz, replacing any active one for the user"""
        settings = self.db_manager.get_settings(user_id)
        names = self.quiz_builder.select_names(user_id, settings)

        if not names:
            await self._safe_reply(
                reply_target,
                "🤷 Пока нечего спрашивать.\n\n"
                "Откройте новые имена командой /next или смените режим в /settings.",
            )
            return

        self.registry.store(user_id, names)
        self.registry.delete_message_id(user_id)

        text, markup = self._render_question(user_id, 0, 0)
        message = await self._safe_reply(
            reply_target, text, parse_mode="HTML", reply_markup=markup
        )
        if not message:
            self.registry.delete_session(user_id)
            logger.warning(f"Could not send quiz to user {user_id}, session dropped")
            return

        self.registry.store_message_id(user_id, message.message_id)
        logger.info(f"Started quiz with {len(names)} questions for user {user_id}")

    def cancel_quiz(self, user_id: int):
        """Forget the active quiz; its buttons then show the finished notice"""
        self.registry.delete_session(user_id)

    async def handle_quiz_callback(self, query, data: dict):
        """Dispatch quiz buttons"""
        user_id = query.from_user.id
        action = data.get("action")

        if not self._is_current_quiz_message(user_id, query):
            await self._safe_edit(query, "⌛ Этот квиз уже завершён. Начните новый: /quiz")
            return

        if action == "quiz_answer":
            await self._handle_answer(query, user_id, data)
        elif action == "quiz_next":
            await self._show_question(
                query, user_id, data.get("question_index", 0), data.get("score", 0)
            )
        elif action == "quiz_stop":
            await self._finish_quiz(query, user_id, data.get("score", 0))

    def _is_current_quiz_message(self, user_id: int, query) -> bool:
        if not self.registry.has_session(user_id):
            return False
        message_id, found = self.registry.get_message_id(user_id)
        if not found:
            return False
        return query.message is not None and query.message.message_id == message_id

    def _render_question(self, user_id: int, index: int, score: int):
        questions = self.registry.get(user_id)
        question = self.quiz_builder.build_question(questions[index])

        text = f"🧠 Вопрос {index + 1}/{len(questions)}\n\n{question.prompt}"
        keyboard = [
            [
                InlineKeyboardButton(
                    question.option_label(option),
                    callback_data=create_inline_keyboard_data(
                        "quiz_answer",
                        question_index=index,
                        name_number=option.number,
                        score=score,
                    ),
                )
            ]
            for option in question.options
        ]
        keyboard.append(
            [
                InlineKeyboardButton(
                    "⏹ Закончить",
                    callback_data=create_inline_keyboard_data("quiz_stop", score=score),
                )
            ]
        )
        return text, InlineKeyboardMarkup(keyboard)

    async def _show_question(self, query, user_id: int, index: int, score: int):
        questions = self.registry.get(user_id)
        if index >= len(questions):
            await self._finish_quiz(query, user_id, score)
            return

        text, markup = self._render_question(user_id, index, score)
        await self._safe_edit(query, text, parse_mode="HTML", reply_markup=markup)

    async def _handle_answer(self, query, user_id: int, data: dict):
        questions = self.registry.get(user_id)
        index = data.get("question_index")
        chosen = data.get("name_number")
        score = data.get("score", 0)

        if not isinstance(index, int) or not 0 <= index < len(questions):
            logger.warning(f"Quiz answer with bad index {index} from user {user_id}")
            return

        name = questions[index]
        correct = chosen == name.number
        progress = self.db_manager.record_answer(user_id, name.number, correct)
        if correct:
            score += 1

        if correct:
            text = f"✅ Верно!\n\n<b>{escape(name.transliteration)}</b> — {escape(name.translation)}"
        else:
            text = (
                "❌ Неверно.\n\n"
                f"Правильный ответ: <b>{escape(name.transliteration)}</b> — {escape(name.translation)}"
            )
        if progress["is_learned"]:
            text += "\n\n🎓 Имя выучено!"

        next_index = index + 1
        if next_index < len(questions):
            button = InlineKeyboardButton(
                "➡️ Дальше",
                callback_data=create_inline_keyboard_data(
                    "quiz_next", question_index=next_index, score=score
                ),
            )
        else:
            button = InlineKeyboardButton(
                "🏁 Результат",
                callback_data=create_inline_keyboard_data("quiz_stop", score=score),
            )

        await self._safe_edit(
            query,
            f"🧠 Вопрос {index + 1}/{len(questions)}\n\n{text}",
            parse_mode="HTML",
            reply_markup=InlineKeyboardMarkup([[button]]),
        )

    async def _finish_quiz(self, query, user_id: int, score: int):
        total = len(self.registry.get(user_id))
        self.registry.delete_session(user_id)

        summary = self.db_manager.get_summary(user_id)
        await self._safe_edit(
            query,
            "🏁 <b>Квиз завершён!</b>\n\n"
            f"Правильных ответов: <b>{score}</b> из {total}\n"
            f"Выучено имён: <b>{summary.learned}</b> из {TOTAL_NAMES}\n\n"
            "Новый квиз: /quiz • Прогресс: /progress",
            parse_mode="HTML",
        )
        logger.info(f"User {user_id} finished quiz with score {score}/{total}")
