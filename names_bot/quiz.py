"""
Quiz building: which names to ask and how to ask them
"""

import logging
import random
from dataclasses import dataclass
from html import escape

from .core.database.models import LearningMode, QuizMode, UserSettings
from .name_catalog import Name, NameCatalog

logger = logging.getLogger(__name__)

OPTIONS_PER_QUESTION = 4

# What the user must pick for the shown name
QUESTION_TRANSLATION = "translation"
QUESTION_TRANSLITERATION = "transliteration"


@dataclass(frozen=True)
class QuizQuestion:
    """One multiple-choice question.

    Options are catalog names; an answer is correct when the chosen
    option's number equals ``name.number``.
    """

    name: Name
    question_type: str
    options: list[Name]

    @property
    def prompt(self) -> str:
        if self.question_type == QUESTION_TRANSLITERATION:
            return f"Как читается <b>{escape(self.name.arabic)}</b>?"
        return f"Что означает <b>{escape(self.name.arabic)}</b> ({escape(self.name.transliteration)})?"

    def option_label(self, option: Name) -> str:
        if self.question_type == QUESTION_TRANSLITERATION:
            return option.transliteration
        return option.translation

    def is_correct(self, chosen_number: int) -> bool:
        return chosen_number == self.name.number


class QuizBuilder:
    """Selects quiz names for a user and turns them into questions"""

    def __init__(self, db_manager, catalog: NameCatalog, rng: random.Random | None = None):
        self.db_manager = db_manager
        self.catalog = catalog
        self.rng = rng or random.Random()

    def select_names(self, telegram_id: int, settings: UserSettings) -> list[Name]:
        """Pick up to ``quiz_length`` names according to quiz and learning modes.

        In guided mode new names come only from those already shown with
        /name, /random or /next; in free mode any unlearned name may appear.
        """
        length = settings["quiz_length"]
        quiz_mode = QuizMode(settings["quiz_mode"])
        viewed_only = LearningMode(settings["learning_mode"]) == LearningMode.GUIDED

        if quiz_mode == QuizMode.REVIEW:
            numbers = self.db_manager.get_review_numbers(telegram_id, length)
        elif quiz_mode == QuizMode.NEW:
            numbers = self._new_numbers(telegram_id, length, viewed_only)
        else:
            new_count = (length + 1) // 2
            numbers = self._new_numbers(telegram_id, new_count, viewed_only)
            review = self.db_manager.get_review_numbers(telegram_id, length)
            numbers += [n for n in review if n not in numbers][: length - len(numbers)]
            if len(numbers) < length:
                extra = self._new_numbers(telegram_id, length, viewed_only)
                numbers += [n for n in extra if n not in numbers][: length - len(numbers)]

        names = [self.catalog.by_number(n) for n in numbers[:length]]
        self.rng.shuffle(names)
        logger.debug(
            f"Selected {len(names)} names for user {telegram_id} "
            f"(quiz_mode={quiz_mode.value}, guided={viewed_only})"
        )
        return names

    def _new_numbers(self, telegram_id: int, limit: int, viewed_only: bool) -> list[int]:
        if viewed_only:
            return self.db_manager.get_unlearned_numbers(telegram_id, limit, viewed_only=True)
        # Random sample instead of always the lowest numbers
        candidates = self.db_manager.get_unlearned_numbers(telegram_id, len(self.catalog))
        return self.rng.sample(candidates, min(limit, len(candidates)))

    def build_question(self, name: Name, question_type: str | None = None) -> QuizQuestion:
        """Build a question with the answer and distinct distractors, shuffled"""
        if question_type is None:
            question_type = self.rng.choice((QUESTION_TRANSLATION, QUESTION_TRANSLITERATION))

        pool = [candidate for candidate in self.catalog.all() if candidate.number != name.number]
        distractors = self.rng.sample(pool, OPTIONS_PER_QUESTION - 1)
        options = [name, *distractors]
        self.rng.shuffle(options)
        return QuizQuestion(name=name, question_type=question_type, options=options)
