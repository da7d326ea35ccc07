"""
Text rendering for progress, settings, reminders and name cards.

Every function here is pure: the same input always produces the same
string, so re-rendering a message that did not change yields identical
text and the bot can skip the edit.
"""

from html import escape

from .core.database.models import TOTAL_NAMES, NameProgress, ProgressSummary, UserSettings
from .name_catalog import Name

FILLED_SEGMENT = "█"
EMPTY_SEGMENT = "░"
DEFAULT_BAR_WIDTH = 20

QUIZ_MODE_LABELS = {
    "new": "Только новые",
    "review": "Только повторение",
    "mixed": "Смешанный",
}

LEARNING_MODE_LABELS = {
    "guided": "По порядку",
    "free": "Свободный",
}


def build_progress_bar(learned: int, total: int = TOTAL_NAMES, width: int = DEFAULT_BAR_WIDTH) -> str:
    """Fixed-width bar with round(learned / total * width) filled segments"""
    if width <= 0:
        return "[]"
    if total <= 0:
        filled = 0
    else:
        # Half-up rounding, so 0.5 always fills the segment
        filled = int(learned / total * width + 0.5)
        filled = max(0, min(width, filled))
    return "[" + FILLED_SEGMENT * filled + EMPTY_SEGMENT * (width - filled) + "]"


def format_bool(value: bool) -> str:
    return "Включено ✅" if value else "Выключено ❌"


def format_quiz_mode(mode: str) -> str:
    return QUIZ_MODE_LABELS.get(mode, mode)


def format_learning_mode(mode: str) -> str:
    return LEARNING_MODE_LABELS.get(mode, mode)


def format_progress_message(summary: ProgressSummary, bar: str, names_per_day: int) -> str:
    """Render the /progress message"""
    return (
        "📊 <b>Ваш прогресс</b>\n\n"
        f"{bar} {summary.percentage:.1f}%\n\n"
        f"✅ Выучено: <b>{summary.learned}</b> из {TOTAL_NAMES}\n"
        f"📖 В процессе: <b>{summary.in_progress}</b>\n"
        f"🆕 Не начато: <b>{summary.not_started}</b>\n"
        f"🎯 Точность: <b>{summary.accuracy:.1f}%</b> "
        f"({summary.total_correct}/{summary.total_attempts})\n\n"
        f"📅 Имён в день: <b>{names_per_day}</b>\n"
        f"⏳ Дней до завершения: <b>{summary.days_to_complete}</b>"
    )


def format_settings_message(settings: UserSettings, reminder_status: bool) -> str:
    """Render the /settings message"""
    return (
        "⚙️ <b>Настройки</b>\n\n"
        f"📅 Имён в день: <b>{settings['names_per_day']}</b>\n"
        f"🧠 Вопросов в квизе: <b>{settings['quiz_length']}</b>\n"
        f"🎲 Режим квиза: <b>{format_quiz_mode(settings['quiz_mode'])}</b>\n"
        f"🧭 Режим обучения: <b>{format_learning_mode(settings['learning_mode'])}</b>\n"
        f"🔔 Напоминания: <b>{format_bool(reminder_status)}</b>\n"
        f"⏰ Расписание: <b>{format_reminder_schedule(settings)}</b>"
    )


def format_reminder_schedule(settings: UserSettings) -> str:
    return (
        f"каждые {settings['reminder_interval_hours']} ч, "
        f"{settings['reminder_start_hour']:02d}:00–{settings['reminder_end_hour']:02d}:00 "
        f"({escape(settings['timezone'])})"
    )


def format_reminder_settings_message(settings: UserSettings) -> str:
    """Render the reminder schedule screen"""
    return (
        "⏰ <b>Расписание напоминаний</b>\n\n"
        f"🔔 Статус: <b>{format_bool(settings['reminders_enabled'])}</b>\n"
        f"🔁 Частота: <b>каждые {settings['reminder_interval_hours']} ч</b>\n"
        f"🕗 Время: <b>{settings['reminder_start_hour']:02d}:00–"
        f"{settings['reminder_end_hour']:02d}:00</b>\n"
        f"🌍 Часовой пояс: <b>{escape(settings['timezone'])}</b>"
    )


def format_today_message(names: list[Name], names_per_day: int) -> str:
    """Render the /today list of names introduced today"""
    if not names:
        return (
            "📚 Сегодня вы ещё не открывали новых имён.\n\n"
            f"Начните с /next (лимит: {names_per_day} в день)."
        )

    lines = [f"📚 <b>Сегодня изучаете ({len(names)}/{names_per_day}):</b>\n"]
    for name in names:
        lines.append(
            f"{name.number}. <b>{escape(name.transliteration)}</b> — {escape(name.translation)}"
        )
    if len(names) < names_per_day:
        lines.append("\nСледующее имя: /next")
    else:
        lines.append("\nЛимит на сегодня исчерпан. Закрепите имена в /quiz!")
    return "\n".join(lines)


def format_name_card(name: Name, progress: NameProgress | None = None) -> str:
    """Render a single name with the user's state for it"""
    text = (
        f"<b>{name.number}. {escape(name.arabic)}</b>\n"
        f"🔤 <i>{escape(name.transliteration)}</i>\n"
        f"📖 {escape(name.translation)}"
    )
    if name.meaning:
        text += f"\n\n{escape(name.meaning)}"

    if progress is None:
        status = "🆕 Новое имя"
    elif progress["is_learned"]:
        status = "✅ Выучено"
    else:
        status = (
            f"📖 В процессе: {progress['correct_count']} верных "
            f"из {progress['review_count']}"
        )
    return f"{text}\n\n{status}"


def format_reminder_message(name: Name, summary: ProgressSummary) -> str:
    """Render the periodic reminder with a name to repeat"""
    return (
        "🔔 <b>Время повторить имена!</b>\n\n"
        f"<b>{name.number}. {escape(name.arabic)}</b>\n"
        f"🔤 <i>{escape(name.transliteration)}</i>\n"
        f"📖 {escape(name.translation)}\n\n"
        f"✅ Выучено: <b>{summary.learned}</b> из {TOTAL_NAMES} "
        f"({summary.percentage:.1f}%)"
    )


def format_names_list(names: list[Name], learned_numbers: set[int]) -> str:
    """Render a page of the /all list"""
    lines = []
    for name in names:
        mark = "✅" if name.number in learned_numbers else "▫️"
        lines.append(
            f"{mark} {name.number}. <b>{escape(name.transliteration)}</b> — "
            f"{escape(name.translation)}"
        )
    return "\n".join(lines)
