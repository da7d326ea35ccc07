"""
Message bodies with their inline keyboards, shared by commands and callbacks
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from ...name_catalog import NameCatalog
from ...progress_presenter import (
    LEARNING_MODE_LABELS,
    QUIZ_MODE_LABELS,
    build_progress_bar,
    format_names_list,
    format_progress_message,
    format_reminder_settings_message,
    format_settings_message,
)
from ...utils import chunk_list, create_inline_keyboard_data
from ..database.database_manager import DatabaseManager
from ..database.repositories.settings_repository import MAX_NAMES_PER_DAY, MIN_NAMES_PER_DAY

NAMES_PER_PAGE = 33
QUIZ_LENGTH_CHOICES = (3, 5, 10, 15)
REMINDER_INTERVAL_CHOICES = (1, 2, 3, 4)
# Label -> (start_hour, end_hour)
REMINDER_WINDOWS = {
    "🌅 08–12": (8, 12),
    "☀️ 12–18": (12, 18),
    "🌙 18–22": (18, 22),
    "🌍 08–22": (8, 22),
}
TIMEZONE_CHOICES = (
    "UTC", "UTC+1", "UTC+2", "UTC+3",
    "UTC+4", "UTC+5", "UTC+6", "UTC+7",
    "UTC+8", "UTC+9", "UTC+10", "UTC-5",
)


def _button(text: str, action: str, **kwargs) -> InlineKeyboardButton:
    return InlineKeyboardButton(text, callback_data=create_inline_keyboard_data(action, **kwargs))


def _marked(label: str, selected: bool) -> str:
    return f"• {label} •" if selected else label


def render_progress(db_manager: DatabaseManager, user_id: int):
    """Progress text and its refresh/settings keyboard"""
    settings = db_manager.get_settings(user_id)
    summary = db_manager.get_summary(user_id, settings["names_per_day"])
    bar = build_progress_bar(summary.learned)
    text = format_progress_message(summary, bar, settings["names_per_day"])
    markup = InlineKeyboardMarkup(
        [
            [
                _button("🔄 Обновить", "progress"),
                _button("⚙️ Настройки", "settings"),
            ]
        ]
    )
    return text, markup


def render_settings(db_manager: DatabaseManager, user_id: int):
    """Settings text and the keyboard that changes them"""
    settings = db_manager.get_settings(user_id)
    text = format_settings_message(settings, settings["reminders_enabled"])

    pace = settings["names_per_day"]
    pace_row = []
    if pace > MIN_NAMES_PER_DAY:
        pace_row.append(_button(f"➖ {pace - 1} в день", "set_pace", value=pace - 1))
    if pace < MAX_NAMES_PER_DAY:
        pace_row.append(_button(f"➕ {pace + 1} в день", "set_pace", value=pace + 1))

    length_row = [
        _button(
            _marked(f"{length} вопр.", settings["quiz_length"] == length),
            "set_quiz_length",
            value=length,
        )
        for length in QUIZ_LENGTH_CHOICES
    ]
    quiz_mode_row = [
        _button(_marked(label, settings["quiz_mode"] == mode), "set_quiz_mode", value=mode)
        for mode, label in QUIZ_MODE_LABELS.items()
    ]
    learning_mode_row = [
        _button(
            _marked(label, settings["learning_mode"] == mode), "set_learning_mode", value=mode
        )
        for mode, label in LEARNING_MODE_LABELS.items()
    ]
    reminders_label = (
        "🔕 Выключить напоминания" if settings["reminders_enabled"] else "🔔 Включить напоминания"
    )

    keyboard = [
        row
        for row in (pace_row, length_row, quiz_mode_row, learning_mode_row)
        if row
    ]
    keyboard.append([_button(reminders_label, "toggle_reminders")])
    keyboard.append([_button("⏰ Расписание напоминаний", "reminder_settings")])
    keyboard.append([_button("📊 Прогресс", "progress")])
    return text, InlineKeyboardMarkup(keyboard)


def render_names_page(db_manager: DatabaseManager, catalog: NameCatalog, user_id: int, page: int):
    """One page of the full list with page switcher"""
    pages = chunk_list(catalog.all(), NAMES_PER_PAGE)
    page = max(0, min(page, len(pages) - 1))

    learned = {
        progress["name_number"]
        for progress in db_manager.get_progress_by_user(user_id)
        if progress["is_learned"]
    }
    text = f"📜 <b>99 имён</b> ({page + 1}/{len(pages)})\n\n" + format_names_list(
        pages[page], learned
    )
    buttons = [
        _button(marked_page(index, page), "all_page", value=index)
        for index in range(len(pages))
    ]
    return text, InlineKeyboardMarkup([buttons])


def marked_page(index: int, current: int) -> str:
    first = index * NAMES_PER_PAGE + 1
    last = (index + 1) * NAMES_PER_PAGE
    label = f"{first}–{last}"
    return f"• {label} •" if index == current else label


def reminder_keyboard() -> InlineKeyboardMarkup:
    """Buttons under a reminder message"""
    return InlineKeyboardMarkup(
        [
            [
                _button("🧠 Квиз", "reminder_quiz"),
                _button("👌 Позже", "reminder_dismiss"),
            ]
        ]
    )


def render_reminder_settings(db_manager: DatabaseManager, user_id: int):
    """Reminder schedule text with interval, window and timezone pickers"""
    settings = db_manager.get_settings(user_id)
    text = format_reminder_settings_message(settings)

    interval_row = [
        _button(
            _marked(f"{hours} ч", settings["reminder_interval_hours"] == hours),
            "set_reminder_interval",
            value=hours,
        )
        for hours in REMINDER_INTERVAL_CHOICES
    ]
    current_window = (settings["reminder_start_hour"], settings["reminder_end_hour"])
    window_buttons = [
        _button(
            _marked(label, window == current_window),
            "set_reminder_window",
            value=f"{window[0]}-{window[1]}",
        )
        for label, window in REMINDER_WINDOWS.items()
    ]
    timezone_buttons = [
        _button(_marked(tz, settings["timezone"] == tz), "set_timezone", value=tz)
        for tz in TIMEZONE_CHOICES
    ]

    keyboard = [interval_row]
    keyboard.extend(chunk_list(window_buttons, 2))
    keyboard.extend(chunk_list(timezone_buttons, 4))
    keyboard.append([_button("« Назад к настройкам", "settings")])
    return text, InlineKeyboardMarkup(keyboard)


def reset_keyboard() -> InlineKeyboardMarkup:
    """Confirmation buttons for /reset"""
    return InlineKeyboardMarkup(
        [
            [
                _button("🗑 Сбросить", "reset_confirm"),
                _button("✅ Отменить", "reset_cancel"),
            ]
        ]
    )
