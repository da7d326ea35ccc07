"""
Utility functions for the 99 Names bot
"""

import json
import logging
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Telegram rejects callback data longer than this
CALLBACK_DATA_LIMIT = 64

# Long name -> compact key used on the wire
CALLBACK_KEYS = {
    "action": "a",
    "question_index": "i",
    "name_number": "n",
    "score": "s",
    "value": "v",
}

# Long action name -> compact code
CALLBACK_ACTIONS = {
    "quiz_answer": "qa",
    "quiz_next": "qn",
    "quiz_stop": "qs",
    "progress": "pr",
    "settings": "st",
    "set_pace": "sp",
    "set_quiz_mode": "sm",
    "set_learning_mode": "sl",
    "set_quiz_length": "sq",
    "toggle_reminders": "tr",
    "reminder_dismiss": "rd",
    "reminder_quiz": "rq",
    "all_page": "ap",
    "reset_confirm": "rc",
    "reset_cancel": "rx",
    "reminder_settings": "rs",
    "set_reminder_interval": "ri",
    "set_reminder_window": "rw",
    "set_timezone": "tz",
}

# "UTC+3", "UTC-7", "UTC+5:30", "+3", "-03:30"
_UTC_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


def extract_json_safely(json_str: str) -> dict[str, Any]:
    """Safely extract JSON from string"""
    if not json_str:
        return {}

    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Failed to parse JSON: {json_str}")
        return {}
    return data if isinstance(data, dict) else {}


def format_json_safely(data: Any) -> str:
    """Safely format data as JSON string"""
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        logger.warning(f"Failed to serialize to JSON: {data}")
        return "{}"


def create_inline_keyboard_data(action: str, **kwargs) -> str:
    """Create callback data for inline keyboard with compact format"""
    compact_data = {"a": CALLBACK_ACTIONS.get(action, action)}
    for key, value in kwargs.items():
        compact_data[CALLBACK_KEYS.get(key, key)] = value

    result = format_json_safely(compact_data)
    if len(result.encode("utf-8")) > CALLBACK_DATA_LIMIT:
        raise ValueError(f"Callback data exceeds {CALLBACK_DATA_LIMIT} bytes: {result}")
    return result


def parse_inline_keyboard_data(callback_data: str) -> dict[str, Any]:
    """Parse callback data from inline keyboard with compact format support"""
    raw_data = extract_json_safely(callback_data)

    reverse_keys = {short: long for long, short in CALLBACK_KEYS.items()}
    reverse_actions = {short: long for long, short in CALLBACK_ACTIONS.items()}

    expanded_data = {}
    for key, value in raw_data.items():
        expanded_data[reverse_keys.get(key, key)] = value

    if "action" in expanded_data:
        expanded_data["action"] = reverse_actions.get(
            expanded_data["action"], expanded_data["action"]
        )
    return expanded_data


def chunk_list(lst: list[Any], chunk_size: int) -> list[list[Any]]:
    """Split list into chunks of specified size"""
    return [lst[i : i + chunk_size] for i in range(0, len(lst), chunk_size)]


def safe_int(value: Any, default: int | None = None) -> int | None:
    """Safely convert value to integer"""
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to maximum length"""
    if not text or len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix


def parse_timezone(value: str | None) -> tzinfo | None:
    """Resolve an IANA zone name or a fixed UTC offset.

    Returns None when the value is not a usable timezone.
    """
    if not value or not value.strip():
        return None

    value = value.strip()
    if value.upper() in ("UTC", "GMT", "ETC/UTC"):
        return timezone.utc

    match = _UTC_OFFSET_RE.match(value)
    if match:
        sign, hours, minutes = match.groups()
        offset = timedelta(hours=int(hours), minutes=int(minutes or 0))
        if offset > timedelta(hours=14) or int(minutes or 0) >= 60:
            return None
        if sign == "-":
            offset = -offset
        return timezone(offset)

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def local_date(tz_name: str | None, now: datetime | None = None) -> date:
    """Calendar date in the given timezone, UTC when it cannot be resolved"""
    tz = parse_timezone(tz_name) or timezone.utc
    now = now or datetime.now(timezone.utc)
    return now.astimezone(tz).date()
