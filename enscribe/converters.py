"""Column encodings for the structured entry fields.

Reminders and checklists are written as JSON text. The older pipe-delimited
forms (``"<ms>|<INTERVAL>|<bool>"`` and ``"a|::|b"``) are still read so that
existing databases and backups keep working.
"""

import json

from .errors import CodecError
from .models import Reminder, RepeatType
from .utils import json_dumps

CHECKLIST_DELIMITER = "|::|"
REMINDER_DELIMITER = "|"


def encode_reminder(reminder):
    if reminder is None:
        return None
    return json_dumps(reminder.to_dict())


def decode_reminder(data):
    if data is None or not str(data).strip():
        return None
    text = str(data).strip()
    if text.startswith("{"):
        try:
            obj = json.loads(text)
        except json.JSONDecodeError as exc:
            raise CodecError(f"invalid reminder JSON: {exc}") from exc
        return Reminder.from_dict(obj)
    return decode_legacy_reminder(text)


def encode_legacy_reminder(reminder):
    if reminder is None:
        return None
    active = "true" if reminder.is_active else "false"
    return REMINDER_DELIMITER.join([str(reminder.time_millis), reminder.repeat_interval.value, active])


def decode_legacy_reminder(data):
    if data is None or not data.strip():
        return None
    parts = data.split(REMINDER_DELIMITER)
    try:
        time_millis = int(parts[0])
    except ValueError:
        return None
    repeat = RepeatType.NONE
    if len(parts) > 1:
        repeat = next((r for r in RepeatType if r.value == parts[1]), RepeatType.NONE)
    is_active = len(parts) > 2 and parts[2] == "true"
    return Reminder(time_millis=time_millis, repeat_interval=repeat, is_active=is_active)


def encode_checklist(items):
    return json_dumps(list(items or []))


def decode_checklist(data):
    if data is None or not str(data).strip():
        return []
    text = str(data)
    if text.lstrip().startswith("["):
        try:
            items = json.loads(text)
        except json.JSONDecodeError:
            items = None
        if isinstance(items, list) and all(isinstance(item, str) for item in items):
            return items
    return decode_legacy_checklist(text)


def encode_legacy_checklist(items):
    return CHECKLIST_DELIMITER.join(items or [])


def decode_legacy_checklist(data):
    if data is None or not data.strip():
        return []
    return data.split(CHECKLIST_DELIMITER)
