"""
Entry data model.

An Entry is one user-created item. The four kinds (note, task, verse,
prayer) share the same envelope and differ only in their payload, so an
Entry is a single record carrying a ``kind`` discriminator plus one payload
object whose type is fixed by that kind (see ``PAYLOAD_TYPES``).
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union

from .errors import CodecError
from .utils import now_millis


class EntryKind(str, Enum):
    NOTE = "note"
    TASK = "task"
    VERSE = "verse"
    PRAYER = "prayer"

    @property
    def table(self) -> str:
        return f"{self.value}s"

    @classmethod
    def parse(cls, value) -> "EntryKind":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        if text.endswith("s"):
            text = text[:-1]
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"Unknown entry kind: {value!r}") from None


class RepeatType(Enum):
    NONE = "NONE"
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class Reminder:
    """A scheduled notification owned by a single entry."""
    time_millis: int
    repeat_interval: RepeatType = RepeatType.NONE
    is_active: bool = False

    def to_dict(self) -> dict:
        return {
            "timeMillis": self.time_millis,
            "repeatInterval": self.repeat_interval.value,
            "isActive": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Reminder":
        if not isinstance(data, dict):
            raise CodecError("reminder must be an object")
        time_millis = data.get("timeMillis")
        if not _is_int(time_millis):
            raise CodecError("reminder.timeMillis must be an integer")
        name = data.get("repeatInterval", RepeatType.NONE.value)
        try:
            repeat = RepeatType(str(name).upper())
        except ValueError:
            raise CodecError(f"reminder.repeatInterval is not a known interval: {name!r}") from None
        active = data.get("isActive", False)
        if not isinstance(active, bool):
            raise CodecError("reminder.isActive must be a boolean")
        return cls(time_millis=time_millis, repeat_interval=repeat, is_active=active)


@dataclass
class NotePayload:
    content: str = ""


@dataclass
class TaskPayload:
    checklist: list = field(default_factory=list)
    completed: bool = False


@dataclass
class VersePayload:
    verse: str = ""


@dataclass
class PrayerPayload:
    prayer: str = ""
    priority: int = 0


Payload = Union[NotePayload, TaskPayload, VersePayload, PrayerPayload]

PAYLOAD_TYPES = {
    EntryKind.NOTE: NotePayload,
    EntryKind.TASK: TaskPayload,
    EntryKind.VERSE: VersePayload,
    EntryKind.PRAYER: PrayerPayload,
}

# Payload field name -> (accepted python types, document key).
PAYLOAD_FIELDS = {
    EntryKind.NOTE: {"content": (str, "content")},
    EntryKind.TASK: {"checklist": (list, "checklist"), "completed": (bool, "completed")},
    EntryKind.VERSE: {"verse": (str, "verse")},
    EntryKind.PRAYER: {"prayer": (str, "prayer"), "priority": (int, "priority")},
}


@dataclass
class Entry:
    kind: EntryKind
    title: str
    payload: Payload
    category: str = ""
    category_color: int = 0
    background_color: Optional[int] = None
    image_uri: Optional[str] = None
    image_fill_card: bool = False
    reminder: Optional[Reminder] = None
    created_at: int = 0
    modified_at: int = 0
    id: int = 0

    def __post_init__(self):
        self.kind = EntryKind.parse(self.kind)
        expected = PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.value} entry needs a {expected.__name__}, got {type(self.payload).__name__}"
            )

    @property
    def is_uncategorized(self) -> bool:
        return not self.category.strip()

    def body_text(self) -> str:
        """Text shown in the entry card below the title."""
        p = self.payload
        if self.kind is EntryKind.NOTE:
            return p.content
        if self.kind is EntryKind.TASK:
            return "\n".join(p.checklist)
        if self.kind is EntryKind.VERSE:
            return p.verse
        return p.prayer

    def validate(self):
        if not _is_int(self.id) or self.id < 0:
            raise ValueError(f"invalid id: {self.id!r}")
        if self.modified_at < self.created_at:
            raise ValueError(
                f"{self.kind.value} {self.id}: modifiedAt ({self.modified_at}) precedes createdAt ({self.created_at})"
            )
        return self

    def touched(self, at=None) -> "Entry":
        stamp = now_millis() if at is None else int(at)
        return replace(self, modified_at=max(stamp, self.created_at))

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "categoryColor": self.category_color,
            "backgroundColor": self.background_color,
            "imageUri": self.image_uri,
            "imageFillCard": self.image_fill_card,
            "hasReminder": self.reminder.to_dict() if self.reminder else None,
            "createdAt": self.created_at,
            "modifiedAt": self.modified_at,
        }
        for attr, (_types, key) in PAYLOAD_FIELDS[self.kind].items():
            value = getattr(self.payload, attr)
            data[key] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, kind, data: dict, legacy=False) -> "Entry":
        """Build an entry from its document form, checking every field type.

        Raises CodecError naming the offending field. With ``legacy`` set, a
        modifiedAt earlier than createdAt is raised to createdAt instead of
        being rejected; older releases wrote such records.
        """
        kind = EntryKind.parse(kind)
        if not isinstance(data, dict):
            raise CodecError(f"{kind.value} must be an object")

        entry_id = _field(data, "id", int, required=True)
        if entry_id <= 0:
            raise CodecError(f"{kind.value}.id must be positive")

        payload_kwargs = {}
        for attr, (types, key) in PAYLOAD_FIELDS[kind].items():
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if attr == "checklist":
                value = _checklist_value(value)
            elif not _is_type(value, types):
                raise CodecError(f"{kind.value}.{key} has the wrong type")
            payload_kwargs[attr] = value

        reminder = data.get("hasReminder")
        if isinstance(reminder, str):
            from .converters import decode_reminder

            reminder = decode_reminder(reminder)
        elif reminder is not None:
            reminder = Reminder.from_dict(reminder)

        entry = cls(
            kind=kind,
            id=entry_id,
            title=_field(data, "title", str, required=True),
            category=_field(data, "category", str, default=""),
            category_color=_field(data, "categoryColor", int, default=0),
            background_color=_field(data, "backgroundColor", int, default=None),
            image_uri=_field(data, "imageUri", str, default=None),
            image_fill_card=_field(data, "imageFillCard", bool, default=False),
            reminder=reminder,
            created_at=_field(data, "createdAt", int, required=True),
            modified_at=_field(data, "modifiedAt", int, required=True),
            payload=PAYLOAD_TYPES[kind](**payload_kwargs),
        )
        if legacy and entry.modified_at < entry.created_at:
            entry.modified_at = entry.created_at
        try:
            return entry.validate()
        except ValueError as exc:
            raise CodecError(str(exc)) from exc


def new_entry(kind, title, **fields) -> Entry:
    """Create an unsaved entry (id 0) stamped with the current time.

    Envelope fields (category, reminder, ...) are passed by name; anything
    else is handed to the kind's payload.
    """
    kind = EntryKind.parse(kind)
    now = now_millis()
    envelope = {}
    for name in (
        "category",
        "category_color",
        "background_color",
        "image_uri",
        "image_fill_card",
        "reminder",
    ):
        if name in fields:
            envelope[name] = fields.pop(name)
    payload = PAYLOAD_TYPES[kind](**fields)
    return Entry(kind=kind, title=title, payload=payload, created_at=now, modified_at=now, **envelope)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_type(value, types) -> bool:
    if types is int:
        return _is_int(value)
    return isinstance(value, types)


def _field(data, key, types, required=False, default=None):
    if key not in data or data[key] is None:
        if required:
            raise CodecError(f"missing required field: {key}")
        return default
    value = data[key]
    if not _is_type(value, types):
        raise CodecError(f"field {key} has the wrong type")
    return value


def _checklist_value(value):
    if isinstance(value, str):
        from .converters import decode_checklist

        return decode_checklist(value)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise CodecError("checklist must be a list of strings")
    return list(value)
