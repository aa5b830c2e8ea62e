"""
Enscribe

Local journal store for notes, tasks, verses and prayers: sqlite
persistence, in-memory search and sort, JSON backup and restore, and the
reactive settings row the UI binds to.
"""

from .backup import export_document, export_json, import_document, parse_document, read_backup, write_backup
from .constants import APP_NAME, SCHEMA_VERSION, THEMES
from .db import EnscribeStore
from .errors import CodecError, EnscribeError, StoreIOError
from .models import Entry, EntryKind, NotePayload, PrayerPayload, Reminder, RepeatType, TaskPayload, VersePayload, new_entry
from .query import SortOrder, categories_of, filter_and_sort, filter_entries, preview_text, sort_entries
from .settings import Settings, SettingsCell

__version__ = "1.0.0"

__all__ = [
    "APP_NAME",
    "SCHEMA_VERSION",
    "THEMES",
    "CodecError",
    "EnscribeError",
    "EnscribeStore",
    "Entry",
    "EntryKind",
    "NotePayload",
    "PrayerPayload",
    "Reminder",
    "RepeatType",
    "Settings",
    "SettingsCell",
    "SortOrder",
    "StoreIOError",
    "TaskPayload",
    "VersePayload",
    "categories_of",
    "export_document",
    "export_json",
    "filter_and_sort",
    "filter_entries",
    "import_document",
    "new_entry",
    "parse_document",
    "preview_text",
    "read_backup",
    "sort_entries",
    "write_backup",
]
