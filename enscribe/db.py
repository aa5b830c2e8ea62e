import logging
import sqlite3
import threading
from contextlib import contextmanager

from .constants import SCHEMA_VERSION
from .converters import decode_checklist, decode_reminder, encode_checklist, encode_reminder
from .errors import StoreIOError
from .models import Entry, EntryKind, NotePayload, PrayerPayload, TaskPayload, VersePayload
from .paths import get_db_path
from .schema import SCHEMA_SQL
from .settings import Settings, SettingsCell

logger = logging.getLogger("Enscribe")

SETTINGS_ROW_ID = 0

_SHARED_COLUMNS = (
    "title",
    "category",
    "categoryColor",
    "backgroundColor",
    "imageUri",
    "imageFillCard",
    "hasReminder",
    "createdAt",
    "modifiedAt",
)

PAYLOAD_COLUMNS = {
    EntryKind.NOTE: ("content",),
    EntryKind.TASK: ("checklist", "completed"),
    EntryKind.VERSE: ("verse",),
    EntryKind.PRAYER: ("prayer", "priority"),
}

DEFAULT_ORDER = {
    EntryKind.NOTE: "createdAt DESC, id ASC",
    EntryKind.TASK: "modifiedAt DESC, id ASC",
    EntryKind.VERSE: "title ASC, id ASC",
    EntryKind.PRAYER: "priority DESC, modifiedAt DESC, id ASC",
}


def _payload_values(entry):
    p = entry.payload
    if entry.kind is EntryKind.NOTE:
        return (p.content,)
    if entry.kind is EntryKind.TASK:
        return (encode_checklist(p.checklist), 1 if p.completed else 0)
    if entry.kind is EntryKind.VERSE:
        return (p.verse,)
    return (p.prayer, int(p.priority))


def _payload_from_row(kind, row):
    if kind is EntryKind.NOTE:
        return NotePayload(content=row["content"] or "")
    if kind is EntryKind.TASK:
        return TaskPayload(checklist=decode_checklist(row["checklist"]), completed=bool(row["completed"]))
    if kind is EntryKind.VERSE:
        return VersePayload(verse=row["verse"] or "")
    return PrayerPayload(prayer=row["prayer"] or "", priority=int(row["priority"] or 0))


class EnscribeStore:
    """sqlite-backed store with one table per entry kind plus the settings row.

    One connection per store, shared by every caller and serialized by a
    re-entrant lock. Writes outside ``transaction()`` commit per statement.
    """

    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get(cls):
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls().open()
            return cls._instance

    @classmethod
    def reset_shared(cls):
        with cls._lock:
            if cls._instance is not None:
                cls._instance.close()
            cls._instance = None

    def __init__(self, db_path=None):
        self.db_path = db_path or get_db_path()
        self._conn = None
        self._conn_lock = threading.RLock()
        self._tx_depth = 0
        self._settings_cell = None

    # ── lifecycle ──

    def open(self):
        with self._conn_lock:
            if self._conn is not None:
                return self
            try:
                conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
                conn.row_factory = sqlite3.Row
                conn.execute("PRAGMA busy_timeout = 5000")
                conn.executescript(SCHEMA_SQL)
                self._migrate_db(conn)
                conn.execute(
                    "INSERT OR REPLACE INTO meta(key,value) VALUES('schema_version', ?)",
                    (str(SCHEMA_VERSION),),
                )
            except sqlite3.Error as exc:
                logger.exception("Failed to open store at %s", self.db_path)
                raise StoreIOError(f"cannot open {self.db_path}: {exc}") from exc
            self._conn = conn
            logger.debug("Opened store at %s", self.db_path)
            return self

    def close(self):
        with self._conn_lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.debug("Closed store at %s", self.db_path)

    @property
    def is_open(self):
        return self._conn is not None

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc_info):
        self.close()

    def _migrate_db(self, conn):
        task_cols = {row["name"] for row in conn.execute("PRAGMA table_info(tasks)").fetchall()}
        if "completed" not in task_cols:
            conn.execute("ALTER TABLE tasks ADD COLUMN completed INTEGER NOT NULL DEFAULT 0")
        prayer_cols = {row["name"] for row in conn.execute("PRAGMA table_info(prayers)").fetchall()}
        if "priority" not in prayer_cols:
            conn.execute("ALTER TABLE prayers ADD COLUMN priority INTEGER NOT NULL DEFAULT 0")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_tasks_completed_modified ON tasks(completed, modifiedAt)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_prayers_priority_modified ON prayers(priority, modifiedAt)")

    # ── statement plumbing ──

    @contextmanager
    def _cursor(self):
        with self._conn_lock:
            if self._conn is None:
                raise StoreIOError("store is not open")
            try:
                yield self._conn
            except sqlite3.Error as exc:
                logger.exception("Store operation failed")
                raise StoreIOError(str(exc)) from exc

    @contextmanager
    def transaction(self, mode="IMMEDIATE"):
        """Run the enclosed statements atomically; nested calls join the outer one.

        ``mode="DEFERRED"`` gives a read snapshot without taking the write lock.
        """
        with self._cursor() as conn:
            if self._tx_depth:
                self._tx_depth += 1
                try:
                    yield conn
                finally:
                    self._tx_depth -= 1
                return
            conn.execute(f"BEGIN {mode}")
            self._tx_depth = 1
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            else:
                conn.execute("COMMIT")
            finally:
                self._tx_depth = 0

    # ── entries ──

    def insert(self, entry):
        """Insert ``entry``; id 0 lets sqlite assign one. Returns the id."""
        entry.validate()
        columns = list(_SHARED_COLUMNS) + list(PAYLOAD_COLUMNS[entry.kind])
        values = list(self._shared_values(entry)) + list(_payload_values(entry))
        if entry.id:
            columns.insert(0, "id")
            values.insert(0, entry.id)
        sql = f"INSERT INTO {entry.kind.table}({','.join(columns)}) VALUES({','.join('?' * len(columns))})"
        with self._cursor() as conn:
            cur = conn.execute(sql, values)
            new_id = entry.id or cur.lastrowid
        logger.debug("Inserted %s %d", entry.kind.value, new_id)
        return new_id

    def create(self, entry):
        new_id = self.insert(entry)
        return self.get_by_id(entry.kind, new_id)

    def get_by_id(self, kind, entry_id):
        kind = EntryKind.parse(kind)
        with self._cursor() as conn:
            row = conn.execute(f"SELECT * FROM {kind.table} WHERE id = ?", (int(entry_id),)).fetchone()
        if not row:
            return None
        return self._row_to_entry(kind, row)

    def get_all(self, kind):
        kind = EntryKind.parse(kind)
        with self._cursor() as conn:
            rows = conn.execute(f"SELECT * FROM {kind.table} ORDER BY {DEFAULT_ORDER[kind]}").fetchall()
        return [self._row_to_entry(kind, row) for row in rows]

    def get_pending_tasks(self):
        with self._cursor() as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks WHERE completed = 0 ORDER BY {DEFAULT_ORDER[EntryKind.TASK]}"
            ).fetchall()
        return [self._row_to_entry(EntryKind.TASK, row) for row in rows]

    def get_everything(self):
        """All four tables read as one consistent snapshot."""
        with self.transaction(mode="DEFERRED"):
            return {kind: self.get_all(kind) for kind in EntryKind}

    def count(self, kind):
        kind = EntryKind.parse(kind)
        with self._cursor() as conn:
            row = conn.execute(f"SELECT COUNT(*) AS total FROM {kind.table}").fetchone()
        return int(row["total"])

    def update(self, entry, at=None):
        """Rewrite the whole row with a fresh modifiedAt. Returns None if the row is gone."""
        if not entry.id:
            raise ValueError("cannot update an entry that was never inserted")
        entry = entry.touched(at)
        entry.validate()
        columns = list(_SHARED_COLUMNS) + list(PAYLOAD_COLUMNS[entry.kind])
        assignments = ",".join(f"{c}=?" for c in columns)
        values = list(self._shared_values(entry)) + list(_payload_values(entry)) + [entry.id]
        with self._cursor() as conn:
            cur = conn.execute(f"UPDATE {entry.kind.table} SET {assignments} WHERE id=?", values)
        if cur.rowcount == 0:
            return None
        logger.debug("Updated %s %d", entry.kind.value, entry.id)
        return entry

    def set_task_completed(self, task_id, completed=True):
        task = self.get_by_id(EntryKind.TASK, task_id)
        if task is None:
            return None
        task.payload.completed = bool(completed)
        return self.update(task)

    def delete(self, kind, entry_id):
        kind = EntryKind.parse(kind)
        with self._cursor() as conn:
            cur = conn.execute(f"DELETE FROM {kind.table} WHERE id = ?", (int(entry_id),))
        return cur.rowcount > 0

    def delete_all(self, kind):
        kind = EntryKind.parse(kind)
        with self._cursor() as conn:
            cur = conn.execute(f"DELETE FROM {kind.table}")
        return cur.rowcount

    def bulk_insert(self, entries, replace=True):
        """Insert entries keeping their ids. Existing ids are overwritten when ``replace``."""
        verb = "INSERT OR REPLACE" if replace else "INSERT"
        inserted = 0
        with self.transaction() as conn:
            for entry in entries:
                entry.validate()
                columns = ["id"] + list(_SHARED_COLUMNS) + list(PAYLOAD_COLUMNS[entry.kind])
                values = [entry.id or None] + list(self._shared_values(entry)) + list(_payload_values(entry))
                conn.execute(
                    f"{verb} INTO {entry.kind.table}({','.join(columns)}) VALUES({','.join('?' * len(columns))})",
                    values,
                )
                inserted += 1
        return inserted

    def replace_all(self, entries_by_kind):
        """Wipe every entry table and load ``entries_by_kind`` in one transaction."""
        counts = {}
        with self.transaction():
            for kind in EntryKind:
                self.delete_all(kind)
            for kind in EntryKind:
                counts[kind] = self.bulk_insert(entries_by_kind.get(kind, []), replace=True)
        return counts

    def categories(self, kind=None):
        kinds = [EntryKind.parse(kind)] if kind else list(EntryKind)
        union = " UNION ".join(f"SELECT category FROM {k.table}" for k in kinds)
        with self._cursor() as conn:
            rows = conn.execute(
                f"SELECT DISTINCT category FROM ({union}) WHERE TRIM(category) != '' ORDER BY category"
            ).fetchall()
        return [r["category"] for r in rows]

    @staticmethod
    def _shared_values(entry):
        return (
            entry.title,
            entry.category or "",
            int(entry.category_color),
            entry.background_color,
            entry.image_uri,
            1 if entry.image_fill_card else 0,
            encode_reminder(entry.reminder),
            int(entry.created_at),
            int(entry.modified_at),
        )

    @staticmethod
    def _row_to_entry(kind, row):
        return Entry(
            kind=kind,
            id=int(row["id"]),
            title=row["title"],
            category=row["category"] or "",
            category_color=int(row["categoryColor"] or 0),
            background_color=row["backgroundColor"],
            image_uri=row["imageUri"],
            image_fill_card=bool(row["imageFillCard"]),
            reminder=decode_reminder(row["hasReminder"]),
            created_at=int(row["createdAt"]),
            modified_at=int(row["modifiedAt"]),
            payload=_payload_from_row(kind, row),
        )

    # ── settings ──

    def get_settings(self):
        """The stored settings row, or None before the first save."""
        with self._cursor() as conn:
            row = conn.execute("SELECT * FROM settings WHERE id = ?", (SETTINGS_ROW_ID,)).fetchone()
        return Settings.from_row(row) if row else None

    def load_settings(self):
        return self.get_settings() or Settings()

    def save_settings(self, settings):
        settings.validate()
        with self._cursor() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO settings(id,themeName,isGridView,showCategory,showDateTime)
                VALUES(?,?,?,?,?)
                """,
                (
                    SETTINGS_ROW_ID,
                    settings.theme_name,
                    1 if settings.is_grid_view else 0,
                    1 if settings.show_category else 0,
                    1 if settings.show_date_time else 0,
                ),
            )
            # Published before the lock is released so the cell follows write order.
            if self._settings_cell is not None:
                self._settings_cell.publish(settings)
        return settings

    @property
    def settings_cell(self):
        with self._conn_lock:
            if self._settings_cell is None:
                self._settings_cell = SettingsCell(self.load_settings())
            return self._settings_cell

    def observe_settings(self, callback):
        # Holding the store lock keeps saves from interleaving with the first delivery.
        with self._conn_lock:
            return self.settings_cell.subscribe(callback)
