import tempfile
import unittest
from pathlib import Path
from unittest import mock

from enscribe.db import EnscribeStore
from enscribe.errors import StoreIOError
from enscribe.models import Entry, EntryKind, NotePayload, PrayerPayload, Reminder, RepeatType, TaskPayload, VersePayload


def _entry(kind, title, created_at=100, modified_at=None, category="", **payload):
    payload_type = {
        EntryKind.NOTE: NotePayload,
        EntryKind.TASK: TaskPayload,
        EntryKind.VERSE: VersePayload,
        EntryKind.PRAYER: PrayerPayload,
    }[kind]
    return Entry(
        kind=kind,
        title=title,
        category=category,
        created_at=created_at,
        modified_at=created_at if modified_at is None else modified_at,
        payload=payload_type(**payload),
    )


class EnscribeStoreTests(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = str(Path(self.temp_dir.name) / "enscribe.db")
        patcher = mock.patch("enscribe.db.get_db_path", return_value=self.db_path)
        self.addCleanup(patcher.stop)
        patcher.start()
        self.store = EnscribeStore().open()

    def tearDown(self):
        self.store.close()
        self.temp_dir.cleanup()

    def test_insert_assigns_ids_per_kind(self):
        note_id = self.store.insert(_entry(EntryKind.NOTE, "First", content="hello"))
        second_id = self.store.insert(_entry(EntryKind.NOTE, "Second"))
        verse_id = self.store.insert(_entry(EntryKind.VERSE, "Psalm 23", verse="The Lord is my shepherd"))

        self.assertEqual((note_id, second_id), (1, 2))
        self.assertEqual(verse_id, 1)
        note = self.store.get_by_id(EntryKind.NOTE, note_id)
        self.assertEqual(note.title, "First")
        self.assertEqual(note.payload.content, "hello")
        self.assertEqual(self.store.get_by_id("verses", verse_id).payload.verse, "The Lord is my shepherd")

    def test_get_by_id_missing_returns_none(self):
        self.assertIsNone(self.store.get_by_id(EntryKind.TASK, 42))

    def test_full_record_is_persisted(self):
        entry = _entry(EntryKind.TASK, "Errands", checklist=["milk", "eggs"], completed=True)
        entry.category = "Home"
        entry.category_color = -65536
        entry.background_color = 123
        entry.image_uri = "content://media/7"
        entry.image_fill_card = True
        entry.reminder = Reminder(1700000000000, RepeatType.WEEKLY, True)

        created = self.store.create(entry)

        entry.id = created.id
        self.assertEqual(created, entry)

    def test_default_orders(self):
        self.store.insert(_entry(EntryKind.NOTE, "old", created_at=1))
        self.store.insert(_entry(EntryKind.NOTE, "new", created_at=5))
        self.store.insert(_entry(EntryKind.TASK, "t-old", created_at=1, modified_at=2))
        self.store.insert(_entry(EntryKind.TASK, "t-new", created_at=1, modified_at=9))
        self.store.insert(_entry(EntryKind.VERSE, "Romans"))
        self.store.insert(_entry(EntryKind.VERSE, "John"))
        self.store.insert(_entry(EntryKind.PRAYER, "low", created_at=1, modified_at=9, priority=0))
        self.store.insert(_entry(EntryKind.PRAYER, "high-old", created_at=1, modified_at=2, priority=3))
        self.store.insert(_entry(EntryKind.PRAYER, "high-new", created_at=1, modified_at=4, priority=3))

        def titles(kind):
            return [e.title for e in self.store.get_all(kind)]

        self.assertEqual(titles(EntryKind.NOTE), ["new", "old"])
        self.assertEqual(titles(EntryKind.TASK), ["t-new", "t-old"])
        self.assertEqual(titles(EntryKind.VERSE), ["John", "Romans"])
        self.assertEqual(titles(EntryKind.PRAYER), ["high-new", "high-old", "low"])

    def test_pending_tasks_exclude_completed(self):
        self.store.insert(_entry(EntryKind.TASK, "open", completed=False))
        done_id = self.store.insert(_entry(EntryKind.TASK, "done", completed=True))

        self.assertEqual([t.title for t in self.store.get_pending_tasks()], ["open"])
        self.assertEqual(len(self.store.get_all(EntryKind.TASK)), 2)

        self.store.set_task_completed(done_id, False)
        self.assertEqual(len(self.store.get_pending_tasks()), 2)

    def test_update_rewrites_record_and_stamps_modified(self):
        entry_id = self.store.insert(_entry(EntryKind.NOTE, "Draft", created_at=100, content="v1"))
        entry = self.store.get_by_id(EntryKind.NOTE, entry_id)
        entry.title = "Final"
        entry.payload.content = "v2"

        updated = self.store.update(entry, at=500)

        self.assertEqual(updated.modified_at, 500)
        stored = self.store.get_by_id(EntryKind.NOTE, entry_id)
        self.assertEqual(stored.title, "Final")
        self.assertEqual(stored.payload.content, "v2")
        self.assertEqual(stored.created_at, 100)
        self.assertEqual(stored.modified_at, 500)

    def test_update_missing_row_returns_none(self):
        ghost = _entry(EntryKind.NOTE, "ghost")
        ghost.id = 77
        self.assertIsNone(self.store.update(ghost))
        with self.assertRaises(ValueError):
            self.store.update(_entry(EntryKind.NOTE, "never saved"))

    def test_insert_rejects_modified_before_created(self):
        with self.assertRaises(ValueError):
            self.store.insert(_entry(EntryKind.NOTE, "bad", created_at=10, modified_at=1))
        self.assertEqual(self.store.count(EntryKind.NOTE), 0)

    def test_delete_and_delete_all(self):
        first = self.store.insert(_entry(EntryKind.PRAYER, "a"))
        self.store.insert(_entry(EntryKind.PRAYER, "b"))

        self.assertTrue(self.store.delete(EntryKind.PRAYER, first))
        self.assertFalse(self.store.delete(EntryKind.PRAYER, first))
        self.assertEqual(self.store.delete_all(EntryKind.PRAYER), 1)
        self.assertEqual(self.store.get_all(EntryKind.PRAYER), [])

    def test_bulk_insert_keeps_ids_and_replaces_conflicts(self):
        self.store.insert(_entry(EntryKind.VERSE, "Y"))
        replacement = _entry(EntryKind.VERSE, "X")
        replacement.id = 1
        extra = _entry(EntryKind.VERSE, "Z")
        extra.id = 10

        self.assertEqual(self.store.bulk_insert([replacement, extra]), 2)

        self.assertEqual(self.store.get_by_id(EntryKind.VERSE, 1).title, "X")
        self.assertEqual(self.store.get_by_id(EntryKind.VERSE, 10).title, "Z")
        self.assertEqual(self.store.count(EntryKind.VERSE), 2)

    def test_duplicate_insert_surfaces_store_error(self):
        entry = _entry(EntryKind.NOTE, "dup")
        entry.id = 4
        self.store.insert(entry)
        with self.assertRaises(StoreIOError):
            self.store.insert(entry)
        with self.assertRaises(StoreIOError):
            self.store.bulk_insert([entry], replace=False)

    def test_replace_all_rolls_back_on_failure(self):
        self.store.insert(_entry(EntryKind.NOTE, "keep me"))
        incoming = _entry(EntryKind.NOTE, "incoming")
        incoming.id = 9

        with mock.patch.object(self.store, "bulk_insert", side_effect=[1, StoreIOError("disk full")]):
            with self.assertRaises(StoreIOError):
                self.store.replace_all({EntryKind.NOTE: [incoming]})

        self.assertEqual([e.title for e in self.store.get_all(EntryKind.NOTE)], ["keep me"])

    def test_categories_across_kinds(self):
        self.store.insert(_entry(EntryKind.NOTE, "a", category="Home"))
        self.store.insert(_entry(EntryKind.TASK, "b", category="Work"))
        self.store.insert(_entry(EntryKind.TASK, "c", category=""))
        self.store.insert(_entry(EntryKind.VERSE, "d", category="Home"))

        self.assertEqual(self.store.categories(), ["Home", "Work"])
        self.assertEqual(self.store.categories("task"), ["Work"])

    def test_legacy_delimited_columns_are_read(self):
        with self.store.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tasks(id,title,category,categoryColor,imageFillCard,hasReminder,createdAt,modifiedAt,checklist,completed)
                VALUES(5,'Old task','',0,0,'1700000000000|DAILY|true',1,2,'milk|::|eggs',0)
                """
            )

        task = self.store.get_by_id(EntryKind.TASK, 5)

        self.assertEqual(task.payload.checklist, ["milk", "eggs"])
        self.assertEqual(task.reminder, Reminder(1700000000000, RepeatType.DAILY, True))

    def test_closed_store_raises(self):
        self.store.close()
        with self.assertRaises(StoreIOError):
            self.store.get_all(EntryKind.NOTE)
        self.store.open()
        self.assertEqual(self.store.get_all(EntryKind.NOTE), [])

    def test_data_survives_reopen(self):
        self.store.insert(_entry(EntryKind.NOTE, "persisted"))
        self.store.close()

        with EnscribeStore(self.db_path) as reopened:
            self.assertEqual([e.title for e in reopened.get_all(EntryKind.NOTE)], ["persisted"])

    def test_in_memory_store(self):
        with EnscribeStore(":memory:") as store:
            store.insert(_entry(EntryKind.NOTE, "scratch"))
            self.assertEqual(store.count(EntryKind.NOTE), 1)

    def test_shared_store_is_lazily_created_once(self):
        self.addCleanup(EnscribeStore.reset_shared)
        EnscribeStore.reset_shared()
        shared = EnscribeStore.get()
        self.assertIs(EnscribeStore.get(), shared)
        self.assertEqual(shared.db_path, self.db_path)
        self.assertTrue(shared.is_open)
        EnscribeStore.reset_shared()
        self.assertFalse(shared.is_open)


if __name__ == "__main__":
    unittest.main()
