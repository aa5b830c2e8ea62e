"""
Backup and restore of the full entry set.

A backup document is one JSON object:

    {"version": 2, "exportedAt": <ms>,
     "notes": [...], "tasks": [...], "verses": [...], "prayers": [...]}

Documents without ``version`` are version 1 (written by earlier releases,
reminders and checklists may appear in their delimited string form).
Restoring validates the whole document before anything is deleted, then
replaces every entry table inside a single transaction.
"""

import json
import logging

from .constants import BACKUP_VERSION, LEGACY_BACKUP_VERSION
from .errors import CodecError
from .models import Entry, EntryKind
from .utils import now_millis

logger = logging.getLogger("Enscribe")

DOCUMENT_KEYS = {kind: kind.table for kind in EntryKind}


def export_document(store):
    snapshot = store.get_everything()
    document = {"version": BACKUP_VERSION, "exportedAt": now_millis()}
    for kind, key in DOCUMENT_KEYS.items():
        document[key] = [entry.to_dict() for entry in snapshot[kind]]
    logger.info(
        "Exported backup: %s",
        ", ".join(f"{len(document[key])} {key}" for key in DOCUMENT_KEYS.values()),
    )
    return document


def export_json(store, indent=None):
    return json.dumps(export_document(store), ensure_ascii=False, indent=indent)


def parse_document(document):
    """Decode a backup (JSON text, bytes or an already-parsed dict).

    Returns ``{EntryKind: [Entry, ...]}``. Any problem raises CodecError; the
    store is never touched here.
    """
    if isinstance(document, (bytes, bytearray)):
        try:
            document = document.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CodecError(f"backup is not UTF-8 text: {exc}") from exc
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as exc:
            raise CodecError(f"backup is not valid JSON: {exc}") from exc
    if not isinstance(document, dict):
        raise CodecError("backup must be a JSON object")

    version = document.get("version", LEGACY_BACKUP_VERSION)
    if isinstance(version, bool) or not isinstance(version, int):
        raise CodecError("backup version must be an integer")
    if version > BACKUP_VERSION:
        raise CodecError(f"backup version {version} is newer than supported ({BACKUP_VERSION})")
    legacy = version < BACKUP_VERSION

    parsed = {}
    for kind, key in DOCUMENT_KEYS.items():
        if key not in document:
            raise CodecError(f"backup is missing the {key!r} list")
        records = document[key]
        if not isinstance(records, list):
            raise CodecError(f"backup field {key!r} must be a list")
        entries = []
        for index, record in enumerate(records):
            try:
                entries.append(Entry.from_dict(kind, record, legacy=legacy))
            except CodecError as exc:
                raise CodecError(f"{key}[{index}]: {exc}") from exc
        parsed[kind] = entries
    return parsed


def import_document(store, document):
    """Replace every entry in ``store`` with the contents of ``document``.

    Returns the number of restored entries per document key.
    """
    parsed = parse_document(document)
    counts = store.replace_all(parsed)
    summary = {DOCUMENT_KEYS[kind]: n for kind, n in counts.items()}
    logger.info("Restored backup: %s", summary)
    return summary


def write_backup(store, sink):
    text = export_json(store, indent=2)
    try:
        sink.write(text)
    except TypeError:
        sink.write(text.encode("utf-8"))
    return text


def read_backup(store, source):
    return import_document(store, source.read())
