_ENTRY_COLUMNS = r"""
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  title TEXT NOT NULL,
  category TEXT NOT NULL DEFAULT '',
  categoryColor INTEGER NOT NULL DEFAULT 0,
  backgroundColor INTEGER,
  imageUri TEXT,
  imageFillCard INTEGER NOT NULL DEFAULT 0,
  hasReminder TEXT,
  createdAt INTEGER NOT NULL,
  modifiedAt INTEGER NOT NULL"""

SCHEMA_SQL = rf"""
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notes ({_ENTRY_COLUMNS},
  content TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS tasks ({_ENTRY_COLUMNS},
  checklist TEXT,
  completed INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS verses ({_ENTRY_COLUMNS},
  verse TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS prayers ({_ENTRY_COLUMNS},
  prayer TEXT NOT NULL DEFAULT '',
  priority INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS settings (
  id INTEGER PRIMARY KEY,
  themeName TEXT NOT NULL,
  isGridView INTEGER NOT NULL,
  showCategory INTEGER NOT NULL,
  showDateTime INTEGER NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_notes_created ON notes(createdAt);
"""
