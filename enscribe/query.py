"""Filter and sort over entries that are already loaded in memory.

Everything here is pure: inputs are never mutated and the same input always
yields the same output order, which list diffing in the UI relies on.
"""

import logging
from enum import Enum

from .constants import PREVIEW_LIMIT
from .models import EntryKind
from .utils import truncate

logger = logging.getLogger("Enscribe")


class SortOrder(Enum):
    MODIFIED_NEWEST = "modified_newest"
    MODIFIED_OLDEST = "modified_oldest"
    TITLE_ASCENDING = "title_asc"
    TITLE_DESCENDING = "title_desc"
    CATEGORY_ASCENDING = "category_asc"
    CATEGORY_DESCENDING = "category_desc"

    @property
    def label(self):
        return _SORT_LABELS[self]

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value or "").strip()
        if not text:
            return cls.MODIFIED_NEWEST
        for order in cls:
            if text in (order.value, order.name) or text.lower() == order.name.replace("_", "").lower():
                return order
        raise ValueError(f"Unknown sort order: {value!r}")


_SORT_LABELS = {
    SortOrder.MODIFIED_NEWEST: "Date (Newest)",
    SortOrder.MODIFIED_OLDEST: "Date (Oldest)",
    SortOrder.TITLE_ASCENDING: "Title (A-Z)",
    SortOrder.TITLE_DESCENDING: "Title (Z-A)",
    SortOrder.CATEGORY_ASCENDING: "Category (A-Z)",
    SortOrder.CATEGORY_DESCENDING: "Category (Z-A)",
}

# order -> (key function, reverse)
_SORT_KEYS = {
    SortOrder.MODIFIED_NEWEST: (lambda e: e.modified_at, True),
    SortOrder.MODIFIED_OLDEST: (lambda e: e.modified_at, False),
    SortOrder.TITLE_ASCENDING: (lambda e: e.title.lower(), False),
    SortOrder.TITLE_DESCENDING: (lambda e: e.title.lower(), True),
    SortOrder.CATEGORY_ASCENDING: (lambda e: (e.category.lower(), e.title.lower()), False),
    SortOrder.CATEGORY_DESCENDING: (lambda e: (e.category.lower(), e.title.lower()), True),
}


def matches_query(entry, query, include_body=False):
    if not query:
        return True
    if query in entry.title.lower():
        return True
    if entry.kind is EntryKind.NOTE or include_body:
        return query in entry.body_text().lower()
    return False


def filter_entries(entries, search_query="", selected_categories=None, include_body=False):
    """Keep entries whose text matches ``search_query`` and whose category is selected.

    A blank query matches everything and an empty category selection means no
    category filter. Note bodies are always searched; other kinds only when
    ``include_body`` is set.
    """
    query = (search_query or "").strip().lower()
    categories = set(selected_categories or ())
    return [
        e
        for e in entries
        if matches_query(e, query, include_body=include_body) and (not categories or e.category in categories)
    ]


def sort_entries(entries, order=SortOrder.MODIFIED_NEWEST):
    key, reverse = _SORT_KEYS[SortOrder.parse(order)]
    # sorted() stays stable with reverse=True, ties keep their input order.
    return sorted(entries, key=key, reverse=reverse)


def filter_and_sort(entries, search_query="", selected_categories=None, order=SortOrder.MODIFIED_NEWEST, include_body=False):
    order = SortOrder.parse(order)
    filtered = filter_entries(entries, search_query, selected_categories, include_body=include_body)
    logger.debug(
        "filter_and_sort: q=%r categories=%s order=%s in=%d out=%d",
        search_query,
        sorted(selected_categories or ()),
        order.value,
        len(entries),
        len(filtered),
    )
    return sort_entries(filtered, order)


def categories_of(entries):
    return sorted({e.category for e in entries if e.category.strip()})


def preview_text(entry, limit=PREVIEW_LIMIT):
    if entry.kind is EntryKind.TASK:
        return truncate(", ".join(item for item in entry.payload.checklist if item.strip()), limit)
    return truncate(entry.body_text(), limit)
