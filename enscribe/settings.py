import logging
import threading
from dataclasses import dataclass, replace

from .constants import DEFAULT_THEME, THEMES
from .errors import CodecError

logger = logging.getLogger("Enscribe")


@dataclass(frozen=True)
class Settings:
    theme_name: str = DEFAULT_THEME
    is_grid_view: bool = True
    show_category: bool = True
    show_date_time: bool = True

    def validate(self):
        if self.theme_name not in THEMES:
            raise ValueError(f"Unknown theme: {self.theme_name!r}")
        return self

    def with_changes(self, **changes):
        return replace(self, **changes)

    def to_dict(self):
        return {
            "themeName": self.theme_name,
            "isGridView": self.is_grid_view,
            "showCategory": self.show_category,
            "showDateTime": self.show_date_time,
        }

    @classmethod
    def from_dict(cls, data, base=None):
        """Apply the keys present in ``data`` on top of ``base`` (defaults if omitted)."""
        if not isinstance(data, dict):
            raise CodecError("settings must be an object")
        current = base or cls()
        changes = {}
        for key, attr in (
            ("themeName", "theme_name"),
            ("isGridView", "is_grid_view"),
            ("showCategory", "show_category"),
            ("showDateTime", "show_date_time"),
        ):
            if key not in data:
                continue
            value = data[key]
            expected = str if attr == "theme_name" else bool
            if not isinstance(value, expected):
                raise CodecError(f"settings.{key} has the wrong type")
            changes[attr] = value
        return replace(current, **changes)

    @classmethod
    def from_row(cls, row):
        theme = row["themeName"]
        if theme not in THEMES:
            logger.warning("Stored theme %r is unknown, using %s", theme, DEFAULT_THEME)
            theme = DEFAULT_THEME
        return cls(
            theme_name=theme,
            is_grid_view=bool(row["isGridView"]),
            show_category=bool(row["showCategory"]),
            show_date_time=bool(row["showDateTime"]),
        )


class SettingsCell:
    """Holds the latest Settings and pushes every new value to subscribers.

    ``subscribe`` delivers the current value right away, then each published
    value, until the returned callable is invoked. Delivery happens under the
    cell lock so every subscriber sees values in publish order.
    """

    def __init__(self, value=None):
        self._value = value or Settings()
        self._subscribers = {}
        self._next_token = 0
        self._lock = threading.RLock()

    @property
    def value(self):
        return self._value

    def subscribe(self, callback):
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._subscribers[token] = callback
            callback(self._value)

        def unsubscribe():
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def subscriber_count(self):
        with self._lock:
            return len(self._subscribers)

    def publish(self, value):
        with self._lock:
            self._value = value
            for callback in list(self._subscribers.values()):
                try:
                    callback(value)
                except Exception:
                    logger.exception("Settings subscriber failed")
