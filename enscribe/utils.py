import json
import re
import time
from datetime import datetime


def now_millis():
    return int(time.time() * 1000)


_ws_re = re.compile(r"\s+")


def normalize_text(s):
    if s is None:
        return ""
    s = str(s).strip()
    s = _ws_re.sub(" ", s)
    return s


def json_dumps(obj):
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def truncate(text, limit):
    text = normalize_text(text)
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def backup_file_name(moment=None):
    stamp = (moment or datetime.now()).strftime("%Y%m%d-%H%M%S")
    return f"enscribe-backup-{stamp}.json"


def env_flag(value):
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
