import os


def get_data_dir():
    base = os.environ.get("ENSCRIBE_DATA_DIR") or os.path.join(os.path.expanduser("~"), ".enscribe")
    os.makedirs(base, exist_ok=True)
    return base


def get_db_path():
    override = os.environ.get("ENSCRIBE_DB_PATH")
    if override:
        return override
    return os.path.join(get_data_dir(), "enscribe.db")
