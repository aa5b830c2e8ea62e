import logging
import os

from aiohttp import web

from .api import create_app
from .db import EnscribeStore

logger = logging.getLogger("Enscribe")


def log_level_from_env():
    name = os.environ.get("ENSCRIBE_LOG_LEVEL", "INFO").strip().upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def main():
    logging.basicConfig(
        level=log_level_from_env(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("ENSCRIBE_HOST", "127.0.0.1")
    port = int(os.environ.get("ENSCRIBE_PORT", "8188"))
    store = EnscribeStore.get()
    logger.info("Serving %s on http://%s:%d", store.db_path, host, port)
    try:
        web.run_app(create_app(store), host=host, port=port)
    finally:
        store.close()


if __name__ == "__main__":
    main()
