"""Create tables (SQL) or indexes (Mongo) for the configured document store."""

from __future__ import annotations

import logging

from roadwatch.core.logging_config import setup_logging
from roadwatch.storage import get_document_store


logger = logging.getLogger("scripts.create_db")


def main() -> None:
    setup_logging()
    store = get_document_store()
    store.ensure_schema()
    logger.info("Document store schema created/verified backend=%s", store.backend)


if __name__ == "__main__":
    main()
