"""
Delete detections and bus images stored without GPS or user data.

Usage:
    python -m roadwatch.scripts.cleanup_incomplete
"""

from __future__ import annotations

import logging

from roadwatch.core.logging_config import setup_logging
from roadwatch.services.cleanup import cleanup_incomplete_entries
from roadwatch.storage import get_document_store


logger = logging.getLogger("scripts.cleanup_incomplete")


def main() -> None:
    setup_logging()
    deleted = cleanup_incomplete_entries(get_document_store())
    logger.info("Removed %s incomplete records: %s", sum(deleted.values()), deleted)


if __name__ == "__main__":
    main()
