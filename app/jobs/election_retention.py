"""Scheduled purge of expired elections."""

from __future__ import annotations

import logging

from app.dependencies import get_election_store

logger = logging.getLogger(__name__)


async def election_retention() -> None:
    """Delete elections older than the configured retention period."""
    store = get_election_store()
    purged = store.purge_expired()
    logger.info("election_retention completed: %s elections purged", purged)
