"""Background job modules for periodic election housekeeping."""

from app.jobs.election_retention import election_retention

__all__ = ["election_retention"]
