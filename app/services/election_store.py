"""Election record storage: adapters plus the read-modify-write store."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

from postgrest import APIError

from app.config import settings
from app.schemas.election import Election, Nomination, Vote
from app.services.condorcet import resolve_winner
from app.utils.errors import StorageError
from app.utils.time import now_ms, now_utc
from supabase import Client

logger = logging.getLogger(__name__)

# Admission check run on the freshly loaded election inside its lock; raises to abort.
Guard = Callable[[Election], None]


class ElectionAdapter(Protocol):
    """Minimal persistence contract for whole election documents."""

    kind: str

    def get_election(self, election_id: str) -> Election | None: ...

    def save_election(self, election: Election) -> None: ...

    def get_all_elections(self) -> list[Election]: ...

    def delete_election(self, election_id: str) -> None: ...


class MemoryElectionAdapter:
    """Process-local storage used for development and tests."""

    kind = "memory"

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get_election(self, election_id: str) -> Election | None:
        with self._lock:
            row = self._rows.get(election_id)
        return Election.model_validate(row) if row is not None else None

    def save_election(self, election: Election) -> None:
        with self._lock:
            self._rows[election.id] = election.model_dump()

    def get_all_elections(self) -> list[Election]:
        with self._lock:
            rows = list(self._rows.values())
        return [Election.model_validate(row) for row in rows]

    def delete_election(self, election_id: str) -> None:
        with self._lock:
            self._rows.pop(election_id, None)


class SupabaseElectionAdapter:
    """Store each election as a JSON document in one Supabase table."""

    kind = "supabase"

    def __init__(self, client: Client, table: str | None = None) -> None:
        self.client = client
        self.table = table or settings.elections_table

    def _execute(self, query, action: str) -> list[dict[str, Any]]:
        try:
            response = query.execute()
        except APIError as exc:
            message = getattr(exc, "message", "Database request failed")
            logger.error("Supabase election %s failed: %s", action, message)
            raise StorageError(f"Election {action} failed: {message}") from exc
        return response.data or []

    def get_election(self, election_id: str) -> Election | None:
        rows = self._execute(
            self.client.table(self.table).select("data").eq("id", election_id).limit(1),
            "load",
        )
        if not rows or not rows[0].get("data"):
            return None
        return Election.model_validate(rows[0]["data"])

    def save_election(self, election: Election) -> None:
        self._execute(
            self.client.table(self.table).upsert(
                {
                    "id": election.id,
                    "data": election.model_dump(mode="json"),
                    "updated_at": now_utc().isoformat(),
                }
            ),
            "save",
        )

    def get_all_elections(self) -> list[Election]:
        rows = self._execute(self.client.table(self.table).select("data"), "list")
        return [Election.model_validate(row["data"]) for row in rows if row.get("data")]

    def delete_election(self, election_id: str) -> None:
        self._execute(self.client.table(self.table).delete().eq("id", election_id), "delete")


def get_adapter() -> ElectionAdapter:
    """Pick Supabase when it is configured, otherwise in-process memory."""
    if settings.supabase_enabled:
        from app.utils.supabase_client import get_service_client

        return SupabaseElectionAdapter(get_service_client())
    logger.warning("Supabase not configured; elections are kept in memory")
    return MemoryElectionAdapter()


class ElectionStore:
    """Election persistence with per-election write serialisation.

    Every mutation reloads the election, applies the change and saves it
    while holding that election's lock, so concurrent requests against one
    election never lose each other's writes within this process.
    """

    def __init__(
        self,
        adapter: ElectionAdapter,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.adapter = adapter
        self.clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, election_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(election_id)
            if lock is None:
                lock = self._locks[election_id] = threading.Lock()
            return lock

    def _is_expired(self, election: Election) -> bool:
        if election.name.strip().lower() in settings.retention_exempt_set:
            return False
        return self.clock() - election.created_at > settings.retention_ms

    def _check_retention(self, election: Election) -> Election | None:
        if not self._is_expired(election):
            return election
        logger.info("Deleting expired election %s", election.id)
        self.adapter.delete_election(election.id)
        with self._locks_guard:
            self._locks.pop(election.id, None)
        return None

    def _mutate(
        self,
        election_id: str,
        mutation: Callable[[Election], None],
        guard: Guard | None = None,
    ) -> Election | None:
        with self._lock_for(election_id):
            election = self.adapter.get_election(election_id)
            if election is None:
                return None
            if guard is not None:
                guard(election)
            mutation(election)
            self.adapter.save_election(election)
            return election

    def create_election(self, election: Election) -> Election:
        with self._lock_for(election.id):
            self.adapter.save_election(election)
        logger.info("Created election %s (%s)", election.id, election.name)
        return election

    def get_election(self, election_id: str) -> Election | None:
        election = self.adapter.get_election(election_id)
        if election is None:
            return None
        return self._check_retention(election)

    def get_all_elections(self) -> list[Election]:
        results: list[Election] = []
        for election in self.adapter.get_all_elections():
            kept = self._check_retention(election)
            if kept is not None:
                results.append(kept)
        return results

    def purge_expired(self) -> int:
        """Delete every election past its retention period."""
        expired = [e for e in self.adapter.get_all_elections() if self._is_expired(e)]
        for election in expired:
            self._check_retention(election)
        return len(expired)

    def start_voting(self, election_id: str, guard: Guard | None = None) -> Election | None:
        def _start(election: Election) -> None:
            election.vote_start_time = self.clock()

        return self._mutate(election_id, _start, guard)

    def add_participant(self, election_id: str, name: str) -> Election | None:
        def _add(election: Election) -> None:
            lowered = name.lower()
            if not any(p.lower() == lowered for p in election.participants):
                election.participants.append(name)

        return self._mutate(election_id, _add)

    def add_nomination(
        self, election_id: str, nomination: Nomination, guard: Guard | None = None
    ) -> Election | None:
        """Add a nomination; a regular nomination replaces the nominator's previous one."""

        def _add(election: Election) -> None:
            if not nomination.is_write_in:
                nominator = nomination.nominator_name.lower()
                for index, existing in enumerate(election.nominations):
                    if not existing.is_write_in and existing.nominator_name.lower() == nominator:
                        election.nominations[index] = nomination
                        return
            election.nominations.append(nomination)

        return self._mutate(election_id, _add, guard)

    def remove_nomination(
        self, election_id: str, nomination_id: str, guard: Guard | None = None
    ) -> Election | None:
        def _remove(election: Election) -> None:
            election.nominations = [n for n in election.nominations if n.id != nomination_id]

        return self._mutate(election_id, _remove, guard)

    def add_vote(
        self,
        election_id: str,
        voter_name: str,
        rankings: list[str],
        guard: Guard | None = None,
    ) -> Election | None:
        """Record a ballot, replacing any earlier ballot from the same voter."""
        vote = Vote(voter_name=voter_name, rankings=list(rankings), created_at=self.clock())

        def _add(election: Election) -> None:
            for index, existing in enumerate(election.votes):
                if existing.voter_name == voter_name:
                    election.votes[index] = vote
                    return
            election.votes.append(vote)

        return self._mutate(election_id, _add, guard)

    def finalize_election(self, election_id: str) -> Election | None:
        """Mark the election completed and cache its winner."""

        def _finalize(election: Election) -> None:
            if election.state == "cancelled":
                return
            result = resolve_winner(election.nominations, election.votes)
            election.state = "completed"
            election.winner = result.winner_id
            election.winner_method = result.method
            election.tie_broken = result.tie_broken
            logger.info(
                "Finalized election %s: winner=%s method=%s",
                election.id,
                result.winner_id,
                result.method,
            )

        return self._mutate(election_id, _finalize)

    def cancel_election(self, election_id: str) -> Election | None:
        def _cancel(election: Election) -> None:
            election.state = "cancelled"
            election.winner = None
            election.winner_method = None
            election.tie_broken = False
            logger.info("Cancelled election %s", election.id)

        return self._mutate(election_id, _cancel)
