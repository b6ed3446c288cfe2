"""
JSON document store for league waiver state.

Each league lives in a single JSON document (``<league_id>.json``) holding
its settings, teams, pending bids, transaction log, and processing lease.
Every write goes to a temp file that is then atomically renamed over the
document, so a crash can never leave a half-written league behind.

Access to a league is serialized by a per-league thread lock plus an
exclusive flock on `<league_id>.lock`, so the CLI and the API server can
share a data directory. Both locks are acquired with a bounded timeout; a
timeout surfaces as StoreUnavailable.
"""

import fcntl
import json
import logging
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .. import config
from .errors import (
    LeagueNotFound,
    SettlementFailure,
    StoreUnavailable,
    TeamNotFound,
    WaiverRunInProgress,
)
from .waiver_models import (
    LeagueSettings,
    LeagueState,
    PendingBid,
    ProcessedClaim,
    ProcessingLease,
    TeamState,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


class TeamTransaction:
    """
    Staged changes to one team, committed atomically by the store.

    Obtained from JsonLeagueStore.team_transaction(); nothing is persisted
    unless the ``with`` block exits cleanly and validate() passes.
    """

    def __init__(self, league: LeagueState, team: TeamState):
        self.league = league
        self.team = team

    @property
    def settings(self) -> LeagueSettings:
        return self.league.settings

    def ensure_unchanged(self, roster: Iterable[str], faab_budget: int) -> None:
        """
        Reject the commit if the team moved on since it was read.

        Raises:
            SettlementFailure: If roster or budget differ from the expected values
        """
        if self.team.faab_budget != faab_budget:
            raise SettlementFailure(
                self.team.team_id,
                f"budget changed since collection (${faab_budget} -> ${self.team.faab_budget})"
            )
        if set(self.team.roster) != set(roster):
            raise SettlementFailure(self.team.team_id, "roster changed since collection")

    def commit_team_state(self, new_roster: List[str], new_budget: int) -> None:
        """Stage the team's final roster and FAAB budget."""
        self.team.roster = list(new_roster)
        self.team.faab_budget = new_budget

    def append_transaction(self, record: TransactionRecord) -> None:
        """Stage one audit record on the league's transaction log."""
        self.league.transactions.append(record)

    def mark_bids_processed(
        self,
        claims: Iterable[ProcessedClaim],
        processed_at: Optional[datetime] = None
    ) -> None:
        """
        Move the given bids from pending to the processed archive.

        Args:
            claims: Processed claims belonging to this team
            processed_at: Timestamp stamped on each bid (default: now)

        Raises:
            SettlementFailure: If a bid is no longer pending on this team or
                its amount, drop target, or order changed since collection
        """
        processed_at = processed_at or datetime.now()
        for claim in claims:
            bid = self.team.find_pending_bid(claim.bid.bid_id)
            if bid is None or not bid.is_pending:
                raise SettlementFailure(
                    self.team.team_id,
                    f"bid {claim.bid.bid_id} is no longer pending"
                )
            if (bid.amount, bid.drop_player_id, bid.processing_order) != (
                claim.bid.amount, claim.bid.drop_player_id, claim.bid.processing_order
            ):
                raise SettlementFailure(
                    self.team.team_id,
                    f"bid {claim.bid.bid_id} changed since collection"
                )
            bid.status = claim.status
            bid.failure_reason = claim.reason
            bid.processed_at = processed_at
            self.team.pending_bids.remove(bid)
            self.team.processed_bids.append(bid)

        self.team.renumber_bids()

    def validate(self) -> None:
        """
        Check the staged team state against league invariants.

        Raises:
            SettlementFailure: If budget is negative, the roster is over the
                limit or holds duplicates, or a player is on another roster
        """
        team = self.team
        limit = self.settings.roster_limit

        if team.faab_budget < 0:
            raise SettlementFailure(team.team_id, f"negative budget ${team.faab_budget}")
        if len(team.roster) > limit:
            raise SettlementFailure(
                team.team_id, f"roster size {len(team.roster)} exceeds limit {limit}"
            )
        if len(set(team.roster)) != len(team.roster):
            raise SettlementFailure(team.team_id, "duplicate player on roster")

        for other in self.league.teams.values():
            if other.team_id == team.team_id:
                continue
            overlap = set(other.roster) & set(team.roster)
            if overlap:
                raise SettlementFailure(
                    team.team_id,
                    f"players already rostered by {other.team_id}: {sorted(overlap)}"
                )


class JsonLeagueStore:
    """File-backed league store with atomic per-team transactions."""

    def __init__(self, base_dir: Path, lock_timeout: float = config.STORE_LOCK_TIMEOUT):
        """
        Initialize league store.

        Args:
            base_dir: Directory holding one JSON document per league
            lock_timeout: Seconds to wait for a league lock before failing
        """
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.lock_timeout = lock_timeout

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def league_path(self, league_id: str) -> Path:
        return self.base_dir / f"{league_id}.json"

    def lock_path(self, league_id: str) -> Path:
        return self.base_dir / f"{league_id}.lock"

    # ===== Locking and raw I/O =====

    def _get_lock(self, league_id: str) -> threading.Lock:
        with self._locks_guard:
            if league_id not in self._locks:
                self._locks[league_id] = threading.Lock()
            return self._locks[league_id]

    @contextmanager
    def _league_lock(self, league_id: str) -> Iterator[None]:
        deadline = time.monotonic() + self.lock_timeout
        lock = self._get_lock(league_id)
        if not lock.acquire(timeout=self.lock_timeout):
            raise StoreUnavailable(
                f"Timed out after {self.lock_timeout}s waiting for league {league_id}"
            )
        try:
            with self._file_lock(league_id, deadline):
                yield
        finally:
            lock.release()

    @contextmanager
    def _file_lock(self, league_id: str, deadline: float) -> Iterator[None]:
        """Exclusive flock on the league's lock file, shared across processes."""
        try:
            handle = open(self.lock_path(league_id), 'a+', encoding='utf-8')
        except OSError as e:
            raise StoreUnavailable(f"Cannot open lock file for league {league_id}: {e}") from e

        try:
            while True:
                try:
                    fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        raise StoreUnavailable(
                            f"Timed out after {self.lock_timeout}s waiting for "
                            f"league {league_id} (locked by another process)"
                        )
                    time.sleep(config.STORE_LOCK_POLL_INTERVAL)

            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
        finally:
            handle.close()

    def _read(self, league_id: str) -> LeagueState:
        path = self.league_path(league_id)
        if not path.exists():
            raise LeagueNotFound(league_id)

        try:
            with open(path, 'r', encoding='utf-8') as f:
                return LeagueState.from_json(f.read())
        except (OSError, json.JSONDecodeError, KeyError, ValueError) as e:
            raise StoreUnavailable(f"Failed to read league {league_id}: {e}") from e

    def _write(self, state: LeagueState) -> None:
        path = self.league_path(state.league_id)
        temp_path = path.with_suffix('.tmp')

        # Atomic write: write to temp file, then rename
        try:
            with open(temp_path, 'w', encoding='utf-8') as f:
                f.write(state.to_json())
            temp_path.replace(path)
        except OSError as e:
            raise StoreUnavailable(f"Failed to write league {state.league_id}: {e}") from e

    # ===== League documents =====

    def save_league(self, state: LeagueState) -> None:
        """Create or overwrite a league document."""
        with self._league_lock(state.league_id):
            self._write(state)
        logger.info(f"Saved league {state.league_id} ({len(state.teams)} teams)")

    def load_league(self, league_id: str) -> LeagueState:
        """Read a full league snapshot."""
        with self._league_lock(league_id):
            return self._read(league_id)

    def league_exists(self, league_id: str) -> bool:
        return self.league_path(league_id).exists()

    # ===== Reads consumed by the waiver engine =====

    def get_settings(self, league_id: str) -> LeagueSettings:
        return self.load_league(league_id).settings

    def get_roster_limit(self, league_id: str) -> int:
        return self.get_settings(league_id).roster_limit

    def get_pending_bids(self, league_id: str) -> List[Tuple[str, List[PendingBid]]]:
        """
        Pending bids per team, in each team's processing order.

        Returns:
            List of (team_id, [PendingBid]) for teams with at least one pending bid
        """
        state = self.load_league(league_id)
        result = []
        for team_id in sorted(state.teams):
            bids = [b for b in state.teams[team_id].pending_bids if b.is_pending]
            if bids:
                result.append((team_id, sorted(bids, key=lambda b: b.processing_order)))
        return result

    def get_team_state(self, league_id: str, team_id: str) -> TeamState:
        state = self.load_league(league_id)
        if team_id not in state.teams:
            raise TeamNotFound(league_id, team_id)
        return state.teams[team_id]

    # ===== Processing lease =====

    def acquire_lease(self, league_id: str, owner: str, ttl_seconds: float) -> ProcessingLease:
        """
        Take the league's exclusive processing lease.

        Args:
            league_id: League to lock
            owner: Unique token identifying the run
            ttl_seconds: Lease lifetime; an expired lease may be taken over

        Returns:
            The ProcessingLease now held by ``owner``

        Raises:
            WaiverRunInProgress: If another owner holds an unexpired lease
        """
        with self._league_lock(league_id):
            state = self._read(league_id)
            now = datetime.now()
            existing = state.processing_lease

            if existing is not None and existing.owner != owner:
                if not existing.is_expired(now):
                    raise WaiverRunInProgress(
                        f"League {league_id} is already processing waivers "
                        f"(lease held until {existing.expires_at.isoformat()})"
                    )
                logger.warning(
                    f"Taking over expired lease on {league_id} "
                    f"(expired {existing.expires_at.isoformat()})"
                )

            lease = ProcessingLease(
                owner=owner,
                acquired_at=now,
                expires_at=now + timedelta(seconds=ttl_seconds),
            )
            state.processing_lease = lease
            self._write(state)

        logger.debug(f"Acquired processing lease on {league_id} for {owner}")
        return lease

    def release_lease(self, league_id: str, owner: str) -> bool:
        """
        Release the processing lease if ``owner`` still holds it.

        Returns:
            True if the lease was released, False if held by someone else
        """
        with self._league_lock(league_id):
            state = self._read(league_id)
            lease = state.processing_lease
            if lease is None or lease.owner != owner:
                logger.warning(f"Lease on {league_id} no longer held by {owner}")
                return False

            state.processing_lease = None
            self._write(state)

        logger.debug(f"Released processing lease on {league_id}")
        return True

    def renew_lease(self, league_id: str, owner: str, ttl_seconds: float) -> ProcessingLease:
        """
        Extend a held lease by ``ttl_seconds`` from now.

        An expired lease that nobody has taken over is still renewable.

        Raises:
            WaiverRunInProgress: If ``owner`` no longer holds the lease
        """
        with self._league_lock(league_id):
            state = self._read(league_id)
            current = state.processing_lease
            if current is None or current.owner != owner:
                holder = current.owner if current else 'nobody'
                raise WaiverRunInProgress(
                    f"Lost processing lease on {league_id} (now held by {holder})"
                )

            lease = ProcessingLease(
                owner=owner,
                acquired_at=current.acquired_at,
                expires_at=datetime.now() + timedelta(seconds=ttl_seconds),
            )
            state.processing_lease = lease
            self._write(state)

        logger.debug(f"Renewed processing lease on {league_id} until {lease.expires_at.isoformat()}")
        return lease

    # ===== Atomic per-team writes =====

    @contextmanager
    def team_transaction(self, league_id: str, team_id: str) -> Iterator[TeamTransaction]:
        """
        Atomic read-modify-write of one team's state.

        Usage:
            with store.team_transaction(league_id, team_id) as txn:
                txn.commit_team_state(roster, budget)
                txn.append_transaction(record)
                txn.mark_bids_processed(claims)

        The league document is rewritten only if the block completes and
        the staged state passes TeamTransaction.validate().
        """
        with self._league_lock(league_id):
            state = self._read(league_id)
            team = state.teams.get(team_id)
            if team is None:
                raise TeamNotFound(league_id, team_id)

            txn = TeamTransaction(state, team)
            yield txn

            txn.validate()
            self._write(state)
