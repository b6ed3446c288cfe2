"""
Main orchestrator for FAAB waiver processing.

The WaiverEngine runs the four pipeline stages for one league:
- Collects every pending claim (with fresh standings)
- Resolves contention so each player has one provisional winner
- Allocates each team's wins against its budget and roster capacity
- Settles every team atomically and records the audit trail

The whole run holds the league's processing lease, so a second concurrent
run is rejected instead of collecting an overlapping set of bids.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import uuid4

from .. import config
from .batch_result import BatchResult, TeamResult
from .capacity_allocator import allocate_capacity
from .claim_collector import collect_claims
from .contention_resolver import resolve_contention
from .lease import processing_lease
from .league_store import JsonLeagueStore
from .settlement_writer import settle_batch
from .standings import StoreStandingsProvider

logger = logging.getLogger(__name__)


class WaiverEngine:
    """Main orchestrator for waiver runs."""

    def __init__(
        self,
        store: JsonLeagueStore,
        standings_provider=None,
        lease_ttl: float = config.PROCESSING_LEASE_TTL,
        max_workers: Optional[int] = config.ALLOCATOR_MAX_WORKERS,
        collect_retries: int = config.COLLECT_MAX_RETRIES,
        collect_backoff: float = config.COLLECT_RETRY_BACKOFF,
    ):
        """
        Initialize waiver engine.

        Args:
            store: League store (bids, teams, transaction log, lease)
            standings_provider: Object with get_standings(league_id);
                defaults to StoreStandingsProvider over ``store``
            lease_ttl: Processing lease lifetime in seconds
            max_workers: Thread pool size for per-team ledger walks
            collect_retries: Attempts for the claim collection read
            collect_backoff: Base backoff in seconds between collection attempts
        """
        self.store = store
        self.standings_provider = standings_provider or StoreStandingsProvider(store)
        self.lease_ttl = lease_ttl
        self.max_workers = max_workers
        self.collect_retries = collect_retries
        self.collect_backoff = collect_backoff

    def process_waivers(self, league_id: str) -> BatchResult:
        """
        Resolve and settle every pending waiver claim in a league.

        Args:
            league_id: League to process

        Returns:
            BatchResult listing each claim's final outcome, per-team deltas,
            and any per-team settlement failures

        Raises:
            WaiverRunInProgress: If another run holds the league's lease, or took it
                over before settlement
            StoreUnavailable: If claims could not be collected (nothing committed)
            WaiversDisabled: If the league is not accepting waivers
            LeagueNotFound: If the league does not exist
        """
        run_id = f"run_{uuid4().hex}"
        result = BatchResult(league_id=league_id, run_id=run_id, started_at=datetime.now())

        logger.info("="*60)
        logger.info(f"PROCESSING WAIVERS: {league_id} ({run_id})")
        logger.info("="*60)

        with processing_lease(self.store, league_id, ttl_seconds=self.lease_ttl, owner=run_id):
            batch = collect_claims(
                self.store,
                self.standings_provider,
                league_id,
                max_retries=self.collect_retries,
                retry_backoff=self.collect_backoff,
            )

            if batch.is_empty:
                logger.info("No pending claims - nothing to process")
                result.completed_at = datetime.now()
                return result

            contention = resolve_contention(batch)
            ledgers = allocate_capacity(batch, contention, max_workers=self.max_workers)

            # Settlement is the only write; confirm the lease is still ours first
            self.store.renew_lease(league_id, run_id, self.lease_ttl)
            report = settle_batch(self.store, batch, contention, ledgers)

        result.claims = list(contention.rejected)
        for ledger in ledgers.values():
            result.claims.extend(ledger.outcomes)
        result.claims.sort(key=lambda c: (c.team_id, c.bid.processing_order))
        result.settlement_failures = dict(report.failures)

        for team_id in sorted({c.team_id for c in result.claims}):
            team = batch.teams[team_id]
            ledger = ledgers.get(team_id)
            committed = team_id not in report.failures
            result.teams[team_id] = TeamResult(
                team_id=team_id,
                starting_budget=team.faab_budget,
                final_budget=ledger.remaining_budget if (ledger and committed) else team.faab_budget,
                added=ledger.added if (ledger and committed) else [],
                dropped=ledger.dropped if (ledger and committed) else [],
                committed=committed,
                failure=report.failures.get(team_id),
            )

        result.completed_at = datetime.now()
        summary = result.summary()

        logger.info("="*60)
        logger.info(
            f"WAIVERS COMPLETE: {summary['won']} won, {summary['lost']} lost, "
            f"{summary['failed']} failed, {summary['settlement_failures']} settlement failures"
        )
        logger.info("="*60)

        return result
