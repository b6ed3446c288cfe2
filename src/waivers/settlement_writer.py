"""
Apply resolved waiver outcomes to persistent team state.

This is the only step of a waiver run that writes. Each team is settled in
its own atomic store transaction: final roster and budget, one transaction
record per claim, and every batch bid moved to the processed archive. A
failed team transaction is reported and the remaining teams still settle.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List
from uuid import uuid4

from .capacity_allocator import TeamLedger
from .claim_collector import ResolutionBatch
from .contention_resolver import ContentionResult
from .errors import SettlementFailure, StoreUnavailable, TeamNotFound
from .league_store import JsonLeagueStore
from .waiver_models import (
    Failed,
    Lost,
    ProcessedClaim,
    TransactionRecord,
    Won,
)

logger = logging.getLogger(__name__)


@dataclass
class SettlementReport:
    """What the settlement writer committed (or could not commit)."""

    committed_teams: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)      # team_id -> reason
    records: List[TransactionRecord] = field(default_factory=list)


def build_transaction_record(
    claim: ProcessedClaim,
    batch: ResolutionBatch,
    contention: ContentionResult,
    timestamp: datetime,
) -> TransactionRecord:
    """
    Build the audit record for one processed claim.

    Winning records list the player's losing bids; failed and lost records
    carry the failure reason and spend nothing.
    """
    bid = claim.bid
    outcome = claim.outcome
    player_names = {bid.player_id: batch.player_names.get(bid.player_id, {})}

    if isinstance(outcome, Won):
        if outcome.dropped_player_id:
            player_names[outcome.dropped_player_id] = batch.player_names.get(
                outcome.dropped_player_id, {}
            )
        losing_bids = [
            {
                'team_id': loser.team_id,
                'team_name': batch.teams[loser.team_id].team_name,
                'amount': loser.bid.amount,
            }
            for loser in contention.losing_bids(bid.player_id)
        ]
        return TransactionRecord(
            transaction_id=str(uuid4()),
            timestamp=timestamp,
            team_id=claim.team_id,
            player_id=bid.player_id,
            amount=bid.amount,
            outcome=claim.status,
            dropped_player_id=outcome.dropped_player_id,
            faab_spent=outcome.amount,
            player_names=player_names,
            losing_bids=losing_bids,
        )

    if isinstance(outcome, (Lost, Failed)):
        return TransactionRecord(
            transaction_id=str(uuid4()),
            timestamp=timestamp,
            team_id=claim.team_id,
            player_id=bid.player_id,
            amount=bid.amount,
            outcome=claim.status,
            failure_reason=outcome.reason,
            player_names=player_names,
        )

    raise TypeError(f"Unknown claim outcome: {outcome!r}")


def settle_batch(
    store: JsonLeagueStore,
    batch: ResolutionBatch,
    contention: ContentionResult,
    ledgers: Dict[str, TeamLedger],
) -> SettlementReport:
    """
    Commit every team touched by the batch, one atomic transaction each.

    Args:
        store: League store
        batch: Collected resolution batch
        contention: Contention results (rejected claims and losing bids)
        ledgers: Per-team ledger walks from the capacity allocator

    Returns:
        SettlementReport with committed teams, per-team failures, and the
        transaction records that were written
    """
    claims_by_team: Dict[str, List[ProcessedClaim]] = defaultdict(list)
    for claim in contention.rejected:
        claims_by_team[claim.team_id].append(claim)
    for ledger in ledgers.values():
        claims_by_team[ledger.team_id].extend(ledger.outcomes)

    report = SettlementReport()
    timestamp = datetime.now()

    for team_id in sorted(claims_by_team):
        claims = sorted(claims_by_team[team_id], key=lambda c: c.bid.processing_order)
        team = batch.teams[team_id]
        ledger = ledgers.get(team_id)
        new_roster = ledger.roster if ledger else list(team.roster)
        new_budget = ledger.remaining_budget if ledger else team.faab_budget

        records = [
            build_transaction_record(claim, batch, contention, timestamp)
            for claim in claims
        ]

        try:
            with store.team_transaction(batch.league_id, team_id) as txn:
                txn.ensure_unchanged(team.roster, team.faab_budget)
                txn.commit_team_state(new_roster, new_budget)
                for record in records:
                    txn.append_transaction(record)
                txn.mark_bids_processed(claims, processed_at=timestamp)

        except (SettlementFailure, StoreUnavailable, TeamNotFound) as e:
            report.failures[team_id] = str(e)
            logger.warning(f"Settlement failed for {team_id}, nothing committed: {e}")
            continue

        report.committed_teams.append(team_id)
        report.records.extend(records)
        logger.info(
            f"Settled {team_id}: {len(claims)} claims, "
            f"${team.faab_budget} -> ${new_budget}, "
            f"roster {len(team.roster)} -> {len(new_roster)}"
        )

    return report
