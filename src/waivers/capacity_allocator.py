"""
Turn each team's provisional wins into final outcomes.

Every team is walked independently in its own declared priority order
against a running budget/roster ledger. Each claim is judged only against
the ledger left by the claims before it:

1. The drop target (if any) must be on the working roster, otherwise
   ``invalid_drop_target``.
2. A claim without a drop needs a free slot, otherwise ``roster_full``.
3. The amount must fit the remaining budget, otherwise
   ``insufficient_budget``.
4. Otherwise the claim is won: budget is spent, the drop is removed, the
   player is added.

A failed claim consumes nothing and never blocks later claims, so a team's
total spend can never exceed its starting budget and its roster can never
exceed the limit.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .claim_collector import ResolutionBatch
from .contention_resolver import ContentionResult
from .waiver_models import (
    Claim,
    Failed,
    FailureReason,
    ProcessedClaim,
    TeamState,
    Won,
)

logger = logging.getLogger(__name__)


@dataclass
class TeamLedger:
    """Result of one team's ledger walk."""

    team_id: str
    starting_budget: int
    starting_roster: List[str]
    remaining_budget: int
    roster: List[str]
    remaining_slots: int
    outcomes: List[ProcessedClaim] = field(default_factory=list)

    @property
    def spent(self) -> int:
        return self.starting_budget - self.remaining_budget

    @property
    def added(self) -> List[str]:
        return [p for p in self.roster if p not in self.starting_roster]

    @property
    def dropped(self) -> List[str]:
        return [p for p in self.starting_roster if p not in self.roster]


def allocate_team(
    team: TeamState,
    provisional_wins: List[Claim],
    roster_limit: int,
) -> TeamLedger:
    """
    Walk one team's provisional wins in processing order.

    Args:
        team: Team snapshot taken at collection time
        provisional_wins: Claims this team won in contention resolution
        roster_limit: League roster-slot limit

    Returns:
        TeamLedger with final roster, remaining budget, and per-claim outcomes
    """
    ledger = TeamLedger(
        team_id=team.team_id,
        starting_budget=team.faab_budget,
        starting_roster=list(team.roster),
        remaining_budget=team.faab_budget,
        roster=list(team.roster),
        remaining_slots=team.open_slots(roster_limit),
    )

    for claim in sorted(provisional_wins, key=lambda c: c.bid.processing_order):
        bid = claim.bid
        drop = bid.drop_player_id

        if drop and drop not in ledger.roster:
            outcome = Failed(FailureReason.INVALID_DROP_TARGET)
        elif (0 if drop else 1) > ledger.remaining_slots:
            outcome = Failed(FailureReason.ROSTER_FULL)
        elif bid.amount > ledger.remaining_budget:
            outcome = Failed(FailureReason.INSUFFICIENT_BUDGET)
        else:
            ledger.remaining_budget -= bid.amount
            if drop:
                ledger.roster.remove(drop)
            else:
                ledger.remaining_slots -= 1
            ledger.roster.append(bid.player_id)
            outcome = Won(amount=bid.amount, dropped_player_id=drop)

        ledger.outcomes.append(ProcessedClaim(team_id=team.team_id, bid=bid, outcome=outcome))
        logger.debug(
            f"{team.team_id} #{bid.processing_order} {bid.player_id} (${bid.amount}): "
            f"{outcome} | ${ledger.remaining_budget} left, {ledger.remaining_slots} slots"
        )

    return ledger


def allocate_capacity(
    batch: ResolutionBatch,
    contention: ContentionResult,
    max_workers: Optional[int] = None,
) -> Dict[str, TeamLedger]:
    """
    Run the ledger walk for every team with at least one provisional win.

    Teams never share budget or roster, so their walks are independent and
    may run on a thread pool.

    Args:
        batch: Collected resolution batch
        contention: Output of resolve_contention()
        max_workers: Thread pool size (None or 1 = sequential)

    Returns:
        Dict mapping team_id -> TeamLedger
    """
    wins_by_team = contention.wins_by_team()
    team_ids = sorted(wins_by_team)

    def walk(team_id: str) -> TeamLedger:
        return allocate_team(batch.teams[team_id], wins_by_team[team_id], batch.roster_limit)

    if max_workers and max_workers > 1 and len(team_ids) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            ledgers = dict(zip(team_ids, executor.map(walk, team_ids)))
    else:
        ledgers = {team_id: walk(team_id) for team_id in team_ids}

    won = sum(1 for l in ledgers.values() for o in l.outcomes if isinstance(o.outcome, Won))
    total = sum(len(l.outcomes) for l in ledgers.values())
    logger.info(f"Allocated {total} provisional wins across {len(ledgers)} teams: {won} won")

    return ledgers
