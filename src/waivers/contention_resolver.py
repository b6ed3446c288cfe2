"""
Pick one provisional winner per contested player.

Algorithm:
1. Screen rostered players: a claim on a player already on any roster at
   collection time fails with ``player_unavailable``.
2. Screen duplicates: if a team bid twice on the same player, keep the
   higher amount and fail the other with ``duplicate_bid``.
3. Group the remaining claims by player.
4. Sort each group by amount (desc), standings score (asc, the team lower
   in the standings gets priority), submission time (asc), team id (asc).
5. The first claim is the provisional winner; every other claim in the
   group is lost with reason ``outbid``.

Provisional winners have not yet been checked against budget or roster
capacity; that is the capacity allocator's job.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .claim_collector import ResolutionBatch
from .waiver_models import Claim, Failed, FailureReason, Lost, ProcessedClaim

logger = logging.getLogger(__name__)


@dataclass
class ContentionResult:
    """Output of contention resolution for one batch."""

    winners: Dict[str, Claim] = field(default_factory=dict)        # player_id -> claim
    rejected: List[ProcessedClaim] = field(default_factory=list)   # outbid / duplicate
    groups: Dict[str, List[Claim]] = field(default_factory=dict)   # player_id -> sorted claims

    def wins_by_team(self) -> Dict[str, List[Claim]]:
        """Provisional wins grouped by team."""
        by_team: Dict[str, List[Claim]] = defaultdict(list)
        for claim in self.winners.values():
            by_team[claim.team_id].append(claim)
        return dict(by_team)

    def losing_bids(self, player_id: str) -> List[Claim]:
        """Claims on ``player_id`` that lost to the provisional winner."""
        return self.groups.get(player_id, [])[1:]


def screen_unavailable(
    claims: List[Claim],
    rostered: Dict[str, str],
) -> Tuple[List[Claim], List[ProcessedClaim]]:
    """
    Fail claims on players who are already on a roster.

    Args:
        claims: Collected claims
        rostered: player_id -> team_id for every rostered player

    Returns:
        (available_claims, unavailable_failures)
    """
    available: List[Claim] = []
    unavailable: List[ProcessedClaim] = []

    for claim in claims:
        owner = rostered.get(claim.bid.player_id)
        if owner is None:
            available.append(claim)
            continue

        unavailable.append(ProcessedClaim(
            team_id=claim.team_id,
            bid=claim.bid,
            outcome=Failed(FailureReason.PLAYER_UNAVAILABLE),
        ))
        logger.warning(
            f"{claim.team_id} claimed {claim.bid.player_id}, "
            f"already rostered by {owner}"
        )

    return available, unavailable


def screen_duplicates(claims: List[Claim]) -> Tuple[List[Claim], List[ProcessedClaim]]:
    """
    Keep one claim per (team, player) pair.

    The surviving claim is the one with the highest amount; equal amounts
    fall back to the team's processing order, then submission time.

    Returns:
        (kept_claims, duplicate_failures)
    """
    best: Dict[Tuple[str, str], Claim] = {}
    duplicates: List[ProcessedClaim] = []

    def preference(claim: Claim):
        return (-claim.bid.amount, claim.bid.processing_order, claim.bid.submitted_at)

    for claim in claims:
        key = (claim.team_id, claim.bid.player_id)
        current = best.get(key)
        if current is None:
            best[key] = claim
            continue

        keep, drop = (claim, current) if preference(claim) < preference(current) else (current, claim)
        best[key] = keep
        duplicates.append(ProcessedClaim(
            team_id=drop.team_id,
            bid=drop.bid,
            outcome=Failed(FailureReason.DUPLICATE_BID),
        ))
        logger.warning(
            f"Duplicate bid by {drop.team_id} on {drop.bid.player_id}: "
            f"keeping ${keep.bid.amount}, failing ${drop.bid.amount}"
        )

    kept_ids = {c.bid.bid_id for c in best.values()}
    kept = [c for c in claims if c.bid.bid_id in kept_ids]
    return kept, duplicates


def resolve_contention(batch: ResolutionBatch) -> ContentionResult:
    """
    Resolve competing claims so each player has exactly one provisional winner.

    Args:
        batch: Collected resolution batch

    Returns:
        ContentionResult with winners, rejected claims, and sorted groups
    """
    available, unavailable = screen_unavailable(batch.claims, batch.rostered)
    candidates, duplicates = screen_duplicates(available)

    groups: Dict[str, List[Claim]] = defaultdict(list)
    for claim in candidates:
        groups[claim.bid.player_id].append(claim)

    def priority(claim: Claim):
        return (
            -claim.bid.amount,
            batch.standings_score(claim.team_id),
            claim.bid.submitted_at,
            claim.team_id,
        )

    result = ContentionResult(rejected=unavailable + duplicates)

    for player_id in sorted(groups):
        group = sorted(groups[player_id], key=priority)
        result.groups[player_id] = group
        result.winners[player_id] = group[0]

        for loser in group[1:]:
            result.rejected.append(ProcessedClaim(
                team_id=loser.team_id,
                bid=loser.bid,
                outcome=Lost(FailureReason.OUTBID),
            ))

        if len(group) > 1:
            logger.debug(
                f"{player_id}: {group[0].team_id} (${group[0].bid.amount}) beats "
                + ", ".join(f"{c.team_id} (${c.bid.amount})" for c in group[1:])
            )

    logger.info(
        f"Resolved claims on {len(groups)} players: "
        f"{len(result.winners)} provisional winners, "
        f"{len(result.rejected) - len(duplicates) - len(unavailable)} outbid, "
        f"{len(duplicates)} duplicates, "
        f"{len(unavailable)} on rosters"
    )
    return result
