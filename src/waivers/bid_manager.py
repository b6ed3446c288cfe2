"""
Submit, modify, cancel, and reorder pending waiver bids.

Bids are validated at submission so that the engine only sees well-formed
claims, and each operation is a single atomic team transaction. A team's
processing order is its own priority ranking: new bids go to the bottom,
and reorder_bids() lets the team rearrange them. Every operation is
refused while a waiver run holds the league's processing lease.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from .. import config
from .errors import BidValidationError, WaiverRunInProgress, WaiversDisabled
from .league_store import JsonLeagueStore, TeamTransaction
from .waiver_models import PendingBid

logger = logging.getLogger(__name__)


class BidManager:
    """Team-facing bid operations."""

    def __init__(self, store: JsonLeagueStore):
        self.store = store

    def submit_bid(
        self,
        league_id: str,
        team_id: str,
        player_id: str,
        amount: int,
        drop_player_id: Optional[str] = None,
    ) -> PendingBid:
        """
        Place a blind FAAB bid.

        Args:
            league_id: League identifier
            team_id: Bidding team
            player_id: Free agent being claimed
            amount: Bid amount ($, non-negative, at most the team's budget)
            drop_player_id: Optional player to drop if the claim wins

        Returns:
            The new PendingBid (lowest priority among the team's bids)

        Raises:
            BidValidationError: If the bid is invalid
            WaiversDisabled: If the league is not accepting waiver claims
            WaiverRunInProgress: If a waiver run is processing the league
        """
        with self.store.team_transaction(league_id, team_id) as txn:
            self._ensure_open(txn)
            team = txn.team

            self._validate_amount(amount, team.faab_budget)

            if player_id in team.roster:
                raise BidValidationError(f"{player_id} is already on {team_id}'s roster")

            owner = txn.league.rostered_players().get(player_id)
            if owner is not None:
                raise BidValidationError(f"{player_id} is not a free agent (rostered by {owner})")

            if any(b.player_id == player_id for b in team.pending_bids):
                raise BidValidationError(f"{team_id} already has a pending bid on {player_id}")

            if drop_player_id is not None and drop_player_id not in team.roster:
                raise BidValidationError(f"Drop target {drop_player_id} is not on {team_id}'s roster")

            bid = PendingBid(
                bid_id=uuid4().hex,
                player_id=player_id,
                amount=int(amount),
                processing_order=len(team.pending_bids),
                submitted_at=datetime.now(),
                drop_player_id=drop_player_id,
            )
            team.pending_bids.append(bid)

        logger.info(
            f"{team_id} bid ${amount} on {player_id}"
            + (f" (drop {drop_player_id})" if drop_player_id else "")
            + f" [priority {bid.processing_order}]"
        )
        return bid

    def modify_bid(self, league_id: str, team_id: str, bid_id: str, amount: int) -> PendingBid:
        """
        Change the amount of a pending bid (priority is unchanged).

        Raises:
            BidValidationError: If the bid does not exist or the amount is invalid
        """
        with self.store.team_transaction(league_id, team_id) as txn:
            self._ensure_open(txn)
            bid = self._find_bid(txn, bid_id)
            self._validate_amount(amount, txn.team.faab_budget)
            bid.amount = int(amount)

        logger.info(f"{team_id} changed bid {bid_id} to ${amount}")
        return bid

    def cancel_bid(self, league_id: str, team_id: str, bid_id: str) -> None:
        """
        Withdraw a pending bid and close the gap in processing order.

        Raises:
            BidValidationError: If the bid does not exist
        """
        with self.store.team_transaction(league_id, team_id) as txn:
            self._ensure_open(txn)
            bid = self._find_bid(txn, bid_id)
            txn.team.pending_bids.remove(bid)
            txn.team.renumber_bids()

        logger.info(f"{team_id} cancelled bid {bid_id}")

    def reorder_bids(self, league_id: str, team_id: str, bid_ids: List[str]) -> List[PendingBid]:
        """
        Set the team's processing order.

        Args:
            bid_ids: Every pending bid id of the team, highest priority first

        Returns:
            Pending bids in their new order

        Raises:
            BidValidationError: If bid_ids is not exactly the team's pending bids
        """
        with self.store.team_transaction(league_id, team_id) as txn:
            self._ensure_open(txn)
            team = txn.team
            current = {b.bid_id: b for b in team.pending_bids}

            if len(bid_ids) != len(set(bid_ids)) or set(bid_ids) != set(current):
                raise BidValidationError(
                    f"Order must list each of {team_id}'s {len(current)} pending bids exactly once"
                )

            for index, bid_id in enumerate(bid_ids):
                current[bid_id].processing_order = index
            team.renumber_bids()
            ordered = list(team.pending_bids)

        logger.info(f"{team_id} reordered {len(ordered)} bids")
        return ordered

    def list_pending_bids(self, league_id: str, team_id: str) -> List[PendingBid]:
        """Team's pending bids in processing order."""
        team = self.store.get_team_state(league_id, team_id)
        return sorted(
            (b for b in team.pending_bids if b.is_pending),
            key=lambda b: b.processing_order
        )

    @staticmethod
    def _ensure_open(txn: TeamTransaction) -> None:
        settings = txn.settings
        if not settings.waivers_enabled:
            raise WaiversDisabled(f"Waivers are not enabled for league {txn.league.league_id}")
        if settings.playoffs_active:
            raise WaiversDisabled("Waivers are locked during playoffs")
        lease = txn.league.processing_lease
        if lease is not None and not lease.is_expired():
            raise WaiverRunInProgress(
                f"Bids are frozen while waivers are processing in league {txn.league.league_id}"
            )

    @staticmethod
    def _validate_amount(amount: int, budget: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise BidValidationError(f"Bid amount must be a whole number, got {amount!r}")
        if amount < config.MINIMUM_BID:
            raise BidValidationError("Bid amount cannot be negative")
        if amount > budget:
            raise BidValidationError(f"Bid amount ${amount} exceeds FAAB budget ${budget}")

    @staticmethod
    def _find_bid(txn: TeamTransaction, bid_id: str) -> PendingBid:
        bid = txn.team.find_pending_bid(bid_id)
        if bid is None:
            raise BidValidationError(f"No pending bid {bid_id} for {txn.team.team_id}")
        return bid
