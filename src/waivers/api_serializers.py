"""
API request/response models and serializers for the waiver endpoints.

Transforms internal dataclasses (bids, batch results, transaction records,
team summaries) into stable JSON response formats.
"""

from typing import Dict, List, Optional

import pandas as pd
from pydantic import BaseModel, Field

from .batch_result import BatchResult
from .waiver_models import LeagueState, PendingBid


# ========== Bid Requests ==========

class SubmitBidRequest(BaseModel):
    """Request body for placing a waiver bid."""
    player_id: str = Field(..., description="Free agent to claim")
    amount: int = Field(..., description="FAAB bid amount in dollars")
    drop_player_id: Optional[str] = Field(None, description="Rostered player to drop if the claim wins")


class ModifyBidRequest(BaseModel):
    """Request body for changing a bid amount."""
    amount: int = Field(..., description="New FAAB bid amount in dollars")


class ReorderBidsRequest(BaseModel):
    """Request body for setting a team's processing order."""
    bid_ids: List[str] = Field(..., description="All pending bid ids, highest priority first")


# ========== Bid Responses ==========

class BidResponse(BaseModel):
    """A single pending or processed bid."""
    bid_id: str
    player_id: str
    amount: int
    drop_player_id: Optional[str] = None
    processing_order: int
    submitted_at: str = Field(description="ISO-8601 timestamp")
    status: str


class TeamBidsResponse(BaseModel):
    """Response for GET /leagues/{league_id}/teams/{team_id}/bids."""
    team_id: str
    faab_budget: int
    bids: List[BidResponse] = Field(description="Sorted by processing order")


class LeaguePendingBidsResponse(BaseModel):
    """Response for GET /leagues/{league_id}/waivers/pending."""
    league_id: str
    teams: Dict[str, List[BidResponse]]


# ========== Batch Result ==========

class ClaimOutcomeResponse(BaseModel):
    """Final outcome of one claim."""
    team_id: str
    bid_id: str
    player_id: str
    amount: int
    drop_player_id: Optional[str] = None
    processing_order: int
    status: str = Field(description="won, lost, or failed")
    failure_reason: Optional[str] = None


class TeamResultResponse(BaseModel):
    """Per-team budget and roster delta."""
    team_id: str
    starting_budget: int
    final_budget: int
    spent: int
    added: List[str]
    dropped: List[str]
    committed: bool
    failure: Optional[str] = None


class BatchResultResponse(BaseModel):
    """Response for POST /leagues/{league_id}/waivers/process."""
    league_id: str
    run_id: str
    started_at: str
    completed_at: Optional[str] = None
    summary: Dict[str, int]
    claims: List[ClaimOutcomeResponse]
    teams: Dict[str, TeamResultResponse]
    settlement_failures: Dict[str, str]


# ========== Transactions / Summary ==========

class TransactionResponse(BaseModel):
    """One waiver transaction log entry."""
    transaction_id: str
    timestamp: str
    type: str
    team_id: str
    player_id: str
    amount: int
    outcome: str
    failure_reason: Optional[str] = None
    dropped_player_id: Optional[str] = None
    faab_spent: int
    player_names: Dict[str, Dict[str, str]]
    losing_bids: List[Dict]


class TransactionsListResponse(BaseModel):
    """Response for GET /leagues/{league_id}/transactions."""
    league_id: str
    transactions: List[TransactionResponse] = Field(description="Most recent first")


class TeamSummaryResponse(BaseModel):
    """One row of the team summary."""
    team_id: str
    team_name: str
    faab_budget: int
    roster_size: int
    open_slots: int
    pending_bids: int
    score: float


# ========== Serializer Functions ==========

def serialize_bid(bid: PendingBid) -> BidResponse:
    return BidResponse(
        bid_id=bid.bid_id,
        player_id=bid.player_id,
        amount=bid.amount,
        drop_player_id=bid.drop_player_id,
        processing_order=bid.processing_order,
        submitted_at=bid.submitted_at.isoformat(),
        status=bid.status.value,
    )


def serialize_batch_result(result: BatchResult) -> BatchResultResponse:
    """Transform a BatchResult to its response format."""
    data = result.to_dict()
    return BatchResultResponse(
        league_id=data['league_id'],
        run_id=data['run_id'],
        started_at=data['started_at'],
        completed_at=data['completed_at'],
        summary=data['summary'],
        claims=[ClaimOutcomeResponse(**c) for c in data['claims']],
        teams={tid: TeamResultResponse(**t) for tid, t in data['teams'].items()},
        settlement_failures=data['settlement_failures'],
    )


def serialize_transactions(
    league_state: LeagueState,
    team_id: Optional[str] = None,
    limit: Optional[int] = None
) -> TransactionsListResponse:
    """
    Transform the league transaction log, newest first.

    Args:
        league_state: League snapshot
        team_id: Optional team filter
        limit: Optional maximum number of entries
    """
    records = [
        r for r in reversed(league_state.transactions)
        if team_id is None or r.team_id == team_id
    ]
    if limit is not None:
        records = records[:limit]

    return TransactionsListResponse(
        league_id=league_state.league_id,
        transactions=[TransactionResponse(**r.to_dict()) for r in records],
    )


def serialize_team_summary(summary_df: pd.DataFrame) -> List[TeamSummaryResponse]:
    """Transform reporting.team_summary() output to response rows."""
    return [
        TeamSummaryResponse(
            team_id=row['team_id'],
            team_name=row['team_name'],
            faab_budget=int(row['faab_budget']),
            roster_size=int(row['roster_size']),
            open_slots=int(row['open_slots']),
            pending_bids=int(row['pending_bids']),
            score=float(row['score']),
        )
        for row in summary_df.to_dict('records')
    ]
