"""
FastAPI server for waiver bids and waiver processing.

Provides HTTP endpoints for teams to place, change, cancel, and prioritize
FAAB bids, and for the commissioner to process all pending waivers.
"""

import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .. import config
from .api_serializers import (
    BatchResultResponse,
    BidResponse,
    LeaguePendingBidsResponse,
    ModifyBidRequest,
    ReorderBidsRequest,
    SubmitBidRequest,
    TeamBidsResponse,
    TeamSummaryResponse,
    TransactionsListResponse,
    serialize_batch_result,
    serialize_bid,
    serialize_team_summary,
    serialize_transactions,
)
from .bid_manager import BidManager
from .errors import (
    BidValidationError,
    LeagueNotFound,
    StoreUnavailable,
    TeamNotFound,
    WaiverError,
    WaiverRunInProgress,
    WaiversDisabled,
)
from .league_store import JsonLeagueStore
from .reporting import team_summary
from .waiver_engine import WaiverEngine

logger = logging.getLogger(__name__)


def _http_error(e: WaiverError) -> HTTPException:
    """Map a waiver error to its HTTP status."""
    if isinstance(e, (LeagueNotFound, TeamNotFound)):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, WaiverRunInProgress):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (WaiversDisabled, BidValidationError)):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, StoreUnavailable):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


def create_app(store: JsonLeagueStore, engine: Optional[WaiverEngine] = None) -> FastAPI:
    """
    Build the waiver API around a league store.

    Args:
        store: League store shared by bids and processing
        engine: Waiver engine (defaults to WaiverEngine(store))
    """
    engine = engine or WaiverEngine(store)
    bid_manager = BidManager(store)

    app = FastAPI(
        title="FAAB Waiver API",
        description="Blind FAAB bidding and batch waiver processing",
        version="1.0.0"
    )

    # CORS middleware for web UI access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===== Waiver processing =====

    @app.post("/leagues/{league_id}/waivers/process", response_model=BatchResultResponse)
    def process_waivers(league_id: str):
        """
        Resolve and settle every pending waiver claim in the league.

        Raises:
            404 Not Found: Unknown league
            409 Conflict: Another waiver run is in progress
            400 Bad Request: Waivers disabled or locked for playoffs
            503 Service Unavailable: Store could not be read (nothing committed)
        """
        try:
            logger.info(f"Processing waivers for league {league_id}")
            result = engine.process_waivers(league_id)
            return serialize_batch_result(result)

        except WaiverError as e:
            logger.warning(f"Cannot process waivers for {league_id}: {e}")
            raise _http_error(e)

        except Exception as e:
            logger.error(f"Failed to process waivers: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Failed to process waivers: {e}")

    @app.get("/leagues/{league_id}/waivers/pending", response_model=LeaguePendingBidsResponse)
    def get_pending_waivers(league_id: str):
        """All pending bids in the league, grouped by team."""
        try:
            pending = store.get_pending_bids(league_id)
            return LeaguePendingBidsResponse(
                league_id=league_id,
                teams={tid: [serialize_bid(b) for b in bids] for tid, bids in pending},
            )
        except WaiverError as e:
            raise _http_error(e)

    # ===== Team bids =====

    @app.get("/leagues/{league_id}/teams/{team_id}/bids", response_model=TeamBidsResponse)
    def get_team_bids(league_id: str, team_id: str):
        """A team's pending bids in processing order."""
        try:
            team = store.get_team_state(league_id, team_id)
            bids = bid_manager.list_pending_bids(league_id, team_id)
            return TeamBidsResponse(
                team_id=team_id,
                faab_budget=team.faab_budget,
                bids=[serialize_bid(b) for b in bids],
            )
        except WaiverError as e:
            raise _http_error(e)

    @app.post("/leagues/{league_id}/teams/{team_id}/bids", response_model=BidResponse)
    def submit_bid(league_id: str, team_id: str, request: SubmitBidRequest):
        """
        Place a blind FAAB bid.

        Raises:
            400 Bad Request: Invalid amount, player, or drop target
        """
        try:
            bid = bid_manager.submit_bid(
                league_id,
                team_id,
                player_id=request.player_id,
                amount=request.amount,
                drop_player_id=request.drop_player_id,
            )
            return serialize_bid(bid)
        except WaiverError as e:
            logger.warning(f"Rejected bid from {team_id}: {e}")
            raise _http_error(e)

    @app.patch("/leagues/{league_id}/teams/{team_id}/bids/{bid_id}", response_model=BidResponse)
    def modify_bid(league_id: str, team_id: str, bid_id: str, request: ModifyBidRequest):
        """Change the amount of a pending bid."""
        try:
            bid = bid_manager.modify_bid(league_id, team_id, bid_id, request.amount)
            return serialize_bid(bid)
        except WaiverError as e:
            raise _http_error(e)

    @app.delete("/leagues/{league_id}/teams/{team_id}/bids/{bid_id}")
    def cancel_bid(league_id: str, team_id: str, bid_id: str):
        """Withdraw a pending bid."""
        try:
            bid_manager.cancel_bid(league_id, team_id, bid_id)
            return {"success": True, "bid_id": bid_id}
        except WaiverError as e:
            raise _http_error(e)

    @app.put("/leagues/{league_id}/teams/{team_id}/bids/order", response_model=List[BidResponse])
    def reorder_bids(league_id: str, team_id: str, request: ReorderBidsRequest):
        """Set the team's processing order (highest priority first)."""
        try:
            bids = bid_manager.reorder_bids(league_id, team_id, request.bid_ids)
            return [serialize_bid(b) for b in bids]
        except WaiverError as e:
            raise _http_error(e)

    # ===== League views =====

    @app.get("/leagues/{league_id}/transactions", response_model=TransactionsListResponse)
    def get_transactions(
        league_id: str,
        team_id: Optional[str] = Query(None, description="Only this team's transactions"),
        limit: Optional[int] = Query(None, ge=1, le=1000, description="Maximum entries returned")
    ):
        """Waiver transaction log, most recent first."""
        try:
            state = store.load_league(league_id)
            return serialize_transactions(state, team_id=team_id, limit=limit)
        except WaiverError as e:
            raise _http_error(e)

    @app.get("/leagues/{league_id}/teams/summary", response_model=List[TeamSummaryResponse])
    def get_team_summary(league_id: str):
        """Budget, roster size, open slots, and pending bids for every team."""
        try:
            state = store.load_league(league_id)
            return serialize_team_summary(team_summary(state))
        except WaiverError as e:
            raise _http_error(e)

    @app.get("/health")
    def health_check():
        """Simple health check endpoint."""
        return {
            "status": "ok",
            "service": "FAAB Waiver API",
            "version": "1.0.0"
        }

    return app


app = create_app(JsonLeagueStore(Path(config.LEAGUES_DIR)))
