"""
FAAB waiver resolution subsystem.

This package resolves blind Free Agent Acquisition Budget bids in batch:
collecting every pending claim in a league, picking one winner per player,
checking each team's budget and roster capacity in its own priority order,
and settling the results atomically per team with a full audit trail.
"""

from .waiver_models import (
    BidStatus,
    FailureReason,
    PendingBid,
    TeamState,
    LeagueSettings,
    LeagueState,
    TransactionRecord,
    Won,
    Lost,
    Failed,
    create_league_state,
)
from .errors import (
    WaiverError,
    StoreUnavailable,
    SettlementFailure,
    WaiverRunInProgress,
    WaiversDisabled,
    BidValidationError,
)
from .league_store import JsonLeagueStore
from .bid_manager import BidManager
from .batch_result import BatchResult
from .waiver_engine import WaiverEngine

__all__ = [
    'BidStatus',
    'FailureReason',
    'PendingBid',
    'TeamState',
    'LeagueSettings',
    'LeagueState',
    'TransactionRecord',
    'Won',
    'Lost',
    'Failed',
    'create_league_state',
    'WaiverError',
    'StoreUnavailable',
    'SettlementFailure',
    'WaiverRunInProgress',
    'WaiversDisabled',
    'BidValidationError',
    'JsonLeagueStore',
    'BidManager',
    'BatchResult',
    'WaiverEngine',
]
