"""
Core data structures for waiver bids, teams, and league state.

These dataclasses represent a league's persistent waiver state (teams,
rosters, FAAB budgets, pending bids, the transaction log) together with the
tagged outcome variants produced when a batch of bids is resolved.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union
import json

from .. import config


class BidStatus(str, Enum):
    """Lifecycle of a pending bid."""

    PENDING = 'pending'
    WON = 'won'
    LOST = 'lost'
    FAILED = 'failed'


class FailureReason(str, Enum):
    """Why a claim did not result in an acquisition."""

    OUTBID = 'outbid'
    DUPLICATE_BID = 'duplicate_bid'
    INVALID_DROP_TARGET = 'invalid_drop_target'
    ROSTER_FULL = 'roster_full'
    INSUFFICIENT_BUDGET = 'insufficient_budget'
    PLAYER_UNAVAILABLE = 'player_unavailable'


@dataclass
class PendingBid:
    """A blind FAAB bid placed by one team on one free agent."""

    bid_id: str                      # Unique bid identifier
    player_id: str                   # Player being claimed
    amount: int                      # FAAB bid amount ($)
    processing_order: int            # Team-local priority (0 = highest)
    submitted_at: datetime           # When the bid was placed
    drop_player_id: Optional[str] = None  # Optional player to drop
    status: BidStatus = BidStatus.PENDING
    failure_reason: Optional[FailureReason] = None
    processed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == BidStatus.PENDING

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'bid_id': self.bid_id,
            'player_id': self.player_id,
            'amount': self.amount,
            'processing_order': self.processing_order,
            'submitted_at': self.submitted_at.isoformat(),
            'drop_player_id': self.drop_player_id,
            'status': self.status.value,
            'failure_reason': self.failure_reason.value if self.failure_reason else None,
            'processed_at': self.processed_at.isoformat() if self.processed_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'PendingBid':
        """Create PendingBid from dictionary (JSON deserialization)."""
        reason = data.get('failure_reason')
        processed_at = data.get('processed_at')
        return cls(
            bid_id=data['bid_id'],
            player_id=data['player_id'],
            amount=int(data['amount']),
            processing_order=int(data['processing_order']),
            submitted_at=datetime.fromisoformat(data['submitted_at']),
            drop_player_id=data.get('drop_player_id'),
            status=BidStatus(data.get('status', BidStatus.PENDING.value)),
            failure_reason=FailureReason(reason) if reason else None,
            processed_at=datetime.fromisoformat(processed_at) if processed_at else None,
        )


# ===== Claim outcomes =====

@dataclass(frozen=True)
class Won:
    """Claim succeeded: player added, amount spent."""

    amount: int
    dropped_player_id: Optional[str] = None


@dataclass(frozen=True)
class Lost:
    """Claim lost to a better bid on the same player."""

    reason: FailureReason = FailureReason.OUTBID


@dataclass(frozen=True)
class Failed:
    """Claim could not be honoured (budget, roster, drop target, duplicate, rostered player)."""

    reason: FailureReason


ClaimOutcome = Union[Won, Lost, Failed]


def outcome_status(outcome: ClaimOutcome) -> BidStatus:
    """Map an outcome variant to the bid status it produces."""
    if isinstance(outcome, Won):
        return BidStatus.WON
    if isinstance(outcome, Lost):
        return BidStatus.LOST
    if isinstance(outcome, Failed):
        return BidStatus.FAILED
    raise TypeError(f"Unknown claim outcome: {outcome!r}")


def outcome_reason(outcome: ClaimOutcome) -> Optional[FailureReason]:
    """Failure reason carried by an outcome (None for wins)."""
    if isinstance(outcome, Won):
        return None
    if isinstance(outcome, (Lost, Failed)):
        return outcome.reason
    raise TypeError(f"Unknown claim outcome: {outcome!r}")


@dataclass(frozen=True)
class Claim:
    """A candidate (team, bid) pair inside one resolution batch."""

    team_id: str
    bid: PendingBid


@dataclass(frozen=True)
class ProcessedClaim:
    """Final outcome of one claim in a batch."""

    team_id: str
    bid: PendingBid
    outcome: ClaimOutcome

    @property
    def status(self) -> BidStatus:
        return outcome_status(self.outcome)

    @property
    def reason(self) -> Optional[FailureReason]:
        return outcome_reason(self.outcome)

    def to_dict(self) -> dict:
        reason = self.reason
        return {
            'team_id': self.team_id,
            'bid_id': self.bid.bid_id,
            'player_id': self.bid.player_id,
            'amount': self.bid.amount,
            'drop_player_id': self.bid.drop_player_id,
            'processing_order': self.bid.processing_order,
            'status': self.status.value,
            'failure_reason': reason.value if reason else None,
        }


# ===== Persistent league state =====

@dataclass
class PlayerInfo:
    """Display information for a player (used in audit records)."""

    player_id: str
    name: str = 'Unknown Player'
    region: str = 'Unknown Region'

    def to_dict(self) -> dict:
        return {'player_id': self.player_id, 'name': self.name, 'region': self.region}

    @classmethod
    def from_dict(cls, data: dict) -> 'PlayerInfo':
        return cls(
            player_id=data['player_id'],
            name=data.get('name', 'Unknown Player'),
            region=data.get('region', 'Unknown Region'),
        )


@dataclass(frozen=True)
class LeagueSettings:
    """Immutable league configuration snapshot used by a waiver run."""

    roster_slots: Dict[str, int] = field(default_factory=lambda: dict(config.ROSTER_SLOTS))
    faab_budget: int = config.DEFAULT_FAAB_BUDGET
    waivers_enabled: bool = True
    playoffs_active: bool = False

    @property
    def roster_limit(self) -> int:
        """Total roster spots per team (all starter slots plus bench)."""
        return sum(self.roster_slots.values())

    def to_dict(self) -> dict:
        return {
            'roster_slots': dict(self.roster_slots),
            'faab_budget': self.faab_budget,
            'waivers_enabled': self.waivers_enabled,
            'playoffs_active': self.playoffs_active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LeagueSettings':
        return cls(
            roster_slots=dict(data.get('roster_slots', config.ROSTER_SLOTS)),
            faab_budget=data.get('faab_budget', config.DEFAULT_FAAB_BUDGET),
            waivers_enabled=data.get('waivers_enabled', True),
            playoffs_active=data.get('playoffs_active', False),
        )


@dataclass
class TeamState:
    """Tracks a single team's roster, budget, and bids."""

    team_id: str
    team_name: str
    faab_budget: int = config.DEFAULT_FAAB_BUDGET
    roster: List[str] = field(default_factory=list)
    pending_bids: List[PendingBid] = field(default_factory=list)
    processed_bids: List[PendingBid] = field(default_factory=list)  # Archive
    cup_scores: Dict[str, float] = field(default_factory=dict)

    def open_slots(self, roster_limit: int) -> int:
        """Roster spots still available under the given limit."""
        return max(0, roster_limit - len(self.roster))

    def total_score(self) -> float:
        """Aggregate score across all cups (standings signal)."""
        return float(sum(self.cup_scores.values()))

    def find_pending_bid(self, bid_id: str) -> Optional[PendingBid]:
        for bid in self.pending_bids:
            if bid.bid_id == bid_id:
                return bid
        return None

    def renumber_bids(self) -> None:
        """Rewrite processing_order densely (0..n-1) keeping current order."""
        ordered = sorted(self.pending_bids, key=lambda b: b.processing_order)
        for index, bid in enumerate(ordered):
            bid.processing_order = index
        self.pending_bids = ordered

    def to_dict(self) -> dict:
        return {
            'team_id': self.team_id,
            'team_name': self.team_name,
            'faab_budget': self.faab_budget,
            'roster': list(self.roster),
            'pending_bids': [bid.to_dict() for bid in self.pending_bids],
            'processed_bids': [bid.to_dict() for bid in self.processed_bids],
            'cup_scores': dict(self.cup_scores),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TeamState':
        return cls(
            team_id=data['team_id'],
            team_name=data.get('team_name', data['team_id']),
            faab_budget=data.get('faab_budget', config.DEFAULT_FAAB_BUDGET),
            roster=list(data.get('roster', [])),
            pending_bids=[PendingBid.from_dict(b) for b in data.get('pending_bids', [])],
            processed_bids=[PendingBid.from_dict(b) for b in data.get('processed_bids', [])],
            cup_scores={k: float(v) for k, v in data.get('cup_scores', {}).items()},
        )


@dataclass(frozen=True)
class TransactionRecord:
    """Append-only audit entry for one processed claim."""

    transaction_id: str
    timestamp: datetime
    team_id: str
    player_id: str
    amount: int
    outcome: BidStatus
    failure_reason: Optional[FailureReason] = None
    dropped_player_id: Optional[str] = None
    faab_spent: int = 0
    player_names: Dict[str, Dict[str, str]] = field(default_factory=dict)
    losing_bids: List[Dict] = field(default_factory=list)
    type: str = 'waiver'

    def to_dict(self) -> dict:
        return {
            'transaction_id': self.transaction_id,
            'timestamp': self.timestamp.isoformat(),
            'type': self.type,
            'team_id': self.team_id,
            'player_id': self.player_id,
            'amount': self.amount,
            'outcome': self.outcome.value,
            'failure_reason': self.failure_reason.value if self.failure_reason else None,
            'dropped_player_id': self.dropped_player_id,
            'faab_spent': self.faab_spent,
            'player_names': {pid: dict(info) for pid, info in self.player_names.items()},
            'losing_bids': [dict(b) for b in self.losing_bids],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'TransactionRecord':
        reason = data.get('failure_reason')
        return cls(
            transaction_id=data['transaction_id'],
            timestamp=datetime.fromisoformat(data['timestamp']),
            team_id=data['team_id'],
            player_id=data['player_id'],
            amount=int(data['amount']),
            outcome=BidStatus(data['outcome']),
            failure_reason=FailureReason(reason) if reason else None,
            dropped_player_id=data.get('dropped_player_id'),
            faab_spent=int(data.get('faab_spent', 0)),
            player_names=data.get('player_names', {}),
            losing_bids=data.get('losing_bids', []),
            type=data.get('type', 'waiver'),
        )


@dataclass(frozen=True)
class ProcessingLease:
    """Exclusive single-writer marker for a league's waiver run."""

    owner: str
    acquired_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) >= self.expires_at

    def to_dict(self) -> dict:
        return {
            'owner': self.owner,
            'acquired_at': self.acquired_at.isoformat(),
            'expires_at': self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ProcessingLease':
        return cls(
            owner=data['owner'],
            acquired_at=datetime.fromisoformat(data['acquired_at']),
            expires_at=datetime.fromisoformat(data['expires_at']),
        )


@dataclass
class LeagueState:
    """Complete persisted waiver state of one league."""

    league_id: str
    settings: LeagueSettings
    teams: Dict[str, TeamState]                      # team_id -> TeamState
    name: str = ''
    players: Dict[str, PlayerInfo] = field(default_factory=dict)
    transactions: List[TransactionRecord] = field(default_factory=list)
    processing_lease: Optional[ProcessingLease] = None

    def validate(self) -> None:
        """
        Validate league state consistency.

        Raises:
            ValueError: If any team breaks a budget or roster invariant, or a
                player is rostered by more than one team
        """
        limit = self.settings.roster_limit
        rostered = {}
        for team in self.teams.values():
            if team.faab_budget < 0:
                raise ValueError(
                    f"Team {team.team_id} has negative FAAB budget: ${team.faab_budget}"
                )
            if len(team.roster) > limit:
                raise ValueError(
                    f"Team {team.team_id} roster size {len(team.roster)} "
                    f"exceeds limit {limit}"
                )
            for player_id in team.roster:
                if player_id in rostered:
                    raise ValueError(
                        f"Player {player_id} appears on multiple rosters "
                        f"({rostered[player_id]}, {team.team_id})"
                    )
                rostered[player_id] = team.team_id

    def rostered_players(self) -> Dict[str, str]:
        """Map of player_id -> team_id for every rostered player."""
        return {
            player_id: team.team_id
            for team in self.teams.values()
            for player_id in team.roster
        }

    def player_name_entry(self, player_id: str) -> Dict[str, str]:
        info = self.players.get(player_id) or PlayerInfo(player_id=player_id)
        return {'name': info.name, 'region': info.region}

    def to_dict(self) -> dict:
        return {
            'league_id': self.league_id,
            'name': self.name,
            'settings': self.settings.to_dict(),
            'teams': {tid: team.to_dict() for tid, team in self.teams.items()},
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'transactions': [t.to_dict() for t in self.transactions],
            'processing_lease': (
                self.processing_lease.to_dict() if self.processing_lease else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LeagueState':
        lease = data.get('processing_lease')
        return cls(
            league_id=data['league_id'],
            name=data.get('name', ''),
            settings=LeagueSettings.from_dict(data.get('settings', {})),
            teams={
                tid: TeamState.from_dict(tdata)
                for tid, tdata in data.get('teams', {}).items()
            },
            players={
                pid: PlayerInfo.from_dict(pdata)
                for pid, pdata in data.get('players', {}).items()
            },
            transactions=[
                TransactionRecord.from_dict(t) for t in data.get('transactions', [])
            ],
            processing_lease=ProcessingLease.from_dict(lease) if lease else None,
        )

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, json_str: str) -> 'LeagueState':
        return cls.from_dict(json.loads(json_str))


def create_league_state(
    league_id: str,
    num_teams: int = 8,
    faab_budget: int = config.DEFAULT_FAAB_BUDGET,
    roster_slots: Optional[Dict[str, int]] = None,
    team_names: Optional[Dict[str, str]] = None,
    waivers_enabled: bool = True,
    name: str = '',
) -> LeagueState:
    """
    Create a fresh league with empty rosters and full FAAB budgets.

    Args:
        league_id: League identifier
        num_teams: Number of teams in the league
        faab_budget: Starting FAAB per team
        roster_slots: Slot layout (defaults to config.ROSTER_SLOTS)
        team_names: Optional mapping of team_id to team_name
        waivers_enabled: Whether waiver claims are accepted
        name: Display name of the league

    Returns:
        LeagueState with teams team_01..team_NN
    """
    settings = LeagueSettings(
        roster_slots=dict(roster_slots or config.ROSTER_SLOTS),
        faab_budget=faab_budget,
        waivers_enabled=waivers_enabled,
    )

    teams = {}
    for i in range(1, num_teams + 1):
        team_id = f"team_{i:02d}"
        team_name = (team_names or {}).get(team_id, f"Team {i}")
        teams[team_id] = TeamState(
            team_id=team_id,
            team_name=team_name,
            faab_budget=faab_budget,
        )

    return LeagueState(
        league_id=league_id,
        name=name or league_id,
        settings=settings,
        teams=teams,
    )
