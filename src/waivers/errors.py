"""
Exceptions raised by the waiver engine and its store.

Per-claim outcomes (outbid, duplicate_bid, invalid_drop_target, roster_full,
insufficient_budget) are never raised; they are recorded as data on the
processed claims and transaction log.
"""


class WaiverError(Exception):
    """Base class for waiver engine errors."""


class StoreUnavailable(WaiverError):
    """The backing store could not be read or written in time.

    Raised before any commit, the whole run is safe to retry.
    """


class LeagueNotFound(WaiverError):
    """No league document exists for the requested league id."""

    def __init__(self, league_id: str):
        super().__init__(f"League not found: {league_id}")
        self.league_id = league_id


class TeamNotFound(WaiverError):
    """The team does not belong to the league."""

    def __init__(self, league_id: str, team_id: str):
        super().__init__(f"Team {team_id} not found in league {league_id}")
        self.league_id = league_id
        self.team_id = team_id


class SettlementFailure(WaiverError):
    """A team's atomic settlement commit was rejected."""

    def __init__(self, team_id: str, message: str):
        super().__init__(f"Settlement failed for {team_id}: {message}")
        self.team_id = team_id


class WaiverRunInProgress(WaiverError):
    """Another waiver run holds the league's processing lease."""


class WaiversDisabled(WaiverError):
    """The league is not currently accepting waiver activity."""


class BidValidationError(WaiverError):
    """A bid submission or modification was rejected."""
