"""
Gather every pending waiver claim in a league into one resolution batch.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List

from .. import config
from .errors import StoreUnavailable, WaiversDisabled
from .league_store import JsonLeagueStore
from .waiver_models import Claim, LeagueSettings, LeagueState, TeamState

logger = logging.getLogger(__name__)


@dataclass
class ResolutionBatch:
    """Ephemeral working set for one waiver run (never persisted)."""

    league_id: str
    settings: LeagueSettings
    claims: List[Claim]
    teams: Dict[str, TeamState]          # Team snapshots as collected
    standings: Dict[str, float]          # team_id -> score
    rostered: Dict[str, str] = field(default_factory=dict)    # player_id -> team_id
    player_names: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def roster_limit(self) -> int:
        return self.settings.roster_limit

    @property
    def is_empty(self) -> bool:
        return not self.claims

    def standings_score(self, team_id: str) -> float:
        return self.standings.get(team_id, 0.0)


def collect_claims(
    store: JsonLeagueStore,
    standings_provider,
    league_id: str,
    max_retries: int = config.COLLECT_MAX_RETRIES,
    retry_backoff: float = config.COLLECT_RETRY_BACKOFF,
) -> ResolutionBatch:
    """
    Collect all pending bids, team states, and fresh standings.

    The league read is idempotent, so a StoreUnavailable from the store is
    retried with exponential backoff before giving up. The standings
    provider is called once; it owns its own retry policy.

    Args:
        store: League store
        standings_provider: Object with get_standings(league_id)
        league_id: League to collect
        max_retries: Maximum attempts for the league read
        retry_backoff: Base seconds between attempts (doubled each time)

    Returns:
        ResolutionBatch with every (team, bid) pair whose status is pending

    Raises:
        StoreUnavailable: After all read retries are exhausted, or if the
            standings provider fails
        WaiversDisabled: If the league is not accepting waivers
        LeagueNotFound: If the league does not exist
    """
    state = _load_league(store, league_id, max_retries, retry_backoff)
    settings = state.settings

    if not settings.waivers_enabled:
        raise WaiversDisabled(f"Waivers are not enabled for league {league_id}")
    if settings.playoffs_active:
        raise WaiversDisabled(f"Waivers are locked during playoffs in league {league_id}")

    claims = []
    for team_id in sorted(state.teams):
        team = state.teams[team_id]
        for bid in sorted(team.pending_bids, key=lambda b: b.processing_order):
            if bid.is_pending:
                claims.append(Claim(team_id=team_id, bid=bid))

    standings = standings_provider.get_standings(league_id)

    player_ids = set()
    for claim in claims:
        player_ids.add(claim.bid.player_id)
        if claim.bid.drop_player_id:
            player_ids.add(claim.bid.drop_player_id)

    batch = ResolutionBatch(
        league_id=league_id,
        settings=settings,
        claims=claims,
        teams=state.teams,
        standings=standings,
        rostered=state.rostered_players(),
        player_names={pid: state.player_name_entry(pid) for pid in player_ids},
    )

    logger.info(
        f"Collected {len(claims)} pending claims from "
        f"{len({c.team_id for c in claims})} teams in {league_id}"
    )
    return batch


def _load_league(
    store: JsonLeagueStore,
    league_id: str,
    max_retries: int,
    retry_backoff: float,
) -> LeagueState:
    for attempt in range(1, max_retries + 1):
        try:
            return store.load_league(league_id)
        except StoreUnavailable as e:
            logger.warning(f"League read failed (attempt {attempt}/{max_retries}): {e}")
            if attempt == max_retries:
                raise
            time.sleep(retry_backoff * 2 ** (attempt - 1))

    raise StoreUnavailable(f"Could not read league {league_id}")
