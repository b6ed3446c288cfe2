"""Shared fixtures for waiver engine tests."""

from datetime import datetime, timedelta

import pytest

from src.waivers.league_store import JsonLeagueStore
from src.waivers.waiver_engine import WaiverEngine
from src.waivers.waiver_models import PendingBid, PlayerInfo, create_league_state


BASE_TIME = datetime(2026, 10, 16, 12, 0, 0)


def make_bid(player_id, amount, order, drop=None, minutes=0, bid_id=None):
    """Build a pending bid submitted ``minutes`` after BASE_TIME."""
    return PendingBid(
        bid_id=bid_id or f"bid_{player_id}_{order}_{amount}",
        player_id=player_id,
        amount=amount,
        processing_order=order,
        submitted_at=BASE_TIME + timedelta(minutes=minutes),
        drop_player_id=drop,
    )


def add_bid(state, team_id, player_id, amount, order=None, drop=None, minutes=0, bid_id=None):
    """Append a bid directly to a team (bypasses submission checks)."""
    team = state.teams[team_id]
    if order is None:
        order = len(team.pending_bids)
    bid = make_bid(
        player_id, amount, order,
        drop=drop,
        minutes=minutes,
        bid_id=bid_id or f"{team_id}_{player_id}_{order}",
    )
    team.pending_bids.append(bid)
    return bid


@pytest.fixture
def store(tmp_path):
    return JsonLeagueStore(tmp_path / "leagues", lock_timeout=1.0)


@pytest.fixture
def engine(store):
    return WaiverEngine(store, collect_retries=1, collect_backoff=0)


@pytest.fixture
def league(store):
    """
    Four-team league, roster limit 4, $100 FAAB each.

    Every team starts with two rostered players (<team>_p1, <team>_p2)
    and cup scores 40/30/20/10 for team_01..team_04.
    """
    state = create_league_state(
        'test_league',
        num_teams=4,
        faab_budget=100,
        roster_slots={'STARTER': 3, 'BENCH': 1},
    )
    scores = {'team_01': 40.0, 'team_02': 30.0, 'team_03': 20.0, 'team_04': 10.0}
    for team_id, team in state.teams.items():
        team.roster = [f"{team_id}_p1", f"{team_id}_p2"]
        team.cup_scores = {'cup1': scores[team_id]}

    for pid in ['fa_x', 'fa_y', 'fa_z', 'fa_w']:
        state.players[pid] = PlayerInfo(player_id=pid, name=f"Player {pid.upper()}", region='NA')

    store.save_league(state)
    return state
