"""Tests for duplicate screening and per-player winner selection."""

from src.waivers.claim_collector import ResolutionBatch
from src.waivers.contention_resolver import (
    resolve_contention,
    screen_duplicates,
    screen_unavailable,
)
from src.waivers.waiver_models import (
    Claim,
    FailureReason,
    LeagueSettings,
    Lost,
    TeamState,
)

from conftest import make_bid


def _batch(claims, standings=None, rostered=None):
    team_ids = sorted({c.team_id for c in claims})
    teams = {tid: TeamState(team_id=tid, team_name=tid.upper()) for tid in team_ids}
    return ResolutionBatch(
        league_id='lg',
        settings=LeagueSettings(roster_slots={'ALL': 5}),
        claims=claims,
        teams=teams,
        standings=standings or {},
        rostered=rostered or {},
    )


def _claim(team_id, player_id, amount, order=0, minutes=0):
    return Claim(
        team_id=team_id,
        bid=make_bid(player_id, amount, order, minutes=minutes, bid_id=f"{team_id}:{player_id}:{order}"),
    )


def test_highest_amount_wins():
    claims = [_claim('a', 'p1', 10), _claim('b', 'p1', 25), _claim('c', 'p1', 5)]
    result = resolve_contention(_batch(claims))

    assert result.winners['p1'].team_id == 'b'
    assert [c.team_id for c in result.groups['p1']] == ['b', 'a', 'c']
    assert {r.team_id for r in result.rejected} == {'a', 'c'}
    assert all(r.outcome == Lost(FailureReason.OUTBID) for r in result.rejected)


def test_tie_broken_by_lower_standings_score():
    claims = [_claim('a', 'p1', 50), _claim('b', 'p1', 50)]
    result = resolve_contention(_batch(claims, standings={'a': 120.0, 'b': 80.0}))

    assert result.winners['p1'].team_id == 'b'


def test_tie_with_equal_scores_goes_to_earlier_submission():
    claims = [_claim('a', 'p1', 50, minutes=5), _claim('b', 'p1', 50, minutes=1)]
    result = resolve_contention(_batch(claims, standings={'a': 10.0, 'b': 10.0}))

    assert result.winners['p1'].team_id == 'b'


def test_full_tie_falls_back_to_team_id():
    claims = [_claim('zeta', 'p1', 7), _claim('alpha', 'p1', 7)]
    result = resolve_contention(_batch(claims))

    assert result.winners['p1'].team_id == 'alpha'


def test_missing_standings_entry_counts_as_zero():
    claims = [_claim('a', 'p1', 20), _claim('b', 'p1', 20)]
    result = resolve_contention(_batch(claims, standings={'a': 15.0}))

    assert result.winners['p1'].team_id == 'b'


def test_uncontested_claim_is_a_provisional_winner():
    claims = [_claim('a', 'p1', 0), _claim('b', 'p2', 3)]
    result = resolve_contention(_batch(claims))

    assert set(result.winners) == {'p1', 'p2'}
    assert result.rejected == []
    assert result.losing_bids('p1') == []


def test_one_winner_per_player_and_losers_partition():
    claims = [
        _claim('a', 'p1', 10), _claim('b', 'p1', 12),
        _claim('a', 'p2', 4, order=1), _claim('c', 'p2', 4),
        _claim('c', 'p3', 1, order=1),
    ]
    result = resolve_contention(_batch(claims, standings={'a': 1.0, 'b': 2.0, 'c': 3.0}))

    winner_ids = {c.bid.bid_id for c in result.winners.values()}
    rejected_ids = {r.bid.bid_id for r in result.rejected}
    assert len(result.winners) == 3
    assert winner_ids.isdisjoint(rejected_ids)
    assert winner_ids | rejected_ids == {c.bid.bid_id for c in claims}
    assert result.winners['p2'].team_id == 'a'


def test_wins_by_team_groups_provisional_winners():
    claims = [_claim('a', 'p1', 10), _claim('a', 'p2', 5, order=1), _claim('b', 'p3', 1)]
    by_team = resolve_contention(_batch(claims)).wins_by_team()

    assert sorted(c.bid.player_id for c in by_team['a']) == ['p1', 'p2']
    assert [c.bid.player_id for c in by_team['b']] == ['p3']


def test_losing_bids_in_priority_order():
    claims = [_claim('a', 'p1', 10), _claim('b', 'p1', 30), _claim('c', 'p1', 20)]
    result = resolve_contention(_batch(claims))

    assert [c.team_id for c in result.losing_bids('p1')] == ['c', 'a']


class TestScreenDuplicates:
    def test_keeps_higher_amount(self):
        low = _claim('a', 'p1', 5, order=0)
        high = _claim('a', 'p1', 9, order=1)

        kept, duplicates = screen_duplicates([low, high])

        assert kept == [high]
        assert len(duplicates) == 1
        assert duplicates[0].bid is low.bid
        assert duplicates[0].reason == FailureReason.DUPLICATE_BID

    def test_equal_amounts_keep_better_priority(self):
        first = _claim('a', 'p1', 5, order=0)
        second = _claim('a', 'p1', 5, order=2)

        kept, duplicates = screen_duplicates([second, first])

        assert kept == [first]
        assert duplicates[0].bid is second.bid

    def test_different_teams_are_not_duplicates(self):
        claims = [_claim('a', 'p1', 5), _claim('b', 'p1', 5)]

        kept, duplicates = screen_duplicates(claims)

        assert kept == claims
        assert duplicates == []

    def test_duplicate_never_reaches_contention(self):
        claims = [_claim('a', 'p1', 5, order=0), _claim('a', 'p1', 40, order=1), _claim('b', 'p1', 30)]
        result = resolve_contention(_batch(claims))

        assert result.winners['p1'].bid.amount == 40
        reasons = sorted(r.reason.value for r in result.rejected)
        assert reasons == ['duplicate_bid', 'outbid']
        assert [c.team_id for c in result.groups['p1']] == ['a', 'b']


class TestScreenUnavailable:
    def test_rostered_player_fails(self):
        taken = _claim('a', 'p1', 50)
        free = _claim('a', 'p2', 5)

        available, unavailable = screen_unavailable([taken, free], {'p1': 'b'})

        assert available == [free]
        assert [u.bid for u in unavailable] == [taken.bid]
        assert unavailable[0].reason == FailureReason.PLAYER_UNAVAILABLE

    def test_rostered_player_never_wins(self):
        claims = [_claim('a', 'p1', 50), _claim('b', 'p1', 10), _claim('b', 'p2', 3)]
        result = resolve_contention(_batch(claims, rostered={'p1': 'c'}))

        assert list(result.winners) == ['p2']
        assert 'p1' not in result.groups
        reasons = sorted(r.reason.value for r in result.rejected)
        assert reasons == ['player_unavailable', 'player_unavailable']
