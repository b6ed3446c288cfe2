"""Tests for bid submission, modification, cancellation, and reordering."""

from dataclasses import replace

import pytest

from src.waivers.bid_manager import BidManager
from src.waivers.errors import (
    BidValidationError,
    TeamNotFound,
    WaiverRunInProgress,
    WaiversDisabled,
)
from src.waivers.waiver_models import BidStatus


@pytest.fixture
def manager(store, league):
    return BidManager(store)


def test_submit_appends_at_lowest_priority(manager):
    first = manager.submit_bid('test_league', 'team_01', 'fa_x', 10)
    second = manager.submit_bid('test_league', 'team_01', 'fa_y', 40, drop_player_id='team_01_p1')

    pending = manager.list_pending_bids('test_league', 'team_01')
    assert [b.bid_id for b in pending] == [first.bid_id, second.bid_id]
    assert [b.processing_order for b in pending] == [0, 1]
    assert pending[1].drop_player_id == 'team_01_p1'
    assert pending[1].status == BidStatus.PENDING


def test_submit_full_budget_and_zero_are_allowed(manager):
    manager.submit_bid('test_league', 'team_01', 'fa_x', 100)
    manager.submit_bid('test_league', 'team_01', 'fa_y', 0)

    assert len(manager.list_pending_bids('test_league', 'team_01')) == 2


@pytest.mark.parametrize('amount', [-1, 101, 2.5, True, '10'])
def test_submit_rejects_bad_amounts(manager, amount):
    with pytest.raises(BidValidationError):
        manager.submit_bid('test_league', 'team_01', 'fa_x', amount)

    assert manager.list_pending_bids('test_league', 'team_01') == []


def test_submit_rejects_rostered_player(manager):
    with pytest.raises(BidValidationError, match='already on'):
        manager.submit_bid('test_league', 'team_01', 'team_01_p1', 5)
    with pytest.raises(BidValidationError, match='rostered by team_02'):
        manager.submit_bid('test_league', 'team_01', 'team_02_p1', 5)


def test_submit_rejects_second_bid_on_same_player(manager):
    manager.submit_bid('test_league', 'team_01', 'fa_x', 5)

    with pytest.raises(BidValidationError, match='already has a pending bid'):
        manager.submit_bid('test_league', 'team_01', 'fa_x', 9)


def test_submit_rejects_drop_not_on_roster(manager):
    with pytest.raises(BidValidationError, match='Drop target'):
        manager.submit_bid('test_league', 'team_01', 'fa_x', 5, drop_player_id='team_02_p1')


def test_submit_unknown_team(manager):
    with pytest.raises(TeamNotFound):
        manager.submit_bid('test_league', 'team_99', 'fa_x', 5)


def test_submit_when_waivers_disabled(store, league, manager):
    league.settings = replace(league.settings, playoffs_active=True)
    store.save_league(league)

    with pytest.raises(WaiversDisabled):
        manager.submit_bid('test_league', 'team_01', 'fa_x', 5)


def test_modify_changes_amount_only(manager):
    bid = manager.submit_bid('test_league', 'team_01', 'fa_x', 5)
    manager.submit_bid('test_league', 'team_01', 'fa_y', 5)

    updated = manager.modify_bid('test_league', 'team_01', bid.bid_id, 60)

    assert updated.amount == 60
    assert updated.processing_order == 0
    with pytest.raises(BidValidationError):
        manager.modify_bid('test_league', 'team_01', bid.bid_id, 500)
    with pytest.raises(BidValidationError):
        manager.modify_bid('test_league', 'team_01', 'missing', 5)


def test_cancel_closes_gap_in_order(manager):
    a = manager.submit_bid('test_league', 'team_01', 'fa_x', 1)
    b = manager.submit_bid('test_league', 'team_01', 'fa_y', 2)
    c = manager.submit_bid('test_league', 'team_01', 'fa_z', 3)

    manager.cancel_bid('test_league', 'team_01', b.bid_id)

    pending = manager.list_pending_bids('test_league', 'team_01')
    assert [(p.bid_id, p.processing_order) for p in pending] == [(a.bid_id, 0), (c.bid_id, 1)]

    with pytest.raises(BidValidationError):
        manager.cancel_bid('test_league', 'team_01', b.bid_id)


def test_reorder_sets_priority(manager):
    a = manager.submit_bid('test_league', 'team_01', 'fa_x', 1)
    b = manager.submit_bid('test_league', 'team_01', 'fa_y', 2)
    c = manager.submit_bid('test_league', 'team_01', 'fa_z', 3)

    ordered = manager.reorder_bids('test_league', 'team_01', [c.bid_id, a.bid_id, b.bid_id])

    assert [x.bid_id for x in ordered] == [c.bid_id, a.bid_id, b.bid_id]
    stored = manager.list_pending_bids('test_league', 'team_01')
    assert [(x.bid_id, x.processing_order) for x in stored] == [
        (c.bid_id, 0), (a.bid_id, 1), (b.bid_id, 2)
    ]


@pytest.mark.parametrize('order', [
    lambda a, b: [a],
    lambda a, b: [a, a],
    lambda a, b: [a, b, 'extra'],
])
def test_reorder_must_list_every_bid_once(manager, order):
    a = manager.submit_bid('test_league', 'team_01', 'fa_x', 1)
    b = manager.submit_bid('test_league', 'team_01', 'fa_y', 2)

    with pytest.raises(BidValidationError):
        manager.reorder_bids('test_league', 'team_01', order(a.bid_id, b.bid_id))


def test_submitted_bids_flow_through_engine(manager, engine, store):
    manager.submit_bid('test_league', 'team_03', 'fa_x', 30)
    manager.submit_bid('test_league', 'team_04', 'fa_x', 30)

    result = engine.process_waivers('test_league')

    winner = result.claims_with_status(BidStatus.WON)
    assert [c.team_id for c in winner] == ['team_04']
    assert manager.list_pending_bids('test_league', 'team_03') == []


class TestFrozenDuringRun:
    @pytest.fixture
    def bid(self, manager):
        return manager.submit_bid('test_league', 'team_01', 'fa_x', 10)

    def test_every_operation_refused_while_lease_held(self, manager, store, bid):
        store.acquire_lease('test_league', 'run_a', ttl_seconds=60)

        with pytest.raises(WaiverRunInProgress):
            manager.submit_bid('test_league', 'team_01', 'fa_y', 5)
        with pytest.raises(WaiverRunInProgress):
            manager.modify_bid('test_league', 'team_01', bid.bid_id, 90)
        with pytest.raises(WaiverRunInProgress):
            manager.cancel_bid('test_league', 'team_01', bid.bid_id)
        with pytest.raises(WaiverRunInProgress):
            manager.reorder_bids('test_league', 'team_01', [bid.bid_id])

        pending = manager.list_pending_bids('test_league', 'team_01')
        assert [(b.bid_id, b.amount) for b in pending] == [(bid.bid_id, 10)]

    def test_expired_lease_does_not_freeze(self, manager, store, league, bid):
        from datetime import datetime, timedelta

        from src.waivers.waiver_models import ProcessingLease

        state = store.load_league('test_league')
        past = datetime.now() - timedelta(hours=1)
        state.processing_lease = ProcessingLease('crashed_run', past, past + timedelta(minutes=5))
        store.save_league(state)

        assert manager.modify_bid('test_league', 'team_01', bid.bid_id, 20).amount == 20

    def test_released_lease_unfreezes(self, manager, store, bid):
        store.acquire_lease('test_league', 'run_a', ttl_seconds=60)
        store.release_lease('test_league', 'run_a')

        manager.cancel_bid('test_league', 'team_01', bid.bid_id)

        assert manager.list_pending_bids('test_league', 'team_01') == []
