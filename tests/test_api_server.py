"""Tests for the waiver HTTP API."""

import pytest
from fastapi.testclient import TestClient

from src.waivers.api_server import create_app
from src.waivers.errors import StoreUnavailable

from conftest import add_bid


@pytest.fixture
def client(store, engine, league):
    return TestClient(create_app(store, engine=engine))


def _bid(client, team_id, player_id, amount, **extra):
    return client.post(
        f"/leagues/test_league/teams/{team_id}/bids",
        json={'player_id': player_id, 'amount': amount, **extra},
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()['status'] == 'ok'


def test_submit_and_list_bids(client):
    first = _bid(client, 'team_01', 'fa_x', 10)
    second = _bid(client, 'team_01', 'fa_y', 5, drop_player_id='team_01_p2')

    assert first.status_code == 200
    assert second.json()['processing_order'] == 1
    assert second.json()['status'] == 'pending'

    listing = client.get("/leagues/test_league/teams/team_01/bids").json()
    assert listing['faab_budget'] == 100
    assert [b['player_id'] for b in listing['bids']] == ['fa_x', 'fa_y']

    pending = client.get("/leagues/test_league/waivers/pending").json()
    assert list(pending['teams']) == ['team_01']


@pytest.mark.parametrize('amount', [-5, 1000])
def test_invalid_amount_is_bad_request(client, amount):
    response = _bid(client, 'team_01', 'fa_x', amount)

    assert response.status_code == 400


def test_unknown_league_and_team(client):
    assert client.get("/leagues/nope/teams/team_01/bids").status_code == 404
    assert _bid(client, 'team_99', 'fa_x', 1).status_code == 404


def test_modify_cancel_and_reorder(client):
    a = _bid(client, 'team_02', 'fa_x', 10).json()['bid_id']
    b = _bid(client, 'team_02', 'fa_y', 20).json()['bid_id']
    c = _bid(client, 'team_02', 'fa_z', 30).json()['bid_id']

    patched = client.patch(f"/leagues/test_league/teams/team_02/bids/{a}", json={'amount': 15})
    assert patched.json()['amount'] == 15

    deleted = client.delete(f"/leagues/test_league/teams/team_02/bids/{b}")
    assert deleted.json() == {'success': True, 'bid_id': b}

    reordered = client.put("/leagues/test_league/teams/team_02/bids/order", json={'bid_ids': [c, a]})
    assert reordered.status_code == 200
    assert [x['bid_id'] for x in reordered.json()] == [c, a]

    bad = client.put("/leagues/test_league/teams/team_02/bids/order", json={'bid_ids': [c]})
    assert bad.status_code == 400


def test_process_waivers_endpoint(client, store, league):
    add_bid(league, 'team_01', 'fa_x', 50)
    add_bid(league, 'team_02', 'fa_x', 50)
    store.save_league(league)

    response = client.post("/leagues/test_league/waivers/process")

    assert response.status_code == 200
    body = response.json()
    assert body['summary']['won'] == 1
    assert body['summary']['lost'] == 1
    assert body['teams']['team_02']['spent'] == 50
    won = [c for c in body['claims'] if c['status'] == 'won']
    assert won[0]['team_id'] == 'team_02'

    log = client.get("/leagues/test_league/transactions", params={'team_id': 'team_02'}).json()
    assert len(log['transactions']) == 1
    assert log['transactions'][0]['losing_bids'][0]['team_id'] == 'team_01'

    limited = client.get("/leagues/test_league/transactions", params={'limit': 1}).json()
    assert len(limited['transactions']) == 1


def test_process_conflict_when_run_in_progress(client, store):
    store.acquire_lease('test_league', 'someone_else', ttl_seconds=60)

    response = client.post("/leagues/test_league/waivers/process")

    assert response.status_code == 409


def test_process_when_waivers_locked(client, store, league):
    from dataclasses import replace

    league.settings = replace(league.settings, playoffs_active=True)
    store.save_league(league)

    assert client.post("/leagues/test_league/waivers/process").status_code == 400
    assert _bid(client, 'team_01', 'fa_x', 1).status_code == 400


def test_store_unavailable_maps_to_503(client, store, monkeypatch):
    def unavailable(league_id):
        raise StoreUnavailable("disk gone")

    monkeypatch.setattr(store, 'load_league', unavailable)

    assert client.get("/leagues/test_league/teams/summary").status_code == 503


def test_team_summary(client):
    _bid(client, 'team_03', 'fa_x', 1)

    rows = client.get("/leagues/test_league/teams/summary").json()

    assert [r['team_id'] for r in rows] == ['team_01', 'team_02', 'team_03', 'team_04']
    assert rows[2]['pending_bids'] == 1
    assert rows[0]['open_slots'] == 2
    assert rows[3]['score'] == 10.0


def test_bid_changes_conflict_while_processing(client, store):
    bid_id = _bid(client, 'team_01', 'fa_x', 10).json()['bid_id']
    store.acquire_lease('test_league', 'someone_else', ttl_seconds=60)

    patched = client.patch(f"/leagues/test_league/teams/team_01/bids/{bid_id}", json={'amount': 50})
    deleted = client.delete(f"/leagues/test_league/teams/team_01/bids/{bid_id}")

    assert patched.status_code == 409
    assert deleted.status_code == 409
