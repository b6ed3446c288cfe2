"""Tests for the standings providers."""

import pytest
import requests

from src.waivers.errors import StoreUnavailable
from src.waivers.standings import RemoteStandingsProvider, StoreStandingsProvider


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


@pytest.fixture
def provider(monkeypatch):
    monkeypatch.setattr('src.waivers.standings.time.sleep', lambda s: None)
    remote = RemoteStandingsProvider('http://standings.local/', api_key='secret', max_retries=3)
    yield remote
    remote.close()


def test_store_provider_sums_cup_scores(store, league):
    league.teams['team_01'].cup_scores = {'cup1': 10.0, 'cup2': 2.5}
    store.save_league(league)

    standings = StoreStandingsProvider(store).get_standings('test_league')

    assert standings['team_01'] == 12.5
    assert standings['team_04'] == 10.0
    assert len(standings) == 4


def test_remote_provider_parses_scores(provider, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append(url)
        return FakeResponse({'team_01': 3, 'team_02': '4.5'})

    monkeypatch.setattr(provider.session, 'get', fake_get)

    assert provider.get_standings('lg') == {'team_01': 3.0, 'team_02': 4.5}
    assert calls == ['http://standings.local/leagues/lg/standings']
    assert provider.session.headers['Authorization'] == 'Bearer secret'


def test_remote_provider_retries_transient_errors(provider, monkeypatch):
    responses = iter([
        requests.ConnectionError("refused"),
        FakeResponse({}, status_code=503),
        FakeResponse({'team_01': 1}),
    ])

    def fake_get(url, timeout):
        item = next(responses)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(provider.session, 'get', fake_get)

    assert provider.get_standings('lg') == {'team_01': 1.0}


def test_remote_provider_gives_up(provider, monkeypatch):
    def fake_get(url, timeout):
        raise requests.Timeout("slow")

    monkeypatch.setattr(provider.session, 'get', fake_get)

    with pytest.raises(StoreUnavailable, match='Standings unavailable'):
        provider.get_standings('lg')


def test_remote_provider_malformed_payload(provider, monkeypatch):
    monkeypatch.setattr(provider.session, 'get', lambda url, timeout: FakeResponse(['not', 'a', 'map']))

    with pytest.raises(StoreUnavailable, match='Malformed'):
        provider.get_standings('lg')
