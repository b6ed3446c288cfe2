"""
Standings providers for the waiver tie-break.

A standings snapshot maps team_id -> aggregate score. It is only used to
break exact bid ties (lower score wins) and is always read fresh at
resolution time.
"""

import logging
import time
from typing import Dict, Optional

import requests

from .. import config
from .errors import StoreUnavailable
from .league_store import JsonLeagueStore

logger = logging.getLogger(__name__)


class StoreStandingsProvider:
    """Aggregate each team's cup scores from the league document."""

    def __init__(self, store: JsonLeagueStore):
        self.store = store

    def get_standings(self, league_id: str) -> Dict[str, float]:
        """
        Current total score per team.

        Returns:
            Dict mapping team_id -> sum of the team's cup scores
        """
        state = self.store.load_league(league_id)
        standings = {
            team_id: team.total_score()
            for team_id, team in state.teams.items()
        }
        logger.debug(f"Standings for {league_id}: {standings}")
        return standings


class RemoteStandingsProvider:
    """Fetch standings from an HTTP endpoint returning {team_id: score}."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = config.STANDINGS_TIMEOUT,
        max_retries: int = config.STANDINGS_MAX_RETRIES,
        retry_backoff: float = 1.0,
    ):
        """
        Initialize remote standings provider.

        Args:
            base_url: Service root; standings are read from
                ``{base_url}/leagues/{league_id}/standings``
            api_key: Optional bearer token
            timeout: Request timeout in seconds
            max_retries: Maximum attempts per fetch
            retry_backoff: Base seconds for exponential backoff
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

        # Session for connection pooling
        self.session = requests.Session()
        if api_key:
            self.session.headers['Authorization'] = f'Bearer {api_key}'

    def get_standings(self, league_id: str) -> Dict[str, float]:
        """
        Fetch current standings.

        Raises:
            StoreUnavailable: After all retries are exhausted or on a
                malformed payload
        """
        endpoint = f"{self.base_url}/leagues/{league_id}/standings"

        for attempt in range(1, self.max_retries + 1):
            try:
                logger.debug(f"GET {endpoint} (attempt {attempt}/{self.max_retries})")
                response = self.session.get(endpoint, timeout=self.timeout)
                response.raise_for_status()
                payload = response.json()
                return {str(team_id): float(score) for team_id, score in payload.items()}

            except (ValueError, AttributeError, TypeError) as e:
                raise StoreUnavailable(f"Malformed standings payload from {endpoint}: {e}") from e

            except requests.RequestException as e:
                logger.warning(f"Standings request failed (attempt {attempt}/{self.max_retries}): {e}")
                if attempt == self.max_retries:
                    raise StoreUnavailable(f"Standings unavailable for {league_id}: {e}") from e
                time.sleep(self.retry_backoff * 2 ** (attempt - 1))

        raise StoreUnavailable(f"Standings unavailable for {league_id}")

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()
