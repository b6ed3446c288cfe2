"""
Exclusive processing lease for waiver runs.

Only one waiver run per league may collect and settle bids at a time. The
lease is a record on the league document keyed by league id, with an owner
token and an expiry; a crashed run's lease simply expires.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import uuid4

from .. import config
from .errors import StoreUnavailable
from .league_store import JsonLeagueStore
from .waiver_models import ProcessingLease

logger = logging.getLogger(__name__)


@contextmanager
def processing_lease(
    store: JsonLeagueStore,
    league_id: str,
    ttl_seconds: float = config.PROCESSING_LEASE_TTL,
    owner: Optional[str] = None,
) -> Iterator[ProcessingLease]:
    """
    Hold the league's processing lease for the duration of the block.

    Args:
        store: League store holding the lease record
        league_id: League to lock
        ttl_seconds: Lease lifetime in seconds
        owner: Owner token (generated if None)

    Raises:
        WaiverRunInProgress: If another run holds the lease
        StoreUnavailable: If the lease record cannot be written

    Usage:
        with processing_lease(store, league_id) as lease:
            ...  # collect, resolve, allocate, settle
    """
    owner = owner or f"run_{uuid4().hex}"
    lease = store.acquire_lease(league_id, owner, ttl_seconds)
    logger.info(f"Processing lease acquired on {league_id} (expires {lease.expires_at:%H:%M:%S})")

    try:
        yield lease
    finally:
        try:
            store.release_lease(league_id, owner)
        except StoreUnavailable as e:
            # Results are already committed; the lease expires on its own
            logger.error(f"Failed to release lease on {league_id}: {e}")
