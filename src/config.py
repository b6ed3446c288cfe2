"""
Configuration constants for the FAAB waiver resolution engine.
"""

# League Settings
DEFAULT_FAAB_BUDGET = 1000  # Starting FAAB per team, never replenished
MINIMUM_BID = 0

# Roster Construction
ROSTER_SLOTS = {
    'CAPTAIN': 1,
    'NA': 2,
    'BR_LATAM': 1,
    'FLEX': 2,
    'BENCH': 3,
}

# Standings HTTP endpoint (used by RemoteStandingsProvider)
STANDINGS_TIMEOUT = 10  # seconds per request
STANDINGS_MAX_RETRIES = 3

# ===== STORE CONFIGURATION =====

# League documents (one JSON file per league)
LEAGUES_DIR = 'data/leagues'

# Bounded wait for a league's store lock before giving up
STORE_LOCK_TIMEOUT = 5.0  # seconds
STORE_LOCK_POLL_INTERVAL = 0.05  # seconds between flock attempts

# Claim collection is the only step allowed to retry transparently
COLLECT_MAX_RETRIES = 3
COLLECT_RETRY_BACKOFF = 0.5  # base seconds, doubled per attempt

# ===== WAIVER RUN CONFIGURATION =====

# Exclusive processing lease held for the duration of one run
PROCESSING_LEASE_TTL = 300  # seconds (5 minutes)

# Per-team ledger walks (None = sequential)
ALLOCATOR_MAX_WORKERS = None

# ===== API CONFIGURATION =====

API_HOST = '127.0.0.1'
API_PORT = 8000

# Logging
LOG_LEVEL = 'INFO'
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
