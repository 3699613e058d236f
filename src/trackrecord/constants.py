"""Shared constants for TrackRecord."""

# Proof validity window
PROOF_TTL_SECONDS = 24 * 60 * 60
PROOF_SWEEP_INTERVAL_SECONDS = 5 * 60

# Trust certificates
CERTIFICATE_TTL_SECONDS = 24 * 60 * 60
CERTIFICATE_HASH_LENGTH = 32

# Collaborator and backend calls
DEFAULT_CALL_TIMEOUT_SECONDS = 30.0

# Rate limiting
RATE_LIMIT_SWEEP_INTERVAL_SECONDS = 60
GENERAL_MAX_REQUESTS = 500
GENERAL_WINDOW_SECONDS = 60.0
WRITE_MAX_REQUESTS = 100
WRITE_WINDOW_SECONDS = 60.0
WRITE_BLOCK_SECONDS = 60.0

# Reputation scoring
SCORE_MIN = 0
SCORE_MAX = 100
TRADES_COMPONENT_MAX = 30
TRADES_COMPONENT_SATURATION = 200
WIN_RATE_COMPONENT_MAX = 40
PNL_COMPONENT_MAX = 20
PNL_COMPONENT_SATURATION = 10_000
PROOF_BONUS_PER_PROOF = 5
PROOF_BONUS_MAX = 15

# Execution-speed bands: (max avg ms, points), first match wins
EXEC_SPEED_BANDS = (
    (50.0, 10),
    (100.0, 7),
    (200.0, 4),
)

TIER_UNVERIFIED = "unverified"

# Input bounds
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
PUBLIC_KEY_MAX_LENGTH = 200
TOKEN_SYMBOL_MAX_LENGTH = 20
AMOUNT_MAX = 1e12
PNL_ABS_MAX = 1e9
EXECUTION_TIME_MAX_MS = 60_000
PUBLIC_INPUT_ABS_MAX = 1e9
