# Fixed shape of the tournament and of the jobs that follow it.

MAX_ROUNDS = 16

# Past this round a provider error means "the round does not exist yet".
ERROR_FALLBACK_AFTER_ROUND = 3

# --- Round validity ---
MIN_VALID_MATCHES_PCT = 75.0
MAX_SAME_SCHEDULE_PCT = 70.0

# Substrings the provider uses in kickoff strings before real fixtures land.
PLACEHOLDER_KICKOFF_PATTERNS = (
    "2025-01-01",
    "01-01-2025",
    "1900-01-01",
    "2030-01-01",
    "00:00",
    "23:59",
)

REALISTIC_MINUTES = (0, 15, 30, 45)

# --- Cache ---
# Rounds dropped when the owner round of a match cannot be discovered.
FALLBACK_INVALIDATION_ROUNDS = (1, 2, 3, 4, 5)

# --- Config keys ---
CURRENT_ROUND_KEY = "current_matchday"

# --- Jobs ---
JOB_UPDATE_CURRENT_ROUND = "update-current-matchday"
JOB_CHECK_MATCHES_TODAY = "check-matches-today"
JOB_CLEANUP_LEDGER = "cleanup-audit-logs"
JOB_POINTS_SWEEP = "process-points-dynamic"
JOB_ACTIVATE_SWEEP = "activate-points-sweep"
JOB_DEACTIVATE_SWEEP = "deactivate-points-sweep"

# APScheduler id of the dynamic job (only registered while active)
SWEEP_JOB_ID = "process-points-every-5min"

UPDATE_ROUND_CRON = {"hour": "6,18", "minute": "0"}
CHECK_MATCHES_CRON = {"hour": "11", "minute": "0"}
CLEANUP_LEDGER_CRON = {"day_of_week": "sun", "hour": "2", "minute": "0"}
SWEEP_CRON = {"hour": "0-1,15-23", "minute": "*/5"}

# Sweep window in local wall-clock time: 15:00 -> 01:00 (crosses midnight)
SWEEP_WINDOW_START = (15, 0)
SWEEP_WINDOW_END = (1, 0)

LEDGER_RETENTION_DAYS = 30
