"""spawnusher/constants.py — Defaults shared by the prober, scheduler and config."""

# ---------------------------------------------------------------------------
# Materials
# ---------------------------------------------------------------------------

AIR = "air"
"""Material name the host reports for an empty cell."""

IGNORE = "ignore"
"""Material name the host reports for a cell whose block is not loaded."""

# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

DEFAULT_BUBBLE_HEIGHT = 2
DEFAULT_RETRY_INTERVAL = 0.5  # seconds

MIN_Y = -31000
MAX_Y = 31000

STEP_UP_SOLID = 1  # walking out of solid ground
STEP_DOWN_AIR = 2  # falling through open air
STEP_UP_CRAMPED = 2  # foothold without headroom
