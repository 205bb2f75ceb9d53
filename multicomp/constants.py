"""Constants used across multicomp.

This module defines shared constants to ensure consistency between the
parser, the observers and the reporting surface.
"""

# Observation block delimiters
OBS_OPEN_TAG = "<obs>"
OBS_CLOSE_TAG = "</obs>"

# Clamping ranges for self-reported numbers
SIMILARITY_RANGE = (0.0, 1.0)
SENTIMENT_RANGE = (-1.0, 1.0)
COMPLEXITY_RANGE = (1.0, 5.0)

# Chunk heuristic: ~4 chars per token, ~300 tokens per memory chunk
CHARS_PER_TOKEN = 4
TOKENS_PER_CHUNK = 300

# Enumerated classes (first entry is the default where one applies)
SCAR_TYPES = ("user_correction", "tool_error", "self_catch", "rejection")
SCAR_CATEGORIES = (
    "overconfidence",
    "wrong_framing",
    "scope_blindness",
    "assumption",
    "pattern_mismatch",
    "communication",
)
COMPETENCE_SIGNALS = ("accept", "modify", "reject", "defer", "rework")
INITIATIVES = ("user", "agent")
SESSION_CONTINUITIES = ("continuation", "new_topic", "new_session")
INTERACTION_TYPES = ("routine", "creative", "problem_solving", "social")
CONTEXT_PRESSURES = ("low", "medium", "high")

# Pattern cache
PATTERN_MAX_EXAMPLES = 10
PATTERN_CONFIDENCE_CAP = 0.99
PATTERN_CONFIDENCE_PRIOR = 10  # base = n / (n + PRIOR)
PATTERN_STREAK_CAP = 5
PATTERN_ACTIVE_THRESHOLD = 0.1
PATTERN_HIGH_THRESHOLD = 0.85

# Scar registry
SCAR_CONFIDENCE_FLOOR = 0.3
SCAR_CONFIDENCE_CAP = 0.9
SCAR_CONFIDENCE_STEP = 0.15
SCAR_LOG_HEADER = "# Scar Observations\n\n"

# Storage layout, relative to the workspace root
PATTERN_CACHE_PATH = ("patterns", "cache.json")
SCAR_STORE_PATH = ("scars", "observations.json")
SCAR_LOG_PATH = ("scars", "observation-log.md")
COMPETENCE_STORE_PATH = ("analytics", "competence", "signals.json")
GRADIENT_LOG_PATH = ("analytics", "gradient-signals.jsonl")
MEMORY_STATS_PATH = ("analytics", "memory-stats.json")

# Workspace resolution
WORKSPACE_ENV = "MULTICOMP_WORKSPACE"
DEFAULT_WORKSPACE = "~/.openclaw/workspace"
CONFIG_FILENAME = "multicomp.yml"
