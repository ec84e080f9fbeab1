"""
Constants for multi-call story generation.

This module centralizes the tunable policy values used when planning chunks,
calling the Gemini API, rotating credentials and reporting statistics.
"""

# Gemini API
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash-exp"
GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
# Key travels in a header so it never appears in request URLs
GEMINI_API_KEY_HEADER = "x-goog-api-key"

# Generation config sent with every call
DEFAULT_TEMPERATURE = 0.95
DEFAULT_TOP_P = 0.95
DEFAULT_TOP_K = 64
GEMINI_MAX_OUTPUT_TOKENS = 65536

# Credential slots: GEMINI_KEY_1 .. GEMINI_KEY_10
CREDENTIAL_ENV_PREFIX = "GEMINI_KEY_"
CREDENTIAL_SLOTS = 10

# Suspension applied to a key after a 429 response (milliseconds)
KEY_COOLDOWN_MS = 60000

# Call executor policy
REQUEST_TIMEOUT_SECONDS = 120
MAX_ATTEMPTS = 3
# Delay before retry n is BACKOFF_BASE_SECONDS * n
BACKOFF_BASE_SECONDS = 2.0

# Chunk planning
# Per-call output ceiling in characters. A longer target truncates the reply
# mid-scene and breaks the next continuation.
MAX_CHARS_PER_CALL = 35000

# (upper bound of requested length, number of chunks), ascending.
# Requests above the last bound fall back to ceil(length / MAX_CHARS_PER_CALL).
CHUNK_BANDS = (
    (4000, 1),
    (30000, 2),
    (105000, 3),
)

DEFAULT_TARGET_LENGTH = 60000
MIN_TARGET_LENGTH = 1000
MAX_TARGET_LENGTH = 500000

# Prompt content
STYLE_EXAMPLE_MAX_CHARS = 5000
STYLE_EXAMPLE_MIN_CHARS = 500

# Context extraction
CONTEXT_CHARS = 1200
CONTEXT_LOOKAHEAD_CHARS = 200
TRACKED_NAMES_LIMIT = 5
TRACKED_NAME_MIN_OCCURRENCES = 2

# Final statistics
CHUNK_SEPARATOR = "\n\n"
# A story counts as having reached its target at 95% of the requested length
ACHIEVED_RATIO = 0.95
