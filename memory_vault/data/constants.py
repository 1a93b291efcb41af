"""
Constants and configuration for the memory vault core.
"""

# ==================== Persisted Layout ====================
# Section keys of the vault object stored on the conversation
MEMORIES_KEY = "memories"
CHARACTERS_KEY = "characters"
RELATIONSHIPS_KEY = "relationships"
SECRETS_KEY = "secrets"
LOCATIONS_KEY = "locations"
PROMISES_KEY = "promises"
GOALS_KEY = "goals"
SKILLS_KEY = "skills"
LAST_PROCESSED_KEY = "last_processed_message_id"

# ==================== Memory Limits ====================
MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 5
DEFAULT_IMPORTANCE = 3
MAX_EMOTION_HISTORY = 50  # Per character, oldest evicted first
MAX_EVENTS_PER_MESSAGE = 1000  # sequence = min(message_ids) * 1000 + index

# ==================== Character Defaults ====================
DEFAULT_EMOTION = "neutral"
DEFAULT_EMOTION_INTENSITY = 5
MAX_EMOTION_INTENSITY = 10

# ==================== Relationship Defaults ====================
DIMENSION_MIN = 0
DIMENSION_MAX = 10
DEFAULT_RELATIONSHIP_TYPE = "acquaintance"
# Starting value of every dimension for a newly seen pair
RELATIONSHIP_DEFAULTS = {
    "trust": 5,
    "tension": 0,
    "respect": 5,
    "attraction": 0,
    "fear": 0,
    "loyalty": 5,
    "familiarity": 1,
}
RELATIONSHIP_DIMENSIONS = tuple(RELATIONSHIP_DEFAULTS)

# ==================== Retrieval ====================
KEYWORD_MIN_TOKEN_LENGTH = 3
KEYWORD_STOPWORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can", "had",
        "her", "was", "one", "our", "out", "has", "him", "his", "how", "its", "let",
        "she", "too", "use", "that", "with", "have", "this", "will", "your", "from",
        "they", "them", "then", "than", "been", "were", "what", "when", "where",
        "which", "while", "into", "just", "like", "some", "there", "their", "would",
        "could", "should", "about", "after", "before", "being", "over", "very",
    }
)

# ==================== Branches / Auto-hide ====================
BRANCH_SETTLE_DELAY_SECONDS = 2.5
DEFAULT_AUTO_HIDE_THRESHOLD = 50
