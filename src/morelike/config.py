"""
Configuration constants for the morelike recommender core.

This module centralizes all magic numbers and configurable parameters.
Values can be overridden via environment variables.
"""
import os
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def _get_float_env(key: str, default: float, min_val: float = 0, max_val: float | None = None) -> float:
    """
    Safely parse float from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value
        max_val: Maximum allowed value (None for unbounded)

    Returns:
        Validated float value
    """
    try:
        val = float(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        if max_val is not None and val > max_val:
            logger.warning(f"{key}={val} is above maximum {max_val}, using {max_val}")
            return max_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


def _get_int_env(key: str, default: int, min_val: int = 1) -> int:
    """
    Safely parse integer from environment variable with validation.

    Args:
        key: Environment variable name
        default: Default value if not set or invalid
        min_val: Minimum allowed value

    Returns:
        Validated integer value
    """
    try:
        val = int(os.environ.get(key, default))
        if val < min_val:
            logger.warning(f"{key}={val} is below minimum {min_val}, using {min_val}")
            return min_val
        return val
    except ValueError:
        logger.warning(f"Invalid {key}='{os.environ.get(key)}', using default {default}")
        return default


# Storage
STATE_PATH = Path(os.environ.get("MORELIKE_STATE", "data/learning_state.json"))
KNOWN_TITLES_PATH = Path(
    os.environ.get("MORELIKE_KNOWN_TITLES", Path(__file__).parent / "data" / "known_titles.json")
)

# Catalog (TMDB) client
TMDB_API_KEY = os.environ.get("TMDB_API_KEY")
TMDB_BASE_URL = os.environ.get("MORELIKE_TMDB_URL", "https://api.themoviedb.org/3")
HTTP_TIMEOUT = _get_float_env("MORELIKE_HTTP_TIMEOUT", 15.0, min_val=1.0)
MAX_HTTP_RETRIES = _get_int_env("MORELIKE_MAX_RETRIES", 3, min_val=1)
RETRY_INITIAL_DELAY = _get_float_env("MORELIKE_RETRY_DELAY", 1.0, min_val=0.0)
MAX_429_RETRY_SECONDS = 60  # Maximum total time to wait for 429 responses
DEFAULT_RETRY_AFTER = 5  # Default wait time if Retry-After header missing

# Reference extraction
MIN_REFERENCE_YEAR = 1900
MAX_YEAR_LOOKAHEAD = 2  # Accept announced titles up to two years out
MIN_TITLE_LENGTH = 2

# Resolver scoring: title-similarity tiers
RESOLVER_TIER_POINTS = {
    "exact": 100,
    "prefix": 80,
    "substring": 60,
    "fuzzy": 40,
    "overlap": 20,
}
RESOLVER_FUZZY_SIMILARITY = 0.5  # Token similarity required for the fuzzy tier
RESOLVER_MIN_SCORE = 20  # Best match must score strictly above this
RESOLVER_STRONG_SCORE = 80  # Movie match at or above this beats any series match
# Year-closeness bonus: (max difference, points)
RESOLVER_YEAR_BONUS = ((0, 30), (1, 15), (3, 5))
# Disambiguation bonuses: (threshold, points), highest first
RESOLVER_POPULARITY_BONUS = ((50.0, 5), (10.0, 2))
RESOLVER_VOTE_BONUS = ((1000, 5), (100, 2))

# Confidence scoring
CONFIDENCE_THRESHOLDS = {
    "exact": 90,
    "high": 75,
    "medium": 55,
    "low": 35,
}
# Popularity tiers: (min vote count, min popularity, points)
POPULARITY_THRESHOLDS = {
    "blockbuster": (10000, 100.0, 20),
    "popular": (3000, 50.0, 16),
    "known": (500, 20.0, 12),
}
OBSCURE_POPULARITY_POINTS = 6
STRONG_ALTERNATIVE_MIN_VOTES = 100
STRONG_ALTERNATIVE_VOTE_RATIO = 0.3
AMBIGUOUS_ALTERNATIVE_COUNT = 3
MAX_CLARIFY_ALTERNATIVES = 4
POPULAR_LANGUAGES = frozenset({"en", "hi", "ko", "ja", "es", "fr", "te", "ta"})

# Preference learning defaults
DEFAULT_MAX_WEIGHT = _get_float_env("MORELIKE_MAX_WEIGHT", 0.8, min_val=0.01)
DEFAULT_LEARNING_RATE = _get_float_env("MORELIKE_LEARNING_RATE", 0.15, min_val=0.0)
DEFAULT_DECAY_FACTOR = _get_float_env("MORELIKE_DECAY_FACTOR", 0.95, min_val=0.0, max_val=1.0)
DEFAULT_MIN_FEEDBACK = _get_int_env("MORELIKE_MIN_FEEDBACK", 3, min_val=0)
DEFAULT_PREFERENCE_INFLUENCE = _get_float_env("MORELIKE_PREFERENCE_INFLUENCE", 0.25, min_val=0.0, max_val=1.0)
DEFAULT_EXPLORATION_FACTOR = _get_float_env("MORELIKE_EXPLORATION_FACTOR", 0.15, min_val=0.0, max_val=1.0)
DECAY_PERIOD_DAYS = 7.0

# Preference summary thresholds
SUMMARY_GENRE_THRESHOLD = 0.3
SUMMARY_LANGUAGE_THRESHOLD = 0.3
SUMMARY_ERA_THRESHOLD = 0.2

# Personalization
ATTRIBUTE_MULTIPLIERS = {
    "genre": 1.0,
    "language": 1.5,
    "industry": 1.2,
    "era": 1.0,
    "theme": 0.5,
}
ADJUSTMENT_BAND = 30.0  # Preference adjustment spans [-30, 30] before influence
EXPLANATION_WEIGHT_THRESHOLD = 0.3
HIGH_CONFIDENCE_FEEDBACK = 10
MEDIUM_CONFIDENCE_FEEDBACK = 5

# Exploration and diversity
EXPLORATION_MIN_LIKES = 3
EXPLORATION_POINTS = {"genre": 3.0, "language": 3.0, "era": 2.0}
MAX_EXPLORATION_BONUS = 10.0
DIVERSITY_MIN_LIKES = 5
DIVERSITY_MIN_ITEMS = 5  # Diversity pass runs only for lists longer than this
DIVERSITY_TOP_COUNT = 10
DIVERSITY_INSERT_POSITION = 5
DIVERSITY_MIN_BONUS = 2.0

# Cultural filters
REGIONAL_RELAX_MASS_APPEAL = 85  # Regional references at/above this admit related languages
