"""Utility functions and decorators for morelike."""

import re
import time
import logging
from functools import wraps
from typing import TypeVar, Callable

logger = logging.getLogger(__name__)

T = TypeVar('T')

_ARTICLES = frozenset({"the", "a", "an"})
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")
_SUBTITLE_SEPARATOR = re.compile(r"\s*:\s*|\s+-\s+")


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,),
    max_delay: float = 30.0,
):
    """
    Retry the wrapped call on the given exceptions, sleeping between attempts.

    The delay starts at ``initial_delay`` and is multiplied by
    ``backoff_factor`` after each failure, capped at ``max_delay``. The last
    exception is re-raised once ``max_retries`` attempts have failed.
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(f"{func.__name__}: giving up after {attempt} attempt(s): {e}")
                        raise
                    logger.warning(f"{func.__name__}: attempt {attempt}/{max_retries} failed ({e}); retrying in {delay:.1f}s")
                    time.sleep(delay)
                    delay = min(delay * backoff_factor, max_delay)
            raise RuntimeError(f"{func.__name__} called with max_retries={max_retries}")

        return wrapper
    return decorator


def normalize_title(title: str) -> str:
    """
    Lower-case a title, strip punctuation and drop English articles.

    "The Dark Knight!" and "dark knight" normalize to the same string.
    """
    cleaned = _NON_ALNUM.sub("", (title or "").lower())
    words = [w for w in _WHITESPACE.split(cleaned.strip()) if w and w not in _ARTICLES]
    return " ".join(words)


def main_title(title: str) -> str:
    """Return the part of a title before a subtitle separator ("Baahubali: The Beginning" -> "baahubali")."""
    lowered = (title or "").lower().strip()
    head = _SUBTITLE_SEPARATOR.split(lowered, maxsplit=1)[0]
    return head.strip()


def title_tokens(title: str) -> set[str]:
    normalized = normalize_title(title)
    return set(normalized.split()) if normalized else set()


def token_similarity(a: str, b: str) -> float:
    """Jaccard similarity of the normalized word sets of two titles (0.0-1.0)."""
    tokens_a = title_tokens(a)
    tokens_b = title_tokens(b)
    if not tokens_a or not tokens_b:
        return 0.0
    return len(tokens_a & tokens_b) / len(tokens_a | tokens_b)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
