"""
Reference resolution: turn "movies like X (2015)" into a catalog item.

Extraction is pure pattern matching. Resolution queries the catalog for
movies and then series, scores every candidate on title similarity, year
closeness and a small popularity tiebreak, and returns the best match with
a coarse confidence tag plus the ranked alternatives.
"""

from __future__ import annotations

import re
import logging
from dataclasses import dataclass, field
from datetime import datetime

from .catalog import CandidateItem, CatalogError, CatalogGateway
from .config import (
    MIN_REFERENCE_YEAR,
    MAX_YEAR_LOOKAHEAD,
    MIN_TITLE_LENGTH,
    RESOLVER_TIER_POINTS,
    RESOLVER_FUZZY_SIMILARITY,
    RESOLVER_MIN_SCORE,
    RESOLVER_STRONG_SCORE,
    RESOLVER_YEAR_BONUS,
    RESOLVER_POPULARITY_BONUS,
    RESOLVER_VOTE_BONUS,
)
from .utils import main_title, normalize_title, title_tokens, token_similarity

logger = logging.getLogger(__name__)

# Ordered: the first pattern that matches wins
_REFERENCE_PATTERNS = [
    re.compile(r"\b(?:movies?|films?|shows?|series)\s+(?:similar\s+to|like)\s+(.+)$", re.IGNORECASE),
    re.compile(r"\bsimilar\s+to\s+(.+)$", re.IGNORECASE),
    re.compile(r"\bmore\s+like\s+(.+)$", re.IGNORECASE),
    re.compile(r"\bsomething\s+like\s+(.+)$", re.IGNORECASE),
    re.compile(r"\brecommend\b.*?\blike\s+(.+)$", re.IGNORECASE),
    re.compile(r"\bif\s+i\s+(?:liked|loved|enjoyed)\s+(.+)$", re.IGNORECASE),
    re.compile(r"\bfans?\s+of\s+(.+)$", re.IGNORECASE),
    re.compile(r"\blike\s+(.+)$", re.IGNORECASE),
]

_YEAR_PATTERNS = [
    re.compile(r"^(?P<title>.+?)\s*\((?P<year>\d{4})\)$"),
    re.compile(r"^(?P<title>.+?)\s*\[(?P<year>\d{4})\]$"),
    re.compile(r"^(?P<title>.+?)\s*,\s*(?P<year>\d{4})$"),
    re.compile(r"^(?P<title>.+?)\s+(?P<year>\d{4})$"),
]

_TRAILING_PUNCTUATION = re.compile(r"[\s,.!?;:]+$")
_TRAILING_MEDIA_WORD = re.compile(r"\s+(?:movies?|films?|shows?|series)$", re.IGNORECASE)
_QUOTES = "'\"‘’“”"

# Coarse confidence tag per title tier
_TIER_CONFIDENCE = {
    "exact": "exact",
    "prefix": "high",
    "substring": "medium",
    "fuzzy": "low",
    "overlap": "low",
}


@dataclass(frozen=True)
class ExtractedReference:
    title: str
    year: int | None = None

    @property
    def has_year(self) -> bool:
        return self.year is not None


@dataclass(frozen=True)
class CandidateScore:
    item: CandidateItem
    score: int
    tier: str | None
    year_matched: bool


@dataclass
class ReferenceMatch:
    """Outcome of resolving a title against the catalog."""

    item: CandidateItem | None
    media_type: str = "movie"
    confidence: str = "low"
    score: int = 0
    candidates: list[CandidateItem] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.item is not None

    @property
    def alternatives(self) -> list[CandidateItem]:
        if self.item is None:
            return list(self.candidates)
        return [c for c in self.candidates if c.key != self.item.key]


def _clean_title(raw: str) -> str:
    title = raw.strip().strip(_QUOTES).strip()
    title = _TRAILING_PUNCTUATION.sub("", title)
    title = _TRAILING_MEDIA_WORD.sub("", title)
    return title.strip().strip(_QUOTES).strip()


def _split_year(title: str, current_year: int) -> tuple[str, int | None]:
    for pattern in _YEAR_PATTERNS:
        match = pattern.match(title)
        if not match:
            continue
        year = int(match.group("year"))
        if MIN_REFERENCE_YEAR <= year <= current_year + MAX_YEAR_LOOKAHEAD:
            return match.group("title"), year
        logger.debug(f"Ignoring out-of-range year {year} in '{title}'")
        return title, None
    return title, None


def extract_reference(text: str, current_year: int | None = None) -> ExtractedReference | None:
    """
    Extract a reference title (and optional year) from free text.

    Args:
        text: User message, e.g. "any films like Baahubali (2015)?"
        current_year: Upper bound anchor for accepted years (defaults to today)

    Returns:
        ExtractedReference, or None when no phrase pattern matches
    """
    if not text:
        return None

    current_year = current_year or datetime.now().year
    stripped = text.strip()

    for pattern in _REFERENCE_PATTERNS:
        match = pattern.search(stripped)
        if not match:
            continue

        title = _clean_title(match.group(1))
        title, year = _split_year(title, current_year)
        title = _clean_title(title)

        if len(title) < MIN_TITLE_LENGTH:
            logger.debug(f"Reference candidate too short in '{text}'")
            return None
        return ExtractedReference(title=title, year=year)

    return None


def title_tier(item: CandidateItem, title: str) -> str | None:
    """Classify how closely a candidate's title matches the query."""
    query = title.lower().strip()
    query_norm = normalize_title(title)
    names = [n for n in (item.title, item.original_title) if n]

    for name in names:
        lowered = name.lower().strip()
        if query == lowered or query == main_title(name):
            return "exact"
        if query_norm and (query_norm == normalize_title(name) or query_norm == normalize_title(main_title(name))):
            return "exact"

    for name in names:
        name_norm = normalize_title(name)
        if query_norm and name_norm.startswith(query_norm):
            return "prefix"

    for name in names:
        name_norm = normalize_title(name)
        if query_norm and name_norm and (query_norm in name_norm or name_norm in query_norm):
            return "substring"

    best_similarity = max((token_similarity(title, n) for n in names), default=0.0)
    if best_similarity >= RESOLVER_FUZZY_SIMILARITY:
        return "fuzzy"

    query_tokens = title_tokens(title)
    if any(query_tokens & title_tokens(n) for n in names):
        return "overlap"
    return None


def _year_bonus(item: CandidateItem, year: int | None) -> int:
    if year is None or item.release_year is None:
        return 0
    diff = abs(item.release_year - year)
    for max_diff, points in RESOLVER_YEAR_BONUS:
        if diff <= max_diff:
            return points
    return 0


def _tiered_bonus(value: float, tiers) -> int:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return 0


def score_candidate(item: CandidateItem, title: str, year: int | None = None) -> CandidateScore:
    tier = title_tier(item, title)
    score = RESOLVER_TIER_POINTS[tier] if tier else 0
    year_points = _year_bonus(item, year)
    score += year_points
    score += _tiered_bonus(item.popularity, RESOLVER_POPULARITY_BONUS)
    score += _tiered_bonus(item.vote_count, RESOLVER_VOTE_BONUS)
    return CandidateScore(
        item=item,
        score=score,
        tier=tier,
        year_matched=year is not None and item.release_year == year,
    )


def rank_candidates(items: list[CandidateItem], title: str, year: int | None = None) -> list[CandidateScore]:
    """Score and sort candidates best first; ties keep catalog order."""
    scored = [score_candidate(item, title, year) for item in items]
    return sorted(scored, key=lambda s: s.score, reverse=True)


def _confidence_tag(best: CandidateScore) -> str:
    tag = _TIER_CONFIDENCE.get(best.tier, "low")
    if best.year_matched and tag in ("medium", "low"):
        return "high"
    return tag


def _search(gateway: CatalogGateway, title: str, media_type: str) -> list[CandidateItem]:
    try:
        return list(gateway.search_titles(title, media_type=media_type, page=1).results)
    except CatalogError as e:
        logger.error(f"Catalog search failed for '{title}' ({media_type}): {e}")
        return []


def _match_from(ranked: list[CandidateScore], media_type: str) -> ReferenceMatch:
    best = ranked[0]
    return ReferenceMatch(
        item=best.item,
        media_type=media_type,
        confidence=_confidence_tag(best),
        score=best.score,
        candidates=[s.item for s in ranked],
    )


def find_reference_item(
    gateway: CatalogGateway,
    title: str,
    year: int | None = None,
    prefer_movies: bool = True,
) -> ReferenceMatch:
    """
    Resolve a title to the best catalog item.

    The preferred media type is searched first and kept unless none of its
    matches is strong (exact or prefix title tier), in which case the other
    type wins only if its best match scores higher. When every candidate
    scores at or below the minimum, the first raw search result is returned
    with ``low`` confidence so the caller can still make progress.
    """
    order = ("movie", "tv") if prefer_movies else ("tv", "movie")

    primary_raw = _search(gateway, title, order[0])
    primary_ranked = rank_candidates(primary_raw, title, year)
    primary_best = primary_ranked[0] if primary_ranked and primary_ranked[0].score > RESOLVER_MIN_SCORE else None

    if primary_best and RESOLVER_TIER_POINTS.get(primary_best.tier, 0) >= RESOLVER_STRONG_SCORE:
        return _match_from(primary_ranked, order[0])

    secondary_raw = _search(gateway, title, order[1])
    secondary_ranked = rank_candidates(secondary_raw, title, year)
    secondary_best = (
        secondary_ranked[0] if secondary_ranked and secondary_ranked[0].score > RESOLVER_MIN_SCORE else None
    )

    if secondary_best and (primary_best is None or secondary_best.score > primary_best.score):
        return _match_from(secondary_ranked, order[1])
    if primary_best:
        return _match_from(primary_ranked, order[0])

    # Nothing scored above the floor: fall back to the top raw result
    for raw, ranked, media_type in ((primary_raw, primary_ranked, order[0]), (secondary_raw, secondary_ranked, order[1])):
        if raw:
            logger.warning(f"No confident match for '{title}'; falling back to '{raw[0].title}'")
            top = next(s for s in ranked if s.item is raw[0])
            return ReferenceMatch(
                item=raw[0],
                media_type=media_type,
                confidence="low",
                score=top.score,
                candidates=[raw[0]] + [s.item for s in ranked if s.item is not raw[0]],
            )

    logger.info(f"No catalog results for '{title}'")
    return ReferenceMatch(item=None, media_type=order[0], confidence="low")
