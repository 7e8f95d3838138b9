"""
Confidence scoring for reference resolution.

Five independent factors are summed into a 0-100 score:

    title match   0-40   exact / normalized / partial / fuzzy
    year match    0-20   neutral credit when the user gave no year
    popularity    0-20   blockbuster / popular / known / obscure
    uniqueness    0-10   fewer strong alternatives is better
    relevance     0-10   popular-language bonus

The score maps to a discrete level, and each level carries a fixed
behavior contract telling the caller whether to recommend, confirm,
ask the user to disambiguate, or reject.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .catalog import CandidateItem
from .config import (
    CONFIDENCE_THRESHOLDS,
    POPULARITY_THRESHOLDS,
    OBSCURE_POPULARITY_POINTS,
    STRONG_ALTERNATIVE_MIN_VOTES,
    STRONG_ALTERNATIVE_VOTE_RATIO,
    AMBIGUOUS_ALTERNATIVE_COUNT,
    MAX_CLARIFY_ALTERNATIVES,
    POPULAR_LANGUAGES,
)
from .utils import main_title, normalize_title, token_similarity

logger = logging.getLogger(__name__)


class ConfidenceLevel(Enum):
    EXACT = "exact"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    AMBIGUOUS = "ambiguous"


_DISPLAY_LABELS = {
    ConfidenceLevel.EXACT: "✓ Matched exactly",
    ConfidenceLevel.HIGH: "✓ Matched with high confidence",
    ConfidenceLevel.MEDIUM: "○ Matched with moderate confidence",
    ConfidenceLevel.LOW: "? Low confidence match",
    ConfidenceLevel.AMBIGUOUS: "? Multiple possible matches",
}

_TITLE_MATCH_DESCRIPTIONS = {
    "exact": 'Exact title match for "{title}"',
    "normalized": 'Title matched "{title}"',
    "partial": 'Partial title match found: "{title}"',
    "fuzzy": 'Best fuzzy match: "{title}"',
}


@dataclass
class ConfidenceFactors:
    title_match: int = 0
    title_match_type: str = "fuzzy"  # exact | normalized | partial | fuzzy
    year_match: int = 0
    year_match_type: str = "none"  # exact | close | none | not-provided
    popularity: int = 0
    popularity_tier: str = "obscure"
    uniqueness: int = 0
    alternative_count: int = 0
    relevance: int = 0
    # Strong alternatives that carry the same title as the best match
    shared_title_count: int = 0

    @property
    def total(self) -> int:
        return self.title_match + self.year_match + self.popularity + self.uniqueness + self.relevance


@dataclass
class AlternativeMatch:
    id: int
    title: str
    year: int | None
    language: str
    media_type: str
    confidence: int  # Rough vote-based weight, votes / 100


@dataclass
class ConfidenceBehavior:
    should_proceed: bool
    should_clarify: bool
    strictness: str  # strict | moderate | flexible
    show_indicator: bool
    action: str  # recommend | confirm | clarify | reject
    message: str | None = None
    alternatives: list[AlternativeMatch] = field(default_factory=list)


@dataclass
class MatchContext:
    extracted_title: str
    extracted_year: int | None = None
    candidates: list[CandidateItem] = field(default_factory=list)
    best_match: CandidateItem | None = None

    @property
    def year_provided(self) -> bool:
        return self.extracted_year is not None


@dataclass
class ConfidenceScore:
    level: ConfidenceLevel
    score: int
    factors: ConfidenceFactors
    behavior: ConfidenceBehavior
    explanation: str
    display_label: str


def _year_label(item: CandidateItem, missing: str = "?") -> str:
    return str(item.release_year) if item.release_year else missing


def title_match(query: str, match: CandidateItem) -> tuple[int, str]:
    """Score title similarity between the extracted title and a candidate (0-40)."""
    query_lower = query.lower().strip()
    title_lower = match.title.lower().strip()
    original_lower = (match.original_title or match.title).lower().strip()

    if query_lower in (title_lower, original_lower) or query_lower == main_title(match.title):
        return 40, "exact"

    normalized_query = normalize_title(query_lower)
    if normalized_query in (normalize_title(title_lower), normalize_title(original_lower)):
        return 38, "normalized"

    if query_lower and (query_lower in title_lower or title_lower in query_lower):
        ratio = min(len(query_lower), len(title_lower)) / max(len(query_lower), len(title_lower))
        return round(25 + ratio * 10), "partial"

    similarity = token_similarity(query_lower, title_lower)
    if similarity > 0.7:
        return round(similarity * 30), "fuzzy"
    return round(similarity * 20), "fuzzy"


def year_match(query_year: int | None, match: CandidateItem) -> tuple[int, str]:
    if query_year is None:
        return 10, "not-provided"
    if match.release_year is None:
        return 5, "none"

    diff = abs(match.release_year - query_year)
    if diff == 0:
        return 20, "exact"
    if diff == 1:
        return 15, "close"
    if diff <= 3:
        return 10, "close"
    return 3, "none"


def popularity_match(match: CandidateItem) -> tuple[int, str]:
    for tier, (min_votes, min_popularity, points) in POPULARITY_THRESHOLDS.items():
        if match.vote_count >= min_votes or match.popularity >= min_popularity:
            return points, tier
    return OBSCURE_POPULARITY_POINTS, "obscure"


def strong_alternatives(candidates: list[CandidateItem], best: CandidateItem) -> list[CandidateItem]:
    """Other candidates the user could reasonably have meant."""
    return [
        c for c in candidates
        if c.key != best.key
        and c.vote_count >= STRONG_ALTERNATIVE_MIN_VOTES
        and c.vote_count >= best.vote_count * STRONG_ALTERNATIVE_VOTE_RATIO
    ]


def uniqueness_match(alternative_count: int) -> int:
    if alternative_count == 0:
        return 10
    if alternative_count == 1:
        return 7
    if alternative_count <= 3:
        return 4
    return 2


def relevance_match(match: CandidateItem) -> int:
    return 10 if match.original_language in POPULAR_LANGUAGES else 6


def compute_factors(context: MatchContext, match: CandidateItem) -> ConfidenceFactors:
    title_score, title_type = title_match(context.extracted_title, match)
    year_score, year_type = year_match(context.extracted_year, match)
    popularity_score, tier = popularity_match(match)
    alternatives = strong_alternatives(context.candidates, match)
    shared = [
        c for c in alternatives
        if normalize_title(main_title(c.title)) == normalize_title(main_title(match.title))
    ]

    return ConfidenceFactors(
        title_match=title_score,
        title_match_type=title_type,
        year_match=year_score,
        year_match_type=year_type,
        popularity=popularity_score,
        popularity_tier=tier,
        uniqueness=uniqueness_match(len(alternatives)),
        alternative_count=len(alternatives),
        relevance=relevance_match(match),
        shared_title_count=len(shared),
    )


def determine_level(score: int, factors: ConfidenceFactors) -> ConfidenceLevel:
    if factors.title_match_type == "exact" and factors.year_match_type == "exact":
        return ConfidenceLevel.EXACT

    # An exact title only disambiguates when no strong alternative shares it
    distinguishing_title = factors.title_match_type == "exact" and factors.shared_title_count == 0
    if factors.alternative_count >= AMBIGUOUS_ALTERNATIVE_COUNT and not distinguishing_title:
        return ConfidenceLevel.AMBIGUOUS

    for level in (ConfidenceLevel.EXACT, ConfidenceLevel.HIGH, ConfidenceLevel.MEDIUM, ConfidenceLevel.LOW):
        if score >= CONFIDENCE_THRESHOLDS[level.value]:
            return level
    return ConfidenceLevel.AMBIGUOUS


def build_alternatives(candidates: list[CandidateItem], best: CandidateItem | None) -> list[AlternativeMatch]:
    others = [c for c in candidates if best is None or c.key != best.key]
    return [
        AlternativeMatch(
            id=c.id,
            title=c.title,
            year=c.release_year,
            language=c.original_language,
            media_type=c.media_type,
            confidence=round(c.vote_count / 100),
        )
        for c in others[:MAX_CLARIFY_ALTERNATIVES]
    ]


def _medium_note(match: CandidateItem) -> str:
    year = f" ({match.release_year})" if match.release_year else ""
    return (
        f"I'm showing recommendations based on **{match.title}{year}**. "
        "Let me know if you meant a different movie!"
    )


def _low_question(match: CandidateItem) -> str:
    return (
        f"Did you mean **{match.title}** ({_year_label(match, 'unknown year')})? "
        "If not, please provide more details like the release year or director."
    )


def _ambiguous_question(candidates: list[CandidateItem], query: str) -> str:
    top = candidates[:MAX_CLARIFY_ALTERNATIVES]
    options = [
        f"{i}. **{c.title}** ({_year_label(c)}) [{c.original_language.upper()}]"
        for i, c in enumerate(top, start=1)
    ]
    return (
        f'I found multiple movies matching "{query}". Which one did you mean?\n\n'
        + "\n".join(options)
        + "\n\nJust reply with the number or provide the release year for clarity."
    )


def determine_behavior(level: ConfidenceLevel, context: MatchContext, match: CandidateItem) -> ConfidenceBehavior:
    if level is ConfidenceLevel.EXACT:
        return ConfidenceBehavior(
            should_proceed=True, should_clarify=False, strictness="strict",
            show_indicator=False, action="recommend",
        )
    if level is ConfidenceLevel.HIGH:
        return ConfidenceBehavior(
            should_proceed=True, should_clarify=False, strictness="strict",
            show_indicator=True, action="recommend",
        )
    if level is ConfidenceLevel.MEDIUM:
        return ConfidenceBehavior(
            should_proceed=True, should_clarify=False, strictness="moderate",
            show_indicator=True, action="recommend", message=_medium_note(match),
        )
    if level is ConfidenceLevel.LOW:
        return ConfidenceBehavior(
            should_proceed=True, should_clarify=True, strictness="flexible",
            show_indicator=True, action="confirm", message=_low_question(match),
            alternatives=build_alternatives(context.candidates, match),
        )
    return ConfidenceBehavior(
        should_proceed=False, should_clarify=True, strictness="flexible",
        show_indicator=True, action="clarify",
        message=_ambiguous_question(context.candidates, context.extracted_title),
        alternatives=build_alternatives(context.candidates, match),
    )


def explain(factors: ConfidenceFactors, match: CandidateItem, year_provided: bool) -> str:
    parts = [_TITLE_MATCH_DESCRIPTIONS[factors.title_match_type].format(title=match.title)]

    if year_provided and factors.year_match_type == "exact":
        parts.append("year confirmed")
    elif year_provided and factors.year_match_type == "close":
        parts.append("year approximately matches")

    if factors.popularity_tier == "blockbuster":
        parts.append("widely recognized title")

    if factors.alternative_count > 0:
        suffix = "es" if factors.alternative_count > 1 else ""
        parts.append(f"{factors.alternative_count} other possible match{suffix}")

    return ", ".join(parts)


def no_match_score(query: str) -> ConfidenceScore:
    return ConfidenceScore(
        level=ConfidenceLevel.AMBIGUOUS,
        score=0,
        factors=ConfidenceFactors(),
        behavior=ConfidenceBehavior(
            should_proceed=False,
            should_clarify=True,
            strictness="flexible",
            show_indicator=True,
            action="reject",
            message=(
                f'I couldn\'t find any movies or shows matching "{query}". '
                "Could you check the spelling or provide more details?"
            ),
        ),
        explanation="No matches found",
        display_label="✗ No match found",
    )


def score_confidence(
    candidates: list[CandidateItem],
    best_match: CandidateItem | None,
    context: MatchContext,
) -> ConfidenceScore:
    """
    Score how confidently a reference was resolved.

    Args:
        candidates: Every candidate the resolver considered, best first
        best_match: The resolver's chosen item (None when nothing was found)
        context: Extracted title and year

    Returns:
        ConfidenceScore whose ``score`` is always the plain sum of its factors
    """
    if best_match is None or not candidates:
        return no_match_score(context.extracted_title)

    if context.candidates is not candidates or context.best_match is not best_match:
        context = MatchContext(
            extracted_title=context.extracted_title,
            extracted_year=context.extracted_year,
            candidates=list(candidates),
            best_match=best_match,
        )

    factors = compute_factors(context, best_match)
    score = factors.total
    level = determine_level(score, factors)
    logger.debug(
        f"Confidence for '{context.extracted_title}' -> '{best_match.title}': "
        f"{score} ({level.value}), alternatives={factors.alternative_count}"
    )

    return ConfidenceScore(
        level=level,
        score=score,
        factors=factors,
        behavior=determine_behavior(level, context, best_match),
        explanation=explain(factors, best_match, context.year_provided),
        display_label=_DISPLAY_LABELS[level],
    )


def should_proceed(confidence: ConfidenceScore) -> bool:
    return confidence.behavior.should_proceed


def clarification_message(confidence: ConfidenceScore) -> str | None:
    if confidence.behavior.should_clarify and confidence.behavior.message:
        return confidence.behavior.message
    return None


def recommendation_strictness(confidence: ConfidenceScore) -> str:
    return confidence.behavior.strictness
