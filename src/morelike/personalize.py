"""
Personalized re-ranking of recommendation candidates.

Reference similarity stays the primary signal: the averaged attribute
weight is rescaled so ``max_weight`` maps to ``ADJUSTMENT_BAND`` points,
clamped to that band after the per-attribute multipliers, and then
multiplied by ``preference_influence`` (0.25 by default). The exploration
bonus is capped at 10 and the final score at [0, 100].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from .config import (
    ATTRIBUTE_MULTIPLIERS,
    ADJUSTMENT_BAND,
    EXPLANATION_WEIGHT_THRESHOLD,
    HIGH_CONFIDENCE_FEEDBACK,
    MEDIUM_CONFIDENCE_FEEDBACK,
    EXPLORATION_MIN_LIKES,
    EXPLORATION_POINTS,
    MAX_EXPLORATION_BONUS,
    DIVERSITY_MIN_LIKES,
    DIVERSITY_MIN_ITEMS,
    DIVERSITY_TOP_COUNT,
    DIVERSITY_INSERT_POSITION,
    DIVERSITY_MIN_BONUS,
)
from .learning import MovieAttributes, PreferenceLearningState
from .utils import clamp

logger = logging.getLogger(__name__)


@dataclass
class PersonalizationScore:
    reference_score: float
    preference_adjustment: float
    exploration_bonus: float
    final_score: float
    confidence: str  # high | medium | low
    explanation: list[str] = field(default_factory=list)


@dataclass
class ScoredCandidate:
    """A recommendation candidate carried through ranking with its score."""

    item: Any
    attributes: MovieAttributes
    score: PersonalizationScore


def exploration_bonus(state: PreferenceLearningState, attributes: MovieAttributes) -> float:
    """Reward attributes the user has not rated yet; inactive below three likes."""
    if state.total_likes < EXPLORATION_MIN_LIKES:
        return 0.0

    weights = state.attribute_weights
    novelty = 0.0
    if any(g not in weights.genres for g in attributes.genre_ids):
        novelty += EXPLORATION_POINTS["genre"]
    if attributes.original_language not in weights.languages:
        novelty += EXPLORATION_POINTS["language"]
    if attributes.release_era not in weights.eras:
        novelty += EXPLORATION_POINTS["era"]

    return min(MAX_EXPLORATION_BONUS, novelty * state.config.exploration_factor)


def _feedback_confidence(total_feedback: int) -> str:
    if total_feedback >= HIGH_CONFIDENCE_FEEDBACK:
        return "high"
    if total_feedback >= MEDIUM_CONFIDENCE_FEEDBACK:
        return "medium"
    return "low"


def score_personalization(
    state: PreferenceLearningState,
    attributes: MovieAttributes,
    reference_score: float,
) -> PersonalizationScore:
    """
    Blend a reference-similarity score with learned preferences.

    Args:
        state: The user's learning state
        attributes: Candidate attributes
        reference_score: Externally computed similarity to the reference (0-100)

    Returns:
        PersonalizationScore with ``final_score`` clamped to [0, 100]
    """
    config = state.config
    bonus = exploration_bonus(state, attributes)

    if state.total_feedback < config.min_feedback_threshold:
        return PersonalizationScore(
            reference_score=reference_score,
            preference_adjustment=0.0,
            exploration_bonus=bonus,
            final_score=clamp(reference_score, 0.0, 100.0),
            confidence="low",
            explanation=["Not enough feedback yet for personalization"],
        )

    weights = state.attribute_weights
    explanation = []
    total = 0.0
    count = 0

    for genre_id in attributes.genre_ids:
        weight = weights.genres.get(genre_id)
        if weight is None:
            continue
        total += weight * ATTRIBUTE_MULTIPLIERS["genre"]
        count += 1
        if abs(weight) > EXPLANATION_WEIGHT_THRESHOLD:
            explanation.append("Liked genre" if weight > 0 else "Disliked genre")

    weight = weights.languages.get(attributes.original_language)
    if weight is not None:
        total += weight * ATTRIBUTE_MULTIPLIERS["language"]
        count += 1
        if abs(weight) > EXPLANATION_WEIGHT_THRESHOLD:
            explanation.append("Preferred language" if weight > 0 else "Less preferred language")

    weight = weights.industries.get(attributes.industry) if attributes.industry else None
    if weight is not None:
        total += weight * ATTRIBUTE_MULTIPLIERS["industry"]
        count += 1

    weight = weights.eras.get(attributes.release_era)
    if weight is not None:
        total += weight * ATTRIBUTE_MULTIPLIERS["era"]
        count += 1

    for theme in attributes.themes:
        weight = weights.themes.get(theme)
        if weight is not None:
            total += weight * ATTRIBUTE_MULTIPLIERS["theme"]
            count += 1

    normalized = (total / count) * ADJUSTMENT_BAND / config.max_weight if count else 0.0
    normalized = clamp(normalized, -ADJUSTMENT_BAND, ADJUSTMENT_BAND)
    adjustment = normalized * config.preference_influence

    return PersonalizationScore(
        reference_score=reference_score,
        preference_adjustment=round(adjustment, 1),
        exploration_bonus=bonus,
        final_score=clamp(reference_score + adjustment + bonus, 0.0, 100.0),
        confidence=_feedback_confidence(state.total_feedback),
        explanation=explanation or ["Based on your feedback patterns"],
    )


def rank_with_diversity(
    scored: Iterable[ScoredCandidate],
    state: PreferenceLearningState,
    top_count: int = DIVERSITY_TOP_COUNT,
) -> list[ScoredCandidate]:
    """
    Sort by final score, then splice exploratory items into the head.

    Once the user has enough likes and the list is long enough, up to
    ``floor(top_count * exploration_factor)`` items (at least one) from
    outside the top ``top_count`` whose exploration bonus is high enough are
    moved to start at ``min(5, top_count - slots)``. Displaced head items
    shift down; nothing is dropped or duplicated.
    """
    ranked = sorted(scored, key=lambda c: c.score.final_score, reverse=True)

    if len(ranked) <= DIVERSITY_MIN_ITEMS or state.total_likes < DIVERSITY_MIN_LIKES:
        return ranked

    head_size = min(top_count, len(ranked))
    slots = max(1, math.floor(head_size * state.config.exploration_factor))
    head, tail = ranked[:head_size], ranked[head_size:]

    exploratory = [c for c in tail if c.score.exploration_bonus >= DIVERSITY_MIN_BONUS][:slots]
    if not exploratory:
        return ranked

    insert_at = max(0, min(DIVERSITY_INSERT_POSITION, head_size - slots))
    picked = {id(c) for c in exploratory}
    logger.debug(f"Diversity pass: inserting {len(exploratory)} exploratory item(s) at position {insert_at}")

    return head[:insert_at] + exploratory + head[insert_at:] + [c for c in tail if id(c) not in picked]


def apply_personalized_ranking(
    state: PreferenceLearningState,
    items: Iterable[Any],
    get_attributes: Callable[[Any], MovieAttributes],
    get_reference_score: Callable[[Any], float],
) -> list[ScoredCandidate]:
    """Score every item against the learning state and return them ranked."""
    scored = []
    for item in items:
        attributes = get_attributes(item)
        scored.append(ScoredCandidate(
            item=item,
            attributes=attributes,
            score=score_personalization(state, attributes, get_reference_score(item)),
        ))
    return rank_with_diversity(scored, state)
