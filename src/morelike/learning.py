"""
Feedback-driven preference learning.

A session's ``PreferenceLearningState`` holds one feedback record per
(media_type, media_id) and the attribute weights derived from them.
Weights are always recomputed from the full history after a change,
never patched incrementally, so replacing or removing a record (or
replaying history out of order) can never leave stale contributions.

Every operation returns a new state and leaves its input untouched.
Callers that persist or share state must serialise writes per user.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum

from .catalog import CandidateItem
from .config import (
    DEFAULT_MAX_WEIGHT,
    DEFAULT_LEARNING_RATE,
    DEFAULT_DECAY_FACTOR,
    DEFAULT_MIN_FEEDBACK,
    DEFAULT_PREFERENCE_INFLUENCE,
    DEFAULT_EXPLORATION_FACTOR,
    DECAY_PERIOD_DAYS,
    SUMMARY_GENRE_THRESHOLD,
    SUMMARY_LANGUAGE_THRESHOLD,
    SUMMARY_ERA_THRESHOLD,
)
from .filters import determine_industry
from .profiler import CinematicProfile, release_era
from .utils import clamp

logger = logging.getLogger(__name__)


class FeedbackType(Enum):
    LIKE = "like"
    DISLIKE = "dislike"
    NEUTRAL = "neutral"

    @property
    def direction(self) -> int:
        return {FeedbackType.LIKE: 1, FeedbackType.DISLIKE: -1}.get(self, 0)


@dataclass(frozen=True)
class LearningConfig:
    max_weight: float = DEFAULT_MAX_WEIGHT
    learning_rate: float = DEFAULT_LEARNING_RATE
    decay_factor: float = DEFAULT_DECAY_FACTOR
    min_feedback_threshold: int = DEFAULT_MIN_FEEDBACK
    preference_influence: float = DEFAULT_PREFERENCE_INFLUENCE
    exploration_factor: float = DEFAULT_EXPLORATION_FACTOR

    def with_overrides(self, **updates) -> "LearningConfig":
        """
        Return a copy with some fields replaced.

        Ratios are clamped to [0, 1] and magnitudes to non-negative values,
        with a warning. Unknown field names raise ValueError.
        """
        known = {f.name for f in fields(self)}
        unknown = set(updates) - known
        if unknown:
            raise ValueError(f"Unknown learning config field(s): {', '.join(sorted(unknown))}")

        cleaned = {}
        for key, value in updates.items():
            if key in ("decay_factor", "preference_influence", "exploration_factor"):
                bounded = clamp(float(value), 0.0, 1.0)
            elif key == "min_feedback_threshold":
                bounded = max(0, int(value))
            elif key == "max_weight":
                bounded = max(0.01, float(value))
            else:
                bounded = max(0.0, float(value))
            if bounded != value:
                logger.warning(f"Learning config {key}={value} out of range, using {bounded}")
            cleaned[key] = bounded
        return replace(self, **cleaned)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, payload: dict | None) -> "LearningConfig":
        known = {f.name for f in fields(cls)}
        return cls().with_overrides(**{k: v for k, v in (payload or {}).items() if k in known})


@dataclass(frozen=True)
class MovieAttributes:
    """Snapshot of the attributes we learn from, taken when feedback is given."""

    id: int
    title: str = ""
    media_type: str = "movie"
    genre_ids: tuple[int, ...] = ()
    original_language: str = ""
    industry: str | None = None
    release_era: str = "unknown"
    release_year: int | None = None
    vote_average: float = 0.0
    popularity: float = 0.0
    themes: tuple[str, ...] = ()
    narrative_scale: str | None = None
    audience_type: str | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.media_type, self.id)

    def to_dict(self) -> dict:
        payload = {f.name: getattr(self, f.name) for f in fields(self)}
        payload["genre_ids"] = list(self.genre_ids)
        payload["themes"] = list(self.themes)
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "MovieAttributes":
        return cls(
            id=int(payload["id"]),
            title=payload.get("title", ""),
            media_type=payload.get("media_type", "movie"),
            genre_ids=tuple(int(g) for g in payload.get("genre_ids", [])),
            original_language=payload.get("original_language", ""),
            industry=payload.get("industry"),
            release_era=payload.get("release_era", "unknown"),
            release_year=payload.get("release_year"),
            vote_average=float(payload.get("vote_average", 0.0)),
            popularity=float(payload.get("popularity", 0.0)),
            themes=tuple(payload.get("themes", [])),
            narrative_scale=payload.get("narrative_scale"),
            audience_type=payload.get("audience_type"),
        )


@dataclass(frozen=True)
class UserFeedback:
    id: str
    media_id: int
    media_type: str
    title: str
    feedback: FeedbackType
    attributes: MovieAttributes
    timestamp: datetime
    reference_media_id: int | None = None

    @property
    def key(self) -> tuple[str, int]:
        return (self.media_type, self.media_id)


@dataclass
class AttributeWeights:
    genres: dict[int, float] = field(default_factory=dict)
    languages: dict[str, float] = field(default_factory=dict)
    industries: dict[str, float] = field(default_factory=dict)
    eras: dict[str, float] = field(default_factory=dict)
    themes: dict[str, float] = field(default_factory=dict)
    narrative_scales: dict[str, float] = field(default_factory=dict)
    audience_types: dict[str, float] = field(default_factory=dict)

    def tables(self) -> dict[str, dict]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def all_values(self) -> list[float]:
        return [w for table in self.tables().values() for w in table.values()]

    def to_dict(self) -> dict:
        payload = {name: dict(table) for name, table in self.tables().items()}
        payload["genres"] = {str(k): v for k, v in self.genres.items()}
        return payload


@dataclass(frozen=True)
class PreferenceLearningState:
    feedback_history: tuple[UserFeedback, ...] = ()
    attribute_weights: AttributeWeights = field(default_factory=AttributeWeights)
    config: LearningConfig = field(default_factory=LearningConfig)
    total_likes: int = 0
    total_dislikes: int = 0
    last_updated: datetime | None = None
    # (media_type, media_id) -> position in feedback_history
    index: dict = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self):
        if self.feedback_history and len(self.index) != len(self.feedback_history):
            object.__setattr__(self, "index", _build_index(self.feedback_history))

    @property
    def total_feedback(self) -> int:
        return self.total_likes + self.total_dislikes


@dataclass
class PreferenceSummary:
    liked_genres: list[int]
    disliked_genres: list[int]
    liked_languages: list[str]
    preferred_eras: list[str]
    total_feedback: int
    learning_active: bool


def _build_index(history) -> dict[tuple[str, int], int]:
    return {fb.key: i for i, fb in enumerate(history)}


def _counts(history) -> tuple[int, int]:
    likes = sum(1 for fb in history if fb.feedback is FeedbackType.LIKE)
    dislikes = sum(1 for fb in history if fb.feedback is FeedbackType.DISLIKE)
    return likes, dislikes


def create_empty_state(config: LearningConfig | None = None, now: datetime | None = None) -> PreferenceLearningState:
    return PreferenceLearningState(config=config or LearningConfig(), last_updated=now or datetime.now())


def reset_learning(config: LearningConfig | None = None) -> PreferenceLearningState:
    """Start over with no history, optionally keeping a custom config."""
    return create_empty_state(config)


def _recency_multiplier(timestamp: datetime, now: datetime, decay_factor: float) -> float:
    age_days = max(0.0, (now - timestamp).total_seconds() / 86400)
    return decay_factor ** (age_days / DECAY_PERIOD_DAYS)


def compute_weights(
    history,
    config: LearningConfig,
    now: datetime | None = None,
) -> AttributeWeights:
    """
    Accumulate decayed feedback deltas into every attribute an item touches.

    delta = direction * learning_rate * decay_factor ** (age_days / 7), summed
    raw per attribute value and then clamped to [-max_weight, max_weight].
    """
    now = now or datetime.now()
    acc: dict[str, dict] = {name: defaultdict(float) for name in (f.name for f in fields(AttributeWeights))}

    for fb in history:
        if fb.feedback is FeedbackType.NEUTRAL:
            continue

        delta = fb.feedback.direction * config.learning_rate * _recency_multiplier(
            fb.timestamp, now, config.decay_factor
        )
        attrs = fb.attributes

        for genre_id in attrs.genre_ids:
            acc["genres"][genre_id] += delta
        if attrs.original_language:
            acc["languages"][attrs.original_language] += delta
        if attrs.industry:
            acc["industries"][attrs.industry] += delta
        if attrs.release_era:
            acc["eras"][attrs.release_era] += delta
        for theme in attrs.themes:
            acc["themes"][theme] += delta
        if attrs.narrative_scale:
            acc["narrative_scales"][attrs.narrative_scale] += delta
        if attrs.audience_type:
            acc["audience_types"][attrs.audience_type] += delta

    cap = config.max_weight
    return AttributeWeights(**{
        name: {key: clamp(value, -cap, cap) for key, value in table.items()}
        for name, table in acc.items()
    })


def recompute_weights(state: PreferenceLearningState, now: datetime | None = None) -> PreferenceLearningState:
    return replace(state, attribute_weights=compute_weights(state.feedback_history, state.config, now))


def record_feedback(
    state: PreferenceLearningState,
    attributes: MovieAttributes,
    feedback: FeedbackType | str,
    reference_media_id: int | None = None,
    now: datetime | None = None,
) -> PreferenceLearningState:
    """
    Record (or replace) feedback for one item and recompute weights.

    Args:
        state: Current learning state
        attributes: Attribute snapshot of the rated item
        feedback: like / dislike / neutral
        reference_media_id: The reference title the item was recommended for
        now: Timestamp for the record (defaults to now)

    Returns:
        New state with exactly one record for the item's (media_type, id)
    """
    now = now or datetime.now()
    feedback = FeedbackType(feedback)
    key = attributes.key

    record = UserFeedback(
        id=f"fb_{attributes.media_type}_{attributes.id}_{int(now.timestamp() * 1000)}",
        media_id=attributes.id,
        media_type=attributes.media_type,
        title=attributes.title,
        feedback=feedback,
        attributes=attributes,
        timestamp=now,
        reference_media_id=reference_media_id,
    )

    history = list(state.feedback_history)
    index = dict(state.index)
    likes, dislikes = state.total_likes, state.total_dislikes

    if key in index:
        previous = history[index[key]]
        likes -= previous.feedback is FeedbackType.LIKE
        dislikes -= previous.feedback is FeedbackType.DISLIKE
        history[index[key]] = record
        logger.debug(f"Replaced {previous.feedback.value} with {feedback.value} for {key}")
    else:
        index[key] = len(history)
        history.append(record)

    likes += feedback is FeedbackType.LIKE
    dislikes += feedback is FeedbackType.DISLIKE

    updated = replace(
        state,
        feedback_history=tuple(history),
        index=index,
        total_likes=likes,
        total_dislikes=dislikes,
        last_updated=now,
    )
    return recompute_weights(updated, now)


def remove_feedback(
    state: PreferenceLearningState,
    media_id: int,
    media_type: str,
    now: datetime | None = None,
) -> PreferenceLearningState:
    """Delete the record for an item; unknown items leave the state unchanged."""
    key = (media_type, media_id)
    if key not in state.index:
        return state

    now = now or datetime.now()
    removed = state.feedback_history[state.index[key]]
    history = tuple(fb for fb in state.feedback_history if fb.key != key)

    updated = replace(
        state,
        feedback_history=history,
        index=_build_index(history),
        total_likes=state.total_likes - (removed.feedback is FeedbackType.LIKE),
        total_dislikes=state.total_dislikes - (removed.feedback is FeedbackType.DISLIKE),
        last_updated=now,
    )
    return recompute_weights(updated, now)


def get_feedback(state: PreferenceLearningState, media_id: int, media_type: str) -> FeedbackType:
    position = state.index.get((media_type, media_id))
    if position is None:
        return FeedbackType.NEUTRAL
    return state.feedback_history[position].feedback


def merge_learning_states(
    primary: PreferenceLearningState,
    secondary: PreferenceLearningState,
    now: datetime | None = None,
) -> PreferenceLearningState:
    """
    Merge two histories for the same user.

    Records are unioned by (media_type, media_id) with the primary's record
    winning on conflict. Counters and weights are rebuilt from the merged
    history; weight tables are never merged directly.
    """
    now = now or datetime.now()
    additions = tuple(fb for fb in secondary.feedback_history if fb.key not in primary.index)
    history = primary.feedback_history + additions
    likes, dislikes = _counts(history)

    merged = replace(
        primary,
        feedback_history=history,
        index=_build_index(history),
        total_likes=likes,
        total_dislikes=dislikes,
        last_updated=now,
    )
    logger.info(f"Merged learning states: {len(additions)} records added, {len(history)} total")
    return recompute_weights(merged, now)


def update_config(state: PreferenceLearningState, now: datetime | None = None, **updates) -> PreferenceLearningState:
    """Apply config overrides and recompute so weights respect the new bounds."""
    now = now or datetime.now()
    updated = replace(state, config=state.config.with_overrides(**updates), last_updated=now)
    return recompute_weights(updated, now)


def preference_summary(state: PreferenceLearningState) -> PreferenceSummary:
    weights = state.attribute_weights
    total = state.total_feedback
    return PreferenceSummary(
        liked_genres=[g for g, w in weights.genres.items() if w >= SUMMARY_GENRE_THRESHOLD],
        disliked_genres=[g for g, w in weights.genres.items() if w <= -SUMMARY_GENRE_THRESHOLD],
        liked_languages=[lang for lang, w in weights.languages.items() if w >= SUMMARY_LANGUAGE_THRESHOLD],
        preferred_eras=[era for era, w in weights.eras.items() if w >= SUMMARY_ERA_THRESHOLD],
        total_feedback=total,
        learning_active=total >= state.config.min_feedback_threshold,
    )


def extract_attributes(
    item: CandidateItem,
    industry: str | None = None,
    profile: CinematicProfile | None = None,
) -> MovieAttributes:
    """
    Snapshot an item's learnable attributes.

    Industry is inferred from language and countries when not given. A
    profile, when available, contributes themes, narrative scale and
    audience type.
    """
    if industry is None:
        industry = determine_industry(item.original_language, item.countries).value

    return MovieAttributes(
        id=item.id,
        title=item.title or "Unknown",
        media_type=item.media_type,
        genre_ids=tuple(item.genre_ids),
        original_language=item.original_language,
        industry=industry,
        release_era=release_era(item.release_year).value,
        release_year=item.release_year,
        vote_average=item.vote_average,
        popularity=item.popularity,
        themes=tuple(t.value for t in profile.themes) if profile else (),
        narrative_scale=profile.scale.value if profile else None,
        audience_type=profile.audience.value if profile else None,
    )
