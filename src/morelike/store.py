"""
JSON persistence for learning state.

Only the feedback history and config are trusted from disk; weights are
always recomputed on load so a stale or hand-edited file cannot break the
weight bounds.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from .config import STATE_PATH
from .learning import (
    FeedbackType,
    LearningConfig,
    MovieAttributes,
    PreferenceLearningState,
    UserFeedback,
    create_empty_state,
    recompute_weights,
)

logger = logging.getLogger(__name__)

STATE_FORMAT_VERSION = 1
CORRUPT_SUFFIX = ".corrupt"


def feedback_to_dict(fb: UserFeedback) -> dict[str, Any]:
    return {
        "id": fb.id,
        "media_id": fb.media_id,
        "media_type": fb.media_type,
        "title": fb.title,
        "feedback": fb.feedback.value,
        "attributes": fb.attributes.to_dict(),
        "reference_media_id": fb.reference_media_id,
        "timestamp": fb.timestamp.isoformat(),
    }


def _naive(timestamp: datetime) -> datetime:
    """Convert an aware timestamp to naive local time; naive ones pass through."""
    if timestamp.tzinfo is None:
        return timestamp
    return timestamp.astimezone().replace(tzinfo=None)


def feedback_from_dict(payload: dict[str, Any]) -> UserFeedback:
    return UserFeedback(
        id=str(payload["id"]),
        media_id=int(payload["media_id"]),
        media_type=payload.get("media_type", "movie"),
        title=payload.get("title", ""),
        feedback=FeedbackType(payload["feedback"]),
        attributes=MovieAttributes.from_dict(payload["attributes"]),
        reference_media_id=payload.get("reference_media_id"),
        timestamp=_naive(datetime.fromisoformat(payload["timestamp"])),
    )


def state_to_dict(state: PreferenceLearningState) -> dict[str, Any]:
    return {
        "version": STATE_FORMAT_VERSION,
        "config": state.config.to_dict(),
        "feedback_history": [feedback_to_dict(fb) for fb in state.feedback_history],
        "attribute_weights": state.attribute_weights.to_dict(),
        "total_likes": state.total_likes,
        "total_dislikes": state.total_dislikes,
        "last_updated": state.last_updated.isoformat() if state.last_updated else None,
    }


def state_from_dict(payload: dict[str, Any], now: datetime | None = None) -> PreferenceLearningState:
    """
    Rebuild a state from its JSON form.

    Later records for a (media_type, media_id) already seen are dropped, and
    counters are recounted from the surviving history.
    """
    config = LearningConfig.from_dict(payload.get("config"))

    history: list[UserFeedback] = []
    seen = set()
    for raw in payload.get("feedback_history", []):
        fb = feedback_from_dict(raw)
        if fb.key in seen:
            logger.warning(f"Dropping duplicate feedback record for {fb.key}")
            continue
        seen.add(fb.key)
        history.append(fb)

    last_updated = payload.get("last_updated")
    state = PreferenceLearningState(
        feedback_history=tuple(history),
        config=config,
        total_likes=sum(1 for fb in history if fb.feedback is FeedbackType.LIKE),
        total_dislikes=sum(1 for fb in history if fb.feedback is FeedbackType.DISLIKE),
        last_updated=_naive(datetime.fromisoformat(last_updated)) if last_updated else None,
    )
    return recompute_weights(state, now)


def load_learning_state(path: str | Path | None = None) -> PreferenceLearningState:
    """
    Load state from disk; a missing or unreadable file yields an empty state.

    An unreadable file is moved aside to ``<name>.corrupt`` first, so the
    next save starts a new file next to it.
    """
    state_path = Path(path) if path else STATE_PATH
    if not state_path.exists():
        logger.debug("Learning state not found at %s; starting fresh", state_path)
        return create_empty_state()

    try:
        return state_from_dict(json.loads(state_path.read_text(encoding="utf-8")))
    except (OSError, ValueError, KeyError, TypeError) as exc:
        backup = state_path.with_name(state_path.name + CORRUPT_SUFFIX)
        state_path.replace(backup)
        logger.warning("Failed to load learning state from %s: %s; moved it to %s", state_path, exc, backup)
        return create_empty_state()


def save_learning_state(state: PreferenceLearningState, path: str | Path | None = None) -> Path:
    state_path = Path(path) if path else STATE_PATH
    state_path.parent.mkdir(parents=True, exist_ok=True)
    state_path.write_text(json.dumps(state_to_dict(state), indent=2), encoding="utf-8")
    return state_path


def clear_learning_state(path: str | Path | None = None) -> bool:
    """Delete the state file; returns True if a file was removed."""
    state_path = Path(path) if path else STATE_PATH
    if not state_path.exists():
        return False
    state_path.unlink()
    return True
