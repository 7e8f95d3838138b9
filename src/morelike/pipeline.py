"""
End-to-end reference analysis: text -> match -> confidence -> profile -> filters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .catalog import CatalogDetails, CatalogError, CatalogGateway
from .confidence import ConfidenceScore, MatchContext, score_confidence
from .filters import (
    CulturalContext,
    CulturalFilterRules,
    build_filters,
    detect_cultural_context,
    industry_description,
)
from .profiler import CinematicProfile, CinematicProfiler, KnownTitleTable
from .resolver import ExtractedReference, ReferenceMatch, extract_reference, find_reference_item

logger = logging.getLogger(__name__)


@dataclass
class ReferenceAnalysis:
    extracted: ExtractedReference
    match: ReferenceMatch
    confidence: ConfidenceScore
    context: CulturalContext | None = None
    profile: CinematicProfile | None = None
    filters: CulturalFilterRules | None = None
    intro: str | None = None

    @property
    def should_proceed(self) -> bool:
        return self.confidence.behavior.should_proceed and self.profile is not None


def similar_titles_intro(title: str, context: CulturalContext, profile: CinematicProfile) -> str:
    """Lead-in line for a list of recommendations."""
    if context.is_regional:
        description = industry_description(context.industry)
        if profile.is_epic or profile.is_mass_hero:
            phrase = f"you might enjoy these {description} epic action movies"
        else:
            phrase = f"you might enjoy these {description} films"
    elif context.is_korean:
        phrase = "you might enjoy these Korean films"
    elif context.is_japanese:
        phrase = "you might enjoy these Japanese films"
    else:
        phrase = "you might enjoy these similar films"
    return f"If you liked **{title}**, {phrase}:"


def _fetch_details(gateway: CatalogGateway, item_id: int, media_type: str) -> CatalogDetails | None:
    try:
        return gateway.get_details(item_id, media_type)
    except CatalogError as e:
        logger.warning(f"Details unavailable for {media_type} {item_id}: {e}")
        return None


def analyze_reference(
    text: str,
    gateway: CatalogGateway,
    known_titles: KnownTitleTable | None = None,
    current_year: int | None = None,
) -> ReferenceAnalysis | None:
    """
    Run the full reference analysis for a user message.

    Returns None when the text names no reference. Profile, filters and the
    intro line are only built when the confidence behavior allows
    proceeding; a failed details lookup falls back to the search record.
    """
    extracted = extract_reference(text, current_year=current_year)
    if extracted is None:
        logger.debug(f"No reference title found in '{text}'")
        return None

    match = find_reference_item(gateway, extracted.title, extracted.year)
    context = MatchContext(
        extracted_title=extracted.title,
        extracted_year=extracted.year,
        candidates=match.candidates,
        best_match=match.item,
    )
    confidence = score_confidence(match.candidates, match.item, context)
    analysis = ReferenceAnalysis(extracted=extracted, match=match, confidence=confidence)

    if match.item is None or not confidence.behavior.should_proceed:
        logger.info(f"Not profiling '{extracted.title}': confidence {confidence.level.value}")
        return analysis

    item = match.item
    details = _fetch_details(gateway, item.id, match.media_type)
    analysis.context = detect_cultural_context(item, details, known_titles)
    analysis.profile = CinematicProfiler(known_titles).build(
        item,
        is_regional=analysis.context.is_regional,
        overview=details.overview if details and details.overview else None,
    )
    analysis.filters = build_filters(analysis.profile, analysis.context)
    analysis.intro = similar_titles_intro(item.title, analysis.context, analysis.profile)
    return analysis
