"""
Cultural filter generation.

Turns a reference's cinematic profile and cultural context into a filter
template: hard language/country rules, allowed narrative/style/audience
sets, minimum mass-appeal and production thresholds, theme requirements
and a soft era preference.

Language policy is fixed per tier:

    regional, mass appeal < 85    strict: original language must match exactly
    regional, mass appeal >= 85   boost: English excluded, related regional
                                  languages ranked up but not required
    Korean / Japanese / Chinese   strict: their own language(s) only
    mainstream English            strict: English only
    everything else               boost: original language + English ranked up

Era never filters; it only contributes ``era_score``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from .catalog import CandidateItem, CatalogDetails
from .config import REGIONAL_RELAX_MASS_APPEAL
from .profiler import (
    AudienceType,
    CinematicProfile,
    KnownTitleTable,
    NarrativeScale,
    ProductionScale,
    ReleaseEra,
    StorytellingStyle,
    ThematicTag,
    ERA_ORDER,
    era_similarity,
)

logger = logging.getLogger(__name__)


class CinemaIndustry(Enum):
    BOLLYWOOD = "bollywood"
    TOLLYWOOD = "tollywood"
    KOLLYWOOD = "kollywood"
    MOLLYWOOD = "mollywood"
    SANDALWOOD = "sandalwood"
    INDIAN_OTHER = "indian-other"
    HOLLYWOOD = "hollywood"
    KOREAN = "korean"
    JAPANESE = "japanese"
    CHINESE = "chinese"
    EUROPEAN = "european"
    OTHER = "other"


INDIAN_LANGUAGES = ("hi", "te", "ta", "ml", "kn", "bn", "mr", "pa", "gu")
ENGLISH_COUNTRIES = frozenset({"US", "GB"})

LANGUAGE_TO_INDUSTRY = {
    "hi": CinemaIndustry.BOLLYWOOD,
    "te": CinemaIndustry.TOLLYWOOD,
    "ta": CinemaIndustry.KOLLYWOOD,
    "ml": CinemaIndustry.MOLLYWOOD,
    "kn": CinemaIndustry.SANDALWOOD,
    "bn": CinemaIndustry.INDIAN_OTHER,
    "mr": CinemaIndustry.INDIAN_OTHER,
    "pa": CinemaIndustry.INDIAN_OTHER,
    "gu": CinemaIndustry.INDIAN_OTHER,
    "en": CinemaIndustry.HOLLYWOOD,
    "ko": CinemaIndustry.KOREAN,
    "ja": CinemaIndustry.JAPANESE,
    "zh": CinemaIndustry.CHINESE,
    "cn": CinemaIndustry.CHINESE,
    "yue": CinemaIndustry.CHINESE,
    "de": CinemaIndustry.EUROPEAN,
    "fr": CinemaIndustry.EUROPEAN,
    "es": CinemaIndustry.EUROPEAN,
    "it": CinemaIndustry.EUROPEAN,
}

COUNTRY_TO_INDUSTRY = {
    "IN": CinemaIndustry.INDIAN_OTHER,
    "US": CinemaIndustry.HOLLYWOOD,
    "GB": CinemaIndustry.HOLLYWOOD,
    "KR": CinemaIndustry.KOREAN,
    "JP": CinemaIndustry.JAPANESE,
    "CN": CinemaIndustry.CHINESE,
    "HK": CinemaIndustry.CHINESE,
    "TW": CinemaIndustry.CHINESE,
    "DE": CinemaIndustry.EUROPEAN,
    "FR": CinemaIndustry.EUROPEAN,
    "ES": CinemaIndustry.EUROPEAN,
    "IT": CinemaIndustry.EUROPEAN,
}

INDUSTRY_DESCRIPTIONS = {
    CinemaIndustry.BOLLYWOOD: "Hindi cinema (Bollywood)",
    CinemaIndustry.TOLLYWOOD: "Telugu cinema (Tollywood)",
    CinemaIndustry.KOLLYWOOD: "Tamil cinema (Kollywood)",
    CinemaIndustry.MOLLYWOOD: "Malayalam cinema (Mollywood)",
    CinemaIndustry.SANDALWOOD: "Kannada cinema (Sandalwood)",
    CinemaIndustry.INDIAN_OTHER: "Indian regional cinema",
    CinemaIndustry.HOLLYWOOD: "English/Hollywood cinema",
    CinemaIndustry.KOREAN: "Korean cinema (K-movies)",
    CinemaIndustry.JAPANESE: "Japanese cinema",
    CinemaIndustry.CHINESE: "Chinese cinema",
    CinemaIndustry.EUROPEAN: "European cinema",
    CinemaIndustry.OTHER: "International cinema",
}

# Hindi dubs are common across the south Indian industries
INDUSTRY_LANGUAGES = {
    CinemaIndustry.BOLLYWOOD: ("hi", "te", "ta"),
    CinemaIndustry.TOLLYWOOD: ("te", "hi", "ta", "kn"),
    CinemaIndustry.KOLLYWOOD: ("ta", "hi", "te", "ml"),
    CinemaIndustry.MOLLYWOOD: ("ml", "hi", "ta"),
    CinemaIndustry.SANDALWOOD: ("kn", "hi", "te", "ta"),
    CinemaIndustry.INDIAN_OTHER: INDIAN_LANGUAGES,
    CinemaIndustry.KOREAN: ("ko",),
    CinemaIndustry.JAPANESE: ("ja",),
    CinemaIndustry.CHINESE: ("zh", "cn", "yue"),
    CinemaIndustry.HOLLYWOOD: ("en",),
}

INDUSTRY_COUNTRIES = {
    CinemaIndustry.KOREAN: ("KR",),
    CinemaIndustry.JAPANESE: ("JP",),
    CinemaIndustry.CHINESE: ("CN", "HK", "TW"),
}

# One tier of slack around the reference value
ALLOWED_SCALES = {
    NarrativeScale.EPIC: frozenset({NarrativeScale.EPIC, NarrativeScale.LARGE}),
    NarrativeScale.LARGE: frozenset({NarrativeScale.LARGE, NarrativeScale.EPIC, NarrativeScale.MEDIUM}),
    NarrativeScale.MEDIUM: frozenset({NarrativeScale.MEDIUM, NarrativeScale.LARGE, NarrativeScale.INTIMATE}),
    NarrativeScale.INTIMATE: frozenset({NarrativeScale.INTIMATE, NarrativeScale.MEDIUM}),
    NarrativeScale.UNKNOWN: frozenset(NarrativeScale),
}
ALLOWED_STYLES = {
    StorytellingStyle.COMMERCIAL_MASS: frozenset({StorytellingStyle.COMMERCIAL_MASS, StorytellingStyle.ACTION_SPECTACLE}),
    StorytellingStyle.ACTION_SPECTACLE: frozenset(
        {StorytellingStyle.ACTION_SPECTACLE, StorytellingStyle.COMMERCIAL_MASS, StorytellingStyle.THRILLER_SUSPENSE}
    ),
    StorytellingStyle.EMOTIONAL_DRAMA: frozenset({StorytellingStyle.EMOTIONAL_DRAMA, StorytellingStyle.MIXED}),
    StorytellingStyle.THRILLER_SUSPENSE: frozenset(
        {StorytellingStyle.THRILLER_SUSPENSE, StorytellingStyle.ACTION_SPECTACLE}
    ),
    StorytellingStyle.COMEDY: frozenset({StorytellingStyle.COMEDY, StorytellingStyle.MIXED}),
    StorytellingStyle.ART_HOUSE: frozenset({StorytellingStyle.ART_HOUSE, StorytellingStyle.EMOTIONAL_DRAMA}),
    StorytellingStyle.MIXED: frozenset(StorytellingStyle),
}
ALLOWED_AUDIENCES = {
    AudienceType.MASS: frozenset({AudienceType.MASS, AudienceType.UNIVERSAL}),
    AudienceType.FAMILY: frozenset({AudienceType.FAMILY, AudienceType.UNIVERSAL}),
    AudienceType.YOUTH: frozenset({AudienceType.YOUTH, AudienceType.UNIVERSAL}),
    AudienceType.MATURE: frozenset({AudienceType.MATURE, AudienceType.NICHE}),
    AudienceType.NICHE: frozenset({AudienceType.NICHE, AudienceType.MATURE}),
    AudienceType.UNIVERSAL: frozenset(
        {AudienceType.UNIVERSAL, AudienceType.MASS, AudienceType.FAMILY, AudienceType.YOUTH}
    ),
}

# (reference mass appeal at least, minimum required of candidates)
MIN_MASS_APPEAL_TIERS = ((90, 75), (80, 65), (70, 55))
DEFAULT_MIN_MASS_APPEAL = 40

MIN_PRODUCTION_SCALE = {
    ProductionScale.MEGA: ProductionScale.BIG,
    ProductionScale.BIG: ProductionScale.MID,
    ProductionScale.MID: ProductionScale.LOW,
    ProductionScale.LOW: None,
    ProductionScale.UNKNOWN: None,
}
PRODUCTION_RANK = {
    ProductionScale.LOW: 0,
    ProductionScale.MID: 1,
    ProductionScale.BIG: 2,
    ProductionScale.MEGA: 3,
}

# Minimum era similarity to list an era as preferred
ERA_PREFERENCE_FLOOR = {"strict": 0.6, "moderate": 0.3, "flexible": 0.0}
# How much an era mismatch costs in the soft score
ERA_FLEXIBILITY_WEIGHT = {"strict": 1.0, "moderate": 0.6, "flexible": 0.3}
STRICT_ERA_MASS_APPEAL = 80
REQUIRED_THEME_COUNT = 2


@dataclass(frozen=True)
class CulturalContext:
    industry: CinemaIndustry
    original_language: str
    countries: tuple[str, ...] = ()
    is_regional: bool = False
    is_korean: bool = False
    is_japanese: bool = False
    is_chinese: bool = False
    is_mainstream_english: bool = False


@dataclass(frozen=True)
class CulturalFilterRules:
    industry: CinemaIndustry
    industry_description: str
    language_policy: str  # strict | boost
    include_languages: tuple[str, ...] = ()
    exclude_languages: tuple[str, ...] = ()
    include_countries: tuple[str, ...] = ()
    exclude_countries: tuple[str, ...] = ()
    with_original_language: str | None = None
    without_original_language: str | None = None
    allowed_scales: frozenset = field(default_factory=frozenset)
    allowed_styles: frozenset = field(default_factory=frozenset)
    allowed_audiences: frozenset = field(default_factory=frozenset)
    min_mass_appeal: int = DEFAULT_MIN_MASS_APPEAL
    min_production_scale: ProductionScale | None = None
    required_themes: tuple[ThematicTag, ...] = ()
    preferred_themes: tuple[ThematicTag, ...] = ()
    reference_era: ReleaseEra = ReleaseEra.UNKNOWN
    preferred_eras: tuple[ReleaseEra, ...] = ()
    era_flexibility: str = "moderate"
    reference_year: int | None = None

    def to_dict(self) -> dict:
        return {
            "industry": self.industry.value,
            "industry_description": self.industry_description,
            "language_policy": self.language_policy,
            "include_languages": list(self.include_languages),
            "exclude_languages": list(self.exclude_languages),
            "include_countries": list(self.include_countries),
            "exclude_countries": list(self.exclude_countries),
            "with_original_language": self.with_original_language,
            "without_original_language": self.without_original_language,
            "allowed_scales": sorted(s.value for s in self.allowed_scales),
            "allowed_styles": sorted(s.value for s in self.allowed_styles),
            "allowed_audiences": sorted(a.value for a in self.allowed_audiences),
            "min_mass_appeal": self.min_mass_appeal,
            "min_production_scale": self.min_production_scale.value if self.min_production_scale else None,
            "required_themes": [t.value for t in self.required_themes],
            "preferred_themes": [t.value for t in self.preferred_themes],
            "reference_era": self.reference_era.value,
            "preferred_eras": [e.value for e in self.preferred_eras],
            "era_flexibility": self.era_flexibility,
            "reference_year": self.reference_year,
        }


@dataclass
class FilterEvaluation:
    passed: bool
    violations: list[str] = field(default_factory=list)
    era_score: float = 1.0


def determine_industry(original_language: str, countries: list[str] | tuple[str, ...] = ()) -> CinemaIndustry:
    """Language decides first, then the first production country we recognise."""
    if original_language in LANGUAGE_TO_INDUSTRY:
        return LANGUAGE_TO_INDUSTRY[original_language]
    for country in countries:
        if country.upper() in COUNTRY_TO_INDUSTRY:
            return COUNTRY_TO_INDUSTRY[country.upper()]
    return CinemaIndustry.OTHER


def preferred_languages(industry: CinemaIndustry, original_language: str) -> tuple[str, ...]:
    if industry in INDUSTRY_LANGUAGES:
        return INDUSTRY_LANGUAGES[industry]
    if industry is CinemaIndustry.EUROPEAN:
        return (original_language, "en")
    return (original_language,) if original_language else ()


def industry_description(industry: CinemaIndustry) -> str:
    return INDUSTRY_DESCRIPTIONS[industry]


def detect_cultural_context(
    item: CandidateItem,
    details: CatalogDetails | None = None,
    known_titles: KnownTitleTable | None = None,
) -> CulturalContext:
    """
    Derive cultural flags for a title.

    Production countries come from the detail record when available,
    otherwise from the search record. A curated title with no recognisable
    language or country takes the industry of its first curated language.
    """
    language = (item.original_language or "").lower()
    countries = tuple(details.production_countries) if details and details.production_countries else item.countries
    industry = determine_industry(language, countries)

    if industry is CinemaIndustry.OTHER and known_titles is not None:
        entry = known_titles.lookup(item)
        if entry is not None and entry.languages:
            industry = LANGUAGE_TO_INDUSTRY.get(entry.languages[0], CinemaIndustry.OTHER)

    is_regional = language in INDIAN_LANGUAGES or "IN" in countries or industry in (
        CinemaIndustry.BOLLYWOOD,
        CinemaIndustry.TOLLYWOOD,
        CinemaIndustry.KOLLYWOOD,
        CinemaIndustry.MOLLYWOOD,
        CinemaIndustry.SANDALWOOD,
        CinemaIndustry.INDIAN_OTHER,
    )

    return CulturalContext(
        industry=industry,
        original_language=language,
        countries=countries,
        is_regional=is_regional,
        is_korean=industry is CinemaIndustry.KOREAN,
        is_japanese=industry is CinemaIndustry.JAPANESE,
        is_chinese=industry is CinemaIndustry.CHINESE,
        is_mainstream_english=industry is CinemaIndustry.HOLLYWOOD and not is_regional,
    )


def min_mass_appeal_for(mass_appeal: int) -> int:
    for threshold, minimum in MIN_MASS_APPEAL_TIERS:
        if mass_appeal >= threshold:
            return minimum
    return DEFAULT_MIN_MASS_APPEAL


def era_flexibility_for(profile: CinematicProfile) -> str:
    if profile.release_era is ReleaseEra.RECENT and profile.mass_appeal >= STRICT_ERA_MASS_APPEAL:
        return "strict"
    if (
        profile.release_era in (ReleaseEra.CLASSIC, ReleaseEra.UNKNOWN)
        or profile.style is StorytellingStyle.ART_HOUSE
    ):
        return "flexible"
    return "moderate"


def preferred_eras_for(era: ReleaseEra, flexibility: str) -> tuple[ReleaseEra, ...]:
    """Eras ordered by similarity to the reference, most similar first."""
    floor = ERA_PREFERENCE_FLOOR[flexibility]
    scored = [(era_similarity(era, candidate), i, candidate) for i, candidate in enumerate(ERA_ORDER)]
    return tuple(c for sim, _, c in sorted(scored, key=lambda s: (-s[0], s[1])) if sim >= floor)


def _language_rules(profile: CinematicProfile, context: CulturalContext) -> dict:
    language = context.original_language
    preferred = preferred_languages(context.industry, language)

    if context.is_regional:
        rules = {
            "exclude_languages": ("en",),
            "exclude_countries": tuple(sorted(ENGLISH_COUNTRIES)),
            "include_countries": ("IN",),
        }
        if profile.mass_appeal >= REGIONAL_RELAX_MASS_APPEAL:
            rules.update(
                language_policy="boost",
                include_languages=preferred,
                without_original_language="en",
            )
        else:
            rules.update(
                language_policy="strict",
                include_languages=(language,),
                with_original_language=language,
            )
        return rules

    if context.is_korean or context.is_japanese or context.is_chinese:
        return {
            "language_policy": "strict",
            "include_languages": preferred,
            "include_countries": INDUSTRY_COUNTRIES[context.industry],
            "with_original_language": preferred[0],
        }

    if context.is_mainstream_english:
        return {
            "language_policy": "strict",
            "include_languages": ("en",),
            "with_original_language": "en",
        }

    return {"language_policy": "boost", "include_languages": preferred}


def build_filters(profile: CinematicProfile, context: CulturalContext) -> CulturalFilterRules:
    """
    Build the filter template for recommendations similar to a reference.

    Args:
        profile: Cinematic profile of the reference
        context: Cultural flags of the reference

    Returns:
        CulturalFilterRules
    """
    flexibility = era_flexibility_for(profile)
    required_themes = profile.themes[:REQUIRED_THEME_COUNT] if (profile.is_epic or profile.is_mass_hero) else ()

    rules = CulturalFilterRules(
        industry=context.industry,
        industry_description=industry_description(context.industry),
        allowed_scales=ALLOWED_SCALES[profile.scale],
        allowed_styles=ALLOWED_STYLES[profile.style],
        allowed_audiences=ALLOWED_AUDIENCES[profile.audience],
        min_mass_appeal=min_mass_appeal_for(profile.mass_appeal),
        min_production_scale=MIN_PRODUCTION_SCALE[profile.production_scale],
        required_themes=tuple(required_themes),
        preferred_themes=profile.themes,
        reference_era=profile.release_era,
        preferred_eras=preferred_eras_for(profile.release_era, flexibility),
        era_flexibility=flexibility,
        reference_year=profile.release_year,
        **_language_rules(profile, context),
    )
    logger.debug(
        f"Filters for {context.industry.value}: policy={rules.language_policy}, "
        f"min_mass_appeal={rules.min_mass_appeal}, era={rules.era_flexibility}"
    )
    return rules


def evaluate_candidate(
    rules: CulturalFilterRules,
    profile: CinematicProfile,
    context: CulturalContext,
) -> FilterEvaluation:
    """Check a recommendation candidate against hard rules and compute its soft era score."""
    violations = []
    language = context.original_language

    if rules.language_policy == "strict" and rules.include_languages and language not in rules.include_languages:
        violations.append("language")
    elif rules.with_original_language and language != rules.with_original_language:
        violations.append("language")
    if language in rules.exclude_languages or (
        rules.without_original_language and language == rules.without_original_language
    ):
        violations.append("excluded-language")

    countries = set(context.countries)
    if countries & set(rules.exclude_countries) and not countries & set(rules.include_countries):
        violations.append("excluded-country")

    if profile.scale not in rules.allowed_scales:
        violations.append("scale")
    if profile.style not in rules.allowed_styles:
        violations.append("style")
    if profile.audience not in rules.allowed_audiences:
        violations.append("audience")
    if profile.mass_appeal < rules.min_mass_appeal:
        violations.append("mass-appeal")

    if rules.min_production_scale is not None and profile.production_scale in PRODUCTION_RANK:
        if PRODUCTION_RANK[profile.production_scale] < PRODUCTION_RANK[rules.min_production_scale]:
            violations.append("production-scale")

    if rules.required_themes and not set(rules.required_themes) & set(profile.themes):
        violations.append("themes")

    similarity = era_similarity(rules.reference_era, profile.release_era)
    era_score = 1.0 - ERA_FLEXIBILITY_WEIGHT[rules.era_flexibility] * (1.0 - similarity)

    return FilterEvaluation(passed=not violations, violations=violations, era_score=round(era_score, 3))
