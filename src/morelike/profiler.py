"""
Cinematic profiling of a resolved reference title.

A profile describes a title along the axes we match on: narrative scale,
storytelling style, audience type, a 0-100 mass-appeal estimate, thematic
tags, production scale and release era. High-profile titles come from an
injected ``KnownTitleTable``; everything else is derived from genre ids,
vote/popularity tiers and keyword hits over the title and overview.

Profiling is pure: the same item and table always yield the same profile.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from .catalog import CandidateItem
from .config import KNOWN_TITLES_PATH
from .utils import clamp

logger = logging.getLogger(__name__)


class NarrativeScale(Enum):
    EPIC = "epic"
    LARGE = "large"
    MEDIUM = "medium"
    INTIMATE = "intimate"
    UNKNOWN = "unknown"


class StorytellingStyle(Enum):
    COMMERCIAL_MASS = "commercial-mass"
    ACTION_SPECTACLE = "action-spectacle"
    EMOTIONAL_DRAMA = "emotional-drama"
    THRILLER_SUSPENSE = "thriller-suspense"
    COMEDY = "comedy"
    ART_HOUSE = "art-house"
    MIXED = "mixed"


class AudienceType(Enum):
    MASS = "mass"
    FAMILY = "family"
    YOUTH = "youth"
    MATURE = "mature"
    NICHE = "niche"
    UNIVERSAL = "universal"


class ProductionScale(Enum):
    MEGA = "mega"
    BIG = "big"
    MID = "mid"
    LOW = "low"
    UNKNOWN = "unknown"


class ReleaseEra(Enum):
    CLASSIC = "classic"
    NINETIES = "90s"
    TWO_THOUSANDS = "2000s"
    TWENTY_TENS = "2010s"
    RECENT = "recent"
    UNKNOWN = "unknown"


class ThematicTag(Enum):
    MYTHOLOGY = "mythology"
    HISTORICAL = "historical"
    PATRIOTISM = "patriotism"
    REVENGE = "revenge"
    FAMILY = "family"
    FRIENDSHIP = "friendship"
    ROMANCE = "romance"
    GOOD_VS_EVIL = "good-vs-evil"
    POWER_STRUGGLE = "power-struggle"
    REBELLION = "rebellion"
    SURVIVAL = "survival"
    CRIME_UNDERWORLD = "crime-underworld"
    SCI_FI_TECH = "sci-fi-tech"
    SUPERNATURAL = "supernatural"
    COMING_OF_AGE = "coming-of-age"
    SOCIAL_JUSTICE = "social-justice"
    HEIST = "heist"
    WAR = "war"


# Eras in chronological order; (first year, last year) with None for open ends
ERA_ORDER = [
    ReleaseEra.CLASSIC,
    ReleaseEra.NINETIES,
    ReleaseEra.TWO_THOUSANDS,
    ReleaseEra.TWENTY_TENS,
    ReleaseEra.RECENT,
]
ERA_YEAR_RANGES = {
    ReleaseEra.CLASSIC: (None, 1989),
    ReleaseEra.NINETIES: (1990, 1999),
    ReleaseEra.TWO_THOUSANDS: (2000, 2009),
    ReleaseEra.TWENTY_TENS: (2010, 2019),
    ReleaseEra.RECENT: (2020, None),
    ReleaseEra.UNKNOWN: (None, None),
}
ERA_DISTANCE_SIMILARITY = {0: 1.0, 1: 0.6, 2: 0.3}
ERA_FAR_SIMILARITY = 0.1
ERA_UNKNOWN_SIMILARITY = 0.5

# TMDB genre ids (movie and tv)
ACTION = 28
ADVENTURE = 12
ANIMATION = 16
COMEDY = 35
CRIME = 80
DOCUMENTARY = 99
DRAMA = 18
FAMILY = 10751
FANTASY = 14
HISTORY = 36
HORROR = 27
MUSIC = 10402
MYSTERY = 9648
ROMANCE = 10749
SCIENCE_FICTION = 878
THRILLER = 53
WAR = 10752
TV_ACTION_ADVENTURE = 10759
TV_KIDS = 10762
TV_SCI_FI_FANTASY = 10765
TV_WAR_POLITICS = 10768

ACTION_GENRES = frozenset({ACTION, ADVENTURE, THRILLER, TV_ACTION_ADVENTURE})
SPECTACLE_GENRES = frozenset({ACTION, ADVENTURE, SCIENCE_FICTION, FANTASY, WAR, TV_ACTION_ADVENTURE, TV_SCI_FI_FANTASY})
EPIC_SETTING_GENRES = frozenset({HISTORY, WAR, FANTASY, ADVENTURE, TV_WAR_POLITICS, TV_SCI_FI_FANTASY})
SUSPENSE_GENRES = frozenset({THRILLER, MYSTERY, CRIME, HORROR})
DRAMA_GENRES = frozenset({DRAMA, ROMANCE, MUSIC, FAMILY})
INTIMATE_GENRES = frozenset({DRAMA, ROMANCE, MUSIC, DOCUMENTARY})
FAMILY_GENRES = frozenset({FAMILY, ANIMATION, TV_KIDS})

GENRE_THEMES = {
    HISTORY: ThematicTag.HISTORICAL,
    WAR: ThematicTag.WAR,
    TV_WAR_POLITICS: ThematicTag.WAR,
    ROMANCE: ThematicTag.ROMANCE,
    FAMILY: ThematicTag.FAMILY,
    SCIENCE_FICTION: ThematicTag.SCI_FI_TECH,
    CRIME: ThematicTag.CRIME_UNDERWORLD,
    HORROR: ThematicTag.SUPERNATURAL,
}

EPIC_TERMS = [
    "kingdom", "empire", "king", "queen", "warrior", "battle", "war", "legend",
    "dynasty", "throne", "prince", "princess", "saga", "epic", "hero", "rajah",
    "raja", "rani", "yoddha", "sainik", "yuddh", "veera", "veer",
]
MASS_HERO_TERMS = [
    "mass", "rowdy", "gangster", "cop", "commissioner", "inspector",
    "rebel", "leader", "tiger", "lion", "sultan", "bhai",
    "one man army", "single-handedly", "larger than life",
]
PATRIOTIC_TERMS = [
    "patriot", "patriotic", "nation", "motherland", "freedom fighter",
    "independence", "army", "soldier", "soldiers", "border", "surgical strike",
    "desh", "bharat", "jawan", "martyr", "tricolour",
]
REVENGE_TERMS = [
    "revenge", "vengeance", "avenge", "avenges", "avenging", "retribution",
    "payback", "vendetta", "badla", "settle the score",
]
THEMATIC_TERMS = {
    ThematicTag.MYTHOLOGY: ["myth", "mythology", "mythological", "god", "gods", "goddess", "divine", "deity", "ramayana", "mahabharata"],
    ThematicTag.HISTORICAL: ["historical", "century", "dynasty", "emperor", "colonial", "ancient", "medieval"],
    ThematicTag.FAMILY: ["family", "father", "mother", "son", "daughter", "siblings"],
    ThematicTag.FRIENDSHIP: ["friend", "friends", "friendship", "brotherhood"],
    ThematicTag.ROMANCE: ["love", "romance", "lovers", "wedding"],
    ThematicTag.GOOD_VS_EVIL: ["evil", "tyrant", "villain", "demon", "darkness"],
    ThematicTag.POWER_STRUGGLE: ["throne", "power", "politics", "political", "succession", "crown"],
    ThematicTag.REBELLION: ["rebel", "rebellion", "revolution", "uprising", "revolt"],
    ThematicTag.SURVIVAL: ["survive", "survival", "stranded", "disaster", "apocalypse"],
    ThematicTag.CRIME_UNDERWORLD: ["gangster", "mafia", "underworld", "cartel", "smuggler", "smuggling", "mob"],
    ThematicTag.SCI_FI_TECH: ["robot", "future", "space", "alien", "time travel", "scientist"],
    ThematicTag.SUPERNATURAL: ["ghost", "spirit", "haunted", "curse", "possessed", "supernatural"],
    ThematicTag.COMING_OF_AGE: ["teen", "teenager", "school", "college", "growing up"],
    ThematicTag.SOCIAL_JUSTICE: ["corruption", "injustice", "caste", "discrimination", "farmers"],
    ThematicTag.HEIST: ["heist", "robbery", "thief", "thieves"],
}

# Mass-appeal contributions; maxima sum to 100 with the vote/popularity tiers
SCALE_APPEAL = {
    NarrativeScale.EPIC: 25,
    NarrativeScale.LARGE: 18,
    NarrativeScale.MEDIUM: 10,
    NarrativeScale.INTIMATE: 4,
    NarrativeScale.UNKNOWN: 6,
}
STYLE_APPEAL = {
    StorytellingStyle.COMMERCIAL_MASS: 25,
    StorytellingStyle.ACTION_SPECTACLE: 20,
    StorytellingStyle.COMEDY: 14,
    StorytellingStyle.THRILLER_SUSPENSE: 12,
    StorytellingStyle.EMOTIONAL_DRAMA: 10,
    StorytellingStyle.MIXED: 8,
    StorytellingStyle.ART_HOUSE: 2,
}
AUDIENCE_APPEAL = {
    AudienceType.MASS: 20,
    AudienceType.UNIVERSAL: 16,
    AudienceType.FAMILY: 14,
    AudienceType.YOUTH: 12,
    AudienceType.MATURE: 6,
    AudienceType.NICHE: 0,
}
VOTE_APPEAL_TIERS = ((10000, 20), (3000, 14), (1000, 9), (300, 4))
POPULARITY_APPEAL_TIERS = ((100.0, 10), (50.0, 6), (20.0, 3))

# (min votes for mega, big, mid); regional cinema is under-voted on TMDB
PRODUCTION_VOTE_TIERS = {
    False: (15000, 5000, 1000),
    True: (3000, 1000, 200),
}

# Defaults for curated entries that omit a field
KNOWN_TITLE_DEFAULTS = {
    "scale": NarrativeScale.LARGE,
    "style": StorytellingStyle.COMMERCIAL_MASS,
    "audience": AudienceType.MASS,
    "mass_appeal": 80,
    "production_scale": ProductionScale.BIG,
}


def release_era(year: int | None) -> ReleaseEra:
    """Bucket a release year; every year falls in exactly one era."""
    if year is None:
        return ReleaseEra.UNKNOWN
    if year < 1990:
        return ReleaseEra.CLASSIC
    if year < 2000:
        return ReleaseEra.NINETIES
    if year < 2010:
        return ReleaseEra.TWO_THOUSANDS
    if year < 2020:
        return ReleaseEra.TWENTY_TENS
    return ReleaseEra.RECENT


def era_year_range(era: ReleaseEra) -> tuple[int | None, int | None]:
    return ERA_YEAR_RANGES[era]


def era_similarity(a: ReleaseEra, b: ReleaseEra) -> float:
    if a is ReleaseEra.UNKNOWN or b is ReleaseEra.UNKNOWN:
        return ERA_UNKNOWN_SIMILARITY
    distance = abs(ERA_ORDER.index(a) - ERA_ORDER.index(b))
    return ERA_DISTANCE_SIMILARITY.get(distance, ERA_FAR_SIMILARITY)


@dataclass(frozen=True)
class CinematicProfile:
    scale: NarrativeScale
    style: StorytellingStyle
    audience: AudienceType
    mass_appeal: int
    themes: tuple[ThematicTag, ...] = ()
    production_scale: ProductionScale = ProductionScale.UNKNOWN
    release_era: ReleaseEra = ReleaseEra.UNKNOWN
    release_year: int | None = None
    is_epic: bool = False
    is_mass_hero: bool = False
    is_patriotic: bool = False
    is_revenge_driven: bool = False
    is_action_heavy: bool = False
    is_family_friendly: bool = False
    source: str = "heuristic"

    def to_dict(self) -> dict:
        return {
            "scale": self.scale.value,
            "style": self.style.value,
            "audience": self.audience.value,
            "mass_appeal": self.mass_appeal,
            "themes": [t.value for t in self.themes],
            "production_scale": self.production_scale.value,
            "release_era": self.release_era.value,
            "release_year": self.release_year,
            "is_epic": self.is_epic,
            "is_mass_hero": self.is_mass_hero,
            "is_patriotic": self.is_patriotic,
            "is_revenge_driven": self.is_revenge_driven,
            "is_action_heavy": self.is_action_heavy,
            "is_family_friendly": self.is_family_friendly,
            "source": self.source,
        }


@dataclass(frozen=True)
class KnownTitleProfile:
    """A curated profile for a high-profile title, matched by lower-cased key substring."""

    keys: tuple[str, ...]
    languages: tuple[str, ...] = ()
    scale: NarrativeScale = KNOWN_TITLE_DEFAULTS["scale"]
    style: StorytellingStyle = KNOWN_TITLE_DEFAULTS["style"]
    audience: AudienceType = KNOWN_TITLE_DEFAULTS["audience"]
    mass_appeal: int = KNOWN_TITLE_DEFAULTS["mass_appeal"]
    production_scale: ProductionScale = KNOWN_TITLE_DEFAULTS["production_scale"]
    themes: tuple[ThematicTag, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict) -> "KnownTitleProfile":
        keys = payload.get("keys") or [payload["key"]]
        return cls(
            keys=tuple(str(k).lower() for k in keys),
            languages=tuple(str(lang).lower() for lang in payload.get("languages", [])),
            scale=NarrativeScale(payload.get("scale", KNOWN_TITLE_DEFAULTS["scale"].value)),
            style=StorytellingStyle(payload.get("style", KNOWN_TITLE_DEFAULTS["style"].value)),
            audience=AudienceType(payload.get("audience", KNOWN_TITLE_DEFAULTS["audience"].value)),
            mass_appeal=int(clamp(int(payload.get("mass_appeal", KNOWN_TITLE_DEFAULTS["mass_appeal"])), 0, 100)),
            production_scale=ProductionScale(
                payload.get("production_scale", KNOWN_TITLE_DEFAULTS["production_scale"].value)
            ),
            themes=_dedupe(ThematicTag(t) for t in payload.get("themes", [])),
        )

    def matches(self, item: CandidateItem) -> bool:
        if self.languages and item.original_language and item.original_language not in self.languages:
            return False
        names = [item.title.lower(), (item.original_title or "").lower()]
        return any(key in name for key in self.keys for name in names)


class KnownTitleTable:
    """Immutable lookup of curated profiles, longest key checked first."""

    def __init__(self, entries: Iterable[KnownTitleProfile] = ()):
        self._entries = tuple(sorted(entries, key=lambda e: -max(len(k) for k in e.keys)))

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, item: CandidateItem) -> KnownTitleProfile | None:
        for entry in self._entries:
            if entry.matches(item):
                return entry
        return None

    @classmethod
    def from_list(cls, payload: list[dict]) -> "KnownTitleTable":
        return cls(KnownTitleProfile.from_dict(entry) for entry in payload)


def load_known_titles(path: str | Path | None = None) -> KnownTitleTable:
    """Load the curated title table; an empty table is returned if missing or invalid."""
    table_path = Path(path) if path else KNOWN_TITLES_PATH
    if not table_path.exists():
        logger.warning("Known-title table not found at %s; using heuristics only", table_path)
        return KnownTitleTable()

    try:
        payload = json.loads(table_path.read_text(encoding="utf-8"))
        table = KnownTitleTable.from_list(payload.get("titles", []))
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Failed to load known-title table from %s: %s", table_path, exc)
        return KnownTitleTable()

    logger.debug("Loaded %d known-title profiles from %s", len(table), table_path)
    return table


def _dedupe(tags: Iterable[ThematicTag]) -> tuple[ThematicTag, ...]:
    seen: dict[ThematicTag, None] = {}
    for tag in tags:
        seen.setdefault(tag, None)
    return tuple(seen)


def _term_pattern(terms: list[str]) -> re.Pattern:
    escaped = sorted((re.escape(t) for t in terms), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(escaped) + r")\b", re.IGNORECASE)


_EPIC_PATTERN = _term_pattern(EPIC_TERMS)
_MASS_HERO_PATTERN = _term_pattern(MASS_HERO_TERMS)
_PATRIOTIC_PATTERN = _term_pattern(PATRIOTIC_TERMS)
_REVENGE_PATTERN = _term_pattern(REVENGE_TERMS)
_THEME_PATTERNS = {tag: _term_pattern(terms) for tag, terms in THEMATIC_TERMS.items()}


def _hits(pattern: re.Pattern, text: str) -> set[str]:
    return {m.group(0).lower() for m in pattern.finditer(text)}


def _tier_points(value: float, tiers) -> int:
    for threshold, points in tiers:
        if value >= threshold:
            return points
    return 0


def mass_appeal_score(
    scale: NarrativeScale,
    style: StorytellingStyle,
    audience: AudienceType,
    vote_count: int,
    popularity: float,
) -> int:
    score = (
        SCALE_APPEAL[scale]
        + STYLE_APPEAL[style]
        + AUDIENCE_APPEAL[audience]
        + _tier_points(vote_count, VOTE_APPEAL_TIERS)
        + _tier_points(popularity, POPULARITY_APPEAL_TIERS)
    )
    return int(clamp(score, 0, 100))


def _production_scale(item: CandidateItem, is_regional: bool, is_epic: bool, is_action: bool) -> ProductionScale:
    if item.vote_count <= 0 and item.popularity <= 0:
        return ProductionScale.UNKNOWN

    mega, big, mid = PRODUCTION_VOTE_TIERS[is_regional]
    votes = item.vote_count
    if votes >= mega or (is_epic and is_action and votes >= big):
        return ProductionScale.MEGA
    if votes >= big or (is_action and votes >= mid * 2):
        return ProductionScale.BIG
    if votes >= mid:
        return ProductionScale.MID
    return ProductionScale.LOW


def _narrative_scale(genres: set[int], is_epic: bool, production: ProductionScale) -> NarrativeScale:
    large_production = production in (ProductionScale.MEGA, ProductionScale.BIG)
    if is_epic and (large_production or genres & EPIC_SETTING_GENRES):
        return NarrativeScale.EPIC
    if is_epic or (genres & SPECTACLE_GENRES and large_production):
        return NarrativeScale.LARGE
    if genres & INTIMATE_GENRES and not genres & SPECTACLE_GENRES and not genres & SUSPENSE_GENRES:
        return NarrativeScale.INTIMATE
    if genres or production is not ProductionScale.UNKNOWN:
        return NarrativeScale.MEDIUM
    return NarrativeScale.UNKNOWN


def _storytelling_style(
    item: CandidateItem,
    genres: set[int],
    is_mass_hero: bool,
    is_regional: bool,
    production: ProductionScale,
) -> StorytellingStyle:
    large_production = production in (ProductionScale.MEGA, ProductionScale.BIG)
    if is_mass_hero or (is_regional and genres & ACTION_GENRES and large_production):
        return StorytellingStyle.COMMERCIAL_MASS
    if genres & SPECTACLE_GENRES:
        return StorytellingStyle.ACTION_SPECTACLE
    if genres & SUSPENSE_GENRES:
        return StorytellingStyle.THRILLER_SUSPENSE
    if DOCUMENTARY in genres or (DRAMA in genres and item.vote_count < 300 and item.vote_average >= 7.0):
        return StorytellingStyle.ART_HOUSE
    if COMEDY in genres:
        return StorytellingStyle.COMEDY
    if genres & DRAMA_GENRES:
        return StorytellingStyle.EMOTIONAL_DRAMA
    return StorytellingStyle.MIXED


def _audience_type(
    item: CandidateItem,
    genres: set[int],
    style: StorytellingStyle,
    themes: tuple[ThematicTag, ...],
    is_family_friendly: bool,
) -> AudienceType:
    if is_family_friendly:
        return AudienceType.FAMILY
    if style is StorytellingStyle.COMMERCIAL_MASS:
        return AudienceType.MASS
    if style is StorytellingStyle.ART_HOUSE or item.vote_count < 100:
        return AudienceType.NICHE
    if HORROR in genres or {CRIME, THRILLER} <= genres:
        return AudienceType.MATURE
    if ThematicTag.COMING_OF_AGE in themes or (genres & {COMEDY, ROMANCE} and DRAMA not in genres):
        return AudienceType.YOUTH
    return AudienceType.UNIVERSAL


def _profile_from_known(entry: KnownTitleProfile, item: CandidateItem) -> CinematicProfile:
    themes = entry.themes
    return CinematicProfile(
        scale=entry.scale,
        style=entry.style,
        audience=entry.audience,
        mass_appeal=entry.mass_appeal,
        themes=themes,
        production_scale=entry.production_scale,
        release_era=release_era(item.release_year),
        release_year=item.release_year,
        is_epic=entry.scale is NarrativeScale.EPIC,
        is_mass_hero=entry.style is StorytellingStyle.COMMERCIAL_MASS,
        is_patriotic=ThematicTag.PATRIOTISM in themes,
        is_revenge_driven=ThematicTag.REVENGE in themes,
        is_action_heavy=entry.style in (StorytellingStyle.COMMERCIAL_MASS, StorytellingStyle.ACTION_SPECTACLE),
        is_family_friendly=entry.audience is AudienceType.FAMILY,
        source="curated",
    )


class CinematicProfiler:
    """Builds profiles against an injected known-title table."""

    def __init__(self, known_titles: KnownTitleTable | None = None):
        self.known_titles = known_titles if known_titles is not None else KnownTitleTable()

    def build(self, item: CandidateItem, is_regional: bool = False, overview: str | None = None) -> CinematicProfile:
        entry = self.known_titles.lookup(item)
        if entry is not None:
            logger.debug(f"Using curated profile for '{item.title}'")
            return _profile_from_known(entry, item)
        return self._heuristic_profile(item, is_regional, overview if overview is not None else item.overview)

    def _heuristic_profile(self, item: CandidateItem, is_regional: bool, overview: str) -> CinematicProfile:
        genres = set(item.genre_ids)
        title_text = item.title or ""
        text = f"{title_text} {overview or ''}"

        epic_hits = _hits(_EPIC_PATTERN, text)
        is_epic = bool(_hits(_EPIC_PATTERN, title_text)) or len(epic_hits) >= 2
        is_action = bool(genres & ACTION_GENRES)
        is_patriotic = bool(_hits(_PATRIOTIC_PATTERN, text))
        is_revenge = bool(_hits(_REVENGE_PATTERN, text))
        is_mass_hero = (bool(_hits(_MASS_HERO_PATTERN, text)) and is_action) or (is_regional and is_epic)
        is_family_friendly = bool(genres & FAMILY_GENRES) and HORROR not in genres

        themes = []
        if is_revenge:
            themes.append(ThematicTag.REVENGE)
        if is_patriotic:
            themes.append(ThematicTag.PATRIOTISM)
        for tag, pattern in _THEME_PATTERNS.items():
            if pattern.search(text):
                themes.append(tag)
        for genre_id in item.genre_ids:
            if genre_id in GENRE_THEMES:
                themes.append(GENRE_THEMES[genre_id])
        themes = _dedupe(themes)

        production = _production_scale(item, is_regional, is_epic, is_action)
        scale = _narrative_scale(genres, is_epic, production)
        style = _storytelling_style(item, genres, is_mass_hero, is_regional, production)
        audience = _audience_type(item, genres, style, themes, is_family_friendly)

        return CinematicProfile(
            scale=scale,
            style=style,
            audience=audience,
            mass_appeal=mass_appeal_score(scale, style, audience, item.vote_count, item.popularity),
            themes=themes,
            production_scale=production,
            release_era=release_era(item.release_year),
            release_year=item.release_year,
            is_epic=is_epic,
            is_mass_hero=is_mass_hero,
            is_patriotic=is_patriotic,
            is_revenge_driven=is_revenge,
            is_action_heavy=is_action,
            is_family_friendly=is_family_friendly,
            source="heuristic",
        )


def build_profile(
    item: CandidateItem,
    known_titles: KnownTitleTable | None = None,
    is_regional: bool = False,
    overview: str | None = None,
) -> CinematicProfile:
    """Convenience wrapper around ``CinematicProfiler(known_titles).build``."""
    return CinematicProfiler(known_titles).build(item, is_regional=is_regional, overview=overview)
