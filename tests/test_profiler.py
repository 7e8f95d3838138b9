import pytest

from morelike.catalog import CandidateItem
from morelike.profiler import (
    ACTION,
    DRAMA,
    HISTORY,
    AudienceType,
    CinematicProfiler,
    KnownTitleTable,
    NarrativeScale,
    ProductionScale,
    ReleaseEra,
    StorytellingStyle,
    ThematicTag,
    build_profile,
    era_similarity,
    era_year_range,
    load_known_titles,
    release_era,
)


def _item(title, language="en", year=2015, genres=(), votes=0, popularity=0.0, vote_average=0.0, overview=""):
    return CandidateItem(
        id=abs(hash(title)) % 100000,
        title=title,
        original_language=language,
        release_year=year,
        genre_ids=tuple(genres),
        vote_count=votes,
        popularity=popularity,
        vote_average=vote_average,
        overview=overview,
    )


@pytest.fixture(scope="module")
def known_titles():
    return load_known_titles()


@pytest.mark.parametrize(
    "year, era",
    [
        (None, ReleaseEra.UNKNOWN),
        (1975, ReleaseEra.CLASSIC),
        (1989, ReleaseEra.CLASSIC),
        (1990, ReleaseEra.NINETIES),
        (2009, ReleaseEra.TWO_THOUSANDS),
        (2010, ReleaseEra.TWENTY_TENS),
        (2019, ReleaseEra.TWENTY_TENS),
        (2020, ReleaseEra.RECENT),
    ],
)
def test_release_era_buckets(year, era):
    assert release_era(year) is era


def test_era_ranges_and_similarity():
    assert era_year_range(ReleaseEra.NINETIES) == (1990, 1999)
    assert era_year_range(ReleaseEra.RECENT) == (2020, None)

    assert era_similarity(ReleaseEra.TWENTY_TENS, ReleaseEra.TWENTY_TENS) == 1.0
    assert era_similarity(ReleaseEra.TWENTY_TENS, ReleaseEra.RECENT) == 0.6
    assert era_similarity(ReleaseEra.TWENTY_TENS, ReleaseEra.NINETIES) == 0.3
    assert era_similarity(ReleaseEra.CLASSIC, ReleaseEra.RECENT) == 0.1
    assert era_similarity(ReleaseEra.UNKNOWN, ReleaseEra.RECENT) == 0.5


def test_packaged_known_titles_load(known_titles):
    assert len(known_titles) >= 30


def test_curated_profile_for_known_title(known_titles):
    item = _item("Baahubali: The Beginning", language="te", year=2015, genres=(ACTION,), votes=10)

    profile = CinematicProfiler(known_titles).build(item, is_regional=True)

    assert profile.source == "curated"
    assert profile.scale is NarrativeScale.EPIC
    assert profile.style is StorytellingStyle.COMMERCIAL_MASS
    assert profile.audience is AudienceType.MASS
    assert profile.mass_appeal == 95
    assert profile.production_scale is ProductionScale.MEGA
    assert profile.release_era is ReleaseEra.TWENTY_TENS
    assert profile.themes == (
        ThematicTag.MYTHOLOGY,
        ThematicTag.POWER_STRUGGLE,
        ThematicTag.REVENGE,
        ThematicTag.GOOD_VS_EVIL,
    )
    assert profile.is_epic and profile.is_mass_hero and profile.is_revenge_driven
    assert not profile.is_patriotic


def test_curated_lookup_respects_languages(known_titles):
    english = _item("Temper", language="en", genres=(DRAMA,), votes=400)
    telugu = _item("Temper", language="te", genres=(ACTION,), votes=400)
    unknown_language = _item("Baahubali", language="")

    assert build_profile(english, known_titles).source == "heuristic"
    assert build_profile(telugu, known_titles).mass_appeal == 78
    assert build_profile(unknown_language, known_titles).source == "curated"


def test_longest_key_wins():
    table = KnownTitleTable.from_list([
        {"keys": ["kgf"], "mass_appeal": 70},
        {"keys": ["kgf chapter 2"], "mass_appeal": 95},
    ])

    profile = build_profile(_item("KGF Chapter 2", language="kn"), table)

    assert profile.mass_appeal == 95


def test_curated_defaults_fill_missing_fields():
    table = KnownTitleTable.from_list([{"keys": ["pokiri"]}])

    profile = build_profile(_item("Pokiri", language="te"), table)

    assert profile.scale is NarrativeScale.LARGE
    assert profile.style is StorytellingStyle.COMMERCIAL_MASS
    assert profile.audience is AudienceType.MASS
    assert profile.mass_appeal == 80
    assert profile.production_scale is ProductionScale.BIG
    assert profile.themes == ()


def test_missing_or_invalid_table_is_empty(tmp_path):
    assert len(load_known_titles(tmp_path / "missing.json")) == 0

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    assert len(load_known_titles(broken)) == 0

    bad_enum = tmp_path / "bad_enum.json"
    bad_enum.write_text('{"titles": [{"keys": ["x"], "scale": "gigantic"}]}', encoding="utf-8")
    assert len(load_known_titles(bad_enum)) == 0


def test_heuristic_epic_spectacle():
    item = _item(
        "The Last Kingdom War",
        genres=(ACTION, HISTORY),
        votes=6000,
        popularity=80.0,
        overview="A warrior fights for his throne and takes revenge.",
    )

    profile = build_profile(item)

    assert profile.source == "heuristic"
    assert profile.is_epic is True
    assert profile.is_mass_hero is False
    assert profile.is_action_heavy is True
    assert profile.production_scale is ProductionScale.MEGA
    assert profile.scale is NarrativeScale.EPIC
    assert profile.style is StorytellingStyle.ACTION_SPECTACLE
    assert profile.audience is AudienceType.UNIVERSAL
    assert profile.themes == (ThematicTag.REVENGE, ThematicTag.POWER_STRUGGLE, ThematicTag.HISTORICAL)
    assert profile.mass_appeal == 25 + 20 + 16 + 14 + 6


def test_heuristic_regional_mass_hero():
    item = _item("Rowdy Raja", language="te", genres=(ACTION, DRAMA), votes=1500, popularity=25.0)

    profile = build_profile(item, is_regional=True)

    assert profile.is_epic is True
    assert profile.is_mass_hero is True
    assert profile.production_scale is ProductionScale.MEGA
    assert profile.scale is NarrativeScale.EPIC
    assert profile.style is StorytellingStyle.COMMERCIAL_MASS
    assert profile.audience is AudienceType.MASS
    assert profile.mass_appeal == 25 + 25 + 20 + 9 + 3


def test_heuristic_art_house_drama():
    item = _item("Quiet Rooms", genres=(DRAMA,), votes=120, popularity=3.0, vote_average=7.5)

    profile = build_profile(item)

    assert profile.production_scale is ProductionScale.LOW
    assert profile.scale is NarrativeScale.INTIMATE
    assert profile.style is StorytellingStyle.ART_HOUSE
    assert profile.audience is AudienceType.NICHE
    assert profile.mass_appeal == 4 + 2
    assert profile.is_epic is False


def test_overview_argument_overrides_search_overview():
    item = _item("Plain Title", genres=(ACTION,), votes=500, overview="")

    profile = build_profile(item, overview="A soldier defends the motherland on the border.")

    assert profile.is_patriotic is True
    assert ThematicTag.PATRIOTISM in profile.themes


def test_profiling_is_deterministic(known_titles):
    item = _item("Rowdy Raja", language="te", genres=(ACTION,), votes=1500, popularity=25.0)
    profiler = CinematicProfiler(known_titles)

    assert profiler.build(item, is_regional=True) == profiler.build(item, is_regional=True)
    assert profiler.build(item, is_regional=True).to_dict()["style"] == "commercial-mass"


def test_everyday_words_do_not_make_a_mass_hero():
    item = _item(
        "Night Shift",
        genres=(ACTION,),
        votes=500,
        popularity=10.0,
        overview="Anna and her boss don't trust the new driver after a job goes wrong.",
    )

    profile = build_profile(item)

    assert profile.is_mass_hero is False
    assert profile.style is not StorytellingStyle.COMMERCIAL_MASS
