import logging

from morelike.catalog import CandidateItem, CatalogDetails, CatalogError
from morelike.confidence import ConfidenceLevel
from morelike.filters import CinemaIndustry, CulturalContext
from morelike.pipeline import analyze_reference, similar_titles_intro
from morelike.profiler import (
    ACTION,
    AudienceType,
    CinematicProfile,
    NarrativeScale,
    ReleaseEra,
    StorytellingStyle,
    load_known_titles,
)


def _item(id, title, year=None, votes=0, popularity=0.0, language="en", genres=(ACTION,)):
    return CandidateItem(
        id=id,
        title=title,
        original_language=language,
        release_year=year,
        genre_ids=tuple(genres),
        vote_count=votes,
        popularity=popularity,
    )


BAAHUBALI = [
    _item(256040, "Baahubali: The Beginning", 2015, votes=12000, popularity=40.0, language="te"),
    _item(350312, "Baahubali 2: The Conclusion", 2017, votes=11000, popularity=45.0, language="te"),
]

TEMPER = [
    _item(1, "Temper", 2015, votes=400, popularity=5.0, language="te"),
    _item(2, "Temper", 2016, votes=350, language="en"),
    _item(3, "Temper", 2010, votes=300, language="es"),
    _item(4, "Temper", 2012, votes=250, language="hi"),
]


def _profile(**overrides):
    fields = dict(
        scale=NarrativeScale.MEDIUM,
        style=StorytellingStyle.EMOTIONAL_DRAMA,
        audience=AudienceType.UNIVERSAL,
        mass_appeal=60,
        release_era=ReleaseEra.TWENTY_TENS,
    )
    fields.update(overrides)
    return CinematicProfile(**fields)


def test_exact_match_is_profiled_and_filtered(stub_gateway):
    details = {("movie", 256040): CatalogDetails(production_countries=["IN"], overview="A kingdom epic.")}
    gateway = stub_gateway(movies=BAAHUBALI, details=details)

    analysis = analyze_reference("movies like Baahubali (2015)", gateway, load_known_titles(), current_year=2024)

    assert analysis.extracted.title == "Baahubali"
    assert analysis.match.item.id == 256040
    assert analysis.confidence.level is ConfidenceLevel.EXACT
    assert analysis.should_proceed is True
    assert analysis.context.industry is CinemaIndustry.TOLLYWOOD
    assert analysis.context.countries == ("IN",)
    assert analysis.profile.source == "curated"
    assert analysis.profile.mass_appeal == 95
    assert analysis.filters.language_policy == "boost"
    assert analysis.filters.include_languages == ("te", "hi", "ta", "kn")
    assert analysis.intro == (
        "If you liked **Baahubali: The Beginning**, you might enjoy these "
        "Telugu cinema (Tollywood) epic action movies:"
    )
    assert gateway.searches == [("Baahubali", "movie")]


def test_ambiguous_match_is_not_profiled(stub_gateway):
    gateway = stub_gateway(movies=TEMPER)

    analysis = analyze_reference("something like Temper", gateway, load_known_titles(), current_year=2024)

    assert analysis.confidence.level is ConfidenceLevel.AMBIGUOUS
    assert analysis.confidence.behavior.should_clarify is True
    assert analysis.should_proceed is False
    assert analysis.profile is None
    assert analysis.filters is None
    assert analysis.intro is None


def test_no_reference_in_text(stub_gateway):
    gateway = stub_gateway(movies=BAAHUBALI)

    assert analyze_reference("what should I watch tonight?", gateway) is None
    assert gateway.searches == []


def test_no_catalog_results(stub_gateway):
    analysis = analyze_reference("movies like Nothing Matches", stub_gateway(), current_year=2024)

    assert analysis.match.item is None
    assert analysis.profile is None
    assert analysis.should_proceed is False


def test_details_failure_still_profiles(stub_gateway, caplog):
    class FlakyDetailsGateway(stub_gateway):
        def get_details(self, item_id, media_type="movie"):
            raise CatalogError("details timed out")

    gateway = FlakyDetailsGateway(movies=BAAHUBALI)

    with caplog.at_level(logging.WARNING):
        analysis = analyze_reference("movies like Baahubali (2015)", gateway, load_known_titles(), current_year=2024)

    assert analysis.profile is not None
    assert analysis.profile.source == "curated"
    assert analysis.context.industry is CinemaIndustry.TOLLYWOOD
    assert "Details unavailable for movie 256040" in caplog.text


def test_similar_titles_intro_variants():
    regional = CulturalContext(industry=CinemaIndustry.KOLLYWOOD, original_language="ta", is_regional=True)
    korean = CulturalContext(industry=CinemaIndustry.KOREAN, original_language="ko", is_korean=True)
    japanese = CulturalContext(industry=CinemaIndustry.JAPANESE, original_language="ja", is_japanese=True)
    hollywood = CulturalContext(industry=CinemaIndustry.HOLLYWOOD, original_language="en", is_mainstream_english=True)

    assert similar_titles_intro("Vikram", regional, _profile(is_mass_hero=True)) == (
        "If you liked **Vikram**, you might enjoy these Tamil cinema (Kollywood) epic action movies:"
    )
    assert similar_titles_intro("96", regional, _profile()) == (
        "If you liked **96**, you might enjoy these Tamil cinema (Kollywood) films:"
    )
    assert similar_titles_intro("Oldboy", korean, _profile()).endswith("these Korean films:")
    assert similar_titles_intro("Tampopo", japanese, _profile()).endswith("these Japanese films:")
    assert similar_titles_intro("Heat", hollywood, _profile()).endswith("these similar films:")
