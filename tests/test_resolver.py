import pytest

from morelike.catalog import CandidateItem
from morelike.resolver import (
    extract_reference,
    find_reference_item,
    rank_candidates,
    score_candidate,
    title_tier,
)


def _item(id, title, year=None, media_type="movie", votes=0, popularity=0.0, language="en", original_title=""):
    return CandidateItem(
        id=id,
        title=title,
        media_type=media_type,
        original_language=language,
        release_year=year,
        vote_count=votes,
        popularity=popularity,
        original_title=original_title,
    )


@pytest.mark.parametrize(
    "text, title, year",
    [
        ("movies like Baahubali (2015)", "Baahubali", 2015),
        ("Any films similar to RRR?", "RRR", None),
        ("something like Temper 2015", "Temper", 2015),
        ('recommend me something like "Eega"', "Eega", None),
        ("films like Dangal, 2016.", "Dangal", 2016),
        ("shows like Breaking Bad [2008]", "Breaking Bad", 2008),
        ("If I loved Pushpa", "Pushpa", None),
    ],
)
def test_extract_reference(text, title, year):
    ref = extract_reference(text, current_year=2024)
    assert ref is not None
    assert ref.title == title
    assert ref.year == year
    assert ref.has_year is (year is not None)


def test_extract_reference_ignores_out_of_range_years():
    ref = extract_reference("movies like Blade Runner 2049", current_year=2024)
    assert ref.title == "Blade Runner 2049"
    assert ref.year is None


def test_extract_reference_returns_none_without_pattern_or_title():
    assert extract_reference("I want to watch a movie tonight") is None
    assert extract_reference("movies like a") is None
    assert extract_reference("") is None


def test_title_tiers():
    assert title_tier(_item(1, "Baahubali: The Beginning"), "Baahubali") == "exact"
    assert title_tier(_item(1, "The Dark Knight"), "dark knight") == "exact"
    assert title_tier(_item(1, "The Dark Knight Rises"), "Dark Knight") == "prefix"
    assert title_tier(_item(1, "The Dark Knight"), "Knight") == "substring"
    assert title_tier(_item(1, "The Dark Knight"), "Knight Dark") == "fuzzy"
    assert title_tier(_item(1, "The Dark Knight"), "Dark City") == "overlap"
    assert title_tier(_item(1, "The Dark Knight"), "Zzz") is None


def test_title_tier_checks_original_title():
    item = _item(1, "Robot", language="ta", original_title="Enthiran")
    assert title_tier(item, "Enthiran") == "exact"


def test_score_candidate_adds_year_and_popularity_bonuses():
    item = _item(256040, "Baahubali: The Beginning", year=2015, votes=5000, popularity=60.0)

    exact_year = score_candidate(item, "Baahubali", 2015)
    assert exact_year.score == 100 + 30 + 5 + 5
    assert exact_year.tier == "exact"
    assert exact_year.year_matched is True

    assert score_candidate(item, "Baahubali", 2016).score == 100 + 15 + 5 + 5
    assert score_candidate(item, "Baahubali", 2018).score == 100 + 5 + 5 + 5
    assert score_candidate(item, "Baahubali", 2020).score == 100 + 5 + 5
    assert score_candidate(item, "Baahubali").year_matched is False


def test_rank_candidates_is_stable_on_ties():
    first = _item(1, "Temper", year=2015)
    second = _item(2, "Temper", year=2016)
    ranked = rank_candidates([first, second], "Temper")
    assert [s.item.id for s in ranked] == [1, 2]


def test_strong_movie_match_skips_series_search(stub_gateway):
    gateway = stub_gateway(movies=[_item(256040, "Baahubali: The Beginning", year=2015, language="te")])

    match = find_reference_item(gateway, "Baahubali", 2015)

    assert match.found
    assert match.item.id == 256040
    assert match.media_type == "movie"
    assert match.confidence == "exact"
    assert gateway.searches == [("Baahubali", "movie")]


def test_series_wins_when_movie_match_is_weak(stub_gateway):
    gateway = stub_gateway(
        movies=[_item(5, "Bad Breaking Day")],
        tv=[_item(1396, "Breaking Bad", media_type="tv", year=2008)],
    )

    match = find_reference_item(gateway, "Breaking Bad")

    assert match.media_type == "tv"
    assert match.item.id == 1396
    assert match.confidence == "exact"
    assert gateway.searches == [("Breaking Bad", "movie"), ("Breaking Bad", "tv")]


def test_weak_movie_kept_when_series_scores_lower(stub_gateway):
    gateway = stub_gateway(
        movies=[_item(5, "Knight Dark")],
        tv=[_item(6, "Dark Shadows", media_type="tv")],
    )

    match = find_reference_item(gateway, "The Dark Knight")

    assert match.media_type == "movie"
    assert match.item.id == 5
    assert match.confidence == "low"


def test_year_match_raises_coarse_confidence(stub_gateway):
    gateway = stub_gateway(movies=[_item(9, "The Last Knight Returns", year=2001)])

    match = find_reference_item(gateway, "Knight", 2001)

    assert match.confidence == "high"


def test_falls_back_to_first_raw_result(stub_gateway):
    gateway = stub_gateway(movies=[_item(7, "Completely Different"), _item(8, "Also Unrelated")])

    match = find_reference_item(gateway, "Zyx Abc")

    assert match.item.id == 7
    assert match.confidence == "low"
    assert [c.id for c in match.candidates] == [7, 8]
    assert [c.id for c in match.alternatives] == [8]


def test_no_results_returns_empty_match(stub_gateway):
    match = find_reference_item(stub_gateway(), "Nothing Here")

    assert not match.found
    assert match.confidence == "low"
    assert match.candidates == []


def test_catalog_failure_is_treated_as_no_results(stub_gateway):
    gateway = stub_gateway(movies=[_item(1, "Temper")], fail=True)

    match = find_reference_item(gateway, "Temper")

    assert not match.found
    assert len(gateway.searches) == 2
