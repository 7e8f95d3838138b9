import httpx
import pytest

from morelike import catalog, utils
from morelike.catalog import CatalogError, TMDBCatalog, candidate_from_tmdb, details_from_tmdb

BASE_URL = "https://api.test/3"


def _catalog(handler):
    return TMDBCatalog(api_key="test-key", base_url=BASE_URL, transport=httpx.MockTransport(handler))


def test_candidate_from_tmdb_movie_and_tv():
    movie = candidate_from_tmdb(
        {
            "id": 256040,
            "title": "Baahubali: The Beginning",
            "original_title": "బాహుబలి: ది బిగినింగ్",
            "original_language": "TE",
            "release_date": "2015-07-10",
            "genre_ids": [28, 12],
            "vote_count": 2500,
            "popularity": 30.5,
            "vote_average": 7.5,
        },
        "movie",
    )
    assert movie.key == ("movie", 256040)
    assert movie.original_language == "te"
    assert movie.release_year == 2015
    assert movie.genre_ids == (28, 12)
    assert movie.original_title == "బాహుబలి: ది బిగినింగ్"

    show = candidate_from_tmdb(
        {"id": 1396, "name": "Breaking Bad", "first_air_date": "2008-01-20", "origin_country": ["us"]},
        "tv",
    )
    assert show.title == "Breaking Bad"
    assert show.release_year == 2008
    assert show.countries == ("US",)
    assert show.vote_count == 0


def test_candidate_from_tmdb_handles_missing_dates():
    item = candidate_from_tmdb({"id": 1, "title": "Untitled", "release_date": ""})
    assert item.release_year is None
    assert item.overview == ""


def test_details_from_tmdb():
    details = details_from_tmdb({
        "production_countries": [{"iso_3166_1": "in"}, {"name": "no code"}],
        "spoken_languages": [{"iso_639_1": "TE"}, {"iso_639_1": "hi"}],
        "genres": [{"id": 28, "name": "Action"}],
        "overview": "A warrior rises.",
    })
    assert details.production_countries == ["IN"]
    assert details.spoken_languages == ["te", "hi"]
    assert details.genres == ["Action"]
    assert details.overview == "A warrior rises."


def test_search_titles_sends_query_and_api_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={
            "results": [
                {"id": 1, "title": "Temper", "release_date": "2015-02-13", "original_language": "te"},
                {"title": "no id, skipped"},
            ],
            "total_pages": 3,
        })

    with _catalog(handler) as client:
        page = client.search_titles("Temper")

    assert seen["path"] == "/3/search/movie"
    assert seen["params"]["query"] == "Temper"
    assert seen["params"]["api_key"] == "test-key"
    assert seen["params"]["page"] == "1"
    assert [r.title for r in page.results] == ["Temper"]
    assert page.total_pages == 3


def test_get_details_hits_media_path():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/3/tv/1396"
        return httpx.Response(200, json={"overview": "Chemistry teacher.", "production_countries": [{"iso_3166_1": "US"}]})

    with _catalog(handler) as client:
        details = client.get_details(1396, "tv")

    assert details.production_countries == ["US"]


def test_unknown_media_type_is_rejected():
    with _catalog(lambda request: httpx.Response(200, json={})) as client:
        with pytest.raises(ValueError):
            client.search_titles("x", media_type="person")
        with pytest.raises(ValueError):
            client.get_details(1, media_type="person")


def test_http_error_raises_catalog_error():
    with _catalog(lambda request: httpx.Response(404, json={"status_message": "not found"})) as client:
        with pytest.raises(CatalogError):
            client.get_details(999)


def test_malformed_json_raises_catalog_error():
    with _catalog(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
        with pytest.raises(CatalogError):
            client.search_titles("Temper")


def test_non_object_payload_raises_catalog_error():
    with _catalog(lambda request: httpx.Response(200, json=[1, 2, 3])) as client:
        with pytest.raises(CatalogError):
            client.search_titles("Temper")


def test_rate_limit_waits_for_retry_after(monkeypatch):
    waits = []
    monkeypatch.setattr(catalog.time, "sleep", lambda s: waits.append(s))
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            return httpx.Response(429, headers={"Retry-After": "2"})
        return httpx.Response(200, json={"results": [], "total_pages": 0})

    with _catalog(handler) as client:
        page = client.search_titles("RRR")

    assert page.results == []
    assert waits == [2]
    assert calls["n"] == 2


def test_rate_limit_gives_up_after_max_retries(monkeypatch):
    monkeypatch.setattr(catalog.time, "sleep", lambda s: None)

    with _catalog(lambda request: httpx.Response(429, headers={"Retry-After": "45"})) as client:
        with pytest.raises(CatalogError):
            client.search_titles("RRR")


def test_transport_errors_are_retried_then_wrapped(monkeypatch):
    monkeypatch.setattr(utils.time, "sleep", lambda s: None)
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        raise httpx.ConnectError("connection refused", request=request)

    with _catalog(handler) as client:
        with pytest.raises(CatalogError):
            client.search_titles("Eega")

    assert calls["n"] == catalog.MAX_HTTP_RETRIES
