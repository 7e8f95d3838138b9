"""
Catalog gateway: the data types the core reads and a TMDB-backed client.

The core only ever reads from the catalog. Anything that implements
``search_titles`` and ``get_details`` can stand in for ``TMDBCatalog``
(tests use small in-memory stubs).
"""

from __future__ import annotations

import time
import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from .config import (
    TMDB_API_KEY,
    TMDB_BASE_URL,
    HTTP_TIMEOUT,
    MAX_HTTP_RETRIES,
    RETRY_INITIAL_DELAY,
    MAX_429_RETRY_SECONDS,
    DEFAULT_RETRY_AFTER,
)
from .utils import retry_with_backoff

logger = logging.getLogger(__name__)

MEDIA_TYPES = ("movie", "tv")


class CatalogError(Exception):
    """Raised when the catalog cannot be reached or returns an unusable response."""


@dataclass(frozen=True)
class CandidateItem:
    """A raw catalog search record."""

    id: int
    title: str
    media_type: str = "movie"
    original_language: str = ""
    countries: tuple[str, ...] = ()
    genre_ids: tuple[int, ...] = ()
    release_year: int | None = None
    vote_count: int = 0
    popularity: float = 0.0
    vote_average: float = 0.0
    overview: str = ""
    original_title: str = ""

    @property
    def key(self) -> tuple[str, int]:
        return (self.media_type, self.id)


@dataclass
class CatalogDetails:
    """Detail record for a single title."""

    production_countries: list[str] = field(default_factory=list)
    spoken_languages: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    overview: str = ""


@dataclass
class SearchPage:
    results: list[CandidateItem] = field(default_factory=list)
    total_pages: int = 0


class CatalogGateway(Protocol):
    def search_titles(self, query: str, media_type: str = "movie", page: int = 1) -> SearchPage:
        ...

    def get_details(self, item_id: int, media_type: str = "movie") -> CatalogDetails:
        ...


def _parse_year(date_str: str | None) -> int | None:
    """Extract the year from an ISO date like '2015-07-10'."""
    if not date_str or len(date_str) < 4 or not date_str[:4].isdigit():
        return None
    return int(date_str[:4])


def candidate_from_tmdb(payload: dict, media_type: str = "movie") -> CandidateItem:
    """
    Build a CandidateItem from a TMDB search result.

    Movies carry ``title``/``release_date``; series carry ``name``/
    ``first_air_date`` and ``origin_country``.
    """
    if media_type == "tv":
        title = payload.get("name") or payload.get("title") or ""
        original_title = payload.get("original_name") or title
        release_year = _parse_year(payload.get("first_air_date"))
    else:
        title = payload.get("title") or payload.get("name") or ""
        original_title = payload.get("original_title") or title
        release_year = _parse_year(payload.get("release_date"))

    return CandidateItem(
        id=int(payload["id"]),
        title=title,
        media_type=media_type,
        original_language=(payload.get("original_language") or "").lower(),
        countries=tuple(c.upper() for c in payload.get("origin_country") or []),
        genre_ids=tuple(int(g) for g in payload.get("genre_ids") or []),
        release_year=release_year,
        vote_count=int(payload.get("vote_count") or 0),
        popularity=float(payload.get("popularity") or 0.0),
        vote_average=float(payload.get("vote_average") or 0.0),
        overview=payload.get("overview") or "",
        original_title=original_title,
    )


def details_from_tmdb(payload: dict) -> CatalogDetails:
    return CatalogDetails(
        production_countries=[
            c["iso_3166_1"].upper() for c in payload.get("production_countries") or [] if c.get("iso_3166_1")
        ],
        spoken_languages=[
            lang["iso_639_1"].lower() for lang in payload.get("spoken_languages") or [] if lang.get("iso_639_1")
        ],
        genres=[g["name"] for g in payload.get("genres") or [] if g.get("name")],
        overview=payload.get("overview") or "",
    )


class TMDBCatalog:
    """Synchronous TMDB v3 client implementing the catalog gateway contract."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float = HTTP_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key or TMDB_API_KEY
        if not self.api_key:
            logger.warning("TMDB_API_KEY is not set; catalog requests will likely be rejected")
        self.client = httpx.Client(
            base_url=base_url or TMDB_BASE_URL,
            headers={"User-Agent": "morelike/0.1", "Accept": "application/json"},
            params={"api_key": self.api_key} if self.api_key else None,
            follow_redirects=True,
            timeout=timeout,
            transport=transport,
        )

    @retry_with_backoff(
        max_retries=MAX_HTTP_RETRIES,
        initial_delay=RETRY_INITIAL_DELAY,
        exceptions=(httpx.TransportError,),
    )
    def _fetch(self, path: str, params: dict) -> httpx.Response:
        return self.client.get(path, params=params)

    def _get_json(self, path: str, params: dict | None = None) -> dict:
        total_429_wait_time = 0

        while True:
            try:
                resp = self._fetch(path, params or {})
            except httpx.TransportError as e:
                raise CatalogError(f"Request error on {path}: {e}") from e

            if resp.status_code == 429:
                try:
                    retry_after = int(resp.headers.get("Retry-After", DEFAULT_RETRY_AFTER))
                except ValueError:
                    retry_after = DEFAULT_RETRY_AFTER

                if total_429_wait_time + retry_after > MAX_429_RETRY_SECONDS:
                    logger.error(f"Max 429 wait time exceeded for {path} (waited {total_429_wait_time}s)")
                    raise CatalogError(f"Rate limited on {path}")

                logger.warning(f"Rate limited (429) on {path}, waiting {retry_after}s...")
                time.sleep(retry_after)
                total_429_wait_time += retry_after
                continue

            try:
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(f"HTTP error on {path}: {e}")
                raise CatalogError(f"HTTP {resp.status_code} on {path}") from e

            try:
                payload = resp.json()
            except ValueError as e:
                raise CatalogError(f"Malformed JSON from {path}") from e

            if not isinstance(payload, dict):
                raise CatalogError(f"Unexpected payload type from {path}: {type(payload).__name__}")
            return payload

    def search_titles(self, query: str, media_type: str = "movie", page: int = 1) -> SearchPage:
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")

        payload = self._get_json(f"/search/{media_type}", {"query": query, "page": page})
        results = []
        for raw in payload.get("results") or []:
            try:
                results.append(candidate_from_tmdb(raw, media_type))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug(f"Skipping malformed search result for '{query}': {e}")

        logger.debug(f"Search '{query}' ({media_type}, page {page}): {len(results)} results")
        return SearchPage(results=results, total_pages=int(payload.get("total_pages") or 0))

    def get_details(self, item_id: int, media_type: str = "movie") -> CatalogDetails:
        if media_type not in MEDIA_TYPES:
            raise ValueError(f"Unknown media type: {media_type}")
        return details_from_tmdb(self._get_json(f"/{media_type}/{item_id}"))

    def close(self):
        self.client.close()

    def __enter__(self) -> "TMDBCatalog":
        return self

    def __exit__(self, *exc_info):
        self.close()
