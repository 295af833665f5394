"""Async wrapper around the TMDb API: id lookups and forgiving title search."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Callable, Iterable

import httpx

from movienight.core.config import get_settings
from movienight.services.models import CatalogMatch, FilmCandidate, MediaKind, NormalizedFilm
from movienight.services.normalizer import extract_title, extract_year, normalize_film


logger = logging.getLogger(__name__)


class TMDbError(Exception):
    """Base exception for TMDb-related failures."""


class TMDbNotFound(TMDbError):
    """Raised when TMDb has no record for the given id or query."""


_PUNCTUATION = re.compile(r"[:\-–—]")
_YEAR = re.compile(r"\d{4}")


def _exact_title(candidate: FilmCandidate) -> str:
    return candidate.title


def _title_with_year(candidate: FilmCandidate) -> str:
    return f"{candidate.title} {candidate.year}".strip()


def _suggested_query(candidate: FilmCandidate) -> str:
    return candidate.suggested_query


def _title_without_punctuation(candidate: FilmCandidate) -> str:
    return _PUNCTUATION.sub(" ", candidate.title)


# Evaluated in order; the first query that yields any result wins.
SEARCH_STRATEGIES: tuple[Callable[[FilmCandidate], str], ...] = (
    _exact_title,
    _title_with_year,
    _suggested_query,
    _title_without_punctuation,
)


def build_search_queries(candidate: FilmCandidate) -> list[str]:
    queries: list[str] = []
    for strategy in SEARCH_STRATEGIES:
        query = (strategy(candidate) or "").strip()
        if query and query not in queries:
            queries.append(query)
    return queries


def filter_year(candidate: FilmCandidate) -> str | None:
    year = (candidate.year or "").strip()
    return year if _YEAR.fullmatch(year) else None


def pick_best_result(results: list[dict[str, Any]], year: str | None) -> dict[str, Any]:
    """Prefer the hit released in ``year``; otherwise TMDb's own first hit."""
    if year:
        for result in results:
            if extract_year(result) == year:
                return result
    return results[0]


def to_catalog_match(result: dict[str, Any], kind: MediaKind) -> CatalogMatch:
    return CatalogMatch(
        id=int(result["id"]),
        title=extract_title(result),
        year=extract_year(result),
        kind=kind,
        poster_path=result.get("poster_path"),
        backdrop_path=result.get("backdrop_path"),
        vote_average=result.get("vote_average"),
    )


class TMDbClient:
    """TMDb HTTP client using bearer-token or API-key auth."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        access_token: str | None = None,
        base_url: str | None = None,
        language: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key or settings.tmdb_api_key
        self.access_token = access_token or settings.tmdb_access_token
        self.base_url = (base_url or settings.tmdb_base_url).rstrip("/")
        self.language = language or settings.tmdb_language
        self.timeout = timeout or settings.tmdb_timeout
        self._transport = transport

    async def _request(self, path: str, *, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self.access_token and not self.api_key:
            raise TMDbError("TMDB_ACCESS_TOKEN or TMDB_API_KEY must be configured")
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        query: dict[str, Any] = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        else:
            query["api_key"] = self.api_key
        if params:
            query.update({k: v for k, v in params.items() if v is not None})
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, params=query, headers=headers)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code == 404:
                    raise TMDbNotFound(f"TMDb has no resource at {path}") from exc
                raise TMDbError(f"TMDb returned {exc.response.status_code} for {path}") from exc
            except httpx.HTTPError as exc:
                raise TMDbError(f"TMDb request to {path} failed: {exc!r}") from exc
        try:
            payload = response.json()
        except ValueError as exc:
            raise TMDbError(f"TMDb returned invalid JSON for {path}") from exc
        if not isinstance(payload, dict):
            raise TMDbError(f"TMDb returned a {type(payload).__name__} instead of an object for {path}")
        return payload

    async def get_details(self, tmdb_id: int | str, kind: MediaKind) -> dict[str, Any]:
        payload = await self._request(
            f"/{kind.tmdb_path}/{tmdb_id}",
            params={
                "language": self.language,
                "append_to_response": "credits,external_ids",
            },
        )
        logger.debug("TMDb details payload: %s", payload)
        return payload

    @staticmethod
    def _normalize(record: dict[str, Any], kind: MediaKind) -> NormalizedFilm:
        try:
            return normalize_film(record, kind)
        except (AttributeError, TypeError, ValueError) as exc:
            raise TMDbError(f"TMDb returned a malformed {kind.tmdb_path} record: {exc}") from exc

    async def lookup_by_id(
        self,
        tmdb_id: int | str,
        hinted_kind: MediaKind = MediaKind.FILM,
    ) -> NormalizedFilm:
        """Fetch one title; a failed film lookup is retried once as a series.

        TMDb ids are not unique across kinds, so an unprefixed id may well
        belong to a series.
        """

        try:
            record = await self.get_details(tmdb_id, hinted_kind)
            return self._normalize(record, hinted_kind)
        except TMDbError as exc:
            if hinted_kind is not MediaKind.FILM:
                raise TMDbNotFound(f"No series with TMDb id {tmdb_id}") from exc
            logger.info("Movie lookup for %s failed (%s), retrying as series", tmdb_id, exc)

        try:
            record = await self.get_details(tmdb_id, MediaKind.SERIES)
        except TMDbError as exc:
            raise TMDbNotFound(f"No movie or series with TMDb id {tmdb_id}") from exc
        return self._normalize(record, MediaKind.SERIES)

    async def search_titles(
        self,
        query: str,
        kind: MediaKind,
        *,
        year: str | None = None,
    ) -> list[dict[str, Any]]:
        year_param = "first_air_date_year" if kind is MediaKind.SERIES else "year"
        payload = await self._request(
            f"/search/{kind.tmdb_path}",
            params={
                "query": query,
                "include_adult": "false",
                "language": self.language,
                "page": 1,
                year_param: year,
            },
        )
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise TMDbError(f"TMDb search for {query!r} returned malformed results")
        # hits without an id cannot be enriched or looked up later
        return [hit for hit in results if isinstance(hit, dict) and isinstance(hit.get("id"), int)]

    async def _search_quietly(
        self,
        query: str,
        kind: MediaKind,
        *,
        year: str | None = None,
    ) -> list[dict[str, Any]]:
        try:
            return await self.search_titles(query, kind, year=year)
        except TMDbError as exc:
            logger.warning("TMDb search failed for %r (year=%s): %s", query, year, exc)
            return []

    async def search(self, candidate: FilmCandidate) -> CatalogMatch:
        """Resolve a generated title to a TMDb hit.

        Each query from :data:`SEARCH_STRATEGIES` is tried first with a year
        filter (unless the query already mentions the year), then without it.
        The first query producing any hit ends the search.
        """

        kind = candidate.kind
        year = filter_year(candidate)
        for query in build_search_queries(candidate):
            apply_year = year if year and year not in query else None
            results = await self._search_quietly(query, kind, year=apply_year)
            if results:
                best = pick_best_result(results, year)
                logger.debug("TMDb matched %r via query %r -> %s", candidate.title, query, best.get("id"))
                return to_catalog_match(best, kind)
            if apply_year:
                results = await self._search_quietly(query, kind)
                if results:
                    logger.debug("TMDb matched %r via unfiltered query %r", candidate.title, query)
                    return to_catalog_match(results[0], kind)
        raise TMDbNotFound(f"TMDb search returned no results for '{candidate.title}'")

    async def lookup_many(
        self, ids: Iterable[tuple[str, MediaKind]]
    ) -> list[NormalizedFilm | None]:
        """Resolve several ids concurrently; unresolved ids come back as ``None``."""

        async def _one(tmdb_id: str, kind: MediaKind) -> NormalizedFilm | None:
            try:
                return await self.lookup_by_id(tmdb_id, kind)
            except TMDbError as exc:
                logger.warning("TMDb lookup failed for %s (%s): %s", tmdb_id, kind.value, exc)
                return None

        return list(await asyncio.gather(*(_one(tmdb_id, kind) for tmdb_id, kind in ids)))
