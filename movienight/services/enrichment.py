"""Attach TMDb artwork, ids and ratings to LLM recommendations."""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from movienight.core.config import get_settings
from movienight.services.models import (
    CatalogMatch,
    EnrichedRecommendation,
    FilmCandidate,
    RawRecommendation,
)
from movienight.services.normalizer import build_links
from movienight.services.tmdb import TMDbClient, TMDbNotFound

logger = logging.getLogger(__name__)


def merge_match(rec: RawRecommendation, match: CatalogMatch | None) -> EnrichedRecommendation:
    """Links always use the recommended title, even when TMDb matched another."""

    fields = rec.model_dump()
    links = build_links(rec.title)
    if match is None:
        return EnrichedRecommendation(**fields, links=links)
    return EnrichedRecommendation(
        **fields,
        poster_path=match.poster_path,
        backdrop_path=match.backdrop_path,
        tmdb_id=match.id,
        tmdb_rating=match.rating_label(),
        links=links,
    )


async def enrich_recommendation(
    rec: RawRecommendation,
    tmdb_client: TMDbClient,
    *,
    timeout: float | None = None,
) -> EnrichedRecommendation:
    candidate = FilmCandidate.from_recommendation(rec)
    match: CatalogMatch | None = None
    try:
        match = await asyncio.wait_for(tmdb_client.search(candidate), timeout)
    except TMDbNotFound:
        logger.info("No TMDb match for %r (%s)", rec.title, rec.year or "year unknown")
    except Exception as exc:  # network failure or timeout; keep the item regardless
        logger.warning("TMDb enrichment failed for %r: %r", rec.title, exc)
    return merge_match(rec, match)


async def enrich_recommendations(
    recommendations: Sequence[RawRecommendation],
    tmdb_client: TMDbClient,
    *,
    timeout: float | None = None,
) -> list[EnrichedRecommendation]:
    """Enrich all items concurrently; output order and length match the input."""

    if timeout is None:
        timeout = get_settings().tmdb_lookup_timeout
    return list(
        await asyncio.gather(
            *(enrich_recommendation(rec, tmdb_client, timeout=timeout) for rec in recommendations)
        )
    )
