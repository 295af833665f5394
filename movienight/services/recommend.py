"""Preferences in, four enriched recommendations out."""

from __future__ import annotations

import logging
from typing import Sequence

from movienight.services.enrichment import enrich_recommendations
from movienight.services.llm import RecommendationClient, RecommendationUnavailable
from movienight.services.models import EnrichedRecommendation, Mode
from movienight.services.prompts import build_prompt
from movienight.services.tmdb import TMDbClient

logger = logging.getLogger(__name__)


async def recommend(
    preferences: Sequence[str],
    mode: Mode,
    *,
    llm_client: RecommendationClient,
    tmdb_client: TMDbClient,
) -> list[EnrichedRecommendation]:
    """Run prompt -> LLM -> TMDb enrichment.

    Raises :class:`RecommendationUnavailable` when the LLM step fails; catalog
    misses never fail the request.
    """

    prompt = build_prompt(preferences, mode)
    result = await llm_client.get_recommendations(prompt)
    if not result.ok:
        raise RecommendationUnavailable(result)
    enriched = await enrich_recommendations(result.recommendations, tmdb_client)
    logger.info(
        "Served %d recommendations (%s mode, %d matched on TMDb)",
        len(enriched),
        Mode(mode).value,
        sum(1 for rec in enriched if rec.tmdb_id is not None),
    )
    return enriched
