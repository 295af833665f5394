"""FastAPI entrypoint wiring the recommendation pipeline, lookups and shares."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from movienight.core.config import get_settings
from movienight.core.langchain_config import configure_langchain_env
from movienight.db import ShareRepository, get_session, init_models, to_epoch_ms
from movienight.services.llm import RecommendationClient, RecommendationUnavailable
from movienight.services.models import EnrichedRecommendation, Mode, NormalizedFilm, SharedFilm
from movienight.services.prompts import LOADING_PHRASES
from movienight.services.rate_limit import DailyRateLimiter
from movienight.services.recommend import recommend
from movienight.services.sharing import parse_display_data, parse_id_list, resolve_compact_link
from movienight.services.tmdb import TMDbClient

logger = logging.getLogger(__name__)

RATE_LIMIT_HEADER = "X-RateLimit-Remaining"


@asynccontextmanager
async def lifespan(_: FastAPI):
    """Configure LangChain + ensure database tables before serving."""

    configure_langchain_env()
    init_models()
    yield


app = FastAPI(title="Movie Night", lifespan=lifespan)
share_repo = ShareRepository()


@lru_cache(maxsize=1)
def get_rate_limiter() -> DailyRateLimiter:
    return DailyRateLimiter(get_settings().daily_request_limit)


def get_tmdb_client() -> TMDbClient:
    return TMDbClient()


def get_recommendation_client() -> RecommendationClient:
    return RecommendationClient()


class RecommendRequest(BaseModel):
    preferences: list[str] = Field(
        default_factory=list,
        description='Human-readable preference lines, e.g. "Mood: Cerebral, Epic"',
    )
    mode: Mode = Mode.GOOD


class RecommendResponse(BaseModel):
    recommendations: list[EnrichedRecommendation]


class MoviesResponse(BaseModel):
    movies: list[NormalizedFilm]


class SharedMoviesResponse(BaseModel):
    movies: list[SharedFilm]


class ShareSaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recommendations: list[dict[str, Any]] = Field(default_factory=list)
    search_params: Any = Field(default=None, alias="searchParams")


class ShareSaveResponse(BaseModel):
    id: str


class ShareRecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recommendations: list[dict[str, Any]]
    search_params: Any = Field(default=None, alias="searchParams")
    created_at: int = Field(alias="createdAt")


class ModeInfo(BaseModel):
    mode: Mode
    loading_phrases: list[str]


@app.post("/api/recommend", response_model=RecommendResponse)
async def create_recommendations(
    payload: RecommendRequest,
    response: Response,
    limiter: DailyRateLimiter = Depends(get_rate_limiter),
    llm_client: RecommendationClient = Depends(get_recommendation_client),
    tmdb_client: TMDbClient = Depends(get_tmdb_client),
) -> RecommendResponse:
    """Turn mood/context preferences into four enriched recommendations."""

    preferences = [line for line in payload.preferences if line and line.strip()]
    if not preferences:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No preferences provided",
        )

    decision = limiter.try_acquire()
    quota_header = {RATE_LIMIT_HEADER: str(decision.remaining)}
    if not decision.allowed:
        logger.warning("Daily recommendation limit of %d reached", limiter.limit)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "Daily limit reached. Come back tomorrow!",
                "message": "Movie Night has reached its daily recommendation limit. "
                "Please try again tomorrow.",
            },
            headers=quota_header,
        )
    response.headers[RATE_LIMIT_HEADER] = str(decision.remaining)

    try:
        recommendations = await recommend(
            preferences,
            payload.mode,
            llm_client=llm_client,
            tmdb_client=tmdb_client,
        )
    except RecommendationUnavailable as exc:
        logger.error("Recommendation pipeline failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get recommendations",
            headers=quota_header,
        ) from exc
    return RecommendResponse(recommendations=recommendations)


@app.get("/api/movies", response_model=MoviesResponse)
async def get_movies(
    ids: str | None = Query(default=None, description="Comma-separated TMDb ids; prefix series with tv:"),
    tmdb_client: TMDbClient = Depends(get_tmdb_client),
) -> MoviesResponse:
    if not ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No movie IDs provided")
    parsed = parse_id_list(ids)
    if not parsed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid movie IDs")

    movies = [film for film in await tmdb_client.lookup_many(parsed) if film is not None]
    if not movies:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No movies found")
    return MoviesResponse(movies=movies)


@app.get("/api/shared", response_model=SharedMoviesResponse)
async def resolve_shared_link(
    ids: str | None = Query(default=None),
    d: str | None = Query(default=None, description="Percent-encoded JSON array of {l, w, t}"),
    tmdb_client: TMDbClient = Depends(get_tmdb_client),
) -> SharedMoviesResponse:
    """Rebuild a compact share link from fresh TMDb data plus inline copy."""

    parsed = parse_id_list(ids)
    if not parsed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No movies specified")
    movies = await resolve_compact_link(parsed, parse_display_data(d), tmdb_client)
    if not movies:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Could not load the shared movies",
        )
    return SharedMoviesResponse(movies=movies)


@app.post("/api/share", response_model=ShareSaveResponse)
def save_share(
    payload: ShareSaveRequest,
    session: Session = Depends(get_session),
) -> ShareSaveResponse:
    if not payload.recommendations:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No recommendations to save",
        )
    record = share_repo.create(
        session,
        recommendations=payload.recommendations,
        search_params=payload.search_params,
        ttl=timedelta(days=get_settings().share_ttl_days),
    )
    logger.info("Saved shared results %s", record.id)
    return ShareSaveResponse(id=record.id)


@app.get("/api/share", response_model=ShareRecordResponse)
def get_share(
    share_id: str | None = Query(default=None, alias="id"),
    session: Session = Depends(get_session),
) -> ShareRecordResponse:
    if not share_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No ID provided")
    record = share_repo.get_active(session, share_id.strip().lower())
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Results not found or expired",
        )
    return ShareRecordResponse(
        recommendations=record.recommendations,
        search_params=record.search_params,
        created_at=to_epoch_ms(record.created_at),
    )


@app.get("/api/modes", response_model=list[ModeInfo])
def list_modes() -> list[ModeInfo]:
    return [
        ModeInfo(mode=mode, loading_phrases=list(LOADING_PHRASES[mode]))
        for mode in Mode
    ]
