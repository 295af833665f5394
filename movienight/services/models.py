"""Shared data shapes for the service layer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Mode(str, Enum):
    """Curation persona for a recommendation request."""

    GOOD = "good"
    BAD = "bad"


class MediaKind(str, Enum):
    FILM = "film"
    SERIES = "series"

    @property
    def tmdb_path(self) -> str:
        """Path segment TMDb uses for this kind (``movie`` / ``tv``)."""
        return "tv" if self is MediaKind.SERIES else "movie"

    @classmethod
    def from_value(cls, raw: Any) -> "MediaKind":
        if isinstance(raw, MediaKind):
            return raw
        if str(raw or "").strip().lower() in {"series", "tv", "show"}:
            return cls.SERIES
        return cls.FILM


class FilmLinks(BaseModel):
    """Outbound links rendered under every recommendation."""

    model_config = ConfigDict(populate_by_name=True)

    imdb: str
    rotten_tomatoes: str = Field(alias="rottenTomatoes")
    letterboxd: str
    just_watch: str = Field(alias="justWatch")


class RawRecommendation(BaseModel):
    """One candidate as emitted by the generative provider."""

    title: str
    year: str = ""
    director: str = ""
    type: MediaKind = MediaKind.FILM
    genre: str = ""
    runtime: str = ""
    logline: str = ""
    why: str = ""
    trust: str = ""
    tmdb_query: str = ""

    @field_validator("title")
    @classmethod
    def _require_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be empty")
        return value

    @field_validator(
        "title",
        "year",
        "director",
        "genre",
        "runtime",
        "logline",
        "why",
        "trust",
        "tmdb_query",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_kind(cls, value: object) -> MediaKind:
        return MediaKind.from_value(value)


class EnrichedRecommendation(RawRecommendation):
    """A raw recommendation merged with catalog artwork, rating and links."""

    poster_path: str | None = None
    backdrop_path: str | None = None
    tmdb_id: int | None = None
    tmdb_rating: str | None = None
    links: FilmLinks


class NormalizedFilm(BaseModel):
    """Canonical film shape built from a TMDb detail record."""

    title: str
    year: str
    director: str
    genre: str
    runtime: str
    tmdb_id: int | None = None
    type: MediaKind = MediaKind.FILM
    poster_path: str | None = None
    backdrop_path: str | None = None
    overview: str | None = None
    links: FilmLinks


class SharedFilm(NormalizedFilm):
    """Film resolved from a compact share link, with inline display copy."""

    logline: str
    why: str
    trust: str = ""


@dataclass(slots=True, frozen=True)
class FilmCandidate:
    """What the catalog search needs to know about a recommendation."""

    title: str
    year: str = ""
    kind: MediaKind = MediaKind.FILM
    suggested_query: str = ""

    @classmethod
    def from_recommendation(cls, rec: RawRecommendation) -> "FilmCandidate":
        return cls(
            title=rec.title,
            year=rec.year,
            kind=rec.type,
            suggested_query=rec.tmdb_query,
        )


@dataclass(slots=True)
class CatalogMatch:
    """A single TMDb search hit."""

    id: int
    title: str
    year: str
    kind: MediaKind
    poster_path: str | None = None
    backdrop_path: str | None = None
    vote_average: float | None = None

    def rating_label(self) -> str | None:
        if not self.vote_average:
            return None
        return f"{self.vote_average:.1f}"
