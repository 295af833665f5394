import asyncio
from typing import Any

import pytest

from movienight.core.config import get_settings
from movienight.services.models import CatalogMatch, FilmCandidate, MediaKind, NormalizedFilm
from movienight.services.normalizer import build_links
from movienight.services.tmdb import TMDbNotFound


@pytest.fixture(autouse=True)
def reset_env(monkeypatch):
    # Ensure LangChain tracing flags and real credentials don't pollute tests
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")
    monkeypatch.delenv("LANGCHAIN_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("TMDB_ACCESS_TOKEN", "test-token")
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def make_film(tmdb_id: int, title: str, *, kind: MediaKind = MediaKind.FILM, overview: str | None = None) -> NormalizedFilm:
    return NormalizedFilm(
        title=title,
        year="2001",
        director="Someone",
        genre="Drama",
        runtime="1h 50m",
        tmdb_id=tmdb_id,
        type=kind,
        poster_path=f"/poster-{tmdb_id}.jpg",
        backdrop_path=f"/backdrop-{tmdb_id}.jpg",
        overview=overview,
        links=build_links(title),
    )


class FakeTMDb:
    """Stands in for TMDbClient; behaviour is keyed by title / id."""

    def __init__(
        self,
        *,
        matches: dict[str, Any] | None = None,
        films: dict[str, NormalizedFilm] | None = None,
        delay: float = 0.0,
        delays: dict[str, float] | None = None,
    ) -> None:
        self.matches = matches or {}
        self.films = films or {}
        self.delay = delay
        self.delays = delays or {}
        self.finished: list[str] = []
        self.searched: list[FilmCandidate] = []
        self.active = 0
        self.max_active = 0

    async def search(self, candidate: FilmCandidate) -> CatalogMatch:
        self.searched.append(candidate)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(candidate.title, self.delay))
            self.finished.append(candidate.title)
            outcome = self.matches.get(candidate.title)
            if isinstance(outcome, Exception):
                raise outcome
            if outcome is None:
                raise TMDbNotFound(candidate.title)
            return outcome
        finally:
            self.active -= 1

    async def lookup_many(self, ids):
        results = []
        for tmdb_id, _kind in ids:
            results.append(self.films.get(tmdb_id))
        return results
