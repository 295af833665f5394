"""Convert raw TMDb detail records into :class:`NormalizedFilm`.

Every helper here is pure and tolerant of missing keys: a sparse record
degrades to the documented fallback values instead of raising.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from movienight.services.models import FilmLinks, MediaKind, NormalizedFilm

UNKNOWN = "Unknown"
DEFAULT_GENRE = "Film"


def encode_title(title: str) -> str:
    """Percent-encode like JavaScript's ``encodeURIComponent``."""
    return quote(title or "", safe="-_.!~*'()")


def build_links(title: str, imdb_id: str | None = None) -> FilmLinks:
    encoded = encode_title(title)
    imdb = (
        f"https://www.imdb.com/title/{imdb_id}"
        if imdb_id
        else f"https://www.imdb.com/find/?q={encoded}"
    )
    return FilmLinks(
        imdb=imdb,
        rotten_tomatoes=f"https://www.rottentomatoes.com/search?search={encoded}",
        letterboxd=f"https://letterboxd.com/search/{encoded}/",
        just_watch=f"https://www.justwatch.com/us/search?q={encoded}",
    )


def extract_title(record: dict[str, Any]) -> str:
    return record.get("title") or record.get("name") or ""


def extract_year(record: dict[str, Any]) -> str:
    raw = record.get("release_date") or record.get("first_air_date") or ""
    year = str(raw).split("-")[0]
    return year or UNKNOWN


def extract_director(record: dict[str, Any]) -> str:
    crew = (record.get("credits") or {}).get("crew") or []
    for member in crew:
        if member.get("job") == "Director" and member.get("name"):
            return member["name"]
    creators = record.get("created_by") or []
    if creators and creators[0].get("name"):
        return creators[0]["name"]
    return UNKNOWN


def _as_int(raw: Any) -> int | None:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def format_runtime(record: dict[str, Any]) -> str:
    """Movie minutes beat episode minutes beat episode count."""
    minutes = _as_int(record.get("runtime"))
    if minutes:
        return f"{minutes // 60}h {minutes % 60}m"
    episode_minutes = record.get("episode_run_time") or []
    first_episode = _as_int(episode_minutes[0]) if episode_minutes else None
    if first_episode:
        return f"{first_episode}m episodes"
    episodes = _as_int(record.get("number_of_episodes"))
    if episodes:
        return f"{episodes} episodes"
    return UNKNOWN


def summarize_genres(record: dict[str, Any]) -> str:
    names = [g.get("name") for g in record.get("genres") or [] if g.get("name")]
    return " / ".join(names[:2]) or DEFAULT_GENRE


def extract_imdb_id(record: dict[str, Any]) -> str | None:
    return record.get("imdb_id") or (record.get("external_ids") or {}).get("imdb_id") or None


def normalize_film(record: dict[str, Any], kind: MediaKind = MediaKind.FILM) -> NormalizedFilm:
    title = extract_title(record)
    return NormalizedFilm(
        title=title,
        year=extract_year(record),
        director=extract_director(record),
        genre=summarize_genres(record),
        runtime=format_runtime(record),
        tmdb_id=_as_int(record.get("id")),
        type=kind,
        poster_path=record.get("poster_path"),
        backdrop_path=record.get("backdrop_path"),
        overview=record.get("overview"),
        links=build_links(title, extract_imdb_id(record)),
    )
