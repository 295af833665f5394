"""Helpers for the compact share link (TMDb ids plus inline display copy).

A compact link carries only ``ids=603,tv:1396`` and a percent-encoded JSON
array ``d=[{"l": ..., "w": ..., "t": ...}, ...]`` aligned with the ids. Film
data is re-fetched from TMDb every time the link is opened.
"""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import unquote

from movienight.services.models import MediaKind, NormalizedFilm, SharedFilm
from movienight.services.tmdb import TMDbClient

logger = logging.getLogger(__name__)

SERIES_PREFIX = "tv:"
DEFAULT_LOGLINE = "No description available."
DEFAULT_WHY = "A great film worth watching."


def parse_id_list(raw: str | None) -> list[tuple[str, MediaKind]]:
    """``"603, tv:1396"`` -> ``[("603", FILM), ("1396", SERIES)]``."""
    parsed: list[tuple[str, MediaKind]] = []
    for chunk in (raw or "").split(","):
        chunk = chunk.strip()
        kind = MediaKind.FILM
        if chunk.startswith(SERIES_PREFIX):
            kind = MediaKind.SERIES
            chunk = chunk[len(SERIES_PREFIX):].strip()
        if chunk:
            parsed.append((chunk, kind))
    return parsed


def parse_display_data(raw: str | None) -> list[Any]:
    if not raw:
        return []
    for candidate in (raw, unquote(raw)):
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, list):
            return data
    logger.info("Ignoring malformed share display data")
    return []


def _pick(entry: dict[str, Any], short: str, long: str) -> str:
    value = entry.get(short) or entry.get(long)
    return value if isinstance(value, str) else ""


def overlay_display_data(film: NormalizedFilm, entry: Any) -> SharedFilm:
    entry = entry if isinstance(entry, dict) else {}
    return SharedFilm(
        **film.model_dump(),
        logline=_pick(entry, "l", "logline") or film.overview or DEFAULT_LOGLINE,
        why=_pick(entry, "w", "why") or DEFAULT_WHY,
        trust=_pick(entry, "t", "trust"),
    )


async def resolve_compact_link(
    ids: list[tuple[str, MediaKind]],
    display_data: list[Any],
    tmdb_client: TMDbClient,
) -> list[SharedFilm]:
    films = await tmdb_client.lookup_many(ids)
    shared: list[SharedFilm] = []
    for idx, film in enumerate(films):
        if film is None:
            continue
        entry = display_data[idx] if idx < len(display_data) else None
        shared.append(overlay_display_data(film, entry))
    return shared
