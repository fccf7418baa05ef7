from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import aiohttp
import spotipy

from .errors import ProviderError
from .metrics import suggestion_fetch_seconds

log = logging.getLogger(__name__)

YOUTUBE_SUGGEST_URL = "https://suggestqueries.google.com/complete/search"


@dataclass(frozen=True)
class Suggestion:
    """One autocomplete option: ``name`` is shown, ``value`` is submitted."""

    name: str
    value: str


async def get_youtube_suggestions_for(query: str) -> list[str]:
    params = {"client": "firefox", "ds": "yt", "q": query}
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(
                YOUTUBE_SUGGEST_URL,
                params=params,
                timeout=aiohttp.ClientTimeout(total=10),
            ) as resp:
                if resp.status != 200:
                    raise ProviderError(f"YouTube suggestions returned HTTP {resp.status}")
                # Served as text/javascript, so skip the content-type check.
                data = await resp.json(content_type=None)
    except aiohttp.ClientError as exc:
        raise ProviderError(f"YouTube suggestions failed: {exc}") from exc
    except asyncio.TimeoutError as exc:
        raise ProviderError("YouTube suggestions timed out") from exc

    if not isinstance(data, list) or len(data) < 2 or not isinstance(data[1], list):
        raise ProviderError("Unexpected YouTube suggestions payload")
    return [s for s in data[1] if isinstance(s, str)]


async def search_spotify(spotify: spotipy.Spotify, query: str, limit: int) -> dict:
    loop = asyncio.get_running_loop()
    try:
        return await loop.run_in_executor(
            None, lambda: spotify.search(q=query, type="album,track", limit=limit)
        )
    except spotipy.SpotifyException as exc:
        raise ProviderError(f"Spotify search failed: {exc}") from exc


def _unique_by_name(items: list[dict]) -> list[dict]:
    seen: set[str] = set()
    out: list[dict] = []
    for item in items:
        name = item.get("name", "")
        if name in seen:
            continue
        seen.add(name)
        out.append(item)
    return out


def _with_first_artist(item: dict) -> str:
    artists = item.get("artists") or []
    if artists:
        return f"{item['name']} - {artists[0]['name']}"
    return item["name"]


async def get_youtube_and_spotify_suggestions_for(
    query: str, spotify: spotipy.Spotify | None = None, limit: int = 10
) -> list[Suggestion]:
    """Return up to ``limit`` suggestions, YouTube first, then Spotify.

    Spotify gets at most half of the slots (albums at most half of those);
    YouTube fills whatever Spotify cannot.
    """
    with suggestion_fetch_seconds.time():
        if spotify is None:
            youtube = await get_youtube_suggestions_for(query)
            return [Suggestion(f"YouTube: {s}", s) for s in youtube[:limit]]

        youtube, spotify_result = await asyncio.gather(
            get_youtube_suggestions_for(query),
            search_spotify(spotify, query, limit),
        )

    albums = _unique_by_name((spotify_result.get("albums") or {}).get("items") or [])
    tracks = _unique_by_name((spotify_result.get("tracks") or {}).get("items") or [])

    num_spotify = min(limit // 2, len(albums) + len(tracks))
    num_albums = min(num_spotify // 2, len(albums))
    num_tracks = min(num_spotify - num_albums, len(tracks))
    num_youtube = min(limit - num_albums - num_tracks, len(youtube))

    suggestions = [Suggestion(f"YouTube: {s}", s) for s in youtube[:num_youtube]]
    suggestions.extend(
        Suggestion(
            f"Spotify: 💿 {_with_first_artist(album)}",
            f"https://open.spotify.com/album/{album['id']}",
        )
        for album in albums[:num_albums]
    )
    suggestions.extend(
        Suggestion(
            f"Spotify: 🎵 {_with_first_artist(track)}",
            f"https://open.spotify.com/track/{track['id']}",
        )
        for track in tracks[:num_tracks]
    )
    log.debug(
        "Suggestions for %r: %d YouTube, %d albums, %d tracks",
        query, num_youtube, num_albums, num_tracks,
    )
    return suggestions
