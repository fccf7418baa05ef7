from __future__ import annotations

import logging
import os

import spotipy
from spotipy.oauth2 import SpotifyClientCredentials

log = logging.getLogger(__name__)


class ThirdParty:
    """Optional external services the bot can talk to besides YouTube."""

    def __init__(self, spotify: spotipy.Spotify) -> None:
        self.spotify = spotify

    @classmethod
    def from_env(cls) -> ThirdParty | None:
        client_id = os.getenv("SPOTIFY_CLIENT_ID")
        client_secret = os.getenv("SPOTIFY_CLIENT_SECRET")
        if not client_id or not client_secret:
            log.warning("Spotify credentials not set; Spotify links and suggestions are disabled.")
            return None

        auth = SpotifyClientCredentials(
            client_id=client_id, client_secret=client_secret
        )
        return cls(spotipy.Spotify(auth_manager=auth))
