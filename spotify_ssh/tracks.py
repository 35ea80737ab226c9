"""Now-playing lookups normalized into a single Track value."""

import logging
from dataclasses import dataclass
from typing import Any

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from .config import CURRENTLY_PLAYING_URL, HTTP_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Track:
    name: str = ""
    artist: str = ""
    album: str = ""
    artwork_url: str = ""
    is_playing: bool = False


def _first_field(entries: Any, field: str) -> str:
    if not isinstance(entries, list) or not entries:
        return ""
    first = entries[0]
    if not isinstance(first, dict):
        return ""
    return str(first.get(field) or "")


def track_from_item(item: dict[str, Any], is_playing: bool) -> Track:
    """Map a Spotify track object to a Track; missing fields become ""."""
    album = item.get("album")
    if not isinstance(album, dict):
        album = {}

    return Track(
        name=str(item.get("name") or ""),
        artist=_first_field(item.get("artists"), "name"),
        album=str(album.get("name") or ""),
        artwork_url=_first_field(album.get("images"), "url"),
        is_playing=is_playing,
    )


class TrackFetcher:
    """Reads the player state of the account behind ``sp``.

    Both lookups return None for "nothing to show", which is a normal
    answer and not an error. Status errors surface as spotipy's
    ``SpotifyException``, token failures as ``SpotifyOauthError`` and
    malformed bodies as ``ValueError``.
    """

    def __init__(
        self,
        sp: spotipy.Spotify,
        session: requests.Session | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ) -> None:
        self._sp = sp
        # Spotipy keeps its HTTP session on a private attribute; reuse it.
        self._session = session if session is not None else sp._session
        self._timeout = timeout

    def get_currently_playing(self) -> Track | None:
        logger.debug("Fetching currently playing track")
        # Called directly: spotipy would report an undecodable 200 as None,
        # which is indistinguishable from a 204.
        bearer = self._sp.auth_manager.get_access_token(as_dict=False)
        response = self._session.get(
            CURRENTLY_PLAYING_URL,
            headers={"Authorization": f"Bearer {bearer}"},
            timeout=self._timeout,
        )

        if response.status_code == 204:
            logger.debug("No content - nothing playing")
            return None
        if response.status_code != 200:
            raise SpotifyException(
                response.status_code,
                -1,
                f"{CURRENTLY_PLAYING_URL}: {response.text}",
                headers=response.headers,
            )

        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError("Malformed currently-playing response")

        item = payload.get("item")
        if not isinstance(item, dict):
            logger.debug("No item in response")
            return None

        track = track_from_item(item, is_playing=bool(payload.get("is_playing")))
        logger.info("Got currently playing: %s - %s (playing=%s)", track.name, track.artist, track.is_playing)
        return track

    def get_recently_played(self) -> Track | None:
        logger.debug("Fetching recently played track")
        payload = self._sp.current_user_recently_played(limit=1)
        if not isinstance(payload, dict):
            raise ValueError("Malformed recently-played response")

        items = payload.get("items") or []
        if not isinstance(items, list):
            raise ValueError("Malformed recently-played items")
        if not items:
            logger.debug("No items in recently played")
            return None

        first = items[0] if isinstance(items[0], dict) else {}
        item = first.get("track")
        if not isinstance(item, dict):
            raise ValueError("Recently-played entry without a track")

        track = track_from_item(item, is_playing=False)
        logger.info("Got recently played: %s - %s", track.name, track.artist)
        return track
