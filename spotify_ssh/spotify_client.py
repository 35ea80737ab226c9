"""Spotipy client setup and cleanup helpers."""

import logging

import requests
import spotipy
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth

from .auth import CredentialManager
from .config import CLIENT_ID_ENV, CLIENT_SECRET_ENV, HTTP_TIMEOUT_SECONDS, SCOPE
from .env import Credentials, get_required_env


def configure_spotipy_logging() -> None:
    """Reduce Spotipy logger noise; our own modules log the failures."""
    for logger_name in ("spotipy", "spotipy.client", "spotipy.oauth2"):
        logger = logging.getLogger(logger_name)
        logger.setLevel(logging.CRITICAL)
        logger.propagate = False


# Apply logging policy at import so all consumers get consistent behavior.
configure_spotipy_logging()


def create_spotify_client(
    credentials: Credentials,
    session: requests.Session | None = None,
) -> spotipy.Spotify:
    """Create a Spotipy client whose bearer token comes from a CredentialManager."""
    # One HTTP session is shared by the token refresh and the API calls.
    session = session or requests.Session()
    auth_manager = CredentialManager(credentials, session=session, timeout=HTTP_TIMEOUT_SECONDS)

    # Passing a Session keeps spotipy from mounting its own retry adapter;
    # a failed poll is simply retried on the next tick.
    return spotipy.Spotify(
        auth_manager=auth_manager,
        requests_session=session,
        requests_timeout=HTTP_TIMEOUT_SECONDS,
    )


def create_authorization_manager(redirect_uri: str) -> SpotifyOAuth:
    """OAuth helper used once to mint the refresh token for the server."""
    # The token only needs to be printed, so keep spotipy's cache in memory.
    return SpotifyOAuth(
        client_id=get_required_env(CLIENT_ID_ENV),
        client_secret=get_required_env(CLIENT_SECRET_ENV),
        redirect_uri=redirect_uri,
        scope=SCOPE,
        cache_handler=MemoryCacheHandler(),
        open_browser=True,
        show_dialog=False,
    )


def close_sessions(sp: spotipy.Spotify) -> None:
    """Close HTTP sessions held by Spotipy objects."""
    for obj in (sp, sp.auth_manager):
        # Spotipy exposes sessions on private attributes; close defensively.
        session = getattr(obj, "_session", None)
        close_fn = getattr(session, "close", None)
        if callable(close_fn):
            close_fn()
