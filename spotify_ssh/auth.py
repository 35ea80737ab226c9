"""Access-token management for the Spotify Web API.

One ``CredentialManager`` is shared by every SSH session. It exchanges the
long-lived refresh token for a short-lived bearer token and refreshes it
before Spotify expires it.
"""

import base64
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

import requests
from spotipy.oauth2 import SpotifyOauthError

from .config import HTTP_TIMEOUT_SECONDS, TOKEN_EXPIRY_MARGIN_SECONDS, TOKEN_URL
from .env import Credentials

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BearerState:
    bearer: str = ""
    expires_at: float = 0.0

    def is_valid(self, now: float) -> bool:
        return bool(self.bearer) and now < self.expires_at


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """Build the ``Authorization`` value for the token endpoint."""
    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


class CredentialManager:
    """Keeps a valid bearer token, refreshing it with the refresh token.

    Refreshes are single-flight: callers that find the token expired queue
    on one lock and re-check the state before hitting the token endpoint, so
    a burst of sessions triggers one refresh.

    The class also implements the ``get_access_token`` hook spotipy expects
    from an auth manager, so it can be handed to ``spotipy.Spotify`` as-is.
    """

    def __init__(
        self,
        credentials: Credentials,
        session: requests.Session | None = None,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client_id = credentials.client_id
        self._client_secret = credentials.client_secret
        self._refresh_token = credentials.refresh_token
        self._session = session or requests.Session()
        self._timeout = timeout
        self._clock = clock
        self._state = BearerState()
        self._state_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    @property
    def state(self) -> BearerState:
        with self._state_lock:
            return self._state

    def ensure_bearer(self) -> str:
        """Return a bearer token with at least the safety margin left."""
        state = self.state
        if state.is_valid(self._clock()):
            return state.bearer

        with self._refresh_lock:
            # Another session may have refreshed while we waited for the lock.
            state = self.state
            if state.is_valid(self._clock()):
                return state.bearer
            return self._refresh()

    def get_access_token(self, as_dict: bool = False) -> str:
        return self.ensure_bearer()

    def _refresh(self) -> str:
        logger.debug("Refreshing access token")

        response = self._session.post(
            TOKEN_URL,
            data={"grant_type": "refresh_token", "refresh_token": self._refresh_token},
            headers={
                "Authorization": basic_auth_header(self._client_id, self._client_secret),
                "Content-Type": "application/x-www-form-urlencoded",
            },
            timeout=self._timeout,
        )

        if response.status_code != 200:
            logger.error("Failed to refresh token: status=%s body=%s", response.status_code, response.text)
            raise SpotifyOauthError(
                f"Failed to refresh token: {response.status_code}",
                error=f"http_{response.status_code}",
                error_description=response.text,
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            expires_in = int(payload["expires_in"])
        except (ValueError, KeyError, TypeError) as exc:
            logger.error("Failed to decode token response: %s", exc)
            raise SpotifyOauthError(f"Malformed token response: {exc}") from exc

        if not access_token:
            raise SpotifyOauthError("Token response carried an empty access token")

        # Spotify may rotate the refresh token; keep the new one in memory only.
        rotated = payload.get("refresh_token")
        if rotated and rotated != self._refresh_token:
            self._refresh_token = rotated
            logger.info("Refresh token rotated")

        state = BearerState(
            bearer=access_token,
            expires_at=self._clock() + expires_in - TOKEN_EXPIRY_MARGIN_SECONDS,
        )
        with self._state_lock:
            self._state = state

        logger.info("Access token refreshed (expires in %ds)", expires_in)
        return access_token
