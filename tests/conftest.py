import pytest

from spotify_ssh.auth import CredentialManager
from spotify_ssh.env import Credentials
from tests.support.fakes import FakeClock, FakeSession, make_response

TOKEN_URL = "https://accounts.spotify.com/api/token"
CURRENTLY_PLAYING_URL = "https://api.spotify.com/v1/me/player/currently-playing"
RECENTLY_PLAYED_URL = "https://api.spotify.com/v1/me/player/recently-played"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep the developer's own Spotify/SSH settings out of the tests."""
    for name in (
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
        "SPOTIFY_REFRESH_TOKEN",
        "SSH_HOST",
        "SSH_PORT",
        "SSH_HOST_KEY",
    ):
        # setenv first so values written by load_env_file are undone too.
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    yield


@pytest.fixture
def credentials():
    return Credentials(client_id="client-id", client_secret="client-secret", refresh_token="refresh-1")


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_response():
    def _build(access_token="token-1", expires_in=3600, **extra):
        return make_response(200, {"access_token": access_token, "token_type": "Bearer", "expires_in": expires_in, **extra})

    return _build


@pytest.fixture
def credential_manager(credentials, fake_session, clock):
    return CredentialManager(credentials, session=fake_session, clock=clock)
